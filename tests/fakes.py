"""In-memory stand-ins for the Cassandra stores.

They keep the same async interface as the real stores and return copies,
so services under test cannot mutate "persisted" state by accident.
"""

import asyncio
from collections.abc import Callable, Sequence
from copy import deepcopy
from dataclasses import replace
from typing import Any

from social.activities.models import Activity, ActivityDelta, BanInfo, ReportInfo
from social.comments.models import Comment
from social.core.pagination import IndexBatch, Key
from social.posts.models import Post
from social.reactions.models import Reaction, ReactionType
from social.resources.models import (
    ContentRevision,
    LifecycleState,
    ResourceRef,
    ResourceType,
)


class ListIndexQuery:
    """Index over a Python list, ordered by ``sort_columns`` of each key.

    Like the Cassandra index, the limit applies to raw rows and the filter
    runs afterwards.
    """

    def __init__(
        self,
        rows: Sequence[Any],
        *,
        sort_columns: Sequence[str],
        key_of: Callable[[Any], Key],
        partition: Key,
        row_filter: Callable[[Any], bool] | None = None,
    ):
        self.sort_columns = tuple(sort_columns)
        self._key_of = key_of
        self.partition = partition
        self.row_filter = row_filter
        self.rows = sorted(rows, key=lambda row: self._sort_key(key_of(row)))
        self.fetch_calls: list[tuple[Key | None, int]] = []

    def _sort_key(self, key: Key) -> tuple:
        return tuple(key[column] for column in self.sort_columns)

    def key_of(self, item: Any) -> Key:
        return self._key_of(item)

    async def fetch(self, start_after: Key | None, limit: int) -> IndexBatch:
        self.fetch_calls.append((start_after, limit))
        rows = self.rows
        if start_after is not None:
            boundary = self._sort_key(start_after)
            rows = [row for row in rows if self._sort_key(self.key_of(row)) > boundary]
        batch = rows[:limit]
        last_key = self.key_of(batch[-1]) if len(batch) >= limit else None
        if self.row_filter is not None:
            batch = [row for row in batch if self.row_filter(row)]
        return IndexBatch(items=list(batch), last_key=last_key)


class FakeActivityStore:
    def __init__(self):
        self.activities: dict[ResourceRef, Activity] = {}
        self.add_calls: list[tuple[ResourceRef, ActivityDelta]] = []
        # Number of upcoming compare-and-set calls that lose a race
        self.cas_conflicts = 0

    async def insert(self, activity: Activity) -> None:
        self.activities[activity.ref] = deepcopy(activity)

    async def get(self, ref: ResourceRef) -> Activity | None:
        activity = self.activities.get(ref)
        return deepcopy(activity) if activity else None

    async def get_many(self, resource_type: ResourceType, resource_ids: Sequence[str]):
        found = {}
        for resource_id in resource_ids:
            activity = self.activities.get(ResourceRef(resource_id, resource_type))
            if activity is not None:
                found[resource_id] = deepcopy(activity)
        return found

    async def add(self, ref: ResourceRef, delta: ActivityDelta) -> None:
        self.add_calls.append((ref, delta))
        self.activities[ref] = self.activities[ref].apply(delta)

    async def compare_and_set_report_info(
        self, ref: ResourceRef, expected_count: int, report_info: ReportInfo
    ) -> bool:
        if self.cas_conflicts > 0:
            self.cas_conflicts -= 1
            return False
        activity = self.activities[ref]
        if activity.report_info.report_count != expected_count:
            return False
        self.activities[ref] = replace(activity, report_info=report_info)
        return True

    async def set_ban_info(self, ref: ResourceRef, ban_info: BanInfo) -> None:
        self.activities[ref] = replace(self.activities[ref], ban_info=ban_info)


class FakeReactionStore:
    def __init__(self):
        self.reactions: dict[tuple[str, ResourceType, str], Reaction] = {}

    @staticmethod
    def _key(source_id: str, ref: ResourceRef) -> tuple[str, ResourceType, str]:
        return (source_id, ref.resource_type, ref.resource_id)

    async def get_for_source(self, source_id: str, ref: ResourceRef) -> Reaction | None:
        # Yield like a network read so concurrent callers interleave
        await asyncio.sleep(0)
        reaction = self.reactions.get(self._key(source_id, ref))
        return deepcopy(reaction) if reaction else None

    async def list_for_source(self, source_id, resource_type, resource_ids):
        wanted = set(resource_ids)
        return [
            deepcopy(reaction)
            for (owner, kind, resource_id), reaction in self.reactions.items()
            if owner == source_id and kind == resource_type and resource_id in wanted
        ]

    async def get_by_id(self, reaction_id: str) -> Reaction | None:
        for reaction in self.reactions.values():
            if reaction.reaction_id == reaction_id:
                return deepcopy(reaction)
        return None

    def resource_index(self, ref: ResourceRef) -> ListIndexQuery:
        return ListIndexQuery(
            [deepcopy(r) for r in self.reactions.values() if r.ref == ref],
            sort_columns=("created_at", "source_id"),
            key_of=Reaction.index_key,
            partition=ref.to_dict(),
        )

    def _matches(self, reaction: Reaction) -> bool:
        stored = self.reactions.get(self._key(reaction.source_id, reaction.ref))
        return (
            stored is not None
            and stored.reaction_id == reaction.reaction_id
            and stored.reaction is reaction.reaction
        )

    async def insert(self, reaction: Reaction) -> bool:
        key = self._key(reaction.source_id, reaction.ref)
        if key in self.reactions:
            return False
        self.reactions[key] = deepcopy(reaction)
        return True

    async def update_type(self, reaction: Reaction, reaction_type: ReactionType):
        if not self._matches(reaction):
            return None
        updated = replace(reaction, reaction=reaction_type)
        self.reactions[self._key(reaction.source_id, reaction.ref)] = deepcopy(updated)
        return updated

    async def delete(self, reaction: Reaction) -> bool:
        if not self._matches(reaction):
            return False
        del self.reactions[self._key(reaction.source_id, reaction.ref)]
        return True

    def count_for(self, ref: ResourceRef) -> int:
        return sum(1 for reaction in self.reactions.values() if reaction.ref == ref)


class FakeCommentStore:
    def __init__(self):
        self.comments: dict[str, Comment] = {}

    async def insert(self, comment: Comment) -> None:
        self.comments[comment.comment_id] = deepcopy(comment)

    async def get_by_id(self, comment_id: str) -> Comment | None:
        comment = self.comments.get(comment_id)
        return deepcopy(comment) if comment else None

    async def append_content(self, comment: Comment, content: ContentRevision) -> bool:
        stored = self.comments[comment.comment_id]
        if stored.is_deleted:
            return False
        stored.contents.append(deepcopy(content))
        return True

    async def mark_deleted(self, comment: Comment) -> bool:
        stored = self.comments[comment.comment_id]
        if stored.is_deleted:
            return False
        stored.state = LifecycleState.DELETED
        return True

    async def mark_banned(self, comment: Comment) -> None:
        self.comments[comment.comment_id].is_banned = True

    def resource_index(self, parent: ResourceRef) -> ListIndexQuery:
        return ListIndexQuery(
            [deepcopy(c) for c in self.comments.values() if c.parent == parent],
            sort_columns=("created_at", "comment_id"),
            key_of=Comment.resource_key,
            partition=parent.to_dict(),
            row_filter=lambda comment: not comment.is_deleted,
        )

    def source_index(self, source_id, resource_type, resource_ids) -> ListIndexQuery:
        wanted = set(resource_ids)
        return ListIndexQuery(
            [
                deepcopy(c)
                for c in self.comments.values()
                if c.source_id == source_id and c.resource_type == resource_type
            ],
            sort_columns=("resource_id", "created_at", "comment_id"),
            key_of=Comment.source_key,
            partition={"source_id": source_id, "resource_type": resource_type.value},
            row_filter=lambda comment: comment.resource_id in wanted and not comment.is_deleted,
        )


class FakePostStore:
    def __init__(self):
        self.posts: dict[str, Post] = {}

    async def insert(self, post: Post) -> None:
        self.posts[post.post_id] = deepcopy(post)

    async def get_by_id(self, post_id: str) -> Post | None:
        post = self.posts.get(post_id)
        return deepcopy(post) if post else None

    async def get_many(self, post_ids: Sequence[str]) -> dict[str, Post]:
        return {pid: deepcopy(self.posts[pid]) for pid in post_ids if pid in self.posts}

    async def append_content(self, post: Post, content: ContentRevision) -> None:
        self.posts[post.post_id].contents.append(deepcopy(content))

    async def mark_banned(self, post: Post) -> None:
        self.posts[post.post_id].is_banned = True

    async def delete(self, post: Post) -> bool:
        return self.posts.pop(post.post_id, None) is not None


class FakeRedis:
    """Dict-backed subset of ``redis.asyncio.Redis`` (string values, no expiry)."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def mget(self, *keys: str) -> list[str | None]:
        return [self.values.get(key) for key in keys]

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.values[key] = value
        self.ttls[key] = ttl

    async def incr(self, key: str) -> int:
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key: str, ttl: int) -> bool:
        if key not in self.values:
            return False
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> int:
        self.ttls.pop(key, None)
        return 1 if self.values.pop(key, None) is not None else 0
