"""Cassandra access for comments.

``comments_by_id`` is the authoritative copy. Every write to it is
conditional and the two index tables are written only after it applied,
so a duplicate create, a second delete or an edit of a deleted comment
leaves the indexes untouched.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from social.core.errors import CreationError, InputError
from social.core.pagination import CassandraIndexQuery, IndexBatch, Key, bind_key_value
from social.resources.models import ContentRevision, ResourceRef, ResourceType

from .models import Comment


if TYPE_CHECKING:
    from cassandra.cluster import Session


def _is_active(comment: Comment) -> bool:
    return not comment.is_deleted


class SourceCommentIndex(CassandraIndexQuery[Comment]):
    """A source's comments on a fixed set of resources.

    Cassandra cannot combine ``resource_id IN ?`` with a slice on the later
    clustering columns, so a resumed batch reads the rest of the cursor's
    resource with a slice and then fills up from the wanted ids that sort
    after it. Every query stays inside the requested set.
    """

    def __init__(self, session: "Session", *, resource_ids: Sequence[str], **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.resource_ids = list(resource_ids)

    async def fetch(self, start_after: Key | None, limit: int) -> IndexBatch[Comment]:
        if start_after is None:
            return await super().fetch(None, limit)

        current = start_after.get("resource_id")
        if current not in self.resource_ids:
            raise InputError("Pagination cursor does not belong to this listing")

        slice_values = [
            bind_key_value(column, start_after.get(column)) for column in self.resume_columns
        ]
        rows = list(
            await self.session.aexecute(
                self.resume_statement,
                [*self.resume_params, current, *slice_values, limit],
            )
        )
        later = [resource_id for resource_id in self.resource_ids if resource_id > current]
        if later and len(rows) < limit:
            rows.extend(
                await self.session.aexecute(
                    self.first_statement,
                    [*self.resume_params, later, limit - len(rows)],
                )
            )
        return self.to_batch(rows, limit)


class CommentStore:
    """Comment persistence over the comment query tables."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        # Inserts
        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_id
            (comment_id, source_id, source_type, resource_id, resource_type,
             contents, is_deleted, is_banned, created_at)
            VALUES (?, ?, ?, ?, ?, ?, false, false, ?)
            IF NOT EXISTS
        """)
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {ks}.comments
            (source_id, resource_type, resource_id, created_at, comment_id,
             source_type, contents, is_deleted, is_banned)
            VALUES (?, ?, ?, ?, ?, ?, ?, false, false)
        """)
        self._insert_by_resource = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_resource
            (resource_id, resource_type, created_at, comment_id, source_id,
             source_type, contents, is_deleted, is_banned)
            VALUES (?, ?, ?, ?, ?, ?, ?, false, false)
        """)

        # Lookups
        self._get_by_id = self.session.prepare(f"""
            SELECT * FROM {ks}.comments_by_id WHERE comment_id = ?
        """)

        # Content revisions
        self._append_content_by_id = self.session.prepare(f"""
            UPDATE {ks}.comments_by_id SET contents = contents + ?
            WHERE comment_id = ?
            IF is_deleted = false
        """)
        self._append_content = self.session.prepare(f"""
            UPDATE {ks}.comments SET contents = contents + ?
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            AND created_at = ? AND comment_id = ?
        """)
        self._append_content_by_resource = self.session.prepare(f"""
            UPDATE {ks}.comments_by_resource SET contents = contents + ?
            WHERE resource_id = ? AND resource_type = ? AND created_at = ? AND comment_id = ?
        """)

        # Soft delete
        self._delete_by_id = self.session.prepare(f"""
            UPDATE {ks}.comments_by_id SET is_deleted = true
            WHERE comment_id = ?
            IF is_deleted = false
        """)
        self._delete_comment = self.session.prepare(f"""
            UPDATE {ks}.comments SET is_deleted = true
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            AND created_at = ? AND comment_id = ?
        """)
        self._delete_by_resource = self.session.prepare(f"""
            UPDATE {ks}.comments_by_resource SET is_deleted = true
            WHERE resource_id = ? AND resource_type = ? AND created_at = ? AND comment_id = ?
        """)

        # Ban
        self._ban_by_id = self.session.prepare(f"""
            UPDATE {ks}.comments_by_id SET is_banned = true
            WHERE comment_id = ?
            IF EXISTS
        """)
        self._ban_comment = self.session.prepare(f"""
            UPDATE {ks}.comments SET is_banned = true
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            AND created_at = ? AND comment_id = ?
        """)
        self._ban_by_resource = self.session.prepare(f"""
            UPDATE {ks}.comments_by_resource SET is_banned = true
            WHERE resource_id = ? AND resource_type = ? AND created_at = ? AND comment_id = ?
        """)

        # Pagination
        self._page_by_resource = self.session.prepare(f"""
            SELECT * FROM {ks}.comments_by_resource
            WHERE resource_id = ? AND resource_type = ?
            LIMIT ?
        """)
        self._page_by_resource_after = self.session.prepare(f"""
            SELECT * FROM {ks}.comments_by_resource
            WHERE resource_id = ? AND resource_type = ?
            AND (created_at, comment_id) > (?, ?)
            LIMIT ?
        """)
        self._page_by_source = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE source_id = ? AND resource_type = ? AND resource_id IN ?
            LIMIT ?
        """)
        self._page_by_source_after = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            AND (created_at, comment_id) > (?, ?)
            LIMIT ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_by_id(self, comment_id: str) -> Comment | None:
        """Fetch a comment, including soft-deleted ones."""
        rows = await self.session.aexecute(self._get_by_id, [comment_id])
        return Comment.from_row(rows[0]) if rows else None

    def resource_index(self, parent: ResourceRef) -> CassandraIndexQuery[Comment]:
        """Non-deleted comments under a resource, oldest first."""
        partition = [parent.resource_id, parent.resource_type.value]
        return CassandraIndexQuery(
            self.session,
            first_statement=self._page_by_resource,
            first_params=partition,
            resume_statement=self._page_by_resource_after,
            resume_params=partition,
            resume_columns=("created_at", "comment_id"),
            partition=parent.to_dict(),
            row_mapper=Comment.from_row,
            key_of=Comment.resource_key,
            row_filter=_is_active,
        )

    def source_index(
        self,
        source_id: str,
        resource_type: ResourceType,
        resource_ids: Sequence[str],
    ) -> "SourceCommentIndex":
        """Non-deleted comments of one source on a set of resources."""
        wanted = sorted(set(resource_ids))
        prefix = [source_id, resource_type.value]
        return SourceCommentIndex(
            self.session,
            resource_ids=wanted,
            first_statement=self._page_by_source,
            first_params=[*prefix, wanted],
            resume_statement=self._page_by_source_after,
            resume_params=prefix,
            resume_columns=("created_at", "comment_id"),
            partition={"source_id": source_id, "resource_type": resource_type.value},
            row_mapper=Comment.from_row,
            key_of=Comment.source_key,
            row_filter=_is_active,
        )

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def insert(self, comment: Comment) -> None:
        """Write a new comment; the authoritative row first.

        Raises:
            CreationError: If the comment id is already taken.
        """
        contents = [content.to_map() for content in comment.contents]
        rows = await self.session.aexecute(
            self._insert_by_id,
            [
                comment.comment_id,
                comment.source_id,
                comment.source_type.value,
                comment.resource_id,
                comment.resource_type.value,
                contents,
                comment.created_at,
            ],
        )
        if not (rows and rows[0][0]):
            raise CreationError("Failed to create comment")
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.source_id,
                comment.resource_type.value,
                comment.resource_id,
                comment.created_at,
                comment.comment_id,
                comment.source_type.value,
                contents,
            ],
        )
        await self.session.aexecute(
            self._insert_by_resource,
            [
                comment.resource_id,
                comment.resource_type.value,
                comment.created_at,
                comment.comment_id,
                comment.source_id,
                comment.source_type.value,
                contents,
            ],
        )

    async def append_content(self, comment: Comment, content: ContentRevision) -> bool:
        """Append a content revision.

        Returns:
            False if the comment was deleted in the meantime.
        """
        revision = [content.to_map()]
        rows = await self.session.aexecute(
            self._append_content_by_id, [revision, comment.comment_id]
        )
        if not (rows and rows[0][0]):
            return False
        await self.session.aexecute(
            self._append_content, [revision, *self._source_key(comment)]
        )
        await self.session.aexecute(
            self._append_content_by_resource, [revision, *self._resource_key(comment)]
        )
        return True

    async def mark_deleted(self, comment: Comment) -> bool:
        """Soft-delete a comment.

        Returns:
            True only for the call that actually flipped the flag.
        """
        rows = await self.session.aexecute(self._delete_by_id, [comment.comment_id])
        if not (rows and rows[0][0]):
            return False
        await self.session.aexecute(self._delete_comment, self._source_key(comment))
        await self.session.aexecute(self._delete_by_resource, self._resource_key(comment))
        return True

    async def mark_banned(self, comment: Comment) -> None:
        await self.session.aexecute(self._ban_by_id, [comment.comment_id])
        await self.session.aexecute(self._ban_comment, self._source_key(comment))
        await self.session.aexecute(self._ban_by_resource, self._resource_key(comment))

    @staticmethod
    def _source_key(comment: Comment) -> list:
        return [
            comment.source_id,
            comment.resource_type.value,
            comment.resource_id,
            comment.created_at,
            comment.comment_id,
        ]

    @staticmethod
    def _resource_key(comment: Comment) -> list:
        return [
            comment.resource_id,
            comment.resource_type.value,
            comment.created_at,
            comment.comment_id,
        ]
