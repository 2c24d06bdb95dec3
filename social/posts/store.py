"""Cassandra access for posts."""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from social.core.errors import CreationError
from social.resources.models import ContentRevision

from .models import Post


if TYPE_CHECKING:
    from cassandra.cluster import Session


class PostStore:
    """Post persistence."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        self._insert_post = self.session.prepare(f"""
            INSERT INTO {ks}.posts
            (post_id, source_id, source_type, contents, visible_only_to_connections,
             comments_only_by_connections, is_banned, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._get_post = self.session.prepare(f"""
            SELECT * FROM {ks}.posts WHERE post_id = ?
        """)
        self._get_posts = self.session.prepare(f"""
            SELECT * FROM {ks}.posts WHERE post_id IN ?
        """)
        self._append_content = self.session.prepare(f"""
            UPDATE {ks}.posts SET contents = contents + ? WHERE post_id = ?
        """)
        self._set_banned = self.session.prepare(f"""
            UPDATE {ks}.posts SET is_banned = true WHERE post_id = ?
        """)
        self._delete_post = self.session.prepare(f"""
            DELETE FROM {ks}.posts WHERE post_id = ? IF EXISTS
        """)

    async def insert(self, post: Post) -> None:
        """Write a new post.

        Raises:
            CreationError: If the post id is already taken.
        """
        rows = await self.session.aexecute(
            self._insert_post,
            [
                post.post_id,
                post.source_id,
                post.source_type.value,
                [content.to_map() for content in post.contents],
                post.visible_only_to_connections,
                post.comments_only_by_connections,
                post.is_banned,
                post.created_at,
            ],
        )
        if not (rows and rows[0][0]):
            raise CreationError("Failed to create post")

    async def get_by_id(self, post_id: str) -> Post | None:
        rows = await self.session.aexecute(self._get_post, [post_id])
        return Post.from_row(rows[0]) if rows else None

    async def get_many(self, post_ids: Sequence[str]) -> dict[str, Post]:
        """Posts keyed by id; unknown ids are left out."""
        if not post_ids:
            return {}
        rows = await self.session.aexecute(self._get_posts, [list(post_ids)])
        return {row.post_id: Post.from_row(row) for row in rows}

    async def append_content(self, post: Post, content: ContentRevision) -> None:
        await self.session.aexecute(self._append_content, [[content.to_map()], post.post_id])

    async def mark_banned(self, post: Post) -> None:
        await self.session.aexecute(self._set_banned, [post.post_id])

    async def delete(self, post: Post) -> bool:
        """Remove a post row.

        Returns:
            False if it was already gone.
        """
        rows = await self.session.aexecute(self._delete_post, [post.post_id])
        return bool(rows and rows[0][0])
