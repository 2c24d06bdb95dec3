"""Post entities and Cassandra tables."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from social.core.clock import as_utc, utc_now
from social.resources.models import (
    ContentRevision,
    ResourceRef,
    ResourceType,
    Source,
    SourceType,
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id TEXT PRIMARY KEY,
    source_id TEXT,
    source_type TEXT,
    contents LIST<FROZEN<MAP<TEXT, TEXT>>>,
    visible_only_to_connections BOOLEAN,
    comments_only_by_connections BOOLEAN,
    is_banned BOOLEAN,
    created_at TIMESTAMP
)
"""

POSTS_TABLES_CQL = [
    POSTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """A post with its content revisions, oldest first."""

    post_id: str
    source_id: str
    source_type: SourceType
    created_at: datetime
    contents: list[ContentRevision] = field(default_factory=list)
    visible_only_to_connections: bool = False
    comments_only_by_connections: bool = False
    is_banned: bool = False

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.post_id, ResourceType.POST)

    @property
    def latest_content(self) -> ContentRevision | None:
        return self.contents[-1] if self.contents else None

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            post_id=row.post_id,
            source_id=row.source_id,
            source_type=SourceType(row.source_type or SourceType.USER.value),
            created_at=as_utc(row.created_at),
            contents=[ContentRevision.from_map(item) for item in row.contents or []],
            visible_only_to_connections=row.visible_only_to_connections or False,
            comments_only_by_connections=row.comments_only_by_connections or False,
            is_banned=row.is_banned or False,
        )


def create_post(
    source: Source,
    text: str,
    media_urls: list[str] | None = None,
    hashtags: list[str] | None = None,
    visible_only_to_connections: bool = False,
    comments_only_by_connections: bool = False,
) -> Post:
    """Factory for a new post."""
    now = utc_now()
    return Post(
        post_id=str(uuid4()),
        source_id=source.source_id,
        source_type=source.source_type,
        created_at=now,
        contents=[
            ContentRevision(
                text=text,
                created_at=now,
                media_urls=list(media_urls or []),
                hashtags=list(hashtags or []),
            )
        ],
        visible_only_to_connections=visible_only_to_connections,
        comments_only_by_connections=comments_only_by_connections,
    )
