"""Comment entities and Cassandra tables.

A comment targets a parent resource (a post, or another comment for
replies) and is itself a resource with its own activity record.

Tables:
- comments: partitioned by author; feeds the viewer's own comments on a
  page of posts
- comments_by_resource: the thread under a parent, oldest first
- comments_by_id: O(1) lookup; every write is a lightweight transaction so
  that deletion happens exactly once

Deletion is soft: ``is_deleted`` is set on every copy and listings skip the
row.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from social.core.clock import as_utc, to_epoch_ms, utc_now
from social.resources.models import (
    ContentRevision,
    LifecycleState,
    ResourceRef,
    ResourceType,
    Source,
    SourceType,
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    source_id TEXT,
    resource_type TEXT,
    resource_id TEXT,
    created_at TIMESTAMP,
    comment_id TEXT,
    source_type TEXT,
    contents LIST<FROZEN<MAP<TEXT, TEXT>>>,
    is_deleted BOOLEAN,
    is_banned BOOLEAN,
    PRIMARY KEY ((source_id), resource_type, resource_id, created_at, comment_id)
) WITH CLUSTERING ORDER BY (resource_type ASC, resource_id ASC, created_at ASC, comment_id ASC)
"""

COMMENTS_BY_RESOURCE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_resource (
    resource_id TEXT,
    resource_type TEXT,
    created_at TIMESTAMP,
    comment_id TEXT,
    source_id TEXT,
    source_type TEXT,
    contents LIST<FROZEN<MAP<TEXT, TEXT>>>,
    is_deleted BOOLEAN,
    is_banned BOOLEAN,
    PRIMARY KEY ((resource_id, resource_type), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id TEXT PRIMARY KEY,
    source_id TEXT,
    source_type TEXT,
    resource_id TEXT,
    resource_type TEXT,
    contents LIST<FROZEN<MAP<TEXT, TEXT>>>,
    is_deleted BOOLEAN,
    is_banned BOOLEAN,
    created_at TIMESTAMP
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_TABLE_CQL,
    COMMENTS_BY_RESOURCE_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """A comment on a post or on another comment."""

    comment_id: str
    source_id: str
    source_type: SourceType
    resource_id: str
    resource_type: ResourceType
    created_at: datetime
    contents: list[ContentRevision] = field(default_factory=list)
    state: LifecycleState = LifecycleState.ACTIVE
    is_banned: bool = False

    @property
    def ref(self) -> ResourceRef:
        """The comment as a resource."""
        return ResourceRef(self.comment_id, ResourceType.COMMENT)

    @property
    def parent(self) -> ResourceRef:
        """The resource this comment replies to."""
        return ResourceRef(self.resource_id, self.resource_type)

    @property
    def is_deleted(self) -> bool:
        return self.state is LifecycleState.DELETED

    @property
    def latest_content(self) -> ContentRevision | None:
        return self.contents[-1] if self.contents else None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from any of the three comment tables."""
        return cls(
            comment_id=row.comment_id,
            source_id=row.source_id,
            source_type=SourceType(row.source_type or SourceType.USER.value),
            resource_id=row.resource_id,
            resource_type=ResourceType(row.resource_type),
            created_at=as_utc(row.created_at),
            contents=[ContentRevision.from_map(item) for item in row.contents or []],
            state=LifecycleState.DELETED if row.is_deleted else LifecycleState.ACTIVE,
            is_banned=row.is_banned or False,
        )

    def resource_key(self) -> dict[str, Any]:
        """Cursor key within comments_by_resource."""
        return {
            "resource_id": self.resource_id,
            "resource_type": self.resource_type.value,
            "created_at": to_epoch_ms(self.created_at),
            "comment_id": self.comment_id,
        }

    def source_key(self) -> dict[str, Any]:
        """Cursor key within the author-partitioned comments table."""
        return {
            "source_id": self.source_id,
            "resource_type": self.resource_type.value,
            "resource_id": self.resource_id,
            "created_at": to_epoch_ms(self.created_at),
            "comment_id": self.comment_id,
        }


def create_comment(
    source: Source,
    parent: ResourceRef,
    text: str,
    media_urls: list[str] | None = None,
) -> Comment:
    """Factory for a new comment."""
    now = utc_now()
    return Comment(
        comment_id=str(uuid4()),
        source_id=source.source_id,
        source_type=source.source_type,
        resource_id=parent.resource_id,
        resource_type=parent.resource_type,
        created_at=now,
        contents=[ContentRevision(text=text, created_at=now, media_urls=list(media_urls or []))],
    )
