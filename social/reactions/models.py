"""Reaction entities and Cassandra tables.

Tables:
- reactions: partitioned by source; the primary key is the
  one-reaction-per-source-per-resource constraint
- reactions_by_resource: resource-facing index, oldest first
- reactions_by_id: O(1) lookup
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from social.core.clock import as_utc, to_epoch_ms, utc_now
from social.core.errors import InputError
from social.resources.models import ResourceRef, ResourceType, Source, SourceType


class ReactionType(str, Enum):
    """Available reactions."""

    LIKE = "like"
    SUPPORT = "support"
    LOVE = "love"
    LAUGH = "laugh"
    SAD = "sad"


def parse_reaction_type(value: str | ReactionType) -> ReactionType:
    try:
        return ReactionType(value)
    except ValueError as e:
        raise InputError("Reaction type is not valid") from e


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

REACTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reactions (
    source_id TEXT,
    resource_type TEXT,
    resource_id TEXT,
    reaction_id TEXT,
    source_type TEXT,
    reaction TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((source_id), resource_type, resource_id)
)
"""

# Clustered by creation time; a type switch keeps created_at so it
# overwrites the same row
REACTIONS_BY_RESOURCE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reactions_by_resource (
    resource_id TEXT,
    resource_type TEXT,
    created_at TIMESTAMP,
    source_id TEXT,
    reaction_id TEXT,
    source_type TEXT,
    reaction TEXT,
    PRIMARY KEY ((resource_id, resource_type), created_at, source_id)
) WITH CLUSTERING ORDER BY (created_at ASC, source_id ASC)
"""

REACTIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reactions_by_id (
    reaction_id TEXT PRIMARY KEY,
    source_id TEXT,
    source_type TEXT,
    resource_id TEXT,
    resource_type TEXT,
    reaction TEXT,
    created_at TIMESTAMP
)
"""

REACTIONS_TABLES_CQL = [
    REACTIONS_TABLE_CQL,
    REACTIONS_BY_RESOURCE_TABLE_CQL,
    REACTIONS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Reaction:
    """A source's reaction to a resource."""

    reaction_id: str
    source_id: str
    source_type: SourceType
    resource_id: str
    resource_type: ResourceType
    reaction: ReactionType
    created_at: datetime

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.resource_id, self.resource_type)

    @classmethod
    def from_row(cls, row: Any) -> "Reaction":
        """Create Reaction from any of the three reaction tables."""
        return cls(
            reaction_id=row.reaction_id,
            source_id=row.source_id,
            source_type=SourceType(row.source_type or SourceType.USER.value),
            resource_id=row.resource_id,
            resource_type=ResourceType(row.resource_type),
            reaction=ReactionType(row.reaction),
            created_at=as_utc(row.created_at),
        )

    def index_key(self) -> dict[str, Any]:
        """Cursor key within reactions_by_resource."""
        return {
            "resource_id": self.resource_id,
            "resource_type": self.resource_type.value,
            "created_at": to_epoch_ms(self.created_at),
            "source_id": self.source_id,
        }


def create_reaction(source: Source, ref: ResourceRef, reaction: ReactionType) -> Reaction:
    """Factory for a new reaction."""
    return Reaction(
        reaction_id=str(uuid4()),
        source_id=source.source_id,
        source_type=source.source_type,
        resource_id=ref.resource_id,
        resource_type=ref.resource_type,
        reaction=reaction,
        created_at=utc_now(),
    )
