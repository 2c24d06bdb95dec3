"""Identity and content types shared by posts, comments and activities.

A resource is anything that can carry an activity record: a post or a
comment. It is addressed by ``(resource_id, resource_type)``. A source is
the actor behind a request (a user or a company).
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from social.core.clock import from_epoch_ms, to_epoch_ms
from social.core.errors import AuthorizationError, InputError


class ResourceType(str, Enum):
    """Kinds of resources that carry activity."""

    POST = "post"
    COMMENT = "comment"


class SourceType(str, Enum):
    """Kinds of actors."""

    USER = "user"
    COMPANY = "company"


class LifecycleState(str, Enum):
    """Lifecycle of a soft-deletable resource."""

    ACTIVE = "active"
    DELETED = "deleted"


def parse_source_type(value: str | SourceType) -> SourceType:
    try:
        return SourceType(value)
    except ValueError as e:
        raise InputError("Source type is not valid") from e


@dataclass(frozen=True)
class ResourceRef:
    """Address of a resource."""

    resource_id: str
    resource_type: ResourceType

    def to_dict(self) -> dict[str, str]:
        return {"resource_id": self.resource_id, "resource_type": self.resource_type.value}


@dataclass(frozen=True)
class Source:
    """The actor performing an operation."""

    source_id: str
    source_type: SourceType = SourceType.USER


def require_source(source: Source | None) -> Source:
    """Reject mutations without an identified actor."""
    if source is None or not source.source_id:
        raise AuthorizationError("Source information is required")
    return source


# ==============================================================================
# Content Revisions
# ==============================================================================


@dataclass
class ContentRevision:
    """One revision of user-written content.

    Stored in Cassandra as ``FROZEN<MAP<TEXT, TEXT>>``: the timestamp as
    epoch milliseconds and the list fields as JSON arrays.
    """

    text: str
    created_at: datetime
    media_urls: list[str] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)

    def to_map(self) -> dict[str, str]:
        """Serialize for a CQL map column."""
        data = {
            "text": self.text,
            "created_at": str(to_epoch_ms(self.created_at)),
            "media_urls": json.dumps(self.media_urls),
        }
        if self.hashtags:
            data["hashtags"] = json.dumps(self.hashtags)
        return data

    @classmethod
    def from_map(cls, data: dict[str, str]) -> "ContentRevision":
        """Deserialize a CQL map column value."""
        return cls(
            text=data.get("text", ""),
            created_at=from_epoch_ms(int(data.get("created_at", "0"))),
            media_urls=json.loads(data.get("media_urls") or "[]"),
            hashtags=json.loads(data.get("hashtags") or "[]"),
        )
