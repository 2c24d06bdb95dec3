"""Activity record and its Cassandra tables.

Every post and comment owns exactly one activity record holding its
reaction counts per type, its comment count, the sources that reported it
and, once moderated, its ban info.

Counters live in a dedicated COUNTER table so that every delta is applied
atomically by the store. Report info and ban info live in a regular table;
report info is written with a lightweight transaction on ``report_count``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from social.core.clock import as_utc, from_epoch_ms, to_epoch_ms, utc_now
from social.reactions.models import ReactionType
from social.resources.models import ResourceRef, ResourceType, Source, SourceType


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ACTIVITIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.activities (
    resource_id TEXT,
    resource_type TEXT,
    report_count INT,
    report_sources LIST<FROZEN<MAP<TEXT, TEXT>>>,
    ban_info MAP<TEXT, TEXT>,
    created_at TIMESTAMP,
    PRIMARY KEY ((resource_id, resource_type))
)
"""

ACTIVITY_COUNTERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.activity_counters (
    resource_id TEXT,
    resource_type TEXT,
    like_count COUNTER,
    support_count COUNTER,
    love_count COUNTER,
    laugh_count COUNTER,
    sad_count COUNTER,
    comments_count COUNTER,
    PRIMARY KEY ((resource_id, resource_type))
)
"""

ACTIVITIES_TABLES_CQL = [
    ACTIVITIES_TABLE_CQL,
    ACTIVITY_COUNTERS_TABLE_CQL,
]


# ==============================================================================
# Value Objects
# ==============================================================================


@dataclass(frozen=True)
class ReactionCounts:
    """Reaction count per reaction type."""

    like: int = 0
    support: int = 0
    love: int = 0
    laugh: int = 0
    sad: int = 0

    def get(self, reaction: ReactionType) -> int:
        match reaction:
            case ReactionType.LIKE:
                return self.like
            case ReactionType.SUPPORT:
                return self.support
            case ReactionType.LOVE:
                return self.love
            case ReactionType.LAUGH:
                return self.laugh
            case ReactionType.SAD:
                return self.sad

    def plus(self, reaction: ReactionType, amount: int) -> "ReactionCounts":
        """Copy with one type's count shifted by ``amount``."""
        match reaction:
            case ReactionType.LIKE:
                return replace(self, like=self.like + amount)
            case ReactionType.SUPPORT:
                return replace(self, support=self.support + amount)
            case ReactionType.LOVE:
                return replace(self, love=self.love + amount)
            case ReactionType.LAUGH:
                return replace(self, laugh=self.laugh + amount)
            case ReactionType.SAD:
                return replace(self, sad=self.sad + amount)

    def items(self) -> list[tuple[ReactionType, int]]:
        return [(reaction, self.get(reaction)) for reaction in ReactionType]

    @property
    def total(self) -> int:
        return self.like + self.support + self.love + self.laugh + self.sad

    def to_dict(self) -> dict[str, int]:
        return {reaction.value: count for reaction, count in self.items()}

    @classmethod
    def from_dict(cls, data: dict[str, int]) -> "ReactionCounts":
        counts = cls()
        for reaction in ReactionType:
            counts = counts.plus(reaction, int(data.get(reaction.value, 0)))
        return counts


@dataclass(frozen=True)
class ActivityDelta:
    """Signed change to an activity's counters."""

    reactions: ReactionCounts = field(default_factory=ReactionCounts)
    comments: int = 0

    @classmethod
    def reaction_added(cls, reaction: ReactionType) -> "ActivityDelta":
        return cls(reactions=ReactionCounts().plus(reaction, 1))

    @classmethod
    def reaction_removed(cls, reaction: ReactionType) -> "ActivityDelta":
        return cls(reactions=ReactionCounts().plus(reaction, -1))

    @classmethod
    def reaction_switched(cls, old: ReactionType, new: ReactionType) -> "ActivityDelta":
        return cls(reactions=ReactionCounts().plus(old, -1).plus(new, 1))

    @property
    def is_empty(self) -> bool:
        return self.comments == 0 and all(count == 0 for _, count in self.reactions.items())

    def to_dict(self) -> dict[str, Any]:
        return {"reactions": self.reactions.to_dict(), "comments": self.comments}


@dataclass(frozen=True)
class ReportSource:
    """One report filed against a resource."""

    source_id: str
    source_type: SourceType
    report_reason: str

    def to_map(self) -> dict[str, str]:
        return {
            "source_id": self.source_id,
            "source_type": self.source_type.value,
            "report_reason": self.report_reason,
        }

    @classmethod
    def from_map(cls, data: dict[str, str]) -> "ReportSource":
        return cls(
            source_id=data["source_id"],
            source_type=SourceType(data.get("source_type", SourceType.USER.value)),
            report_reason=data.get("report_reason", ""),
        )


@dataclass(frozen=True)
class ReportInfo:
    """Reports filed against a resource; ``report_count == len(sources)``."""

    report_count: int = 0
    sources: tuple[ReportSource, ...] = ()

    def has_source(self, source_id: str) -> bool:
        return any(report.source_id == source_id for report in self.sources)

    def with_report(self, report: ReportSource) -> "ReportInfo":
        return ReportInfo(
            report_count=self.report_count + 1,
            sources=(*self.sources, report),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_count": self.report_count,
            "sources": [report.to_map() for report in self.sources],
        }


@dataclass(frozen=True)
class BanInfo:
    """Who banned a resource and why."""

    source_id: str
    source_type: SourceType
    ban_reason: str
    banned_at: datetime

    def to_map(self) -> dict[str, str]:
        return {
            "source_id": self.source_id,
            "source_type": self.source_type.value,
            "ban_reason": self.ban_reason,
            "banned_at": str(to_epoch_ms(self.banned_at)),
        }

    @classmethod
    def from_map(cls, data: dict[str, str]) -> "BanInfo":
        return cls(
            source_id=data["source_id"],
            source_type=SourceType(data.get("source_type", SourceType.USER.value)),
            ban_reason=data.get("ban_reason", ""),
            banned_at=from_epoch_ms(int(data.get("banned_at", "0"))),
        )

    @classmethod
    def by(cls, moderator: Source, reason: str) -> "BanInfo":
        return cls(
            source_id=moderator.source_id,
            source_type=moderator.source_type,
            ban_reason=reason,
            banned_at=utc_now(),
        )


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Activity:
    """Aggregated activity of one resource."""

    resource_id: str
    resource_type: ResourceType
    created_at: datetime
    reactions_count: ReactionCounts = field(default_factory=ReactionCounts)
    comments_count: int = 0
    report_info: ReportInfo = field(default_factory=ReportInfo)
    ban_info: BanInfo | None = None

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.resource_id, self.resource_type)

    @property
    def is_banned(self) -> bool:
        return self.ban_info is not None

    def apply(self, delta: ActivityDelta) -> "Activity":
        """Copy with ``delta`` added to the counters."""
        counts = self.reactions_count
        for reaction, amount in delta.reactions.items():
            counts = counts.plus(reaction, amount)
        return replace(
            self,
            reactions_count=counts,
            comments_count=self.comments_count + delta.comments,
        )

    @classmethod
    def from_rows(cls, row: Any, counter_row: Any | None) -> "Activity":
        """Combine an ``activities`` row with its ``activity_counters`` row.

        A counter row is absent until the first non-zero delta; absent
        counter columns read as zero.
        """
        reactions = ReactionCounts()
        comments = 0
        if counter_row is not None:
            reactions = ReactionCounts(
                like=counter_row.like_count or 0,
                support=counter_row.support_count or 0,
                love=counter_row.love_count or 0,
                laugh=counter_row.laugh_count or 0,
                sad=counter_row.sad_count or 0,
            )
            comments = counter_row.comments_count or 0

        sources = tuple(ReportSource.from_map(item) for item in row.report_sources or [])
        return cls(
            resource_id=row.resource_id,
            resource_type=ResourceType(row.resource_type),
            created_at=as_utc(row.created_at),
            reactions_count=reactions,
            comments_count=comments,
            report_info=ReportInfo(report_count=row.report_count or 0, sources=sources),
            ban_info=BanInfo.from_map(row.ban_info) if row.ban_info else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form, also used for the read cache."""
        return {
            "resource_id": self.resource_id,
            "resource_type": self.resource_type.value,
            "created_at": to_epoch_ms(self.created_at),
            "reactions_count": self.reactions_count.to_dict(),
            "comments_count": self.comments_count,
            "report_info": self.report_info.to_dict(),
            "ban_info": self.ban_info.to_map() if self.ban_info else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        report_info = data.get("report_info") or {}
        return cls(
            resource_id=data["resource_id"],
            resource_type=ResourceType(data["resource_type"]),
            created_at=from_epoch_ms(data["created_at"]),
            reactions_count=ReactionCounts.from_dict(data.get("reactions_count") or {}),
            comments_count=int(data.get("comments_count", 0)),
            report_info=ReportInfo(
                report_count=int(report_info.get("report_count", 0)),
                sources=tuple(
                    ReportSource.from_map(item) for item in report_info.get("sources", [])
                ),
            ),
            ban_info=BanInfo.from_map(data["ban_info"]) if data.get("ban_info") else None,
        )


def create_activity(ref: ResourceRef) -> Activity:
    """Factory for a fresh, all-zero activity record."""
    return Activity(
        resource_id=ref.resource_id,
        resource_type=ref.resource_type,
        created_at=utc_now(),
    )