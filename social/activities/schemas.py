"""Pydantic schemas for activity endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from social.resources.models import ResourceType, SourceType

from .models import Activity, BanInfo, ReactionCounts, ReportInfo


# ==============================================================================
# Request Schemas
# ==============================================================================


class ReportRequest(BaseModel):
    """Request to report a resource."""

    reason: str = Field(..., min_length=1, max_length=1000)


class BanRequest(BaseModel):
    """Request to ban a resource."""

    reason: str = Field(..., min_length=1, max_length=1000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class ReactionCountsResponse(BaseModel):
    """Reaction counts per type."""

    like: int = 0
    support: int = 0
    love: int = 0
    laugh: int = 0
    sad: int = 0
    total: int = 0

    @classmethod
    def from_counts(cls, counts: ReactionCounts) -> "ReactionCountsResponse":
        return cls(**counts.to_dict(), total=counts.total)


class ReportSourceResponse(BaseModel):
    source_id: str
    source_type: SourceType
    report_reason: str


class ReportInfoResponse(BaseModel):
    report_count: int = 0
    sources: list[ReportSourceResponse] = Field(default_factory=list)

    @classmethod
    def from_report_info(cls, info: ReportInfo) -> "ReportInfoResponse":
        return cls(
            report_count=info.report_count,
            sources=[
                ReportSourceResponse(
                    source_id=report.source_id,
                    source_type=report.source_type,
                    report_reason=report.report_reason,
                )
                for report in info.sources
            ],
        )


class BanInfoResponse(BaseModel):
    source_id: str
    source_type: SourceType
    ban_reason: str
    banned_at: datetime

    @classmethod
    def from_ban_info(cls, info: BanInfo) -> "BanInfoResponse":
        return cls(
            source_id=info.source_id,
            source_type=info.source_type,
            ban_reason=info.ban_reason,
            banned_at=info.banned_at,
        )


class ActivityResponse(BaseModel):
    """Activity record of a resource."""

    resource_id: str
    resource_type: ResourceType
    reactions_count: ReactionCountsResponse
    comments_count: int = 0
    report_count: int = 0
    is_banned: bool = False
    created_at: datetime

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            resource_id=activity.resource_id,
            resource_type=activity.resource_type,
            reactions_count=ReactionCountsResponse.from_counts(activity.reactions_count),
            comments_count=activity.comments_count,
            report_count=activity.report_info.report_count,
            is_banned=activity.is_banned,
            created_at=activity.created_at,
        )
