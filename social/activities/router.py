"""Activity API endpoints.

Provides routes for:
- Reading the activity record of a post or comment
- Reporting a resource
- Banning a resource
"""

from fastapi import APIRouter, status

from social.resources.dependencies import CurrentSource
from social.resources.models import ResourceRef, ResourceType

from .dependencies import ActivityServiceDep, ModerationCounterDep
from .schemas import (
    ActivityResponse,
    BanInfoResponse,
    BanRequest,
    ReportInfoResponse,
    ReportRequest,
)


router = APIRouter(prefix="/v1/activities", tags=["activities"])


@router.get(
    "/{resource_type}/{resource_id}",
    response_model=ActivityResponse,
    summary="Get activity of a resource",
)
async def get_activity(
    resource_type: ResourceType,
    resource_id: str,
    activity_service: ActivityServiceDep,
) -> ActivityResponse:
    activity = await activity_service.get_activity(ResourceRef(resource_id, resource_type))
    return ActivityResponse.from_activity(activity)


@router.post(
    "/{resource_type}/{resource_id}/reports",
    response_model=ReportInfoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report a resource",
)
async def report_resource(
    resource_type: ResourceType,
    resource_id: str,
    data: ReportRequest,
    moderation: ModerationCounterDep,
    source: CurrentSource,
) -> ReportInfoResponse:
    """Report a post or comment; a source can report a resource once."""
    report_info = await moderation.report_resource(
        source, ResourceRef(resource_id, resource_type), data.reason
    )
    return ReportInfoResponse.from_report_info(report_info)


@router.post(
    "/{resource_type}/{resource_id}/ban",
    response_model=BanInfoResponse,
    summary="Ban a resource",
)
async def ban_resource(
    resource_type: ResourceType,
    resource_id: str,
    data: BanRequest,
    moderation: ModerationCounterDep,
    source: CurrentSource,
) -> BanInfoResponse:
    """Ban a post or comment, subject to the installed moderation policy."""
    ban_info = await moderation.ban_resource(
        source, ResourceRef(resource_id, resource_type), data.reason
    )
    return BanInfoResponse.from_ban_info(ban_info)
