"""FastAPI dependencies for activity endpoints."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .counters import ModerationCounter
from .service import ActivityService


async def get_activity_service(request: Request) -> ActivityService:
    """Get activity service from app state."""
    service = getattr(request.app.state, "activity_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activity service not available",
        )
    return service


async def get_moderation_counter(request: Request) -> ModerationCounter:
    """Get moderation counter from app state."""
    counter = getattr(request.app.state, "moderation_counter", None)
    if counter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service not available",
        )
    return counter


ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]
ModerationCounterDep = Annotated[ModerationCounter, Depends(get_moderation_counter)]
