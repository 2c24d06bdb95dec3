"""Authorization hook for moderation actions.

Reporting and banning are gated by a ``ModerationAuthorizer``: an async
callable deciding whether a source may perform an action on a resource.
The default admits every request and logs that no policy is installed;
deployments plug their own policy in at application startup.
"""

from collections.abc import Awaitable, Callable
from enum import Enum

import structlog

from social.resources.models import ResourceRef, Source


logger = structlog.get_logger(__name__)


class ModerationAction(str, Enum):
    """Moderation operations subject to authorization."""

    REPORT = "report"
    BAN = "ban"


ModerationAuthorizer = Callable[[Source, ResourceRef, ModerationAction], Awaitable[bool]]


async def allow_all(source: Source, ref: ResourceRef, action: ModerationAction) -> bool:
    """Default policy: no restriction."""
    logger.debug(
        "moderation_policy_open",
        action=action.value,
        source_id=source.source_id,
        resource_id=ref.resource_id,
        resource_type=ref.resource_type.value,
    )
    return True
