"""Counter components layered on ``ActivityService``.

- CommentCounter: keeps a parent's ``comments_count`` in step with its
  non-deleted comments
- ModerationCounter: records reports (at most one per source) and bans
"""

from typing import TYPE_CHECKING

import structlog

from social.core.errors import (
    AuthorizationError,
    ConsistencyFaultError,
    RateLimitExceededError,
    RedundantRequestError,
)
from social.core.redis import report_rate_key
from social.resources.models import ResourceRef, Source, require_source
from social.resources.service import ResourceResolver

from .models import ActivityDelta, BanInfo, ReportInfo, ReportSource
from .moderation import ModerationAction, ModerationAuthorizer, allow_all
from .service import ActivityService


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class CommentCounter:
    """Comment count maintenance of parent resources."""

    def __init__(self, activities: ActivityService):
        self.activities = activities

    async def on_comment_created(self, parent: ResourceRef) -> None:
        await self.activities.apply_delta(parent, ActivityDelta(comments=1))

    async def on_comment_deleted(self, parent: ResourceRef) -> None:
        await self.activities.apply_delta(parent, ActivityDelta(comments=-1))


class ModerationCounter:
    """Reports and bans of resources.

    Report info is updated with a compare-and-set on ``report_count``; a lost
    race re-reads and retries, up to ``max_attempts`` times.
    """

    def __init__(
        self,
        activities: ActivityService,
        resources: ResourceResolver,
        authorizer: ModerationAuthorizer = allow_all,
        redis: "Redis | None" = None,
        max_attempts: int = 3,
        reports_per_hour: int = 20,
    ):
        self.activities = activities
        self.resources = resources
        self.authorizer = authorizer
        self.redis = redis
        self.max_attempts = max_attempts
        self.reports_per_hour = reports_per_hour

    async def report_resource(self, reporter: Source, ref: ResourceRef, reason: str) -> ReportInfo:
        """File a report against a resource.

        Raises:
            AuthorizationError: If the reporter is missing or not allowed.
            NotFoundError: If the resource has no activity record.
            RedundantRequestError: If the reporter already reported it.
            RateLimitExceededError: If the reporter exceeded the hourly budget.
            ConsistencyFaultError: If every attempt lost a concurrent update.
        """
        reporter = require_source(reporter)
        await self._authorize(reporter, ref, ModerationAction.REPORT)
        await self._check_report_rate(reporter)

        report = ReportSource(
            source_id=reporter.source_id,
            source_type=reporter.source_type,
            report_reason=reason,
        )

        for attempt in range(1, self.max_attempts + 1):
            activity = await self.activities.get_activity(ref, fresh=True)
            current = activity.report_info
            if current.has_source(reporter.source_id):
                raise RedundantRequestError()

            updated = current.with_report(report)
            if await self.activities.replace_report_info(ref, current.report_count, updated):
                await self._count_report(reporter)
                logger.info(
                    "resource_reported",
                    resource_id=ref.resource_id,
                    resource_type=ref.resource_type.value,
                    source_id=reporter.source_id,
                    report_count=updated.report_count,
                )
                return updated

            logger.warning(
                "report_write_conflict",
                resource_id=ref.resource_id,
                resource_type=ref.resource_type.value,
                attempt=attempt,
            )

        logger.error(
            "report_retries_exhausted",
            resource_id=ref.resource_id,
            resource_type=ref.resource_type.value,
            attempts=self.max_attempts,
        )
        raise ConsistencyFaultError("Report could not be recorded, please retry")

    async def ban_resource(self, moderator: Source, ref: ResourceRef, reason: str) -> BanInfo:
        """Ban a resource: flag the resource, then record who banned it.

        Raises:
            AuthorizationError: If the moderator is missing or not allowed.
            NotFoundError: If the resource or its activity record is absent.
        """
        moderator = require_source(moderator)
        await self._authorize(moderator, ref, ModerationAction.BAN)
        await self.activities.get_activity(ref, fresh=True)

        await self.resources.mark_banned(ref)
        ban_info = BanInfo.by(moderator, reason)
        await self.activities.set_ban_info(ref, ban_info)

        logger.info(
            "resource_ban_recorded",
            resource_id=ref.resource_id,
            resource_type=ref.resource_type.value,
            source_id=moderator.source_id,
        )
        return ban_info

    async def _authorize(self, source: Source, ref: ResourceRef, action: ModerationAction) -> None:
        if not await self.authorizer(source, ref, action):
            logger.warning(
                "moderation_denied",
                action=action.value,
                source_id=source.source_id,
                resource_id=ref.resource_id,
            )
            raise AuthorizationError(f"Source is not allowed to {action.value} this resource")

    async def _check_report_rate(self, source: Source) -> None:
        if not self.redis:
            return
        count = await self.redis.get(report_rate_key(source.source_id))
        if count and int(count) >= self.reports_per_hour:
            raise RateLimitExceededError("Too many reports, try again later")

    async def _count_report(self, source: Source) -> None:
        if not self.redis:
            return
        key = report_rate_key(source.source_id)
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, 3600)
        await pipe.execute()
