"""Activity service.

Owns every read and write of activity records. Counters only move through
``apply_delta``, which refuses deltas that would drive a counter below
zero: such a delta means the resource's reactions or comments disagree
with its counters, which is logged as a consistency fault and surfaced to
the caller instead of being clamped.

Reads are cached in Redis (when configured) under ``activity:{type}:{id}``.
Every mutation drops the cached copy and bumps ``activity:{type}:{id}:gen``.
A cached copy carries the generation read before its store read and is
only served while that generation is current, so a read that raced a
mutation never serves pre-mutation counters. The generation key lives as
long as the newest cached copy; a read slower than the cache TTL can
still outlive it.
"""

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from social.core.errors import ConsistencyFaultError, NotFoundError
from social.core.redis import activity_cache_key, activity_generation_key
from social.resources.models import ResourceRef, ResourceType

from .models import Activity, ActivityDelta, BanInfo, ReportInfo, create_activity
from .store import ActivityStore


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class ActivityService:
    """Activity records of posts and comments."""

    def __init__(
        self,
        store: ActivityStore,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = 300,
    ):
        self.store = store
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds

    async def create_activity(self, ref: ResourceRef) -> Activity:
        """Create the zeroed activity record of a newly created resource."""
        activity = create_activity(ref)
        await self.store.insert(activity)
        logger.info(
            "activity_created",
            resource_id=ref.resource_id,
            resource_type=ref.resource_type.value,
        )
        return activity

    async def get_activity(self, ref: ResourceRef, *, fresh: bool = False) -> Activity:
        """Fetch an activity record.

        Args:
            ref: Resource the record belongs to.
            fresh: Bypass the read cache.

        Raises:
            NotFoundError: If the resource has no activity record.
        """
        if not fresh:
            cached = await self._get_cached(ref)
            if cached is not None:
                return cached

        generation = await self._generation(ref)
        activity = await self.store.get(ref)
        if activity is None:
            raise NotFoundError("Activity not found for resource")

        await self._cache(activity, generation)
        return activity

    async def get_activities(
        self, resource_type: ResourceType, resource_ids: Iterable[str]
    ) -> dict[str, Activity]:
        """Activities of several resources; missing ones are left out."""
        ids = list(dict.fromkeys(resource_ids))
        return await self.store.get_many(resource_type, ids)

    async def apply_delta(self, ref: ResourceRef, delta: ActivityDelta) -> Activity:
        """Apply a signed counter delta.

        Returns:
            The activity as expected after the delta.

        Raises:
            NotFoundError: If the resource has no activity record.
            ConsistencyFaultError: If any counter would become negative.
        """
        activity = await self.get_activity(ref, fresh=True)
        if delta.is_empty:
            return activity

        expected = activity.apply(delta)
        negative = {
            reaction.value: count
            for reaction, count in expected.reactions_count.items()
            if count < 0
        }
        if expected.comments_count < 0:
            negative["comments"] = expected.comments_count
        if negative:
            logger.error(
                "activity_counter_underflow",
                resource_id=ref.resource_id,
                resource_type=ref.resource_type.value,
                delta=delta.to_dict(),
                counters=activity.reactions_count.to_dict(),
                comments_count=activity.comments_count,
                negative=negative,
            )
            raise ConsistencyFaultError()

        await self.store.add(ref, delta)
        await self.invalidate(ref)
        logger.info(
            "activity_counters_updated",
            resource_id=ref.resource_id,
            resource_type=ref.resource_type.value,
            delta=delta.to_dict(),
        )
        return expected

    async def replace_report_info(
        self, ref: ResourceRef, expected_count: int, report_info: ReportInfo
    ) -> bool:
        """Conditionally replace report info; see ``ActivityStore``."""
        applied = await self.store.compare_and_set_report_info(ref, expected_count, report_info)
        if applied:
            await self.invalidate(ref)
        return applied

    async def set_ban_info(self, ref: ResourceRef, ban_info: BanInfo) -> None:
        await self.store.set_ban_info(ref, ban_info)
        await self.invalidate(ref)

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def invalidate(self, ref: ResourceRef) -> None:
        """Drop the cached copy of an activity and retire its generation."""
        if not self.redis:
            return
        generation_key = activity_generation_key(ref.resource_type.value, ref.resource_id)
        await self.redis.incr(generation_key)
        await self.redis.expire(generation_key, self.cache_ttl_seconds)
        await self.redis.delete(activity_cache_key(ref.resource_type.value, ref.resource_id))

    async def _generation(self, ref: ResourceRef) -> str | None:
        if not self.redis:
            return None
        generation = await self.redis.get(
            activity_generation_key(ref.resource_type.value, ref.resource_id)
        )
        return str(generation or 0)

    async def _get_cached(self, ref: ResourceRef) -> Activity | None:
        if not self.redis:
            return None
        cached, generation = await self.redis.mget(
            activity_cache_key(ref.resource_type.value, ref.resource_id),
            activity_generation_key(ref.resource_type.value, ref.resource_id),
        )
        if not cached:
            return None
        payload = json.loads(cached)
        if payload.get("generation") != str(generation or 0):
            return None
        return Activity.from_dict(payload["activity"])

    async def _cache(self, activity: Activity, generation: str | None) -> None:
        if not self.redis:
            return
        ref = activity.ref
        await self.redis.setex(
            activity_cache_key(ref.resource_type.value, ref.resource_id),
            self.cache_ttl_seconds,
            json.dumps({"generation": generation, "activity": activity.to_dict()}),
        )
        # Keep the generation around at least as long as the cached copy
        await self.redis.expire(
            activity_generation_key(ref.resource_type.value, ref.resource_id),
            self.cache_ttl_seconds,
        )
