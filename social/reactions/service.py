"""Reaction manager.

Keeps at most one reaction per (source, resource) and moves the resource's
reaction counters by exactly the difference each call makes:

- no reaction yet: create it, +1 on its type
- same type again: no-op
- different type: switch it, -1 on the old type and +1 on the new one
- removal: delete it, -1 on its type

Every write is conditional on the reaction the call read. A counter delta
is applied only by the call whose write was applied; a call that lost a
race re-reads and continues from what the winner left behind.
"""

import structlog

from social.activities.models import ActivityDelta
from social.activities.service import ActivityService
from social.core.errors import ConsistencyFaultError, NotFoundError
from social.core.pagination import DEFAULT_BATCH_SIZE, Page, paginate
from social.resources.models import ResourceRef, Source, require_source

from .models import Reaction, ReactionType, create_reaction, parse_reaction_type
from .store import ReactionStore


logger = structlog.get_logger(__name__)


class ReactionManager:
    """Reaction lifecycle and its effect on activity counters."""

    def __init__(
        self,
        store: ReactionStore,
        activities: ActivityService,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_attempts: int = 3,
    ):
        self.store = store
        self.activities = activities
        self.batch_size = batch_size
        self.max_attempts = max_attempts

    async def upsert_reaction(
        self,
        source: Source | None,
        ref: ResourceRef,
        reaction_type: ReactionType | str,
    ) -> Reaction:
        """Set the source's reaction on a resource.

        Raises:
            AuthorizationError: If no source is given.
            InputError: If the reaction type is unknown.
            NotFoundError: If the resource has no activity record.
            ConsistencyFaultError: If the counters disagree with the reactions,
                or every attempt lost a concurrent write.
        """
        source = require_source(source)
        reaction_type = parse_reaction_type(reaction_type)
        await self.activities.get_activity(ref)

        for attempt in range(1, self.max_attempts + 1):
            existing = await self.store.get_for_source(source.source_id, ref)

            if existing is None:
                reaction = create_reaction(source, ref, reaction_type)
                if await self.store.insert(reaction):
                    await self.activities.apply_delta(
                        ref, ActivityDelta.reaction_added(reaction_type)
                    )
                    logger.info(
                        "reaction_created",
                        reaction_id=reaction.reaction_id,
                        resource_id=ref.resource_id,
                        resource_type=ref.resource_type.value,
                        reaction=reaction_type.value,
                    )
                    return reaction

            elif existing.reaction is reaction_type:
                return existing

            else:
                updated = await self.store.update_type(existing, reaction_type)
                if updated is not None:
                    await self.activities.apply_delta(
                        ref, ActivityDelta.reaction_switched(existing.reaction, reaction_type)
                    )
                    logger.info(
                        "reaction_switched",
                        reaction_id=existing.reaction_id,
                        resource_id=ref.resource_id,
                        resource_type=ref.resource_type.value,
                        old_reaction=existing.reaction.value,
                        reaction=reaction_type.value,
                    )
                    return updated

            logger.info(
                "reaction_write_conflict",
                source_id=source.source_id,
                resource_id=ref.resource_id,
                attempt=attempt,
            )

        raise ConsistencyFaultError("Reaction could not be recorded, please retry")

    async def remove_reaction(self, source: Source | None, ref: ResourceRef) -> Reaction | None:
        """Remove the source's reaction, if any.

        Returns:
            The removed reaction, or None when there was nothing to remove.
        """
        source = require_source(source)
        await self.activities.get_activity(ref)

        for attempt in range(1, self.max_attempts + 1):
            existing = await self.store.get_for_source(source.source_id, ref)
            if existing is None:
                return None

            if await self.store.delete(existing):
                await self.activities.apply_delta(
                    ref, ActivityDelta.reaction_removed(existing.reaction)
                )
                logger.info(
                    "reaction_removed",
                    reaction_id=existing.reaction_id,
                    resource_id=ref.resource_id,
                    resource_type=ref.resource_type.value,
                    reaction=existing.reaction.value,
                )
                return existing

            logger.info(
                "reaction_write_conflict",
                source_id=source.source_id,
                resource_id=ref.resource_id,
                attempt=attempt,
            )

        raise ConsistencyFaultError("Reaction could not be removed, please retry")

    async def get_reaction(self, reaction_id: str) -> Reaction:
        reaction = await self.store.get_by_id(reaction_id)
        if reaction is None:
            raise NotFoundError("Reaction not found")
        return reaction

    async def list_reactions(
        self, ref: ResourceRef, limit: int, cursor: str | None = None
    ) -> Page[Reaction]:
        """Reactions on a resource, oldest first."""
        return await paginate(self.store.resource_index(ref), limit, cursor, self.batch_size)
