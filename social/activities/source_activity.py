"""The viewing source's own reactions and comments on a set of resources.

Feeds the "you reacted / you commented" decoration of post and comment
listings. Reactions are resolved for every resource type; comments only
for posts, since a reply thread already shows the viewer's replies.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from social.comments.store import CommentStore
from social.core.pagination import DEFAULT_BATCH_SIZE, paginate
from social.reactions.models import Reaction
from social.reactions.store import ReactionStore
from social.resources.models import ContentRevision, ResourceType


logger = structlog.get_logger(__name__)


@dataclass
class SourceActivity:
    """Viewer activity keyed by resource id."""

    reactions: dict[str, Reaction] = field(default_factory=dict)
    comments: dict[str, list[ContentRevision]] = field(default_factory=dict)


class SourceActivityResolver:
    """Collects a viewer's reactions and latest comment texts."""

    def __init__(
        self,
        reactions: ReactionStore,
        comments: CommentStore,
        comments_limit: int = 5,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.reactions = reactions
        self.comments = comments
        self.comments_limit = comments_limit
        self.batch_size = batch_size

    async def resolve(
        self,
        viewer_source_id: str,
        resource_ids: Iterable[str],
        resource_type: ResourceType,
    ) -> SourceActivity:
        ids = list(dict.fromkeys(resource_ids))
        if not viewer_source_id or not ids:
            return SourceActivity()

        reactions = await self.reactions.list_for_source(viewer_source_id, resource_type, ids)
        activity = SourceActivity(reactions={r.resource_id: r for r in reactions})

        if resource_type is ResourceType.POST:
            page = await paginate(
                self.comments.source_index(viewer_source_id, resource_type, ids),
                self.comments_limit,
                batch_size=self.batch_size,
            )
            for comment in page.items:
                if comment.latest_content is not None:
                    activity.comments.setdefault(comment.resource_id, []).append(
                        comment.latest_content
                    )

        logger.debug(
            "source_activity_resolved",
            source_id=viewer_source_id,
            resource_type=resource_type.value,
            resources=len(ids),
            reactions=len(activity.reactions),
            commented=len(activity.comments),
        )
        return activity
