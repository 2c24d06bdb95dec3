"""Comment service layer.

Business logic for:
- Comment create / edit / soft delete, keeping the parent's comment count
- Per-comment activity records (comments can be reacted to and replied to)
- Thread listing with the viewer's own reactions
"""

from dataclasses import dataclass, field

import structlog

from social.activities.counters import CommentCounter
from social.activities.service import ActivityService
from social.activities.source_activity import SourceActivity, SourceActivityResolver
from social.core.clock import utc_now
from social.core.errors import AuthorizationError, NotFoundError
from social.core.pagination import DEFAULT_BATCH_SIZE, paginate
from social.resources.models import (
    ContentRevision,
    ResourceRef,
    ResourceType,
    Source,
    require_source,
)
from social.resources.service import ResourceResolver

from .models import Comment, create_comment
from .store import CommentStore


logger = structlog.get_logger(__name__)


@dataclass
class CommentPage:
    """A page of a thread, decorated with the viewer's activity."""

    items: list[Comment] = field(default_factory=list)
    next_cursor: str | None = None
    source_activity: SourceActivity = field(default_factory=SourceActivity)


class CommentService:
    """Comment lifecycle on top of the activity engine."""

    def __init__(
        self,
        store: CommentStore,
        resources: ResourceResolver,
        activities: ActivityService,
        counter: CommentCounter,
        source_activity: SourceActivityResolver,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.store = store
        self.resources = resources
        self.activities = activities
        self.counter = counter
        self.source_activity = source_activity
        self.batch_size = batch_size

    # ==========================================================================
    # Comment CRUD
    # ==========================================================================

    async def create_comment(
        self,
        source: Source | None,
        parent: ResourceRef,
        text: str,
        media_urls: list[str] | None = None,
    ) -> Comment:
        """Comment on a post or reply to a comment.

        Raises:
            AuthorizationError: If no source is given.
            NotFoundError: If the parent or its activity record is absent.
            InputError: If the reply chain would exceed the depth limit.
        """
        source = require_source(source)
        await self.resources.resolve(parent)
        await self.resources.check_comment_depth(parent)
        await self.activities.get_activity(parent)

        comment = create_comment(source, parent, text, media_urls)
        await self.store.insert(comment)
        await self.activities.create_activity(comment.ref)
        await self.counter.on_comment_created(parent)

        logger.info(
            "comment_created",
            comment_id=comment.comment_id,
            resource_id=parent.resource_id,
            resource_type=parent.resource_type.value,
        )
        return comment

    async def get_comment(self, comment_id: str) -> Comment:
        """Fetch a non-deleted comment."""
        comment = await self.store.get_by_id(comment_id)
        if comment is None or comment.is_deleted:
            raise NotFoundError("Comment not found")
        return comment

    async def update_comment(
        self,
        source: Source | None,
        comment_id: str,
        text: str,
        media_urls: list[str] | None = None,
    ) -> Comment:
        """Append a new content revision; author only."""
        source = require_source(source)
        comment = await self.get_comment(comment_id)
        if comment.source_id != source.source_id:
            raise AuthorizationError("Only the author can edit this comment")

        revision = ContentRevision(
            text=text, created_at=utc_now(), media_urls=list(media_urls or [])
        )
        if not await self.store.append_content(comment, revision):
            raise NotFoundError("Comment not found")

        comment.contents.append(revision)
        logger.info("comment_updated", comment_id=comment_id, revisions=len(comment.contents))
        return comment

    async def delete_comment(self, source: Source | None, comment_id: str) -> None:
        """Soft-delete a comment and decrement its parent's comment count.

        Allowed for the comment's author and for the author of the resource
        it replies to. Deleting an already deleted comment changes nothing.
        """
        source = require_source(source)
        comment = await self.store.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if comment.is_deleted:
            return

        if comment.source_id != source.source_id:
            parent = await self.resources.resolve(comment.parent, include_deleted=True)
            if parent.source_id != source.source_id:
                raise AuthorizationError("Not allowed to delete this comment")

        if not await self.store.mark_deleted(comment):
            logger.info("comment_already_deleted", comment_id=comment_id)
            return

        await self.counter.on_comment_deleted(comment.parent)
        await self.activities.invalidate(comment.ref)
        logger.info(
            "comment_deleted",
            comment_id=comment_id,
            resource_id=comment.resource_id,
            resource_type=comment.resource_type.value,
            deleted_by=source.source_id,
        )

    async def list_comments(
        self,
        parent: ResourceRef,
        limit: int,
        cursor: str | None = None,
        viewer: Source | None = None,
    ) -> CommentPage:
        """Non-deleted comments under a resource, oldest first."""
        page = await paginate(self.store.resource_index(parent), limit, cursor, self.batch_size)

        source_activity = SourceActivity()
        if viewer is not None and page.items:
            source_activity = await self.source_activity.resolve(
                viewer.source_id,
                [comment.comment_id for comment in page.items],
                ResourceType.COMMENT,
            )

        return CommentPage(
            items=page.items,
            next_cursor=page.next_cursor,
            source_activity=source_activity,
        )
