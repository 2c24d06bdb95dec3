"""Post service layer."""

from dataclasses import dataclass, field

import structlog

from social.activities.models import Activity
from social.activities.service import ActivityService
from social.activities.source_activity import SourceActivityResolver
from social.core.clock import utc_now
from social.core.errors import AuthorizationError, NotFoundError
from social.reactions.models import Reaction
from social.resources.models import ContentRevision, ResourceType, Source, require_source

from .models import Post, create_post
from .store import PostStore


logger = structlog.get_logger(__name__)


@dataclass
class PostView:
    """A post with its activity and the viewer's own activity on it."""

    post: Post
    activity: Activity | None
    source_reaction: Reaction | None = None
    source_comments: list[ContentRevision] = field(default_factory=list)


class PostService:
    """Post lifecycle on top of the activity engine."""

    def __init__(
        self,
        store: PostStore,
        activities: ActivityService,
        source_activity: SourceActivityResolver,
    ):
        self.store = store
        self.activities = activities
        self.source_activity = source_activity

    async def create_post(
        self,
        source: Source | None,
        text: str,
        media_urls: list[str] | None = None,
        hashtags: list[str] | None = None,
        visible_only_to_connections: bool = False,
        comments_only_by_connections: bool = False,
    ) -> Post:
        """Create a post and its zeroed activity record."""
        source = require_source(source)
        post = create_post(
            source,
            text,
            media_urls=media_urls,
            hashtags=hashtags,
            visible_only_to_connections=visible_only_to_connections,
            comments_only_by_connections=comments_only_by_connections,
        )
        await self.store.insert(post)
        await self.activities.create_activity(post.ref)

        logger.info("post_created", post_id=post.post_id, source_id=source.source_id)
        return post

    async def get_post(self, post_id: str) -> Post:
        post = await self.store.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def update_post(
        self,
        source: Source | None,
        post_id: str,
        text: str,
        media_urls: list[str] | None = None,
        hashtags: list[str] | None = None,
    ) -> Post:
        """Append a new content revision; author only."""
        source = require_source(source)
        post = await self.get_post(post_id)
        if post.source_id != source.source_id:
            raise AuthorizationError("Only the author can edit this post")

        revision = ContentRevision(
            text=text,
            created_at=utc_now(),
            media_urls=list(media_urls or []),
            hashtags=list(hashtags or []),
        )
        await self.store.append_content(post, revision)
        post.contents.append(revision)

        logger.info("post_updated", post_id=post_id, revisions=len(post.contents))
        return post

    async def delete_post(self, source: Source | None, post_id: str) -> None:
        """Delete a post; author only.

        The post's activity, reactions and comments are left in place.
        """
        source = require_source(source)
        post = await self.get_post(post_id)
        if post.source_id != source.source_id:
            raise AuthorizationError("Only the author can delete this post")

        if not await self.store.delete(post):
            raise NotFoundError("Post not found")

        logger.info("post_deleted", post_id=post_id, source_id=source.source_id)

    async def get_posts_with_activity(
        self, viewer: Source | None, post_ids: list[str]
    ) -> list[PostView]:
        """Posts in the requested order, decorated with activity.

        Unknown ids are skipped.
        """
        ids = list(dict.fromkeys(post_ids))
        posts = await self.store.get_many(ids)
        found = [post_id for post_id in ids if post_id in posts]
        activities = await self.activities.get_activities(ResourceType.POST, found)

        views = [
            PostView(post=posts[post_id], activity=activities.get(post_id)) for post_id in found
        ]
        if viewer is None or not found:
            return views

        source_activity = await self.source_activity.resolve(
            viewer.source_id, found, ResourceType.POST
        )
        for view in views:
            view.source_reaction = source_activity.reactions.get(view.post.post_id)
            view.source_comments = source_activity.comments.get(view.post.post_id, [])
        return views
