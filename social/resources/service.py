"""Resolution of resource references to posts and comments."""

from typing import TypeAlias

import structlog

from social.comments.models import Comment
from social.comments.store import CommentStore
from social.core.errors import InputError, NotFoundError
from social.posts.models import Post
from social.posts.store import PostStore

from .models import ResourceRef, ResourceType


logger = structlog.get_logger(__name__)

Resource: TypeAlias = Post | Comment


class ResourceResolver:
    """Looks up the resource behind a ``ResourceRef``.

    Args:
        posts: Post store.
        comments: Comment store.
        max_comment_depth: Deepest allowed reply chain, counting a comment
            on a post as depth 1. None disables the check.
    """

    def __init__(
        self,
        posts: PostStore,
        comments: CommentStore,
        max_comment_depth: int | None = None,
    ):
        self.posts = posts
        self.comments = comments
        self.max_comment_depth = max_comment_depth

    async def resolve(self, ref: ResourceRef, *, include_deleted: bool = False) -> Resource:
        """Fetch the resource.

        Raises:
            NotFoundError: If it does not exist, or is a deleted comment and
                ``include_deleted`` is False.
        """
        match ref.resource_type:
            case ResourceType.POST:
                post = await self.posts.get_by_id(ref.resource_id)
                if post is None:
                    raise NotFoundError("Post not found")
                return post
            case ResourceType.COMMENT:
                comment = await self.comments.get_by_id(ref.resource_id)
                if comment is None or (comment.is_deleted and not include_deleted):
                    raise NotFoundError("Comment not found")
                return comment

    async def check_comment_depth(self, parent: ResourceRef) -> None:
        """Check the depth a new comment under ``parent`` would have.

        Raises:
            InputError: If it exceeds ``max_comment_depth``.
        """
        if self.max_comment_depth is None:
            return

        depth = 1
        current = parent
        while current.resource_type is ResourceType.COMMENT:
            depth += 1
            if depth > self.max_comment_depth:
                raise InputError("Depth exceeded for comment creation")
            ancestor = await self.comments.get_by_id(current.resource_id)
            if ancestor is None:
                break
            current = ancestor.parent

    async def mark_banned(self, ref: ResourceRef) -> Resource:
        """Set the ban flag on the resource itself."""
        resource = await self.resolve(ref, include_deleted=True)
        match resource:
            case Post():
                await self.posts.mark_banned(resource)
                resource.is_banned = True
            case Comment():
                await self.comments.mark_banned(resource)
                resource.is_banned = True
        logger.info(
            "resource_banned",
            resource_id=ref.resource_id,
            resource_type=ref.resource_type.value,
        )
        return resource