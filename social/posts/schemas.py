"""Pydantic schemas for post endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from social.activities.schemas import ActivityResponse
from social.reactions.models import ReactionType
from social.resources.models import SourceType
from social.resources.schemas import ContentRequest, ContentRevisionResponse

from .models import Post
from .service import PostView


MAX_HASHTAGS = 30
MAX_BATCH_POSTS = 50


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(ContentRequest):
    """Request to create a post."""

    hashtags: list[str] = Field(default_factory=list, max_length=MAX_HASHTAGS)
    visible_only_to_connections: bool = False
    comments_only_by_connections: bool = False


class UpdatePostRequest(ContentRequest):
    """New revision of a post."""

    hashtags: list[str] = Field(default_factory=list, max_length=MAX_HASHTAGS)


class PostBatchRequest(BaseModel):
    """Posts to fetch with their activity."""

    post_ids: list[str] = Field(..., min_length=1, max_length=MAX_BATCH_POSTS)


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    """A post with its latest content."""

    id: str
    source_id: str
    source_type: SourceType
    content: ContentRevisionResponse | None = None
    revisions: int = 0
    visible_only_to_connections: bool = False
    comments_only_by_connections: bool = False
    is_banned: bool = False
    created_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        latest = post.latest_content
        return cls(
            id=post.post_id,
            source_id=post.source_id,
            source_type=post.source_type,
            content=ContentRevisionResponse.from_revision(latest) if latest else None,
            revisions=len(post.contents),
            visible_only_to_connections=post.visible_only_to_connections,
            comments_only_by_connections=post.comments_only_by_connections,
            is_banned=post.is_banned,
            created_at=post.created_at,
        )


class PostWithActivityResponse(PostResponse):
    """A post decorated with its activity and the viewer's own activity."""

    activity: ActivityResponse | None = None
    source_reaction: ReactionType | None = None
    source_comments: list[ContentRevisionResponse] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: PostView) -> "PostWithActivityResponse":
        base = PostResponse.from_post(view.post)
        return cls(
            **base.model_dump(),
            activity=ActivityResponse.from_activity(view.activity) if view.activity else None,
            source_reaction=view.source_reaction.reaction if view.source_reaction else None,
            source_comments=[
                ContentRevisionResponse.from_revision(revision)
                for revision in view.source_comments
            ],
        )


class PostBatchResponse(BaseModel):
    items: list[PostWithActivityResponse] = Field(default_factory=list)
