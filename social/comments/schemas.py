"""Pydantic schemas for comment endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from social.activities.source_activity import SourceActivity
from social.reactions.models import ReactionType
from social.resources.models import LifecycleState, ResourceType, SourceType
from social.resources.schemas import ContentRequest, ContentRevisionResponse

from .models import Comment


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(ContentRequest):
    """Comment on a post or reply to a comment."""

    resource_id: str = Field(..., min_length=1, max_length=64)
    resource_type: ResourceType


class UpdateCommentRequest(ContentRequest):
    """New revision of a comment."""


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(BaseModel):
    """A single comment with its latest content."""

    id: str
    source_id: str
    source_type: SourceType
    resource_id: str
    resource_type: ResourceType
    content: ContentRevisionResponse | None = None
    revisions: int = 0
    state: LifecycleState = LifecycleState.ACTIVE
    is_banned: bool = False
    source_reaction: ReactionType | None = None
    created_at: datetime

    @classmethod
    def from_comment(
        cls, comment: Comment, source_reaction: ReactionType | None = None
    ) -> "CommentResponse":
        latest = comment.latest_content
        return cls(
            id=comment.comment_id,
            source_id=comment.source_id,
            source_type=comment.source_type,
            resource_id=comment.resource_id,
            resource_type=comment.resource_type,
            content=ContentRevisionResponse.from_revision(latest) if latest else None,
            revisions=len(comment.contents),
            state=comment.state,
            is_banned=comment.is_banned,
            source_reaction=source_reaction,
            created_at=comment.created_at,
        )


class CommentListResponse(BaseModel):
    """Cursor-paginated comments of a resource."""

    items: list[CommentResponse] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    @classmethod
    def from_page(
        cls,
        comments: list[Comment],
        next_cursor: str | None,
        source_activity: SourceActivity,
    ) -> "CommentListResponse":
        items = []
        for comment in comments:
            reaction = source_activity.reactions.get(comment.comment_id)
            items.append(
                CommentResponse.from_comment(
                    comment, reaction.reaction if reaction else None
                )
            )
        return cls(items=items, next_cursor=next_cursor, has_more=next_cursor is not None)
