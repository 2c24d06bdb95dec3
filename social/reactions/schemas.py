"""Pydantic schemas for reaction endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from social.resources.models import ResourceType, SourceType
from social.resources.schemas import ResourceRefSchema

from .models import Reaction, ReactionType


class UpsertReactionRequest(ResourceRefSchema):
    """Set the caller's reaction on a resource."""

    reaction: ReactionType


class ReactionResponse(BaseModel):
    """A single reaction."""

    id: str
    source_id: str
    source_type: SourceType
    resource_id: str
    resource_type: ResourceType
    reaction: ReactionType
    created_at: datetime

    @classmethod
    def from_reaction(cls, reaction: Reaction) -> "ReactionResponse":
        return cls(
            id=reaction.reaction_id,
            source_id=reaction.source_id,
            source_type=reaction.source_type,
            resource_id=reaction.resource_id,
            resource_type=reaction.resource_type,
            reaction=reaction.reaction,
            created_at=reaction.created_at,
        )


class ReactionListResponse(BaseModel):
    """Cursor-paginated reactions."""

    items: list[ReactionResponse] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False
