"""Pydantic schemas shared by the post, comment and reaction APIs."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .models import ContentRevision, ResourceType


MAX_TEXT_LENGTH = 10000
MAX_MEDIA_URLS = 10


class ContentRequest(BaseModel):
    """Text and media of a new content revision."""

    text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)
    media_urls: list[str] = Field(default_factory=list, max_length=MAX_MEDIA_URLS)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Strip whitespace and validate text."""
        v = v.strip()
        if not v:
            msg = "Text cannot be empty"
            raise ValueError(msg)
        return v


class ResourceRefSchema(BaseModel):
    resource_id: str = Field(..., min_length=1, max_length=64)
    resource_type: ResourceType


class ContentRevisionResponse(BaseModel):
    """One content revision."""

    text: str
    media_urls: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_revision(cls, revision: ContentRevision) -> "ContentRevisionResponse":
        return cls(
            text=revision.text,
            media_urls=revision.media_urls,
            hashtags=revision.hashtags,
            created_at=revision.created_at,
        )
