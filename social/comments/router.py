"""Comment API endpoints.

Provides routes for:
- Comment create, read, edit and soft delete
- Listing the comments of a post or comment
"""

from fastapi import APIRouter, Response, status

from social.resources.dependencies import (
    CurrentSource,
    OptionalSource,
    PageParamsDep,
)
from social.resources.models import ResourceRef, ResourceType

from .dependencies import CommentServiceDep
from .schemas import (
    CommentListResponse,
    CommentResponse,
    CreateCommentRequest,
    UpdateCommentRequest,
)


router = APIRouter(prefix="/v1/comments", tags=["comments"])


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    source: CurrentSource,
) -> CommentResponse:
    """Comment on a post, or reply to a comment."""
    comment = await comment_service.create_comment(
        source,
        ResourceRef(data.resource_id, data.resource_type),
        data.text,
        data.media_urls,
    )
    return CommentResponse.from_comment(comment)


@router.get(
    "/resources/{resource_type}/{resource_id}",
    response_model=CommentListResponse,
    summary="List comments of a resource",
)
async def list_comments(
    resource_type: ResourceType,
    resource_id: str,
    comment_service: CommentServiceDep,
    page_params: PageParamsDep,
    viewer: OptionalSource,
) -> CommentListResponse:
    """Oldest first; deleted comments are left out."""
    page = await comment_service.list_comments(
        ResourceRef(resource_id, resource_type),
        page_params.limit,
        page_params.cursor,
        viewer=viewer,
    )
    return CommentListResponse.from_page(page.items, page.next_cursor, page.source_activity)


@router.get(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Get comment",
)
async def get_comment(comment_id: str, comment_service: CommentServiceDep) -> CommentResponse:
    comment = await comment_service.get_comment(comment_id)
    return CommentResponse.from_comment(comment)


@router.patch(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def update_comment(
    comment_id: str,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    source: CurrentSource,
) -> CommentResponse:
    """Add a content revision. Author only."""
    comment = await comment_service.update_comment(source, comment_id, data.text, data.media_urls)
    return CommentResponse.from_comment(comment)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: str,
    comment_service: CommentServiceDep,
    source: CurrentSource,
) -> Response:
    """Soft delete. Allowed for the author and the author of the parent resource."""
    await comment_service.delete_comment(source, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
