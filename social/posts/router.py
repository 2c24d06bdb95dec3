"""Post API endpoints."""

from fastapi import APIRouter, Response, status

from social.resources.dependencies import CurrentSource, OptionalSource

from .dependencies import PostServiceDep
from .schemas import (
    CreatePostRequest,
    PostBatchRequest,
    PostBatchResponse,
    PostResponse,
    PostWithActivityResponse,
    UpdatePostRequest,
)


router = APIRouter(prefix="/v1/posts", tags=["posts"])


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    data: CreatePostRequest,
    post_service: PostServiceDep,
    source: CurrentSource,
) -> PostResponse:
    post = await post_service.create_post(
        source,
        data.text,
        media_urls=data.media_urls,
        hashtags=data.hashtags,
        visible_only_to_connections=data.visible_only_to_connections,
        comments_only_by_connections=data.comments_only_by_connections,
    )
    return PostResponse.from_post(post)


@router.post(
    "/batch",
    response_model=PostBatchResponse,
    summary="Get posts with activity",
)
async def get_posts_with_activity(
    data: PostBatchRequest,
    post_service: PostServiceDep,
    viewer: OptionalSource,
) -> PostBatchResponse:
    """Posts with their counters and, for an identified caller, its own reactions and comments."""
    views = await post_service.get_posts_with_activity(viewer, data.post_ids)
    return PostBatchResponse(items=[PostWithActivityResponse.from_view(view) for view in views])


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    summary="Get post",
)
async def get_post(post_id: str, post_service: PostServiceDep) -> PostResponse:
    post = await post_service.get_post(post_id)
    return PostResponse.from_post(post)


@router.patch(
    "/{post_id}",
    response_model=PostResponse,
    summary="Edit post",
)
async def update_post(
    post_id: str,
    data: UpdatePostRequest,
    post_service: PostServiceDep,
    source: CurrentSource,
) -> PostResponse:
    """Add a content revision. Author only."""
    post = await post_service.update_post(
        source, post_id, data.text, media_urls=data.media_urls, hashtags=data.hashtags
    )
    return PostResponse.from_post(post)


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete post",
)
async def delete_post(
    post_id: str,
    post_service: PostServiceDep,
    source: CurrentSource,
) -> Response:
    """Remove a post. Author only."""
    await post_service.delete_post(source, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
