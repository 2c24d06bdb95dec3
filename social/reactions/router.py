"""Reaction API endpoints."""

from fastapi import APIRouter, Response, status

from social.resources.dependencies import CurrentSource, PageParamsDep, ResourceResolverDep
from social.resources.models import ResourceRef, ResourceType

from .dependencies import ReactionManagerDep
from .schemas import ReactionListResponse, ReactionResponse, UpsertReactionRequest


router = APIRouter(prefix="/v1/reactions", tags=["reactions"])


@router.put(
    "",
    response_model=ReactionResponse,
    summary="Set reaction",
)
async def upsert_reaction(
    data: UpsertReactionRequest,
    manager: ReactionManagerDep,
    resources: ResourceResolverDep,
    source: CurrentSource,
) -> ReactionResponse:
    """Create, keep or switch the caller's reaction on a resource."""
    ref = ResourceRef(data.resource_id, data.resource_type)
    await resources.resolve(ref)
    reaction = await manager.upsert_reaction(source, ref, data.reaction)
    return ReactionResponse.from_reaction(reaction)


@router.delete(
    "/{resource_type}/{resource_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove reaction",
)
async def remove_reaction(
    resource_type: ResourceType,
    resource_id: str,
    manager: ReactionManagerDep,
    source: CurrentSource,
) -> Response:
    """Remove the caller's reaction; succeeds when there is none."""
    await manager.remove_reaction(source, ResourceRef(resource_id, resource_type))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/resources/{resource_type}/{resource_id}",
    response_model=ReactionListResponse,
    summary="List reactions of a resource",
)
async def list_reactions(
    resource_type: ResourceType,
    resource_id: str,
    manager: ReactionManagerDep,
    page_params: PageParamsDep,
) -> ReactionListResponse:
    page = await manager.list_reactions(
        ResourceRef(resource_id, resource_type), page_params.limit, page_params.cursor
    )
    return ReactionListResponse(
        items=[ReactionResponse.from_reaction(reaction) for reaction in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get(
    "/{reaction_id}",
    response_model=ReactionResponse,
    summary="Get reaction",
)
async def get_reaction(reaction_id: str, manager: ReactionManagerDep) -> ReactionResponse:
    reaction = await manager.get_reaction(reaction_id)
    return ReactionResponse.from_reaction(reaction)
