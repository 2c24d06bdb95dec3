"""FastAPI dependencies for source identity and resource resolution.

The upstream gateway authenticates the caller and forwards its identity in
the ``X-Source-Id`` / ``X-Source-Type`` headers.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, Request, status

from social.config import get_settings

from .models import Source, parse_source_type, require_source
from .service import ResourceResolver


async def get_optional_source(
    x_source_id: Annotated[str | None, Header()] = None,
    x_source_type: Annotated[str | None, Header()] = None,
) -> Source | None:
    """Caller identity, if the request carries one."""
    if not x_source_id:
        return None
    return Source(
        source_id=x_source_id,
        source_type=parse_source_type(x_source_type or "user"),
    )


async def get_current_source(
    source: Annotated[Source | None, Depends(get_optional_source)],
) -> Source:
    """Caller identity; raises AuthorizationError when absent."""
    return require_source(source)


async def get_resource_resolver(request: Request) -> ResourceResolver:
    """Get resource resolver from app state."""
    resolver = getattr(request.app.state, "resource_resolver", None)
    if resolver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Resource storage not available",
        )
    return resolver


@dataclass
class PageParams:
    limit: int
    cursor: str | None = None


async def get_page_params(
    limit: Annotated[int | None, Query(ge=1)] = None,
    cursor: Annotated[str | None, Query(max_length=2048)] = None,
) -> PageParams:
    """Page size (defaulted and capped by settings) and cursor."""
    settings = get_settings()
    limit = min(limit or settings.pagination_default_limit, settings.pagination_max_limit)
    return PageParams(limit=limit, cursor=cursor or None)


CurrentSource = Annotated[Source, Depends(get_current_source)]
OptionalSource = Annotated[Source | None, Depends(get_optional_source)]
ResourceResolverDep = Annotated[ResourceResolver, Depends(get_resource_resolver)]
PageParamsDep = Annotated[PageParams, Depends(get_page_params)]
