"""FastAPI dependencies for reaction endpoints."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ReactionManager


async def get_reaction_manager(request: Request) -> ReactionManager:
    """Get reaction manager from app state."""
    manager = getattr(request.app.state, "reaction_manager", None)
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reaction service not available",
        )
    return manager


ReactionManagerDep = Annotated[ReactionManager, Depends(get_reaction_manager)]
