"""Social Activity API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from social.activities.counters import CommentCounter, ModerationCounter
from social.activities.moderation import ModerationAuthorizer, allow_all
from social.activities.router import router as activities_router
from social.activities.service import ActivityService
from social.activities.source_activity import SourceActivityResolver
from social.activities.store import ActivityStore
from social.comments.router import router as comments_router
from social.comments.service import CommentService
from social.comments.store import CommentStore
from social.config import Settings, get_settings
from social.core.context import get_request_id
from social.core.database import init_async_cassandra, shutdown_async_cassandra
from social.core.errors import ConsistencyFaultError, SocialError
from social.core.logging import configure_structlog, get_logger
from social.core.middleware import RequestContextMiddleware
from social.core.redis import init_redis, shutdown_redis
from social.health.router import router as health_router
from social.posts.router import router as posts_router
from social.posts.service import PostService
from social.posts.store import PostStore
from social.reactions.router import router as reactions_router
from social.reactions.service import ReactionManager
from social.reactions.store import ReactionStore
from social.resources.service import ResourceResolver


if TYPE_CHECKING:
    from redis.asyncio import Redis


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    activity_service: ActivityService | None = None
    reaction_manager: ReactionManager | None = None
    comment_service: CommentService | None = None
    post_service: PostService | None = None
    moderation_counter: ModerationCounter | None = None
    resource_resolver: ResourceResolver | None = None


app_state = AppState()


def wire_services(
    app: FastAPI,
    *,
    activity_store: ActivityStore,
    reaction_store: ReactionStore,
    comment_store: CommentStore,
    post_store: PostStore,
    settings: Settings,
    redis: "Redis | None" = None,
    authorizer: ModerationAuthorizer = allow_all,
) -> AppState:
    """Build the service graph over the given stores and expose it on ``app.state``."""
    activities = ActivityService(
        activity_store,
        redis=redis,
        cache_ttl_seconds=settings.activity_cache_ttl_seconds,
    )
    resources = ResourceResolver(
        post_store,
        comment_store,
        max_comment_depth=settings.max_comment_depth,
    )
    source_activity = SourceActivityResolver(
        reaction_store,
        comment_store,
        comments_limit=settings.source_activity_comments_limit,
        batch_size=settings.pagination_batch_size,
    )

    app_state.activity_service = activities
    app_state.resource_resolver = resources
    app_state.reaction_manager = ReactionManager(
        reaction_store,
        activities,
        batch_size=settings.pagination_batch_size,
        max_attempts=settings.counter_max_attempts,
    )
    app_state.comment_service = CommentService(
        comment_store,
        resources,
        activities,
        CommentCounter(activities),
        source_activity,
        batch_size=settings.pagination_batch_size,
    )
    app_state.post_service = PostService(post_store, activities, source_activity)
    app_state.moderation_counter = ModerationCounter(
        activities,
        resources,
        authorizer=authorizer,
        redis=redis,
        max_attempts=settings.counter_max_attempts,
        reports_per_hour=settings.reports_per_hour,
    )

    # Also set on app.state for dependency injection via request.app.state
    app.state.activity_service = app_state.activity_service
    app.state.resource_resolver = app_state.resource_resolver
    app.state.reaction_manager = app_state.reaction_manager
    app.state.comment_service = app_state.comment_service
    app.state.post_service = app_state.post_service
    app.state.moderation_counter = app_state.moderation_counter
    return app_state


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - activity cache and report limits disabled",
        )

    try:
        session = await init_async_cassandra()
        app_state.cassandra_session = session
        keyspace = settings.cassandra_keyspace
        wire_services(
            app,
            activity_store=ActivityStore(session, keyspace),
            reaction_store=ReactionStore(session, keyspace),
            comment_store=CommentStore(session, keyspace),
            post_store=PostStore(session, keyspace),
            settings=settings,
            redis=redis_client,
        )
        logger.info("services_initialized", redis_enabled=redis_client is not None)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are logged by the handlers below, never returned
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Social activity aggregation API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(SocialError)
    async def social_error_handler(request: Request, exc: SocialError) -> ORJSONResponse:
        """Map domain errors to their status codes."""
        log = logger.error if isinstance(exc, ConsistencyFaultError) else logger.info
        log(
            "domain_error",
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.message,
                "code": exc.code,
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    app.include_router(reactions_router)
    app.include_router(activities_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Social Activity API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "social.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
    )
