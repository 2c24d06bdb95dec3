"""Shared fixtures: in-memory stores wired into the real service graph."""

from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.datastructures import State
from fastapi.testclient import TestClient

from social.config import Settings
from social.main import create_app, wire_services
from social.resources.models import ResourceRef, ResourceType, Source, SourceType
from tests.fakes import (
    FakeActivityStore,
    FakeCommentStore,
    FakePostStore,
    FakeReactionStore,
)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests (no .env influence on engine knobs)."""
    return Settings(
        environment="testing",
        pagination_batch_size=20,
        source_activity_comments_limit=5,
        counter_max_attempts=3,
        max_comment_depth=None,
    )


@pytest.fixture
def stores() -> SimpleNamespace:
    """In-memory stores, exposed so tests can inspect persisted state."""
    return SimpleNamespace(
        activities=FakeActivityStore(),
        reactions=FakeReactionStore(),
        comments=FakeCommentStore(),
        posts=FakePostStore(),
    )


@pytest.fixture
def app(stores: SimpleNamespace, test_settings: Settings) -> FastAPI:
    """Application with services over in-memory stores; lifespan is not run."""
    application = create_app()
    wire_services(
        application,
        activity_store=stores.activities,
        reaction_store=stores.reactions,
        comment_store=stores.comments,
        post_store=stores.posts,
        settings=test_settings,
    )
    return application


@pytest.fixture
def services(app: FastAPI) -> State:
    """The wired services (``app.state``)."""
    return app.state


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """HTTP client over the wired app."""
    return TestClient(app)


@pytest.fixture
def alice() -> Source:
    """Author of the test posts."""
    return Source("u-alice", SourceType.USER)


@pytest.fixture
def bob() -> Source:
    """A second user."""
    return Source("u-bob", SourceType.USER)


@pytest.fixture
def post_ref() -> ResourceRef:
    """Reference of a post with no stored row."""
    return ResourceRef("post-1", ResourceType.POST)
