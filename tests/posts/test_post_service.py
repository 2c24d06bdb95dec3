"""Tests for the post service and store."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from cassandra.cluster import Session
from fastapi.datastructures import State

from social.core.errors import AuthorizationError, CreationError, NotFoundError
from social.posts.models import Post, create_post
from social.posts.store import PostStore
from social.reactions.models import ReactionType
from social.resources.models import Source


@pytest_asyncio.fixture
async def post(services: State, alice: Source) -> Post:
    """A post by alice."""
    return await services.post_service.create_post(alice, "first words")


@pytest.fixture
def mock_session() -> Mock:
    """Mock Cassandra session preparing statements as their CQL text."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: cql)
    session.aexecute = AsyncMock(return_value=[(True,)])
    return session


class TestCreatePost:
    """Tests for create_post."""

    @pytest.mark.asyncio
    async def test_post_starts_with_zeroed_activity(
        self, services: State, post: Post
    ) -> None:
        """Should create the activity record together with the post."""
        activity = await services.activity_service.get_activity(post.ref)

        assert activity.comments_count == 0
        assert activity.reactions_count.total == 0

    @pytest.mark.asyncio
    async def test_failed_insert_creates_no_activity(
        self, services: State, stores: SimpleNamespace, alice: Source
    ) -> None:
        """Should propagate CreationError before any activity is written."""
        stores.posts.insert = AsyncMock(side_effect=CreationError("Failed to create post"))

        with pytest.raises(CreationError):
            await services.post_service.create_post(alice, "doomed")

        assert stores.activities.activities == {}


class TestDeletePost:
    """Tests for delete_post."""

    @pytest.mark.asyncio
    async def test_author_deletes_post(
        self, services: State, stores: SimpleNamespace, post: Post, alice: Source
    ) -> None:
        """Should remove the post so later reads are not found."""
        await services.post_service.delete_post(alice, post.post_id)

        assert post.post_id not in stores.posts.posts
        with pytest.raises(NotFoundError):
            await services.post_service.get_post(post.post_id)

    @pytest.mark.asyncio
    async def test_non_author_cannot_delete(
        self, services: State, stores: SimpleNamespace, post: Post, bob: Source
    ) -> None:
        """Should raise AuthorizationError and keep the post."""
        with pytest.raises(AuthorizationError):
            await services.post_service.delete_post(bob, post.post_id)

        assert post.post_id in stores.posts.posts

    @pytest.mark.asyncio
    async def test_anonymous_cannot_delete(
        self, services: State, post: Post
    ) -> None:
        """Should require an acting source."""
        with pytest.raises(AuthorizationError):
            await services.post_service.delete_post(None, post.post_id)

    @pytest.mark.asyncio
    async def test_missing_post_is_not_found(
        self, services: State, alice: Source
    ) -> None:
        """Should raise NotFoundError for an unknown post."""
        with pytest.raises(NotFoundError):
            await services.post_service.delete_post(alice, "missing")

    @pytest.mark.asyncio
    async def test_activity_is_left_in_place(
        self, services: State, post: Post, alice: Source, bob: Source
    ) -> None:
        """Should keep the activity record and its counters after the post is gone."""
        # Arrange
        await services.reaction_manager.upsert_reaction(bob, post.ref, ReactionType.LIKE)

        # Act
        await services.post_service.delete_post(alice, post.post_id)

        # Assert
        activity = await services.activity_service.get_activity(post.ref, fresh=True)
        assert activity.reactions_count.like == 1
        views = await services.post_service.get_posts_with_activity(bob, [post.post_id])
        assert views == []


class TestPostStore:
    """Tests for the Cassandra post store."""

    @pytest.mark.asyncio
    async def test_insert_not_applied_raises_creation_error(self, mock_session: Mock) -> None:
        """Should raise CreationError when the post id is already taken."""
        mock_session.aexecute.return_value = [(False,)]
        store = PostStore(mock_session, "social")

        with pytest.raises(CreationError):
            await store.insert(create_post(Source("u-1"), "twice"))

        assert "IF NOT EXISTS" in mock_session.aexecute.await_args.args[0]

    @pytest.mark.asyncio
    async def test_delete_reports_missing_row(self, mock_session: Mock) -> None:
        """Should return False when the row was already gone."""
        mock_session.aexecute.return_value = [(False,)]
        store = PostStore(mock_session, "social")

        deleted = await store.delete(create_post(Source("u-1"), "gone"))

        statement, params = mock_session.aexecute.await_args.args
        assert deleted is False
        assert "IF EXISTS" in statement
        assert len(params) == 1
