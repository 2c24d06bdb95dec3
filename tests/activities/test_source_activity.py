"""Tests for the viewer's source activity resolution."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.datastructures import State

from social.activities.source_activity import SourceActivityResolver
from social.reactions.models import ReactionType
from social.resources.models import ResourceType, Source


class TestResolveSourceActivity:
    """Tests for SourceActivityResolver.resolve."""

    @pytest.mark.asyncio
    async def test_empty_id_set_issues_no_queries(self) -> None:
        """Should return empty maps without querying for an empty id set."""
        reactions = Mock()
        reactions.list_for_source = AsyncMock()
        comments = Mock()
        resolver = SourceActivityResolver(reactions, comments)

        result = await resolver.resolve("u-1", [], ResourceType.POST)

        assert result.reactions == {}
        assert result.comments == {}
        reactions.list_for_source.assert_not_awaited()
        comments.source_index.assert_not_called()

    @pytest.mark.asyncio
    async def test_posts_get_reactions_and_latest_comment_texts(
        self, services: State, alice: Source, bob: Source
    ) -> None:
        """Should map each post to the viewer's reaction and latest comment texts."""
        # Arrange
        post_service = services.post_service
        first = await post_service.create_post(alice, "first")
        second = await post_service.create_post(alice, "second")
        untouched = await post_service.create_post(alice, "third")

        await services.reaction_manager.upsert_reaction(bob, first.ref, ReactionType.LIKE)
        comment = await services.comment_service.create_comment(bob, second.ref, "draft")
        await services.comment_service.update_comment(bob, comment.comment_id, "edited")

        # Act
        result = await post_service.source_activity.resolve(
            bob.source_id,
            [first.post_id, second.post_id, untouched.post_id],
            ResourceType.POST,
        )

        # Assert
        assert set(result.reactions) == {first.post_id}
        assert result.reactions[first.post_id].reaction is ReactionType.LIKE
        assert [c.text for c in result.comments[second.post_id]] == ["edited"]
        assert untouched.post_id not in result.comments

    @pytest.mark.asyncio
    async def test_comment_resolution_is_capped(
        self, services: State, alice: Source, bob: Source
    ) -> None:
        """Should stop at the configured number of comments."""
        post = await services.post_service.create_post(alice, "busy")
        for index in range(8):
            await services.comment_service.create_comment(bob, post.ref, f"c{index}")

        result = await services.post_service.source_activity.resolve(
            bob.source_id, [post.post_id], ResourceType.POST
        )

        assert len(result.comments[post.post_id]) == 5

    @pytest.mark.asyncio
    async def test_other_sources_comments_are_not_included(
        self, services: State, alice: Source, bob: Source
    ) -> None:
        """Should ignore comments written by anyone but the viewer."""
        post = await services.post_service.create_post(alice, "quiet")
        await services.comment_service.create_comment(alice, post.ref, "author reply")

        result = await services.post_service.source_activity.resolve(
            bob.source_id, [post.post_id], ResourceType.POST
        )

        assert result.comments == {}


class TestPostsWithActivity:
    """Tests for PostService.get_posts_with_activity."""

    @pytest.mark.asyncio
    async def test_posts_with_activity_are_decorated(
        self, services: State, alice: Source, bob: Source
    ) -> None:
        """Should attach counters and, for a known viewer, its own activity."""
        # Arrange
        post = await services.post_service.create_post(alice, "decorate me")
        await services.reaction_manager.upsert_reaction(bob, post.ref, ReactionType.SUPPORT)
        await services.comment_service.create_comment(bob, post.ref, "nice")

        # Act
        views = await services.post_service.get_posts_with_activity(
            bob, [post.post_id, "missing"]
        )
        anonymous = await services.post_service.get_posts_with_activity(None, [post.post_id])

        # Assert
        assert len(views) == 1
        view = views[0]
        assert view.activity.reactions_count.support == 1
        assert view.activity.comments_count == 1
        assert view.source_reaction.reaction is ReactionType.SUPPORT
        assert [c.text for c in view.source_comments] == ["nice"]

        assert anonymous[0].source_reaction is None
        assert anonymous[0].source_comments == []
