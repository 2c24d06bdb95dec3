"""Tests for reports, bans and the moderation authorization hook."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from fastapi.datastructures import State

from social.activities.counters import ModerationCounter
from social.activities.moderation import ModerationAction
from social.core.errors import (
    AuthorizationError,
    ConsistencyFaultError,
    NotFoundError,
    RateLimitExceededError,
    RedundantRequestError,
)
from social.posts.models import Post
from social.resources.models import ResourceRef, ResourceType, Source


@pytest_asyncio.fixture
async def post(services: State, alice: Source) -> Post:
    """A post by alice with a zeroed activity record."""
    return await services.post_service.create_post(alice, "report me")


async def report_count(services: State, ref: ResourceRef) -> int:
    activity = await services.activity_service.get_activity(ref, fresh=True)
    return activity.report_info.report_count


class TestReportResource:
    """Tests for report_resource."""

    @pytest.mark.asyncio
    async def test_duplicate_report_is_rejected(
        self, services: State, post: Post, bob: Source
    ) -> None:
        """Should reject a second report from the same source."""
        moderation = services.moderation_counter

        await moderation.report_resource(bob, post.ref, "spam")
        with pytest.raises(RedundantRequestError):
            await moderation.report_resource(bob, post.ref, "still spam")

        assert await report_count(services, post.ref) == 1

    @pytest.mark.asyncio
    async def test_reports_from_different_sources_accumulate(
        self, services: State, post: Post, alice: Source, bob: Source
    ) -> None:
        """Should count reports of different sources in arrival order."""
        await services.moderation_counter.report_resource(alice, post.ref, "spam")
        info = await services.moderation_counter.report_resource(bob, post.ref, "offensive")

        assert info.report_count == 2
        assert [report.source_id for report in info.sources] == [alice.source_id, bob.source_id]
        assert await report_count(services, post.ref) == 2

    @pytest.mark.asyncio
    async def test_report_retries_after_lost_race(
        self, services: State, stores: SimpleNamespace, post: Post, bob: Source
    ) -> None:
        """Should retry the compare-and-set when another report got in first."""
        stores.activities.cas_conflicts = 2

        info = await services.moderation_counter.report_resource(bob, post.ref, "spam")

        assert info.report_count == 1
        assert await report_count(services, post.ref) == 1

    @pytest.mark.asyncio
    async def test_report_gives_up_after_max_attempts(
        self, services: State, stores: SimpleNamespace, post: Post, bob: Source
    ) -> None:
        """Should raise ConsistencyFaultError once every attempt lost its race."""
        stores.activities.cas_conflicts = 3

        with pytest.raises(ConsistencyFaultError):
            await services.moderation_counter.report_resource(bob, post.ref, "spam")
        assert await report_count(services, post.ref) == 0

    @pytest.mark.asyncio
    async def test_report_on_missing_activity_is_not_found(
        self, services: State, bob: Source
    ) -> None:
        """Should raise NotFoundError for a resource without activity."""
        with pytest.raises(NotFoundError):
            await services.moderation_counter.report_resource(
                bob, ResourceRef("ghost", ResourceType.POST), "spam"
            )

    @pytest.mark.asyncio
    async def test_moderation_requires_source(
        self, services: State, post: Post
    ) -> None:
        """Should refuse an anonymous report."""
        with pytest.raises(AuthorizationError):
            await services.moderation_counter.report_resource(Source(""), post.ref, "spam")


class TestReportRateLimit:
    """Tests for the hourly report limit."""

    @pytest.mark.asyncio
    async def test_report_rate_limit(
        self, services: State, post: Post, bob: Source
    ) -> None:
        """Should refuse a report once the hourly limit is reached."""
        # Arrange
        redis = AsyncMock()
        redis.get = AsyncMock(return_value="20")
        moderation = ModerationCounter(
            services.activity_service,
            services.resource_resolver,
            redis=redis,
            reports_per_hour=20,
        )

        # Act / Assert
        with pytest.raises(RateLimitExceededError):
            await moderation.report_resource(bob, post.ref, "spam")
        assert await report_count(services, post.ref) == 0

    @pytest.mark.asyncio
    async def test_successful_report_counts_towards_rate_limit(
        self, services: State, post: Post, bob: Source
    ) -> None:
        """Should bump the hourly counter of the reporting source."""
        # Arrange
        pipe = Mock()
        pipe.execute = AsyncMock(return_value=[1, True])
        redis = AsyncMock()
        redis.get = AsyncMock(return_value=None)
        redis.pipeline = Mock(return_value=pipe)
        moderation = ModerationCounter(
            services.activity_service, services.resource_resolver, redis=redis
        )

        # Act
        await moderation.report_resource(bob, post.ref, "spam")

        # Assert
        pipe.incr.assert_called_once_with(f"reports:rate:{bob.source_id}")
        pipe.expire.assert_called_once_with(f"reports:rate:{bob.source_id}", 3600)


class TestBanResource:
    """Tests for ban_resource and the authorization hook."""

    @pytest.mark.asyncio
    async def test_authorizer_can_deny_moderation(
        self, services: State, post: Post, bob: Source
    ) -> None:
        """Should raise AuthorizationError when the authorizer says no."""
        # Arrange
        authorizer = AsyncMock(return_value=False)
        moderation = ModerationCounter(
            services.activity_service, services.resource_resolver, authorizer=authorizer
        )

        # Act / Assert
        with pytest.raises(AuthorizationError):
            await moderation.ban_resource(bob, post.ref, "nope")
        with pytest.raises(AuthorizationError):
            await moderation.report_resource(bob, post.ref, "nope")

        authorizer.assert_any_await(bob, post.ref, ModerationAction.BAN)
        authorizer.assert_any_await(bob, post.ref, ModerationAction.REPORT)
        activity = await services.activity_service.get_activity(post.ref, fresh=True)
        assert activity.ban_info is None
        assert activity.report_info.report_count == 0

    @pytest.mark.asyncio
    async def test_ban_flags_resource_then_records_ban_info(
        self, services: State, stores: SimpleNamespace, post: Post, bob: Source
    ) -> None:
        """Should flag the post as banned and store who banned it."""
        ban_info = await services.moderation_counter.ban_resource(bob, post.ref, "abuse")

        assert stores.posts.posts[post.post_id].is_banned is True
        activity = await services.activity_service.get_activity(post.ref, fresh=True)
        assert activity.ban_info == ban_info
        assert activity.ban_info.source_id == bob.source_id
        assert activity.ban_info.ban_reason == "abuse"

    @pytest.mark.asyncio
    async def test_ban_comment_sets_comment_flag(
        self,
        services: State,
        stores: SimpleNamespace,
        post: Post,
        alice: Source,
        bob: Source,
    ) -> None:
        """Should flag a banned comment on its row."""
        comment = await services.comment_service.create_comment(bob, post.ref, "rude")

        await services.moderation_counter.ban_resource(alice, comment.ref, "rude")

        assert stores.comments.comments[comment.comment_id].is_banned is True
