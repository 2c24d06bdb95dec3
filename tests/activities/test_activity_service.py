"""Tests for the activity service, its store and its read cache."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from cassandra.cluster import Session

from social.activities.models import (
    Activity,
    ActivityDelta,
    ReactionCounts,
    create_activity,
)
from social.activities.service import ActivityService
from social.activities.store import ActivityStore
from social.core.errors import ConsistencyFaultError, NotFoundError
from social.reactions.models import ReactionType
from social.resources.models import ResourceRef, ResourceType
from tests.fakes import FakeActivityStore, FakeRedis


POST = ResourceRef("post-1", ResourceType.POST)
CACHE_KEY = "activity:post:post-1"
GENERATION_KEY = "activity:post:post-1:gen"


class HeldReadStore(FakeActivityStore):
    """Activity store that can park one read after taking its snapshot."""

    def __init__(self):
        super().__init__()
        self.hold_next_read = False
        self.read_taken = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, ref: ResourceRef) -> Activity | None:
        activity = await super().get(ref)
        if self.hold_next_read:
            self.hold_next_read = False
            self.read_taken.set()
            await self.release.wait()
        return activity


@pytest.fixture
def mock_session() -> Mock:
    """Mock Cassandra session preparing statements as their CQL text."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: cql)
    session.aexecute = AsyncMock(return_value=[])
    return session


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


class TestActivityCounters:
    """Tests for reading and moving activity counters."""

    @pytest.mark.asyncio
    async def test_missing_activity_is_not_found(self) -> None:
        """Should raise NotFoundError for a resource without activity."""
        service = ActivityService(FakeActivityStore())

        with pytest.raises(NotFoundError):
            await service.get_activity(POST)

    @pytest.mark.asyncio
    async def test_comment_underflow_is_refused(self) -> None:
        """Should refuse a delta that drives the comment count below zero."""
        # Arrange
        store = FakeActivityStore()
        service = ActivityService(store)
        await service.create_activity(POST)

        # Act / Assert
        with pytest.raises(ConsistencyFaultError):
            await service.apply_delta(POST, ActivityDelta(comments=-1))

        assert store.add_calls == []
        assert (await service.get_activity(POST)).comments_count == 0

    @pytest.mark.asyncio
    async def test_delta_returns_expected_counters(self) -> None:
        """Should return the counters as they stand after the delta."""
        service = ActivityService(FakeActivityStore())
        await service.create_activity(POST)

        await service.apply_delta(POST, ActivityDelta.reaction_added(ReactionType.LIKE))
        expected = await service.apply_delta(
            POST, ActivityDelta.reaction_switched(ReactionType.LIKE, ReactionType.LAUGH)
        )

        assert expected.reactions_count == ReactionCounts(laugh=1)
        assert (await service.get_activity(POST)).reactions_count == ReactionCounts(laugh=1)

    @pytest.mark.asyncio
    async def test_batch_read_skips_missing_resources(self) -> None:
        """Should leave unknown and duplicate ids out of a batch read."""
        service = ActivityService(FakeActivityStore())
        await service.create_activity(POST)

        found = await service.get_activities(ResourceType.POST, ["post-1", "post-2", "post-1"])

        assert list(found) == ["post-1"]


class TestActivityCache:
    """Tests for the Redis read-through cache."""

    @pytest.mark.asyncio
    async def test_reads_are_cached_with_generation(self, redis: FakeRedis) -> None:
        """Should cache a read under the activity key with the configured TTL."""
        service = ActivityService(FakeActivityStore(), redis=redis, cache_ttl_seconds=60)
        await service.create_activity(POST)

        activity = await service.get_activity(POST)

        payload = json.loads(redis.values[CACHE_KEY])
        assert redis.ttls[CACHE_KEY] == 60
        assert payload["generation"] == "0"
        assert Activity.from_dict(payload["activity"]) == activity

    @pytest.mark.asyncio
    async def test_mutation_drops_cache_and_bumps_generation(self, redis: FakeRedis) -> None:
        """Should delete the cached copy and advance the generation on a delta."""
        service = ActivityService(FakeActivityStore(), redis=redis, cache_ttl_seconds=60)
        await service.create_activity(POST)
        await service.get_activity(POST)

        await service.apply_delta(POST, ActivityDelta(comments=1))

        assert CACHE_KEY not in redis.values
        assert redis.values[GENERATION_KEY] == "1"
        assert redis.ttls[GENERATION_KEY] == 60

    @pytest.mark.asyncio
    async def test_cached_copy_is_served_without_store_read(self, redis: FakeRedis) -> None:
        """Should serve a current cached copy without touching the store."""
        # Arrange
        activity = create_activity(POST)
        redis.values[CACHE_KEY] = json.dumps(
            {"generation": "0", "activity": activity.to_dict()}
        )
        store = Mock()
        store.get = AsyncMock()
        service = ActivityService(store, redis=redis)

        # Act / Assert
        assert await service.get_activity(POST) == activity
        store.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_copy_from_older_generation_is_ignored(self, redis: FakeRedis) -> None:
        """Should read the store when the cached copy predates the last mutation."""
        stale = create_activity(POST)
        fresh = stale.apply(ActivityDelta(comments=4))
        redis.values[CACHE_KEY] = json.dumps({"generation": "0", "activity": stale.to_dict()})
        redis.values[GENERATION_KEY] = "1"
        store = Mock()
        store.get = AsyncMock(return_value=fresh)
        service = ActivityService(store, redis=redis)

        assert (await service.get_activity(POST)).comments_count == 4
        store.get.assert_awaited_once_with(POST)

    @pytest.mark.asyncio
    async def test_read_racing_a_delta_does_not_serve_stale_counters(
        self, redis: FakeRedis
    ) -> None:
        """Should not serve a copy cached by a read that overlapped a delta."""
        # Arrange
        store = HeldReadStore()
        service = ActivityService(store, redis=redis)
        await service.create_activity(POST)
        store.hold_next_read = True

        # Act: the reader snapshots the zeroed record, then a delta lands
        reader = asyncio.create_task(service.get_activity(POST))
        await store.read_taken.wait()
        await service.apply_delta(POST, ActivityDelta(comments=1))
        store.release.set()
        raced = await reader

        # Assert
        assert raced.comments_count == 0
        assert CACHE_KEY in redis.values
        assert (await service.get_activity(POST)).comments_count == 1


class TestActivityStore:
    """Tests for the Cassandra activity store."""

    @pytest.mark.asyncio
    async def test_store_applies_delta_in_one_statement(self, mock_session: Mock) -> None:
        """Should move every counter with a single counter-table update."""
        store = ActivityStore(mock_session, "social")
        delta = ActivityDelta(
            reactions=ReactionCounts().plus(ReactionType.LOVE, -1).plus(ReactionType.SAD, 1),
            comments=2,
        )

        await store.add(POST, delta)

        statement, params = mock_session.aexecute.await_args.args
        assert "like_count = like_count + ?" in statement
        assert params == [0, 0, -1, 0, 1, 2, "post-1", "post"]

    @pytest.mark.asyncio
    async def test_store_reads_lwt_applied_flag(self, mock_session: Mock) -> None:
        """Should report a lost compare-and-set as not applied."""
        store = ActivityStore(mock_session, "social")
        mock_session.aexecute.return_value = [(False, 1)]

        applied = await store.compare_and_set_report_info(
            POST, 0, create_activity(POST).report_info
        )

        assert applied is False
        assert "IF report_count = ?" in mock_session.aexecute.await_args.args[0]

    @pytest.mark.asyncio
    async def test_store_reads_zero_counters_when_counter_row_missing(
        self, mock_session: Mock
    ) -> None:
        """Should read zero counters when the counter row does not exist yet."""
        # Arrange
        row = SimpleNamespace(
            resource_id="post-1",
            resource_type="post",
            report_count=0,
            report_sources=None,
            ban_info=None,
            created_at=create_activity(POST).created_at.replace(tzinfo=None),
        )
        mock_session.aexecute.side_effect = [[row], []]
        store = ActivityStore(mock_session, "social")

        # Act
        activity = await store.get(POST)

        # Assert
        assert activity.reactions_count == ReactionCounts()
        assert activity.comments_count == 0
        assert activity.ban_info is None
