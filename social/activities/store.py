"""Cassandra access for activity records."""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from social.reactions.models import ReactionType
from social.resources.models import ResourceRef, ResourceType

from .models import Activity, ActivityDelta, BanInfo, ReportInfo


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ActivityStore:
    """Activity persistence over ``activities`` and ``activity_counters``."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        self._insert_activity = self.session.prepare(f"""
            INSERT INTO {ks}.activities
            (resource_id, resource_type, report_count, report_sources, created_at)
            VALUES (?, ?, 0, [], ?)
        """)
        self._get_activity = self.session.prepare(f"""
            SELECT * FROM {ks}.activities
            WHERE resource_id = ? AND resource_type = ?
        """)
        self._get_counters = self.session.prepare(f"""
            SELECT * FROM {ks}.activity_counters
            WHERE resource_id = ? AND resource_type = ?
        """)
        self._get_activities = self.session.prepare(f"""
            SELECT * FROM {ks}.activities
            WHERE resource_id IN ? AND resource_type = ?
        """)
        self._get_counters_many = self.session.prepare(f"""
            SELECT * FROM {ks}.activity_counters
            WHERE resource_id IN ? AND resource_type = ?
        """)

        # One statement for every delta keeps all columns in a single mutation
        self._add_counters = self.session.prepare(f"""
            UPDATE {ks}.activity_counters
            SET like_count = like_count + ?,
                support_count = support_count + ?,
                love_count = love_count + ?,
                laugh_count = laugh_count + ?,
                sad_count = sad_count + ?,
                comments_count = comments_count + ?
            WHERE resource_id = ? AND resource_type = ?
        """)

        self._set_report_info = self.session.prepare(f"""
            UPDATE {ks}.activities
            SET report_count = ?, report_sources = ?
            WHERE resource_id = ? AND resource_type = ?
            IF report_count = ?
        """)
        self._set_ban_info = self.session.prepare(f"""
            UPDATE {ks}.activities
            SET ban_info = ?
            WHERE resource_id = ? AND resource_type = ?
        """)

    async def insert(self, activity: Activity) -> None:
        """Create the zeroed activity record of a resource."""
        await self.session.aexecute(
            self._insert_activity,
            [activity.resource_id, activity.resource_type.value, activity.created_at],
        )

    async def get(self, ref: ResourceRef) -> Activity | None:
        key = [ref.resource_id, ref.resource_type.value]
        rows = await self.session.aexecute(self._get_activity, key)
        if not rows:
            return None
        counter_rows = await self.session.aexecute(self._get_counters, key)
        return Activity.from_rows(rows[0], counter_rows[0] if counter_rows else None)

    async def get_many(
        self, resource_type: ResourceType, resource_ids: Sequence[str]
    ) -> dict[str, Activity]:
        """Activities of several resources of one type, keyed by resource id."""
        if not resource_ids:
            return {}
        params = [list(resource_ids), resource_type.value]
        rows = await self.session.aexecute(self._get_activities, params)
        counter_rows = await self.session.aexecute(self._get_counters_many, params)
        counters = {row.resource_id: row for row in counter_rows}
        return {
            row.resource_id: Activity.from_rows(row, counters.get(row.resource_id))
            for row in rows
        }

    async def add(self, ref: ResourceRef, delta: ActivityDelta) -> None:
        """Atomically add a signed delta to the counters."""
        await self.session.aexecute(
            self._add_counters,
            [
                delta.reactions.get(ReactionType.LIKE),
                delta.reactions.get(ReactionType.SUPPORT),
                delta.reactions.get(ReactionType.LOVE),
                delta.reactions.get(ReactionType.LAUGH),
                delta.reactions.get(ReactionType.SAD),
                delta.comments,
                ref.resource_id,
                ref.resource_type.value,
            ],
        )

    async def compare_and_set_report_info(
        self, ref: ResourceRef, expected_count: int, report_info: ReportInfo
    ) -> bool:
        """Replace report info if nobody reported since ``expected_count`` was read.

        Returns:
            Whether the conditional update was applied.
        """
        rows = await self.session.aexecute(
            self._set_report_info,
            [
                report_info.report_count,
                [report.to_map() for report in report_info.sources],
                ref.resource_id,
                ref.resource_type.value,
                expected_count,
            ],
        )
        # First column of an LWT result row is [applied]
        return bool(rows and rows[0][0])

    async def set_ban_info(self, ref: ResourceRef, ban_info: BanInfo) -> None:
        await self.session.aexecute(
            self._set_ban_info,
            [ban_info.to_map(), ref.resource_id, ref.resource_type.value],
        )
