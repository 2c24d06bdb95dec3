"""Cassandra access for reactions.

Each reaction is written to three query tables. The source-partitioned
``reactions`` table is authoritative for the one-per-source constraint:
every write to it is conditional, and the index tables are touched only
after that write was applied.
"""

from collections.abc import Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from social.core.pagination import CassandraIndexQuery
from social.resources.models import ResourceRef, ResourceType

from .models import Reaction, ReactionType


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ReactionStore:
    """Reaction persistence over the reaction query tables."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        self._insert_reaction = self.session.prepare(f"""
            INSERT INTO {ks}.reactions
            (source_id, resource_type, resource_id, reaction_id, source_type, reaction, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._switch_reaction = self.session.prepare(f"""
            UPDATE {ks}.reactions SET reaction = ?
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            IF reaction_id = ? AND reaction = ?
        """)
        self._insert_by_resource = self.session.prepare(f"""
            INSERT INTO {ks}.reactions_by_resource
            (resource_id, resource_type, created_at, source_id, reaction_id, source_type, reaction)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {ks}.reactions_by_id
            (reaction_id, source_id, source_type, resource_id, resource_type, reaction, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_for_source = self.session.prepare(f"""
            SELECT * FROM {ks}.reactions
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
        """)
        self._list_for_source = self.session.prepare(f"""
            SELECT * FROM {ks}.reactions
            WHERE source_id = ? AND resource_type = ? AND resource_id IN ?
        """)
        self._get_by_id = self.session.prepare(f"""
            SELECT * FROM {ks}.reactions_by_id WHERE reaction_id = ?
        """)

        self._delete_reaction = self.session.prepare(f"""
            DELETE FROM {ks}.reactions
            WHERE source_id = ? AND resource_type = ? AND resource_id = ?
            IF reaction_id = ? AND reaction = ?
        """)
        self._delete_by_resource = self.session.prepare(f"""
            DELETE FROM {ks}.reactions_by_resource
            WHERE resource_id = ? AND resource_type = ? AND created_at = ? AND source_id = ?
        """)
        self._delete_by_id = self.session.prepare(f"""
            DELETE FROM {ks}.reactions_by_id WHERE reaction_id = ?
        """)

        self._page_by_resource = self.session.prepare(f"""
            SELECT * FROM {ks}.reactions_by_resource
            WHERE resource_id = ? AND resource_type = ?
            LIMIT ?
        """)
        self._page_by_resource_after = self.session.prepare(f"""
            SELECT * FROM {ks}.reactions_by_resource
            WHERE resource_id = ? AND resource_type = ?
            AND (created_at, source_id) > (?, ?)
            LIMIT ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_for_source(self, source_id: str, ref: ResourceRef) -> Reaction | None:
        """The reaction of one source on one resource, if any."""
        rows = await self.session.aexecute(
            self._get_for_source,
            [source_id, ref.resource_type.value, ref.resource_id],
        )
        return Reaction.from_row(rows[0]) if rows else None

    async def list_for_source(
        self,
        source_id: str,
        resource_type: ResourceType,
        resource_ids: Sequence[str],
    ) -> list[Reaction]:
        """Reactions of one source across a set of resources of one type."""
        if not resource_ids:
            return []
        rows = await self.session.aexecute(
            self._list_for_source,
            [source_id, resource_type.value, list(resource_ids)],
        )
        return [Reaction.from_row(row) for row in rows]

    async def get_by_id(self, reaction_id: str) -> Reaction | None:
        rows = await self.session.aexecute(self._get_by_id, [reaction_id])
        return Reaction.from_row(rows[0]) if rows else None

    def resource_index(self, ref: ResourceRef) -> CassandraIndexQuery[Reaction]:
        """Reactions on a resource, oldest first."""
        partition = [ref.resource_id, ref.resource_type.value]
        return CassandraIndexQuery(
            self.session,
            first_statement=self._page_by_resource,
            first_params=partition,
            resume_statement=self._page_by_resource_after,
            resume_params=partition,
            resume_columns=("created_at", "source_id"),
            partition=ref.to_dict(),
            row_mapper=Reaction.from_row,
            key_of=Reaction.index_key,
        )

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def insert(self, reaction: Reaction) -> bool:
        """Write a new reaction to all query tables.

        Returns:
            False if the source already has a reaction on the resource; no
            table is written in that case.
        """
        rows = await self.session.aexecute(
            self._insert_reaction,
            [
                reaction.source_id,
                reaction.resource_type.value,
                reaction.resource_id,
                reaction.reaction_id,
                reaction.source_type.value,
                reaction.reaction.value,
                reaction.created_at,
            ],
        )
        if not _applied(rows):
            return False
        await self._write_indexes(reaction)
        return True

    async def update_type(self, reaction: Reaction, reaction_type: ReactionType) -> Reaction | None:
        """Switch the type of ``reaction``, keeping its id and timestamp.

        Returns:
            The updated reaction, or None if the stored reaction is no
            longer ``reaction`` (switched or removed concurrently).
        """
        rows = await self.session.aexecute(
            self._switch_reaction,
            [
                reaction_type.value,
                reaction.source_id,
                reaction.resource_type.value,
                reaction.resource_id,
                reaction.reaction_id,
                reaction.reaction.value,
            ],
        )
        if not _applied(rows):
            return None
        updated = replace(reaction, reaction=reaction_type)
        await self._write_indexes(updated)
        return updated

    async def delete(self, reaction: Reaction) -> bool:
        """Remove ``reaction`` from all query tables.

        Returns:
            False if the stored reaction is no longer ``reaction``.
        """
        rows = await self.session.aexecute(
            self._delete_reaction,
            [
                reaction.source_id,
                reaction.resource_type.value,
                reaction.resource_id,
                reaction.reaction_id,
                reaction.reaction.value,
            ],
        )
        if not _applied(rows):
            return False
        await self.session.aexecute(self._delete_by_id, [reaction.reaction_id])
        await self.session.aexecute(
            self._delete_by_resource,
            [
                reaction.resource_id,
                reaction.resource_type.value,
                reaction.created_at,
                reaction.source_id,
            ],
        )
        return True

    async def _write_indexes(self, reaction: Reaction) -> None:
        await self.session.aexecute(
            self._insert_by_resource,
            [
                reaction.resource_id,
                reaction.resource_type.value,
                reaction.created_at,
                reaction.source_id,
                reaction.reaction_id,
                reaction.source_type.value,
                reaction.reaction.value,
            ],
        )
        await self.session.aexecute(
            self._insert_by_id,
            [
                reaction.reaction_id,
                reaction.source_id,
                reaction.source_type.value,
                reaction.resource_id,
                reaction.resource_type.value,
                reaction.reaction.value,
                reaction.created_at,
            ],
        )


def _applied(rows: list) -> bool:
    # First column of an LWT result row is [applied]
    return bool(rows and rows[0][0])
