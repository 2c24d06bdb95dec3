"""Cursor pagination over partitioned Cassandra indexes.

The pager asks an index for fixed-size batches until it holds at least the
number of items the caller requested, or the index is exhausted. Batches can
come back under-filled: the row filter (for example "not soft-deleted") runs
after the store applied its LIMIT, so one large fetch is not equivalent to
several small ones.

When the last batch overshoots, the page is truncated and the continuation
cursor is rebuilt from the key of the last item actually returned, so the
next call resumes right after it rather than after the last row fetched.

Cursors are URL-safe base64 JSON objects holding the key columns of the
last consumed row. Timestamps travel as integer epoch milliseconds.
"""

import base64
import binascii
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

import structlog

from social.core.clock import from_epoch_ms
from social.core.errors import InputError


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)

T = TypeVar("T")

Key = dict[str, Any]

DEFAULT_BATCH_SIZE = 20

# Key columns stored as TIMESTAMP; cursors hold them as epoch milliseconds
TIMESTAMP_KEY_COLUMNS = frozenset({"created_at"})


# ==============================================================================
# Cursor Codec
# ==============================================================================


def encode_cursor(key: Key) -> str:
    """Encode a key dict as an opaque cursor."""
    json_str = json.dumps(key, separators=(",", ":"), sort_keys=True)
    return base64.urlsafe_b64encode(json_str.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> Key:
    """Decode an opaque cursor back into its key dict.

    Raises:
        InputError: If the cursor is not one this service produced.
    """
    padded = cursor.strip() + "=" * (-len(cursor.strip()) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise InputError("Invalid pagination cursor") from e
    if not isinstance(data, dict) or not data:
        raise InputError("Invalid pagination cursor")
    return data


# ==============================================================================
# Index Protocol
# ==============================================================================


@dataclass
class IndexBatch(Generic[T]):
    """One batch returned by an index.

    ``last_key`` is the store's continuation point, or None when the index
    is exhausted.
    """

    items: list[T]
    last_key: Key | None


class IndexQuery(Protocol[T]):
    """An index query with its equality predicates already bound."""

    # Key fields fixed by the query; a cursor must carry the same values.
    partition: Key

    async def fetch(self, start_after: Key | None, limit: int) -> IndexBatch[T]:
        """Read up to ``limit`` raw rows after ``start_after``."""
        ...

    def key_of(self, item: T) -> Key:
        """Key fields of an item, in cursor form."""
        ...


@dataclass
class Page(Generic[T]):
    """A page of items and the cursor that continues it."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


# ==============================================================================
# Pager
# ==============================================================================


async def paginate(
    query: IndexQuery[T],
    requested_count: int,
    cursor: str | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Page[T]:
    """Collect ``requested_count`` items from ``query``, starting after ``cursor``.

    Args:
        query: Bound index query.
        requested_count: Items wanted; must be positive.
        cursor: Cursor from a previous page, or None to start at the beginning.
        batch_size: Rows requested from the store per round trip.

    Returns:
        Page in index order; ``next_cursor`` is None once the index is exhausted.

    Raises:
        InputError: On a non-positive count or a foreign/malformed cursor.
    """
    if requested_count <= 0:
        raise InputError("Page size must be a positive integer")

    start_after = _start_key(query, cursor)
    items: list[T] = []
    batches = 0

    while True:
        batch = await query.fetch(start_after, batch_size)
        batches += 1
        items.extend(batch.items)
        start_after = batch.last_key
        if len(items) >= requested_count or start_after is None:
            break

    next_key = start_after
    if len(items) > requested_count:
        items = items[:requested_count]
        next_key = query.key_of(items[-1])

    logger.debug(
        "index_paginated",
        partition=query.partition,
        requested=requested_count,
        returned=len(items),
        batches=batches,
        has_more=next_key is not None,
    )

    return Page(
        items=items,
        next_cursor=encode_cursor(next_key) if next_key is not None else None,
    )


def _start_key(query: IndexQuery[Any], cursor: str | None) -> Key | None:
    if not cursor:
        return None
    key = decode_cursor(cursor)
    for column, value in query.partition.items():
        if key.get(column) != value:
            raise InputError("Pagination cursor does not belong to this listing")
    return key


# ==============================================================================
# Cassandra Index Query
# ==============================================================================


class CassandraIndexQuery(Generic[T]):
    """Index query over a Cassandra query table.

    The first batch runs ``first_statement`` with ``first_params + [limit]``.
    Later batches run ``resume_statement``, which restricts the clustering
    columns with a multi-column slice ``(c1, c2, ...) > (?, ?, ...)``, bound
    with ``resume_params + [values of resume_columns from the key] + [limit]``.

    Every fetched row is mapped, its key recorded, and only then filtered, so
    the continuation point always advances past rows the filter discards.
    """

    def __init__(
        self,
        session: "Session",
        *,
        first_statement: Any,
        first_params: Sequence[Any],
        resume_statement: Any,
        resume_params: Sequence[Any],
        resume_columns: Sequence[str],
        partition: Key,
        row_mapper: Callable[[Any], T],
        key_of: Callable[[T], Key],
        row_filter: Callable[[T], bool] | None = None,
    ) -> None:
        self.session = session
        self.first_statement = first_statement
        self.first_params = list(first_params)
        self.resume_statement = resume_statement
        self.resume_params = list(resume_params)
        self.resume_columns = tuple(resume_columns)
        self.partition = partition
        self.row_mapper = row_mapper
        self._key_of = key_of
        self.row_filter = row_filter

    def key_of(self, item: T) -> Key:
        return self._key_of(item)

    async def fetch(self, start_after: Key | None, limit: int) -> IndexBatch[T]:
        if start_after is None:
            rows = await self.session.aexecute(
                self.first_statement, [*self.first_params, limit]
            )
        else:
            slice_values = [
                bind_key_value(column, start_after.get(column))
                for column in self.resume_columns
            ]
            rows = await self.session.aexecute(
                self.resume_statement,
                [*self.resume_params, *slice_values, limit],
            )

        return self.to_batch(rows, limit)

    def to_batch(self, rows: Sequence[Any], limit: int) -> IndexBatch[T]:
        """Map raw rows; the continuation is set only when ``limit`` rows came back."""
        fetched = [self.row_mapper(row) for row in rows]
        last_key = self.key_of(fetched[-1]) if len(fetched) >= limit else None
        if self.row_filter is not None:
            fetched = [item for item in fetched if self.row_filter(item)]
        return IndexBatch(items=fetched, last_key=last_key)


def bind_key_value(column: str, value: Any) -> Any:
    """Cursor key value in the form the driver binds for ``column``."""
    if value is None:
        raise InputError("Invalid pagination cursor")
    if column in TIMESTAMP_KEY_COLUMNS:
        try:
            return from_epoch_ms(int(value))
        except (TypeError, ValueError, OverflowError) as e:
            raise InputError("Invalid pagination cursor") from e
    return value
