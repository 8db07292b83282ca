"""Tabular row sources — decode loosely-structured sheet rows into typed records.

Every external source hands back a grid of cells (list of rows). The shared
decoder turns that grid into ``SourceRecord`` objects:

  1. Skip a fixed number of banner rows above the header.
  2. Build an uppercase header → column index map once per fetch.
  3. Read each data row into a Row dict (normalized header → trimmed value),
     omitting blank cells so absent columns read as None, never as errors.
  4. Drop rows with no asset key (counted, never raised).
  5. Work through the grid in fixed-size chunks so a very large sheet never
     materializes more than one chunk of intermediate rows at a time.

Primary and secondary sheets name the same concepts differently; each source
carries a ``SheetSchema`` listing the header aliases it accepts per field.

Called by: connectors/sheets.py, connectors/csv_source.py
Depends on: errors.py, utils
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..errors import SourceUnavailable
from ..utils import iter_chunks

log = logging.getLogger("stockledger.rowsource")

DEFAULT_CHUNK_SIZE = 5000

Row = dict[str, str]


@dataclass(frozen=True)
class SheetSchema:
    """Maps internal field names to the header aliases a sheet may use."""

    name: str
    key_columns: tuple[str, ...]
    columns: dict[str, tuple[str, ...]]
    banner_rows: int = 0

    def with_banner_rows(self, banner_rows: int) -> "SheetSchema":
        return SheetSchema(self.name, self.key_columns, self.columns, banner_rows)


PRIMARY_SCHEMA = SheetSchema(
    name="physical",
    key_columns=("IMEI",),
    columns={
        "model": ("MODEL",),
        "capacity": ("GB", "CAPACITY"),
        "color": ("COLOR",),
        "sku": ("SKU",),
        "grade": ("GRADE",),
        "lock_status": ("LOCK STATUS",),
    },
)

SECONDARY_SCHEMA = SheetSchema(
    name="raw",
    key_columns=("IMEI", "SERIAL", "IMEI/SERIAL"),
    columns={
        "model": ("MODEL", "DEVICE"),
        "capacity": ("GB", "STORAGE", "CAPACITY"),
        "color": ("COLOR", "COLOUR"),
        "grade": ("GRADE", "GRADED"),
        "lock_status": ("LOCK STATUS", "LOCK", "CARRIER STATUS"),
        "supplier": ("SUPPLIER", "VENDOR"),
    },
    banner_rows=2,
)

OUTBOUND_SCHEMA = SheetSchema(
    name="outbound",
    key_columns=("IMEI",),
    columns={
        "model": ("MODEL",),
        "capacity": ("CAPACITY", "GB"),
        "color": ("COLOR",),
        "grade": ("GRADED", "GRADE"),
        "lock_status": ("LOCK STATUS",),
    },
)


@dataclass
class SourceRecord:
    """One validated external row. Everything past the adapter uses this type."""

    key: str
    model: str | None = None
    capacity: str | None = None
    color: str | None = None
    sku: str | None = None
    grade: str | None = None
    lock_status: str | None = None
    supplier: str | None = None
    raw: Row = field(default_factory=dict)

    def attributes(self) -> dict:
        return {
            "key": self.key,
            "model": self.model,
            "capacity": self.capacity,
            "color": self.color,
            "sku": self.sku,
            "grade": self.grade,
            "lock_status": self.lock_status,
            "supplier": self.supplier,
        }


@dataclass
class DecodeStats:
    rows_seen: int = 0
    rows_skipped: int = 0
    chunks: int = 0

    @property
    def rows_kept(self) -> int:
        return self.rows_seen - self.rows_skipped


def _cell(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_header_map(header: list) -> dict[str, int]:
    """Uppercase, trimmed header → column index. First occurrence wins."""
    header_map: dict[str, int] = {}
    for idx, name in enumerate(header):
        norm = _cell(name)
        if norm is None:
            continue
        header_map.setdefault(norm.upper(), idx)
    return header_map


def read_row(cells: list, header_map: dict[str, int]) -> Row:
    row: Row = {}
    for name, idx in header_map.items():
        if idx >= len(cells):
            continue
        value = _cell(cells[idx])
        if value is not None:
            row[name] = value
    return row


def _first(row: Row, aliases: tuple[str, ...]) -> str | None:
    for alias in aliases:
        value = row.get(alias)
        if value:
            return value
    return None


def to_record(row: Row, schema: SheetSchema) -> SourceRecord | None:
    """Coerce a Row into a SourceRecord, or None if the key is missing."""
    key = _first(row, schema.key_columns)
    if not key:
        return None
    fields = {name: _first(row, aliases) for name, aliases in schema.columns.items()}
    return SourceRecord(key=key, raw=row, **fields)


def decode_rows(
    values: list[list],
    schema: SheetSchema,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> tuple[list[SourceRecord], DecodeStats]:
    """Decode a raw cell grid into SourceRecords plus decode statistics."""
    stats = DecodeStats()
    if not values or len(values) <= schema.banner_rows:
        return [], stats

    header_map = build_header_map(values[schema.banner_rows])
    if not any(col in header_map for col in schema.key_columns):
        log.warning(
            "Sheet %s has no key column (looked for %s); headers: %s",
            schema.name, ", ".join(schema.key_columns), sorted(header_map),
        )

    data_rows = values[schema.banner_rows + 1:]
    records: list[SourceRecord] = []
    for chunk in iter_chunks(data_rows, max(1, chunk_size)):
        stats.chunks += 1
        for cells in chunk:
            stats.rows_seen += 1
            record = to_record(read_row(cells or [], header_map), schema)
            if record is None:
                stats.rows_skipped += 1
                continue
            records.append(record)
        if stats.chunks > 1:
            log.debug("Decoded chunk %d of %s (%d rows so far)", stats.chunks, schema.name, stats.rows_seen)

    if stats.rows_skipped:
        log.info(
            "Sheet %s: %d rows decoded, %d skipped without key",
            schema.name, stats.rows_kept, stats.rows_skipped,
        )
    return records, stats


class RowSource(ABC):
    """A fetchable external table of asset rows.

    ``best_effort`` sources log and return an empty list when the source is
    unreachable, keeping the failure on ``last_error`` for callers that want
    to surface a warning.
    """

    def __init__(
        self,
        schema: SheetSchema,
        best_effort: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.schema = schema
        self.best_effort = best_effort
        self.chunk_size = chunk_size
        self.last_stats = DecodeStats()
        self.last_error: SourceUnavailable | None = None

    @property
    def source_id(self) -> str:
        return self.schema.name

    async def fetch(self) -> list[SourceRecord]:
        self.last_error = None
        try:
            values = await self._fetch_values()
        except SourceUnavailable as e:
            if not self.best_effort:
                raise
            log.warning("Best-effort source %s unavailable, continuing empty: %s", self.source_id, e.reason)
            self.last_error = e
            self.last_stats = DecodeStats()
            return []

        records, stats = decode_rows(values, self.schema, self.chunk_size)
        self.last_stats = stats
        return records

    @abstractmethod
    async def _fetch_values(self) -> list[list]:
        """Return the raw cell grid, banner rows and header included."""
