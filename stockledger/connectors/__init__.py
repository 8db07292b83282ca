"""Row source connectors and the factory that wires them from settings."""

from ..config import Settings
from .csv_source import CsvFileSource
from .row_source import (  # noqa: F401
    OUTBOUND_SCHEMA,
    PRIMARY_SCHEMA,
    SECONDARY_SCHEMA,
    DecodeStats,
    RowSource,
    SheetSchema,
    SourceRecord,
    decode_rows,
)
from .sheets import GoogleSheetsSource


def _build(settings: Settings, csv_path: str, sheet_name: str, schema: SheetSchema,
           best_effort: bool = False) -> RowSource:
    if csv_path:
        return CsvFileSource(csv_path, schema, best_effort=best_effort,
                             chunk_size=settings.row_chunk_size)
    return GoogleSheetsSource(
        spreadsheet_id=settings.spreadsheet_id,
        sheet_name=sheet_name,
        api_key=settings.google_api_key,
        schema=schema,
        columns=settings.sheet_range_columns,
        best_effort=best_effort,
        chunk_size=settings.row_chunk_size,
    )


def build_sources(settings: Settings) -> dict[str, RowSource]:
    """Primary (sync), secondary (validation, best-effort) and outbound sources."""
    primary = PRIMARY_SCHEMA.with_banner_rows(settings.primary_banner_rows)
    secondary = SECONDARY_SCHEMA.with_banner_rows(settings.secondary_banner_rows)
    return {
        "primary": _build(settings, settings.csv_primary_path, settings.primary_sheet, primary),
        "secondary": _build(settings, settings.csv_secondary_path, settings.secondary_sheet,
                            secondary, best_effort=True),
        "outbound": _build(settings, settings.csv_outbound_path, settings.outbound_sheet,
                           OUTBOUND_SCHEMA),
    }
