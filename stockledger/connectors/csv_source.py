"""File-drop row source — a CSV export dropped on disk by another system."""

import asyncio
import csv
import logging
from pathlib import Path

from ..errors import SourceUnavailable
from .row_source import DEFAULT_CHUNK_SIZE, RowSource, SheetSchema

log = logging.getLogger("stockledger.csv_source")


class CsvFileSource(RowSource):
    def __init__(
        self,
        path: str | Path,
        schema: SheetSchema,
        best_effort: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        encoding: str = "utf-8-sig",
    ):
        super().__init__(schema, best_effort=best_effort, chunk_size=chunk_size)
        self.path = Path(path)
        self.encoding = encoding

    @property
    def source_id(self) -> str:
        return f"csv:{self.path.name}"

    async def _fetch_values(self) -> list[list]:
        return await asyncio.to_thread(self._read)

    def _read(self) -> list[list]:
        try:
            with self.path.open(newline="", encoding=self.encoding) as fh:
                values = list(csv.reader(fh))
        except FileNotFoundError:
            raise SourceUnavailable(self.source_id, f"file not found: {self.path}")
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SourceUnavailable(self.source_id, f"{type(e).__name__}: {e}")
        log.info("Read %d rows from %s", len(values), self.path)
        return values
