"""
CSV sink for harvested profiles.

One file per collection (timestamped name); the header is written once at
creation and every committed batch is appended. Null fields are written as
empty strings. A batch is serialized in memory and written with a single
write call, so an append either lands whole or raises before touching the
file (short of the OS failing mid-write).
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

from models.record import COLUMNS, Record
from utils.errors import SinkIOError


logger = logging.getLogger(__name__)


class CSVSink:
    def __init__(self, output_dir: str = ".", prefix: str = "searchfunder_results") -> None:
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.columns: List[str] = list(COLUMNS)

    def _new_filename(self) -> Path:
        timestamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-").replace("+", "_")
        return self.output_dir / f"{self.prefix}_{timestamp}.csv"

    def create_with_header(self, columns: Sequence[str] = COLUMNS) -> str:
        self.columns = list(columns)
        path = self._new_filename()
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(self.columns)
        except OSError as e:
            raise SinkIOError(f"Could not create {path}: {e}") from e
        logger.info("CSV file created: %s", path, extra={"step": "sink", "status": "created"})
        return str(path)

    def exists(self, handle: str) -> bool:
        return bool(handle) and Path(handle).is_file()

    def append(self, handle: str, records: List[Record]) -> int:
        if not records:
            return 0
        if not self.exists(handle):
            raise SinkIOError(f"Output file {handle} is missing")
        rows = []
        for rec in records:
            row = rec.as_row()
            rows.append(["" if row.get(col) is None else row.get(col) for col in self.columns])
        buffer = io.StringIO()
        csv.writer(buffer).writerows(rows)
        try:
            with open(handle, "a", newline="", encoding="utf-8") as f:
                f.write(buffer.getvalue())
        except OSError as e:
            raise SinkIOError(f"Error appending to CSV {handle}: {e}") from e
        return len(rows)


def read_rows(handle: str) -> List[dict]:
    """Read a sink file back as dicts (header-keyed)."""
    with open(handle, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))
