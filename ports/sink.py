from __future__ import annotations

from typing import List, Protocol, Sequence

from models.record import Record


class SinkPort(Protocol):
    def create_with_header(self, columns: Sequence[str]) -> str:
        ...

    def append(self, handle: str, records: List[Record]) -> int:
        ...

    def exists(self, handle: str) -> bool:
        ...
