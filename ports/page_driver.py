from __future__ import annotations

from typing import List, Optional, Protocol

from models.credentials import Credentials
from models.record import RawItem


class PageDriverPort(Protocol):
    """Browser/session capability set used by the collection loop."""

    def navigate(self, url: str) -> None:
        ...

    def login(self, credentials: Credentials) -> None:
        ...

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        ...

    def dismiss_notification(self) -> bool:
        ...

    def query_item_count(self) -> int:
        ...

    def query_item_fingerprint_batch(self, start: int = 0) -> List[RawItem]:
        """Lightweight probe of cards at `start` and beyond (identity fields only)."""
        ...

    def extract_item(self, index: int) -> Optional[RawItem]:
        ...

    def trigger_load_more(self) -> None:
        ...

    def current_height(self) -> int:
        ...

    def close(self) -> None:
        ...
