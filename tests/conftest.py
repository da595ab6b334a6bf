from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.collect'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


@pytest.fixture(autouse=True)
def _fresh_settings():
    # Settings are cached per process; tests change env between runs
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_profiles(n: int) -> List[Dict[str, Any]]:
    return [
        {
            "name": f"Person {i}",
            "occupation": "Searcher at Fund",
            "location": "New York, NY",
            "university_names": ["Harvard Business School", "Yale University"],
            "linkedin_url": f"https://www.linkedin.com/in/person-{i}",
            "website_url": f"https://fund{i}.example.com",
        }
        for i in range(n)
    ]


class StaticListingDriver:
    """In-memory infinite-scroll listing: each load-more reveals `page_size` more cards."""

    def __init__(
        self,
        profiles: List[Dict[str, Any]],
        page_size: int = 5,
        fail_on: Iterable[int] = (),
        on_load_more: Optional[Callable[["StaticListingDriver"], None]] = None,
        card_height: int = 100,
    ) -> None:
        from models.record import RawItem
        self._raw_item = RawItem
        self.profiles = profiles
        self.page_size = page_size
        self.visible = min(page_size, len(profiles))
        self.fail_on = set(fail_on)
        self.on_load_more = on_load_more
        self.card_height = card_height
        self.load_more_calls = 0
        self.extract_calls: List[int] = []
        self.navigated: List[str] = []
        self.logged_in = False
        self.closed = False

    def navigate(self, url: str) -> None:
        self.navigated.append(url)

    def login(self, credentials) -> None:
        self.logged_in = True

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        return None

    def dismiss_notification(self) -> bool:
        return False

    def query_item_count(self) -> int:
        return self.visible

    def query_item_fingerprint_batch(self, start: int = 0):
        return [
            self._raw_item(
                index=i,
                name=self.profiles[i].get("name"),
                occupation=self.profiles[i].get("occupation"),
                linkedin_url=self.profiles[i].get("linkedin_url"),
            )
            for i in range(start, self.visible)
        ]

    def extract_item(self, index: int):
        self.extract_calls.append(index)
        if index in self.fail_on:
            raise RuntimeError(f"stale element at {index}")
        if index >= self.visible:
            return None
        return self._raw_item(index=index, **self.profiles[index])

    def trigger_load_more(self) -> None:
        self.load_more_calls += 1
        self.visible = min(self.visible + self.page_size, len(self.profiles))
        if self.on_load_more is not None:
            self.on_load_more(self)

    def current_height(self) -> int:
        return self.visible * self.card_height

    def close(self) -> None:
        self.closed = True


class RecordingSink:
    """Sink keeping rows in memory; can be told to fail the next N appends."""

    def __init__(self, fail_times: int = 0) -> None:
        self.tables: Dict[str, List[Any]] = {}
        self.fail_times = fail_times
        self.append_calls = 0

    def create_with_header(self, columns) -> str:
        handle = f"mem-{len(self.tables) + 1}"
        self.tables[handle] = []
        return handle

    def exists(self, handle: str) -> bool:
        return handle in self.tables

    def append(self, handle: str, records) -> int:
        from utils.errors import SinkIOError
        self.append_calls += 1
        if self.fail_times > 0:
            self.fail_times -= 1
            raise SinkIOError("disk full")
        self.tables[handle].extend(records)
        return len(records)


@pytest.fixture
def profiles_factory():
    return make_profiles


@pytest.fixture
def listing_driver():
    return StaticListingDriver


@pytest.fixture
def recording_sink():
    return RecordingSink


@pytest.fixture
def fast_settings():
    from config.settings import get_settings
    return dataclasses.replace(
        get_settings(),
        render_wait_seconds=0.0,
        jitter_base_seconds=0.0,
        jitter_spread_seconds=0.0,
    )


@pytest.fixture
def no_sleep():
    return lambda seconds: None
