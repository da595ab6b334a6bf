from __future__ import annotations

from typing import Iterable, List, Set

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


DEFAULT_HISTORY_LIMIT = 1000


class Checkpoint(BaseModel):
    """Persisted collection progress.

    `processed_fingerprints` behaves as an insertion-ordered set bounded to the
    most recent `history_limit` entries (oldest evicted first). Mutate it only
    through `remember()`.
    """

    last_index: int = Field(default=-1, alias="lastProfileIndex")
    sink_id: str | None = Field(default=None, alias="csvFilename")
    processed_fingerprints: List[str] = Field(default_factory=list, alias="processedProfileIds")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    _seen: Set[str] = PrivateAttr(default_factory=set)
    _history_limit: int = PrivateAttr(default=DEFAULT_HISTORY_LIMIT)

    def model_post_init(self, __context) -> None:
        # Collapse duplicates from hand-edited files while keeping first-seen order
        ordered = list(dict.fromkeys(self.processed_fingerprints))
        self.processed_fingerprints = ordered
        self._seen = set(ordered)

    def with_limit(self, limit: int) -> "Checkpoint":
        self._history_limit = max(1, int(limit))
        self._evict()
        return self

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def has(self, fingerprint: str) -> bool:
        return fingerprint in self._seen

    def remember(self, fingerprints: Iterable[str]) -> None:
        for fp in fingerprints:
            if fp in self._seen:
                continue
            self.processed_fingerprints.append(fp)
            self._seen.add(fp)
        self._evict()

    def advance(self, index: int) -> None:
        if index > self.last_index:
            self.last_index = index

    def truncated(self) -> List[str]:
        return self.processed_fingerprints[-self._history_limit:]

    def is_pristine(self) -> bool:
        return self.last_index < 0 and self.sink_id is None and not self.processed_fingerprints

    def to_document(self) -> dict:
        return {
            "lastProfileIndex": self.last_index,
            "csvFilename": self.sink_id,
            "processedProfileIds": self.truncated(),
        }

    def _evict(self) -> None:
        overflow = len(self.processed_fingerprints) - self._history_limit
        if overflow > 0:
            for fp in self.processed_fingerprints[:overflow]:
                self._seen.discard(fp)
            del self.processed_fingerprints[:overflow]
