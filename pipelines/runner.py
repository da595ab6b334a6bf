from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from models.checkpoint import Checkpoint
from models.record import TaggedRecord
from utils.logging_setup import init_logging


@dataclass
class RunContext:
    """Session state shared by the loop, its steps and the shutdown coordinator."""

    checkpoint: Checkpoint = field(default_factory=Checkpoint)
    sink_id: Optional[str] = None
    cancelled: bool = False
    committing: bool = False
    # Set once the listing converged and the checkpoint is being cleared
    finished: bool = False
    # Start of the next probe window (visible items already handled this run)
    known_count: int = 0

    # Per-iteration scratch
    visible_count: int = 0
    delta: List[int] = field(default_factory=list)
    records: List[TaggedRecord] = field(default_factory=list)
    new_items: int = 0
    commit_failed: bool = False
    height_changed: bool = False

    meta: dict = field(default_factory=dict)

    def reset_iteration(self) -> None:
        self.visible_count = 0
        self.delta = []
        self.records = []
        self.new_items = 0
        self.commit_failed = False
        self.height_changed = False


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            ctx = step.run(ctx)
        return ctx
