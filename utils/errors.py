from __future__ import annotations

from typing import Optional


class HarvestError(RuntimeError):
    """Base class for all collection errors."""


class ConfigError(HarvestError):
    """Missing or invalid configuration (e.g. credentials). Raised before collection starts."""


class NavigationError(HarvestError):
    """Listing could not be reached or its container never appeared."""


class AuthError(HarvestError):
    """Login did not leave the login page."""


class PerItemExtractionError(HarvestError):
    def __init__(self, index: int, message: Optional[str] = None) -> None:
        self.index = index
        super().__init__(message or f"Could not extract data from profile at index {index}")


class CheckpointIOError(HarvestError):
    """Checkpoint file could not be written or removed."""


class SinkIOError(HarvestError):
    """Records could not be appended to the sink."""


# Errors that end the run after a best-effort checkpoint save
FATAL_ERRORS = (NavigationError, AuthError, SinkIOError)
