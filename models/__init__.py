from .record import COLUMNS, Record, RawItem, TaggedRecord
from .checkpoint import Checkpoint
from .credentials import Credentials

__all__ = [
    "COLUMNS",
    "Record",
    "RawItem",
    "TaggedRecord",
    "Checkpoint",
    "Credentials",
]
