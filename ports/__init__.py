from .page_driver import PageDriverPort
from .sink import SinkPort

__all__ = [
    "PageDriverPort",
    "SinkPort",
]
