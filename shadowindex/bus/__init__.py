"""Event bus for decoupled scheduler-consumer communication."""

from shadowindex.bus.events import DataCallback, IndexEvent, StatusCallback
from shadowindex.bus.queue import IndexEventBus

__all__ = ["IndexEventBus", "IndexEvent", "StatusCallback", "DataCallback"]
