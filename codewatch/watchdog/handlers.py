# codewatch/watchdog/handlers.py

"""
Bridge from watchdog observer threads to the asyncio watch loop
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)

from .events import EventType, PathEvent

logger = logging.getLogger(__name__)


# Queue item marking the end of the stream
STREAM_CLOSED = None


class EventHandler(FileSystemEventHandler):
    """
    Converts watchdog events to PathEvents and queues them on the loop

    Runs on the observer thread; the queue is only touched from the loop
    thread through ``call_soon_threadsafe``.
    """

    # Moves are reported as a creation of the destination
    EVENT_KINDS = {
        EVENT_TYPE_CREATED: EventType.CREATE,
        EVENT_TYPE_MODIFIED: EventType.WRITE,
        EVENT_TYPE_MOVED: EventType.CREATE,
    }

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        super().__init__()
        self.loop = loop
        self.queue = queue

        self.stats = {
            'events_received': 0,
            'events_queued': 0,
            'events_dropped': 0,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Handle any file system event"""
        self.stats['events_received'] += 1

        path_event = self._convert_event(event)
        if path_event is None:
            return

        self._deliver(path_event)

    def _convert_event(self, event: FileSystemEvent) -> Optional[PathEvent]:
        kind = self.EVENT_KINDS.get(event.event_type)
        if kind is None:
            return None

        if event.event_type == EVENT_TYPE_MOVED:
            raw_path = getattr(event, 'dest_path', None)
        else:
            raw_path = event.src_path

        if not raw_path:
            return None
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode('utf-8', errors='surrogateescape')

        return PathEvent(
            path=Path(raw_path),
            kind=kind,
            is_directory=event.is_directory,
        )

    def _deliver(self, item: Optional[PathEvent]):
        """Thread-safe hand-off (observer thread -> asyncio loop)"""
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
            self.stats['events_queued'] += 1
        except RuntimeError:
            # Loop already closed during shutdown
            self.stats['events_dropped'] += 1
            logger.debug(f"Event loop closed, dropping {item}")

    def close(self):
        """Mark the end of the stream"""
        self._deliver(STREAM_CLOSED)

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
