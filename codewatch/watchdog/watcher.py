# codewatch/watchdog/watcher.py

"""
Directory subscription set for the watch session
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.observers.polling import PollingObserver
from watchdog.events import FileSystemEventHandler

from .patterns import PatternFilter, iter_directories

logger = logging.getLogger(__name__)


def create_observer(use_polling: bool = False, poll_interval: float = 1.0) -> BaseObserver:
    """Create an OS-event observer, or a polling one when requested"""
    if use_polling:
        logger.debug(f"Using polling observer (interval: {poll_interval}s)")
        return PollingObserver(timeout=poll_interval)

    logger.debug("Using OS event observer")
    return Observer()


class WatchSet:
    """
    Directories admitted to the watch session

    The observer carries a single recursive watch on the root, so the OS
    cost is one notification instance however large the tree is. The set
    records which directories the session has admitted; excluded subtrees
    never enter it, and their events are dropped by the pattern filter.
    The set only grows during a session.
    """

    def __init__(self, observer: BaseObserver, handler: FileSystemEventHandler,
                 pattern_filter: PatternFilter):
        self.observer = observer
        self.handler = handler
        self.pattern_filter = pattern_filter

        self.watch: Optional[ObservedWatch] = None
        self._directories: Set[Path] = set()

    def __contains__(self, directory) -> bool:
        return Path(directory) in self._directories

    def __len__(self):
        return len(self._directories)

    @property
    def directories(self) -> List[Path]:
        return sorted(self._directories)

    def subscribe(self, root: Path) -> ObservedWatch:
        """
        Schedule the recursive watch on root

        Raises:
            OSError: if the observer cannot watch the directory
        """
        if self.watch is None:
            self.watch = self.observer.schedule(self.handler, str(root), recursive=True)
            logger.debug(f"Scheduled recursive watch on {root}")
        return self.watch

    def add(self, directory: Path) -> bool:
        """
        Admit a single directory

        Returns:
            True if newly added, False if already admitted
        """
        directory = Path(directory)
        if directory in self._directories:
            return False

        self._directories.add(directory)
        logger.debug(f"Watching directory: {directory}")
        return True

    def add_tree(self, root: Path) -> int:
        """
        Admit root and all non-excluded directories below it

        Returns:
            Number of newly added directories

        Raises:
            OSError: if the tree cannot be walked
        """
        added = 0
        for directory in iter_directories(root, self.pattern_filter):
            if self.add(directory):
                added += 1
        return added

    def get_status(self) -> Dict[str, Any]:
        return {
            'watched_directories': len(self._directories),
            'scheduled': self.watch is not None,
            'observer_alive': self.observer.is_alive(),
        }
