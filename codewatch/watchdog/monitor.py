# codewatch/watchdog/monitor.py

"""
Watch session: the event loop that turns file system events into uploads
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from watchdog.observers.api import BaseObserver

from codewatch.errors import WatchSessionError
from codewatch.processing.changes import ChangeAggregator, FileRecord
from codewatch.utils.config import WatchConfig
from codewatch.utils.file_utils import get_extension, is_regular_file, read_file_content
from codewatch.utils.logger import log_exception, log_stats
from .debounce import DebounceScheduler, LoopClock
from .events import PathEvent
from .handlers import EventHandler, STREAM_CLOSED
from .patterns import PatternFilter
from .watcher import WatchSet, create_observer

logger = logging.getLogger(__name__)


class WatchSession:
    """
    Watches one directory tree and forwards debounced change batches

    The session task is the only writer of the watch set, the pending
    change set and the debounce timer. Observer threads hand events over
    through an asyncio queue; the debounce timer fires on the same loop;
    uploads run in their own tasks so a slow upload never blocks event
    handling.

    The upload sink is any object with
    ``async upload(files, is_incremental_update) -> context_id``.
    """

    def __init__(self, root: Union[str, Path],
                 upload_sink: Any,
                 watch_config: Optional[WatchConfig] = None,
                 pattern_filter: Optional[PatternFilter] = None,
                 clock: Optional[Any] = None,
                 observer_factory: Optional[Callable[[], BaseObserver]] = None):
        """
        Initialize watch session

        Args:
            root: Directory to watch
            upload_sink: Receiver of flushed batches
            watch_config: Watch configuration
            pattern_filter: Preloaded ignore filter (loaded on start otherwise)
            clock: Timer source for the debounce scheduler
            observer_factory: Creates the watchdog observer
        """
        self.root = Path(root).resolve()
        self.upload_sink = upload_sink
        self.watch_config = watch_config or WatchConfig()
        self.pattern_filter = pattern_filter
        self.clock = clock
        self.observer_factory = observer_factory or (
            lambda: create_observer(self.watch_config.use_polling, self.watch_config.poll_interval)
        )

        self.aggregator = ChangeAggregator()
        self.scheduler: Optional[DebounceScheduler] = None
        self.observer: Optional[BaseObserver] = None
        self.handler: Optional[EventHandler] = None
        self.watch_set: Optional[WatchSet] = None
        self.queue: Optional[asyncio.Queue] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._upload_tasks: Set[asyncio.Task] = set()
        self._stopping = False

        self.is_running = False
        self.stats = {
            'events_received': 0,
            'events_ignored': 0,
            'events_unsupported': 0,
            'files_recorded': 0,
            'read_errors': 0,
            'directories_added': 0,
            'watch_errors': 0,
            'flushes': 0,
            'uploads_succeeded': 0,
            'uploads_failed': 0,
        }

    async def start(self):
        """
        Load ignore rules, subscribe the directory tree and start the observer

        Raises:
            IgnoreFileError: if the ignore file exists but cannot be read
            WatchSessionError: if the observer cannot be created or started
        """
        if self.is_running:
            logger.warning("Watch session is already running")
            return

        if not self.root.is_dir():
            raise WatchSessionError(f"Root directory does not exist: {self.root}")

        if self.pattern_filter is None:
            self.pattern_filter = PatternFilter.load(self.root, self.watch_config)

        self._loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue()
        self.scheduler = DebounceScheduler(
            self.watch_config.debounce_time,
            self._flush,
            clock=self.clock or LoopClock(self._loop),
        )

        try:
            self.observer = self.observer_factory()
            self.handler = EventHandler(self._loop, self.queue)
            self.watch_set = WatchSet(self.observer, self.handler, self.pattern_filter)
            self.watch_set.subscribe(self.root)
            self.watch_set.add_tree(self.root)
            self.observer.start()
        except Exception as e:
            # Emitters started before the failure still hold OS watches
            self._shutdown_observer()
            raise WatchSessionError(f"Error setting up recursive watch on {self.root}: {e}") from e

        self._stopping = False
        self.is_running = True
        logger.info(f"Watching {self.root} ({len(self.watch_set)} directories)")

    async def run(self):
        """
        Consume events until the session is stopped

        Raises:
            WatchSessionError: if the event stream closes or an observer thread dies
        """
        if not self.is_running:
            raise WatchSessionError("Watch session has not been started")

        while True:
            try:
                item = await asyncio.wait_for(
                    self.queue.get(),
                    timeout=self.watch_config.liveness_interval
                )
            except asyncio.TimeoutError:
                if self._stopping:
                    return
                if not self._observer_alive():
                    raise WatchSessionError("Watcher stopped unexpectedly")
                continue

            if item is STREAM_CLOSED:
                if self._stopping:
                    return
                raise WatchSessionError("Watcher channel closed")

            self.handle_event(item)

    def _observer_alive(self) -> bool:
        """Dispatcher thread and every emitter thread are running"""
        if not self.observer.is_alive():
            return False
        # An emitter thread dies when reading OS events raises
        return all(emitter.is_alive() for emitter in self.observer.emitters)

    def _shutdown_observer(self):
        """Stop the dispatcher and every emitter thread already started"""
        if self.observer is None:
            return
        self.observer.stop()
        if self.observer.is_alive():
            self.observer.join(timeout=10)

    def handle_event(self, event: PathEvent) -> bool:
        """
        Filter one event and record the change it describes

        Returns:
            True if a file change was recorded
        """
        self.stats['events_received'] += 1
        path = event.path

        if self.pattern_filter.should_ignore_tree(path):
            self.stats['events_ignored'] += 1
            return False

        is_directory = path.is_dir() and not path.is_symlink()

        if is_directory:
            if path not in self.watch_set:
                self._watch_new_directory(path)
            return False

        if not self.pattern_filter.is_supported(path):
            self.stats['events_unsupported'] += 1
            return False

        if not is_regular_file(path):
            logger.debug(f"Skipping non-regular or vanished path: {path}")
            return False

        try:
            content = read_file_content(
                path,
                max_file_size=self.watch_config.max_file_size,
                skip_binary=self.watch_config.skip_binary,
            )
        except OSError as e:
            self.stats['read_errors'] += 1
            logger.warning(f"Error reading file {path}: {e}")
            return False

        if content is None:
            return False

        self.aggregator.record(str(path), content, get_extension(path))
        self.scheduler.on_event()
        self.stats['files_recorded'] += 1
        logger.debug(f"Recorded change: {event}")
        return True

    def _watch_new_directory(self, directory: Path):
        try:
            added = self.watch_set.add_tree(directory)
        except OSError as e:
            self.stats['watch_errors'] += 1
            logger.error(f"Error watching new directory {directory}: {e}")
            return

        self.stats['directories_added'] += added
        if added:
            logger.info(f"New directory added to watch: {directory}")

    def _flush(self):
        """Debounce callback: drain pending changes and upload them"""
        batch = self.aggregator.drain()
        if not batch:
            return

        self.stats['flushes'] += 1
        logger.info(f"Flushing {len(batch)} changed files")

        task = self._loop.create_task(self._upload(batch))
        self._upload_tasks.add(task)
        task.add_done_callback(self._upload_tasks.discard)

    async def _upload(self, batch: List[FileRecord]):
        try:
            await self.upload_sink.upload(batch, True)
        except Exception as e:
            # The batch is dropped; those files are re-sent only if they change again
            self.stats['uploads_failed'] += 1
            log_exception(logger, e, f"Error uploading {len(batch)} changed files: {e}")
            return

        self.stats['uploads_succeeded'] += 1

    def flush_now(self):
        """Cancel the pending timer and flush immediately"""
        if self.scheduler is not None:
            self.scheduler.cancel()
        self._flush()

    async def stop(self, flush_pending: bool = False):
        """
        Stop the observer and wait for in-flight uploads

        Args:
            flush_pending: Upload changes still waiting for the quiet period
        """
        if not self.is_running:
            return

        self._stopping = True

        if flush_pending:
            self.flush_now()
        elif self.scheduler is not None:
            self.scheduler.cancel()

        self._shutdown_observer()

        if self.handler is not None:
            self.handler.close()

        if self._upload_tasks:
            await asyncio.gather(*list(self._upload_tasks), return_exceptions=True)

        self.is_running = False
        logger.info(f"Stopped watching {self.root}")
        log_stats(logger, "Watch session stats", self.stats)

    def get_status(self) -> Dict[str, Any]:
        """Get session status"""
        return {
            'root': str(self.root),
            'is_running': self.is_running,
            'pending_changes': len(self.aggregator),
            'watch_set': self.watch_set.get_status() if self.watch_set else {},
            'debounce': self.scheduler.get_stats() if self.scheduler else {},
            'stats': self.stats.copy(),
        }
