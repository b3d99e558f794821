import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import main` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from codewatch.errors import UploadError  # noqa: E402


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Manually advanced timer source with the LoopClock interface"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def armed(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.armed if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


class FakeUploadSink:
    """Records uploaded batches; fails the first `fail_times` calls"""

    def __init__(self, fail_times=0):
        self.calls = []
        self.failures = 0
        self.fail_times = fail_times

    async def upload(self, files, is_incremental_update):
        if self.failures < self.fail_times:
            self.failures += 1
            raise UploadError("service unavailable", status_code=503)
        self.calls.append((list(files), is_incremental_update))
        return "ctx-1"

    def batch_contents(self, index):
        files, _ = self.calls[index]
        return {Path(f.path).name: f.content for f in files}


class FakeEmitter:
    def __init__(self):
        self.alive = True

    def is_alive(self):
        return self.alive


class FakeObserver:
    """In-process stand-in for a watchdog observer"""

    def __init__(self, fail_on_start=False):
        self.scheduled = []
        self.emitters = []
        self.fail_on_start = fail_on_start
        self.started = False
        self.stopped = False
        self.alive = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((path, recursive))
        self.emitters.append(FakeEmitter())
        return (path, recursive)

    def start(self):
        # Emitters come up one by one; a failure leaves the earlier ones running
        self.alive = True
        if self.fail_on_start:
            raise OSError(24, "inotify instance limit reached")
        self.started = True

    def stop(self):
        self.stopped = True
        self.alive = False
        for emitter in self.emitters:
            emitter.alive = False

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return self.alive


@pytest.fixture
def root(tmp_path):
    return tmp_path.resolve()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return FakeUploadSink()


@pytest.fixture
def failing_sink():
    return FakeUploadSink(fail_times=1)


@pytest.fixture
def observer_factory():
    created = []

    def factory():
        observer = FakeObserver(fail_on_start=factory.fail_on_start)
        created.append(observer)
        return observer

    factory.created = created
    factory.fail_on_start = False
    return factory
