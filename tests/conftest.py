"""Shared fixtures: an in-memory watch primitive and a polling helper."""

import queue
import threading
import time
from pathlib import Path

import pytest

from dirwatch.exceptions import PrimitiveError, RegistrationError
from dirwatch.fs_watcher import WatchHandle, WatchPrimitive
from dirwatch.models import Event, Operation


class FakeHandle(WatchHandle):
    """Watch handle that records registrations and lets tests inject events."""

    def __init__(self, primitive: "FakePrimitive", wakeup: threading.Event):
        self.primitive = primitive
        self.wakeup = wakeup
        self.events = queue.Queue()
        self.errors = queue.Queue()
        self.registered = set()
        self.unregistered = []
        self.closed = False
        self.dead = False

    def register(self, path: Path) -> None:
        if path in self.primitive.refuse:
            raise RegistrationError(f"refused {path}")
        self.registered.add(path)
        self.primitive.registrations.append(path)

    def unregister(self, path: Path) -> None:
        self.registered.discard(path)
        self.unregistered.append(path)

    def check(self) -> None:
        if self.dead:
            raise PrimitiveError("fake primitive died")

    def close(self) -> None:
        self.closed = True

    def emit(self, path, operation: Operation = Operation.CREATE) -> None:
        self.events.put(Event(Path(path), operation))
        self.wakeup.set()

    def fail(self, error: Exception) -> None:
        self.errors.put(error)
        self.wakeup.set()

    def kill(self) -> None:
        self.dead = True
        self.wakeup.set()


class FakePrimitive(WatchPrimitive):
    """Opens FakeHandles, optionally failing the first few opens."""

    def __init__(self, fail_opens: int = 0):
        self.fail_opens = fail_opens
        self.open_attempts = 0
        self.handles = []
        self.refuse = set()
        self.registrations = []

    def open(self, wakeup: threading.Event) -> WatchHandle:
        self.open_attempts += 1
        if self.fail_opens > 0:
            self.fail_opens -= 1
            raise PrimitiveError("cannot open fake primitive")
        handle = FakeHandle(self, wakeup)
        self.handles.append(handle)
        return handle

    @property
    def current(self) -> FakeHandle:
        return self.handles[-1]


def _wait_until(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fake_primitive():
    return FakePrimitive()


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def make_primitive():
    return FakePrimitive
