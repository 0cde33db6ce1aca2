"""Watch primitive capability and its watchdog-backed implementation."""

import logging
import os
import queue
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set

from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)

from .exceptions import PrimitiveError, RegistrationError
from .models import Event, Operation


class WatchHandle(ABC):
    """
    One open incarnation of a non-recursive watch primitive.
    
    Notifications arrive on ``events`` and transient failures on ``errors``.
    """

    events: "queue.Queue[Event]"
    errors: "queue.Queue[Exception]"

    @abstractmethod
    def register(self, path: Path) -> None:
        """
        Start watching a single path (not its subdirectories).
        
        Raises:
            RegistrationError: If the primitive refuses the path
        """
        pass

    @abstractmethod
    def unregister(self, path: Path) -> None:
        """Stop watching a path. Best-effort, never raises."""
        pass

    @abstractmethod
    def check(self) -> None:
        """
        Verify the handle is still usable.
        
        Raises:
            PrimitiveError: If the primitive has died
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the handle. Safe to call more than once."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class WatchPrimitive(ABC):
    """Factory for watch handles."""

    @abstractmethod
    def open(self, wakeup: threading.Event) -> WatchHandle:
        """
        Open a new handle.
        
        Args:
            wakeup: Event to set whenever the handle queues an event or error
            
        Raises:
            PrimitiveError: If the primitive cannot be opened
        """
        pass


_OPERATIONS = {
    EVENT_TYPE_CREATED: Operation.CREATE,
    EVENT_TYPE_DELETED: Operation.REMOVE,
    EVENT_TYPE_MODIFIED: Operation.WRITE,
    EVENT_TYPE_MOVED: Operation.RENAME,
}

# Access notifications (watchdog inotify) carry no change
_ACCESS_EVENTS = frozenset({"opened", "closed", "closed_no_write"})


class FSEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to Event and queues them."""

    def __init__(self, events: "queue.Queue[Event]", wakeup: threading.Event):
        super().__init__()
        self.events = events
        self.wakeup = wakeup

    def _emit(self, path, operation: Operation, is_directory: bool) -> None:
        """Queue an Event and wake the consumer."""
        event = Event(
            path=Path(os.fsdecode(path)),
            operation=operation,
            is_directory=is_directory,
            timestamp=time.time(),
        )
        self.events.put(event)
        self.wakeup.set()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _ACCESS_EVENTS:
            return
        operation = _OPERATIONS.get(event.event_type, Operation.OTHER)
        self._emit(event.src_path, operation, event.is_directory)
        
        # A rename is reported as the old name going away plus a new name appearing
        if event.event_type == EVENT_TYPE_MOVED and event.dest_path:
            self._emit(event.dest_path, Operation.CREATE, event.is_directory)


class ObserverHandle(WatchHandle):
    """
    Watch handle backed by a single watchdog observer.
    
    Every registered path gets its own non-recursive scheduled watch.
    """

    def __init__(self, wakeup: threading.Event, logger: Optional[logging.Logger] = None):
        """
        Start the observer thread.
        
        Args:
            wakeup: Event to set whenever an event or error is queued
            logger: Logger for diagnostics
            
        Raises:
            PrimitiveError: If the observer cannot be started
        """
        self.events: "queue.Queue[Event]" = queue.Queue()
        self.errors: "queue.Queue[Exception]" = queue.Queue()
        self.wakeup = wakeup
        self._logger = logger or logging.getLogger(__name__)
        self._handler = FSEventHandler(self.events, wakeup)
        self._watches: Dict[Path, ObservedWatch] = {}
        self._reported: Set[Path] = set()
        self._closed = False
        
        try:
            self._observer = Observer()
            self._observer.daemon = True
            self._observer.start()
        except (OSError, RuntimeError) as e:
            raise PrimitiveError(f"Failed to start observer: {e}") from e

    def register(self, path: Path) -> None:
        if self._closed:
            raise RegistrationError(f"Handle is closed, cannot watch {path}")
        if path in self._watches:
            return
        
        try:
            watch = self._observer.schedule(self._handler, str(path), recursive=False)
        except OSError as e:
            raise RegistrationError(f"Cannot watch {path}: {e}") from e
        
        self._watches[path] = watch
        self._reported.discard(path)

    def unregister(self, path: Path) -> None:
        watch = self._watches.pop(path, None)
        self._reported.discard(path)
        if watch is None or self._closed:
            return
        
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as e:
            self._logger.debug(f"Unschedule of {path} failed: {e}")

    def check(self) -> None:
        if self._closed:
            return
        if not self._observer.is_alive():
            raise PrimitiveError("Observer thread has stopped")
        
        for emitter in list(self._observer.emitters):
            path = Path(os.fsdecode(emitter.watch.path))
            if emitter.is_alive() or path in self._reported or path not in self._watches:
                continue
            self._reported.add(path)
            if path.exists():
                self.errors.put(PrimitiveError(f"Watch on {path} stopped unexpectedly"))
                self.wakeup.set()

    def watched(self) -> Set[Path]:
        """Return the set of paths with a scheduled watch."""
        return set(self._watches)

    def close(self) -> None:
        if self._closed:
            return
        
        self._closed = True
        self._watches.clear()
        self._observer.stop()
        self._observer.join(timeout=5.0)


class ObserverPrimitive(WatchPrimitive):
    """Opens watchdog backed handles."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

    def open(self, wakeup: threading.Event) -> WatchHandle:
        return ObserverHandle(wakeup, self._logger)
