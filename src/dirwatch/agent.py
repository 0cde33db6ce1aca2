"""The watch agent: single-threaded owner of the registry and the primitive handle."""

import logging
import queue
import stat
import threading
import time
from collections import deque
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple

from .config import WatcherConfig
from .exceptions import PrimitiveError, RegistrationError
from .fs_watcher import WatchHandle, WatchPrimitive
from .matcher import ExclusionMatcher
from .models import AgentState, Command, CommandType, Event, canonical_path
from .queue import CommandQueue
from .registry import PathRegistry
from .tree import TreeEnumerator

# Message kinds handled by the select loop
_BACKLOG = "backlog"
_COMMAND = "command"
_EVENT = "event"
_ERROR = "error"


def _stat_is_dir(path: Path) -> bool:
    """
    Stat a path.

    Returns:
        True if the path is a directory

    Raises:
        OSError: If the path cannot be statted
    """
    return stat.S_ISDIR(path.stat().st_mode)


def _is_not_found(error: OSError) -> bool:
    return isinstance(error, (FileNotFoundError, NotADirectoryError))


class WatchAgent:
    """
    Drives the watch primitive and keeps the registry in sync with the disk.

    Each call to run() is one incarnation: it opens a fresh primitive handle,
    re-registers what the previous incarnation knew about, then services
    commands, events and primitive errors one at a time until stopped. All
    registry mutations happen on the thread executing run().
    """

    def __init__(
        self,
        notify: Callable[[Event], None],
        commands: CommandQueue,
        stopped: threading.Event,
        executor: Executor,
        primitive: WatchPrimitive,
        config: Optional[WatcherConfig] = None,
        registry: Optional[PathRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the agent.

        Args:
            notify: Callback receiving every non-excluded event
            commands: Queue of commands from callers and enumerators
            stopped: Shared cancellation signal
            executor: Executor used to run the callback off the agent thread
            primitive: Factory for watch handles
            config: Watcher configuration
            registry: Registry to own (kept across incarnations)
            logger: Logger for diagnostics
        """
        self.notify = notify
        self.commands = commands
        self.stopped = stopped
        self.executor = executor
        self.primitive = primitive
        self.config = config or WatcherConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._registry = registry if registry is not None else PathRegistry()
        self._matcher = ExclusionMatcher(self.config.exclude, self._logger)

        self._state = AgentState.STARTING
        self._running = threading.Event()
        self._incarnations = 0
        self._turn = 0
        self._backlog: Deque[Command] = deque()
        self._enumerators: List[TreeEnumerator] = []

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def registry(self) -> PathRegistry:
        return self._registry

    @property
    def incarnations(self) -> int:
        return self._incarnations

    def wait_running(self, timeout: Optional[float] = None) -> bool:
        """
        Block until an incarnation reaches RUNNING.

        Returns:
            True if the agent is running
        """
        return self._running.wait(timeout)

    def join_enumerators(self, timeout: float) -> bool:
        """
        Wait for running tree enumerators to exit.

        Returns:
            True if none is still alive
        """
        deadline = time.monotonic() + timeout
        for enumerator in list(self._enumerators):
            enumerator.join(max(0.0, deadline - time.monotonic()))
        return not any(e.is_alive() for e in self._enumerators)

    def run(self) -> None:
        """
        Run one incarnation until stopped.

        Raises:
            PrimitiveError: If the primitive cannot be opened or dies
        """
        self._state = AgentState.STARTING if self._incarnations == 0 else AgentState.RESTARTING
        self._incarnations += 1
        self._running.clear()

        try:
            handle = self.primitive.open(self.commands.wakeup)
        except PrimitiveError:
            self._state = AgentState.CRASHED
            raise

        try:
            self._reseed()
            self._state = AgentState.RUNNING
            self._running.set()
            self._logger.info(f"Watch agent running (incarnation {self._incarnations})")
            self._loop(handle)
        except Exception:
            self._state = AgentState.CRASHED
            raise
        finally:
            self._running.clear()
            handle.close()

        self._state = AgentState.STOPPED
        self._logger.info("Watch agent stopped")

    def _reseed(self) -> None:
        """Queue re-registration of everything a previous incarnation watched."""
        self._backlog.clear()
        known = self._registry.snapshot()
        if not known:
            return

        roots = {entry.path for entry in self._registry.roots()}
        self._registry.clear()
        self._logger.info(f"Re-registering {len(known)} previously watched path(s)")

        for entry in known:
            if entry.recursive and entry.path in roots:
                self._enumerate(entry.path, include_root=True)
            elif not entry.recursive:
                self._backlog.append(Command.add(entry.path, recursive=False, scan=False))

    def _enumerate(self, root: Path, include_root: bool) -> None:
        """Start a producer thread queueing Adds for the directories below root."""
        self._enumerators = [e for e in self._enumerators if e.is_alive()]
        enumerator = TreeEnumerator(
            root,
            self.commands,
            self.stopped,
            include_root=include_root,
            recursive=True,
            prune=self._matcher.excluded,
            logger=self._logger,
        )
        self._enumerators.append(enumerator.start())

    def _loop(self, handle: WatchHandle) -> None:
        """Service one message at a time until stopped."""
        while True:
            message = self._next_message(handle)
            if message is None:
                return

            kind, item = message
            if kind == _EVENT:
                self._on_event(handle, item)
            elif kind == _ERROR:
                self._logger.warning(f"Watch primitive error: {item}")
            else:
                if item.command_type == CommandType.STOP:
                    self.stopped.set()
                    return
                if item.command_type == CommandType.SNAPSHOT:
                    if item.reply is not None and not item.reply.done():
                        item.reply.set_result(self._registry.snapshot())
                    continue
                self._on_add(handle, item)

    def _sources(self, handle: WatchHandle) -> List[Tuple[str, Callable[[], object]]]:
        return [
            (_BACKLOG, lambda: self._backlog.popleft() if self._backlog else None),
            (_COMMAND, self.commands.receive_nowait),
            (_EVENT, lambda: _get_nowait(handle.events)),
            (_ERROR, lambda: _get_nowait(handle.errors)),
        ]

    def _next_message(self, handle: WatchHandle) -> Optional[Tuple[str, object]]:
        """
        Wait for the next message from any source.

        The starting source rotates on every call so a busy source cannot
        starve the others.

        Returns:
            (kind, item), or None once stopped
        """
        sources = self._sources(handle)
        wakeup = self.commands.wakeup

        while not self.stopped.is_set():
            # Clear before polling so a put racing with the poll is not lost
            wakeup.clear()
            for offset in range(len(sources)):
                kind, take = sources[(self._turn + offset) % len(sources)]
                item = take()
                if item is not None:
                    self._turn += 1
                    if kind == _BACKLOG:
                        kind = _COMMAND
                    return kind, item

            handle.check()
            wakeup.wait(self.config.poll_interval)
        return None

    def _on_add(self, handle: WatchHandle, command: Command) -> None:
        """Register a path, and schedule its subtree when recursive."""
        path = canonical_path(command.path)
        if path is None:
            return

        try:
            is_dir = _stat_is_dir(path)
        except OSError as e:
            if _is_not_found(e):
                self._forget(handle, path)
            else:
                self._logger.warning(f"Cannot stat {path}: {e}")
            return

        if self._registry.has(path):
            return
        if self._matcher.excluded(path):
            return

        try:
            handle.register(path)
        except RegistrationError as e:
            self._logger.warning(f"Failed to watch {path}: {e}")
            return

        recursive = command.recursive
        if recursive is None:
            recursive = self._registry.is_recursive(path.parent)
        self._registry.put(path, recursive)
        self._logger.debug(f"Watching {path} (recursive={recursive})")

        if is_dir and recursive and command.scan:
            self._enumerate(path, include_root=False)

    def _on_event(self, handle: WatchHandle, event: Event) -> None:
        """Forward an event and keep the registry in step with it."""
        if self._matcher.excluded(event.path):
            return

        self._dispatch(event)

        path = event.path
        try:
            is_dir = _stat_is_dir(path)
        except OSError as e:
            if _is_not_found(e):
                self._forget(handle, path)
            else:
                self._logger.warning(f"Cannot stat {path}: {e}")
            return

        if is_dir and not self._registry.has(path):
            self._backlog.append(Command.add(path, recursive=None, scan=True))

    def _forget(self, handle: WatchHandle, path: Path) -> None:
        """Drop a vanished path and any registered descendants that vanished with it."""
        stale = [path] if self._registry.has(path) else []
        for entry in self._registry.descendants(path):
            if not entry.path.exists():
                stale.append(entry.path)

        for gone in stale:
            self._registry.remove(gone)
            handle.unregister(gone)
            self._logger.debug(f"Stopped watching {gone}")

    def _dispatch(self, event: Event) -> None:
        """Hand an event to the callback without waiting for it."""
        try:
            self.executor.submit(self._safe_notify, event)
        except RuntimeError:
            if not self.stopped.is_set():
                raise

    def _safe_notify(self, event: Event) -> None:
        try:
            self.notify(event)
        except Exception:
            self._logger.error(f"Notify callback failed for {event.path}", exc_info=True)


def _get_nowait(q: queue.Queue):
    try:
        return q.get_nowait()
    except queue.Empty:
        return None
