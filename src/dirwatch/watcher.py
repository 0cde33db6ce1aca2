"""Public entry point: recursive directory watcher."""

import dataclasses
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .agent import WatchAgent
from .config import WatcherConfig
from .exceptions import ConfigurationError, WatcherError, WatcherNotRunningError
from .fs_watcher import ObserverPrimitive, WatchPrimitive
from .models import AgentState, Command, Event, canonical_path
from .queue import CommandQueue
from .registry import PathRegistry
from .supervisor import Supervisor


class DirWatcher:
    """
    Watches directories and all of their present and future subdirectories.

    Every change the underlying primitive reports for a non-excluded path is
    passed to the notify callback on a worker thread. New directories are
    brought under watch as they appear and deleted ones are forgotten.

    Example:
        def on_change(event):
            print(event.operation, event.path)

        with DirWatcher(on_change, "/project", exclude=["/project/.git"]) as w:
            w.add("/other/file.txt", recursive=False)
            ...
    """

    def __init__(
        self,
        notify: Callable[[Event], None],
        *paths,
        exclude: Iterable[str] = (),
        recursive: Optional[bool] = None,
        config: Optional[WatcherConfig] = None,
        logger: Optional[logging.Logger] = None,
        primitive: Optional[WatchPrimitive] = None,
    ):
        """
        Start watching.

        Args:
            notify: Callback receiving each Event
            *paths: Initial paths to watch
            exclude: Glob patterns added to config.exclude
            recursive: Whether the initial paths are watched recursively
                (default: config.recursive)
            config: Watcher configuration
            logger: Logger used by every component
            primitive: Watch primitive (default: watchdog observer)

        Raises:
            ConfigurationError: If notify is missing or not callable
        """
        if notify is None or not callable(notify):
            raise ConfigurationError("notify callback is required")

        config = config or WatcherConfig()
        if exclude:
            extra = [exclude] if isinstance(exclude, str) else list(exclude)
            config = dataclasses.replace(config, exclude=config.exclude + extra)
        self.config = config
        self.notify = notify
        self._logger = logger or logging.getLogger(__name__)

        self._stopped = threading.Event()
        self._stop_lock = threading.Lock()
        self._stop_called = False
        self._commands = CommandQueue(
            maxsize=self.config.command_buffer,
            wakeup=threading.Event(),
            poll_interval=self.config.poll_interval,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.notify_workers,
            thread_name_prefix="dirwatch-notify",
        )
        self._agent = WatchAgent(
            notify,
            self._commands,
            self._stopped,
            self._executor,
            primitive or ObserverPrimitive(self._logger),
            config=self.config,
            registry=PathRegistry(),
            logger=self._logger,
        )
        self._supervisor = Supervisor(
            self._agent.run,
            self._stopped,
            restart_delay=self.config.restart_delay,
            logger=self._logger,
            name="watch agent",
            on_restart=self._on_restart,
        )
        self._thread = threading.Thread(
            target=self._supervisor.run,
            name="DirWatcherAgent",
            daemon=True,
        )
        self._thread.start()

        # Give the agent a chance to open the primitive before the first add
        if not self._agent.wait_running(self.config.startup_grace):
            self._logger.warning("Watch agent not running after startup grace period")

        if recursive is None:
            recursive = self.config.recursive
        for path in paths:
            self.add(path, recursive)

    def _on_restart(self, count: int) -> None:
        self._logger.info(f"Restarting watch agent (restart #{count})")

    def add(self, path, recursive: Optional[bool] = None) -> bool:
        """
        Queue a path to be watched.

        Returns once the agent has accepted the command, not once the path is
        registered.

        Args:
            path: File or directory, relative paths are resolved against the cwd
            recursive: Also watch subdirectories (default: config.recursive)

        Returns:
            True if the command was accepted, False if the path is empty or
            the watcher was stopped
        """
        resolved = canonical_path(path)
        if resolved is None:
            return False
        if recursive is None:
            recursive = self.config.recursive

        return self._commands.send(Command.add(resolved, recursive=recursive), self._stopped)

    def watched_paths(self, timeout: float = 5.0) -> List[Path]:
        """
        Get the paths currently registered with the watch primitive.

        Args:
            timeout: Seconds to wait for the agent to answer

        Returns:
            Sorted list of watched paths

        Raises:
            WatcherNotRunningError: If the watcher was stopped
            WatcherError: If the agent did not answer in time
        """
        command = Command.snapshot()
        if not self._commands.send(command, self._stopped):
            raise WatcherNotRunningError("Watcher is stopped")

        try:
            entries = command.reply.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise WatcherError(f"No registry snapshot within {timeout}s") from e
        return sorted(entry.path for entry in entries)

    def is_watching(self, path, timeout: float = 5.0) -> bool:
        """Check if a path is currently registered with the watch primitive."""
        return canonical_path(path) in self.watched_paths(timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop watching and release all resources.

        Safe to call more than once.

        Args:
            timeout: Seconds to wait for the agent thread (default: config.join_timeout)
        """
        with self._stop_lock:
            if self._stop_called:
                return
            self._stop_called = True

        self._logger.info("Stopping directory watcher")
        self._stopped.set()
        self._commands.offer(Command.stop())
        self._commands.wakeup.set()

        if threading.current_thread() is not self._thread:
            self._thread.join(timeout if timeout is not None else self.config.join_timeout)
            if not self._agent.join_enumerators(self.config.join_timeout):
                self._logger.warning("Tree enumerators still running after stop")
        self._executor.shutdown(wait=False)
        self._commands.drain()

    @property
    def state(self) -> AgentState:
        return self._agent.state

    @property
    def is_running(self) -> bool:
        return not self._stopped.is_set() and self._agent.state == AgentState.RUNNING

    @property
    def restarts(self) -> int:
        return self._supervisor.restarts

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
