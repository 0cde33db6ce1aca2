"""Lazy directory tree enumeration."""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional

from .models import Command
from .queue import CommandQueue


def walk_dirs(
    root: Path,
    include_root: bool = True,
    on_error: Optional[Callable[[OSError], None]] = None,
    prune: Optional[Callable[[Path], bool]] = None,
) -> Iterator[Path]:
    """
    Lazily yield the directories under a root.
    
    If root is not a directory, root itself is the only item. Symlinked
    directories are not followed. Errors are reported through on_error and
    do not stop the walk of sibling subtrees.
    
    Args:
        root: Path to walk
        include_root: Whether to yield root itself when it is a directory
        on_error: Called with each OSError raised while walking
        prune: Directories for which this returns True are skipped along
            with everything below them
        
    Yields:
        Directory paths in no particular order
    """
    try:
        is_dir = root.is_dir()
        if not is_dir:
            root.stat()
    except OSError as e:
        if on_error:
            on_error(e)
        return
    
    if not is_dir:
        yield root
        return
    
    if include_root:
        yield root
    
    for dirpath, dirnames, _ in os.walk(root, onerror=on_error, followlinks=False):
        base = Path(dirpath)
        kept = []
        for name in dirnames:
            path = base / name
            if path.is_symlink():
                continue
            if prune and prune(path):
                continue
            kept.append(name)
            yield path
        dirnames[:] = kept


class TreeEnumerator:
    """
    Feeds every directory under a root into the command queue.
    
    Runs in its own thread. The queue is bounded, so the walk only advances
    as fast as the agent accepts commands, and it is abandoned as soon as the
    stop signal is set.
    """

    def __init__(
        self,
        root: Path,
        sink: CommandQueue,
        stopped: threading.Event,
        include_root: bool = False,
        recursive: bool = True,
        prune: Optional[Callable[[Path], bool]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the enumerator.
        
        Args:
            root: Path to enumerate
            sink: Queue receiving one ADD command per directory
            stopped: Cancellation signal
            include_root: Whether root itself is sent
            recursive: Recursive flag carried by the generated commands
            prune: Predicate for directories whose subtrees are skipped
            logger: Logger for walk errors
        """
        self.root = root
        self.sink = sink
        self.stopped = stopped
        self.include_root = include_root
        self.recursive = recursive
        self.prune = prune
        self.produced = 0
        self._logger = logger or logging.getLogger(__name__)
        self._thread = threading.Thread(
            target=self._run,
            name=f"TreeEnumerator-{root.name or root}",
            daemon=True,
        )

    def _on_error(self, error: OSError) -> None:
        self._logger.warning(f"Error walking {self.root}: {error}")

    def _run(self) -> None:
        self._logger.debug(f"Enumerating {self.root} (include_root={self.include_root})")
        for path in walk_dirs(self.root, self.include_root, self._on_error, self.prune):
            # Descendants are covered by this walk, so no further scans.
            command = Command.add(path, recursive=self.recursive, scan=False)
            if not self.sink.send(command, self.stopped):
                self._logger.debug(f"Enumeration of {self.root} abandoned")
                return
            self.produced += 1
        self._logger.debug(f"Enumerated {self.produced} path(s) under {self.root}")

    def start(self) -> "TreeEnumerator":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()
