"""Data models for the dirwatch package."""

from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import os
import time


class Operation(Enum):
    """Kinds of change reported by the watch primitive."""
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    CHMOD = "chmod"
    OTHER = "other"


class CommandType(Enum):
    """Types of commands accepted by the watch agent."""
    ADD = "add"
    STOP = "stop"
    SNAPSHOT = "snapshot"


class AgentState(Enum):
    """Lifecycle states of the watch agent."""
    STARTING = "starting"
    RUNNING = "running"
    CRASHED = "crashed"
    RESTARTING = "restarting"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Event:
    """
    A single file system notification.
    
    Attributes:
        path: Absolute path the notification is about
        operation: What happened to the path
        is_directory: Whether the primitive reported the path as a directory
        timestamp: Unix timestamp when the event was received
    """
    path: Path
    operation: Operation
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": str(self.path),
            "operation": self.operation.value,
            "is_directory": self.is_directory,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class WatchedPath:
    """
    A path registered with the watch primitive.
    
    Attributes:
        path: Canonical absolute path
        recursive: Whether new subdirectories should come under watch
    """
    path: Path
    recursive: bool = False


@dataclass
class Command:
    """
    Message sent to the watch agent.
    
    Attributes:
        command_type: The type of command
        path: Path to add (ADD only)
        recursive: Recursive flag for the path; None inherits it from the parent
        scan: Whether a recursive directory add enumerates its existing subtree
        reply: Future resolved with the registry contents (SNAPSHOT only)
    """
    command_type: CommandType
    path: Optional[Path] = None
    recursive: Optional[bool] = None
    scan: bool = True
    reply: Optional[Future] = None

    @classmethod
    def add(cls, path: Path, recursive: Optional[bool] = None, scan: bool = True) -> "Command":
        return cls(CommandType.ADD, path=path, recursive=recursive, scan=scan)

    @classmethod
    def stop(cls) -> "Command":
        return cls(CommandType.STOP)

    @classmethod
    def snapshot(cls) -> "Command":
        return cls(CommandType.SNAPSHOT, reply=Future())


def canonical_path(path) -> Optional[Path]:
    """
    Turn a user supplied path into its canonical absolute form.
    
    Relative segments are collapsed and case is normalized where the
    platform is case-insensitive. Symlinks are left alone.
    
    Args:
        path: str or Path, possibly relative or starting with ~
        
    Returns:
        The absolute path, or None for an empty path
    """
    if path is None:
        return None
    path = os.fspath(path)
    if not path.strip():
        return None
    return Path(os.path.normcase(os.path.abspath(os.path.expanduser(path))))
