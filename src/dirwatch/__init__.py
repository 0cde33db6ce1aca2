"""
dirwatch

Recursive, self-adjusting directory watching on top of a non-recursive
file system notification primitive.

Features:
- Watches roots and all present and future subdirectories
- Glob based exclusion of paths
- Newly created directories are watched as they appear, deleted ones forgotten
- The watch agent is restarted automatically if the primitive fails
"""

from .models import (
    Operation,
    Event,
    CommandType,
    Command,
    WatchedPath,
    AgentState,
    canonical_path,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    ConfigurationError,
    PrimitiveError,
    RegistrationError,
    PatternError,
    WatcherNotRunningError,
)

from .matcher import ExclusionMatcher
from .tree import TreeEnumerator, walk_dirs
from .registry import PathRegistry
from .queue import CommandQueue
from .fs_watcher import (
    WatchPrimitive,
    WatchHandle,
    ObserverPrimitive,
    ObserverHandle,
    FSEventHandler,
)
from .agent import WatchAgent
from .supervisor import Supervisor
from .watcher import DirWatcher


__all__ = [
    # Models
    "Operation",
    "Event",
    "CommandType",
    "Command",
    "WatchedPath",
    "AgentState",
    "canonical_path",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "ConfigurationError",
    "PrimitiveError",
    "RegistrationError",
    "PatternError",
    "WatcherNotRunningError",
    # Components
    "ExclusionMatcher",
    "TreeEnumerator",
    "walk_dirs",
    "PathRegistry",
    "CommandQueue",
    "WatchPrimitive",
    "WatchHandle",
    "ObserverPrimitive",
    "ObserverHandle",
    "FSEventHandler",
    "WatchAgent",
    "Supervisor",
    # Main entry point
    "DirWatcher",
]

__version__ = "0.1.0"
