"""Configuration for the dirwatch package."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .exceptions import ConfigurationError


@dataclass
class WatcherConfig:
    """
    Configuration options for the directory watcher.
    
    Attributes:
        exclude: Glob patterns for paths that are never watched or reported
        recursive: Whether paths are watched recursively unless told otherwise
        restart_delay: Seconds to wait before restarting a crashed agent
        startup_grace_ms: Maximum time the constructor waits for the agent to run
        command_buffer: Capacity of the command queue (1 is a plain hand-off)
        poll_interval_ms: Slice length for waits that must observe cancellation
        notify_workers: Number of threads dispatching events to the callback
        join_timeout: Seconds stop() waits for background threads
    """
    exclude: List[str] = field(default_factory=list)
    recursive: bool = True
    restart_delay: float = 1.0
    startup_grace_ms: int = 500
    command_buffer: int = 1
    poll_interval_ms: int = 50
    notify_workers: int = 4
    join_timeout: float = 5.0

    def __post_init__(self):
        if isinstance(self.exclude, str):
            self.exclude = [self.exclude]
        else:
            self.exclude = list(self.exclude)
        if self.restart_delay < 0:
            raise ConfigurationError(f"restart_delay must be >= 0: {self.restart_delay}")
        if self.startup_grace_ms < 0:
            raise ConfigurationError(f"startup_grace_ms must be >= 0: {self.startup_grace_ms}")
        if self.command_buffer < 1:
            raise ConfigurationError(f"command_buffer must be >= 1: {self.command_buffer}")
        if self.poll_interval_ms <= 0:
            raise ConfigurationError(f"poll_interval_ms must be > 0: {self.poll_interval_ms}")
        if self.notify_workers < 1:
            raise ConfigurationError(f"notify_workers must be >= 1: {self.notify_workers}")

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def startup_grace(self) -> float:
        return self.startup_grace_ms / 1000.0

    def should_exclude(self, path: Path) -> bool:
        """
        Check if a path is excluded by the configured patterns.
        
        Args:
            path: Path to check
            
        Returns:
            True if the path should be ignored
        """
        from .matcher import ExclusionMatcher
        
        return ExclusionMatcher(self.exclude).excluded(path)
