"""Custom exceptions for the dirwatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class ConfigurationError(WatcherError):
    """Watcher was constructed with invalid options."""
    pass


class PrimitiveError(WatcherError):
    """The underlying watch primitive cannot be opened or has died."""
    pass


class RegistrationError(WatcherError):
    """The watch primitive refused to watch a path."""
    pass


class PatternError(WatcherError):
    """An exclusion glob pattern is malformed."""
    pass


class WatcherNotRunningError(WatcherError):
    """Watcher has been stopped."""
    pass
