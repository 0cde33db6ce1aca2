"""Glob based path exclusion."""

import logging
import os
import re
from typing import Iterable, List, Optional, Tuple

from .exceptions import PatternError


def _class_char(segment: str, i: int) -> Tuple[str, int]:
    """Read one possibly escaped character of a class, returning it and the next index."""
    if i >= len(segment):
        raise PatternError(f"unterminated character class in {segment!r}")
    c = segment[i]
    if c in "-]":
        raise PatternError(f"bad character class in {segment!r}")
    if c == "\\":
        i += 1
        if i >= len(segment):
            raise PatternError(f"trailing escape in {segment!r}")
        c = segment[i]
    return c, i + 1


def _translate_class(segment: str, i: int) -> Tuple[str, int]:
    """Translate the class starting after ``[`` at index i."""
    n = len(segment)
    negate = i < n and segment[i] in "^!"
    if negate:
        i += 1

    items = []
    while True:
        if i >= n:
            raise PatternError(f"unterminated character class in {segment!r}")
        if segment[i] == "]" and items:
            i += 1
            break
        lo, i = _class_char(segment, i)
        hi = lo
        if i < n and segment[i] == "-":
            hi, i = _class_char(segment, i + 1)
            if hi < lo:
                raise PatternError(f"bad range {lo}-{hi} in {segment!r}")
        items.append(re.escape(lo) if lo == hi else f"{re.escape(lo)}-{re.escape(hi)}")

    return "[" + ("^" if negate else "") + "".join(items) + "]", i


def _compile_segment(segment: str) -> "re.Pattern":
    """
    Compile one separator-free glob segment.

    ``\\`` escapes the next character and a class is negated by a leading
    ``^`` or ``!``.

    Raises:
        PatternError: If the segment is malformed
    """
    out = []
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        if c == "*":
            out.append(".*")
            i += 1
        elif c == "?":
            out.append(".")
            i += 1
        elif c == "[":
            translated, i = _translate_class(segment, i + 1)
            out.append(translated)
        elif c == "\\":
            if i + 1 >= n:
                raise PatternError(f"trailing escape in {segment!r}")
            out.append(re.escape(segment[i + 1]))
            i += 2
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("(?s:" + "".join(out) + r")\Z")


def _split(path: str) -> List[str]:
    return path.replace(os.sep, "/").split("/")


class ExclusionMatcher:
    """
    Decides whether a path is excluded by a set of glob patterns.
    
    Patterns are matched against the whole path. ``*``, ``?`` and ``[...]``
    never match a path separator, and ``**`` is just two stars.
    """

    def __init__(self, patterns: Iterable[str] = (), logger: Optional[logging.Logger] = None):
        """
        Initialize the matcher.
        
        Args:
            patterns: Ordered glob patterns
            logger: Logger for pattern errors
        """
        self._logger = logger or logging.getLogger(__name__)
        self._patterns: Tuple[str, ...] = tuple(patterns)
        self._compiled: List[Tuple[str, List["re.Pattern"]]] = []
        
        for pattern in self._patterns:
            try:
                segments = [_compile_segment(s) for s in _split(pattern)]
            except PatternError as e:
                self._logger.warning(f"Ignoring exclusion pattern: {e}")
                continue
            self._compiled.append((pattern, segments))

    @property
    def patterns(self) -> Tuple[str, ...]:
        return self._patterns

    def excluded(self, path) -> bool:
        """
        Check whether a path matches any exclusion pattern.
        
        Args:
            path: Path to check
            
        Returns:
            True if at least one pattern matches
        """
        if not self._compiled:
            return False
        
        parts = _split(str(path))
        for pattern, segments in self._compiled:
            if len(segments) != len(parts):
                continue
            if all(seg.match(part) for seg, part in zip(segments, parts)):
                self._logger.debug(f"{path} excluded by {pattern!r}")
                return True
        return False

    def __len__(self) -> int:
        return len(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._compiled)
