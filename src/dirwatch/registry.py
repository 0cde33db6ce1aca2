"""In-memory registry of watched paths."""

from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .models import WatchedPath


class PathRegistry:
    """
    Mapping of canonical absolute path to watch metadata.
    
    Owned by the watch agent's thread. There is no locking: nothing outside
    that thread may call into the registry.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._paths: Dict[Path, WatchedPath] = {}

    def has(self, path: Path) -> bool:
        """
        Check if a path is registered.
        
        Args:
            path: Canonical path to check
            
        Returns:
            True if the path has an entry
        """
        return path in self._paths

    def get(self, path: Path) -> Optional[WatchedPath]:
        """Return the entry for a path, or None."""
        return self._paths.get(path)

    def put(self, path: Path, recursive: bool) -> WatchedPath:
        """
        Record a path as watched, replacing any previous entry.
        
        Args:
            path: Canonical path
            recursive: Whether new subdirectories should be watched too
            
        Returns:
            The stored entry
        """
        entry = WatchedPath(path=path, recursive=recursive)
        self._paths[path] = entry
        return entry

    def remove(self, path: Path) -> bool:
        """
        Forget a path.
        
        Args:
            path: Canonical path
            
        Returns:
            True if the path was registered
        """
        return self._paths.pop(path, None) is not None

    def is_recursive(self, path: Path) -> bool:
        """Return True if the path is registered with the recursive flag."""
        entry = self._paths.get(path)
        return entry is not None and entry.recursive

    def descendants(self, path: Path) -> List[WatchedPath]:
        """
        Get the entries located strictly below a path.
        
        Args:
            path: Canonical path
            
        Returns:
            List of entries under path
        """
        found = []
        for candidate, entry in self._paths.items():
            if candidate != path and path in candidate.parents:
                found.append(entry)
        return found

    def roots(self) -> List[WatchedPath]:
        """
        Get the entries not covered by a recursive parent entry.
        
        Returns:
            List of top-level entries
        """
        return [
            entry for path, entry in self._paths.items()
            if not self.is_recursive(path.parent) or path.parent == path
        ]

    def snapshot(self) -> List[WatchedPath]:
        """Return a copy of every entry."""
        return list(self._paths.values())

    def clear(self) -> int:
        """
        Remove all entries.
        
        Returns:
            Number of entries removed
        """
        count = len(self._paths)
        self._paths.clear()
        return count

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: Path) -> bool:
        return self.has(path)

    def __iter__(self) -> Iterator[WatchedPath]:
        return iter(list(self._paths.values()))
