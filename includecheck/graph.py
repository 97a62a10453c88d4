"""Include path resolution and the inclusion graph."""

from __future__ import annotations

import posixpath
import threading
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .logging import get_logger
from .models import IncludeDirective, InclusionEdge
from .readers import FileReader, canonical_path

logger = get_logger("graph")


class IncludeResolver:
    """Maps written include paths onto canonical file identities.

    Quoted includes are looked up next to the including file first, then on
    each search path in order; ``<system>`` includes only on the search paths.
    """

    def __init__(self, reader: FileReader, search_paths: Sequence[str]) -> None:
        self.reader = reader
        self.search_paths = [canonical_path(path) for path in search_paths]
        self._exists: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def resolve(self, including: str, directive: IncludeDirective) -> Optional[str]:
        written = directive.written_path.replace("\\", "/")
        if posixpath.isabs(written):
            candidate = canonical_path(written)
            return candidate if self._is_file(candidate) else None

        directories: List[str] = []
        if not directive.is_system:
            directories.append(posixpath.dirname(including))
        directories.extend(self.search_paths)
        for directory in directories:
            candidate = canonical_path(posixpath.join(directory, written))
            if self._is_file(candidate):
                return candidate
        return None

    def edges_for(self, including: str, directives: Iterable[IncludeDirective]) -> List[InclusionEdge]:
        edges: List[InclusionEdge] = []
        for directive in directives:
            target = self.resolve(including, directive)
            if target is None:
                logger.debug("%s:%d: cannot resolve %s", including, directive.line, directive.written_path)
            edges.append(
                InclusionEdge(
                    source=including,
                    written_path=directive.written_path,
                    line=directive.line,
                    is_system=directive.is_system,
                    target=target,
                )
            )
        return edges

    def _is_file(self, candidate: str) -> bool:
        with self._lock:
            known = self._exists.get(candidate)
        if known is None:
            known = self.reader.read(candidate) is not None
            with self._lock:
                self._exists[candidate] = known
        return known


class InclusionGraph:
    """Per-file ordered inclusion edges. Cycles are allowed."""

    def __init__(self, edges: Mapping[str, Sequence[InclusionEdge]]) -> None:
        self._edges: Dict[str, Tuple[InclusionEdge, ...]] = {
            path: tuple(items) for path, items in edges.items()
        }

    def edges(self, path: str) -> Tuple[InclusionEdge, ...]:
        return self._edges.get(path, ())

    def targets(self, path: str) -> List[str]:
        """Resolved direct inclusions of ``path`` in directive order, without repeats."""
        seen: Dict[str, None] = {}
        for edge in self.edges(path):
            if edge.target is not None:
                seen.setdefault(edge.target, None)
        return list(seen)

    def closure(self, start: str, expand: Callable[[str], bool] = lambda _path: True) -> List[str]:
        """Files reachable from ``start`` (itself excluded) in breadth-first order.

        A reached file's own inclusions are followed only when ``expand``
        accepts it. Every file is visited at most once, so cycles terminate.
        """
        visited: Set[str] = {start}
        order: List[str] = []
        queue: Deque[str] = deque([start])
        while queue:
            current = queue.popleft()
            for target in self.targets(current):
                if target in visited:
                    continue
                visited.add(target)
                order.append(target)
                if expand(target):
                    queue.append(target)
        return order


__all__ = ["IncludeResolver", "InclusionGraph"]
