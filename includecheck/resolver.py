"""Per-edge necessity verdicts."""

from __future__ import annotations

import posixpath
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import CheckerConfig, IgnoredInclusion
from .diagnostics import Diagnostic, UnresolvedInclusion, UnusedInclusion
from .graph import InclusionGraph
from .logging import get_logger
from .models import FileRole, InclusionEdge, SourceFile
from .roles import path_matches
from .usage import UsageResult

logger = get_logger("resolver")


@dataclass(frozen=True)
class EdgeVerdict:
    """Why an edge was kept (``used``) or reported."""

    edge: InclusionEdge
    used: bool
    reason: str
    evidence: Tuple[str, ...] = ()


class NecessityResolver:
    """Decides, for each directive of a checked file, whether it is needed."""

    def __init__(
        self,
        graph: InclusionGraph,
        roles: Mapping[str, FileRole],
        *,
        ignored_inclusions: Sequence[IgnoredInclusion] = (),
        ignored_headers: Sequence[str] = (),
        skip_extensions: Sequence[str] = (),
        match_header_basename: bool = True,
    ) -> None:
        self.graph = graph
        self.roles = roles
        self.ignored_inclusions = tuple(ignored_inclusions)
        self.skip_extensions = frozenset(ext.lower() for ext in skip_extensions)
        self.match_header_basename = match_header_basename
        self.ignored_headers = tuple(ignored_headers)
        self._closures: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls, graph: InclusionGraph, roles: Mapping[str, FileRole], config: CheckerConfig
    ) -> "NecessityResolver":
        return cls(
            graph,
            roles,
            ignored_inclusions=config.ignored_inclusions,
            ignored_headers=config.ignored_files,
            skip_extensions=config.skip_extensions,
            match_header_basename=config.match_header_basename,
        )

    def role_of(self, path: str) -> FileRole:
        return self.roles.get(path, FileRole.NORMAL)

    def interface_closure(self, interface: str) -> Tuple[str, ...]:
        """Files whose direct tags stand in for ``interface``.

        That is the interface itself plus everything reachable through
        interface files; Normal members are not expanded and Ignored members
        contribute nothing.
        """
        with self._lock:
            cached = self._closures.get(interface)
        if cached is not None:
            return cached
        reachable = self.graph.closure(
            interface, expand=lambda path: self.role_of(path) is FileRole.INTERFACE
        )
        members = tuple(
            path for path in [interface, *reachable] if self.role_of(path) is not FileRole.IGNORED
        )
        with self._lock:
            self._closures[interface] = members
        return members

    def verdict(self, source: SourceFile, edge: InclusionEdge, usage: UsageResult) -> EdgeVerdict:
        target = edge.target
        if target is None:
            return EdgeVerdict(edge, True, "unresolved")

        role = self.role_of(target)
        if role is FileRole.IGNORED:
            return EdgeVerdict(edge, True, "ignored file")
        if self._ignored_inclusion(source.path, target):
            return EdgeVerdict(edge, True, "ignored inclusion")
        if posixpath.splitext(target)[1].lower() in self.skip_extensions:
            return EdgeVerdict(edge, True, "skipped extension")

        if role is FileRole.INTERFACE:
            closure = self.interface_closure(target)
            if source.path in closure:
                return EdgeVerdict(edge, True, "interface cycle back to checking file")
            for member in closure:
                if usage.uses(member):
                    return EdgeVerdict(edge, True, f"interface member {member}", usage.evidence[member])
        elif usage.uses(target):
            return EdgeVerdict(edge, True, "tag used", usage.evidence[target])

        if self.match_header_basename:
            stem = _stem(target)
            if stem in usage.tokens:
                return EdgeVerdict(edge, True, "header basename used", (stem,))

        return EdgeVerdict(edge, False, "no tag used")

    def check(self, source: SourceFile, usage: Optional[UsageResult]) -> List[Diagnostic]:
        """Edge diagnostics of ``source`` in directive order.

        Unresolved directives are reported for every file unless an ignored
        file or ignored inclusion pattern names them; unused ones only for
        Normal files (``usage`` is None for Interface and Ignored files).
        """
        diagnostics: List[Diagnostic] = []
        for edge in self.graph.edges(source.path):
            if edge.target is None:
                if not self._ignored_unresolved(source.path, edge.written_path):
                    diagnostics.append(
                        UnresolvedInclusion(file=source.path, written_path=edge.written_path, line=edge.line)
                    )
                continue
            if usage is None:
                continue
            verdict = self.verdict(source, edge, usage)
            if verdict.used:
                logger.debug(
                    "%s:%d %s used (%s%s)",
                    source.path,
                    edge.line,
                    edge.written_path,
                    verdict.reason,
                    f": {', '.join(verdict.evidence)}" if verdict.evidence else "",
                )
                continue
            logger.debug("%s:%d %s unused", source.path, edge.line, edge.written_path)
            diagnostics.append(
                UnusedInclusion(
                    file=source.path,
                    included_file=edge.target,
                    line=edge.line,
                    written_path=edge.written_path,
                )
            )
        return diagnostics

    def _ignored_inclusion(self, source: str, target: str) -> bool:
        for entry in self.ignored_inclusions:
            if not path_matches(entry.header, target):
                continue
            if entry.source is None or path_matches(entry.source, source):
                return True
        return False

    def _ignored_unresolved(self, source: str, written_path: str) -> bool:
        written = written_path.replace("\\", "/")
        if any(path_matches(pattern, written) for pattern in self.ignored_headers):
            return True
        return self._ignored_inclusion(source, written)


def _stem(path: str) -> str:
    return posixpath.splitext(posixpath.basename(path))[0]


__all__ = ["EdgeVerdict", "NecessityResolver"]
