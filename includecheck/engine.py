"""Two-phase analysis run: extract everything, then judge every directive."""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from .config import CheckerConfig
from .diagnostics import (
    CollectingSink,
    Diagnostic,
    DiagnosticSink,
    ParseWarning,
    RoleConflict,
    UnusedInclusion,
    count_warnings,
)
from .graph import IncludeResolver, InclusionGraph
from .logging import get_logger
from .models import FileRole, IncludeDirective, InclusionEdge, SourceFile, Tag
from .parsing import DerivationEngine, DerivationRule, convention_rule, extract_tags, parse_includes, usage_body
from .readers import FileReader, FilesystemReader, canonical_path
from .resolver import NecessityResolver
from .roles import RoleClassifier
from .stores import TagCache, fingerprint_text
from .usage import TagIndex, UsageOverride, UsageScanner

_T = TypeVar("_T")
_R = TypeVar("_R")


class FatalAnalysisError(RuntimeError):
    """The run cannot produce meaningful results (bad search paths, no readable input)."""


@dataclass
class FileAnalysis:
    """Phase-1 facts about one file."""

    path: str
    text: str
    includes: List[IncludeDirective]
    tags: List[Tag]
    warnings: List[Tuple[int, str]]
    edges: List[InclusionEdge] = field(default_factory=list)
    cached: bool = False


@dataclass
class AnalysisResult:
    """Everything a run produced, in emission order."""

    diagnostics: List[Diagnostic]
    files: Dict[str, SourceFile]
    index: TagIndex
    graph: InclusionGraph
    checked: List[str]
    detected: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def unused(self) -> List[UnusedInclusion]:
        return [item for item in self.diagnostics if isinstance(item, UnusedInclusion)]

    @property
    def warning_count(self) -> int:
        return count_warnings(self.diagnostics)


class IncludeChecker:
    """Finds ``#include`` directives whose target contributes no referenced name."""

    def __init__(
        self,
        config: CheckerConfig,
        reader: FileReader | None = None,
        sink: DiagnosticSink | None = None,
        cache: TagCache | None = None,
    ) -> None:
        self.config = config
        self.reader = reader or FilesystemReader()
        self.sink = sink or CollectingSink()
        self.logger = get_logger("engine")
        if cache is None and config.cache_path is not None:
            cache = TagCache(config.cache_path)
        self.cache = cache

        rules = [DerivationRule.from_config(item) for item in config.derivation_rules]
        convention = convention_rule(config.type_alias_prefixes, config.type_alias_suffixes)
        if convention is not None:
            rules.append(convention)
        self.derivation = DerivationEngine(rules)
        self.classifier = RoleClassifier.from_config(config)
        self.overrides = [UsageOverride.from_config(item) for item in config.usage_overrides]
        self._resolver: IncludeResolver | None = None

    # ------------------------------------------------------------------
    # Public API

    def run(self, paths: Iterable[str | os.PathLike[str]]) -> AnalysisResult:
        """Check every file in ``paths`` and emit the diagnostics to the sink."""
        started = time.perf_counter()
        self._include_resolver()
        inputs = sorted({canonical_path(path) for path in paths})
        if not inputs:
            raise FatalAnalysisError("No input files given")

        # Phase 1: per-file extraction, in waves until every reachable header is loaded.
        analyses: Dict[str, FileAnalysis] = {}
        unreadable: List[str] = []
        pending = list(inputs)
        attempted: Set[str] = set()
        waves = 0
        while pending:
            waves += 1
            attempted.update(pending)
            for path, analysis in zip(pending, self._map(self.extract, pending)):
                if analysis is None:
                    if path in inputs:
                        unreadable.append(path)
                    continue
                analyses[path] = analysis
            discovered: Set[str] = set()
            for analysis in analyses.values():
                for edge in analysis.edges:
                    if edge.target is not None and edge.target not in attempted:
                        discovered.add(edge.target)
            pending = sorted(discovered)

        if all(path in unreadable for path in inputs):
            raise FatalAnalysisError("None of the input files could be read")
        cached = sum(1 for analysis in analyses.values() if analysis.cached)
        self.logger.info(
            "Loaded %d file(s) in %d wave(s), %d from cache", len(analyses), waves, cached
        )

        # Barrier: roles, then the frozen index and graph.
        roles: Dict[str, FileRole] = {}
        conflicts: List[RoleConflict] = []
        detected: List[str] = []
        for path in sorted(analyses):
            analysis = analyses[path]
            decision = self.classifier.classify(path, analysis.tags, analysis.includes, analysis.text)
            roles[path] = decision.role
            if decision.heuristic:
                detected.append(path)
            if decision.conflict is not None:
                conflicts.append(decision.conflict)
        if detected:
            self.logger.info("Detected roles for %d file(s): %s", len(detected), ", ".join(detected))

        files = {
            path: SourceFile(
                path=path,
                text=analysis.text,
                includes=list(analysis.includes),
                tags=tuple(analysis.tags),
                role=roles[path],
                checked=path in inputs and roles[path] is FileRole.NORMAL,
            )
            for path, analysis in sorted(analyses.items())
        }
        index = TagIndex.build(
            {path: source.tags for path, source in files.items() if source.role is not FileRole.IGNORED}
        )
        graph = InclusionGraph({path: analysis.edges for path, analysis in analyses.items()})
        self.logger.info("Indexed %d tag name(s) from %d file(s)", len(index), len(files))

        # Phase 2: usage and necessity per input file, reading shared state only.
        scanner = UsageScanner(index, self.overrides)
        necessity = NecessityResolver.from_config(graph, roles, self.config)

        def check(path: str) -> List[Diagnostic]:
            source = files[path]
            diagnostics: List[Diagnostic] = [
                ParseWarning(file=path, reason=reason, line=line)
                for line, reason in analyses[path].warnings
            ]
            usage = scanner.scan(path, usage_body(source.text)) if source.checked else None
            diagnostics.extend(necessity.check(source, usage))
            return diagnostics

        readable = [path for path in inputs if path in files]
        per_file: Dict[str, List[Diagnostic]] = dict(zip(readable, self._map(check, readable)))
        for path in unreadable:
            per_file[path] = [ParseWarning(file=path, reason="file could not be read")]

        diagnostics: List[Diagnostic] = []
        diagnostics.extend(sorted(conflicts, key=lambda item: item.file))
        diagnostics.extend(index.collisions)
        for path in sorted(per_file):
            diagnostics.extend(per_file[path])
        for diagnostic in diagnostics:
            self.sink.emit(diagnostic)

        if self.cache is not None:
            self.cache.prune(analyses)
            self.cache.persist()

        result = AnalysisResult(
            diagnostics=diagnostics,
            files=files,
            index=index,
            graph=graph,
            checked=[path for path in readable if files[path].checked],
            detected=detected,
            duration=time.perf_counter() - started,
        )
        self.logger.info(
            "Checked %d file(s): %d unused inclusion(s), %d warning(s) in %.2fs",
            len(result.checked),
            len(result.unused),
            result.warning_count,
            result.duration,
        )
        return result

    def extract(self, path: str) -> Optional[FileAnalysis]:
        """Phase-1 task: includes, tags and derived aliases of one file."""
        text = self.reader.read(path)
        if text is None:
            self.logger.warning("Cannot read %s", path)
            return None

        signature = self.derivation.signature
        fingerprint = fingerprint_text(text)
        hit = self.cache.get(path, signature=signature, fingerprint=fingerprint) if self.cache else None
        if hit is not None:
            analysis = FileAnalysis(path, text, hit.includes, hit.tags, hit.warnings, cached=True)
        else:
            includes = parse_includes(text)
            extraction = extract_tags(text, path)
            derived = self.derivation.derive(extraction.tags, extraction.code, path)
            tags = extraction.tags + derived.aliases
            warnings = sorted(extraction.warnings + derived.warnings)
            for line, reason in warnings:
                self.logger.debug("%s:%d: %s", path, line, reason)
            analysis = FileAnalysis(path, text, includes, tags, warnings)
            if self.cache is not None:
                self.cache.store(
                    path,
                    signature=signature,
                    fingerprint=fingerprint,
                    includes=includes,
                    tags=tags,
                    warnings=warnings,
                )

        analysis.edges = self._include_resolver().edges_for(path, analysis.includes)
        self.logger.debug(
            "%s: %d include(s), %d tag(s)", path, len(analysis.includes), len(analysis.tags)
        )
        return analysis

    # ------------------------------------------------------------------
    # Internal helpers

    def _include_resolver(self) -> IncludeResolver:
        if self._resolver is None:
            search_paths = [canonical_path(path) for path in self.config.effective_search_paths()]
            if not search_paths:
                raise FatalAnalysisError("No search paths configured")
            for directory in search_paths:
                if not self.reader.is_directory(directory):
                    raise FatalAnalysisError(f"Search path is not a readable directory: {directory}")
            self._resolver = IncludeResolver(self.reader, search_paths)
        return self._resolver

    def _map(self, func: Callable[[_T], _R], items: Sequence[_T]) -> List[_R]:
        """Apply ``func`` to ``items`` on the worker pool, keeping input order."""
        workers = self.config.workers or min(32, (os.cpu_count() or 1) + 4)
        if workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]
        results: Dict[int, _R] = {}
        with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
            futures = {executor.submit(func, item): position for position, item in enumerate(items)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return [results[position] for position in range(len(items))]


__all__ = ["AnalysisResult", "FatalAnalysisError", "FileAnalysis", "IncludeChecker"]
