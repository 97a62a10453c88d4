"""Rendering of diagnostics: console text, JSON and the XML report."""

from __future__ import annotations

import json
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Sequence

from .diagnostics import (
    Diagnostic,
    ParseWarning,
    RoleConflict,
    TagAliasCollision,
    UnresolvedInclusion,
    UnusedInclusion,
    count_warnings,
)

EXIT_OK = 0
EXIT_UNUSED = 1
EXIT_FATAL = 2


def display_path(path: str, base: Path | None = None) -> str:
    """``path`` relative to ``base`` when it lies below it."""
    if base is None or not os.path.isabs(path):
        return path
    try:
        return Path(path).relative_to(base).as_posix()
    except ValueError:
        return path


def format_diagnostic(diagnostic: Diagnostic, base: Path | None = None) -> str:
    if isinstance(diagnostic, UnusedInclusion):
        header = diagnostic.written_path or display_path(diagnostic.included_file, base)
        return (
            f"{display_path(diagnostic.file, base)}({diagnostic.line}): "
            f"nothing declared in {header} seems to be used."
        )
    if isinstance(diagnostic, UnresolvedInclusion):
        return (
            f"{display_path(diagnostic.file, base)}({diagnostic.line}): "
            f"Warning: header {diagnostic.written_path} not found"
        )
    if isinstance(diagnostic, ParseWarning):
        location = display_path(diagnostic.file, base)
        if diagnostic.line:
            location = f"{location}({diagnostic.line})"
        return f"{location}: Warning: {diagnostic.reason}"
    if isinstance(diagnostic, TagAliasCollision):
        files = ", ".join(display_path(path, base) for path in diagnostic.files)
        return f"Warning: derived name {diagnostic.name} has conflicting origins in {files}"
    if isinstance(diagnostic, RoleConflict):
        return (
            f"Warning: {display_path(diagnostic.file, base)} is configured as "
            f"{' and '.join(diagnostic.roles)}; treated as {diagnostic.resolved}"
        )
    raise TypeError(f"Unknown diagnostic: {diagnostic!r}")


def summary_line(diagnostics: Sequence[Diagnostic]) -> str:
    unused = sum(1 for item in diagnostics if isinstance(item, UnusedInclusion))
    return f"{unused} unused headers, {count_warnings(diagnostics)} warnings"


def render_text(diagnostics: Sequence[Diagnostic], base: Path | None = None) -> str:
    lines = [format_diagnostic(item, base) for item in diagnostics]
    lines.append(summary_line(diagnostics))
    return "\n".join(lines) + "\n"


def render_json(diagnostics: Sequence[Diagnostic]) -> str:
    payload: Dict[str, Any] = {
        "diagnostics": [item.to_dict() for item in diagnostics],
        "summary": {
            "unused": sum(1 for item in diagnostics if isinstance(item, UnusedInclusion)),
            "warnings": count_warnings(diagnostics),
        },
    }
    return json.dumps(payload, indent=2)


def build_xml(diagnostics: Sequence[Diagnostic], base: Path | None = None) -> ET.Element:
    """``<unused_headers>`` with one ``<unused_header>`` per unused inclusion."""
    root = ET.Element("unused_headers")
    for item in diagnostics:
        if not isinstance(item, UnusedInclusion):
            continue
        element = ET.SubElement(root, "unused_header")
        ET.SubElement(element, "source").text = display_path(item.file, base)
        ET.SubElement(element, "line").text = str(item.line)
        ET.SubElement(element, "header").text = item.written_path or display_path(item.included_file, base)
    return root


def write_xml(diagnostics: Sequence[Diagnostic], path: Path, base: Path | None = None) -> None:
    tree = ET.ElementTree(build_xml(diagnostics, base))
    ET.indent(tree)
    path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(path, encoding="utf-8", xml_declaration=True)


def exit_code(diagnostics: Sequence[Diagnostic]) -> int:
    return EXIT_UNUSED if any(isinstance(item, UnusedInclusion) for item in diagnostics) else EXIT_OK


__all__ = [
    "EXIT_FATAL",
    "EXIT_OK",
    "EXIT_UNUSED",
    "build_xml",
    "display_path",
    "exit_code",
    "format_diagnostic",
    "render_json",
    "render_text",
    "summary_line",
    "write_xml",
]
