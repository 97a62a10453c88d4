"""Inclusion directive parsing."""

from __future__ import annotations

import re
from typing import List

from ..models import IncludeDirective
from .source_text import disabled_line_numbers, strip_comments_and_strings

_INCLUDE_LINE_RE = re.compile(
    r"""^\s*\#\s*(?:include|import|include_next)\s*
        (?:"(?P<quoted>[^"\n]+)"|<(?P<system>[^>\n]+)>)""",
    re.VERBOSE,
)


def parse_includes(text: str) -> List[IncludeDirective]:
    """Return the include directives of ``text`` in source order.

    Paths are returned exactly as written. Directives inside comments or
    ``#if 0`` blocks are skipped; every other directive counts, whatever
    conditional surrounds it. Macro-computed includes (``#include MACRO``)
    cannot be read without expansion and are left out.
    """
    cleaned = strip_comments_and_strings(text, keep_strings=True)
    disabled = disabled_line_numbers(cleaned)
    directives: List[IncludeDirective] = []
    for number, line in enumerate(cleaned.split("\n"), start=1):
        if number in disabled:
            continue
        match = _INCLUDE_LINE_RE.match(line)
        if not match:
            continue
        if match.group("quoted") is not None:
            directives.append(IncludeDirective(match.group("quoted").strip(), number, False))
        else:
            directives.append(IncludeDirective(match.group("system").strip(), number, True))
    return directives


__all__ = ["parse_includes"]
