"""Pure text-to-facts functions: includes, tags and derived names."""

from .derivation import DerivationEngine, DerivationResult, DerivationRule, convention_rule, name_variations
from .includes import parse_includes
from .source_text import strip_comments_and_strings, usage_body
from .tags import ExtractionResult, extract_tags

__all__ = [
    "DerivationEngine",
    "DerivationResult",
    "DerivationRule",
    "ExtractionResult",
    "convention_rule",
    "extract_tags",
    "name_variations",
    "parse_includes",
    "strip_comments_and_strings",
    "usage_body",
]
