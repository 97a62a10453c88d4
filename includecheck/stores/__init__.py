"""Storage helpers for includecheck."""

from .tag_cache import CachedFacts, TagCache, fingerprint_text

__all__ = ["CachedFacts", "TagCache", "fingerprint_text"]
