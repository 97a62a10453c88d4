"""Configuration loading for includecheck (.includecheck.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".includecheck.yml"

DEFAULT_EXTENSIONS = (".cpp", ".cxx", ".c", ".cc", ".h", ".hpp", ".inl")
DEFAULT_SKIP_EXTENSIONS = (".inl", ".cpp")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class DerivationRuleConfig:
    """A naming convention that mints alias names from a base name.

    Either ``macro`` (a macro name whose call sites are matched) or ``pattern``
    (a raw regex with a ``name`` group or a first group) makes this a trigger
    rule. Without a trigger the rule applies to declared tags of ``kinds``.
    """

    name: str
    aliases: List[str] = field(default_factory=list)
    macro: Optional[str] = None
    pattern: Optional[str] = None
    argument: int = 0
    kinds: List[str] = field(default_factory=list)


@dataclass
class UsageOverrideConfig:
    """Treat identifiers matching ``token`` as a use of ``tag``."""

    token: str
    tag: str
    files: List[str] = field(default_factory=list)


@dataclass
class IgnoredInclusion:
    """Never report ``header`` when included from ``source`` (any source if unset)."""

    header: str
    source: Optional[str] = None


@dataclass
class CheckerConfig:
    """Represents the settings defined in .includecheck.yml."""

    root: Path
    search_paths: List[Path] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    ignored_files: List[str] = field(default_factory=list)
    interface_files: List[str] = field(default_factory=list)
    ignored_inclusions: List[IgnoredInclusion] = field(default_factory=list)
    type_alias_prefixes: List[str] = field(default_factory=list)
    type_alias_suffixes: List[str] = field(default_factory=list)
    derivation_rules: List[DerivationRuleConfig] = field(default_factory=list)
    usage_overrides: List[UsageOverrideConfig] = field(default_factory=list)
    skip_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SKIP_EXTENSIONS))
    match_header_basename: bool = True
    detect_roles: bool = False
    workers: Optional[int] = None
    cache_path: Optional[Path] = None

    def effective_search_paths(self) -> List[Path]:
        """Configured search paths, falling back to the config root."""
        return list(self.search_paths) if self.search_paths else [self.root]


def load_config(config_path: Path) -> CheckerConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CheckerConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return config_from_mapping(data, root)


def config_from_mapping(data: Dict[str, Any], root: Path) -> CheckerConfig:
    """Build a configuration from already parsed data (used by the service too)."""
    config = CheckerConfig(root=root)

    config.search_paths = [_rooted(root, item) for item in _as_str_list(data.get("search_paths"))]
    config.exclude_paths = [
        _rooted_pattern(root, item) for item in _as_str_list(data.get("exclude_paths"))
    ]

    extensions = _as_str_list(data.get("extensions"))
    if extensions:
        config.extensions = [_normalise_extension(item) for item in extensions]
    if "skip_extensions" in data:
        config.skip_extensions = [
            _normalise_extension(item) for item in _as_str_list(data.get("skip_extensions"))
        ]

    config.ignored_files = _as_str_list(data.get("ignored_files"))
    config.interface_files = _as_str_list(data.get("interface_files"))
    config.ignored_inclusions = _parse_ignored_inclusions(data.get("ignored_inclusions"))
    config.type_alias_prefixes = _as_str_list(data.get("type_alias_prefixes"))
    config.type_alias_suffixes = _as_str_list(data.get("type_alias_suffixes"))
    config.derivation_rules = _parse_derivation_rules(data.get("derivation_rules"))
    config.usage_overrides = _parse_usage_overrides(data.get("usage_overrides"))

    basename = _as_bool(data.get("match_header_basename"))
    if basename is not None:
        config.match_header_basename = basename
    detect = _as_bool(data.get("detect_roles"))
    if detect is not None:
        config.detect_roles = detect

    workers = _as_int(data.get("workers"))
    if workers is not None:
        if workers < 1:
            raise ConfigError("workers must be a positive integer")
        config.workers = workers

    cache = _as_str(data.get("cache"))
    config.cache_path = _rooted(root, cache) if cache else None
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_derivation_rules(value: Any) -> List[DerivationRuleConfig]:
    rules: List[DerivationRuleConfig] = []
    if value is None:
        return rules
    if not isinstance(value, list):
        raise ConfigError("derivation_rules must be a list")
    for index, raw in enumerate(value):
        entry = _as_dict(raw)
        if not entry:
            raise ConfigError(f"derivation_rules[{index}] must be a mapping")
        aliases = _as_str_list(entry.get("aliases"))
        if not aliases:
            raise ConfigError(f"derivation_rules[{index}] needs at least one alias template")
        for template in aliases:
            if "{name}" not in template:
                raise ConfigError(
                    f"derivation_rules[{index}] alias template {template!r} lacks '{{name}}'"
                )
        macro = _as_str(entry.get("macro"))
        pattern = _as_str(entry.get("pattern"))
        if macro and pattern:
            raise ConfigError(f"derivation_rules[{index}] sets both macro and pattern")
        argument = _as_int(entry.get("argument"))
        rules.append(
            DerivationRuleConfig(
                name=_as_str(entry.get("name")) or macro or f"rule-{index}",
                aliases=aliases,
                macro=macro,
                pattern=pattern,
                argument=argument or 0,
                kinds=_as_str_list(entry.get("kinds")),
            )
        )
    return rules


def _parse_usage_overrides(value: Any) -> List[UsageOverrideConfig]:
    overrides: List[UsageOverrideConfig] = []
    if value is None:
        return overrides
    if not isinstance(value, list):
        raise ConfigError("usage_overrides must be a list")
    for index, raw in enumerate(value):
        entry = _as_dict(raw)
        token = _as_str(entry.get("token"))
        tag = _as_str(entry.get("tag"))
        if not token or not tag:
            raise ConfigError(f"usage_overrides[{index}] needs both 'token' and 'tag'")
        overrides.append(
            UsageOverrideConfig(token=token, tag=tag, files=_as_str_list(entry.get("files")))
        )
    return overrides


def _parse_ignored_inclusions(value: Any) -> List[IgnoredInclusion]:
    entries: List[IgnoredInclusion] = []
    if value is None:
        return entries
    if not isinstance(value, list):
        raise ConfigError("ignored_inclusions must be a list")
    for index, raw in enumerate(value):
        if isinstance(raw, str):
            entries.append(IgnoredInclusion(header=raw))
            continue
        entry = _as_dict(raw)
        header = _as_str(entry.get("header"))
        if not header:
            raise ConfigError(f"ignored_inclusions[{index}] is missing 'header'")
        entries.append(IgnoredInclusion(header=header, source=_as_str(entry.get("source"))))
    return entries


def _rooted(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return Path(os.path.normpath(path))


def _rooted_pattern(root: Path, value: str) -> str:
    if any(char in value for char in "*?["):
        return value
    return _rooted(root, value).as_posix() + ("/" if value.endswith("/") else "")


def _normalise_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CheckerConfig",
    "ConfigError",
    "DerivationRuleConfig",
    "IgnoredInclusion",
    "UsageOverrideConfig",
    "config_from_mapping",
    "load_config",
]
