"""Static checker for unused #include directives in C/C++ header trees."""

from .config import CheckerConfig, ConfigError, load_config
from .engine import AnalysisResult, FatalAnalysisError, IncludeChecker
from .readers import FilesystemReader, MappingReader

__all__ = [
    "AnalysisResult",
    "CheckerConfig",
    "ConfigError",
    "FatalAnalysisError",
    "FilesystemReader",
    "IncludeChecker",
    "MappingReader",
    "load_config",
]

__version__ = "0.1.0"
