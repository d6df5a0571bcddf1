from .aliases import DEFAULT_HEADER_ALIASES, REQUIRED_FIELDS, merge_aliases
from .loader import ConfigError, DatabaseConfig, ImportConfig, load_config

__all__ = [
    "DEFAULT_HEADER_ALIASES",
    "REQUIRED_FIELDS",
    "merge_aliases",
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "load_config",
]
