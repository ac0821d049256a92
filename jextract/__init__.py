"""Swift to Java binding generator."""

from .config import Config, ConfigError, LogLevel, load_config
from .errors import Diagnostic, JExtractError, ParseError
from .frontend.parse import parse
from .generator import GeneratedSources, generate

__all__ = [
    "Config",
    "ConfigError",
    "Diagnostic",
    "GeneratedSources",
    "JExtractError",
    "LogLevel",
    "ParseError",
    "generate",
    "load_config",
    "parse",
]
