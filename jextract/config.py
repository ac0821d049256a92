"""Run configuration for a binding-generation run."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal


class LogLevel(IntEnum):
    """
    Logging levels, ordered by verbosity.
    """

    SILENT = 0
    ERROR = 3
    WARNING = 6
    INFO = 10
    DEBUG = 30
    TRACE = 50


Mode = Literal["ffm", "jni"]
UnsignedMode = Literal["annotate", "wrap"]
MemoryManagementMode = Literal["explicit", "allow_global_automatic"]

MODES: tuple[str, ...] = ("ffm", "jni")
UNSIGNED_MODES: tuple[str, ...] = ("annotate", "wrap")
MEMORY_MANAGEMENT_MODES: tuple[str, ...] = ("explicit", "allow_global_automatic")
PRIMITIVE_WIDTHS: tuple[int, ...] = (32, 64)

LOG_LEVEL_NAMES: dict[str, LogLevel] = {
    "silent": LogLevel.SILENT,
    "error": LogLevel.ERROR,
    "warning": LogLevel.WARNING,
    "info": LogLevel.INFO,
    "debug": LogLevel.DEBUG,
    "trace": LogLevel.TRACE,
}


class ConfigError(Exception):
    """Invalid configuration value or unreadable config file."""


@dataclass
class Config:
    """
    Settings shared by every stage of one generation run.

    Attributes:
        swift_module:       Name of the Swift module being exported.
        java_package:       Java package of the generated sources.
        mode:               Interop backend, "ffm" or "jni".
        unsigned_mode:      How unsigned integers surface in Java.
        memory_management:  Whether arena-less overloads are generated.
        thunk_prefix:       Prefix of every @_cdecl thunk symbol.
        max_primitive_bits: Width of the widest Java primitive.
        external_classes:   Swift type name -> Java class for @JavaClass types.
        log_level:          Verbosity of stderr logging.
        log_rich_format:    Prefix log lines with timestamp and level.
    """

    swift_module: str = "SwiftModule"
    java_package: str = "com.example.swift"
    mode: Mode = "ffm"
    unsigned_mode: UnsignedMode = "annotate"
    memory_management: MemoryManagementMode = "explicit"
    thunk_prefix: str = "swiftjava"
    max_primitive_bits: int = 64
    external_classes: dict[str, str] = field(default_factory=dict)
    log_level: LogLevel = LogLevel.WARNING
    log_rich_format: bool = False

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ConfigError("unknown mode '" + str(self.mode) + "'")
        if self.unsigned_mode not in UNSIGNED_MODES:
            raise ConfigError("unknown unsigned numbers mode '" + str(self.unsigned_mode) + "'")
        if self.memory_management not in MEMORY_MANAGEMENT_MODES:
            raise ConfigError(
                "unknown memory management mode '" + str(self.memory_management) + "'"
            )
        # optional packing sizes its container by this width
        if self.max_primitive_bits not in PRIMITIVE_WIDTHS:
            raise ConfigError("invalid max primitive bits " + str(self.max_primitive_bits) + ", expected 32 or 64")
        if not self.swift_module.isidentifier():
            raise ConfigError("invalid Swift module name '" + self.swift_module + "'")
        for part in self.java_package.split("."):
            if not part.isidentifier():
                raise ConfigError("invalid Java package '" + self.java_package + "'")

    @property
    def allows_global_automatic(self) -> bool:
        return self.memory_management == "allow_global_automatic"


# ============================================================
# CONFIG FILES
# ============================================================

_MODE_ALIASES: dict[str, str] = {
    "ffm": "ffm",
    "jni": "jni",
}

_UNSIGNED_ALIASES: dict[str, str] = {
    "annotate": "annotate",
    "wrapGuava": "wrap",
    "wrap": "wrap",
}

_MEMORY_ALIASES: dict[str, str] = {
    "explicit": "explicit",
    "allowGlobalAutomatic": "allow_global_automatic",
    "allow_global_automatic": "allow_global_automatic",
}


def _lookup(table: dict[str, str], value: object, what: str) -> str:
    if not isinstance(value, str) or value not in table:
        raise ConfigError("invalid " + what + " " + repr(value))
    return table[value]


def config_from_dict(data: dict[str, object], base: Config | None = None) -> Config:
    """Apply camelCase config-file keys on top of base (or defaults)."""
    cfg = base if base is not None else Config()
    for key, value in data.items():
        match key:
            case "swiftModule":
                cfg.swift_module = str(value)
            case "javaPackage":
                cfg.java_package = str(value)
            case "mode":
                cfg.mode = _lookup(_MODE_ALIASES, value, "mode")  # type: ignore[assignment]
            case "unsignedNumbersMode":
                cfg.unsigned_mode = _lookup(_UNSIGNED_ALIASES, value, "unsignedNumbersMode")  # type: ignore[assignment]
            case "memoryManagementMode":
                cfg.memory_management = _lookup(_MEMORY_ALIASES, value, "memoryManagementMode")  # type: ignore[assignment]
            case "thunkPrefix":
                cfg.thunk_prefix = str(value)
            case "externalClasses":
                if not isinstance(value, dict):
                    raise ConfigError("externalClasses must be an object")
                cfg.external_classes = {str(k): str(v) for k, v in value.items()}
            case "logLevel":
                if not isinstance(value, str) or value not in LOG_LEVEL_NAMES:
                    raise ConfigError("invalid logLevel " + repr(value))
                cfg.log_level = LOG_LEVEL_NAMES[value]
            case "logRichFormat":
                cfg.log_rich_format = bool(value)
            case _:
                raise ConfigError("unknown config key '" + key + "'")
    cfg.validate()
    return cfg


def load_config(path: str, base: Config | None = None) -> Config:
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError("cannot read config file " + path + ": " + str(e)) from e
    except json.JSONDecodeError as e:
        raise ConfigError("malformed config file " + path + ": " + str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError("config file " + path + " must contain a JSON object")
    return config_from_dict(data, base)
