"""
Leveled stderr logging for generation runs.

Every function takes the run Config and prints only when its log level
admits the message.
"""

from __future__ import annotations

import sys
import time

from .config import Config, LogLevel

_LEVEL_TAGS: dict[LogLevel, str] = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.TRACE: "TRACE",
}


def log(config: Config, level: LogLevel, message: str) -> None:
    """
    Print message to stderr if the configured level is at least level.

    Args:
        config:  The run configuration holding the log level.
        level:   The level of the message to log.
        message: The message to log.
    """
    if config.log_level < level:
        return
    prefix = ""
    if config.log_rich_format and level in _LEVEL_TAGS:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        prefix = f"{timestamp} [{_LEVEL_TAGS[level]}] "
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(config: Config, message: str) -> None:
    log(config, LogLevel.ERROR, message)


def log_warning(config: Config, message: str) -> None:
    log(config, LogLevel.WARNING, message)


def log_info(config: Config, message: str) -> None:
    log(config, LogLevel.INFO, message)


def log_debug(config: Config, message: str) -> None:
    log(config, LogLevel.DEBUG, message)


def log_trace(config: Config, message: str) -> None:
    log(config, LogLevel.TRACE, message)


def log_stage(config: Config, stage: str, module: str | None = None) -> None:
    """
    Log the start of a generation stage.

    Args:
        config: The run configuration.
        stage:  The name of the stage (e.g., "Parsing", "Lowering").
        module: Optional Swift module name being processed.
    """
    if module:
        log(config, LogLevel.INFO, f"{stage} module '{module}'")
    else:
        log(config, LogLevel.INFO, f"{stage}...")
