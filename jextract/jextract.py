"""Command-line entry point."""

from __future__ import annotations

import os
import sys

from .config import (
    LOG_LEVEL_NAMES,
    MEMORY_MANAGEMENT_MODES,
    MODES,
    UNSIGNED_MODES,
    Config,
    ConfigError,
    LogLevel,
    load_config,
)
from .errors import ParseError
from .frontend.parse import parse
from .generator import GeneratedSources, generate
from .log import log_error, log_stage

LANGS: list[str] = ["java", "swift"]

VERBOSITY: list[LogLevel] = [LogLevel.WARNING, LogLevel.INFO, LogLevel.DEBUG, LogLevel.TRACE]

USAGE: str = """\
jextract [OPTIONS] [INPUT]

Generate Java bindings and Swift thunks for a Swift interface file.
INPUT is a .swiftinterface or .swift file; '-' or no INPUT reads stdin.

Options:
  --mode MODE                 Interop backend: ffm, jni (default: ffm)
  --swift-module NAME         Swift module name (default: INPUT file stem)
  --package PKG               Java package of the generated sources
  --unsigned MODE             Unsigned integers: annotate, wrap
  --memory-management MODE    explicit, allow_global_automatic
  --config FILE               Read settings from a JSON config file
  --lang LANG                 Print only one side to stdout: java, swift
  --output-java DIR           Write Java sources under DIR
  --output-swift DIR          Write Swift thunks under DIR
  --log-level LEVEL           silent, error, warning, info, debug, trace
  -v, -vv, -vvv               Log more (info, debug, trace)
  --help                      Show this help message
"""


class Args:
    """Parsed command line; None means the flag was not given."""

    def __init__(self) -> None:
        self.input_file: str | None = None
        self.config_file: str | None = None
        self.mode: str | None = None
        self.swift_module: str | None = None
        self.package: str | None = None
        self.unsigned: str | None = None
        self.memory_management: str | None = None
        self.lang: str | None = None
        self.output_java: str | None = None
        self.output_swift: str | None = None
        self.log_level: LogLevel | None = None


class UsageError(Exception):
    """Malformed command line."""


_VALUE_FLAGS: dict[str, str] = {
    "--mode": "mode",
    "--swift-module": "swift_module",
    "--package": "package",
    "--unsigned": "unsigned",
    "--memory-management": "memory_management",
    "--config": "config_file",
    "--lang": "lang",
    "--output-java": "output_java",
    "--output-swift": "output_swift",
}

_CHOICES: dict[str, tuple[str, ...]] = {
    "--mode": MODES,
    "--unsigned": UNSIGNED_MODES,
    "--memory-management": MEMORY_MANAGEMENT_MODES,
    "--lang": tuple(LANGS),
}


def parse_args(argv: list[str]) -> Args | None:
    """Parse argv into Args. Returns None when --help was printed."""
    args = Args()
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return None
        if arg in _VALUE_FLAGS:
            if i + 1 >= len(argv):
                raise UsageError(arg + " requires an argument")
            value = argv[i + 1]
            if arg in _CHOICES and value not in _CHOICES[arg]:
                raise UsageError("invalid value '" + value + "' for " + arg)
            setattr(args, _VALUE_FLAGS[arg], value)
            i += 2
        elif arg == "--log-level":
            if i + 1 >= len(argv):
                raise UsageError(arg + " requires an argument")
            if argv[i + 1] not in LOG_LEVEL_NAMES:
                raise UsageError("invalid value '" + argv[i + 1] + "' for " + arg)
            args.log_level = LOG_LEVEL_NAMES[argv[i + 1]]
            i += 2
        elif arg in ("-v", "-vv", "-vvv"):
            args.log_level = VERBOSITY[len(arg) - 1]
            i += 1
        elif arg.startswith("-") and arg != "-":
            raise UsageError("unknown flag '" + arg + "'")
        else:
            if args.input_file is not None:
                raise UsageError("unexpected argument '" + arg + "'")
            if arg != "-":
                args.input_file = arg
            i += 1
    if args.lang is not None and (args.output_java is not None or args.output_swift is not None):
        raise UsageError("--lang cannot be combined with --output-java or --output-swift")
    return args


def build_config(args: Args) -> Config:
    """Defaults, then the config file, then command-line flags."""
    config = Config()
    if args.input_file is not None:
        stem = os.path.basename(args.input_file).split(".")[0]
        if stem.isidentifier():
            config.swift_module = stem
    if args.config_file is not None:
        config = load_config(args.config_file, config)
    if args.mode is not None:
        config.mode = args.mode  # type: ignore[assignment]
    if args.swift_module is not None:
        config.swift_module = args.swift_module
    if args.package is not None:
        config.java_package = args.package
    if args.unsigned is not None:
        config.unsigned_mode = args.unsigned  # type: ignore[assignment]
    if args.memory_management is not None:
        config.memory_management = args.memory_management  # type: ignore[assignment]
    if args.log_level is not None:
        config.log_level = args.log_level
    config.validate()
    return config


def read_source(input_file: str | None) -> str:
    """Read source from file or stdin."""
    if input_file is not None:
        with open(input_file, "rb") as f:
            raw = f.read()
    else:
        raw = sys.stdin.buffer.read()
    return raw.decode("utf-8")


def write_sources(root: str, files: dict[str, str]) -> None:
    for path in sorted(files):
        full = os.path.join(root, path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w") as f:
            f.write(files[path])


def print_sources(files: dict[str, str]) -> None:
    for path in sorted(files):
        print("// ==== " + path)
        print(files[path], end="")


def emit(out: GeneratedSources, args: Args) -> None:
    if args.output_java is not None or args.output_swift is not None:
        if args.output_java is not None:
            write_sources(args.output_java, out.java)
        if args.output_swift is not None:
            write_sources(args.output_swift, out.swift)
        return
    if args.lang is None or args.lang == "java":
        print_sources(out.java)
    if args.lang is None or args.lang == "swift":
        print_sources(out.swift)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        args = parse_args(argv)
    except UsageError as e:
        print("error: " + str(e), file=sys.stderr)
        return 2
    if args is None:
        return 0
    try:
        config = build_config(args)
    except ConfigError as e:
        print("error: " + str(e), file=sys.stderr)
        return 1
    try:
        source = read_source(args.input_file)
    except OSError:
        log_error(config, "error: cannot open '" + str(args.input_file) + "'")
        return 1
    except ValueError:
        log_error(config, "error: invalid utf-8 in input")
        return 1
    log_stage(config, "Parsing", config.swift_module)
    try:
        module = parse(source, config.swift_module, args.input_file)
    except ParseError as e:
        where = args.input_file if args.input_file is not None else "<stdin>"
        log_error(config, where + ":" + str(e.line) + ":" + str(e.col) + ": error: " + e.msg)
        return 1
    out = generate(module, config)
    try:
        emit(out, args)
    except OSError as e:
        log_error(config, "error: cannot write output: " + str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
