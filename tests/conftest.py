"""Pytest configuration for the jextract test suite."""

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

from jextract.config import Config, LogLevel  # noqa: E402
from jextract.frontend.parse import parse  # noqa: E402
from jextract.generator import GeneratedSources, generate  # noqa: E402

MODULE = "MyModule"
PACKAGE = "com.example.swift"


def make_config(mode: str = "ffm", **kwargs) -> Config:
    """Config for tests: fixed module and package unless overridden, silent logging."""
    kwargs.setdefault("log_level", LogLevel.SILENT)
    kwargs.setdefault("swift_module", MODULE)
    kwargs.setdefault("java_package", PACKAGE)
    return Config(mode=mode, **kwargs)


def run_generate(source: str, mode: str = "ffm", **kwargs) -> GeneratedSources:
    """Parse source as module MyModule and generate bindings."""
    config = make_config(mode, **kwargs)
    module = parse(source, MODULE)
    return generate(module, config)


def joined(files: dict[str, str]) -> str:
    """All generated files of one side, in path order."""
    return "\n".join(files[path] for path in sorted(files))


@pytest.fixture
def ffm():
    def _run(source: str, **kwargs) -> GeneratedSources:
        return run_generate(source, "ffm", **kwargs)

    return _run


@pytest.fixture
def jni():
    def _run(source: str, **kwargs) -> GeneratedSources:
        return run_generate(source, "jni", **kwargs)

    return _run
