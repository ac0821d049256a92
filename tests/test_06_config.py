"""Configuration, logging and diagnostics tests."""

import json

import pytest

from jextract.config import Config, ConfigError, LogLevel, config_from_dict, load_config
from jextract.errors import (
    Diagnostic,
    JExtractError,
    ParseError,
    UnsupportedType,
    diagnostic_from_error,
)
from jextract.log import log_debug, log_error, log_info, log_stage, log_warning


# ============================================================
# CONFIG
# ============================================================


def test_defaults() -> None:
    cfg = Config()
    cfg.validate()
    assert cfg.mode == "ffm"
    assert cfg.java_package == "com.example.swift"
    assert cfg.unsigned_mode == "annotate"
    assert cfg.thunk_prefix == "swiftjava"
    assert not cfg.allows_global_automatic
    assert cfg.log_level == LogLevel.WARNING


def test_config_from_dict() -> None:
    cfg = config_from_dict(
        {
            "swiftModule": "Geometry",
            "javaPackage": "org.demo",
            "mode": "jni",
            "unsignedNumbersMode": "wrapGuava",
            "memoryManagementMode": "allowGlobalAutomatic",
            "thunkPrefix": "demo",
            "externalClasses": {"ArrayList": "java.util.ArrayList"},
            "logLevel": "debug",
            "logRichFormat": True,
        }
    )
    assert cfg.swift_module == "Geometry"
    assert cfg.java_package == "org.demo"
    assert cfg.mode == "jni"
    assert cfg.unsigned_mode == "wrap"
    assert cfg.allows_global_automatic
    assert cfg.thunk_prefix == "demo"
    assert cfg.external_classes == {"ArrayList": "java.util.ArrayList"}
    assert cfg.log_level == LogLevel.DEBUG
    assert cfg.log_rich_format


def test_config_from_dict_applies_on_base() -> None:
    base = Config(mode="jni", swift_module="Base")
    cfg = config_from_dict({"javaPackage": "org.demo"}, base)
    assert cfg.mode == "jni"
    assert cfg.swift_module == "Base"
    assert cfg.java_package == "org.demo"


@pytest.mark.parametrize(
    "data,message",
    [
        ({"colour": "red"}, "unknown config key 'colour'"),
        ({"mode": "xyz"}, "invalid mode 'xyz'"),
        ({"unsignedNumbersMode": 3}, "invalid unsignedNumbersMode 3"),
        ({"externalClasses": ["a"]}, "externalClasses must be an object"),
        ({"logLevel": "loud"}, "invalid logLevel 'loud'"),
        ({"swiftModule": "my-module"}, "invalid Swift module name 'my-module'"),
        ({"javaPackage": "com..demo"}, "invalid Java package 'com..demo'"),
        ({"javaPackage": ""}, "invalid Java package ''"),
    ],
)
def test_config_from_dict_errors(data: dict, message: str) -> None:
    with pytest.raises(ConfigError) as exc:
        config_from_dict(data)
    assert str(exc.value) == message


def test_validate_rejects_unknown_mode() -> None:
    with pytest.raises(ConfigError, match="unknown mode 'wasm'"):
        Config(mode="wasm").validate()  # type: ignore[arg-type]


@pytest.mark.parametrize("bits", [16, 128])
def test_validate_rejects_unsupported_primitive_width(bits: int) -> None:
    with pytest.raises(ConfigError) as exc:
        Config(max_primitive_bits=bits).validate()
    assert str(exc.value) == "invalid max primitive bits " + str(bits) + ", expected 32 or 64"


def test_validate_accepts_32_bit_primitives() -> None:
    Config(max_primitive_bits=32).validate()


def test_load_config(tmp_path) -> None:
    path = tmp_path / "swift-java.config"
    path.write_text(json.dumps({"javaPackage": "org.demo", "mode": "jni"}))
    cfg = load_config(str(path))
    assert cfg.java_package == "org.demo"
    assert cfg.mode == "jni"


def test_load_config_missing_file(tmp_path) -> None:
    path = str(tmp_path / "missing.config")
    with pytest.raises(ConfigError) as exc:
        load_config(path)
    assert str(exc.value).startswith("cannot read config file " + path + ": ")


def test_load_config_malformed(tmp_path) -> None:
    path = tmp_path / "bad.config"
    path.write_text("{not json")
    with pytest.raises(ConfigError) as exc:
        load_config(str(path))
    assert str(exc.value).startswith("malformed config file ")


def test_load_config_requires_object(tmp_path) -> None:
    path = tmp_path / "list.config"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigError) as exc:
        load_config(str(path))
    assert str(exc.value) == "config file " + str(path) + " must contain a JSON object"


# ============================================================
# LOGGING
# ============================================================


def test_log_levels_filter_messages(capsys) -> None:
    cfg = Config(log_level=LogLevel.WARNING)
    log_error(cfg, "bad")
    log_warning(cfg, "careful")
    log_info(cfg, "hidden")
    log_debug(cfg, "hidden too")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "bad\ncareful\n"


def test_silent_logs_nothing(capsys) -> None:
    cfg = Config(log_level=LogLevel.SILENT)
    log_error(cfg, "bad")
    assert capsys.readouterr().err == ""


def test_log_stage(capsys) -> None:
    cfg = Config(log_level=LogLevel.INFO)
    log_stage(cfg, "Parsing", "Geometry")
    log_stage(cfg, "Writing")
    assert capsys.readouterr().err == "Parsing module 'Geometry'\nWriting...\n"


def test_rich_format_prefixes_level(capsys) -> None:
    cfg = Config(log_level=LogLevel.INFO, log_rich_format=True)
    log_info(cfg, "hello")
    err = capsys.readouterr().err
    assert err.endswith(" [INFO] hello\n")


# ============================================================
# ERRORS AND DIAGNOSTICS
# ============================================================


def test_error_messages() -> None:
    assert str(JExtractError("not supported")) == "not supported"
    assert str(UnsupportedType("no C equivalent", "String")) == "no C equivalent: String"
    err = ParseError("expected ')'", 3, 7)
    assert (err.msg, err.line, err.col) == ("expected ')'", 3, 7)


def test_diagnostic_format() -> None:
    diag = Diagnostic("warning", "generic types are not supported", "Box", None, "M.swiftinterface", 4)
    assert diag.format() == "M.swiftinterface:4: warning: 'Box': generic types are not supported"
    assert Diagnostic("warning", "skipped", line=2).format() == "line 2: warning: skipped"
    assert Diagnostic("error", "broken").format() == "error: broken"


def test_diagnostic_from_error() -> None:
    diag = diagnostic_from_error(UnsupportedType("effectful functions are not supported", "async"), "fetch", line=1)
    assert diag.kind == "warning"
    assert diag.offending_type == "async"
    assert diag.format() == "line 1: warning: 'fetch': effectful functions are not supported (async)"
