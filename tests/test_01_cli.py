"""CLI tests for the jextract entry point.

Test cases live in 01_cli/*.tests files. Format:

    === test name
    args: --mode jni --lang java
    public func hello()
    (stdin for the generator)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: "keyword"
    stdout-empty: true
    stderr-empty: true
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:               exact exit code
    stderr:             exact stderr content (trailing newline added)
    stderr-contains:    stderr must contain substring
    stderr-empty:       stderr must be empty
    stdout-contains:    stdout must contain substring
    stdout-excludes:    stdout must not contain substring
    stdout-empty:       stdout must be empty
"""

import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "01_cli"
ROOT_DIR = Path(__file__).parent.parent

ASSERTION_KINDS = (
    "exit",
    "stderr",
    "stderr-contains",
    "stderr-empty",
    "stdout-contains",
    "stdout-excludes",
    "stdout-empty",
)


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples.

    Each spec dict has keys: args, stdin, stdin_bytes, assertions.
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            # Read input section (args line + stdin)
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            # Read expected section
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            spec = _parse_spec(input_lines, expected_lines)
            result.append((test_name, spec))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test spec dict."""
    spec: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1

    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        hex_str = remaining[0][len("stdin-bytes:") :].strip()
        spec["stdin_bytes"] = bytes.fromhex(hex_str)
    else:
        spec["stdin"] = "\n".join(remaining)

    for line in expected_lines:
        kind, sep, value = line.strip().partition(":")
        if not sep or kind not in ASSERTION_KINDS:
            continue
        value = value.strip()
        if kind == "exit":
            spec["assertions"].append((kind, int(value)))
        elif kind.endswith("-empty"):
            spec["assertions"].append((kind, None))
        else:
            spec["assertions"].append((kind, value))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        tests = parse_cli_test_file(test_file)
        for name, spec in tests:
            test_id = f"{test_file.stem}/{name}"
            results.append((test_id, spec))
    return results


def run_cli(args: list[str], stdin_data: bytes = b"") -> subprocess.CompletedProcess[bytes]:
    """Run the jextract CLI from the project root."""
    cmd = [sys.executable, "-m", "jextract.jextract", *args]
    return subprocess.run(
        cmd,
        input=stdin_data,
        capture_output=True,
        cwd=ROOT_DIR,
    )


def run_spec(spec: dict) -> subprocess.CompletedProcess[bytes]:
    if spec["stdin_bytes"] is not None:
        stdin_data = spec["stdin_bytes"]
    elif spec["stdin"] is not None:
        stdin_data = spec["stdin"].encode()
    else:
        stdin_data = b""
    return run_cli(spec["args"], stdin_data)


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "stderr":
            actual = result.stderr.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, (
                f"expected stderr to contain {value!r}, got {actual!r}"
            )
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, (
                f"expected stdout to contain {value!r}, got {actual[:2000]!r}"
            )
        elif kind == "stdout-excludes":
            actual = result.stdout.decode(errors="replace")
            assert value not in actual, f"expected stdout not to contain {value!r}"
        elif kind == "stdout-empty":
            assert result.stdout == b"", (
                f"expected empty stdout, got {result.stdout[:200]!r}"
            )


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_spec" in metafunc.fixturenames:
        tests = discover_cli_tests()
        params = [pytest.param(spec, id=test_id) for test_id, spec in tests]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from .tests file."""
    result = run_spec(cli_spec)
    check_assertions(result, cli_spec["assertions"])


# ============================================================
# FILES AND DIRECTORIES
# ============================================================


SOURCE = """\
public struct Point {
  public var x: Int32
  public init(x: Int32)
}

public func origin() -> Point
"""


def test_input_file_names_module(tmp_path: Path) -> None:
    source = tmp_path / "Geometry.swiftinterface"
    source.write_text(SOURCE)
    result = run_cli(["--lang", "java", str(source)])
    assert result.returncode == 0, result.stderr.decode()
    out = result.stdout.decode()
    assert "// ==== com/example/swift/Geometry.java" in out
    assert "// ==== com/example/swift/Point.java" in out
    assert "public final class Geometry {" in out


def test_missing_input_file(tmp_path: Path) -> None:
    result = run_cli([str(tmp_path / "Missing.swift")])
    assert result.returncode == 1
    assert "cannot open" in result.stderr.decode()


def test_output_directories(tmp_path: Path) -> None:
    source = tmp_path / "Geometry.swift"
    source.write_text(SOURCE)
    java_dir = tmp_path / "java"
    swift_dir = tmp_path / "swift"
    result = run_cli(
        ["--mode", "jni", "--output-java", str(java_dir), "--output-swift", str(swift_dir), str(source)]
    )
    assert result.returncode == 0, result.stderr.decode()
    assert result.stdout == b""
    assert (java_dir / "com" / "example" / "swift" / "Geometry.java").exists()
    assert (java_dir / "com" / "example" / "swift" / "Point.java").exists()
    assert (swift_dir / "GeometryModule+SwiftJava.swift").exists()
    assert (swift_dir / "Point+SwiftJava.swift").exists()
    assert "private static native" in (java_dir / "com" / "example" / "swift" / "Point.java").read_text()


def test_config_file(tmp_path: Path) -> None:
    config = tmp_path / "swift-java.config"
    config.write_text('{"javaPackage": "org.demo", "mode": "jni"}')
    result = run_cli(["--config", str(config), "--lang", "java", "--swift-module", "Demo"], b"public func f()\n")
    assert result.returncode == 0, result.stderr.decode()
    out = result.stdout.decode()
    assert "package org.demo;" in out
    assert "private static native void $f();" in out


def test_flags_override_config_file(tmp_path: Path) -> None:
    config = tmp_path / "swift-java.config"
    config.write_text('{"mode": "jni"}')
    result = run_cli(["--config", str(config), "--mode", "ffm", "--lang", "java"], b"public func f()\n")
    assert result.returncode == 0, result.stderr.decode()
    assert "FunctionDescriptor" in result.stdout.decode()


def test_malformed_config_file(tmp_path: Path) -> None:
    config = tmp_path / "swift-java.config"
    config.write_text("{not json")
    result = run_cli(["--config", str(config)], b"")
    assert result.returncode == 1
    assert "malformed config file" in result.stderr.decode()


def test_expected_section_parses_every_assertion_kind() -> None:
    spec = _parse_spec(
        ["args: --mode jni"],
        [
            "exit: 1",
            "stderr: error: unknown mode 'x'",
            "stderr-contains: unknown",
            "stdout-empty: true",
            "stdout-excludes: class",
        ],
    )
    assert spec["args"] == ["--mode", "jni"]
    assert spec["assertions"] == [
        ("exit", 1),
        ("stderr", "error: unknown mode 'x'"),
        ("stderr-contains", "unknown"),
        ("stdout-empty", None),
        ("stdout-excludes", "class"),
    ]
