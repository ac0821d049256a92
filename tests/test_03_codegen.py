"""Codegen tests: generated sources must contain the expected snippets.

Test cases live in 03_codegen/*.tests files. Format:

    === test name
    mode: ffm | jni
    side: java | swift
    config: key=value ...        (optional Config overrides)
    <swift interface source>
    ---
    <expected snippet>
    ---

Matching is line-by-line with surrounding whitespace stripped and blank
lines ignored, so snippets need not reproduce indentation.
"""

from pathlib import Path

import pytest

from conftest import joined, run_generate

CODEGEN_DIR = Path(__file__).parent / "03_codegen"


def parse_codegen_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            spec: dict = {"mode": "ffm", "side": "java", "config": {}}
            while i < len(lines) and lines[i].startswith(("mode:", "side:", "config:")):
                key, _, value = lines[i].partition(":")
                if key == "config":
                    for pair in value.split():
                        name, _, setting = pair.partition("=")
                        spec["config"][name] = setting
                else:
                    spec[key] = value.strip()
                i += 1
            input_lines: list[str] = []
            while i < len(lines) and lines[i] != "---":
                input_lines.append(lines[i])
                i += 1
            i += 1
            expected_lines: list[str] = []
            while i < len(lines) and lines[i] != "---":
                expected_lines.append(lines[i])
                i += 1
            i += 1
            spec["source"] = "\n".join(input_lines)
            spec["expected"] = "\n".join(expected_lines)
            result.append((test_name, spec))
        else:
            i += 1
    return result


def discover_codegen_tests() -> list[tuple[str, dict]]:
    results = []
    for test_file in sorted(CODEGEN_DIR.glob("*.tests")):
        for name, spec in parse_codegen_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def pytest_generate_tests(metafunc):
    if "codegen_spec" in metafunc.fixturenames:
        tests = discover_codegen_tests()
        params = [pytest.param(spec, id=test_id) for test_id, spec in tests]
        metafunc.parametrize("codegen_spec", params)


def contains_normalized(haystack: str, needle: str) -> bool:
    """Check if needle appears in haystack, normalizing line-by-line whitespace."""
    needle_lines = [line.strip() for line in needle.strip().split("\n") if line.strip()]
    haystack_lines = [line.strip() for line in haystack.split("\n") if line.strip()]
    if not needle_lines:
        return True
    for i in range(len(haystack_lines)):
        if haystack_lines[i] == needle_lines[0]:
            match = True
            for j in range(1, len(needle_lines)):
                if i + j >= len(haystack_lines) or haystack_lines[i + j] != needle_lines[j]:
                    match = False
                    break
            if match:
                return True
    return False


def test_codegen(codegen_spec: dict) -> None:
    """Verify generated output contains the expected snippet."""
    out = run_generate(codegen_spec["source"], codegen_spec["mode"], **codegen_spec["config"])
    files = out.java if codegen_spec["side"] == "java" else out.swift
    generated = joined(files)
    expected = codegen_spec["expected"]
    if not contains_normalized(generated, expected):
        pytest.fail(f"Expected not found in output:\n--- expected ---\n{expected}\n--- got ---\n{generated}")
    assert out.diagnostics == [], [d.format() for d in out.diagnostics]
