"""Generation driver tests: file layout, skipping and determinism."""

import pytest
from conftest import make_config, run_generate

from jextract.config import ConfigError, LogLevel
from jextract.frontend.parse import parse
from jextract.generator import generate

POINT = """\
public struct Point {
  public var x: Int32
  public init(x: Int32)
}
"""


def messages(out) -> list[str]:
    return [d.format() for d in out.diagnostics]


# ============================================================
# FILE LAYOUT
# ============================================================


def test_ffm_file_names(ffm) -> None:
    out = ffm(POINT + "public func hello()")
    assert sorted(out.java) == ["com/example/swift/MyModule.java", "com/example/swift/Point.java"]
    assert sorted(out.swift) == ["MyModuleModule+SwiftJava.swift", "Point+SwiftJava.swift"]


def test_jni_file_names(jni) -> None:
    out = jni(POINT)
    assert sorted(out.java) == ["com/example/swift/MyModule.java", "com/example/swift/Point.java"]
    assert sorted(out.swift) == ["MyModuleModule+SwiftJava.swift", "Point+SwiftJava.swift"]


def test_package_directories() -> None:
    config = make_config("ffm", java_package="org.demo.lib")
    out = generate(parse("public func hello()", "MyModule"), config)
    assert list(out.java) == ["org/demo/lib/MyModule.java"]
    assert "package org.demo.lib;" in out.java["org/demo/lib/MyModule.java"]


def test_nested_types_share_the_outer_file(jni) -> None:
    source = """\
public struct Outer {
  public struct Inner {
    public var value: Int32
  }
}
"""
    out = jni(source)
    assert sorted(out.java) == ["com/example/swift/MyModule.java", "com/example/swift/Outer.java"]
    assert "public static final class Inner implements JNISwiftInstance {" in out.java["com/example/swift/Outer.java"]


def test_java_wrapper_types_get_no_class(jni) -> None:
    source = """\
@JavaClass("java.util.ArrayList")
public struct ArrayList {}
"""
    out = jni(source)
    assert list(out.java) == ["com/example/swift/MyModule.java"]


def test_output_is_deterministic() -> None:
    source = POINT + "public func f(a: Int32)\npublic func f(a: String)\npublic func find() -> Int32?"
    for mode in ("ffm", "jni"):
        first = run_generate(source, mode)
        second = run_generate(source, mode)
        assert first.java == second.java
        assert first.swift == second.swift


STATIC_AND_INSTANCE = """\
public struct S {
  public func f() -> Int32
  public static func f() -> Int32
}
"""


def test_ffm_static_and_instance_members_are_both_generated(ffm) -> None:
    out = ffm(STATIC_AND_INSTANCE)
    swift = out.swift["S+SwiftJava.swift"]
    assert swift.count('@_cdecl("swiftjava_MyModule_S_f")') == 1
    assert swift.count('@_cdecl("swiftjava_MyModule_S_f$1")') == 1
    assert "return S.f()" in swift
    java = out.java["com/example/swift/S.java"]
    assert "public int f() {" in java
    assert "public static int f() {" in java


def test_jni_static_and_instance_members_are_both_generated(jni) -> None:
    out = jni(STATIC_AND_INSTANCE)
    java = out.java["com/example/swift/S.java"]
    assert java.count("private static native int $f(long selfPointer);") == 1
    assert java.count("private static native int $f$1();") == 1
    assert "return S.f()" in out.swift["S+SwiftJava.swift"]


# ============================================================
# SKIPPED DECLARATIONS
# ============================================================


def test_unsupported_declaration_is_skipped(ffm) -> None:
    out = ffm("public func fetch() async -> Int32\npublic func hello()")
    assert messages(out) == ["line 1: warning: 'fetch': effectful functions are not supported (async)"]
    java = out.java["com/example/swift/MyModule.java"]
    assert "public static void hello() {" in java
    assert "fetch" not in java
    assert "fetch" not in out.swift["MyModuleModule+SwiftJava.swift"]


def test_parser_skips_become_diagnostics() -> None:
    module = parse("public struct Box<T> {}\npublic func hello()", "MyModule", "MyModule.swiftinterface")
    out = generate(module, make_config("jni"))
    assert messages(out) == ["MyModule.swiftinterface:1: warning: 'Box': generic types are not supported"]
    assert "hello" in out.java["com/example/swift/MyModule.java"]


def test_ffm_skips_enum_cases(ffm) -> None:
    out = ffm("public enum Shape {\n  case circle(radius: Double)\n}")
    assert len(out.diagnostics) == 1
    diagnostic = out.diagnostics[0]
    assert diagnostic.decl_name == "Shape.circle"
    assert diagnostic.message == "enum cases are not supported in ffm mode (circle)"
    assert "com/example/swift/Shape.java" in out.java


def test_ffm_skips_protocols(ffm) -> None:
    out = ffm("public protocol Greeter {\n  func greet() -> Int32\n}")
    assert [(d.decl_name, d.message) for d in out.diagnostics] == [
        ("Greeter", "protocols are not supported in ffm mode")
    ]
    assert list(out.java) == ["com/example/swift/MyModule.java"]


def test_jni_inout_requires_imported_type(jni) -> None:
    out = jni(POINT + "public func bump(value: inout Int32)\npublic func move(point: inout Point)")
    assert [d.decl_name for d in out.diagnostics] == ["bump"]
    assert out.diagnostics[0].message.startswith("inout is only supported for imported types in jni mode")
    assert "move" in out.java["com/example/swift/MyModule.java"]


def test_jni_closure_values_must_be_simple(jni) -> None:
    out = jni(POINT + "public func each(body: (Point) -> Void)")
    assert [d.decl_name for d in out.diagnostics] == ["each"]
    assert out.diagnostics[0].message.startswith("closure values must be primitives or strings in jni mode")


def test_jni_static_protocol_requirements_are_skipped(jni) -> None:
    source = """\
public protocol Greeter {
  func greet(name: String) -> String
  static func count() -> Int
}
"""
    out = jni(source)
    assert [d.decl_name for d in out.diagnostics] == ["Greeter.count"]
    java = out.java["com/example/swift/Greeter.java"]
    assert "greet" in java
    assert "count()" not in java


def test_skips_are_logged(capsys) -> None:
    config = make_config("ffm", log_level=LogLevel.WARNING)
    generate(parse("public func fetch() throws", "MyModule"), config)
    assert "'fetch': effectful functions are not supported (throws)" in capsys.readouterr().err


def test_jni_wrap_mode_falls_back_to_annotations(capsys) -> None:
    config = make_config("jni", unsigned_mode="wrap", log_level=LogLevel.WARNING)
    generate(parse("public func hello()", "MyModule"), config)
    assert "unsigned wrap mode is not supported in jni mode" in capsys.readouterr().err


def test_jni_narrow_primitives_change_optional_packing(jni) -> None:
    out = jni("public func small() -> Int16?\npublic func wide() -> Int32?", max_primitive_bits=32)
    java = out.java["com/example/swift/MyModule.java"]
    assert "private static native int $small();" in java
    assert "private static native int $wide(byte[] result_discriminator$);" in java


def test_generate_rejects_unsupported_primitive_width() -> None:
    config = make_config("jni", max_primitive_bits=128)
    with pytest.raises(ConfigError, match="invalid max primitive bits 128"):
        generate(parse("public func find() -> Int64?", "MyModule"), config)


# ============================================================
# MEMORY MANAGEMENT
# ============================================================


def test_explicit_memory_management_has_no_auto_overload(ffm) -> None:
    out = ffm(POINT + "public func origin() -> Point")
    java = out.java["com/example/swift/MyModule.java"]
    assert "public static Point origin(AllocatingSwiftArena swiftArena$) {" in java
    assert "AllocatingSwiftArena.ofAuto()" not in java


def test_global_automatic_adds_overload(ffm) -> None:
    out = ffm(POINT + "public func origin() -> Point", memory_management="allow_global_automatic")
    java = out.java["com/example/swift/MyModule.java"]
    assert "public static Point origin() {" in java
    assert "return origin(AllocatingSwiftArena.ofAuto());" in java
