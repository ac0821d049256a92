"""Symbol naming tests."""

from jextract.backend.javatypes import INT, LONG, STRING, JavaArray, JavaClass
from jextract.backend.naming import (
    ThunkNameRegistry,
    getter_name,
    java_method_name,
    java_parameter_name,
    jni_escape,
    jni_native_name,
    native_method_name,
    setter_name,
)
from jextract.frontend.parse import parse
from jextract.ir import BOOL, INT32


# ============================================================
# THUNK NAMES
# ============================================================


def test_global_function_thunk_name() -> None:
    module = parse("public func add(a: Int32, _ b: Int32) -> Int32", "MyModule")
    names = ThunkNameRegistry()
    assert names.function_thunk_name(module.functions[0]) == "swiftjava_MyModule_add_a__"


def test_member_thunk_names() -> None:
    source = """\
public struct Point {
  public var x: Int32
  public func length() -> Double
}
"""
    point = parse(source, "MyModule").types["Point"]
    names = ThunkNameRegistry()
    getter, setter = point.variables
    assert names.function_thunk_name(getter) == "swiftjava_MyModule_Point_x$get"
    assert names.function_thunk_name(setter) == "swiftjava_MyModule_Point_x$set"
    assert names.function_thunk_name(point.methods[0]) == "swiftjava_MyModule_Point_length"
    assert names.type_metadata_thunk_name(point) == "swiftjava_getType_MyModule_Point"


def test_nested_type_thunk_names() -> None:
    source = """\
public struct Outer {
  public struct Inner {
    public func run()
  }
}
"""
    inner = parse(source, "MyModule").types["Outer.Inner"]
    names = ThunkNameRegistry()
    assert names.function_thunk_name(inner.methods[0]) == "swiftjava_MyModule_Outer_Inner_run"
    assert names.type_metadata_thunk_name(inner) == "swiftjava_getType_MyModule_Outer_Inner"


def test_duplicate_thunk_names_get_suffixes() -> None:
    module = parse("public func f(a: Int32)\npublic func f(a: String)\npublic func f(a: Double)", "MyModule")
    names = ThunkNameRegistry()
    first, second, third = module.functions
    assert names.function_thunk_name(first) == "swiftjava_MyModule_f_a"
    assert names.function_thunk_name(second) == "swiftjava_MyModule_f_a$1"
    assert names.function_thunk_name(third) == "swiftjava_MyModule_f_a$2"
    assert names.duplicate_suffix(first) == ""
    assert names.duplicate_suffix(second) == "$1"


def test_thunk_names_are_stable_per_declaration() -> None:
    module = parse("public func f(a: Int32)\npublic func f(a: String)", "MyModule")
    names = ThunkNameRegistry()
    first, second = module.functions
    names.function_thunk_name(first)
    names.function_thunk_name(second)
    assert names.function_thunk_name(second) == "swiftjava_MyModule_f_a$1"
    assert names.function_thunk_name(first) == "swiftjava_MyModule_f_a"


def test_custom_thunk_prefix() -> None:
    module = parse("public func hello()", "MyModule")
    assert ThunkNameRegistry("demo").function_thunk_name(module.functions[0]) == "demo_MyModule_hello"


def test_static_and_instance_members_get_distinct_thunks() -> None:
    source = """\
public struct S {
  public func f() -> Int32
  public static func f() -> Int32
}
"""
    instance, static = parse(source, "MyModule").types["S"].methods
    names = ThunkNameRegistry()
    assert names.function_thunk_name(instance) == "swiftjava_MyModule_S_f"
    assert names.function_thunk_name(static) == "swiftjava_MyModule_S_f$1"


def test_declaration_keys_include_self_kind_and_effects() -> None:
    source = """\
public struct S {
  public func f() -> Int32
  public static func f() -> Int32
  public func g() async -> Int32
  public func g() throws -> Int32
}
"""
    methods = parse(source, "MyModule").types["S"].methods
    assert [m.key for m in methods] == [
        "MyModule.S.f[function,instance]()->Int32",
        "MyModule.S.f[function,static]()->Int32",
        "MyModule.S.g[function,instance]() async->Int32",
        "MyModule.S.g[function,instance]() throws->Int32",
    ]
    assert parse("public func hello()", "MyModule").functions[0].key == "MyModule.hello[function,global]()->()"


# ============================================================
# JNI NAMES
# ============================================================


def test_jni_escape() -> None:
    assert jni_escape("plain") == "plain"
    assert jni_escape("under_score") == "under_1score"
    assert jni_escape("$add") == "_00024add"
    assert jni_escape("Ljava/lang/String;") == "Ljava_lang_String_2"
    assert jni_escape("[I") == "_3I"


def test_jni_native_name() -> None:
    name = jni_native_name("com.example.swift", "MyModule", "$add", [INT, INT])
    assert name == "Java_com_example_swift_MyModule__00024add__II"


def test_jni_native_name_with_reference_parameters() -> None:
    string = JavaClass("String", "java.lang")
    name = jni_native_name("com.example.swift", "MyModule", "$f", [string, JavaArray(LONG)])
    assert name == "Java_com_example_swift_MyModule__00024f__Ljava_lang_String_2_3J"


def test_jni_native_name_nested_owner() -> None:
    name = jni_native_name("com.example.swift", "Outer.Inner", "$run", [])
    assert name == "Java_com_example_swift_Outer_00024Inner__00024run__"


def test_jni_native_name_default_package() -> None:
    assert jni_native_name("", "MyModule", "$f", [STRING]) == "Java_MyModule__00024f__Ljava_lang_String_2"


# ============================================================
# JAVA MEMBER NAMES
# ============================================================


def test_getter_names() -> None:
    assert getter_name("x", INT32) == "getX"
    assert getter_name("enabled", BOOL) == "isEnabled"
    assert getter_name("isEmpty", BOOL) == "isEmpty"
    assert getter_name("island", BOOL) == "isIsland"
    assert setter_name("x") == "setX"


def test_java_method_names() -> None:
    source = """\
public struct Point {
  public init(x: Int32)
  public func `default`()
  public var enabled: Bool
}
"""
    point = parse(source, "MyModule").types["Point"]
    assert java_method_name(point.initializers[0]) == "init"
    assert java_method_name(point.methods[0]) == "default_"
    assert [java_method_name(v) for v in point.variables] == ["isEnabled", "setEnabled"]
    assert native_method_name("init") == "$init"


def test_java_parameter_names() -> None:
    assert java_parameter_name("value", 0) == "value"
    assert java_parameter_name(None, 1) == "_1"
    assert java_parameter_name("_", 2) == "_2"
    assert java_parameter_name("class", 0) == "class_"
