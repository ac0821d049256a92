"""Parser tests.

Test cases live in 02_parse/*.tests files. Format:

    === test name
    <swift interface source>
    ---
    ok | error: <message>
    ---
"""

from pathlib import Path

import pytest

from jextract.errors import ParseError
from jextract.frontend.parse import parse
from jextract.frontend.tokens import TK_EOF, TK_IDENT, TK_OP, TK_STRING, tokenize
from jextract.ir import (
    VOID,
    Existential,
    FunctionType,
    GenericParameter,
    Metatype,
    Nominal,
    OptionalType,
    Primitive,
    TupleType,
)

PARSE_DIR = Path(__file__).parent / "02_parse"


def parse_tests_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, source, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
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
            result.append((test_name, "\n".join(input_lines), "\n".join(expected_lines).strip()))
        else:
            i += 1
    return result


def discover_parse_tests() -> list[tuple[str, str, str]]:
    results = []
    for test_file in sorted(PARSE_DIR.glob("*.tests")):
        for name, source, expected in parse_tests_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, expected))
    return results


def pytest_generate_tests(metafunc):
    if "parse_input" in metafunc.fixturenames:
        tests = discover_parse_tests()
        params = [pytest.param(source, expected, id=test_id) for test_id, source, expected in tests]
        metafunc.parametrize("parse_input,parse_expected", params)


def test_parse(parse_input: str, parse_expected: str) -> None:
    """Run a single parse test case from .tests file."""
    try:
        parse(parse_input, "MyModule")
    except ParseError as e:
        assert parse_expected == "error: " + e.msg, f"unexpected parse error: {e}"
        return
    assert parse_expected == "ok", "expected a parse error, parsed successfully"


# ============================================================
# TOKENS
# ============================================================


def test_tokenize_positions() -> None:
    tokens = tokenize("public func f()\n  -> Int")
    assert [t.value for t in tokens[:-1]] == ["public", "func", "f", "(", ")", "->", "Int"]
    assert tokens[-1].type == TK_EOF
    arrow = tokens[5]
    assert arrow.type == TK_OP
    assert (arrow.line, arrow.col) == (2, 3)


def test_tokenize_backticks_and_strings() -> None:
    tokens = tokenize('`default` "a\\nb"')
    assert tokens[0].type == TK_IDENT
    assert tokens[0].value == "default"
    assert tokens[1].type == TK_STRING
    assert tokens[1].value == "a\nb"


def test_parse_error_location() -> None:
    with pytest.raises(ParseError) as exc:
        parse("public func f()\npublic func (", "MyModule")
    assert exc.value.line == 2
    assert exc.value.msg == "expected identifier, found 'end of input'"


# ============================================================
# DECLARATION MODEL
# ============================================================


def test_global_function() -> None:
    module = parse("public func add(a: Int32, _ b: Int32) -> Int32", "MyModule")
    assert len(module.functions) == 1
    func = module.functions[0]
    assert func.name == "add"
    assert func.api_kind == "function"
    assert func.parent is None
    assert func.source == "public func add(a: Int32, _ b: Int32) -> Int32"
    params = func.signature.params
    assert [(p.label, p.name) for p in params] == [("a", "a"), (None, "b")]
    assert params[0].type == Primitive("int32")
    assert func.signature.result == Primitive("int32")
    assert func.signature.self_param is None


def test_void_result_and_effects() -> None:
    module = parse("public func fetch() async throws", "MyModule")
    sig = module.functions[0].signature
    assert sig.result == VOID
    assert sig.is_async
    assert sig.is_throws


def test_non_public_declarations_are_dropped() -> None:
    source = """\
func internalByDefault()
internal func explicitInternal()
private func hidden()
public func visible()
open class Base {
  func notExported()
  public func exported()
}
"""
    module = parse(source, "MyModule")
    assert [f.name for f in module.functions] == ["visible"]
    base = module.types["Base"]
    assert [m.name for m in base.methods] == ["exported"]


def test_struct_members() -> None:
    source = """\
public struct Point {
  public var x: Int32
  public let y: Int32
  public init(x: Int32, y: Int32)
  public init?(text: String)
  public mutating func move(by dx: Int32)
  public static func origin() -> Point
}
"""
    module = parse(source, "MyModule")
    point = module.types["Point"]
    assert point.decl.kind == "struct"
    assert [v.api_kind for v in point.variables] == ["getter", "setter", "getter"]
    setter = point.variables[1]
    assert setter.signature.params[0].name == "newValue"
    assert setter.signature.self_param is not None
    assert setter.signature.self_param.convention == "inout"

    init, failable = point.initializers
    assert init.api_kind == "initializer"
    assert init.signature.result == point.swift_type
    assert failable.signature.result == OptionalType(point.swift_type)

    move, origin = point.methods
    assert move.signature.self_param is not None
    assert move.signature.self_param.kind == "instance"
    assert move.signature.self_param.convention == "inout"
    assert origin.is_static_member
    assert origin.signature.result == Nominal(point.decl)


def test_accessor_blocks() -> None:
    source = """\
public final class Counter {
  public var value: Int { get set }
  public var total: Int { get }
  public private(set) var count: Int
  public var size: Int { get async throws }
}
"""
    counter = parse(source, "MyModule").types["Counter"]
    kinds = [(v.name, v.api_kind) for v in counter.variables]
    assert kinds == [
        ("value", "getter"),
        ("value", "setter"),
        ("total", "getter"),
        ("count", "getter"),
        ("size", "getter"),
    ]
    size = counter.variables[-1]
    assert size.signature.is_async
    assert size.signature.is_throws


def test_class_methods_are_not_mutating() -> None:
    source = """\
public class Box {
  public var value: Int
}
"""
    box = parse(source, "MyModule").types["Box"]
    setter = box.variables[1]
    assert setter.signature.self_param is not None
    assert setter.signature.self_param.convention == "borrowed"


def test_enum_cases() -> None:
    source = """\
public enum Shape {
  case circle(radius: Double)
  case square(Double)
  case empty, unknown
}
"""
    shape = parse(source, "MyModule").types["Shape"]
    assert [c.name for c in shape.cases] == ["circle", "square", "empty", "unknown"]
    circle, square, empty, _ = shape.cases
    assert [(p.label, p.name) for p in circle.params] == [("radius", "radius")]
    assert [(p.label, p.name) for p in square.params] == [(None, None)]
    assert square.params[0].type == Primitive("double")
    assert empty.params == []
    assert circle.case_function.api_kind == "enum_case"
    assert circle.case_function.signature.result == shape.swift_type
    assert circle.key == "Shape.case.circle"


def test_protocol_members_are_implicitly_public() -> None:
    source = """\
public protocol Greeter {
  func greet(name: String) -> String
  var volume: Int { get set }
}
"""
    greeter = parse(source, "MyModule").types["Greeter"]
    assert greeter.decl.kind == "protocol"
    assert [m.name for m in greeter.methods] == ["greet"]
    assert [v.api_kind for v in greeter.variables] == ["getter", "setter"]


def test_nested_types() -> None:
    source = """\
public struct Outer {
  public struct Inner {
    public var value: Int
  }
  public func make() -> Inner
}
"""
    module = parse(source, "MyModule")
    assert list(module.types) == ["Outer", "Outer.Inner"]
    inner = module.types["Outer.Inner"]
    assert inner.decl.parent == "Outer"
    make = module.types["Outer"].methods[0]
    assert make.signature.result == inner.swift_type


def test_extension_members_and_typealias() -> None:
    source = """\
public struct Point {}
public typealias Coordinate = Int32
extension Point {
  public func shifted(by delta: Coordinate) -> Point
}
"""
    point = parse(source, "MyModule").types["Point"]
    assert [m.name for m in point.methods] == ["shifted"]
    assert point.methods[0].signature.params[0].type == Primitive("int32")


def test_type_forms() -> None:
    source = """\
public protocol Greeter {}
public func a(values: [Int8], maybe: String?, meta: Int.Type) -> (Int, Double)
public func b(callback: @escaping (Int32) -> Void)
public func c(greeter: any Greeter)
public func d<T>(value: T) -> T
"""
    module = parse(source, "MyModule")
    a, b, c, d = module.functions
    values, maybe, meta = a.signature.params
    assert isinstance(values.type, Nominal)
    assert values.type.decl.known == "array"
    assert values.type.generic_args == (Primitive("int8"),)
    assert isinstance(maybe.type, OptionalType)
    assert meta.type == Metatype(Primitive("int"))
    assert a.signature.result == TupleType((Primitive("int"), Primitive("double")))

    callback = b.signature.params[0].type
    assert isinstance(callback, FunctionType)
    assert callback.escaping
    assert callback.result == VOID

    assert isinstance(c.signature.params[0].type, Existential)
    assert d.signature.params[0].type == GenericParameter("T")
    assert d.signature.generic_params == ["T"]


def test_convention_c_closure() -> None:
    module = parse("public func f(fn: @convention(c) (Int32) -> Int32)", "MyModule")
    fn = module.functions[0].signature.params[0].type
    assert isinstance(fn, FunctionType)
    assert fn.convention == "c"
    assert not fn.escaping


def test_java_wrapper_type() -> None:
    source = """\
@JavaClass("java.util.ArrayList")
public struct ArrayList {}
"""
    decl = parse(source, "MyModule").types["ArrayList"].decl
    assert decl.is_java_wrapper
    assert decl.java_class == "java.util.ArrayList"


def test_unavailable_declarations_are_dropped() -> None:
    source = """\
@available(*, unavailable)
public func gone()
@available(macOS 13, *)
public func modern()
"""
    module = parse(source, "MyModule")
    assert [f.name for f in module.functions] == ["modern"]


# ============================================================
# SKIPPED DECLARATIONS
# ============================================================


def test_generic_types_are_skipped() -> None:
    source = """\
public struct Box<T> {
  public var value: T
}
public func hello()
"""
    module = parse(source, "MyModule")
    assert "Box" not in module.types
    assert ("Box", "generic types are not supported", 1) in module.skipped
    assert [f.name for f in module.functions] == ["hello"]


def test_dictionary_types_are_skipped() -> None:
    module = parse("public func lookup(table: [String: Int]) -> Int\npublic func ok()", "MyModule")
    assert module.skipped == [("lookup", "dictionary types are not supported", 1)]
    assert [f.name for f in module.functions] == ["ok"]


def test_unknown_types_are_skipped() -> None:
    module = parse("public func load(url: URL)", "MyModule")
    assert module.functions == []
    assert module.skipped == [("load", "unknown type: URL", 1)]


def test_variadic_parameters_are_skipped() -> None:
    module = parse("public func sum(_ values: Int...) -> Int", "MyModule")
    assert module.functions == []
    assert module.skipped[0][1] == "variadic parameters are not supported: values"


def test_extension_of_unknown_type_is_skipped() -> None:
    module = parse("extension Missing {\n  public func f()\n}", "MyModule")
    assert module.skipped == [("Missing.f", "extended type is not exported", 2)]


def test_filename_is_recorded() -> None:
    module = parse("public func f()", "MyModule", "MyModule.swiftinterface")
    assert module.filename == "MyModule.swiftinterface"
    assert module.name == "MyModule"
