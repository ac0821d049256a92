"""Conversion step and C type tests."""

import pytest

from jextract.backend import javasteps, nativesteps
from jextract.backend.javasteps import (
    ArenaAllocate,
    Cast,
    CombinedOptional,
    CommaSeparated,
    Constant,
    ExplodedName,
    JCall,
    JMethod,
    JPlaceholder,
    OptionalMap,
    OptionalOrElse,
    SwiftValueSelfSegment,
    Ternary,
    WrapMemoryAddress,
    requires_swift_arena,
    requires_temporary_arena,
)
from jextract.backend.javatypes import INT, LONG, OPTIONAL_INT, JavaClass
from jextract.backend.nativesteps import (
    ExtractSwiftValue,
    FallbackOptionalLowering,
    GetJNIValue,
    InitFromJNI,
    NConstant,
    NExplodedName,
    NOptionalMap,
    NPlaceholder,
    OpenExistential,
    UnwrapOptional,
)
from jextract.backend.util import EmitContext, Emitter
from jextract.errors import InternalError
from jextract.ir import INT32, Primitive, SwiftParam, known_type, unsafe_raw_pointer
from jextract.middleend import steps
from jextract.middleend.ctype import (
    VOID,
    CFunction,
    CFunctionType,
    CIntegral,
    CParameter,
    CPointer,
    c_declaration,
    const_void_pointer,
    ctype_from_swift,
    has_ctype,
)
from jextract.middleend.lowering import LoweredParameter
from jextract.middleend.steps import (
    Aggregate,
    ClosureLowering,
    ExplodedComponent,
    Initialize,
    LabeledArgument,
    Member,
    Placeholder,
    PopulatePointer,
    TupleExplode,
    Tuplify,
    TypedPointer,
)

POINT = JavaClass("Point", "com.example.swift")


# ============================================================
# EMITTERS
# ============================================================


def test_emitter_indents_blocks() -> None:
    em = Emitter()
    em.open("class A")
    em.line("int x;")
    em.close()
    assert em.output() == "class A {\n  int x;\n}"


def test_fresh_names_are_sequential_per_base() -> None:
    ctx = EmitContext()
    assert [ctx.fresh_name("tmp"), ctx.fresh_name("tmp"), ctx.fresh_name("x")] == ["tmp0", "tmp1", "x0"]


# ============================================================
# SWIFT STEPS
# ============================================================


def test_swift_placeholder_counts() -> None:
    assert Placeholder().placeholder_count == 1
    explode = ExplodedComponent(Placeholder(), "pointer")
    assert explode.placeholder_count == 1
    init = Initialize(
        known_type("UnsafeRawBufferPointer"),
        (
            LabeledArgument("start", ExplodedComponent(Placeholder(), "pointer")),
            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
        ),
    )
    assert init.placeholder_count == 2
    assert TupleExplode((Placeholder(), Placeholder())).placeholder_count == 1
    assert ClosureLowering((), Placeholder(), callee="f").placeholder_count == 0
    assert ClosureLowering((), Placeholder()).placeholder_count == 1


def test_swift_render_buffer_initializer() -> None:
    init = Initialize(
        known_type("UnsafeRawBufferPointer"),
        (
            LabeledArgument("start", ExplodedComponent(Placeholder(), "pointer")),
            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
        ),
    )
    ctx = EmitContext()
    assert steps.render(init, ctx, "body") == "UnsafeRawBufferPointer(start: body_pointer, count: body_count)"
    assert ctx.lines == []


def test_swift_render_typed_pointer_member() -> None:
    step = Member(steps.Pointee(TypedPointer(Placeholder(), INT32)), "value")
    assert steps.render(step, EmitContext(), "self") == "self.assumingMemoryBound(to: Int32.self).pointee.value"


def test_swift_render_populate_pointer() -> None:
    step = PopulatePointer("_result", Placeholder(), INT32)
    rendered = steps.render(step, EmitContext(), "f()")
    assert rendered == "_result.assumingMemoryBound(to: Int32.self).initialize(to: f())"


def test_swift_tuple_explode_binds_non_identifiers() -> None:
    step = TupleExplode(
        (PopulatePointer("_result_0", Placeholder()), PopulatePointer("_result_1", Placeholder()))
    )
    ctx = EmitContext()
    assert steps.render(step, ctx, "f()") is None
    assert ctx.lines == [
        "let _tmp0 = f()",
        "_result_0.initialize(to: _tmp0.0)",
        "_result_1.initialize(to: _tmp0.1)",
    ]


def test_swift_aggregate_uses_given_name() -> None:
    step = Aggregate((PopulatePointer("_result_pointer", Member(Placeholder(), "baseAddress")),), "buffer$")
    ctx = EmitContext()
    assert steps.render(step, ctx, "f()") is None
    assert ctx.lines == ["let buffer$ = f()", "_result_pointer.initialize(to: buffer$.baseAddress)"]


def test_swift_tuplify() -> None:
    step = Tuplify((Placeholder(), Placeholder()))
    assert step.placeholder_count == 2
    assert steps.render(step, EmitContext(), "p") == "(p_0, p_1)"


def test_swift_closure_lowering() -> None:
    step = ClosureLowering((Placeholder(),), Placeholder())
    rendered = steps.render(step, EmitContext(), "callback")
    assert rendered == "{ (_0) in\n  return callback(_0)\n}"


def test_expression_position_rejects_statement_steps() -> None:
    step = Member(TupleExplode((Placeholder(),)), "x")
    with pytest.raises(InternalError):
        steps.render(step, EmitContext(), "f()")


def test_lowered_parameter_count_mismatch_is_internal_error() -> None:
    with pytest.raises(InternalError):
        LoweredParameter([], Placeholder())
    with pytest.raises(InternalError):
        LoweredParameter([SwiftParam(INT32, None, "a")], Tuplify((Placeholder(), Placeholder())))


def test_lowered_parameter_accepts_matching_counts() -> None:
    lowered = LoweredParameter(
        [SwiftParam(unsafe_raw_pointer(), None, "a_pointer"), SwiftParam(Primitive("int"), None, "a_count")],
        Initialize(
            known_type("UnsafeRawBufferPointer"),
            (
                LabeledArgument("start", ExplodedComponent(Placeholder(), "pointer")),
                LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
            ),
        ),
    )
    assert len(lowered.cdecl_parameters) == 2


# ============================================================
# JAVA STEPS
# ============================================================


def test_java_string_argument_uses_arena() -> None:
    step = JCall(JPlaceholder(), "SwiftRuntime.toCString", with_arena=True)
    assert javasteps.render(step, EmitContext(), "name") == "SwiftRuntime.toCString(name, arena$)"
    assert requires_temporary_arena(step)
    assert not requires_swift_arena(step)


def test_java_buffer_argument() -> None:
    step = CommaSeparated((JPlaceholder(), JMethod(JPlaceholder(), "byteSize")))
    assert step.placeholder_count == 2
    assert javasteps.render(step, EmitContext(), "body") == "body, body.byteSize()"


def test_java_exploded_names() -> None:
    step = CommaSeparated((ExplodedName("0"), ExplodedName("1")))
    assert javasteps.render(step, EmitContext(), "pair") == "pair_0, pair_1"


def test_java_wrap_memory_address_requires_swift_arena() -> None:
    step = WrapMemoryAddress(JPlaceholder(), POINT)
    assert requires_swift_arena(step)
    assert javasteps.render(step, EmitContext(), "Point.$init(x)") == (
        "Point.wrapMemoryAddressUnsafe(Point.$init(x), swiftArena$)"
    )


def test_java_optional_parameter() -> None:
    step = OptionalOrElse(OptionalMap(JPlaceholder(), SwiftValueSelfSegment(JPlaceholder())), "MemorySegment.NULL")
    rendered = javasteps.render(step, EmitContext(), "p")
    assert rendered == "p.map((p$) -> p$.$memorySegment()).orElse(MemorySegment.NULL)"


def test_java_ternary() -> None:
    step = Ternary(
        JMethod(JPlaceholder(), "isPresent"),
        ArenaAllocate(JMethod(JPlaceholder(), "getAsInt"), "ValueLayout.JAVA_INT"),
        Constant("MemorySegment.NULL"),
    )
    assert requires_temporary_arena(step)
    rendered = javasteps.render(step, EmitContext(), "v")
    assert rendered == "(v.isPresent() ? arena$.allocateFrom(ValueLayout.JAVA_INT, v.getAsInt()) : MemorySegment.NULL)"


def test_java_combined_optional() -> None:
    step = CombinedOptional(JPlaceholder(), OPTIONAL_INT, LONG, 32, Cast(JPlaceholder(), INT))
    ctx = EmitContext()
    value = javasteps.render(step, ctx, "MyModule.$find()")
    assert ctx.lines == [
        "long result$ = MyModule.$find();",
        "byte result$_discriminator$ = (byte) (result$ & 0xFF);",
    ]
    assert value == "(result$_discriminator$ == 1) ? OptionalInt.of((int) (result$ >> 32)) : OptionalInt.empty()"


# ============================================================
# NATIVE STEPS
# ============================================================


def test_native_placeholder_counts() -> None:
    assert NPlaceholder().placeholder_count == 1
    assert NExplodedName("x").placeholder_count == 1
    assert NConstant("nil").placeholder_count == 0
    assert OpenExistential("any Greeter").placeholder_count == 2


def test_native_primitive_conversions() -> None:
    ctx = EmitContext()
    assert nativesteps.render(InitFromJNI(NPlaceholder(), INT32), ctx, "a") == "Int32(fromJNI: a, in: environment)"
    assert nativesteps.render(GetJNIValue(NPlaceholder()), ctx, "f()") == "f().getJNIValue(in: environment)"


def test_native_optional_map() -> None:
    step = NOptionalMap(NPlaceholder(), GetJNIValue(NPlaceholder()))
    assert nativesteps.render(step, EmitContext(), "f()") == "f().map { $0.getJNIValue(in: environment) }"


def test_native_unwrap_optional_emits_guard() -> None:
    ctx = EmitContext()
    value = nativesteps.render(UnwrapOptional(NPlaceholder(), "init failed"), ctx, "Point(x: x)")
    assert value == "unwrapped$"
    assert ctx.lines[0] == "guard let unwrapped$ = Point(x: x) else {"
    assert ctx.lines[1].strip() == 'fatalError("init failed")'


def test_native_fallback_optional_branches_on_presence() -> None:
    step = FallbackOptionalLowering(
        NPlaceholder(), GetJNIValue(NPlaceholder()), "jlong", "jlong.jniPlaceholderValue"
    )
    ctx = EmitContext()
    assert nativesteps.render(step, ctx, "f()") == "result$"
    set_flag = "environment.interface.SetByteArrayRegion(environment, result_discriminator$, 0, 1, &flag$)"
    assert [line.strip() for line in ctx.lines] == [
        "let result$: jlong",
        "if let innerResult$ = f() {",
        "result$ = innerResult$.getJNIValue(in: environment)",
        "var flag$ = Int8(1)",
        set_flag,
        "} else {",
        "result$ = jlong.jniPlaceholderValue",
        "var flag$ = Int8(0)",
        set_flag,
        "}",
    ]


def test_native_extract_swift_value_guards_null() -> None:
    ctx = EmitContext()
    value = nativesteps.render(ExtractSwiftValue(NPlaceholder(), INT32), ctx, "selfPointer")
    assert value == "selfPointer$"
    assert [line.strip() for line in ctx.lines] == [
        "let selfPointerBits$ = Int(Int64(fromJNI: selfPointer, in: environment))",
        'assert(selfPointer != 0, "selfPointer memory address was null")',
        "guard let selfPointer$ = UnsafeMutablePointer<Int32>(bitPattern: selfPointerBits$) else {",
        'fatalError("selfPointer memory address was null in call to \\(#function)!")',
        "}",
    ]


def test_native_extract_allowing_nil_has_no_guard() -> None:
    ctx = EmitContext()
    value = nativesteps.render(ExtractSwiftValue(NPlaceholder(), INT32, allow_nil=True), ctx, "p")
    assert value == "p$"
    assert ctx.lines[-1] == "let p$ = UnsafeMutablePointer<Int32>(bitPattern: pBits$)"


# ============================================================
# C TYPES
# ============================================================


def test_c_void_function() -> None:
    assert str(CFunction("f", VOID, [])) == "void f(void)"


def test_c_function_with_parameters() -> None:
    fn = CFunction(
        "g",
        CIntegral("signed", 32),
        [CParameter("p", const_void_pointer()), CParameter("n", CIntegral("ptrdiff_t"))],
    )
    assert str(fn) == "int32_t g(const void *p, ptrdiff_t n)"


def test_c_function_pointer_declarator() -> None:
    pointer = CPointer(CFunctionType(VOID, (CIntegral("signed", 32),)))
    assert c_declaration(pointer, "cb") == "void (*cb)(int32_t)"


def test_ctype_from_swift() -> None:
    assert str(ctype_from_swift(Primitive("int"))) == "ptrdiff_t"
    assert str(ctype_from_swift(Primitive("uint8"))) == "uint8_t"
    assert str(ctype_from_swift(Primitive("bool"))) == "bool"
    assert has_ctype(unsafe_raw_pointer())
    assert not has_ctype(known_type("String"))
