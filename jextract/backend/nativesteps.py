"""Swift-side conversion steps across the JNI boundary.

Parameter conversions raise JNI values (jint, jlong, jstring?, jobject?)
to the Swift values the API expects; result conversions lower Swift values
back to JNI values. Closure upcalls run the other way: their parameters are
lowered to jvalues and their result raised from the Java return value.

| Step                    | Renders                                              |
|-------------------------|------------------------------------------------------|
| NPlaceholder            | p                                                    |
| NExplodedName           | p_component                                          |
| NConstant               | literal text                                         |
| GetJNIValue             | inner.getJNIValue(in: environment)                   |
| GetJValue               | inner.getJValue(in: environment)                     |
| InitFromJNI             | T(fromJNI: inner, in: environment)                   |
| ExtractSwiftValue       | guarded UnsafeMutablePointer<T>(bitPattern:) -> p$   |
| AllocateSwiftValue      | allocate, initialize, -> pBits$                      |
| NPointee                | inner.pointee                                        |
| NOptionalChain          | inner?                                               |
| NOptionalMap            | inner.map { body($0) }                               |
| CombinedOptionalLowering| inner.map { bits << shift | 1 } ?? 0                 |
| FallbackOptionalLowering| if let; write the byte[1] discriminator              |
| NTernary                | cond ? then : otherwise                              |
| NComparison             | inner op value                                       |
| IfStatement             | if cond { ... } else { ... }                         |
| OpenExistential         | open (pointer, type metadata) as `any P`             |
| WrapJavaObject          | T(javaThis: inner!, environment: environment)        |
| UnwrapJavaObject        | inner.javaThis                                       |
| UnwrapOptional          | guard let ... else { fatalError }                    |
| UpcallClosure           | closure literal calling Call<Kind>MethodA            |
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InternalError
from ..ir import SwiftType
from .util import EmitContext


@dataclass(unsafe_hash=True)
class NativeConversionStep:
    """Base for Swift-side JNI conversion steps."""

    @property
    def placeholder_count(self) -> int:
        return placeholder_count(self)


@dataclass(unsafe_hash=True)
class NPlaceholder(NativeConversionStep):
    pass


@dataclass(unsafe_hash=True)
class NExplodedName(NativeConversionStep):
    component: str


@dataclass(unsafe_hash=True)
class NConstant(NativeConversionStep):
    value: str


@dataclass(unsafe_hash=True)
class GetJNIValue(NativeConversionStep):
    inner: NativeConversionStep


@dataclass(unsafe_hash=True)
class GetJValue(NativeConversionStep):
    inner: NativeConversionStep


@dataclass(unsafe_hash=True)
class InitFromJNI(NativeConversionStep):
    inner: NativeConversionStep
    swift_type: SwiftType


@dataclass(unsafe_hash=True)
class ExtractSwiftValue(NativeConversionStep):
    """Reinterpret a jlong as a pointer to T; allow_nil yields an optional pointer."""

    inner: NativeConversionStep
    swift_type: SwiftType
    allow_nil: bool = False


@dataclass(unsafe_hash=True)
class AllocateSwiftValue(NativeConversionStep):
    """Move the value to the heap and produce its address bits."""

    inner: NativeConversionStep
    swift_type: SwiftType
    name: str = "result"


@dataclass(unsafe_hash=True)
class NPointee(NativeConversionStep):
    inner: NativeConversionStep


@dataclass(unsafe_hash=True)
class NOptionalChain(NativeConversionStep):
    inner: NativeConversionStep


@dataclass(unsafe_hash=True)
class NOptionalMap(NativeConversionStep):
    inner: NativeConversionStep
    body: NativeConversionStep


@dataclass(unsafe_hash=True)
class CombinedOptionalLowering(NativeConversionStep):
    """Pack an optional scalar as `value << shift | 1`, or 0 when nil.

    value_bits converts the unwrapped `$0` to the container integer type
    without changing its bit pattern.
    """

    inner: NativeConversionStep
    container: str
    value_bits: str
    shift: int


@dataclass(unsafe_hash=True)
class FallbackOptionalLowering(NativeConversionStep):
    """Return the lowered value and report presence through a byte[1] out-parameter."""

    inner: NativeConversionStep
    value: NativeConversionStep
    jni_type: str
    placeholder_value: str
    discriminator: str = "result_discriminator$"
    name: str = "result$"


@dataclass(unsafe_hash=True)
class NTernary(NativeConversionStep):
    condition: NativeConversionStep
    then: NativeConversionStep
    otherwise: NativeConversionStep


@dataclass(unsafe_hash=True)
class NComparison(NativeConversionStep):
    inner: NativeConversionStep
    operator: str
    value: str


@dataclass(unsafe_hash=True)
class IfStatement(NativeConversionStep):
    """Branch on a rendered condition; each branch is a statement list."""

    condition: NativeConversionStep
    then: tuple[NativeConversionStep, ...]
    otherwise: tuple[NativeConversionStep, ...] = ()


@dataclass(unsafe_hash=True)
class OpenExistential(NativeConversionStep):
    """Rebuild `any P` from an instance address and its type metadata address.

    Consumes two placeholders: p and p_typeMetadataAddress.
    """

    existential: str


@dataclass(unsafe_hash=True)
class WrapJavaObject(NativeConversionStep):
    inner: NativeConversionStep
    swift_type: SwiftType


@dataclass(unsafe_hash=True)
class UnwrapJavaObject(NativeConversionStep):
    inner: NativeConversionStep


@dataclass(unsafe_hash=True)
class UnwrapOptional(NativeConversionStep):
    """Bind inner to name or stop; message is Swift string literal text and may interpolate."""

    inner: NativeConversionStep
    message: str
    name: str = "unwrapped$"


@dataclass(unsafe_hash=True)
class UpcallClosure(NativeConversionStep):
    """Swift closure literal calling `apply` on a Java functional interface.

    parameters lower each closure argument `_i` to a jvalue; result raises
    the Java return value (the placeholder is the Call<Kind>MethodA call).
    Escaping closures keep the Java object alive in a JavaObjectHolder and
    attach the calling thread to the JVM themselves.
    """

    parameters: tuple[NativeConversionStep, ...]
    parameter_types: tuple[str, ...]
    result: NativeConversionStep
    result_type: str
    call_kind: str
    method_descriptor: str
    escaping: bool = False


# ============================================================
# PLACEHOLDER COUNT
# ============================================================


def placeholder_count(step: NativeConversionStep) -> int:
    """JNI-level inputs a parameter conversion consumes."""
    match step:
        case NPlaceholder() | NExplodedName() | UpcallClosure():
            return 1
        case NConstant():
            return 0
        case OpenExistential():
            return 2
        case (
            GetJNIValue(inner=inner)
            | GetJValue(inner=inner)
            | InitFromJNI(inner=inner)
            | ExtractSwiftValue(inner=inner)
            | AllocateSwiftValue(inner=inner)
            | NPointee(inner=inner)
            | NOptionalChain(inner=inner)
            | NOptionalMap(inner=inner)
            | CombinedOptionalLowering(inner=inner)
            | FallbackOptionalLowering(inner=inner)
            | NComparison(inner=inner)
            | WrapJavaObject(inner=inner)
            | UnwrapJavaObject(inner=inner)
            | UnwrapOptional(inner=inner)
        ):
            return placeholder_count(inner)
        case NTernary(condition=condition, then=then, otherwise=otherwise):
            return placeholder_count(condition) + placeholder_count(then) + placeholder_count(otherwise)
        case IfStatement(condition=condition, then=then, otherwise=otherwise):
            return placeholder_count(condition) + sum(placeholder_count(s) for s in then + otherwise)
    raise InternalError("unknown native conversion step " + type(step).__name__)


# ============================================================
# RENDERING
# ============================================================


def _expr(step: NativeConversionStep, ctx: EmitContext, placeholder: str) -> str:
    value = render(step, ctx, placeholder)
    if value is None:
        raise InternalError(type(step).__name__ + " produced no value where an expression is required")
    return value


def _derived(ctx: EmitContext, base: str) -> str:
    """Temporary name prefix derived from a rendered expression."""
    if base.isidentifier():
        return base
    return ctx.fresh_name("value")


def render(step: NativeConversionStep, ctx: EmitContext, placeholder: str) -> str | None:
    match step:
        case NPlaceholder():
            return placeholder
        case NExplodedName(component=component):
            return placeholder + "_" + component
        case NConstant(value=value):
            return value
        case GetJNIValue(inner=inner):
            return _expr(inner, ctx, placeholder) + ".getJNIValue(in: environment)"
        case GetJValue(inner=inner):
            return _expr(inner, ctx, placeholder) + ".getJValue(in: environment)"
        case InitFromJNI(inner=inner, swift_type=t):
            return str(t) + "(fromJNI: " + _expr(inner, ctx, placeholder) + ", in: environment)"
        case ExtractSwiftValue(inner=inner, swift_type=t, allow_nil=allow_nil):
            return _render_extract(ctx, _expr(inner, ctx, placeholder), t, allow_nil)
        case AllocateSwiftValue(inner=inner, swift_type=t, name=name):
            value = _expr(inner, ctx, placeholder)
            ctx.emit("let " + name + "$ = UnsafeMutablePointer<" + str(t) + ">.allocate(capacity: 1)")
            ctx.emit(name + "$.initialize(to: " + value + ")")
            ctx.emit("let " + name + "Bits$ = Int64(Int(bitPattern: " + name + "$))")
            return name + "Bits$"
        case NPointee(inner=inner):
            return _expr(inner, ctx, placeholder) + ".pointee"
        case NOptionalChain(inner=inner):
            return _expr(inner, ctx, placeholder) + "?"
        case NOptionalMap(inner=inner, body=body):
            scratch = EmitContext()
            value = _expr(body, scratch, "$0")
            if scratch.lines:
                raise InternalError("optional map body must be a single expression")
            return _expr(inner, ctx, placeholder) + ".map { " + value + " }"
        case CombinedOptionalLowering(inner=inner, container=container, value_bits=bits, shift=shift):
            return (
                _expr(inner, ctx, placeholder)
                + ".map { "
                + bits
                + " << "
                + str(shift)
                + " | "
                + container
                + "(1) } ?? 0"
            )
        case FallbackOptionalLowering():
            return _render_fallback(step, ctx, placeholder)
        case NTernary(condition=condition, then=then, otherwise=otherwise):
            return (
                _expr(condition, ctx, placeholder)
                + " ? "
                + _expr(then, ctx, placeholder)
                + " : "
                + _expr(otherwise, ctx, placeholder)
            )
        case NComparison(inner=inner, operator=operator, value=value):
            return _expr(inner, ctx, placeholder) + " " + operator + " " + value
        case IfStatement(condition=condition, then=then, otherwise=otherwise):
            ctx.open("if " + _expr(condition, ctx, placeholder))
            _render_statements(then, ctx, placeholder)
            if otherwise:
                ctx.indent -= 1
                ctx.open("} else")
                _render_statements(otherwise, ctx, placeholder)
            ctx.close()
            return None
        case OpenExistential(existential=existential):
            return _render_open_existential(ctx, placeholder, existential)
        case WrapJavaObject(inner=inner, swift_type=t):
            return str(t) + "(javaThis: " + _expr(inner, ctx, placeholder) + "!, environment: environment)"
        case UnwrapJavaObject(inner=inner):
            return _expr(inner, ctx, placeholder) + ".javaThis"
        case UnwrapOptional(inner=inner, message=message, name=name):
            value = _expr(inner, ctx, placeholder)
            ctx.open("guard let " + name + " = " + value + " else")
            ctx.emit('fatalError("' + message + '")')
            ctx.close()
            return name
        case UpcallClosure():
            return _render_upcall(step, ctx, placeholder)
    raise InternalError("unknown native conversion step " + type(step).__name__)


def _render_statements(steps: tuple[NativeConversionStep, ...], ctx: EmitContext, placeholder: str) -> None:
    for s in steps:
        value = render(s, ctx, placeholder)
        if value is not None:
            ctx.emit(value)


def _render_extract(ctx: EmitContext, value: str, t: SwiftType, allow_nil: bool) -> str:
    base = _derived(ctx, value)
    ctx.emit("let " + base + "Bits$ = Int(Int64(fromJNI: " + value + ", in: environment))")
    if allow_nil:
        ctx.emit("let " + base + "$ = UnsafeMutablePointer<" + str(t) + ">(bitPattern: " + base + "Bits$)")
        return base + "$"
    ctx.emit("assert(" + value + ' != 0, "' + base + ' memory address was null")')
    guard = UnwrapOptional(
        NConstant("UnsafeMutablePointer<" + str(t) + ">(bitPattern: " + base + "Bits$)"),
        base + " memory address was null in call to \\(#function)!",
        base + "$",
    )
    return _expr(guard, ctx, base)


def _render_fallback(step: FallbackOptionalLowering, ctx: EmitContext, placeholder: str) -> str:
    value = _expr(step.inner, ctx, placeholder)
    name = step.name
    unwrapped = "inner" + name[0].upper() + name[1:]
    scratch = EmitContext()
    lowered = _expr(step.value, scratch, unwrapped)
    ctx.emit("let " + name + ": " + step.jni_type)
    present = tuple(NConstant(l) for l in scratch.lines) + (
        NConstant(name + " = " + lowered),
        NConstant("var flag$ = Int8(1)"),
        NConstant(_set_discriminator(step.discriminator)),
    )
    absent = (
        NConstant(name + " = " + step.placeholder_value),
        NConstant("var flag$ = Int8(0)"),
        NConstant(_set_discriminator(step.discriminator)),
    )
    render(IfStatement(NConstant("let " + unwrapped + " = " + value), present, absent), ctx, placeholder)
    return name


def _set_discriminator(array: str) -> str:
    return "environment.interface.SetByteArrayRegion(environment, " + array + ", 0, 1, &flag$)"


def _render_open_existential(ctx: EmitContext, placeholder: str, existential: str) -> str:
    ctx.emit("let " + placeholder + "Bits$ = Int(Int64(fromJNI: " + placeholder + ", in: environment))")
    ctx.emit(
        "let "
        + placeholder
        + "TypeBits$ = Int(Int64(fromJNI: "
        + placeholder
        + "_typeMetadataAddress, in: environment))"
    )
    ctx.open(
        "guard let "
        + placeholder
        + "Pointer$ = UnsafeRawPointer(bitPattern: "
        + placeholder
        + "Bits$), let "
        + placeholder
        + "Type$ = UnsafeRawPointer(bitPattern: "
        + placeholder
        + "TypeBits$) else"
    )
    ctx.emit('fatalError("' + placeholder + ' memory address was null in call to \\(#function)!")')
    ctx.close()
    ctx.open("func " + placeholder + "$open<T>(_ type: T.Type) -> " + existential)
    ctx.emit(placeholder + "Pointer$.assumingMemoryBound(to: T.self).pointee as! " + existential)
    ctx.close()
    ctx.emit(
        "let "
        + placeholder
        + "$ = _openExistential(unsafeBitCast("
        + placeholder
        + "Type$, to: Any.Type.self), do: "
        + placeholder
        + "$open)"
    )
    return placeholder + "$"


def _render_upcall(step: UpcallClosure, ctx: EmitContext, placeholder: str) -> str:
    names = ["_" + str(i) for i in range(len(step.parameters))]
    typed = ", ".join(n + ": " + t for n, t in zip(names, step.parameter_types))
    java_object = placeholder
    if step.escaping:
        holder = "closureContext_" + placeholder + "$"
        ctx.emit("let " + holder + " = JavaObjectHolder(object: " + placeholder + ", environment: environment)")
        java_object = holder + ".object!"
    body = EmitContext()
    body.indent = 1
    if step.escaping:
        body.emit("let environment = try! JavaVirtualMachine.shared().environment()")
    body.emit("let class$ = environment.interface.GetObjectClass(environment, " + java_object + ")")
    body.emit(
        'let methodID$ = environment.interface.GetMethodID(environment, class$, "apply", "'
        + step.method_descriptor
        + '")!'
    )
    args = [_expr(p, body, n) for p, n in zip(step.parameters, names)]
    body.emit("let arguments$: [jvalue] = [" + ", ".join(args) + "]")
    call = (
        "environment.interface.Call"
        + step.call_kind
        + "MethodA(environment, "
        + java_object
        + ", methodID$, arguments$)"
    )
    result = render(step.result, body, call)
    if result is not None:
        if step.result_type == "Void":
            body.emit(result)
        else:
            body.emit("return " + result)
    return "{ (" + typed + ") -> " + step.result_type + " in\n" + body.output() + "\n}"
