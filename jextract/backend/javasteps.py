"""Java-side conversion steps, shared by the ffm and jni backends.

In parameter position a step turns the user-facing Java argument into
the argument(s) of the downcall; in result position it turns the downcall
result (the placeholder) into the user-facing Java value.

| Step                    | Renders                                          |
|-------------------------|--------------------------------------------------|
| JPlaceholder            | p                                                |
| ExplodedName            | inner against p_component                        |
| Constant                | literal text                                     |
| SwiftValueSelfSegment   | inner.$memorySegment()                           |
| JCall                   | function(inner[, arena$])                        |
| JMethod                 | inner.method(args[, arena$])                     |
| Construct               | new T(inner)                                     |
| ConstructSwiftValue     | new T(inner, swiftArena$)                        |
| WrapMemoryAddress       | T.wrapMemoryAddressUnsafe(inner, swiftArena$)    |
| Cast                    | (T) inner                                        |
| CommaSeparated          | e0, e1, ...                                      |
| ReadMemorySegment       | inner.get(LAYOUT, 0)                             |
| OptionalMap             | inner.map((p$) -> body)                          |
| OptionalOrElse          | inner.orElse(value)                              |
| Ternary                 | (cond ? then : otherwise)                        |
| BinaryOperation         | inner op value                                   |
| ArenaAllocate           | arena$.allocateFrom(LAYOUT, inner)               |
| JMember                 | inner.member                                     |
| ArrayElement            | inner[index]                                     |
| CombinedOptional        | bind, then decode value and discriminator bits   |
| DiscriminatorOptional   | bind, then test the byte[1] discriminator        |
| FutureCompletion        | emit the call, then future$.thenApply(...)       |
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InternalError
from .javatypes import JavaType
from .util import EmitContext


@dataclass(unsafe_hash=True)
class JavaConversionStep:
    """Base for Java-side conversion steps."""

    @property
    def placeholder_count(self) -> int:
        return placeholder_count(self)


@dataclass(unsafe_hash=True)
class JPlaceholder(JavaConversionStep):
    pass


@dataclass(unsafe_hash=True)
class ExplodedName(JavaConversionStep):
    component: str
    inner: JavaConversionStep = JPlaceholder()


@dataclass(unsafe_hash=True)
class Constant(JavaConversionStep):
    value: str


@dataclass(unsafe_hash=True)
class SwiftValueSelfSegment(JavaConversionStep):
    inner: JavaConversionStep


@dataclass(unsafe_hash=True)
class JCall(JavaConversionStep):
    inner: JavaConversionStep
    function: str
    with_arena: bool = False


@dataclass(unsafe_hash=True)
class JMethod(JavaConversionStep):
    inner: JavaConversionStep
    method: str
    arguments: tuple[JavaConversionStep, ...] = ()
    with_arena: bool = False


@dataclass(unsafe_hash=True)
class Construct(JavaConversionStep):
    inner: JavaConversionStep
    java_type: JavaType


@dataclass(unsafe_hash=True)
class ConstructSwiftValue(JavaConversionStep):
    inner: JavaConversionStep
    java_type: JavaType


@dataclass(unsafe_hash=True)
class WrapMemoryAddress(JavaConversionStep):
    inner: JavaConversionStep
    java_type: JavaType


@dataclass(unsafe_hash=True)
class Cast(JavaConversionStep):
    inner: JavaConversionStep
    java_type: JavaType


@dataclass(unsafe_hash=True)
class CommaSeparated(JavaConversionStep):
    elements: tuple[JavaConversionStep, ...]


@dataclass(unsafe_hash=True)
class ReadMemorySegment(JavaConversionStep):
    inner: JavaConversionStep
    layout: str


@dataclass(unsafe_hash=True)
class OptionalMap(JavaConversionStep):
    inner: JavaConversionStep
    body: JavaConversionStep


@dataclass(unsafe_hash=True)
class OptionalOrElse(JavaConversionStep):
    inner: JavaConversionStep
    value: str


@dataclass(unsafe_hash=True)
class Ternary(JavaConversionStep):
    condition: JavaConversionStep
    then: JavaConversionStep
    otherwise: JavaConversionStep


@dataclass(unsafe_hash=True)
class BinaryOperation(JavaConversionStep):
    inner: JavaConversionStep
    operator: str
    value: str


@dataclass(unsafe_hash=True)
class ArenaAllocate(JavaConversionStep):
    """Copy a value or array into the per-call arena$."""

    inner: JavaConversionStep
    layout: str


@dataclass(unsafe_hash=True)
class JMember(JavaConversionStep):
    inner: JavaConversionStep
    member: str


@dataclass(unsafe_hash=True)
class ArrayElement(JavaConversionStep):
    inner: JavaConversionStep
    index: int = 0


@dataclass(unsafe_hash=True)
class CombinedOptional(JavaConversionStep):
    """Decode a value packed above a one-byte discriminator.

    The native result holds the discriminator in its low byte and the
    value shifted left by `shift`; decode raises the shifted bits.
    """

    inner: JavaConversionStep
    optional_type: JavaType
    combined_type: JavaType
    shift: int
    decode: JavaConversionStep
    name: str = "result$"


@dataclass(unsafe_hash=True)
class DiscriminatorOptional(JavaConversionStep):
    """Decode a value whose presence was written to `name_discriminator$[0]`."""

    inner: JavaConversionStep
    optional_type: JavaType
    native_type: JavaType
    value: JavaConversionStep
    name: str = "result$"


@dataclass(unsafe_hash=True)
class FutureCompletion(JavaConversionStep):
    """Start the fire-and-forget downcall, then map the completed future."""

    inner: JavaConversionStep
    conversion: JavaConversionStep
    name: str = "future$"


def optional_empty(optional_type: JavaType) -> str:
    return _raw_name(optional_type) + ".empty()"


def optional_of(optional_type: JavaType, value: str) -> str:
    return _raw_name(optional_type) + ".of(" + value + ")"


def _raw_name(t: JavaType) -> str:
    s = str(t)
    return s.split("<", 1)[0]


# ============================================================
# PLACEHOLDER COUNT AND ARENA REQUIREMENTS
# ============================================================


def _children(step: JavaConversionStep) -> tuple[JavaConversionStep, ...]:
    match step:
        case JPlaceholder() | Constant():
            return ()
        case ExplodedName(inner=inner):
            return (inner,)
        case (
            SwiftValueSelfSegment(inner=inner)
            | JCall(inner=inner)
            | Construct(inner=inner)
            | ConstructSwiftValue(inner=inner)
            | WrapMemoryAddress(inner=inner)
            | Cast(inner=inner)
            | ReadMemorySegment(inner=inner)
            | OptionalOrElse(inner=inner)
            | BinaryOperation(inner=inner)
            | ArenaAllocate(inner=inner)
            | JMember(inner=inner)
            | ArrayElement(inner=inner)
        ):
            return (inner,)
        case JMethod(inner=inner, arguments=arguments):
            return (inner,) + arguments
        case CommaSeparated(elements=elements):
            return elements
        case OptionalMap(inner=inner, body=body):
            return (inner, body)
        case Ternary(condition=condition, then=then, otherwise=otherwise):
            return (condition, then, otherwise)
        case CombinedOptional(inner=inner, decode=decode):
            return (inner, decode)
        case DiscriminatorOptional(inner=inner, value=value):
            return (inner, value)
        case FutureCompletion(inner=inner, conversion=conversion):
            return (inner, conversion)
    raise InternalError("unknown Java conversion step " + type(step).__name__)


def placeholder_count(step: JavaConversionStep) -> int:
    """Number of placeholder references; nested bodies rebind their own."""
    match step:
        case JPlaceholder():
            return 1
        case OptionalMap(inner=inner):
            return placeholder_count(inner)
        case CombinedOptional(inner=inner) | DiscriminatorOptional(inner=inner):
            return placeholder_count(inner)
        case FutureCompletion(inner=inner):
            return placeholder_count(inner)
    return sum(placeholder_count(c) for c in _children(step))


def requires_swift_arena(step: JavaConversionStep) -> bool:
    """Whether the step constructs a Swift value owned by the caller's arena."""
    if isinstance(step, (ConstructSwiftValue, WrapMemoryAddress)):
        return True
    return any(requires_swift_arena(c) for c in _children(step))


def requires_temporary_arena(step: JavaConversionStep) -> bool:
    """Whether the step allocates from the confined per-call arena$."""
    match step:
        case JCall(with_arena=True) | JMethod(with_arena=True) | ArenaAllocate():
            return True
    return any(requires_temporary_arena(c) for c in _children(step))


# ============================================================
# RENDERING
# ============================================================


def _expr(step: JavaConversionStep, ctx: EmitContext, placeholder: str) -> str:
    value = render(step, ctx, placeholder)
    if value is None:
        raise InternalError(type(step).__name__ + " produced no value where an expression is required")
    return value


def _lambda_parameter(ctx: EmitContext, placeholder: str) -> str:
    if placeholder.isidentifier():
        return placeholder + "$"
    return ctx.fresh_name("value$")


def render(step: JavaConversionStep, ctx: EmitContext, placeholder: str) -> str | None:
    """Render step against placeholder, emitting statements into ctx."""
    match step:
        case JPlaceholder():
            return placeholder
        case ExplodedName(component=component, inner=inner):
            return render(inner, ctx, placeholder + "_" + component)
        case Constant(value=value):
            return value
        case SwiftValueSelfSegment(inner=inner):
            return _expr(inner, ctx, placeholder) + ".$memorySegment()"
        case JCall(inner=inner, function=function, with_arena=with_arena):
            arena = ", arena$" if with_arena else ""
            return function + "(" + _expr(inner, ctx, placeholder) + arena + ")"
        case JMethod(inner=inner, method=method, arguments=arguments, with_arena=with_arena):
            args = [_expr(a, ctx, placeholder) for a in arguments]
            if with_arena:
                args.append("arena$")
            return _expr(inner, ctx, placeholder) + "." + method + "(" + ", ".join(args) + ")"
        case Construct(inner=inner, java_type=t):
            return "new " + str(t) + "(" + _expr(inner, ctx, placeholder) + ")"
        case ConstructSwiftValue(inner=inner, java_type=t):
            return "new " + str(t) + "(" + _expr(inner, ctx, placeholder) + ", swiftArena$)"
        case WrapMemoryAddress(inner=inner, java_type=t):
            return str(t) + ".wrapMemoryAddressUnsafe(" + _expr(inner, ctx, placeholder) + ", swiftArena$)"
        case Cast(inner=inner, java_type=t):
            return "(" + str(t) + ") " + _expr(inner, ctx, placeholder)
        case CommaSeparated(elements=elements):
            return ", ".join(_expr(e, ctx, placeholder) for e in elements)
        case ReadMemorySegment(inner=inner, layout=layout):
            return _expr(inner, ctx, placeholder) + ".get(" + layout + ", 0)"
        case OptionalMap(inner=inner, body=body):
            param = _lambda_parameter(ctx, placeholder)
            scratch = EmitContext()
            value = _expr(body, scratch, param)
            if scratch.lines:
                raise InternalError("optional map body must be a single expression")
            return _expr(inner, ctx, placeholder) + ".map((" + param + ") -> " + value + ")"
        case OptionalOrElse(inner=inner, value=value):
            return _expr(inner, ctx, placeholder) + ".orElse(" + value + ")"
        case Ternary(condition=condition, then=then, otherwise=otherwise):
            return (
                "("
                + _expr(condition, ctx, placeholder)
                + " ? "
                + _expr(then, ctx, placeholder)
                + " : "
                + _expr(otherwise, ctx, placeholder)
                + ")"
            )
        case BinaryOperation(inner=inner, operator=operator, value=value):
            return _expr(inner, ctx, placeholder) + " " + operator + " " + value
        case ArenaAllocate(inner=inner, layout=layout):
            return "arena$.allocateFrom(" + layout + ", " + _expr(inner, ctx, placeholder) + ")"
        case JMember(inner=inner, member=member):
            return _expr(inner, ctx, placeholder) + "." + member
        case ArrayElement(inner=inner, index=index):
            return _expr(inner, ctx, placeholder) + "[" + str(index) + "]"
        case CombinedOptional():
            return _render_combined(step, ctx, placeholder)
        case DiscriminatorOptional(inner=inner, optional_type=t, native_type=native, value=value, name=name):
            ctx.emit(str(native) + " " + name + " = " + _expr(inner, ctx, placeholder) + ";")
            present = _expr(value, ctx, name)
            return (
                "(" + name + "_discriminator$[0] == 1) ? " + optional_of(t, present) + " : " + optional_empty(t)
            )
        case FutureCompletion(inner=inner, conversion=conversion, name=name):
            ctx.emit(_expr(inner, ctx, placeholder) + ";")
            body = EmitContext()
            body.indent = 1
            value = _expr(conversion, body, "futureResult$")
            body.emit("return " + value + ";")
            return name + ".thenApply((futureResult$) -> {\n" + body.output() + "\n}\n)"
    raise InternalError("unknown Java conversion step " + type(step).__name__)


def _render_combined(step: CombinedOptional, ctx: EmitContext, placeholder: str) -> str:
    name = step.name
    ctx.emit(str(step.combined_type) + " " + name + " = " + _expr(step.inner, ctx, placeholder) + ";")
    discriminator = name + "_discriminator$"
    ctx.emit("byte " + discriminator + " = (byte) (" + name + " & 0xFF);")
    shifted = "(" + name + " >> " + str(step.shift) + ")"
    value = _expr(step.decode, ctx, shifted)
    return "(" + discriminator + " == 1) ? " + optional_of(step.optional_type, value) + " : " + optional_empty(step.optional_type)
