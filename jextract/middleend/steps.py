"""Swift-side conversion steps across the cdecl boundary.

A conversion step is an immutable expression tree over a placeholder. In
parameter position it raises the C-level thunk arguments named by the
placeholder back to the Swift value the API expects; in result position
it lowers the Swift result (the placeholder is the call expression) to
the C-level result or out-parameters.

| Step               | Renders                                        | Placeholders |
|--------------------|------------------------------------------------|--------------|
| Placeholder        | p                                              | 1            |
| ExplodedComponent  | inner against p_component                      | inner        |
| UnsafeCastPointer  | unsafeBitCast(inner, to: T.self)               | inner        |
| TypedPointer       | inner.assumingMemoryBound(to: T.self)          | inner        |
| Pointee            | inner.pointee                                  | inner        |
| OptionalChain      | inner?                                         | inner        |
| Initialize         | T(label: arg, ...)                             | sum of args  |
| Tuplify            | (e0 against p_0, e1 against p_1, ...)          | sum          |
| PopulatePointer    | name.initialize(to: inner)                     | inner        |
| TupleExplode       | let name = p; each element against name.i      | 1            |
| Aggregate          | let name = p; each element against name        | sum          |
| Member             | inner.member                                   | inner        |
| Method             | inner.method(args)                             | inner + args |
| Call               | function(args)                                 | sum of args  |
| ClosureLowering    | { (_0, ...) in return callee(lowered args) }   | 1, or 0 with |
|                    |                                                | a fixed callee|
"""

from __future__ import annotations

from dataclasses import dataclass

from ..backend.util import EmitContext
from ..errors import InternalError
from ..ir import SwiftType, metatype_reference


@dataclass(unsafe_hash=True)
class ConversionStep:
    """Base for Swift-side conversion steps."""

    @property
    def placeholder_count(self) -> int:
        return placeholder_count(self)


@dataclass(unsafe_hash=True)
class LabeledArgument:
    label: str | None
    argument: ConversionStep


@dataclass(unsafe_hash=True)
class Placeholder(ConversionStep):
    pass


@dataclass(unsafe_hash=True)
class ExplodedComponent(ConversionStep):
    inner: ConversionStep
    component: str


@dataclass(unsafe_hash=True)
class UnsafeCastPointer(ConversionStep):
    inner: ConversionStep
    swift_type: SwiftType


@dataclass(unsafe_hash=True)
class TypedPointer(ConversionStep):
    inner: ConversionStep
    swift_type: SwiftType


@dataclass(unsafe_hash=True)
class Pointee(ConversionStep):
    inner: ConversionStep


@dataclass(unsafe_hash=True)
class OptionalChain(ConversionStep):
    inner: ConversionStep


@dataclass(unsafe_hash=True)
class Initialize(ConversionStep):
    swift_type: SwiftType
    arguments: tuple[LabeledArgument, ...] = ()


@dataclass(unsafe_hash=True)
class Tuplify(ConversionStep):
    elements: tuple[ConversionStep, ...]


@dataclass(unsafe_hash=True)
class PopulatePointer(ConversionStep):
    name: str
    inner: ConversionStep
    assuming_type: SwiftType | None = None


@dataclass(unsafe_hash=True)
class TupleExplode(ConversionStep):
    elements: tuple[ConversionStep, ...]
    name: str | None = None


@dataclass(unsafe_hash=True)
class Aggregate(ConversionStep):
    elements: tuple[ConversionStep, ...]
    name: str | None = None


@dataclass(unsafe_hash=True)
class Member(ConversionStep):
    inner: ConversionStep
    member: str


@dataclass(unsafe_hash=True)
class Method(ConversionStep):
    inner: ConversionStep
    method: str
    arguments: tuple[LabeledArgument, ...] = ()


@dataclass(unsafe_hash=True)
class Call(ConversionStep):
    function: str
    arguments: tuple[LabeledArgument, ...] = ()


@dataclass(unsafe_hash=True)
class ClosureLowering(ConversionStep):
    """Wrap a C function pointer (or a fixed callee) in a Swift closure literal.

    parameters lower each closure argument from Swift to C; a Tuplify
    parameter contributes one C argument per element, each rendered
    against the same closure argument. result raises the C result.
    """

    parameters: tuple[ConversionStep, ...]
    result: ConversionStep
    callee: str | None = None


# ============================================================
# PLACEHOLDER COUNT
# ============================================================


def placeholder_count(step: ConversionStep) -> int:
    match step:
        case Placeholder():
            return 1
        case (
            ExplodedComponent(inner=inner)
            | UnsafeCastPointer(inner=inner)
            | TypedPointer(inner=inner)
            | Pointee(inner=inner)
            | OptionalChain(inner=inner)
            | PopulatePointer(inner=inner)
            | Member(inner=inner)
        ):
            return placeholder_count(inner)
        case Initialize(arguments=args) | Call(arguments=args):
            return sum(placeholder_count(a.argument) for a in args)
        case Method(inner=inner, arguments=args):
            return placeholder_count(inner) + sum(placeholder_count(a.argument) for a in args)
        case Tuplify(elements=elements) | Aggregate(elements=elements):
            return sum(placeholder_count(e) for e in elements)
        case TupleExplode():
            return 1
        case ClosureLowering(callee=callee):
            return 1 if callee is None else 0
    raise InternalError("unknown conversion step " + type(step).__name__)


# ============================================================
# RENDERING
# ============================================================


def _render_expr(step: ConversionStep, ctx: EmitContext, placeholder: str) -> str:
    result = render(step, ctx, placeholder)
    if result is None:
        raise InternalError(type(step).__name__ + " produced no value where an expression is required")
    return result


def _render_args(args: tuple[LabeledArgument, ...], ctx: EmitContext, placeholder: str) -> str:
    parts: list[str] = []
    for a in args:
        value = _render_expr(a.argument, ctx, placeholder)
        parts.append(a.label + ": " + value if a.label is not None else value)
    return ", ".join(parts)


def render(step: ConversionStep, ctx: EmitContext, placeholder: str) -> str | None:
    """Render step against placeholder. Returns None if it only emitted statements."""
    match step:
        case Placeholder():
            return placeholder
        case ExplodedComponent(inner=inner, component=component):
            return render(inner, ctx, placeholder + "_" + component)
        case UnsafeCastPointer(inner=inner, swift_type=t):
            return "unsafeBitCast(" + _render_expr(inner, ctx, placeholder) + ", to: " + metatype_reference(t) + ")"
        case TypedPointer(inner=inner, swift_type=t):
            return _render_expr(inner, ctx, placeholder) + ".assumingMemoryBound(to: " + metatype_reference(t) + ")"
        case Pointee(inner=inner):
            return _render_expr(inner, ctx, placeholder) + ".pointee"
        case OptionalChain(inner=inner):
            return _render_expr(inner, ctx, placeholder) + "?"
        case Initialize(swift_type=t, arguments=args):
            return str(t) + "(" + _render_args(args, ctx, placeholder) + ")"
        case Tuplify(elements=elements):
            parts = [_render_expr(e, ctx, placeholder + "_" + str(i)) for i, e in enumerate(elements)]
            return "(" + ", ".join(parts) + ")"
        case PopulatePointer(name=name, inner=inner, assuming_type=t):
            target = name
            if t is not None:
                target += ".assumingMemoryBound(to: " + metatype_reference(t) + ")"
            return target + ".initialize(to: " + _render_expr(inner, ctx, placeholder) + ")"
        case TupleExplode(elements=elements, name=name):
            bound = _bind(ctx, placeholder, name)
            for i, e in enumerate(elements):
                value = render(e, ctx, bound + "." + str(i))
                if value is not None:
                    ctx.emit(value)
            return None
        case Aggregate(elements=elements, name=name):
            bound = _bind(ctx, placeholder, name)
            for e in elements:
                value = render(e, ctx, bound)
                if value is not None:
                    ctx.emit(value)
            return None
        case Member(inner=inner, member=member):
            return _render_expr(inner, ctx, placeholder) + "." + member
        case Method(inner=inner, method=method, arguments=args):
            return _render_expr(inner, ctx, placeholder) + "." + method + "(" + _render_args(args, ctx, placeholder) + ")"
        case Call(function=function, arguments=args):
            return function + "(" + _render_args(args, ctx, placeholder) + ")"
        case ClosureLowering():
            return _render_closure(step, ctx, placeholder)
    raise InternalError("unknown conversion step " + type(step).__name__)


def _bind(ctx: EmitContext, placeholder: str, name: str | None) -> str:
    if name is None:
        if placeholder.isidentifier():
            return placeholder
        name = ctx.fresh_name("_tmp")
    ctx.emit("let " + name + " = " + placeholder)
    return name


def _render_closure(step: ClosureLowering, ctx: EmitContext, placeholder: str) -> str:
    body = EmitContext()
    body.indent = 1
    names = ["_" + str(i) for i in range(len(step.parameters))]
    args: list[str] = []
    for name, param in zip(names, step.parameters):
        if isinstance(param, Tuplify):
            for element in param.elements:
                args.append(_render_expr(element, body, name))
        else:
            args.append(_render_expr(param, body, name))
    callee = step.callee if step.callee is not None else placeholder
    call = callee + "(" + ", ".join(args) + ")"
    result = render(step.result, body, call)
    if result is not None:
        body.emit("return " + result)
    return "{ (" + ", ".join(names) + ") in\n" + body.output() + "\n}"
