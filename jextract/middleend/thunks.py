"""Printing of @_cdecl Swift thunks for lowered signatures."""

from __future__ import annotations

from ..backend.util import EmitContext
from ..errors import InternalError
from ..ir import ImportedFunc, is_void
from .lowering import LoweredFunctionSignature, parameter_name
from .steps import render


def swift_callee_argument(label: str | None, value: str, inout: bool) -> str:
    if inout:
        value = "&" + value
    if label is None or label == "_":
        return value
    return label + ": " + value


def swift_callee(func: ImportedFunc, lowered: LoweredFunctionSignature, ctx: EmitContext) -> str:
    """Render the raised arguments and return the Swift call expression."""
    sig = func.signature
    args: list[str] = []
    for i, (param, lp) in enumerate(zip(sig.params, lowered.parameters)):
        value = render(lp.conversion, ctx, parameter_name(param, i))
        if value is None:
            raise InternalError("parameter conversion produced no value")
        args.append(swift_callee_argument(param.label, value, param.convention == "inout"))
    owner: str | None = None
    if lowered.self_parameter is not None:
        owner = render(lowered.self_parameter.conversion, ctx, "self")
        if owner is None:
            raise InternalError("self conversion produced no value")
    return call_expression(func, owner, args)


def static_owner(func: ImportedFunc) -> str:
    if func.parent is not None:
        return func.parent.decl.qualified_name
    return func.module


def call_expression(func: ImportedFunc, owner: str | None, args: list[str]) -> str:
    """The Swift expression invoking func on owner (the static owner when None)."""
    if owner is None:
        owner = static_owner(func)
    match func.api_kind:
        case "function":
            return owner + "." + func.name + "(" + ", ".join(args) + ")"
        case "initializer":
            return owner + "(" + ", ".join(args) + ")"
        case "enum_case":
            if not args:
                return owner + "." + func.name
            return owner + "." + func.name + "(" + ", ".join(args) + ")"
        case "getter":
            return owner + "." + func.name
        case "setter":
            return owner + "." + func.name + " = " + args[-1]
        case "subscript_getter":
            return owner + "[" + ", ".join(args) + "]"
        case "subscript_setter":
            return owner + "[" + ", ".join(args[:-1]) + "] = " + args[-1]
    raise InternalError("unknown api kind " + func.api_kind)


def cdecl_thunk(func: ImportedFunc, lowered: LoweredFunctionSignature, c_name: str) -> str:
    """Render the @_cdecl Swift function forwarding to func."""
    params = ", ".join(str(p) for p in lowered.all_lowered_parameters)
    header = "@_cdecl(\"" + c_name + "\")\npublic func " + c_name + "(" + params + ")"
    result_type = lowered.result.cdecl_result_type
    if not is_void(result_type):
        header += " -> " + str(result_type)
    body = EmitContext()
    body.indent = 1
    call = swift_callee(func, lowered, body)
    value = render(lowered.result.conversion, body, call)
    if value is not None:
        if is_void(result_type):
            body.emit(value)
        else:
            body.emit("return " + value)
    return header + " {\n" + body.output() + "\n}"
