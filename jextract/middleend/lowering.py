"""Cdecl lowering: Swift signatures to flat C-compatible thunk signatures.

Every Swift parameter lowers to zero or more cdecl parameters plus a
conversion step that rebuilds the Swift value from them. Results lower to
a C return value, or to out-parameters the thunk populates in place.

Parameter rules, in priority order:

| Swift type                     | cdecl parameters                         | Conversion                          |
|--------------------------------|------------------------------------------|-------------------------------------|
| C-representable, not inout     | x: T                                     | x                                   |
| T.Type                         | x: UnsafeRawPointer                      | unsafeBitCast(x, to: T.Type.self)   |
| UnsafePointer<T>               | x: UnsafeRawPointer                      | x.assumingMemoryBound(to: T.self)   |
| UnsafeBufferPointer<T>         | x_pointer: UnsafeRawPointer, x_count     | UnsafeBufferPointer<T>(start:count:)|
| UnsafeRawBufferPointer         | x_pointer: UnsafeRawPointer?, x_count    | UnsafeRawBufferPointer(start:count:)|
| String                         | x: UnsafePointer<Int8>                   | String(cString: x)                  |
| [T], Data                      | x_pointer, x_count                       | [T](UnsafeBufferPointer...)         |
| user nominal (inout: mutable)  | x: UnsafeRawPointer                      | x.assumingMemoryBound(...).pointee  |
| T? (scalar T)                  | x: UnsafePointer<T>?                     | x?.pointee                          |
| T? (nominal T)                 | x: UnsafeRawPointer?                     | x?.assumingMemoryBound(...).pointee |
| (A, B)                         | x_0..., x_1...                           | (x_0, x_1)                          |
| closure                        | x: @convention(c) (...) -> R             | x, or a wrapping closure literal    |
| generic / any / some           | as the concrete representative type      |                                     |
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InoutNotSupportedForType, InternalError, UnsupportedType
from ..ir import (
    INT,
    INT8,
    VOID,
    APIKind,
    Composite,
    Convention,
    Existential,
    FunctionSignature,
    FunctionType,
    GenericParameter,
    Metatype,
    Nominal,
    Opaque,
    OptionalType,
    Primitive,
    SwiftParam,
    SwiftType,
    TupleType,
    is_void,
    known_type,
    unsafe_pointer,
    unsafe_raw_pointer,
)
from .ctype import CFunction, CParameter, ctype_from_swift, has_ctype
from .steps import (
    Aggregate,
    Call,
    ClosureLowering,
    ConversionStep,
    ExplodedComponent,
    Initialize,
    LabeledArgument,
    Member,
    Method,
    OptionalChain,
    Placeholder,
    Pointee,
    PopulatePointer,
    TupleExplode,
    Tuplify,
    TypedPointer,
    UnsafeCastPointer,
)


@dataclass
class LoweredParameter:
    """cdecl parameters for one Swift parameter, and how to raise them back."""

    cdecl_parameters: list[SwiftParam]
    conversion: ConversionStep

    def __post_init__(self) -> None:
        if len(self.cdecl_parameters) != self.conversion.placeholder_count:
            raise InternalError(
                "conversion consumes "
                + str(self.conversion.placeholder_count)
                + " placeholders but lowering produced "
                + str(len(self.cdecl_parameters))
                + " cdecl parameters"
            )


@dataclass
class LoweredResult:
    """C result type plus out-parameters; conversion is rendered against the call."""

    cdecl_result_type: SwiftType
    cdecl_out_parameters: list[SwiftParam]
    conversion: ConversionStep


@dataclass
class LoweredFunctionSignature:
    original: FunctionSignature
    api_kind: APIKind
    self_parameter: LoweredParameter | None
    parameters: list[LoweredParameter]
    result: LoweredResult

    @property
    def all_lowered_parameters(self) -> list[SwiftParam]:
        """Parameters first, then self, then result out-parameters."""
        params: list[SwiftParam] = []
        for p in self.parameters:
            params.extend(p.cdecl_parameters)
        if self.self_parameter is not None:
            params.extend(self.self_parameter.cdecl_parameters)
        params.extend(self.result.cdecl_out_parameters)
        return params

    def c_function(self, c_name: str) -> CFunction:
        """The C declaration of the thunk named c_name."""
        params = [CParameter(p.name or "_", ctype_from_swift(p.type)) for p in self.all_lowered_parameters]
        return CFunction(c_name, ctype_from_swift(self.result.cdecl_result_type), params)


def _param(t: SwiftType, name: str) -> SwiftParam:
    return SwiftParam(t, None, name)


class CdeclLowering:
    """Lowers Swift signatures for the ffm backend's @_cdecl thunks."""

    def __init__(self, signature: FunctionSignature):
        self.signature: FunctionSignature = signature

    # ------------------------------------------------------------
    # SIGNATURES
    # ------------------------------------------------------------

    def lower_function_signature(self, api_kind: APIKind = "function") -> LoweredFunctionSignature:
        sig = self.signature
        if sig.is_async:
            raise UnsupportedType("effectful functions are not supported", "async")
        if sig.is_throws:
            raise UnsupportedType("effectful functions are not supported", "throws")
        self_param: LoweredParameter | None = None
        if sig.self_param is not None and sig.self_param.kind == "instance":
            self_param = self.lower_parameter(sig.self_param.type, sig.self_param.convention, "self")
        params = [
            self.lower_parameter(p.type, p.convention, parameter_name(p, i)) for i, p in enumerate(sig.params)
        ]
        result = self.lower_result(sig.result)
        return LoweredFunctionSignature(sig, api_kind, self_param, params, result)

    # ------------------------------------------------------------
    # PARAMETERS
    # ------------------------------------------------------------

    def lower_parameter(self, t: SwiftType, convention: Convention, name: str) -> LoweredParameter:
        if is_void(t):
            raise UnsupportedType("Void is not a valid parameter type", t)
        if convention != "inout" and has_ctype(t):
            return LoweredParameter([_param(t, name)], Placeholder())
        match t:
            case Metatype():
                return LoweredParameter([_param(unsafe_raw_pointer(), name)], UnsafeCastPointer(Placeholder(), t))
            case Primitive():
                raise InoutNotSupportedForType("inout is not supported for", t)
            case Nominal():
                return self.lower_nominal_parameter(t, convention, name)
            case TupleType(elements=elements):
                if len(elements) == 1:
                    return self.lower_parameter(elements[0], convention, name)
                if convention == "inout":
                    raise InoutNotSupportedForType("inout is not supported for", t)
                cdecl: list[SwiftParam] = []
                conversions: list[ConversionStep] = []
                for i, element in enumerate(elements):
                    lowered = self.lower_parameter(element, "borrowed", name + "_" + str(i))
                    cdecl.extend(lowered.cdecl_parameters)
                    conversions.append(lowered.conversion)
                return LoweredParameter(cdecl, Tuplify(tuple(conversions)))
            case FunctionType():
                if convention == "inout":
                    raise InoutNotSupportedForType("inout is not supported for", t)
                return self.lower_function_type(t, name)
            case OptionalType(wrapped=wrapped):
                return self.lower_optional_parameter(wrapped, convention, name)
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(t)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", t)
                return self.lower_parameter(concrete, convention, name)
            case Composite():
                raise UnsupportedType("protocol compositions are not supported", t)
        raise UnsupportedType("unsupported parameter type", t)

    def lower_nominal_parameter(self, t: Nominal, convention: Convention, name: str) -> LoweredParameter:
        decl = t.decl
        args = t.generic_args
        if convention == "inout" and decl.known is not None:
            raise InoutNotSupportedForType("inout is not supported for", t)
        match decl.known:
            case "unsafe_pointer" | "unsafe_mutable_pointer":
                mutable = decl.known == "unsafe_mutable_pointer"
                return LoweredParameter(
                    [_param(unsafe_raw_pointer(mutable), name)],
                    TypedPointer(Placeholder(), args[0]),
                )
            case "unsafe_buffer_pointer" | "unsafe_mutable_buffer_pointer":
                mutable = decl.known == "unsafe_mutable_buffer_pointer"
                return LoweredParameter(
                    [
                        _param(unsafe_raw_pointer(mutable), name + "_pointer"),
                        _param(INT, name + "_count"),
                    ],
                    Initialize(
                        t,
                        (
                            LabeledArgument("start", TypedPointer(ExplodedComponent(Placeholder(), "pointer"), args[0])),
                            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
                        ),
                    ),
                )
            case "unsafe_raw_buffer_pointer" | "unsafe_mutable_raw_buffer_pointer":
                mutable = decl.known == "unsafe_mutable_raw_buffer_pointer"
                return LoweredParameter(
                    [
                        _param(OptionalType(unsafe_raw_pointer(mutable)), name + "_pointer"),
                        _param(INT, name + "_count"),
                    ],
                    Initialize(
                        t,
                        (
                            LabeledArgument("start", ExplodedComponent(Placeholder(), "pointer")),
                            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
                        ),
                    ),
                )
            case "string":
                return LoweredParameter(
                    [_param(unsafe_pointer(INT8), name)],
                    Initialize(t, (LabeledArgument("cString", Placeholder()),)),
                )
            case "array":
                element = args[0]
                if not isinstance(element, Primitive):
                    raise UnsupportedType("arrays of non-primitive elements are not supported", t)
                buffer: ConversionStep
                if element.kind == "uint8":
                    buffer = Initialize(
                        known_type("UnsafeRawBufferPointer"),
                        (
                            LabeledArgument("start", ExplodedComponent(Placeholder(), "pointer")),
                            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
                        ),
                    )
                else:
                    buffer = Initialize(
                        known_type("UnsafeBufferPointer", element),
                        (
                            LabeledArgument(
                                "start", TypedPointer(ExplodedComponent(Placeholder(), "pointer"), element)
                            ),
                            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
                        ),
                    )
                return LoweredParameter(
                    [_param(unsafe_raw_pointer(), name + "_pointer"), _param(INT, name + "_count")],
                    Initialize(t, (LabeledArgument(None, buffer),)),
                )
            case "data":
                return LoweredParameter(
                    [_param(unsafe_raw_pointer(), name + "_pointer"), _param(INT, name + "_count")],
                    Initialize(
                        t,
                        (
                            LabeledArgument("bytes", ExplodedComponent(Placeholder(), "pointer")),
                            LabeledArgument("count", ExplodedComponent(Placeholder(), "count")),
                        ),
                    ),
                )
            case None:
                if decl.is_java_wrapper:
                    raise UnsupportedType("Java wrapper types require the jni mode", t)
                if decl.kind == "protocol":
                    return self.lower_parameter(Existential((t,)), convention, name)
                return LoweredParameter(
                    [_param(unsafe_raw_pointer(convention == "inout"), name)],
                    Pointee(TypedPointer(Placeholder(), t)),
                )
        raise UnsupportedType("unsupported parameter type", t)

    def lower_optional_parameter(self, wrapped: SwiftType, convention: Convention, name: str) -> LoweredParameter:
        if convention == "inout":
            raise InoutNotSupportedForType("inout is not supported for", OptionalType(wrapped))
        match wrapped:
            case Primitive():
                return LoweredParameter(
                    [_param(OptionalType(unsafe_pointer(wrapped)), name)],
                    Pointee(OptionalChain(Placeholder())),
                )
            case Nominal(decl=decl) if decl.known is None and not decl.is_java_wrapper and decl.kind != "protocol":
                return LoweredParameter(
                    [_param(OptionalType(unsafe_raw_pointer()), name)],
                    Pointee(TypedPointer(OptionalChain(Placeholder()), wrapped)),
                )
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(wrapped)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", wrapped)
                return self.lower_optional_parameter(concrete, convention, name)
        raise UnsupportedType("unsupported optional parameter type", OptionalType(wrapped))

    def lower_function_type(self, fn: FunctionType, name: str) -> LoweredParameter:
        if fn.is_async or fn.is_throws:
            raise UnsupportedType("effectful closures are not supported", fn)
        compatible = has_ctype(fn.result) and all(
            p.convention != "inout" and has_ctype(p.type) for p in fn.params
        )
        if compatible:
            c_fn = FunctionType(fn.params, fn.result, "c")
            return LoweredParameter([_param(c_fn, name)], Placeholder())
        if not has_ctype(fn.result):
            raise UnsupportedType("closure result has no C equivalent", fn.result)
        c_params: list[SwiftParam] = []
        conversions: list[ConversionStep] = []
        for p in fn.params:
            types, conversion = self.lower_closure_parameter(p.type)
            c_params.extend(SwiftParam(ct) for ct in types)
            conversions.append(conversion)
        c_fn = FunctionType(tuple(c_params), fn.result, "c")
        return LoweredParameter([_param(c_fn, name)], ClosureLowering(tuple(conversions), Placeholder()))

    def lower_closure_parameter(self, t: SwiftType) -> tuple[list[SwiftType], ConversionStep]:
        """C argument types for a Swift closure argument, and how to produce them."""
        if has_ctype(t):
            return [t], Placeholder()
        match t:
            case Nominal(decl=decl) if decl.known in ("unsafe_raw_buffer_pointer", "unsafe_mutable_raw_buffer_pointer"):
                mutable = decl.known == "unsafe_mutable_raw_buffer_pointer"
                return (
                    [OptionalType(unsafe_raw_pointer(mutable)), INT],
                    Tuplify((Member(Placeholder(), "baseAddress"), Member(Placeholder(), "count"))),
                )
        raise UnsupportedType("unsupported closure parameter type", t)

    # ------------------------------------------------------------
    # RESULTS
    # ------------------------------------------------------------

    def lower_result(self, t: SwiftType, name: str = "_result") -> LoweredResult:
        if is_void(t) or has_ctype(t):
            return LoweredResult(t, [], Placeholder())
        match t:
            case Metatype():
                return LoweredResult(
                    unsafe_raw_pointer(), [], UnsafeCastPointer(Placeholder(), unsafe_raw_pointer())
                )
            case Nominal():
                return self.lower_nominal_result(t, name)
            case TupleType(elements=elements):
                if len(elements) == 1:
                    return self.lower_result(elements[0], name)
                out: list[SwiftParam] = []
                conversions: list[ConversionStep] = []
                for i, element in enumerate(elements):
                    element_name = name + "_" + str(i)
                    lowered = self.lower_result(element, element_name)
                    if lowered.cdecl_out_parameters:
                        out.extend(lowered.cdecl_out_parameters)
                        conversions.append(lowered.conversion)
                    elif not is_void(lowered.cdecl_result_type):
                        out.append(_param(unsafe_pointer(lowered.cdecl_result_type, mutable=True), element_name))
                        conversions.append(PopulatePointer(element_name, lowered.conversion))
                return LoweredResult(VOID, out, TupleExplode(tuple(conversions), name))
            case OptionalType():
                raise UnsupportedType("optional results are not supported", t)
            case FunctionType():
                raise UnsupportedType("function results are not supported", t)
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(t)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", t)
                return self.lower_result(concrete, name)
            case Composite():
                raise UnsupportedType("protocol compositions are not supported", t)
        raise UnsupportedType("unsupported result type", t)

    def lower_nominal_result(self, t: Nominal, name: str) -> LoweredResult:
        decl = t.decl
        match decl.known:
            case "unsafe_pointer" | "unsafe_mutable_pointer":
                mutable = decl.known == "unsafe_mutable_pointer"
                raw = unsafe_raw_pointer(mutable)
                return LoweredResult(raw, [], Initialize(raw, (LabeledArgument(None, Placeholder()),)))
            case "unsafe_raw_buffer_pointer" | "unsafe_mutable_raw_buffer_pointer":
                mutable = decl.known == "unsafe_mutable_raw_buffer_pointer"
                return LoweredResult(
                    VOID,
                    [
                        _param(unsafe_pointer(OptionalType(unsafe_raw_pointer(mutable)), mutable=True), name + "_pointer"),
                        _param(unsafe_pointer(INT, mutable=True), name + "_count"),
                    ],
                    Aggregate(
                        (
                            PopulatePointer(name + "_pointer", Member(Placeholder(), "baseAddress")),
                            PopulatePointer(name + "_count", Member(Placeholder(), "count")),
                        ),
                        name,
                    ),
                )
            case "unsafe_buffer_pointer" | "unsafe_mutable_buffer_pointer":
                return LoweredResult(
                    VOID,
                    [
                        _param(unsafe_pointer(OptionalType(unsafe_raw_pointer()), mutable=True), name + "_pointer"),
                        _param(unsafe_pointer(INT, mutable=True), name + "_count"),
                    ],
                    Aggregate(
                        (
                            PopulatePointer(
                                name + "_pointer",
                                Initialize(
                                    unsafe_raw_pointer(),
                                    (LabeledArgument(None, Member(Placeholder(), "baseAddress")),),
                                ),
                            ),
                            # byte count, matching the raw buffer case
                            PopulatePointer(
                                name + "_count",
                                Member(
                                    Initialize(
                                        known_type("UnsafeRawBufferPointer"),
                                        (LabeledArgument(None, Placeholder()),),
                                    ),
                                    "count",
                                ),
                            ),
                        ),
                        name,
                    ),
                )
            case "string":
                return LoweredResult(
                    VOID,
                    [_param(unsafe_pointer(OptionalType(unsafe_pointer(INT8, mutable=True)), mutable=True), name)],
                    PopulatePointer(name, Call("strdup", (LabeledArgument(None, Placeholder()),))),
                )
            case "array":
                element = t.generic_args[0]
                if not isinstance(element, Primitive):
                    raise UnsupportedType("arrays of non-primitive elements are not supported", t)
                callback = FunctionType(
                    (SwiftParam(OptionalType(unsafe_raw_pointer())), SwiftParam(INT)),
                    VOID,
                    "c",
                )
                initialize = name + "_initialize"
                return LoweredResult(
                    VOID,
                    [_param(callback, initialize)],
                    Aggregate(
                        (
                            Method(
                                Placeholder(),
                                "withUnsafeBufferPointer",
                                (
                                    LabeledArgument(
                                        None,
                                        ClosureLowering(
                                            (
                                                Tuplify(
                                                    (
                                                        Member(Placeholder(), "baseAddress"),
                                                        Member(Placeholder(), "count"),
                                                    )
                                                ),
                                            ),
                                            Placeholder(),
                                            callee=initialize,
                                        ),
                                    ),
                                ),
                            ),
                        ),
                        name,
                    ),
                )
            case None:
                if decl.is_java_wrapper:
                    raise UnsupportedType("Java wrapper types require the jni mode", t)
                if decl.kind == "protocol":
                    raise UnsupportedType("protocol results are not supported", t)
                return LoweredResult(
                    VOID,
                    [_param(unsafe_raw_pointer(mutable=True), name)],
                    PopulatePointer(name, Placeholder(), t),
                )
        raise UnsupportedType("unsupported result type", t)


def parameter_name(p: SwiftParam, index: int) -> str:
    """Name of a Swift parameter at the thunk boundary."""
    if p.name is not None and p.name != "_":
        return p.name
    return "_" + str(index)


def lower_function_signature(signature: FunctionSignature, api_kind: APIKind = "function") -> LoweredFunctionSignature:
    return CdeclLowering(signature).lower_function_signature(api_kind)
