"""Translation of Swift declarations to Java FFM (Foreign Function & Memory) bindings.

The Java side mirrors the cdecl lowering: every lowered cdecl parameter
becomes one downcall argument, produced from the user-facing Java
parameters by a JavaConversionStep. Results either come back as the
downcall's return value or through out-parameter segments the wrapper
allocates before the call.

| Swift                  | Java parameter          | Downcall arguments                          |
|------------------------|-------------------------|---------------------------------------------|
| Int32, Double, ...     | int, double, ...        | x                                           |
| UInt32 (wrap mode)     | UnsignedInteger         | x.intValue()                                |
| String                 | String                  | SwiftRuntime.toCString(x, arena$)           |
| [Int32]                | int[]                   | arena$.allocateFrom(JAVA_INT, x), x.length  |
| Unsafe*BufferPointer   | MemorySegment           | x, x.byteSize()                             |
| Unsafe*Pointer         | MemorySegment           | x                                           |
| user type              | T                       | x.$memorySegment()                          |
| T? (scalar)            | OptionalInt, Optional<> | segment holding the value, or NULL          |
| T? (user type)         | Optional<T>             | x.map(...$memorySegment()).orElse(NULL)     |
| (A, B)                 | A x_0, B x_1            | x_0, x_1                                    |
| closure                | functional interface    | upcall stub allocated in arena$             |
| T.Type                 | SwiftAnyType            | x.$memorySegment()                          |
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import Config
from ..context import GenerationContext
from ..errors import UnsupportedType
from ..ir import (
    Composite,
    Existential,
    FunctionType,
    GenericParameter,
    ImportedFunc,
    Metatype,
    Nominal,
    Opaque,
    OptionalType,
    Primitive,
    SwiftType,
    TupleType,
    is_void,
)
from ..middleend.lowering import LoweredFunctionSignature, lower_function_signature, parameter_name
from .javasteps import (
    ArenaAllocate,
    ArrayElement,
    BinaryOperation,
    CommaSeparated,
    Construct,
    ConstructSwiftValue,
    Constant,
    ExplodedName,
    JavaConversionStep,
    JCall,
    JMember,
    JMethod,
    JPlaceholder,
    OptionalMap,
    OptionalOrElse,
    ReadMemorySegment,
    SwiftValueSelfSegment,
    Ternary,
    requires_swift_arena,
    requires_temporary_arena,
)
from .javatypes import (
    BYTE,
    LONG,
    MEMORY_SEGMENT,
    OPTIONAL_DOUBLE,
    OPTIONAL_INT,
    OPTIONAL_LONG,
    STRING,
    SWIFT_ANY_TYPE,
    UNSIGNED_INTEGER,
    UNSIGNED_LONG,
    VOID,
    JavaArray,
    JavaClass,
    JavaParameter,
    JavaType,
    java_primitive,
    optional_of,
)
from .naming import java_method_name, java_parameter_name
from .util import java_safe_name

# ============================================================
# TRANSLATED DECLARATIONS
# ============================================================


@dataclass
class OutParameter:
    """A segment the wrapper allocates before the downcall and reads after it."""

    name: str
    java_type: JavaType
    initializer: str
    arena: str = "arena$"


@dataclass
class TranslatedParameter:
    java_parameters: list[JavaParameter]
    conversion: JavaConversionStep


@dataclass
class TranslatedResult:
    java_result_type: JavaType
    out_parameters: list[OutParameter]
    conversion: JavaConversionStep
    annotations: tuple[str, ...] = ()


@dataclass
class TranslatedFunctionType:
    """A closure parameter: user-facing functional interface plus its C-level upcall shape.

    parameter_conversions raise each C-level upcall argument group to the
    user-facing argument; a C-compatible closure has identity conversions.
    """

    name: str
    parameters: list[JavaParameter]
    result_type: JavaType
    cdecl_parameters: list[JavaParameter]
    cdecl_layouts: list[str]
    cdecl_result_type: JavaType
    cdecl_result_layout: str | None
    parameter_conversions: list[JavaConversionStep]
    is_compatible: bool


@dataclass
class TranslatedFunctionSignature:
    self_parameter: TranslatedParameter | None
    parameters: list[TranslatedParameter]
    result: TranslatedResult

    @property
    def requires_swift_arena(self) -> bool:
        if requires_swift_arena(self.result.conversion):
            return True
        return any(o.arena == "swiftArena$" for o in self.result.out_parameters)

    @property
    def requires_temporary_arena(self) -> bool:
        if any(requires_temporary_arena(p.conversion) for p in self.parameters):
            return True
        return any(o.arena == "arena$" for o in self.result.out_parameters)


@dataclass
class TranslatedFunctionDecl:
    decl: ImportedFunc
    name: str
    thunk_name: str
    holder_name: str
    translated_signature: TranslatedFunctionSignature
    lowered_signature: LoweredFunctionSignature
    function_types: list[TranslatedFunctionType] = field(default_factory=list)

    @property
    def is_static(self) -> bool:
        return not self.decl.is_instance_member


# ============================================================
# VALUE LAYOUTS
# ============================================================

_LAYOUTS: dict[str, str] = {
    "bool": "SwiftValueLayout.SWIFT_BOOL",
    "int8": "SwiftValueLayout.SWIFT_INT8",
    "uint8": "SwiftValueLayout.SWIFT_UINT8",
    "int16": "SwiftValueLayout.SWIFT_INT16",
    "uint16": "SwiftValueLayout.SWIFT_UINT16",
    "int32": "SwiftValueLayout.SWIFT_INT32",
    "uint32": "SwiftValueLayout.SWIFT_UINT32",
    "int64": "SwiftValueLayout.SWIFT_INT64",
    "uint64": "SwiftValueLayout.SWIFT_UINT64",
    "int": "SwiftValueLayout.SWIFT_INT",
    "uint": "SwiftValueLayout.SWIFT_UINT",
    "float": "SwiftValueLayout.SWIFT_FLOAT",
    "double": "SwiftValueLayout.SWIFT_DOUBLE",
}

POINTER_LAYOUT = "SwiftValueLayout.SWIFT_POINTER"

# Java-side element layouts for copying arrays and single values into segments
_JAVA_LAYOUTS: dict[str, str] = {
    "boolean": "ValueLayout.JAVA_BOOLEAN",
    "byte": "ValueLayout.JAVA_BYTE",
    "char": "ValueLayout.JAVA_CHAR",
    "short": "ValueLayout.JAVA_SHORT",
    "int": "ValueLayout.JAVA_INT",
    "long": "ValueLayout.JAVA_LONG",
    "float": "ValueLayout.JAVA_FLOAT",
    "double": "ValueLayout.JAVA_DOUBLE",
}


def java_layout(t: JavaType) -> str:
    return _JAVA_LAYOUTS[str(t)]


def value_layout(t: SwiftType) -> str:
    """SwiftValueLayout constant of a C-representable Swift type."""
    if isinstance(t, Primitive):
        return _LAYOUTS[t.kind]
    return POINTER_LAYOUT


def cdecl_java_type(t: SwiftType) -> JavaType:
    """Java carrier type of a C-representable Swift type in a downcall handle."""
    if is_void(t):
        return VOID
    if isinstance(t, Primitive):
        return java_primitive(t)
    return MEMORY_SEGMENT


# ============================================================
# TRANSLATION
# ============================================================


class FFMTranslation:
    """Computes Java-facing signatures and conversions for the ffm backend."""

    def __init__(self, ctx: GenerationContext) -> None:
        self.ctx: GenerationContext = ctx
        self.config: Config = ctx.config

    def translate(self, decl: ImportedFunc) -> TranslatedFunctionDecl:
        cached = self.ctx.translated_decls.get(decl.key)
        if isinstance(cached, TranslatedFunctionDecl):
            return cached
        if decl.api_kind == "enum_case":
            raise UnsupportedType("enum cases are not supported in ffm mode", decl.name)
        if decl.parent is not None and decl.parent.decl.kind == "protocol":
            raise UnsupportedType("protocols are not supported in ffm mode", decl.parent.decl.name)
        lowered = lower_function_signature(decl.signature, decl.api_kind)
        thunk_name = self.ctx.names.function_thunk_name(decl)
        java_name = java_method_name(decl)
        holder = java_name + self.ctx.names.duplicate_suffix(decl)
        self.signature = decl.signature
        self.function_types: list[TranslatedFunctionType] = []
        self.holder: str = self._owner_class(decl) + "." + holder
        params = [
            self.translate_parameter(p.type, java_parameter_name(parameter_name(p, i), i))
            for i, p in enumerate(decl.signature.params)
        ]
        self_param: TranslatedParameter | None = None
        if decl.is_instance_member:
            self_param = TranslatedParameter([], SwiftValueSelfSegment(JPlaceholder()))
        result = self.translate_result(decl.signature.result)
        translated = TranslatedFunctionDecl(
            decl,
            java_name,
            thunk_name,
            holder,
            TranslatedFunctionSignature(self_param, params, result),
            lowered,
            self.function_types,
        )
        self.ctx.translated_decls[decl.key] = translated
        return translated

    def _owner_class(self, decl: ImportedFunc) -> str:
        if decl.parent is not None:
            return self.ctx.java_class_name(decl.parent.decl)
        return self.ctx.module_class

    # ------------------------------------------------------------
    # PARAMETERS
    # ------------------------------------------------------------

    def translate_parameter(self, t: SwiftType, name: str) -> TranslatedParameter:
        match t:
            case Primitive():
                java_type, annotations = self.unsigned_parameter_type(t)
                conversion: JavaConversionStep = JPlaceholder()
                if java_type == UNSIGNED_INTEGER:
                    conversion = JMethod(JPlaceholder(), "intValue")
                elif java_type == UNSIGNED_LONG:
                    conversion = JMethod(JPlaceholder(), "longValue")
                return TranslatedParameter([JavaParameter(name, java_type, annotations)], conversion)
            case Metatype():
                return TranslatedParameter(
                    [JavaParameter(name, SWIFT_ANY_TYPE)], SwiftValueSelfSegment(JPlaceholder())
                )
            case Nominal():
                return self.translate_nominal_parameter(t, name)
            case TupleType(elements=elements):
                if len(elements) == 1:
                    return self.translate_parameter(elements[0], name)
                java_params: list[JavaParameter] = []
                conversions: list[JavaConversionStep] = []
                for i, element in enumerate(elements):
                    translated = self.translate_parameter(element, name + "_" + str(i))
                    java_params.extend(translated.java_parameters)
                    conversions.append(ExplodedName(str(i), translated.conversion))
                return TranslatedParameter(java_params, CommaSeparated(tuple(conversions)))
            case FunctionType():
                return self.translate_closure_parameter(t, name)
            case OptionalType(wrapped=wrapped):
                return self.translate_optional_parameter(wrapped, name)
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(t)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", t)
                return self.translate_parameter(concrete, name)
            case Composite():
                raise UnsupportedType("protocol compositions are not supported", t)
        raise UnsupportedType("unsupported parameter type", t)

    def unsigned_parameter_type(self, t: Primitive) -> tuple[JavaType, tuple[str, ...]]:
        java_type = java_primitive(t)
        if not t.is_unsigned or t.kind == "uint16":
            return java_type, ()
        if self.config.unsigned_mode == "wrap":
            if t.kind == "uint32":
                return UNSIGNED_INTEGER, ()
            if t.kind in ("uint64", "uint"):
                return UNSIGNED_LONG, ()
        return java_type, ("@Unsigned",)

    def translate_nominal_parameter(self, t: Nominal, name: str) -> TranslatedParameter:
        decl = t.decl
        match decl.known:
            case "unsafe_raw_pointer" | "unsafe_mutable_raw_pointer" | "unsafe_pointer" | "unsafe_mutable_pointer":
                return TranslatedParameter([JavaParameter(name, MEMORY_SEGMENT)], JPlaceholder())
            case "unsafe_raw_buffer_pointer" | "unsafe_mutable_raw_buffer_pointer":
                return TranslatedParameter(
                    [JavaParameter(name, MEMORY_SEGMENT)],
                    CommaSeparated((JPlaceholder(), JMethod(JPlaceholder(), "byteSize"))),
                )
            case "unsafe_buffer_pointer" | "unsafe_mutable_buffer_pointer":
                element = t.generic_args[0]
                if not isinstance(element, Primitive):
                    raise UnsupportedType("buffers of non-primitive elements are not supported", t)
                element_layout = java_layout(java_primitive(element))
                return TranslatedParameter(
                    [JavaParameter(name, MEMORY_SEGMENT)],
                    CommaSeparated(
                        (
                            JPlaceholder(),
                            BinaryOperation(
                                JMethod(JPlaceholder(), "byteSize"), "/", element_layout + ".byteSize()"
                            ),
                        )
                    ),
                )
            case "string":
                return TranslatedParameter(
                    [JavaParameter(name, STRING)], JCall(JPlaceholder(), "SwiftRuntime.toCString", with_arena=True)
                )
            case "array":
                element = t.generic_args[0]
                if not isinstance(element, Primitive) or element.kind == "bool":
                    raise UnsupportedType("arrays of this element type are not supported", t)
                java_element = java_primitive(element)
                return TranslatedParameter(
                    [JavaParameter(name, JavaArray(java_element))],
                    CommaSeparated(
                        (ArenaAllocate(JPlaceholder(), java_layout(java_element)), JMember(JPlaceholder(), "length"))
                    ),
                )
            case "data":
                return TranslatedParameter(
                    [JavaParameter(name, JavaArray(BYTE))],
                    CommaSeparated(
                        (ArenaAllocate(JPlaceholder(), "ValueLayout.JAVA_BYTE"), JMember(JPlaceholder(), "length"))
                    ),
                )
            case None:
                if decl.is_java_wrapper:
                    raise UnsupportedType("Java wrapper types require the jni mode", t)
                if decl.kind == "protocol":
                    return self.translate_parameter(Existential((t,)), name)
                return TranslatedParameter(
                    [JavaParameter(name, self.ctx.java_class(t))], SwiftValueSelfSegment(JPlaceholder())
                )
        raise UnsupportedType("unsupported parameter type", t)

    def translate_optional_parameter(self, wrapped: SwiftType, name: str) -> TranslatedParameter:
        match wrapped:
            case Primitive():
                java_type = java_primitive(wrapped)
                optional, getter = _optional_scalar(java_type)
                return TranslatedParameter(
                    [JavaParameter(name, optional)],
                    Ternary(
                        JMethod(JPlaceholder(), "isPresent"),
                        ArenaAllocate(JMethod(JPlaceholder(), getter), java_layout(java_type)),
                        Constant("MemorySegment.NULL"),
                    ),
                )
            case Nominal(decl=decl) if decl.known is None and not decl.is_java_wrapper and decl.kind != "protocol":
                return TranslatedParameter(
                    [JavaParameter(name, optional_of(self.ctx.java_class(wrapped)))],
                    OptionalOrElse(
                        OptionalMap(JPlaceholder(), SwiftValueSelfSegment(JPlaceholder())), "MemorySegment.NULL"
                    ),
                )
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(wrapped)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", wrapped)
                return self.translate_optional_parameter(concrete, name)
        raise UnsupportedType("unsupported optional parameter type", OptionalType(wrapped))

    def translate_closure_parameter(self, fn: FunctionType, name: str) -> TranslatedParameter:
        function_type = self.translate_function_type(fn, name)
        self.function_types.append(function_type)
        interface = JavaClass(self.holder + "." + name, self.config.java_package)
        return TranslatedParameter(
            [JavaParameter(name, interface)],
            JCall(JPlaceholder(), self.holder.rsplit(".", 1)[-1] + ".$toUpcallStub", with_arena=True),
        )

    def translate_function_type(self, fn: FunctionType, name: str) -> TranslatedFunctionType:
        if fn.is_async or fn.is_throws:
            raise UnsupportedType("effectful closures are not supported", fn)
        if not is_void(fn.result) and not isinstance(fn.result, Primitive):
            raise UnsupportedType("closure results must be primitive", fn.result)
        params: list[JavaParameter] = []
        cdecl_params: list[JavaParameter] = []
        layouts: list[str] = []
        conversions: list[JavaConversionStep] = []
        compatible = True
        for i, p in enumerate(fn.params):
            arg = "_" + str(i)
            match p.type:
                case Primitive():
                    params.append(JavaParameter(arg, java_primitive(p.type)))
                    cdecl_params.append(JavaParameter(arg, java_primitive(p.type)))
                    layouts.append(value_layout(p.type))
                    conversions.append(JPlaceholder())
                case Nominal(decl=decl) if decl.known in (
                    "unsafe_raw_pointer",
                    "unsafe_mutable_raw_pointer",
                    "unsafe_pointer",
                    "unsafe_mutable_pointer",
                ):
                    params.append(JavaParameter(arg, MEMORY_SEGMENT))
                    cdecl_params.append(JavaParameter(arg, MEMORY_SEGMENT))
                    layouts.append(POINTER_LAYOUT)
                    conversions.append(JPlaceholder())
                case Nominal(decl=decl) if decl.known in (
                    "unsafe_raw_buffer_pointer",
                    "unsafe_mutable_raw_buffer_pointer",
                ):
                    compatible = False
                    params.append(JavaParameter(arg, MEMORY_SEGMENT))
                    cdecl_params.append(JavaParameter(arg + "_pointer", MEMORY_SEGMENT))
                    cdecl_params.append(JavaParameter(arg + "_count", LONG))
                    layouts.extend([POINTER_LAYOUT, _LAYOUTS["int"]])
                    conversions.append(
                        JMethod(ExplodedName("pointer"), "reinterpret", (ExplodedName("count"),))
                    )
                case _:
                    raise UnsupportedType("unsupported closure parameter type", p.type)
        result_type = VOID if is_void(fn.result) else cdecl_java_type(fn.result)
        result_layout = None if is_void(fn.result) else value_layout(fn.result)
        return TranslatedFunctionType(
            name,
            params,
            result_type,
            cdecl_params,
            layouts,
            result_type,
            result_layout,
            conversions,
            compatible,
        )

    # ------------------------------------------------------------
    # RESULTS
    # ------------------------------------------------------------

    def translate_result(self, t: SwiftType) -> TranslatedResult:
        if is_void(t):
            return TranslatedResult(VOID, [], JPlaceholder())
        match t:
            case Primitive():
                java_type = java_primitive(t)
                if t.is_unsigned and t.kind != "uint16":
                    if self.config.unsigned_mode == "wrap" and t.kind == "uint32":
                        return TranslatedResult(
                            UNSIGNED_INTEGER, [], JCall(JPlaceholder(), "UnsignedInteger.fromIntBits")
                        )
                    if self.config.unsigned_mode == "wrap" and t.kind in ("uint64", "uint"):
                        return TranslatedResult(UNSIGNED_LONG, [], JCall(JPlaceholder(), "UnsignedLong.fromLongBits"))
                    return TranslatedResult(java_type, [], JPlaceholder(), ("@Unsigned",))
                return TranslatedResult(java_type, [], JPlaceholder())
            case Metatype():
                return TranslatedResult(SWIFT_ANY_TYPE, [], Construct(JPlaceholder(), SWIFT_ANY_TYPE))
            case Nominal():
                return self.translate_nominal_result(t)
            case TupleType(elements=elements) if len(elements) == 1:
                return self.translate_result(elements[0])
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(t)
                if concrete is None:
                    raise UnsupportedType("no concrete representative type", t)
                return self.translate_result(concrete)
        raise UnsupportedType("unsupported result type", t)

    def translate_nominal_result(self, t: Nominal) -> TranslatedResult:
        decl = t.decl
        match decl.known:
            case "unsafe_raw_pointer" | "unsafe_mutable_raw_pointer" | "unsafe_pointer" | "unsafe_mutable_pointer":
                return TranslatedResult(MEMORY_SEGMENT, [], JPlaceholder())
            case (
                "unsafe_raw_buffer_pointer"
                | "unsafe_mutable_raw_buffer_pointer"
                | "unsafe_buffer_pointer"
                | "unsafe_mutable_buffer_pointer"
            ):
                return TranslatedResult(
                    MEMORY_SEGMENT,
                    [
                        OutParameter("_result_pointer", MEMORY_SEGMENT, "arena$.allocate(ValueLayout.ADDRESS)"),
                        OutParameter("_result_count", MEMORY_SEGMENT, "arena$.allocate(ValueLayout.JAVA_LONG)"),
                    ],
                    JMethod(
                        ReadMemorySegment(ExplodedName("pointer"), "ValueLayout.ADDRESS"),
                        "reinterpret",
                        (ReadMemorySegment(ExplodedName("count"), "ValueLayout.JAVA_LONG"),),
                    ),
                )
            case "string":
                return TranslatedResult(
                    STRING,
                    [OutParameter("_result", MEMORY_SEGMENT, "arena$.allocate(ValueLayout.ADDRESS)")],
                    JCall(ReadMemorySegment(JPlaceholder(), "ValueLayout.ADDRESS"), "SwiftRuntime.fromOwnedCString"),
                )
            case "array":
                element = t.generic_args[0]
                if not isinstance(element, Primitive) or element.kind == "bool":
                    raise UnsupportedType("arrays of this element type are not supported", t)
                java_element = java_primitive(element)
                layout = java_layout(java_element)
                holder = JavaArray(JavaArray(java_element))
                copy = (
                    "$ArrayInitializer.toUpcallStub((pointer, count) -> {\n"
                    + "  _result[0] = pointer.reinterpret(count * "
                    + layout
                    + ".byteSize()).toArray("
                    + layout
                    + ");\n"
                    + "}, arena$)"
                )
                return TranslatedResult(
                    JavaArray(java_element),
                    [
                        OutParameter("_result", holder, "new " + str(java_element) + "[1][]", arena=""),
                        OutParameter("_result_initialize", MEMORY_SEGMENT, copy),
                    ],
                    ArrayElement(JPlaceholder(), 0),
                )
            case None:
                if decl.is_java_wrapper:
                    raise UnsupportedType("Java wrapper types require the jni mode", t)
                if decl.kind == "protocol":
                    raise UnsupportedType("protocol results are not supported", t)
                java_type = self.ctx.java_class(t)
                return TranslatedResult(
                    java_type,
                    [OutParameter("_result", MEMORY_SEGMENT, "swiftArena$.allocate(" + str(java_type) + ".$LAYOUT)", "swiftArena$")],
                    ConstructSwiftValue(JPlaceholder(), java_type),
                )
        raise UnsupportedType("unsupported result type", t)


def _optional_scalar(java_type: JavaType) -> tuple[JavaType, str]:
    """Java optional type for a scalar and the accessor unwrapping it."""
    match str(java_type):
        case "int":
            return OPTIONAL_INT, "getAsInt"
        case "long":
            return OPTIONAL_LONG, "getAsLong"
        case "double":
            return OPTIONAL_DOUBLE, "getAsDouble"
    return optional_of(java_type), "get"


def cdecl_parameters(lowered: LoweredFunctionSignature) -> list[JavaParameter]:
    """Downcall handle parameters, in cdecl order."""
    return [JavaParameter(java_safe_name(p.name or "_"), cdecl_java_type(p.type)) for p in lowered.all_lowered_parameters]
