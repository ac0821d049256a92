"""Translation of Swift declarations to Java Native Interface (JNI) bindings.

Every declaration becomes a user-facing Java method that forwards to a
`private static native` method, plus a Swift `@_cdecl("Java_...")` function
implementing that native method. The Java side (TranslatedFunctionSignature)
turns user values into native arguments and native results back into user
values; the native side (NativeFunctionSignature) raises JNI values to Swift
and lowers the Swift result back to a JNI value.

| Swift                 | Java parameter     | Native parameters                      | Swift raise                          |
|-----------------------|--------------------|----------------------------------------|--------------------------------------|
| Int32, Double, ...    | int, double, ...   | jint x                                 | Int32(fromJNI: x, in: environment)   |
| String                | String             | jstring? x                             | String(fromJNI: x, in: environment)  |
| [Int32]               | int[]              | jintArray? x                           | [Int32](fromJNI: x, in: environment) |
| user type             | T                  | jlong x                                | pointer from address bits, .pointee  |
| any P, some P, T: P   | P                  | jlong x, jlong x_typeMetadataAddress   | existential opened from its metadata |
| @JavaClass type       | mapped Java class  | jobject? x                             | T(javaThis: x!, environment: ...)    |
| Int32? (any scalar)   | OptionalInt        | jbyte x_discriminator, jint x_value    | ternary on the discriminator         |
| String?               | Optional<String>   | jstring? x                             | x.map { String(fromJNI: $0, ...) }   |
| T? (user type)        | Optional<T>        | jlong x (0 when empty)                 | optional pointer, ?.pointee          |
| closure               | functional iface   | jobject? x                             | closure literal upcalling `apply`    |

Optional scalar results narrow enough to share a primitive with a one-byte
discriminator are packed into it; all other optional results return the
value and report presence through a `byte[1]` out-parameter. Async functions
complete a CompletableFuture passed in by the Java wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import Config
from ..context import GenerationContext
from ..errors import (
    InoutNotSupportedForType,
    InternalError,
    MissingExternalMapping,
    ProtocolRequirementsNotSupported,
    UnsupportedType,
)
from ..ir import (
    Existential,
    FunctionType,
    GenericParameter,
    ImportedEnumCase,
    ImportedFunc,
    Nominal,
    NominalDecl,
    Opaque,
    OptionalType,
    Primitive,
    SwiftType,
    TupleType,
    is_user_nominal,
    is_void,
)
from ..middleend.lowering import parameter_name
from .javasteps import (
    BinaryOperation,
    Cast,
    CombinedOptional,
    CommaSeparated,
    Constant,
    DiscriminatorOptional,
    FutureCompletion,
    JavaConversionStep,
    JCall,
    JMethod,
    JPlaceholder,
    OptionalMap,
    OptionalOrElse,
    Ternary,
    WrapMemoryAddress,
    requires_swift_arena,
)
from .javatypes import (
    BYTE,
    INT,
    LONG,
    OPTIONAL_DOUBLE,
    OPTIONAL_INT,
    OPTIONAL_LONG,
    STRING,
    VOID,
    JavaArray,
    JavaClass,
    JavaParameter,
    JavaType,
    call_method_kind,
    completable_future_of,
    java_primitive,
    jni_type_name,
    optional_of,
    placeholder_value,
)
from .naming import (
    java_method_name,
    java_parameter_name,
    jni_method_descriptor,
    jni_native_name,
    native_method_name,
)
from .nativesteps import (
    AllocateSwiftValue,
    CombinedOptionalLowering,
    ExtractSwiftValue,
    FallbackOptionalLowering,
    GetJNIValue,
    GetJValue,
    InitFromJNI,
    NativeConversionStep,
    NComparison,
    NConstant,
    NExplodedName,
    NOptionalChain,
    NOptionalMap,
    NPlaceholder,
    NPointee,
    NTernary,
    OpenExistential,
    UnwrapJavaObject,
    UpcallClosure,
    WrapJavaObject,
)
from .util import upper_first

DISCRIMINATOR_BITS = 8

# ============================================================
# TRANSLATED DECLARATIONS
# ============================================================


@dataclass
class OutParameter:
    """An array the Java wrapper allocates for the native side to fill in."""

    name: str
    java_type: JavaType
    initializer: str


@dataclass
class TranslatedParameter:
    parameter: JavaParameter
    conversion: JavaConversionStep


@dataclass
class TranslatedResult:
    java_type: JavaType
    out_parameters: list[OutParameter]
    conversion: JavaConversionStep
    annotations: tuple[str, ...] = ()


@dataclass
class TranslatedFunctionSignature:
    """The user-facing Java method and how it reaches the native method."""

    self_parameter: TranslatedParameter | None
    parameters: list[TranslatedParameter]
    result: TranslatedResult

    @property
    def requires_swift_arena(self) -> bool:
        return requires_swift_arena(self.result.conversion)


@dataclass
class NativeParameter:
    """JNI parameters of one Swift parameter and the step raising them.

    The conversion renders against name; it consumes exactly one
    placeholder per JNI parameter.
    """

    name: str
    parameters: list[JavaParameter]
    conversion: NativeConversionStep

    def __post_init__(self) -> None:
        if len(self.parameters) != self.conversion.placeholder_count:
            raise InternalError(
                "native parameter "
                + self.name
                + " has "
                + str(len(self.parameters))
                + " JNI parameters but its conversion consumes "
                + str(self.conversion.placeholder_count)
            )


@dataclass
class NativeResult:
    """How the Swift result reaches Java.

    For async functions java_type is void, the value completes the future
    passed as an out-parameter, and completion_type is the JNI type of the
    lowered value.
    """

    java_type: JavaType
    conversion: NativeConversionStep
    out_parameters: list[JavaParameter] = field(default_factory=list)
    completion_type: JavaType | None = None


@dataclass
class NativeFunctionSignature:
    self_parameter: NativeParameter | None
    parameters: list[NativeParameter]
    result: NativeResult

    @property
    def all_parameters(self) -> list[JavaParameter]:
        """Native method parameters: parameters, then self, then out-parameters."""
        params = [jp for p in self.parameters for jp in p.parameters]
        if self.self_parameter is not None:
            params.extend(self.self_parameter.parameters)
        params.extend(self.result.out_parameters)
        return params


@dataclass
class TranslatedFunctionType:
    """A functional interface generated for a closure parameter."""

    name: str
    parameters: list[JavaParameter]
    result_type: JavaType


@dataclass
class TranslatedFunctionDecl:
    """A declaration ready for printing.

    Protocol requirements have no native side: only their Java signature
    is printed, into the protocol's interface.
    """

    decl: ImportedFunc
    name: str
    native_name: str
    owner: str
    holder_name: str
    translated_signature: TranslatedFunctionSignature
    native_signature: NativeFunctionSignature | None
    symbol: str
    function_types: list[TranslatedFunctionType] = field(default_factory=list)

    @property
    def is_static(self) -> bool:
        return not self.decl.is_instance_member


@dataclass
class TranslatedEnumCaseValue:
    """One associated value of an enum case, read through its own native getter."""

    name: str
    native_name: str
    symbol: str
    result: TranslatedResult
    native_result: NativeResult


@dataclass
class TranslatedEnumCase:
    case: ImportedEnumCase
    record_name: str
    getter_name: str
    values: list[TranslatedEnumCaseValue]

    @property
    def requires_swift_arena(self) -> bool:
        return any(requires_swift_arena(v.result.conversion) for v in self.values)


# ============================================================
# SCALAR TABLES
# ============================================================

_SWIFT_CONTAINERS: dict[int, str] = {32: "Int32", 64: "Int64"}

_ZEROS: dict[str, str] = {
    "boolean": "false",
    "byte": "(byte) 0",
    "char": "(char) 0",
    "short": "(short) 0",
    "int": "0",
    "long": "0L",
    "float": "0f",
    "double": "0.0",
}


def optional_type(java_type: JavaType) -> JavaClass:
    """OptionalInt, OptionalLong, OptionalDouble, or Optional<Boxed>."""
    match str(java_type):
        case "int":
            return OPTIONAL_INT
        case "long":
            return OPTIONAL_LONG
        case "double":
            return OPTIONAL_DOUBLE
    return optional_of(java_type)


def combined_layout(t: Primitive, max_primitive_bits: int) -> tuple[int, int] | None:
    """(container bits, shift) of a packed optional t, or None if it does not fit."""
    if t.bits + DISCRIMINATOR_BITS >= max_primitive_bits:
        return None
    container = 32 if t.bits + DISCRIMINATOR_BITS <= 32 else 64
    return container, container - t.bits


def _bit_pattern(t: Primitive, container: str) -> str:
    """Swift expression widening the unwrapped `$0` to container, keeping its bits."""
    match t.kind:
        case "bool":
            return container + "($0 ? 1 : 0)"
        case "float":
            return container + "(Int32(bitPattern: $0.bitPattern))"
        case "uint8":
            return container + "(Int8(bitPattern: $0))"
        case "uint16":
            return container + "(Int16(bitPattern: $0))"
        case "uint32":
            return container + "(Int32(bitPattern: $0))"
    return container + "($0)"


def _decode(java_type: JavaType) -> JavaConversionStep:
    """Java step narrowing the shifted container back to java_type."""
    match str(java_type):
        case "boolean":
            return BinaryOperation(JPlaceholder(), "!=", "0")
        case "float":
            return JCall(Cast(JPlaceholder(), INT), "Float.intBitsToFloat")
    return Cast(JPlaceholder(), java_type)


# ============================================================
# TRANSLATION
# ============================================================


class JNITranslation:
    """Computes Java and native signatures and conversions for the jni backend."""

    def __init__(self, ctx: GenerationContext) -> None:
        self.ctx: GenerationContext = ctx
        self.config: Config = ctx.config

    def translate(self, decl: ImportedFunc) -> TranslatedFunctionDecl:
        cached = self.ctx.translated_decls.get(decl.key)
        if isinstance(cached, TranslatedFunctionDecl):
            return cached
        parent = decl.parent
        requirement = parent is not None and parent.decl.kind == "protocol"
        if requirement and not decl.is_instance_member:
            raise ProtocolRequirementsNotSupported(
                "static and initializer requirements of protocols are not supported", decl.qualified_name
            )
        sig = decl.signature
        owner = self._owner_class(decl)
        java_name = java_method_name(decl)
        suffix = self.ctx.names.duplicate_suffix(decl)
        self.signature = sig
        self.function_types: list[TranslatedFunctionType] = []
        self.holder: str = owner + "." + java_name + suffix
        params: list[TranslatedParameter] = []
        native_params: list[NativeParameter] = []
        for i, p in enumerate(sig.params):
            name = java_parameter_name(parameter_name(p, i), i)
            java, native = self.translate_parameter(p.type, name, p.convention)
            params.append(java)
            native_params.append(native)
        if sig.is_async:
            result, native_result = self.translate_async_result(sig.result)
        else:
            result, native_result = self.translate_result(sig.result)
        self_param: TranslatedParameter | None = None
        native_self: NativeParameter | None = None
        if parent is not None and decl.is_instance_member and not requirement:
            self_param = TranslatedParameter(JavaParameter("selfPointer", LONG), JMethod(JPlaceholder(), "$memoryAddress"))
            native_self = NativeParameter(
                "selfPointer",
                [JavaParameter("selfPointer", LONG)],
                NPointee(ExtractSwiftValue(NPlaceholder(), parent.swift_type)),
            )
        native_name = native_method_name(java_name) + suffix
        native_sig: NativeFunctionSignature | None = None
        symbol = ""
        if not requirement:
            native_sig = NativeFunctionSignature(native_self, native_params, native_result)
            symbol = jni_native_name(
                self.config.java_package, owner, native_name, [p.type for p in native_sig.all_parameters]
            )
        translated = TranslatedFunctionDecl(
            decl,
            java_name,
            native_name,
            owner,
            java_name + suffix,
            TranslatedFunctionSignature(self_param, params, result),
            native_sig,
            symbol,
            self.function_types,
        )
        self.ctx.translated_decls[decl.key] = translated
        return translated

    def _owner_class(self, decl: ImportedFunc) -> str:
        if decl.parent is not None:
            return self.ctx.java_class_name(decl.parent.decl)
        return self.ctx.module_class

    def unsigned_annotations(self, t: Primitive) -> tuple[str, ...]:
        if t.is_unsigned and t.kind != "uint16":
            return ("@Unsigned",)
        return ()

    # ------------------------------------------------------------
    # PARAMETERS
    # ------------------------------------------------------------

    def translate_parameter(
        self, t: SwiftType, name: str, convention: str = "borrowed"
    ) -> tuple[TranslatedParameter, NativeParameter]:
        if convention == "inout" and not is_user_nominal(t):
            raise InoutNotSupportedForType("inout is only supported for imported types in jni mode", t)
        match t:
            case Primitive():
                java_type = java_primitive(t)
                return (
                    TranslatedParameter(JavaParameter(name, java_type, self.unsigned_annotations(t)), JPlaceholder()),
                    NativeParameter(name, [JavaParameter(name, java_type)], InitFromJNI(NPlaceholder(), t)),
                )
            case Nominal():
                return self.translate_nominal_parameter(t, name)
            case TupleType(elements=elements) if len(elements) == 1:
                return self.translate_parameter(elements[0], name, convention)
            case OptionalType(wrapped=wrapped):
                return self.translate_optional_parameter(wrapped, name)
            case FunctionType():
                return self.translate_closure_parameter(t, name)
            case GenericParameter() | Existential() | Opaque():
                return self.translate_existential_parameter(t, name)
        raise UnsupportedType("unsupported parameter type in jni mode", t)

    def translate_nominal_parameter(self, t: Nominal, name: str) -> tuple[TranslatedParameter, NativeParameter]:
        decl = t.decl
        match decl.known:
            case "string":
                return self._direct_parameter(name, STRING, t)
            case "array":
                element = t.generic_args[0]
                if not isinstance(element, Primitive):
                    raise UnsupportedType("arrays of this element type are not supported in jni mode", t)
                return self._direct_parameter(name, JavaArray(java_primitive(element)), t)
            case None:
                if decl.is_java_wrapper:
                    java_class = self.java_wrapper_type(decl)
                    return (
                        TranslatedParameter(JavaParameter(name, java_class), JPlaceholder()),
                        NativeParameter(name, [JavaParameter(name, java_class)], WrapJavaObject(NPlaceholder(), t)),
                    )
                if decl.kind == "protocol":
                    return self.translate_existential_parameter(Existential((t,)), name)
                return (
                    TranslatedParameter(
                        JavaParameter(name, self.ctx.java_class(t)), JMethod(JPlaceholder(), "$memoryAddress")
                    ),
                    NativeParameter(
                        name, [JavaParameter(name, LONG)], NPointee(ExtractSwiftValue(NPlaceholder(), t))
                    ),
                )
        raise UnsupportedType(decl.name + " is not supported in jni mode", t)

    def _direct_parameter(
        self, name: str, java_type: JavaType, t: SwiftType
    ) -> tuple[TranslatedParameter, NativeParameter]:
        return (
            TranslatedParameter(JavaParameter(name, java_type), JPlaceholder()),
            NativeParameter(name, [JavaParameter(name, java_type)], InitFromJNI(NPlaceholder(), t)),
        )

    def java_wrapper_type(self, decl: NominalDecl) -> JavaClass:
        java_class = self.ctx.java_wrapper_class(decl)
        if not java_class:
            raise MissingExternalMapping("no Java class is configured for Java wrapper type", decl.qualified_name)
        return JavaClass(java_class)

    def translate_existential_parameter(
        self, t: SwiftType, name: str
    ) -> tuple[TranslatedParameter, NativeParameter]:
        concrete = self.signature.representative_type(t)
        if concrete is not None:
            return self.translate_parameter(concrete, name)
        protocols = self.signature.protocol_constraints(t)
        if len(protocols) != 1 or protocols[0].decl.known is not None:
            raise UnsupportedType("only existentials of a single imported protocol are supported", t)
        protocol = protocols[0]
        return (
            TranslatedParameter(
                JavaParameter(name, self.ctx.java_class(protocol)),
                CommaSeparated(
                    (JMethod(JPlaceholder(), "$memoryAddress"), JMethod(JPlaceholder(), "$typeMetadataAddress"))
                ),
            ),
            NativeParameter(
                name,
                [JavaParameter(name, LONG), JavaParameter(name + "_typeMetadataAddress", LONG)],
                OpenExistential("any " + str(protocol)),
            ),
        )

    def translate_optional_parameter(
        self, wrapped: SwiftType, name: str
    ) -> tuple[TranslatedParameter, NativeParameter]:
        match wrapped:
            case Primitive():
                java_type = java_primitive(wrapped)
                present = Cast(Ternary(JMethod(JPlaceholder(), "isPresent"), Constant("1"), Constant("0")), BYTE)
                return (
                    TranslatedParameter(
                        JavaParameter(name, optional_type(java_type)),
                        CommaSeparated((present, OptionalOrElse(JPlaceholder(), _ZEROS[str(java_type)]))),
                    ),
                    NativeParameter(
                        name,
                        [JavaParameter(name + "_discriminator", BYTE), JavaParameter(name + "_value", java_type)],
                        NTernary(
                            NComparison(NExplodedName("discriminator"), "==", "1"),
                            InitFromJNI(NExplodedName("value"), wrapped),
                            NConstant("nil"),
                        ),
                    ),
                )
            case Nominal(decl=decl) if decl.known == "string":
                return (
                    TranslatedParameter(JavaParameter(name, optional_of(STRING)), OptionalOrElse(JPlaceholder(), "null")),
                    NativeParameter(
                        name,
                        [JavaParameter(name, STRING)],
                        NOptionalMap(NPlaceholder(), InitFromJNI(NPlaceholder(), wrapped)),
                    ),
                )
            case Nominal() if is_user_nominal(wrapped):
                return (
                    TranslatedParameter(
                        JavaParameter(name, optional_of(self.ctx.java_class(wrapped))),
                        OptionalOrElse(OptionalMap(JPlaceholder(), JMethod(JPlaceholder(), "$memoryAddress")), "0L"),
                    ),
                    NativeParameter(
                        name,
                        [JavaParameter(name, LONG)],
                        NPointee(NOptionalChain(ExtractSwiftValue(NPlaceholder(), wrapped, allow_nil=True))),
                    ),
                )
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(wrapped)
                if concrete is not None:
                    return self.translate_optional_parameter(concrete, name)
        raise UnsupportedType("unsupported optional parameter type in jni mode", OptionalType(wrapped))

    def translate_closure_parameter(
        self, fn: FunctionType, name: str
    ) -> tuple[TranslatedParameter, NativeParameter]:
        if fn.is_async or fn.is_throws:
            raise UnsupportedType("effectful closures are not supported", fn)
        params: list[JavaParameter] = []
        for i, p in enumerate(fn.params):
            params.append(JavaParameter("_" + str(i), self._closure_value_type(p.type)))
        if is_void(fn.result):
            result_type: JavaType = VOID
            raise_result: NativeConversionStep = NPlaceholder()
            swift_result = "Void"
        else:
            result_type = self._closure_value_type(fn.result)
            raise_result = InitFromJNI(NPlaceholder(), fn.result)
            swift_result = str(fn.result)
        self.function_types.append(TranslatedFunctionType(name, params, result_type))
        interface = JavaClass(self.holder + "." + name, self.config.java_package)
        upcall = UpcallClosure(
            tuple(GetJValue(NPlaceholder()) for _ in fn.params),
            tuple(str(p.type) for p in fn.params),
            raise_result,
            swift_result,
            call_method_kind(result_type),
            jni_method_descriptor([p.type for p in params], result_type),
            fn.escaping or self.signature.is_async,
        )
        return (
            TranslatedParameter(JavaParameter(name, interface), JPlaceholder()),
            NativeParameter(name, [JavaParameter(name, interface)], upcall),
        )

    def _closure_value_type(self, t: SwiftType) -> JavaType:
        if isinstance(t, Primitive):
            return java_primitive(t)
        if isinstance(t, Nominal) and t.decl.known == "string":
            return STRING
        raise UnsupportedType("closure values must be primitives or strings in jni mode", t)

    # ------------------------------------------------------------
    # RESULTS
    # ------------------------------------------------------------

    def translate_result(self, t: SwiftType) -> tuple[TranslatedResult, NativeResult]:
        if is_void(t):
            return TranslatedResult(VOID, [], JPlaceholder()), NativeResult(VOID, NPlaceholder())
        match t:
            case Primitive():
                java_type = java_primitive(t)
                return (
                    TranslatedResult(java_type, [], JPlaceholder(), self.unsigned_annotations(t)),
                    NativeResult(java_type, GetJNIValue(NPlaceholder())),
                )
            case Nominal():
                return self.translate_nominal_result(t)
            case TupleType(elements=elements) if len(elements) == 1:
                return self.translate_result(elements[0])
            case OptionalType(wrapped=wrapped):
                return self.translate_optional_result(wrapped)
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(t)
                if concrete is not None:
                    return self.translate_result(concrete)
        raise UnsupportedType("unsupported result type in jni mode", t)

    def translate_nominal_result(self, t: Nominal) -> tuple[TranslatedResult, NativeResult]:
        decl = t.decl
        match decl.known:
            case "string":
                return TranslatedResult(STRING, [], JPlaceholder()), NativeResult(STRING, GetJNIValue(NPlaceholder()))
            case "array":
                element = t.generic_args[0]
                if not isinstance(element, Primitive):
                    raise UnsupportedType("arrays of this element type are not supported in jni mode", t)
                java_type = JavaArray(java_primitive(element))
                return (
                    TranslatedResult(java_type, [], JPlaceholder()),
                    NativeResult(java_type, GetJNIValue(NPlaceholder())),
                )
            case None:
                if decl.is_java_wrapper:
                    java_class = self.java_wrapper_type(decl)
                    return (
                        TranslatedResult(java_class, [], JPlaceholder()),
                        NativeResult(java_class, UnwrapJavaObject(NPlaceholder())),
                    )
                if decl.kind != "protocol":
                    java_class = self.ctx.java_class(t)
                    return (
                        TranslatedResult(java_class, [], WrapMemoryAddress(JPlaceholder(), java_class)),
                        NativeResult(LONG, GetJNIValue(AllocateSwiftValue(NPlaceholder(), t))),
                    )
        raise UnsupportedType(decl.name + " results are not supported in jni mode", t)

    def translate_optional_result(self, wrapped: SwiftType) -> tuple[TranslatedResult, NativeResult]:
        if isinstance(wrapped, Primitive):
            java_type = java_primitive(wrapped)
            optional = optional_type(java_type)
            layout = combined_layout(wrapped, self.config.max_primitive_bits)
            if layout is not None:
                container_bits, shift = layout
                container = INT if container_bits == 32 else LONG
                swift_container = _SWIFT_CONTAINERS[container_bits]
                return (
                    TranslatedResult(
                        optional, [], CombinedOptional(JPlaceholder(), optional, container, shift, _decode(java_type))
                    ),
                    NativeResult(
                        container,
                        CombinedOptionalLowering(
                            NPlaceholder(), swift_container, _bit_pattern(wrapped, swift_container), shift
                        ),
                    ),
                )
            return self._discriminated_result(optional, java_type, JPlaceholder(), GetJNIValue(NPlaceholder()))
        match wrapped:
            case Nominal(decl=decl) if decl.known == "string":
                return self._discriminated_result(
                    optional_of(STRING), STRING, JPlaceholder(), GetJNIValue(NPlaceholder())
                )
            case Nominal(decl=decl) if decl.known == "array":
                element = wrapped.generic_args[0]
                if isinstance(element, Primitive):
                    java_type = JavaArray(java_primitive(element))
                    return self._discriminated_result(
                        optional_of(java_type), java_type, JPlaceholder(), GetJNIValue(NPlaceholder())
                    )
            case Nominal() if is_user_nominal(wrapped):
                java_class = self.ctx.java_class(wrapped)
                return self._discriminated_result(
                    optional_of(java_class),
                    LONG,
                    WrapMemoryAddress(JPlaceholder(), java_class),
                    GetJNIValue(AllocateSwiftValue(NPlaceholder(), wrapped, "value")),
                )
            case GenericParameter() | Existential() | Opaque():
                concrete = self.signature.representative_type(wrapped)
                if concrete is not None:
                    return self.translate_optional_result(concrete)
        raise UnsupportedType("unsupported optional result type in jni mode", OptionalType(wrapped))

    def _discriminated_result(
        self,
        optional: JavaType,
        native_type: JavaType,
        value: JavaConversionStep,
        lowering: NativeConversionStep,
    ) -> tuple[TranslatedResult, NativeResult]:
        return (
            TranslatedResult(
                optional,
                [OutParameter("result$_discriminator$", JavaArray(BYTE), "new byte[1]")],
                DiscriminatorOptional(JPlaceholder(), optional, native_type, value),
            ),
            NativeResult(
                native_type,
                FallbackOptionalLowering(
                    NPlaceholder(), lowering, jni_type_name(native_type), placeholder_value(native_type)
                ),
                [JavaParameter("result_discriminator$", JavaArray(BYTE))],
            ),
        )

    def translate_async_result(self, t: SwiftType) -> tuple[TranslatedResult, NativeResult]:
        if isinstance(t, OptionalType):
            raise UnsupportedType("optional results of async functions are not supported", t)
        result, native = self.translate_result(t)
        if result.out_parameters or native.out_parameters:
            raise UnsupportedType("unsupported result type of async function", t)
        future = completable_future_of(native.java_type)
        return (
            TranslatedResult(
                completable_future_of(result.java_type),
                [OutParameter("future$", future, "new " + str(future) + "()")],
                FutureCompletion(JPlaceholder(), result.conversion),
            ),
            NativeResult(VOID, native.conversion, [JavaParameter("result_future", future)], native.java_type),
        )

    # ------------------------------------------------------------
    # ENUM CASES
    # ------------------------------------------------------------

    def translate_enum_case(self, case: ImportedEnumCase) -> TranslatedEnumCase:
        cached = self.ctx.translated_enum_cases.get(case.key)
        if isinstance(cached, TranslatedEnumCase):
            return cached
        self.signature = case.case_function.signature
        owner = self.ctx.java_class_name(case.enum.decl)
        record = upper_first(case.name)
        getter = "getAs" + record
        values: list[TranslatedEnumCaseValue] = []
        for i, p in enumerate(case.params):
            result, native = self.translate_result(p.type)
            if result.out_parameters or native.out_parameters:
                raise UnsupportedType("enum case values returned through out-parameters are not supported", p.type)
            native_name = "$" + getter + "$" + str(i)
            symbol = jni_native_name(self.config.java_package, owner, native_name, [LONG])
            values.append(
                TranslatedEnumCaseValue(
                    java_parameter_name(p.label if p.label is not None else p.name, i),
                    native_name,
                    symbol,
                    result,
                    native,
                )
            )
        translated = TranslatedEnumCase(case, record, getter, values)
        self.ctx.translated_enum_cases[case.key] = translated
        return translated
