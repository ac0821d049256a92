"""Jextract IR - Swift declaration model consumed by the binding generators.

This module defines the Swift type system and the imported declarations.
Each type node's docstring documents how values of that type cross the
C boundary and how they surface in Java under each backend.

Architecture:
    Swift interface -> Frontend -> [IR] -> Middleend (cdecl lowering) -> Backend (ffm | jni)

The frontend produces fully resolved IR. Lowering and translation never
mutate it; results are memoized per declaration key in the GenerationContext.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


# ============================================================
# PARAMETER CONVENTIONS
# ============================================================

Convention = Literal["borrowed", "owned", "inout"]
"""How a Swift parameter is passed.

| Kind     | Meaning                     | C                      |
|----------|-----------------------------|------------------------|
| borrowed | default, caller keeps value | by value or const ptr  |
| owned    | `__owned` / `consuming`     | by value or const ptr  |
| inout    | `inout T`                   | mutable pointer        |
"""


# ============================================================
# TYPES
# ============================================================


@dataclass(unsafe_hash=True)
class SwiftType:
    """Base for all Swift types. Every type renders as Swift source text."""


PrimitiveKind = Literal[
    "bool",
    "int",
    "uint",
    "int8",
    "uint8",
    "int16",
    "uint16",
    "int32",
    "uint32",
    "int64",
    "uint64",
    "float",
    "double",
]

PRIMITIVE_NAMES: dict[str, PrimitiveKind] = {
    "Bool": "bool",
    "Int": "int",
    "UInt": "uint",
    "Int8": "int8",
    "UInt8": "uint8",
    "Int16": "int16",
    "UInt16": "uint16",
    "Int32": "int32",
    "UInt32": "uint32",
    "Int64": "int64",
    "UInt64": "uint64",
    "Float": "float",
    "Double": "double",
}

_PRIMITIVE_SPELLINGS: dict[str, str] = {v: k for k, v in PRIMITIVE_NAMES.items()}

PRIMITIVE_BITS: dict[str, int] = {
    "bool": 8,
    "int": 64,
    "uint": 64,
    "int8": 8,
    "uint8": 8,
    "int16": 16,
    "uint16": 16,
    "int32": 32,
    "uint32": 32,
    "int64": 64,
    "uint64": 64,
    "float": 32,
    "double": 64,
}

UNSIGNED_KINDS: frozenset[str] = frozenset({"uint", "uint8", "uint16", "uint32", "uint64"})


@dataclass(unsafe_hash=True)
class Primitive(SwiftType):
    """Swift standard library scalar.

    | Swift  | C         | ffm Java | jni Java | jni native |
    |--------|-----------|----------|----------|------------|
    | Bool   | bool      | boolean  | boolean  | jboolean   |
    | Int8   | int8_t    | byte     | byte     | jbyte      |
    | UInt8  | uint8_t   | byte     | byte     | jbyte      |
    | Int16  | int16_t   | short    | short    | jshort     |
    | UInt16 | uint16_t  | char     | char     | jchar      |
    | Int32  | int32_t   | int      | int      | jint       |
    | UInt32 | uint32_t  | int      | int      | jint       |
    | Int64  | int64_t   | long     | long     | jlong      |
    | UInt64 | uint64_t  | long     | long     | jlong      |
    | Int    | ptrdiff_t | long     | long     | jlong      |
    | UInt   | size_t    | long     | long     | jlong      |
    | Float  | float     | float    | float    | jfloat     |
    | Double | double    | double   | double   | jdouble    |

    Unsigned kinds carry @Unsigned or an unsigned wrapper type in Java.
    """

    kind: PrimitiveKind

    def __str__(self) -> str:
        return _PRIMITIVE_SPELLINGS[self.kind]

    @property
    def is_unsigned(self) -> bool:
        return self.kind in UNSIGNED_KINDS

    @property
    def bits(self) -> int:
        return PRIMITIVE_BITS[self.kind]


NominalKind = Literal["struct", "class", "enum", "protocol", "actor"]

KnownKind = Literal[
    "string",
    "array",
    "data",
    "data_protocol",
    "unsafe_raw_pointer",
    "unsafe_mutable_raw_pointer",
    "unsafe_pointer",
    "unsafe_mutable_pointer",
    "unsafe_raw_buffer_pointer",
    "unsafe_mutable_raw_buffer_pointer",
    "unsafe_buffer_pointer",
    "unsafe_mutable_buffer_pointer",
]


@dataclass(unsafe_hash=True)
class NominalDecl:
    """A named type: standard library, Foundation, or declared in the module.

    Invariants:
    - known is set only for standard library and Foundation types
    - parent is the qualified name of the enclosing nominal, if nested
    - java_class is set only when is_java_wrapper; "" means the class comes
      from Config.external_classes
    """

    name: str
    kind: NominalKind
    module: str
    parent: str | None = None
    known: KnownKind | None = None
    is_java_wrapper: bool = False
    java_class: str | None = None

    @property
    def qualified_name(self) -> str:
        if self.parent is None:
            return self.name
        return self.parent + "." + self.name

    @property
    def is_reference_type(self) -> bool:
        return self.kind in ("class", "actor")


@dataclass(unsafe_hash=True)
class Nominal(SwiftType):
    """Reference to a nominal type, with generic arguments.

    | Swift                 | C                    | ffm Java             | jni Java        |
    |-----------------------|----------------------|----------------------|-----------------|
    | String                | const char *         | String (param only)  | String          |
    | [T] (primitive T)     | pointer + count      | T[]                  | T[]             |
    | UnsafeRawPointer      | const void *         | MemorySegment        | unsupported     |
    | UnsafeRawBufferPointer| pointer + count      | MemorySegment        | unsupported     |
    | user struct/class     | const void * (self)  | wrapper class        | wrapper class   |
    | @JavaClass type       | unsupported          | unsupported          | Java class      |

    User-defined values cross as the address of caller-allocated storage.
    """

    decl: NominalDecl
    generic_args: tuple[SwiftType, ...] = ()

    def __str__(self) -> str:
        if self.decl.known == "array" and len(self.generic_args) == 1:
            return "[" + str(self.generic_args[0]) + "]"
        if self.generic_args:
            return (
                self.decl.qualified_name
                + "<"
                + ", ".join(str(a) for a in self.generic_args)
                + ">"
            )
        return self.decl.qualified_name

    @property
    def known(self) -> KnownKind | None:
        return self.decl.known


@dataclass(unsafe_hash=True)
class TupleType(SwiftType):
    """Tuple; the empty tuple is Void.

    | Swift      | C                         | Java                        |
    |------------|---------------------------|-----------------------------|
    | ()         | void                      | void                        |
    | (T)        | as T                      | as T                        |
    | (A, B)     | exploded, one per element | exploded params (ffm only)  |

    Invariants:
    - element labels are dropped; a 1-tuple is equivalent to its element
    """

    elements: tuple[SwiftType, ...] = ()

    def __str__(self) -> str:
        return "(" + ", ".join(str(e) for e in self.elements) + ")"

    @property
    def is_void(self) -> bool:
        return len(self.elements) == 0


FunctionConvention = Literal["swift", "c"]


@dataclass(unsafe_hash=True)
class FunctionType(SwiftType):
    """Closure or C function pointer type.

    | Swift                      | C                     | Java                      |
    |----------------------------|-----------------------|---------------------------|
    | @convention(c) (A) -> R    | R (*)(A)              | functional interface      |
    | (A) -> R                   | via closure lowering  | functional interface      |
    | @escaping (A) -> R         | via closure lowering  | interface (jni: holder)   |

    Invariants:
    - params carry no argument labels
    """

    params: tuple[SwiftParam, ...]
    result: SwiftType
    convention: FunctionConvention = "swift"
    escaping: bool = False
    is_async: bool = False
    is_throws: bool = False

    def __str__(self) -> str:
        s = ""
        if self.escaping:
            s += "@escaping "
        if self.convention == "c":
            s += "@convention(c) "
        s += "(" + ", ".join(str(p.type) for p in self.params) + ")"
        if self.is_async:
            s += " async"
        if self.is_throws:
            s += " throws"
        return s + " -> " + str(self.result)


@dataclass(unsafe_hash=True)
class OptionalType(SwiftType):
    """`T?` and `Optional<T>` both normalize here.

    | Swift       | C                     | ffm Java                  | jni Java                 |
    |-------------|-----------------------|---------------------------|--------------------------|
    | Int32?      | const int32_t *       | OptionalInt               | OptionalInt (combined)   |
    | Int64?      | const int64_t *       | OptionalLong              | OptionalLong (byte[1])   |
    | MyStruct?   | const void * nullable | Optional<MyStruct>        | Optional<MyStruct>       |
    | String?     | unsupported           | unsupported               | Optional<String>         |

    Optional results are rejected by the cdecl lowering.
    """

    wrapped: SwiftType

    def __str__(self) -> str:
        inner = str(self.wrapped)
        if isinstance(self.wrapped, (FunctionType, Composite, Existential, Opaque)):
            inner = "(" + inner + ")"
        return inner + "?"


@dataclass(unsafe_hash=True)
class Metatype(SwiftType):
    """`T.Type`; crosses as an opaque type metadata pointer."""

    instance: SwiftType

    def __str__(self) -> str:
        inner = str(self.instance)
        if isinstance(self.instance, (FunctionType, Composite, Existential, Opaque)):
            inner = "(" + inner + ")"
        return inner + ".Type"


@dataclass(unsafe_hash=True)
class Existential(SwiftType):
    """`any P`; resolved to a concrete representative or passed as
    (pointer, type metadata) by the jni backend."""

    constraints: tuple[SwiftType, ...]

    def __str__(self) -> str:
        return "any " + " & ".join(str(c) for c in self.constraints)


@dataclass(unsafe_hash=True)
class Opaque(SwiftType):
    """`some P`; treated like an existential in parameter position."""

    constraints: tuple[SwiftType, ...]

    def __str__(self) -> str:
        return "some " + " & ".join(str(c) for c in self.constraints)


@dataclass(unsafe_hash=True)
class GenericParameter(SwiftType):
    """Reference to a generic parameter of the enclosing declaration."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(unsafe_hash=True)
class Composite(SwiftType):
    """Protocol composition `P & Q`; never lowered."""

    types: tuple[SwiftType, ...]

    def __str__(self) -> str:
        return " & ".join(str(t) for t in self.types)


VOID = TupleType(())
BOOL = Primitive("bool")
INT = Primitive("int")
INT8 = Primitive("int8")
UINT8 = Primitive("uint8")
INT32 = Primitive("int32")
INT64 = Primitive("int64")


# ============================================================
# KNOWN NOMINAL TYPES
# ============================================================

_KNOWN_DECLS: dict[str, NominalDecl] = {
    "String": NominalDecl("String", "struct", "Swift", known="string"),
    "Array": NominalDecl("Array", "struct", "Swift", known="array"),
    "Data": NominalDecl("Data", "struct", "Foundation", known="data"),
    "DataProtocol": NominalDecl("DataProtocol", "protocol", "Foundation", known="data_protocol"),
    "UnsafeRawPointer": NominalDecl(
        "UnsafeRawPointer", "struct", "Swift", known="unsafe_raw_pointer"
    ),
    "UnsafeMutableRawPointer": NominalDecl(
        "UnsafeMutableRawPointer", "struct", "Swift", known="unsafe_mutable_raw_pointer"
    ),
    "UnsafePointer": NominalDecl("UnsafePointer", "struct", "Swift", known="unsafe_pointer"),
    "UnsafeMutablePointer": NominalDecl(
        "UnsafeMutablePointer", "struct", "Swift", known="unsafe_mutable_pointer"
    ),
    "UnsafeRawBufferPointer": NominalDecl(
        "UnsafeRawBufferPointer", "struct", "Swift", known="unsafe_raw_buffer_pointer"
    ),
    "UnsafeMutableRawBufferPointer": NominalDecl(
        "UnsafeMutableRawBufferPointer",
        "struct",
        "Swift",
        known="unsafe_mutable_raw_buffer_pointer",
    ),
    "UnsafeBufferPointer": NominalDecl(
        "UnsafeBufferPointer", "struct", "Swift", known="unsafe_buffer_pointer"
    ),
    "UnsafeMutableBufferPointer": NominalDecl(
        "UnsafeMutableBufferPointer", "struct", "Swift", known="unsafe_mutable_buffer_pointer"
    ),
}


RAW_POINTER_KINDS: frozenset[str] = frozenset(
    {"unsafe_raw_pointer", "unsafe_mutable_raw_pointer"}
)
TYPED_POINTER_KINDS: frozenset[str] = frozenset({"unsafe_pointer", "unsafe_mutable_pointer"})
RAW_BUFFER_KINDS: frozenset[str] = frozenset(
    {"unsafe_raw_buffer_pointer", "unsafe_mutable_raw_buffer_pointer"}
)
TYPED_BUFFER_KINDS: frozenset[str] = frozenset(
    {"unsafe_buffer_pointer", "unsafe_mutable_buffer_pointer"}
)

# Protocols whose only supported conformer is a fixed concrete type.
REPRESENTATIVE_TYPES: dict[str, str] = {
    "DataProtocol": "Data",
}


def known_decl(name: str) -> NominalDecl | None:
    return _KNOWN_DECLS.get(name)


def known_type(name: str, *args: SwiftType) -> Nominal:
    decl = _KNOWN_DECLS[name]
    return Nominal(decl, tuple(args))


def unsafe_raw_pointer(mutable: bool = False) -> Nominal:
    if mutable:
        return known_type("UnsafeMutableRawPointer")
    return known_type("UnsafeRawPointer")


def unsafe_pointer(pointee: SwiftType, mutable: bool = False) -> Nominal:
    if mutable:
        return known_type("UnsafeMutablePointer", pointee)
    return known_type("UnsafePointer", pointee)


def is_void(t: SwiftType) -> bool:
    return isinstance(t, TupleType) and t.is_void


def is_user_nominal(t: SwiftType) -> bool:
    """A type declared in the imported module that crosses by address."""
    return (
        isinstance(t, Nominal)
        and t.decl.known is None
        and not t.decl.is_java_wrapper
        and t.decl.kind != "protocol"
    )


def metatype_reference(t: SwiftType) -> str:
    """Swift expression naming the type itself: `T.self`."""
    s = str(t)
    if isinstance(t, (FunctionType, Composite, Existential, Opaque)):
        s = "(" + s + ")"
    return s + ".self"


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass(unsafe_hash=True)
class SwiftParam:
    """A function parameter, or an element of a function type's parameter list.

    Renders as it appears in a thunk parameter list: `_ name: Type`.
    """

    type: SwiftType
    label: str | None = None
    name: str | None = None
    convention: Convention = "borrowed"

    def __str__(self) -> str:
        s = self.label if self.label is not None else "_"
        if self.name is not None and self.name != self.label:
            s += " " + self.name
        s += ": "
        if self.convention == "inout":
            s += "inout "
        return s + str(self.type)


SelfKind = Literal["instance", "static", "initializer"]


@dataclass(unsafe_hash=True)
class SelfParam:
    """The implicit self of a member.

    | Kind        | Callee          | C parameter                    |
    |-------------|-----------------|--------------------------------|
    | instance    | self.member     | const void *self (mutable ptr  |
    |             |                 | for mutating value members)    |
    | static      | Type.member     | none                           |
    | initializer | Type(...)       | none                           |
    """

    kind: SelfKind
    type: SwiftType
    convention: Convention = "borrowed"


RequirementKind = Literal["inherits", "same_type"]


@dataclass(unsafe_hash=True)
class GenericRequirement:
    """`T: P` (inherits) or `T == X` (same_type) from a generic clause."""

    kind: RequirementKind
    left: SwiftType
    right: SwiftType


@dataclass
class FunctionSignature:
    """Swift-level signature of a function, accessor, initializer or enum case."""

    params: list[SwiftParam]
    result: SwiftType
    self_param: SelfParam | None = None
    is_async: bool = False
    is_throws: bool = False
    generic_params: list[str] = field(default_factory=list)
    generic_requirements: list[GenericRequirement] = field(default_factory=list)

    def representative_type(self, t: SwiftType) -> SwiftType | None:
        """Concrete type that stands in for a generic, existential or opaque type.

        Returns None when the declared requirements name no concrete bound.
        """
        match t:
            case GenericParameter():
                for req in self.generic_requirements:
                    if req.left != t:
                        continue
                    if req.kind == "same_type":
                        return req.right
                    concrete = _representative_of_constraint(req.right)
                    if concrete is not None:
                        return concrete
                return None
            case Existential(constraints=constraints) | Opaque(constraints=constraints):
                if len(constraints) != 1:
                    return None
                return _representative_of_constraint(constraints[0])
            case _:
                return None

    def protocol_constraints(self, t: SwiftType) -> list[Nominal]:
        """Protocols a generic parameter, existential or opaque type conforms to."""
        found: list[Nominal] = []
        match t:
            case GenericParameter():
                for req in self.generic_requirements:
                    if req.left == t and req.kind == "inherits":
                        found.extend(_protocols_in(req.right))
            case Existential(constraints=constraints) | Opaque(constraints=constraints):
                for c in constraints:
                    found.extend(_protocols_in(c))
            case _:
                pass
        return found


def _representative_of_constraint(t: SwiftType) -> SwiftType | None:
    if isinstance(t, Nominal) and t.decl.name in REPRESENTATIVE_TYPES:
        return known_type(REPRESENTATIVE_TYPES[t.decl.name])
    return None


def _protocols_in(t: SwiftType) -> list[Nominal]:
    if isinstance(t, Nominal) and t.decl.kind == "protocol":
        return [t]
    if isinstance(t, Composite):
        result: list[Nominal] = []
        for part in t.types:
            result.extend(_protocols_in(part))
        return result
    return []


APIKind = Literal[
    "function",
    "initializer",
    "getter",
    "setter",
    "subscript_getter",
    "subscript_setter",
    "enum_case",
]


@dataclass(eq=False)
class ImportedFunc:
    """A callable Swift API: function, initializer, accessor or enum case.

    Invariants:
    - getters have no params; setters have exactly one param named newValue
    - key is stable across runs for identical input
    """

    module: str
    name: str
    api_kind: APIKind
    signature: FunctionSignature
    parent: ImportedNominal | None = None
    source: str = ""
    line: int = 0

    @property
    def key(self) -> str:
        """Declaration identity: owner, name, kind, self kind, labeled parameters, effects and result."""
        owner = self.parent.decl.qualified_name + "." if self.parent is not None else ""
        sig = self.signature
        self_kind = sig.self_param.kind if sig.self_param is not None else "global"
        params = ",".join(
            (p.label or "_") + ":" + p.convention + " " + str(p.type)
            for p in sig.params
        )
        effects = ""
        if sig.is_async:
            effects += " async"
        if sig.is_throws:
            effects += " throws"
        return (
            self.module
            + "."
            + owner
            + self.name
            + "["
            + self.api_kind
            + ","
            + self_kind
            + "]("
            + params
            + ")"
            + effects
            + "->"
            + str(self.signature.result)
        )

    @property
    def qualified_name(self) -> str:
        if self.parent is not None:
            return self.parent.decl.qualified_name + "." + self.name
        return self.name

    @property
    def is_instance_member(self) -> bool:
        sp = self.signature.self_param
        return sp is not None and sp.kind == "instance"

    @property
    def is_static_member(self) -> bool:
        sp = self.signature.self_param
        return sp is not None and sp.kind != "instance"

    @property
    def is_accessor(self) -> bool:
        return self.api_kind in ("getter", "setter", "subscript_getter", "subscript_setter")


@dataclass(eq=False)
class ImportedEnumCase:
    """An enum case and the static factory that constructs it."""

    name: str
    params: list[SwiftParam]
    enum: ImportedNominal
    case_function: ImportedFunc
    source: str = ""

    @property
    def key(self) -> str:
        return self.enum.decl.qualified_name + ".case." + self.name


@dataclass(eq=False)
class ImportedNominal:
    """A struct, class, enum, actor or protocol declared by the module."""

    decl: NominalDecl
    initializers: list[ImportedFunc] = field(default_factory=list)
    methods: list[ImportedFunc] = field(default_factory=list)
    variables: list[ImportedFunc] = field(default_factory=list)
    cases: list[ImportedEnumCase] = field(default_factory=list)
    inherited: list[str] = field(default_factory=list)
    generic_params: list[str] = field(default_factory=list)
    line: int = 0

    @property
    def swift_type(self) -> Nominal:
        return Nominal(self.decl)

    def members(self) -> list[ImportedFunc]:
        return self.initializers + self.methods + self.variables


@dataclass
class ImportedModule:
    """Everything the frontend imported from one Swift module."""

    name: str
    functions: list[ImportedFunc] = field(default_factory=list)
    variables: list[ImportedFunc] = field(default_factory=list)
    types: dict[str, ImportedNominal] = field(default_factory=dict)
    skipped: list[tuple[str, str, int]] = field(default_factory=list)
    filename: str | None = None
