"""C types of the canonical ABI between Swift thunks and Java bindings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..errors import UnsupportedType
from ..ir import FunctionType, Nominal, OptionalType, Primitive, SwiftType, TupleType


@dataclass(unsafe_hash=True)
class CType:
    """Base for C types."""


@dataclass(unsafe_hash=True)
class CVoid(CType):
    def __str__(self) -> str:
        return "void"


IntegralKind = Literal["bool", "signed", "unsigned", "ptrdiff_t", "size_t"]


@dataclass(unsafe_hash=True)
class CIntegral(CType):
    """Integer types. bits is 8, 16, 32 or 64 for signed/unsigned, 0 otherwise."""

    kind: IntegralKind
    bits: int = 0

    def __str__(self) -> str:
        match self.kind:
            case "bool":
                return "bool"
            case "signed":
                return "int" + str(self.bits) + "_t"
            case "unsigned":
                return "uint" + str(self.bits) + "_t"
            case "ptrdiff_t" | "size_t":
                return self.kind
        raise UnsupportedType("unknown C integral kind", self.kind)


@dataclass(unsafe_hash=True)
class CFloating(CType):
    kind: Literal["float", "double"]

    def __str__(self) -> str:
        return self.kind


@dataclass(unsafe_hash=True)
class CPointer(CType):
    pointee: CType

    def __str__(self) -> str:
        return c_declaration(self, "")


@dataclass(unsafe_hash=True)
class CFunctionType(CType):
    result: CType
    params: tuple[CType, ...] = ()
    variadic: bool = False

    def __str__(self) -> str:
        return c_declaration(self, "")


@dataclass(unsafe_hash=True)
class CQualified(CType):
    """const and/or volatile qualified type."""

    inner: CType
    const: bool = False
    volatile: bool = False

    def __str__(self) -> str:
        return c_declaration(self, "")


VOID = CVoid()
C_BOOL = CIntegral("bool")
PTRDIFF_T = CIntegral("ptrdiff_t")
SIZE_T = CIntegral("size_t")


def const_void_pointer() -> CPointer:
    return CPointer(CQualified(VOID, const=True))


def void_pointer() -> CPointer:
    return CPointer(VOID)


# ============================================================
# RENDERING
# ============================================================


def _params_text(params: tuple[CType, ...], names: list[str] | None, variadic: bool) -> str:
    if not params and not variadic:
        return "void"
    parts: list[str] = []
    for i, p in enumerate(params):
        name = names[i] if names is not None else ""
        parts.append(c_declaration(parameter_decay(p), name))
    if variadic:
        parts.append("...")
    return ", ".join(parts)


def c_declaration(t: CType, name: str, param_names: list[str] | None = None) -> str:
    """Render a C declarator: `const void *self`, `void (*cb)(int32_t)`."""
    match t:
        case CVoid() | CIntegral() | CFloating():
            return str(t) if not name else str(t) + " " + name
        case CQualified(inner=inner, const=const, volatile=volatile):
            quals = ""
            if const:
                quals += "const "
            if volatile:
                quals += "volatile "
            if isinstance(inner, (CVoid, CIntegral, CFloating)):
                return quals + c_declaration(inner, name)
            return c_declaration(inner, (quals + name).strip())
        case CPointer(pointee=CFunctionType() as fn):
            return (
                c_declaration(fn.result, "")
                + " (*"
                + name
                + ")("
                + _params_text(fn.params, param_names, fn.variadic)
                + ")"
            )
        case CPointer(pointee=pointee):
            return c_declaration(pointee, "*" + name)
        case CFunctionType(result=result, params=params, variadic=variadic):
            return c_declaration(result, "") + " " + name + "(" + _params_text(params, param_names, variadic) + ")"
    raise UnsupportedType("cannot render C type", t)


def parameter_decay(t: CType) -> CType:
    """Function types passed as parameters decay to function pointers."""
    if isinstance(t, CFunctionType):
        return CPointer(t)
    return t


# ============================================================
# SWIFT TO C
# ============================================================

_INTEGRAL_BY_KIND: dict[str, CType] = {
    "bool": C_BOOL,
    "int": PTRDIFF_T,
    "uint": SIZE_T,
    "int8": CIntegral("signed", 8),
    "uint8": CIntegral("unsigned", 8),
    "int16": CIntegral("signed", 16),
    "uint16": CIntegral("unsigned", 16),
    "int32": CIntegral("signed", 32),
    "uint32": CIntegral("unsigned", 32),
    "int64": CIntegral("signed", 64),
    "uint64": CIntegral("unsigned", 64),
    "float": CFloating("float"),
    "double": CFloating("double"),
}


def ctype_from_swift(t: SwiftType) -> CType:
    """The C type a Swift type maps to one-to-one, or UnsupportedType."""
    match t:
        case Primitive(kind=kind):
            return _INTEGRAL_BY_KIND[kind]
        case TupleType(elements=()):
            return VOID
        case Nominal(decl=decl, generic_args=args):
            match decl.known:
                case "unsafe_raw_pointer":
                    return const_void_pointer()
                case "unsafe_mutable_raw_pointer":
                    return void_pointer()
                case "unsafe_pointer":
                    return CPointer(CQualified(ctype_from_swift(args[0]), const=True))
                case "unsafe_mutable_pointer":
                    return CPointer(ctype_from_swift(args[0]))
            raise UnsupportedType("no C equivalent", t)
        case FunctionType(convention="c", params=params, result=result):
            return CFunctionType(
                ctype_from_swift(result),
                tuple(ctype_from_swift(p.type) for p in params),
            )
        case OptionalType(wrapped=wrapped):
            inner = ctype_from_swift(wrapped)
            if isinstance(inner, (CPointer, CFunctionType)):
                return inner
            raise UnsupportedType("no C equivalent", t)
    raise UnsupportedType("no C equivalent", t)


def has_ctype(t: SwiftType) -> bool:
    try:
        ctype_from_swift(t)
    except UnsupportedType:
        return False
    return True


@dataclass
class CParameter:
    name: str
    type: CType


@dataclass
class CFunction:
    """A C function declaration echoed into Java documentation."""

    name: str
    result: CType
    params: list[CParameter]
    variadic: bool = False

    def __str__(self) -> str:
        fn = CFunctionType(self.result, tuple(p.type for p in self.params), self.variadic)
        return c_declaration(fn, self.name, [p.name for p in self.params])
