"""Symbol naming: cdecl thunk names, JNI exported names, Java member names.

Thunk names are part of the contract between the generated Swift and Java
sources and must be byte-for-byte reproducible for identical input.
"""

from __future__ import annotations

from ..ir import ImportedFunc, ImportedNominal, Primitive, SwiftType
from .javatypes import JavaType, descriptor, method_descriptor
from .util import java_safe_name, upper_first


class ThunkNameRegistry:
    """Assigns one unique @_cdecl name per declaration for a generation run.

    The first declaration computing a base name keeps it; later ones get
    `$1`, `$2`, ... in first-seen order. Suffixes are never reused.
    """

    def __init__(self, prefix: str = "swiftjava") -> None:
        self.prefix: str = prefix
        self.registry: dict[str, str] = {}
        self.duplicate_names: dict[str, int] = {}
        self.suffixes: dict[str, str] = {}

    def function_thunk_name(self, decl: ImportedFunc) -> str:
        existing = self.registry.get(decl.key)
        if existing is not None:
            return existing
        match decl.api_kind:
            case "getter" | "subscript_getter":
                suffix = "$get"
            case "setter" | "subscript_setter":
                suffix = "$set"
            case _:
                suffix = "".join("_" + (p.label or "_") for p in decl.signature.params)
        base = self.prefix + "_" + decl.module + "_"
        if decl.parent is not None:
            base += decl.parent.decl.qualified_name.replace(".", "_") + "_"
        base += decl.name + suffix
        emitted = self.duplicate_names.get(base, 0)
        self.duplicate_names[base] = emitted + 1
        suffix = "" if emitted == 0 else "$" + str(emitted)
        self.suffixes[decl.key] = suffix
        self.registry[decl.key] = base + suffix
        return base + suffix

    def duplicate_suffix(self, decl: ImportedFunc) -> str:
        """The `$N` suffix decl received, or "" for the first of its base name."""
        self.function_thunk_name(decl)
        return self.suffixes[decl.key]

    def type_metadata_thunk_name(self, nominal: ImportedNominal) -> str:
        return (
            self.prefix
            + "_getType_"
            + nominal.decl.module
            + "_"
            + nominal.decl.qualified_name.replace(".", "_")
        )


# ============================================================
# JNI NAME MANGLING
# ============================================================


def jni_escape(name: str) -> str:
    """Escape a name into the JNI symbol alphabet.

    | Character        | Escape   |
    |------------------|----------|
    | `_`              | `_1`     |
    | `;`              | `_2`     |
    | `[`              | `_3`     |
    | `/` and `.`      | `_`      |
    | other non-alnum  | `_0xxxx` |
    """
    out: list[str] = []
    for ch in name:
        if ch.isascii() and ch.isalnum():
            out.append(ch)
        elif ch == "_":
            out.append("_1")
        elif ch == ";":
            out.append("_2")
        elif ch == "[":
            out.append("_3")
        elif ch in "/.":
            out.append("_")
        else:
            out.append("_0" + format(ord(ch), "04x"))
    return "".join(out)


def jni_native_name(package: str, owner: str, method: str, params: list[JavaType]) -> str:
    """Exported symbol of the native method `method` of class `owner`.

    The long form with an escaped argument signature is always used, so
    overloaded native methods never collide.
    """
    parts = [jni_escape(p) for p in package.split(".")] if package else []
    parts.append(jni_escape(owner.replace(".", "$")))
    parts.append(jni_escape(method))
    signature = "".join(descriptor(p) for p in params)
    return "Java_" + "_".join(parts) + "__" + jni_escape(signature)


def jni_method_descriptor(params: list[JavaType], result: JavaType) -> str:
    """JVM method descriptor, as passed to GetMethodID."""
    return method_descriptor(params, result)


# ============================================================
# JAVA MEMBER NAMES
# ============================================================


def getter_name(name: str, value_type: SwiftType) -> str:
    """`getX`, or `isX` for Bool properties (kept as-is when already `isX`)."""
    if isinstance(value_type, Primitive) and value_type.kind == "bool":
        if name.startswith("is") and len(name) > 2 and name[2].isupper():
            return name
        return "is" + upper_first(name)
    return "get" + upper_first(name)


def setter_name(name: str) -> str:
    return "set" + upper_first(name)


def java_method_name(decl: ImportedFunc) -> str:
    """User-facing Java method name of decl."""
    match decl.api_kind:
        case "getter":
            return getter_name(decl.name, decl.signature.result)
        case "setter":
            return setter_name(decl.name)
        case "subscript_getter":
            return "getSubscript"
        case "subscript_setter":
            return "setSubscript"
        case "initializer":
            return "init"
        case _:
            return java_safe_name(decl.name)


def native_method_name(java_name: str) -> str:
    return "$" + java_name


def java_parameter_name(name: str | None, index: int) -> str:
    if name is None or name == "_":
        return "_" + str(index)
    return java_safe_name(name)
