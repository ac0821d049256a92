"""Java types of the generated bindings, and their JNI projections.

| Java      | Descriptor      | JNI C type    | Call<Kind>MethodA |
|-----------|-----------------|---------------|-------------------|
| boolean   | Z               | jboolean      | Boolean           |
| byte      | B               | jbyte         | Byte              |
| char      | C               | jchar         | Char              |
| short     | S               | jshort        | Short             |
| int       | I               | jint          | Int               |
| long      | J               | jlong         | Long              |
| float     | F               | jfloat        | Float             |
| double    | D               | jdouble       | Double            |
| void      | V               | (none)        | Void              |
| T[]       | [T              | jTArray?      | Object            |
| String    | Ljava/lang/String; | jstring?   | Object            |
| any class | Lpkg/Outer$Inner; | jobject?    | Object            |
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InternalError
from ..ir import Primitive
from .util import upper_first


@dataclass(unsafe_hash=True)
class JavaType:
    """Base for Java types."""


@dataclass(unsafe_hash=True)
class JavaPrimitive(JavaType):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(unsafe_hash=True)
class JavaClass(JavaType):
    """A class or interface type.

    name is how the type is spelled in generated source (simple name for
    imported classes, nested names joined with '.'); package is only needed
    for descriptors.
    """

    name: str
    package: str | None = None
    type_args: tuple[JavaType, ...] = ()

    def __str__(self) -> str:
        if not self.type_args:
            return self.name
        return self.name + "<" + ", ".join(str(a) for a in self.type_args) + ">"

    @property
    def fqn(self) -> str:
        if self.package is None:
            return self.name
        return self.package + "." + self.name


@dataclass(unsafe_hash=True)
class JavaArray(JavaType):
    element: JavaType

    def __str__(self) -> str:
        return str(self.element) + "[]"


@dataclass
class JavaParameter:
    """A parameter of a generated Java method."""

    name: str
    type: JavaType
    annotations: tuple[str, ...] = ()

    def render(self) -> str:
        prefix = "".join(a + " " for a in self.annotations)
        return prefix + str(self.type) + " " + self.name


BOOLEAN = JavaPrimitive("boolean")
BYTE = JavaPrimitive("byte")
CHAR = JavaPrimitive("char")
SHORT = JavaPrimitive("short")
INT = JavaPrimitive("int")
LONG = JavaPrimitive("long")
FLOAT = JavaPrimitive("float")
DOUBLE = JavaPrimitive("double")
VOID = JavaPrimitive("void")

STRING = JavaClass("String", "java.lang")
MEMORY_SEGMENT = JavaClass("MemorySegment", "java.lang.foreign")
SWIFT_ARENA = JavaClass("SwiftArena", "org.swift.swiftkit.core")
ALLOCATING_SWIFT_ARENA = JavaClass("AllocatingSwiftArena", "org.swift.swiftkit.ffm")
SWIFT_ANY_TYPE = JavaClass("SwiftAnyType", "org.swift.swiftkit.ffm")
OPTIONAL_INT = JavaClass("OptionalInt", "java.util")
OPTIONAL_LONG = JavaClass("OptionalLong", "java.util")
OPTIONAL_DOUBLE = JavaClass("OptionalDouble", "java.util")
UNSIGNED_INTEGER = JavaClass("UnsignedInteger", "com.google.common.primitives")
UNSIGNED_LONG = JavaClass("UnsignedLong", "com.google.common.primitives")

_SWIFT_PRIMITIVES: dict[str, JavaPrimitive] = {
    "bool": BOOLEAN,
    "int8": BYTE,
    "uint8": BYTE,
    "int16": SHORT,
    "uint16": CHAR,
    "int32": INT,
    "uint32": INT,
    "int64": LONG,
    "uint64": LONG,
    "int": LONG,
    "uint": LONG,
    "float": FLOAT,
    "double": DOUBLE,
}


def java_primitive(t: Primitive) -> JavaPrimitive:
    """Java primitive carrying a Swift scalar; unsigned kinds share the signed carrier."""
    return _SWIFT_PRIMITIVES[t.kind]


def optional_of(t: JavaType) -> JavaClass:
    return JavaClass("Optional", "java.util", (boxed(t),))


def completable_future_of(t: JavaType) -> JavaClass:
    return JavaClass("java.util.concurrent.CompletableFuture", None, (boxed(t),))


_BOXED: dict[str, JavaClass] = {
    "boolean": JavaClass("Boolean", "java.lang"),
    "byte": JavaClass("Byte", "java.lang"),
    "char": JavaClass("Character", "java.lang"),
    "short": JavaClass("Short", "java.lang"),
    "int": JavaClass("Integer", "java.lang"),
    "long": JavaClass("Long", "java.lang"),
    "float": JavaClass("Float", "java.lang"),
    "double": JavaClass("Double", "java.lang"),
    "void": JavaClass("Void", "java.lang"),
}

_DESCRIPTORS: dict[str, str] = {
    "boolean": "Z",
    "byte": "B",
    "char": "C",
    "short": "S",
    "int": "I",
    "long": "J",
    "float": "F",
    "double": "D",
    "void": "V",
}


def boxed(t: JavaType) -> JavaType:
    """The reference type of t: Integer for int; classes and arrays unchanged."""
    if isinstance(t, JavaPrimitive):
        return _BOXED[t.name]
    return t


def is_void(t: JavaType) -> bool:
    return t == VOID


def is_primitive(t: JavaType) -> bool:
    return isinstance(t, JavaPrimitive) and t != VOID


def descriptor(t: JavaType) -> str:
    """JVM field descriptor of t."""
    match t:
        case JavaPrimitive(name=name):
            return _DESCRIPTORS[name]
        case JavaArray(element=element):
            return "[" + descriptor(element)
        case JavaClass(name=name, package=None):
            return "L" + name.replace(".", "/") + ";"
        case JavaClass(name=name, package=package):
            path = package.replace(".", "/") + "/" + name.replace(".", "$")
            return "L" + path + ";"
    raise InternalError("unknown Java type " + type(t).__name__)


def method_descriptor(params: list[JavaType], result: JavaType) -> str:
    return "(" + "".join(descriptor(p) for p in params) + ")" + descriptor(result)


def jni_type_name(t: JavaType) -> str:
    """The Swift spelling of the JNI C type carrying t."""
    match t:
        case JavaPrimitive(name=name):
            if name == "void":
                return "Void"
            return "j" + name
        case JavaArray(element=JavaPrimitive(name=name)):
            return "j" + name + "Array?"
        case JavaArray():
            return "jobjectArray?"
        case JavaClass():
            if t.fqn == "java.lang.String":
                return "jstring?"
            return "jobject?"
    raise InternalError("unknown Java type " + type(t).__name__)


def call_method_kind(t: JavaType) -> str:
    """The <Kind> of the JNI Call<Kind>MethodA function returning t."""
    if isinstance(t, JavaPrimitive):
        return upper_first(t.name)
    return "Object"


def placeholder_value(t: JavaType) -> str:
    """Swift value a JNI thunk returns after raising a Java exception."""
    if isinstance(t, JavaPrimitive):
        return jni_type_name(t) + ".jniPlaceholderValue"
    return "nil"
