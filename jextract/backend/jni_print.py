"""Java and Swift source printing for the jni backend."""

from __future__ import annotations

from ..context import GenerationContext
from ..errors import InternalError
from ..ir import ImportedNominal
from ..middleend.thunks import call_expression, swift_callee_argument
from . import javasteps, nativesteps
from .javatypes import (
    INT,
    LONG,
    STRING,
    VOID,
    JavaParameter,
    JavaType,
    is_primitive,
    is_void,
    jni_type_name,
    placeholder_value,
)
from .jni import (
    NativeResult,
    TranslatedEnumCase,
    TranslatedFunctionDecl,
    TranslatedFunctionType,
)
from .nativesteps import ExtractSwiftValue, NPlaceholder
from .naming import jni_native_name
from .util import EmitContext, Emitter, escape_string, print_doc

DEFAULT_JAVA_IMPORTS: tuple[str, ...] = (
    "org.swift.swiftkit.core.*",
    "org.swift.swiftkit.core.util.*",
    "org.swift.swiftkit.core.annotations.*",
    "java.util.*",
    "java.util.concurrent.atomic.AtomicBoolean",
)

THUNK_PARAMETERS: tuple[str, ...] = ("environment: UnsafeMutablePointer<JNIEnv?>!", "thisClass: jclass")

AUTO_ARENA = "SwiftMemoryManagement.DEFAULT_SWIFT_JAVA_AUTO_ARENA"


def print_java_header(em: Emitter, ctx: GenerationContext) -> None:
    em.line("// Generated by jextract-swift")
    em.line("// Swift module: " + ctx.module.name)
    em.line()
    em.line("package " + ctx.config.java_package + ";")
    em.line()
    for i in DEFAULT_JAVA_IMPORTS:
        em.line("import " + i + ";")
    em.line()


def print_swift_header(em: Emitter, ctx: GenerationContext) -> None:
    em.line("// Generated by jextract-swift")
    em.line("// Swift module: " + ctx.module.name)
    em.line()
    em.line("import SwiftJava")
    em.line("import SwiftJavaRuntimeSupport")
    em.line()


def constant_name(name: str) -> str:
    """`someCase` -> `SOME_CASE`."""
    out: list[str] = []
    for i, ch in enumerate(name):
        if ch.isupper() and i > 0 and not name[i - 1].isupper():
            out.append("_")
        out.append(ch.upper())
    return "".join(out)


# ============================================================
# MODULE CLASS
# ============================================================


def print_module_class(ctx: GenerationContext, functions: list[TranslatedFunctionDecl]) -> str:
    em = Emitter()
    print_java_header(em, ctx)
    name = ctx.module_class
    em.open("public final class " + name)
    em.line('static final String LIB_NAME = "' + ctx.module.name + '";')
    em.line()
    em.open("static")
    em.line("System.loadLibrary(SwiftLibraries.LIB_NAME_SWIFT_JAVA);")
    em.line("System.loadLibrary(LIB_NAME);")
    em.close()
    em.line()
    em.open("private " + name + "()")
    em.line("// Should not be called directly")
    em.close()
    for translated in functions:
        em.line()
        print_function(em, ctx, translated)
    em.close()
    return em.output() + "\n"


# ============================================================
# NOMINAL TYPES
# ============================================================


def print_nominal_file(
    ctx: GenerationContext,
    nominal: ImportedNominal,
    members: dict[str, list[TranslatedFunctionDecl]],
) -> str:
    """The Java file of a top-level type; nested types print as nested classes."""
    em = Emitter()
    print_java_header(em, ctx)
    if nominal.decl.kind == "protocol":
        print_protocol_interface(em, ctx, nominal, members)
    else:
        print_nominal_class(em, ctx, nominal, members)
    return em.output() + "\n"


def print_protocol_interface(
    em: Emitter,
    ctx: GenerationContext,
    nominal: ImportedNominal,
    members: dict[str, list[TranslatedFunctionDecl]],
) -> None:
    em.open("public interface " + nominal.decl.name + " extends JNISwiftInstance")
    for i, translated in enumerate(members.get(nominal.decl.qualified_name, [])):
        if i > 0:
            em.line()
        if translated.function_types:
            print_function_types(em, translated)
            em.line()
        sig = translated.translated_signature
        for annotation in sig.result.annotations:
            em.line(annotation)
        em.line(str(sig.result.java_type) + " " + translated.name + "(" + ", ".join(_wrapper_parameters(translated)) + ");")
    em.close()


def _conformances(ctx: GenerationContext, nominal: ImportedNominal) -> list[str]:
    found: list[str] = []
    for name in nominal.inherited:
        imported = ctx.module.types.get(name)
        if imported is not None and imported.decl.kind == "protocol":
            found.append(ctx.java_class_name(imported.decl))
    return found


def print_nominal_class(
    em: Emitter,
    ctx: GenerationContext,
    nominal: ImportedNominal,
    members: dict[str, list[TranslatedFunctionDecl]],
) -> None:
    decl = nominal.decl
    name = decl.name
    modifiers = "public static final" if decl.parent is not None else "public final"
    implements = ", ".join(["JNISwiftInstance"] + _conformances(ctx, nominal))
    em.open(modifiers + " class " + name + " implements " + implements)
    em.line('static final String LIB_NAME = "' + ctx.module.name + '";')
    em.line()
    em.line('@SuppressWarnings("unused")')
    em.line("private static final boolean INITIALIZED_LIBS = initializeLibs();")
    em.open("static boolean initializeLibs()")
    em.line("System.loadLibrary(SwiftLibraries.LIB_NAME_SWIFT_JAVA);")
    em.line("System.loadLibrary(LIB_NAME);")
    em.line("return true;")
    em.close()
    em.line()
    em.line("private final long selfPointer;")
    em.line("private final AtomicBoolean $state$destroyed = new AtomicBoolean(false);")
    em.line()
    em.open("private " + name + "(long selfPointer, SwiftArena swiftArena)")
    em.line('SwiftObjects.requireNonZero(selfPointer, "selfPointer");')
    em.line("this.selfPointer = selfPointer;")
    em.line("swiftArena.register(this);")
    em.close()
    em.line()
    print_doc(
        em,
        "java",
        "long address = ...;\n" + name + " value = " + name + ".wrapMemoryAddressUnsafe(address, arena);",
        "Wraps an existing Swift value at the given address; the arena takes ownership of it.",
    )
    em.open("public static " + name + " wrapMemoryAddressUnsafe(long selfPointer, SwiftArena swiftArena)")
    em.line("return new " + name + "(selfPointer, swiftArena);")
    em.close()
    if ctx.config.allows_global_automatic:
        em.line()
        em.open("public static " + name + " wrapMemoryAddressUnsafe(long selfPointer)")
        em.line("return new " + name + "(selfPointer, " + AUTO_ARENA + ");")
        em.close()
    em.line()
    em.line("@Override")
    em.open("public long $memoryAddress()")
    em.line("return this.selfPointer;")
    em.close()
    em.line()
    em.line("@Override")
    em.open("public AtomicBoolean $statusDestroyedFlag()")
    em.line("return $state$destroyed;")
    em.close()
    em.line()
    em.line("@Override")
    em.open("public long $typeMetadataAddress()")
    em.line("return " + name + ".$typeMetadataAddressDowncall();")
    em.close()
    em.line("private static native long $typeMetadataAddressDowncall();")
    if decl.kind == "enum":
        em.line()
        print_enum_cases(em, ctx, nominal)
    for translated in members.get(decl.qualified_name, []):
        em.line()
        print_function(em, ctx, translated)
    for nested in ctx.module.types.values():
        if nested.decl.parent == decl.qualified_name and nested.decl.kind != "protocol":
            em.line()
            print_nominal_class(em, ctx, nested, members)
    em.line()
    em.line("@Override")
    em.open("public String toString()")
    em.line('return getClass().getSimpleName() + "(" + ' + name + ".$toString(this.$memoryAddress()) + \")\";")
    em.close()
    em.line("private static native java.lang.String $toString(long selfPointer);")
    em.line()
    em.line("private static native void $destroy(long selfPointer);")
    em.line()
    em.line("@Override")
    em.open("public Runnable $createDestroyFunction()")
    em.line("long self$ = this.$memoryAddress();")
    em.open("if (CallTraces.TRACE_DOWNCALLS)")
    em.line('CallTraces.traceDowncall("' + name + '.$destroy", "this", this, "self", self$);')
    em.close()
    em.open("return new Runnable()")
    em.line("@Override")
    em.open("public void run()")
    em.open("if (CallTraces.TRACE_DOWNCALLS)")
    em.line('CallTraces.traceDowncall("' + name + '.$destroy", "self", self$);')
    em.close()
    em.line(name + ".$destroy(self$);")
    em.close()
    em.close("};")
    em.close()
    em.close()


def print_enum_cases(em: Emitter, ctx: GenerationContext, nominal: ImportedNominal) -> None:
    """Discriminator enum, and a record with a getAs accessor per translated case."""
    name = nominal.decl.name
    em.open("public enum Discriminator")
    for i, case in enumerate(nominal.cases):
        em.line(constant_name(case.name) + ("," if i < len(nominal.cases) - 1 else ""))
    em.close()
    em.line()
    em.open("public Discriminator getDiscriminator()")
    em.line("return Discriminator.values()[" + name + ".$getDiscriminator(this.$memoryAddress())];")
    em.close()
    em.line("private static native int $getDiscriminator(long selfPointer);")
    for case in nominal.cases:
        translated = ctx.translated_enum_cases.get(case.key)
        if not isinstance(translated, TranslatedEnumCase):
            continue
        em.line()
        print_enum_case(em, nominal, translated)


def print_enum_case(em: Emitter, nominal: ImportedNominal, translated: TranslatedEnumCase) -> None:
    name = nominal.decl.name
    record = translated.record_name
    components = ", ".join(str(v.result.java_type) + " " + v.name for v in translated.values)
    em.line("public record " + record + "(" + components + ") {}")
    em.line()
    arena = "SwiftArena swiftArena$" if translated.requires_swift_arena else ""
    em.open("public Optional<" + record + "> " + translated.getter_name + "(" + arena + ")")
    em.open("if (getDiscriminator() != Discriminator." + constant_name(translated.case.name) + ")")
    em.line("return Optional.empty();")
    em.close()
    body = EmitContext()
    body.indent = em.indent
    values: list[str] = []
    for v in translated.values:
        call = name + "." + v.native_name + "(this.$memoryAddress())"
        value = javasteps.render(v.result.conversion, body, call)
        if value is None:
            raise InternalError("enum case value conversion produced no value")
        values.append(value)
    em.lines.extend(body.lines)
    em.line("return Optional.of(new " + record + "(" + ", ".join(values) + "));")
    em.close()
    for v in translated.values:
        em.line("private static native " + str(v.native_result.java_type) + " " + v.native_name + "(long selfPointer);")


# ============================================================
# FUNCTIONS
# ============================================================


def print_function(em: Emitter, ctx: GenerationContext, translated: TranslatedFunctionDecl) -> None:
    """Closure interfaces, wrapper method and native method of one declaration."""
    if translated.function_types:
        print_function_types(em, translated)
        em.line()
    print_wrapper_method(em, ctx, translated)
    em.line()
    print_native_method(em, translated)


def print_function_types(em: Emitter, translated: TranslatedFunctionDecl) -> None:
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name)
    em.open("public static class " + translated.holder_name)
    for i, ft in enumerate(translated.function_types):
        if i > 0:
            em.line()
        _print_function_type(em, ft)
    em.close()


def _print_function_type(em: Emitter, ft: TranslatedFunctionType) -> None:
    em.line("@FunctionalInterface")
    em.open("public interface " + ft.name)
    em.line(str(ft.result_type) + " apply(" + ", ".join(p.render() for p in ft.parameters) + ");")
    em.close()


def _wrapper_parameters(translated: TranslatedFunctionDecl) -> list[str]:
    sig = translated.translated_signature
    params = [p.parameter.render() for p in sig.parameters]
    if sig.requires_swift_arena:
        params.append("SwiftArena swiftArena$")
    return params


def print_wrapper_method(em: Emitter, ctx: GenerationContext, translated: TranslatedFunctionDecl) -> None:
    sig = translated.translated_signature
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name, "Downcall to Swift:")
    static = "static " if translated.is_static else ""
    for annotation in sig.result.annotations:
        em.line(annotation)
    em.open(
        "public "
        + static
        + str(sig.result.java_type)
        + " "
        + translated.name
        + "("
        + ", ".join(_wrapper_parameters(translated))
        + ")"
    )
    body = EmitContext()
    body.indent = em.indent
    _print_native_call(body, translated)
    em.lines.extend(body.lines)
    em.close()
    if sig.requires_swift_arena and ctx.config.allows_global_automatic:
        em.line()
        print_global_arena_overload(em, translated)


def _print_native_call(body: EmitContext, translated: TranslatedFunctionDecl) -> None:
    sig = translated.translated_signature
    args: list[str] = []
    for p in sig.parameters:
        value = javasteps.render(p.conversion, body, p.parameter.name)
        if value is None:
            raise InternalError("parameter conversion produced no value")
        args.append(value)
    if sig.self_parameter is not None:
        value = javasteps.render(sig.self_parameter.conversion, body, "this")
        if value is None:
            raise InternalError("self conversion produced no value")
        args.append(value)
    for out in sig.result.out_parameters:
        body.emit(str(out.java_type) + " " + out.name + " = " + out.initializer + ";")
        args.append(out.name)
    call = translated.owner + "." + translated.native_name + "(" + ", ".join(args) + ")"
    value = javasteps.render(sig.result.conversion, body, call)
    if value is None:
        return
    if is_void(sig.result.java_type):
        body.emit(value + ";")
    else:
        body.emit("return " + value + ";")


def print_native_method(em: Emitter, translated: TranslatedFunctionDecl) -> None:
    native = translated.native_signature
    if native is None:
        raise InternalError("protocol requirement " + translated.decl.qualified_name + " has no native method")
    params = ", ".join(p.render() for p in native.all_parameters)
    em.line(
        "private static native " + str(native.result.java_type) + " " + translated.native_name + "(" + params + ");"
    )


def print_global_arena_overload(em: Emitter, translated: TranslatedFunctionDecl) -> None:
    """Overload that registers results with the automatic arena."""
    sig = translated.translated_signature
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name, "Downcall to Swift:")
    static = "static " if translated.is_static else ""
    params = [p.parameter for p in sig.parameters]
    em.open(
        "public "
        + static
        + str(sig.result.java_type)
        + " "
        + translated.name
        + "("
        + ", ".join(p.render() for p in params)
        + ")"
    )
    args = [p.name for p in params] + [AUTO_ARENA]
    prefix = "" if is_void(sig.result.java_type) else "return "
    em.line(prefix + translated.name + "(" + ", ".join(args) + ");")
    em.close()


# ============================================================
# SWIFT THUNKS
# ============================================================


def print_swift_thunks(
    ctx: GenerationContext,
    functions: list[TranslatedFunctionDecl],
    nominals: list[ImportedNominal] | None = None,
) -> str:
    """Native method implementations: per-type support functions, then declarations."""
    em = Emitter()
    print_swift_header(em, ctx)
    for nominal in nominals or []:
        print_nominal_thunks(em, ctx, nominal)
    for translated in functions:
        print_function_thunk(em, ctx, translated)
        em.line()
    return em.output().rstrip("\n") + "\n"


def _thunk(em: Emitter, symbol: str, params: list[JavaParameter], result_type: JavaType, body: EmitContext) -> None:
    signature = ", ".join(list(THUNK_PARAMETERS) + [p.name + ": " + jni_type_name(p.type) for p in params])
    header = "public func " + symbol + "(" + signature + ")"
    if not is_void(result_type):
        header += " -> " + jni_type_name(result_type)
    em.line('@_cdecl("' + symbol + '")')
    em.line(header + " {")
    em.lines.extend(body.lines)
    em.line("}")


def _self_pointer(nominal: ImportedNominal, body: EmitContext) -> str:
    value = nativesteps.render(ExtractSwiftValue(NPlaceholder(), nominal.swift_type), body, "selfPointer")
    if value is None:
        raise InternalError("self extraction produced no value")
    return value


def _native_symbol(ctx: GenerationContext, nominal: ImportedNominal, method: str, params: list[JavaType]) -> str:
    return jni_native_name(ctx.config.java_package, ctx.java_class_name(nominal.decl), method, params)


def print_nominal_thunks(em: Emitter, ctx: GenerationContext, nominal: ImportedNominal) -> None:
    """$typeMetadataAddressDowncall, $toString, $destroy and enum case accessors."""
    self_param = [JavaParameter("selfPointer", LONG)]
    qualified = nominal.decl.qualified_name

    body = _body()
    body.emit("return unsafeBitCast(" + qualified + ".self, to: Int64.self).getJNIValue(in: environment)")
    _thunk(em, _native_symbol(ctx, nominal, "$typeMetadataAddressDowncall", []), [], LONG, body)
    em.line()

    body = _body()
    pointer = _self_pointer(nominal, body)
    body.emit("return String(describing: " + pointer + ".pointee).getJNIValue(in: environment)")
    _thunk(em, _native_symbol(ctx, nominal, "$toString", [LONG]), self_param, STRING, body)
    em.line()

    body = _body()
    pointer = _self_pointer(nominal, body)
    body.emit(pointer + ".deinitialize(count: 1)")
    body.emit(pointer + ".deallocate()")
    _thunk(em, _native_symbol(ctx, nominal, "$destroy", [LONG]), self_param, VOID, body)
    em.line()

    if nominal.decl.kind != "enum":
        return
    body = _body()
    pointer = _self_pointer(nominal, body)
    if nominal.cases:
        body.emit("switch " + pointer + ".pointee {")
        for i, case in enumerate(nominal.cases):
            body.emit("case ." + case.name + ": return " + str(i))
        body.emit("}")
    else:
        body.emit('fatalError("enum ' + qualified + ' has no cases")')
    _thunk(em, _native_symbol(ctx, nominal, "$getDiscriminator", [LONG]), self_param, INT, body)
    em.line()
    for case in nominal.cases:
        translated = ctx.translated_enum_cases.get(case.key)
        if not isinstance(translated, TranslatedEnumCase):
            continue
        for i, v in enumerate(translated.values):
            body = _body()
            pointer = _self_pointer(nominal, body)
            bindings = ["_"] * len(translated.values)
            bindings[i] = "caseValue$"
            body.open("guard case let ." + case.name + "(" + ", ".join(bindings) + ") = " + pointer + ".pointee else")
            body.emit(
                'fatalError("Expected enum case \''
                + escape_string(case.name)
                + "', but was '\\("
                + pointer
                + ".pointee)'!\")"
            )
            body.close()
            _emit_result(body, nativesteps.render(v.native_result.conversion, body, "caseValue$"), v.native_result.java_type)
            _thunk(em, v.symbol, self_param, v.native_result.java_type, body)
            em.line()


def _body() -> EmitContext:
    """Statement buffer for a top-level Swift function body."""
    body = EmitContext()
    body.indent = 1
    return body


def _emit_result(body: EmitContext, value: str | None, result_type: JavaType) -> None:
    if value is None:
        return
    if is_void(result_type):
        body.emit(value)
    else:
        body.emit("return " + value)


def print_function_thunk(em: Emitter, ctx: GenerationContext, translated: TranslatedFunctionDecl) -> None:
    native = translated.native_signature
    if native is None:
        raise InternalError("protocol requirement " + translated.decl.qualified_name + " has no native thunk")
    decl = translated.decl
    body = _body()
    args: list[str] = []
    for param, np in zip(decl.signature.params, native.parameters):
        value = nativesteps.render(np.conversion, body, np.name)
        if value is None:
            raise InternalError("parameter conversion produced no value")
        inout = param.convention == "inout"
        if decl.signature.is_async and not inout and not _is_plain_name(value):
            # The Task body runs after the native method returns; its local references are gone by then.
            body.emit("let " + np.name + "Argument$ = " + value)
            value = np.name + "Argument$"
        args.append(swift_callee_argument(param.label, value, inout))
    owner: str | None = None
    if native.self_parameter is not None:
        owner = nativesteps.render(native.self_parameter.conversion, body, native.self_parameter.name)
    call = call_expression(decl, owner, args)
    if decl.signature.is_async:
        _print_async_body(body, native.result, call, decl.signature.is_throws)
    elif decl.signature.is_throws:
        _print_throwing_body(body, native.result, call)
    else:
        _emit_result(body, nativesteps.render(native.result.conversion, body, call), native.result.java_type)
    _thunk(em, translated.symbol, native.all_parameters, native.result.java_type, body)


def _is_plain_name(value: str) -> bool:
    return value != "" and all(c.isalnum() or c in "_$" for c in value)


def _print_throwing_body(body: EmitContext, result: NativeResult, call: str) -> None:
    body.open("do")
    if is_void(result.java_type):
        body.emit("try " + call)
    else:
        body.emit("let swiftResult$ = try " + call)
        _emit_result(body, nativesteps.render(result.conversion, body, "swiftResult$"), result.java_type)
    body.indent -= 1
    body.open("} catch")
    body.emit("environment.throwAsException(error)")
    if not is_void(result.java_type):
        body.emit("return " + placeholder_value(result.java_type))
    body.close()


def _print_async_body(body: EmitContext, result: NativeResult, call: str, throws: bool) -> None:
    """Complete the Java future from a Task, exactly once, then release it."""
    completion = result.completion_type
    if completion is None:
        raise InternalError("async result without a completion type")
    body.emit("let globalFuture = environment.interface.NewGlobalRef(environment, result_future)")
    body.open("Task")
    body.emit("let environment = try! JavaVirtualMachine.shared().environment()")
    body.open("defer")
    body.emit("environment.interface.DeleteGlobalRef(environment, globalFuture)")
    body.close()
    effect = "try await " if throws else "await "
    if throws:
        body.open("do")
    if is_void(completion):
        body.emit(effect + call)
        boxed = "nil"
    else:
        body.emit("let swiftResult$ = " + effect + call)
        value = nativesteps.render(result.conversion, body, "swiftResult$")
        if value is None:
            raise InternalError("async result conversion produced no value")
        if is_primitive(completion):
            value = "SwiftJavaRuntimeSupport._JNIBoxedConversions.box(" + value + ", in: environment)"
        body.emit("let boxedResult$ = " + value)
        boxed = "boxedResult$"
    body.emit(
        "_ = environment.interface.CallBooleanMethodA(environment, globalFuture, "
        + "_JNIMethodIDCache.CompletableFuture.complete, [jvalue(l: "
        + boxed
        + ")])"
    )
    if throws:
        body.indent -= 1
        body.open("} catch")
        body.emit(
            "let exception = environment.interface.NewObjectA(environment, "
            + "_JNIMethodIDCache.Exception.class, _JNIMethodIDCache.Exception.constructWithMessage, "
            + "[String(describing: error).getJValue(in: environment)])"
        )
        body.emit(
            "_ = environment.interface.CallBooleanMethodA(environment, globalFuture, "
            + "_JNIMethodIDCache.CompletableFuture.completeExceptionally, [jvalue(l: exception)])"
        )
        body.close()
    body.close()
