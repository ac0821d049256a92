"""Java and Swift source printing for the ffm backend."""

from __future__ import annotations

from ..context import GenerationContext
from ..errors import InternalError
from ..ir import ImportedNominal
from ..middleend.lowering import parameter_name
from ..middleend.thunks import cdecl_thunk
from .ffm import (
    POINTER_LAYOUT,
    TranslatedFunctionDecl,
    TranslatedFunctionType,
    cdecl_java_type,
    cdecl_parameters,
    value_layout,
)
from .javasteps import render
from .javatypes import ALLOCATING_SWIFT_ARENA, MEMORY_SEGMENT, VOID, JavaParameter, JavaType, is_void
from .naming import java_parameter_name
from .util import EmitContext, Emitter, print_doc

DEFAULT_JAVA_IMPORTS: tuple[str, ...] = (
    "org.swift.swiftkit.core.*",
    "org.swift.swiftkit.core.util.*",
    "org.swift.swiftkit.ffm.*",
    "org.swift.swiftkit.core.annotations.*",
    "java.lang.foreign.*",
    "java.lang.invoke.*",
    "java.util.*",
    "java.nio.charset.StandardCharsets",
)


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
    em.line("import Foundation")
    em.line()


# ============================================================
# MODULE CLASS
# ============================================================


def print_module_class(ctx: GenerationContext, functions: list[TranslatedFunctionDecl]) -> str:
    em = Emitter()
    print_java_header(em, ctx)
    name = ctx.module_class
    em.open("public final class " + name)
    em.open("private " + name + "()")
    em.line("// Should not be called directly")
    em.close()
    em.line()
    em.line('static final String LIB_NAME = "' + ctx.module.name + '";')
    em.line("static final Arena LIBRARY_ARENA = Arena.ofAuto();")
    em.line()
    em.line('@SuppressWarnings("unused")')
    em.line("private static final boolean INITIALIZED_LIBS = initializeLibs();")
    em.open("static boolean initializeLibs()")
    em.line("System.loadLibrary(SwiftLibraries.LIB_NAME_SWIFT_CORE);")
    em.line("System.loadLibrary(SwiftLibraries.LIB_NAME_SWIFT_RUNTIME_FUNCTIONS);")
    em.line("System.loadLibrary(LIB_NAME);")
    em.line("return true;")
    em.close()
    em.line()
    em.line("static final SymbolLookup SYMBOL_LOOKUP =")
    em.line("    SymbolLookup.loaderLookup().or(Linker.nativeLinker().defaultLookup());")
    em.line()
    em.open("static MemorySegment findOrThrow(String symbol)")
    em.line("return SYMBOL_LOOKUP.find(symbol)")
    em.line('    .orElseThrow(() -> new UnsatisfiedLinkError("unresolved symbol: %s".formatted(symbol)));')
    em.close()
    for translated in functions:
        em.line()
        print_function_downcall(em, ctx, translated)
    if _needs_array_initializer(functions):
        em.line()
        print_array_initializer(em)
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
    print_nominal_class(em, ctx, nominal, members)
    return em.output() + "\n"


def print_nominal_class(
    em: Emitter,
    ctx: GenerationContext,
    nominal: ImportedNominal,
    members: dict[str, list[TranslatedFunctionDecl]],
) -> None:
    decl = nominal.decl
    name = decl.name
    parent_protocol = "SwiftHeapObject" if decl.is_reference_type else "SwiftValue"
    modifiers = "public static final" if decl.parent is not None else "public final"
    em.open(modifiers + " class " + name + " extends FFMSwiftInstance implements " + parent_protocol)
    metadata = ctx.names.type_metadata_thunk_name(nominal)
    print_descriptor_class(
        em,
        ctx,
        metadata,
        "void *" + metadata + "(void)",
        [],
        [],
        MEMORY_SEGMENT,
        POINTER_LAYOUT,
    )
    em.line()
    em.line("public static final SwiftAnyType TYPE_METADATA =")
    em.line("    new SwiftAnyType(" + metadata + ".call());")
    em.open("public final SwiftAnyType $swiftType()")
    em.line("return TYPE_METADATA;")
    em.close()
    em.line()
    em.line("public static final GroupLayout $LAYOUT =")
    em.line("    (GroupLayout) SwiftValueWitnessTable.layoutOfSwiftType(TYPE_METADATA.$memorySegment());")
    em.open("public final GroupLayout $layout()")
    em.line("return $LAYOUT;")
    em.close()
    em.line()
    em.open("public " + name + "(MemorySegment segment, AllocatingSwiftArena arena)")
    em.line("super(segment, arena);")
    em.close()
    translated = members.get(decl.qualified_name, [])
    for t in translated:
        em.line()
        print_function_downcall(em, ctx, t)
    for nested in ctx.module.types.values():
        if nested.decl.parent == decl.qualified_name and nested.decl.kind != "protocol":
            em.line()
            print_nominal_class(em, ctx, nested, members)
    if _needs_array_initializer(translated):
        em.line()
        print_array_initializer(em)
    em.line()
    em.line("@Override")
    em.open("public String toString()")
    em.line("return getClass().getSimpleName()")
    em.line('    + "("')
    em.line("    + SwiftRuntime.nameOfSwiftType($swiftType().$memorySegment(), true)")
    em.line('    + ")@"')
    em.line("    + $memorySegment();")
    em.close()
    em.close()


# ============================================================
# DOWNCALLS
# ============================================================


def print_function_downcall(em: Emitter, ctx: GenerationContext, translated: TranslatedFunctionDecl) -> None:
    """Descriptor class, closure helper classes and wrapper method of one declaration."""
    lowered = translated.lowered_signature
    params = cdecl_parameters(lowered)
    layouts = [value_layout(p.type) for p in lowered.all_lowered_parameters]
    result_type = lowered.result.cdecl_result_type
    print_descriptor_class(
        em,
        ctx,
        translated.thunk_name,
        str(lowered.c_function(translated.thunk_name)),
        params,
        layouts,
        cdecl_java_type(result_type),
        None if is_void(cdecl_java_type(result_type)) else value_layout(result_type),
    )
    if translated.function_types:
        em.line()
        print_function_types(em, translated)
    em.line()
    print_wrapper_method(em, ctx, translated)


def print_descriptor_class(
    em: Emitter,
    ctx: GenerationContext,
    name: str,
    c_declaration: str,
    params: list[JavaParameter],
    layouts: list[str],
    result_type: JavaType,
    result_layout: str | None,
) -> None:
    print_doc(em, "c", c_declaration)
    em.open("private static class " + name)
    described = ["/* " + p.name + ": */" + l for p, l in zip(params, layouts)]
    if result_layout is None:
        head = "FunctionDescriptor.ofVoid("
    else:
        head = "FunctionDescriptor.of("
        described.insert(0, "/* -> */" + result_layout)
    if described:
        em.line("private static final FunctionDescriptor DESC = " + head)
        for i, d in enumerate(described):
            em.line("  " + d + ("," if i < len(described) - 1 else ""))
        em.line(");")
    else:
        em.line("private static final FunctionDescriptor DESC = " + head + ");")
    em.line("private static final MemorySegment ADDR =")
    em.line("  " + ctx.module_class + '.findOrThrow("' + name + '");')
    em.line("private static final MethodHandle HANDLE = Linker.nativeLinker().downcallHandle(ADDR, DESC);")
    param_list = ", ".join(p.render() for p in params)
    args = ", ".join(p.name for p in params)
    em.open("public static " + str(result_type) + " call(" + param_list + ")")
    em.open("try")
    em.open("if (CallTraces.TRACE_DOWNCALLS)")
    em.line("CallTraces.traceDowncall(" + args + ");")
    em.close()
    if is_void(result_type):
        em.line("HANDLE.invokeExact(" + args + ");")
    else:
        em.line("return (" + str(result_type) + ") HANDLE.invokeExact(" + args + ");")
    em.indent -= 1
    em.open("} catch (Throwable ex$)")
    em.line('throw new AssertionError("should not reach here", ex$);')
    em.close()
    em.close()
    em.close()


def print_function_types(em: Emitter, translated: TranslatedFunctionDecl) -> None:
    """Functional interfaces and upcall stub factories for closure parameters."""
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name)
    em.open("public static class " + translated.holder_name)
    for i, ft in enumerate(translated.function_types):
        if i > 0:
            em.line()
        _print_function_type(em, ft)
    em.close()


def _print_function_type(em: Emitter, ft: TranslatedFunctionType) -> None:
    name = ft.name
    em.line("@FunctionalInterface")
    em.open("public interface " + name)
    em.line(str(ft.result_type) + " apply(" + ", ".join(p.render() for p in ft.parameters) + ");")
    em.close()
    function = name
    if not ft.is_compatible:
        function = name + "$Function"
        em.line("@FunctionalInterface")
        em.open("private interface " + function)
        em.line(str(ft.cdecl_result_type) + " apply(" + ", ".join(p.render() for p in ft.cdecl_parameters) + ");")
        em.close()
    layouts = ", ".join(ft.cdecl_layouts)
    if ft.cdecl_result_layout is None:
        desc = "FunctionDescriptor.ofVoid(" + layouts + ")"
    else:
        desc = "FunctionDescriptor.of(" + ", ".join([ft.cdecl_result_layout] + ft.cdecl_layouts) + ")"
    em.line("private static final FunctionDescriptor " + name + "$DESC = " + desc + ";")
    em.line(
        "private static final MethodHandle "
        + name
        + "$HANDLE = SwiftRuntime.upcallHandle("
        + function
        + '.class, "apply", '
        + name
        + "$DESC);"
    )
    em.open("static MemorySegment $toUpcallStub(" + name + " fi, Arena arena)")
    target = "fi"
    if not ft.is_compatible:
        ctx = EmitContext()
        args = []
        for i, conversion in enumerate(ft.parameter_conversions):
            value = render(conversion, ctx, "_" + str(i))
            if value is None:
                raise InternalError("closure argument conversion produced no value")
            args.append(value)
        call = "fi.apply(" + ", ".join(args) + ")"
        lambda_params = ", ".join(p.name for p in ft.cdecl_parameters)
        em.line(function + " function$ = (" + lambda_params + ") -> {")
        for line in ctx.lines:
            em.line("  " + line)
        if ft.result_type == VOID:
            em.line("  " + call + ";")
        else:
            em.line("  return " + call + ";")
        em.line("};")
        target = "function$"
    em.line(
        "return Linker.nativeLinker().upcallStub("
        + name
        + "$HANDLE.bindTo("
        + target
        + "), "
        + name
        + "$DESC, arena);"
    )
    em.close()


def print_array_initializer(em: Emitter) -> None:
    """Upcall receiving (baseAddress, count) of an array result."""
    em.open("private static class $ArrayInitializer")
    em.line("@FunctionalInterface")
    em.open("interface Function")
    em.line("void apply(MemorySegment pointer, long count);")
    em.close()
    em.line("private static final FunctionDescriptor DESC =")
    em.line("  FunctionDescriptor.ofVoid(SwiftValueLayout.SWIFT_POINTER, SwiftValueLayout.SWIFT_INT);")
    em.line('private static final MethodHandle HANDLE = SwiftRuntime.upcallHandle(Function.class, "apply", DESC);')
    em.open("static MemorySegment toUpcallStub(Function fi, Arena arena)")
    em.line("return Linker.nativeLinker().upcallStub(HANDLE.bindTo(fi), DESC, arena);")
    em.close()
    em.close()


def _needs_array_initializer(functions: list[TranslatedFunctionDecl]) -> bool:
    return any(
        o.name.endswith("_initialize") for t in functions for o in t.translated_signature.result.out_parameters
    )


# ============================================================
# WRAPPER METHODS
# ============================================================


def _java_parameter_names(translated: TranslatedFunctionDecl) -> list[str]:
    return [
        java_parameter_name(parameter_name(p, i), i) for i, p in enumerate(translated.decl.signature.params)
    ]


def print_wrapper_method(em: Emitter, ctx: GenerationContext, translated: TranslatedFunctionDecl) -> None:
    sig = translated.translated_signature
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name, "Downcall to Swift:")
    static = "static " if translated.is_static else ""
    params = [jp.render() for p in sig.parameters for jp in p.java_parameters]
    if sig.requires_swift_arena:
        params.append(str(ALLOCATING_SWIFT_ARENA) + " swiftArena$")
    for annotation in sig.result.annotations:
        em.line(annotation)
    em.open(
        "public " + static + str(sig.result.java_result_type) + " " + translated.name + "(" + ", ".join(params) + ")"
    )
    if not translated.is_static:
        em.line("$ensureAlive();")
    body = EmitContext()
    body.indent = em.indent
    if sig.requires_temporary_arena:
        body.open("try(var arena$ = Arena.ofConfined())")
    _print_downcall_body(body, translated)
    if sig.requires_temporary_arena:
        body.close()
    em.lines.extend(body.lines)
    em.close()
    if sig.requires_swift_arena and ctx.config.allows_global_automatic:
        em.line()
        print_global_arena_overload(em, translated)


def _print_downcall_body(body: EmitContext, translated: TranslatedFunctionDecl) -> None:
    sig = translated.translated_signature
    args: list[str] = []
    for name, p in zip(_java_parameter_names(translated), sig.parameters):
        value = render(p.conversion, body, name)
        if value is None:
            raise InternalError("parameter conversion produced no value")
        args.append(value)
    if sig.self_parameter is not None:
        value = render(sig.self_parameter.conversion, body, "this")
        if value is not None:
            args.append(value)
    for out in sig.result.out_parameters:
        body.emit(str(out.java_type) + " " + out.name + " = " + out.initializer + ";")
        if out.arena:
            args.append(out.name)
    call = translated.thunk_name + ".call(" + ", ".join(args) + ")"
    result = sig.result
    if result.out_parameters:
        body.emit(call + ";")
        value = render(result.conversion, body, "_result")
    else:
        value = render(result.conversion, body, call)
    if value is None:
        return
    if is_void(result.java_result_type):
        if not result.out_parameters:
            body.emit(value + ";")
        return
    body.emit("return " + value + ";")


def print_global_arena_overload(em: Emitter, translated: TranslatedFunctionDecl) -> None:
    """Overload that allocates results in the automatic arena."""
    sig = translated.translated_signature
    print_doc(em, "swift", translated.decl.source or translated.decl.qualified_name, "Downcall to Swift:")
    static = "static " if translated.is_static else ""
    params = [jp for p in sig.parameters for jp in p.java_parameters]
    em.open(
        "public "
        + static
        + str(sig.result.java_result_type)
        + " "
        + translated.name
        + "("
        + ", ".join(p.render() for p in params)
        + ")"
    )
    args = [p.name for p in params] + ["AllocatingSwiftArena.ofAuto()"]
    prefix = "" if is_void(sig.result.java_result_type) else "return "
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
    """Thunks of functions, preceded by the type metadata accessor of each nominal."""
    em = Emitter()
    print_swift_header(em, ctx)
    for nominal in nominals or []:
        name = ctx.names.type_metadata_thunk_name(nominal)
        em.line('@_cdecl("' + name + '")')
        em.open("public func " + name + "() -> UnsafeMutableRawPointer /* Any.Type */")
        em.line("return unsafeBitCast(" + nominal.decl.qualified_name + ".self, to: UnsafeMutableRawPointer.self)")
        em.close()
        em.line()
    for translated in functions:
        em.line(cdecl_thunk(translated.decl, translated.lowered_signature, translated.thunk_name))
        em.line()
    return em.output().rstrip("\n") + "\n"
