"""Generation driver: translate every imported declaration and print the sources.

A declaration that cannot be translated is skipped with a diagnostic; the
rest of the module is still generated. Output is deterministic: files and
their contents depend only on the module and the config.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypeVar

from .backend import ffm_print, jni_print
from .backend.ffm import FFMTranslation
from .backend.ffm import TranslatedFunctionDecl as FFMFunctionDecl
from .backend.jni import JNITranslation
from .backend.jni import TranslatedFunctionDecl as JNIFunctionDecl
from .config import Config
from .context import GenerationContext
from .errors import Diagnostic, JExtractError, UnsupportedType
from .ir import ImportedFunc, ImportedModule, ImportedNominal
from .log import log_debug, log_info, log_stage, log_trace, log_warning

T = TypeVar("T")


@dataclass
class GeneratedSources:
    """Generated files keyed by path relative to their output root."""

    java: dict[str, str] = field(default_factory=dict)
    swift: dict[str, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def generate(module: ImportedModule, config: Config) -> GeneratedSources:
    """Generate Java and Swift sources for module in config.mode.

    Raises ConfigError when config is invalid.
    """
    config.validate()
    ctx = GenerationContext(module, config)
    log_stage(config, "Generating " + config.mode + " bindings for", module.name)
    for name, reason, line in module.skipped:
        diagnostic = Diagnostic("warning", reason, name, None, module.filename, line)
        ctx.diagnostics.append(diagnostic)
        log_warning(config, diagnostic.format())
    if config.mode == "ffm":
        out = _generate_ffm(ctx)
    else:
        if config.unsigned_mode == "wrap":
            log_warning(config, "unsigned wrap mode is not supported in jni mode, annotating instead")
        out = _generate_jni(ctx)
    out.diagnostics = ctx.diagnostics
    log_info(
        config,
        "Generated "
        + str(len(out.java))
        + " Java and "
        + str(len(out.swift))
        + " Swift files, skipped "
        + str(len(ctx.diagnostics))
        + " declarations",
    )
    return out


def _translate_all(ctx: GenerationContext, translate: Callable[[ImportedFunc], T], decls: list[ImportedFunc]) -> list[T]:
    translated: list[T] = []
    for decl in decls:
        log_trace(ctx.config, "Translating " + decl.key)
        try:
            translated.append(translate(decl))
        except JExtractError as e:
            ctx.skip(e, decl.qualified_name, decl.line)
        else:
            log_debug(ctx.config, "Translated " + decl.qualified_name)
    return translated


def _java_path(ctx: GenerationContext, class_name: str) -> str:
    return ctx.config.java_package.replace(".", "/") + "/" + class_name + ".java"


def _top_level_types(ctx: GenerationContext) -> list[ImportedNominal]:
    """Exported top-level types, in declaration order."""
    found: list[ImportedNominal] = []
    for nominal in ctx.module.types.values():
        if nominal.decl.parent is not None:
            continue
        if nominal.decl.is_java_wrapper:
            log_debug(ctx.config, "Not generating a class for Java wrapper type " + nominal.decl.name)
            continue
        found.append(nominal)
    return found


def _with_nested(ctx: GenerationContext, nominal: ImportedNominal) -> list[ImportedNominal]:
    """nominal followed by its nested types, depth first."""
    found = [nominal]
    for nested in ctx.module.types.values():
        if nested.decl.parent == nominal.decl.qualified_name and nested.decl.kind != "protocol":
            found.extend(_with_nested(ctx, nested))
    return found


# ============================================================
# FFM
# ============================================================


def _generate_ffm(ctx: GenerationContext) -> GeneratedSources:
    out = GeneratedSources()
    translator = FFMTranslation(ctx)
    module = ctx.module
    functions = _translate_all(ctx, translator.translate, module.functions + module.variables)
    out.java[_java_path(ctx, ctx.module_class)] = ffm_print.print_module_class(ctx, functions)
    out.swift[module.name + "Module+SwiftJava.swift"] = ffm_print.print_swift_thunks(ctx, functions)
    for nominal in _top_level_types(ctx):
        if nominal.decl.kind == "protocol":
            ctx.skip(UnsupportedType("protocols are not supported in ffm mode"), nominal.decl.name, nominal.line)
            continue
        members: dict[str, list[FFMFunctionDecl]] = {}
        nominals = _with_nested(ctx, nominal)
        for n in nominals:
            decls = n.members() + [case.case_function for case in n.cases]
            members[n.decl.qualified_name] = _translate_all(ctx, translator.translate, decls)
        out.java[_java_path(ctx, nominal.decl.name)] = ffm_print.print_nominal_file(ctx, nominal, members)
        thunks = [t for n in nominals for t in members[n.decl.qualified_name]]
        out.swift[nominal.decl.name + "+SwiftJava.swift"] = ffm_print.print_swift_thunks(ctx, thunks, nominals)
    return out


# ============================================================
# JNI
# ============================================================


def _generate_jni(ctx: GenerationContext) -> GeneratedSources:
    out = GeneratedSources()
    translator = JNITranslation(ctx)
    module = ctx.module
    functions = _translate_all(ctx, translator.translate, module.functions + module.variables)
    out.java[_java_path(ctx, ctx.module_class)] = jni_print.print_module_class(ctx, functions)
    out.swift[module.name + "Module+SwiftJava.swift"] = jni_print.print_swift_thunks(ctx, functions)
    for nominal in _top_level_types(ctx):
        members: dict[str, list[JNIFunctionDecl]] = {}
        if nominal.decl.kind == "protocol":
            members[nominal.decl.qualified_name] = _translate_all(ctx, translator.translate, nominal.members())
            out.java[_java_path(ctx, nominal.decl.name)] = jni_print.print_nominal_file(ctx, nominal, members)
            continue
        nominals = _with_nested(ctx, nominal)
        for n in nominals:
            decls = n.members() + [case.case_function for case in n.cases]
            members[n.decl.qualified_name] = _translate_all(ctx, translator.translate, decls)
            for case in n.cases:
                try:
                    translator.translate_enum_case(case)
                except JExtractError as e:
                    ctx.skip(e, n.decl.qualified_name + "." + case.name, case.case_function.line)
        out.java[_java_path(ctx, nominal.decl.name)] = jni_print.print_nominal_file(ctx, nominal, members)
        thunks = [t for n in nominals for t in members[n.decl.qualified_name]]
        out.swift[nominal.decl.name + "+SwiftJava.swift"] = jni_print.print_swift_thunks(ctx, thunks, nominals)
    return out
