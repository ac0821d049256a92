"""State of one generation run."""

from __future__ import annotations

from .backend.javatypes import JavaClass
from .backend.naming import ThunkNameRegistry
from .config import Config
from .errors import Diagnostic, JExtractError, diagnostic_from_error
from .ir import ImportedModule, ImportedNominal, Nominal, NominalDecl
from .log import log_warning


class GenerationContext:
    """Caches and registries shared by every translator call of one run.

    Translations are memoized per declaration key and never mutated after
    they are stored; the name registry is write-once per key.
    """

    def __init__(self, module: ImportedModule, config: Config) -> None:
        self.module: ImportedModule = module
        self.config: Config = config
        self.names: ThunkNameRegistry = ThunkNameRegistry(config.thunk_prefix)
        self.translated_decls: dict[str, object] = {}
        self.translated_enum_cases: dict[str, object] = {}
        self.diagnostics: list[Diagnostic] = []

    @property
    def module_class(self) -> str:
        return self.module.name

    def java_class_name(self, decl: NominalDecl) -> str:
        """Java spelling of a module type; nested types are nested classes."""
        return decl.qualified_name

    def java_class(self, t: Nominal) -> JavaClass:
        return JavaClass(self.java_class_name(t.decl), self.config.java_package)

    def imported_nominal(self, t: Nominal) -> ImportedNominal | None:
        return self.module.types.get(t.decl.qualified_name)

    def java_wrapper_class(self, decl: NominalDecl) -> str | None:
        """Java class a @JavaClass type maps to, or None if unmapped."""
        if decl.java_class:
            return decl.java_class
        return self.config.external_classes.get(decl.qualified_name)

    def skip(self, error: JExtractError, decl_name: str, line: int | None = None) -> Diagnostic:
        diagnostic = diagnostic_from_error(error, decl_name, self.module.filename, line)
        self.diagnostics.append(diagnostic)
        log_warning(self.config, diagnostic.format())
        return diagnostic
