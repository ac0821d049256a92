"""Shared utilities for the Java and Swift printers."""

from __future__ import annotations

# Java reserved words that need escaping
JAVA_RESERVED = frozenset(
    {
        "abstract",
        "assert",
        "boolean",
        "break",
        "byte",
        "case",
        "catch",
        "char",
        "class",
        "const",
        "continue",
        "default",
        "do",
        "double",
        "else",
        "enum",
        "extends",
        "final",
        "finally",
        "float",
        "for",
        "goto",
        "if",
        "implements",
        "import",
        "instanceof",
        "int",
        "interface",
        "long",
        "native",
        "new",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "short",
        "static",
        "strictfp",
        "super",
        "switch",
        "synchronized",
        "this",
        "throw",
        "throws",
        "transient",
        "try",
        "void",
        "volatile",
        "while",
        "true",
        "false",
        "null",
        "_",  # Java 9+ keyword for unused variables
    }
)


def java_safe_name(name: str) -> str:
    """Escape Java reserved words by appending underscore."""
    if name in JAVA_RESERVED:
        return name + "_"
    return name


def upper_first(s: str) -> str:
    """Uppercase the first character of a string."""
    return (s[0].upper() + s[1:]) if s else ""


def escape_string(value: str) -> str:
    """Escape a string for use in a Java or Swift string literal (without quotes)."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


class Emitter:
    """Base class for code emitters with indentation tracking."""

    def __init__(self, indent_str: str = "  ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation; embedded newlines keep relative indent."""
        if not text:
            self.lines.append("")
            return
        for part in text.split("\n"):
            if part:
                self.lines.append(self._indent_str * self.indent + part)
            else:
                self.lines.append("")

    def open(self, header: str) -> None:
        """Emit `header {` and indent."""
        self.line(header + " {")
        self.indent += 1

    def close(self, trailer: str = "}") -> None:
        self.indent -= 1
        self.line(trailer)

    def output(self) -> str:
        """Return the accumulated output as a string."""
        return "\n".join(self.lines)


class EmitContext(Emitter):
    """Statement buffer threaded through conversion-step rendering.

    Rendering a step returns its value expression and emits any supporting
    statements (temporaries, guards) here first. Derived temporaries are
    named from the placeholder; fresh_name is only for scratch names that
    have no placeholder to derive from.
    """

    def __init__(self, indent_str: str = "  ") -> None:
        super().__init__(indent_str)
        self._counters: dict[str, int] = {}

    def emit(self, text: str) -> None:
        self.line(text)

    def fresh_name(self, base: str) -> str:
        n = self._counters.get(base, 0)
        self._counters[base] = n + 1
        return base + str(n)

    def indented(self, text: str, levels: int = 1) -> str:
        """Indent every line of a multi-line fragment."""
        pad = self._indent_str * levels
        return "\n".join(pad + l if l else l for l in text.split("\n"))


def print_doc(em: Emitter, lang: str, text: str, preamble: str | None = None) -> None:
    """Javadoc comment quoting text as a {@snippet}."""
    em.line("/**")
    if preamble is not None:
        em.line(" * " + preamble)
    em.line(" * {@snippet lang=" + lang + " :")
    for line in text.split("\n"):
        em.line(" * " + line)
    em.line(" * }")
    em.line(" */")
