"""Error taxonomy for binding generation.

Translation errors are recoverable at declaration granularity: the driver
catches JExtractError, records a diagnostic and moves on to the next
declaration. InternalError is never caught; it signals a defect in the
lowering engine rather than an unsupported input.
"""

from __future__ import annotations

from dataclasses import dataclass


class JExtractError(Exception):
    """Base for errors that cause a single declaration to be skipped."""

    def __init__(self, msg: str, offending: object | None = None):
        self.msg: str = msg
        self.offending: object | None = offending
        if offending is None:
            super().__init__(msg)
        else:
            super().__init__(msg + ": " + str(offending))


class UnsupportedType(JExtractError):
    """No lowering rule applies to a type in the position it appears."""


class InoutNotSupportedForType(JExtractError):
    """An inout parameter whose type cannot be passed by address."""


class ProtocolRequirementsNotSupported(JExtractError):
    """A protocol declares static or initializer requirements."""


class MissingExternalMapping(JExtractError):
    """A Java wrapper type has no Java class configured for it."""


class InternalError(Exception):
    """A structurally impossible state inside the generator."""


class ParseError(Exception):
    """Interface parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


# ============================================================
# DIAGNOSTICS
# ============================================================


@dataclass
class Diagnostic:
    """A skipped declaration, reported to the user after generation."""

    kind: str  # "error" or "warning"
    message: str
    decl_name: str | None = None
    offending_type: str | None = None
    filename: str | None = None
    line: int | None = None

    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc = self.filename
            if self.line is not None:
                loc += ":" + str(self.line)
        elif self.line is not None:
            loc = "line " + str(self.line)
        if loc:
            loc += ": "
        subject = ""
        if self.decl_name is not None:
            subject = "'" + self.decl_name + "': "
        return loc + self.kind + ": " + subject + self.message


def diagnostic_from_error(
    error: JExtractError, decl_name: str, filename: str | None = None, line: int | None = None
) -> Diagnostic:
    offending: str | None = None
    if error.offending is not None:
        offending = str(error.offending)
    message = error.msg
    if offending is not None:
        message += " (" + offending + ")"
    return Diagnostic(
        kind="warning",
        message=message,
        decl_name=decl_name,
        offending_type=offending,
        filename=filename,
        line=line,
    )
