"""Swift interface parser.

Parses the public declarations of a Swift module interface into the
declaration model in ir.py. Function and accessor bodies are skipped.

Two passes: the Parser builds raw declarations with unresolved type
names, then the Resolver binds every name against the module's own
nominals, generic parameters, type aliases and the known standard
library types. A declaration whose types cannot be resolved is dropped
and recorded in ImportedModule.skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ParseError, UnsupportedType
from ..ir import (
    PRIMITIVE_NAMES,
    VOID,
    Composite,
    Convention,
    Existential,
    FunctionSignature,
    FunctionType,
    GenericParameter,
    GenericRequirement,
    ImportedEnumCase,
    ImportedFunc,
    ImportedModule,
    ImportedNominal,
    Metatype,
    Nominal,
    NominalDecl,
    Opaque,
    OptionalType,
    Primitive,
    SelfParam,
    SwiftParam,
    SwiftType,
    TupleType,
    known_decl,
)
from .tokens import MODIFIERS, TK_EOF, TK_IDENT, TK_OP, TK_STRING, Token, tokenize


# ============================================================
# RAW SYNTAX
# ============================================================


@dataclass
class RawType:
    """Base for unresolved type syntax."""


@dataclass
class RawName(RawType):
    path: list[str]
    args: list[RawType] = field(default_factory=list)


@dataclass
class RawTuple(RawType):
    elements: list[RawParam]


@dataclass
class RawFunction(RawType):
    params: list[RawParam]
    result: RawType
    is_async: bool = False
    is_throws: bool = False
    convention: str = "swift"
    escaping: bool = False


@dataclass
class RawOptional(RawType):
    inner: RawType


@dataclass
class RawArray(RawType):
    element: RawType


@dataclass
class RawDictionary(RawType):
    key: RawType
    value: RawType


@dataclass
class RawMetatype(RawType):
    inner: RawType


@dataclass
class RawExistential(RawType):
    types: list[RawType]
    opaque: bool = False


@dataclass
class RawComposition(RawType):
    types: list[RawType]


@dataclass
class RawParam:
    type: RawType
    label: str | None = None
    name: str | None = None
    convention: Convention = "borrowed"
    variadic: bool = False


@dataclass
class RawRequirement:
    kind: str  # "inherits" or "same_type"
    left: RawType
    right: RawType


@dataclass
class RawMember:
    """A func, init, subscript, var/let or enum case before resolution."""

    kind: str
    name: str
    params: list[RawParam] = field(default_factory=list)
    result: RawType | None = None
    is_static: bool = False
    is_mutating: bool = False
    is_async: bool = False
    is_throws: bool = False
    is_failable: bool = False
    has_setter: bool = False
    generic_params: list[str] = field(default_factory=list)
    requirements: list[RawRequirement] = field(default_factory=list)
    source: str = ""
    line: int = 0


@dataclass
class RawNominal:
    kind: str
    name: str
    parent: str | None
    line: int
    inherited: list[RawType] = field(default_factory=list)
    generic_params: list[str] = field(default_factory=list)
    members: list[RawMember] = field(default_factory=list)
    is_java_wrapper: bool = False
    java_class: str | None = None

    @property
    def qualified_name(self) -> str:
        if self.parent is None:
            return self.name
        return self.parent + "." + self.name


@dataclass
class RawExtension:
    path: list[str]
    members: list[RawMember]
    line: int


_PUBLIC_ACCESS: set[str] = {"public", "open"}
_HIDDEN_ACCESS: set[str] = {"private", "fileprivate", "internal", "package"}
_NOMINAL_KEYWORDS: set[str] = {"class", "struct", "enum", "protocol", "actor"}
_OWNERSHIP_SPECIFIERS: set[str] = {"__owned", "__shared", "consuming", "borrowing", "sending"}
# Type attributes that take a parenthesized argument, e.g. @convention(c).
_ARGUMENT_ATTRIBUTES: set[str] = {"convention", "differentiable", "_opaqueReturnTypeOf"}


class _Modifiers:
    """Attributes and modifiers collected in front of a declaration."""

    def __init__(self) -> None:
        self.words: list[str] = []
        self.attributes: list[str] = []
        self.java_class: str | None = None
        self.setter_hidden: bool = False
        self.unavailable: bool = False
        self.start: Token | None = None

    def has(self, word: str) -> bool:
        return word in self.words

    def is_public(self, implicit: bool) -> bool:
        for w in self.words:
            if w in _PUBLIC_ACCESS:
                return True
            if w in _HIDDEN_ACCESS:
                return False
        return implicit


# ============================================================
# PARSER
# ============================================================


class Parser:
    """Recursive descent parser for Swift interface declarations."""

    def __init__(self, tokens: list[Token], source: str):
        self.tokens: list[Token] = tokens
        self.source: str = source
        self.pos: int = 0
        self.nominals: list[RawNominal] = []
        self.extensions: list[RawExtension] = []
        self.aliases: dict[str, RawType] = {}
        self.globals: list[RawMember] = []

    def current(self) -> Token:
        """Get current token."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[len(self.tokens) - 1]

    def peek(self, offset: int) -> Token:
        """Peek at token at offset from current."""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[len(self.tokens) - 1]

    def advance(self) -> Token:
        """Consume and return current token."""
        tok = self.current()
        if self.pos < len(self.tokens):
            self.pos += 1
        return tok

    def prev_token(self) -> Token:
        if self.pos > 0:
            return self.tokens[self.pos - 1]
        return self.tokens[0]

    def match_op(self, value: str) -> bool:
        tok = self.current()
        return tok.type == TK_OP and tok.value == value

    def match_ident(self, value: str) -> bool:
        tok = self.current()
        return tok.type == TK_IDENT and tok.value == value

    def expect_op(self, value: str) -> Token:
        if self.match_op(value):
            return self.advance()
        raise self.error("expected '" + value + "'")

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type == TK_IDENT:
            return self.advance()
        raise self.error("expected identifier")

    def error(self, msg: str) -> ParseError:
        """Create parse error at current position."""
        tok = self.current()
        found = tok.value if tok.type != TK_EOF else "end of input"
        return ParseError(msg + ", found '" + found + "'", tok.line, tok.col)

    def source_text(self, start: Token) -> str:
        """Declaration text from start through the previous token, whitespace-normalized."""
        end = self.prev_token().end
        return " ".join(self.source[start.start : end].split())

    # ------------------------------------------------------------
    # SKIPPING
    # ------------------------------------------------------------

    def skip_balanced(self, open_op: str, close_op: str) -> None:
        """Skip a balanced group starting at the current open token."""
        start = self.expect_op(open_op)
        depth = 1
        while depth > 0:
            tok = self.current()
            if tok.type == TK_EOF:
                raise ParseError("unbalanced '" + open_op + "'", start.line, start.col)
            if tok.type == TK_OP and tok.value == open_op:
                depth += 1
            elif tok.type == TK_OP and tok.value == close_op:
                depth -= 1
            self.advance()

    def skip_expression(self) -> None:
        """Skip a default-value or initializer expression up to ',' ')' or a new declaration."""
        start_line = self.prev_token().line
        while True:
            tok = self.current()
            if tok.type == TK_EOF:
                return
            if tok.type == TK_OP and tok.value in (",", ")", "}", ";"):
                return
            if tok.type == TK_OP and tok.value == "{":
                # A trailing brace on the same line belongs to the expression or accessor block.
                return
            if tok.line != start_line and self._starts_declaration():
                return
            if tok.type == TK_OP and tok.value == "(":
                self.skip_balanced("(", ")")
                continue
            if tok.type == TK_OP and tok.value == "[":
                self.skip_balanced("[", "]")
                continue
            self.advance()

    def _starts_declaration(self) -> bool:
        tok = self.current()
        if tok.type == TK_OP and tok.value == "@":
            return True
        if tok.type != TK_IDENT:
            return False
        return tok.value in MODIFIERS or tok.value in (
            "func",
            "init",
            "var",
            "let",
            "case",
            "subscript",
            "struct",
            "enum",
            "protocol",
            "actor",
            "extension",
            "typealias",
            "deinit",
            "associatedtype",
            "import",
        )

    # ------------------------------------------------------------
    # DECLARATIONS
    # ------------------------------------------------------------

    def parse_file(self) -> None:
        self.parse_members(None, self.globals)
        if self.current().type != TK_EOF:
            raise self.error("unexpected '}'")

    def parse_members(self, owner: RawNominal | None, out: list[RawMember]) -> None:
        """Parse declarations until '}' or end of input."""
        while True:
            tok = self.current()
            if tok.type == TK_EOF or (tok.type == TK_OP and tok.value == "}"):
                return
            if tok.type == TK_OP and tok.value == ";":
                self.advance()
                continue
            self.parse_declaration(owner, out)

    def parse_modifiers(self) -> _Modifiers:
        mods = _Modifiers()
        while True:
            tok = self.current()
            if tok.type == TK_OP and tok.value == "@":
                self.advance()
                name = self.expect_ident().value
                mods.attributes.append(name)
                if self.match_op("(") and self.current().line == self.prev_token().line:
                    if name == "JavaClass" and self.peek(1).type == TK_STRING:
                        self.advance()
                        mods.java_class = self.advance().value
                        self.skip_until_close_paren()
                    else:
                        inner_start = self.pos
                        self.skip_balanced("(", ")")
                        if name == "available":
                            for t in self.tokens[inner_start : self.pos]:
                                if t.type == TK_IDENT and t.value in ("unavailable", "obsoleted"):
                                    mods.unavailable = True
                if name == "JavaClass" and mods.java_class is None:
                    mods.java_class = ""
                continue
            if tok.type != TK_IDENT or tok.value not in MODIFIERS:
                break
            if tok.value == "class" and not self._class_is_modifier():
                break
            if mods.start is None:
                mods.start = tok
            self.advance()
            mods.words.append(tok.value)
            if self.match_op("(") and self.peek(1).type == TK_IDENT and self.peek(1).value == "set":
                self.skip_balanced("(", ")")
                if tok.value in _HIDDEN_ACCESS:
                    mods.setter_hidden = True
                mods.words.pop()
                if not mods.words:
                    mods.start = None
        if mods.start is None:
            mods.start = self.current()
        return mods

    def skip_until_close_paren(self) -> None:
        while not self.match_op(")"):
            if self.current().type == TK_EOF:
                raise self.error("expected ')'")
            self.advance()
        self.advance()

    def _class_is_modifier(self) -> bool:
        nxt = self.peek(1)
        if nxt.type != TK_IDENT:
            return False
        return nxt.value in ("func", "var", "let", "subscript", "init") or nxt.value in MODIFIERS

    def parse_declaration(self, owner: RawNominal | None, out: list[RawMember]) -> None:
        mods = self.parse_modifiers()
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected declaration")
        implicit_public = owner is not None and owner.kind == "protocol"
        keyword = tok.value
        if keyword == "import":
            self.advance()
            if self.current().type == TK_IDENT and self.current().value in (
                "struct",
                "class",
                "enum",
                "protocol",
                "func",
                "var",
                "typealias",
            ):
                self.advance()
            self.expect_ident()
            while self.match_op("."):
                self.advance()
                self.expect_ident()
            return
        if keyword in _NOMINAL_KEYWORDS:
            self.parse_nominal(mods, owner)
            return
        if keyword == "extension":
            self.parse_extension()
            return
        if keyword == "typealias":
            self.parse_typealias(owner)
            return
        if keyword == "deinit":
            self.advance()
            if self.match_op("{"):
                self.skip_balanced("{", "}")
            return
        if keyword == "associatedtype":
            self.advance()
            self.expect_ident()
            if self.match_op(":"):
                self.advance()
                self.parse_type()
            if self.match_op("="):
                self.advance()
                self.parse_type()
            return
        if keyword == "case":
            public = owner is not None and owner.kind == "enum"
            members = self.parse_case(mods)
            if public and not mods.unavailable:
                out.extend(members)
            return
        if keyword == "func":
            member = self.parse_func(mods)
        elif keyword == "init":
            member = self.parse_init(mods)
        elif keyword == "subscript":
            member = self.parse_subscript(mods)
        elif keyword == "var" or keyword == "let":
            member = self.parse_var(mods, owner)
        else:
            raise self.error("expected declaration")
        if member is None or mods.unavailable:
            return
        if not mods.is_public(implicit_public):
            return
        out.append(member)

    def parse_nominal(self, mods: _Modifiers, owner: RawNominal | None) -> None:
        kind = self.advance().value
        name_tok = self.expect_ident()
        parent = owner.qualified_name if owner is not None else None
        nominal = RawNominal(kind, name_tok.value, parent, name_tok.line)
        if mods.java_class is not None:
            nominal.is_java_wrapper = True
            nominal.java_class = mods.java_class
        if self.match_op("<"):
            nominal.generic_params, _ = self.parse_generic_clause()
        if self.match_op(":"):
            self.advance()
            nominal.inherited.append(self.parse_type())
            while self.match_op(","):
                self.advance()
                nominal.inherited.append(self.parse_type())
        if self.match_ident("where"):
            self.parse_where_clause()
        index = len(self.nominals)
        self.expect_op("{")
        self.parse_members(nominal, nominal.members)
        self.expect_op("}")
        if mods.is_public(owner is not None and owner.kind == "protocol") and not mods.unavailable:
            self.nominals.insert(index, nominal)

    def parse_extension(self) -> None:
        start = self.advance()
        path = [self.expect_ident().value]
        while self.match_op("."):
            self.advance()
            path.append(self.expect_ident().value)
        if self.match_op(":"):
            self.advance()
            self.parse_type()
            while self.match_op(","):
                self.advance()
                self.parse_type()
        if self.match_ident("where"):
            self.parse_where_clause()
        members: list[RawMember] = []
        # Nested types in an extension are registered under the extended type.
        holder = RawNominal("extension", path[len(path) - 1], ".".join(path[:-1]) or None, start.line)
        self.expect_op("{")
        self.parse_members(holder, members)
        self.expect_op("}")
        self.extensions.append(RawExtension(path, members, start.line))

    def parse_typealias(self, owner: RawNominal | None) -> None:
        self.advance()
        name = self.expect_ident().value
        if self.match_op("<"):
            self.parse_generic_clause()
        self.expect_op("=")
        target = self.parse_type()
        if owner is not None:
            name = owner.qualified_name + "." + name
        self.aliases[name] = target

    def parse_generic_clause(self) -> tuple[list[str], list[RawRequirement]]:
        self.expect_op("<")
        names: list[str] = []
        reqs: list[RawRequirement] = []
        while True:
            name = self.expect_ident().value
            names.append(name)
            if self.match_op(":"):
                self.advance()
                reqs.append(RawRequirement("inherits", RawName([name]), self.parse_type()))
            if self.match_op(","):
                self.advance()
                continue
            break
        self.expect_op(">")
        return names, reqs

    def parse_where_clause(self) -> list[RawRequirement]:
        self.advance()
        reqs: list[RawRequirement] = []
        while True:
            left = self.parse_type()
            if self.match_op(":"):
                self.advance()
                reqs.append(RawRequirement("inherits", left, self.parse_type()))
            elif self.match_op("=="):
                self.advance()
                reqs.append(RawRequirement("same_type", left, self.parse_type()))
            else:
                raise self.error("expected ':' or '==' in where clause")
            if self.match_op(","):
                self.advance()
                continue
            return reqs

    def parse_effects(self, member: RawMember) -> None:
        while True:
            if self.match_ident("async"):
                self.advance()
                member.is_async = True
                continue
            if self.match_ident("throws") or self.match_ident("rethrows"):
                self.advance()
                member.is_throws = True
                if self.match_op("("):
                    self.skip_balanced("(", ")")
                continue
            return

    def parse_func(self, mods: _Modifiers) -> RawMember | None:
        start = mods.start or self.current()
        self.advance()
        name_tok = self.current()
        if name_tok.type != TK_IDENT:
            # Operator functions are not exported.
            while not self.match_op("(") and self.current().type != TK_EOF:
                self.advance()
            self.parse_params()
            self._skip_rest_of_func()
            return None
        self.advance()
        member = RawMember("func", name_tok.value, line=name_tok.line)
        member.is_static = mods.has("static") or mods.has("class")
        member.is_mutating = mods.has("mutating")
        if self.match_op("<"):
            member.generic_params, member.requirements = self.parse_generic_clause()
        member.params = self.parse_params()
        self.parse_effects(member)
        if self.match_op("->"):
            self.advance()
            member.result = self.parse_type()
        if self.match_ident("where"):
            member.requirements.extend(self.parse_where_clause())
        member.source = self.source_text(start)
        if self.match_op("{"):
            self.skip_balanced("{", "}")
        return member

    def _skip_rest_of_func(self) -> None:
        while True:
            tok = self.current()
            if tok.type == TK_EOF or (tok.type == TK_OP and tok.value == "}"):
                return
            if tok.type == TK_OP and tok.value == "{":
                self.skip_balanced("{", "}")
                return
            if self._starts_declaration():
                return
            self.advance()

    def parse_init(self, mods: _Modifiers) -> RawMember:
        start = mods.start or self.current()
        tok = self.advance()
        member = RawMember("init", "init", line=tok.line)
        if self.match_op("?") or self.match_op("!"):
            self.advance()
            member.is_failable = True
        if self.match_op("<"):
            member.generic_params, member.requirements = self.parse_generic_clause()
        member.params = self.parse_params()
        self.parse_effects(member)
        if self.match_ident("where"):
            member.requirements.extend(self.parse_where_clause())
        member.source = self.source_text(start)
        if self.match_op("{"):
            self.skip_balanced("{", "}")
        return member

    def parse_subscript(self, mods: _Modifiers) -> RawMember:
        start = mods.start or self.current()
        tok = self.advance()
        member = RawMember("subscript", "subscript", line=tok.line)
        member.is_static = mods.has("static") or mods.has("class")
        if self.match_op("<"):
            member.generic_params, member.requirements = self.parse_generic_clause()
        member.params = self.parse_params()
        self.expect_op("->")
        member.result = self.parse_type()
        if self.match_ident("where"):
            member.requirements.extend(self.parse_where_clause())
        member.source = self.source_text(start)
        if self.match_op("{"):
            member.has_setter = self.parse_accessor_block(member) and not mods.setter_hidden
        return member

    def parse_var(self, mods: _Modifiers, owner: RawNominal | None) -> RawMember | None:
        start = mods.start or self.current()
        keyword = self.advance().value
        if not self.current().type == TK_IDENT:
            # Tuple patterns are not exported.
            self.skip_expression()
            return None
        name_tok = self.advance()
        member = RawMember("var", name_tok.value, line=name_tok.line)
        member.is_static = mods.has("static") or mods.has("class")
        if not self.match_op(":"):
            self.skip_expression()
            if self.match_op("{") and self.current().line == self.prev_token().line:
                self.skip_balanced("{", "}")
            return None
        self.advance()
        member.result = self.parse_type()
        member.source = self.source_text(start)
        stored = True
        if self.match_op("="):
            self.advance()
            self.skip_expression()
        if self.match_op("{"):
            stored = False
            member.has_setter = self.parse_accessor_block(member)
        if stored:
            member.has_setter = keyword == "var"
        if mods.setter_hidden or (owner is not None and owner.kind == "enum" and stored):
            member.has_setter = False
        return member

    def parse_accessor_block(self, member: RawMember) -> bool:
        """Skip an accessor block; returns whether it declares a setter."""
        self.expect_op("{")
        has_get = False
        has_set = False
        depth = 1
        while depth > 0:
            tok = self.current()
            if tok.type == TK_EOF:
                raise self.error("unterminated accessor block")
            if tok.type == TK_OP and tok.value == "{":
                depth += 1
            elif tok.type == TK_OP and tok.value == "}":
                depth -= 1
            elif depth == 1 and tok.type == TK_IDENT:
                if tok.value == "get":
                    has_get = True
                elif tok.value in ("set", "_modify", "willSet", "didSet"):
                    has_set = True
                elif tok.value in ("async", "throws") and has_get:
                    if tok.value == "async":
                        member.is_async = True
                    else:
                        member.is_throws = True
            self.advance()
        if not has_get and not has_set:
            return False
        return has_set

    def parse_case(self, mods: _Modifiers) -> list[RawMember]:
        start = mods.start or self.current()
        self.advance()
        members: list[RawMember] = []
        while True:
            name_tok = self.expect_ident()
            member = RawMember("case", name_tok.value, line=name_tok.line)
            if self.match_op("("):
                payload = self.parse_primary_type()
                if not isinstance(payload, RawTuple):
                    raise self.error("expected associated values")
                member.params = [RawParam(e.type, e.name, e.name, e.convention) for e in payload.elements]
            if self.match_op("="):
                self.advance()
                self.skip_expression()
            member.source = self.source_text(start)
            members.append(member)
            if self.match_op(","):
                self.advance()
                continue
            return members

    def parse_params(self) -> list[RawParam]:
        self.expect_op("(")
        params: list[RawParam] = []
        while not self.match_op(")"):
            params.append(self.parse_param())
            if self.match_op(","):
                self.advance()
            elif not self.match_op(")"):
                raise self.error("expected ',' or ')' in parameter list")
        self.advance()
        return params

    def parse_param(self) -> RawParam:
        first = self.expect_ident().value
        label: str | None = first
        name: str = first
        if self.current().type == TK_IDENT:
            name = self.advance().value
        if label == "_":
            label = None
        self.expect_op(":")
        convention, escaping, c_convention = self.parse_type_attributes()
        typ = self.parse_type()
        if escaping or c_convention:
            typ = _with_function_attributes(typ, escaping, c_convention)
        param = RawParam(typ, label, name, convention)
        if self.match_op("..."):
            self.advance()
            param.variadic = True
        if self.match_op("="):
            self.advance()
            self.skip_expression()
        return param

    def parse_type_attributes(self) -> tuple[Convention, bool, bool]:
        convention: Convention = "borrowed"
        escaping = False
        c_convention = False
        while True:
            tok = self.current()
            if tok.type == TK_IDENT and tok.value == "inout":
                self.advance()
                convention = "inout"
                continue
            if tok.type == TK_IDENT and tok.value in _OWNERSHIP_SPECIFIERS:
                self.advance()
                if tok.value in ("__owned", "consuming", "sending"):
                    convention = "owned"
                continue
            if tok.type == TK_OP and tok.value == "@":
                self.advance()
                attr = self.expect_ident().value
                if attr == "escaping":
                    escaping = True
                if attr in _ARGUMENT_ATTRIBUTES and self.match_op("("):
                    arg_start = self.pos
                    self.skip_balanced("(", ")")
                    if attr == "convention":
                        arg = self.tokens[arg_start + 1]
                        if arg.type == TK_IDENT and arg.value == "c":
                            c_convention = True
                continue
            return convention, escaping, c_convention

    # ------------------------------------------------------------
    # TYPES
    # ------------------------------------------------------------

    def parse_type(self) -> RawType:
        _, escaping, c_convention = self.parse_type_attributes()
        if self.match_ident("some") or self.match_ident("any"):
            opaque = self.advance().value == "some"
            types = [self.parse_postfix_type()]
            while self.match_op("&"):
                self.advance()
                types.append(self.parse_postfix_type())
            existential = RawExistential(types, opaque)
            return existential
        typ = self.parse_postfix_type()
        if isinstance(typ, RawTuple) and (
            self.match_ident("async")
            or self.match_ident("throws")
            or self.match_ident("rethrows")
            or self.match_op("->")
        ):
            func = RawFunction(typ.elements, RawTuple([]))
            while self.match_ident("async") or self.match_ident("throws") or self.match_ident("rethrows"):
                if self.advance().value == "async":
                    func.is_async = True
                else:
                    func.is_throws = True
            self.expect_op("->")
            func.result = self.parse_type()
            if escaping or c_convention:
                return _with_function_attributes(func, escaping, c_convention)
            return func
        if self.match_op("&"):
            types = [typ]
            while self.match_op("&"):
                self.advance()
                types.append(self.parse_postfix_type())
            return RawComposition(types)
        return typ

    def parse_postfix_type(self) -> RawType:
        typ = self.parse_primary_type()
        while True:
            if self.match_op("?") or self.match_op("!"):
                if self.current().line != self.prev_token().line:
                    return typ
                self.advance()
                typ = RawOptional(typ)
                continue
            if self.match_op("?."):
                raise self.error("unexpected '?.' in type")
            if self.match_op(".") and self.peek(1).type == TK_IDENT and self.peek(1).value in ("Type", "Protocol"):
                self.advance()
                self.advance()
                typ = RawMetatype(typ)
                continue
            return typ

    def parse_primary_type(self) -> RawType:
        tok = self.current()
        if tok.type == TK_OP and tok.value == "(":
            self.advance()
            elements: list[RawParam] = []
            while not self.match_op(")"):
                elements.append(self.parse_tuple_element())
                if self.match_op(","):
                    self.advance()
                elif not self.match_op(")"):
                    raise self.error("expected ',' or ')' in tuple type")
            self.advance()
            return RawTuple(elements)
        if tok.type == TK_OP and tok.value == "[":
            self.advance()
            element = self.parse_type()
            if self.match_op(":"):
                self.advance()
                value = self.parse_type()
                self.expect_op("]")
                return RawDictionary(element, value)
            self.expect_op("]")
            return RawArray(element)
        if tok.type == TK_IDENT:
            path = [self.advance().value]
            args: list[RawType] = []
            if self.match_op("<"):
                args = self.parse_generic_args()
            while (
                self.match_op(".")
                and self.peek(1).type == TK_IDENT
                and self.peek(1).value not in ("Type", "Protocol")
            ):
                if args:
                    raise self.error("member types of generic types are not supported")
                self.advance()
                path.append(self.advance().value)
                if self.match_op("<"):
                    args = self.parse_generic_args()
            return RawName(path, args)
        raise self.error("expected type")

    def parse_tuple_element(self) -> RawParam:
        label: str | None = None
        if self.current().type == TK_IDENT and self.peek(1).type == TK_OP and self.peek(1).value == ":":
            label = self.advance().value
            self.advance()
        elif (
            self.current().type == TK_IDENT
            and self.peek(1).type == TK_IDENT
            and self.peek(2).type == TK_OP
            and self.peek(2).value == ":"
        ):
            self.advance()
            label = self.advance().value
            self.advance()
        convention, escaping, c_convention = self.parse_type_attributes()
        typ = self.parse_type()
        if escaping or c_convention:
            typ = _with_function_attributes(typ, escaping, c_convention)
        return RawParam(typ, None, label, convention)

    def parse_generic_args(self) -> list[RawType]:
        self.expect_op("<")
        args = [self.parse_type()]
        while self.match_op(","):
            self.advance()
            args.append(self.parse_type())
        self.expect_op(">")
        return args


def _with_function_attributes(typ: RawType, escaping: bool, c_convention: bool) -> RawType:
    if isinstance(typ, RawFunction):
        typ.escaping = typ.escaping or escaping
        if c_convention:
            typ.convention = "c"
        return typ
    if isinstance(typ, RawOptional) and isinstance(typ.inner, RawFunction):
        _with_function_attributes(typ.inner, escaping, c_convention)
    return typ


# ============================================================
# RESOLVER
# ============================================================


class Resolver:
    """Binds raw type names and builds the imported declaration model."""

    def __init__(self, parser: Parser, module_name: str, filename: str | None):
        self.parser: Parser = parser
        self.module: ImportedModule = ImportedModule(module_name, filename=filename)
        self.decls: dict[str, NominalDecl] = {}
        self.raw_by_name: dict[str, RawNominal] = {}

    def run(self) -> ImportedModule:
        for raw in self.parser.nominals:
            kind = raw.kind
            decl = NominalDecl(
                raw.name,
                kind,  # type: ignore[arg-type]
                self.module.name,
                parent=raw.parent,
                is_java_wrapper=raw.is_java_wrapper,
                java_class=raw.java_class,
            )
            self.decls[raw.qualified_name] = decl
            self.raw_by_name[raw.qualified_name] = raw
        for raw in self.parser.nominals:
            if raw.parent is not None and raw.parent not in self.decls:
                self.skip(raw.qualified_name, "enclosing type is not exported", raw.line)
                continue
            if raw.generic_params:
                self.skip(raw.qualified_name, "generic types are not supported", raw.line)
                continue
            imported = ImportedNominal(self.decls[raw.qualified_name], line=raw.line)
            for inherited in raw.inherited:
                if isinstance(inherited, RawName):
                    imported.inherited.append(".".join(inherited.path))
            self.module.types[raw.qualified_name] = imported
        for raw in self.parser.nominals:
            imported = self.module.types.get(raw.qualified_name)
            if imported is not None:
                self.import_members(imported, raw.members)
        for ext in self.parser.extensions:
            target = ".".join(ext.path)
            imported = self.module.types.get(target)
            if imported is None:
                for member in ext.members:
                    self.skip(target + "." + member.name, "extended type is not exported", member.line)
                continue
            self.import_members(imported, ext.members)
        for member in self.parser.globals:
            self.import_member(None, member)
        return self.module

    def skip(self, name: str, reason: str, line: int) -> None:
        self.module.skipped.append((name, reason, line))

    def import_members(self, imported: ImportedNominal, members: list[RawMember]) -> None:
        for member in members:
            self.import_member(imported, member)

    def import_member(self, owner: ImportedNominal | None, member: RawMember) -> None:
        qualified = member.name
        if owner is not None:
            qualified = owner.decl.qualified_name + "." + member.name
        try:
            self._import_member(owner, member)
        except UnsupportedType as e:
            self.skip(qualified, str(e), member.line)

    def _import_member(self, owner: ImportedNominal | None, member: RawMember) -> None:
        module = self.module
        generics = list(member.generic_params)
        scope = owner.decl.qualified_name if owner is not None else None
        params = [self.resolve_param(p, generics, scope) for p in member.params]
        requirements = [
            GenericRequirement(
                r.kind,  # type: ignore[arg-type]
                self.resolve(r.left, generics, scope),
                self.resolve(r.right, generics, scope),
            )
            for r in member.requirements
        ]
        owner_type: SwiftType | None = owner.swift_type if owner is not None else None

        def self_param(kind: str, mutating: bool) -> SelfParam | None:
            if owner_type is None:
                return None
            if kind != "instance":
                return SelfParam(kind, owner_type)  # type: ignore[arg-type]
            if mutating and owner is not None and not owner.decl.is_reference_type:
                return SelfParam("instance", owner_type, "inout")
            return SelfParam("instance", owner_type)

        member_kind = "static" if member.is_static else "instance"
        match member.kind:
            case "func":
                result = self.resolve(member.result, generics, scope) if member.result else VOID
                sig = FunctionSignature(
                    params,
                    result,
                    self_param(member_kind, member.is_mutating),
                    member.is_async,
                    member.is_throws,
                    generics,
                    requirements,
                )
                func = ImportedFunc(module.name, member.name, "function", sig, owner, member.source, member.line)
                if owner is None:
                    module.functions.append(func)
                else:
                    owner.methods.append(func)
            case "init":
                if owner is None or owner_type is None:
                    raise UnsupportedType("initializer outside of a type")
                if owner.decl.kind == "protocol":
                    owner.initializers.append(self._protocol_init(owner, params, member))
                    return
                result_type: SwiftType = owner_type
                if member.is_failable:
                    result_type = OptionalType(owner_type)
                sig = FunctionSignature(
                    params,
                    result_type,
                    SelfParam("initializer", owner_type),
                    member.is_async,
                    member.is_throws,
                    generics,
                    requirements,
                )
                owner.initializers.append(
                    ImportedFunc(module.name, "init", "initializer", sig, owner, member.source, member.line)
                )
            case "var" | "subscript":
                if member.result is None:
                    raise UnsupportedType("missing type annotation")
                value_type = self.resolve(member.result, generics, scope)
                is_subscript = member.kind == "subscript"
                getter_kind = "subscript_getter" if is_subscript else "getter"
                setter_kind = "subscript_setter" if is_subscript else "setter"
                getter = ImportedFunc(
                    module.name,
                    member.name,
                    getter_kind,  # type: ignore[arg-type]
                    FunctionSignature(
                        list(params),
                        value_type,
                        self_param(member_kind, False),
                        member.is_async,
                        member.is_throws,
                        generics,
                        requirements,
                    ),
                    owner,
                    member.source,
                    member.line,
                )
                accessors = [getter]
                if member.has_setter:
                    setter_params = list(params) + [SwiftParam(value_type, None, "newValue")]
                    setter_self = self_param(member_kind, True)
                    setter = ImportedFunc(
                        module.name,
                        member.name,
                        setter_kind,  # type: ignore[arg-type]
                        FunctionSignature(setter_params, VOID, setter_self, False, False, generics, requirements),
                        owner,
                        member.source,
                        member.line,
                    )
                    accessors.append(setter)
                if owner is None:
                    module.variables.extend(accessors)
                else:
                    owner.variables.extend(accessors)
            case "case":
                if owner is None or owner_type is None or owner.decl.kind != "enum":
                    raise UnsupportedType("enum case outside of an enum")
                sig = FunctionSignature(params, owner_type, SelfParam("static", owner_type))
                case_func = ImportedFunc(module.name, member.name, "enum_case", sig, owner, member.source, member.line)
                owner.cases.append(ImportedEnumCase(member.name, params, owner, case_func, member.source))
            case _:
                raise ParseError("unknown member kind " + member.kind, member.line, 0)

    def _protocol_init(self, owner: ImportedNominal, params: list[SwiftParam], member: RawMember) -> ImportedFunc:
        sig = FunctionSignature(params, owner.swift_type, SelfParam("initializer", owner.swift_type))
        return ImportedFunc(self.module.name, "init", "initializer", sig, owner, member.source, member.line)

    def resolve_param(self, p: RawParam, generics: list[str], scope: str | None) -> SwiftParam:
        if p.variadic:
            raise UnsupportedType("variadic parameters are not supported", p.name)
        return SwiftParam(self.resolve(p.type, generics, scope), p.label, p.name, p.convention)

    def resolve(self, raw: RawType | None, generics: list[str], scope: str | None, depth: int = 0) -> SwiftType:
        if raw is None:
            return VOID
        if depth > 32:
            raise UnsupportedType("type alias cycle")
        match raw:
            case RawName(path=path, args=args):
                return self.resolve_name(path, args, generics, scope, depth)
            case RawTuple(elements=elements):
                if len(elements) == 1 and elements[0].convention != "inout":
                    return self.resolve(elements[0].type, generics, scope, depth)
                return TupleType(tuple(self.resolve(e.type, generics, scope, depth) for e in elements))
            case RawFunction():
                params = tuple(
                    SwiftParam(self.resolve(p.type, generics, scope, depth), None, None, p.convention)
                    for p in raw.params
                )
                return FunctionType(
                    params,
                    self.resolve(raw.result, generics, scope, depth),
                    "c" if raw.convention == "c" else "swift",
                    raw.escaping,
                    raw.is_async,
                    raw.is_throws,
                )
            case RawOptional(inner=inner):
                return OptionalType(self.resolve(inner, generics, scope, depth))
            case RawArray(element=element):
                decl = known_decl("Array")
                assert decl is not None
                return Nominal(decl, (self.resolve(element, generics, scope, depth),))
            case RawDictionary():
                raise UnsupportedType("dictionary types are not supported")
            case RawMetatype(inner=inner):
                return Metatype(self.resolve(inner, generics, scope, depth))
            case RawExistential(types=types, opaque=opaque):
                resolved = tuple(self.resolve(t, generics, scope, depth) for t in types)
                if opaque:
                    return Opaque(resolved)
                return Existential(resolved)
            case RawComposition(types=types):
                return Composite(tuple(self.resolve(t, generics, scope, depth) for t in types))
            case _:
                raise ParseError("unknown raw type " + type(raw).__name__, 0, 0)

    def resolve_name(
        self, path: list[str], args: list[RawType], generics: list[str], scope: str | None, depth: int
    ) -> SwiftType:
        if len(path) > 1 and path[0] in ("Swift", "Foundation"):
            path = path[1:]
        name = ".".join(path)
        if len(path) == 1 and name in generics:
            if args:
                raise UnsupportedType("generic parameter with arguments", name)
            return GenericParameter(name)
        resolved_args = tuple(self.resolve(a, generics, scope, depth) for a in args)
        if name == "Self":
            if scope is None:
                raise UnsupportedType("Self outside of a type")
            return Nominal(self.decls[scope])
        if name == "Void" and not args:
            return VOID
        if name == "Optional" and len(resolved_args) == 1:
            return OptionalType(resolved_args[0])
        if name in PRIMITIVE_NAMES and not args:
            return Primitive(PRIMITIVE_NAMES[name])
        for candidate in _scoped_candidates(name, scope):
            if candidate in self.parser.aliases:
                return self.resolve(self.parser.aliases[candidate], generics, scope, depth + 1)
            if candidate in self.decls:
                if candidate not in self.module.types:
                    raise UnsupportedType("type is not exported", candidate)
                if resolved_args:
                    raise UnsupportedType("generic types are not supported", candidate)
                return Nominal(self.decls[candidate])
        decl = known_decl(name)
        if decl is not None:
            return Nominal(decl, resolved_args)
        raise UnsupportedType("unknown type", name)


def _scoped_candidates(name: str, scope: str | None) -> list[str]:
    """Qualified names to try for name, innermost scope first."""
    candidates: list[str] = []
    while scope:
        candidates.append(scope + "." + name)
        if "." not in scope:
            scope = None
        else:
            scope = scope[: scope.rindex(".")]
    candidates.append(name)
    return candidates


def parse(source: str, module_name: str, filename: str | None = None) -> ImportedModule:
    """Parse a Swift interface into an ImportedModule."""
    parser = Parser(tokenize(source), source)
    parser.parse_file()
    return Resolver(parser, module_name, filename).run()
