"""Swift interface tokenizer: lexes source into a flat token list."""

from __future__ import annotations

from ..errors import ParseError


# Token type constants
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

# Declaration keywords the parser dispatches on. Contextual keywords such
# as get/set/mutating/async stay identifiers.
KEYWORDS: set[str] = {
    "actor",
    "case",
    "class",
    "deinit",
    "enum",
    "extension",
    "func",
    "import",
    "init",
    "let",
    "protocol",
    "struct",
    "subscript",
    "typealias",
    "var",
    "where",
}

MODIFIERS: set[str] = {
    "public",
    "open",
    "internal",
    "private",
    "fileprivate",
    "package",
    "final",
    "static",
    "class",
    "mutating",
    "nonmutating",
    "override",
    "required",
    "convenience",
    "dynamic",
    "lazy",
    "nonisolated",
    "optional",
    "indirect",
    "weak",
    "unowned",
}

# Multi-character operators, sorted by length descending for greedy matching
MULTI_OPS: list[str] = [
    "...",
    "..<",
    "===",
    "!==",
    "->",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "??",
    "?.",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "|",
    "^",
    "~",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ":",
    ";",
    ".",
    "?",
    "@",
    "#",
    "\\",
    "$",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int, start: int = 0, end: int = 0):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col
        self.start: int = start  # source offsets, end exclusive
        self.end: int = end

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _skip_block_comment(source: str, pos: int, line: int, col: int) -> tuple[int, int, int]:
    """Skip a possibly nested /* */ comment starting at pos. Returns (pos, line, col)."""
    start_line = line
    start_col = col
    depth = 0
    length = len(source)
    while pos < length:
        if source.startswith("/*", pos):
            depth += 1
            pos += 2
            col += 2
            continue
        if source.startswith("*/", pos):
            depth -= 1
            pos += 2
            col += 2
            if depth == 0:
                return pos, line, col
            continue
        if source[pos] == "\n":
            line += 1
            col = 1
        else:
            col += 1
        pos += 1
    raise ParseError("unterminated block comment", start_line, start_col)


def _scan_string(source: str, pos: int, line: int, col: int) -> tuple[str, int]:
    """Scan a string literal starting after the opening quote. Returns (value, new_pos).

    Interpolations are kept verbatim; only simple escapes are resolved.
    """
    length = len(source)
    value = ""
    while pos < length:
        c = source[pos]
        if c == '"':
            return value, pos + 1
        if c == "\n":
            raise ParseError("unterminated string literal", line, col)
        if c == "\\":
            if pos + 1 >= length:
                raise ParseError("unterminated string literal", line, col)
            nxt = source[pos + 1]
            if nxt == "(":
                depth = 0
                start = pos
                pos += 1
                while pos < length:
                    if source[pos] == "(":
                        depth += 1
                    elif source[pos] == ")":
                        depth -= 1
                        if depth == 0:
                            break
                    elif source[pos] == "\n":
                        raise ParseError("unterminated string interpolation", line, col)
                    pos += 1
                value += source[start : pos + 1]
                pos += 1
                continue
            if nxt in ESCAPE_MAP:
                value += ESCAPE_MAP[nxt]
                pos += 2
                continue
            raise ParseError("invalid escape: \\" + nxt, line, col)
        value += c
        pos += 1
    raise ParseError("unterminated string literal", line, col)


def tokenize(source: str) -> list[Token]:
    """Tokenize a Swift interface into a flat list ending with TK_EOF."""
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if source.startswith("//", pos):
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        # Block comment: /* */
        if source.startswith("/*", pos):
            pos, line, col = _skip_block_comment(source, pos, line, col)
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # String literal
        if c == '"':
            if source.startswith('"""', pos):
                end = source.find('"""', pos + 3)
                if end < 0:
                    raise ParseError("unterminated multi-line string", start_line, start_col)
                text = source[pos + 3 : end]
                tokens.append(Token(TK_STRING, text, start_line, start_col, start_pos, end + 3))
                line += text.count("\n")
                pos = end + 3
                col = 1 if "\n" in text else col + (pos - start_pos)
                continue
            value, pos = _scan_string(source, pos + 1, start_line, start_col)
            col += pos - start_pos
            tokens.append(Token(TK_STRING, value, start_line, start_col, start_pos, pos))
            continue

        # Backticked identifier
        if c == "`":
            end = source.find("`", pos + 1)
            if end < 0 or "\n" in source[pos:end]:
                raise ParseError("unterminated backticked identifier", start_line, start_col)
            tokens.append(Token(TK_IDENT, source[pos + 1 : end], start_line, start_col, start_pos, end + 1))
            col += end + 1 - pos
            pos = end + 1
            continue

        # Number
        if _is_digit(c):
            is_float = False
            if source.startswith("0x", pos) or source.startswith("0b", pos) or source.startswith("0o", pos):
                pos += 2
                while pos < length and (_is_alnum(source[pos])):
                    pos += 1
            else:
                while pos < length and (_is_digit(source[pos]) or source[pos] == "_"):
                    pos += 1
                if pos + 1 < length and source[pos] == "." and _is_digit(source[pos + 1]):
                    is_float = True
                    pos += 1
                    while pos < length and (_is_digit(source[pos]) or source[pos] == "_"):
                        pos += 1
                if pos < length and (source[pos] == "e" or source[pos] == "E"):
                    is_float = True
                    pos += 1
                    if pos < length and (source[pos] == "+" or source[pos] == "-"):
                        pos += 1
                    while pos < length and _is_digit(source[pos]):
                        pos += 1
            text = source[start_pos:pos]
            col += pos - start_pos
            tokens.append(Token(TK_FLOAT if is_float else TK_INT, text, start_line, start_col, start_pos, pos))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
            text = source[start_pos:pos]
            col += pos - start_pos
            tokens.append(Token(TK_IDENT, text, start_line, start_col, start_pos, pos))
            continue

        # Multi-char operators
        matched = False
        for op in MULTI_OPS:
            if source.startswith(op, pos):
                tokens.append(Token(TK_OP, op, start_line, start_col, start_pos, pos + len(op)))
                pos += len(op)
                col += len(op)
                matched = True
                break
        if matched:
            continue

        if c in SINGLE_OPS or c == "'":
            tokens.append(Token(TK_OP, c, start_line, start_col, start_pos, pos + 1))
            pos += 1
            col += 1
            continue

        raise ParseError("unexpected character " + repr(c), start_line, start_col)

    tokens.append(Token(TK_EOF, "", line, col, length, length))
    return tokens
