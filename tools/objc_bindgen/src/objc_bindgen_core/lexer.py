from __future__ import annotations

import enum
from dataclasses import dataclass, field

MACRO_MIN_LENGTH = 3

# Macros the parser consumes itself; never elided by the heuristic.
STRUCTURAL_MACROS = frozenset(
    {
        "NS_ENUM",
        "NS_OPTIONS",
        "NS_CLOSED_ENUM",
        "NS_ERROR_ENUM",
        "NS_ASSUME_NONNULL_BEGIN",
        "NS_ASSUME_NONNULL_END",
        "NS_DESIGNATED_INITIALIZER",
        "NS_REQUIRES_SUPER",
    }
)

# Upper-case spellings that are types or constants, not macros.
KNOWN_UPPERCASE_NAMES = frozenset(
    {
        "BOOL",
        "SEL",
        "IMP",
        "NULL",
        "UINT8_MAX",
        "UINT16_MAX",
        "UINT32_MAX",
        "UINT64_MAX",
        "UINT_MAX",
        "INT8_MAX",
        "INT16_MAX",
        "INT32_MAX",
        "INT64_MAX",
        "INT_MAX",
        "INT8_MIN",
        "INT16_MIN",
        "INT32_MIN",
        "INT64_MIN",
        "INT_MIN",
        "CGFLOAT_MAX",
        "CGFLOAT_MIN",
    }
)

DEFAULT_EXTERN_MACROS = frozenset(
    {
        "FOUNDATION_EXPORT",
        "FOUNDATION_EXTERN",
        "UIKIT_EXTERN",
        "APPKIT_EXTERN",
        "PSPDF_EXPORT",
    }
)

INIT_UNAVAILABLE_MARKERS = ("INIT_UNAVAILABLE", "EMPTY_INIT")
DROPPED_IDENTIFIERS = frozenset({"__unused", "__kindof"})


class TokenKind(enum.Enum):
    IDENTIFIER = "identifier"
    STRING = "string"
    NUMBER = "number"
    CHAR = "char"

    AT_INTERFACE = "@interface"
    AT_END = "@end"
    AT_PROTOCOL = "@protocol"
    AT_PROPERTY = "@property"
    AT_OPTIONAL = "@optional"
    AT_REQUIRED = "@required"
    AT_CLASS = "@class"

    TYPEDEF = "typedef"
    ENUM = "enum"
    STRUCT = "struct"
    UNION = "union"
    CONST = "const"
    VOID = "void"
    EXTERN = "extern"
    STATIC = "static"
    INLINE = "inline"

    OPEN_PAREN = "("
    CLOSE_PAREN = ")"
    OPEN_BRACE = "{"
    CLOSE_BRACE = "}"
    OPEN_BRACKET = "["
    CLOSE_BRACKET = "]"
    OPEN_ANGLE = "<"
    CLOSE_ANGLE = ">"
    SEMICOLON = ";"
    COLON = ":"
    COMMA = ","
    ASTERISK = "*"
    MINUS = "-"
    PLUS = "+"
    EQUALS = "="
    DOT = "."
    ELLIPSIS = "..."
    CARET = "^"
    AMPERSAND = "&"
    PIPE = "|"
    TILDE = "~"
    EXCLAMATION = "!"
    SLASH = "/"
    PERCENT = "%"

    DIRECTIVE = "directive"
    NONNULL_BEGIN = "nonnull_begin"
    NONNULL_END = "nonnull_end"

    EOF = "eof"
    UNKNOWN = "unknown"


AT_KEYWORDS = {
    "interface": TokenKind.AT_INTERFACE,
    "end": TokenKind.AT_END,
    "protocol": TokenKind.AT_PROTOCOL,
    "property": TokenKind.AT_PROPERTY,
    "optional": TokenKind.AT_OPTIONAL,
    "required": TokenKind.AT_REQUIRED,
    "class": TokenKind.AT_CLASS,
}

KEYWORDS = {
    "typedef": TokenKind.TYPEDEF,
    "enum": TokenKind.ENUM,
    "struct": TokenKind.STRUCT,
    "union": TokenKind.UNION,
    "const": TokenKind.CONST,
    "void": TokenKind.VOID,
    "extern": TokenKind.EXTERN,
    "static": TokenKind.STATIC,
    "inline": TokenKind.INLINE,
    "NS_ASSUME_NONNULL_BEGIN": TokenKind.NONNULL_BEGIN,
    "NS_ASSUME_NONNULL_END": TokenKind.NONNULL_END,
}

PUNCTUATION = {
    "(": TokenKind.OPEN_PAREN,
    ")": TokenKind.CLOSE_PAREN,
    "{": TokenKind.OPEN_BRACE,
    "}": TokenKind.CLOSE_BRACE,
    "[": TokenKind.OPEN_BRACKET,
    "]": TokenKind.CLOSE_BRACKET,
    "<": TokenKind.OPEN_ANGLE,
    ">": TokenKind.CLOSE_ANGLE,
    ";": TokenKind.SEMICOLON,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
    "*": TokenKind.ASTERISK,
    "-": TokenKind.MINUS,
    "+": TokenKind.PLUS,
    "=": TokenKind.EQUALS,
    ".": TokenKind.DOT,
    "^": TokenKind.CARET,
    "&": TokenKind.AMPERSAND,
    "|": TokenKind.PIPE,
    "~": TokenKind.TILDE,
    "!": TokenKind.EXCLAMATION,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
}

NUMBER_SUFFIXES = "uUlLfF"
HEX_DIGITS = "0123456789abcdefABCDEF"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    line: int
    column: int


@dataclass(frozen=True)
class LexerOptions:
    """Tokenizer escape hatches.

    ``extern_macros`` are re-tokenized as ``extern`` (on top of
    ``DEFAULT_EXTERN_MACROS``); ``extra_skip_macros`` are elided together with
    a following parenthesized argument list whatever their casing.
    """

    macro_heuristic: bool = True
    extern_macros: frozenset[str] = field(default_factory=frozenset)
    extra_skip_macros: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_config(cls, lexer_cfg: dict[str, object] | None) -> "LexerOptions":
        payload = lexer_cfg or {}
        return cls(
            macro_heuristic=bool(payload.get("macro_heuristic", True)),
            extern_macros=frozenset(str(item) for item in (payload.get("extern_macros") or [])),
            extra_skip_macros=frozenset(str(item) for item in (payload.get("extra_skip_macros") or [])),
        )

    def is_extern_macro(self, ident: str) -> bool:
        return ident in DEFAULT_EXTERN_MACROS or ident in self.extern_macros


DEFAULT_LEXER_OPTIONS = LexerOptions()


def is_likely_macro(ident: str, options: LexerOptions = DEFAULT_LEXER_OPTIONS) -> bool:
    """Return True when ``ident`` reads as an upper-snake-case vendor macro."""
    if not options.macro_heuristic:
        return False
    if len(ident) < MACRO_MIN_LENGTH:
        return False
    if ident in STRUCTURAL_MACROS or ident in KNOWN_UPPERCASE_NAMES:
        return False
    has_underscore = False
    has_letter = False
    for ch in ident:
        if ch == "_":
            has_underscore = True
        elif "A" <= ch <= "Z":
            has_letter = True
        elif "0" <= ch <= "9":
            continue
        else:
            return False
    return has_underscore and has_letter


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class _Scanner:
    def __init__(self, text: str, options: LexerOptions) -> None:
        self.text = text
        self.options = options
        self.pos = 0
        self.line = 1
        self.column = 1

    def peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.text[idx] if idx < len(self.text) else "\0"

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def skip_whitespace_and_comments(self) -> None:
        while not self.at_end():
            ch = self.peek()
            if ch.isspace():
                self.advance()
            elif ch == "/" and self.peek(1) == "/":
                while not self.at_end() and self.peek() != "\n":
                    self.advance()
            elif ch == "/" and self.peek(1) == "*":
                self.advance()
                self.advance()
                while not self.at_end():
                    if self.peek() == "*" and self.peek(1) == "/":
                        self.advance()
                        self.advance()
                        break
                    self.advance()
            else:
                return

    def skip_balanced_parens(self) -> None:
        while not self.at_end() and self.peek().isspace():
            self.advance()
        if self.peek() != "(":
            return
        self.advance()
        depth = 1
        while not self.at_end() and depth > 0:
            ch = self.advance()
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1

    def read_identifier(self) -> str:
        start = self.pos
        while not self.at_end() and _is_ident_char(self.peek()):
            self.advance()
        return self.text[start:self.pos]

    def read_quoted(self, quote: str) -> str:
        self.advance()
        chars: list[str] = []
        while not self.at_end() and self.peek() != quote:
            if self.peek() == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.advance())
            chars.append(self.advance())
        if not self.at_end():
            self.advance()
        return "".join(chars)

    def read_directive(self) -> str:
        chars: list[str] = []
        while not self.at_end() and self.peek() != "\n":
            if self.peek() == "\\" and self.peek(1) == "\n":
                self.advance()
                self.advance()
                continue
            if self.peek() == "\\" and self.peek(1) == "\r" and self.peek(2) == "\n":
                self.advance()
                self.advance()
                self.advance()
                continue
            chars.append(self.advance())
        return "".join(chars).rstrip("\r")

    def read_number(self) -> str:
        start = self.pos
        if self.peek() == "0" and self.peek(1) in "xX":
            self.advance()
            self.advance()
            while not self.at_end() and self.peek() in HEX_DIGITS:
                self.advance()
        else:
            while not self.at_end() and (self.peek().isdigit() or self.peek() == "."):
                self.advance()
        while not self.at_end() and self.peek() in NUMBER_SUFFIXES:
            self.advance()
        return self.text[start:self.pos]

    def next_token(self) -> Token | None:
        self.skip_whitespace_and_comments()
        line, column = self.line, self.column
        if self.at_end():
            return Token(TokenKind.EOF, "", line, column)

        ch = self.peek()
        if ch == "#":
            return Token(TokenKind.DIRECTIVE, self.read_directive(), line, column)

        if ch == "@":
            self.advance()
            if self.peek() == '"':
                return Token(TokenKind.STRING, self.read_quoted('"'), line, column)
            if _is_ident_start(self.peek()):
                word = self.read_identifier()
                kind = AT_KEYWORDS.get(word)
                if kind is not None:
                    return Token(kind, f"@{word}", line, column)
                return Token(TokenKind.IDENTIFIER, f"@{word}", line, column)
            return Token(TokenKind.UNKNOWN, "@", line, column)

        if ch == '"':
            return Token(TokenKind.STRING, self.read_quoted('"'), line, column)

        if ch == "'" and self.pos + 2 < len(self.text):
            return Token(TokenKind.CHAR, self.read_quoted("'"), line, column)

        if ch.isdigit() or (ch == "." and self.peek(1).isdigit()):
            return Token(TokenKind.NUMBER, self.read_number(), line, column)

        if _is_ident_start(ch):
            return self.classify_identifier(self.read_identifier(), line, column)

        if ch == "." and self.peek(1) == "." and self.peek(2) == ".":
            self.advance()
            self.advance()
            self.advance()
            return Token(TokenKind.ELLIPSIS, "...", line, column)

        self.advance()
        return Token(PUNCTUATION.get(ch, TokenKind.UNKNOWN), ch, line, column)

    def classify_identifier(self, ident: str, line: int, column: int) -> Token | None:
        # None means the identifier was elided and scanning should continue.
        if ident in self.options.extra_skip_macros or ident == "__attribute__":
            self.skip_balanced_parens()
            return None
        if ident in DROPPED_IDENTIFIERS:
            return None
        if self.options.is_extern_macro(ident):
            return Token(TokenKind.EXTERN, ident, line, column)
        if any(marker in ident for marker in INIT_UNAVAILABLE_MARKERS):
            return Token(TokenKind.IDENTIFIER, ident, line, column)
        if is_likely_macro(ident, self.options):
            self.skip_balanced_parens()
            return None
        return Token(KEYWORDS.get(ident, TokenKind.IDENTIFIER), ident, line, column)


def tokenize(text: str, options: LexerOptions | None = None) -> list[Token]:
    """Split header text into tokens, always ending with an EOF token.

    Never raises: characters outside the grammar become UNKNOWN tokens.
    """
    scanner = _Scanner(text, options or DEFAULT_LEXER_OPTIONS)
    tokens: list[Token] = []
    while True:
        token = scanner.next_token()
        if token is None:
            continue
        tokens.append(token)
        if token.kind is TokenKind.EOF:
            return tokens
