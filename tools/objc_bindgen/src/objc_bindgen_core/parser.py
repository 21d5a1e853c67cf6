from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Sequence

from ._core_base import read_header_text
from .lexer import LexerOptions, Token, TokenKind, tokenize
from .model import (
    Enum,
    EnumValue,
    Function,
    Header,
    Interface,
    Method,
    Parameter,
    ParseDiagnostic,
    Property,
    Protocol,
    Struct,
    StructField,
    Typedef,
    has_nullable_marker,
    type_is_nullable,
)

NS_ENUM_MACROS = frozenset({"NS_ENUM", "NS_OPTIONS", "NS_CLOSED_ENUM", "NS_ERROR_ENUM"})
TRAILING_METHOD_MACROS = frozenset({"NS_DESIGNATED_INITIALIZER", "NS_REQUIRES_SUPER"})
NULLABILITY_ANNOTATIONS = frozenset(
    {
        "nullable",
        "nonnull",
        "_Nullable",
        "_Nonnull",
        "_Null_unspecified",
        "null_unspecified",
        "__nullable",
        "__nonnull",
    }
)
NULLABLE_ATTRIBUTES = frozenset({"nullable", "_Nullable", "__nullable"})
TYPE_PREFIX_KINDS = frozenset({TokenKind.CONST, TokenKind.STRUCT, TokenKind.ENUM, TokenKind.UNION})
KEYWORD_SELECTOR_KINDS = frozenset(
    {TokenKind.VOID, TokenKind.CONST, TokenKind.STRUCT, TokenKind.ENUM, TokenKind.UNION}
)
FUNCTION_PREFIX_KINDS = frozenset({TokenKind.EXTERN, TokenKind.STATIC, TokenKind.INLINE})
FUNCTION_LOOKAHEAD_STOP = frozenset(
    {
        TokenKind.SEMICOLON,
        TokenKind.OPEN_BRACE,
        TokenKind.AT_INTERFACE,
        TokenKind.AT_PROTOCOL,
        TokenKind.AT_END,
    }
)
RECOVERY_STOP = frozenset({TokenKind.AT_END, TokenKind.AT_INTERFACE, TokenKind.AT_PROTOCOL})
# Name-position tokens that end a declaration's type.
TYPE_NAME_FOLLOWERS = frozenset(
    {
        TokenKind.SEMICOLON,
        TokenKind.CLOSE_PAREN,
        TokenKind.OPEN_BRACKET,
        TokenKind.COMMA,
        TokenKind.EQUALS,
        TokenKind.COLON,
    }
)
C_TYPE_WORDS = frozenset({"int", "long", "short", "char", "double", "float", "signed", "unsigned"})
FUNCTION_LOOKAHEAD = 30
CALLABLE_TYPEDEF_LOOKAHEAD = 20
UNARY_OPERATORS = frozenset({"-", "~", "!", "+"})
EXPRESSION_OPERATORS = frozenset({"(", "=", "|", "&", "<<", ">>", "+", "-", "*", "/", "%", "~", "!", ","})

_NO_SPACE_BEFORE = frozenset({">", ",", ")", "]", "[", "<"})
_NO_SPACE_AFTER = frozenset({"<", "(", "["})


class ParseError(Exception):
    def __init__(self, message: str, token: Token) -> None:
        super().__init__(message)
        self.token = token


def join_type_text(values: Sequence[str]) -> str:
    """Render type tokens with canonical spacing (``NSArray<NSString *> *``)."""
    out = ""
    for value in values:
        if not value:
            continue
        if not out:
            out = value
            continue
        prev = out[-1]
        if value == "*":
            out += "*" if prev in "*(^" else " *"
        elif value in _NO_SPACE_BEFORE or value.startswith("<") or prev in _NO_SPACE_AFTER:
            out += value
        elif value == "^" and prev == "(":
            out += value
        elif value == "(" and prev == ")":
            out += value
        else:
            out += f" {value}"
    return out


def join_expression_tokens(tokens: Sequence[Token]) -> str:
    """Render an enum value expression as text, without evaluating it."""
    pieces: list[str] = []
    previous: Token | None = None
    for token in tokens:
        # '<' '<' from the tokenizer is a shift operator when the characters touch.
        shift_pair = (
            previous is not None
            and token.kind in (TokenKind.OPEN_ANGLE, TokenKind.CLOSE_ANGLE)
            and previous.kind is token.kind
            and previous.line == token.line
            and previous.column + 1 == token.column
        )
        if shift_pair:
            pieces[-1] += token.value
        else:
            pieces.append(token.value)
        previous = token

    out = ""
    for idx, piece in enumerate(pieces):
        if idx == 0:
            out = piece
            continue
        prev = pieces[idx - 1]
        unary = prev in UNARY_OPERATORS and (idx == 1 or pieces[idx - 2] in EXPRESSION_OPERATORS)
        if prev == "(" or piece == ")" or unary:
            out += piece
        else:
            out += f" {piece}"
    return out


class _Parser:
    def __init__(self, tokens: Sequence[Token], filename: str) -> None:
        self.tokens: tuple[Token, ...] = tuple(tokens)
        if not self.tokens or self.tokens[-1].kind is not TokenKind.EOF:
            last_line = self.tokens[-1].line if self.tokens else 1
            self.tokens = self.tokens + (Token(TokenKind.EOF, "", last_line, 1),)
        self.pos = 0
        self.in_nonnull_scope = False
        self.header = Header(file=filename)

    # -- cursor helpers -------------------------------------------------

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def is_at_end(self) -> bool:
        return self.tokens[self.pos].kind is TokenKind.EOF

    def check(self, kind: TokenKind) -> bool:
        return not self.is_at_end() and self.tokens[self.pos].kind is kind

    def check_value(self, kind: TokenKind, values: frozenset[str] | set[str]) -> bool:
        return self.check(kind) and self.tokens[self.pos].value in values

    def match(self, kind: TokenKind) -> bool:
        if not self.check(kind):
            return False
        self.pos += 1
        return True

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def expect(self, kind: TokenKind, message: str) -> Token:
        if self.check(kind):
            return self.advance()
        current = self.peek()
        got = "end of input" if current.kind is TokenKind.EOF else f"'{current.value}'"
        raise ParseError(f"{message}, got {got}", current)

    def attempt(self, production: Callable[..., Any], *args: Any) -> ParseDiagnostic | None:
        start = self.pos
        try:
            production(*args)
        except ParseError as exc:
            if self.pos == start:
                self.advance()
            return ParseDiagnostic(
                message=str(exc),
                line=exc.token.line,
                column=exc.token.column,
                file=self.header.file,
            )
        return None

    def skip_to_recovery_point(self) -> None:
        while not self.is_at_end():
            if self.peek().kind in RECOVERY_STOP:
                return
            if self.advance().kind is TokenKind.SEMICOLON:
                return

    def skip_balanced(self, open_kind: TokenKind, close_kind: TokenKind) -> None:
        # Assumes the opening token was consumed.
        depth = 1
        while depth > 0 and not self.is_at_end():
            token = self.advance()
            if token.kind is open_kind:
                depth += 1
            elif token.kind is close_kind:
                depth -= 1

    def skip_to_semicolon(self) -> None:
        while not self.is_at_end() and not self.check(TokenKind.SEMICOLON):
            self.advance()
        self.match(TokenKind.SEMICOLON)

    def record(self, diagnostic: ParseDiagnostic | None) -> bool:
        if diagnostic is None:
            return False
        self.header.diagnostics.append(diagnostic)
        return True

    # -- driver ---------------------------------------------------------

    def parse(self) -> Header:
        while not self.is_at_end():
            if self.record(self.attempt(self.parse_top_level)):
                self.skip_to_recovery_point()
        return self.header

    def parse_top_level(self) -> None:
        token = self.peek()
        kind = token.kind
        if kind is TokenKind.NONNULL_BEGIN:
            self.advance()
            self.in_nonnull_scope = True
        elif kind is TokenKind.NONNULL_END:
            self.advance()
            self.in_nonnull_scope = False
        elif kind is TokenKind.AT_INTERFACE:
            self.advance()
            self.parse_interface()
        elif kind is TokenKind.AT_PROTOCOL:
            self.advance()
            self.parse_protocol_or_forward()
        elif kind is TokenKind.AT_CLASS:
            self.advance()
            self.parse_forward_classes()
        elif kind is TokenKind.TYPEDEF:
            self.parse_typedef()
        elif kind is TokenKind.ENUM:
            self.header.enums.append(self.parse_enum())
        elif kind is TokenKind.STRUCT:
            parsed = self.parse_struct()
            if parsed.name or parsed.fields:
                self.header.structs.append(parsed)
            self.match(TokenKind.SEMICOLON)
        elif kind is TokenKind.IDENTIFIER and token.value in NS_ENUM_MACROS:
            self.advance()
            self.header.enums.append(self.parse_ns_enum(token.value))
            self.match(TokenKind.SEMICOLON)
        elif kind in FUNCTION_PREFIX_KINDS:
            self.parse_function()
        elif kind in (TokenKind.IDENTIFIER, TokenKind.VOID) and self.looks_like_function():
            self.parse_function()
        else:
            self.advance()

    # -- interfaces -----------------------------------------------------

    def parse_interface(self) -> None:
        iface = Interface(name=self.expect(TokenKind.IDENTIFIER, "Expected interface name").value)

        # Lightweight generics on the class itself: @interface Box<ObjectType> : NSObject
        if self.check(TokenKind.OPEN_ANGLE) and self.angle_group_followed_by({TokenKind.COLON, TokenKind.OPEN_PAREN}):
            self.advance()
            self.skip_balanced(TokenKind.OPEN_ANGLE, TokenKind.CLOSE_ANGLE)

        if self.match(TokenKind.OPEN_PAREN):
            iface.category = self.advance().value if self.check(TokenKind.IDENTIFIER) else ""
            self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after category name")

        if self.match(TokenKind.COLON):
            iface.superclass = self.expect(TokenKind.IDENTIFIER, "Expected superclass name").value
            if self.check(TokenKind.OPEN_ANGLE) and self.angle_group_has_pointer():
                self.advance()
                self.skip_balanced(TokenKind.OPEN_ANGLE, TokenKind.CLOSE_ANGLE)

        if self.match(TokenKind.OPEN_ANGLE):
            iface.protocols = self.parse_identifier_list(TokenKind.CLOSE_ANGLE)
            self.expect(TokenKind.CLOSE_ANGLE, "Expected '>' after protocol list")

        if self.match(TokenKind.OPEN_BRACE):
            self.skip_balanced(TokenKind.OPEN_BRACE, TokenKind.CLOSE_BRACE)

        # Members parsed before a missing @end are kept.
        self.header.interfaces.append(iface)
        while not self.check(TokenKind.AT_END) and not self.is_at_end():
            if self.peek().kind in (TokenKind.AT_INTERFACE, TokenKind.AT_PROTOCOL):
                break
            if self.record(self.attempt(self.parse_interface_member, iface)):
                self.skip_member()
        self.expect(TokenKind.AT_END, "Expected '@end'")

    def parse_interface_member(self, iface: Interface) -> None:
        token = self.peek()
        if self.match(TokenKind.AT_PROPERTY):
            iface.properties.append(self.parse_property())
        elif self.match(TokenKind.MINUS):
            iface.instance_methods.append(self.parse_method())
        elif self.match(TokenKind.PLUS):
            iface.class_methods.append(self.parse_method())
        elif self.match(TokenKind.OPEN_BRACE):
            self.skip_balanced(TokenKind.OPEN_BRACE, TokenKind.CLOSE_BRACE)
        elif not self.toggle_nonnull_scope():
            if token.kind is TokenKind.IDENTIFIER and ("INIT_UNAVAILABLE" in token.value or "EMPTY_INIT" in token.value):
                iface.is_init_unavailable = True
            self.advance()

    def skip_member(self) -> None:
        while not self.is_at_end() and self.peek().kind not in RECOVERY_STOP:
            if self.advance().kind is TokenKind.SEMICOLON:
                return

    def toggle_nonnull_scope(self) -> bool:
        if self.match(TokenKind.NONNULL_BEGIN):
            self.in_nonnull_scope = True
            return True
        if self.match(TokenKind.NONNULL_END):
            self.in_nonnull_scope = False
            return True
        return False

    # -- protocols ------------------------------------------------------

    def parse_protocol_or_forward(self) -> None:
        name = self.expect(TokenKind.IDENTIFIER, "Expected protocol name").value

        if self.check(TokenKind.COMMA) or self.check(TokenKind.SEMICOLON):
            forwards = self.header.forward_declarations.protocols
            forwards.append(name)
            while self.match(TokenKind.COMMA):
                if self.check(TokenKind.IDENTIFIER):
                    forwards.append(self.advance().value)
            self.match(TokenKind.SEMICOLON)
            return

        proto = Protocol(name=name)
        if self.match(TokenKind.OPEN_ANGLE):
            proto.inherited_protocols = self.parse_identifier_list(TokenKind.CLOSE_ANGLE)
            self.expect(TokenKind.CLOSE_ANGLE, "Expected '>' after inherited protocols")
        self.header.protocols.append(proto)

        state = {"optional": False}
        while not self.check(TokenKind.AT_END) and not self.is_at_end():
            if self.peek().kind in (TokenKind.AT_INTERFACE, TokenKind.AT_PROTOCOL):
                break
            if self.record(self.attempt(self.parse_protocol_member, proto, state)):
                self.skip_member()
        self.expect(TokenKind.AT_END, "Expected '@end'")

    def parse_protocol_member(self, proto: Protocol, state: dict[str, bool]) -> None:
        optional = state["optional"]
        if self.match(TokenKind.AT_OPTIONAL):
            state["optional"] = True
        elif self.match(TokenKind.AT_REQUIRED):
            state["optional"] = False
        elif self.match(TokenKind.AT_PROPERTY):
            prop = self.parse_property()
            prop.is_optional = optional
            proto.properties.append(prop)
        elif self.check(TokenKind.MINUS) or self.check(TokenKind.PLUS):
            is_class = self.advance().kind is TokenKind.PLUS
            method = self.parse_method()
            method.is_optional = optional
            if is_class:
                target = proto.optional_class_methods if optional else proto.required_class_methods
            else:
                target = proto.optional_instance_methods if optional else proto.required_instance_methods
            target.append(method)
        elif self.check(TokenKind.TYPEDEF):
            self.parse_typedef()
        elif not self.toggle_nonnull_scope():
            self.advance()

    # -- properties and methods ----------------------------------------

    def parse_property(self) -> Property:
        prop = Property(name="", type="", in_nonnull_scope=self.in_nonnull_scope)

        if self.match(TokenKind.OPEN_PAREN):
            while not self.check(TokenKind.CLOSE_PAREN) and not self.is_at_end():
                if self.check(TokenKind.IDENTIFIER) or self.check(TokenKind.CONST):
                    attr = self.advance().value
                    if self.match(TokenKind.EQUALS):
                        value = self.advance().value
                        if self.match(TokenKind.COLON):
                            value += ":"
                        attr = f"{attr}={value}"
                    prop.attributes.append(attr)
                    if attr in NULLABLE_ATTRIBUTES:
                        prop.is_nullable = True
                if not self.match(TokenKind.COMMA):
                    break
            self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after property attributes")

        base_type = self.parse_type()
        if self.check(TokenKind.OPEN_PAREN) and self.peek(1).kind is TokenKind.CARET:
            self.advance()
            self.advance()
            if self.check_value(TokenKind.IDENTIFIER, NULLABILITY_ANNOTATIONS):
                if self.advance().value in NULLABLE_ATTRIBUTES:
                    prop.is_nullable = True
            prop.name = self.expect(TokenKind.IDENTIFIER, "Expected block property name").value
            self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after block name")
            params = self.parse_parenthesized_text() if self.match(TokenKind.OPEN_PAREN) else ""
            prop.type = f"{base_type} (^)({params})"
        else:
            prop.type = base_type
            prop.name = self.expect(TokenKind.IDENTIFIER, "Expected property name").value

        if not prop.is_nullable and type_is_nullable(prop.type):
            prop.is_nullable = True
        self.match(TokenKind.SEMICOLON)
        return prop

    def parse_method(self) -> Method:
        method = Method(selector="", return_type="id", in_nonnull_scope=self.in_nonnull_scope)

        if self.match(TokenKind.OPEN_PAREN):
            method.return_type = self.parse_type_inside_parens()
            self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after return type")
        method.is_return_nullable = type_is_nullable(method.return_type)

        parts: list[str] = []
        if self.check_selector_part():
            parts.append(self.advance().value)
        else:
            raise ParseError("Expected method selector", self.peek())

        if self.match(TokenKind.COLON):
            parts.append(":")
            method.parameters.append(self.parse_method_parameter())
            while True:
                if self.check_selector_part() and self.peek(1).kind is TokenKind.COLON:
                    parts.append(self.advance().value)
                    self.advance()
                # Unlabeled segments (- (void)foo:(int)a :(int)b) still take a parameter.
                elif not self.match(TokenKind.COLON):
                    break
                parts.append(":")
                method.parameters.append(self.parse_method_parameter())
            # Variadic tail (- (void)log:(NSString *)format, ...) is not part of the selector.
            if self.check(TokenKind.COMMA) and self.peek(1).kind is TokenKind.ELLIPSIS:
                self.advance()
                self.advance()
        method.selector = "".join(parts)

        while self.check_value(TokenKind.IDENTIFIER, TRAILING_METHOD_MACROS):
            if self.advance().value == "NS_DESIGNATED_INITIALIZER":
                method.is_designated_initializer = True
        self.match(TokenKind.SEMICOLON)
        return method

    def check_selector_part(self) -> bool:
        token = self.peek()
        if token.kind is TokenKind.IDENTIFIER:
            return token.value not in TRAILING_METHOD_MACROS
        return token.kind in KEYWORD_SELECTOR_KINDS

    def parse_method_parameter(self) -> Parameter:
        param = Parameter(name="", type="id")
        if self.match(TokenKind.OPEN_PAREN):
            param.type = self.parse_type_inside_parens()
            self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after parameter type")
        param.is_nullable = type_is_nullable(param.type)
        if self.check(TokenKind.IDENTIFIER):
            param.name = self.advance().value
        return param

    # -- enums ----------------------------------------------------------

    def parse_enum(self) -> Enum:
        self.advance()
        node = Enum()
        if self.check(TokenKind.STRUCT) or self.check_value(TokenKind.IDENTIFIER, {"class", "struct"}):
            self.advance()
        if self.check(TokenKind.IDENTIFIER) and self.peek().value not in NS_ENUM_MACROS:
            node.name = self.advance().value
        if self.match(TokenKind.COLON):
            backing: list[str] = []
            while not self.is_at_end() and not self.check(TokenKind.OPEN_BRACE) and not self.check(TokenKind.SEMICOLON):
                backing.append(self.advance().value)
            node.backing_type = join_type_text(backing)
        if self.match(TokenKind.OPEN_BRACE):
            node.values = self.parse_enum_values()
            self.expect(TokenKind.CLOSE_BRACE, "Expected '}' after enum values")
        self.match(TokenKind.SEMICOLON)
        return node

    def parse_ns_enum(self, macro: str) -> Enum:
        node = Enum(is_options=macro == "NS_OPTIONS")
        self.expect(TokenKind.OPEN_PAREN, f"Expected '(' after {macro}")
        if macro == "NS_ERROR_ENUM":
            self.advance()
            node.backing_type = "NSInteger"
        else:
            backing: list[str] = []
            while not self.is_at_end() and not self.check(TokenKind.COMMA) and not self.check(TokenKind.CLOSE_PAREN):
                backing.append(self.advance().value)
            node.backing_type = join_type_text(backing)
        self.expect(TokenKind.COMMA, f"Expected ',' in {macro}")
        node.name = self.expect(TokenKind.IDENTIFIER, "Expected enum name").value
        self.expect(TokenKind.CLOSE_PAREN, f"Expected ')' closing {macro}")
        if self.match(TokenKind.OPEN_BRACE):
            node.values = self.parse_enum_values()
            self.expect(TokenKind.CLOSE_BRACE, "Expected '}' after enum values")
        return node

    def parse_enum_values(self) -> list[EnumValue]:
        values: list[EnumValue] = []
        while not self.check(TokenKind.CLOSE_BRACE) and not self.is_at_end():
            if not self.check(TokenKind.IDENTIFIER):
                self.advance()
                continue
            value = EnumValue(name=self.advance().value)
            if self.match(TokenKind.EQUALS):
                value.value = self.parse_expression_until({TokenKind.COMMA, TokenKind.CLOSE_BRACE})
            values.append(value)
            self.match(TokenKind.COMMA)
        return values

    def parse_expression_until(self, terminators: set[TokenKind]) -> str:
        collected: list[Token] = []
        depth = 0
        while not self.is_at_end():
            token = self.peek()
            if depth == 0 and token.kind in terminators:
                break
            if token.kind is TokenKind.DIRECTIVE:
                self.advance()
                continue
            if token.kind is TokenKind.OPEN_PAREN:
                depth += 1
            elif token.kind is TokenKind.CLOSE_PAREN:
                depth -= 1
            collected.append(self.advance())
        return join_expression_tokens(collected)

    # -- structs --------------------------------------------------------

    def parse_struct(self) -> Struct:
        """Parse ``struct [Name] [{ fields }]``; the trailing ';' is left to the caller."""
        self.advance()
        node = Struct(name="")
        if self.check(TokenKind.IDENTIFIER):
            node.name = self.advance().value
        if self.match(TokenKind.OPEN_BRACE):
            while not self.check(TokenKind.CLOSE_BRACE) and not self.is_at_end():
                node.fields.extend(self.parse_struct_fields())
            self.expect(TokenKind.CLOSE_BRACE, "Expected '}' after struct fields")
        return node

    def parse_struct_fields(self) -> list[StructField]:
        if self.match(TokenKind.DIRECTIVE):
            return []

        if self.peek().kind in (TokenKind.STRUCT, TokenKind.UNION) and self.nested_definition_ahead():
            keyword = self.peek().value
            nested = self.parse_struct()
            if nested.name and keyword == "struct":
                self.header.structs.append(nested)
            base_type = f"{keyword} {nested.name}".strip()
        else:
            base_type = self.parse_type()
            if not base_type:
                self.advance()
                return []

        fields: list[StructField] = []
        while True:
            pointer = ""
            while self.match(TokenKind.ASTERISK):
                pointer += "*"
            field_type = join_type_text([base_type, *pointer])
            name = self.advance().value if self.check(TokenKind.IDENTIFIER) else ""
            while self.match(TokenKind.OPEN_BRACKET):
                size: list[str] = []
                while not self.is_at_end() and not self.check(TokenKind.CLOSE_BRACKET):
                    size.append(self.advance().value)
                self.expect(TokenKind.CLOSE_BRACKET, "Expected ']' after array size")
                field_type = f"{field_type} [{''.join(size)}]"
            if self.match(TokenKind.COLON):
                while not self.is_at_end() and self.peek().kind not in (TokenKind.COMMA, TokenKind.SEMICOLON, TokenKind.CLOSE_BRACE):
                    self.advance()
            fields.append(StructField(name=name, type=field_type))
            if not self.match(TokenKind.COMMA):
                break
        self.match(TokenKind.SEMICOLON)
        return fields

    def nested_definition_ahead(self) -> bool:
        following = self.peek(1)
        if following.kind is TokenKind.OPEN_BRACE:
            return True
        return following.kind is TokenKind.IDENTIFIER and self.peek(2).kind is TokenKind.OPEN_BRACE

    # -- typedefs -------------------------------------------------------

    def parse_typedef(self) -> None:
        self.advance()

        if self.check(TokenKind.IDENTIFIER) and self.peek().value in NS_ENUM_MACROS:
            macro = self.advance().value
            self.header.enums.append(self.parse_ns_enum(macro))
            self.match(TokenKind.SEMICOLON)
            return

        if self.check(TokenKind.ENUM):
            node = self.parse_enum()
            if self.check(TokenKind.IDENTIFIER):
                node.name = self.advance().value
                self.match(TokenKind.SEMICOLON)
            self.header.enums.append(node)
            return

        if self.check(TokenKind.STRUCT) and self.nested_definition_ahead():
            node = self.parse_struct()
            if self.check(TokenKind.IDENTIFIER):
                node.name = self.advance().value
            self.skip_to_semicolon()
            self.header.structs.append(node)
            return

        marker = self.callable_typedef_marker()
        if marker is not None:
            self.header.typedefs.append(self.parse_callable_typedef(marker))
            return

        collected: list[str] = []
        last_kind: TokenKind | None = None
        while not self.is_at_end() and not self.check(TokenKind.SEMICOLON):
            if self.check(TokenKind.OPEN_ANGLE):
                collected.append(self.parse_generic_suffix())
                last_kind = None
                continue
            token = self.advance()
            collected.append(token.value)
            last_kind = token.kind
        self.match(TokenKind.SEMICOLON)
        if last_kind is not TokenKind.IDENTIFIER or len(collected) < 2:
            return
        underlying = join_type_text(collected[:-1])
        self.header.typedefs.append(Typedef(name=collected[-1], underlying_type=underlying))

    def callable_typedef_marker(self) -> str | None:
        # typedef Ret (^Name)(Params); or typedef Ret (*Name)(Params);
        limit = min(len(self.tokens), self.pos + CALLABLE_TYPEDEF_LOOKAHEAD)
        for idx in range(self.pos, limit):
            kind = self.tokens[idx].kind
            if kind is TokenKind.CARET:
                return "^"
            if kind is TokenKind.SEMICOLON:
                return None
            if kind is TokenKind.OPEN_PAREN and idx + 1 < limit and self.tokens[idx + 1].kind is TokenKind.ASTERISK:
                return "*"
        return None

    def parse_callable_typedef(self, marker: str) -> Typedef:
        return_parts: list[str] = []
        while not self.is_at_end() and not (self.check(TokenKind.OPEN_PAREN) and self.peek(1).value == marker):
            if self.check(TokenKind.OPEN_ANGLE):
                return_parts.append(self.parse_generic_suffix())
                continue
            return_parts.append(self.advance().value)
        self.expect(TokenKind.OPEN_PAREN, "Expected '(' in callable typedef")
        self.advance()
        while self.check_value(TokenKind.IDENTIFIER, NULLABILITY_ANNOTATIONS):
            self.advance()
        name = self.advance().value if self.check(TokenKind.IDENTIFIER) else ""
        self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after typedef name")
        self.expect(TokenKind.OPEN_PAREN, "Expected '(' before typedef parameters")
        params = self.parse_parenthesized_text()
        self.skip_to_semicolon()
        return Typedef(name=name, underlying_type=f"{join_type_text(return_parts)} ({marker})({params})")

    # -- functions ------------------------------------------------------

    def looks_like_function(self) -> bool:
        limit = min(len(self.tokens), self.pos + FUNCTION_LOOKAHEAD)
        for idx in range(self.pos, limit):
            kind = self.tokens[idx].kind
            if kind is TokenKind.OPEN_PAREN:
                return True
            if kind in FUNCTION_LOOKAHEAD_STOP:
                return False
        return False

    def parse_function(self) -> None:
        is_inline = False
        while self.peek().kind in FUNCTION_PREFIX_KINDS:
            if self.advance().kind is not TokenKind.EXTERN:
                is_inline = True
            # extern "C" { ... } linkage blocks
            if self.match(TokenKind.STRING):
                self.match(TokenKind.OPEN_BRACE)
                return

        collected: list[Token] = []
        while not self.is_at_end() and not self.check(TokenKind.OPEN_PAREN) and not self.check(TokenKind.SEMICOLON):
            token = self.peek()
            if token.kind in RECOVERY_STOP or token.kind in (TokenKind.OPEN_BRACE, TokenKind.CLOSE_BRACE):
                raise ParseError("Unexpected token in declaration", token)
            if token.kind is TokenKind.OPEN_ANGLE:
                collected.append(Token(TokenKind.IDENTIFIER, self.parse_generic_suffix(), token.line, token.column))
                continue
            collected.append(self.advance())

        if len(collected) < 2 or collected[-1].kind is not TokenKind.IDENTIFIER:
            self.skip_to_semicolon()
            return
        name = collected[-1].value
        return_type = join_type_text([token.value for token in collected[:-1]])

        if not self.match(TokenKind.OPEN_PAREN):
            self.header.functions.append(
                Function(name=name, return_type=return_type, has_parameter_list=False, is_inline=is_inline)
            )
            self.skip_to_semicolon()
            return

        function = Function(name=name, return_type=return_type, is_inline=is_inline)
        function.parameters = self.parse_function_parameters()
        self.expect(TokenKind.CLOSE_PAREN, "Expected ')' after function parameters")
        if self.match(TokenKind.OPEN_BRACE):
            self.skip_balanced(TokenKind.OPEN_BRACE, TokenKind.CLOSE_BRACE)
            function.is_inline = True
        self.match(TokenKind.SEMICOLON)
        self.header.functions.append(function)

    def parse_function_parameters(self) -> list[Parameter]:
        params: list[Parameter] = []
        if self.check(TokenKind.CLOSE_PAREN):
            return params
        if self.check(TokenKind.VOID) and self.peek(1).kind is TokenKind.CLOSE_PAREN:
            self.advance()
            return params

        while not self.check(TokenKind.CLOSE_PAREN) and not self.is_at_end():
            if self.match(TokenKind.ELLIPSIS):
                params.append(Parameter(name="...", type="..."))
                break
            collected: list[Token] = []
            depth = 0
            while not self.is_at_end():
                if depth == 0 and (self.check(TokenKind.COMMA) or self.check(TokenKind.CLOSE_PAREN)):
                    break
                token = self.advance()
                if token.kind is TokenKind.OPEN_PAREN:
                    depth += 1
                elif token.kind is TokenKind.CLOSE_PAREN:
                    depth -= 1
                collected.append(token)
            params.append(split_parameter_tokens(collected))
            self.match(TokenKind.COMMA)
        return params

    def parse_forward_classes(self) -> None:
        classes = self.header.forward_declarations.classes
        while not self.check(TokenKind.SEMICOLON) and not self.is_at_end():
            if self.check(TokenKind.IDENTIFIER):
                classes.append(self.advance().value)
            elif self.match(TokenKind.OPEN_ANGLE):
                self.skip_balanced(TokenKind.OPEN_ANGLE, TokenKind.CLOSE_ANGLE)
            elif not self.match(TokenKind.COMMA):
                break
        self.match(TokenKind.SEMICOLON)

    # -- type helpers ---------------------------------------------------

    def parse_type(self) -> str:
        parts: list[str] = []
        while self.peek().kind in TYPE_PREFIX_KINDS:
            parts.append(self.advance().value)

        while self.check(TokenKind.IDENTIFIER) or self.check(TokenKind.VOID):
            parts.append(self.advance().value)
            if self.check(TokenKind.OPEN_ANGLE):
                parts.append(self.parse_generic_suffix())
            if self.check(TokenKind.IDENTIFIER) and self.peek(1).kind in TYPE_NAME_FOLLOWERS:
                break

        while self.check(TokenKind.ASTERISK) or (self.check(TokenKind.CONST) and parts and parts[-1] == "*"):
            parts.append(self.advance().value)

        if self.check_value(TokenKind.IDENTIFIER, NULLABILITY_ANNOTATIONS):
            parts.append(self.advance().value)
        return join_type_text(parts)

    def parse_type_inside_parens(self) -> str:
        parts: list[str] = []
        depth = 0
        while not self.is_at_end():
            if depth == 0 and self.check(TokenKind.CLOSE_PAREN):
                break
            if self.check(TokenKind.OPEN_ANGLE):
                parts.append(self.parse_generic_suffix())
                continue
            token = self.advance()
            if token.kind is TokenKind.OPEN_PAREN:
                depth += 1
            elif token.kind is TokenKind.CLOSE_PAREN:
                depth -= 1
            parts.append(token.value)
        return join_type_text(parts)

    def parse_parenthesized_text(self) -> str:
        """Collect the text of a parameter list; the '(' was consumed, the ')' is consumed."""
        parts: list[str] = []
        depth = 1
        while not self.is_at_end():
            if self.check(TokenKind.OPEN_ANGLE):
                parts.append(self.parse_generic_suffix())
                continue
            token = self.advance()
            if token.kind is TokenKind.OPEN_PAREN:
                depth += 1
            elif token.kind is TokenKind.CLOSE_PAREN:
                depth -= 1
                if depth == 0:
                    break
            parts.append(token.value)
        return join_type_text(parts)

    def parse_generic_suffix(self) -> str:
        parts = [self.advance().value]
        depth = 1
        while depth > 0 and not self.is_at_end():
            token = self.advance()
            if token.kind is TokenKind.OPEN_ANGLE:
                depth += 1
            elif token.kind is TokenKind.CLOSE_ANGLE:
                depth -= 1
            parts.append(token.value)
        return join_type_text(parts)

    def angle_group_has_pointer(self) -> bool:
        depth = 0
        for idx in range(self.pos, len(self.tokens)):
            kind = self.tokens[idx].kind
            if kind is TokenKind.OPEN_ANGLE:
                depth += 1
            elif kind is TokenKind.CLOSE_ANGLE:
                depth -= 1
                if depth == 0:
                    return False
            elif kind is TokenKind.ASTERISK:
                return True
            elif kind in (TokenKind.SEMICOLON, TokenKind.EOF, TokenKind.AT_END):
                return False
        return False

    def angle_group_followed_by(self, kinds: set[TokenKind]) -> bool:
        depth = 0
        for idx in range(self.pos, len(self.tokens)):
            kind = self.tokens[idx].kind
            if kind is TokenKind.OPEN_ANGLE:
                depth += 1
            elif kind is TokenKind.CLOSE_ANGLE:
                depth -= 1
                if depth == 0:
                    return idx + 1 < len(self.tokens) and self.tokens[idx + 1].kind in kinds
            elif kind in (TokenKind.SEMICOLON, TokenKind.EOF, TokenKind.AT_END):
                return False
        return False

    def parse_identifier_list(self, terminator: TokenKind) -> list[str]:
        names: list[str] = []
        while not self.check(terminator) and not self.is_at_end():
            if self.match(TokenKind.DIRECTIVE):
                continue
            if self.check(TokenKind.IDENTIFIER):
                names.append(self.advance().value)
            elif not self.match(TokenKind.COMMA):
                break
        return names


def split_parameter_tokens(tokens: Sequence[Token]) -> Parameter:
    values = [token.value for token in tokens]
    # Function-pointer parameter: void (*callback)(int)
    for idx in range(len(tokens) - 2):
        if tokens[idx].kind is TokenKind.OPEN_PAREN and tokens[idx + 1].kind in (TokenKind.ASTERISK, TokenKind.CARET):
            if tokens[idx + 2].kind is TokenKind.IDENTIFIER:
                name = tokens[idx + 2].value
                marker = tokens[idx + 1].value
                type_values = values[:idx] + ["(", marker, ")"] + values[idx + 4:]
                return Parameter(name=name, type=join_type_text(type_values), is_nullable=has_nullable_marker(" ".join(values)))
    has_type_word = any(
        token.kind in (TokenKind.IDENTIFIER, TokenKind.VOID, TokenKind.ASTERISK)
        for token in tokens[:-1]
    )
    last = tokens[-1] if tokens else None
    if (
        has_type_word
        and last is not None
        and last.kind is TokenKind.IDENTIFIER
        and last.value not in NULLABILITY_ANNOTATIONS
        and last.value not in C_TYPE_WORDS
    ):
        type_text = join_type_text(values[:-1])
        return Parameter(name=tokens[-1].value, type=type_text, is_nullable=has_nullable_marker(type_text))
    type_text = join_type_text(values)
    return Parameter(name="", type=type_text, is_nullable=has_nullable_marker(type_text))


def parse(tokens: Sequence[Token], filename: str = "") -> Header:
    """Build a Header from a token sequence; failures become ``Header.diagnostics``."""
    return _Parser(tokens, filename).parse()


def parse_header(text: str, filename: str = "", options: LexerOptions | None = None) -> Header:
    return parse(tokenize(text, options), filename)


def parse_file(path: Path, options: LexerOptions | None = None, display_name: str | None = None) -> Header:
    return parse_header(read_header_text(path), display_name or path.name, options)
