from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from objc_bindgen_core.lexer import LexerOptions, TokenKind, is_likely_macro, tokenize  # noqa: E402


def kinds(text: str, options: LexerOptions | None = None) -> list[TokenKind]:
    return [token.kind for token in tokenize(text, options)]


def values(text: str, options: LexerOptions | None = None) -> list[str]:
    return [token.value for token in tokenize(text, options) if token.kind is not TokenKind.EOF]


class MacroHeuristicTests(unittest.TestCase):
    def test_upper_snake_case_is_macro(self) -> None:
        self.assertTrue(is_likely_macro("NS_SWIFT_NAME"))
        self.assertTrue(is_likely_macro("PSPDF_CLASS_SWIFT"))
        self.assertTrue(is_likely_macro("API_AVAILABLE"))

    def test_known_names_and_structural_macros_are_kept(self) -> None:
        self.assertFalse(is_likely_macro("BOOL"))
        self.assertFalse(is_likely_macro("UINT8_MAX"))
        self.assertFalse(is_likely_macro("NS_ENUM"))
        self.assertFalse(is_likely_macro("NS_DESIGNATED_INITIALIZER"))

    def test_mixed_case_and_short_names_are_not_macros(self) -> None:
        self.assertFalse(is_likely_macro("Foo_Bar"))
        self.assertFalse(is_likely_macro("URL"))
        self.assertFalse(is_likely_macro("_A"))

    def test_heuristic_can_be_disabled(self) -> None:
        self.assertFalse(is_likely_macro("NS_SWIFT_NAME", LexerOptions(macro_heuristic=False)))


class TokenizeTests(unittest.TestCase):
    def test_stream_ends_with_eof(self) -> None:
        tokens = tokenize("@interface Foo : NSObject\n@end\n")
        self.assertEqual(
            [token.kind for token in tokens],
            [
                TokenKind.AT_INTERFACE,
                TokenKind.IDENTIFIER,
                TokenKind.COLON,
                TokenKind.IDENTIFIER,
                TokenKind.AT_END,
                TokenKind.EOF,
            ],
        )
        self.assertEqual(tokenize("")[-1].kind, TokenKind.EOF)

    def test_macro_and_argument_group_are_elided(self) -> None:
        text = "PSPDF_CLASS_SWIFT(Document) @interface Foo NS_SWIFT_NAME(bar(_:)) : NSObject @end"
        self.assertEqual(values(text), ["@interface", "Foo", ":", "NSObject", "@end"])

    def test_macro_kept_when_heuristic_disabled(self) -> None:
        text = "PSPDF_CLASS_SWIFT(Document)"
        self.assertEqual(values(text, LexerOptions(macro_heuristic=False)), ["PSPDF_CLASS_SWIFT", "(", "Document", ")"])

    def test_extern_macros_become_extern(self) -> None:
        tokens = tokenize("FOUNDATION_EXPORT NSString *const Foo;")
        self.assertIs(tokens[0].kind, TokenKind.EXTERN)

        options = LexerOptions(extern_macros=frozenset({"MYKIT_EXPORT"}))
        tokens = tokenize("MYKIT_EXPORT double MyZoom;", options)
        self.assertIs(tokens[0].kind, TokenKind.EXTERN)
        self.assertEqual(tokens[0].value, "MYKIT_EXPORT")

    def test_extra_skip_macros_ignore_casing_rules(self) -> None:
        options = LexerOptions(extra_skip_macros=frozenset({"my_attr"}))
        self.assertEqual(values("my_attr(1, 2) int value;", options), ["int", "value", ";"])

    def test_attribute_lists_are_dropped(self) -> None:
        text = '__attribute__((visibility("default"))) int value;'
        self.assertEqual(values(text), ["int", "value", ";"])

    def test_init_unavailable_marker_survives(self) -> None:
        tokens = tokenize("PSPDF_EMPTY_INIT_UNAVAILABLE")
        self.assertIs(tokens[0].kind, TokenKind.IDENTIFIER)
        self.assertEqual(tokens[0].value, "PSPDF_EMPTY_INIT_UNAVAILABLE")

    def test_nonnull_scope_markers(self) -> None:
        self.assertEqual(
            kinds("NS_ASSUME_NONNULL_BEGIN NS_ASSUME_NONNULL_END"),
            [TokenKind.NONNULL_BEGIN, TokenKind.NONNULL_END, TokenKind.EOF],
        )

    def test_directive_is_single_token(self) -> None:
        tokens = tokenize("#import <Foundation/Foundation.h>\n#define FOO \\\n  1\n@end")
        self.assertIs(tokens[0].kind, TokenKind.DIRECTIVE)
        self.assertEqual(tokens[0].value, "#import <Foundation/Foundation.h>")
        self.assertIs(tokens[1].kind, TokenKind.DIRECTIVE)
        self.assertEqual(tokens[1].value, "#define FOO   1")
        self.assertIs(tokens[2].kind, TokenKind.AT_END)

    def test_comments_are_skipped(self) -> None:
        text = "// line\n/* block\n comment */ @end /** doc */"
        self.assertEqual(kinds(text), [TokenKind.AT_END, TokenKind.EOF])

    def test_positions_are_one_based(self) -> None:
        tokens = tokenize("a\n  b")
        self.assertEqual((tokens[0].line, tokens[0].column), (1, 1))
        self.assertEqual((tokens[1].line, tokens[1].column), (2, 3))

    def test_literals(self) -> None:
        tokens = tokenize('0x1F 1UL 2.5f @"text" \'c\' ...')
        self.assertEqual(
            [(token.kind, token.value) for token in tokens[:-1]],
            [
                (TokenKind.NUMBER, "0x1F"),
                (TokenKind.NUMBER, "1UL"),
                (TokenKind.NUMBER, "2.5f"),
                (TokenKind.STRING, "text"),
                (TokenKind.CHAR, "c"),
                (TokenKind.ELLIPSIS, "..."),
            ],
        )

    def test_unexpected_characters_become_unknown_tokens(self) -> None:
        tokens = tokenize("` $")
        self.assertEqual([token.kind for token in tokens[:-1]], [TokenKind.UNKNOWN, TokenKind.UNKNOWN])

    def test_keywords_and_block_caret(self) -> None:
        self.assertEqual(
            kinds("typedef void (^Handler)(void);")[:5],
            [TokenKind.TYPEDEF, TokenKind.VOID, TokenKind.OPEN_PAREN, TokenKind.CARET, TokenKind.IDENTIFIER],
        )

    def test_kindof_is_dropped(self) -> None:
        self.assertEqual(values("__kindof UIView *view"), ["UIView", "*", "view"])


if __name__ == "__main__":
    unittest.main()
