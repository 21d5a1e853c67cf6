from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from objc_bindgen_core.naming import (  # noqa: E402
    base_selector_name,
    property_name,
    selector_to_method_name,
    setter_selector,
    split_camel_words,
    strip_embedded_sender_prefix,
    strip_trailing_context,
)


class SelectorNamingTests(unittest.TestCase):
    def test_protocol_sender_prefix_is_dropped(self) -> None:
        self.assertEqual(selector_to_method_name("fooControllerDidCancel:", is_protocol=True), "DidCancel")
        self.assertEqual(selector_to_method_name("fooControllerDidCancel:"), "FooControllerDidCancel")

    def test_protocol_sender_segment_is_dropped(self) -> None:
        self.assertEqual(
            selector_to_method_name("tableView:didSelectRowAtIndexPath:", is_protocol=True),
            "DidSelectRow",
        )
        self.assertEqual(selector_to_method_name("tableView:didSelectRowAtIndexPath:"), "TableView")

    def test_trailing_context_is_stripped(self) -> None:
        self.assertEqual(selector_to_method_name("configureWithDocument:"), "Configure")
        self.assertEqual(selector_to_method_name("reloadAnimated:"), "Reload")
        self.assertEqual(selector_to_method_name("numberOfSections"), "NumberOfSections")

    def test_block_word_becomes_action(self) -> None:
        self.assertEqual(selector_to_method_name("setCompletionBlock:"), "SetCompletionAction")

    def test_is_equal_to_collapses(self) -> None:
        self.assertEqual(
            selector_to_method_name("isEqualToDocument:", returns_value=True, parameter_count=1),
            "IsEqualTo",
        )

    def test_get_prefix_for_value_returning_methods(self) -> None:
        self.assertEqual(
            selector_to_method_name("URLForResource:", returns_value=True, parameter_count=1),
            "GetUrl",
        )
        self.assertEqual(selector_to_method_name("pageCount", returns_value=True), "PageCount")

    def test_initializers_and_factories(self) -> None:
        self.assertEqual(
            selector_to_method_name("initWithURL:", returns_value=True, parameter_count=1, is_initializer=True),
            "Init",
        )
        self.assertEqual(
            selector_to_method_name("documentWithURL:", returns_value=True, parameter_count=1, is_factory=True),
            "CreateDocument",
        )


class NamingHelperTests(unittest.TestCase):
    def test_split_camel_words(self) -> None:
        self.assertEqual(split_camel_words("loadHTMLString"), ["load", "HTML", "String"])
        self.assertEqual(split_camel_words("URLForResource"), ["URL", "For", "Resource"])

    def test_embedded_sender_prefix(self) -> None:
        self.assertEqual(strip_embedded_sender_prefix("tableViewDidScroll"), "didScroll")
        self.assertIsNone(strip_embedded_sender_prefix("reloadData"))

    def test_trailing_context(self) -> None:
        self.assertEqual(strip_trailing_context("saveToURLUsingBlock"), "saveToURL")
        self.assertEqual(strip_trailing_context("Animated"), "Animated")

    def test_base_selector_name_keeps_first_segment(self) -> None:
        self.assertEqual(base_selector_name("insertObject:atIndex:"), "insertObject")

    def test_properties_and_setters(self) -> None:
        self.assertEqual(property_name("documentURL"), "DocumentUrl")
        self.assertEqual(setter_selector("title"), "setTitle:")


if __name__ == "__main__":
    unittest.main()
