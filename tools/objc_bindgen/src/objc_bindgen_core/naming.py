"""Selector to C# member naming.

The rules run in a fixed order and later rules see the output of earlier
ones, so reordering them changes the generated names:

1. keep only the first selector segment;
2. drop a delegate "sender" segment (``tableView:didSelectRow:``) or an
   embedded sender prefix (``tableViewDidScroll:``) in protocol context;
3. strip trailing preposition phrases (``configureWithDocument`` -> ``configure``);
4. rename an embedded ``Block`` word to ``Action``;
5. collapse ``isEqualToFoo`` to ``isEqualTo``;
6. normalize acronyms (``URL`` -> ``Url``) and PascalCase the result;
7. prefix ``Get`` on non-void, parameterized methods without a leading verb;
8. prefer ``Create`` for class factories returning the enclosing type.
"""

from __future__ import annotations

import re

SENDER_SUFFIXES = (
    "Controller",
    "View",
    "Manager",
    "Delegate",
    "Session",
    "Cache",
    "Provider",
    "Bar",
    "Cell",
    "Picker",
    "Inspector",
    "Toolbar",
    "Button",
    "Item",
    "Store",
    "Search",
    "HUD",
    "Scrubber",
    "Presenter",
    "Container",
    "Coordinator",
)
SENDER_VERBS = ("Did", "Will", "Should", "Can", "Get", "Set")

# "In", "On", "Of", "To" and "By" are left out: they mostly occur inside the
# meaningful part of a name (numberOfSections, scrollToTop, sortedBy...).
TRAILING_PREPOSITIONS = ("With", "At", "For", "From", "Using")
TRAILING_QUALIFIERS = ("Animated",)

ACRONYMS = (
    ("HTTPS", "Https"),
    ("HTTP", "Http"),
    ("HTML", "Html"),
    ("JSON", "Json"),
    ("UUID", "Uuid"),
    ("URL", "Url"),
    ("PDF", "Pdf"),
    ("HUD", "Hud"),
    ("XML", "Xml"),
)

RECOGNIZED_VERBS = frozenset(
    {
        "Get",
        "Set",
        "Is",
        "Has",
        "Can",
        "Should",
        "Will",
        "Did",
        "Create",
        "Make",
        "Add",
        "Remove",
        "Insert",
        "Delete",
        "Update",
        "Load",
        "Save",
        "Fetch",
        "Find",
        "Perform",
        "Register",
        "Unregister",
        "Show",
        "Hide",
        "Present",
        "Dismiss",
        "Open",
        "Close",
        "Start",
        "Stop",
        "Begin",
        "End",
        "Reset",
        "Apply",
        "Validate",
        "Contains",
        "Copy",
        "Convert",
        "Compute",
        "Handle",
        "Process",
        "Parse",
        "Read",
        "Write",
        "Send",
        "Request",
        "Select",
        "Deselect",
        "Configure",
        "Enumerate",
        "Execute",
        "Invalidate",
        "Prepare",
        "Render",
        "Resolve",
        "Search",
        "Sort",
        "Append",
        "Clear",
        "Move",
        "Draw",
        "Scroll",
        "Zoom",
        "Rotate",
        "Import",
        "Export",
        "Encode",
        "Decode",
        "Cancel",
        "Pause",
        "Resume",
        "Refresh",
        "Reload",
        "Compare",
        "Merge",
        "Filter",
        "Try",
    }
)

BLOCK_WORD_RE = re.compile(r"(?<=[a-z0-9])Block(?=[A-Z]|$)")
IS_EQUAL_TO_RE = re.compile(r"^isEqualTo[A-Z]\w*$")
CAMEL_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z][a-z0-9]*|[a-z0-9]+")


def split_camel_words(name: str) -> list[str]:
    return CAMEL_WORD_RE.findall(name)


def is_sender_segment(segment: str) -> bool:
    return any(segment.endswith(suffix) for suffix in SENDER_SUFFIXES)


def strip_embedded_sender_prefix(segment: str) -> str | None:
    """``annotationGridViewControllerDidCancel`` -> ``didCancel``; None when no sender prefix."""
    for suffix in SENDER_SUFFIXES:
        start = 0
        while True:
            idx = segment.find(suffix, start)
            if idx < 0:
                break
            start = idx + 1
            after = idx + len(suffix)
            if idx == 0 or after >= len(segment) or not segment[after].isupper():
                continue
            remainder = segment[after:]
            words = split_camel_words(remainder)
            offset = 0
            for word in words:
                if word in SENDER_VERBS:
                    tail = remainder[offset:]
                    return tail[0].lower() + tail[1:]
                offset += len(word)
    return None


def strip_trailing_context(segment: str) -> str:
    cut = len(segment)
    for prep in TRAILING_PREPOSITIONS:
        for match in re.finditer(prep, segment):
            idx = match.start()
            after = idx + len(prep)
            if idx > 0 and after < len(segment) and segment[after].isupper() and idx < cut:
                cut = idx
    stripped = segment[:cut]
    for qualifier in TRAILING_QUALIFIERS:
        if stripped.endswith(qualifier) and len(stripped) > len(qualifier):
            stripped = stripped[: -len(qualifier)]
    return stripped


def rename_block_word(name: str) -> str:
    return BLOCK_WORD_RE.sub("Action", name)


def collapse_is_equal_to(name: str) -> str:
    return "isEqualTo" if IS_EQUAL_TO_RE.match(name) else name


def normalize_acronyms(name: str) -> str:
    for acronym, normalized in ACRONYMS:
        name = name.replace(acronym, normalized)
    return name


def pascal_case(name: str) -> str:
    if not name:
        return name
    return normalize_acronyms(name[0].upper() + name[1:])


def starts_with_verb(name: str) -> bool:
    words = split_camel_words(name)
    return bool(words) and words[0] in RECOGNIZED_VERBS


def base_selector_name(selector: str, is_protocol: bool = False) -> str:
    """Rules 1-5: the lower-camel base name derived from the selector text."""
    if not selector:
        return selector
    segments = [part for part in selector.split(":") if part] or [selector]
    segment = segments[0]

    if is_protocol and len(segments) >= 2 and is_sender_segment(segments[0]):
        segment = segments[1]
    elif is_protocol and len(segments) == 1:
        embedded = strip_embedded_sender_prefix(segment)
        if embedded:
            segment = embedded

    segment = strip_trailing_context(segment) or segment
    segment = rename_block_word(segment)
    return collapse_is_equal_to(segment)


def selector_to_method_name(
    selector: str,
    *,
    is_protocol: bool = False,
    returns_value: bool = False,
    parameter_count: int = 0,
    is_initializer: bool = False,
    is_factory: bool = False,
) -> str:
    name = pascal_case(base_selector_name(selector, is_protocol))
    if returns_value and parameter_count > 0 and not is_initializer and not starts_with_verb(name):
        name = ("Create" if is_factory else "Get") + name
    return name


def property_name(name: str) -> str:
    return pascal_case(name)


def setter_selector(name: str) -> str:
    return f"set{name[:1].upper()}{name[1:]}:"
