from ._core_base import BindgenError, DiscoveryError, load_config
from .assembler import assemble, assemble_headers, merge_categories
from .bindings import Attribute, BoundParameter, Declaration, Member
from .discovery import list_slices, resolve_headers
from .lexer import LexerOptions, Token, TokenKind, is_likely_macro, tokenize
from .model import Header
from .naming import selector_to_method_name
from .parser import parse, parse_file, parse_header
from .render import render_csharp
from .typemap import BindingContext, map_type

__all__ = [
    "Attribute",
    "BindgenError",
    "BindingContext",
    "BoundParameter",
    "Declaration",
    "DiscoveryError",
    "Header",
    "LexerOptions",
    "Member",
    "Token",
    "TokenKind",
    "assemble",
    "assemble_headers",
    "is_likely_macro",
    "list_slices",
    "load_config",
    "map_type",
    "merge_categories",
    "parse",
    "parse_file",
    "parse_header",
    "render_csharp",
    "resolve_headers",
    "selector_to_method_name",
    "tokenize",
]
