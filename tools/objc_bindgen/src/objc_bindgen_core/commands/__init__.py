from .frameworks import command_list_headers, command_list_slices
from .generation import command_generate, command_parse

__all__ = [
    "command_generate",
    "command_list_headers",
    "command_list_slices",
    "command_parse",
]
