from __future__ import annotations

from typing import Iterable

from ._core_base import DEFAULT_NAMESPACE
from .bindings import Attribute, BoundParameter, Declaration, Member
from .model import ForwardDeclarations

INDENT = "    "
SYSTEM_TYPES = ("IntPtr", "UIntPtr", "Action")
RUNTIME_TYPES = ("NativeHandle", "Selector", "Class")


def collect_usings(declarations: Iterable[Declaration]) -> list[str]:
    usings = {"Foundation"}
    for decl in declarations:
        types = [member.type for member in decl.members]
        types.extend(param.type for member in decl.members for param in member.parameters)
        types.extend(param.type for param in decl.parameters)
        if decl.return_type:
            types.append(decl.return_type)
        if decl.has_attribute("Native"):
            usings.add("ObjCRuntime")
        if decl.has_attribute("Flags"):
            usings.add("System")
        if decl.kind in ("struct", "functions"):
            usings.add("System.Runtime.InteropServices")
        if decl.kind == "functions":
            usings.add("ObjCRuntime")
        for type_name in types:
            if any(name in type_name for name in SYSTEM_TYPES):
                usings.add("System")
            if any(type_name == name or type_name.startswith(name + "[") for name in RUNTIME_TYPES):
                usings.add("ObjCRuntime")
    return sorted(usings)


def render_attribute_lines(attributes: list[Attribute], indent: str) -> list[str]:
    """One attribute per line, except a bare NullAllowed shares the Export line."""
    lines: list[str] = []
    idx = 0
    while idx < len(attributes):
        attr = attributes[idx]
        following = attributes[idx + 1] if idx + 1 < len(attributes) else None
        if attr.name == "NullAllowed" and attr.target is None and following is not None and following.name == "Export":
            lines.append(f"{indent}[{attr.render_inner()}, {following.render_inner()}]")
            idx += 2
            continue
        lines.append(f"{indent}{attr.render()}")
        idx += 1
    return lines


def render_parameter(param: BoundParameter) -> str:
    prefix = "".join(f"{attr.render()} " for attr in param.attributes)
    return f"{prefix}{param.type} {param.name}"


def render_parameter_list(params: list[BoundParameter]) -> str:
    return ", ".join(render_parameter(param) for param in params)


def render_accessors(member: Member) -> str:
    parts: list[str] = []
    for accessor in member.accessors:
        attrs = "".join(f"{attr.render()} " for attr in accessor.attributes)
        parts.append(f"{attrs}{accessor.kind};")
    return "{ " + " ".join(parts) + " }"


def render_member(member: Member, indent: str) -> list[str]:
    lines: list[str] = []
    if member.comment:
        lines.append(f"{indent}// {member.comment}")
    lines.extend(render_attribute_lines(member.attributes, indent))
    unsafe = "unsafe " if member.is_unsafe else ""

    if member.kind == "value":
        if member.value is None:
            lines.append(f"{indent}{member.name},")
        else:
            lines.append(f"{indent}{member.name} = {member.value},")
        return lines
    if member.kind == "constructor":
        lines.append(f"{indent}NativeHandle Constructor ({render_parameter_list(member.parameters)});")
    elif member.kind == "function":
        lines.append(f"{indent}static extern {unsafe}{member.type} {member.name} ({render_parameter_list(member.parameters)});")
    elif member.kind == "method":
        lines.append(f"{indent}{unsafe}{member.type} {member.name} ({render_parameter_list(member.parameters)});")
    elif member.accessors:
        lines.append(f"{indent}{unsafe}{member.type} {member.name} {render_accessors(member)}")
    else:
        lines.append(f"{indent}public {unsafe}{member.type} {member.name};")
    lines.append("")
    return lines


def render_body(members: list[Member]) -> list[str]:
    lines = ["{"]
    for member in members:
        lines.extend(render_member(member, INDENT))
    if lines[-1] == "":
        lines.pop()
    lines.append("}")
    lines.append("")
    return lines


def render_enum(decl: Declaration) -> list[str]:
    lines = render_attribute_lines(decl.attributes, "")
    lines.append(f"public enum {decl.name} : {decl.backing_type}")
    lines.append("{")
    for member in decl.members:
        lines.extend(render_member(member, INDENT))
    lines.append("}")
    lines.append("")
    return lines


def render_struct(decl: Declaration) -> list[str]:
    lines = render_attribute_lines(decl.attributes, "")
    lines.append(f"public struct {decl.name}")
    lines.extend(render_body(decl.members))
    return lines


def render_functions(decl: Declaration) -> list[str]:
    lines = [f"static class {decl.name}"]
    lines.extend(render_body(decl.members))
    return lines


def render_constants(decl: Declaration) -> list[str]:
    lines = render_attribute_lines(decl.attributes, "")
    lines.append(f"partial interface {decl.name}")
    lines.extend(render_body(decl.members))
    return lines


def render_interface(decl: Declaration) -> list[str]:
    lines: list[str] = []
    if decl.comment:
        lines.append(f"// {decl.comment}")
    lines.extend(render_attribute_lines(decl.attributes, ""))
    bases = f" : {', '.join(decl.bases)}" if decl.bases else ""
    lines.append(f"interface {decl.name}{bases}")
    lines.extend(render_body(decl.members))
    return lines


def render_delegate(decl: Declaration) -> list[str]:
    lines: list[str] = []
    if decl.comment:
        lines.append(f"// {decl.comment}")
    types = [decl.return_type or "void", *(param.type for param in decl.parameters)]
    unsafe = "unsafe " if any("*" in item for item in types) else ""
    lines.append(f"{unsafe}delegate {decl.return_type or 'void'} {decl.name} ({render_parameter_list(decl.parameters)});")
    lines.append("")
    return lines


RENDERERS = {
    "enum": render_enum,
    "struct": render_struct,
    "functions": render_functions,
    "constants": render_constants,
    "protocol": render_interface,
    "interface": render_interface,
    "category": render_interface,
    "delegate": render_delegate,
}


def render_forward_declarations(forward: ForwardDeclarations | None) -> list[str]:
    if forward is None:
        return []
    lines = [f"// @class {name};" for name in forward.classes]
    lines.extend(f"// @protocol {name};" for name in forward.protocols)
    if lines:
        lines.append("")
    return lines


def render_csharp(
    declarations: list[Declaration],
    *,
    source_name: str = "",
    namespace: str = DEFAULT_NAMESPACE,
    forward_declarations: ForwardDeclarations | None = None,
) -> str:
    lines: list[str] = ["// <auto-generated />"]
    if source_name:
        lines.append(f"// Generated by objc_bindgen from {source_name}")
    for using in collect_usings(declarations):
        lines.append(f"using {using};")
    lines.append("")
    if namespace:
        lines.append(f"namespace {namespace};")
        lines.append("")
    lines.extend(render_forward_declarations(forward_declarations))
    for decl in declarations:
        lines.extend(RENDERERS[decl.kind](decl))
    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines) + "\n"
