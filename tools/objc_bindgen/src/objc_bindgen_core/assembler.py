"""Turn parsed headers into C# binding declarations.

Batches run in two passes: every header is parsed before the shared
``BindingContext`` is built, categories are merged across the batch, and only
then is each header assembled.
"""

from __future__ import annotations

import re
from typing import Iterable

from .bindings import (
    Accessor,
    Attribute,
    BoundParameter,
    Declaration,
    Member,
    base_type_attribute,
    export_attribute,
    quoted,
)
from .model import Enum, Function, Header, Interface, Method, Parameter, Property, Protocol, Struct, Typedef
from .naming import property_name, selector_to_method_name, setter_selector
from .parser import C_TYPE_WORDS
from .typemap import (
    BindingContext,
    delegate_name,
    is_block_type,
    is_error_out_parameter,
    is_native_enum,
    is_object_reference,
    map_enum_backing_type,
    map_type,
    split_pointers,
    strip_qualifiers,
)

SEMANTIC_ATTRIBUTES = (
    ("copy", "Copy"),
    ("strong", "Strong"),
    ("retain", "Strong"),
    ("weak", "Weak"),
    ("assign", "Assign"),
    ("unsafe_unretained", "Assign"),
)
ASYNC_HINTS = ("completion", "handler", "callback", "reply")
INITIALIZER_RE = re.compile(r"^init(?:$|[A-Z:])")
ARRAY_SUFFIX_RE = re.compile(r"\s*\[([^\]]*)\]")
BLOCK_PARAM_RE = re.compile(r"^(?P<type>.*?[\s*])(?P<name>[A-Za-z_]\w*)$")
NATIVE_LIBRARY = "__Internal"

# Enum value spellings that have a direct C# counterpart.
LIMIT_CONSTANTS = {
    "UINT8_MAX": "byte.MaxValue",
    "UINT16_MAX": "ushort.MaxValue",
    "UINT32_MAX": "uint.MaxValue",
    "UINT64_MAX": "ulong.MaxValue",
    "UINT_MAX": "uint.MaxValue",
    "INT8_MAX": "sbyte.MaxValue",
    "INT16_MAX": "short.MaxValue",
    "INT32_MAX": "int.MaxValue",
    "INT64_MAX": "long.MaxValue",
    "INT_MAX": "int.MaxValue",
    "NSIntegerMax": "long.MaxValue",
    "NSUIntegerMax": "ulong.MaxValue",
}

CSHARP_KEYWORDS = frozenset(
    {
        "abstract", "as", "base", "bool", "break", "byte", "case", "catch", "char", "checked",
        "class", "const", "continue", "decimal", "default", "delegate", "do", "double", "else",
        "enum", "event", "explicit", "extern", "false", "finally", "fixed", "float", "for",
        "foreach", "goto", "if", "implicit", "in", "int", "interface", "internal", "is", "lock",
        "long", "namespace", "new", "null", "object", "operator", "out", "override", "params",
        "private", "protected", "public", "readonly", "ref", "return", "sbyte", "sealed",
        "short", "sizeof", "stackalloc", "static", "string", "struct", "switch", "this", "throw",
        "true", "try", "typeof", "uint", "ulong", "unchecked", "unsafe", "ushort", "using",
        "virtual", "void", "volatile", "while",
    }
)


def safe_identifier(name: str) -> str:
    return f"@{name}" if name in CSHARP_KEYWORDS else name


def split_unsafe(csharp_type: str) -> tuple[str, bool]:
    if csharp_type.startswith("unsafe "):
        return csharp_type[len("unsafe "):], True
    return csharp_type, "*" in csharp_type


def base_type_name(objc_type: str) -> str:
    return split_pointers(strip_qualifiers(objc_type))[0]


# -- category merging ----------------------------------------------------------


def merge_categories(headers: Iterable[Header]) -> None:
    """Fold categories into their primary interface, in place.

    The primary index spans every header passed in, so a single header merges
    file-locally and a batch merges across files. Categories whose parent is not
    in the index stay in their header and are emitted as ``[Category]`` types.
    """
    headers = list(headers)
    primaries: dict[str, Interface] = {}
    for header in headers:
        for iface in header.interfaces:
            if not iface.is_category and iface.name not in primaries:
                primaries[iface.name] = iface

    for header in headers:
        kept: list[Interface] = []
        for iface in header.interfaces:
            parent = primaries.get(iface.name) if iface.is_category else None
            if parent is None:
                kept.append(iface)
                continue
            parent.properties.extend(iface.properties)
            parent.instance_methods.extend(iface.instance_methods)
            parent.class_methods.extend(iface.class_methods)
            for proto in iface.protocols:
                if proto not in parent.protocols:
                    parent.protocols.append(proto)
            parent.is_init_unavailable = parent.is_init_unavailable or iface.is_init_unavailable
        header.interfaces = kept


# -- nullability and semantics -------------------------------------------------


def is_nullable_slot(
    objc_type: str,
    explicit: bool,
    in_nonnull_scope: bool,
    context: BindingContext,
    weak: bool = False,
) -> bool:
    if explicit or weak:
        return True
    if in_nonnull_scope:
        return False
    return is_object_reference(objc_type, context)


def parameter_is_nullable(param: Parameter, in_nonnull_scope: bool, context: BindingContext) -> bool:
    if is_error_out_parameter(param.type):
        return True
    return is_nullable_slot(param.type, param.is_nullable, in_nonnull_scope, context)


def property_is_nullable(prop: Property, context: BindingContext) -> bool:
    return is_nullable_slot(
        prop.type,
        prop.is_nullable,
        prop.in_nonnull_scope,
        context,
        weak=prop.has_attribute("weak"),
    )


def argument_semantic(prop: Property, context: BindingContext) -> str | None:
    for attr, semantic in SEMANTIC_ATTRIBUTES:
        if prop.has_attribute(attr):
            return semantic
    if context.is_enum(base_type_name(prop.type)):
        return "Assign"
    return None


# -- members -------------------------------------------------------------------


def bind_parameters(
    params: list[Parameter],
    in_nonnull_scope: bool,
    context: BindingContext,
    self_type: str | None = None,
) -> tuple[list[BoundParameter], bool]:
    bound: list[BoundParameter] = []
    needs_unsafe = False
    for idx, param in enumerate(params):
        csharp_type, unsafe = split_unsafe(map_type(param.type, context, self_type))
        needs_unsafe = needs_unsafe or unsafe
        attributes = [Attribute("NullAllowed")] if parameter_is_nullable(param, in_nonnull_scope, context) else []
        bound.append(BoundParameter(name=safe_identifier(param.name or f"arg{idx}"), type=csharp_type, attributes=attributes))
    return bound, needs_unsafe


def describe_method(method: Method, is_static: bool) -> str:
    sign = "+" if is_static else "-"
    parts = method.selector_parts
    if method.parameters and len(parts) == len(method.parameters):
        body = " ".join(f"{part}:({param.type}){param.name}" for part, param in zip(parts, method.parameters))
    else:
        body = method.selector
    return f"{sign} ({method.return_type}){body};"


def describe_property(prop: Property) -> str:
    attrs = f" ({', '.join(prop.attributes)})" if prop.attributes else ""
    return f"@property{attrs} {prop.type} {prop.name};"


def is_initializer(method: Method) -> bool:
    return INITIALIZER_RE.match(method.selector) is not None


def returns_self(method: Method, owner: str) -> bool:
    return base_type_name(method.return_type) in ("instancetype", "id", owner)


def wants_async(method: Method, context: BindingContext) -> bool:
    if not method.parameters or base_type_name(method.return_type) != "void" or "*" in method.return_type:
        return False
    # Block setters (setCompletionHandler:) store the block rather than call it back.
    if method.selector.startswith("set"):
        return False
    last = method.parameters[-1]
    if not (is_block_type(last.type) or base_type_name(last.type) in context.block_typedefs):
        return False
    text = f"{method.selector} {last.name}".lower()
    return any(hint in text for hint in ASYNC_HINTS)


def assemble_constructor(method: Method, context: BindingContext, owner: str) -> Member:
    params, _ = bind_parameters(method.parameters, method.in_nonnull_scope, context, owner)
    attributes: list[Attribute] = []
    if method.is_designated_initializer:
        attributes.append(Attribute("DesignatedInitializer"))
    attributes.append(export_attribute(method.selector))
    return Member(
        kind="constructor",
        name="Constructor",
        type="NativeHandle",
        attributes=attributes,
        parameters=params,
        comment=describe_method(method, False),
    )


def assemble_method(
    method: Method,
    context: BindingContext,
    *,
    owner: str | None,
    is_static: bool,
    is_protocol: bool = False,
    is_required: bool = False,
    comment_prefix: str = "",
) -> Member:
    self_type = owner if not is_protocol else None
    return_type, unsafe = split_unsafe(map_type(method.return_type, context, self_type))
    params, params_unsafe = bind_parameters(method.parameters, method.in_nonnull_scope, context, self_type)
    is_factory = is_static and owner is not None and not is_protocol and returns_self(method, owner)

    name = selector_to_method_name(
        method.selector,
        is_protocol=is_protocol,
        returns_value=return_type != "void",
        parameter_count=len(method.parameters),
        is_initializer=is_initializer(method),
        is_factory=is_factory,
    )

    attributes: list[Attribute] = []
    if is_static:
        attributes.append(Attribute("Static"))
    if is_required:
        attributes.append(Attribute("Abstract"))
    if not is_protocol and wants_async(method, context):
        attributes.append(Attribute("Async"))
    if return_type != "void" and is_nullable_slot(
        method.return_type, method.is_return_nullable, method.in_nonnull_scope, context
    ):
        attributes.append(Attribute("NullAllowed", target="return"))
    attributes.append(export_attribute(method.selector))

    return Member(
        kind="method",
        name=name,
        type=return_type,
        attributes=attributes,
        parameters=params,
        is_unsafe=unsafe or params_unsafe,
        comment=comment_prefix + describe_method(method, is_static),
    )


def assemble_property(prop: Property, context: BindingContext, owner: str | None, is_required: bool = False) -> Member:
    csharp_type, unsafe = split_unsafe(map_type(prop.type, context, owner))
    attributes: list[Attribute] = []
    if prop.is_class_property:
        attributes.append(Attribute("Static"))
    if is_required:
        attributes.append(Attribute("Abstract"))
    if property_is_nullable(prop, context):
        attributes.append(Attribute("NullAllowed"))
    attributes.append(export_attribute(prop.name, argument_semantic(prop, context)))

    getter = Accessor("get")
    custom_getter = prop.attribute_value("getter")
    if custom_getter:
        getter.attributes.append(Attribute("Bind", [quoted(custom_getter)]))
    accessors = [getter]
    if not prop.is_readonly:
        setter = Accessor("set")
        custom_setter = prop.attribute_value("setter")
        if custom_setter:
            setter.attributes.append(Attribute("Bind", [quoted(custom_setter)]))
        accessors.append(setter)

    return Member(
        kind="property",
        name=property_name(prop.name),
        type=csharp_type,
        attributes=attributes,
        accessors=accessors,
        is_unsafe=unsafe,
        comment=describe_property(prop),
    )


def decompose_optional_property(prop: Property, context: BindingContext) -> list[Member]:
    """Optional protocol properties become a getter method and, unless read-only, a setter method."""
    csharp_type, unsafe = split_unsafe(map_type(prop.type, context))
    nullable = property_is_nullable(prop, context)
    pascal = property_name(prop.name)
    static = [Attribute("Static")] if prop.is_class_property else []

    getter_attrs = list(static)
    if nullable:
        getter_attrs.append(Attribute("NullAllowed", target="return"))
    getter_attrs.append(export_attribute(prop.attribute_value("getter") or prop.name))
    members = [
        Member(
            kind="method",
            name=pascal,
            type=csharp_type,
            attributes=getter_attrs,
            is_unsafe=unsafe,
            comment="@optional " + describe_property(prop),
        )
    ]
    if prop.is_readonly:
        return members

    value = BoundParameter(
        name="value",
        type=csharp_type,
        attributes=[Attribute("NullAllowed")] if nullable else [],
    )
    setter_attrs = list(static)
    setter_attrs.append(
        export_attribute(setter_selector(prop.name), argument_semantic(prop, context))
    )
    members.append(
        Member(
            kind="method",
            name=f"Set{pascal}",
            type="void",
            attributes=setter_attrs,
            parameters=[value],
            is_unsafe=unsafe,
        )
    )
    return members


# -- declarations --------------------------------------------------------------


def assemble_protocol(proto: Protocol, context: BindingContext) -> Declaration:
    members: list[Member] = []
    for method in proto.required_instance_methods:
        members.append(
            assemble_method(method, context, owner=proto.name, is_static=False, is_protocol=True, is_required=True, comment_prefix="@required ")
        )
    for method in proto.required_class_methods:
        members.append(
            assemble_method(method, context, owner=proto.name, is_static=True, is_protocol=True, is_required=True, comment_prefix="@required ")
        )
    for prop in proto.properties:
        if prop.is_optional:
            members.extend(decompose_optional_property(prop, context))
        else:
            members.append(assemble_property(prop, context, None, is_required=True))
    for method in proto.optional_instance_methods:
        members.append(
            assemble_method(method, context, owner=proto.name, is_static=False, is_protocol=True, comment_prefix="@optional ")
        )
    for method in proto.optional_class_methods:
        members.append(
            assemble_method(method, context, owner=proto.name, is_static=True, is_protocol=True, comment_prefix="@optional ")
        )

    return Declaration(
        kind="protocol",
        name=proto.name,
        attributes=[Attribute("Protocol"), base_type_attribute("NSObject")],
        bases=[f"I{name}" for name in proto.inherited_protocols if name != "NSObject"],
        members=members,
        comment=f"@protocol {proto.name}",
    )


def assemble_interface(iface: Interface, context: BindingContext) -> Declaration:
    attributes: list[Attribute] = []
    if iface.is_category:
        kind = "category"
        suffix = iface.category or "Extension"
        name = f"{iface.name}_{suffix}"
        attributes.append(Attribute("Category"))
        attributes.append(base_type_attribute(iface.name))
        comment = f"@interface {iface.name} ({iface.category})"
    else:
        kind = "interface"
        name = iface.name
        if iface.superclass:
            attributes.append(base_type_attribute(iface.superclass))
        if iface.is_init_unavailable:
            attributes.append(Attribute("DisableDefaultCtor"))
        comment = f"@interface {iface.name}" + (f" : {iface.superclass}" if iface.superclass else "")

    members: list[Member] = [assemble_property(prop, context, iface.name) for prop in iface.properties]
    for method in iface.instance_methods:
        if iface.is_init_unavailable and method.selector == "init":
            continue
        if is_initializer(method) and returns_self(method, iface.name) and not iface.is_category:
            members.append(assemble_constructor(method, context, iface.name))
            continue
        members.append(assemble_method(method, context, owner=iface.name, is_static=False))
    for method in iface.class_methods:
        if iface.is_init_unavailable and method.selector == "new":
            continue
        members.append(assemble_method(method, context, owner=iface.name, is_static=True))

    return Declaration(
        kind=kind,
        name=name,
        attributes=attributes,
        bases=[f"I{proto}" for proto in iface.protocols],
        members=members,
        comment=comment,
    )


def strip_enum_prefix(member_name: str, enum_name: str) -> str:
    if member_name.startswith(enum_name) and len(member_name) > len(enum_name):
        rest = member_name[len(enum_name):].lstrip("_")
        if rest and rest[0].isupper():
            return rest
    return member_name


def clean_enum_value(value: str, renames: dict[str, str]) -> str:
    text = value.replace("< <", "<<").replace("> >", ">>")
    for constant, replacement in LIMIT_CONSTANTS.items():
        text = re.sub(rf"\b{constant}\b", replacement, text)
    for original, renamed in renames.items():
        if original != renamed:
            text = re.sub(rf"\b{re.escape(original)}\b", renamed, text)
    return text


def assemble_enum(enum: Enum, name: str) -> Declaration:
    renames = {value.name: strip_enum_prefix(value.name, name) for value in enum.values}
    attributes: list[Attribute] = []
    if is_native_enum(enum.backing_type):
        attributes.append(Attribute("Native"))
    if enum.is_options:
        attributes.append(Attribute("Flags"))
    members = [
        Member(
            kind="value",
            name=renames[value.name],
            type="",
            value=clean_enum_value(value.value, renames) if value.value is not None else None,
        )
        for value in enum.values
    ]
    return Declaration(
        kind="enum",
        name=name,
        attributes=attributes,
        members=members,
        backing_type=map_enum_backing_type(enum.backing_type),
    )


def assemble_struct_field(name: str, objc_type: str, context: BindingContext) -> Member:
    sizes = ARRAY_SUFFIX_RE.findall(objc_type)
    element_type = ARRAY_SUFFIX_RE.sub("", objc_type).strip()
    if sizes and all(size.strip() for size in sizes):
        csharp_type, unsafe = split_unsafe(map_type(element_type, context))
        size_expr = " * ".join(size.strip() for size in sizes)
        return Member(
            kind="field",
            name=safe_identifier(name),
            type=f"{csharp_type}[]",
            attributes=[Attribute("MarshalAs", ["UnmanagedType.ByValArray", f"SizeConst = {size_expr}"])],
            is_unsafe=unsafe,
        )
    if sizes or is_object_reference(element_type, context):
        return Member(kind="field", name=safe_identifier(name), type="IntPtr")
    csharp_type, unsafe = split_unsafe(map_type(element_type, context))
    attributes = [Attribute("MarshalAs", ["UnmanagedType.I1"])] if csharp_type == "bool" else []
    return Member(kind="field", name=safe_identifier(name), type=csharp_type, attributes=attributes, is_unsafe=unsafe)


def assemble_struct(struct: Struct, context: BindingContext) -> Declaration:
    return Declaration(
        kind="struct",
        name=struct.name,
        attributes=[Attribute("StructLayout", ["LayoutKind.Sequential"])],
        members=[assemble_struct_field(item.name, item.type, context) for item in struct.fields if item.name],
    )


def is_constant(function: Function) -> bool:
    """Externs without a parameter list, or parameterless ones ending in ``const``, are data symbols."""
    if not function.has_parameter_list:
        return True
    return not function.parameters and function.return_type.rstrip().endswith("const")


def describe_function(function: Function) -> str:
    params = ", ".join(
        param.type if param.name == "..." else f"{param.type} {param.name}".strip() for param in function.parameters
    )
    return f"extern {function.return_type} {function.name} ({params});"


def assemble_function(function: Function, context: BindingContext) -> Member:
    return_type, unsafe = split_unsafe(map_type(function.return_type, context))
    params: list[BoundParameter] = []
    for idx, param in enumerate(function.parameters):
        if param.name == "...":
            params.append(BoundParameter(name="varArgs", type="IntPtr"))
            continue
        csharp_type, param_unsafe = split_unsafe(map_type(param.type, context))
        unsafe = unsafe or param_unsafe
        params.append(BoundParameter(name=safe_identifier(param.name or f"arg{idx}"), type=csharp_type))
    return Member(
        kind="function",
        name=function.name,
        type=return_type,
        attributes=[Attribute("DllImport", [quoted(NATIVE_LIBRARY)])],
        parameters=params,
        is_unsafe=unsafe,
        comment=describe_function(function),
    )


def constant_type(objc_type: str, context: BindingContext) -> str:
    base = base_type_name(objc_type)
    if base in context.typedefs:
        base = context.resolve_typedef(base)
    if base == "NSString":
        return "NSString"
    return split_unsafe(map_type(objc_type, context))[0]


def assemble_constant(function: Function, context: BindingContext) -> Member:
    attributes: list[Attribute] = []
    if function.name.endswith("Notification"):
        attributes.append(Attribute("Notification"))
    attributes.append(Attribute("Field", [quoted(function.name), quoted(NATIVE_LIBRARY)]))
    return Member(
        kind="field",
        name=function.name,
        type=constant_type(function.return_type, context),
        attributes=attributes,
        accessors=[Accessor("get")],
        comment=f"extern {function.return_type} {function.name};",
    )


def split_block_signature(underlying: str) -> tuple[str, list[str]]:
    return_text, _, rest = underlying.partition("(^)")
    rest = rest.strip()
    if rest.startswith("(") and rest.endswith(")"):
        rest = rest[1:-1]
    params: list[str] = []
    depth = 0
    current = ""
    for ch in rest:
        if ch in "(<":
            depth += 1
        elif ch in ")>":
            depth -= 1
        if ch == "," and depth == 0:
            params.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        params.append(current.strip())
    if params == ["void"]:
        params = []
    return return_text.strip(), params


def assemble_delegate(typedef: Typedef, context: BindingContext) -> Declaration:
    return_text, param_texts = split_block_signature(typedef.underlying_type)
    params: list[BoundParameter] = []
    for idx, text in enumerate(param_texts):
        match = BLOCK_PARAM_RE.match(text)
        if match and match.group("type").strip() and match.group("name") not in C_TYPE_WORDS:
            objc_type, name = match.group("type").strip(), match.group("name")
        else:
            objc_type, name = text, f"arg{idx}"
        params.append(BoundParameter(name=safe_identifier(name), type=split_unsafe(map_type(objc_type, context))[0]))
    return Declaration(
        kind="delegate",
        name=delegate_name(typedef.name),
        return_type=split_unsafe(map_type(return_text or "void", context))[0],
        parameters=params,
        comment=f"typedef {typedef.underlying_type.replace('(^)', f'(^{typedef.name})', 1)};",
    )


def assemble(header: Header, context: BindingContext | None = None, merge: bool = True) -> list[Declaration]:
    """Assemble one header; with ``merge`` its own categories are folded first."""
    ctx = context or BindingContext.from_headers([header])
    if merge:
        merge_categories([header])

    declarations: list[Declaration] = []
    anonymous = 0
    for enum in header.enums:
        if not enum.values and not enum.name:
            continue
        name = enum.name
        if not name:
            anonymous += 1
            name = "AnonymousEnum" if anonymous == 1 else f"AnonymousEnum{anonymous}"
        declarations.append(assemble_enum(enum, name))

    for struct in header.structs:
        if struct.name and struct.fields:
            declarations.append(assemble_struct(struct, ctx))

    callables = [item for item in header.functions if not item.is_inline and not is_constant(item)]
    if callables:
        declarations.append(
            Declaration(
                kind="functions",
                name="CFunctions",
                members=[assemble_function(item, ctx) for item in callables],
            )
        )

    constants = [item for item in header.functions if not item.is_inline and is_constant(item)]
    if constants:
        declarations.append(
            Declaration(
                kind="constants",
                name="Constants",
                attributes=[Attribute("Static")],
                members=[assemble_constant(item, ctx) for item in constants],
            )
        )

    declarations.extend(assemble_protocol(proto, ctx) for proto in header.protocols)
    declarations.extend(assemble_interface(iface, ctx) for iface in header.interfaces)
    declarations.extend(assemble_delegate(typedef, ctx) for typedef in header.typedefs if typedef.is_block and typedef.name)
    return declarations


def assemble_headers(headers: list[Header]) -> list[list[Declaration]]:
    context = BindingContext.from_headers(headers)
    merge_categories(headers)
    return [assemble(header, context, merge=False) for header in headers]
