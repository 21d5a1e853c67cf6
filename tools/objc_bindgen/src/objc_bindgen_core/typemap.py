from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from .model import Header

QUALIFIER_RE = re.compile(
    r"\b(?:_Nullable|_Nonnull|_Null_unspecified|__nullable|__nonnull|nullable|nonnull|null_unspecified"
    r"|null_resettable|__strong|__weak|__unsafe_unretained|__autoreleasing|__block|__kindof"
    r"|__restrict|restrict|volatile|oneway|inout|in|out|bycopy|byref)\b"
)
CONST_RE = re.compile(r"\bconst\b")
TAG_PREFIX_RE = re.compile(r"^(?:struct|enum|union)\s+")
BLOCK_RE = re.compile(r"\(\s*\^")
FUNCTION_POINTER_RE = re.compile(r"\(\s*\*\s*\)")

PRIMITIVE_TYPE_MAP = {
    "void": "void",
    "IBAction": "void",
    "BOOL": "bool",
    "bool": "bool",
    "_Bool": "bool",
    "GLboolean": "bool",
    "char": "sbyte",
    "signed char": "sbyte",
    "unsigned char": "byte",
    "uint8_t": "byte",
    "int8_t": "sbyte",
    "short": "short",
    "unsigned short": "ushort",
    "int16_t": "short",
    "uint16_t": "ushort",
    "int": "int",
    "signed": "int",
    "unsigned": "uint",
    "unsigned int": "uint",
    "int32_t": "int",
    "uint32_t": "uint",
    "SInt8": "sbyte",
    "SInt16": "short",
    "SInt32": "int",
    "SInt64": "long",
    "UInt8": "byte",
    "UInt16": "ushort",
    "UInt32": "uint",
    "UInt64": "ulong",
    "long": "nint",
    "unsigned long": "nuint",
    "long long": "long",
    "unsigned long long": "ulong",
    "int64_t": "long",
    "uint64_t": "ulong",
    "float": "float",
    "double": "double",
    "long double": "decimal",
    "size_t": "nuint",
    "ssize_t": "nint",
    "NSInteger": "nint",
    "NSUInteger": "nuint",
    "CGFloat": "nfloat",
    "NSTimeInterval": "double",
    "CFTimeInterval": "double",
    "unichar": "char",
    "intptr_t": "IntPtr",
    "uintptr_t": "UIntPtr",
    "id": "NSObject",
    "Class": "Class",
    "SEL": "Selector",
    "IMP": "IntPtr",
    "dispatch_queue_t": "DispatchQueue",
    "dispatch_data_t": "DispatchData",
    "CGColorRef": "CGColor",
    "CGPathRef": "CGPath",
    "CGImageRef": "CGImage",
    "CGContextRef": "CGContext",
    "CGColorSpaceRef": "CGColorSpace",
    "CGGradientRef": "CGGradient",
    "CGLayerRef": "CGLayer",
    "CGPDFDocumentRef": "CGPDFDocument",
    "CGPDFPageRef": "CGPDFPage",
    "CGImageSourceRef": "CGImageSource",
    "CFRunLoopRef": "CFRunLoop",
    "SecIdentityRef": "SecIdentity",
    "SecTrustRef": "SecTrust",
    "SecAccessControlRef": "SecAccessControl",
    "CMTimebaseRef": "CMTimebase",
    "CMClockRef": "CMClock",
    "CMSampleBufferRef": "CMSampleBuffer",
    "CVImageBufferRef": "CVImageBuffer",
    "CVPixelBufferRef": "CVPixelBuffer",
    "CMFormatDescriptionRef": "CMFormatDescription",
    "CMAudioFormatDescriptionRef": "CMAudioFormatDescription",
    "CMVideoFormatDescriptionRef": "CMVideoFormatDescription",
    "MIDIEndpointRef": "int",
    "sec_identity_t": "SecIdentity2",
    "sec_trust_t": "SecTrust2",
    "sec_protocol_options_t": "SecProtocolOptions",
    "sec_protocol_metadata_t": "SecProtocolMetadata",
}

OBJECT_TYPE_MAP = {
    "NSString": "string",
    "NSNumber": "NSNumber",
    "NSArray": "NSObject[]",
    "NSMutableArray": "NSMutableArray",
    "NSDictionary": "NSDictionary",
    "NSData": "NSData",
    "NSDate": "NSDate",
    "NSURL": "NSUrl",
    "NSUUID": "NSUuid",
    "NSError": "NSError",
    "NSObject": "NSObject",
    "NSSet": "NSSet",
    "NSValue": "NSValue",
    "NSNotificationName": "NSString",
    "NSErrorDomain": "NSString",
    "NSExceptionName": "NSString",
    "NSRunLoopMode": "NSString",
}

VALUE_TYPES = frozenset(
    {
        "int",
        "uint",
        "short",
        "ushort",
        "long",
        "ulong",
        "byte",
        "sbyte",
        "float",
        "double",
        "decimal",
        "nint",
        "nuint",
        "nfloat",
        "bool",
        "char",
    }
)

ARRAY_COLLECTIONS = frozenset({"NSArray", "NSMutableArray"})
KEYED_COLLECTIONS = frozenset({"NSDictionary", "NSMutableDictionary", "NSMapTable"})
SET_COLLECTIONS = frozenset({"NSSet", "NSMutableSet", "NSOrderedSet", "NSMutableOrderedSet", "NSHashTable"})
COLLECTION_TYPES = ARRAY_COLLECTIONS | KEYED_COLLECTIONS | SET_COLLECTIONS

ENUM_BACKING_TYPE_MAP = {
    "NSInteger": "long",
    "NSUInteger": "ulong",
    "int": "int",
    "unsigned int": "uint",
    "unsigned": "uint",
    "short": "short",
    "unsigned short": "ushort",
    "long": "nint",
    "unsigned long": "nuint",
    "long long": "long",
    "unsigned long long": "ulong",
    "int64_t": "long",
    "uint64_t": "ulong",
    "uint8_t": "byte",
    "UInt8": "byte",
    "int8_t": "sbyte",
    "SInt8": "sbyte",
    "uint16_t": "ushort",
    "UInt16": "ushort",
    "int16_t": "short",
    "SInt16": "short",
    "uint32_t": "uint",
    "UInt32": "uint",
    "int32_t": "int",
    "SInt32": "int",
}
NATIVE_ENUM_BACKING_TYPES = frozenset({"NSInteger", "NSUInteger"})
BLOCK_PLACEHOLDER = "Action"


@dataclass
class BindingContext:
    """Batch-wide lookup tables consulted while mapping types.

    Built once from every parsed header before any binding is assembled.
    """

    typedefs: dict[str, str] = field(default_factory=dict)
    block_typedefs: set[str] = field(default_factory=set)
    function_pointer_typedefs: set[str] = field(default_factory=set)
    enum_names: set[str] = field(default_factory=set)
    struct_names: set[str] = field(default_factory=set)

    @classmethod
    def from_headers(cls, headers: Iterable[Header]) -> "BindingContext":
        context = cls()
        for header in headers:
            context.add_header(header)
        return context

    def add_header(self, header: Header) -> None:
        for typedef in header.typedefs:
            if not typedef.name:
                continue
            if typedef.is_block:
                self.block_typedefs.add(typedef.name)
            elif typedef.is_function_pointer:
                self.function_pointer_typedefs.add(typedef.name)
            elif typedef.name != typedef.underlying_type:
                self.typedefs[typedef.name] = typedef.underlying_type
        for enum in header.enums:
            if enum.name:
                self.enum_names.add(enum.name)
        for struct in header.structs:
            if struct.name:
                self.struct_names.add(struct.name)

    def resolve_typedef_text(self, name: str) -> str:
        """Chase an alias chain; stops at the last resolved text if the chain cycles."""
        seen: set[str] = set()
        text = name
        current = name
        while current in self.typedefs and current not in seen:
            seen.add(current)
            text = self.typedefs[current]
            current = split_pointers(strip_qualifiers(text))[0]
        return text

    def resolve_typedef(self, name: str) -> str:
        return split_pointers(strip_qualifiers(self.resolve_typedef_text(name)))[0]

    def is_enum(self, name: str) -> bool:
        return self.resolve_typedef(name) in self.enum_names or name in self.enum_names


EMPTY_CONTEXT = BindingContext()


def normalize_spaces(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def strip_qualifiers(objc_type: str) -> str:
    text = QUALIFIER_RE.sub(" ", objc_type)
    text = CONST_RE.sub(" ", text)
    text = normalize_spaces(text)
    return TAG_PREFIX_RE.sub("", text)


def is_const_qualified(objc_type: str) -> bool:
    return CONST_RE.search(objc_type) is not None


def split_pointers(objc_type: str) -> tuple[str, int]:
    text = objc_type.strip()
    depth = 0
    while text.endswith("*"):
        depth += 1
        text = text[:-1].rstrip()
    return text, depth


def is_block_type(objc_type: str) -> bool:
    return BLOCK_RE.search(objc_type) is not None


def split_generic(objc_type: str) -> tuple[str, list[str]]:
    """Split ``Base<A, B<C *>>`` into the base name and its top-level arguments."""
    start = objc_type.find("<")
    end = objc_type.rfind(">")
    if start < 0 or end < start:
        return objc_type, []
    base = objc_type[:start].strip()
    inner = objc_type[start + 1:end]
    args: list[str] = []
    depth = 0
    current = ""
    for ch in inner:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            args.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        args.append(current.strip())
    return base, args


def delegate_name(name: str) -> str:
    if name.endswith("Block") and len(name) > len("Block"):
        return name[: -len("Block")] + "Handler"
    return name


def map_type(objc_type: str, context: BindingContext | None = None, self_type: str | None = None) -> str:
    """Map an Objective-C type spelling to the C# type used in bindings."""
    ctx = context or EMPTY_CONTEXT
    if not objc_type or not objc_type.strip():
        return "void"
    if objc_type.strip() == "...":
        return "IntPtr"

    had_const = objc_type.strip().startswith("const ")
    text = strip_qualifiers(objc_type)

    if is_block_type(text):
        return BLOCK_PLACEHOLDER
    if FUNCTION_POINTER_RE.search(text):
        return "IntPtr"

    base, depth = split_pointers(text)
    if depth >= 2:
        return "out " + map_type(f"{base} *", ctx, self_type)

    if base in ctx.block_typedefs:
        return delegate_name(base)
    if base in ctx.function_pointer_typedefs:
        return "IntPtr"

    if base in ctx.typedefs:
        resolved_text = ctx.resolve_typedef_text(base)
        resolved_base, resolved_depth = split_pointers(strip_qualifiers(resolved_text))
        if resolved_base != base:
            if is_block_type(resolved_text):
                return BLOCK_PLACEHOLDER
            pointer = " " + "*" * (depth + resolved_depth) if depth + resolved_depth else ""
            prefix = "const " if is_const_qualified(resolved_text.split("*")[0]) or had_const else ""
            return map_type(f"{prefix}{resolved_base}{pointer}", ctx, self_type)

    if base == "instancetype":
        return self_type or "NSObject"

    if base == "char" and depth > 0:
        return "string" if had_const else "unsafe sbyte*"

    if base == "void" and depth > 0:
        return "IntPtr"

    mapped = PRIMITIVE_TYPE_MAP.get(base)
    if mapped is not None:
        if depth > 0 and mapped in VALUE_TYPES:
            return f"unsafe {mapped}*"
        return mapped

    mapped = OBJECT_TYPE_MAP.get(base)
    if mapped is not None:
        return mapped

    if "<" in base:
        return _map_generic(base, depth, ctx, self_type)

    if depth > 0 and (base in ctx.struct_names or base in ctx.enum_names):
        return f"unsafe {base}*"

    return delegate_name(base)


def _map_generic(base: str, depth: int, ctx: BindingContext, self_type: str | None) -> str:
    name, args = split_generic(base)
    if name == "id":
        return f"I{_strip_generic_arg(args[0])}" if args else "NSObject"
    if name == "Class":
        return "Class"
    if name in ARRAY_COLLECTIONS and args:
        return f"{map_type(args[0], ctx, self_type)}[]"
    if name in KEYED_COLLECTIONS and len(args) == 2:
        return f"{name}<{_element_class(args[0], ctx)}, {_element_class(args[1], ctx)}>"
    if name in SET_COLLECTIONS and args:
        return f"{name}<{_element_class(args[0], ctx)}>"
    if name not in COLLECTION_TYPES and args and "*" not in args[0]:
        return f"I{_strip_generic_arg(args[0])}"
    pointer = " *" if depth else ""
    return map_type(f"{name}{pointer}", ctx, self_type)


def _strip_generic_arg(arg: str) -> str:
    return split_pointers(strip_qualifiers(arg))[0]


def _element_class(arg: str, ctx: BindingContext) -> str:
    # Generic container arguments must stay NSObject subclasses.
    base = _strip_generic_arg(arg)
    if base == "id" or base.startswith("id<"):
        return "NSObject"
    if "<" in base:
        base = split_generic(base)[0]
    if base in ctx.typedefs:
        base = ctx.resolve_typedef(base)
    if base == "NSString":
        return "NSString"
    mapped = OBJECT_TYPE_MAP.get(base, base)
    return "NSObject" if mapped.endswith("[]") else mapped


def map_enum_backing_type(objc_type: str | None) -> str:
    if not objc_type or not objc_type.strip():
        return "uint"
    return ENUM_BACKING_TYPE_MAP.get(normalize_spaces(objc_type), "uint")


def is_native_enum(objc_type: str | None) -> bool:
    return bool(objc_type) and normalize_spaces(str(objc_type)) in NATIVE_ENUM_BACKING_TYPES


def is_object_reference(objc_type: str, context: BindingContext | None = None) -> bool:
    """True for types that can carry a nil object reference."""
    ctx = context or EMPTY_CONTEXT
    text = strip_qualifiers(objc_type)
    if not text or text == "...":
        return False
    if is_block_type(text):
        return True
    if FUNCTION_POINTER_RE.search(text):
        return False
    base, depth = split_pointers(text)
    if base in ctx.block_typedefs:
        return True
    if base in ctx.typedefs:
        resolved_base, resolved_depth = split_pointers(strip_qualifiers(ctx.resolve_typedef_text(base)))
        if resolved_base != base:
            return is_object_reference(f"{resolved_base}{' ' + '*' * (depth + resolved_depth) if depth + resolved_depth else ''}", ctx)
    name = split_generic(base)[0] if "<" in base else base
    if name in ("id", "instancetype", "Class"):
        return depth <= 1
    if depth != 1:
        return False
    if name in PRIMITIVE_TYPE_MAP or name in ctx.struct_names or name in ctx.enum_names:
        return False
    return True


def is_error_out_parameter(objc_type: str) -> bool:
    base, depth = split_pointers(strip_qualifiers(objc_type))
    return base == "NSError" and depth >= 2
