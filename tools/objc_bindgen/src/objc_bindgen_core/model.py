from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

NULLABLE_MARKERS = ("nullable", "_Nullable", "__nullable")


def has_nullable_marker(text: str) -> bool:
    return any(marker in text for marker in NULLABLE_MARKERS)


def type_is_nullable(type_text: str) -> bool:
    # For block types only the annotation next to the caret describes the value itself.
    if "(^" in type_text:
        inner = type_text.split("(^", 1)[1].split(")", 1)[0]
        return has_nullable_marker(inner)
    return has_nullable_marker(type_text)


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class ParseDiagnostic:
    message: str
    line: int
    column: int
    file: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }

    def describe(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


@dataclass
class Parameter:
    name: str
    type: str
    is_nullable: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "isNullable": self.is_nullable}


@dataclass
class Property:
    name: str
    type: str
    attributes: list[str] = field(default_factory=list)
    is_nullable: bool = False
    in_nonnull_scope: bool = False
    is_optional: bool = False

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def attribute_value(self, key: str) -> str | None:
        prefix = f"{key}="
        for attr in self.attributes:
            if attr.startswith(prefix):
                return attr[len(prefix):]
        return None

    @property
    def is_class_property(self) -> bool:
        return self.has_attribute("class")

    @property
    def is_readonly(self) -> bool:
        return self.has_attribute("readonly")

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "attributes": list(self.attributes),
            "isNullable": self.is_nullable,
            "inNonnullScope": self.in_nonnull_scope,
            "isOptional": self.is_optional,
        }


@dataclass
class Method:
    selector: str
    return_type: str
    parameters: list[Parameter] = field(default_factory=list)
    is_optional: bool = False
    in_nonnull_scope: bool = False
    is_return_nullable: bool = False
    is_designated_initializer: bool = False

    @property
    def selector_parts(self) -> list[str]:
        if ":" not in self.selector:
            return [self.selector]
        return [part for part in self.selector.split(":") if part]

    def as_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "returnType": self.return_type,
            "parameters": [item.as_dict() for item in self.parameters],
            "isOptional": self.is_optional,
            "inNonnullScope": self.in_nonnull_scope,
            "isReturnNullable": self.is_return_nullable,
            "isDesignatedInitializer": self.is_designated_initializer,
        }


@dataclass
class Interface:
    name: str
    superclass: str | None = None
    category: str | None = None
    protocols: list[str] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    instance_methods: list[Method] = field(default_factory=list)
    class_methods: list[Method] = field(default_factory=list)
    is_init_unavailable: bool = False

    @property
    def is_category(self) -> bool:
        return self.category is not None

    def as_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "superclass": self.superclass,
                "protocols": list(self.protocols),
                "category": self.category,
                "properties": [item.as_dict() for item in self.properties],
                "instanceMethods": [item.as_dict() for item in self.instance_methods],
                "classMethods": [item.as_dict() for item in self.class_methods],
                "isInitUnavailable": self.is_init_unavailable,
            }
        )


@dataclass
class Protocol:
    name: str
    inherited_protocols: list[str] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    required_instance_methods: list[Method] = field(default_factory=list)
    required_class_methods: list[Method] = field(default_factory=list)
    optional_instance_methods: list[Method] = field(default_factory=list)
    optional_class_methods: list[Method] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "inheritedProtocols": list(self.inherited_protocols),
            "properties": [item.as_dict() for item in self.properties],
            "requiredInstanceMethods": [item.as_dict() for item in self.required_instance_methods],
            "requiredClassMethods": [item.as_dict() for item in self.required_class_methods],
            "optionalInstanceMethods": [item.as_dict() for item in self.optional_instance_methods],
            "optionalClassMethods": [item.as_dict() for item in self.optional_class_methods],
        }


@dataclass
class EnumValue:
    name: str
    value: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "value": self.value})


@dataclass
class Enum:
    name: str | None = None
    backing_type: str | None = None
    is_options: bool = False
    values: list[EnumValue] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "backingType": self.backing_type,
                "isOptions": self.is_options,
                "values": [item.as_dict() for item in self.values],
            }
        )


@dataclass
class StructField:
    name: str
    type: str

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class Struct:
    name: str
    fields: list[StructField] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fields": [item.as_dict() for item in self.fields]}


@dataclass
class Typedef:
    name: str
    underlying_type: str

    @property
    def is_block(self) -> bool:
        return "(^)" in self.underlying_type

    @property
    def is_function_pointer(self) -> bool:
        return "(*)" in self.underlying_type

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "underlyingType": self.underlying_type}


@dataclass
class Function:
    name: str
    return_type: str
    parameters: list[Parameter] = field(default_factory=list)
    has_parameter_list: bool = True
    is_inline: bool = False

    @property
    def is_variadic(self) -> bool:
        return any(param.name == "..." for param in self.parameters)

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "returnType": self.return_type,
            "parameters": [item.as_dict() for item in self.parameters],
            "hasParameterList": self.has_parameter_list,
            "isInline": self.is_inline,
        }


@dataclass
class ForwardDeclarations:
    classes: list[str] = field(default_factory=list)
    protocols: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"classes": list(self.classes), "protocols": list(self.protocols)}


@dataclass
class Header:
    file: str = ""
    interfaces: list[Interface] = field(default_factory=list)
    protocols: list[Protocol] = field(default_factory=list)
    enums: list[Enum] = field(default_factory=list)
    structs: list[Struct] = field(default_factory=list)
    typedefs: list[Typedef] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    forward_declarations: ForwardDeclarations = field(default_factory=ForwardDeclarations)
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "interfaces": [item.as_dict() for item in self.interfaces],
            "protocols": [item.as_dict() for item in self.protocols],
            "enums": [item.as_dict() for item in self.enums],
            "structs": [item.as_dict() for item in self.structs],
            "typedefs": [item.as_dict() for item in self.typedefs],
            "functions": [item.as_dict() for item in self.functions],
            "forwardDeclarations": self.forward_declarations.as_dict(),
            "diagnostics": [item.as_dict() for item in self.diagnostics],
        }
