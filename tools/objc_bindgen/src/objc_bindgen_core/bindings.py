from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Attribute:
    """A C# attribute; ``args`` are already-rendered C# argument expressions."""

    name: str
    args: list[str] = field(default_factory=list)
    target: str | None = None

    def render_inner(self) -> str:
        text = self.name
        if self.args:
            text += f" ({', '.join(self.args)})"
        return text

    def render(self) -> str:
        prefix = f"{self.target}: " if self.target else ""
        return f"[{prefix}{self.render_inner()}]"

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "args": list(self.args)}
        if self.target:
            payload["target"] = self.target
        return payload


def quoted(value: str) -> str:
    return f'"{value}"'


def export_attribute(selector: str, semantic: str | None = None) -> Attribute:
    args = [quoted(selector)]
    if semantic:
        args.append(f"ArgumentSemantic.{semantic}")
    return Attribute("Export", args)


def base_type_attribute(name: str) -> Attribute:
    return Attribute("BaseType", [f"typeof ({name})"])


def find_attribute(attributes: list[Attribute], name: str, target: str | None = None) -> Attribute | None:
    for attr in attributes:
        if attr.name == name and attr.target == target:
            return attr
    return None


@dataclass
class BoundParameter:
    name: str
    type: str
    attributes: list[Attribute] = field(default_factory=list)

    @property
    def is_nullable(self) -> bool:
        return find_attribute(self.attributes, "NullAllowed") is not None

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "attributes": [item.as_dict() for item in self.attributes],
        }


@dataclass
class Accessor:
    kind: str
    attributes: list[Attribute] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "attributes": [item.as_dict() for item in self.attributes]}


@dataclass
class Member:
    """One member of an output declaration.

    ``kind`` is one of property, method, constructor, field, function or value
    (an enum member); ``type`` is the property/field type or the return type.
    """

    kind: str
    name: str
    type: str = "void"
    attributes: list[Attribute] = field(default_factory=list)
    parameters: list[BoundParameter] = field(default_factory=list)
    accessors: list[Accessor] = field(default_factory=list)
    value: str | None = None
    is_unsafe: bool = False
    comment: str | None = None

    def has_attribute(self, name: str, target: str | None = None) -> bool:
        return find_attribute(self.attributes, name, target) is not None

    def attribute(self, name: str, target: str | None = None) -> Attribute | None:
        return find_attribute(self.attributes, name, target)

    @property
    def export_selector(self) -> str | None:
        attr = self.attribute("Export")
        if attr is None or not attr.args:
            return None
        return attr.args[0].strip('"')

    def accessor(self, kind: str) -> Accessor | None:
        for item in self.accessors:
            if item.kind == kind:
                return item
        return None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "name": self.name,
            "type": self.type,
            "attributes": [item.as_dict() for item in self.attributes],
        }
        if self.parameters:
            payload["parameters"] = [item.as_dict() for item in self.parameters]
        if self.accessors:
            payload["accessors"] = [item.as_dict() for item in self.accessors]
        if self.value is not None:
            payload["value"] = self.value
        if self.is_unsafe:
            payload["unsafe"] = True
        return payload


@dataclass
class Declaration:
    """A top-level C# declaration produced from one Objective-C construct.

    ``kind`` is one of interface, protocol, category, enum, struct, functions,
    constants or delegate.
    """

    kind: str
    name: str
    attributes: list[Attribute] = field(default_factory=list)
    bases: list[str] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)
    backing_type: str | None = None
    return_type: str | None = None
    parameters: list[BoundParameter] = field(default_factory=list)
    comment: str | None = None

    def has_attribute(self, name: str) -> bool:
        return find_attribute(self.attributes, name) is not None

    def attribute(self, name: str) -> Attribute | None:
        return find_attribute(self.attributes, name)

    def member(self, name: str, kind: str | None = None) -> Member | None:
        for item in self.members:
            if item.name == name and (kind is None or item.kind == kind):
                return item
        return None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "name": self.name,
            "attributes": [item.as_dict() for item in self.attributes],
            "bases": list(self.bases),
            "members": [item.as_dict() for item in self.members],
        }
        if self.backing_type is not None:
            payload["backingType"] = self.backing_type
        if self.return_type is not None:
            payload["returnType"] = self.return_type
        if self.parameters:
            payload["parameters"] = [item.as_dict() for item in self.parameters]
        return payload
