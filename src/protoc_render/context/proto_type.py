from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from google.protobuf import descriptor_pb2

from protoc_render.config import RendererConfig
from protoc_render.errors import MissingRequiredField, MissingTypeMapping
from protoc_render.options import NATIVE_TYPE, ExtensionRegistry, extension_value
from protoc_render.type_path import TypePath, normalize_prefix

_FieldType = descriptor_pb2.FieldDescriptorProto

# Proto type id -> primitive name used as the type_config key.
PRIMITIVE_NAMES: Dict[int, str] = {
    _FieldType.TYPE_DOUBLE: "double",
    _FieldType.TYPE_FLOAT: "float",
    _FieldType.TYPE_INT64: "int64",
    _FieldType.TYPE_UINT64: "uint64",
    _FieldType.TYPE_INT32: "int32",
    _FieldType.TYPE_FIXED64: "fixed64",
    _FieldType.TYPE_FIXED32: "fixed32",
    _FieldType.TYPE_BOOL: "bool",
    _FieldType.TYPE_STRING: "string",
    _FieldType.TYPE_BYTES: "bytes",
    _FieldType.TYPE_UINT32: "uint32",
    _FieldType.TYPE_SFIXED32: "sfixed32",
    _FieldType.TYPE_SFIXED64: "sfixed64",
    _FieldType.TYPE_SINT32: "sint32",
    _FieldType.TYPE_SINT64: "sint64",
}


class ProtoTypeKind(Enum):
    PRIMITIVE = "primitive"
    NAMED = "named"
    NATIVE_OVERRIDE = "native_override"


class ProtoType:
    """The resolved type of one field: exactly one kind applies."""

    def __init__(self, kind: ProtoTypeKind, value):
        self.kind = kind
        self.value = value

    def __repr__(self):
        return f"ProtoType({self.kind.name}, {self.value!r})"

    def __eq__(self, other):
        if not isinstance(other, ProtoType):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value

    @classmethod
    def from_field(
        cls,
        field: descriptor_pb2.FieldDescriptorProto,
        registry: Optional[ExtensionRegistry] = None,
    ) -> "ProtoType":
        """Native type override, then type name, then primitive type id."""
        native_type = _native_type_override(field, registry)
        if native_type is not None:
            return cls(ProtoTypeKind.NATIVE_OVERRIDE, native_type)
        if field.type_name:
            return cls(ProtoTypeKind.NAMED, field.type_name)
        if field.HasField("type"):
            return cls(ProtoTypeKind.PRIMITIVE, field.type)
        raise MissingRequiredField("Field", "type", field.name)

    def to_type_path(self, config: RendererConfig) -> TypePath:
        if self.kind is ProtoTypeKind.PRIMITIVE:
            return TypePath.from_type(primitive_type_name(self.value, config))
        if self.kind is ProtoTypeKind.NATIVE_OVERRIDE:
            raise ValueError(f"Native override '{self.value}' is not a type path")

        type_name = normalize_prefix(self.value)
        type_name = config.type_config.get(type_name, type_name)
        return TypePath.from_type(
            type_name,
            separator=config.package_separator,
            name_case=config.case_config.message_name,
            package_case=config.case_config.import_,
        )

    def resolve(self, config: RendererConfig, package: Optional[str]) -> Tuple[str, str]:
        """``(fully_qualified, relative)`` type strings as seen from ``package``.

        Native overrides are written verbatim in both forms.
        """
        if self.kind is ProtoTypeKind.NATIVE_OVERRIDE:
            return self.value, self.value
        type_path = self.to_type_path(config)
        return (
            type_path.to_string(),
            type_path.relative_to(package, config.field_relative_parent_prefix),
        )


def _native_type_override(
    field: descriptor_pb2.FieldDescriptorProto,
    registry: Optional[ExtensionRegistry],
) -> Optional[str]:
    if registry is None or NATIVE_TYPE not in registry:
        return None
    if not field.HasField("options"):
        return None
    return extension_value(field.options, NATIVE_TYPE)


def primitive_type_name(type_id: int, config: RendererConfig) -> str:
    """The configured target type for a proto primitive."""
    name = PRIMITIVE_NAMES.get(type_id)
    if name is None:
        raise MissingTypeMapping(f"Proto type id {type_id} is not a primitive type")
    try:
        return config.type_config[name]
    except KeyError:
        raise MissingTypeMapping(
            f"No native type is configured for proto primitive '{name}'"
        ) from None
