"""Builds render contexts from descriptor protos."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from google.protobuf import descriptor_pb2

from protoc_render.config import RendererConfig
from protoc_render.context.models import (
    EnumContext,
    EnumValueContext,
    FieldContext,
    FileContext,
    ImportContext,
    MessageContext,
)
from protoc_render.context.proto_type import ProtoType
from protoc_render.errors import MissingRequiredField, name_or_unknown
from protoc_render.options import ExtensionRegistry, create_extension_registry, decode_options
from protoc_render.type_path import PACKAGE_SEPARATOR, TypePath
from protoc_render.util import normalize_slashes

logger = logging.getLogger(__name__)

MAP_KEY_FIELD = "key"
MAP_VALUE_FIELD = "value"


@dataclass(frozen=True)
class MapEntry:
    key: ProtoType
    value: ProtoType


# Fully-qualified map entry type name (".pkg.Msg.FieldEntry") -> entry types.
MapLookup = Dict[str, MapEntry]


def _qualify(scope: Optional[str], name: str) -> str:
    return f"{scope}{PACKAGE_SEPARATOR}{name}" if scope else name


def _options_or_none(node):
    return node.options if node.HasField("options") else None


def build_import(relative_path: str) -> ImportContext:
    logger.debug("Creating import context: %s", relative_path)
    path = PurePosixPath(normalize_slashes(relative_path))
    if not path.name:
        raise ValueError(f"Import path has no file name: '{relative_path}'")
    return ImportContext(
        file_path=path.as_posix(),
        file_name=path.stem,
        file_name_with_ext=path.name,
    )


class ContextBuilder:
    """Converts descriptor nodes into contexts under one ``RendererConfig``."""

    def __init__(self, config: RendererConfig, registry: Optional[ExtensionRegistry] = None):
        self.config = config
        self.registry = registry if registry is not None else create_extension_registry()

    def _options(self, node):
        return decode_options(_options_or_none(node), self.registry)

    def _overlays(self, target: Optional[str]):
        return self.config.overlays.for_target(target)

    def build_file(self, file: descriptor_pb2.FileDescriptorProto) -> FileContext:
        logger.debug("Creating file context: %s", name_or_unknown(file.name))
        if not file.name:
            raise MissingRequiredField("File", "name")

        package = file.package or None
        return FileContext(
            source_file=file.name,
            package=self._package(package),
            imports=self._imports(file),
            enums=[self.build_enum(e, package) for e in file.enum_type],
            messages=[self.build_message(m, package) for m in file.message_type],
            options=self._options(file),
            overlays=self._overlays(file.name),
        )

    def _package(self, package: Optional[str]) -> str:
        if package is None:
            return ""
        return TypePath.from_package(
            package,
            separator=self.config.package_separator,
            package_case=self.config.case_config.package,
        ).to_string()

    def _imports(self, file: descriptor_pb2.FileDescriptorProto) -> List[ImportContext]:
        ignored = set(self.config.ignored_imports)
        return [build_import(dep) for dep in file.dependency if dep not in ignored]

    def build_enum(
        self,
        enum: descriptor_pb2.EnumDescriptorProto,
        scope: Optional[str] = None,
    ) -> EnumContext:
        """``scope`` is the package, plus any enclosing message names."""
        logger.debug("Creating enum context: %s", name_or_unknown(enum.name))
        if not enum.name:
            raise MissingRequiredField("Enum", "name")

        full_name = _qualify(scope, enum.name)
        return EnumContext(
            name=self.config.case_config.enum_name.rename(enum.name),
            values=[self._build_enum_value(v, full_name) for v in enum.value],
            options=self._options(enum),
            overlays=self._overlays(full_name),
        )

    def _build_enum_value(
        self,
        value: descriptor_pb2.EnumValueDescriptorProto,
        enum_full_name: str,
    ) -> EnumValueContext:
        if not value.name:
            raise MissingRequiredField("EnumValue", "name")
        if not value.HasField("number"):
            raise MissingRequiredField("EnumValue", "number", value.name)
        return EnumValueContext(
            name=self.config.case_config.enum_value_name.rename(value.name),
            number=value.number,
            options=self._options(value),
            overlays=self._overlays(_qualify(enum_full_name, value.name)),
        )

    def build_message(
        self,
        message: descriptor_pb2.DescriptorProto,
        package: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> MessageContext:
        """Build ``message`` declared in ``package``.

        ``scope`` is the qualified name of the enclosing message for nested
        declarations, and defaults to ``package``.
        """
        logger.debug("Creating message context: %s", name_or_unknown(message.name))
        if not message.name:
            raise MissingRequiredField("Message", "name")

        full_name = _qualify(scope if scope is not None else package, message.name)
        map_lookup = self._collect_map_entries(message, full_name)
        nested = [m for m in message.nested_type if not m.options.map_entry]
        return MessageContext(
            name=self.config.case_config.message_name.rename(message.name),
            fields=[
                self.build_field(f, package, map_lookup, full_name)
                for f in message.field
            ],
            messages=[self.build_message(m, package, full_name) for m in nested],
            enums=[self.build_enum(e, full_name) for e in message.enum_type],
            options=self._options(message),
            overlays=self._overlays(full_name),
        )

    def _collect_map_entries(
        self,
        message: descriptor_pb2.DescriptorProto,
        full_name: str,
    ) -> MapLookup:
        lookup: MapLookup = {}
        for nested in message.nested_type:
            if not nested.options.map_entry:
                continue
            if not nested.name:
                raise MissingRequiredField("Map entry", "name")
            by_name = {f.name: f for f in nested.field}
            for required in (MAP_KEY_FIELD, MAP_VALUE_FIELD):
                if required not in by_name:
                    raise MissingRequiredField("Map entry", required, nested.name)
            type_name = f"{PACKAGE_SEPARATOR}{full_name}{PACKAGE_SEPARATOR}{nested.name}"
            lookup[type_name] = MapEntry(
                key=ProtoType.from_field(by_name[MAP_KEY_FIELD], self.registry),
                value=ProtoType.from_field(by_name[MAP_VALUE_FIELD], self.registry),
            )
        return lookup

    def build_field(
        self,
        field: descriptor_pb2.FieldDescriptorProto,
        package: Optional[str] = None,
        map_lookup: Optional[MapLookup] = None,
        scope: Optional[str] = None,
    ) -> FieldContext:
        logger.debug("Creating field context: %s", name_or_unknown(field.name))
        if not field.name:
            raise MissingRequiredField("Field", "name")

        name = self._field_name(field.name)
        options = self._options(field)
        overlays = self._overlays(_qualify(scope, field.name) if scope else None)
        is_oneof = field.HasField("oneof_index")

        entry = (map_lookup or {}).get(field.type_name) if field.type_name else None
        if entry is not None:
            key_type, relative_key_type = entry.key.resolve(self.config, package)
            value_type, relative_value_type = entry.value.resolve(self.config, package)
            return FieldContext(
                field_name=name,
                is_map=True,
                is_oneof=is_oneof,
                fully_qualified_key_type=key_type,
                fully_qualified_value_type=value_type,
                relative_key_type=relative_key_type,
                relative_value_type=relative_value_type,
                options=options,
                overlays=overlays,
            )

        fully_qualified_type, relative_type = ProtoType.from_field(field, self.registry).resolve(
            self.config, package
        )
        return FieldContext(
            field_name=name,
            fully_qualified_type=fully_qualified_type,
            relative_type=relative_type,
            is_array=field.label == descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED,
            is_oneof=is_oneof,
            options=options,
            overlays=overlays,
        )

    def _field_name(self, name: str) -> str:
        # Overrides are keyed by the already-cased name.
        renamed = self.config.case_config.field_name.rename(name)
        return self.config.field_name_override.get(renamed, renamed)
