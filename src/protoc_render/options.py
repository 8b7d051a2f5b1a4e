"""Decoding of built-in and custom proto options into plain dicts.

Custom options are proto extensions. They are not compiled into this package;
when a descriptor set is parsed they remain in each options message's unknown
fields, and are decoded here against an explicit ``ExtensionRegistry``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from google.protobuf.message import Message as ProtoMessage
from google.protobuf.unknown_fields import UnknownFieldSet

from protoc_render.errors import InvalidOption

logger = logging.getLogger(__name__)

KV_SEPARATOR = "="

WIRETYPE_VARINT = 0
WIRETYPE_LENGTH_DELIMITED = 2

FILE_OPTIONS = "FileOptions"
MESSAGE_OPTIONS = "MessageOptions"
FIELD_OPTIONS = "FieldOptions"
ENUM_OPTIONS = "EnumOptions"
ENUM_VALUE_OPTIONS = "EnumValueOptions"

# Well-known option fields copied by name into the options dict.
BUILTIN_OPTIONS: Dict[str, Tuple[str, ...]] = {
    FILE_OPTIONS: (
        "deprecated",
        "go_package",
        "java_package",
        "ruby_package",
        "csharp_namespace",
        "php_namespace",
        "php_metadata_namespace",
        "swift_prefix",
        "java_generic_services",
        "java_outer_classname",
        "java_multiple_files",
        "cc_generic_services",
        "cc_enable_arenas",
        "java_string_check_utf8",
        "optimize_for",
        "php_generic_services",
        "php_class_prefix",
        "py_generic_services",
        "objc_class_prefix",
    ),
    MESSAGE_OPTIONS: (
        "deprecated",
        "message_set_wire_format",
        "no_standard_descriptor_accessor",
    ),
    FIELD_OPTIONS: (
        "deprecated",
        "ctype",
        "packed",
        "jstype",
        "lazy",
        "weak",
    ),
    ENUM_OPTIONS: (
        "deprecated",
        "allow_alias",
    ),
    ENUM_VALUE_OPTIONS: (
        "deprecated",
    ),
}


class ExtensionKind(Enum):
    STRING = "string"
    REPEATED_STRING = "repeated string"
    BOOL = "bool"


@dataclass(frozen=True)
class Extension:
    name: str
    extendee: str
    number: int
    kind: ExtensionKind


# protox extensions, see proto/protox.proto.
NATIVE_TYPE = Extension("protox.native_type", FIELD_OPTIONS, 91000, ExtensionKind.STRING)
FILE_KEY_VALUE = Extension("protox.file_key_value", FILE_OPTIONS, 91001, ExtensionKind.REPEATED_STRING)
MSG_KEY_VALUE = Extension("protox.msg_key_value", MESSAGE_OPTIONS, 91001, ExtensionKind.REPEATED_STRING)
FIELD_KEY_VALUE = Extension("protox.field_key_value", FIELD_OPTIONS, 91001, ExtensionKind.REPEATED_STRING)
ENUM_KEY_VALUE = Extension("protox.enum_key_value", ENUM_OPTIONS, 91001, ExtensionKind.REPEATED_STRING)
ENUM_VALUE_KEY_VALUE = Extension(
    "protox.enum_value_key_value", ENUM_VALUE_OPTIONS, 91001, ExtensionKind.REPEATED_STRING
)


@dataclass
class ExtensionRegistry:
    """The set of custom option extensions known to the renderer."""

    _by_number: Dict[Tuple[str, int], Extension] = field(default_factory=dict)
    _key_values: Dict[str, Extension] = field(default_factory=dict)

    def register(self, extension: Extension) -> None:
        self._by_number[(extension.extendee, extension.number)] = extension

    def register_key_value(self, extension: Extension) -> None:
        """Register ``extension`` as the key=value list for its extendee."""
        if extension.kind is not ExtensionKind.REPEATED_STRING:
            raise ValueError(f"Key-value extension '{extension.name}' must be a repeated string")
        self.register(extension)
        self._key_values[extension.extendee] = extension

    def find(self, extendee: str, number: int) -> Optional[Extension]:
        return self._by_number.get((extendee, number))

    def key_value_extension(self, extendee: str) -> Optional[Extension]:
        return self._key_values.get(extendee)

    def __contains__(self, extension: Extension) -> bool:
        return self._by_number.get((extension.extendee, extension.number)) == extension


def create_extension_registry() -> ExtensionRegistry:
    registry = ExtensionRegistry()
    registry.register_key_value(FILE_KEY_VALUE)
    registry.register_key_value(ENUM_KEY_VALUE)
    registry.register_key_value(ENUM_VALUE_KEY_VALUE)
    registry.register_key_value(MSG_KEY_VALUE)
    registry.register_key_value(FIELD_KEY_VALUE)
    registry.register(NATIVE_TYPE)
    return registry


def _check_extendee(options: ProtoMessage, extension: Extension) -> None:
    target = options.DESCRIPTOR.name
    if target != extension.extendee:
        raise InvalidOption(
            f"Using extension '{extension.name}' with the wrong options type. "
            f"Target: {target}, expected {extension.extendee}"
        )


def _decode_value(extension: Extension, wire_type: int, data: Any) -> Any:
    if extension.kind in (ExtensionKind.STRING, ExtensionKind.REPEATED_STRING):
        if wire_type != WIRETYPE_LENGTH_DELIMITED:
            raise InvalidOption(
                f"Option '{extension.name}' expected a string, found wire type {wire_type}"
            )
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidOption(f"Option '{extension.name}' is not valid utf-8") from e

    if wire_type != WIRETYPE_VARINT:
        raise InvalidOption(
            f"Option '{extension.name}' expected a varint, found wire type {wire_type}"
        )
    return bool(data)


def extension_values(options: Optional[ProtoMessage], extension: Extension) -> List[Any]:
    """All occurrences of ``extension`` set on ``options``, in wire order."""
    if options is None:
        return []
    _check_extendee(options, extension)
    values = []
    for unknown in UnknownFieldSet(options):
        if unknown.field_number != extension.number:
            continue
        values.append(_decode_value(extension, unknown.wire_type, unknown.data))
    return values


def extension_value(options: Optional[ProtoMessage], extension: Extension) -> Optional[Any]:
    """The value of a singular extension; the last occurrence wins."""
    values = extension_values(options, extension)
    return values[-1] if values else None


def split_key_value(kv: str) -> Tuple[str, str]:
    """Split ``key=value`` on the first separator."""
    key, sep, value = kv.partition(KV_SEPARATOR)
    if not sep or not key or not value:
        raise InvalidOption(
            f"Failed to split custom key-value option '{kv}'. Expected format: key=value"
        )
    return key, value


def key_values(options: Optional[ProtoMessage], extension: Extension) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for kv in extension_values(options, extension):
        key, value = split_key_value(kv)
        result[key] = value
    return result


def builtin_options(options: Optional[ProtoMessage]) -> Dict[str, Any]:
    if options is None:
        return {}
    result: Dict[str, Any] = {}
    known = options.DESCRIPTOR.fields_by_name
    for name in BUILTIN_OPTIONS.get(options.DESCRIPTOR.name, ()):
        # Some fields were removed from descriptor.proto in later releases.
        if name in known and options.HasField(name):
            result[name] = getattr(options, name)
    return result


def decode_options(
    options: Optional[ProtoMessage],
    registry: ExtensionRegistry,
) -> Dict[str, Any]:
    """Built-in option fields plus the registered key=value pairs for ``options``."""
    if options is None:
        return {}
    result = builtin_options(options)
    extension = registry.key_value_extension(options.DESCRIPTOR.name)
    if extension is not None:
        result.update(key_values(options, extension))
    logger.debug("Decoded %s: %s", options.DESCRIPTOR.name, result)
    return result
