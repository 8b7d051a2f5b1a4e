"""Render contexts handed to the template and script backends.

Contexts are built once per generation pass and never hold a reference back
to the descriptor they were built from.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class _Overlayed:
    overlays: Dict[str, Any]

    def overlay(self, key: str, default: Any = None) -> Any:
        """Config overlay value for this node, or ``default``."""
        return self.overlays.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ImportContext:
    # e.g. path/to/file_name.proto
    file_path: str
    # e.g. file_name
    file_name: str
    # e.g. file_name.proto
    file_name_with_ext: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EnumValueContext(_Overlayed):
    name: str
    number: int
    options: Dict[str, Any] = field(default_factory=dict)
    overlays: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EnumContext(_Overlayed):
    name: str
    values: List[EnumValueContext] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    overlays: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FieldContext(_Overlayed):
    """A message field.

    When ``is_map`` is set, the ``*_key_type`` and ``*_value_type`` attributes
    are filled and ``fully_qualified_type`` / ``relative_type`` are None.
    """

    field_name: str
    fully_qualified_type: Optional[str] = None
    relative_type: Optional[str] = None
    is_array: bool = False
    is_map: bool = False
    is_oneof: bool = False
    fully_qualified_key_type: Optional[str] = None
    fully_qualified_value_type: Optional[str] = None
    relative_key_type: Optional[str] = None
    relative_value_type: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    overlays: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.field_name


@dataclass(frozen=True)
class MessageContext(_Overlayed):
    name: str
    fields: List[FieldContext] = field(default_factory=list)
    # Nested declarations, map entries excluded.
    messages: List["MessageContext"] = field(default_factory=list)
    enums: List[EnumContext] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    overlays: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FileContext(_Overlayed):
    # Path of the proto file relative to its import root.
    source_file: str
    package: str = ""
    imports: List[ImportContext] = field(default_factory=list)
    enums: List[EnumContext] = field(default_factory=list)
    messages: List[MessageContext] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    overlays: Dict[str, Any] = field(default_factory=dict)
