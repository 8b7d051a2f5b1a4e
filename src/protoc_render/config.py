"""Renderer and generator configuration.

A renderer root (template or script directory) holds one ``config.json``,
``config.yaml`` or ``config.yml`` decoded into ``RendererConfig``. Only
``file_extension`` is required; everything else has a default.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from protoc_render.case import Case
from protoc_render.errors import ConfigDecodeError
from protoc_render.type_path import PACKAGE_SEPARATOR

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config"
CONFIG_EXTENSIONS = (".json", ".yaml", ".yml")

DEFAULT_METADATA_FILE_NAME = "metadata"
DEFAULT_PACKAGE_FILE_NAME = "unknown"

PRIMITIVE_TYPES = (
    "double",
    "float",
    "int32",
    "int64",
    "uint32",
    "uint64",
    "sint32",
    "sint64",
    "fixed32",
    "fixed64",
    "sfixed32",
    "sfixed64",
    "bool",
    "string",
    "bytes",
)


def default_type_config() -> Dict[str, str]:
    return {name: name for name in PRIMITIVE_TYPES}


def _expect(value: Any, expected: type, key: str) -> Any:
    # bool is an int subclass; never accept it where a number is wanted.
    if expected is int and isinstance(value, bool):
        raise ConfigDecodeError(f"'{key}' must be int, got bool")
    if not isinstance(value, expected):
        raise ConfigDecodeError(
            f"'{key}' must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _expect_str_list(value: Any, key: str) -> List[str]:
    _expect(value, list, key)
    for item in value:
        _expect(item, str, key)
    return list(value)


def _expect_str_dict(value: Any, key: str) -> Dict[str, str]:
    _expect(value, dict, key)
    for k, v in value.items():
        _expect(k, str, key)
        _expect(v, str, f"{key}.{k}")
    return dict(value)


def _check_keys(data: Mapping[str, Any], allowed: Sequence[str], section: str) -> None:
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ConfigDecodeError(f"Unknown key(s) in {section}: {', '.join(unknown)}")


def _field_names(cls) -> List[str]:
    return [f.name for f in fields(cls)]


def _parse_case(value: Any, key: str) -> Case:
    _expect(value, str, key)
    try:
        return Case.parse(value)
    except ValueError as e:
        raise ConfigDecodeError(f"'{key}': {e}") from e


@dataclass
class CaseConfig:
    file_name: Case = Case.LOWER_KEBAB
    package: Case = Case.LOWER_SNAKE
    # Package components of referenced types and imports.
    import_: Case = Case.LOWER_SNAKE
    enum_name: Case = Case.UPPER_CAMEL
    enum_value_name: Case = Case.UPPER_CAMEL
    message_name: Case = Case.UPPER_CAMEL
    field_name: Case = Case.LOWER_SNAKE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CaseConfig":
        _expect(data, dict, "case_config")
        keys = {f.name.rstrip("_"): f.name for f in fields(cls)}
        _check_keys(data, list(keys), "case_config")
        return cls(**{
            keys[key]: _parse_case(value, f"case_config.{key}")
            for key, value in data.items()
        })


class IndentChar(Enum):
    SPACE = " "
    TAB = "\t"

    @classmethod
    def parse(cls, value: Any) -> "IndentChar":
        _expect(value, str, "scripted.indent_char")
        lowered = value.lower()
        if lowered == "space":
            return cls.SPACE
        if lowered == "tab":
            return cls.TAB
        raise ConfigDecodeError(
            f"'scripted.indent_char' must be 'space' or 'tab', got '{value}'"
        )


@dataclass
class ScopeConfig:
    open: str = ""
    close: str = ""
    indent: int = 0
    open_on_new_line: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScopeConfig":
        _expect(data, dict, "scripted.scope")
        _check_keys(data, _field_names(cls), "scripted.scope")
        scope = cls()
        if "open" in data:
            scope.open = _expect(data["open"], str, "scripted.scope.open")
        if "close" in data:
            scope.close = _expect(data["close"], str, "scripted.scope.close")
        if "indent" in data:
            scope.indent = _expect(data["indent"], int, "scripted.scope.indent")
        if "open_on_new_line" in data:
            scope.open_on_new_line = _expect(
                data["open_on_new_line"], bool, "scripted.scope.open_on_new_line"
            )
        return scope


@dataclass
class ScriptedConfig:
    """Options for the script backend's ``Output`` scope helpers."""

    indent_char: IndentChar = IndentChar.SPACE
    scope: ScopeConfig = field(default_factory=ScopeConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScriptedConfig":
        _expect(data, dict, "scripted")
        _check_keys(data, _field_names(cls), "scripted")
        scripted = cls()
        if "indent_char" in data:
            scripted.indent_char = IndentChar.parse(data["indent_char"])
        if "scope" in data:
            scripted.scope = ScopeConfig.from_dict(data["scope"])
        return scripted


@dataclass
class OverlayConfig:
    """Arbitrary values attached to fully-qualified targets.

    ``by_key`` maps a key to a value and the targets that receive it;
    ``by_target`` maps a target to its keys directly. After ``initialize()``
    every ``by_key`` entry is also present in ``by_target``, unless the target
    already defined that key.
    """

    by_key: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    by_target: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    _initialized: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], section: str = "overlays") -> "OverlayConfig":
        _expect(data, dict, section)
        _check_keys(data, ["by_key", "by_target"], section)
        overlays = cls()
        for key, entry in _expect(data.get("by_key", {}), dict, f"{section}.by_key").items():
            _expect(entry, dict, f"{section}.by_key.{key}")
            _check_keys(entry, ["value", "targets"], f"{section}.by_key.{key}")
            if "value" not in entry:
                raise ConfigDecodeError(f"'{section}.by_key.{key}' has no 'value'")
            overlays.by_key[key] = {
                "value": entry["value"],
                "targets": _expect_str_list(
                    entry.get("targets", []), f"{section}.by_key.{key}.targets"
                ),
            }
        for target, values in _expect(data.get("by_target", {}), dict, f"{section}.by_target").items():
            _expect(values, dict, f"{section}.by_target.{target}")
            overlays.by_target[target] = dict(values)
        return overlays

    def merge(self, other: "OverlayConfig") -> None:
        """Merge ``other`` into this config; ``other`` wins on conflicts."""
        if self._initialized:
            raise RuntimeError("Cannot merge into an initialized OverlayConfig")
        self.by_key.update(other.by_key)
        for target, values in other.by_target.items():
            self.by_target.setdefault(target, {}).update(values)

    def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        for key, entry in self.by_key.items():
            for target in entry["targets"]:
                # Explicit by_target values are never overwritten.
                self.by_target.setdefault(target, {}).setdefault(key, entry["value"])

    def for_target(self, target: Optional[str]) -> Dict[str, Any]:
        if target is None:
            return {}
        return dict(self.by_target.get(target, {}))


@dataclass
class RendererConfig:
    file_extension: str = ""
    type_config: Dict[str, str] = field(default_factory=default_type_config)
    case_config: CaseConfig = field(default_factory=CaseConfig)
    metadata_file_name: str = DEFAULT_METADATA_FILE_NAME
    package_separator: str = PACKAGE_SEPARATOR
    one_file_per_package: bool = False
    default_package_file_name: str = DEFAULT_PACKAGE_FILE_NAME
    field_name_override: Dict[str, str] = field(default_factory=dict)
    # Ascend token for relative types, e.g. "super".
    field_relative_parent_prefix: Optional[str] = None
    # None writes the default banner, [] writes nothing.
    generated_header: Optional[List[str]] = None
    ignored_files: List[str] = field(default_factory=list)
    ignored_imports: List[str] = field(default_factory=list)
    scripted: ScriptedConfig = field(default_factory=ScriptedConfig)
    overlays: OverlayConfig = field(default_factory=OverlayConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RendererConfig":
        """Decode a config mapping, failing on unknown keys or wrong types."""
        _expect(data, dict, "config")
        _check_keys(data, _field_names(cls), "config")
        if "file_extension" not in data:
            raise ConfigDecodeError("Config has no 'file_extension'")

        config = cls(file_extension=_expect(data["file_extension"], str, "file_extension"))
        if "type_config" in data:
            # User entries extend the identity mapping for primitives.
            config.type_config.update(_expect_str_dict(data["type_config"], "type_config"))
        if "case_config" in data:
            config.case_config = CaseConfig.from_dict(data["case_config"])
        for key in ("metadata_file_name", "package_separator", "default_package_file_name"):
            if key in data:
                setattr(config, key, _expect(data[key], str, key))
        if "one_file_per_package" in data:
            config.one_file_per_package = _expect(
                data["one_file_per_package"], bool, "one_file_per_package"
            )
        if "field_name_override" in data:
            config.field_name_override = _expect_str_dict(
                data["field_name_override"], "field_name_override"
            )
        if data.get("field_relative_parent_prefix") is not None:
            config.field_relative_parent_prefix = _expect(
                data["field_relative_parent_prefix"], str, "field_relative_parent_prefix"
            )
        if data.get("generated_header") is not None:
            config.generated_header = _expect_str_list(data["generated_header"], "generated_header")
        for key in ("ignored_files", "ignored_imports"):
            if key in data:
                setattr(config, key, _expect_str_list(data[key], key))
        if "scripted" in data:
            config.scripted = ScriptedConfig.from_dict(data["scripted"])
        if "overlays" in data:
            config.overlays = OverlayConfig.from_dict(data["overlays"])
        return config


def read_structured_file(path: Path) -> Any:
    """Decode a JSON or YAML file chosen by its extension."""
    suffix = path.suffix.lower()
    if suffix not in CONFIG_EXTENSIONS:
        raise ConfigDecodeError(
            f"Unsupported config file extension '{suffix}': {path.as_posix()}"
        )
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigDecodeError(f"Failed to read config file: {path.as_posix()}") from e
    try:
        if suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigDecodeError(f"Failed to decode config file: {path.as_posix()}") from e


def find_config_path(root: Path) -> Path:
    for ext in CONFIG_EXTENSIONS:
        path = root / f"{CONFIG_FILE_NAME}{ext}"
        if path.is_file():
            return path
    raise ConfigDecodeError(
        f"No config file found in {root.as_posix()}. "
        f"Expected one of: {', '.join(CONFIG_FILE_NAME + ext for ext in CONFIG_EXTENSIONS)}"
    )


def load_renderer_config(root: Path, overlays: Sequence[Path] = ()) -> RendererConfig:
    """Load the config in ``root`` and merge any extra overlay files, in order."""
    path = find_config_path(Path(root))
    logger.debug("Loading renderer config: %s", path.as_posix())
    try:
        config = RendererConfig.from_dict(read_structured_file(path))
    except ConfigDecodeError as e:
        raise ConfigDecodeError(f"{path.as_posix()}: {e}") from e

    for overlay_path in overlays:
        overlay_path = Path(overlay_path)
        logger.debug("Loading overlay file: %s", overlay_path.as_posix())
        try:
            overlay = OverlayConfig.from_dict(read_structured_file(overlay_path))
        except ConfigDecodeError as e:
            raise ConfigDecodeError(f"{overlay_path.as_posix()}: {e}") from e
        config.overlays.merge(overlay)
    config.overlays.initialize()
    return config


@dataclass
class InOutConfig:
    """One renderer root and the directory it renders into."""

    input: Path
    output: Path
    overlays: List[Path] = field(default_factory=list)

    def __post_init__(self):
        self.input = Path(self.input)
        self.output = Path(self.output)
        self.overlays = [Path(p) for p in self.overlays]


@dataclass
class GeneratorConfig:
    descriptor_set_path: Path
    templates: List[InOutConfig] = field(default_factory=list)
    scripts: List[InOutConfig] = field(default_factory=list)

    def __post_init__(self):
        self.descriptor_set_path = Path(self.descriptor_set_path)
