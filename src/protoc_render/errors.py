"""Errors raised during a generation pass.

None of these are recovered from locally: any of them aborts the pass.
"""

from __future__ import annotations

from typing import Optional

UNKNOWN_NAME = "(unknown)"


def name_or_unknown(name: Optional[str]) -> str:
    return name if name else UNKNOWN_NAME


class GeneratorError(Exception):
    """Base class for every error raised by protoc_render."""


class MissingRequiredField(GeneratorError):
    """Raised when a descriptor node lacks a name, number or type."""

    def __init__(self, kind: str, field_name: str, node_name: Optional[str] = None):
        self.kind = kind
        self.field_name = field_name
        self.node_name = name_or_unknown(node_name)
        super().__init__(
            f"{kind} '{self.node_name}' has no '{field_name}'"
        )


class InvalidOption(GeneratorError):
    """Raised when a custom option is malformed or has the wrong wire type."""


class MissingTypeMapping(GeneratorError):
    """Raised when a proto primitive has no entry in the configured type_config."""


class OutputNotEmpty(GeneratorError):
    """Raised when the output directory already contains files."""


class TemplateOrScriptLoadError(GeneratorError):
    """Raised when templates or scripts cannot be read or compiled."""


class RenderError(GeneratorError):
    """Raised when a backend fails while producing output."""


class ConfigDecodeError(GeneratorError):
    """Raised when a renderer config or overlay file cannot be decoded."""


class DescriptorSetError(GeneratorError):
    """Raised when the descriptor set cannot be produced or read."""
