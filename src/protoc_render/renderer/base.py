from __future__ import annotations

import abc
from pathlib import Path
from typing import IO, Sequence

from protoc_render.config import RendererConfig
from protoc_render.context.metadata import MetadataContext
from protoc_render.context.models import FileContext

FILE_ENTRY_NAME = "file"
METADATA_ENTRY_NAME = "metadata"

DEFAULT_GENERATED_HEADER = [
    "// ---------------------------------------------------------------",
    "// This file was generated by protoc-render. Do not edit by hand.",
    "// ---------------------------------------------------------------",
]


def header_text(config: RendererConfig) -> str:
    lines = DEFAULT_GENERATED_HEADER if config.generated_header is None else config.generated_header
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def write_header(config: RendererConfig, output: IO[str]) -> None:
    output.write(header_text(config))


class Renderer(abc.ABC):
    """A rendering backend.

    A backend loads its config and entry points from one root directory and
    turns contexts into text. Output layout is decided by ``RendererEngine``.
    """

    @abc.abstractmethod
    def load(self, root: Path, overlays: Sequence[Path] = ()) -> None:
        """Load ``config.*`` and the backend entry points from ``root``."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Forget everything loaded; called between unrelated passes."""

    @property
    @abc.abstractmethod
    def config(self) -> RendererConfig:
        ...

    @abc.abstractmethod
    def has_metadata(self) -> bool:
        ...

    @abc.abstractmethod
    def render_file(self, context: FileContext, output: IO[str]) -> None:
        ...

    @abc.abstractmethod
    def render_metadata(self, context: MetadataContext, output: IO[str]) -> None:
        ...
