"""Jinja2 backend.

Loads config and templates from one root directory::

    root/config.json        (or config.yaml / config.yml)
    root/file.j2
    root/metadata.j2        (optional)

Every other ``*.j2`` file in the root is registered under its stem and can be
pulled into other templates with ``{% include "name" %}``.
Undefined names raise, so optional option keys need ``is defined``.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import IO, Any, Dict, Optional, Sequence

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from protoc_render.case import Case
from protoc_render.config import RendererConfig, load_renderer_config
from protoc_render.context.metadata import MetadataContext
from protoc_render.context.models import FileContext
from protoc_render.errors import RenderError, TemplateOrScriptLoadError
from protoc_render.renderer.base import FILE_ENTRY_NAME, METADATA_ENTRY_NAME, Renderer

logger = logging.getLogger(__name__)

TEMPLATE_EXT = ".j2"

CASE_FILTERS = {
    "lower_snake": Case.LOWER_SNAKE,
    "upper_snake": Case.UPPER_SNAKE,
    "lower_kebab": Case.LOWER_KEBAB,
    "upper_kebab": Case.UPPER_KEBAB,
    "lower_camel": Case.LOWER_CAMEL,
    "upper_camel": Case.UPPER_CAMEL,
}


def _context_vars(context) -> Dict[str, Any]:
    variables = {f.name: getattr(context, f.name) for f in fields(context)}
    variables["context"] = context
    return variables


class TemplateRenderer(Renderer):
    def __init__(self, config: Optional[RendererConfig] = None):
        self._config = config if config is not None else RendererConfig()
        self._templates: Dict[str, str] = {}
        self._env = self._create_environment()

    def _create_environment(self) -> Environment:
        env = Environment(
            loader=DictLoader(self._templates),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        for name, case in CASE_FILTERS.items():
            env.filters[name] = case.rename
        return env

    @property
    def config(self) -> RendererConfig:
        return self._config

    def load(self, root: Path, overlays: Sequence[Path] = ()) -> None:
        root = Path(root)
        self._config = load_renderer_config(root, overlays)
        self.load_templates(root)
        if FILE_ENTRY_NAME not in self._templates:
            raise TemplateOrScriptLoadError(
                f"No '{FILE_ENTRY_NAME}{TEMPLATE_EXT}' template in {root.as_posix()}"
            )

    def load_templates(self, root: Path) -> None:
        for path in sorted(Path(root).iterdir()):
            if not path.is_file() or path.suffix != TEMPLATE_EXT:
                continue
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as e:
                raise TemplateOrScriptLoadError(
                    f"Failed to read '{path.stem}' template at path: {path.as_posix()}"
                ) from e
            self.load_template_string(path.stem, source)

    def load_template_string(self, name: str, source: str) -> None:
        """Register ``source`` as template ``name``, compiling it eagerly."""
        self._templates[name] = source
        try:
            self._env.get_template(name)
        except TemplateError as e:
            del self._templates[name]
            raise TemplateOrScriptLoadError(f"Failed to load '{name}' template: {e}") from e
        logger.debug("Loaded template '%s'", name)

    def reset(self) -> None:
        self._templates.clear()
        self._env = self._create_environment()

    def has_metadata(self) -> bool:
        return METADATA_ENTRY_NAME in self._templates

    def render_to_string(self, name: str, context) -> str:
        try:
            return self._env.get_template(name).render(_context_vars(context))
        except Exception as e:
            raise RenderError(
                f"Failed to render template '{name}' for {type(context).__name__}: {e}"
            ) from e

    def render_file(self, context: FileContext, output: IO[str]) -> None:
        output.write(self.render_to_string(FILE_ENTRY_NAME, context))

    def render_metadata(self, context: MetadataContext, output: IO[str]) -> None:
        output.write(self.render_to_string(METADATA_ENTRY_NAME, context))
