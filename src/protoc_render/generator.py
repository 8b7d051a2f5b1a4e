from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from google.protobuf import descriptor_pb2

from protoc_render.config import GeneratorConfig, InOutConfig
from protoc_render.descriptor_set import load_descriptor_set
from protoc_render.options import ExtensionRegistry, create_extension_registry
from protoc_render.renderer.base import Renderer
from protoc_render.renderer.engine import RendererEngine
from protoc_render.renderer.scripted import ScriptedRenderer
from protoc_render.renderer.template import TemplateRenderer
from protoc_render.util import check_dir_is_empty

logger = logging.getLogger(__name__)


def render_in_out(
    name: str,
    renderer: Renderer,
    in_outs: List[InOutConfig],
    descriptor_set: descriptor_pb2.FileDescriptorSet,
    registry: ExtensionRegistry,
) -> List[Path]:
    """Run ``renderer`` once per input/output pair."""
    written: List[Path] = []
    for in_out in in_outs:
        logger.info(
            "Rendering using '%s' in '%s' to output directory '%s'",
            name,
            in_out.input.as_posix(),
            in_out.output.as_posix(),
        )
        renderer.reset()
        try:
            renderer.load(in_out.input, in_out.overlays)
            check_dir_is_empty(in_out.output)
            in_out.output.mkdir(parents=True, exist_ok=True)
            written.extend(RendererEngine(renderer, registry).render(descriptor_set, in_out.output))
        finally:
            renderer.reset()
    return written


def generate_from_descriptor_set(
    config: GeneratorConfig,
    descriptor_set: descriptor_pb2.FileDescriptorSet,
    registry: Optional[ExtensionRegistry] = None,
) -> List[Path]:
    registry = registry if registry is not None else create_extension_registry()
    written = render_in_out("template", TemplateRenderer(), config.templates, descriptor_set, registry)
    written += render_in_out("script", ScriptedRenderer(), config.scripts, descriptor_set, registry)
    return written


def generate(config: GeneratorConfig, registry: Optional[ExtensionRegistry] = None) -> List[Path]:
    """Render every configured template and script root; returns the written paths."""
    if not config.templates and not config.scripts:
        return []
    descriptor_set = load_descriptor_set(config.descriptor_set_path)
    return generate_from_descriptor_set(config, descriptor_set, registry)
