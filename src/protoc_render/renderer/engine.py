"""Output layout for one generation pass.

Per-file layout mirrors the proto file tree; each directory holding generated
files also gets a metadata file when the backend has a metadata entry point.
Collapsed layout (``one_file_per_package``) writes one file per proto package
and a single metadata file at the output root.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Set

from google.protobuf import descriptor_pb2

from protoc_render.context.builder import ContextBuilder
from protoc_render.context.metadata import MetadataBuilder
from protoc_render.options import ExtensionRegistry
from protoc_render.renderer.base import Renderer, write_header
from protoc_render.type_path import PACKAGE_SEPARATOR
from protoc_render.util import create_output_file, normalize_slashes, replace_proto_ext

logger = logging.getLogger(__name__)

# Replaces the package separator in collapsed file names.
PACKAGE_FILE_SEPARATOR = "-"


class RendererEngine:
    def __init__(self, renderer: Renderer, registry: Optional[ExtensionRegistry] = None):
        self.renderer = renderer
        self.registry = registry

    @property
    def config(self):
        return self.renderer.config

    def render(
        self,
        descriptor_set: descriptor_pb2.FileDescriptorSet,
        output_root: Path,
    ) -> List[Path]:
        """Render every file in ``descriptor_set``; returns the written paths."""
        output_root = Path(output_root)
        builder = ContextBuilder(self.config, self.registry)
        if self.config.one_file_per_package:
            return self._render_collapsed(descriptor_set, output_root, builder)
        return self._render_per_file(descriptor_set, output_root, builder)

    def output_file_path(self, proto_file_name: str) -> PurePosixPath:
        """``dir/someFile.proto`` -> ``dir/some-file.<ext>`` under the configured cases."""
        path = replace_proto_ext(normalize_slashes(proto_file_name), self.config.file_extension)
        return self.config.case_config.file_name.rename_file_name(path)

    def package_file_path(self, package: str) -> PurePosixPath:
        name = package.replace(PACKAGE_SEPARATOR, PACKAGE_FILE_SEPARATOR)
        path = replace_proto_ext(name, self.config.file_extension)
        return self.config.case_config.file_name.rename_file_name(path)

    def metadata_file_path(self, directory: PurePosixPath) -> PurePosixPath:
        name = self.config.metadata_file_name
        ext = self.config.file_extension.lstrip(".")
        return directory / (f"{name}.{ext}" if ext else name)

    def _is_ignored(self, file: descriptor_pb2.FileDescriptorProto) -> bool:
        return file.name in self.config.ignored_files

    def _render_per_file(
        self,
        descriptor_set: descriptor_pb2.FileDescriptorSet,
        output_root: Path,
        builder: ContextBuilder,
    ) -> List[Path]:
        written: List[Path] = []
        relative_paths: List[PurePosixPath] = []
        for file in descriptor_set.file:
            if self._is_ignored(file):
                logger.debug("Skipping ignored file: %s", file.name)
                continue
            context = builder.build_file(file)
            relative = self.output_file_path(context.source_file)
            path = output_root / relative
            logger.debug("Rendering file: %s", relative.as_posix())
            with create_output_file(path) as f:
                write_header(self.config, f)
                self.renderer.render_file(context, f)
            relative_paths.append(relative)
            written.append(path)

        if self.renderer.has_metadata():
            written.extend(self._render_directory_metadata(relative_paths, output_root))
        return written

    def _render_directory_metadata(
        self,
        relative_paths: List[PurePosixPath],
        output_root: Path,
    ) -> List[Path]:
        root = PurePosixPath("")
        subdirectories: Set[PurePosixPath] = set()
        for relative in relative_paths:
            for parent in relative.parents:
                if parent != root:
                    subdirectories.add(parent)

        # Only directories that directly hold generated files get a metadata file.
        directories = sorted({p.parent for p in relative_paths}, key=lambda p: p.as_posix())
        written: List[Path] = []
        for directory in directories:
            metadata = MetadataBuilder(directory)
            metadata.append_files(relative_paths)
            metadata.append_subdirectories(sorted(subdirectories, key=lambda p: p.as_posix()))
            context = metadata.build()
            path = output_root / self.metadata_file_path(directory)
            logger.debug("Rendering metadata file: %s", path.as_posix())
            with create_output_file(path) as f:
                write_header(self.config, f)
                self.renderer.render_metadata(context, f)
            written.append(path)
        return written

    def _render_collapsed(
        self,
        descriptor_set: descriptor_pb2.FileDescriptorSet,
        output_root: Path,
        builder: ContextBuilder,
    ) -> List[Path]:
        by_package: Dict[str, List[descriptor_pb2.FileDescriptorProto]] = OrderedDict()
        for file in descriptor_set.file:
            package = file.package or self.config.default_package_file_name
            by_package.setdefault(package, []).append(file)

        written: List[Path] = []
        package_files: Dict[str, str] = OrderedDict()
        for package, files in by_package.items():
            files = [f for f in files if not self._is_ignored(f)]
            if not files:
                logger.debug("Skipping package with only ignored files: %s", package)
                continue
            relative = self.package_file_path(package)
            path = output_root / relative
            logger.debug("Rendering package file: %s", relative.as_posix())
            with create_output_file(path) as f:
                write_header(self.config, f)
                for file in files:
                    self.renderer.render_file(builder.build_file(file), f)
            package_files[package] = relative.as_posix()
            written.append(path)

        if self.renderer.has_metadata():
            metadata = MetadataBuilder()
            metadata.append_package_files(package_files)
            context = metadata.build()
            path = output_root / self.metadata_file_path(PurePosixPath(""))
            logger.debug("Rendering metadata file: %s", path.as_posix())
            with create_output_file(path) as f:
                write_header(self.config, f)
                self.renderer.render_metadata(context, f)
            written.append(path)
        return written
