"""Python script backend.

The script root holds ``config.*`` and an entry module ``main.py``::

    def render_file(context, output):
        output.line(f"// {context.source_file}")

    def render_metadata(context, output):   # optional
        ...

``output`` is an ``Output``. Other ``*.py`` files in the root can be imported
by bare module name from ``main.py`` while the renderer is loaded.
"""

from __future__ import annotations

import importlib.abc
import importlib.util
import logging
import sys
import types
from pathlib import Path
from typing import IO, Any, List, Optional, Sequence

from protoc_render.config import RendererConfig, ScriptedConfig, load_renderer_config
from protoc_render.context.metadata import MetadataContext
from protoc_render.context.models import FileContext
from protoc_render.errors import RenderError, TemplateOrScriptLoadError
from protoc_render.renderer.base import FILE_ENTRY_NAME, METADATA_ENTRY_NAME, Renderer

logger = logging.getLogger(__name__)

SCRIPT_EXT = ".py"
MAIN_SCRIPT_NAME = "main"
RENDER_FILE_FN = f"render_{FILE_ENTRY_NAME}"
RENDER_METADATA_FN = f"render_{METADATA_ENTRY_NAME}"


class Output:
    """Text sink passed to script functions."""

    def __init__(self, config: Optional[ScriptedConfig] = None):
        self._config = config if config is not None else ScriptedConfig()
        self._parts: List[str] = []
        self._level = 0
        self._at_line_start = True

    @property
    def content(self) -> str:
        return "".join(self._parts)

    def _indentation(self) -> str:
        return self._config.indent_char.value * (self._config.scope.indent * self._level)

    def append(self, content: Any) -> None:
        # Indentation is added at the start of each non-empty line.
        for piece in str(content).splitlines(keepends=True):
            if self._at_line_start and piece.strip("\r\n"):
                self._parts.append(self._indentation())
            self._parts.append(piece)
            self._at_line_start = piece.endswith("\n")

    def line(self, content: Any = "") -> None:
        self.append(content)
        self.append("\n")

    def indent(self) -> None:
        self._level += 1

    def dedent(self) -> None:
        if self._level == 0:
            raise ValueError("Cannot dedent below zero")
        self._level -= 1

    def open_scope(self) -> None:
        scope = self._config.scope
        self.append(scope.open)
        if scope.open_on_new_line:
            self.append("\n")
        self.indent()

    def close_scope(self) -> None:
        self.dedent()
        if not self._at_line_start:
            self.append("\n")
        self.append(self._config.scope.close)


class _SiblingFinder(importlib.abc.MetaPathFinder):
    """Resolves top-level imports to ``*.py`` files in one directory."""

    def __init__(self, root: Path):
        self.root = root

    def find_spec(self, fullname, path, target=None):
        if path is not None or "." in fullname:
            return None
        candidate = self.root / f"{fullname}{SCRIPT_EXT}"
        if not candidate.is_file():
            return None
        return importlib.util.spec_from_file_location(fullname, candidate)


class ScriptedRenderer(Renderer):
    def __init__(self, config: Optional[RendererConfig] = None):
        self._config = config if config is not None else RendererConfig()
        self._main: Optional[types.ModuleType] = None
        self._finder: Optional[_SiblingFinder] = None

    @property
    def config(self) -> RendererConfig:
        return self._config

    def load(self, root: Path, overlays: Sequence[Path] = ()) -> None:
        root = Path(root).resolve()
        self._config = load_renderer_config(root, overlays)
        main_path = root / f"{MAIN_SCRIPT_NAME}{SCRIPT_EXT}"
        if not main_path.is_file():
            raise TemplateOrScriptLoadError(
                f"Could not find entry point '{MAIN_SCRIPT_NAME}{SCRIPT_EXT}' in {root.as_posix()}"
            )
        try:
            source = main_path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateOrScriptLoadError(
                f"Failed to read script at path: {main_path.as_posix()}"
            ) from e
        self._install_finder(root)
        try:
            self.load_script_string(source, filename=main_path.as_posix())
        except Exception:
            self._remove_finder()
            raise

    def load_script_string(self, source: str, filename: str = "<script>") -> None:
        """Compile and run ``source`` as the entry module."""
        module = types.ModuleType(f"_protoc_render_{MAIN_SCRIPT_NAME}")
        module.__file__ = filename
        try:
            code = compile(source, filename, "exec")
            exec(code, module.__dict__)
        except Exception as e:
            raise TemplateOrScriptLoadError(f"Failed to load script '{filename}': {e}") from e
        if not callable(getattr(module, RENDER_FILE_FN, None)):
            raise TemplateOrScriptLoadError(
                f"Script '{filename}' does not define '{RENDER_FILE_FN}(context, output)'"
            )
        self._main = module
        logger.debug("Loaded script '%s'", filename)

    def _install_finder(self, root: Path) -> None:
        self._remove_finder()
        self._finder = _SiblingFinder(root)
        sys.meta_path.insert(0, self._finder)

    def _remove_finder(self) -> None:
        if self._finder is None:
            return
        root = self._finder.root
        if self._finder in sys.meta_path:
            sys.meta_path.remove(self._finder)
        # Drop sibling modules so the next root cannot see stale ones.
        for name, module in list(sys.modules.items()):
            module_file = getattr(module, "__file__", None)
            if module_file and Path(module_file).parent == root:
                del sys.modules[name]
        self._finder = None

    def reset(self) -> None:
        self._remove_finder()
        self._main = None

    def has_metadata(self) -> bool:
        return self._main is not None and callable(getattr(self._main, RENDER_METADATA_FN, None))

    def _call(self, fn_name: str, context, output: IO[str]) -> None:
        if self._main is None:
            raise RenderError("No script is loaded")
        fn = getattr(self._main, fn_name, None)
        if fn is None:
            raise RenderError(f"Script does not define '{fn_name}'")
        sink = Output(self._config.scripted)
        try:
            fn(context, sink)
        except Exception as e:
            raise RenderError(
                f"Script function '{fn_name}' failed for {type(context).__name__}: {e}"
            ) from e
        output.write(sink.content)

    def render_file(self, context: FileContext, output: IO[str]) -> None:
        self._call(RENDER_FILE_FN, context, output)

    def render_metadata(self, context: MetadataContext, output: IO[str]) -> None:
        self._call(RENDER_METADATA_FN, context, output)
