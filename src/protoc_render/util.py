from __future__ import annotations

import contextlib
from pathlib import Path, PurePath, PurePosixPath
from typing import IO, Iterator, Union

from protoc_render.errors import OutputNotEmpty

PROTO_EXT = ".proto"


def check_dir_is_empty(path: Path) -> None:
    """Raise ``OutputNotEmpty`` if ``path`` exists and has any entry in it."""
    path = Path(path)
    if not path.exists():
        return
    if not path.is_dir():
        raise OutputNotEmpty(f"Output path is not a directory: {path.as_posix()}")
    if any(path.iterdir()):
        raise OutputNotEmpty(f"Output directory is not empty: {path.as_posix()}")


@contextlib.contextmanager
def create_output_file(path: Path) -> Iterator[IO[str]]:
    """Open ``path`` for writing, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        yield f


def replace_proto_ext(path: Union[str, PurePath], new_ext: str) -> PurePath:
    """``dir/file.proto`` -> ``dir/file.<new_ext>``. Only the suffix changes."""
    path = PurePosixPath(path) if isinstance(path, str) else path
    new_ext = new_ext.lstrip(".")
    if path.suffix == PROTO_EXT:
        path = path.with_suffix("")
    if not new_ext:
        return path
    return path.with_name(f"{path.name}.{new_ext}")


def normalize_slashes(path: Union[str, PurePath]) -> str:
    return str(path).replace("\\", "/")
