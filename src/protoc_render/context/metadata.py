"""Directory metadata contexts.

In per-file layout one ``MetadataContext`` describes one output directory:
its direct files and direct subdirectories. In collapsed layout a single
context at the output root describes every package and the file it was
written to, both as a flat list and as a tree of package components::

    root:                   file_name: root.rs
      sub:                  file_name: root-sub.rs
        inner:              file_name: root-sub-inner.rs
    other: ...
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from protoc_render.type_path import PACKAGE_SEPARATOR
from protoc_render.util import normalize_slashes

_ROOT = PurePosixPath("")


@dataclass(frozen=True)
class PackageTreeNode:
    file_name: Optional[str] = None
    children: Dict[str, "PackageTreeNode"] = field(default_factory=dict)


PackageTree = Dict[str, PackageTreeNode]


@dataclass(frozen=True)
class PackageFile:
    package: str
    file_name: str


@dataclass(frozen=True)
class MetadataContext:
    # Relative path of this directory, "" for the output root.
    directory: str = ""
    file_names: Tuple[str, ...] = ()
    file_names_with_ext: Tuple[str, ...] = ()
    subdirectories: Tuple[str, ...] = ()
    package_files_full: Tuple[PackageFile, ...] = ()
    package_file_tree: PackageTree = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _freeze_tree(level: Dict[str, Dict[str, Any]]) -> PackageTree:
    return {
        component: PackageTreeNode(entry["file_name"], _freeze_tree(entry["children"]))
        for component, entry in level.items()
    }


def create_package_file_tree(package_files: Mapping[str, str]) -> PackageTree:
    """Fully-qualified package -> file name, as a tree of package components."""
    tree: Dict[str, Dict[str, Any]] = {}
    for package, file_name in package_files.items():
        level = tree
        components = package.split(PACKAGE_SEPARATOR)
        for i, component in enumerate(components):
            entry = level.setdefault(component, {"file_name": None, "children": {}})
            if i == len(components) - 1:
                entry["file_name"] = file_name
            level = entry["children"]
    return _freeze_tree(tree)


def _to_path(path: Union[str, PurePosixPath]) -> PurePosixPath:
    return PurePosixPath(normalize_slashes(path))


class MetadataBuilder:
    """Accumulates one ``MetadataContext``; frozen by ``build()``."""

    def __init__(self, directory: Union[str, PurePosixPath] = _ROOT):
        self._directory = _to_path(directory)
        self._file_names: List[str] = []
        self._file_names_with_ext: List[str] = []
        self._subdirectories: List[str] = []
        self._package_files_full: List[PackageFile] = []
        self._package_file_tree: PackageTree = {}
        self._built = False

    @property
    def directory(self) -> PurePosixPath:
        return self._directory

    def _check_mutable(self):
        if self._built:
            raise RuntimeError("MetadataContext was already built")

    def _is_direct_child(self, path: PurePosixPath) -> bool:
        return path.parent == self._directory

    def push_file(self, path: Union[str, PurePosixPath]) -> None:
        """Record ``path`` if it sits directly in this directory."""
        self._check_mutable()
        path = _to_path(path)
        if not self._is_direct_child(path):
            return
        self._file_names_with_ext.append(path.name)
        self._file_names.append(path.stem)

    def push_subdirectory(self, path: Union[str, PurePosixPath]) -> None:
        self._check_mutable()
        path = _to_path(path)
        if path == _ROOT:
            return
        if self._is_direct_child(path):
            self._subdirectories.append(path.name)

    def append_files(self, paths: Iterable[Union[str, PurePosixPath]]) -> None:
        for path in paths:
            self.push_file(path)

    def append_subdirectories(self, paths: Iterable[Union[str, PurePosixPath]]) -> None:
        for path in paths:
            self.push_subdirectory(path)

    def append_package_files(self, package_files: Mapping[str, Union[str, PurePosixPath]]) -> None:
        self._check_mutable()
        normalized = {package: normalize_slashes(path) for package, path in package_files.items()}
        self._package_file_tree = create_package_file_tree(normalized)
        self._package_files_full = [
            PackageFile(package=package, file_name=file_name)
            for package, file_name in normalized.items()
        ]

    def build(self) -> MetadataContext:
        self._check_mutable()
        self._built = True
        directory = "" if self._directory == _ROOT else self._directory.as_posix()
        return MetadataContext(
            directory=directory,
            file_names=tuple(self._file_names),
            file_names_with_ext=tuple(self._file_names_with_ext),
            subdirectories=tuple(self._subdirectories),
            package_files_full=tuple(self._package_files_full),
            package_file_tree=self._package_file_tree,
        )
