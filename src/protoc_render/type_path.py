"""Package-qualified type names and their relative forms."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from protoc_render.case import Case

PACKAGE_SEPARATOR = "."


def normalize_prefix(path: str) -> str:
    """Remove a leading separator: ``.root.sub.TypeName`` -> ``root.sub.TypeName``."""
    if path.startswith(PACKAGE_SEPARATOR):
        return path[1:]
    return path


def extract_package_from_type(type_name: str) -> Tuple[Optional[str], str]:
    package, sep, name = type_name.rpartition(PACKAGE_SEPARATOR)
    if not sep:
        return None, type_name
    return package, name


def _break_into_components(package: str) -> List[str]:
    package = normalize_prefix(package)
    if not package:
        return []
    return package.split(PACKAGE_SEPARATOR)


class TypePath:
    """A package (list of components) with an optional type name.

    Separator and case settings are per instance. Two paths built from the same
    string never share state, so each consumer may style its own copy.
    """

    def __init__(
        self,
        components: Sequence[str],
        type_name: Optional[str] = None,
        separator: Optional[str] = None,
        name_case: Optional[Case] = None,
        package_case: Optional[Case] = None,
    ):
        self._components = list(components)
        self._type_name = type_name
        self.separator = separator
        self.name_case = name_case
        self.package_case = package_case

    @classmethod
    def from_package(cls, package: str, **style) -> "TypePath":
        """Assumes ``package`` has no type name."""
        return cls(_break_into_components(package), None, **style)

    @classmethod
    def from_type(cls, type_name: str, **style) -> "TypePath":
        """Everything before the last separator is the package."""
        package, name = extract_package_from_type(normalize_prefix(type_name))
        components = _break_into_components(package) if package is not None else []
        return cls(components, name, **style)

    @property
    def components(self) -> List[str]:
        return list(self._components)

    @property
    def type_name(self) -> Optional[str]:
        return self._type_name

    @property
    def depth(self) -> int:
        return len(self._components)

    def resolved_separator(self) -> str:
        return self.separator if self.separator is not None else PACKAGE_SEPARATOR

    def type_name_with_case(self) -> Optional[str]:
        if self._type_name is None:
            return None
        if self.name_case is None:
            return self._type_name
        return self.name_case.rename(self._type_name)

    def _component_with_case(self, component: str) -> str:
        if self.package_case is None:
            return component
        return self.package_case.rename(component)

    def to_string(self) -> str:
        parts = [self._component_with_case(c) for c in self._components]
        type_name = self.type_name_with_case()
        if type_name is not None:
            parts.append(type_name)
        return self.resolved_separator().join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"TypePath({self._components!r}, {self._type_name!r})"

    def relative_to(
        self,
        package: Optional[str],
        parent_prefix: Optional[str] = None,
    ) -> str:
        """Shortest reference to this type from inside ``package``.

        With a ``parent_prefix`` (e.g. ``super``) each level walked up from
        ``package`` to the common ancestor is spelled out with that token.
        Without one, only types at or below ``package`` are shortened; any
        other type gets the fully-qualified form.
        """
        if package is None:
            return self.to_string()
        current = TypePath.from_package(package)
        matching = TypePath.matching_depth(self, current)

        if self._components:
            prefix = self._create_relative_prefix(current.depth, matching, parent_prefix)
        else:
            # Top-level type.
            prefix = ""

        if parent_prefix is None and current.depth > matching:
            return self.to_string()
        return self._to_relative_string(matching, prefix)

    def _create_relative_prefix(
        self,
        from_depth: int,
        matching_depth: int,
        parent_prefix: Optional[str],
    ) -> str:
        if parent_prefix is None:
            return ""
        return self.resolved_separator().join([parent_prefix] * (from_depth - matching_depth))

    def _to_relative_string(self, relative_depth: int, prefix: str) -> str:
        separator = self.resolved_separator()
        parts = [prefix] if prefix else []
        parts.extend(
            self._component_with_case(c) for c in self._components[relative_depth:]
        )
        type_name = self.type_name_with_case()
        if type_name is not None:
            parts.append(type_name)
        return separator.join(parts)

    @staticmethod
    def matching_depth(lhs: "TypePath", rhs: "TypePath") -> int:
        """Number of leading package components the two paths share.

        ```
        lhs                 rhs                     depth
        root.sub.TypeName   root.sub.child.Other    2
        root.sub.TypeName   root.Other              1
        root.sub.TypeName   alt.sub.Other           0
        ```
        """
        matches = 0
        for left, right in zip(lhs._components, rhs._components):
            if left != right:
                break
            matches += 1
        return matches
