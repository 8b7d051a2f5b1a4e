"""Case conversion for generated names.

Words are split on any non-alphanumeric character and on case boundaries:
``lowerCamel`` splits before ``C`` and ``HTTPInfo`` splits into ``HTTP`` and
``Info``. Digits never start a new word.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import PurePath, PurePosixPath
from typing import Dict, List, Union

_NON_ALNUM = re.compile(r"[\W_]+")

# Word-splitting modes.
_BOUNDARY = 0
_LOWER = 1
_UPPER = 2


def split_words(text: str) -> List[str]:
    words: List[str] = []
    for chunk in _NON_ALNUM.split(text):
        if not chunk:
            continue
        start = 0
        mode = _BOUNDARY
        for i, ch in enumerate(chunk):
            if i + 1 == len(chunk):
                words.append(chunk[start:])
                break
            nxt = chunk[i + 1]
            if ch.islower():
                next_mode = _LOWER
            elif ch.isupper():
                next_mode = _UPPER
            else:
                next_mode = mode

            if next_mode == _LOWER and nxt.isupper():
                words.append(chunk[start:i + 1])
                start = i + 1
                mode = _BOUNDARY
            elif mode == _UPPER and ch.isupper() and nxt.islower():
                words.append(chunk[start:i])
                start = i
                mode = _BOUNDARY
            else:
                mode = next_mode
    return words


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


class Case(Enum):
    UPPER = "UPPERCASE"
    LOWER = "lowercase"
    LOWER_SNAKE = "lower_snake_case"
    UPPER_SNAKE = "UPPER_SNAKE_CASE"
    LOWER_KEBAB = "lower-kebab-case"
    UPPER_KEBAB = "UPPER-KEBAB-CASE"
    LOWER_CAMEL = "lowerCamelCase"
    UPPER_CAMEL = "UpperCamelCase"

    def rename(self, text: str) -> str:
        if self is Case.UPPER:
            return text.upper()
        if self is Case.LOWER:
            return text.lower()

        words = split_words(text)
        if self is Case.LOWER_SNAKE:
            return "_".join(w.lower() for w in words)
        if self is Case.UPPER_SNAKE:
            return "_".join(w.upper() for w in words)
        if self is Case.LOWER_KEBAB:
            return "-".join(w.lower() for w in words)
        if self is Case.UPPER_KEBAB:
            return "-".join(w.upper() for w in words)
        if self is Case.LOWER_CAMEL:
            if not words:
                return ""
            return words[0].lower() + "".join(_capitalize(w) for w in words[1:])
        return "".join(_capitalize(w) for w in words)

    def rename_file_name(self, path: Union[str, PurePath]) -> PurePath:
        """Rename only the stem of ``path``, keeping parents and extension."""
        path = PurePosixPath(path) if isinstance(path, str) else path
        if not path.stem:
            return path
        renamed = self.rename(path.stem)
        if not renamed:
            return path
        return path.with_name(renamed + path.suffix)

    @classmethod
    def parse(cls, value: str) -> "Case":
        """Resolve any accepted spelling of a case style."""
        try:
            return _ALIASES[value]
        except KeyError:
            raise ValueError(
                f"Unknown case '{value}'. Expected one of: {sorted(_ALIASES)}"
            ) from None


_ALIASES: Dict[str, Case] = {}
for _case, _names in {
    Case.UPPER: ["Upper", "UpperCase", "UPPER", "UPPERCASE"],
    Case.LOWER: ["Lower", "LowerCase", "lower", "lowercase"],
    Case.LOWER_SNAKE: ["LowerSnake", "LowerSnakeCase", "lower_snake", "lower_snake_case"],
    Case.UPPER_SNAKE: [
        "UpperSnake", "ScreamingSnake", "ScreamingSnakeCase", "SCREAMING_SNAKE",
        "SCREAMING_SNAKE_CASE", "UpperSnakeCase", "UPPER_SNAKE", "UPPER_SNAKE_CASE",
    ],
    Case.LOWER_KEBAB: ["LowerKebab", "LowerKebabCase", "lower-kebab", "lower-kebab-case"],
    Case.UPPER_KEBAB: [
        "UpperKebab", "ScreamingKebab", "ScreamingKebabCase", "SCREAMING_KEBAB",
        "SCREAMING_KEBAB_CASE", "UpperKebabCase", "UPPER-KEBAB", "UPPER-KEBAB-CASE",
    ],
    Case.LOWER_CAMEL: ["LowerCamel", "LowerCamelCase", "lowerCamel", "lowerCamelCase"],
    Case.UPPER_CAMEL: ["UpperCamel", "Pascal", "PascalCase", "UpperCamelCase"],
}.items():
    for _name in _names:
        _ALIASES[_name] = _case
