"""Identifier helpers for generated code."""

import keyword
import re
from collections import Counter

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_snake_case(name: str) -> str:
    """Convert CamelCase or mixed names to snake_case."""
    words = _WORD_BOUNDARY.sub("_", name).replace("-", "_")
    return re.sub(r"_+", "_", words).strip("_").lower()


def to_camel_case(name: str) -> str:
    """Convert snake_case names to CamelCase, keeping existing capitals."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\W]+", name) if part)


def sanitize(name: str) -> str:
    """Make a name usable as a Python identifier."""
    name = re.sub(r"\W", "_", name)
    if not name or name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name):
        name = f"{name}_"
    return name


def unique_names(names: list[str], suffixes: list) -> list[str]:
    """Append its suffix to every name that occurs more than once."""
    counts = Counter(names)
    result: list[str] = []
    for name, suffix in zip(names, suffixes, strict=True):
        if counts[name] > 1:
            name = f"{name}{suffix}"
        while name in result:
            name = f"{name}_"
        result.append(name)
    return result
