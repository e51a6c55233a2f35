"""Metadata document loader and type expression parser."""

import json
import logging
import os
from typing import Any

from lark import Lark
from lark.exceptions import LarkError, VisitError
from lark.visitors import Transformer

from .errors import MetadataError, UnresolvedTypeError
from .types import (
    PRIMITIVE_KINDS,
    RuntimeMetadata,
    TypeDefArray,
    TypeDefCompact,
    TypeDefPrimitive,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefVariant,
    TypeField,
    TypeInfo,
    TypeVariant,
)

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ("v14", "v15")

_g_parser: Lark | None = None


def parse(document: dict[str, Any]) -> RuntimeMetadata:
    """Build the metadata model from a decoded JSON document."""
    if "metadata" in document:
        versions = document["metadata"]
        if not isinstance(versions, dict) or len(versions) != 1:
            raise MetadataError("Expected exactly one metadata version")
        version, document = next(iter(versions.items()))
        if version.lower() not in SUPPORTED_VERSIONS:
            raise MetadataError(f"Unsupported metadata version {version}")

    if "lookup" not in document:
        raise MetadataError("Metadata document has no type table (lookup)")

    try:
        metadata = RuntimeMetadata.from_dict(document)
    except (KeyError, TypeError, ValueError) as exc:
        raise MetadataError(f"Malformed metadata document: {exc}") from exc

    logger.debug(
        "Loaded metadata: %d types, %d pallets", len(metadata.lookup.types), len(metadata.pallets)
    )
    return metadata


def load(text: str) -> RuntimeMetadata:
    """Load a JSON metadata document."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MetadataError(f"Metadata is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise MetadataError("Metadata document must be a JSON object")
    return parse(document)


def _type_key(info: TypeInfo) -> str:
    return json.dumps(info.to_dict(), sort_keys=True, default=str)


class TypeExpressionBuilder(Transformer):
    """Turn a type expression tree into type table entries."""

    def __init__(self, table: dict[int, TypeInfo]):
        super().__init__()
        self.table = dict(table)
        self._interned = {_type_key(info): type_id for type_id, info in self.table.items()}
        self._next_id = max(self.table, default=-1) + 1

        names: dict[str, list[int]] = {}
        for type_id, info in self.table.items():
            if info.path:
                names.setdefault(info.path[-1], []).append(type_id)
        self._names = {name: ids[0] for name, ids in names.items() if len(ids) == 1}

    def _intern(self, info: TypeInfo) -> int:
        key = _type_key(info)
        if key not in self._interned:
            self.table[self._next_id] = info
            self._interned[key] = self._next_id
            self._next_id += 1
        return self._interned[key]

    def _primitive(self, kind: str) -> int:
        return self._intern(TypeInfo(def_=TypeDefPrimitive(kind=kind)))

    def name(self, args: list[Any]) -> int:
        name = str(args[0])
        if name in PRIMITIVE_KINDS:
            return self._primitive(name)
        if name == "String":
            return self._primitive("str")
        if name in self._names:
            return self._names[name]
        raise MetadataError(f"Unknown or ambiguous type name {name!r}")

    def ref(self, args: list[Any]) -> int:
        type_id = int(args[0])
        if type_id not in self.table:
            raise UnresolvedTypeError(type_id)
        return type_id

    def generic(self, args: list[Any]) -> int:
        name, inner = str(args[0]), args[1]
        if name == "Vec":
            return self._intern(TypeInfo(def_=TypeDefSequence(type=inner)))
        if name == "Compact":
            return self._intern(TypeInfo(def_=TypeDefCompact(type=inner)))
        if name == "Box":
            return inner
        if name == "Option":
            variants = [
                TypeVariant(name="None", index=0),
                TypeVariant(name="Some", index=1, fields=[TypeField(type=inner)]),
            ]
            return self._intern(TypeInfo(def_=TypeDefVariant(variants=variants), path=["Option"]))
        raise MetadataError(f"Unknown generic type {name!r}")

    def array(self, args: list[Any]) -> int:
        return self._intern(TypeInfo(def_=TypeDefArray(len=int(args[1]), type=args[0])))

    def tuple(self, args: list[Any]) -> int:
        return self._intern(TypeInfo(def_=TypeDefTuple(fields=list(args))))


def parse_type_expression(
    text: str, table: dict[int, TypeInfo] | None = None
) -> tuple[int, dict[int, TypeInfo]]:
    """Parse a type expression against a type table.

    Named types resolve by the last segment of their path when it is unique;
    ``#N`` refers to type id N directly.

    Returns:
        Tuple of (type id, type table extended with any new entries).
    """
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typeexpr.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")

    try:
        tree = _g_parser.parse(text)
    except LarkError as exc:
        raise MetadataError(f"Invalid type expression {text!r}: {exc}") from exc

    builder = TypeExpressionBuilder(table or {})
    try:
        type_id = builder.transform(tree)
    except VisitError as exc:
        raise exc.orig_exc from exc
    return type_id, builder.table
