"""Type registry: resolves type table ids into type descriptors.

Descriptors reference other types by id only. Resolving an id never expands
the types it refers to, so self-referential and mutually recursive
definitions stay finite. ``TypeRegistry`` memoizes one descriptor per id and
assigns class names to every type that renders as a class.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from palletgen.proto import types as shapes

from .errors import UnresolvedTypeError, UnsupportedTypeError
from .types import (
    PRIMITIVE_KINDS,
    TypeDefArray,
    TypeDefBitSequence,
    TypeDefCompact,
    TypeDefComposite,
    TypeDefPrimitive,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefVariant,
    TypeField,
    TypeInfo,
)
from .util import sanitize, to_camel_case, to_snake_case, unique_names

logger = logging.getLogger(__name__)

# Store width in bytes for bit sequence store types
BIT_STORE_BYTES = {"u8": 1, "u16": 2, "u32": 4, "u64": 8}


@dataclass(frozen=True, kw_only=True)
class TypeDescriptor:
    """A resolved type. Subclasses hold their references as type ids."""

    id: int
    path: tuple[str, ...] = ()
    docs: tuple[str, ...] = ()

    def children(self) -> tuple[int, ...]:
        """Ids of the types this type refers to."""
        return ()


@dataclass(frozen=True, kw_only=True)
class PrimitiveDescriptor(TypeDescriptor):
    kind: str


@dataclass(frozen=True, kw_only=True)
class CompactDescriptor(TypeDescriptor):
    inner: int

    def children(self) -> tuple[int, ...]:
        return (self.inner,)


@dataclass(frozen=True, kw_only=True)
class SequenceDescriptor(TypeDescriptor):
    element: int

    def children(self) -> tuple[int, ...]:
        return (self.element,)


@dataclass(frozen=True, kw_only=True)
class ArrayDescriptor(TypeDescriptor):
    element: int
    length: int

    def children(self) -> tuple[int, ...]:
        return (self.element,)


@dataclass(frozen=True, kw_only=True)
class TupleDescriptor(TypeDescriptor):
    fields: tuple[int, ...]

    def children(self) -> tuple[int, ...]:
        return self.fields


@dataclass(frozen=True)
class FieldDescriptor:
    """A field of a composite or union case; ``name`` is None when unnamed."""

    name: str | None
    type: int
    type_name: str | None = None
    docs: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class CompositeDescriptor(TypeDescriptor):
    fields: tuple[FieldDescriptor, ...]

    def children(self) -> tuple[int, ...]:
        return tuple(f.type for f in self.fields)


@dataclass(frozen=True)
class VariantCase:
    index: int
    name: str
    fields: tuple[FieldDescriptor, ...]
    docs: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class VariantDescriptor(TypeDescriptor):
    variants: tuple[VariantCase, ...]

    def children(self) -> tuple[int, ...]:
        return tuple(f.type for case in self.variants for f in case.fields)

    def case_by_index(self, index: int) -> VariantCase | None:
        for case in self.variants:
            if case.index == index:
                return case
        return None


@dataclass(frozen=True, kw_only=True)
class OptionDescriptor(TypeDescriptor):
    inner: int

    def children(self) -> tuple[int, ...]:
        return (self.inner,)


@dataclass(frozen=True, kw_only=True)
class BitSequenceDescriptor(TypeDescriptor):
    store: int
    order: int
    store_bytes: int
    lsb_first: bool

    def children(self) -> tuple[int, ...]:
        return (self.store,)


def _fields(fields: list[TypeField]) -> tuple[FieldDescriptor, ...]:
    return tuple(
        FieldDescriptor(name=f.name, type=f.type, type_name=f.type_name, docs=tuple(f.docs))
        for f in fields
    )


def _is_option(info: TypeInfo) -> bool:
    if info.path != ["Option"] or not isinstance(info.def_, TypeDefVariant):
        return False
    cases = {v.name: v for v in info.def_.variants}
    return (
        set(cases) == {"None", "Some"}
        and cases["None"].index == 0
        and not cases["None"].fields
        and cases["Some"].index == 1
        and len(cases["Some"].fields) == 1
    )


def field_names(fields: tuple[FieldDescriptor, ...]) -> list[str]:
    """Python attribute names for record fields."""
    if len(fields) == 1 and fields[0].name is None:
        return ["value"]
    names = [
        sanitize(to_snake_case(f.name)) if f.name is not None else f"value{i}"
        for i, f in enumerate(fields)
    ]
    return unique_names(names, list(range(len(fields))))


class TypeRegistry:
    """Resolves type ids against a type table, one descriptor per id."""

    def __init__(self, table: Mapping[int, TypeInfo]):
        self._table = table
        self._cache: dict[int, TypeDescriptor] = {}
        self._names: dict[int, str] = {}
        self._cyclic: dict[int, bool] = {}

    @classmethod
    def build(
        cls, table: Mapping[int, TypeInfo], roots: Iterable[int] | Mapping[int, str]
    ) -> "TypeRegistry":
        """Resolve every type reachable from roots and name the class types.

        ``roots`` may map each root id to the entry that references it, for
        error messages.
        """
        registry = cls(table)
        resolved = registry.resolve_all(roots)
        registry._assign_names(resolved)
        logger.debug("Resolved %d of %d types", len(resolved), len(table))
        return registry

    def __contains__(self, type_id: int) -> bool:
        return type_id in self._table

    @property
    def descriptors(self) -> dict[int, TypeDescriptor]:
        """Every resolved descriptor, ordered by id."""
        return {type_id: self._cache[type_id] for type_id in sorted(self._cache)}

    def resolve(self, type_id: int, context: str | None = None) -> TypeDescriptor:
        """Return the descriptor for a type id."""
        if type_id in self._cache:
            return self._cache[type_id]
        if type_id not in self._table:
            raise UnresolvedTypeError(type_id, context)

        descriptor = self._describe(type_id, self._table[type_id])
        self._cache[type_id] = descriptor
        return descriptor

    def resolve_all(
        self, roots: Iterable[int] | Mapping[int, str], context: str | None = None
    ) -> dict[int, TypeDescriptor]:
        """Resolve roots and everything reachable from them.

        Walks the graph with an explicit worklist, so recursion depth does not
        depend on how deeply types nest.
        """
        seen: set[int] = set()
        if isinstance(roots, Mapping):
            pending = list(roots.items())
        else:
            pending = [(type_id, context) for type_id in roots]
        while pending:
            type_id, ref = pending.pop()
            if type_id in seen:
                continue
            seen.add(type_id)
            descriptor = self.resolve(type_id, ref)
            pending.extend((child, f"type {type_id}") for child in descriptor.children())
        return {type_id: self._cache[type_id] for type_id in sorted(seen)}

    def _describe(self, type_id: int, info: TypeInfo) -> TypeDescriptor:
        common = {"id": type_id, "path": tuple(info.path), "docs": tuple(info.docs)}
        d = info.def_

        if isinstance(d, TypeDefPrimitive):
            if d.kind not in PRIMITIVE_KINDS:
                raise UnsupportedTypeError(f"Type {type_id}: unknown primitive {d.kind!r}")
            return PrimitiveDescriptor(kind=d.kind, **common)
        if isinstance(d, TypeDefCompact):
            return CompactDescriptor(inner=d.type, **common)
        if isinstance(d, TypeDefSequence):
            return SequenceDescriptor(element=d.type, **common)
        if isinstance(d, TypeDefArray):
            return ArrayDescriptor(element=d.type, length=d.len, **common)
        if isinstance(d, TypeDefTuple):
            return TupleDescriptor(fields=tuple(d.fields), **common)
        if isinstance(d, TypeDefComposite):
            return CompositeDescriptor(fields=_fields(d.fields), **common)
        if isinstance(d, TypeDefVariant):
            if _is_option(info):
                some = next(v for v in d.variants if v.name == "Some")
                return OptionDescriptor(inner=some.fields[0].type, **common)
            cases = tuple(
                VariantCase(
                    index=v.index, name=v.name, fields=_fields(v.fields), docs=tuple(v.docs)
                )
                for v in sorted(d.variants, key=lambda v: v.index)
            )
            return VariantDescriptor(variants=cases, **common)
        if isinstance(d, TypeDefBitSequence):
            return self._describe_bits(type_id, d, common)

        raise UnsupportedTypeError(f"Type {type_id}: unsupported definition {d.kind!r}")

    def _describe_bits(
        self, type_id: int, d: TypeDefBitSequence, common: dict
    ) -> BitSequenceDescriptor:
        store = self.resolve(d.bit_store_type, f"type {type_id}")
        if not isinstance(store, PrimitiveDescriptor) or store.kind not in BIT_STORE_BYTES:
            raise UnsupportedTypeError(f"Type {type_id}: bit store must be u8, u16, u32 or u64")

        if d.bit_order_type not in self._table:
            raise UnresolvedTypeError(d.bit_order_type, f"type {type_id}")
        order_path = self._table[d.bit_order_type].path
        order = order_path[-1] if order_path else ""
        if order not in ("Lsb0", "Msb0"):
            raise UnsupportedTypeError(f"Type {type_id}: unknown bit order {order!r}")

        return BitSequenceDescriptor(
            store=d.bit_store_type,
            order=d.bit_order_type,
            store_bytes=BIT_STORE_BYTES[store.kind],
            lsb_first=order == "Lsb0",
            **common,
        )

    def _reaches(self, start: int, target: int) -> bool:
        seen: set[int] = set()
        pending = [start]
        while pending:
            type_id = pending.pop()
            if type_id == target:
                return True
            if type_id in seen:
                continue
            seen.add(type_id)
            pending.extend(self.resolve(type_id).children())
        return False

    def is_transparent(self, type_id: int) -> bool:
        """True for single unnamed-field composites that do not contain themselves."""
        descriptor = self.resolve(type_id)
        if not isinstance(descriptor, CompositeDescriptor):
            return False
        if len(descriptor.fields) != 1 or descriptor.fields[0].name is not None:
            return False
        if type_id not in self._cyclic:
            self._cyclic[type_id] = self._reaches(descriptor.fields[0].type, type_id)
        return not self._cyclic[type_id]

    def is_class(self, type_id: int) -> bool:
        """True if the type renders as a generated class."""
        descriptor = self.resolve(type_id)
        if isinstance(descriptor, VariantDescriptor):
            return True
        return isinstance(descriptor, CompositeDescriptor) and not self.is_transparent(type_id)

    def _assign_names(self, descriptors: Mapping[int, TypeDescriptor]) -> None:
        segments: dict[int, list[str]] = {}
        for type_id, descriptor in descriptors.items():
            if not self.is_class(type_id):
                continue
            parts = [sanitize(to_camel_case(p)) for p in descriptor.path]
            segments[type_id] = parts or [f"Type{type_id}"]

        depth = dict.fromkeys(segments, 1)
        while True:
            names = {i: "".join(segments[i][-depth[i] :]) for i in segments}
            by_name: dict[str, list[int]] = {}
            for type_id, name in names.items():
                by_name.setdefault(name, []).append(type_id)

            grown = False
            for ids in by_name.values():
                if len(ids) < 2:
                    continue
                for type_id in ids:
                    if depth[type_id] < len(segments[type_id]):
                        depth[type_id] += 1
                        grown = True
            if not grown:
                break

        for name, ids in by_name.items():
            for type_id in ids:
                self._names[type_id] = name if len(ids) == 1 else f"{name}{type_id}"

    def name_of(self, type_id: int) -> str:
        """Class name of a class type."""
        if type_id not in self._names:
            descriptor = self.resolve(type_id)
            base = sanitize(to_camel_case(descriptor.path[-1])) if descriptor.path else "Type"
            self._names[type_id] = f"{base}{type_id}"
        return self._names[type_id]

    def case_name(self, type_id: int, case: VariantCase) -> str:
        """Class name of one case of a tagged union."""
        descriptor = self.resolve(type_id)
        if not isinstance(descriptor, VariantDescriptor):
            raise UnsupportedTypeError(f"Type {type_id} is not a tagged union")
        cases = descriptor.variants
        names = unique_names(
            [sanitize(to_camel_case(c.name)) for c in cases], [c.index for c in cases]
        )
        return f"{self.name_of(type_id)}_{names[cases.index(case)]}"

    def is_bytes(self, type_id: int) -> bool:
        descriptor = self.resolve(type_id)
        return isinstance(descriptor, PrimitiveDescriptor) and descriptor.kind == "u8"

    def annotation(self, type_id: int) -> str:
        """Python type annotation for values of a type."""
        d = self.resolve(type_id)

        if isinstance(d, PrimitiveDescriptor):
            if d.kind == "bool":
                return "bool"
            if d.kind in ("str", "char"):
                return "str"
            return "int"
        if isinstance(d, CompactDescriptor):
            return "int"
        if isinstance(d, (SequenceDescriptor, ArrayDescriptor)):
            if self.is_bytes(d.element):
                return "bytes"
            return f"list[{self.annotation(d.element)}]"
        if isinstance(d, TupleDescriptor):
            if not d.fields:
                return "tuple[()]"
            return f"tuple[{', '.join(self.annotation(t) for t in d.fields)}]"
        if isinstance(d, CompositeDescriptor):
            if self.is_transparent(type_id):
                return self.annotation(d.fields[0].type)
            return self.name_of(type_id)
        if isinstance(d, VariantDescriptor):
            return self.name_of(type_id)
        if isinstance(d, OptionDescriptor):
            return f"{self.annotation(d.inner)} | None"
        if isinstance(d, BitSequenceDescriptor):
            return "list[bool]"
        raise UnsupportedTypeError(f"Type {type_id} has no annotation")

    def _shape_fields(self, fields: tuple[FieldDescriptor, ...]) -> tuple[shapes.ShapeField, ...]:
        return tuple(
            shapes.ShapeField(name=name, type=f.type)
            for name, f in zip(field_names(fields), fields)
        )

    def shape(self, type_id: int) -> shapes.Shape:
        """Runtime shape descriptor for a type."""
        d = self.resolve(type_id)

        if isinstance(d, PrimitiveDescriptor):
            return shapes.Primitive(kind=d.kind)
        if isinstance(d, CompactDescriptor):
            return shapes.Compact(type=d.inner)
        if isinstance(d, SequenceDescriptor):
            return shapes.Sequence(type=d.element)
        if isinstance(d, ArrayDescriptor):
            return shapes.Array(type=d.element, length=d.length)
        if isinstance(d, TupleDescriptor):
            return shapes.Tuple(fields=d.fields)
        if isinstance(d, CompositeDescriptor):
            if self.is_transparent(type_id):
                inner = shapes.ShapeField(name=None, type=d.fields[0].type)
                return shapes.Composite(fields=(inner,))
            return shapes.Composite(
                fields=self._shape_fields(d.fields), record=self.name_of(type_id)
            )
        if isinstance(d, VariantDescriptor):
            return shapes.Variant(
                cases=tuple(
                    shapes.Case(
                        index=case.index,
                        name=case.name,
                        fields=self._shape_fields(case.fields),
                        record=self.case_name(type_id, case),
                    )
                    for case in d.variants
                )
            )
        if isinstance(d, OptionDescriptor):
            return shapes.Option(type=d.inner)
        if isinstance(d, BitSequenceDescriptor):
            return shapes.BitSequence(store_bytes=d.store_bytes, lsb_first=d.lsb_first)
        raise UnsupportedTypeError(f"Type {type_id} has no runtime shape")

    def shape_table(self) -> dict[int, shapes.Shape]:
        """Runtime shape table for every resolved type."""
        return {type_id: self.shape(type_id) for type_id in sorted(self._cache)}
