"""Runtime shape descriptors for palletgen bindings.

These dataclasses describe the layout of every type a generated module can
encode or decode. Generated code embeds them as a ``{type_id: shape}`` table;
references between shapes are type ids, so recursive types stay finite.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Primitive:
    """A fixed-width integer, bool, char or length-prefixed string."""

    kind: str


@dataclass(frozen=True, slots=True)
class Compact:
    """A compact-encoded unsigned integer."""

    type: int


@dataclass(frozen=True, slots=True)
class Sequence:
    """A compact-length-prefixed list of elements."""

    type: int


@dataclass(frozen=True, slots=True)
class Array:
    """A fixed-length list of elements."""

    type: int
    length: int


@dataclass(frozen=True, slots=True)
class Tuple:
    """An anonymous product of components."""

    fields: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class ShapeField:
    """A field of a record. ``name`` is None for transparent newtypes."""

    name: str | None
    type: int


@dataclass(frozen=True, slots=True)
class Composite:
    """A record, or a transparent newtype when ``record`` is None."""

    fields: tuple[ShapeField, ...]
    record: str | None = None


@dataclass(frozen=True, slots=True)
class Case:
    """One case of a tagged union."""

    index: int
    name: str
    fields: tuple[ShapeField, ...]
    record: str


@dataclass(frozen=True, slots=True)
class Variant:
    """A tagged union selected by a one-byte discriminant."""

    cases: tuple[Case, ...]

    def case_by_index(self, index: int) -> Case | None:
        for case in self.cases:
            if case.index == index:
                return case
        return None


@dataclass(frozen=True, slots=True)
class Option:
    """An optional value behind a presence byte."""

    type: int


@dataclass(frozen=True, slots=True)
class BitSequence:
    """A compact-length-prefixed bit vector packed into store words."""

    store_bytes: int
    lsb_first: bool = True


Shape = Primitive | Compact | Sequence | Array | Tuple | Composite | Variant | Option | BitSequence
