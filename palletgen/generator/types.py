"""Metadata document model for binding generation."""

from dataclasses import dataclass, field
from typing import Any

from dataclasses_json import DataClassJsonMixin, config


def hex_bytes(value: Any) -> bytes:
    """Decode a ``0x``-prefixed hex string or a list of ints to bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    return bytes(value)


def bytes_hex(value: bytes) -> str:
    return "0x" + value.hex()


BYTES_FIELD = config(decoder=hex_bytes, encoder=bytes_hex)


@dataclass
class TypeField(DataClassJsonMixin):
    """A field of a composite type or union case."""

    type: int
    name: str | None = None
    type_name: str | None = field(default=None, metadata=config(field_name="typeName"))
    docs: list[str] = field(default_factory=list)


@dataclass
class TypeVariant(DataClassJsonMixin):
    """A single case of a variant type."""

    name: str
    index: int
    fields: list[TypeField] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)


@dataclass
class TypeDefComposite(DataClassJsonMixin):
    fields: list[TypeField] = field(default_factory=list)


@dataclass
class TypeDefVariant(DataClassJsonMixin):
    variants: list[TypeVariant] = field(default_factory=list)


@dataclass
class TypeDefSequence(DataClassJsonMixin):
    type: int


@dataclass
class TypeDefArray(DataClassJsonMixin):
    len: int
    type: int


@dataclass
class TypeDefTuple(DataClassJsonMixin):
    fields: list[int]


@dataclass
class TypeDefPrimitive(DataClassJsonMixin):
    kind: str


@dataclass
class TypeDefCompact(DataClassJsonMixin):
    type: int


@dataclass
class TypeDefBitSequence(DataClassJsonMixin):
    bit_store_type: int = field(metadata=config(field_name="bitStoreType"))
    bit_order_type: int = field(metadata=config(field_name="bitOrderType"))


@dataclass
class TypeDefUnknown(DataClassJsonMixin):
    """A definition kind this generator does not model."""

    kind: str


TypeDef = (
    TypeDefComposite
    | TypeDefVariant
    | TypeDefSequence
    | TypeDefArray
    | TypeDefTuple
    | TypeDefPrimitive
    | TypeDefCompact
    | TypeDefBitSequence
    | TypeDefUnknown
)

TYPE_DEF_KINDS: dict[str, type[DataClassJsonMixin]] = {
    "composite": TypeDefComposite,
    "variant": TypeDefVariant,
    "sequence": TypeDefSequence,
    "array": TypeDefArray,
    "compact": TypeDefCompact,
    "bitsequence": TypeDefBitSequence,
}


def decode_type_def(value: Any) -> TypeDef:
    """Decode the single-key ``def`` object of a type table entry."""
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError(f"Type definition must have exactly one kind, got {value!r}")

    kind, payload = next(iter(value.items()))
    key = kind.lower()

    if key == "tuple":
        return TypeDefTuple(fields=list(payload))
    if key == "primitive":
        return TypeDefPrimitive(kind=str(payload).lower())
    if key in TYPE_DEF_KINDS:
        return TYPE_DEF_KINDS[key].from_dict(payload)  # type: ignore[return-value]
    return TypeDefUnknown(kind=kind)


@dataclass
class TypeParam(DataClassJsonMixin):
    name: str
    type: int | None = None


@dataclass
class TypeInfo(DataClassJsonMixin):
    """A type definition with its path and documentation."""

    def_: TypeDef = field(metadata=config(field_name="def", decoder=decode_type_def))
    path: list[str] = field(default_factory=list)
    params: list[TypeParam] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)


@dataclass
class PortableType(DataClassJsonMixin):
    """An entry of the type table."""

    id: int
    type: TypeInfo


@dataclass
class Lookup(DataClassJsonMixin):
    types: list[PortableType] = field(default_factory=list)


@dataclass
class StorageEntryType(DataClassJsonMixin):
    """Key and value types of a storage entry. ``key`` is None for plain entries."""

    value: int
    key: int | None = None
    hashers: list[str] = field(default_factory=list)


def decode_storage_type(value: Any) -> StorageEntryType:
    """Decode ``{"plain": id}`` or ``{"map": {...}}``."""
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError(f"Storage type must be plain or map, got {value!r}")

    kind, payload = next(iter(value.items()))
    if kind.lower() == "plain":
        return StorageEntryType(value=int(payload))
    if kind.lower() == "map":
        return StorageEntryType.from_dict(payload)
    raise ValueError(f"Unknown storage type kind {kind!r}")


@dataclass
class StorageEntryMetadata(DataClassJsonMixin):
    """A storage entry declaration."""

    name: str
    type: StorageEntryType = field(metadata=config(decoder=decode_storage_type))
    modifier: str = "Default"
    fallback: bytes = field(default=b"", metadata=BYTES_FIELD)
    docs: list[str] = field(default_factory=list)

    @property
    def is_optional(self) -> bool:
        return self.modifier.lower() == "optional"


@dataclass
class PalletStorageMetadata(DataClassJsonMixin):
    prefix: str
    items: list[StorageEntryMetadata] = field(default_factory=list)


@dataclass
class PalletConstantMetadata(DataClassJsonMixin):
    """A constant declaration with its encoded value."""

    name: str
    type: int
    value: bytes = field(metadata=BYTES_FIELD)
    docs: list[str] = field(default_factory=list)


@dataclass
class PalletMetadata(DataClassJsonMixin):
    """A pallet's storage and constants."""

    name: str
    index: int = 0
    storage: PalletStorageMetadata | None = None
    constants: list[PalletConstantMetadata] = field(default_factory=list)


@dataclass
class RuntimeMetadata(DataClassJsonMixin):
    """A complete metadata document."""

    lookup: Lookup
    pallets: list[PalletMetadata] = field(default_factory=list)

    @property
    def type_table(self) -> dict[int, TypeInfo]:
        return {t.id: t.type for t in self.lookup.types}

    def pallet(self, name: str) -> PalletMetadata | None:
        for p in self.pallets:
            if p.name == name:
                return p
        return None


PRIMITIVE_KINDS = frozenset(
    [
        "bool",
        "char",
        "str",
        "u8",
        "u16",
        "u32",
        "u64",
        "u128",
        "u256",
        "i8",
        "i16",
        "i32",
        "i64",
        "i128",
        "i256",
    ]
)
