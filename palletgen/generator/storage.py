"""Storage entry assembly: hasher classification and key arity."""

from dataclasses import dataclass

from palletgen.proto.hashers import StorageHasherType

from .errors import InvalidStorageDescriptor, UnknownHasherError, UnsupportedArityError
from .registry import TupleDescriptor, TypeDescriptor, TypeRegistry
from .types import StorageEntryMetadata

# Metadata hasher tokens, lowercased with underscores removed
HASHER_TOKENS: dict[str, StorageHasherType] = {
    "identity": StorageHasherType.IDENTITY,
    "blake2128": StorageHasherType.BLAKE2_128,
    "blake2128concat": StorageHasherType.BLAKE2_128_CONCAT,
    "blake2256": StorageHasherType.BLAKE2_256,
    "twox64concat": StorageHasherType.TWOX64_CONCAT,
    "twox128": StorageHasherType.TWOX128,
    "twox256": StorageHasherType.TWOX256,
}

# Runtime container class by key arity
STORAGE_CONTAINERS: dict[int, str] = {
    0: "StorageValue",
    1: "StorageMap",
    2: "StorageDoubleMap",
    3: "StorageTripleMap",
    4: "StorageQuadrupleMap",
    5: "StorageQuintupleMap",
    6: "StorageSextupleMap",
}

MAX_ARITY = max(STORAGE_CONTAINERS)


def hasher_from_token(token: str, context: str | None = None) -> StorageHasherType:
    """Classify a metadata hasher token."""
    key = token.replace("_", "").lower()
    if key not in HASHER_TOKENS:
        raise UnknownHasherError(token, context)
    return HASHER_TOKENS[key]


def container_for_arity(arity: int, context: str | None = None) -> str:
    """Name of the storage container class for a key arity."""
    if arity not in STORAGE_CONTAINERS:
        raise UnsupportedArityError(arity, MAX_ARITY, context)
    return STORAGE_CONTAINERS[arity]


@dataclass(frozen=True)
class StorageHasher:
    """A hasher and the key component type it hashes."""

    hasher: StorageHasherType
    key: TypeDescriptor


@dataclass(frozen=True)
class Storage:
    """A validated storage entry."""

    name: str
    hashers: tuple[StorageHasher, ...]
    value: TypeDescriptor
    default: bytes
    is_nullable: bool = False
    docs: tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.hashers)

    @property
    def container(self) -> str:
        return container_for_arity(self.arity, self.name)

    @classmethod
    def from_metadata(
        cls, entry: StorageEntryMetadata, registry: TypeRegistry, pallet: str = ""
    ) -> "Storage":
        """Validate a storage declaration and pair each hasher with its key type."""
        context = f"{pallet}.{entry.name}" if pallet else entry.name
        entry_type = entry.type
        value = registry.resolve(entry_type.value, context)

        keys: list[TypeDescriptor]
        if entry_type.key is None:
            if entry_type.hashers:
                raise InvalidStorageDescriptor(f"{context}: hashers declared without a key type")
            keys = []
        elif not entry_type.hashers:
            raise InvalidStorageDescriptor(f"{context}: key type declared without hashers")
        elif len(entry_type.hashers) == 1:
            keys = [registry.resolve(entry_type.key, context)]
        else:
            key = registry.resolve(entry_type.key, context)
            if not isinstance(key, TupleDescriptor):
                raise InvalidStorageDescriptor(
                    f"{context}: {len(entry_type.hashers)} hashers require a tuple key, "
                    f"type {entry_type.key} is not a tuple"
                )
            keys = [registry.resolve(t, context) for t in key.fields]

        if len(keys) != len(entry_type.hashers):
            raise InvalidStorageDescriptor(
                f"{context}: {len(entry_type.hashers)} hashers for {len(keys)} keys"
            )
        container_for_arity(len(keys), context)

        hashers = tuple(
            StorageHasher(hasher=hasher_from_token(token, context), key=key)
            for token, key in zip(entry_type.hashers, keys)
        )

        return cls(
            name=entry.name,
            hashers=hashers,
            value=value,
            default=entry.fallback,
            is_nullable=entry.is_optional,
            docs=tuple(entry.docs),
        )
