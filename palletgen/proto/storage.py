"""Storage entry containers used by generated query classes."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from .codec import CodecError, decode, encode
from .hashers import StorageHasherType, twox
from .types import Shape


class StateApi(Protocol):
    """Key-value access to chain state.

    Implementations own transport, cancellation and retries. ``at`` selects
    the block hash to read at; None means the latest block.
    """

    async def get_storage(self, key: bytes, at: bytes | None = None) -> bytes | None: ...


@dataclass(frozen=True)
class StorageHasher:
    """A hasher paired with the type of the key component it hashes."""

    hasher: StorageHasherType
    type: int


class StorageEntry:
    """Base class for storage containers of a fixed key arity."""

    arity: ClassVar[int]

    def __init__(
        self,
        *,
        prefix: str,
        storage: str,
        value_type: int,
        types: Mapping[int, Shape],
        namespace: Mapping[str, Any],
        hashers: tuple[StorageHasher, ...] = (),
    ) -> None:
        if len(hashers) != self.arity:
            raise CodecError(
                f"{type(self).__name__} takes {self.arity} hashers, got {len(hashers)}"
            )
        self.prefix = prefix
        self.storage = storage
        self.value_type = value_type
        self.types = types
        self.namespace = namespace
        self.hashers = hashers

    @property
    def prefix_key(self) -> bytes:
        """twox128(prefix) ++ twox128(storage)."""
        return twox(self.prefix.encode(), 16) + twox(self.storage.encode(), 16)

    def _hashed_key(self, *keys: Any) -> bytes:
        out = bytearray(self.prefix_key)
        for hasher, key in zip(self.hashers, keys, strict=True):
            out.extend(hasher.hasher.hash(encode(self.types, hasher.type, key)))
        return bytes(out)

    def decode_value(self, data: bytes) -> Any:
        """Decode a stored value."""
        return decode(self.types, self.value_type, data, self.namespace)


class StorageValue(StorageEntry):
    """A storage entry without keys."""

    arity = 0

    @property
    def hashed_key(self) -> bytes:
        return self.prefix_key


class StorageMap(StorageEntry):
    arity = 1

    def hashed_key_for(self, key: Any) -> bytes:
        return self._hashed_key(key)


class StorageDoubleMap(StorageEntry):
    arity = 2

    def hashed_key_for(self, key1: Any, key2: Any) -> bytes:
        return self._hashed_key(key1, key2)


class StorageTripleMap(StorageEntry):
    arity = 3

    def hashed_key_for(self, key1: Any, key2: Any, key3: Any) -> bytes:
        return self._hashed_key(key1, key2, key3)


class StorageQuadrupleMap(StorageEntry):
    arity = 4

    def hashed_key_for(self, key1: Any, key2: Any, key3: Any, key4: Any) -> bytes:
        return self._hashed_key(key1, key2, key3, key4)


class StorageQuintupleMap(StorageEntry):
    arity = 5

    def hashed_key_for(self, key1: Any, key2: Any, key3: Any, key4: Any, key5: Any) -> bytes:
        return self._hashed_key(key1, key2, key3, key4, key5)


class StorageSextupleMap(StorageEntry):
    arity = 6

    def hashed_key_for(
        self, key1: Any, key2: Any, key3: Any, key4: Any, key5: Any, key6: Any
    ) -> bytes:
        return self._hashed_key(key1, key2, key3, key4, key5, key6)


# Container class by key arity
STORAGE_CONTAINERS: dict[int, type[StorageEntry]] = {
    cls.arity: cls
    for cls in (
        StorageValue,
        StorageMap,
        StorageDoubleMap,
        StorageTripleMap,
        StorageQuadrupleMap,
        StorageQuintupleMap,
        StorageSextupleMap,
    )
}
