"""Storage key hashers."""

import hashlib
from enum import StrEnum, auto

import xxhash


def blake2(data: bytes, size: int) -> bytes:
    return hashlib.blake2b(data, digest_size=size).digest()


def twox(data: bytes, size: int) -> bytes:
    """xxHash64 over data with seeds 0..n, concatenated little-endian."""
    out = bytearray()
    for seed in range(size // 8):
        out.extend(xxhash.xxh64_intdigest(data, seed=seed).to_bytes(8, "little"))
    return bytes(out)


class StorageHasherType(StrEnum):
    """Classification of the transforms applied to storage key components.

    ``TWOX64`` and ``TWOX128_CONCAT`` are never produced from metadata tokens
    but stay constructible.
    """

    IDENTITY = auto()
    BLAKE2_128 = auto()
    BLAKE2_128_CONCAT = auto()
    BLAKE2_256 = auto()
    TWOX64 = auto()
    TWOX64_CONCAT = auto()
    TWOX128 = auto()
    TWOX128_CONCAT = auto()
    TWOX256 = auto()

    @property
    def is_concat(self) -> bool:
        return self in (
            StorageHasherType.BLAKE2_128_CONCAT,
            StorageHasherType.TWOX64_CONCAT,
            StorageHasherType.TWOX128_CONCAT,
        )

    def hash(self, data: bytes) -> bytes:
        """Hash an encoded key component."""
        if self is StorageHasherType.IDENTITY:
            return bytes(data)

        if self in (StorageHasherType.BLAKE2_128, StorageHasherType.BLAKE2_128_CONCAT):
            digest = blake2(data, 16)
        elif self is StorageHasherType.BLAKE2_256:
            digest = blake2(data, 32)
        elif self in (StorageHasherType.TWOX64, StorageHasherType.TWOX64_CONCAT):
            digest = twox(data, 8)
        elif self in (StorageHasherType.TWOX128, StorageHasherType.TWOX128_CONCAT):
            digest = twox(data, 16)
        else:
            digest = twox(data, 32)

        if self.is_concat:
            return digest + data
        return digest
