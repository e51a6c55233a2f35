"""SCALE encoding and decoding over runtime shape tables."""

from collections.abc import Mapping
from typing import Any

from .types import (
    Array,
    BitSequence,
    Compact,
    Composite,
    Option,
    Primitive,
    Sequence,
    Shape,
    ShapeField,
    Tuple,
    Variant,
)

# Width in bytes and signedness of each integer primitive
INT_KINDS: dict[str, tuple[int, bool]] = {
    "u8": (1, False),
    "u16": (2, False),
    "u32": (4, False),
    "u64": (8, False),
    "u128": (16, False),
    "u256": (32, False),
    "i8": (1, True),
    "i16": (2, True),
    "i32": (4, True),
    "i64": (8, True),
    "i128": (16, True),
    "i256": (32, True),
}


class CodecError(RuntimeError):
    """Raised when a value cannot be encoded or bytes cannot be decoded."""


def encode_compact(value: int) -> bytes:
    """Encode an unsigned integer in SCALE compact form."""
    if value < 0:
        raise CodecError(f"compact value must be unsigned, got {value}")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    length = (value.bit_length() + 7) // 8
    if length > 67:
        raise CodecError(f"compact value {value} is too large")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def _is_bytes_element(types: Mapping[int, Shape], type_id: int) -> bool:
    shape = types[type_id]
    return isinstance(shape, Primitive) and shape.kind == "u8"


class _Writer:
    def __init__(self, types: Mapping[int, Shape]) -> None:
        self.types = types
        self.buf = bytearray()

    def write(self, type_id: int, value: Any) -> None:
        shape = self.types[type_id]

        if isinstance(shape, Primitive):
            self._write_primitive(shape.kind, value)
        elif isinstance(shape, Compact):
            self.buf.extend(encode_compact(value))
        elif isinstance(shape, Sequence):
            self.buf.extend(encode_compact(len(value)))
            self._write_items(shape.type, value)
        elif isinstance(shape, Array):
            if len(value) != shape.length:
                raise CodecError(f"expected {shape.length} elements, got {len(value)}")
            self._write_items(shape.type, value)
        elif isinstance(shape, Tuple):
            if len(value) != len(shape.fields):
                raise CodecError(f"expected {len(shape.fields)} tuple items, got {len(value)}")
            for field_type, item in zip(shape.fields, value):
                self.write(field_type, item)
        elif isinstance(shape, Composite):
            self._write_fields(shape.fields, value, transparent=shape.record is None)
        elif isinstance(shape, Variant):
            record = type(value).__name__
            for case in shape.cases:
                if case.record == record:
                    self.buf.append(case.index)
                    self._write_fields(case.fields, value, transparent=False)
                    return
            raise CodecError(f"{record} is not a case of this variant")
        elif isinstance(shape, Option):
            if value is None:
                self.buf.append(0)
            else:
                self.buf.append(1)
                self.write(shape.type, value)
        elif isinstance(shape, BitSequence):
            self._write_bits(shape, value)
        else:
            raise CodecError(f"Unknown shape {shape!r}")

    def _write_primitive(self, kind: str, value: Any) -> None:
        if kind in INT_KINDS:
            size, signed = INT_KINDS[kind]
            try:
                self.buf.extend(value.to_bytes(size, "little", signed=signed))
            except OverflowError as exc:
                raise CodecError(f"{value} does not fit in {kind}") from exc
        elif kind == "bool":
            self.buf.append(1 if value else 0)
        elif kind == "char":
            self.buf.extend(ord(value).to_bytes(4, "little"))
        elif kind == "str":
            data = value.encode("utf-8")
            self.buf.extend(encode_compact(len(data)))
            self.buf.extend(data)
        else:
            raise CodecError(f"Unknown primitive {kind}")

    def _write_items(self, element: int, items: Any) -> None:
        if _is_bytes_element(self.types, element):
            self.buf.extend(items)
            return
        for item in items:
            self.write(element, item)

    def _write_fields(self, fields: tuple[ShapeField, ...], value: Any, transparent: bool) -> None:
        if transparent:
            self.write(fields[0].type, value)
            return
        for f in fields:
            self.write(f.type, getattr(value, f.name))

    def _write_bits(self, shape: BitSequence, bits: Any) -> None:
        self.buf.extend(encode_compact(len(bits)))
        word_bits = shape.store_bytes * 8
        words = (len(bits) + word_bits - 1) // word_bits
        for w in range(words):
            word = 0
            for i, bit in enumerate(bits[w * word_bits : (w + 1) * word_bits]):
                if bit:
                    word |= 1 << (i if shape.lsb_first else word_bits - 1 - i)
            self.buf.extend(word.to_bytes(shape.store_bytes, "little"))


class _Reader:
    def __init__(
        self, types: Mapping[int, Shape], data: bytes, namespace: Mapping[str, Any]
    ) -> None:
        self.types = types
        self.data = data
        self.namespace = namespace
        self.offset = 0

    def take(self, count: int) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            raise CodecError(f"read of {count} bytes at offset {self.offset} exceeds buffer")
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def compact(self) -> int:
        first = self.take(1)[0]
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            return int.from_bytes(bytes([first]) + self.take(1), "little") >> 2
        if mode == 0b10:
            return int.from_bytes(bytes([first]) + self.take(3), "little") >> 2
        return int.from_bytes(self.take((first >> 2) + 4), "little")

    def read(self, type_id: int) -> Any:
        shape = self.types[type_id]

        if isinstance(shape, Primitive):
            return self._read_primitive(shape.kind)
        if isinstance(shape, Compact):
            return self.compact()
        if isinstance(shape, Sequence):
            return self._read_items(shape.type, self.compact())
        if isinstance(shape, Array):
            return self._read_items(shape.type, shape.length)
        if isinstance(shape, Tuple):
            return tuple(self.read(t) for t in shape.fields)
        if isinstance(shape, Composite):
            if shape.record is None:
                return self.read(shape.fields[0].type)
            return self._read_record(shape.record, shape.fields)
        if isinstance(shape, Variant):
            index = self.take(1)[0]
            case = shape.case_by_index(index)
            if case is None:
                raise CodecError(f"Unknown discriminant {index} for type {type_id}")
            return self._read_record(case.record, case.fields)
        if isinstance(shape, Option):
            flag = self.take(1)[0]
            if flag == 0:
                return None
            if flag == 1:
                return self.read(shape.type)
            raise CodecError(f"Invalid option flag {flag} at offset {self.offset - 1}")
        if isinstance(shape, BitSequence):
            return self._read_bits(shape)
        raise CodecError(f"Unknown shape {shape!r}")

    def _read_primitive(self, kind: str) -> Any:
        if kind in INT_KINDS:
            size, signed = INT_KINDS[kind]
            return int.from_bytes(self.take(size), "little", signed=signed)
        if kind == "bool":
            flag = self.take(1)[0]
            if flag > 1:
                raise CodecError(f"Invalid bool byte {flag} at offset {self.offset - 1}")
            return flag == 1
        if kind == "char":
            code = int.from_bytes(self.take(4), "little")
            if code > 0x10FFFF:
                raise CodecError(f"Invalid char {code:#x}")
            return chr(code)
        if kind == "str":
            try:
                return self.take(self.compact()).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise CodecError(f"Invalid utf-8 string: {exc}") from exc
        raise CodecError(f"Unknown primitive {kind}")

    def _read_items(self, element: int, count: int) -> Any:
        if _is_bytes_element(self.types, element):
            return bytes(self.take(count))
        return [self.read(element) for _ in range(count)]

    def _read_record(self, record: str, fields: tuple[ShapeField, ...]) -> Any:
        values = {f.name: self.read(f.type) for f in fields}
        return self.namespace[record](**values)

    def _read_bits(self, shape: BitSequence) -> list[bool]:
        count = self.compact()
        word_bits = shape.store_bytes * 8
        words = (count + word_bits - 1) // word_bits
        bits: list[bool] = []
        for _ in range(words):
            word = int.from_bytes(self.take(shape.store_bytes), "little")
            for i in range(word_bits):
                if len(bits) == count:
                    break
                bit = i if shape.lsb_first else word_bits - 1 - i
                bits.append(bool(word >> bit & 1))
        return bits


def encode(types: Mapping[int, Shape], type_id: int, value: Any) -> bytes:
    """Encode a value of the given type to bytes."""
    writer = _Writer(types)
    writer.write(type_id, value)
    return bytes(writer.buf)


def decode(
    types: Mapping[int, Shape],
    type_id: int,
    data: bytes,
    namespace: Mapping[str, Any] | None = None,
) -> Any:
    """Decode exactly one value of the given type from data.

    Args:
        types: Shape table keyed by type id.
        type_id: Type of the encoded value.
        data: The encoded bytes; all of them must be consumed.
        namespace: Mapping of record names to the classes to construct.

    Returns:
        The decoded value.
    """
    reader = _Reader(types, data, namespace or {})
    value = reader.read(type_id)
    if reader.offset != len(data):
        raise CodecError(
            f"{len(data) - reader.offset} trailing bytes after decoding type {type_id}"
        )
    return value
