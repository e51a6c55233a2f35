"""Decode encoded defaults and constants into Python literal expressions.

This runs once, at generation time. It mirrors the runtime decoder in
``palletgen.proto.codec`` but produces source text instead of values: the
literal for a record is a constructor call of its generated class, an absent
option is ``None``. The whole buffer must be consumed by exactly one value.
"""

from palletgen.proto.codec import INT_KINDS

from .errors import DecodeError
from .registry import (
    ArrayDescriptor,
    BitSequenceDescriptor,
    CompactDescriptor,
    CompositeDescriptor,
    FieldDescriptor,
    OptionDescriptor,
    PrimitiveDescriptor,
    SequenceDescriptor,
    TupleDescriptor,
    TypeRegistry,
    VariantDescriptor,
    field_names,
)


def tuple_literal(items: list[str]) -> str:
    if len(items) == 1:
        return f"({items[0]},)"
    return f"({', '.join(items)})"


class LiteralDecoder:
    """Reads one encoded value and renders it as a Python expression."""

    def __init__(self, registry: TypeRegistry, data: bytes, context: str | None = None):
        self.registry = registry
        self.data = bytes(data)
        self.context = context
        self.offset = 0

    def error(self, message: str, type_id: int | None = None) -> DecodeError:
        return DecodeError(message, type_id=type_id, offset=self.offset, context=self.context)

    def take(self, count: int, type_id: int) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            raise self.error(
                f"needs {count} bytes but only {len(self.data) - self.offset} remain", type_id
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def compact(self, type_id: int) -> int:
        first = self.take(1, type_id)[0]
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            return int.from_bytes(bytes([first]) + self.take(1, type_id), "little") >> 2
        if mode == 0b10:
            return int.from_bytes(bytes([first]) + self.take(3, type_id), "little") >> 2
        return int.from_bytes(self.take((first >> 2) + 4, type_id), "little")

    def value(self, type_id: int) -> str:
        """Literal for the next encoded value of a type."""
        d = self.registry.resolve(type_id, self.context)

        if isinstance(d, PrimitiveDescriptor):
            return self.primitive(d.kind, type_id)
        if isinstance(d, CompactDescriptor):
            return str(self.compact(type_id))
        if isinstance(d, SequenceDescriptor):
            return self.items(d.element, self.compact(type_id))
        if isinstance(d, ArrayDescriptor):
            return self.items(d.element, d.length)
        if isinstance(d, TupleDescriptor):
            return tuple_literal([self.value(t) for t in d.fields])
        if isinstance(d, CompositeDescriptor):
            if self.registry.is_transparent(type_id):
                return self.value(d.fields[0].type)
            return self.record(self.registry.name_of(type_id), d.fields)
        if isinstance(d, VariantDescriptor):
            start = self.offset
            index = self.take(1, type_id)[0]
            case = d.case_by_index(index)
            if case is None:
                self.offset = start
                raise self.error(f"discriminant {index} matches no variant", type_id)
            return self.record(self.registry.case_name(type_id, case), case.fields)
        if isinstance(d, OptionDescriptor):
            flag = self.take(1, type_id)[0]
            if flag == 0:
                return "None"
            if flag == 1:
                return self.value(d.inner)
            self.offset -= 1
            raise self.error(f"invalid option presence byte {flag}", type_id)
        if isinstance(d, BitSequenceDescriptor):
            return self.bits(d, type_id)
        raise self.error(f"cannot decode {type(d).__name__}", type_id)

    def primitive(self, kind: str, type_id: int) -> str:
        if kind in INT_KINDS:
            size, signed = INT_KINDS[kind]
            return str(int.from_bytes(self.take(size, type_id), "little", signed=signed))
        if kind == "bool":
            flag = self.take(1, type_id)[0]
            if flag > 1:
                self.offset -= 1
                raise self.error(f"invalid bool byte {flag}", type_id)
            return "True" if flag else "False"
        if kind == "char":
            code = int.from_bytes(self.take(4, type_id), "little")
            if code > 0x10FFFF:
                raise self.error(f"invalid char {code:#x}", type_id)
            return repr(chr(code))
        if kind == "str":
            raw = self.take(self.compact(type_id), type_id)
            try:
                return repr(raw.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise self.error(f"invalid utf-8 string: {exc}", type_id) from exc
        raise self.error(f"unknown primitive {kind}", type_id)

    def items(self, element: int, count: int) -> str:
        if self.registry.is_bytes(element):
            return repr(self.take(count, element))
        return f"[{', '.join(self.value(element) for _ in range(count))}]"

    def record(self, name: str, fields: tuple[FieldDescriptor, ...]) -> str:
        args = [f"{n}={self.value(f.type)}" for n, f in zip(field_names(fields), fields)]
        return f"{name}({', '.join(args)})"

    def bits(self, d: BitSequenceDescriptor, type_id: int) -> str:
        count = self.compact(type_id)
        word_bits = d.store_bytes * 8
        words = (count + word_bits - 1) // word_bits
        bits: list[str] = []
        for _ in range(words):
            word = int.from_bytes(self.take(d.store_bytes, type_id), "little")
            for i in range(min(word_bits, count - len(bits))):
                bit = i if d.lsb_first else word_bits - 1 - i
                bits.append("True" if word >> bit & 1 else "False")
        return f"[{', '.join(bits)}]"


def decode_literal(
    registry: TypeRegistry, type_id: int, data: bytes, context: str | None = None
) -> str:
    """Decode data as one value of a type and return its Python literal.

    Args:
        registry: Registry resolving the type graph.
        type_id: Type of the encoded value.
        data: Encoded value; every byte must be consumed.
        context: Entry name included in error messages.

    Returns:
        A self-contained Python expression constructing the value.
    """
    decoder = LiteralDecoder(registry, data, context)
    literal = decoder.value(type_id)
    if decoder.offset != len(decoder.data):
        raise decoder.error(
            f"{len(decoder.data) - decoder.offset} bytes left after decoding", type_id
        )
    return literal
