"""Python code generator for pallet bindings."""

import dataclasses
from importlib import resources
from typing import Any

from jinja2 import Environment, PackageLoader

from .pallet import Pallet, Query
from .registry import CompositeDescriptor, TypeRegistry, VariantDescriptor, field_names
from .util import sanitize, to_camel_case, to_snake_case

RUNTIME_FILES = [
    "__init__.py",
    "types.py",
    "codec.py",
    "hashers.py",
    "storage.py",
]

env = Environment(
    loader=PackageLoader("palletgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")


@dataclasses.dataclass
class RecordField:
    name: str
    annotation: str
    docs: list[str]


@dataclasses.dataclass
class RecordClass:
    name: str
    base: str | None
    fields: list[RecordField]
    docs: list[str]


@dataclasses.dataclass
class UnionBase:
    name: str
    docs: list[str]


def _doc_lines(docs: tuple[str, ...] | list[str]) -> list[str]:
    """Escape doc lines for use inside a triple-quoted docstring."""
    return [line.rstrip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"') for line in docs]


def _record_fields(registry: TypeRegistry, fields) -> list[RecordField]:
    return [
        RecordField(name=name, annotation=registry.annotation(f.type), docs=_doc_lines(f.docs))
        for name, f in zip(field_names(fields), fields)
    ]


def _classes(registry: TypeRegistry) -> tuple[list[UnionBase], list[RecordClass]]:
    """Union base classes and record classes for every class type."""
    bases: list[UnionBase] = []
    records: list[RecordClass] = []

    for type_id, d in registry.descriptors.items():
        if not registry.is_class(type_id):
            continue
        name = registry.name_of(type_id)

        if isinstance(d, VariantDescriptor):
            bases.append(UnionBase(name=name, docs=_doc_lines(d.docs)))
            for case in d.variants:
                records.append(
                    RecordClass(
                        name=registry.case_name(type_id, case),
                        base=name,
                        fields=_record_fields(registry, case.fields),
                        docs=_doc_lines(case.docs),
                    )
                )
        elif isinstance(d, CompositeDescriptor):
            records.append(
                RecordClass(
                    name=name,
                    base=None,
                    fields=_record_fields(registry, d.fields),
                    docs=_doc_lines(d.docs),
                )
            )

    return bases, records


def shape_source(value: Any) -> str:
    """Render a runtime shape descriptor as source referencing ``_shapes``."""
    if dataclasses.is_dataclass(value):
        args = ", ".join(
            f"{f.name}={shape_source(getattr(value, f.name))}" for f in dataclasses.fields(value)
        )
        return f"_shapes.{type(value).__name__}({args})"
    if isinstance(value, tuple):
        items = [shape_source(v) for v in value]
        if len(items) == 1:
            return f"({items[0]},)"
        return f"({', '.join(items)})"
    return repr(value)


def _hasher_source(query: Query) -> str:
    hashers = [
        f"_StorageHasher(_StorageHasherType.{h.hasher.name}, {h.key.id})"
        for h in query.storage.hashers
    ]
    if len(hashers) == 1:
        return f"({hashers[0]},)"
    return f"({', '.join(hashers)})"


def _query_params(registry: TypeRegistry, query: Query) -> list[tuple[str, str]]:
    return [
        (f"key{i + 1}", registry.annotation(h.key.id)) for i, h in enumerate(query.storage.hashers)
    ]


def render(
    pallets: list[Pallet],
    registry: TypeRegistry,
    runtime_import: str = "palletgen.proto",
) -> str:
    """Render pallets and their types to a Python module."""
    bases, records = _classes(registry)
    containers = sorted({q.storage.container for p in pallets for q in p.queries})

    return template.render(
        pallets=pallets,
        bases=bases,
        records=records,
        shapes={type_id: shape_source(s) for type_id, s in registry.shape_table().items()},
        containers=containers,
        registry=registry,
        doc_lines=_doc_lines,
        hasher_source=_hasher_source,
        query_params=lambda q: _query_params(registry, q),
        member_name=lambda name: sanitize(to_snake_case(name)),
        class_name=lambda name: sanitize(to_camel_case(name)),
        py=repr,
        runtime_import=runtime_import,
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("palletgen.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
