"""Pallet assembly: groups validated storage entries and decoded constants."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .decoder import decode_literal
from .errors import GenerationError
from .registry import TypeDescriptor, TypeRegistry
from .storage import Storage
from .types import PalletConstantMetadata, PalletMetadata, RuntimeMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Constant:
    """A pallet constant with its value already rendered as a literal."""

    name: str
    value: bytes
    type: TypeDescriptor
    literal: str
    docs: tuple[str, ...] = ()

    @classmethod
    def from_metadata(
        cls, constant: PalletConstantMetadata, registry: TypeRegistry, pallet: str = ""
    ) -> "Constant":
        context = f"{pallet}.{constant.name}" if pallet else constant.name
        return cls(
            name=constant.name,
            value=constant.value,
            type=registry.resolve(constant.type, context),
            literal=decode_literal(registry, constant.type, constant.value, context),
            docs=tuple(constant.docs),
        )


@dataclass(frozen=True)
class Query:
    """The read operation for one storage entry.

    ``default`` is the literal returned when the key is absent; it is None
    for nullable entries, which return None instead.
    """

    storage: Storage
    default: str | None

    @classmethod
    def from_storage(cls, storage: Storage, registry: TypeRegistry, pallet: str = "") -> "Query":
        if storage.is_nullable:
            return cls(storage=storage, default=None)
        context = f"{pallet}.{storage.name}" if pallet else storage.name
        literal = decode_literal(registry, storage.value.id, storage.default, context)
        return cls(storage=storage, default=literal)

    def return_annotation(self, registry: TypeRegistry) -> str:
        annotation = registry.annotation(self.storage.value.id)
        if self.storage.is_nullable:
            return f"{annotation} | None"
        return annotation


@dataclass(frozen=True)
class Pallet:
    """A pallet's query and constants surfaces."""

    name: str
    prefix: str
    index: int
    queries: tuple[Query, ...]
    constants: tuple[Constant, ...]

    @classmethod
    def from_metadata(cls, pallet: PalletMetadata, registry: TypeRegistry) -> "Pallet":
        entries = pallet.storage.items if pallet.storage else []
        storages = [Storage.from_metadata(entry, registry, pallet.name) for entry in entries]
        queries = tuple(Query.from_storage(s, registry, pallet.name) for s in storages)
        constants = tuple(
            Constant.from_metadata(c, registry, pallet.name) for c in pallet.constants
        )

        logger.debug(
            "Pallet %s: %d storage entries, %d constants", pallet.name, len(queries), len(constants)
        )
        return cls(
            name=pallet.name,
            prefix=pallet.storage.prefix if pallet.storage else pallet.name,
            index=pallet.index,
            queries=queries,
            constants=constants,
        )


def root_types(pallets: Iterable[PalletMetadata]) -> dict[int, str]:
    """Type ids referenced directly by storage entries and constants.

    Maps each id to the first entry referencing it.
    """
    roots: dict[int, str] = {}
    for pallet in pallets:
        if pallet.storage:
            for entry in pallet.storage.items:
                context = f"{pallet.name}.{entry.name}"
                roots.setdefault(entry.type.value, context)
                if entry.type.key is not None:
                    roots.setdefault(entry.type.key, context)
        for c in pallet.constants:
            roots.setdefault(c.type, f"{pallet.name}.{c.name}")
    return roots


def assemble(
    metadata: RuntimeMetadata, only: Iterable[str] | None = None
) -> tuple[list[Pallet], TypeRegistry]:
    """Derive pallets and the resolved type graph from a metadata document.

    Args:
        metadata: The loaded metadata document.
        only: Names of the pallets to include; all pallets when None.

    Returns:
        Tuple of (pallets in document order, registry of reachable types).
    """
    selected = metadata.pallets
    if only is not None:
        wanted = set(only)
        missing = {name for name in wanted if metadata.pallet(name) is None}
        if missing:
            raise GenerationError(f"Unknown pallets: {', '.join(sorted(missing))}")
        selected = [p for p in metadata.pallets if p.name in wanted]

    registry = TypeRegistry.build(metadata.type_table, root_types(selected))
    pallets = [Pallet.from_metadata(p, registry) for p in selected]
    return pallets, registry
