"""Errors raised while deriving bindings from metadata.

Every error is fatal for the whole generation run.
"""


class GenerationError(RuntimeError):
    """Base class for generation failures."""


class MetadataError(GenerationError):
    """Raised when a metadata document cannot be loaded."""


class UnresolvedTypeError(GenerationError):
    """Raised when a type id is missing from the type table."""

    def __init__(self, type_id: int, context: str | None = None):
        self.type_id = type_id
        self.context = context
        where = f" (referenced from {context})" if context else ""
        super().__init__(f"Type {type_id} is not in the type table{where}")


class UnsupportedTypeError(GenerationError):
    """Raised when a type definition kind has no descriptor."""


class InvalidStorageDescriptor(GenerationError):
    """Raised when a storage entry's keys and hashers disagree."""


class UnknownHasherError(GenerationError):
    """Raised when a hasher token has no classification."""

    def __init__(self, token: str, context: str | None = None):
        self.token = token
        where = f" in {context}" if context else ""
        super().__init__(f"Unknown hasher {token!r}{where}")


class UnsupportedArityError(GenerationError):
    """Raised when a storage entry has more keys than any container supports."""

    def __init__(self, arity: int, limit: int, context: str | None = None):
        self.arity = arity
        self.limit = limit
        where = f"{context}: " if context else ""
        super().__init__(f"{where}{arity} storage keys, at most {limit} are supported")


class DecodeError(GenerationError):
    """Raised when an encoded default or constant disagrees with its type."""

    def __init__(
        self,
        message: str,
        *,
        type_id: int | None = None,
        offset: int | None = None,
        context: str | None = None,
    ):
        self.type_id = type_id
        self.offset = offset
        self.context = context

        details = []
        if context:
            details.append(context)
        if type_id is not None:
            details.append(f"type {type_id}")
        if offset is not None:
            details.append(f"offset {offset}")
        prefix = f"[{', '.join(details)}] " if details else ""
        super().__init__(f"{prefix}{message}")
