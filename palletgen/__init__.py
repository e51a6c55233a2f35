"""Palletgen - Typed storage and constant bindings from chain metadata."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("palletgen")
except PackageNotFoundError:
    __version__ = "(local)"
