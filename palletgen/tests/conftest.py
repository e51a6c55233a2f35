"""Unit tests configuration file."""

import json
import os

import pytest

from palletgen.generator.parser import parse
from palletgen.generator.registry import TypeRegistry
from palletgen.generator.types import TypeInfo

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

METADATA_FILE = f"{FILE_DIR}/metadata.json"


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def type_table(types):
    """Build a type table from ``{id: {"def": ..., "path": ...}}`` dicts."""
    return {type_id: TypeInfo.from_dict(info) for type_id, info in types.items()}


@pytest.fixture
def metadata_file():
    return METADATA_FILE


@pytest.fixture
def metadata_document():
    with open(METADATA_FILE, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def metadata(metadata_document):
    return parse(metadata_document)


@pytest.fixture
def build_registry():
    def build(types, roots=None):
        table = type_table(types)
        return TypeRegistry.build(table, list(table) if roots is None else roots)

    return build
