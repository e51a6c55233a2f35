"""Tests for the metadata loader and type expression parser."""

import json

from pytest import raises

from palletgen.generator import load, parse, parse_type_expression
from palletgen.generator.errors import MetadataError, UnresolvedTypeError
from palletgen.generator.types import (
    TypeDefArray,
    TypeDefBitSequence,
    TypeDefCompact,
    TypeDefComposite,
    TypeDefPrimitive,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefUnknown,
    TypeDefVariant,
    TypeInfo,
)


def describe_load():
    def loads_versioned_document(expect, metadata_document):
        metadata = load(json.dumps(metadata_document))

        expect([p.name for p in metadata.pallets]) == ["System", "Staking"]
        expect(len(metadata.lookup.types)) == 22

    def loads_unwrapped_document(expect, metadata_document):
        metadata = parse(metadata_document["metadata"]["v14"])

        expect(metadata.pallet("Staking").index) == 6

    def accepts_v15(expect, metadata_document):
        document = {"metadata": {"V15": metadata_document["metadata"]["v14"]}}

        expect(len(parse(document).pallets)) == 2

    def rejects_other_versions(metadata_document):
        document = {"metadata": {"v13": metadata_document["metadata"]["v14"]}}

        with raises(MetadataError, match="Unsupported metadata version v13"):
            parse(document)

    def requires_a_type_table():
        with raises(MetadataError, match="no type table"):
            parse({"pallets": []})

    def rejects_invalid_json():
        with raises(MetadataError, match="not valid JSON"):
            load("{not json")

    def rejects_non_object_documents():
        with raises(MetadataError):
            load("[1, 2, 3]")

    def rejects_malformed_type_definitions():
        document = {
            "lookup": {"types": [{"id": 0, "type": {"def": {"primitive": "u8", "sequence": {}}}}]}
        }

        with raises(MetadataError, match="Malformed metadata document"):
            parse(document)

    def rejects_missing_fields():
        document = {"lookup": {"types": [{"id": 0, "type": {}}]}}

        with raises(MetadataError):
            parse(document)


def describe_type_table():
    def decodes_every_definition_kind(expect, metadata):
        table = metadata.type_table

        expect(isinstance(table[0].def_, TypeDefPrimitive)) == True
        expect(isinstance(table[2].def_, TypeDefSequence)) == True
        expect(isinstance(table[3].def_, TypeDefArray)) == True
        expect(isinstance(table[4].def_, TypeDefComposite)) == True
        expect(isinstance(table[10].def_, TypeDefVariant)) == True
        expect(isinstance(table[13].def_, TypeDefTuple)) == True
        expect(isinstance(table[15].def_, TypeDefCompact)) == True

    def lowercases_primitive_kinds(expect, metadata):
        expect(metadata.type_table[12].def_.kind) == "u64"

    def keeps_paths_fields_and_docs(expect, metadata):
        info = metadata.type_table[8]

        expect(info.path) == ["frame_system", "AccountInfo"]
        expect(info.docs) == ["Information of an account."]
        expect([f.name for f in info.def_.fields]) == [
            "nonce",
            "consumers",
            "providers",
            "sufficients",
            "data",
        ]
        expect(info.def_.fields[0].type_name) == "Nonce"

    def decodes_bit_sequences(expect):
        info = TypeInfo.from_dict({"def": {"bitSequence": {"bitStoreType": 1, "bitOrderType": 2}}})

        expect(isinstance(info.def_, TypeDefBitSequence)) == True
        expect(info.def_.bit_store_type) == 1
        expect(info.def_.bit_order_type) == 2

    def keeps_unknown_kinds_for_later(expect):
        info = TypeInfo.from_dict({"def": {"historicMetaCompat": "u32"}})

        expect(info.def_) == TypeDefUnknown(kind="historicMetaCompat")


def describe_pallets():
    def decodes_storage_items(expect, metadata):
        account, number, phase, _ = metadata.pallet("System").storage.items

        expect(account.type.key) == 4
        expect(account.type.value) == 8
        expect(account.type.hashers) == ["Blake2_128Concat"]
        expect(account.fallback) == bytes(80)
        expect(number.type.key) == None
        expect(number.type.hashers) == []
        expect(phase.is_optional) == True
        expect(number.is_optional) == False

    def decodes_constants(expect, metadata):
        count, weight = metadata.pallet("System").constants

        expect(count.name) == "BlockHashCount"
        expect(count.value) == bytes([0x60, 0x09, 0, 0])
        expect(weight.type) == 16

    def returns_none_for_unknown_pallets(expect, metadata):
        expect(metadata.pallet("Balances")) == None


def describe_parse_type_expression():
    def parses_primitives(expect):
        type_id, table = parse_type_expression("u32")

        expect(table[type_id].def_) == TypeDefPrimitive(kind="u32")

    def maps_string_to_str(expect):
        type_id, table = parse_type_expression("String")

        expect(table[type_id].def_) == TypeDefPrimitive(kind="str")

    def parses_generics(expect):
        type_id, table = parse_type_expression("Vec<Compact<u128>>")

        sequence = table[type_id].def_
        expect(isinstance(sequence, TypeDefSequence)) == True
        compact = table[sequence.type].def_
        expect(isinstance(compact, TypeDefCompact)) == True
        expect(table[compact.type].def_) == TypeDefPrimitive(kind="u128")

    def builds_options_as_variants(expect):
        type_id, table = parse_type_expression("Option<bool>")

        info = table[type_id]
        expect(info.path) == ["Option"]
        expect([v.name for v in info.def_.variants]) == ["None", "Some"]

    def unwraps_boxes(expect):
        boxed, boxed_table = parse_type_expression("Box<u8>")
        plain, plain_table = parse_type_expression("u8")

        expect(boxed_table[boxed].def_) == plain_table[plain].def_

    def parses_arrays_and_tuples(expect):
        type_id, table = parse_type_expression("([u8; 32], (), bool)")

        fields = table[type_id].def_.fields
        expect(table[fields[0]].def_.len) == 32
        expect(table[fields[1]].def_) == TypeDefTuple(fields=[])

    def reuses_identical_types(expect):
        type_id, table = parse_type_expression("(u32, u32)")

        first, second = table[type_id].def_.fields
        expect(first) == second
        expect(len(table)) == 2

    def resolves_named_types(expect, metadata):
        type_id, table = parse_type_expression("Vec<AccountInfo>", metadata.type_table)

        expect(table[type_id].def_.type) == 8
        expect(len(table)) == len(metadata.type_table) + 1

    def resolves_existing_entries(expect, metadata):
        type_id, table = parse_type_expression("u32", metadata.type_table)

        expect(type_id) == 0
        expect(table) == metadata.type_table

    def resolves_references(expect, metadata):
        type_id, _ = parse_type_expression("#11", metadata.type_table)

        expect(type_id) == 11

    def rejects_missing_references(metadata):
        with raises(UnresolvedTypeError):
            parse_type_expression("Vec<#99>", metadata.type_table)

    def rejects_unknown_names():
        with raises(MetadataError, match="Unknown or ambiguous type name 'Foo'"):
            parse_type_expression("Foo")

    def rejects_unknown_generics():
        with raises(MetadataError, match="Unknown generic type 'BTreeMap'"):
            parse_type_expression("BTreeMap<u32>")

    def rejects_syntax_errors():
        with raises(MetadataError, match="Invalid type expression"):
            parse_type_expression("Vec<u32")
