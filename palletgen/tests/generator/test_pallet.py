"""Tests for pallet assembly."""

from pytest import raises

from palletgen.generator import assemble
from palletgen.generator.errors import DecodeError, GenerationError, UnknownHasherError
from palletgen.generator.pallet import root_types
from palletgen.generator.parser import parse


def describe_assemble():
    def keeps_document_order(expect, metadata):
        pallets, _ = assemble(metadata)

        expect([p.name for p in pallets]) == ["System", "Staking"]
        expect([p.index for p in pallets]) == [0, 6]
        expect(pallets[0].prefix) == "System"

    def builds_one_query_per_storage_entry(expect, metadata):
        pallets, _ = assemble(metadata)

        system = pallets[0]
        expect([q.storage.name for q in system.queries]) == [
            "Account",
            "Number",
            "ExecutionPhase",
            "BlockHash",
        ]
        expect([q.storage.container for q in system.queries]) == [
            "StorageMap",
            "StorageValue",
            "StorageValue",
            "StorageMap",
        ]

    def precomputes_default_literals(expect, metadata):
        pallets, _ = assemble(metadata)

        system, staking = pallets
        defaults = {q.storage.name: q.default for q in system.queries + staking.queries}
        expect(defaults["Number"]) == "0"
        expect(defaults["BlockHash"]) == repr(bytes(32))
        expect(defaults["Account"]) == (
            "AccountInfo(nonce=0, consumers=0, providers=0, sufficients=0, "
            "data=AccountData(free=0, reserved=0, frozen=0, flags=0))"
        )
        expect(defaults["ErasStakers"]) == "None"
        expect(defaults["Paused"]) == "True"

    def skips_defaults_of_nullable_entries(expect, metadata):
        pallets, registry = assemble(metadata)

        system, staking = pallets
        phase = system.queries[2]
        nodes = staking.queries[2]
        expect(phase.default) == None
        expect(nodes.default) == None
        expect(phase.return_annotation(registry)) == "Phase | None"
        expect(nodes.return_annotation(registry)) == "Node | None"

    def annotates_query_results(expect, metadata):
        pallets, registry = assemble(metadata)

        system, staking = pallets
        expect(system.queries[0].return_annotation(registry)) == "AccountInfo"
        expect(staking.queries[0].return_annotation(registry)) == "int | None"

    def decodes_constants(expect, metadata):
        pallets, _ = assemble(metadata)

        system, staking = pallets
        expect([(c.name, c.literal) for c in system.constants]) == [
            ("BlockHashCount", "2400"),
            ("DbWeight", "Weight(ref_time=100, proof_size=0)"),
        ]
        expect([(c.name, c.literal) for c in staking.constants]) == [
            ("PalletName", "'staking'"),
            ("MinimumDeposit", "1"),
        ]
        expect(system.constants[0].docs) == (
            " Maximum number of block number to block hash mappings to keep.",
        )

    def filters_pallets(expect, metadata):
        pallets, registry = assemble(metadata, ["Staking"])

        expect([p.name for p in pallets]) == ["Staking"]
        expect(8 in registry.descriptors) == False
        expect(19 in registry.descriptors) == True

    def rejects_unknown_pallets(metadata):
        with raises(GenerationError, match="Unknown pallets: Balances"):
            assemble(metadata, ["Balances", "System"])

    def names_the_entry_of_bad_defaults(expect, metadata_document):
        items = metadata_document["metadata"]["v14"]["pallets"][0]["storage"]["items"]
        items[1]["fallback"] = "0x0000"

        with raises(DecodeError) as exc_info:
            assemble(parse(metadata_document))

        expect(exc_info.value.context) == "System.Number"

    def names_the_entry_of_bad_constants(expect, metadata_document):
        constants = metadata_document["metadata"]["v14"]["pallets"][1]["constants"]
        constants[0]["value"] = "0x1c7374"

        with raises(DecodeError) as exc_info:
            assemble(parse(metadata_document))

        expect(exc_info.value.context) == "Staking.PalletName"

    def fails_on_unknown_hashers(metadata_document):
        items = metadata_document["metadata"]["v14"]["pallets"][0]["storage"]["items"]
        items[0]["type"]["map"]["hashers"] = ["Keccak256"]

        with raises(UnknownHasherError, match="System.Account"):
            assemble(parse(metadata_document))


def describe_root_types():
    def maps_each_type_to_its_first_entry(expect, metadata):
        roots = root_types(metadata.pallets)

        expect(roots[8]) == "System.Account"
        expect(roots[4]) == "System.Account"
        expect(roots[0]) == "System.Number"
        expect(roots[14]) == "Staking.PalletName"
        expect(20 in roots) == False
