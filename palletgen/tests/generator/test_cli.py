"""Tests for CLI interface."""

import json
import logging

from click.testing import CliRunner

from palletgen.generator.cli import cli


def describe_gen_command():
    def generates_python_code(expect, metadata_file, tmp_path):
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(cli, ["gen", "-i", metadata_file, "-o", str(output_file)])

        expect(result.exit_code) == 0
        content = output_file.read_text()
        expect("class SystemQueries" in content) == True
        expect("class StakingConstants" in content) == True
        expect("from palletgen_runtime import types as _shapes" in content) == True

    def uses_the_package_runtime_without_a_value(expect, metadata_file, tmp_path):
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(
            cli, ["gen", "-i", metadata_file, "-o", str(output_file), "--runtime-import"]
        )

        expect(result.exit_code) == 0
        expect("from palletgen.proto import types as _shapes" in output_file.read_text()) == True

    def filters_pallets(expect, metadata_file, tmp_path):
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(
            cli, ["gen", "-i", metadata_file, "-o", str(output_file), "-p", "Staking"]
        )

        expect(result.exit_code) == 0
        content = output_file.read_text()
        expect("class StakingQueries" in content) == True
        expect("class SystemQueries" in content) == False

    def reads_options_from_the_environment(expect, metadata_file, tmp_path):
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(
            cli,
            ["gen", "-o", str(output_file)],
            env={"PALLETGEN_GEN_INPUT_FILE": metadata_file},
        )

        expect(result.exit_code) == 0
        expect(output_file.exists()) == True

    def fails_with_unknown_pallets(expect, metadata_file, tmp_path):
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(
            cli, ["gen", "-i", metadata_file, "-o", str(output_file), "-p", "Balances"]
        )

        expect(result.exit_code) == 1
        expect("Unknown pallets: Balances" in result.output) == True
        expect(output_file.exists()) == False

    def fails_without_writing_on_generation_errors(expect, metadata_document, tmp_path):
        items = metadata_document["metadata"]["v14"]["pallets"][0]["storage"]["items"]
        items[0]["type"]["map"]["hashers"] = ["Keccak256"]
        input_file = tmp_path / "metadata.json"
        input_file.write_text(json.dumps(metadata_document))
        output_file = tmp_path / "bindings.py"
        runner = CliRunner()

        result = runner.invoke(cli, ["gen", "-i", str(input_file), "-o", str(output_file)])

        expect(result.exit_code) == 1
        expect("Unknown hasher 'Keccak256' in System.Account" in result.output) == True
        expect(output_file.exists()) == False

    def fails_on_unsupported_versions(expect, metadata_document, tmp_path):
        document = {"metadata": {"v13": metadata_document["metadata"]["v14"]}}
        input_file = tmp_path / "metadata.json"
        input_file.write_text(json.dumps(document))
        runner = CliRunner()

        result = runner.invoke(
            cli, ["gen", "-i", str(input_file), "-o", str(tmp_path / "bindings.py")]
        )

        expect(result.exit_code) == 1
        expect("Unsupported metadata version v13" in result.output) == True

    def requires_input_and_output(expect):
        runner = CliRunner()

        result = runner.invoke(cli, ["gen"])

        expect(result.exit_code) != 0


def describe_runtime_command():
    def generates_runtime_files(expect, tmp_path):
        runner = CliRunner()

        result = runner.invoke(cli, ["runtime", "-o", str(tmp_path)])

        expect(result.exit_code) == 0
        runtime_dir = tmp_path / "palletgen_runtime"
        expect(sorted(p.name for p in runtime_dir.iterdir())) == [
            "__init__.py",
            "codec.py",
            "hashers.py",
            "storage.py",
            "types.py",
        ]

    def uses_a_custom_name(expect, tmp_path):
        runner = CliRunner()

        result = runner.invoke(cli, ["runtime", "-o", str(tmp_path), "--name", "chain_rt"])

        expect(result.exit_code) == 0
        expect((tmp_path / "chain_rt" / "storage.py").exists()) == True


def describe_info_command():
    def outputs_json(expect, metadata_file):
        runner = CliRunner()

        result = runner.invoke(cli, ["info", "-i", metadata_file, "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(list(data["pallets"])) == ["System", "Staking"]
        account = data["pallets"]["System"]["storage"][0]
        expect(account["container"]) == "StorageMap"
        expect(account["hashers"]) == ["blake2_128_concat"]
        expect(account["keys"]) == ["bytes"]
        expect(account["value"]) == "AccountInfo"
        expect(data["pallets"]["Staking"]["constants"]["PalletName"]) == "'staking'"

    def outputs_tables(expect, metadata_file):
        runner = CliRunner()

        result = runner.invoke(cli, ["info", "-i", metadata_file])

        expect(result.exit_code) == 0
        expect("System" in result.output) == True
        expect("ErasStakers" in result.output) == True
        expect("AccountInfo" in result.output) == True
        expect("BlockHashCount" in result.output) == True


def describe_decode_command():
    def decodes_primitive_values(expect):
        runner = CliRunner()

        result = runner.invoke(cli, ["decode", "-t", "u32", "0x07000000"])

        expect(result.exit_code) == 0
        expect(result.output.strip()) == "7"

    def decodes_generic_values(expect):
        runner = CliRunner()

        result = runner.invoke(
            cli, ["decode", "-t", "Vec<Option<(u32, bool)>>", "0x0800010900000001"]
        )

        expect(result.exit_code) == 0
        expect(result.output.strip()) == "[None, (9, True)]"

    def decodes_named_types(expect, metadata_file):
        runner = CliRunner()

        result = runner.invoke(cli, ["decode", "-i", metadata_file, "-t", "Weight", "0x910100"])

        expect(result.exit_code) == 0
        expect(result.output.strip()) == "Weight(ref_time=100, proof_size=0)"

    def reports_decode_errors(expect):
        runner = CliRunner()

        result = runner.invoke(cli, ["decode", "-t", "u32", "0x0700"])

        expect(result.exit_code) == 1
        expect("needs 4 bytes but only 2 remain" in result.output) == True

    def rejects_invalid_hex(expect):
        runner = CliRunner()

        result = runner.invoke(cli, ["decode", "-t", "u32", "0xzz"])

        expect(result.exit_code) == 1
        expect("Invalid hex value" in result.output) == True


def describe_verbose_flag():
    def enables_debug_logging(expect, metadata_file, tmp_path):
        runner = CliRunner()

        result = runner.invoke(
            cli, ["-v", "gen", "-i", metadata_file, "-o", str(tmp_path / "bindings.py")]
        )

        expect(result.exit_code) == 0
        expect(logging.getLogger().level) == logging.DEBUG

    def logs_warnings_only_by_default(expect, metadata_file, tmp_path):
        runner = CliRunner()

        result = runner.invoke(
            cli, ["gen", "-i", metadata_file, "-o", str(tmp_path / "bindings.py")]
        )

        expect(result.exit_code) == 0
        expect(logging.getLogger().level) == logging.WARNING
