"""
Command-Line Tool Tests
=======================

Tests for the ``firmhex`` click commands, run through CliRunner.
"""

import pytest
from click.testing import CliRunner

from firmhex import __version__
from firmhex.cli import main
from firmhex.codec import SRECORD, INTEL_HEX, read_file


# =============================================================================
# Test Fixtures
# =============================================================================

SREC_LINES = [
    "S00F000068656C6C6F202020202000003C",
    "S11F00007C0802A6900100049421FFF07C6C1B787C8C23783C6000003863000026",
    "S11F001C4BFFFFE5398000007D83637880010014382100107C0803A64E800020E9",
    "S111003848656C6C6F20776F726C642E0A0042",
    "S5030003F9",
    "S9030000FC",
]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def srec_file(tmp_path):
    """An S19 file with a header, 70 contiguous data bytes, count and start."""
    path = tmp_path / "image.s19"
    path.write_text("\n".join(SREC_LINES) + "\n")
    return path


@pytest.fixture
def bin_file(tmp_path):
    """A 40-byte binary image."""
    path = tmp_path / "image.bin"
    path.write_bytes(bytes(range(40)))
    return path


# =============================================================================
# Main Group Tests
# =============================================================================

class TestMain:
    """Tests for the command group."""

    def test_help(self, runner):
        """Test CLI help output."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Intel HEX and Motorola S-record tool" in result.output
        for command in ("encode", "list", "info", "coalesce", "validate"):
            assert command in result.output

    def test_version(self, runner):
        """Test CLI version output."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_format_required(self, runner, srec_file):
        """Test that the format is never guessed."""
        result = runner.invoke(main, ["list", str(srec_file)])
        assert result.exit_code == 2
        assert "--format" in result.output

    def test_unknown_format(self, runner, srec_file):
        """Test that an unknown format name is a usage error."""
        result = runner.invoke(main, ["list", "-f", "bin", str(srec_file)])
        assert result.exit_code == 2
        assert "Unknown record format" in result.output


# =============================================================================
# Encode Command Tests
# =============================================================================

class TestEncodeCommand:
    """Tests for firmhex encode."""

    def test_encode_ihex(self, runner, bin_file, tmp_path):
        """Test encoding a binary file as Intel HEX."""
        output = tmp_path / "image.hex"
        result = runner.invoke(main, ["encode", "-f", "ihex", "-o", str(output), str(bin_file)])

        assert result.exit_code == 0
        assert "3 data records, 40 bytes" in result.output

        lines = output.read_text().splitlines()
        assert len(lines) == 4
        assert lines[-1] == ":00000001FF"

        records = read_file(output, INTEL_HEX)
        assert b"".join(r.payload for r in records if r.is_data) == bytes(range(40))

    def test_encode_srec_options(self, runner, bin_file, tmp_path):
        """Test S-record header, count and start options."""
        output = tmp_path / "image.s37"
        result = runner.invoke(main, [
            "encode", "-f", "srec",
            "-m", "32", "-a", "0x8000", "-w", "16",
            "--header", "boot", "--count", "--start", "0x8000",
            "-o", str(output), str(bin_file),
        ])

        assert result.exit_code == 0
        lines = output.read_text().splitlines()
        assert len(lines) == 6
        assert lines[0].startswith("S0")
        assert all(line.startswith("S3") for line in lines[1:4])
        assert lines[4] == "S5030003F9"
        assert lines[5] == "S705000080007A"

    def test_encode_env_fallback(self, runner, bin_file, tmp_path):
        """Test that FIRMHEX_* variables fill unset options."""
        output = tmp_path / "image.hex"
        result = runner.invoke(
            main,
            ["encode", "-f", "ihex", "-o", str(output), str(bin_file)],
            env={"FIRMHEX_WIDTH": "8"},
        )
        assert result.exit_code == 0
        assert "5 data records" in result.output

    def test_encode_option_overrides_env(self, runner, bin_file, tmp_path):
        """Test that command-line options win over the environment."""
        output = tmp_path / "image.hex"
        result = runner.invoke(
            main,
            ["encode", "-f", "ihex", "-w", "20", "-o", str(output), str(bin_file)],
            env={"FIRMHEX_WIDTH": "8"},
        )
        assert result.exit_code == 0
        assert "2 data records" in result.output

    def test_encode_verbose(self, runner, bin_file, tmp_path):
        """Test the verbose summary."""
        output = tmp_path / "image.s19"
        result = runner.invoke(
            main, ["-v", "encode", "-f", "srec", "-o", str(output), str(bin_file)]
        )
        assert result.exit_code == 0
        assert "Width:        10 bytes/record" in result.output
        assert "Data records: 4" in result.output

    def test_encode_invalid_setting(self, runner, bin_file, tmp_path):
        """Test that settings the format cannot express exit with status 2."""
        output = tmp_path / "image.hex"
        result = runner.invoke(
            main, ["encode", "-f", "ihex", "-m", "32", "-o", str(output), str(bin_file)]
        )
        assert result.exit_code == 2
        assert "does not support" in result.output
        assert not output.exists()

    def test_encode_bad_address(self, runner, bin_file, tmp_path):
        """Test that a malformed address is a usage error."""
        output = tmp_path / "image.hex"
        result = runner.invoke(
            main, ["encode", "-f", "ihex", "-a", "zz", "-o", str(output), str(bin_file)]
        )
        assert result.exit_code == 2
        assert "Invalid address" in result.output


# =============================================================================
# Inspection Command Tests
# =============================================================================

class TestListCommand:
    """Tests for firmhex list."""

    def test_list(self, runner, srec_file):
        """Test listing every record."""
        result = runner.invoke(main, ["list", "-f", "srec", str(srec_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert len(lines) == 6
        assert lines[1] == "2: Address: 0x0000, Type: S1, Length: 28"

    def test_list_coalesced(self, runner, srec_file):
        """Test listing with contiguous data merged."""
        result = runner.invoke(main, ["list", "-f", "srec", "--coalesce", str(srec_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert len(lines) == 4
        assert lines[1] == "2: Address: 0x0000, Type: S1, Length: 70"
        assert lines[2] == "3: Address: 0x0003, Type: S5, Length: 0"


class TestInfoCommand:
    """Tests for firmhex info."""

    def test_info(self, runner, srec_file):
        """Test the file summary."""
        result = runner.invoke(main, ["info", "-f", "srec", str(srec_file)])
        assert result.exit_code == 0
        assert "Records:       6" in result.output
        assert "Data Runs:     1" in result.output
        assert "Data Bytes:    70" in result.output
        assert "Address Range: 0x0 - 0x45" in result.output
        assert "Start Address: 0x0" in result.output


# =============================================================================
# Coalesce Command Tests
# =============================================================================

class TestCoalesceCommand:
    """Tests for firmhex coalesce."""

    def test_coalesce(self, runner, srec_file, tmp_path):
        """Test re-emitting merged data at a new width."""
        output = tmp_path / "merged.s19"
        result = runner.invoke(
            main, ["coalesce", "-f", "srec", "-w", "32", "-o", str(output), str(srec_file)]
        )
        assert result.exit_code == 0
        assert "6 records in, 6 records out" in result.output

        original = read_file(srec_file, SRECORD)
        rewritten = read_file(output, SRECORD)
        assert [len(r.payload) for r in rewritten if r.is_data] == [32, 32, 6]
        assert b"".join(r.payload for r in rewritten if r.is_data) == \
            b"".join(r.payload for r in original if r.is_data)
        assert rewritten[0] == original[0]
        assert rewritten[-1] == original[-1]

    def test_invalid_width_writes_nothing(self, runner, tmp_path):
        """Test that a width the S3 records cannot hold leaves no output file."""
        source = tmp_path / "image.s37"
        source.write_text("S00400006893\nS30800001000010203E0\n")
        output = tmp_path / "merged.s37"

        result = runner.invoke(
            main, ["coalesce", "-f", "srec", "-w", "255", "-o", str(output), str(source)]
        )
        assert result.exit_code == 2
        assert "Invalid record width: 255 (must be 1-250)" in result.output
        assert not output.exists()


# =============================================================================
# Validate Command Tests
# =============================================================================

class TestValidateCommand:
    """Tests for firmhex validate."""

    def test_valid_file(self, runner, srec_file):
        """Test that a good file exits with status 0."""
        result = runner.invoke(main, ["validate", "-f", "srec", str(srec_file)])
        assert result.exit_code == 0
        assert "(6 records)" in result.output

    def test_bad_checksum(self, runner, tmp_path):
        """Test that a corrupted record exits with status 1 and its line number."""
        lines = list(SREC_LINES)
        lines[1] = lines[1][:-2] + "27"
        path = tmp_path / "bad.s19"
        path.write_text("\n".join(lines))

        result = runner.invoke(main, ["validate", "-f", "srec", str(path)])
        assert result.exit_code == 1
        assert "Validation error: line 2: checksum mismatch: expected 0x26, got 0x27" in result.output

    def test_wrong_format(self, runner, srec_file):
        """Test that reading S-records as Intel HEX fails on line 1."""
        result = runner.invoke(main, ["validate", "-f", "ihex", str(srec_file)])
        assert result.exit_code == 1
        assert "line 1:" in result.output

    def test_missing_file(self, runner, tmp_path):
        """Test that a missing input file is a usage error."""
        result = runner.invoke(main, ["validate", "-f", "ihex", str(tmp_path / "missing.hex")])
        assert result.exit_code == 2
