"""Tests for CLI functionality."""

import json
import pytest
import tempfile
from pathlib import Path
from click.testing import CliRunner
from sfpdump.__main__ import cli


MODULE_YAML = """
identity:
  identifier: 0x03
  ext_identifier: 0x04
  connector: 0x07
  transceiver: [10G Base-SR]
  encoding: 0x06
  br_nominal: 103
  lengths: {om3: 30}
  vendor_name: ACME OPTICS
  vendor_pn: SFP-10G-SR
  wavelength: 850
  date_code: "24011501"
  monitoring: [ddm, internal_cal]
  enhanced: [AWF, Soft TX Disable, Soft Rate select]
diagnostics:
  thresholds:
    temperature: {alarm_high: 75, alarm_low: -5, warning_high: 70, warning_low: 0}
  realtime:
    temperature: 35.5
    voltage: 3.3
    bias_current: 6.0
    tx_power: 0.5
    rx_power: 0.4
"""


EXTERNAL_CAL_YAML = """
identity:
  connector: 0x07
  br_nominal: 103
  vendor_name: ACME OPTICS
  vendor_pn: SFP-10G-LR
  monitoring: [ddm, external_cal]
diagnostics:
  calibration:
    rx_power: [0, 0, 0, 1, 0]
    tx_power: {slope: 1.0, offset: -100}
  realtime:
    tx_power: 0.5
    rx_power: 0.4
"""


@pytest.fixture
def built_dump():
    """Build a dump from MODULE_YAML through the CLI."""
    with tempfile.TemporaryDirectory() as tmpdir:
        description = Path(tmpdir) / 'module.yaml'
        description.write_text(MODULE_YAML)
        out = Path(tmpdir) / 'module.bin'

        runner = CliRunner()
        result = runner.invoke(cli, ['build', str(description), '-o', str(out)])
        assert result.exit_code == 0, result.output
        assert '[SUCCESS] Wrote 512 bytes' in result.output

        yield out


@pytest.mark.integration
class TestCLI:
    """Test command-line interface."""

    def test_help(self):
        """Test help command returns 0."""
        runner = CliRunner()
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'Commands:' in result.output
        for command in ('show', 'brief', 'check', 'pins', 'set-pin', 'build'):
            assert command in result.output

    def test_version(self):
        """Test version command returns 0."""
        runner = CliRunner()
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert 'version' in result.output.lower()
        assert '1.0.0' in result.output

    def test_show(self, built_dump):
        """Default show prints the identification and diagnostics fields."""
        runner = CliRunner()
        result = runner.invoke(cli, ['show', str(built_dump)])

        assert result.exit_code == 0, result.output
        assert f"{'Vendor':<32} : ACME OPTICS" in result.output
        assert 'Temperature' in result.output
        assert '35.500 C' in result.output
        assert 'Checksum base' not in result.output

    def test_show_verbose(self, built_dump):
        """-v adds thresholds, calibrations, bit options and checksums."""
        runner = CliRunner()
        result = runner.invoke(cli, ['show', '-v', str(built_dump)])

        assert result.exit_code == 0, result.output
        assert 'Checksum base' in result.output
        assert '-5.000 - 75.000 C' in result.output
        assert '10G Base-SR' in result.output
        assert 'RX_PWR 4/3/2/1/0' in result.output

    def test_show_html(self, built_dump):
        runner = CliRunner()
        result = runner.invoke(cli, ['show', '-H', str(built_dump)])

        assert result.exit_code == 0
        assert result.output.startswith('<table>')
        assert '<td><b>Vendor</b></td>' in result.output

    def test_show_strict_checksum_failure(self, built_dump):
        """--strict turns a checksum mismatch into exit code 2."""
        data = bytearray(built_dump.read_bytes())
        data[20] ^= 0x01
        built_dump.write_bytes(bytes(data))

        runner = CliRunner()
        result = runner.invoke(cli, ['show', '--strict', str(built_dump)])
        assert result.exit_code == 2
        assert 'Checksum mismatch in base' in result.output

        result = runner.invoke(cli, ['show', str(built_dump)])
        assert result.exit_code == 0

    def test_show_truncated_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'short.bin'
            path.write_bytes(bytes(40))

            runner = CliRunner()
            result = runner.invoke(cli, ['show', str(path)])

            assert result.exit_code == 1
            assert '[ERROR]' in result.output

    def test_brief(self, built_dump):
        runner = CliRunner()
        result = runner.invoke(cli, ['brief', str(built_dump)])

        assert result.exit_code == 0, result.output
        assert 'Vendor:      ACME OPTICS' in result.output
        assert 'Speed:       10G' in result.output
        assert 'TX power:    0.500 mW' in result.output

    def test_brief_json(self, built_dump):
        runner = CliRunner()
        result = runner.invoke(cli, ['brief', '--json', str(built_dump)])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data['partnum'] == 'SFP-10G-SR'
        assert data['bitrate'] == 10300
        assert data['rxpower'] == pytest.approx(0.4)

    def test_brief_negative_tx_power(self):
        """A negative calibrated tx power is shown, not taken for n/a."""
        with tempfile.TemporaryDirectory() as tmpdir:
            description = Path(tmpdir) / 'ext.yaml'
            description.write_text(EXTERNAL_CAL_YAML)
            out = Path(tmpdir) / 'ext.bin'

            runner = CliRunner()
            assert runner.invoke(cli, ['build', str(description), '-o', str(out)]).exit_code == 0
            result = runner.invoke(cli, ['brief', str(out)])

            assert result.exit_code == 0, result.output
            assert 'TX power:    -9.950 mW' in result.output
            assert 'RX power:    0.400 mW' in result.output

    def test_brief_without_diagnostics(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            description = Path(tmpdir) / 'dac.yaml'
            description.write_text("identity:\n  connector: 0x21\n  lengths: {copper: 3}\n")
            out = Path(tmpdir) / 'dac.bin'

            runner = CliRunner()
            assert runner.invoke(cli, ['build', str(description), '-o', str(out)]).exit_code == 0
            result = runner.invoke(cli, ['brief', str(out)])

            assert result.exit_code == 0, result.output
            assert 'TX power:    n/a' in result.output
            assert 'RX power:    n/a' in result.output

    def test_check(self, built_dump):
        runner = CliRunner()
        result = runner.invoke(cli, ['check', str(built_dump)])

        assert result.exit_code == 0
        assert result.output.count('[OK]') == 3
        assert '[SUCCESS] All checksums match' in result.output

    def test_check_mismatch(self, built_dump):
        """A changed threshold byte breaks the dmi checksum only."""
        data = bytearray(built_dump.read_bytes())
        data[256 + 10] ^= 0x01
        built_dump.write_bytes(bytes(data))

        runner = CliRunner()
        result = runner.invoke(cli, ['check', str(built_dump)])

        assert result.exit_code == 1
        assert result.output.count('[MISMATCH]') == 1
        assert 'dmi   [MISMATCH]' in result.output

    def test_check_ignores_realtime_values(self, built_dump):
        """Live diagnostics at A2 96.. are outside every checksum."""
        data = bytearray(built_dump.read_bytes())
        data[256 + 98] ^= 0x01
        built_dump.write_bytes(bytes(data))

        runner = CliRunner()
        result = runner.invoke(cli, ['check', str(built_dump)])

        assert result.exit_code == 0
        assert result.output.count('[OK]') == 3

    def test_set_pin_and_pins(self, built_dump):
        runner = CliRunner()
        result = runner.invoke(cli, ['set-pin', str(built_dump), 'tx-disable', 'on'])

        assert result.exit_code == 0, result.output
        assert '[SUCCESS] tx-disable set on' in result.output
        assert built_dump.read_bytes()[256 + 110] == 0x40

        result = runner.invoke(cli, ['pins', str(built_dump)])
        assert result.exit_code == 0
        assert ['soft_tx_disable', 'on'] in [line.split() for line in result.output.splitlines()]
        assert 'Latched flags: none' in result.output

    def test_set_pin_unsupported(self):
        """A module without DDM refuses soft pin writes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            description = Path(tmpdir) / 'dac.yaml'
            description.write_text("identity:\n  connector: 0x21\n  lengths: {copper: 3}\n")
            out = Path(tmpdir) / 'dac.bin'

            runner = CliRunner()
            assert runner.invoke(cli, ['build', str(description), '-o', str(out)]).exit_code == 0
            before = out.read_bytes()

            result = runner.invoke(cli, ['set-pin', str(out), 'rs0', 'on'])
            assert result.exit_code == 1
            assert 'Unsupported operation' in result.output
            assert out.read_bytes() == before

    def test_build_invalid(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            description = Path(tmpdir) / 'bad.yaml'
            description.write_text("identity:\n  warp: 9\n")

            runner = CliRunner()
            result = runner.invoke(cli, ['build', str(description), '-o', str(Path(tmpdir) / 'x.bin')])

            assert result.exit_code == 1
            assert 'Build failed' in result.output
            assert "unknown field 'warp'" in result.output
