"""
CLI entry point for sfpdump.

This module provides the command-line interface for decoding SFP/SFP+
EEPROM dumps: full decodes (``show``), brief summaries, checksum checks,
soft pin control on writable dumps and building dumps from YAML
descriptions.
"""

import json
import logging
import sys
import click
import yaml
from pathlib import Path

from . import __version__
from .brief import POWER_UNAVAILABLE, SoftPin
from .config import get_config
from .core.checksum import verify_dump
from .decoder import emit
from .image import load_image
from .module import SfpModule
from .reader import BankReader, DumpFilePort
from .render import HtmlSink, TextSink
from .utils.errors import ChecksumError, SfpError


PIN_CHOICES = {
    'tx-disable': SoftPin.TX_DISABLE,
    'rs0': SoftPin.RATE_SELECT_0,
    'rs1': SoftPin.RATE_SELECT_1,
}


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )


def _open_module(file1, file2, config, writable=False) -> SfpModule:
    port = DumpFilePort(file1, file2, a2_address=config.bus.a2_address, writable=writable)
    return SfpModule(port, config)


def _power(value: float) -> str:
    return "n/a" if value == POWER_UNAVAILABLE else f"{value:.3f} mW"


@click.group()
@click.version_option(version=__version__, prog_name='sfpdump')
def cli():
    """sfpdump - Decode SFP/SFP+ module EEPROM dumps (SFF-8472)."""
    pass


@cli.command()
@click.argument('file1', type=click.Path(exists=True))
@click.argument('file2', type=click.Path(exists=True), required=False)
@click.option('-v', '--verbose', 'verbose_output', is_flag=True,
              help="Show verbose info (same as '-uctbm')")
@click.option('-x', '--hex', 'hex_output', is_flag=True, help='Show hex data')
@click.option('-s', '--short', 'short_options', is_flag=True,
              help='Show bit fields in short format')
@click.option('-u', '--unknown', 'show_unknown', is_flag=True,
              help='Show fields with unknown/undefined values')
@click.option('-c', '--calibrations', is_flag=True, help='Show calibration parameters')
@click.option('-t', '--thresholds', is_flag=True, help='Show threshold parameters')
@click.option('-b', '--bits', 'bit_options', is_flag=True, help='Show bit fields')
@click.option('-m', '--checksums', is_flag=True, help='Show checksum fields')
@click.option('-n', '--vendor', is_flag=True, help='Show vendor specific fields')
@click.option('-l', '--laser-auto', is_flag=True,
              help='Only show the length/wavelength fields that apply to the media')
@click.option('-H', '--html', is_flag=True, help='Output as an HTML table')
@click.option('--strict', is_flag=True, help='Fail when a checksum does not match')
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='YAML configuration file')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def show(file1, file2, verbose_output, hex_output, short_options, show_unknown,
         calibrations, thresholds, bit_options, checksums, vendor, laser_auto,
         html, strict, config_path, debug):
    """Display SFP module dump information.

    FILE1 holds bank A0 (and bank A2 at offset 0x100 when FILE2 is not
    given); FILE2 optionally holds bank A2.
    """
    _setup_logging(debug)
    try:
        cli_args = {
            'verbose_output': verbose_output,
            'hex_output': hex_output,
            'short_options': short_options,
            'show_unknown': show_unknown,
            'calibrations': calibrations,
            'thresholds': thresholds,
            'bit_options': bit_options,
            'checksums': checksums,
            'vendor': vendor,
            'laser_auto': laser_auto,
            'html': html,
            'strict': strict,
            'verbose': debug,
        }
        config = get_config(cli_args=cli_args,
                            config_path=Path(config_path) if config_path else None)
        logging.getLogger(__name__).debug("%s", config.summary())

        module = _open_module(file1, file2, config)
        fields = module.decode()

        sink = HtmlSink() if config.output.html else TextSink()
        emit(fields, sink)

    except ChecksumError as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(2)
    except (SfpError, OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('file1', type=click.Path(exists=True))
@click.argument('file2', type=click.Path(exists=True), required=False)
@click.option('--json', 'as_json', is_flag=True, help='Print as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def brief(file1, file2, as_json, debug):
    """Show vendor, part number, speed and optical power."""
    _setup_logging(debug)
    try:
        config = get_config()
        info = _open_module(file1, file2, config).brief()

        if as_json:
            click.echo(json.dumps(info.to_dict(), indent=2))
            return

        click.echo(f"Vendor:      {info.vendor}")
        click.echo(f"Part number: {info.partnum}")
        click.echo(f"Bitrate:     {info.bitrate} MBits/s")
        click.echo(f"Speed:       {info.spmode.label}")
        click.echo(f"TX power:    {_power(info.txpower)}")
        click.echo(f"RX power:    {_power(info.rxpower)}")

    except (SfpError, OSError, ValueError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('file1', type=click.Path(exists=True))
@click.argument('file2', type=click.Path(exists=True), required=False)
def check(file1, file2):
    """Verify the base, ext and dmi checksums of a dump."""
    try:
        config = get_config()
        port = DumpFilePort(file1, file2, a2_address=config.bus.a2_address)
        dump = BankReader(port, config.bus.a0_address, config.bus.a2_address).read()
        results = verify_dump(dump)

        for result in results:
            if result.ok:
                click.echo(f"  {result.section:<5} [OK]       {result.stored:02X}")
            else:
                click.echo(f"  {result.section:<5} [MISMATCH] {result.stored:02X} "
                           f"(Expected: {result.computed:02X})")
        if not dump.has_diagnostics:
            click.echo("  dmi   [SKIPPED]  diagnostics not implemented")

        if all(r.ok for r in results):
            click.echo("\n[SUCCESS] All checksums match")
        else:
            click.echo("\n[ERROR] Checksum verification FAILED")
            sys.exit(1)

    except (SfpError, OSError, ValueError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('file1', type=click.Path(exists=True))
@click.argument('file2', type=click.Path(exists=True), required=False)
def pins(file1, file2):
    """Show the soft pin status/control bits."""
    try:
        module = _open_module(file1, file2, get_config())
        state = module.soft_pins()
        for name, value in vars(state).items():
            click.echo(f"  {name:<20} {'on' if value else 'off'}")
        latched = module.latched_flags()
        if latched is not None:
            click.echo(f"  Latched flags: {', '.join(latched) or 'none'}")
    except (SfpError, OSError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@cli.command('set-pin')
@click.argument('file1', type=click.Path(exists=True))
@click.argument('pin', type=click.Choice(sorted(PIN_CHOICES)))
@click.argument('state', type=click.Choice(['on', 'off']))
@click.option('--file2', type=click.Path(exists=True), default=None,
              help='Separate bank A2 dump')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def set_pin(file1, pin, state, file2, debug):
    """Set a soft control pin in a writable dump file."""
    _setup_logging(debug)
    try:
        module = _open_module(file1, file2, get_config(), writable=True)
        result = module.set_soft_pin(PIN_CHOICES[pin], state == 'on')
        click.echo(f"[SUCCESS] {pin} set {state}")
        click.echo(f"  TX_DISABLE state: {'on' if result.tx_disable else 'off'}")
    except (SfpError, OSError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('description', type=click.Path(exists=True))
@click.option('--out', '-o', type=click.Path(), required=True,
              help='Output dump file path')
def build(description, out):
    """Build a 512-byte dump from a YAML module description."""
    try:
        image = load_image(Path(description))
        image.write(out)
        click.echo(f"[SUCCESS] Wrote {len(image.to_bytes())} bytes to {out}")
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"[ERROR] Build failed: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
