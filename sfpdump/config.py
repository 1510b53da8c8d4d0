"""Central configuration for SFP module decoding.

This module provides a configuration system that merges settings from
multiple sources with clear precedence rules. Configuration can be specified via:

1. CLI arguments (highest precedence)
2. YAML configuration file (``config:`` section)
3. Environment variables
4. Code defaults (lowest precedence)

Example usage:
    config = get_config(
        cli_args={'verbose_output': True, 'hex_output': True},
        config_path=Path('sfpdump.yaml'),
        use_env=True
    )

    print(f"A0 address: 0x{config.bus.a0_address:02x}")
    print(f"Flags: {config.output.flags!r}")
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any
import logging
import os
import yaml
from pathlib import Path

from .core.layout import DEFAULT_A0_ADDRESS, DEFAULT_A2_ADDRESS
from .decoder import PrintFlags, VERBOSE_FLAGS


log = logging.getLogger(__name__)


def _parse_int(value: Any) -> int:
    """Accept ints and strings such as '0x50' or '80'."""
    if isinstance(value, int):
        return value
    return int(str(value), 0)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class BusConfig:
    """Two-wire bus addressing.

    Attributes:
        a0_address: 7-bit address of the identification bank
        a2_address: 7-bit address of the diagnostics bank
    """
    a0_address: int = field(
        default=DEFAULT_A0_ADDRESS,
        metadata={
            'description': '7-bit bus address of bank A0',
            'range': '0x03 to 0x77',
            'example': '0x50'
        }
    )
    a2_address: int = field(
        default=DEFAULT_A2_ADDRESS,
        metadata={
            'description': '7-bit bus address of bank A2',
            'range': '0x03 to 0x77',
            'example': '0x51'
        }
    )


@dataclass
class OutputConfig:
    """Rendering options for full decodes.

    Each attribute maps to one PrintFlags bit; ``flags`` combines them.
    """
    long_options: bool = field(
        default=True,
        metadata={'description': 'Render bit options one per line with long names', 'example': 'true'}
    )
    hex_output: bool = field(
        default=False,
        metadata={'description': 'Append raw hex to decoded values', 'example': 'false'}
    )
    show_unknown: bool = field(
        default=False,
        metadata={'description': 'Show fields with unknown or zero values', 'example': 'false'}
    )
    calibrations: bool = field(
        default=False,
        metadata={'description': 'Show calibration constants', 'example': 'false'}
    )
    thresholds: bool = field(
        default=False,
        metadata={'description': 'Show alarm/warning thresholds', 'example': 'false'}
    )
    bit_options: bool = field(
        default=False,
        metadata={'description': 'Show bit option fields', 'example': 'false'}
    )
    laser_auto: bool = field(
        default=False,
        metadata={'description': 'Hide length/wavelength fields that do not apply to the media', 'example': 'false'}
    )
    checksums: bool = field(
        default=False,
        metadata={'description': 'Show checksum verification lines', 'example': 'false'}
    )
    vendor: bool = field(
        default=False,
        metadata={'description': 'Dump vendor specific and user EEPROM regions', 'example': 'false'}
    )
    html: bool = field(
        default=False,
        metadata={'description': 'Render as an HTML table', 'example': 'false'}
    )

    _FLAG_MAP = (
        ('long_options', PrintFlags.LONGOPT),
        ('hex_output', PrintFlags.HEXOUTPUT),
        ('show_unknown', PrintFlags.PRINT_UNKNOWN),
        ('calibrations', PrintFlags.PRINT_CALIBRATIONS),
        ('thresholds', PrintFlags.PRINT_THRESHOLDS),
        ('bit_options', PrintFlags.PRINT_BITOPTIONS),
        ('laser_auto', PrintFlags.PRINT_LASERAUTO),
        ('checksums', PrintFlags.PRINT_CSUM),
        ('vendor', PrintFlags.PRINT_VENDOR),
    )

    @property
    def flags(self) -> PrintFlags:
        """Combined PrintFlags for the decoder."""
        flags = PrintFlags.NONE
        for attr, flag in self._FLAG_MAP:
            if getattr(self, attr):
                flags |= flag
        return flags

    def apply_flags(self, flags: int) -> None:
        """Set every boolean from a PrintFlags bitmask."""
        for attr, flag in self._FLAG_MAP:
            setattr(self, attr, bool(flags & flag))

    def set_verbose(self) -> None:
        """Switch on everything ``-v`` shows.

        Hex output, laser-auto and vendor dumps stay as they are.
        """
        self.apply_flags(VERBOSE_FLAGS | (self.flags & (
            PrintFlags.HEXOUTPUT | PrintFlags.PRINT_LASERAUTO | PrintFlags.PRINT_VENDOR)))


@dataclass
class Config:
    """Central configuration for module decoding.

    Attributes:
        bus: Bank addressing
        output: Rendering options
        enforce_checksum: Turn checksum mismatches into errors
        verbose: Enable debug logging
    """
    bus: BusConfig = field(default_factory=BusConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    enforce_checksum: bool = field(
        default=False,
        metadata={
            'description': 'Fail decodes whose checksums do not verify',
            'example': 'false'
        }
    )
    verbose: bool = field(
        default=False,
        metadata={
            'description': 'Enable verbose logging and output',
            'example': 'false'
        }
    )

    @property
    def flags(self) -> PrintFlags:
        return self.output.flags

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary with selective merging.

        Unknown keys are ignored.

        Args:
            data: Dictionary containing configuration data

        Returns:
            New Config instance with merged values

        Example:
            config = Config.from_dict({
                'bus': {'a0_address': 0x50},
                'output': {'hex_output': True},
                'enforce_checksum': True
            })
        """
        config = cls()

        if 'bus' in data:
            for k, v in data['bus'].items():
                if hasattr(config.bus, k):
                    setattr(config.bus, k, _parse_int(v))

        if 'output' in data:
            output = data['output']
            if 'flags' in output:
                config.output.apply_flags(_parse_int(output['flags']))
            if output.get('verbose'):
                config.output.set_verbose()
            for k, v in output.items():
                if k in ('flags', 'verbose'):
                    continue
                if hasattr(config.output, k):
                    setattr(config.output, k, _parse_bool(v))

        for k in ['enforce_checksum', 'verbose']:
            if k in data:
                setattr(config, k, _parse_bool(data[k]))

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> 'Config':
        """Load config from the ``config:`` section of a YAML file.

        Raises:
            FileNotFoundError: If the YAML file doesn't exist
            yaml.YAMLError: If the YAML file is malformed
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if 'config' not in data:
            log.debug("%s has no 'config' section, using defaults", path)
        return cls.from_dict(data.get('config') or {})

    @classmethod
    def from_env(cls) -> 'Config':
        """Create config from environment variables.

        Environment Variables:
            SFPDUMP_A0_ADDRESS: Bank A0 bus address (e.g. 0x50)
            SFPDUMP_A2_ADDRESS: Bank A2 bus address (e.g. 0x51)
            SFPDUMP_ENFORCE_CHECKSUM: Fail on checksum mismatch (1/true)
            SFPDUMP_FLAGS: PrintFlags bitmask (e.g. 0x21)
        """
        config = cls()

        if os.getenv('SFPDUMP_A0_ADDRESS'):
            config.bus.a0_address = _parse_int(os.getenv('SFPDUMP_A0_ADDRESS'))

        if os.getenv('SFPDUMP_A2_ADDRESS'):
            config.bus.a2_address = _parse_int(os.getenv('SFPDUMP_A2_ADDRESS'))

        if os.getenv('SFPDUMP_ENFORCE_CHECKSUM'):
            config.enforce_checksum = _parse_bool(os.getenv('SFPDUMP_ENFORCE_CHECKSUM'))

        if os.getenv('SFPDUMP_FLAGS'):
            config.output.apply_flags(_parse_int(os.getenv('SFPDUMP_FLAGS')))

        return config

    def merge_cli_args(self, **kwargs) -> None:
        """Merge CLI arguments (highest precedence).

        Boolean output switches only ever turn options on, except
        ``short_options`` which clears the long-form bit option rendering.
        ``verbose_output`` applies the ``-v`` preset before the other
        switches.

        Example:
            config.merge_cli_args(verbose_output=True, hex_output=True)
        """
        if kwargs.get('verbose_output'):
            self.output.set_verbose()

        for k in ('hex_output', 'show_unknown', 'calibrations', 'thresholds',
                  'bit_options', 'laser_auto', 'checksums', 'vendor', 'html'):
            if kwargs.get(k):
                setattr(self.output, k, True)

        if kwargs.get('short_options'):
            self.output.long_options = False

        if kwargs.get('a0_address') is not None:
            self.bus.a0_address = _parse_int(kwargs['a0_address'])

        if kwargs.get('a2_address') is not None:
            self.bus.a2_address = _parse_int(kwargs['a2_address'])

        if kwargs.get('strict'):
            self.enforce_checksum = True

        if 'verbose' in kwargs and kwargs['verbose'] is not None:
            self.verbose = kwargs['verbose']

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def summary(self) -> str:
        """One-line summary of the resolved configuration.

        Example:
            Config[a0=0x50, a2=0x51, flags=0x001, strict=False]
        """
        return (
            f"Config[a0=0x{self.bus.a0_address:02x}, "
            f"a2=0x{self.bus.a2_address:02x}, "
            f"flags=0x{int(self.flags):03x}, "
            f"strict={self.enforce_checksum}]"
        )


def get_config(cli_args: Optional[Dict] = None,
               config_path: Optional[Path] = None,
               use_env: bool = True) -> Config:
    """Get merged configuration from all sources with proper precedence.

    1. CLI arguments (highest priority)
    2. YAML configuration file
    3. Environment variables
    4. Code defaults (lowest priority)

    Args:
        cli_args: Command-line arguments dictionary
        config_path: Path to YAML configuration file
        use_env: Whether to apply environment variable overrides

    Returns:
        Fully resolved Config instance
    """
    config = Config.from_env() if use_env else Config()

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        section = data.get('config')
        if section:
            file_config = Config.from_dict(section)
            _overlay(config, file_config, section)
        else:
            log.debug("%s has no 'config' section, ignoring", config_path)

    if cli_args:
        config.merge_cli_args(**cli_args)

    return config


def _overlay(config: Config, file_config: Config, section: Dict[str, Any]) -> None:
    """Copy the values ``section`` actually sets from ``file_config``."""
    for k in section.get('bus', {}) or {}:
        if hasattr(config.bus, k):
            setattr(config.bus, k, getattr(file_config.bus, k))
    output = section.get('output', {}) or {}
    if 'flags' in output or output.get('verbose'):
        config.output = file_config.output
    else:
        for k in output:
            if hasattr(config.output, k):
                setattr(config.output, k, getattr(file_config.output, k))
    for k in ('enforce_checksum', 'verbose'):
        if k in section:
            setattr(config, k, getattr(file_config, k))
