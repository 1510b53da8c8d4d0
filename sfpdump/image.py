"""Module image builder: YAML module descriptions to 512-byte EEPROM dumps.

A description has an ``identity`` section (bank A0) and an optional
``diagnostics`` section (bank A2). Values are given in physical units and
names where that is natural and are encoded with core.encode; the three
checksums are always recomputed.

Example description:

    identity:
      identifier: 0x03
      connector: 0x07
      transceiver: ["10G Base-SR"]
      br_nominal: 103
      vendor_name: ACME
      wavelength: 850
      monitoring: [ddm, internal_cal]
    diagnostics:
      realtime: {temperature: 35.5, voltage: 3.3}
"""

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .core.alarms import QUANTITY_ORDER
from .core.calibration import Quantity
from .core.checksum import SECTIONS, checksum
from .core.encode import (
    encode_bias_current, encode_offset, encode_power, encode_rx_coefficient,
    encode_slope, encode_temperature, encode_voltage, encode_word,
)
from .core.layout import (
    A0Offset, A2Offset, BANK_SIZE,
    DIAGMON_AVERAGE_POWER, DIAGMON_DDM, DIAGMON_EXTERNAL_CAL, DIAGMON_INTERNAL_CAL,
    LEN_DATE_CODE, LEN_VENDOR_NAME, LEN_VENDOR_OUI, LEN_VENDOR_PN, LEN_VENDOR_REV, LEN_VENDOR_SN,
)
from .core.tables import get_tables


BYTE_FIELDS = {
    'identifier': A0Offset.IDENTIFIER,
    'ext_identifier': A0Offset.EXT_IDENTIFIER,
    'connector': A0Offset.CONNECTOR,
    'encoding': A0Offset.ENCODING,
    'br_nominal': A0Offset.BR_NOMINAL,
    'rate_identifier': A0Offset.RATE_IDENTIFIER,
    'br_max': A0Offset.BR_MAX,
    'br_min': A0Offset.BR_MIN,
    'sff8472_compliance': A0Offset.SFF8472_COMPLIANCE,
    'diagmon_type': A0Offset.DIAGMON_TYPE,
    'enhanced_options': A0Offset.ENHANCED_OPTIONS,
}

ASCII_FIELDS = {
    'vendor_name': (A0Offset.VENDOR_NAME, LEN_VENDOR_NAME),
    'vendor_pn': (A0Offset.VENDOR_PN, LEN_VENDOR_PN),
    'vendor_rev': (A0Offset.VENDOR_REV, LEN_VENDOR_REV),
    'vendor_sn': (A0Offset.VENDOR_SN, LEN_VENDOR_SN),
    'date_code': (A0Offset.DATE_CODE, LEN_DATE_CODE),
}

LENGTH_FIELDS = {
    'smf_km': A0Offset.LENGTH_SMF_KM,
    'smf_100m': A0Offset.LENGTH_SMF_100M,
    'om2': A0Offset.LENGTH_OM2,
    'om1': A0Offset.LENGTH_OM1,
    'copper': A0Offset.LENGTH_COPPER,
    'om3': A0Offset.LENGTH_OM3,
}

# Bit option tables (in bank A0) that can be given as lists of names
OPTION_TABLES = {
    'transceiver': 'transceiver',
    'options': 'options',
    'enhanced': 'enhanced_options',
}

MONITORING_BITS = {
    'ddm': DIAGMON_DDM,
    'internal_cal': DIAGMON_INTERNAL_CAL,
    'external_cal': DIAGMON_EXTERNAL_CAL,
    'average_power': DIAGMON_AVERAGE_POWER,
}

THRESHOLD_LEVELS = ('alarm_high', 'alarm_low', 'warning_high', 'warning_low')

SLOPE_OFFSET_BLOCK = {
    'bias_current': 20,
    'tx_power': 24,
    'temperature': 28,
    'voltage': 32,
}

REALTIME_OFFSETS = {
    Quantity.TEMPERATURE: A2Offset.TEMPERATURE,
    Quantity.VOLTAGE: A2Offset.VOLTAGE,
    Quantity.BIAS_CURRENT: A2Offset.BIAS_CURRENT,
    Quantity.TX_POWER: A2Offset.TX_POWER,
    Quantity.RX_POWER: A2Offset.RX_POWER,
}


def encode_quantity(quantity: Quantity, value: float) -> bytes:
    """Encode a physical value as the internal-calibration register word."""
    if quantity is Quantity.TEMPERATURE:
        return encode_temperature(value)
    if quantity is Quantity.VOLTAGE:
        return encode_word(encode_voltage(value))
    if quantity is Quantity.BIAS_CURRENT:
        return encode_word(encode_bias_current(value))
    return encode_word(encode_power(value))


@dataclass
class ModuleImage:
    """Two 256-byte banks under construction."""
    a0: bytearray = field(default_factory=lambda: bytearray(BANK_SIZE))
    a2: bytearray = field(default_factory=lambda: bytearray(BANK_SIZE))

    def _bank(self, name: str) -> bytearray:
        return self.a0 if name == 'a0' else self.a2

    def set_byte(self, offset: int, value: int, bank: str = 'a0') -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Byte value {value} out of range at {bank}[{offset}]")
        self._bank(bank)[offset] = value

    def set_bytes(self, offset: int, data: bytes, bank: str = 'a0') -> None:
        target = self._bank(bank)
        if offset + len(data) > len(target):
            raise ValueError(f"{len(data)} bytes at {bank}[{offset}] overflow the bank")
        target[offset:offset + len(data)] = data

    def set_ascii(self, offset: int, length: int, text: str) -> None:
        """Write a space padded ASCII field into bank A0."""
        data = text.encode('ascii')
        if len(data) > length:
            raise ValueError(f"'{text}' longer than {length} characters")
        self.set_bytes(offset, data.ljust(length, b' '))

    def set_options(self, table: str, names: List[str], bank: str = 'a0') -> None:
        """Set the bits of the named options in a bit option table."""
        opt_table = get_tables().options(table)
        target = self._bank(bank)
        for name in names:
            matches = [e for e in opt_table.entries
                       if name in (e.long_name, e.short_name) and name]
            if not matches:
                raise ValueError(f"Unknown {table} option '{name}'")
            entry = matches[0]
            target[entry.byte] |= entry.mask

    def set_threshold(self, quantity: Quantity, level: str, value: float) -> None:
        index = QUANTITY_ORDER.index(quantity) * 4 + THRESHOLD_LEVELS.index(level)
        self.set_bytes(A2Offset.THRESHOLDS + 2 * index, encode_quantity(quantity, value), 'a2')

    def set_realtime(self, quantity: Quantity, value: float) -> None:
        self.set_bytes(REALTIME_OFFSETS[quantity], encode_quantity(quantity, value), 'a2')

    def set_slope_offset(self, name: str, slope: float, offset: int) -> None:
        base = A2Offset.CAL_CONSTANTS + SLOPE_OFFSET_BLOCK[name]
        self.set_bytes(base, encode_slope(slope) + encode_offset(offset), 'a2')

    def set_rx_power_coefficients(self, coefficients: List[int]) -> None:
        if len(coefficients) != 5:
            raise ValueError(f"Expected 5 rx power coefficients, got {len(coefficients)}")
        data = b''.join(encode_rx_coefficient(int(c)) for c in coefficients)
        self.set_bytes(A2Offset.CAL_CONSTANTS, data, 'a2')

    def update_checksums(self) -> None:
        """Recompute the base, ext and dmi checksums."""
        for section in SECTIONS:
            bank = self._bank(section.bank.lower())
            bank[section.stored_at] = checksum(bank[section.start:section.end])

    def to_bytes(self) -> bytes:
        return bytes(self.a0) + bytes(self.a2)

    def write(self, path: Union[str, Path]) -> None:
        with open(path, 'wb') as f:
            f.write(self.to_bytes())


def _int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def _apply_identity(image: ModuleImage, identity: Dict[str, Any], errors: List[str]) -> None:
    for key, value in identity.items():
        try:
            if key in BYTE_FIELDS:
                image.set_byte(BYTE_FIELDS[key], _int(value))
            elif key in ASCII_FIELDS:
                offset, length = ASCII_FIELDS[key]
                image.set_ascii(offset, length, str(value))
            elif key == 'lengths':
                for name, length in value.items():
                    if name not in LENGTH_FIELDS:
                        errors.append(f"identity.lengths: unknown length '{name}'")
                        continue
                    image.set_byte(LENGTH_FIELDS[name], _int(length))
            elif key == 'vendor_oui':
                oui = bytes(_int(b) for b in value)
                if len(oui) != LEN_VENDOR_OUI:
                    errors.append(f"identity.vendor_oui: expected {LEN_VENDOR_OUI} bytes, got {len(oui)}")
                    continue
                image.set_bytes(A0Offset.VENDOR_OUI, oui)
            elif key == 'wavelength':
                image.set_bytes(A0Offset.WAVELENGTH, encode_word(_int(value)))
            elif key == 'monitoring':
                for flag in value:
                    if flag not in MONITORING_BITS:
                        errors.append(f"identity.monitoring: unknown flag '{flag}'")
                        continue
                    image.a0[A0Offset.DIAGMON_TYPE] |= MONITORING_BITS[flag]
            elif key in OPTION_TABLES:
                image.set_options(OPTION_TABLES[key], list(value))
            else:
                errors.append(f"identity: unknown field '{key}'")
        except (ValueError, TypeError, UnicodeEncodeError, AttributeError) as e:
            errors.append(f"identity.{key}: {e}")


def _quantity(name: str) -> Optional[Quantity]:
    try:
        return Quantity(name)
    except ValueError:
        return None


def _apply_diagnostics(image: ModuleImage, diagnostics: Dict[str, Any], errors: List[str]) -> None:
    for name, levels in (diagnostics.get('thresholds') or {}).items():
        quantity = _quantity(name)
        if quantity is None:
            errors.append(f"diagnostics.thresholds: unknown quantity '{name}'")
            continue
        for level, value in levels.items():
            if level not in THRESHOLD_LEVELS:
                errors.append(f"diagnostics.thresholds.{name}: unknown level '{level}'")
                continue
            try:
                image.set_threshold(quantity, level, float(value))
            except (ValueError, TypeError) as e:
                errors.append(f"diagnostics.thresholds.{name}.{level}: {e}")

    calibration = diagnostics.get('calibration') or {}
    for name, value in calibration.items():
        try:
            if name == 'rx_power':
                image.set_rx_power_coefficients([_int(c) for c in value])
            elif name in SLOPE_OFFSET_BLOCK:
                image.set_slope_offset(name, float(value.get('slope', 1.0)), _int(value.get('offset', 0)))
            else:
                errors.append(f"diagnostics.calibration: unknown entry '{name}'")
        except (ValueError, TypeError, AttributeError) as e:
            errors.append(f"diagnostics.calibration.{name}: {e}")

    for name, value in (diagnostics.get('realtime') or {}).items():
        quantity = _quantity(name)
        if quantity is None:
            errors.append(f"diagnostics.realtime: unknown quantity '{name}'")
            continue
        try:
            image.set_realtime(quantity, float(value))
        except (ValueError, TypeError) as e:
            errors.append(f"diagnostics.realtime.{name}: {e}")

    registers = (
        ('status_control', A2Offset.STATUS_CONTROL, 1),
        ('alarm_flags', A2Offset.ALARM_FLAGS, 2),
        ('warning_flags', A2Offset.WARNING_FLAGS, 2),
        ('ext_status_control', A2Offset.EXT_STATUS_CONTROL, 2),
    )
    for name, offset, length in registers:
        if name not in diagnostics:
            continue
        value = diagnostics[name]
        values = value if isinstance(value, list) else [value]
        try:
            data = bytes(_int(v) for v in values)
        except (ValueError, TypeError) as e:
            errors.append(f"diagnostics.{name}: {e}")
            continue
        if len(data) != length:
            errors.append(f"diagnostics.{name}: expected {length} byte(s), got {len(data)}")
            continue
        image.set_bytes(offset, data, 'a2')


def build_image(data: Dict[str, Any]) -> ModuleImage:
    """Build an image from a parsed description.

    Raises:
        ValueError: Listing every problem found in the description
    """
    errors: List[str] = []
    image = ModuleImage()

    if not isinstance(data, dict):
        raise ValueError("Module description must be a mapping")

    unknown = set(data) - {'identity', 'diagnostics'}
    for key in sorted(unknown):
        errors.append(f"unknown section '{key}'")

    _apply_identity(image, data.get('identity') or {}, errors)
    diagnostics = data.get('diagnostics')
    if diagnostics:
        if not image.a0[A0Offset.DIAGMON_TYPE] & DIAGMON_DDM:
            errors.append("diagnostics given but identity does not declare ddm")
        _apply_diagnostics(image, diagnostics, errors)

    if errors:
        error_message = f"Module description invalid with {len(errors)} errors:\n"
        error_message += "\n".join(f"  - {error}" for error in errors)
        raise ValueError(error_message)

    image.update_checksums()
    return image


def load_image(path: Path) -> ModuleImage:
    """Load and build a module image from a YAML description."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    return build_image(data or {})


def validate_image_file(path: Path) -> Dict[str, Any]:
    """Validate a description file and return validation results."""
    try:
        image = load_image(path)
        return {'valid': True, 'errors': [], 'image': image}
    except (OSError, yaml.YAMLError, ValueError) as e:
        return {'valid': False, 'errors': [str(e)], 'image': None}
