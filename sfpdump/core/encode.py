"""
Encoders from physical values to raw SFF-8472 register words.

These are the inverse of the internal-calibration formulas in
calibration.py and of the fixed point slope/offset format. They are used
by the module image builder.
"""

import struct
from typing import Union


def _clamp_u16(value: int) -> int:
    return max(0, min(value, 0xFFFF))


def encode_temperature(celsius: float) -> bytes:
    """
    Encode a temperature as the sign-magnitude word used by A2 byte 96.

    Args:
        celsius: Temperature, -127.996 to 127.996 degrees C

    Returns:
        Two bytes, high byte first
    """
    magnitude = int(round(abs(celsius) * 256))
    magnitude = min(magnitude, 0x7FFF)
    hi, lo = magnitude >> 8, magnitude & 0xFF
    if celsius < 0 and magnitude:
        hi |= 0x80
    return bytes([hi, lo])


def encode_voltage(volts: float) -> int:
    """Encode a supply voltage in V as a 100 uV word."""
    return _clamp_u16(int(round(volts * 10000)))


def encode_bias_current(milliamps: float) -> int:
    """Encode a bias current in mA as a 2 uA word."""
    return _clamp_u16(int(round(milliamps / 0.002)))


def encode_power(milliwatts: float) -> int:
    """Encode an optical power in mW as a 0.1 uW word."""
    return _clamp_u16(int(round(milliwatts * 10000)))


def encode_slope(value: float) -> bytes:
    """Encode a slope as integer byte + fraction byte / 256."""
    fixed = int(round(value * 256))
    if not 0 <= fixed <= 0xFFFF:
        raise ValueError(f"Slope {value} out of range 0 to 255.996")
    return struct.pack('!H', fixed)


def encode_offset(value: Union[int, float]) -> bytes:
    """Encode a signed 16-bit offset."""
    value = int(round(value))
    if not -0x8000 <= value <= 0x7FFF:
        raise ValueError(f"Offset {value} out of signed 16-bit range")
    return struct.pack('!h', value)


def encode_word(value: int) -> bytes:
    """Pack an unsigned 16-bit register word."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Word {value} out of 16-bit range")
    return struct.pack('!H', value)


def encode_rx_coefficient(value: int) -> bytes:
    """Pack an rx power calibration coefficient (unsigned 32-bit)."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"Rx power coefficient {value} out of 32-bit range")
    return struct.pack('!I', value)
