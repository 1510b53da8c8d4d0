"""
Threshold rendering and alarm/warning evaluation for A2 diagnostics.

Severity is taken from the latched flag bits in A2 bytes 112..113
(alarms) and 116..117 (warnings), not from comparing live values against
the stored thresholds. The flags are only meaningful when A0 byte 93
declares them implemented.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

from .calibration import CONVERTERS, UNITS, Quantity
from .layout import BankA2, CalibrationConstants


class Severity(IntEnum):
    NONE = 0
    WARNING = 1
    ALARM = 2


@dataclass(frozen=True)
class FlagLocation:
    """(byte, high bit, low bit) of a quantity's alarm and warning flags."""
    alarm_byte: int
    alarm_high_bit: int
    alarm_low_bit: int
    warning_byte: int
    warning_high_bit: int
    warning_low_bit: int


FLAG_LOCATIONS = {
    Quantity.TEMPERATURE: FlagLocation(112, 7, 6, 116, 7, 6),
    Quantity.VOLTAGE: FlagLocation(112, 5, 4, 116, 5, 4),
    Quantity.BIAS_CURRENT: FlagLocation(112, 3, 2, 116, 3, 2),
    Quantity.TX_POWER: FlagLocation(112, 1, 0, 116, 1, 0),
    Quantity.RX_POWER: FlagLocation(113, 7, 6, 117, 7, 6),
}

# Order of the quantities in the threshold table and the real-time block
QUANTITY_ORDER = (
    Quantity.TEMPERATURE,
    Quantity.VOLTAGE,
    Quantity.BIAS_CURRENT,
    Quantity.TX_POWER,
    Quantity.RX_POWER,
)

QUANTITY_NAMES = {
    Quantity.TEMPERATURE: 'Temperature',
    Quantity.VOLTAGE: 'Voltage',
    Quantity.BIAS_CURRENT: 'Bias current',
    Quantity.TX_POWER: 'TX power',
    Quantity.RX_POWER: 'RX power',
}


@dataclass(frozen=True)
class ThresholdPair:
    """A calibrated high/low threshold pair."""
    name: str
    quantity: Quantity
    kind: str
    high: float
    low: float
    raw_high: int
    raw_low: int

    @property
    def unit(self) -> str:
        return UNITS[self.quantity]


def _flag(a2_raw: bytes, byte: int, bit: int) -> bool:
    return bool(a2_raw[byte] & (1 << bit))


def thresholds(a2: BankA2, cal: Optional[CalibrationConstants] = None) -> List[ThresholdPair]:
    """
    Render the stored thresholds through each quantity's converter.

    Args:
        a2: Parsed diagnostics bank
        cal: Calibration constants when the module is externally calibrated

    Returns:
        Ten pairs: alarm then warning for each quantity in QUANTITY_ORDER
    """
    pairs = []
    words = a2.thresholds
    for index, quantity in enumerate(QUANTITY_ORDER):
        convert = CONVERTERS[quantity]
        base = index * 4
        for kind, hi_index in (('alarm', base), ('warning', base + 2)):
            raw_high, raw_low = words[hi_index], words[hi_index + 1]
            pairs.append(ThresholdPair(
                name=f"{QUANTITY_NAMES[quantity]} {kind}",
                quantity=quantity,
                kind=kind,
                high=convert(raw_high, cal) if cal is not None else convert(raw_high),
                low=convert(raw_low, cal) if cal is not None else convert(raw_low),
                raw_high=raw_high,
                raw_low=raw_low,
            ))
    return pairs


def evaluate(a2: BankA2, quantity: Quantity) -> Severity:
    """Severity of ``quantity`` from the latched flag bits.

    Alarm bits take precedence over warning bits.
    """
    loc = FLAG_LOCATIONS[quantity]
    raw = a2.raw
    if _flag(raw, loc.alarm_byte, loc.alarm_high_bit) or _flag(raw, loc.alarm_byte, loc.alarm_low_bit):
        return Severity.ALARM
    if _flag(raw, loc.warning_byte, loc.warning_high_bit) or _flag(raw, loc.warning_byte, loc.warning_low_bit):
        return Severity.WARNING
    return Severity.NONE


def evaluate_all(a2: BankA2, flags_implemented: bool) -> Optional[dict]:
    """Severity per quantity, or None when the module has no flags."""
    if not flags_implemented:
        return None
    return {q: evaluate(a2, q) for q in QUANTITY_ORDER}


def alarm_flags(a2: BankA2) -> List[Tuple[str, bool]]:
    """
    All twenty individual alarm/warning flags.

    Returns:
        (name, set) tuples, e.g. ("Temperature high alarm", False)
    """
    flags = []
    for kind in ('alarm', 'warning'):
        for quantity in QUANTITY_ORDER:
            loc = FLAG_LOCATIONS[quantity]
            byte = getattr(loc, f"{kind}_byte")
            for level in ('high', 'low'):
                bit = getattr(loc, f"{kind}_{level}_bit")
                name = f"{QUANTITY_NAMES[quantity]} {level} {kind}"
                flags.append((name, _flag(a2.raw, byte, bit)))
    return flags


SEVERITY_NOTES = {
    Severity.ALARM: 'Alarm!',
    Severity.WARNING: 'Warning!',
}