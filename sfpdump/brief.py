"""
Brief information and point queries.

These read only the registers they need instead of both banks, which keeps
them cheap enough to poll. Every query raises IoError when the underlying
read fails.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from .core import calibration
from .core.layout import (
    A0Offset, A2Offset, CalibrationConstants,
    DEFAULT_A0_ADDRESS, DEFAULT_A2_ADDRESS,
    DIAGMON_DDM, DIAGMON_EXTERNAL_CAL,
    ENHOPT_SOFT_RATE_SELECT, ENHOPT_SOFT_TX_DISABLE,
    LEN_CAL_CONSTANTS, LEN_TRANSCEIVER, LEN_VENDOR_NAME, LEN_VENDOR_PN,
    ascii_field,
)
from .reader import RegisterPort, checked_read
from .utils.errors import UnsupportedOperationError


log = logging.getLogger(__name__)

POWER_UNAVAILABLE = -1.0


class SpeedMode(IntEnum):
    """Coarse speed class, valued in Mbit/s."""
    UNKNOWN = 0
    SPEED_1G = 1000
    SPEED_10G = 10000
    SPEED_20G = 20000

    @property
    def label(self) -> str:
        if self is SpeedMode.UNKNOWN:
            return 'unknown'
        return f"{self.value // 1000}G"


@dataclass
class BriefInfo:
    """Reduced module description.

    Attributes:
        vendor: Vendor name (up to 16 characters)
        partnum: Vendor part number (up to 16 characters)
        txpower: Tx power in mW, -1 when DDM is not implemented
        rxpower: Rx power in mW, -1 when DDM is not implemented
        bitrate: Nominal bitrate byte scaled by 100 (Mbit/s)
        spmode: Speed class
    """
    vendor: str
    partnum: str
    txpower: float
    rxpower: float
    bitrate: int
    spmode: SpeedMode

    def to_dict(self) -> dict:
        return {
            'vendor': self.vendor,
            'partnum': self.partnum,
            'txpower': self.txpower,
            'rxpower': self.rxpower,
            'bitrate': self.bitrate,
            'spmode': self.spmode.label,
        }


def bitrate_to_speed_mode(br: int) -> SpeedMode:
    """Classify the nominal bitrate byte (units of 100 Mbit/s)."""
    if 10 <= br < 100:
        return SpeedMode.SPEED_1G
    if 100 <= br < 200:
        return SpeedMode.SPEED_10G
    if br >= 200:
        return SpeedMode.SPEED_20G
    return SpeedMode.UNKNOWN


def _read_a0_byte(port: RegisterPort, offset: int, a0_address: int) -> int:
    return checked_read(port, a0_address, offset, 1)[0]


def get_speed_mode(port: RegisterPort, a0_address: int = DEFAULT_A0_ADDRESS) -> SpeedMode:
    """
    Speed class from the nominal bitrate byte.

    When the bitrate does not classify, falls back to the transceiver
    codes: any 10G Ethernet code (byte 3 high nibble) gives 10G, otherwise
    any 1000BASE code (byte 6 low nibble) gives 1G.
    """
    mode = bitrate_to_speed_mode(_read_a0_byte(port, A0Offset.BR_NOMINAL, a0_address))
    if mode is not SpeedMode.UNKNOWN:
        return mode

    tr = checked_read(port, a0_address, A0Offset.TRANSCEIVER, LEN_TRANSCEIVER)
    if tr[0] & 0xF0:
        return SpeedMode.SPEED_10G
    if tr[3] & 0x0F:
        return SpeedMode.SPEED_1G
    return SpeedMode.UNKNOWN


def read_brief_info(port: RegisterPort,
                    a0_address: int = DEFAULT_A0_ADDRESS,
                    a2_address: int = DEFAULT_A2_ADDRESS) -> BriefInfo:
    """Read vendor, part number, bitrate, speed class and tx/rx power."""
    br = _read_a0_byte(port, A0Offset.BR_NOMINAL, a0_address)
    spmode = get_speed_mode(port, a0_address)
    vendor = ascii_field(checked_read(port, a0_address, A0Offset.VENDOR_NAME, LEN_VENDOR_NAME))
    partnum = ascii_field(checked_read(port, a0_address, A0Offset.VENDOR_PN, LEN_VENDOR_PN))
    info = BriefInfo(vendor=vendor, partnum=partnum,
                     txpower=POWER_UNAVAILABLE, rxpower=POWER_UNAVAILABLE,
                     bitrate=br * 100, spmode=spmode)

    dmtype = _read_a0_byte(port, A0Offset.DIAGMON_TYPE, a0_address)
    if not dmtype & DIAGMON_DDM:
        log.debug("DDM not implemented, tx/rx power unavailable")
        return info

    tp = checked_read(port, a2_address, A2Offset.TX_POWER, 2)
    rp = checked_read(port, a2_address, A2Offset.RX_POWER, 2)

    cal: Optional[CalibrationConstants] = None
    if dmtype & DIAGMON_EXTERNAL_CAL:
        cal = CalibrationConstants.from_bytes(
            checked_read(port, a2_address, A2Offset.CAL_CONSTANTS, LEN_CAL_CONSTANTS))

    info.txpower = calibration.tx_power(tp, cal)
    info.rxpower = calibration.rx_power(rp, cal)
    return info


def is_copper_eth(port: RegisterPort, a0_address: int = DEFAULT_A0_ADDRESS) -> bool:
    """True when the module declares 1000BASE-T."""
    return bool(_read_a0_byte(port, A0Offset.TRANSCEIVER + 3, a0_address) & 0x08)


def is_direct_attach(port: RegisterPort, a0_address: int = DEFAULT_A0_ADDRESS) -> bool:
    """True for a passive direct attach copper cable."""
    if _read_a0_byte(port, A0Offset.CONNECTOR, a0_address) != 0x21:
        return False
    return bool(_read_a0_byte(port, A0Offset.TRANSCEIVER + 5, a0_address) & 0x04)


def get_copper_length(port: RegisterPort, a0_address: int = DEFAULT_A0_ADDRESS) -> int:
    """Copper cable length in meters."""
    return _read_a0_byte(port, A0Offset.LENGTH_COPPER, a0_address)


# Soft pin control

class SoftPin(Enum):
    """Writable soft control bits: (A2 register, bit, enhanced option bit)."""
    TX_DISABLE = (A2Offset.STATUS_CONTROL, 6, ENHOPT_SOFT_TX_DISABLE)
    RATE_SELECT_0 = (A2Offset.STATUS_CONTROL, 3, ENHOPT_SOFT_RATE_SELECT)
    RATE_SELECT_1 = (A2Offset.EXT_STATUS_CONTROL, 3, ENHOPT_SOFT_RATE_SELECT)

    @property
    def register(self) -> int:
        return self.value[0]

    @property
    def mask(self) -> int:
        return 1 << self.value[1]

    @property
    def support_bit(self) -> int:
        return self.value[2]


@dataclass(frozen=True)
class SoftPinState:
    """Decoded A2 byte 110 plus the soft RS1 select bit of byte 118."""
    tx_disable: bool
    soft_tx_disable: bool
    rs1: bool
    rs0: bool
    soft_rate_select_0: bool
    tx_fault: bool
    rx_los: bool
    data_ready_bar: bool
    soft_rate_select_1: bool

    @classmethod
    def from_registers(cls, status: int, ext_status: int) -> 'SoftPinState':
        return cls(
            tx_disable=bool(status & 0x80),
            soft_tx_disable=bool(status & 0x40),
            rs1=bool(status & 0x20),
            rs0=bool(status & 0x10),
            soft_rate_select_0=bool(status & 0x08),
            tx_fault=bool(status & 0x04),
            rx_los=bool(status & 0x02),
            data_ready_bar=bool(status & 0x01),
            soft_rate_select_1=bool(ext_status & 0x08),
        )


def _require_ddm(port: RegisterPort, operation: str, a0_address: int) -> int:
    """Return the enhanced options byte after checking DDM is implemented."""
    data = checked_read(port, a0_address, A0Offset.DIAGMON_TYPE, 2)
    if not data[0] & DIAGMON_DDM:
        raise UnsupportedOperationError(operation, 'diagnostics not implemented')
    return data[1]


def get_soft_pins(port: RegisterPort,
                  a0_address: int = DEFAULT_A0_ADDRESS,
                  a2_address: int = DEFAULT_A2_ADDRESS) -> SoftPinState:
    """Read the soft pin status/control registers."""
    _require_ddm(port, 'get soft pins', a0_address)
    status = checked_read(port, a2_address, A2Offset.STATUS_CONTROL, 1)[0]
    ext_status = checked_read(port, a2_address, A2Offset.EXT_STATUS_CONTROL, 1)[0]
    return SoftPinState.from_registers(status, ext_status)


def set_soft_pin(port: RegisterPort, pin: SoftPin, enabled: bool,
                 a0_address: int = DEFAULT_A0_ADDRESS,
                 a2_address: int = DEFAULT_A2_ADDRESS) -> SoftPinState:
    """
    Set or clear one soft control bit with a read-modify-write.

    Args:
        port: Register port; must be writable
        pin: Which soft pin to change
        enabled: New state of the control bit

    Returns:
        Pin state read back after the write

    Raises:
        UnsupportedOperationError: DDM missing, the module does not declare
            the soft control, or the port cannot write. Raised before any
            write is attempted.
        IoError: If a register access fails
    """
    operation = f"set {pin.name.lower()}"
    enhanced = _require_ddm(port, operation, a0_address)
    if not enhanced & pin.support_bit:
        raise UnsupportedOperationError(operation, 'soft control not declared by module')
    if not port.writable:
        raise UnsupportedOperationError(operation, 'register port is read-only')

    current = checked_read(port, a2_address, pin.register, 1)[0]
    updated = (current | pin.mask) if enabled else (current & ~pin.mask & 0xFF)
    if updated != current:
        log.debug("soft pin %s: register %d 0x%02x -> 0x%02x",
                  pin.name, pin.register, current, updated)
        port.write(a2_address, pin.register, bytes([updated]))
    return get_soft_pins(port, a0_address, a2_address)
