"""
Fixed register layout of the SFF-8472 A0 (identification) and A2
(digital diagnostics) banks.

The offsets below are absolute register numbers inside each 256-byte bank.
BankA0 and BankA2 parse a raw buffer into named fields while keeping the
raw bytes around for hex annotation and checksum verification.

All multi-byte integers are big-endian and unsigned at the raw level.
"""

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple


A0_READ_LENGTH = 96
A2_READ_LENGTH = 256
BANK_SIZE = 256

DEFAULT_A0_ADDRESS = 0x50
DEFAULT_A2_ADDRESS = 0x51


class A0Offset(IntEnum):
    """Register offsets in bank A0."""
    IDENTIFIER = 0
    EXT_IDENTIFIER = 1
    CONNECTOR = 2
    TRANSCEIVER = 3
    ENCODING = 11
    BR_NOMINAL = 12
    RATE_IDENTIFIER = 13
    LENGTH_SMF_KM = 14
    LENGTH_SMF_100M = 15
    LENGTH_OM2 = 16
    LENGTH_OM1 = 17
    LENGTH_COPPER = 18
    LENGTH_OM3 = 19
    VENDOR_NAME = 20
    TRANSCEIVER2 = 36
    VENDOR_OUI = 37
    VENDOR_PN = 40
    VENDOR_REV = 56
    WAVELENGTH = 60
    UNALLOCATED = 62
    CC_BASE = 63
    OPTIONS = 64
    BR_MAX = 66
    BR_MIN = 67
    VENDOR_SN = 68
    DATE_CODE = 84
    DIAGMON_TYPE = 92
    ENHANCED_OPTIONS = 93
    SFF8472_COMPLIANCE = 94
    CC_EXT = 95


class A2Offset(IntEnum):
    """Register offsets in bank A2."""
    THRESHOLDS = 0
    UNALLOCATED1 = 40
    CAL_CONSTANTS = 56
    UNALLOCATED2 = 92
    CC_DMI = 95
    DIAGNOSTICS = 96
    TEMPERATURE = 96
    VOLTAGE = 98
    BIAS_CURRENT = 100
    TX_POWER = 102
    RX_POWER = 104
    UNALLOCATED3 = 106
    STATUS_CONTROL = 110
    RESERVED = 111
    ALARM_FLAGS = 112
    UNALLOCATED4 = 114
    WARNING_FLAGS = 116
    EXT_STATUS_CONTROL = 118
    VENDOR_SPECIFIC = 120
    USER_EEPROM = 128
    VENDOR_CONTROL = 248


# Field lengths in bytes
LEN_TRANSCEIVER = 8
LEN_VENDOR_NAME = 16
LEN_VENDOR_OUI = 3
LEN_VENDOR_PN = 16
LEN_VENDOR_REV = 4
LEN_OPTIONS = 2
LEN_VENDOR_SN = 16
LEN_DATE_CODE = 8
LEN_THRESHOLDS = 40
LEN_CAL_CONSTANTS = 36
LEN_DIAGNOSTICS = 10
LEN_VENDOR_SPECIFIC = 8
LEN_USER_EEPROM = 120
LEN_VENDOR_CONTROL = 8

# Diagnostic monitoring type (A0 byte 92)
DIAGMON_LEGACY = 0x80
DIAGMON_DDM = 0x40
DIAGMON_INTERNAL_CAL = 0x20
DIAGMON_EXTERNAL_CAL = 0x10
DIAGMON_AVERAGE_POWER = 0x08
DIAGMON_ADDRESS_CHANGE = 0x04

# Enhanced options (A0 byte 93)
ENHOPT_ALARM_FLAGS = 0x80
ENHOPT_SOFT_TX_DISABLE = 0x40
ENHOPT_SOFT_TX_FAULT = 0x20
ENHOPT_SOFT_RX_LOS = 0x10
ENHOPT_SOFT_RATE_SELECT = 0x08
ENHOPT_APPLICATION_SELECT = 0x04
ENHOPT_SOFT_RATE_SELECT_8431 = 0x02


def u16(data: bytes, offset: int) -> int:
    """Read an unsigned big-endian 16-bit word."""
    return struct.unpack_from('!H', data, offset)[0]


def s16(data: bytes, offset: int) -> int:
    """Read a signed big-endian 16-bit word."""
    return struct.unpack_from('!h', data, offset)[0]


def u32(data: bytes, offset: int) -> int:
    """Read an unsigned big-endian 32-bit word."""
    return struct.unpack_from('!I', data, offset)[0]


def ascii_field(data: bytes) -> str:
    """Decode a space/NUL padded ASCII field, dropping the padding."""
    return data.decode('ascii', errors='replace').rstrip(' \x00')


def _require(data: bytes, length: int, bank: str) -> None:
    if len(data) < length:
        raise ValueError(f"Bank {bank} needs {length} bytes, got {len(data)}")


@dataclass(frozen=True)
class CalibrationConstants:
    """
    External calibration block (A2 bytes 56..91).

    Slopes are unsigned fixed point (integer byte + fraction byte / 256),
    offsets are signed 16-bit, rx_pwr holds the five 32-bit coefficients in
    stored order (rx_pwr[0] is register 56).
    """
    rx_pwr: Tuple[int, int, int, int, int]
    bias_slope: bytes
    bias_offset: int
    tx_pwr_slope: bytes
    tx_pwr_offset: int
    temperature_slope: bytes
    temperature_offset: int
    voltage_slope: bytes
    voltage_offset: int

    @classmethod
    def from_bytes(cls, data: bytes) -> 'CalibrationConstants':
        """Parse the 36-byte calibration block."""
        _require(data, LEN_CAL_CONSTANTS, 'A2 calibration')
        rx_pwr = tuple(u32(data, 4 * i) for i in range(5))
        return cls(
            rx_pwr=rx_pwr,
            bias_slope=bytes(data[20:22]),
            bias_offset=s16(data, 22),
            tx_pwr_slope=bytes(data[24:26]),
            tx_pwr_offset=s16(data, 26),
            temperature_slope=bytes(data[28:30]),
            temperature_offset=s16(data, 30),
            voltage_slope=bytes(data[32:34]),
            voltage_offset=s16(data, 34),
        )


@dataclass
class BankA0:
    """Parsed identification bank (base ID fields 0..63, extended 64..95)."""
    identifier: int
    ext_identifier: int
    connector: int
    transceiver: bytes
    encoding: int
    br_nominal: int
    rate_identifier: int
    length_smf_km: int
    length_smf_100m: int
    length_om2: int
    length_om1: int
    length_copper: int
    length_om3: int
    vendor_name: str
    transceiver2: int
    vendor_oui: bytes
    vendor_pn: str
    vendor_rev: str
    wavelength: int
    cc_base: int
    options: bytes
    br_max: int
    br_min: int
    vendor_sn: str
    date_code: str
    diagmon_type: int
    enhanced_options: int
    sff8472_compliance: int
    cc_ext: int
    raw: bytes = field(repr=False, default=b'')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BankA0':
        """Parse the first 96 bytes of bank A0.

        Raises:
            ValueError: If fewer than 96 bytes are supplied
        """
        _require(data, A0_READ_LENGTH, 'A0')
        data = bytes(data[:A0_READ_LENGTH])
        return cls(
            identifier=data[A0Offset.IDENTIFIER],
            ext_identifier=data[A0Offset.EXT_IDENTIFIER],
            connector=data[A0Offset.CONNECTOR],
            transceiver=data[A0Offset.TRANSCEIVER:A0Offset.TRANSCEIVER + LEN_TRANSCEIVER],
            encoding=data[A0Offset.ENCODING],
            br_nominal=data[A0Offset.BR_NOMINAL],
            rate_identifier=data[A0Offset.RATE_IDENTIFIER],
            length_smf_km=data[A0Offset.LENGTH_SMF_KM],
            length_smf_100m=data[A0Offset.LENGTH_SMF_100M],
            length_om2=data[A0Offset.LENGTH_OM2],
            length_om1=data[A0Offset.LENGTH_OM1],
            length_copper=data[A0Offset.LENGTH_COPPER],
            length_om3=data[A0Offset.LENGTH_OM3],
            vendor_name=ascii_field(data[A0Offset.VENDOR_NAME:A0Offset.VENDOR_NAME + LEN_VENDOR_NAME]),
            transceiver2=data[A0Offset.TRANSCEIVER2],
            vendor_oui=data[A0Offset.VENDOR_OUI:A0Offset.VENDOR_OUI + LEN_VENDOR_OUI],
            vendor_pn=ascii_field(data[A0Offset.VENDOR_PN:A0Offset.VENDOR_PN + LEN_VENDOR_PN]),
            vendor_rev=ascii_field(data[A0Offset.VENDOR_REV:A0Offset.VENDOR_REV + LEN_VENDOR_REV]),
            wavelength=u16(data, A0Offset.WAVELENGTH),
            cc_base=data[A0Offset.CC_BASE],
            options=data[A0Offset.OPTIONS:A0Offset.OPTIONS + LEN_OPTIONS],
            br_max=data[A0Offset.BR_MAX],
            br_min=data[A0Offset.BR_MIN],
            vendor_sn=ascii_field(data[A0Offset.VENDOR_SN:A0Offset.VENDOR_SN + LEN_VENDOR_SN]),
            date_code=ascii_field(data[A0Offset.DATE_CODE:A0Offset.DATE_CODE + LEN_DATE_CODE]),
            diagmon_type=data[A0Offset.DIAGMON_TYPE],
            enhanced_options=data[A0Offset.ENHANCED_OPTIONS],
            sff8472_compliance=data[A0Offset.SFF8472_COMPLIANCE],
            cc_ext=data[A0Offset.CC_EXT],
            raw=data,
        )

    @property
    def ddm_implemented(self) -> bool:
        return bool(self.diagmon_type & DIAGMON_DDM)

    @property
    def externally_calibrated(self) -> bool:
        return bool(self.diagmon_type & DIAGMON_EXTERNAL_CAL)

    @property
    def alarm_flags_implemented(self) -> bool:
        return bool(self.enhanced_options & ENHOPT_ALARM_FLAGS)


@dataclass
class BankA2:
    """Parsed diagnostics bank.

    Attributes:
        thresholds: 20 raw 16-bit words; per quantity alarm-high, alarm-low,
            warn-high, warn-low for temperature, voltage, bias, tx, rx power
        calibration: External calibration constants
        cc_dmi: Stored checksum over bytes 0..94
        temperature, voltage, bias_current, tx_power, rx_power: raw
            real-time words (temperature keeps both bytes for the sign)
        status_control: Byte 110
        alarm_flags, warning_flags: Bytes 112..113 and 116..117
        ext_status_control: Bytes 118..119
    """
    thresholds: List[int]
    calibration: CalibrationConstants
    cc_dmi: int
    temperature: bytes
    voltage: int
    bias_current: int
    tx_power: int
    rx_power: int
    status_control: int
    alarm_flags: bytes
    warning_flags: bytes
    ext_status_control: bytes
    vendor_specific: bytes
    user_eeprom: bytes
    vendor_control: bytes
    raw: bytes = field(repr=False, default=b'')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BankA2':
        """Parse a full 256-byte A2 bank.

        Raises:
            ValueError: If fewer than 256 bytes are supplied
        """
        _require(data, A2_READ_LENGTH, 'A2')
        data = bytes(data[:A2_READ_LENGTH])
        cal_end = A2Offset.CAL_CONSTANTS + LEN_CAL_CONSTANTS
        return cls(
            thresholds=[u16(data, A2Offset.THRESHOLDS + 2 * i) for i in range(LEN_THRESHOLDS // 2)],
            calibration=CalibrationConstants.from_bytes(data[A2Offset.CAL_CONSTANTS:cal_end]),
            cc_dmi=data[A2Offset.CC_DMI],
            temperature=data[A2Offset.TEMPERATURE:A2Offset.TEMPERATURE + 2],
            voltage=u16(data, A2Offset.VOLTAGE),
            bias_current=u16(data, A2Offset.BIAS_CURRENT),
            tx_power=u16(data, A2Offset.TX_POWER),
            rx_power=u16(data, A2Offset.RX_POWER),
            status_control=data[A2Offset.STATUS_CONTROL],
            alarm_flags=data[A2Offset.ALARM_FLAGS:A2Offset.ALARM_FLAGS + 2],
            warning_flags=data[A2Offset.WARNING_FLAGS:A2Offset.WARNING_FLAGS + 2],
            ext_status_control=data[A2Offset.EXT_STATUS_CONTROL:A2Offset.EXT_STATUS_CONTROL + 2],
            vendor_specific=data[A2Offset.VENDOR_SPECIFIC:A2Offset.VENDOR_SPECIFIC + LEN_VENDOR_SPECIFIC],
            user_eeprom=data[A2Offset.USER_EEPROM:A2Offset.USER_EEPROM + LEN_USER_EEPROM],
            vendor_control=data[A2Offset.VENDOR_CONTROL:A2Offset.VENDOR_CONTROL + LEN_VENDOR_CONTROL],
            raw=data,
        )


@dataclass
class ModuleDump:
    """Result of one bank read: A0 always, A2 only when DDM is implemented."""
    a0: BankA0
    a2: Optional[BankA2] = None

    @property
    def has_diagnostics(self) -> bool:
        return self.a2 is not None
