"""
Field decoder: turns a ModuleDump into an ordered list of display fields.

The walk order is fixed:
1. Base ID fields (A0 0..63)
2. Extended ID fields (A0 64..95)
3. With DDM only: thresholds, calibration constants, the dmi checksum,
   real-time diagnostics, status/control bits and vendor regions

What is included and how it is formatted depends on PrintFlags. Decoding
is pure; ``emit`` then drives a PresentationSink with the result.
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import List, Optional, Sequence, Tuple

from .core import alarms
from .core.alarms import SEVERITY_NOTES, Severity
from .core.calibration import CONVERTERS, UNITS, calibration_mode, CalibrationMode, slope
from .core.checksum import SECTION_BASE, SECTION_DMI, SECTION_EXT, verify_section
from .core.layout import A0Offset, BankA0, BankA2, ModuleDump
from .core.tables import BitOptionTable, get_tables
from .render import CONTINUATION_INDENT, PresentationSink


class PrintFlags(IntFlag):
    """Rendering options."""
    NONE = 0
    LONGOPT = 0x01
    HEXOUTPUT = 0x02
    PRINT_UNKNOWN = 0x04
    PRINT_CALIBRATIONS = 0x08
    PRINT_THRESHOLDS = 0x10
    PRINT_BITOPTIONS = 0x20
    PRINT_LASERAUTO = 0x40
    PRINT_CSUM = 0x80
    PRINT_VENDOR = 0x100


DEFAULT_FLAGS = PrintFlags.LONGOPT

VERBOSE_FLAGS = (PrintFlags.LONGOPT | PrintFlags.PRINT_UNKNOWN |
                 PrintFlags.PRINT_CALIBRATIONS | PrintFlags.PRINT_THRESHOLDS |
                 PrintFlags.PRINT_BITOPTIONS | PrintFlags.PRINT_CSUM)


@dataclass(frozen=True)
class DecodedField:
    """One output field.

    Attributes:
        name: Field label
        value: Decoded text (may be empty for long-form bit options)
        hex: Raw hex annotation, rendered as " (hex)"
        note: Trailing annotation such as "Alarm!"
        lines: Continuation lines rendered under the field
    """
    name: str
    value: str = ''
    hex: Optional[str] = None
    note: Optional[str] = None
    lines: Tuple[str, ...] = ()


# (label, attribute, multiplier, unit); index 4 is the copper length
LENGTH_FIELDS = (
    ('Length SM-km', 'length_smf_km', 1, 'km'),
    ('Length SM-100m', 'length_smf_100m', 100, 'm'),
    ('Length MM (500MHz*km at 850nm)', 'length_om2', 10, 'm'),
    ('Length MM (200 MHz*km-850nm)', 'length_om1', 10, 'm'),
    ('Length Copper', 'length_copper', 1, 'm'),
    ('Length MM (2000 Mhz*km)', 'length_om3', 10, 'm'),
)
COPPER_LENGTH_INDEX = 4

SLOPE_OFFSET_FIELDS = (
    ('Bias current slope/offset', 'bias_slope', 'bias_offset'),
    ('Power slope/offset', 'tx_pwr_slope', 'tx_pwr_offset'),
    ('Temperature slope/offset', 'temperature_slope', 'temperature_offset'),
    ('Voltage slope/offset', 'voltage_slope', 'voltage_offset'),
)

COPPER_CONNECTORS = frozenset(range(0x02, 0x07)) | frozenset(range(0x20, 0x23))


def is_laser_available(a0: BankA0) -> bool:
    """
    True for optical modules, False for copper ones.

    A module is copper when its connector is a copper/coax style
    (0x02..0x06, 0x20..0x22), when it declares 1000BASE-T (byte 6 bit 3),
    or when it declares a copper media type (byte 9 bits 4..7).
    """
    if a0.connector in COPPER_CONNECTORS:
        return False
    if a0.transceiver[6 - A0Offset.TRANSCEIVER] & 0x08:
        return False
    if a0.transceiver[9 - A0Offset.TRANSCEIVER] & 0xF0:
        return False
    return True


def hex_dump(data: bytes, sep: str = '') -> str:
    return sep.join(f"{b:02X}" for b in data)


def hex_lines(data: bytes, per_line: int = 16) -> List[str]:
    return [hex_dump(data[i:i + per_line], ' ') for i in range(0, len(data), per_line)] or ['']


class FieldDecoder:
    """Decode a dump into DecodedField records according to ``flags``."""

    def __init__(self, flags: PrintFlags = DEFAULT_FLAGS):
        self.flags = PrintFlags(flags)
        self.tables = get_tables()

    def _has(self, flag: PrintFlags) -> bool:
        return bool(self.flags & flag)

    # -- generic field kinds ------------------------------------------------

    def _lookup(self, name: str, table: str, value: int) -> Optional[DecodedField]:
        text = self.tables.lookup(table, value)
        if text is None:
            if not self._has(PrintFlags.PRINT_UNKNOWN):
                return None
            text = 'Unknown'
        return DecodedField(name, text, hex=self._hex(f"{value:02x}"))

    def _bit_options(self, name: str, table: BitOptionTable, bank: bytes) -> Optional[DecodedField]:
        if not self._has(PrintFlags.PRINT_BITOPTIONS):
            return None
        window = table.window(bank)
        options = table.decode(window)
        if self._has(PrintFlags.LONGOPT):
            lines = [opt.label(long_form=True) for opt in options]
            if self._has(PrintFlags.HEXOUTPUT):
                lines.append(f"({hex_dump(window)})")
            return DecodedField(name, lines=tuple(lines))
        short = ' '.join(opt.short_name for opt in options if opt.short_name)
        return DecodedField(name, short, hex=self._hex(hex_dump(window)))

    def _hex(self, text: str) -> Optional[str]:
        return text if self._has(PrintFlags.HEXOUTPUT) else None

    def _checksum(self, name: str, section, bank: bytes) -> DecodedField:
        result = verify_section(section, bank)
        if result.ok:
            value = f"{result.stored:02X}"
        else:
            value = f"{result.stored:02X} (Expected: {result.computed:02X})"
        return DecodedField(name, value)

    # -- sections -----------------------------------------------------------

    def base_fields(self, a0: BankA0) -> List[DecodedField]:
        laser = is_laser_available(a0) if self._has(PrintFlags.PRINT_LASERAUTO) else True
        raw = a0.raw
        fields = [
            self._lookup('Identifier', 'identifier', a0.identifier),
            self._lookup('Ext. identifier', 'ext_identifier', a0.ext_identifier),
            self._lookup('Connector', 'connector', a0.connector),
            self._bit_options('Transceiver', self.tables.options('transceiver'), raw),
            self._lookup('Encoding', 'encoding', a0.encoding),
            DecodedField('Bit rate nominal', f"{a0.br_nominal * 100} MBits/s",
                         hex=self._hex(f"{a0.br_nominal:02X}")),
            self._lookup('Rate identifier', 'rate_identifier', a0.rate_identifier),
        ]
        fields.extend(self.length_fields(a0, laser))
        fields.extend([
            DecodedField('Vendor', a0.vendor_name),
            DecodedField('Vendor PN', a0.vendor_pn),
            DecodedField('Vendor rev', a0.vendor_rev),
            DecodedField('Vendor OUI', hex_dump(a0.vendor_oui, ' ')),
        ])
        if laser and (a0.wavelength or self._has(PrintFlags.PRINT_UNKNOWN)):
            fields.append(DecodedField('Laser wave length', f"{a0.wavelength} nm",
                                       hex=self._hex(f"{a0.wavelength:04X}")))
        if self._has(PrintFlags.PRINT_CSUM):
            fields.append(self._checksum('Checksum base', SECTION_BASE, raw))
        return [f for f in fields if f is not None]

    def length_fields(self, a0: BankA0, laser: bool = True) -> List[DecodedField]:
        """Link length fields, filtered by laser-auto when enabled."""
        fields = []
        laser_auto = self._has(PrintFlags.PRINT_LASERAUTO)
        for index, (name, attr, multiplier, unit) in enumerate(LENGTH_FIELDS):
            value = getattr(a0, attr)
            if not (value or self._has(PrintFlags.PRINT_UNKNOWN)):
                continue
            if laser_auto:
                copper = index == COPPER_LENGTH_INDEX
                if laser == copper:
                    continue
            fields.append(DecodedField(name, f"{value * multiplier} {unit}",
                                       hex=self._hex(f"{value:02X}")))
        return fields

    def _bitrate_margin(self, name: str, nominal: int, percent: int, sign: int) -> Optional[DecodedField]:
        if not (percent or self._has(PrintFlags.PRINT_UNKNOWN)):
            return None
        limit = nominal * 100 * (100 + sign * percent) // 100
        symbol = '+' if sign > 0 else '-'
        return DecodedField(name, f"{limit} MBits/s ({symbol}{percent}%)",
                            hex=self._hex(f"{percent:02X}"))

    def ext_fields(self, a0: BankA0) -> List[DecodedField]:
        raw = a0.raw
        date = raw[A0Offset.DATE_CODE:A0Offset.DATE_CODE + 8].decode('ascii', errors='replace')
        fields = [
            self._bit_options('Options', self.tables.options('options'), raw),
            self._bitrate_margin('Maximum bitrate', a0.br_nominal, a0.br_max, 1),
            self._bitrate_margin('Minimum bitrate', a0.br_nominal, a0.br_min, -1),
            DecodedField('Vendor SN', a0.vendor_sn),
            DecodedField('Date code', f"{date[0:2]}.{date[2:4]}.{date[4:6]} {date[6:8]}"),
            self._bit_options('Monitoring type', self.tables.options('monitoring_type'), raw),
            self._bit_options('Enhanced options', self.tables.options('enhanced_options'), raw),
            self._lookup('SFF-8472 compliance', 'sff8472_compliance', a0.sff8472_compliance),
        ]
        if self._has(PrintFlags.PRINT_CSUM):
            fields.append(self._checksum('Checksum ext', SECTION_EXT, raw))
        return [f for f in fields if f is not None]

    def threshold_fields(self, a2: BankA2, external: bool) -> List[DecodedField]:
        if not self._has(PrintFlags.PRINT_THRESHOLDS):
            return []
        cal = a2.calibration if external else None
        return [
            DecodedField(pair.name, f"{pair.low:.3f} - {pair.high:.3f} {pair.unit}",
                         hex=self._hex(f"{pair.raw_low:04X} {pair.raw_high:04X}"))
            for pair in alarms.thresholds(a2, cal)
        ]

    def calibration_fields(self, a2: BankA2) -> List[DecodedField]:
        if not self._has(PrintFlags.PRINT_CALIBRATIONS):
            return []
        cal = a2.calibration
        lines = ()
        if self._has(PrintFlags.HEXOUTPUT):
            lines = ('(' + '/'.join(f"{c:08X}" for c in cal.rx_pwr) + ')',)
        fields = [DecodedField('RX_PWR 4/3/2/1/0',
                               '/'.join(f"{float(c):.2f}" for c in cal.rx_pwr),
                               lines=lines)]
        for name, slope_attr, offset_attr in SLOPE_OFFSET_FIELDS:
            slope_raw = getattr(cal, slope_attr)
            offset_value = getattr(cal, offset_attr)
            fields.append(DecodedField(
                name, f"{slope(slope_raw):.4f} / {offset_value}",
                hex=self._hex(f"{hex_dump(slope_raw)} {offset_value & 0xFFFF:04X}"),
            ))
        return fields

    def diagnostic_fields(self, a0: BankA0, a2: BankA2) -> List[DecodedField]:
        """Real-time analog values with alarm/warning notes, then status bits."""
        external = calibration_mode(a0.diagmon_type) is CalibrationMode.EXTERNAL
        cal = a2.calibration if external else None
        severities = alarms.evaluate_all(a2, a0.alarm_flags_implemented)
        raw_words = (
            (a2.temperature[0] << 8) | a2.temperature[1],
            a2.voltage, a2.bias_current, a2.tx_power, a2.rx_power,
        )
        fields = []
        for quantity, word in zip(alarms.QUANTITY_ORDER, raw_words):
            convert = CONVERTERS[quantity]
            value = convert(word, cal) if cal is not None else convert(word)
            note = None
            if severities is not None and severities[quantity] is not Severity.NONE:
                note = SEVERITY_NOTES[severities[quantity]]
            fields.append(DecodedField(alarms.QUANTITY_NAMES[quantity],
                                       f"{value:.3f} {UNITS[quantity]}",
                                       hex=self._hex(f"{word:04X}"), note=note))
        status = self._bit_options('Status/Control', self.tables.options('status_control'), a2.raw)
        if status is not None:
            fields.append(status)
        return fields

    def vendor_fields(self, a2: BankA2) -> List[DecodedField]:
        if not self._has(PrintFlags.PRINT_VENDOR):
            return []
        fields = []
        for name, data in (('Vendor Specific', a2.vendor_specific),
                           ('User EEPROM', a2.user_eeprom),
                           ('Vendor Control', a2.vendor_control)):
            lines = hex_lines(data)
            fields.append(DecodedField(name, lines[0], lines=tuple(lines[1:])))
        return fields

    def decode(self, dump: ModuleDump) -> List[DecodedField]:
        """Decode every section available in ``dump`` in display order."""
        a0 = dump.a0
        fields = self.base_fields(a0) + self.ext_fields(a0)
        if not a0.ddm_implemented or dump.a2 is None:
            return fields

        a2 = dump.a2
        external = calibration_mode(a0.diagmon_type) is CalibrationMode.EXTERNAL
        fields += self.threshold_fields(a2, external)
        fields += self.calibration_fields(a2)
        if self._has(PrintFlags.PRINT_CSUM):
            fields.append(self._checksum('Checksum dmi', SECTION_DMI, a2.raw))
        fields += self.diagnostic_fields(a0, a2)
        fields += self.vendor_fields(a2)
        return fields


def emit(fields: Sequence[DecodedField], sink: PresentationSink) -> None:
    """Drive ``sink`` with already decoded fields."""
    sink.begin()
    for field in fields:
        sink.emit_name(field.name)
        if field.value:
            sink.emit_value(field.value)
        if field.hex is not None:
            sink.emit_value(f" ({field.hex})")
        if field.note:
            sink.emit_value(f" {field.note}")
        sink.emit_newline()
        for line in field.lines:
            sink.emit_value(CONTINUATION_INDENT + line)
            sink.emit_newline()
    sink.end()
