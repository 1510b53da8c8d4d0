"""Shared fixtures: raw SFP dumps built byte by byte.

The builder writes registers directly instead of going through the image
builder so decoder tests do not depend on the encoder.
"""

import struct

import pytest

from sfpdump.core.layout import BankA0, BankA2, ModuleDump
from sfpdump.reader import MemoryPort


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: CLI and file based tests")


def _checksum(data):
    return sum(data) & 0xFF


class DumpBuilder:
    """
    A 10G SR optic with DDM, internal calibration and alarm flags.

    Real-time values: 35.5 C, 3.3 V, 6 mA, 0.5 mW tx, 0.4 mW rx.
    """

    def __init__(self):
        self.a0 = bytearray(256)
        self.a2 = bytearray(256)
        self.fix_checksums = True

        self.set_a0(0, 0x03, 0x04, 0x07)           # SFP, two-wire ID, LC
        self.set_a0(3, 0x10)                       # 10G Base-SR
        self.set_a0(11, 0x06, 103, 0x00)           # 64B/66B, 10.3G
        self.set_a0(16, 8, 3, 0, 30)               # OM2 80 m, OM1 30 m, OM3 300 m
        self.set_ascii(20, 16, 'ACME OPTICS')
        self.set_a0(37, 0x00, 0x90, 0x65)
        self.set_ascii(40, 16, 'SFP-10G-SR')
        self.set_ascii(56, 4, 'A')
        self.set_word('a0', 60, 850)
        self.set_a0(64, 0x00, 0x1A)                # TXD, TXF, LOS
        self.set_ascii(68, 16, 'AC12345678')
        self.set_ascii(84, 8, '24011501')
        self.set_a0(92, 0x68, 0xF8, 0x05)          # DDM, internal, avg power

        thresholds = (
            0x4B00, 0x8500, 0x4600, 0x0000,        # 75 / -5 / 70 / 0 C
            36000, 30000, 35000, 31000,            # 3.6 / 3.0 / 3.5 / 3.1 V
            6000, 1000, 5000, 1500,                # 12 / 2 / 10 / 3 mA
            10000, 1000, 8000, 1500,               # tx mW
            10000, 100, 8000, 200,                 # rx mW
        )
        for i, word in enumerate(thresholds):
            self.set_word('a2', 2 * i, word)
        self.calibration(slopes=1.0)

        self.set_a2(96, 0x23, 0x80)
        self.set_word('a2', 98, 33000)
        self.set_word('a2', 100, 3000)
        self.set_word('a2', 102, 5000)
        self.set_word('a2', 104, 4000)

    # -- register helpers ---------------------------------------------------

    def set_a0(self, offset, *values):
        self.a0[offset:offset + len(values)] = bytes(values)
        return self

    def set_a2(self, offset, *values):
        self.a2[offset:offset + len(values)] = bytes(values)
        return self

    def set_word(self, bank, offset, value):
        getattr(self, bank)[offset:offset + 2] = struct.pack('!H', value)
        return self

    def set_ascii(self, offset, length, text):
        self.a0[offset:offset + length] = text.encode('ascii').ljust(length, b' ')
        return self

    def calibration(self, rx=(0, 0, 0, 0, 0), slopes=1.0, tx_slope=None, tx_offset=0,
                    bias_offset=0, temperature_offset=0, voltage_offset=0):
        """Write the external calibration block at A2 56..91."""
        block = b''.join(struct.pack('!I', c) for c in rx)
        fixed = int(slopes * 256)
        tx_fixed = int((tx_slope if tx_slope is not None else slopes) * 256)
        block += struct.pack('!Hh', fixed, bias_offset)
        block += struct.pack('!Hh', tx_fixed, tx_offset)
        block += struct.pack('!Hh', fixed, temperature_offset)
        block += struct.pack('!Hh', fixed, voltage_offset)
        self.a2[56:92] = block
        return self

    # -- module variants ----------------------------------------------------

    def copper_dac(self):
        """Passive direct attach cable, 3 m, no diagnostics."""
        self.set_a0(2, 0x21)
        self.set_a0(3, 0x00)
        self.set_a0(8, 0x04)
        self.set_a0(18, 3)
        self.set_word('a0', 60, 0)
        self.set_a0(92, 0x00, 0x00)
        self.set_ascii(40, 16, 'SFP-DAC-3M')
        return self

    def externally_calibrated(self):
        self.a0[92] = (self.a0[92] & ~0x20) | 0x10
        return self

    def corrupt(self, bank, offset):
        """Flip a byte after the checksums are computed."""
        self.finish()
        self.fix_checksums = False
        getattr(self, bank)[offset] ^= 0xFF
        return self

    # -- outputs ------------------------------------------------------------

    def finish(self):
        if self.fix_checksums:
            self.a0[63] = _checksum(self.a0[0:63])
            self.a0[95] = _checksum(self.a0[64:95])
            self.a2[95] = _checksum(self.a2[0:95])
        return self

    def to_bytes(self):
        self.finish()
        return bytes(self.a0) + bytes(self.a2)

    def port(self, with_a2=True, **kwargs):
        self.finish()
        return MemoryPort(bytes(self.a0), bytes(self.a2) if with_a2 else None, **kwargs)

    def dump(self):
        self.finish()
        a2 = BankA2.from_bytes(bytes(self.a2)) if self.a0[92] & 0x40 else None
        return ModuleDump(a0=BankA0.from_bytes(bytes(self.a0)), a2=a2)


@pytest.fixture
def builder():
    """A fresh DumpBuilder for an SR optic."""
    return DumpBuilder()


@pytest.fixture
def dac_builder():
    """A fresh DumpBuilder for a passive copper cable."""
    return DumpBuilder().copper_dac()


@pytest.fixture
def dump_file(builder, tmp_path):
    """A 512-byte two-bank dump file of the SR optic."""
    path = tmp_path / 'module.bin'
    path.write_bytes(builder.to_bytes())
    return path
