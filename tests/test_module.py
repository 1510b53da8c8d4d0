"""Tests for the SfpModule handle."""

import logging

import pytest

from sfpdump.brief import SoftPin, SpeedMode
from sfpdump.config import Config
from sfpdump.decoder import PrintFlags
from sfpdump.module import SfpModule
from sfpdump.reader import CallbackPort
from sfpdump.render import ListSink
from sfpdump.utils.errors import ChecksumError, IoError


class TestSfpModule:

    def test_show_info(self, builder):
        sink = ListSink()
        SfpModule(builder.port()).show_info(sink)
        assert sink.value('Vendor') == 'ACME OPTICS'
        assert sink.value('Temperature') == '35.500 C'

    def test_flags_and_addresses(self, builder):
        module = SfpModule(builder.port(a0_address=0x52, a2_address=0x53))
        module.set_addresses(0x52, 0x53)
        module.set_flags(PrintFlags.LONGOPT | PrintFlags.PRINT_CSUM)
        assert module.flags == PrintFlags.LONGOPT | PrintFlags.PRINT_CSUM

        sink = ListSink()
        module.show_info(sink)
        assert 'Checksum dmi' in sink.names

    def test_nothing_rendered_on_read_failure(self):
        def broken(address, offset, length):
            raise OSError("no ack")

        sink = ListSink()
        with pytest.raises(IoError):
            SfpModule(CallbackPort(broken)).show_info(sink)
        assert sink.lines == []

    def test_enforced_checksum(self, builder):
        builder.corrupt('a2', 0)
        config = Config()
        config.enforce_checksum = True
        sink = ListSink()
        with pytest.raises(ChecksumError) as exc_info:
            SfpModule(builder.port(), config).show_info(sink)
        assert exc_info.value.sections == ('dmi',)
        assert sink.lines == []

    def test_mismatch_logged_when_not_enforced(self, builder, caplog):
        builder.corrupt('a0', 1)
        with caplog.at_level(logging.WARNING, logger='sfpdump.module'):
            fields = SfpModule(builder.port()).decode()
        assert fields
        assert 'checksum base mismatch' in caplog.text

    def test_queries(self, builder):
        module = SfpModule(builder.port())
        assert module.speed_mode() is SpeedMode.SPEED_10G
        assert module.brief().vendor == 'ACME OPTICS'
        assert not module.is_direct_attach()
        assert not module.is_copper_eth()
        assert module.copper_length() == 0

    def test_soft_pins(self, builder):
        module = SfpModule(builder.port())
        assert module.set_soft_pin(SoftPin.TX_DISABLE, True).soft_tx_disable
        assert module.soft_pins().soft_tx_disable

    def test_latched_flags(self, builder):
        builder.set_a2(112, 0x80)
        builder.set_a2(117, 0x40)
        module = SfpModule(builder.port())
        assert module.latched_flags() == ['Temperature high alarm', 'RX power low warning']

    def test_latched_flags_not_implemented(self, builder, dac_builder):
        assert SfpModule(dac_builder.port(with_a2=False)).latched_flags() is None
        builder.set_a0(93, 0x00)
        builder.set_a2(112, 0xFF)
        assert SfpModule(builder.port()).latched_flags() is None

    def test_reads_fresh_each_time(self, builder):
        port = builder.port()
        module = SfpModule(port)
        module.decode()
        port.banks[0x51][96] = 0x19
        sink = ListSink()
        module.show_info(sink)
        assert sink.value('Temperature').startswith('25.500 C')
