"""Tests for brief info, point queries and soft pins."""

import pytest

from sfpdump import brief
from sfpdump.brief import (
    POWER_UNAVAILABLE,
    SoftPin,
    SpeedMode,
    bitrate_to_speed_mode,
    get_soft_pins,
    read_brief_info,
    set_soft_pin,
)
from sfpdump.utils.errors import IoError, UnsupportedOperationError


class TestSpeedMode:
    """Speed classification from the nominal bitrate byte."""

    def test_bitrate_ranges(self):
        assert bitrate_to_speed_mode(10) is SpeedMode.SPEED_1G
        assert bitrate_to_speed_mode(25) is SpeedMode.SPEED_1G
        assert bitrate_to_speed_mode(99) is SpeedMode.SPEED_1G
        assert bitrate_to_speed_mode(100) is SpeedMode.SPEED_10G
        assert bitrate_to_speed_mode(103) is SpeedMode.SPEED_10G
        assert bitrate_to_speed_mode(199) is SpeedMode.SPEED_10G
        assert bitrate_to_speed_mode(200) is SpeedMode.SPEED_20G
        assert bitrate_to_speed_mode(255) is SpeedMode.SPEED_20G
        assert bitrate_to_speed_mode(0) is SpeedMode.UNKNOWN
        assert bitrate_to_speed_mode(9) is SpeedMode.UNKNOWN

    def test_transceiver_fallback_10g(self, builder):
        builder.set_a0(12, 0)
        assert brief.get_speed_mode(builder.port()) is SpeedMode.SPEED_10G

    def test_transceiver_fallback_1g(self, builder):
        builder.set_a0(12, 0)
        builder.set_a0(3, 0x00)
        builder.set_a0(6, 0x01)
        assert brief.get_speed_mode(builder.port()) is SpeedMode.SPEED_1G

    def test_unknown(self, builder):
        builder.set_a0(12, 5)
        builder.set_a0(3, 0x00)
        assert brief.get_speed_mode(builder.port()) is SpeedMode.UNKNOWN

    def test_labels(self):
        assert SpeedMode.SPEED_10G.label == '10G'
        assert SpeedMode.UNKNOWN.label == 'unknown'


class TestBriefInfo:
    """read_brief_info."""

    def test_internal_calibration(self, builder):
        info = read_brief_info(builder.port())
        assert info.vendor == 'ACME OPTICS'
        assert info.partnum == 'SFP-10G-SR'
        assert info.bitrate == 10300
        assert info.spmode is SpeedMode.SPEED_10G
        assert info.txpower == pytest.approx(0.5)
        assert info.rxpower == pytest.approx(0.4)

    def test_external_calibration(self, builder):
        """Brief power matches the full decode to three decimals."""
        builder.externally_calibrated()
        builder.calibration(rx=(1, 0, 0, 2, 5), tx_slope=2.0, tx_offset=10)
        info = read_brief_info(builder.port())
        assert round(info.txpower, 3) == 1.1
        assert round(info.rxpower, 3) == 6.2

    def test_power_unavailable_without_ddm(self, dac_builder):
        port = dac_builder.port(with_a2=False)
        info = read_brief_info(port)
        assert info.txpower == POWER_UNAVAILABLE
        assert info.rxpower == POWER_UNAVAILABLE
        assert all(address == 0x50 for address, _, _ in port.reads)

    def test_to_dict(self, builder):
        data = read_brief_info(builder.port()).to_dict()
        assert data['spmode'] == '10G'
        assert data['bitrate'] == 10300

    def test_read_failure(self, builder):
        with pytest.raises(IoError):
            read_brief_info(builder.port(with_a2=False))


class TestPointQueries:

    def test_direct_attach(self, builder, dac_builder):
        assert brief.is_direct_attach(dac_builder.port())
        assert not brief.is_direct_attach(builder.port())

    def test_copper_connector_without_cable_bit(self, dac_builder):
        dac_builder.set_a0(8, 0x00)
        assert not brief.is_direct_attach(dac_builder.port())

    def test_copper_eth(self, builder):
        assert not brief.is_copper_eth(builder.port())
        builder.set_a0(6, 0x08)
        assert brief.is_copper_eth(builder.port())

    def test_copper_length(self, dac_builder):
        assert brief.get_copper_length(dac_builder.port()) == 3


class TestSoftPins:
    """Soft control bits in A2 bytes 110 and 118."""

    def test_read_state(self, builder):
        builder.set_a2(110, 0x42)
        builder.set_a2(118, 0x08)
        state = get_soft_pins(builder.port())
        assert state.soft_tx_disable
        assert state.rx_los
        assert state.soft_rate_select_1
        assert not state.tx_disable

    def test_set_tx_disable(self, builder):
        port = builder.port()
        state = set_soft_pin(port, SoftPin.TX_DISABLE, True)
        assert state.soft_tx_disable
        assert port.banks[0x51][110] == 0x40
        assert port.writes == [(0x51, 110, b'\x40')]

        state = set_soft_pin(port, SoftPin.TX_DISABLE, False)
        assert not state.soft_tx_disable
        assert port.banks[0x51][110] == 0x00

    def test_other_bits_untouched(self, builder):
        builder.set_a2(118, 0x81)
        port = builder.port()
        set_soft_pin(port, SoftPin.RATE_SELECT_1, True)
        assert port.banks[0x51][118] == 0x89

    def test_no_write_when_unchanged(self, builder):
        port = builder.port()
        set_soft_pin(port, SoftPin.RATE_SELECT_0, False)
        assert port.writes == []

    def test_undeclared_control(self, builder):
        builder.set_a0(93, 0x80)
        port = builder.port()
        with pytest.raises(UnsupportedOperationError):
            set_soft_pin(port, SoftPin.TX_DISABLE, True)
        assert port.writes == []

    def test_read_only_port(self, builder):
        port = builder.port(writable=False)
        with pytest.raises(UnsupportedOperationError) as exc_info:
            set_soft_pin(port, SoftPin.RATE_SELECT_0, True)
        assert 'read-only' in str(exc_info.value)

    def test_requires_ddm(self, dac_builder):
        port = dac_builder.port()
        with pytest.raises(UnsupportedOperationError):
            get_soft_pins(port)
        with pytest.raises(UnsupportedOperationError):
            set_soft_pin(port, SoftPin.TX_DISABLE, True)
        assert port.writes == []
