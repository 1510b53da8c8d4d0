"""Tests for lookup and bit option tables."""

import pytest

from sfpdump.core.tables import BitOption, _build_tables, bit_options, get_tables, lookup


@pytest.mark.unit
class TestLookups:
    """Exact match lookups."""

    def test_known_values(self):
        assert lookup('identifier', 0x03) == 'SFP or SFP+'
        assert lookup('connector', 0x07) == 'LC'
        assert lookup('connector', 0x21) == 'Copper'
        assert lookup('encoding', 0x06) == '64B/66B'

    def test_unknown_value(self):
        assert lookup('identifier', 0x7F) is None
        assert lookup('connector', 0x00) is None

    def test_tables_are_read_only(self):
        tables = get_tables()
        with pytest.raises(TypeError):
            tables.lookups['identifier'] = None
        with pytest.raises(TypeError):
            tables.lookups['connector'].values[0x99] = 'Bogus'


@pytest.mark.unit
class TestBitOptions:
    """Bit option tables and window decoding."""

    def test_transceiver_span(self):
        table = bit_options('transceiver')
        assert (table.min_offset, table.max_offset, table.span) == (3, 10, 8)

    def test_single_byte_tables(self):
        assert bit_options('monitoring_type').min_offset == 92
        assert bit_options('enhanced_options').min_offset == 93

    def test_decode_window(self):
        table = bit_options('transceiver')
        window = bytes([0x10, 0, 0, 0, 0, 0, 0x04, 0])
        names = [opt.long_name for opt in table.decode(window)]
        assert names == ['10G Base-SR', 'Multimode 50um']

    def test_decode_bank(self):
        bank = bytearray(96)
        bank[65] = 0x12
        names = [opt.short_name for opt in bit_options('options').decode_bank(bank)]
        assert names == ['TXD', 'LS']

    def test_short_window_rejected(self):
        with pytest.raises(ValueError):
            bit_options('transceiver').decode(bytes(4))

    def test_declaration_order_kept(self):
        """Set flags come back in table order, not bit order."""
        tables = _build_tables({'bit_options': {'demo': [[0, 0, 'Low', 'L'], [0, 7, 'High', 'H']]}})
        decoded = tables.options('demo').decode(b'\xff')
        assert [opt.long_name for opt in decoded] == ['Low', 'High']

    def test_unnamed_bit_label(self):
        option = BitOption(4, 7, '', '')
        assert option.label(long_form=True) == '(4/7)'
        assert option.mask == 0x80

    def test_malformed_rows_rejected(self):
        with pytest.raises(ValueError):
            _build_tables({'bit_options': {'bad': [[0, 8, 'x', 'x']]}})
        with pytest.raises(ValueError):
            _build_tables({'bit_options': {'bad': [[0, 1, 'x']]}})
        with pytest.raises(ValueError):
            _build_tables({'bit_options': {'bad': []}})
