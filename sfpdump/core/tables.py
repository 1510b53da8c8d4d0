"""
Lookup and bit-option decoding for SFF-8472 identification fields.

The tables themselves live in tables.yaml next to this module and are
loaded once, on first use, into immutable structures (tuples and read-only
mappings). Nothing in this module mutates them afterwards.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import yaml


TABLES_PATH = Path(__file__).parent / 'tables.yaml'


@dataclass(frozen=True)
class BitOption:
    """One named capability flag at a fixed (byte, bit) position."""
    byte: int
    bit: int
    long_name: str
    short_name: str

    @property
    def mask(self) -> int:
        return 1 << self.bit

    def label(self, long_form: bool = True) -> str:
        """Text used for a set flag; positional "(byte/bit)" when unnamed."""
        if long_form:
            return self.long_name or f"({self.byte}/{self.bit})"
        return self.short_name


@dataclass(frozen=True)
class BitOptionTable:
    """Ordered, immutable table of bit options.

    Entries are kept in declaration order, which is also the display order.
    """
    name: str
    entries: Tuple[BitOption, ...]

    @property
    def min_offset(self) -> int:
        return min(e.byte for e in self.entries)

    @property
    def max_offset(self) -> int:
        return max(e.byte for e in self.entries)

    @property
    def span(self) -> int:
        return self.max_offset - self.min_offset + 1

    def window(self, bank: bytes) -> bytes:
        """Slice the bytes this table covers out of a full bank buffer."""
        return bytes(bank[self.min_offset:self.max_offset + 1])

    def decode(self, window: bytes) -> List[BitOption]:
        """Return the entries whose bit is set in ``window``.

        Args:
            window: Bytes starting at ``min_offset``; see ``window()``

        Returns:
            Set flags in table declaration order
        """
        if len(window) < self.span:
            raise ValueError(
                f"{self.name} table needs {self.span} bytes, got {len(window)}"
            )
        base = self.min_offset
        return [e for e in self.entries if window[e.byte - base] & e.mask]

    def decode_bank(self, bank: bytes) -> List[BitOption]:
        return self.decode(self.window(bank))


@dataclass(frozen=True)
class LookupTable:
    """Exact-match byte -> text enumeration."""
    name: str
    values: Mapping[int, str]

    def lookup(self, value: int) -> Optional[str]:
        """Text for ``value`` or None when the value is not mapped."""
        return self.values.get(value)


@dataclass(frozen=True)
class Tables:
    lookups: Mapping[str, LookupTable]
    bit_options: Mapping[str, BitOptionTable]

    def lookup(self, table: str, value: int) -> Optional[str]:
        return self.lookups[table].lookup(value)

    def options(self, table: str) -> BitOptionTable:
        return self.bit_options[table]


def _build_tables(data: Dict) -> Tables:
    lookups = {}
    for name, values in data.get('lookups', {}).items():
        mapping = {int(k): str(v) for k, v in values.items()}
        lookups[name] = LookupTable(name=name, values=MappingProxyType(mapping))

    bit_options = {}
    for name, rows in data.get('bit_options', {}).items():
        entries = []
        for row in rows:
            if len(row) != 4:
                raise ValueError(f"Bit option table '{name}' has malformed row {row!r}")
            byte, bit, long_name, short_name = row
            if not 0 <= int(bit) <= 7:
                raise ValueError(f"Bit option table '{name}' has invalid bit {bit}")
            entries.append(BitOption(int(byte), int(bit), str(long_name), str(short_name)))
        if not entries:
            raise ValueError(f"Bit option table '{name}' is empty")
        bit_options[name] = BitOptionTable(name=name, entries=tuple(entries))

    return Tables(lookups=MappingProxyType(lookups),
                  bit_options=MappingProxyType(bit_options))


def load_tables(path: Path) -> Tables:
    """Load lookup and bit-option tables from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is malformed
        ValueError: If a table row is invalid
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return _build_tables(data or {})


@lru_cache(maxsize=1)
def get_tables() -> Tables:
    """Tables shipped with the package, loaded once."""
    return load_tables(TABLES_PATH)


def lookup(table: str, value: int) -> Optional[str]:
    """Shortcut for ``get_tables().lookup(table, value)``."""
    return get_tables().lookup(table, value)


def bit_options(table: str) -> BitOptionTable:
    return get_tables().options(table)
