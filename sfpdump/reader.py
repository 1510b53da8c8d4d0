"""Register access ports and the bank reader.

A port is anything that can read (and optionally write) a run of registers
at a two-wire bank address. Supported ports:
- DumpFilePort: binary dump files as written by ``sfp-dump`` style tools
- MemoryPort: in-memory banks
- CallbackPort: wraps plain read/write callables (e.g. an i2c driver)
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Union

from .core.checksum import mismatches, verify_dump
from .core.layout import (
    A0_READ_LENGTH, A2_READ_LENGTH, BANK_SIZE,
    DEFAULT_A0_ADDRESS, DEFAULT_A2_ADDRESS,
    BankA0, BankA2, ModuleDump,
)
from .utils.errors import ChecksumError, IoError


log = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RegisterPort(ABC):
    """Abstract register access capability."""

    @abstractmethod
    def read(self, address: int, offset: int, length: int) -> bytes:
        """Read exactly ``length`` bytes or raise IoError."""
        pass

    @property
    def writable(self) -> bool:
        return False

    def write(self, address: int, offset: int, data: bytes) -> None:
        """Write ``data`` starting at ``offset``; read-only ports refuse."""
        raise IoError(address, offset, len(data), 'port is read-only')


def checked_read(port: RegisterPort, address: int, offset: int, length: int) -> bytes:
    """Read through ``port`` and reject short buffers."""
    log.debug("read address=0x%02x offset=%d length=%d", address, offset, length)
    data = port.read(address, offset, length)
    if len(data) != length:
        raise IoError(address, offset, length, f"short read ({len(data)} bytes)")
    return bytes(data)


class DumpFilePort(RegisterPort):
    """
    Serve register reads from binary dump files.

    Bank A0 comes from ``file1``. Bank A2 comes from ``file2`` when given,
    otherwise from ``file1`` starting at offset 0x100 (a 512-byte dump
    holding both banks).
    """

    def __init__(self, file1: PathLike, file2: Optional[PathLike] = None,
                 a2_address: int = DEFAULT_A2_ADDRESS, writable: bool = False):
        self.file1 = Path(file1)
        self.file2 = Path(file2) if file2 else None
        self.a2_address = a2_address
        self._writable = writable

    @property
    def writable(self) -> bool:
        return self._writable

    def _locate(self, address: int):
        if address == self.a2_address:
            if self.file2 is not None:
                return self.file2, 0
            return self.file1, BANK_SIZE
        return self.file1, 0

    def read(self, address: int, offset: int, length: int) -> bytes:
        path, base = self._locate(address)
        try:
            with open(path, 'rb') as f:
                f.seek(base + offset)
                data = f.read(length)
        except OSError as e:
            raise IoError(address, offset, length, str(e)) from e
        if len(data) != length:
            raise IoError(address, offset, length,
                          f"{path} holds only {len(data)} bytes at offset {base + offset}")
        return data

    def write(self, address: int, offset: int, data: bytes) -> None:
        if not self._writable:
            super().write(address, offset, data)
        path, base = self._locate(address)
        log.debug("write %s offset=%d length=%d", path, base + offset, len(data))
        try:
            with open(path, 'r+b') as f:
                f.seek(base + offset)
                f.write(bytes(data))
        except OSError as e:
            raise IoError(address, offset, len(data), str(e)) from e


class MemoryPort(RegisterPort):
    """Banks held in memory, keyed by bus address."""

    def __init__(self, a0: bytes, a2: Optional[bytes] = None,
                 a0_address: int = DEFAULT_A0_ADDRESS,
                 a2_address: int = DEFAULT_A2_ADDRESS,
                 writable: bool = True):
        self.banks = {a0_address: bytearray(a0)}
        if a2 is not None:
            self.banks[a2_address] = bytearray(a2)
        self._writable = writable
        self.reads = []
        self.writes = []

    @classmethod
    def from_dump(cls, dump: bytes, **kwargs) -> 'MemoryPort':
        """Split a 512-byte two-bank dump (A0 then A2)."""
        a2 = dump[BANK_SIZE:2 * BANK_SIZE] if len(dump) > BANK_SIZE else None
        return cls(dump[:BANK_SIZE], a2, **kwargs)

    @property
    def writable(self) -> bool:
        return self._writable

    def read(self, address: int, offset: int, length: int) -> bytes:
        self.reads.append((address, offset, length))
        bank = self.banks.get(address)
        if bank is None:
            raise IoError(address, offset, length, 'no device at address')
        data = bytes(bank[offset:offset + length])
        if len(data) != length:
            raise IoError(address, offset, length, f"short read ({len(data)} bytes)")
        return data

    def write(self, address: int, offset: int, data: bytes) -> None:
        if not self._writable:
            super().write(address, offset, data)
        bank = self.banks.get(address)
        if bank is None or offset + len(data) > len(bank):
            raise IoError(address, offset, len(data), 'write outside bank')
        self.writes.append((address, offset, bytes(data)))
        bank[offset:offset + len(data)] = data


class CallbackPort(RegisterPort):
    """Adapt plain callables to the port interface.

    ``read(address, offset, length) -> bytes`` and the optional
    ``write(address, offset, data)``. Any exception raised by a callable
    that is not already an IoError is wrapped in one.
    """

    def __init__(self, read: Callable[[int, int, int], bytes],
                 write: Optional[Callable[[int, int, bytes], None]] = None):
        self._read = read
        self._write = write

    @property
    def writable(self) -> bool:
        return self._write is not None

    def read(self, address: int, offset: int, length: int) -> bytes:
        try:
            return self._read(address, offset, length)
        except IoError:
            raise
        except Exception as e:
            raise IoError(address, offset, length, str(e)) from e

    def write(self, address: int, offset: int, data: bytes) -> None:
        if self._write is None:
            super().write(address, offset, data)
        try:
            self._write(address, offset, data)
        except IoError:
            raise
        except Exception as e:
            raise IoError(address, offset, len(data), str(e)) from e


class BankReader:
    """Read bank A0 and, when DDM is declared, bank A2."""

    def __init__(self, port: RegisterPort,
                 a0_address: int = DEFAULT_A0_ADDRESS,
                 a2_address: int = DEFAULT_A2_ADDRESS):
        self.port = port
        self.a0_address = a0_address
        self.a2_address = a2_address

    def read(self, verify_checksums: bool = False) -> ModuleDump:
        """
        Read both banks.

        Args:
            verify_checksums: Raise ChecksumError on any mismatch

        Returns:
            ModuleDump with ``a2`` set only when DDM is implemented

        Raises:
            IoError: If a register read fails or is short
            ChecksumError: If verification is on and a section mismatches
        """
        a0 = BankA0.from_bytes(checked_read(self.port, self.a0_address, 0, A0_READ_LENGTH))
        dump = ModuleDump(a0=a0)

        if a0.ddm_implemented:
            raw = checked_read(self.port, self.a2_address, 0, A2_READ_LENGTH)
            dump.a2 = BankA2.from_bytes(raw)
        else:
            log.debug("DDM not implemented, skipping bank A2")

        if verify_checksums:
            failed = mismatches(verify_dump(dump))
            if failed:
                raise ChecksumError(failed, dump)

        return dump
