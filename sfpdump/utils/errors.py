"""
Error taxonomy for SFP EEPROM access and decoding.

Every failure raised by the library derives from SfpError so callers can
catch one type. The categories are:

- IoError: a register read or write failed, or returned fewer bytes
- ChecksumError: one or more checksum sections did not verify
- UnsupportedOperationError: the module or the port cannot do what was asked
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


class SfpError(Exception):
    """Base class for all sfpdump errors."""
    pass


class IoError(SfpError):
    """
    A register access failed or returned a short buffer.

    Attributes:
        address: Two-wire bank address (0x50 / 0x51 by default)
        offset: First register of the access
        length: Number of bytes requested
    """

    def __init__(self, address: int, offset: int, length: int, reason: str = ''):
        self.address = address
        self.offset = offset
        self.length = length
        self.reason = reason
        message = f"I/O error at address 0x{address:02x}, offset {offset}, length {length}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


@dataclass(frozen=True)
class ChecksumResult:
    """Outcome of verifying one checksum section."""
    section: str
    stored: int
    computed: int

    @property
    def ok(self) -> bool:
        return self.stored == self.computed


class ChecksumError(SfpError):
    """
    One or more checksum sections did not verify.

    The dump that was read is kept on the exception so callers can still
    inspect (or render) the raw data.
    """

    def __init__(self, mismatches: List[ChecksumResult], dump=None):
        self.mismatches = list(mismatches)
        self.dump = dump
        sections = ', '.join(
            f"{m.section} (stored 0x{m.stored:02x}, computed 0x{m.computed:02x})"
            for m in self.mismatches
        )
        super().__init__(f"Checksum mismatch in {sections}")

    @property
    def sections(self) -> Tuple[str, ...]:
        return tuple(m.section for m in self.mismatches)


class UnsupportedOperationError(SfpError):
    """The module or the register port does not support the operation."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        self.operation = operation
        self.reason = reason
        message = f"Unsupported operation: {operation}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
