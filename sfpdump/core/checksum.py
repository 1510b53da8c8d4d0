"""Checksum computation and per-section verification."""

import logging
from dataclasses import dataclass
from typing import List

from .layout import A0Offset, A2Offset, ModuleDump
from ..utils.errors import ChecksumResult


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChecksumSection:
    """A byte range [start, end) summed into the byte stored at ``stored_at``."""
    name: str
    bank: str
    start: int
    end: int
    stored_at: int


SECTION_BASE = ChecksumSection('base', 'A0', 0, A0Offset.CC_BASE, A0Offset.CC_BASE)
SECTION_EXT = ChecksumSection('ext', 'A0', A0Offset.OPTIONS, A0Offset.CC_EXT, A0Offset.CC_EXT)
SECTION_DMI = ChecksumSection('dmi', 'A2', 0, A2Offset.CC_DMI, A2Offset.CC_DMI)

SECTIONS = (SECTION_BASE, SECTION_EXT, SECTION_DMI)


def checksum(data: bytes) -> int:
    """Unsigned sum of ``data`` modulo 256."""
    return sum(data) & 0xFF


def verify_section(section: ChecksumSection, bank: bytes) -> ChecksumResult:
    """Compare the stored checksum of one section with the computed one."""
    computed = checksum(bank[section.start:section.end])
    return ChecksumResult(section.name, bank[section.stored_at], computed)


def verify_dump(dump: ModuleDump) -> List[ChecksumResult]:
    """
    Verify every section available in ``dump``.

    The dmi section is only checked when bank A2 was read. Each section
    is checked independently.

    Returns:
        One ChecksumResult per checked section, in base/ext/dmi order
    """
    results = [
        verify_section(SECTION_BASE, dump.a0.raw),
        verify_section(SECTION_EXT, dump.a0.raw),
    ]
    if dump.a2 is not None:
        results.append(verify_section(SECTION_DMI, dump.a2.raw))
    for result in results:
        log.debug("checksum %s stored=0x%02x computed=0x%02x",
                  result.section, result.stored, result.computed)
    return results


def mismatches(results: List[ChecksumResult]) -> List[ChecksumResult]:
    return [r for r in results if not r.ok]

