"""SfpModule: a handle bundling a register port with its configuration.

A handle is meant to be used by one caller at a time; its configuration
(addresses, print flags, checksum enforcement) is plain mutable state.
Every decode re-reads the banks, nothing is cached between calls.
"""

import logging
from typing import List, Optional

from . import brief
from .brief import BriefInfo, SoftPin, SoftPinState, SpeedMode
from .config import Config
from .core.alarms import alarm_flags
from .core.checksum import mismatches, verify_dump
from .core.layout import ModuleDump
from .decoder import DecodedField, FieldDecoder, PrintFlags, emit
from .reader import BankReader, RegisterPort
from .render import PresentationSink, TextSink


log = logging.getLogger(__name__)


class SfpModule:
    """One SFP module reachable through a register port."""

    def __init__(self, port: RegisterPort, config: Optional[Config] = None):
        self.port = port
        self.config = config if config is not None else Config()

    @property
    def a0_address(self) -> int:
        return self.config.bus.a0_address

    @property
    def a2_address(self) -> int:
        return self.config.bus.a2_address

    @property
    def flags(self) -> PrintFlags:
        return self.config.output.flags

    def set_flags(self, flags: int) -> None:
        self.config.output.apply_flags(flags)

    def set_addresses(self, a0_address: int, a2_address: int) -> None:
        self.config.bus.a0_address = a0_address
        self.config.bus.a2_address = a2_address

    def read_info(self) -> ModuleDump:
        """Read both banks, enforcing checksums when configured.

        Raises:
            IoError: If a register read fails
            ChecksumError: If enforcement is on and a section mismatches
        """
        reader = BankReader(self.port, self.a0_address, self.a2_address)
        dump = reader.read(verify_checksums=self.config.enforce_checksum)
        if not self.config.enforce_checksum:
            for result in mismatches(verify_dump(dump)):
                log.warning("checksum %s mismatch: stored 0x%02x, computed 0x%02x",
                            result.section, result.stored, result.computed)
        return dump

    def decode(self, dump: Optional[ModuleDump] = None) -> List[DecodedField]:
        """Decode ``dump`` (or a fresh read) into display fields."""
        if dump is None:
            dump = self.read_info()
        return FieldDecoder(self.flags).decode(dump)

    def show_info(self, sink: Optional[PresentationSink] = None) -> List[DecodedField]:
        """Read, decode and render. Nothing is rendered if the read fails."""
        fields = self.decode()
        emit(fields, sink if sink is not None else TextSink())
        return fields

    def brief(self) -> BriefInfo:
        return brief.read_brief_info(self.port, self.a0_address, self.a2_address)

    def speed_mode(self) -> SpeedMode:
        return brief.get_speed_mode(self.port, self.a0_address)

    def is_copper_eth(self) -> bool:
        return brief.is_copper_eth(self.port, self.a0_address)

    def is_direct_attach(self) -> bool:
        return brief.is_direct_attach(self.port, self.a0_address)

    def copper_length(self) -> int:
        return brief.get_copper_length(self.port, self.a0_address)

    def soft_pins(self) -> SoftPinState:
        return brief.get_soft_pins(self.port, self.a0_address, self.a2_address)

    def set_soft_pin(self, pin: SoftPin, enabled: bool) -> SoftPinState:
        return brief.set_soft_pin(self.port, pin, enabled, self.a0_address, self.a2_address)

    def latched_flags(self) -> Optional[List[str]]:
        """Names of the alarm/warning flags currently set.

        None when the module has no diagnostics or does not implement the
        flags.
        """
        dump = self.read_info()
        if dump.a2 is None or not dump.a0.alarm_flags_implemented:
            return None
        return [name for name, value in alarm_flags(dump.a2) if value]
