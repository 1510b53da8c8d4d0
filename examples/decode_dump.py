#!/usr/bin/env python3
"""
Basic SFP decoding example.
Builds a module image from a description, then decodes it through the
library API the same way a driver-backed port would be used.
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sfpdump import PrintFlags, SfpModule
from sfpdump.brief import SoftPin
from sfpdump.image import load_image
from sfpdump.reader import CallbackPort, MemoryPort


def decode_example():
    """Decode the sample SR optic."""

    print("Basic SFP Decode Example")
    print("=" * 50)

    # 1. Build the register image
    print("\n1. Building module image...")
    description = Path(__file__).parent / "modules" / "sr_optic.yaml"
    image = load_image(description)
    print(f"   {len(image.to_bytes())} bytes")

    # 2. Wrap the banks in a port; a real driver would go through CallbackPort
    port = MemoryPort.from_dump(image.to_bytes())
    bus = CallbackPort(port.read, port.write)
    module = SfpModule(bus)

    # 3. Full decode with thresholds and alarm notes
    print("\n2. Decoding...")
    module.set_flags(PrintFlags.LONGOPT | PrintFlags.PRINT_THRESHOLDS | PrintFlags.PRINT_LASERAUTO)
    module.show_info()

    # 4. Cheap queries
    print("\n3. Brief info...")
    info = module.brief()
    print(f"   {info.vendor} {info.partnum}: {info.spmode.label}, "
          f"tx {info.txpower:.3f} mW, rx {info.rxpower:.3f} mW")

    # 5. Soft TX disable
    print("\n4. Soft TX disable...")
    state = module.set_soft_pin(SoftPin.TX_DISABLE, True)
    print(f"   soft_tx_disable = {state.soft_tx_disable}")

    print("\n" + "=" * 50)
    print("Done")


if __name__ == "__main__":
    decode_example()
