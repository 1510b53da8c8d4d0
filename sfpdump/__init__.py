"""sfpdump - Decode, calibrate and evaluate SFP/SFP+ module EEPROMs (SFF-8472)."""

__version__ = "1.0.0"
__author__ = "sfpdump Team"

from .brief import (
    BriefInfo, SoftPin, SoftPinState, SpeedMode,
    get_copper_length, get_soft_pins, get_speed_mode,
    is_copper_eth, is_direct_attach, read_brief_info, set_soft_pin,
)
from .config import Config, get_config
from .core.layout import BankA0, BankA2, ModuleDump
from .decoder import DecodedField, FieldDecoder, PrintFlags, emit, is_laser_available
from .image import ModuleImage, build_image, load_image
from .module import SfpModule
from .reader import BankReader, CallbackPort, DumpFilePort, MemoryPort, RegisterPort
from .render import HtmlSink, ListSink, PresentationSink, TextSink
from .utils.errors import (
    ChecksumError, ChecksumResult, IoError, SfpError, UnsupportedOperationError,
)

__all__ = [
    'BriefInfo',
    'SoftPin',
    'SoftPinState',
    'SpeedMode',
    'get_copper_length',
    'get_soft_pins',
    'get_speed_mode',
    'is_copper_eth',
    'is_direct_attach',
    'read_brief_info',
    'set_soft_pin',
    'Config',
    'get_config',
    'BankA0',
    'BankA2',
    'ModuleDump',
    'DecodedField',
    'FieldDecoder',
    'PrintFlags',
    'emit',
    'is_laser_available',
    'ModuleImage',
    'build_image',
    'load_image',
    'SfpModule',
    'BankReader',
    'CallbackPort',
    'DumpFilePort',
    'MemoryPort',
    'RegisterPort',
    'HtmlSink',
    'ListSink',
    'PresentationSink',
    'TextSink',
    # Errors
    'ChecksumError',
    'ChecksumResult',
    'IoError',
    'SfpError',
    'UnsupportedOperationError',
]
