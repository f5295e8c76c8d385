from .base import Decoder, DecodeError, MissingDependencyError, UnsupportedFormat
from .libraw_decoder import LibRawDecoder
from .types import RawFrame, bits_from_white_level

__all__ = [
    "Decoder",
    "DecodeError",
    "MissingDependencyError",
    "UnsupportedFormat",
    "LibRawDecoder",
    "RawFrame",
    "bits_from_white_level",
]
