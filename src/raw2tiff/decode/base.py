from __future__ import annotations

from typing import Protocol

from raw2tiff.errors import DecodeError, MissingDependencyError, UnsupportedFormat

from .types import RawFrame


class Decoder(Protocol):
    def decode(self, data: bytes) -> RawFrame:
        ...


__all__ = ["Decoder", "DecodeError", "MissingDependencyError", "UnsupportedFormat"]
