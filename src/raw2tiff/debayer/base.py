from __future__ import annotations

from typing import Protocol

from raw2tiff.decode.types import RawFrame

from .types import RgbFrame


class DebayerBackend(Protocol):
    name: str

    def process(self, frame: RawFrame) -> RgbFrame:
        ...
