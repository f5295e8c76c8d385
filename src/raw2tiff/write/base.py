from __future__ import annotations

from typing import Protocol

from raw2tiff.config import PipelineConfig
from raw2tiff.debayer.types import RgbFrame
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import EncodeError


class Encoder(Protocol):
    def encode_gray(self, frame: RawFrame, config: PipelineConfig) -> bytes:
        ...

    def encode_rgb(self, frame: RgbFrame, config: PipelineConfig) -> bytes:
        ...


__all__ = ["Encoder", "EncodeError"]
