from __future__ import annotations

import logging

import numpy as np

from raw2tiff.color import ColorPipeline
from raw2tiff.decode.types import RawFrame

from .bilinear import demosaic_rggb_bilinear, prepare_mosaic
from .types import RgbFrame


logger = logging.getLogger(__name__)

# Color math runs in horizontal bands to bound float32 temporaries.
ROWS_PER_BAND = 256


class CpuDebayer:
    """Reference backend: numpy bilinear demosaic followed by the shared color math."""

    name = "cpu"

    def __init__(self, rows_per_band: int = ROWS_PER_BAND) -> None:
        if rows_per_band <= 0:
            raise ValueError("rows_per_band must be positive")
        self.rows_per_band = int(rows_per_band)

    def process(self, frame: RawFrame) -> RgbFrame:
        logger.info("CPU debayer %dx%d bits=%d", frame.width, frame.height, frame.bits_per_sample)

        mosaic = prepare_mosaic(frame)
        logger.debug("bilinear RGGB demosaic at %s", mosaic.dtype)
        rgb_raw = demosaic_rggb_bilinear(mosaic)

        color = ColorPipeline(frame)
        out = np.empty((frame.height, frame.width, 3), dtype=np.uint16)
        for start in range(0, frame.height, self.rows_per_band):
            stop = min(start + self.rows_per_band, frame.height)
            out[start:stop] = color.apply(rgb_raw[start:stop])

        return RgbFrame(width=frame.width, height=frame.height, samples=out)
