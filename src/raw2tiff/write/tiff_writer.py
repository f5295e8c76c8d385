from __future__ import annotations

import io
import logging
from typing import Any

import numpy as np

from raw2tiff.config import PipelineConfig, Predictor, TiffCompression
from raw2tiff.debayer.types import RgbFrame
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import EncodeError, MissingDependencyError


logger = logging.getLogger(__name__)

DEFLATE_LEVELS = {
    TiffCompression.DEFLATE_FAST: 1,
    TiffCompression.DEFLATE_BALANCED: 6,
    TiffCompression.DEFLATE_BEST: 9,
}


def _import_tifffile() -> Any:
    try:
        import tifffile  # type: ignore
    except Exception as exc:
        raise MissingDependencyError("tifffile is required for TIFF output. Install with: pip install tifffile") from exc
    return tifffile


def tiff_write_options(config: PipelineConfig) -> dict[str, Any]:
    """Translate compression/predictor settings into ``tifffile.imwrite`` keyword arguments."""

    opts: dict[str, Any] = {}
    compression = TiffCompression(config.compression)
    if compression is TiffCompression.NONE:
        # predictor only applies to compressed strips
        return opts
    if compression is TiffCompression.LZW:
        opts["compression"] = "lzw"
    else:
        opts["compression"] = "zlib"
        opts["compressionargs"] = {"level": DEFLATE_LEVELS[compression]}
    if Predictor(config.predictor) is Predictor.HORIZONTAL:
        opts["predictor"] = True
    return opts


class TiffEncoder:
    """Baseline TIFF encoder backed by tifffile (LZW/deflate codecs come from imagecodecs)."""

    def __init__(self) -> None:
        self._tifffile = _import_tifffile()

    def _encode(self, image: np.ndarray, photometric: str, config: PipelineConfig) -> bytes:
        opts = tiff_write_options(config)
        logger.debug("encoding TIFF shape=%s photometric=%s options=%s", image.shape, photometric, opts)
        buf = io.BytesIO()
        try:
            self._tifffile.imwrite(buf, image, photometric=photometric, **opts)
        except Exception as exc:
            raise EncodeError(f"TIFF encoding failed: {exc}") from exc
        return buf.getvalue()

    def encode_gray(self, frame: RawFrame, config: PipelineConfig) -> bytes:
        image = np.ascontiguousarray(frame.mosaic(), dtype=np.uint16)
        return self._encode(image, "minisblack", config)

    def encode_rgb(self, frame: RgbFrame, config: PipelineConfig) -> bytes:
        image = np.ascontiguousarray(frame.image(), dtype=np.uint16)
        return self._encode(image, "rgb", config)
