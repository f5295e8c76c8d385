"""Bilinear RGGB demosaic.

Missing channels are the truncated integer mean of the nearest same-color
neighbours. Borders are mirrored without repeating the edge sample, which
keeps the Bayer phase intact. The CUDA kernel in ``cuda_kernel.py`` follows
the same rules sample for sample.
"""

from __future__ import annotations

import numpy as np

from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import DemosaicError, UnsupportedFormat


def interpolation_dtype(bits_per_sample: int) -> np.dtype:
    if bits_per_sample < 1 or bits_per_sample > 16:
        raise UnsupportedFormat(f"unsupported bit depth {bits_per_sample}; interpolation handles 1..16 bits")
    return np.dtype(np.uint8) if bits_per_sample <= 8 else np.dtype(np.uint16)


def prepare_mosaic(frame: RawFrame) -> np.ndarray:
    """Return the frame's mosaic at the 8- or 16-bit depth the interpolation runs at."""

    dtype = interpolation_dtype(frame.bits_per_sample)
    if frame.samples.size != frame.width * frame.height:
        raise DemosaicError(
            f"buffer holds {frame.samples.size} samples, expected {frame.width * frame.height}"
        )
    mosaic = frame.mosaic()
    if dtype == np.uint8:
        return np.minimum(mosaic, 0xFF).astype(np.uint8)
    return mosaic


def demosaic_rggb_bilinear(mosaic: np.ndarray) -> np.ndarray:
    """(H, W) RGGB mosaic -> (H, W, 3) RGB of the same integer dtype."""

    m = np.asarray(mosaic)
    if m.ndim != 2:
        raise DemosaicError(f"expected a 2-D mosaic, got shape {m.shape}")
    if m.dtype not in (np.uint8, np.uint16):
        raise UnsupportedFormat(f"interpolation supports uint8/uint16 mosaics, got {m.dtype}")
    height, width = m.shape
    if height < 2 or width < 2:
        raise DemosaicError(f"mosaic {width}x{height} is too small to interpolate")

    p = np.pad(m.astype(np.int32), 1, mode="reflect")
    c = p[1:-1, 1:-1]
    n = p[:-2, 1:-1]
    s = p[2:, 1:-1]
    w = p[1:-1, :-2]
    e = p[1:-1, 2:]

    cross = (n + s + w + e) // 4
    diag = (p[:-2, :-2] + p[:-2, 2:] + p[2:, :-2] + p[2:, 2:]) // 4
    horiz = (w + e) // 2
    vert = (n + s) // 2

    rgb = np.empty((height, width, 3), dtype=np.int32)

    # red sites
    rgb[0::2, 0::2, 0] = c[0::2, 0::2]
    rgb[0::2, 0::2, 1] = cross[0::2, 0::2]
    rgb[0::2, 0::2, 2] = diag[0::2, 0::2]
    # green on red rows
    rgb[0::2, 1::2, 0] = horiz[0::2, 1::2]
    rgb[0::2, 1::2, 1] = c[0::2, 1::2]
    rgb[0::2, 1::2, 2] = vert[0::2, 1::2]
    # green on blue rows
    rgb[1::2, 0::2, 0] = vert[1::2, 0::2]
    rgb[1::2, 0::2, 1] = c[1::2, 0::2]
    rgb[1::2, 0::2, 2] = horiz[1::2, 0::2]
    # blue sites
    rgb[1::2, 1::2, 0] = diag[1::2, 1::2]
    rgb[1::2, 1::2, 1] = cross[1::2, 1::2]
    rgb[1::2, 1::2, 2] = c[1::2, 1::2]

    return rgb.astype(m.dtype)
