from __future__ import annotations

import io
import logging
from typing import Any

import numpy as np

from raw2tiff.errors import DecodeError, MissingDependencyError, UnsupportedFormat

from .types import RawFrame, bits_from_white_level, identity_cam_to_xyz


logger = logging.getLogger(__name__)

try:
    import rawpy  # type: ignore
except Exception:  # pragma: no cover - dependency is optional
    rawpy = None


def _normalize_wb(values: Any) -> tuple[float, float, float, float]:
    raw = [float(v) for v in list(values if values is not None else [])]
    if len(raw) >= 4:
        wb = (raw[0], raw[1], raw[2], raw[3] if raw[3] > 0.0 else raw[1])
    elif len(raw) == 3:
        wb = (raw[0], raw[1], raw[2], raw[1])
    else:
        wb = (1.0, 1.0, 1.0, 1.0)
    if wb[1] <= 0.0:
        logger.warning("camera white balance has no usable green coefficient %s; using unity", raw)
        return (1.0, 1.0, 1.0, 1.0)
    return wb


def _four(values: Any, fallback: int) -> tuple[int, int, int, int]:
    if values is None:
        return (fallback, fallback, fallback, fallback)
    ints = [int(v) for v in list(values)[:4]]
    if not ints:
        return (fallback, fallback, fallback, fallback)
    if len(ints) == 3:
        ints.append(ints[1])
    while len(ints) < 4:
        ints.append(ints[-1])
    return (ints[0], ints[1], ints[2], ints[3])


def cfa_pattern(raw: Any) -> str | None:
    pattern = getattr(raw, "raw_pattern", None)
    desc = getattr(raw, "color_desc", None)
    if pattern is None or desc is None:
        return None
    if isinstance(desc, bytes):
        desc = desc.decode("ascii", errors="ignore")
    try:
        return "".join(desc[int(v)] for v in np.asarray(pattern).flatten())
    except (IndexError, ValueError, TypeError):
        return None


def cam_to_xyz_from_xyz_to_cam(xyz_to_cam: Any) -> tuple[tuple[float, float, float, float], ...]:
    """Invert LibRaw's 4x3 XYZ->camera matrix into a 3x4 camera->XYZ matrix.

    Each row is first normalized to sum to 1 so that XYZ white maps to camera
    white, then the Moore-Penrose pseudo-inverse is taken. A zero fourth row
    (three-color sensors) yields a zero fourth column.
    """

    m = np.asarray(xyz_to_cam, dtype=np.float64)
    if m.shape == (3, 3):
        m = np.vstack([m, np.zeros((1, 3))])
    if m.shape != (4, 3):
        raise DecodeError(f"unexpected XYZ->camera matrix shape {m.shape}")
    if not np.any(m):
        logger.warning("RAW file carries no color matrix; using identity camera->XYZ")
        return identity_cam_to_xyz()

    sums = m.sum(axis=1, keepdims=True)
    safe = np.where(sums == 0.0, 1.0, sums)
    m = np.where(sums == 0.0, 0.0, m / safe)
    inv = np.linalg.pinv(m)
    return tuple(tuple(float(v) for v in row) for row in inv)


class LibRawDecoder:
    """RAW decoder using rawpy (LibRaw backend).

    Produces the untouched RGGB mosaic; no demosaic or color processing happens here.
    """

    def __init__(self) -> None:
        if rawpy is None:
            raise MissingDependencyError("rawpy is required for RAW decode: pip install rawpy")

    def decode(self, data: bytes) -> RawFrame:
        logger.debug("decoding RAW container, %d bytes", len(data))
        try:
            with rawpy.imread(io.BytesIO(data)) as raw:
                pattern = cfa_pattern(raw)
                if pattern != "RGGB":
                    raise UnsupportedFormat(f"only RGGB sensors are supported, got CFA {pattern!r}")

                mosaic = np.asarray(raw.raw_image_visible)
                if mosaic.ndim != 2:
                    raise DecodeError(f"expected single-channel mosaic, got shape {mosaic.shape}")
                height, width = mosaic.shape
                if np.issubdtype(mosaic.dtype, np.floating):
                    mosaic = np.clip(mosaic, 0.0, 1.0) * 65535.0
                samples = mosaic.astype(np.uint16)

                white_level = int(getattr(raw, "white_level", 0) or 0xFFFF)
                white = _four(getattr(raw, "camera_white_level_per_channel", None), white_level)
                black = _four(getattr(raw, "black_level_per_channel", None), 0)

                frame = RawFrame(
                    width=width,
                    height=height,
                    samples=samples,
                    bits_per_sample=bits_from_white_level(white),
                    wb_coeffs=_normalize_wb(getattr(raw, "camera_whitebalance", None)),
                    black_levels=black,
                    white_levels=white,
                    cam_to_xyz=cam_to_xyz_from_xyz_to_cam(raw.rgb_xyz_matrix),
                )
        except (DecodeError, UnsupportedFormat):
            raise
        except Exception as exc:
            raise DecodeError(f"decode failed: {exc}") from exc

        logger.debug(
            "decoded %dx%d mosaic bits=%d black=%s white=%s",
            frame.width,
            frame.height,
            frame.bits_per_sample,
            frame.black_levels,
            frame.white_levels,
        )
        return frame
