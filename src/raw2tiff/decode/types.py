from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


def _readonly(values: Any, dtype: Any) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True).ravel()
    arr.setflags(write=False)
    return arr


def bits_from_white_level(white_levels: tuple[int, ...] | list[int]) -> int:
    """Effective sensor depth from the largest white level (4095 -> 12, 16383 -> 14)."""

    max_white = max((int(v) for v in white_levels), default=0)
    if max_white <= 0:
        return 16
    return int(max_white).bit_length()


@dataclass(frozen=True)
class RawFrame:
    """One decoded RGGB mosaic plus the calibration needed to color it."""

    width: int
    height: int
    samples: np.ndarray
    bits_per_sample: int
    wb_coeffs: tuple[float, float, float, float]
    black_levels: tuple[int, int, int, int]
    white_levels: tuple[int, int, int, int]
    cam_to_xyz: tuple[tuple[float, float, float, float], ...]

    def __post_init__(self) -> None:
        width = int(self.width)
        height = int(self.height)
        if width < 0 or height < 0:
            raise ValueError(f"dimensions must not be negative: {width}x{height}")
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)

        samples = _readonly(self.samples, np.uint16)
        if samples.size != width * height:
            raise ValueError(f"expected {width * height} samples for {width}x{height}, got {samples.size}")
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "bits_per_sample", int(self.bits_per_sample))

        wb = tuple(float(v) for v in self.wb_coeffs)
        black = tuple(int(v) for v in self.black_levels)
        white = tuple(int(v) for v in self.white_levels)
        if len(wb) != 4 or len(black) != 4 or len(white) != 4:
            raise ValueError("wb_coeffs, black_levels and white_levels must have 4 entries each")
        if wb[1] == 0.0:
            raise ValueError("green white-balance coefficient must be nonzero")
        for c in range(4):
            if not 0 <= black[c] <= 0xFFFF or not 0 <= white[c] <= 0xFFFF:
                raise ValueError(f"levels must fit in 16 bits: black={black} white={white}")
            if white[c] <= black[c]:
                raise ValueError(f"white level must exceed black level on channel {c}: {white[c]} <= {black[c]}")
        object.__setattr__(self, "wb_coeffs", wb)
        object.__setattr__(self, "black_levels", black)
        object.__setattr__(self, "white_levels", white)

        matrix = np.asarray(self.cam_to_xyz, dtype=np.float64)
        if matrix.shape != (3, 4):
            raise ValueError(f"cam_to_xyz must be 3x4, got {matrix.shape}")
        object.__setattr__(self, "cam_to_xyz", tuple(tuple(float(v) for v in row) for row in matrix))

    def mosaic(self) -> np.ndarray:
        return self.samples.reshape(self.height, self.width)


def identity_cam_to_xyz() -> tuple[tuple[float, float, float, float], ...]:
    return (
        (1.0, 0.0, 0.0, 0.0),
        (0.0, 1.0, 0.0, 0.0),
        (0.0, 0.0, 1.0, 0.0),
    )
