from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
from typing import Any

import numpy as np

from raw2tiff.decode.types import RawFrame

from .primaries import EXPOSURE, cam_to_srgb_matrix


U16_MAX = 65535.0


@dataclass(frozen=True)
class KernelParams:
    """Per-frame scalars shared by every backend, already in float32."""

    black: tuple[float, float, float]
    range: float
    wb: tuple[float, float, float]
    matrix: np.ndarray

    def matrix_flat(self) -> np.ndarray:
        return np.ascontiguousarray(self.matrix.reshape(12), dtype=np.float32)


class ColorPipeline:
    """Black level, normalization, white balance, camera->sRGB matrix and quantization.

    Every backend reproduces these steps in the same order; this class is the
    numpy rendition and also hands the GPU backends their launch parameters.

    Normalization uses the channel-0 black/white span for all three channels.
    """

    def __init__(self, frame: RawFrame) -> None:
        self.frame = frame
        black = frame.black_levels
        white = frame.white_levels
        wb = frame.wb_coeffs

        self._black = np.array([black[0], black[1], black[2]], dtype=np.float32)
        self._range = np.float32(max(1.0, float(white[0]) - float(black[0])))
        self._wb = np.array(
            [np.float32(wb[0]) / np.float32(wb[1]), 1.0, np.float32(wb[2]) / np.float32(wb[1])],
            dtype=np.float32,
        )
        self._matrix = cam_to_srgb_matrix(frame.cam_to_xyz)

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    def kernel_params(self) -> KernelParams:
        return KernelParams(
            black=tuple(float(v) for v in self._black),
            range=float(self._range),
            wb=tuple(float(v) for v in self._wb),
            matrix=self._matrix.copy(),
        )

    def linearize(self, rgb_raw: np.ndarray) -> np.ndarray:
        x = np.asarray(rgb_raw).astype(np.float32)
        x = np.maximum(x - self._black, np.float32(0.0))
        x = x / self._range
        return x * self._wb

    def transform(self, linear: np.ndarray) -> np.ndarray:
        x = np.asarray(linear, dtype=np.float32)
        m = self._matrix
        out = np.empty_like(x)
        for row in range(3):
            out[..., row] = (
                m[row, 0] * x[..., 0] + m[row, 1] * x[..., 1] + m[row, 2] * x[..., 2] + m[row, 3]
            )
        return out

    @staticmethod
    def quantize(rgb: np.ndarray) -> np.ndarray:
        x = np.nan_to_num(np.asarray(rgb, dtype=np.float32), nan=0.0, posinf=1.0, neginf=0.0)
        x = np.clip(x, 0.0, 1.0) * np.float32(U16_MAX)
        # astype truncates toward zero; values are non-negative here
        return x.astype(np.uint16)

    def apply(self, rgb_raw: np.ndarray) -> np.ndarray:
        return self.quantize(self.transform(self.linearize(rgb_raw)))

    def version_hash(self) -> str:
        payload: dict[str, Any] = {
            "black_levels": list(self.frame.black_levels),
            "white_levels": list(self.frame.white_levels),
            "wb_coeffs": [float(v) for v in self.frame.wb_coeffs],
            "cam_to_xyz": [[float(v) for v in row] for row in self.frame.cam_to_xyz],
            "exposure": float(EXPOSURE),
        }
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.sha256(blob).hexdigest()[:16]
