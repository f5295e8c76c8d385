from __future__ import annotations

import numpy as np


# XYZ -> linear sRGB, D65 reference white (IEC 61966-2-1).
XYZ_TO_SRGB_D65 = np.array(
    [
        [3.2404542, -1.5371385, -0.4985314],
        [-0.9692660, 1.8760108, 0.0415560],
        [0.0556434, -0.2040259, 1.0572252],
    ],
    dtype=np.float32,
)

# Fixed exposure folded into every entry of the combined matrix.
EXPOSURE = np.float32(3.5)


def cam_to_srgb_matrix(cam_to_xyz: object) -> np.ndarray:
    """Combined 3x4 camera -> sRGB matrix with the exposure multiplier applied.

    The fourth (offset) column goes through XYZ_TO_SRGB like the others.
    """

    cam = np.asarray(cam_to_xyz, dtype=np.float32)
    if cam.shape != (3, 4):
        raise ValueError(f"cam_to_xyz must be 3x4, got {cam.shape}")
    combined = (XYZ_TO_SRGB_D65 @ cam).astype(np.float32)
    return (combined * EXPOSURE).astype(np.float32)
