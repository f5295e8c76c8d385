from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class RgbFrame:
    """Debayered, color-corrected 16-bit image; samples interleaved R, G, B."""

    width: int
    height: int
    samples: np.ndarray
    bits_per_sample: int = 16

    def __post_init__(self) -> None:
        width = int(self.width)
        height = int(self.height)
        samples = np.array(self.samples, dtype=np.uint16, copy=True).ravel()
        if samples.size != width * height * 3:
            raise ValueError(f"expected {width * height * 3} samples for {width}x{height} RGB, got {samples.size}")
        if int(self.bits_per_sample) != 16:
            raise ValueError(f"RGB frames are always 16-bit, got {self.bits_per_sample}")
        samples.setflags(write=False)
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "bits_per_sample", 16)

    def image(self) -> np.ndarray:
        return self.samples.reshape(self.height, self.width, 3)
