from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Sequence

import numpy as np

from raw2tiff.config import DebayerBackendKind
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import ConversionError

from .base import DebayerBackend
from .cpu import CpuDebayer
from .types import RgbFrame


logger = logging.getLogger(__name__)

# One 8-bit step expressed in 16-bit units.
PARITY_TOLERANCE = 257

# Border rows/columns excluded for backends whose edge handling is not reflect-101.
INTERIOR_MARGIN = 2


@dataclass
class BackendParity:
    backend: str
    max_abs_diff: int | None = None
    interior_only: bool = False
    error: str | None = None

    @property
    def within_tolerance(self) -> bool:
        return self.error is None and self.max_abs_diff is not None and self.max_abs_diff <= PARITY_TOLERANCE

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "max_abs_diff": self.max_abs_diff,
            "interior_only": self.interior_only,
            "within_tolerance": self.within_tolerance,
            "error": self.error,
        }


@dataclass
class ParityReport:
    width: int
    height: int
    tolerance: int = PARITY_TOLERANCE
    results: list[BackendParity] = field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "tolerance": self.tolerance,
            "results": [r.to_json_dict() for r in self.results],
        }


def max_abs_diff(a: RgbFrame, b: RgbFrame, margin: int = 0) -> int:
    if (a.width, a.height) != (b.width, b.height):
        raise ValueError(f"frame size mismatch: {a.width}x{a.height} vs {b.width}x{b.height}")
    x = a.image().astype(np.int32)
    y = b.image().astype(np.int32)
    if margin > 0:
        if a.height <= 2 * margin or a.width <= 2 * margin:
            return 0
        x = x[margin:-margin, margin:-margin]
        y = y[margin:-margin, margin:-margin]
    if x.size == 0:
        return 0
    return int(np.abs(x - y).max())


def compare_backends(frame: RawFrame, backends: Sequence[DebayerBackend]) -> ParityReport:
    """Run ``frame`` through each backend and measure it against the CPU reference.

    A backend that raises is reported with its error instead of aborting the report.
    """

    reference = CpuDebayer().process(frame)
    report = ParityReport(width=frame.width, height=frame.height)
    for backend in backends:
        interior = backend.name == DebayerBackendKind.GPU_VENDOR_PRIMITIVE.value
        entry = BackendParity(backend=backend.name, interior_only=interior)
        try:
            out = backend.process(frame)
            entry.max_abs_diff = max_abs_diff(reference, out, margin=INTERIOR_MARGIN if interior else 0)
        except ConversionError as exc:
            logger.warning("backend %s failed during parity check: %s", backend.name, exc)
            entry.error = str(exc)
        else:
            logger.info("backend %s max abs diff vs cpu: %d", backend.name, entry.max_abs_diff)
        report.results.append(entry)
    return report
