from __future__ import annotations

import numpy as np
import pytest

from raw2tiff.debayer import PARITY_TOLERANCE, CpuDebayer, RgbFrame, compare_backends, max_abs_diff
from raw2tiff.debayer.gpu_context import gpu_available
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import DeviceError


def _random_frame(width: int = 64, height: int = 48, seed: int = 3) -> RawFrame:
    rng = np.random.default_rng(seed)
    return RawFrame(
        width=width,
        height=height,
        samples=rng.integers(0, 16384, size=width * height, dtype=np.uint16),
        bits_per_sample=14,
        wb_coeffs=(2.2, 1.0, 1.6, 1.0),
        black_levels=(512, 510, 514, 510),
        white_levels=(16383, 16383, 16383, 16383),
        cam_to_xyz=(
            (0.61, 0.25, 0.10, 0.0),
            (0.27, 0.80, -0.07, 0.0),
            (0.01, -0.12, 1.02, 0.0),
        ),
    )


class _OffsetBackend:
    """CPU output with one sample shifted, to exercise the comparison."""

    def __init__(self, name: str, delta: int, row: int = 0) -> None:
        self.name = name
        self.delta = delta
        self.row = row

    def process(self, frame: RawFrame) -> RgbFrame:
        img = CpuDebayer().process(frame).image().astype(np.int32)
        img[self.row, 0, 1] = min(65535, img[self.row, 0, 1] + self.delta)
        return RgbFrame(width=frame.width, height=frame.height, samples=img.astype(np.uint16))


class _FailingBackend:
    name = "broken"

    def process(self, frame: RawFrame) -> RgbFrame:
        raise DeviceError("launch", "out of resources", status=700)


def test_max_abs_diff_interior_margin() -> None:
    a = RgbFrame(width=6, height=6, samples=np.zeros((6, 6, 3), dtype=np.uint16))
    edge = np.zeros((6, 6, 3), dtype=np.uint16)
    edge[0, 0, 0] = 1000
    b = RgbFrame(width=6, height=6, samples=edge)
    assert max_abs_diff(a, b) == 1000
    assert max_abs_diff(a, b, margin=2) == 0


def test_compare_backends_reports_each_backend() -> None:
    frame = _random_frame(16, 12)
    report = compare_backends(
        frame,
        [_OffsetBackend("gpu_custom_kernel", 0), _OffsetBackend("gpu_vendor_primitive", 5000), _FailingBackend()],
    )
    custom, vendor, broken = report.results
    assert custom.max_abs_diff == 0 and custom.within_tolerance
    # the perturbed sample sits on the border the vendor comparison ignores
    assert vendor.interior_only
    assert vendor.max_abs_diff == 0
    assert broken.error is not None and not broken.within_tolerance
    assert report.to_json_dict()["tolerance"] == PARITY_TOLERANCE


gpu = pytest.mark.skipif(not gpu_available(), reason="CuPy with a CUDA device is required")


@gpu
def test_custom_kernel_matches_cpu() -> None:
    from raw2tiff.debayer.cuda import CudaDebayer
    from raw2tiff.debayer.gpu_context import GpuContext

    frame = _random_frame()
    with GpuContext() as ctx:
        out = CudaDebayer(ctx).process(frame)
    ref = CpuDebayer().process(frame)
    assert max_abs_diff(ref, out) <= PARITY_TOLERANCE


@gpu
def test_vendor_primitive_matches_cpu_interior() -> None:
    from raw2tiff.debayer.gpu_context import GpuContext
    from raw2tiff.debayer.npp import npp_available
    from raw2tiff.debayer.npp_debayer import NppDebayer

    if not npp_available():
        pytest.skip("NPP libraries are not installed")

    frame = _random_frame()
    with GpuContext() as ctx:
        out = NppDebayer(ctx).process(frame)
    ref = CpuDebayer().process(frame)
    assert max_abs_diff(ref, out, margin=2) <= PARITY_TOLERANCE
