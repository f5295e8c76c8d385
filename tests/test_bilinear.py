from __future__ import annotations

import numpy as np
import pytest

from raw2tiff.debayer.bilinear import demosaic_rggb_bilinear, interpolation_dtype, prepare_mosaic
from raw2tiff.decode.types import RawFrame, identity_cam_to_xyz
from raw2tiff.errors import DemosaicError, UnsupportedFormat


def _mosaic_4x4() -> np.ndarray:
    return np.array(
        [
            [10, 20, 30, 40],
            [50, 60, 70, 80],
            [90, 100, 110, 120],
            [130, 140, 150, 160],
        ],
        dtype=np.uint16,
    )


def _frame(samples: np.ndarray, bits: int) -> RawFrame:
    h, w = samples.shape
    return RawFrame(
        width=w,
        height=h,
        samples=samples,
        bits_per_sample=bits,
        wb_coeffs=(1.0, 1.0, 1.0, 1.0),
        black_levels=(0, 0, 0, 0),
        white_levels=(65535, 65535, 65535, 65535),
        cam_to_xyz=identity_cam_to_xyz(),
    )


def test_bilinear_keeps_site_samples_and_fills_neighbours() -> None:
    rgb = demosaic_rggb_bilinear(_mosaic_4x4())
    assert rgb.shape == (4, 4, 3)
    assert rgb.dtype == np.uint16
    # red site
    assert rgb[0, 0].tolist() == [10, 35, 60]
    # blue site
    assert rgb[1, 1].tolist() == [60, 60, 60]
    # green on a red row
    assert rgb[0, 1].tolist() == [20, 20, 60]
    # green on a blue row
    assert rgb[1, 0].tolist() == [50, 50, 60]
    assert rgb[2, 1].tolist() == [100, 100, 100]


def test_bilinear_mirrors_borders_without_repeating_edge() -> None:
    rgb = demosaic_rggb_bilinear(_mosaic_4x4())
    assert rgb[3, 3].tolist() == [110, 135, 160]


def test_bilinear_truncates_integer_means() -> None:
    mosaic = np.array([[1, 2, 4], [8, 16, 32], [64, 128, 256]], dtype=np.uint16)
    rgb = demosaic_rggb_bilinear(mosaic)
    assert rgb[0, 1].tolist() == [2, 2, 16]
    assert rgb[1, 1].tolist() == [81, 42, 16]


def test_bilinear_uniform_channels_stay_uniform() -> None:
    mosaic = np.empty((6, 8), dtype=np.uint16)
    mosaic[0::2, 0::2] = 900
    mosaic[0::2, 1::2] = 500
    mosaic[1::2, 0::2] = 500
    mosaic[1::2, 1::2] = 100
    rgb = demosaic_rggb_bilinear(mosaic)
    assert np.all(rgb[..., 0] == 900)
    assert np.all(rgb[..., 1] == 500)
    assert np.all(rgb[..., 2] == 100)


def test_bilinear_rejects_tiny_mosaic() -> None:
    with pytest.raises(DemosaicError):
        demosaic_rggb_bilinear(np.zeros((1, 4), dtype=np.uint16))


def test_bilinear_rejects_wide_dtype() -> None:
    with pytest.raises(UnsupportedFormat):
        demosaic_rggb_bilinear(np.zeros((2, 2), dtype=np.uint32))


def test_interpolation_depth_follows_bits_per_sample() -> None:
    assert interpolation_dtype(8) == np.uint8
    assert interpolation_dtype(1) == np.uint8
    assert interpolation_dtype(12) == np.uint16
    assert interpolation_dtype(16) == np.uint16
    with pytest.raises(UnsupportedFormat):
        interpolation_dtype(0)
    with pytest.raises(UnsupportedFormat):
        interpolation_dtype(17)


def test_prepare_mosaic_saturates_for_eight_bit_sensors() -> None:
    samples = np.array([[10, 300], [255, 65535]], dtype=np.uint16)
    out = prepare_mosaic(_frame(samples, bits=8))
    assert out.dtype == np.uint8
    assert out.tolist() == [[10, 255], [255, 255]]


def test_prepare_mosaic_keeps_sixteen_bit_samples() -> None:
    samples = np.array([[10, 300], [4095, 65535]], dtype=np.uint16)
    out = prepare_mosaic(_frame(samples, bits=14))
    assert out.dtype == np.uint16
    assert out.tolist() == samples.tolist()
