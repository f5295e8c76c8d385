from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from raw2tiff import cli
from raw2tiff.decode import libraw_decoder
from raw2tiff.decode.types import RawFrame, identity_cam_to_xyz

tifffile = pytest.importorskip("tifffile")


class _FakeDecoder:
    def decode(self, data: bytes) -> RawFrame:
        return RawFrame(
            width=6,
            height=4,
            samples=np.full(24, 2000, dtype=np.uint16),
            bits_per_sample=12,
            wb_coeffs=(2.0, 1.0, 1.5, 1.0),
            black_levels=(64, 64, 64, 64),
            white_levels=(4095, 4095, 4095, 4095),
            cam_to_xyz=identity_cam_to_xyz(),
        )


def test_convert_writes_rgb_tiff(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(libraw_decoder, "LibRawDecoder", _FakeDecoder)
    src = tmp_path / "frame.arw"
    src.write_bytes(b"raw")
    out = tmp_path / "frame.tiff"

    rc = cli.main(["convert", str(src), "--out", str(out), "--compression", "none", "--json"])
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["output"] == str(out.resolve())
    assert payload["backend"] == "cpu"
    assert len(payload["color_version"]) == 16
    assert [s["name"] for s in payload["timings"]["steps"]] == [
        "decode_raw",
        "validate_dimensions",
        "debayer",
        "encode_tiff",
    ]

    arr = tifffile.imread(str(out))
    assert arr.shape == (4, 6, 3)
    assert arr.dtype == np.uint16


def test_convert_no_debayer_writes_grayscale(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(libraw_decoder, "LibRawDecoder", _FakeDecoder)
    src = tmp_path / "frame.arw"
    src.write_bytes(b"raw")

    rc = cli.main(["convert", str(src), "--no-debayer", "--compression", "deflate_fast"])
    assert rc == 0
    arr = tifffile.imread(str(tmp_path / "frame.tiff"))
    assert arr.shape == (4, 6)
    assert np.all(arr == 2000)


def test_convert_reports_errors(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    rc = cli.main(["convert", str(tmp_path / "missing.arw")])
    assert rc == 1
    assert "error:" in capsys.readouterr().err
