from __future__ import annotations

import logging

import pytest

from raw2tiff.debayer import npp
from raw2tiff.errors import DemosaicError, DeviceError


def test_negative_status_raises_device_error() -> None:
    with pytest.raises(DeviceError) as excinfo:
        npp.check_status("color_twist", -4)
    err = excinfo.value
    assert err.stage == "color_twist"
    assert err.status == -4
    assert "color_twist" in str(err)
    assert isinstance(err, DemosaicError)


def test_positive_status_only_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="raw2tiff.debayer.npp"):
        npp.check_status("debayer", 6)
    assert "debayer" in caplog.text


def test_success_status_is_silent(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="raw2tiff.debayer.npp"):
        npp.check_status("convert", npp.NPP_NO_ERROR)
    assert caplog.text == ""


def test_twist_matrix_is_host_resident_3x4() -> None:
    rows = [[1.0, 2.0, 3.0, 4.0], [5.0, 6.0, 7.0, 8.0], [9.0, 10.0, 11.0, 12.0]]
    twist = npp.twist_matrix(rows)
    assert [list(row) for row in twist] == rows
    with pytest.raises(ValueError):
        npp.twist_matrix([[1.0, 2.0, 3.0]] * 3)


def test_floats3_requires_three_channels() -> None:
    assert list(npp.floats3([1, 2, 3])) == [1.0, 2.0, 3.0]
    with pytest.raises(ValueError):
        npp.floats3([1.0, 2.0])


def test_missing_library_raises_load_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(name: str):
        raise DeviceError("load_library", f"could not load NPP library {name}")

    monkeypatch.setattr(npp, "_loaded", None)
    monkeypatch.setattr(npp, "_open_library", _fail)

    with pytest.raises(DeviceError) as excinfo:
        npp.load_npp()
    assert excinfo.value.stage == "load_library"
    assert npp.npp_available() is False


class _FakeFunc:
    def __init__(self) -> None:
        self.argtypes = None
        self.restype = None
        self.calls: list[tuple] = []

    def __call__(self, *args):
        self.calls.append(args)
        return 0


class _FakeLib:
    def __init__(self) -> None:
        self.funcs: dict[str, _FakeFunc] = {}

    def __getattr__(self, name: str) -> _FakeFunc:
        return self.funcs.setdefault(name, _FakeFunc())


def test_bindings_pass_rggb_roi_and_constants() -> None:
    libs = {name: _FakeLib() for name in ("nppc", "nppicc", "nppial", "nppidei", "nppitc")}
    lib = npp.NppLibrary(libs)
    size = npp.NppiSize(6, 4)

    assert lib.cfa_to_rgb_16u(100, 12, size, 200, 36) == 0
    args = libs["nppicc"].funcs["nppiCFAToRGB_16u_C1C3R"].calls[0]
    roi = args[3]
    assert (roi.x, roi.y, roi.width, roi.height) == (0, 0, 6, 4)
    assert args[6] == npp.NPPI_BAYER_RGGB
    assert args[7] == npp.NPPI_INTER_UNDEFINED

    lib.mul_c_32f_c3_inplace([0.5, 0.25, 0.125], 300, 72, size)
    consts = libs["nppial"].funcs["nppiMulC_32f_C3IR"].calls[0][0]
    assert list(consts) == [0.5, 0.25, 0.125]
