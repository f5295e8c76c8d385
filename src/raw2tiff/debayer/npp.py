"""Thin ctypes bindings for the NPP image primitives used by ``NppDebayer``.

Only pointer/step/size plumbing lives here; every function returns the raw
``NppStatus`` integer and ``check_status`` turns it into ``DeviceError``.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import threading
from typing import Any, Sequence

from raw2tiff.errors import DeviceError


logger = logging.getLogger(__name__)

NPP_NO_ERROR = 0

# NppiBayerGridPosition
NPPI_BAYER_BGGR = 0
NPPI_BAYER_RGGB = 1
NPPI_BAYER_GBRG = 2
NPPI_BAYER_GRBG = 3

# NppiInterpolationMode
NPPI_INTER_UNDEFINED = 0

_LIBRARY_NAMES = ("nppc", "nppicc", "nppial", "nppidei", "nppitc")
_CUDA_MAJORS = ("13", "12", "11")

_load_lock = threading.Lock()
_loaded: "NppLibrary | None" = None


class NppiSize(ctypes.Structure):
    _fields_ = [("width", ctypes.c_int), ("height", ctypes.c_int)]


class NppiRect(ctypes.Structure):
    _fields_ = [
        ("x", ctypes.c_int),
        ("y", ctypes.c_int),
        ("width", ctypes.c_int),
        ("height", ctypes.c_int),
    ]


Npp32f3 = ctypes.c_float * 3
Npp32fTwist = (ctypes.c_float * 4) * 3


def check_status(stage: str, status: int) -> None:
    """Raise on NPP errors (negative status), log warnings (positive status)."""

    status = int(status)
    if status < NPP_NO_ERROR:
        raise DeviceError(stage, "NPP primitive returned an error", status=status)
    if status > NPP_NO_ERROR:
        logger.warning("NPP %s returned warning status %d", stage, status)


def floats3(values: Sequence[float]) -> Any:
    if len(values) != 3:
        raise ValueError(f"expected 3 per-channel constants, got {len(values)}")
    return Npp32f3(*(float(v) for v in values))


def twist_matrix(matrix: Any) -> Any:
    """3x4 host-resident twist array; NPP reads it from host memory, not device memory."""

    rows = [[float(v) for v in row] for row in matrix]
    if len(rows) != 3 or any(len(row) != 4 for row in rows):
        raise ValueError("color twist must be 3x4")
    twist = Npp32fTwist()
    for r in range(3):
        for c in range(4):
            twist[r][c] = rows[r][c]
    return twist


def _open_library(name: str) -> ctypes.CDLL:
    candidates = []
    found = ctypes.util.find_library(name)
    if found:
        candidates.append(found)
    candidates.append(f"lib{name}.so")
    candidates.extend(f"lib{name}.so.{major}" for major in _CUDA_MAJORS)

    errors = []
    for candidate in candidates:
        try:
            return ctypes.CDLL(candidate)
        except OSError as exc:
            errors.append(f"{candidate}: {exc}")
    raise DeviceError("load_library", f"could not load NPP library {name}: {'; '.join(errors)}")


class NppLibrary:
    """Resolved NPP entry points with their C signatures."""

    def __init__(self, libs: dict[str, Any]) -> None:
        c_int = ctypes.c_int
        ptr = ctypes.c_void_p
        consts = ctypes.POINTER(ctypes.c_float)
        twist = ctypes.POINTER(ctypes.c_float * 4)

        self._cfa_to_rgb = libs["nppicc"].nppiCFAToRGB_16u_C1C3R
        self._cfa_to_rgb.argtypes = [ptr, c_int, NppiSize, NppiRect, ptr, c_int, c_int, c_int]
        self._cfa_to_rgb.restype = c_int

        self._convert = libs["nppidei"].nppiConvert_16u32f_C3R
        self._convert.argtypes = [ptr, c_int, ptr, c_int, NppiSize]
        self._convert.restype = c_int

        self._sub_c = libs["nppial"].nppiSubC_32f_C3IR
        self._sub_c.argtypes = [consts, ptr, c_int, NppiSize]
        self._sub_c.restype = c_int

        self._mul_c = libs["nppial"].nppiMulC_32f_C3IR
        self._mul_c.argtypes = [consts, ptr, c_int, NppiSize]
        self._mul_c.restype = c_int

        self._threshold_lt = libs["nppitc"].nppiThreshold_LTVal_32f_C3IR
        self._threshold_lt.argtypes = [ptr, c_int, NppiSize, consts, consts]
        self._threshold_lt.restype = c_int

        self._color_twist = libs["nppicc"].nppiColorTwist_32f_C3IR
        self._color_twist.argtypes = [ptr, c_int, NppiSize, twist]
        self._color_twist.restype = c_int

    def cfa_to_rgb_16u(
        self, src: int, src_step: int, size: NppiSize, dst: int, dst_step: int, grid: int = NPPI_BAYER_RGGB
    ) -> int:
        roi = NppiRect(0, 0, size.width, size.height)
        return self._cfa_to_rgb(src, src_step, size, roi, dst, dst_step, grid, NPPI_INTER_UNDEFINED)

    def convert_16u32f_c3(self, src: int, src_step: int, dst: int, dst_step: int, size: NppiSize) -> int:
        return self._convert(src, src_step, dst, dst_step, size)

    def sub_c_32f_c3_inplace(self, constants: Sequence[float], buf: int, step: int, size: NppiSize) -> int:
        return self._sub_c(floats3(constants), buf, step, size)

    def mul_c_32f_c3_inplace(self, constants: Sequence[float], buf: int, step: int, size: NppiSize) -> int:
        return self._mul_c(floats3(constants), buf, step, size)

    def threshold_lt_val_32f_c3_inplace(
        self, buf: int, step: int, size: NppiSize, thresholds: Sequence[float], values: Sequence[float]
    ) -> int:
        return self._threshold_lt(buf, step, size, floats3(thresholds), floats3(values))

    def color_twist_32f_c3_inplace(self, buf: int, step: int, size: NppiSize, matrix: Any) -> int:
        return self._color_twist(buf, step, size, twist_matrix(matrix))


def load_npp() -> NppLibrary:
    """Load the NPP shared libraries once per process."""

    global _loaded
    with _load_lock:
        if _loaded is None:
            libs = {name: _open_library(name) for name in _LIBRARY_NAMES}
            try:
                _loaded = NppLibrary(libs)
            except AttributeError as exc:
                raise DeviceError("load_library", f"NPP entry point missing: {exc}") from exc
            logger.info("NPP libraries loaded")
        return _loaded


def npp_available() -> bool:
    try:
        load_npp()
    except DeviceError:
        return False
    return True
