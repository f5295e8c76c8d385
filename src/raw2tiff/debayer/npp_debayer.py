from __future__ import annotations

import logging
import threading

import numpy as np

from raw2tiff.color import ColorPipeline
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import DemosaicError

from .bilinear import prepare_mosaic
from .gpu_context import GpuContext, device_stage
from .npp import NppiSize, NppLibrary, check_status, load_npp
from .types import RgbFrame


logger = logging.getLogger(__name__)


class NppDebayer:
    """Debayer and color-correct with a chain of NPP primitives.

    Passes, all on device memory:
    CFAToRGB (16u) -> Convert 16u->32f -> SubC black -> Threshold_LTVal at 0
    -> MulC wb/range -> ColorTwist 3x4 (twist read from host memory).
    """

    name = "gpu_vendor_primitive"

    def __init__(self, context: GpuContext, npp: NppLibrary | None = None) -> None:
        context.ensure_open()
        self.context = context
        self.npp = npp if npp is not None else load_npp()
        self._lock = threading.Lock()

    def process(self, frame: RawFrame) -> RgbFrame:
        self.context.ensure_open()
        mosaic = prepare_mosaic(frame)
        width = frame.width
        height = frame.height
        if width < 2 or height < 2:
            raise DemosaicError(f"mosaic {width}x{height} is too small to interpolate")

        params = ColorPipeline(frame).kernel_params()
        scale = [np.float32(w) / np.float32(params.range) for w in params.wb]
        cp = self.context.cupy
        size = NppiSize(width, height)
        step_u16 = width * 2
        step_u16_c3 = width * 3 * 2
        step_f32_c3 = width * 3 * 4
        logger.info("NPP debayer %dx%d bits=%d", width, height, frame.bits_per_sample)

        with self._lock, self.context.device:
            d_bayer = d_rgb16 = d_rgb = None
            try:
                with device_stage("htod"):
                    d_bayer = cp.asarray(np.ascontiguousarray(mosaic, dtype=np.uint16))
                with device_stage("alloc"):
                    d_rgb16 = cp.empty(width * height * 3, dtype=cp.uint16)
                    d_rgb = cp.empty(width * height * 3, dtype=cp.float32)

                rgb = d_rgb.data.ptr
                check_status(
                    "debayer",
                    self.npp.cfa_to_rgb_16u(d_bayer.data.ptr, step_u16, size, d_rgb16.data.ptr, step_u16_c3),
                )
                check_status(
                    "convert",
                    self.npp.convert_16u32f_c3(d_rgb16.data.ptr, step_u16_c3, rgb, step_f32_c3, size),
                )
                check_status(
                    "subtract_black",
                    self.npp.sub_c_32f_c3_inplace(params.black, rgb, step_f32_c3, size),
                )
                check_status(
                    "clamp_black",
                    self.npp.threshold_lt_val_32f_c3_inplace(rgb, step_f32_c3, size, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
                )
                check_status(
                    "scale_white_balance",
                    self.npp.mul_c_32f_c3_inplace(scale, rgb, step_f32_c3, size),
                )
                check_status(
                    "color_twist",
                    self.npp.color_twist_32f_c3_inplace(rgb, step_f32_c3, size, params.matrix.tolist()),
                )

                self.context.synchronize()
                with device_stage("dtoh"):
                    host = cp.asnumpy(d_rgb, stream=self.context.stream)
                    self.context.stream.synchronize()
            finally:
                del d_bayer, d_rgb16, d_rgb

        out = ColorPipeline.quantize(host.reshape(height, width, 3))
        return RgbFrame(width=width, height=height, samples=out)

    def __repr__(self) -> str:
        return f"NppDebayer(device={self.context.device_id})"
