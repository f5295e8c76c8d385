from __future__ import annotations

import logging
import threading

import numpy as np

from raw2tiff.color import ColorPipeline
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import DemosaicError

from .bilinear import prepare_mosaic
from .cuda_kernel import BLOCK, COMPILE_OPTIONS, KERNEL_NAME, KERNEL_SOURCE
from .gpu_context import GpuContext, device_stage
from .types import RgbFrame


logger = logging.getLogger(__name__)


class CudaDebayer:
    """Single fused CUDA kernel: bilinear RGGB interpolation plus the linear color math.

    The kernel writes float32 RGB; clamping and truncation to 16 bits happen on
    the host after the copy back.
    """

    name = "gpu_custom_kernel"

    def __init__(self, context: GpuContext) -> None:
        context.ensure_open()
        self.context = context
        self._lock = threading.Lock()
        cp = context.cupy
        with context.device, device_stage("module_load"):
            self._module = cp.RawModule(code=KERNEL_SOURCE, options=COMPILE_OPTIONS)
            self._kernel = self._module.get_function(KERNEL_NAME)
        logger.info("loaded CUDA kernel %s", KERNEL_NAME)

    def process(self, frame: RawFrame) -> RgbFrame:
        self.context.ensure_open()
        mosaic = prepare_mosaic(frame)
        if frame.width < 2 or frame.height < 2:
            raise DemosaicError(f"mosaic {frame.width}x{frame.height} is too small to interpolate")

        params = ColorPipeline(frame).kernel_params()
        cp = self.context.cupy
        width = frame.width
        height = frame.height
        logger.info("CUDA debayer %dx%d bits=%d", width, height, frame.bits_per_sample)

        with self._lock, self.context.device:
            d_bayer = d_rgb = d_matrix = None
            try:
                with device_stage("htod"):
                    d_bayer = cp.asarray(np.ascontiguousarray(mosaic, dtype=np.uint16))
                    d_matrix = cp.asarray(params.matrix_flat())
                with device_stage("alloc"):
                    d_rgb = cp.empty(width * height * 3, dtype=cp.float32)

                grid = ((width + BLOCK - 1) // BLOCK, (height + BLOCK - 1) // BLOCK)
                with device_stage("launch"):
                    self._kernel(
                        grid,
                        (BLOCK, BLOCK),
                        (
                            d_bayer,
                            d_rgb,
                            np.int32(width),
                            np.int32(height),
                            np.float32(params.wb[0]),
                            np.float32(params.wb[1]),
                            np.float32(params.wb[2]),
                            np.float32(params.black[0]),
                            np.float32(params.black[1]),
                            np.float32(params.black[2]),
                            np.float32(params.range),
                            d_matrix,
                        ),
                        stream=self.context.stream,
                    )
                self.context.synchronize()
                with device_stage("dtoh"):
                    host = cp.asnumpy(d_rgb, stream=self.context.stream)
                    self.context.stream.synchronize()
            finally:
                del d_bayer, d_rgb, d_matrix

        out = ColorPipeline.quantize(host.reshape(height, width, 3))
        return RgbFrame(width=width, height=height, samples=out)

    def __repr__(self) -> str:
        return f"CudaDebayer(device={self.context.device_id})"

