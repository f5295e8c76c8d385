from .base import DebayerBackend
from .bilinear import demosaic_rggb_bilinear, interpolation_dtype, prepare_mosaic
from .cpu import CpuDebayer
from .factory import create_backend, requires_gpu
from .gpu_context import GpuContext, gpu_available
from .parity import PARITY_TOLERANCE, ParityReport, compare_backends, max_abs_diff
from .types import RgbFrame

__all__ = [
    "DebayerBackend",
    "demosaic_rggb_bilinear",
    "interpolation_dtype",
    "prepare_mosaic",
    "CpuDebayer",
    "create_backend",
    "requires_gpu",
    "GpuContext",
    "gpu_available",
    "PARITY_TOLERANCE",
    "ParityReport",
    "compare_backends",
    "max_abs_diff",
    "RgbFrame",
]
