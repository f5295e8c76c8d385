from __future__ import annotations

import logging

from raw2tiff.config import DebayerBackendKind
from raw2tiff.errors import DeviceError

from .base import DebayerBackend
from .cpu import CpuDebayer
from .gpu_context import GpuContext


logger = logging.getLogger(__name__)


def create_backend(kind: DebayerBackendKind | str, context: GpuContext | None = None) -> DebayerBackend:
    """Build the backend for ``kind``. GPU backends need a context owned by the caller."""

    kind = DebayerBackendKind(kind)
    if kind is DebayerBackendKind.CPU:
        return CpuDebayer()

    if context is None:
        raise DeviceError("context", f"backend {kind.value} requires a GpuContext")

    if kind is DebayerBackendKind.GPU_CUSTOM_KERNEL:
        from .cuda import CudaDebayer

        return CudaDebayer(context)

    from .npp_debayer import NppDebayer

    return NppDebayer(context)


def requires_gpu(kind: DebayerBackendKind | str) -> bool:
    return DebayerBackendKind(kind) is not DebayerBackendKind.CPU
