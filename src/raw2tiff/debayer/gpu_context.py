from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterator

from raw2tiff.errors import DeviceError


logger = logging.getLogger(__name__)


def import_cupy() -> Any:
    try:
        import cupy  # type: ignore
    except Exception as exc:
        raise DeviceError("context", f"CuPy is required for GPU backends: pip install '.[gpu]' ({exc})") from exc
    return cupy


@contextmanager
def device_stage(stage: str) -> Iterator[None]:
    """Translate any CUDA/CuPy failure inside the block into ``DeviceError(stage)``."""

    try:
        yield
    except DeviceError:
        raise
    except Exception as exc:
        raise DeviceError(stage, str(exc) or type(exc).__name__) from exc


def gpu_available() -> bool:
    try:
        import cupy  # type: ignore

        return int(cupy.cuda.runtime.getDeviceCount()) > 0
    except Exception:
        return False


class GpuContext:
    """Owns one CUDA device and its default stream for the lifetime of the backends using it.

    Created once, passed to every GPU backend, and closed by whoever created it.
    """

    def __init__(self, device_id: int = 0) -> None:
        cp = import_cupy()
        self._cp = cp
        self.device_id = int(device_id)
        with device_stage("context"):
            self.device = cp.cuda.Device(self.device_id)
            self.device.use()
            self.stream = cp.cuda.Stream.null
            props = cp.cuda.runtime.getDeviceProperties(self.device_id)
        name = props.get("name", b"")
        self.device_name = name.decode("utf-8", errors="replace") if isinstance(name, bytes) else str(name)
        self._closed = False
        logger.info(
            "CUDA context ready device=%d (%s) compute=%s",
            self.device_id,
            self.device_name,
            self.device.compute_capability,
        )

    @property
    def cupy(self) -> Any:
        return self._cp

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_open(self) -> None:
        if self._closed:
            raise DeviceError("context", "GPU context has been closed")

    def synchronize(self) -> None:
        with device_stage("synchronize"):
            self.stream.synchronize()

    def close(self) -> None:
        if self._closed:
            return
        try:
            with self.device:
                self.synchronize()
                self._cp.get_default_memory_pool().free_all_blocks()
                self._cp.get_default_pinned_memory_pool().free_all_blocks()
        finally:
            self._closed = True
            logger.debug("CUDA context device=%d closed", self.device_id)

    def __enter__(self) -> "GpuContext":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
