from __future__ import annotations

import enum
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Callable

from raw2tiff.color import ColorPipeline
from raw2tiff.config import PipelineConfig
from raw2tiff.debayer.base import DebayerBackend
from raw2tiff.debayer.factory import create_backend, requires_gpu
from raw2tiff.debayer.gpu_context import GpuContext
from raw2tiff.debayer.types import RgbFrame
from raw2tiff.decode.base import Decoder
from raw2tiff.decode.types import RawFrame
from raw2tiff.errors import ConversionError, InvalidDimensions
from raw2tiff.utils.timing import PipelineTimings, Timer
from raw2tiff.write.base import Encoder


logger = logging.getLogger(__name__)


class ConversionState(str, enum.Enum):
    IDLE = "idle"
    DECODING = "decoding"
    VALIDATING = "validating"
    DEBAYERING = "debayering"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


class RawToTiffConverter:
    """Decode -> validate -> debayer (optional) -> encode, one frame per call.

    Decoder, encoder and backend are created lazily from ``config`` unless
    injected. A GPU backend uses ``context`` when given; otherwise the
    converter opens its own context and ``close()`` releases it.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        decoder: Decoder | None = None,
        encoder: Encoder | None = None,
        backend: DebayerBackend | None = None,
        context: GpuContext | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self._decoder = decoder
        self._encoder = encoder
        self._backend = backend
        self._context = context
        self._owns_context = False
        self.state = ConversionState.IDLE
        self.timings = PipelineTimings()
        self.color_version: str | None = None

    @property
    def decoder(self) -> Decoder:
        if self._decoder is None:
            from raw2tiff.decode.libraw_decoder import LibRawDecoder

            self._decoder = LibRawDecoder()
        return self._decoder

    @property
    def encoder(self) -> Encoder:
        if self._encoder is None:
            from raw2tiff.write.tiff_writer import TiffEncoder

            self._encoder = TiffEncoder()
        return self._encoder

    @property
    def backend(self) -> DebayerBackend:
        if self._backend is None:
            kind = self.config.backend
            if requires_gpu(kind) and self._context is None:
                self._context = GpuContext()
                self._owns_context = True
            self._backend = create_backend(kind, self._context)
            logger.info("selected debayer backend %s", self._backend.name)
        return self._backend

    def validate_dimensions(self, width: int, height: int) -> None:
        if not self.config.validate_dimensions:
            return
        if width <= 0 or height <= 0:
            raise InvalidDimensions(width, height, self.config.max_dimension)
        limit = self.config.max_dimension
        if limit is not None and (width > limit or height > limit):
            raise InvalidDimensions(width, height, limit)

    def _run_stage(
        self, state: ConversionState, name: str, timings: PipelineTimings, fn: Callable[..., Any], *args: Any
    ) -> Any:
        self.state = state
        try:
            with Timer(name, timings):
                return fn(*args)
        except Exception:
            self.state = ConversionState.FAILED
            logger.error("conversion failed at stage %s", name)
            raise

    # Collaborators are resolved lazily inside their own stage.
    def _decode(self, data: bytes) -> RawFrame:
        return self.decoder.decode(data)

    def _debayer(self, frame: RawFrame) -> RgbFrame:
        self.color_version = ColorPipeline(frame).version_hash()
        return self.backend.process(frame)

    def _encode_rgb(self, frame: RgbFrame) -> bytes:
        return self.encoder.encode_rgb(frame, self.config)

    def _encode_gray(self, frame: RawFrame) -> bytes:
        return self.encoder.encode_gray(frame, self.config)

    def convert_with_timings(self, data: bytes) -> tuple[bytes, PipelineTimings]:
        timings = PipelineTimings()
        self.timings = timings
        self.color_version = None

        frame: RawFrame = self._run_stage(ConversionState.DECODING, "decode_raw", timings, self._decode, data)
        logger.debug("decoded %dx%d bits=%d", frame.width, frame.height, frame.bits_per_sample)

        if self.config.validate_dimensions:
            self._run_stage(
                ConversionState.VALIDATING,
                "validate_dimensions",
                timings,
                self.validate_dimensions,
                frame.width,
                frame.height,
            )

        if self.config.debayer:
            rgb = self._run_stage(ConversionState.DEBAYERING, "debayer", timings, self._debayer, frame)
            encoded = self._run_stage(ConversionState.ENCODING, "encode_tiff", timings, self._encode_rgb, rgb)
        else:
            encoded = self._run_stage(ConversionState.ENCODING, "encode_tiff", timings, self._encode_gray, frame)

        self.state = ConversionState.DONE
        for name, seconds in timings.pairs():
            logger.info("stage %s took %.3fms", name, seconds * 1000.0)
        return encoded, timings

    def convert(self, data: bytes) -> bytes:
        encoded, _ = self.convert_with_timings(data)
        return encoded

    def convert_file(self, input_path: str | Path, output_path: str | Path) -> PipelineTimings:
        """Convert one file; the output appears only once it is completely written."""

        src = Path(input_path).expanduser()
        dst = Path(output_path).expanduser()
        try:
            data = src.read_bytes()
        except OSError as exc:
            self.state = ConversionState.FAILED
            raise ConversionError(f"cannot read {src}: {exc}") from exc

        encoded, timings = self.convert_with_timings(data)

        dst.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".tmp", dir=dst.parent)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(encoded)
            os.replace(tmp, dst)
        except Exception:
            tmp.unlink(missing_ok=True)
            self.state = ConversionState.FAILED
            raise
        logger.info("wrote %s (%d bytes)", dst, len(encoded))
        return timings

    def close(self) -> None:
        if self._owns_context and self._context is not None:
            self._context.close()
            self._context = None
            self._owns_context = False
            self._backend = None

    def __enter__(self) -> "RawToTiffConverter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def convert_file(
    input_path: str | Path, output_path: str | Path, config: PipelineConfig | None = None
) -> PipelineTimings:
    with RawToTiffConverter(config) as converter:
        return converter.convert_file(input_path, output_path)
