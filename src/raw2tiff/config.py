from __future__ import annotations

from dataclasses import dataclass, field, replace
import enum
import math
from pathlib import Path
from typing import Any


class TiffCompression(str, enum.Enum):
    NONE = "none"
    LZW = "lzw"
    DEFLATE_FAST = "deflate_fast"
    DEFLATE_BALANCED = "deflate_balanced"
    DEFLATE_BEST = "deflate_best"


class Predictor(str, enum.Enum):
    NONE = "none"
    HORIZONTAL = "horizontal"


class DebayerBackendKind(str, enum.Enum):
    CPU = "cpu"
    GPU_CUSTOM_KERNEL = "gpu_custom_kernel"
    GPU_VENDOR_PRIMITIVE = "gpu_vendor_primitive"


DEFAULT_MAX_DIMENSION = 50000


@dataclass(frozen=True)
class PipelineConfig:
    compression: TiffCompression = TiffCompression.LZW
    predictor: Predictor = Predictor.HORIZONTAL
    validate_dimensions: bool = True
    max_dimension: int | None = DEFAULT_MAX_DIMENSION
    debayer: bool = True
    backend: DebayerBackendKind = DebayerBackendKind.CPU

    def __post_init__(self) -> None:
        if self.max_dimension is not None and (
            isinstance(self.max_dimension, bool) or int(self.max_dimension) <= 0
        ):
            raise ValueError(f"max_dimension must be a positive integer, got {self.max_dimension!r}")

    @staticmethod
    def builder() -> "PipelineConfigBuilder":
        return PipelineConfigBuilder()


class PipelineConfigBuilder:
    """Collects overrides and applies them on top of ``PipelineConfig()`` defaults.

    ``build()`` never mutates the builder, so calling it twice gives equal configs.
    """

    def __init__(self) -> None:
        self._overrides: dict[str, Any] = {}

    def compression(self, value: TiffCompression | str) -> "PipelineConfigBuilder":
        self._overrides["compression"] = _as_enum(TiffCompression, value, "compression")
        return self

    def predictor(self, value: Predictor | str) -> "PipelineConfigBuilder":
        self._overrides["predictor"] = _as_enum(Predictor, value, "predictor")
        return self

    def validate_dimensions(self, enabled: bool) -> "PipelineConfigBuilder":
        self._overrides["validate_dimensions"] = bool(enabled)
        return self

    def max_dimension(self, value: int | None) -> "PipelineConfigBuilder":
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"max_dimension must be a positive integer, got {value!r}")
            if not math.isfinite(value) or int(value) != value:
                raise ValueError(f"max_dimension must be a positive integer, got {value!r}")
            value = int(value)
        self._overrides["max_dimension"] = value
        return self

    def debayer(self, enabled: bool) -> "PipelineConfigBuilder":
        self._overrides["debayer"] = bool(enabled)
        return self

    def backend(self, value: DebayerBackendKind | str) -> "PipelineConfigBuilder":
        self._overrides["backend"] = _as_enum(DebayerBackendKind, value, "backend")
        return self

    def build(self) -> PipelineConfig:
        return replace(PipelineConfig(), **self._overrides)


@dataclass
class AppConfig:
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    log_level: str = "INFO"
    log_file: Path | None = None


def _as_enum(enum_cls: type[enum.Enum], value: Any, key: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower()
    try:
        return enum_cls(text)
    except ValueError as exc:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"invalid {key}: {value!r} (expected one of: {choices})") from exc


def _expand_path(value: str | None, base: Path) -> Path | None:
    if value in (None, ""):
        return None
    path = Path(value)
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def pipeline_config_from_dict(raw: dict[str, Any]) -> PipelineConfig:
    builder = PipelineConfig.builder()
    if "compression" in raw:
        builder.compression(raw["compression"])
    if "predictor" in raw:
        builder.predictor(raw["predictor"] if raw["predictor"] is not None else Predictor.NONE)
    if "validate_dimensions" in raw:
        builder.validate_dimensions(bool(raw["validate_dimensions"]))
    if "max_dimension" in raw:
        builder.max_dimension(raw["max_dimension"])
    if "debayer" in raw:
        builder.debayer(bool(raw["debayer"]))
    if "backend" in raw:
        builder.backend(raw["backend"])
    return builder.build()


def load_config(path: str | Path) -> AppConfig:
    try:
        import yaml  # type: ignore
    except Exception as exc:
        raise RuntimeError("PyYAML is required for config loading. Install with: pip install PyYAML") from exc

    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"config root must be a mapping: {cfg_path}")

    pipeline_raw = raw.get("pipeline") or {}
    if not isinstance(pipeline_raw, dict):
        raise ValueError("pipeline section must be a mapping")

    config = AppConfig(
        pipeline=pipeline_config_from_dict(pipeline_raw),
        log_level=str(raw.get("log_level", "INFO")),
        log_file=_expand_path(raw.get("log_file"), cfg_path.parent),
    )
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
    return config
