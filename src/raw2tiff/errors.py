from __future__ import annotations


class ConversionError(RuntimeError):
    pass


class DecodeError(ConversionError):
    pass


class EncodeError(ConversionError):
    pass


class MissingDependencyError(ConversionError):
    pass


class InvalidDimensions(ConversionError):
    def __init__(self, width: int, height: int, max_dimension: int | None = None) -> None:
        self.width = int(width)
        self.height = int(height)
        self.max_dimension = max_dimension
        if max_dimension is not None:
            msg = f"invalid image dimensions {width}x{height} (max {max_dimension})"
        else:
            msg = f"invalid image dimensions {width}x{height}"
        super().__init__(msg)


class DemosaicError(ConversionError):
    pass


class UnsupportedFormat(DemosaicError):
    pass


class DeviceError(DemosaicError):
    """GPU failure, tagged with the stage that failed and the driver/library status if any."""

    def __init__(self, stage: str, message: str, status: int | None = None) -> None:
        self.stage = stage
        self.status = status
        detail = f"{stage} failed: {message}"
        if status is not None:
            detail = f"{detail} (status {status})"
        super().__init__(detail)
