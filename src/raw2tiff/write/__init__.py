from .base import Encoder, EncodeError
from .tiff_writer import TiffEncoder, tiff_write_options

__all__ = ["Encoder", "EncodeError", "TiffEncoder", "tiff_write_options"]
