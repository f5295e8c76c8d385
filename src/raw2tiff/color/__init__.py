from .pipeline import ColorPipeline, KernelParams
from .primaries import EXPOSURE, XYZ_TO_SRGB_D65, cam_to_srgb_matrix

__all__ = ["ColorPipeline", "KernelParams", "EXPOSURE", "XYZ_TO_SRGB_D65", "cam_to_srgb_matrix"]
