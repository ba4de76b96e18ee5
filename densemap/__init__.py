"""Dense depth mapping: cost volumes, reprojection, depth regularisation and helpers."""

__version__ = "0.1.0"
__all__ = ["costvolume", "optimizer", "pyramid", "reproject", "sync", "timing"]