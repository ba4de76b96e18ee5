"""Image pyramids built by repeated area-averaged halving."""

from __future__ import annotations

import numpy as np

_MIN_AUTO_ROWS = 15.0


def _area_weights(src: int, dst: int) -> np.ndarray:
    """Return a (dst, src) matrix of normalised area-overlap weights."""
    scale = src / dst
    edges = np.arange(dst + 1, dtype=np.float64) * scale
    lo = edges[:-1, None]
    hi = edges[1:, None]
    j = np.arange(src, dtype=np.float64)[None, :]
    weights = np.clip(np.minimum(hi, j + 1.0) - np.maximum(lo, j), 0.0, None)
    return weights / weights.sum(axis=1, keepdims=True)


def downsample_area(image: np.ndarray) -> np.ndarray:
    """Halve an image in both dimensions by area averaging."""
    image = np.asarray(image)
    if image.ndim < 2:
        raise ValueError("image must have at least two dimensions")
    rows, cols = image.shape[:2]
    out_rows, out_cols = round(rows * 0.5), round(cols * 0.5)
    if out_rows < 1 or out_cols < 1:
        raise ValueError("image is too small to downsample")

    wy = _area_weights(rows, out_rows)
    wx = _area_weights(cols, out_cols)
    data = image.astype(np.float64)
    tmp = np.tensordot(wy, data, axes=(1, 0))
    out = np.swapaxes(np.tensordot(wx, tmp, axes=(1, 1)), 0, 1)

    if np.issubdtype(image.dtype, np.integer):
        info = np.iinfo(image.dtype)
        return np.clip(np.rint(out), info.min, info.max).astype(image.dtype)
    return out.astype(image.dtype)


def create_pyramid(image: np.ndarray, levels: int = 0) -> list[np.ndarray]:
    """Build a pyramid, coarsest level first and the original image last.

    With ``levels`` of 0 the depth is chosen so the coarsest level is still
    at least 15 rows tall.
    """
    image = np.asarray(image)
    if levels == 0:
        threshold = _MIN_AUTO_ROWS / image.shape[0]
        scale = 1.0
        while scale >= threshold:
            levels += 1
            scale /= 2
    if levels <= 0:
        raise ValueError("pyramid must have at least one level")

    pyramid = [image]
    current = image
    for _ in range(levels - 1):
        current = downsample_area(current)
        pyramid.append(current)
    pyramid.reverse()
    return pyramid