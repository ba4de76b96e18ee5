"""Plane-induced reprojection of images between two camera poses."""

from __future__ import annotations

import numpy as np


def convert_pose(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    """Build a 4x4 world-to-camera transform from R (3x3) and T (3 values)."""
    rotation = np.asarray(rotation, dtype=np.float64)
    translation = np.asarray(translation, dtype=np.float64).reshape(-1)
    if rotation.shape != (3, 3):
        raise ValueError("rotation must be 3x3")
    if translation.shape != (3,):
        raise ValueError("translation must have three elements")
    pose = np.eye(4)
    pose[:3, :3] = rotation
    pose[:3, 3] = translation
    return pose


def _as_4x4(pose: np.ndarray) -> np.ndarray:
    pose = np.asarray(pose, dtype=np.float64)
    if pose.shape == (3, 4):
        return np.vstack([pose, [0.0, 0.0, 0.0, 1.0]])
    if pose.shape == (4, 4):
        return pose.copy()
    raise ValueError("pose must be 3x4 or 4x4")


def _fill_value(dtype: np.dtype) -> float | int:
    if np.issubdtype(dtype, np.floating):
        return -np.inf
    if np.issubdtype(dtype, np.integer):
        return int(np.iinfo(dtype).min)
    raise ValueError(f"unsupported image dtype {dtype}")


def warp_perspective_nearest(src: np.ndarray, matrix: np.ndarray, fill) -> np.ndarray:
    """Warp ``src`` by the homography ``matrix`` with nearest sampling.

    ``matrix`` maps source coordinates to destination coordinates; pixels
    that fall outside the source are set to ``fill``.
    """
    src = np.asarray(src)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError("matrix must be 3x3")
    rows, cols = src.shape[:2]
    inverse = np.linalg.inv(matrix)

    ys, xs = np.mgrid[0:rows, 0:cols].astype(np.float64)
    hx = inverse[0, 0] * xs + inverse[0, 1] * ys + inverse[0, 2]
    hy = inverse[1, 0] * xs + inverse[1, 1] * ys + inverse[1, 2]
    hw = inverse[2, 0] * xs + inverse[2, 1] * ys + inverse[2, 2]
    with np.errstate(divide="ignore", invalid="ignore"):
        scale = np.where(hw != 0, 1.0 / np.where(hw != 0, hw, 1.0), 0.0)
    limit = float(np.iinfo(np.int32).max)
    sx = np.rint(np.clip(hx * scale, -limit, limit)).astype(np.int64)
    sy = np.rint(np.clip(hy * scale, -limit, limit)).astype(np.int64)

    inside = (sx >= 0) & (sx < cols) & (sy >= 0) & (sy < rows)
    dst = np.empty_like(src)
    dst[...] = np.asarray(fill).astype(src.dtype) if np.ndim(fill) else _cast_fill(fill, src.dtype)
    dst[inside] = src[sy[inside], sx[inside]]
    return dst


def _cast_fill(fill, dtype: np.dtype):
    with np.errstate(over="ignore"):
        return np.array(fill, dtype=np.float64).astype(dtype)


def reproject(
    src: np.ndarray,
    camera_matrix: np.ndarray,
    base_pose: np.ndarray,
    alternate_pose: np.ndarray,
    inv_depth: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Reproject an image from the alternate view onto the base view.

    The scene is taken to be a fronto-parallel plane at the given inverse
    depth in the alternate camera. Returns the warped image and a boolean
    mask, shaped like the image, that is true where the result is positive.
    """
    camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
    if camera_matrix.shape != (3, 3):
        raise ValueError("camera_matrix must be 3x3")
    base = _as_4x4(base_pose)
    alternate = _as_4x4(alternate_pose)

    alt_from_plane = np.vstack([np.linalg.inv(camera_matrix), [0.0, 0.0, inv_depth]])
    base_plane_from_base = np.hstack([camera_matrix, np.zeros((3, 1))])
    homography = base_plane_from_base @ base @ np.linalg.inv(alternate) @ alt_from_plane

    src = np.asarray(src)
    dst = warp_perspective_nearest(src, homography, _fill_value(src.dtype))
    return dst, dst > 0