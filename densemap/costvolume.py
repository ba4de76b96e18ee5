"""The photometric cost volume attached to a keyframe."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from densemap.reproject import convert_pose, reproject

DEFAULT_NEAR = 0.015
INITIAL_COST = 3.0
INITIAL_WEIGHT = 0.001


def generate_depths(layers: int) -> list[float]:
    """Return ``layers`` evenly spaced inverse depths from 0 to the default near plane."""
    if layers < 2:
        raise ValueError("at least two layers are needed to generate depths")
    return [n / (layers - 1) * DEFAULT_NEAR for n in range(layers)]


class Cost:
    """Cost volume over a keyframe: per pixel, one accumulated cost per depth layer.

    ``data`` and ``hit`` have shape (rows, cols, layers); ``data`` holds the
    running photometric cost and ``hit`` the weight of rays seen so far.
    """

    def __init__(
        self,
        base_image: np.ndarray,
        camera_matrix: np.ndarray,
        pose: np.ndarray,
        depths: int | Sequence[float],
    ) -> None:
        base = np.asarray(base_image)
        if base.size == 0:
            raise ValueError("base image is empty")
        if base.ndim == 3 and base.shape[2] != 3:
            raise ValueError("base image must have one or three channels")
        if base.ndim not in (2, 3):
            raise ValueError("base image must be two or three dimensional")
        self.base_image = base.astype(np.float32)

        camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        if camera_matrix.shape != (3, 3):
            raise ValueError("camera_matrix must be 3x3")
        self.camera_matrix = camera_matrix

        pose = np.asarray(pose, dtype=np.float64)
        if pose.shape != (4, 4):
            raise ValueError("pose must be 4x4")
        self.pose = pose

        if isinstance(depths, (int, np.integer)):
            depth_list = generate_depths(int(depths))
        else:
            depth_list = [float(d) for d in depths]
        if not depth_list:
            raise ValueError("at least one depth is required")
        self.depth = depth_list

        self.rows, self.cols = self.base_image.shape[:2]
        self.layers = len(depth_list)
        self.near = depth_list[-1]
        self.far = depth_list[0]
        self.depth_step = (depth_list[-1] - depth_list[0]) / self.layers

        shape = (self.rows, self.cols, self.layers)
        self.data = np.full(shape, INITIAL_COST, dtype=np.float32)
        self.hit = np.full(shape, INITIAL_WEIGHT, dtype=np.float32)
        self.lo = np.full((self.rows, self.cols), INITIAL_COST, dtype=np.float32)
        self.hi = np.full((self.rows, self.cols), INITIAL_COST, dtype=np.float32)
        self.image_num = 0

    @classmethod
    def from_rt(
        cls,
        base_image: np.ndarray,
        camera_matrix: np.ndarray,
        rotation: np.ndarray,
        translation: np.ndarray,
        depths: int | Sequence[float],
    ) -> "Cost":
        """Build a cost volume from a rotation and translation instead of a 4x4 pose."""
        return cls(base_image, camera_matrix, convert_pose(rotation, translation), depths)

    def _check_size(self, image: np.ndarray) -> None:
        if image.shape[:2] != (self.rows, self.cols):
            raise ValueError("image size does not match the base image")

    def _reproject(self, image: np.ndarray, pose: np.ndarray, inv_depth: float):
        return reproject(image, self.camera_matrix, self.pose, pose, inv_depth)

    def update_cost_l1(self, image: np.ndarray, pose: np.ndarray) -> None:
        """Blend the L1 colour error of a new three-channel view into the volume."""
        image = np.asarray(image)
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError("L1 update needs a three-channel image")
        if self.base_image.ndim != 3:
            raise ValueError("L1 update needs a three-channel base image")
        self._check_size(image)
        image = image.astype(np.float32)
        self.image_num += 1

        for n, inv_depth in enumerate(self.depth):
            plane, mask = self._reproject(image, pose, inv_depth)
            valid = mask[..., 0]
            if not valid.any():
                continue
            err = np.abs(plane[valid] - self.base_image[valid]).sum(axis=-1, dtype=np.float32)
            h = self.hit[..., n][valid] + np.float32(1.0)
            old = self.data[..., n][valid]
            new = old * (np.float32(1.0) - np.float32(1.0) / h) + err / h
            self.hit[..., n][valid] = h
            self.data[..., n][valid] = new

    def update_cost_l2(self, image: np.ndarray, pose: np.ndarray) -> None:
        """Accumulate the squared error of a new float32 view into the volume."""
        image = np.asarray(image)
        if image.dtype != np.float32:
            raise TypeError("unsupported image type: float32 is required")
        if image.ndim == 3 and image.shape[2] == 3:
            channels = 3
        elif image.ndim == 2:
            channels = 1
        else:
            raise TypeError("unsupported image type: one or three channels are required")
        if (self.base_image.ndim == 3) != (channels == 3):
            raise ValueError("image channels do not match the base image")
        self._check_size(image)

        for n, inv_depth in enumerate(self.depth):
            plane, mask = self._reproject(image, pose, inv_depth)
            valid = mask[..., 0] if channels == 3 else mask
            if not valid.any():
                continue
            diff = plane[valid] - self.base_image[valid]
            sq = diff * diff
            if channels == 3:
                sq = sq.sum(axis=-1, dtype=np.float32)
            self.data[..., n][valid] += sq
            self.hit[..., n][valid] += np.float32(1.0)

    def _as_volume(self, volume: np.ndarray) -> np.ndarray:
        volume = np.asarray(volume, dtype=np.float32)
        if volume.size != self.rows * self.cols * self.layers:
            raise ValueError("volume does not match the cost volume shape")
        return volume.reshape(self.rows, self.cols, self.layers)

    def minv(self, volume: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return the index and value of the smallest layer at each pixel."""
        volume = self._as_volume(volume)
        index = np.argmin(volume, axis=2).astype(np.int32)
        value = np.take_along_axis(volume, index[..., None], axis=2)[..., 0]
        return index, value

    def maxv(self, volume: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return the index and value of the largest layer at each pixel."""
        volume = self._as_volume(volume)
        index = np.argmax(volume, axis=2).astype(np.int32)
        value = np.take_along_axis(volume, index[..., None], axis=2)[..., 0]
        return index, value

    def minmax(self) -> None:
        """Store the per-pixel minimum and maximum cost in ``lo`` and ``hi``."""
        self.lo = self.data.min(axis=2).astype(np.float32)
        self.hi = self.data.max(axis=2).astype(np.float32)