"""Regularised depth optimisation over a cost volume.

The depth map is refined by alternating a primal-dual update of the dual
field ``q`` and the smooth depth ``d`` with a point-wise search for the
auxiliary depth ``a`` along each pixel's cost column.
"""

from __future__ import annotations

import logging
import math
import threading
import time

import numpy as np

from densemap.costvolume import Cost

log = logging.getLogger(__name__)

_STEP_BOUND = 4.0
_LATE_RUN_COUNT = 1000
_LATE_THETA_STEP = 0.97


def compute_sigmas(epsilon: float, theta: float) -> tuple[float, float]:
    """Return the ``(sigma_d, sigma_q)`` step sizes for the given parameters."""
    if theta <= 0:
        raise ValueError("theta must be positive")
    if epsilon <= 0:
        raise ValueError("epsilon must be positive")
    gamma = 1.0 / theta
    delta = epsilon
    mu = 2.0 * math.sqrt(gamma * delta) / _STEP_BOUND
    return mu / (2.0 * gamma), mu / (2.0 * delta)


def a_basic(costs, depth_step: float, d, theta: float, lam: float):
    """Minimise the coupled energy along cost columns.

    ``costs`` has the layers on its last axis and ``d`` holds the current
    smooth depth (in layer units) for each column. Returns the sub-layer
    position of the minimum and the interpolated energy there.
    """
    costs = np.asarray(costs, dtype=np.float64)
    d = np.asarray(d, dtype=np.float64)
    layers = costs.shape[-1]
    if layers < 2:
        raise ValueError("at least two layers are needed")

    idx = np.arange(layers, dtype=np.float64)
    energy = (
        1.0 / (2.0 * theta) * depth_step * depth_step * (d[..., None] - idx) ** 2
        + costs * lam
    )

    mi = np.argmin(energy[..., :-1], axis=-1)
    mv = np.take_along_axis(energy, mi[..., None], axis=-1)[..., 0]
    last = energy[..., -1]
    last_best = last < mv
    first_best = mi == 0

    below = np.take_along_axis(energy, np.maximum(mi - 1, 0)[..., None], axis=-1)[..., 0]
    above = np.take_along_axis(energy, np.minimum(mi + 1, layers - 1)[..., None], axis=-1)[..., 0]
    b = mv * (1.0 - 1.0e-8)
    with np.errstate(divide="ignore", invalid="ignore"):
        delt = (below - above) / (below - 2.0 * b + above) * 0.5
    interp_value = b - (below - above) * delt / 4.0
    interp_pos = delt + mi

    position = np.where(last_best, float(layers - 1), np.where(first_best, 0.0, interp_pos))
    value = np.where(last_best, last, np.where(first_best, mv, interp_value))
    if position.ndim == 0:
        return float(position), float(value)
    return position, value


class CostOptimizer:
    """Denoises the depth implied by a cost volume with a weighted Huber prior."""

    def __init__(self, cost: Cost) -> None:
        if cost.rows < 2 or cost.cols < 2:
            raise ValueError("the cost volume must be at least 2x2 pixels")
        if cost.layers < 2:
            raise ValueError("the cost volume must have at least two layers")
        self.cost = cost
        self.theta_start = 500.0
        self.theta_min = 0.01
        self.theta_step = 0.99
        self.epsilon = 0.1
        self.lam = 1.0e-6
        self.theta = self.theta_start
        self.sigma_d = 0.0
        self.sigma_q = 0.0
        self.qd_runs = 0
        self.a_runs = 0
        self.stable_depth: np.ndarray | None = None
        self.running_a = False
        self.running_qd = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self.init_optimization()

    def init_optimization(self) -> None:
        """Reset the optimisation from the cost volume's per-pixel minimum."""
        self.cache_g_values()
        index, _ = self.cost.minv(self.cost.data)
        self.a = index.astype(np.float32)
        self.d = self.a.copy()
        shape = (self.cost.rows, self.cost.cols)
        self.qx = np.zeros(shape, dtype=np.float32)
        self.qy = np.zeros(shape, dtype=np.float32)
        self.theta = self.theta_start

    def cache_g_values(self) -> None:
        """Compute the edge weights from the keyframe image."""
        base = self.cost.base_image
        if base.ndim == 3:
            gray = 0.114 * base[..., 0] + 0.587 * base[..., 1] + 0.299 * base[..., 2]
        else:
            gray = base
        gray = gray.astype(np.float32)

        px = np.pad(gray, ((0, 0), (1, 1)), mode="reflect")
        gx = np.maximum(np.abs(px[:, 2:] - px[:, 1:-1]), np.abs(px[:, 1:-1] - px[:, :-2]))
        py = np.pad(gray, ((1, 1), (0, 0)), mode="reflect")
        gy = np.maximum(np.abs(py[2:] - py[1:-1]), np.abs(py[1:-1] - py[:-2]))

        g = np.exp(-3.0 * np.sqrt(gx + gy)).astype(np.float32)
        self.g = g
        gp = np.pad(g, 1, mode="edge")
        self.gu = (0.5 * (gp[:-2, 1:-1] + g)).astype(np.float32)
        self.gd = (-0.5 * (gp[2:, 1:-1] + g)).astype(np.float32)
        self.gl = (0.5 * (gp[1:-1, :-2] + g)).astype(np.float32)
        self.gr = (-0.5 * (gp[1:-1, 2:] + g)).astype(np.float32)

    def optimize_qd(self) -> None:
        """Run one primal-dual step on the dual field and the smooth depth."""
        log.info("QD optimization run: %d", self.qd_runs)
        self.qd_runs += 1
        self.sigma_d, self.sigma_q = compute_sigmas(self.epsilon, self.theta)
        if self.sigma_d == 0.0 or self.sigma_q == 0.0:
            raise ValueError("step sizes vanished")
        sigma_d, sigma_q, theta = self.sigma_d, self.sigma_q, self.theta
        d, a = self.d, self.a
        gu, gd, gl, gr = self.gu, self.gd, self.gl, self.gr

        denom = 1.0 + sigma_q * self.epsilon
        kxn = np.zeros_like(d)
        kyn = np.zeros_like(d)
        kxn[:, :-1] = (self.qx[:, :-1] + sigma_q * (d[:, :-1] - d[:, 1:]) * gr[:, :-1]) / denom
        kyn[:-1] = (self.qy[:-1] + sigma_q * (d[:-1] - d[1:]) * gd[:-1]) / denom
        pd = np.maximum(1.0, np.sqrt(kxn * kxn + kyn * kyn))
        self.qx = (kxn / pd).astype(np.float32)
        self.qy = (kyn / pd).astype(np.float32)
        qx, qy = self.qx, self.qy

        total = -a.astype(np.float64) / theta
        total[:-1] += gd[:-1] * qy[:-1]
        total[1:] += gu[1:] * qy[:-1]
        total[:, 1:] += gl[:, 1:] * qx[:, :-1]
        total[:, :-1] += gr[:, :-1] * qx[:, :-1]
        self.d = ((d - sigma_d * total) / (1.0 + sigma_d / theta)).astype(np.float32)

    def optimize_a(self) -> None:
        """Lower theta and search each cost column for the best auxiliary depth."""
        self.theta *= self.theta_step
        if self.qd_runs > _LATE_RUN_COUNT:
            self.theta_step = _LATE_THETA_STEP
        if self.theta < self.theta_min:
            self.running_a = False
            self.stable_depth = self.d.copy()
            self.qx = np.zeros_like(self.qx)
            self.qy = np.zeros_like(self.qy)
            self.d = self.stable_depth.copy()
            self.theta = self.theta_start
        log.info("A optimization run: %d", self.a_runs)
        self.a_runs += 1
        log.info("Current Theta: %s", self.theta)

        position, _ = a_basic(
            self.cost.data, self.cost.depth_step, self.d, self.theta, self.lam
        )
        self.a = np.asarray(position, dtype=np.float32)

    def optimize(self) -> bool:
        """Start the background optimisation threads.

        Returns False, doing nothing, if they are already running.
        """
        if self.running_a:
            log.info("Already running optimizer!")
            return False
        while self.running_qd:
            time.sleep(1.0e-4)
        self._stop.clear()
        self.running_a = True
        self._threads = [
            threading.Thread(target=self._run_qd, name="QDthread", daemon=True),
            threading.Thread(target=self._run_a, name="Athread", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        return True

    def stop(self) -> None:
        """Ask the background threads to finish and wait for them."""
        self._stop.set()
        for thread in self._threads:
            thread.join()
        self._threads = []
        self.running_a = False

    def depth_map(self) -> np.ndarray:
        """Return the best depth map available so far."""
        source = self.stable_depth if self.stable_depth is not None else self.a
        return source * np.float32(self.cost.depth_step)

    def _run_qd(self) -> None:
        self.running_qd = True
        try:
            while self.running_a and not self._stop.is_set():
                with self._lock:
                    self.optimize_qd()
        finally:
            self.running_qd = False

    def _run_a(self) -> None:
        while self.running_a and not self._stop.is_set():
            with self._lock:
                self.optimize_a()