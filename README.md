# densemap

densemap builds dense depth maps from a reference image (the keyframe) and
other views of the same scene whose camera poses are known. It is plain Python
and uses NumPy for the numerical work.

## Modules

- `densemap.costvolume`
  - `Cost(base_image, camera_matrix, pose, depths)` is a plane-sweep cost
    volume tied to a keyframe. `pose` is a 4x4 world-to-camera transform.
    `depths` is either a list of inverse depths or a layer count. A count is
    expanded with `generate_depths`, which returns evenly spaced inverse depths
    from 0 to 0.015.
  - `Cost.from_rt(base_image, camera_matrix, rotation, translation, depths)`
    builds the same object from a 3x3 rotation and a translation.
  - `data` and `hit` have shape `(rows, cols, layers)` and start at 3.0 and
    0.001.
  - `update_cost_l1(image, pose)` warps a three-channel view onto every depth
    plane. It blends the summed absolute colour error into `data` as a running
    average.
  - `update_cost_l2(image, pose)` accepts a float32 image with one or three
    channels and adds the squared error.
  - `minv(volume)` and `maxv(volume)` return the per-pixel index and value of
    the smallest or largest layer.
  - `minmax()` stores the per-pixel minimum and maximum cost in `lo` and `hi`.
- `densemap.optimizer`
  - `CostOptimizer(cost)` regularises the depth implied by a `Cost` with an
    edge-weighted Huber model. `init_optimization()` starts the auxiliary depth
    `a` and the smooth depth `d` at each pixel's best layer.
    `cache_g_values()` computes the edge weights from the keyframe.
  - `optimize_qd()` runs one primal-dual step on the dual field and on `d`.
  - `optimize_a()` lowers theta and searches every cost column for the best
    sub-layer position of `a`. Once theta drops below `theta_min`, the current
    `d` is kept as `stable_depth` and theta restarts at `theta_start`.
  - `optimize()` runs both steps in two background threads and returns `False`
    if they are already running. `stop()` ends the threads and waits for them.
  - `depth_map()` returns `stable_depth` if there is one, and otherwise `a`.
    Either is scaled by the volume's depth step.
  - `compute_sigmas(epsilon, theta)` returns the step sizes
    `(sigma_d, sigma_q)`.
  - `a_basic(costs, depth_step, d, theta, lam)` performs the column search with
    parabolic interpolation.
  - Progress messages go to the standard `logging` module.
- `densemap.reproject`
  - `reproject(src, camera_matrix, base_pose, alternate_pose, inv_depth)` warps
    an image from the alternate view onto the base view through a
    fronto-parallel plane. It returns the warped image and a mask of the pixels
    that came out positive.
  - `convert_pose(rotation, translation)` builds a 4x4 pose.
  - `warp_perspective_nearest(src, matrix, fill)` applies a homography with
    nearest-neighbour sampling.
- `densemap.pyramid`
  - `create_pyramid(image, levels=0)` builds a pyramid by repeated
    area-averaged halving (`downsample_area`). The coarsest level comes first.
    With `levels=0` the depth is chosen so the coarsest level is still at least
    15 rows tall.
- `densemap.sync`
  - `StallableQueue` (first in, first out) and `StallableStack` (last in, first
    out) are thread-safe buffers. Their reads block until data is present, and
    `read_stall()` and `read_unstall()` hold and release them.
  - `StallableStack.peekn(n)` returns the newest `n` items, oldest first.
- `densemap.timing`
  - `Stopwatch` and the module-level `tic`, `toc` and `tocq` measure monotonic
    time.
  - `toc` also prints `Elapsed time is ... seconds.`

## Installation

```
pip install .
```

## Example

```python
import numpy as np
from densemap.costvolume import Cost, generate_depths
from densemap.optimizer import CostOptimizer

K = np.array([[50.0, 0, 32], [0, 50.0, 24], [0, 0, 1]])
base = np.random.rand(48, 64, 3).astype(np.float32)
cost = Cost(base, K, np.eye(4), generate_depths(32))

other_pose = np.eye(4)
other_pose[0, 3] = 0.01
cost.update_cost_l1(base, other_pose)

opt = CostOptimizer(cost)
for _ in range(10):
    opt.optimize_qd()
    opt.optimize_a()
depth = opt.depth_map()
```

## What it does not do

densemap is a library only. It has:

- no command-line program;
- no camera tracking or pose estimation, so poses must be supplied;
- no image loading or display;
- no GPU acceleration.

Keyframe selection and scheduling over a stream of frames are left to the
caller. The buffers in `densemap.sync` are meant as building blocks for that.

## Tests

```
pip install .[test]
pytest
```