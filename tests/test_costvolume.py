import numpy as np
import pytest

from densemap.costvolume import Cost, generate_depths

K = np.array([[10.0, 0.0, 2.0], [0.0, 10.0, 2.0], [0.0, 0.0, 1.0]])


def _image(channels=3, value=0.5):
    rng = np.random.default_rng(0)
    shape = (4, 4, 3) if channels == 3 else (4, 4)
    return (rng.random(shape) * 0.4 + value).astype(np.float32)


def _cost(base, layers=4):
    return Cost(base, K, np.eye(4), layers)


def test_generate_depths_range():
    depths = generate_depths(5)
    assert len(depths) == 5
    assert depths[0] == 0.0
    assert depths[-1] == pytest.approx(0.015)
    assert all(a < b for a, b in zip(depths, depths[1:]))


def test_generate_depths_rejects_single_layer():
    with pytest.raises(ValueError):
        generate_depths(1)


def test_initial_state():
    cost = _cost(_image(), layers=4)
    assert cost.data.shape == (4, 4, 4)
    assert np.all(cost.data == np.float32(3.0))
    assert np.all(cost.hit == np.float32(0.001))
    assert cost.near == pytest.approx(0.015)
    assert cost.far == 0.0
    assert cost.depth_step == pytest.approx((cost.near - cost.far) / cost.layers)
    assert cost.image_num == 0


def test_explicit_depths():
    cost = Cost(_image(), K, np.eye(4), [0.0, 0.5, 1.0])
    assert cost.layers == 3
    assert cost.near == 1.0
    assert cost.far == 0.0


def test_empty_base_image_rejected():
    with pytest.raises(ValueError):
        Cost(np.zeros((0, 0, 3), np.float32), K, np.eye(4), 4)


def test_from_rt_matches_pose():
    rotation = np.eye(3)
    translation = np.array([1.0, 2.0, 3.0])
    cost = Cost.from_rt(_image(), K, rotation, translation, 4)
    assert np.allclose(cost.pose[:3, 3], translation)
    assert np.allclose(cost.pose[:3, :3], rotation)
    assert np.allclose(cost.pose[3], [0, 0, 0, 1])


def test_minv_first_minimum():
    cost = Cost(np.ones((1, 2, 3), np.float32), K, np.eye(4), [0.0, 1.0, 2.0])
    volume = np.array([[[3.0, 1.0, 2.0], [1.0, 1.0, 5.0]]], dtype=np.float32)
    index, value = cost.minv(volume)
    assert index.tolist() == [[1, 0]]
    assert value.tolist() == [[1.0, 1.0]]


def test_maxv_first_maximum():
    cost = Cost(np.ones((1, 2, 3), np.float32), K, np.eye(4), [0.0, 1.0, 2.0])
    volume = np.array([[[3.0, 1.0, 2.0], [5.0, 1.0, 5.0]]], dtype=np.float32)
    index, value = cost.maxv(volume)
    assert index.tolist() == [[0, 0]]
    assert value.tolist() == [[3.0, 5.0]]


def test_minv_rejects_wrong_size():
    cost = _cost(_image())
    with pytest.raises(ValueError):
        cost.minv(np.zeros(5))


def test_minmax_sets_bounds():
    cost = _cost(_image())
    rng = np.random.default_rng(1)
    cost.data[...] = rng.random(cost.data.shape).astype(np.float32)
    cost.minmax()
    assert np.array_equal(cost.lo, cost.data.min(axis=2))
    assert np.array_equal(cost.hi, cost.data.max(axis=2))
    assert np.all(cost.lo <= cost.hi)


def test_l1_same_view_reduces_cost():
    base = _image()
    cost = _cost(base)
    cost.update_cost_l1(base, np.eye(4))
    assert cost.image_num == 1
    assert np.allclose(cost.hit, 1.001)
    assert np.all(cost.data < 0.01)
    assert np.allclose(cost.data, cost.data.flat[0])


def test_l1_invisible_pixels_untouched():
    cost = _cost(_image())
    cost.update_cost_l1(np.zeros((4, 4, 3), np.float32), np.eye(4))
    assert np.all(cost.data == np.float32(3.0))
    assert np.all(cost.hit == np.float32(0.001))


def test_l1_requires_three_channels():
    cost = _cost(_image())
    with pytest.raises(ValueError):
        cost.update_cost_l1(np.ones((4, 4), np.float32), np.eye(4))


def test_l2_same_view_keeps_cost():
    base = _image()
    cost = _cost(base)
    cost.update_cost_l2(base, np.eye(4))
    assert np.allclose(cost.data, 3.0)
    assert np.allclose(cost.hit, 1.001)


def test_l2_constant_offset():
    base = _image()
    cost = _cost(base)
    cost.update_cost_l2(base + np.float32(0.5), np.eye(4))
    assert np.allclose(cost.data, 3.75, atol=1e-5)


def test_l2_single_channel():
    base = _image(channels=1)
    cost = _cost(base)
    cost.update_cost_l2(base + np.float32(1.0), np.eye(4))
    assert np.allclose(cost.data, 4.0, atol=1e-5)
    assert np.allclose(cost.hit, 1.001)


def test_l2_rejects_non_float32():
    base = _image()
    cost = _cost(base)
    with pytest.raises(TypeError):
        cost.update_cost_l2(base.astype(np.float64), np.eye(4))


def test_update_rejects_size_mismatch():
    cost = _cost(_image())
    with pytest.raises(ValueError):
        cost.update_cost_l2(np.ones((8, 8, 3), np.float32), np.eye(4))