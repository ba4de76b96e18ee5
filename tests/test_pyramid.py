import numpy as np
import pytest

from densemap.pyramid import create_pyramid, downsample_area


def test_downsample_block_average():
    image = np.array([[0.0, 4.0], [8.0, 12.0]], dtype=np.float32)
    out = downsample_area(image)
    assert out.shape == (1, 1)
    assert out[0, 0] == pytest.approx(6.0)


def test_downsample_preserves_mean_for_even_sizes():
    rng = np.random.default_rng(0)
    image = rng.random((8, 12))
    out = downsample_area(image)
    assert out.shape == (4, 6)
    assert out.mean() == pytest.approx(image.mean())


def test_downsample_constant_color_image():
    image = np.full((6, 10, 3), 7, dtype=np.uint8)
    out = downsample_area(image)
    assert out.shape == (3, 5, 3)
    assert out.dtype == np.uint8
    assert np.all(out == 7)


def test_downsample_odd_size_keeps_constant():
    image = np.full((7, 9), 2.5)
    out = downsample_area(image)
    assert out.shape == (round(3.5), round(4.5))
    assert np.allclose(out, 2.5)


def test_downsample_too_small_raises():
    with pytest.raises(ValueError):
        downsample_area(np.zeros((1, 1)))


def test_explicit_levels():
    image = np.random.default_rng(1).random((32, 64))
    pyramid = create_pyramid(image, 3)
    assert len(pyramid) == 3
    assert pyramid[-1] is image
    assert pyramid[1].shape == (16, 32)
    assert pyramid[0].shape == (8, 16)


def test_auto_levels_stop_at_minimum_height():
    image = np.zeros((64, 64))
    pyramid = create_pyramid(image, 0)
    assert pyramid[0].shape[0] >= 15
    assert pyramid[0].shape[0] / 2 < 15
    for smaller, larger in zip(pyramid, pyramid[1:]):
        assert larger.shape[0] == 2 * smaller.shape[0]


def test_auto_levels_on_too_small_image_raises():
    with pytest.raises(ValueError):
        create_pyramid(np.zeros((10, 10)), 0)


def test_negative_levels_raise():
    with pytest.raises(ValueError):
        create_pyramid(np.zeros((32, 32)), -1)