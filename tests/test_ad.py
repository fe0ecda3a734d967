import numpy as np
import pytest

from fracfvm import ad
from fracfvm.ad import Dual, seed


def test_seed_gives_unit_gradients():
    x, y, z = seed([1.0, 2.0, 3.0])
    assert (x.val, y.val, z.val) == (1.0, 2.0, 3.0)
    np.testing.assert_array_equal(y.grad, [0.0, 1.0, 0.0])


def test_arithmetic_rules():
    x, y = seed([2.0, 3.0])

    f = x * y + x / y - 2.0 * x + 1.0
    assert f.val == pytest.approx(6.0 + 2.0 / 3.0 - 4.0 + 1.0)
    np.testing.assert_allclose(f.grad, [3.0 + 1.0 / 3.0 - 2.0, 2.0 - 2.0 / 9.0])

    g = 1.0 / x - y
    np.testing.assert_allclose(g.grad, [-0.25, -1.0])

    h = -(x ** 3)
    assert h.val == -8.0
    np.testing.assert_allclose(h.grad, [-12.0, 0.0])

    k = 2.0 ** x
    np.testing.assert_allclose(k.grad, [4.0 * np.log(2.0), 0.0])

    m = x ** y
    np.testing.assert_allclose(m.grad, [3.0 * 4.0, 8.0 * np.log(2.0)])


def test_elementary_functions():
    (x,) = seed([4.0])
    np.testing.assert_allclose(ad.sqrt(x).grad, [0.25])
    np.testing.assert_allclose(ad.exp(x).grad, [np.exp(4.0)])
    np.testing.assert_allclose(ad.log(x).grad, [0.25])
    assert ad.sqrt(9.0) == 3.0
    assert ad.value(x) == 4.0
    assert ad.value(2.5) == 2.5


def test_comparisons_use_values():
    x, y = seed([1.0, 2.0])
    assert x < y and y > x and x <= 1.0 and y >= 2.0
    assert x == 1.0
    assert abs(-x).val == 1.0


def test_clip_kills_gradient_outside_bounds():
    (x,) = seed([1.5])
    assert ad.clip(x, 0.0, 1.0) == 1.0
    assert not isinstance(ad.clip(x, 0.0, 1.0), Dual)
    inside = ad.clip(x, 0.0, 2.0)
    np.testing.assert_array_equal(inside.grad, [1.0])


def test_gradient_of_constant_is_zero():
    np.testing.assert_array_equal(ad.gradient(3.0, 4), np.zeros(4))
