import numpy as np
import pytest

from noisymin.function_generators.fun_noisy import NoisyWrapper, Parabola3D
from noisymin.linesearch import FunProjection1D, MLMParams, multi_line_min
from noisymin.noisy_value import NoisyIOPair, gradient_arrays

START = np.array([2.5, 1.0, -1.0])


def start_and_gradient(fun):
    start = NoisyIOPair(START, fun(START))
    g, _ = gradient_arrays(fun.grad(START))
    return start, g


def test_minimizes_along_negative_gradient():
    fun = Parabola3D()
    start, g = start_and_gradient(fun)
    result = multi_line_min(fun, start, -g)
    assert np.allclose(result.x, Parabola3D.OPTIMUM, atol=1e-4)
    assert result.f.val == pytest.approx(0.0, abs=1e-6)


def test_bracket_extending_to_the_left():
    fun = Parabola3D()
    start, g = start_and_gradient(fun)
    result = multi_line_min(fun, start, -g, MLMParams(step_left=1.0, step_right=1.0))
    assert np.allclose(result.x, Parabola3D.OPTIMUM, atol=1e-4)


def test_uphill_direction_returns_start():
    fun = Parabola3D()
    start, g = start_and_gradient(fun)
    result = multi_line_min(fun, start, g)
    assert np.array_equal(result.x, START)
    assert result.f == start.f


def test_zero_direction_returns_start():
    fun = Parabola3D()
    start, _ = start_and_gradient(fun)
    result = multi_line_min(fun, start, np.zeros(3))
    assert np.array_equal(result.x, START)


def test_noisy_result_is_never_worse():
    fun = NoisyWrapper(Parabola3D(), sigma=0.5, seed=3)
    for seed in range(5):
        rng = np.random.default_rng(seed)
        start = NoisyIOPair(START, fun(START))
        result = multi_line_min(fun, start, rng.normal(size=3))
        assert result.f <= start.f or np.array_equal(result.x, START)


def test_non_positive_tolerances_select_defaults():
    fun = Parabola3D()
    start, g = start_and_gradient(fun)
    result = multi_line_min(fun, start, -g, MLMParams(epsx=0.0, epsf=-1.0))
    assert np.allclose(result.x, Parabola3D.OPTIMUM, atol=1e-4)


def test_inconsistent_sizes():
    fun = Parabola3D()
    start, _ = start_and_gradient(fun)
    with pytest.raises(ValueError):
        multi_line_min(fun, start, [1.0, 0.0])
    with pytest.raises(ValueError):
        multi_line_min(fun, NoisyIOPair([0.0, 0.0], fun(START)), [1.0, 0.0, 0.0])


def test_invalid_steps():
    fun = Parabola3D()
    start, g = start_and_gradient(fun)
    with pytest.raises(ValueError):
        multi_line_min(fun, start, -g, MLMParams(step_right=0.0))
    with pytest.raises(ValueError):
        multi_line_min(fun, start, -g, MLMParams(step_left=-1.0))


def test_projection():
    proj = FunProjection1D(Parabola3D(), START, [-2.5, -2.0, 3.0])
    assert proj.ndim == 1
    assert np.allclose(proj.position(1.0), Parabola3D.OPTIMUM)
    assert proj([1.0]).val == pytest.approx(0.0)
    assert proj([0.0]).val == pytest.approx(19.25)
    with pytest.raises(ValueError):
        FunProjection1D(Parabola3D(), START, [1.0, 0.0])
