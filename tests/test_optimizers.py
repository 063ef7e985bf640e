#!/usr/bin/env python3
"""
Test suite for all optimizers in the noisymin package.
"""

import numpy as np
import pytest

from noisymin.function_generators.fun_noisy import NoisyWrapper, Parabola3D
from noisymin.log_manager import LogManager
from noisymin.objective import NoisyFunctionFromCallable
from noisymin.optimizers import OPTIMIZERS, Minimizer, minimize_adam, minimize_conjgrad, minimize_dynamic_descent
from noisymin.optimizers.numeric import ConjGrad
from noisymin.optimizers.sgd import Adam, DynamicDescent
from noisymin.utils import check_optimizer_annotations, check_optimizer_function

MINIMUM = np.array([0.0, -1.0, 2.0])
START = np.array([2.5, 1.0, -1.0])


def test_all_optimizers():
    """Test all optimizers on a sample noisy problem."""
    print("Testing optimizers on sample problems...")
    optimizer_errors = []

    for optimizer_name, optimizer in OPTIMIZERS.items():
        print(f"  Testing {optimizer_name}...")

        try:
            check_optimizer_annotations(optimizer)
            check_optimizer_function(optimizer)

        except Exception as e:
            print(f"    ✗ {optimizer_name}: {str(e)}")
            optimizer_errors.append((optimizer_name, str(e)))

    assert not optimizer_errors, f"Errors in optimizers: {optimizer_errors}"


def test_registry_contents():
    assert {'minimize_dynamic_descent', 'minimize_adam', 'minimize_conjgrad', 'minimize_scipy'} <= set(OPTIMIZERS)


def test_gradient_descent_noiseless():
    # step size 0.5 jumps straight into the minimum of this parabola
    result = minimize_dynamic_descent(Parabola3D(), START, step_size=0.5, beta=0.0)
    assert np.allclose(result.x, MINIMUM, atol=0.01)
    assert result.f.val == pytest.approx(0.0, abs=1e-4)


def test_gradient_descent_stops_on_epsf():
    minimizer = Minimizer(DynamicDescent(step_size=0.5, beta=0.0), epsf=0.001)
    minimizer.find_min(Parabola3D(), START)
    assert minimizer.n_iterations == 2
    assert np.allclose(minimizer.x, MINIMUM, atol=0.01)


def test_adam_noisy_with_averaging():
    fun = NoisyWrapper(Parabola3D(), sigma=0.25, seed=1234)
    minimizer = Minimizer(Adam(alpha=0.1, use_averaging=True), max_n_const_values=50, max_n_iterations=5000)
    result = minimizer.find_min(fun, START)
    assert minimizer.n_iterations < 5000
    assert np.allclose(result.x, MINIMUM, atol=0.1)


def test_adam_noiseless():
    result = minimize_adam(Parabola3D(), START, alpha=0.1, max_n_iterations=2000)
    assert np.allclose(result.x, MINIMUM, atol=0.1)


def test_conjgrad_noiseless():
    result = minimize_conjgrad(Parabola3D(), START, epsf=1e-10, max_n_iterations=50)
    assert np.allclose(result.x, MINIMUM, atol=1e-3)


def test_steepest_descent_noiseless():
    rule = ConjGrad()
    rule.configure_to_follow_simple_gradient()
    assert rule.mode == 'sd'
    minimizer = Minimizer(rule, epsf=1e-10, max_n_iterations=50)
    result = minimizer.find_min(Parabola3D(), START)
    assert np.allclose(result.x, MINIMUM, atol=1e-3)


def test_conjgrad_on_elongated_quadratic():
    def fun(x):
        return x[0] ** 2 + 10.0 * x[1] ** 2, 0.0

    def grad(x):
        return np.array([2.0 * x[0], 20.0 * x[1]])

    objective = NoisyFunctionFromCallable(2, fun, grad)
    result = minimize_conjgrad(objective, [1.0, 1.0], mode='fr', step_right=0.2, epsf=1e-12, max_n_iterations=100)
    assert np.allclose(result.x, [0.0, 0.0], atol=1e-3)


def test_switch_mode_during_run():
    rule = DynamicDescent(step_size=0.1, beta=0.0)

    def switch(iteration, current):
        if iteration == 5:
            rule.use_rmsprop(beta=0.9)

    minimizer = Minimizer(rule, max_n_iterations=200)
    start_value = Parabola3D()(START)
    result = minimizer.find_min(Parabola3D(), START, callback=switch)
    assert rule.mode == 'rmsprop'
    assert result.f < start_value


def test_adadelta_decreases_value():
    start_value = Parabola3D()(START)
    result = minimize_dynamic_descent(Parabola3D(), START, step_size=0.1, mode='adadelta', max_n_iterations=300)
    assert result.f < start_value


def test_averaging_at_exact_minimum():
    rule = DynamicDescent(step_size=0.5, beta=0.0, use_averaging=True)
    result = Minimizer(rule).find_min(Parabola3D(), START)
    assert np.allclose(result.x, MINIMUM, atol=1e-8)


def test_meaningless_gradient_stops():
    fun = NoisyWrapper(Parabola3D(), sigma=0.25, seed=7)
    minimizer = Minimizer(DynamicDescent(step_size=0.1, use_grad_err=True))
    minimizer.find_min(fun, MINIMUM)
    # at the minimum the gradient is pure noise, well inside its error bars most of the time
    assert minimizer.n_iterations < 1000


def test_max_n_iterations():
    minimizer = Minimizer(DynamicDescent(step_size=1e-4), max_n_iterations=3)
    minimizer.find_min(Parabola3D(), START)
    assert minimizer.n_iterations == 3


def test_result_accessors():
    minimizer = Minimizer(DynamicDescent(step_size=0.5, beta=0.0))
    minimizer.set_x(START)
    result = minimizer.find_min(Parabola3D())
    assert np.array_equal(minimizer.x, result.x)
    assert minimizer.f == result.f
    assert minimizer.ndim == 3


def test_dimension_mismatch():
    with pytest.raises(ValueError):
        minimize_adam(Parabola3D(), [0.0, 0.0])


def test_gradient_required():
    objective = NoisyFunctionFromCallable(3, lambda x: (float(np.sum(x ** 2)), 0.0))
    with pytest.raises(ValueError):
        Minimizer(Adam()).find_min(objective, START)


def test_invalid_configuration():
    with pytest.raises(ValueError):
        DynamicDescent(beta=1.0)
    with pytest.raises(ValueError):
        Adam(alpha=0.0)
    with pytest.raises(ValueError):
        ConjGrad(mode='newton')
    with pytest.raises(ValueError):
        minimize_dynamic_descent(Parabola3D(), START, mode='nesterov')


def test_logging_enabled_does_not_change_result(tmp_path):
    log = LogManager(name='noisymin.test_optimizers', file_path=str(tmp_path / 'run.log'))
    log.set_logging_on(verbose=True)
    quiet = minimize_conjgrad(Parabola3D(), START, epsf=1e-10, max_n_iterations=50)
    loud = minimize_conjgrad(Parabola3D(), START, epsf=1e-10, max_n_iterations=50, log=log)
    assert np.allclose(quiet.x, loud.x)
    text = (tmp_path / 'run.log').read_text()
    assert 'Begin ConjGrad.find_min() procedure' in text
    assert 'End ConjGrad.find_min() procedure' in text


class CountingParabola3D(Parabola3D):
    def __init__(self):
        super().__init__()
        self.n_grad = 0
        self.n_fgrad = 0

    def grad(self, x):
        self.n_grad += 1
        return super().grad(x)

    def fgrad(self, x):
        self.n_fgrad += 1
        return self.f(x), Parabola3D.grad(self, x)


@pytest.mark.parametrize("rule", [DynamicDescent(step_size=1e-4), Adam()])
def test_descent_rules_evaluate_value_and_gradient_together(rule):
    fun = CountingParabola3D()
    minimizer = Minimizer(rule, max_n_iterations=3)
    minimizer.find_min(fun, START)
    # only the starting point needs a separate gradient
    assert fun.n_grad == 1
    assert fun.n_fgrad == 3


def test_gradient_cache_is_cleared_between_runs():
    fun = CountingParabola3D()
    minimizer = Minimizer(DynamicDescent(step_size=1e-4), max_n_iterations=2)
    minimizer.find_min(fun, START)
    minimizer.find_min(fun, START)
    assert fun.n_grad == 2
