from typing import Annotated, Optional, Sequence

import numpy as np

from noisymin.log_manager import LogLevel, LogManager
from noisymin.noisy_value import NoisyIOPair, gradient_arrays
from noisymin.objective import NoisyFunctionWithGradient
from noisymin.optimizers.base import (STD_N_CONST_VALUES, GradientCache, Minimizer, UpdateRule,
                                      average_positions, stop_on_meaningless_gradient)
from noisymin.utils import Interval

DD_MODES = ('sgdm', 'adagrad', 'rmsprop', 'adadelta')


class DynamicDescent(UpdateRule):
    """
    Stochastic gradient descent with momentum or adaptive per-coordinate steps.

    Modes
    -----
    sgdm : x -= step_size * v, with v an exponential moving average of the
        gradient (decay `beta`; beta = 0 is plain gradient descent).
    adagrad : step divided by the root of the accumulated squared gradients.
    rmsprop : step divided by the root of the decaying average of squared gradients.
    adadelta : like rmsprop, with the step size replaced by the root of the
        decaying average of squared updates (step_size is only used in the first step).

    The mode may be changed between or during runs with the use_* methods.
    """

    name = 'DynamicDescent'

    def __init__(self, step_size: float = 0.001, beta: float = 0.9, epsilon: float = 1e-8,
                 use_grad_err: bool = False, use_averaging: bool = False):
        if step_size <= 0.0:
            raise ValueError(f"[DynamicDescent] step_size must be positive, got {step_size}")
        self.step_size = step_size
        self.epsilon = epsilon
        self.use_grad_err = use_grad_err
        self.use_averaging = use_averaging
        self.mode = 'sgdm'
        self.beta = self._check_beta(beta)
        self._ndim = 0
        self._n_steps = 0
        self._v = np.zeros(0)    # momentum / squared-gradient accumulator
        self._dx2 = np.zeros(0)  # squared-update accumulator (adadelta)
        self._grads = GradientCache()

    @staticmethod
    def _check_beta(beta: float) -> float:
        if not 0.0 <= beta < 1.0:
            raise ValueError(f"[DynamicDescent] beta must lie in [0, 1), got {beta}")
        return beta

    def _switch(self, mode: str, beta: Optional[float]) -> None:
        if beta is not None:
            self.beta = self._check_beta(beta)
        if mode != self.mode:
            self.mode = mode
            self._n_steps = 0
            self._v = np.zeros(self._ndim)
            self._dx2 = np.zeros(self._ndim)

    # --- Mode selection

    def use_sgdm(self, beta: Optional[float] = None) -> None:
        self._switch('sgdm', beta)

    def use_adagrad(self) -> None:
        self._switch('adagrad', None)

    def use_rmsprop(self, beta: Optional[float] = None) -> None:
        self._switch('rmsprop', beta)

    def use_adadelta(self, beta: Optional[float] = None) -> None:
        self._switch('adadelta', beta)

    # --- UpdateRule

    def reset(self, ndim: int) -> None:
        self._ndim = ndim
        self._grads.clear()
        self._n_steps = 0
        self._v = np.zeros(ndim)
        self._dx2 = np.zeros(ndim)

    def _delta(self, g: np.ndarray) -> np.ndarray:
        if self.mode == 'sgdm':
            self._v = self.beta * self._v + (1.0 - self.beta) * g
            return -self.step_size * self._v
        if self.mode == 'adagrad':
            self._v += g ** 2
            return -self.step_size * g / np.sqrt(self._v + self.epsilon)
        if self.mode == 'rmsprop':
            self._v = self.beta * self._v + (1.0 - self.beta) * g ** 2
            return -self.step_size * g / np.sqrt(self._v + self.epsilon)
        # adadelta
        self._v = self.beta * self._v + (1.0 - self.beta) * g ** 2
        if self._n_steps == 0:
            dx = -self.step_size * g
        else:
            dx = -np.sqrt(self._dx2 + self.epsilon) / np.sqrt(self._v + self.epsilon) * g
        self._dx2 = self.beta * self._dx2 + (1.0 - self.beta) * dx ** 2
        return dx

    def step(self, fun: NoisyFunctionWithGradient, current: NoisyIOPair,
             log: LogManager) -> Optional[NoisyIOPair]:
        grad = self._grads.gradient(fun, current.x)
        log.log_noisy_vector(grad, LogLevel.VERBOSE, name='Gradient')
        if stop_on_meaningless_gradient(grad, self.use_grad_err, log):
            return None
        g, _ = gradient_arrays(grad)
        dx = self._delta(g)
        self._n_steps += 1
        return self._grads.evaluate(fun, current.x + dx)

    def finalize(self, fun: NoisyFunctionWithGradient, current: NoisyIOPair,
                 history: Sequence[np.ndarray], log: LogManager) -> NoisyIOPair:
        if self.use_averaging and len(history) > 1:
            return average_positions(fun, history, log)
        return current


def minimize(
    fun: NoisyFunctionWithGradient,
    initial_guess: np.ndarray,
    step_size: Annotated[float, Interval(low=1e-4, high=1.0, log=True)] = 0.001,
    beta: Annotated[float, Interval(low=0.0, high=0.99)] = 0.9,
    mode: Annotated[str, list(DD_MODES)] = 'sgdm',
    epsilon: float = 1e-8,
    use_grad_err: bool = False,
    use_averaging: bool = False,
    max_n_const_values: int = STD_N_CONST_VALUES,
    max_n_iterations: int = 0,
    epsx: float = 0.0,
    epsf: float = 0.0,
    log: Optional[LogManager] = None
) -> NoisyIOPair:
    """
    Dynamic (stochastic) gradient descent on a noisy function.

    Parameters
    ----------
    fun : NoisyFunctionWithGradient
        Objective with gradient.
    initial_guess : np.ndarray
        Starting point.
    step_size : float
        Step size (initial step only, in adadelta mode).
    beta : float
        Momentum / decay coefficient in [0, 1).
    mode : str
        One of 'sgdm', 'adagrad', 'rmsprop', 'adadelta'.
    epsilon : float
        Stabilizes the divisions of the adaptive modes.
    use_grad_err : bool
        Stop when the gradient is indistinguishable from zero.
    use_averaging : bool
        Report the average of the positions in the convergence window.
    max_n_const_values : int
        Convergence window size.
    max_n_iterations : int
        Iteration cap (0 = none).
    epsx, epsf : float
        Optional position / value change stopping thresholds.
    log : LogManager, optional

    Returns
    -------
    NoisyIOPair
        Final position and its noisy value.
    """
    rule = DynamicDescent(step_size=step_size, beta=beta, epsilon=epsilon,
                          use_grad_err=use_grad_err, use_averaging=use_averaging)
    if mode not in DD_MODES:
        raise ValueError(f"[DynamicDescent] Unknown mode '{mode}', expected one of {DD_MODES}")
    rule.mode = mode
    minimizer = Minimizer(rule, max_n_const_values=max_n_const_values, max_n_iterations=max_n_iterations,
                          epsx=epsx, epsf=epsf, log=log)
    return minimizer.find_min(fun, initial_guess)
