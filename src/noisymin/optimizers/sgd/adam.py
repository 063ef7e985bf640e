from typing import Annotated, Optional, Sequence

import numpy as np

from noisymin.log_manager import LogLevel, LogManager
from noisymin.noisy_value import NoisyIOPair, gradient_arrays
from noisymin.objective import NoisyFunctionWithGradient
from noisymin.optimizers.base import (STD_N_CONST_VALUES, GradientCache, Minimizer, UpdateRule,
                                      average_positions, stop_on_meaningless_gradient)
from noisymin.utils import Interval


class Adam(UpdateRule):
    """
    Adam: per-coordinate steps from bias-corrected first and second raw moments.

    With use_averaging the reported result is the average of the positions in
    the convergence window, evaluated anew.
    """

    name = 'Adam'

    def __init__(self, alpha: float = 0.001, beta1: float = 0.9, beta2: float = 0.999,
                 epsilon: float = 1e-8, use_grad_err: bool = False, use_averaging: bool = False):
        if alpha <= 0.0:
            raise ValueError(f"[Adam] alpha must be positive, got {alpha}")
        for label, beta in (('beta1', beta1), ('beta2', beta2)):
            if not 0.0 <= beta < 1.0:
                raise ValueError(f"[Adam] {label} must lie in [0, 1), got {beta}")
        self.alpha = alpha
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self.use_grad_err = use_grad_err
        self.use_averaging = use_averaging
        self._m = np.zeros(0)
        self._v = np.zeros(0)
        self._t = 0
        self._grads = GradientCache()

    def reset(self, ndim: int) -> None:
        self._grads.clear()
        self._m = np.zeros(ndim)
        self._v = np.zeros(ndim)
        self._t = 0

    def step(self, fun: NoisyFunctionWithGradient, current: NoisyIOPair,
             log: LogManager) -> Optional[NoisyIOPair]:
        grad = self._grads.gradient(fun, current.x)
        log.log_noisy_vector(grad, LogLevel.VERBOSE, name='Gradient')
        if stop_on_meaningless_gradient(grad, self.use_grad_err, log):
            return None
        g, _ = gradient_arrays(grad)

        self._t += 1
        self._m = self.beta1 * self._m + (1.0 - self.beta1) * g
        self._v = self.beta2 * self._v + (1.0 - self.beta2) * g ** 2
        alpha_t = self.alpha * np.sqrt(1.0 - self.beta2 ** self._t) / (1.0 - self.beta1 ** self._t)

        return self._grads.evaluate(fun, current.x - alpha_t * self._m / (np.sqrt(self._v) + self.epsilon))

    def finalize(self, fun: NoisyFunctionWithGradient, current: NoisyIOPair,
                 history: Sequence[np.ndarray], log: LogManager) -> NoisyIOPair:
        if self.use_averaging and len(history) > 1:
            return average_positions(fun, history, log)
        return current


def minimize(
    fun: NoisyFunctionWithGradient,
    initial_guess: np.ndarray,
    alpha: Annotated[float, Interval(low=1e-3, high=1.0, log=True)] = 0.001,
    beta1: Annotated[float, Interval(low=0.0, high=0.99)] = 0.9,
    beta2: Annotated[float, Interval(low=0.9, high=0.999)] = 0.999,
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
    Adam optimizer on a noisy function.

    Parameters
    ----------
    fun : NoisyFunctionWithGradient
        Objective with gradient.
    initial_guess : np.ndarray
        Starting point.
    alpha : float
        Step size.
    beta1, beta2 : float
        Decay rates of the first and second moment estimates, in [0, 1).
    epsilon : float
        Stabilizes the division in the update.
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
    rule = Adam(alpha=alpha, beta1=beta1, beta2=beta2, epsilon=epsilon,
                use_grad_err=use_grad_err, use_averaging=use_averaging)
    minimizer = Minimizer(rule, max_n_const_values=max_n_const_values, max_n_iterations=max_n_iterations,
                          epsx=epsx, epsf=epsf, log=log)
    return minimizer.find_min(fun, initial_guess)
