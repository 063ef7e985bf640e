from typing import Annotated, Optional

import numpy as np

from noisymin.linesearch.multi_line import MLMParams, multi_line_min
from noisymin.log_manager import LogLevel, LogManager
from noisymin.noisy_value import NoisyIOPair, gradient_arrays
from noisymin.objective import NoisyFunctionWithGradient
from noisymin.optimizers.base import STD_N_CONST_VALUES, Minimizer, UpdateRule, stop_on_meaningless_gradient
from noisymin.utils import Interval

# sd: steepest descent, fr: Fletcher-Reeves, pr: Polak-Ribiere, pr0: Polak-Ribiere clipped at zero
CG_MODES = ('sd', 'fr', 'pr', 'pr0')


class ConjGrad(UpdateRule):
    """
    Conjugate gradient with noisy line minimization along each search direction.
    """

    name = 'ConjGrad'

    def __init__(self, mode: str = 'pr0', use_grad_err: bool = True,
                 mlm_params: MLMParams = MLMParams()):
        self.mode = self._check_mode(mode)
        self.use_grad_err = use_grad_err
        self.mlm_params = mlm_params
        self._g_old: Optional[np.ndarray] = None
        self._dir_old: Optional[np.ndarray] = None

    @staticmethod
    def _check_mode(mode: str) -> str:
        if mode not in CG_MODES:
            raise ValueError(f"[ConjGrad] Unknown mode '{mode}', expected one of {CG_MODES}")
        return mode

    def configure_to_follow_simple_gradient(self) -> None:
        """Turn ConjGrad into plain steepest descent."""
        self.mode = 'sd'

    def set_mode(self, mode: str) -> None:
        self.mode = self._check_mode(mode)

    def reset(self, ndim: int) -> None:
        self._g_old = None
        self._dir_old = None

    def _direction(self, g: np.ndarray) -> np.ndarray:
        if self.mode == 'sd' or self._g_old is None:
            return -g
        denom = self._g_old.dot(self._g_old)
        if denom == 0.0:
            return -g
        if self.mode == 'fr':
            ratio = g.dot(g) / denom
        else:
            ratio = g.dot(g - self._g_old) / denom
            if self.mode == 'pr0':
                ratio = max(0.0, ratio)
        return -g + ratio * self._dir_old

    def step(self, fun: NoisyFunctionWithGradient, current: NoisyIOPair,
             log: LogManager) -> Optional[NoisyIOPair]:
        grad = fun.grad(current.x)
        log.log_noisy_vector(grad, LogLevel.VERBOSE, name='Gradient')
        if stop_on_meaningless_gradient(grad, self.use_grad_err, log):
            return None
        g, _ = gradient_arrays(grad)

        direction = self._direction(g)
        log.log_vector(direction, LogLevel.VERBOSE, name='Direction', xlabel='d')
        self._g_old = g
        self._dir_old = direction

        return multi_line_min(fun, current, direction, self.mlm_params, log)


def minimize(
    fun: NoisyFunctionWithGradient,
    initial_guess: np.ndarray,
    mode: Annotated[str, list(CG_MODES)] = 'pr0',
    step_right: Annotated[float, Interval(low=0.1, high=10.0, log=True)] = 1.0,
    step_left: float = 0.0,
    use_grad_err: bool = True,
    max_n_const_values: int = STD_N_CONST_VALUES,
    max_n_iterations: int = 0,
    epsx: float = 0.0,
    epsf: float = 0.0,
    log: Optional[LogManager] = None
) -> NoisyIOPair:
    """
    Conjugate gradient / steepest descent on a noisy function.

    Parameters
    ----------
    fun : NoisyFunctionWithGradient
        Objective with gradient.
    initial_guess : np.ndarray
        Starting point.
    mode : str
        'sd' (steepest descent), 'fr' (Fletcher-Reeves), 'pr' (Polak-Ribiere)
        or 'pr0' (Polak-Ribiere, reset to steepest descent when negative).
    step_right, step_left : float
        Extent of the initial line-search bracket, in units of the direction.
    use_grad_err : bool
        Stop when the gradient is indistinguishable from zero.
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
    rule = ConjGrad(mode=mode, use_grad_err=use_grad_err,
                    mlm_params=MLMParams(step_left=step_left, step_right=step_right))
    minimizer = Minimizer(rule, max_n_const_values=max_n_const_values, max_n_iterations=max_n_iterations,
                          epsx=epsx, epsf=epsf, log=log)
    return minimizer.find_min(fun, initial_guess)
