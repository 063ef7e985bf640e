"""
Line minimization of n-dimensional noisy functions.

The n-dimensional function is projected onto the line base + t*direction,
then bracketed and minimized in t with the 1-D tools.
"""
from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np

from noisymin.linesearch.bracket import IGOLD2, STD_FTOL, STD_XTOL, evaluate_1d, find_bracket
from noisymin.linesearch.brent import brent_min
from noisymin.log_manager import LogManager
from noisymin.noisy_value import NoisyBracket, NoisyIOPair, NoisyIOPair1D, NoisyValue
from noisymin.objective import NoisyFunction


@dataclass(frozen=True)
class MLMParams:
    """
    Settings of multi_line_min.

    step_left : float
        Initial bracket extends to -step_left along the direction (>= 0).
    step_right : float
        Initial bracket extends to +step_right along the direction (> 0).
    max_n_bracket : int
        Iteration cap of the bracket search.
    max_n_minimize : int
        Iteration cap of the Brent search.
    epsx, epsf : float
        Position and value tolerances; non-positive values select defaults.
    """
    step_left: float = 0.0
    step_right: float = 1.0
    max_n_bracket: int = 10
    max_n_minimize: int = 20
    epsx: float = STD_XTOL
    epsf: float = STD_FTOL


class FunProjection1D(NoisyFunction):
    """1-D view t -> fun(base + t*direction) of an n-dimensional function."""

    def __init__(self, fun: NoisyFunction, base: Sequence[float], direction: Sequence[float]):
        super().__init__(1)
        self._fun = fun
        self._base = np.array(base, dtype=float).reshape(-1)
        self._direction = np.array(direction, dtype=float).reshape(-1)
        if self._base.size != fun.ndim or self._direction.size != fun.ndim:
            raise ValueError("[FunProjection1D] Base point and direction must match the function's ndim.")

    def position(self, t: float) -> np.ndarray:
        return self._base + t * self._direction

    def f(self, x: np.ndarray) -> NoisyValue:
        return self._fun(self.position(float(x[0])))


def multi_line_min(
    fun: NoisyFunction,
    start: NoisyIOPair,
    direction: Sequence[float],
    params: MLMParams = MLMParams(),
    log: Optional[LogManager] = None
) -> NoisyIOPair:
    """
    Minimize fun along `direction` starting from `start`.

    Parameters
    ----------
    fun : NoisyFunction
        n-dimensional noisy function.
    start : NoisyIOPair
        Starting point with its already computed value.
    direction : Sequence[float]
        Search direction (need not be normalized).
    params : MLMParams
        Bracket and line-search settings.
    log : LogManager, optional

    Returns
    -------
    NoisyIOPair
        The line minimum, or the start position with a fresh value if no
        improvement could be established.
    """
    direction = np.asarray(direction, dtype=float).reshape(-1)
    if fun.ndim != start.ndim or start.ndim != direction.size:
        raise ValueError("[multi_line_min] The passed function and positions are inconsistent in size.")
    if params.step_left < 0.0 or params.step_right <= 0.0:
        raise ValueError("[multi_line_min] step_left must be non-negative and step_right strictly positive.")
    params = replace(params,
                     epsx=params.epsx if params.epsx > 0 else STD_XTOL,
                     epsf=params.epsf if params.epsf > 0 else STD_FTOL)
    log = log if log is not None else LogManager()

    proj = FunProjection1D(fun, start.x, direction)

    ax = -params.step_left
    cx = params.step_right
    bx = ax + (cx - ax) * IGOLD2
    bracket = NoisyBracket(NoisyIOPair1D(ax, start.f if ax == 0.0 else evaluate_1d(proj, ax)),
                           NoisyIOPair1D(bx, evaluate_1d(proj, bx)),
                           NoisyIOPair1D(cx, evaluate_1d(proj, cx)))

    if find_bracket(proj, bracket, params.max_n_bracket, params.epsx, log):
        min1d = brent_min(proj, bracket, params.max_n_minimize, params.epsx, params.epsf, log)
        if min1d.f <= start.f:  # reject values that are truly larger
            return NoisyIOPair(proj.position(min1d.x), min1d.f)

    # the old value might be an outlier, so it is recomputed
    return NoisyIOPair(start.x.copy(), fun(start.x))
