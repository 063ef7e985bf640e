"""
Bracketing of a 1-D minimum under noise.

The bracket predicates below are shared with the Brent search. The bracket
search itself mixes a GSL-like bracketing strategy with a widening phase
that grows the interval while neighbouring values are indistinguishable.
"""
from typing import Optional

import numpy as np
from scipy.constants import golden

from noisymin.log_manager import LogManager
from noisymin.noisy_value import NoisyBracket, NoisyIOPair1D, NoisyValue
from noisymin.objective import NoisyFunction

IGOLD2 = 1.0 - 1.0 / golden  # 0.381966..., golden section of [0, 1] closer to 0

STD_XTOL = 1.e-8
STD_FTOL = 1.e-8
STD_NBRACKET = 100
STD_NMINIMIZE = 100


# --- Non-throwing checks

def check_bracket_xtol(bracket: NoisyBracket, epsx: float) -> bool:
    """Both sub-intervals larger than epsx?"""
    return abs(bracket.c.x - bracket.b.x) > epsx and abs(bracket.b.x - bracket.a.x) > epsx


def check_bracket_ftol(bracket: NoisyBracket, epsf: float) -> bool:
    """Is at least one neighbouring value gap larger than epsf?"""
    return bracket.a.f.min_dist(bracket.b.f) > epsf or bracket.c.f.min_dist(bracket.b.f) > epsf


def has_equals(bracket: NoisyBracket) -> bool:
    return bracket.a.f == bracket.b.f or bracket.b.f == bracket.c.f


def is_bracketed(bracket: NoisyBracket) -> bool:
    return bracket.a.f > bracket.b.f and bracket.b.f < bracket.c.f


# --- Throwing checks

def check_1d(fun: NoisyFunction, caller: str) -> None:
    if fun.ndim != 1:
        raise ValueError(f"[{caller}] The NoisyFunction is not 1D. ndim={fun.ndim}")


def validate_bracket_x(ax: float, bx: float, cx: float, caller: str) -> None:
    if ax >= cx:
        raise ValueError(f"[{caller}] Bracket violates (a.x < c.x).")
    if bx >= cx or bx <= ax:
        raise ValueError(f"[{caller}] Bracket violates (a.x < b.x < c.x).")


def validate_bracket(bracket: NoisyBracket, caller: str) -> None:
    validate_bracket_x(bracket.a.x, bracket.b.x, bracket.c.x, caller)
    if not is_bracketed(bracket):
        raise ValueError(f"[{caller}] Bracket violates (a.f > b.f < c.f).")


# --- Helpers

def sort_bracket(bracket: NoisyBracket) -> None:
    """Order the three points of the bracket by position, in place."""
    bracket.a, bracket.b, bracket.c = sorted((bracket.a, bracket.b, bracket.c), key=lambda p: p.x)


def evaluate_1d(fun: NoisyFunction, x: float) -> NoisyValue:
    return fun(np.array([x], dtype=float))


def make_bracket(fun: NoisyFunction, ax: float, bx: float, cx: float) -> NoisyBracket:
    """Evaluate fun at three positions and pack them into a bracket."""
    return NoisyBracket(NoisyIOPair1D(ax, evaluate_1d(fun, ax)),
                        NoisyIOPair1D(bx, evaluate_1d(fun, bx)),
                        NoisyIOPair1D(cx, evaluate_1d(fun, cx)))


def find_bracket(
    fun: NoisyFunction,
    bracket: NoisyBracket,
    max_n_iter: int = STD_NBRACKET,
    epsx: float = STD_XTOL,
    log: Optional[LogManager] = None
) -> bool:
    """
    Search a bracket a.x < b.x < c.x with a.f > b.f < c.f (distinguishably).

    Parameters
    ----------
    fun : NoisyFunction
        One-dimensional noisy function.
    bracket : NoisyBracket
        Initial three points, in any order. Updated in place.
    max_n_iter : int
        Maximum number of new function evaluations.
    epsx : float
        Minimal sub-interval size; the search gives up below it.
    log : LogManager, optional
        Receives the bracket after every step (verbose level).

    Returns
    -------
    bool
        True if `bracket` now holds a valid bracket. On False the bracket is
        left in its last state and should not be used as a bracket.
    """
    log = log if log is not None else LogManager()
    check_1d(fun, 'find_bracket')
    sort_bracket(bracket)
    validate_bracket_x(bracket.a.x, bracket.b.x, bracket.c.x, 'find_bracket')
    epsx = max(0.0, epsx)

    n_iter = 0
    log.log_bracket(bracket, name='find_bracket init')

    # Widen the interval while we can't tell the values apart
    while has_equals(bracket):
        if not check_bracket_xtol(bracket, epsx):
            return False
        if is_bracketed(bracket):
            log.log_bracket(bracket, name='find_bracket final')
            return True
        if n_iter >= max_n_iter:
            return False
        n_iter += 1

        bracket.b = bracket.c
        cx = bracket.a.x + (bracket.b.x - bracket.a.x) / IGOLD2
        bracket.c = NoisyIOPair1D(cx, evaluate_1d(fun, cx))
        log.log_bracket(bracket, name='find_bracket pre-step (scale)')

    while not has_equals(bracket):
        if not check_bracket_xtol(bracket, epsx):
            return False
        if is_bracketed(bracket):
            log.log_bracket(bracket, name='find_bracket final')
            return True
        if n_iter >= max_n_iter:
            return False
        n_iter += 1

        if bracket.b.f < bracket.a.f:
            # a.f > b.f > c.f: move right
            cx = bracket.b.x + (bracket.c.x - bracket.b.x) / IGOLD2
            bracket.a, bracket.b = bracket.b, bracket.c
            bracket.c = NoisyIOPair1D(cx, evaluate_1d(fun, cx))
            log.log_bracket(bracket, name='find_bracket step (move)')
        else:
            # a.f < b.f: contract towards a
            bracket.c = bracket.b
            bx = bracket.a.x + IGOLD2 * (bracket.c.x - bracket.a.x)
            bracket.b = NoisyIOPair1D(bx, evaluate_1d(fun, bx))
            log.log_bracket(bracket, name='find_bracket step (contract)')

    return False
