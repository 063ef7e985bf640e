"""
Brent line minimization for noisy 1-D functions.

Follows GSL's Brent minimizer (parabolic interpolation with golden-section
fallback). The current best point is the one with the lowest upper bound,
since the nominal value of a noisy sample can look best by chance.
"""
from typing import Optional

from noisymin.linesearch.bracket import (IGOLD2, STD_FTOL, STD_NMINIMIZE, STD_XTOL,
                                         check_1d, check_bracket_ftol, check_bracket_xtol,
                                         evaluate_1d, validate_bracket)
from noisymin.log_manager import LogManager
from noisymin.noisy_value import NoisyBracket, NoisyIOPair1D
from noisymin.objective import NoisyFunction


def brent_min(
    fun: NoisyFunction,
    bracket: NoisyBracket,
    max_n_iter: int = STD_NMINIMIZE,
    epsx: float = STD_XTOL,
    epsf: float = STD_FTOL,
    log: Optional[LogManager] = None
) -> NoisyIOPair1D:
    """
    Refine a valid bracket to a minimum.

    Parameters
    ----------
    fun : NoisyFunction
        One-dimensional noisy function.
    bracket : NoisyBracket
        Valid bracket (a.x < b.x < c.x, a.f > b.f < c.f). Not modified.
    max_n_iter : int
        Maximum number of iterations.
    epsx : float
        Stop when a sub-interval of the bracket shrinks to epsx.
    epsf : float
        Stop when a neighbouring value gap (min_dist) shrinks to epsf.
    log : LogManager, optional

    Returns
    -------
    NoisyIOPair1D
        Best point found, with a freshly evaluated function value.
    """
    log = log if log is not None else LogManager()
    check_1d(fun, 'brent_min')
    validate_bracket(bracket, 'brent_min')
    epsx = max(0.0, epsx)
    epsf = max(0.0, epsf)

    bracket = bracket.copy()

    d = 0.0
    e = 0.0
    vx = bracket.a.x + IGOLD2 * (bracket.c.x - bracket.a.x)
    v = NoisyIOPair1D(vx, evaluate_1d(fun, vx))
    w = v

    for _ in range(max_n_iter):
        if not check_bracket_xtol(bracket, epsx):
            break
        if not check_bracket_ftol(bracket, epsf):
            break

        lb, m, ub = bracket.a, bracket.b, bracket.c
        mtolb = m.x - lb.x
        mtoub = ub.x - m.x
        xm = 0.5 * (lb.x + ub.x)
        tol = 1.5e-08 * abs(m.x)  # threshold for the choice of strategy

        # NB: unlike GSL, d and e are not swapped here
        p = q = r = 0.0
        if abs(e) > tol:
            # parabola through m, w and v
            r = (m.x - w.x) * (m.f.val - v.f.val)
            q = (m.x - v.x) * (m.f.val - w.f.val)
            p = (m.x - v.x) * q - (m.x - w.x) * r
            q = 2.0 * (q - r)
            if q > 0.0:
                p = -p
            else:
                q = -q
            r = e
            e = d

        if abs(p) < abs(0.5 * q * r) and p < q * mtolb and p < q * mtoub:
            t2 = 2.0 * tol
            d = p / q
            ux = m.x + d
            if (ux - lb.x) < t2 or (ub.x - ux) < t2:
                d = tol if m.x < xm else -tol
            step_name = 'brent_min step (parabola)'
        else:
            e = (ub.x - m.x) if m.x < xm else -(m.x - lb.x)
            d = IGOLD2 * e
            step_name = 'brent_min step (goldsect)'

        # keep a minimal distance to m
        if abs(d) >= tol:
            ux = m.x + d
        else:
            ux = m.x + (tol if d > 0 else -tol)
        ux = min(max(ux, lb.x), ub.x)

        u = NoisyIOPair1D(ux, evaluate_1d(fun, ux))

        if u.f.upper_bound() <= m.f.upper_bound():
            if u.x < m.x:
                bracket.c = m
            else:
                bracket.a = m
            v, w = w, m
            bracket.b = u
        else:
            if u.x < m.x:
                bracket.a = u
            else:
                bracket.c = u
            if u.f <= w.f or w.x == m.x:
                v, w = w, u
            elif u.f <= v.f or v.x == m.x or v.x == w.x:
                v = u

        log.log_bracket(bracket, name=step_name)

    log.log_bracket(bracket, name='brent_min final')

    # Re-evaluate, to not report a lucky sample as the minimum
    best_x = bracket.b.x
    return NoisyIOPair1D(best_x, evaluate_1d(fun, best_x))
