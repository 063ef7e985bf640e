import numpy as np
from typing import Annotated, Optional
from scipy.optimize import minimize as _scipy_minimize

from noisymin.log_manager import LogManager
from noisymin.noisy_value import NoisyIOPair, gradient_arrays
from noisymin.objective import NoisyFunction, NoisyFunctionWithGradient
from noisymin.utils import Interval

SCIPY_METHODS = ['Nelder-Mead', 'Powell', 'L-BFGS-B']


def minimize_scipy(
    fun: NoisyFunction,
    initial_guess: np.ndarray,
    method: Annotated[str, SCIPY_METHODS] = 'Nelder-Mead',
    tol: Annotated[float, Interval(low=1e-8, high=1e-2, log=True)] = 1e-6,
    maxiter: int = 5000,
    log: Optional[LogManager] = None
) -> NoisyIOPair:
    """
    Baseline: scipy.optimize.minimize on the nominal values, ignoring the errors.

    Parameters
    ----------
    fun : NoisyFunction
        Objective to minimize. Its gradient is passed as Jacobian to
        gradient-based methods when available.
    initial_guess : np.ndarray
        Starting point.
    method : str
        Scipy method name.
    tol : float
        Convergence tolerance handed to scipy.
    maxiter : int
        Maximum number of iterations.
    log : LogManager, optional

    Returns
    -------
    NoisyIOPair
        Scipy's result, with a fresh evaluation of fun.
    """
    log = log if log is not None else LogManager()
    x0 = np.asarray(initial_guess, dtype=float)
    if x0.size != fun.ndim:
        raise ValueError(f"[minimize_scipy] Function ndim ({fun.ndim}) and position size ({x0.size}) differ.")

    def _val(x: np.ndarray) -> float:
        return fun(x).val

    jac = None
    if method == 'L-BFGS-B' and isinstance(fun, NoisyFunctionWithGradient):
        def jac(x: np.ndarray) -> np.ndarray:
            return gradient_arrays(fun.grad(x))[0]

    log.log_string(f"Begin scipy {method} minimization")
    res = _scipy_minimize(_val, x0, method=method, jac=jac, tol=tol, options={"maxiter": maxiter})
    log.log_string(f"scipy finished after {res.nit} iterations: {res.message}")

    result = NoisyIOPair(res.x, fun(res.x))
    log.log_noisy_iopair(result, name='Final position')
    return result
