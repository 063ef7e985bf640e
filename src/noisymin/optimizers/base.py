"""
Shared machinery of the iterative minimizers.

`Minimizer` owns the current position and value and runs one generic
iterate-until-converged loop. What happens inside an iteration is delegated
to an `UpdateRule` (dynamic descent, Adam, conjugate gradient).
"""
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Optional, Sequence

import numpy as np

from noisymin.log_manager import LogLevel, LogManager
from noisymin.noisy_value import NoisyIOPair, NoisyValue, is_gradient_meaningless
from noisymin.objective import NoisyFunction, NoisyFunctionWithGradient

STD_N_CONST_VALUES = 20


class ConvergenceDetector:
    """
    Window of the most recent values (newest first).

    The minimization is considered converged once the window is full and all
    of its values are indistinguishable from the newest one.
    """

    def __init__(self, max_n_const_values: int = STD_N_CONST_VALUES):
        if max_n_const_values < 1:
            raise ValueError(f"[ConvergenceDetector] max_n_const_values must be positive, got {max_n_const_values}")
        self._window: deque[NoisyValue] = deque(maxlen=max_n_const_values)

    @property
    def capacity(self) -> int:
        return self._window.maxlen

    @property
    def values(self) -> list[NoisyValue]:
        return list(self._window)

    def reset(self) -> None:
        self._window.clear()

    def push(self, value: NoisyValue) -> bool:
        """Add the newest value. Returns True if converged."""
        self._window.appendleft(value)
        if len(self._window) < self._window.maxlen:
            return False
        newest = self._window[0]
        return all(value == newest for value in self._window)


class UpdateRule(ABC):
    """One iteration of a minimization algorithm."""

    name = 'UpdateRule'
    requires_gradient = True

    @abstractmethod
    def reset(self, ndim: int) -> None:
        """Initialize the accumulators for a new run."""

    @abstractmethod
    def step(self, fun: NoisyFunction, current: NoisyIOPair, log: LogManager) -> Optional[NoisyIOPair]:
        """
        Compute the next point, with its value already evaluated.
        Return None to stop the minimization (e.g. meaningless gradient).
        """

    def finalize(self, fun: NoisyFunction, current: NoisyIOPair,
                 history: Sequence[np.ndarray], log: LogManager) -> NoisyIOPair:
        """Post-process the final point (e.g. iterate averaging)."""
        return current


def evaluate(fun: NoisyFunction, x: np.ndarray) -> NoisyIOPair:
    return NoisyIOPair(x, fun(x))


class GradientCache:
    """
    Gradient of the last point evaluated through fgrad, handed to the next step.

    Descent rules need the value of each new point now and its gradient at the
    start of the following iteration; fgrad computes both in one go.
    """

    def __init__(self):
        self._x: Optional[np.ndarray] = None
        self._grad: Optional[list[NoisyValue]] = None

    def clear(self) -> None:
        self._x = None
        self._grad = None

    def evaluate(self, fun: NoisyFunctionWithGradient, x: np.ndarray) -> NoisyIOPair:
        f, grad = fun.fgrad(x)
        pair = NoisyIOPair(x, f)
        self._x, self._grad = pair.x, grad
        return pair

    def gradient(self, fun: NoisyFunctionWithGradient, x: np.ndarray) -> list[NoisyValue]:
        """Cached gradient if it belongs to x, a fresh one otherwise. Each cached gradient is used once."""
        if self._grad is not None and np.array_equal(self._x, x):
            grad = self._grad
        else:
            grad = fun.grad(x)
        self.clear()
        return grad


def stop_on_meaningless_gradient(grad: Sequence[NoisyValue], use_grad_err: bool,
                                 log: LogManager) -> bool:
    if use_grad_err and is_gradient_meaningless(grad):
        log.log_string("Gradient seems to be meaningless, i.e. its error is too large.")
        return True
    return False


def average_positions(fun: NoisyFunction, history: Sequence[np.ndarray], log: LogManager) -> NoisyIOPair:
    """Average the given positions and evaluate fun at the average."""
    x_avg = np.mean(np.asarray(history, dtype=float), axis=0)
    averaged = evaluate(fun, x_avg)
    log.log_noisy_iopair(averaged, name='Averaged position')
    return averaged


class Minimizer:
    """
    Generic noisy minimization loop.

    Parameters
    ----------
    rule : UpdateRule
        The algorithm-specific iteration.
    max_n_const_values : int
        Size of the convergence window.
    max_n_iterations : int
        Maximum number of iterations (0 means no limit).
    epsx : float
        Stop when an iteration moves the position by less than epsx (0 disables).
    epsf : float
        Stop when an iteration changes the value by a min_dist below epsf (0 disables).
    log : LogManager, optional
        Progress output; off by default.

    Example
    -------
    >>> minimizer = Minimizer(DynamicDescent(step_size=0.5, beta=0.))
    >>> result = minimizer.find_min(fun, [2.5, 1., -1.])
    >>> minimizer.x, minimizer.f
    """

    def __init__(self, rule: UpdateRule,
                 max_n_const_values: int = STD_N_CONST_VALUES,
                 max_n_iterations: int = 0,
                 epsx: float = 0.0,
                 epsf: float = 0.0,
                 log: Optional[LogManager] = None):
        if max_n_iterations < 0:
            raise ValueError(f"[Minimizer] max_n_iterations must be non-negative, got {max_n_iterations}")
        self.rule = rule
        self.detector = ConvergenceDetector(max_n_const_values)
        self.max_n_iterations = max_n_iterations
        self.epsx = max(0.0, epsx)
        self.epsf = max(0.0, epsf)
        self.log = log if log is not None else LogManager()
        self._last: Optional[NoisyIOPair] = None
        self.n_iterations = 0

    # --- Accessors

    @property
    def last(self) -> NoisyIOPair:
        if self._last is None:
            raise ValueError("[Minimizer] No position set yet.")
        return self._last

    @property
    def x(self) -> np.ndarray:
        return self.last.x.copy()

    @property
    def f(self) -> NoisyValue:
        return self.last.f

    @property
    def ndim(self) -> int:
        return self.last.ndim

    def set_x(self, x: Sequence[float]) -> None:
        self._last = NoisyIOPair(x)

    # --- Minimization

    def find_min(self, fun: NoisyFunction, initial_guess: Optional[Sequence[float]] = None,
                 callback: Optional[Callable[[int, NoisyIOPair], None]] = None) -> NoisyIOPair:
        """
        Minimize fun, starting from initial_guess (or the last set position).

        callback(iteration, current) is invoked after every iteration; it may
        reconfigure the update rule, which takes effect on the next iteration.
        """
        if initial_guess is not None:
            self.set_x(initial_guess)
        if self._last is None:
            raise ValueError("[Minimizer.find_min] No initial position given.")
        if fun.ndim != self._last.ndim:
            raise ValueError(f"[Minimizer.find_min] Function ndim ({fun.ndim}) "
                             f"and position size ({self._last.ndim}) differ.")
        if self.rule.requires_gradient and not (isinstance(fun, NoisyFunctionWithGradient) and fun.has_gradient):
            raise ValueError(f"[{self.rule.name}] The function must provide a gradient.")

        self.rule.reset(fun.ndim)
        self.detector.reset()
        history: deque[np.ndarray] = deque(maxlen=self.detector.capacity)
        self.n_iterations = 0

        self.log.log_string(f"Begin {self.rule.name}.find_min() procedure")
        current = evaluate(fun, self._last.x)
        self.log.log_noisy_iopair(current, name='Initial position')

        history.appendleft(current.x)
        while not self.detector.push(current.f):
            if self.max_n_iterations > 0 and self.n_iterations >= self.max_n_iterations:
                self.log.log_string("Maximum number of iterations reached, interrupting minimisation procedure.")
                break

            new = self.rule.step(fun, current, self.log)
            if new is None:
                break
            self.n_iterations += 1
            self.log.log_noisy_iopair(new, LogLevel.VERBOSE, name=f"Iteration {self.n_iterations}")

            delta_x = float(np.linalg.norm(new.x - current.x))
            delta_f = new.f.min_dist(current.f)
            current = new
            history.appendleft(current.x)
            if callback is not None:
                callback(self.n_iterations, current)

            if self.epsx > 0.0 and delta_x < self.epsx:
                self.log.log_string("Position change below epsx, interrupting minimisation procedure.")
                break
            if self.epsf > 0.0 and delta_f < self.epsf:
                self.log.log_string("Value change below epsf, interrupting minimisation procedure.")
                break
        else:
            self.log.log_string("Cost function has stabilised, interrupting minimisation procedure.")

        current = self.rule.finalize(fun, current, list(history), self.log)
        self._last = current
        self.log.log_noisy_iopair(current, name='Final position')
        self.log.log_string(f"End {self.rule.name}.find_min() procedure")
        return current.copy()
