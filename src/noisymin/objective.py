"""
Capability interfaces for noisy objective functions.

`NoisyFunction` is anything that can be evaluated at a point;
`NoisyFunctionWithGradient` additionally provides a (possibly noisy) gradient.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import numpy as np

from noisymin.noisy_value import NoisyValue


class NoisyFunction(ABC):
    def __init__(self, ndim: int):
        if ndim < 1:
            raise ValueError(f"[NoisyFunction] ndim must be positive, got {ndim}")
        self._ndim = int(ndim)

    @property
    def ndim(self) -> int:
        return self._ndim

    @abstractmethod
    def f(self, x: np.ndarray) -> NoisyValue:
        """Evaluate the function at x (length ndim)."""

    def __call__(self, x) -> NoisyValue:
        return self.f(np.asarray(x, dtype=float))


class NoisyFunctionWithGradient(NoisyFunction):
    def __init__(self, ndim: int, has_grad_err: bool = False):
        super().__init__(ndim)
        self._has_grad_err = has_grad_err

    @property
    def has_grad_err(self) -> bool:
        """Whether grad() populates the error fields."""
        return self._has_grad_err

    @property
    def has_gradient(self) -> bool:
        return True

    @abstractmethod
    def grad(self, x: np.ndarray) -> list[NoisyValue]:
        """Gradient at x, one NoisyValue per dimension."""

    def fgrad(self, x: np.ndarray) -> tuple[NoisyValue, list[NoisyValue]]:
        # Override with a combined evaluation where that is cheaper
        return self.f(x), self.grad(x)


class NoisyFunctionFromCallable(NoisyFunctionWithGradient):
    """
    Wrap plain callables into the NoisyFunction interfaces.

    Parameters
    ----------
    ndim : int
        Dimensionality of the input.
    fun : Callable[[np.ndarray], tuple[float, float]]
        Returns (value, error). A bare float is accepted and treated as exact.
    grad : Callable[[np.ndarray], np.ndarray], optional
        Returns either gradient values of shape (ndim,) or values and errors
        of shape (2, ndim).
    has_grad_err : bool
        Whether `grad` provides errors.
    """
    def __init__(self, ndim: int,
                 fun: Callable[[np.ndarray], object],
                 grad: Optional[Callable[[np.ndarray], Sequence]] = None,
                 has_grad_err: bool = False):
        super().__init__(ndim, has_grad_err)
        self._fun = fun
        self._grad = grad

    @property
    def has_gradient(self) -> bool:
        return self._grad is not None

    def f(self, x: np.ndarray) -> NoisyValue:
        out = self._fun(x)
        if isinstance(out, NoisyValue):
            return out
        if np.isscalar(out):
            return NoisyValue(float(out), 0.0)
        val, err = out
        return NoisyValue(float(val), float(err))

    def grad(self, x: np.ndarray) -> list[NoisyValue]:
        if self._grad is None:
            raise ValueError("[NoisyFunctionFromCallable.grad] No gradient callable was provided.")
        g = np.asarray(self._grad(x), dtype=float)
        if g.ndim == 2:
            return [NoisyValue(v, e) for v, e in zip(g[0], g[1])]
        return [NoisyValue(v, 0.0) for v in g]
