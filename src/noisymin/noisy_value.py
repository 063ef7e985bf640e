"""
Noisy values and the containers built from them.

A NoisyValue is a measured scalar together with its one-standard-error
estimate. Two noisy values are considered equal whenever their uncertainty
intervals overlap, and one is only "greater" than another when the intervals
are disjoint. Every decision taken by the line searches and the minimizers is
expressed through these comparisons, never through the raw `val` field.
"""
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


@dataclass(frozen=True, eq=False)
class NoisyValue:
    val: float = 0.0
    err: float = 0.0

    def __post_init__(self):
        if self.err < 0:
            raise ValueError(f"[NoisyValue] err must be non-negative, got {self.err}")

    # --- Bounds

    def lower_bound(self) -> float:
        return self.val - self.err

    def upper_bound(self) -> float:
        return self.val + self.err

    def min_dist(self, other: "NoisyValue") -> float:
        """Distance between the nearer bounds of two values (0 if they overlap)."""
        if self.lower_bound() > other.upper_bound():
            return self.lower_bound() - other.upper_bound()
        if other.lower_bound() > self.upper_bound():
            return other.lower_bound() - self.upper_bound()
        return 0.0

    # --- Comparison

    def __eq__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return self.lower_bound() <= other.upper_bound() and other.lower_bound() <= self.upper_bound()

    def __ne__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return not self == other

    def __gt__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return not self == other and self.val > other.val

    def __lt__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return not self == other and self.val < other.val

    def __ge__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return not self < other

    def __le__(self, other):
        if not isinstance(other, NoisyValue):
            return NotImplemented
        return not self > other

    # --- Arithmetic (independent errors are added in quadrature)

    def __add__(self, other):
        if isinstance(other, NoisyValue):
            return NoisyValue(self.val + other.val, float(np.hypot(self.err, other.err)))
        return NoisyValue(self.val + other, self.err)

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, NoisyValue):
            return NoisyValue(self.val - other.val, float(np.hypot(self.err, other.err)))
        return NoisyValue(self.val - other, self.err)

    def __rsub__(self, other):
        return NoisyValue(other - self.val, self.err)

    def __neg__(self):
        return NoisyValue(-self.val, self.err)

    def __mul__(self, scalar: float):
        return NoisyValue(self.val * scalar, self.err * abs(scalar))

    __rmul__ = __mul__

    def __truediv__(self, scalar: float):
        return NoisyValue(self.val / scalar, self.err / abs(scalar))

    def __str__(self):
        return f"{self.val} +- {self.err}"


@dataclass
class NoisyIOPair:
    """An evaluated point of an n-dimensional noisy function."""
    x: np.ndarray
    f: NoisyValue = field(default_factory=NoisyValue)

    def __post_init__(self):
        self.x = np.array(self.x, dtype=float).reshape(-1)

    @property
    def ndim(self) -> int:
        return self.x.size

    def copy(self) -> "NoisyIOPair":
        return NoisyIOPair(self.x.copy(), self.f)


@dataclass
class NoisyIOPair1D:
    x: float = 0.0
    f: NoisyValue = field(default_factory=NoisyValue)


@dataclass
class NoisyBracket:
    """Three points of a 1-D function, meant to satisfy a.x < b.x < c.x and a.f > b.f < c.f."""
    a: NoisyIOPair1D
    b: NoisyIOPair1D
    c: NoisyIOPair1D

    def copy(self) -> "NoisyBracket":
        return NoisyBracket(NoisyIOPair1D(self.a.x, self.a.f),
                            NoisyIOPair1D(self.b.x, self.b.f),
                            NoisyIOPair1D(self.c.x, self.c.f))


def gradient_arrays(grad: Sequence[NoisyValue]) -> tuple[np.ndarray, np.ndarray]:
    """Split a noisy gradient into arrays of values and errors."""
    vals = np.array([g.val for g in grad], dtype=float)
    errs = np.array([g.err for g in grad], dtype=float)
    return vals, errs


def is_gradient_meaningless(grad: Sequence[NoisyValue]) -> bool:
    """True when every gradient component is indistinguishable from zero."""
    vals, errs = gradient_arrays(grad)
    return bool(np.all(np.abs(vals) <= errs))
