import numpy as np
from typing import Callable, Optional

from noisymin.noisy_value import NoisyValue
from noisymin.objective import NoisyFunction, NoisyFunctionWithGradient


# --- 1-D functions for the line searches

class Parabola(NoisyFunction):
    """x^2, exact."""
    def __init__(self):
        super().__init__(1)

    def f(self, x):
        return NoisyValue(float(x[0] ** 2), 0.0)


class Well(NoisyFunction):
    """-1 inside (-1, 1), +1 outside, exact."""
    def __init__(self):
        super().__init__(1)

    def f(self, x):
        return NoisyValue(-1.0 if -1.0 < x[0] < 1.0 else 1.0, 0.0)


# --- n-D functions with gradient

class Parabola3D(NoisyFunctionWithGradient):
    """x^2 + (y+1)^2 + (z-2)^2, exact, minimum in (0, -1, 2)."""
    OPTIMUM = np.array([0.0, -1.0, 2.0])

    def __init__(self):
        super().__init__(3)

    def f(self, x):
        return NoisyValue(float(np.sum((x - self.OPTIMUM) ** 2)), 0.0)

    def grad(self, x):
        return [NoisyValue(float(g), 0.0) for g in 2.0 * (x - self.OPTIMUM)]


class NoisyWrapper(NoisyFunctionWithGradient):
    """Adds Gaussian noise of scale sigma to the value and gradient of an exact function."""
    def __init__(self, fun: NoisyFunctionWithGradient, sigma: float, seed: Optional[int] = None):
        super().__init__(fun.ndim, has_grad_err=True)
        if sigma < 0:
            raise ValueError(f"[NoisyWrapper] sigma must be non-negative, got {sigma}")
        self._fun = fun
        self._sigma = sigma
        self._rng = np.random.default_rng(seed)

    def f(self, x):
        v = self._fun.f(x)
        return NoisyValue(v.val + self._rng.normal(scale=self._sigma), float(np.hypot(v.err, self._sigma)))

    def grad(self, x):
        return [NoisyValue(g.val + self._rng.normal(scale=self._sigma), float(np.hypot(g.err, self._sigma)))
                for g in self._fun.grad(x)]


class TransformedFunction(NoisyFunctionWithGradient):
    """
    Exact function f(z) with gradient, seen through the affine map z = A (x - shift).
    """
    def __init__(self, func_z: Callable[[np.ndarray], float], grad_z: Callable[[np.ndarray], np.ndarray],
                 A_mat: np.ndarray, shift: np.ndarray):
        super().__init__(len(shift))
        self._func_z = func_z
        self._grad_z = grad_z
        self._A = A_mat
        self._shift = shift

    def f(self, x):
        z = self._A @ (np.asarray(x) - self._shift)
        return NoisyValue(float(self._func_z(z)), 0.0)

    def grad(self, x):
        z = self._A @ (np.asarray(x) - self._shift)
        return [NoisyValue(float(g), 0.0) for g in self._A.T @ self._grad_z(z)]


def generate_affine_transformation(n_dims: int, rng: np.random.Generator):
    scale_range = (0.5, 2.0)
    shift_range = (-5.0, 5.0)
    shift = rng.uniform(*shift_range, size=n_dims)
    Q, _ = np.linalg.qr(rng.normal(size=(n_dims, n_dims)))
    scales = rng.uniform(*scale_range, size=n_dims)
    A_mat = Q @ np.diag(scales)
    return A_mat, shift


def sphere(z):
    return np.sum(z ** 2)


def sphere_grad(z):
    return 2.0 * z


def rosenbrock(z):
    return np.sum(100.0 * (z[1:] - z[:-1] ** 2) ** 2 + (1 - z[:-1]) ** 2)


def rosenbrock_grad(z):
    g = np.zeros_like(z)
    g[:-1] = -400.0 * z[:-1] * (z[1:] - z[:-1] ** 2) - 2.0 * (1 - z[:-1])
    g[1:] += 200.0 * (z[1:] - z[:-1] ** 2)
    return g


def styblinski_tang(z):
    return 0.5 * np.sum(z**4 - 16 * z**2 + 5 * z)


def styblinski_tang_grad(z):
    return 0.5 * (4 * z**3 - 32 * z + 5)


FUNCTIONS_AND_OPTIMA = {
    "parabola": (sphere, sphere_grad, lambda n_dims: np.zeros(n_dims)),
    "rosenbrock": (rosenbrock, rosenbrock_grad, lambda n_dims: np.ones(n_dims)),
    "styblinski_tang": (styblinski_tang, styblinski_tang_grad, lambda n_dims: np.ones(n_dims) * -2.903534),
}


def get_function_and_optimum(func_name: str, n_dims: int, sigma: float = 0.0, seed: Optional[int] = None):
    """
    Randomly rotated, scaled and shifted test problem with Gaussian noise of scale sigma.

    Returns the noisy function and the position of its minimum.
    """
    rng = np.random.default_rng(seed)
    func_z, grad_z, optimum_gen = FUNCTIONS_AND_OPTIMA[func_name]
    A_mat, shift = generate_affine_transformation(n_dims, rng)
    optimum_x = np.linalg.solve(A_mat, optimum_gen(n_dims)) + shift
    exact = TransformedFunction(func_z, grad_z, A_mat, shift)
    # rng.integers draws the noise seed, so a fixed seed gives a reproducible problem
    return NoisyWrapper(exact, sigma, seed=int(rng.integers(2**32))), optimum_x
