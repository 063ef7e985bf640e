import inspect
import numpy as np
from typing import Annotated, Any, Callable, Iterator, get_args, get_origin

# Parameters of a minimize_* function that are inputs, not hyperparameters
NON_TUNABLE = ('fun', 'initial_guess', 'log')


class Interval:
    """
    Optuna metadata class for use with parameter annotations using typing.Annotated
    Low and high are required, and must be numeric.
    Step is optional, and should be None if log=True.
    """
    def __init__(self, low: int | float, high: int | float, step: int | float | None = None, log: bool = False):
        if low >= high:
            raise ValueError(f"[Interval] low ({low}) must be below high ({high})")
        self.low = low
        self.high = high
        self.step = step
        self.log = log

    def __repr__(self):
        return f"Interval(low={self.low}, high={self.high}, step={self.step}, log={self.log})"


def tunable_parameters(optimizer: Callable) -> Iterator[tuple[str, type, Any]]:
    """Yield (name, base type, metadata) for every Annotated hyperparameter of optimizer."""
    for name, param in inspect.signature(optimizer).parameters.items():
        if name in NON_TUNABLE or get_origin(param.annotation) is not Annotated:
            continue
        base_type, meta = get_args(param.annotation)[:2]
        yield name, base_type, meta


def supports_parameter(optimizer: Callable, name: str) -> bool:
    return name in inspect.signature(optimizer).parameters


def check_optimizer_annotations(optimizer: Callable):
    found = False
    for name, base_type, meta in tunable_parameters(optimizer):
        if isinstance(meta, list) and base_type is not str:
            raise ValueError(f"Choice list on non-str parameter {name}")
        if not isinstance(meta, (Interval, list)):
            raise ValueError(f"Unsupported metadata for {name}: {meta}")
        found = True

    if not found:
        raise ValueError("No Annotated parameters with Interval or choice list")


def check_optimizer_function(optimizer: Callable, n_dims: int = 3, seed: int = 0):
    # Local import: the test problems import the optimizers' building blocks
    from noisymin.function_generators import fun_noisy

    test_func, _ = fun_noisy.get_function_and_optimum('parabola', n_dims=n_dims, sigma=0.1, seed=seed)
    kwargs = {'max_n_iterations': 2000} if supports_parameter(optimizer, 'max_n_iterations') else {}
    result = optimizer(fun=test_func, initial_guess=np.zeros(n_dims), **kwargs)
    assert result is not None, "Returned None"
    assert isinstance(result.x, np.ndarray), "Didn't return numpy array"
    assert result.x.shape == (n_dims,), "Returned wrong shape"
    assert np.all(np.isfinite(result.x)), "Returned inf or NaN values in x estimate"

    # The reported value must be a proper noisy value
    assert np.isfinite(result.f.val), "Produced solution with inf or NaN function value"
    assert np.isfinite(result.f.err) and result.f.err >= 0.0, "Produced solution with invalid error estimate"
