from .conjgrad import ConjGrad
from .conjgrad import minimize as minimize_conjgrad

__all__ = [
    'ConjGrad',
    'minimize_conjgrad',
]
