from .scipy_opt import minimize_scipy

__all__ = ['minimize_scipy']
