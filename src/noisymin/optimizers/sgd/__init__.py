from .dynamic_descent import DynamicDescent
from .dynamic_descent import minimize as minimize_dynamic_descent
from .adam import Adam
from .adam import minimize as minimize_adam

__all__ = ['DynamicDescent', 'Adam', 'minimize_dynamic_descent', 'minimize_adam']
