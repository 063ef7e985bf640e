from .noisy_value import NoisyValue, NoisyIOPair, NoisyIOPair1D, NoisyBracket
from .objective import NoisyFunction, NoisyFunctionWithGradient, NoisyFunctionFromCallable
from .log_manager import LogLevel, LogManager
from .linesearch import MLMParams, find_bracket, brent_min, multi_line_min
from .optimizers import OPTIMIZERS, ConvergenceDetector, Minimizer, DynamicDescent, Adam, ConjGrad

__all__ = [
    'NoisyValue',
    'NoisyIOPair',
    'NoisyIOPair1D',
    'NoisyBracket',
    'NoisyFunction',
    'NoisyFunctionWithGradient',
    'NoisyFunctionFromCallable',
    'LogLevel',
    'LogManager',
    'MLMParams',
    'find_bracket',
    'brent_min',
    'multi_line_min',
    'OPTIMIZERS',
    'ConvergenceDetector',
    'Minimizer',
    'DynamicDescent',
    'Adam',
    'ConjGrad',
]
