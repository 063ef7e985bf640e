# Every public minimize_* function of the subpackages is registered in OPTIMIZERS
from .base import ConvergenceDetector, Minimizer, UpdateRule
from .sgd import *
from .numeric import *
from .scipy import *

from noisymin.optimizers.sgd import __all__ as _sgd_all
from noisymin.optimizers.numeric import __all__ as _numeric_all
from noisymin.optimizers.scipy import __all__ as _scipy_all

__all__ = ['ConvergenceDetector', 'Minimizer', 'UpdateRule', 'OPTIMIZERS', *_sgd_all, *_numeric_all, *_scipy_all]

# Name -> minimize function, used by the evaluator CLI and the registry-wide tests
OPTIMIZERS = {name: globals()[name] for name in __all__ if name.startswith('minimize_')}
