from .bracket import IGOLD2, find_bracket, make_bracket, is_bracketed
from .brent import brent_min
from .multi_line import MLMParams, FunProjection1D, multi_line_min

__all__ = [
    'IGOLD2',
    'find_bracket',
    'make_bracket',
    'is_bracketed',
    'brent_min',
    'MLMParams',
    'FunProjection1D',
    'multi_line_min',
]
