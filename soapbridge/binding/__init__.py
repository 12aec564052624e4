"""
Request binding and overload resolution.

Components:
- ArgumentBinder: request document -> typed arguments and a match score
- OverloadResolver: chooses the best scoring overload of an operation
- zero_value: fill values for parameters the document leaves out
"""

from .binder import ArgumentBinder, BindingResult
from .defaults import default_for, zero_value
from .resolver import OverloadResolver, Resolution

__all__ = [
    "ArgumentBinder",
    "BindingResult",
    "OverloadResolver",
    "Resolution",
    "default_for",
    "zero_value",
]
