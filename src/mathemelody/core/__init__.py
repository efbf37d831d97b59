"""
Core definitions shared by the Composition API and the Playback Engine.
"""

from . import exceptions
from .exceptions import ExpressionError, MathemelodyError, ValidationError

__all__ = ["exceptions", "MathemelodyError", "ExpressionError", "ValidationError"]
