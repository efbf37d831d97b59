"""
Expression evaluation and graphing.

Equations are free text typed by users, so every failure here is expected:
parse errors, unknown names, division by zero, or results that are not
numbers. They surface as ``ExpressionError`` subclasses and never as raw
SymPy, NumPy or Python exceptions.

SymPy only parses. The tree it returns is inert (nothing is simplified or
expanded) and is then computed node by node in double precision with NumPy,
so the cost of an evaluation is bounded by the length of the text. Values too
large for a double overflow to infinity and are rejected.

A value is real until the computation leaves the real line: a complex
operand, or a real operation with no real answer such as ``sqrt(-1)``. From
there on it stays complex, even when the imaginary part comes back to zero
(``i*i`` is the complex number -1).

Playback and graphing read the same evaluation differently:

- playback uses the magnitude: ``abs(value)`` for reals, the modulus for
  complex values. It is always non-negative.
- graphing plots the signed value for reals and the modulus for complex
  values.

The asymmetry is long-standing behaviour and is kept as is.
"""

import functools
import math
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from tokenize import TokenError
from typing import List, Optional, Tuple, Union

import numpy as np
import sympy
from scipy import special
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication,
    parse_expr,
    standard_transformations,
)

from ..core.exceptions import (
    ExpressionError,
    ExpressionSyntaxError,
    InvalidValueError,
    UnknownSymbolError,
    UnsupportedResultTypeError,
)

GRAPH_POINTS = 32

# math.js computes factorials of integers exactly up to here; past it they overflow
MAX_EXACT_FACTORIAL = 170

X = sympy.Symbol("x")

CONSTANTS = {
    "pi": sympy.pi,
    "e": sympy.E,
    "i": sympy.I,
}


def _log(value, base=None):
    if base is None:
        return np.log(value)
    return np.log(value) / np.log(base)


def _per_part(fn):
    """Apply a real rounding function to both parts of a complex value."""

    def apply(value):
        if np.iscomplexobj(value):
            return np.complex128(complex(fn(value.real), fn(value.imag)))
        return fn(value)

    return apply


FUNCTIONS = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "asin": np.arcsin,
    "acos": np.arccos,
    "atan": np.arctan,
    "sinh": np.sinh,
    "cosh": np.cosh,
    "tanh": np.tanh,
    "log": _log,
    "ln": np.log,
    "log10": np.log10,
    "exp": np.exp,
    "sqrt": np.sqrt,
    "conj": np.conj,
    "round": _per_part(lambda v: np.floor(v + 0.5)),
    "floor": _per_part(np.floor),
    "ceil": _per_part(np.ceil),
    # real even for complex arguments
    "abs": np.abs,
    "re": np.real,
    "im": np.imag,
    "arg": np.angle,
}

REAL_VALUED = frozenset({"abs", "re", "im", "arg"})

ALLOWED_NAMES = frozenset({"x", *CONSTANTS, *FUNCTIONS})

_TRANSFORMATIONS = standard_transformations + (implicit_multiplication, convert_xor)
_ALLOWED_CHARS = re.compile(r"^[0-9A-Za-z_\s.+\-*/^%(),!]*$")
_NUMBER = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_TOKEN = re.compile(
    rf"(?P<number>{_NUMBER.pattern})|(?P<name>[A-Za-z_][A-Za-z0-9_]*)|(?P<space>\s+)|(?P<other>.)"
)


# Names the parser's own transformations emit (Integer, Float, Symbol, Mul, ...).
# User text never reaches these: identifiers are screened against ALLOWED_NAMES.
_GLOBALS = {name: getattr(sympy, name) for name in sympy.__all__}
_GLOBALS["__builtins__"] = {}
# Functions parse to undefined SymPy functions, so nothing is evaluated symbolically
_LOCALS = {"x": X, **CONSTANTS, **{name: sympy.Function(name) for name in FUNCTIONS}}

Number = Union[float, complex]


@dataclass(frozen=True)
class EvaluationResult:
    """One evaluated expression at one x."""

    value: Number
    magnitude: float
    graph_value: float
    is_complex: bool


def _screen(expression: str) -> None:
    previous = None
    for token in _TOKEN.finditer(expression):
        kind, text = token.lastgroup, token.group()
        if kind == "space":
            continue
        if kind == "other" and not _ALLOWED_CHARS.match(text):
            raise ExpressionSyntaxError(f"Unexpected character {text!r}", expression=expression)
        if kind == "name" and text not in ALLOWED_NAMES:
            raise UnknownSymbolError(text, expression=expression)
        if kind == "number" and previous == "number":
            raise ExpressionSyntaxError(f"Unexpected number {text}", expression=expression)
        previous = kind


def _explicit_products(text: str) -> str:
    """Write ``2x``, ``4i`` and ``3(x+1)`` with an explicit ``*``.

    Digits inside names such as ``log10`` are left alone.
    """

    def product(match: re.Match) -> str:
        before = text[match.start() - 1] if match.start() else ""
        after = text[match.end() :].lstrip()[:1]
        if before.isalnum() or before in ("_", ".") or not (after.isalpha() or after in ("_", "(")):
            return match.group(0)
        return match.group(0) + "*"

    return _NUMBER.sub(product, text)


@lru_cache(maxsize=256)
def compile_expression(expression: str) -> sympy.Basic:
    """Parse ``expression`` into an unevaluated SymPy tree over ``x``."""
    text = expression.strip()
    if not text:
        raise ExpressionSyntaxError("Empty expression", expression=expression)

    _screen(text)

    try:
        with sympy.evaluate(False):
            parsed = parse_expr(
                _explicit_products(text),
                local_dict=dict(_LOCALS),
                global_dict=dict(_GLOBALS),
                transformations=_TRANSFORMATIONS,
                evaluate=False,
            )
    except (SyntaxError, TokenError) as e:
        raise ExpressionSyntaxError(
            f"Syntax error in expression: {text}", expression=expression
        ) from e
    except RecursionError as e:
        raise ExpressionSyntaxError("Expression is nested too deeply", expression=expression) from e
    except (TypeError, ValueError, AttributeError, ArithmeticError, sympy.SympifyError) as e:
        raise ExpressionError(str(e) or type(e).__name__, expression=expression) from e

    if not isinstance(parsed, sympy.Basic):
        raise UnsupportedResultTypeError(expression, type(parsed).__name__)
    return parsed


Value = Tuple[Union[np.float64, np.complex128], bool]


def _combine(fn, operands: List[Value]) -> Value:
    """Apply ``fn`` over the reals if possible, otherwise over the complex plane."""
    values = [value for value, _ in operands]
    if any(is_complex for _, is_complex in operands):
        return fn(*map(np.complex128, values)), True

    result = fn(*values)
    if np.isnan(result) and all(np.isfinite(values)):
        # no real answer, e.g. sqrt(-1), log(-2) or (-8)^(1/3)
        return fn(*map(np.complex128, values)), True
    return result, False


def _factorial(value):
    if (
        not np.iscomplexobj(value)
        and np.isfinite(value)
        and float(value).is_integer()
        and 0 <= value <= MAX_EXACT_FACTORIAL
    ):
        return np.float64(math.factorial(int(value)))
    return special.gamma(value + 1)


def _sum(*values):
    return functools.reduce(operator.add, values)


def _product(*values):
    return functools.reduce(operator.mul, values)


def _numeric(node: sympy.Basic, x: np.float64, expression: str) -> Value:
    if node == X:
        return x, False
    if isinstance(node, sympy.Symbol):
        raise UnknownSymbolError(node.name, expression=expression)
    if node is sympy.I:
        return np.complex128(1j), True
    if isinstance(node, (sympy.Number, sympy.NumberSymbol)):
        try:
            return np.float64(float(node)), False
        except OverflowError:
            return np.float64(np.inf), False
        except TypeError as e:
            raise InvalidValueError("Expression has no finite value", expression=expression) from e

    operands = [_numeric(arg, x, expression) for arg in node.args]

    if node.is_Add:
        return _combine(_sum, operands)
    if node.is_Mul:
        return _combine(_product, operands)
    if node.is_Pow:
        return _combine(np.power, operands)

    if isinstance(node, sympy.Mod):
        if any(is_complex for _, is_complex in operands):
            raise InvalidValueError("Modulo is not defined for complex numbers", expression=expression)
        dividend, divisor = (value for value, _ in operands)
        return np.mod(dividend, divisor), False

    # "n!!" is (n!)!, not the double factorial
    if isinstance(node, sympy.factorial2):
        return _combine(_factorial, [_combine(_factorial, operands)])
    if isinstance(node, sympy.factorial):
        return _combine(_factorial, operands)

    if isinstance(node, AppliedUndef):
        name = node.func.__name__
        arity = (1, 2) if name == "log" else (1,)
        if len(operands) not in arity:
            raise ExpressionError(
                f"Wrong number of arguments to {name}: {len(operands)}", expression=expression
            )
        value, is_complex = _combine(FUNCTIONS[name], operands)
        if name in REAL_VALUED:
            return np.float64(np.real(value)), False
        return value, is_complex

    raise UnsupportedResultTypeError(expression, type(node).__name__)


def evaluate(expression: str, x: float) -> EvaluationResult:
    """Evaluate ``expression`` with ``x`` bound, alongside ``pi``, ``e`` and ``i``.

    Raises:
        ExpressionError: for any parse or evaluation failure
    """
    compiled = compile_expression(expression)

    try:
        with np.errstate(all="ignore"):
            value, is_complex = _numeric(compiled, np.float64(x), expression)
    except RecursionError as e:
        raise ExpressionSyntaxError("Expression is nested too deeply", expression=expression) from e
    except (TypeError, ValueError, ArithmeticError) as e:
        raise InvalidValueError(str(e) or type(e).__name__, expression=expression) from e

    if not np.all(np.isfinite(value)):
        raise InvalidValueError("Expression has no finite value", expression=expression)

    if is_complex:
        number = complex(value)
        modulus = float(np.abs(value))
        if not math.isfinite(modulus):
            raise InvalidValueError("Value is too large", expression=expression)
        return EvaluationResult(value=number, magnitude=modulus, graph_value=modulus, is_complex=True)

    real = float(np.real(value))
    return EvaluationResult(value=real, magnitude=abs(real), graph_value=real, is_complex=False)


def try_evaluate(expression: str, x: float) -> Optional[EvaluationResult]:
    """Like :func:`evaluate`, returning None instead of raising."""
    try:
        return evaluate(expression, x)
    except ExpressionError:
        return None


def graph(expression: str, points: int = GRAPH_POINTS) -> List[Optional[float]]:
    """Sample ``expression`` at x = 0..points-1.

    Samples that fail to evaluate are None; failures are not reported.
    """
    if not expression or not expression.strip():
        return [None] * points

    samples: List[Optional[float]] = []
    for x in range(points):
        result = try_evaluate(expression, x)
        samples.append(None if result is None else float(result.graph_value))
    return samples
