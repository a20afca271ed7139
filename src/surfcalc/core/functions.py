"""
Closed vocabulary of the formula language.

Everything a formula can reach lives in this module:
- FUNCTIONS: name → (numpy implementation, arity); arity None means variadic
- CONSTANTS: named numeric constants (pi, tau, phi, e, degree/radian factors)
- ALIASES: localized or abbreviated spellings mapped to canonical names

All implementations accept and return float arrays. They are evaluated under
np.errstate(all="ignore"), so domain errors produce nan instead of raising.
"""

from __future__ import annotations
from functools import reduce
from typing import Callable

import numpy as np


def _round_half_up(v: np.ndarray) -> np.ndarray:
    # np.round rounds half to even
    return np.floor(v + 0.5)


def _fround(v: np.ndarray) -> np.ndarray:
    return np.asarray(v, dtype=np.float32).astype(np.float64)


def _variadic(ufunc) -> Callable[..., np.ndarray]:
    def apply(*args: np.ndarray) -> np.ndarray:
        return reduce(ufunc, args)
    return apply


def _hypot(*args: np.ndarray) -> np.ndarray:
    # Seeded with 0 so a lone argument still comes back as its magnitude
    return reduce(np.hypot, args, 0.0)


# Helpers built from the primitive set
def _cot(v):
    return 1.0 / np.tan(v)


def _sec(v):
    return 1.0 / np.cos(v)


def _csc(v):
    return 1.0 / np.sin(v)


def _sech(v):
    return 1.0 / np.cosh(v)


def _csch(v):
    return 1.0 / np.sinh(v)


def _coth(v):
    return 1.0 / np.tanh(v)


FUNCTIONS: dict[str, tuple[Callable[..., np.ndarray], int | None]] = {
    "abs": (np.abs, 1),
    "acos": (np.arccos, 1),
    "acosh": (np.arccosh, 1),
    "asin": (np.arcsin, 1),
    "asinh": (np.arcsinh, 1),
    "atan": (np.arctan, 1),
    "atan2": (np.arctan2, 2),
    "atanh": (np.arctanh, 1),
    "cbrt": (np.cbrt, 1),
    "ceil": (np.ceil, 1),
    "cos": (np.cos, 1),
    "cosh": (np.cosh, 1),
    "exp": (np.exp, 1),
    "expm1": (np.expm1, 1),
    "floor": (np.floor, 1),
    "fround": (_fround, 1),
    "hypot": (_hypot, None),
    "log": (np.log, 1),
    "log10": (np.log10, 1),
    "log1p": (np.log1p, 1),
    "log2": (np.log2, 1),
    "max": (_variadic(np.maximum), None),
    "min": (_variadic(np.minimum), None),
    "pow": (np.power, 2),
    "round": (_round_half_up, 1),
    "sign": (np.sign, 1),
    "sin": (np.sin, 1),
    "sinh": (np.sinh, 1),
    "sqrt": (np.sqrt, 1),
    "tan": (np.tan, 1),
    "tanh": (np.tanh, 1),
    "trunc": (np.trunc, 1),
    # derived helpers
    "cot": (_cot, 1),
    "ctg": (_cot, 1),
    "sec": (_sec, 1),
    "csc": (_csc, 1),
    "sech": (_sech, 1),
    "csch": (_csch, 1),
    "coth": (_coth, 1),
}

CONSTANTS: dict[str, float] = {
    "pi": np.pi,
    "tau": 2.0 * np.pi,
    "phi": (1.0 + np.sqrt(5.0)) / 2.0,  # golden ratio
    "e": np.e,
    "deg2rad": np.pi / 180.0,
    "rad2deg": 180.0 / np.pi,
}

# Spanish spellings, abbreviations and symbols
ALIASES: dict[str, str] = {
    "sen": "sin",
    "ln": "log",
    "tg": "tan",
    "π": "pi",
    "τ": "tau",
    "φ": "phi",
}


def canonical_name(name: str) -> str:
    """Map an identifier to its canonical vocabulary name (case-insensitive)."""
    lowered = name.lower()
    return ALIASES.get(lowered, lowered)


def is_function(name: str) -> bool:
    return canonical_name(name) in FUNCTIONS


def is_constant(name: str) -> bool:
    return canonical_name(name) in CONSTANTS
