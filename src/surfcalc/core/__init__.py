"""
Core primitives: formulas and sampled grids.

This layer knows NOTHING about derivatives, integrals or contours.
It only knows:
- The closed formula vocabulary (functions, constants, aliases)
- Parsing formula text into an AST and evaluating it on numpy arrays
- Sampling a compiled field over [-R, R]² with validity masks
"""

from surfcalc.core.expression import (
    CompiledField,
    ExpressionError,
    compile_field,
    compile_optional_field,
    evaluate_formula,
    parse,
    tokenize,
)
from surfcalc.core.grid import GridConfig, SampleGrid, sample_config, sample_field

__all__ = [
    "CompiledField",
    "ExpressionError",
    "compile_field",
    "compile_optional_field",
    "evaluate_formula",
    "parse",
    "tokenize",
    "GridConfig",
    "SampleGrid",
    "sample_config",
    "sample_field",
]
