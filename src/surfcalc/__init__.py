"""
surfcalc: numerical analysis of user-typed scalar fields z = f(x, y, t)

A formula is compiled by a closed-grammar parser into a pure numeric field,
then analysed numerically:
- Sampling over [-R, R]² with per-point validity
- Local probe: gradient, Hessian, multi-path limit, Lagrange multiplier
- Critical point scan with the discriminant test
- Domain-masked volume, mass and centroid
- Marching-squares iso-lines and domain boundaries

Invalid points (outside the analytic domain) are first-class results and
never raise. Rendering and UI are left to the caller.
"""

__version__ = "0.1.0"

from surfcalc.core import (
    CompiledField,
    ExpressionError,
    GridConfig,
    SampleGrid,
    compile_field,
    compile_optional_field,
    sample_field,
)
from surfcalc.analysis import (
    ContourSegment,
    CriticalPoint,
    GlobalStats,
    ProbePoint,
    domain_boundary,
    extract_isolines,
    gradient_field,
    integrate_field,
    marching_squares,
    probe,
    scan_critical_points,
    surface_intersection,
)
from surfcalc.inspector import InspectorConfig, SurfaceInspector

__all__ = [
    "CompiledField",
    "ExpressionError",
    "GridConfig",
    "SampleGrid",
    "compile_field",
    "compile_optional_field",
    "sample_field",
    "ContourSegment",
    "CriticalPoint",
    "GlobalStats",
    "ProbePoint",
    "domain_boundary",
    "extract_isolines",
    "gradient_field",
    "integrate_field",
    "marching_squares",
    "probe",
    "scan_critical_points",
    "surface_intersection",
    "InspectorConfig",
    "SurfaceInspector",
]
