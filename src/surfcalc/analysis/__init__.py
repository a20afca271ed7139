"""
Analysis layer: numerical quantities derived from compiled fields.

- probe: gradient, Hessian, limit check and Lagrange estimate at one point
- scan_critical_points: grid scan with discriminant classification
- integrate_field: masked volume, mass and centroid
- marching_squares / extract_isolines / domain_boundary: contours
- gradient_field: sampled ∇f for arrow plots
- surface_intersection: where two surfaces meet
"""

from surfcalc.analysis.probe import (
    LagrangeEstimate,
    LimitEstimate,
    ProbePoint,
    classify,
    default_step,
    resolve_step,
    probe,
)
from surfcalc.analysis.critical import CriticalPoint, count_by_kind, scan_critical_points
from surfcalc.analysis.integrate import GlobalStats, integrate_field
from surfcalc.analysis.contours import (
    ContourSegment,
    IsoLine,
    contour_levels,
    domain_boundary,
    extract_isolines,
    join_segments,
    marching_squares,
)
from surfcalc.analysis.gradient_field import GradientField, gradient_field
from surfcalc.analysis.intersection import IntersectionResult, surface_intersection

__all__ = [
    "LagrangeEstimate",
    "LimitEstimate",
    "ProbePoint",
    "classify",
    "default_step",
    "resolve_step",
    "probe",
    "CriticalPoint",
    "count_by_kind",
    "scan_critical_points",
    "GlobalStats",
    "integrate_field",
    "ContourSegment",
    "IsoLine",
    "contour_levels",
    "domain_boundary",
    "extract_isolines",
    "join_segments",
    "marching_squares",
    # Supplementary views
    "GradientField",
    "gradient_field",
    "IntersectionResult",
    "surface_intersection",
]
