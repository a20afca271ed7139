"""
Approximate intersection of two surfaces z₁ = f₁(x, y, t) and z₂ = f₂(x, y, t).

Two views of the same set:
- points: grid nodes where |z₁ − z₂| < threshold, at height (z₁ + z₂)/2
- curve: zero-level marching-squares contour of z₁ − z₂ in the xy-plane
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from surfcalc.analysis.contours import ContourSegment, marching_squares
from surfcalc.core.grid import sample_field

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField
    from surfcalc.core.grid import SampleGrid


@dataclass(frozen=True, eq=False)
class IntersectionResult:
    first: "SampleGrid"
    second: "SampleGrid"
    points: list[tuple[float, float, float]]
    curve: list[ContourSegment]


def surface_intersection(
    first: "CompiledField",
    second: "CompiledField",
    range_: float = 4.0,
    resolution: int = 60,
    t: float = 0.0,
    threshold: float = 0.05,
) -> IntersectionResult:
    """
    Sample both surfaces on the same grid and locate where they meet.

    Args:
        first, second: Compiled fields
        range_: Domain half-width R
        resolution: N cells per axis
        t: Time parameter
        threshold: Max |z₁ − z₂| for a node to count as an intersection point

    Returns:
        IntersectionResult with both grids, near-equal nodes and the
        zero-level curve of z₁ − z₂
    """
    g1 = sample_field(first, range_, resolution, t)
    g2 = sample_field(second, range_, resolution, t)

    both = g1.valid & g2.valid
    diff = np.where(both, g1.z - g2.z, np.nan)

    with np.errstate(invalid="ignore"):
        close = both & (np.abs(diff) < threshold)

    points = [
        (float(g1.x[i]), float(g1.y[j]), float(0.5 * (g1.z[j, i] + g2.z[j, i])))
        for j, i in zip(*np.nonzero(close))
    ]
    curve = marching_squares(diff, g1.origin, g1.cell_size, 0.0)

    return IntersectionResult(first=g1, second=g2, points=points, curve=curve)
