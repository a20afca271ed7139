"""
Critical point scanner.

Applies the probe's finite-difference scheme to every interior grid node,
keeps nodes that are nearly stationary and classifies them with the
discriminant test. A node is nearly stationary when either

- ‖∇f‖ ≤ ε = 1e-2·max(1, R), or
- ‖∇f‖ ≤ max(ε, cell·max(|fxx|, |fyy|, |fxy|)) and no node in its 3×3
  neighbourhood has a smaller ‖∇f‖.

The second rule catches extrema that fall between nodes: the nearest node
is at most half a cell diagonal away, where ‖∇f‖ grows with the curvature.

NOTE: this is a dense, resolution-dependent grid scan, not a root isolator.
Neighbouring nodes around one true extremum are all reported (no clustering),
and on a coarse grid a shallow extremum between nodes can still be missed.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import numpy as np

from surfcalc.analysis.probe import central_differences, classify, resolve_step
from surfcalc.core.grid import admissible_mask, grid_axis

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField

logger = logging.getLogger(__name__)

GRADIENT_TOL_FACTOR = 1e-2


@dataclass(frozen=True)
class CriticalPoint:
    """A nearly-stationary grid node with its classification."""

    x: float
    y: float
    z: float
    kind: Literal["max", "min", "saddle"]


def _neighbourhood_min(values: np.ndarray) -> np.ndarray:
    """Minimum over each node's 3×3 neighbourhood; nan counts as +inf."""
    ny, nx = values.shape
    padded = np.pad(np.where(np.isnan(values), np.inf, values), 1, constant_values=np.inf)
    shifted = [padded[dj:dj + ny, di:di + nx] for dj in range(3) for di in range(3)]
    return np.min(shifted, axis=0)


def gradient_tolerance(range_: float) -> float:
    """Near-stationarity threshold ε = 1e-2·max(1, R)."""
    return GRADIENT_TOL_FACTOR * max(1.0, range_)


def scan_critical_points(
    field: "CompiledField",
    range_: float,
    resolution: int,
    domain: "CompiledField | None" = None,
    t: float = 0.0,
    step: float | None = None,
) -> list[CriticalPoint]:
    """
    Scan the interior of the (N+1)×(N+1) grid for critical points.

    Args:
        field: Compiled field f(x, y, t)
        range_: Domain half-width R
        resolution: N cells per axis
        domain: Optional domain field h(x, y); only nodes with h ≤ 0 are scanned
        t: Time parameter
        step: Finite-difference step (default: max(1e-4, R/1000))

    Returns:
        Critical points in row-major order (y, then x)
    """
    resolution = max(1, int(resolution))
    axis = grid_axis(range_, resolution)
    if axis.size < 3:
        return []

    # Derivatives on every node, so interior neighbourhoods include the outer ring
    h = resolve_step(step, range_)
    xx, yy = np.meshgrid(axis, axis)
    d = central_differences(field, xx, yy, t, h)
    cell = 2.0 * range_ / resolution

    with np.errstate(invalid="ignore"):
        grad_norm = np.hypot(d.fx, d.fy)
        curvature = np.maximum(np.abs(d.fxx), np.maximum(np.abs(d.fyy), np.abs(d.fxy)))
        loose = np.fmax(gradient_tolerance(range_), cell * curvature)
        local_min = grad_norm <= _neighbourhood_min(grad_norm)
        stationary = (grad_norm <= gradient_tolerance(range_)) | ((grad_norm <= loose) & local_min)
        candidates = np.isfinite(d.value) & stationary & admissible_mask(domain, xx, yy)

    # Outer ring excluded
    candidates[0, :] = candidates[-1, :] = False
    candidates[:, 0] = candidates[:, -1] = False

    points: list[CriticalPoint] = []
    for j, i in zip(*np.nonzero(candidates)):
        kind = classify(float(d.fxx[j, i]), float(d.fyy[j, i]), float(d.fxy[j, i]))
        if kind is None:
            continue
        points.append(
            CriticalPoint(
                x=float(xx[j, i]),
                y=float(yy[j, i]),
                z=float(d.value[j, i]),
                kind=kind,
            )
        )

    logger.debug(
        "Critical scan R=%s N=%d: %d stationary candidates, %d classified",
        range_, resolution, int(candidates.sum()), len(points),
    )
    return points


def count_by_kind(points: list[CriticalPoint]) -> dict[str, int]:
    """Number of points per kind, e.g. {"max": 1, "min": 0, "saddle": 4}."""
    counts = {"max": 0, "min": 0, "saddle": 0}
    for point in points:
        counts[point.kind] += 1
    return counts
