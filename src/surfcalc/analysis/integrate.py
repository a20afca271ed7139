"""
Domain-masked integrals over [-R, R]²: z range, volume, mass and centroid.

Midpoint Riemann sum on an M×M cell grid, dA = (2R/M)². Only the part of the
surface above the base plane contributes (h = max(0, z)); each column's
z-centroid is taken as h/2.

Cells whose z is invalid or outside the domain mask are excluded. Cells where
the density σ is invalid still count towards volume but not towards mass.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from surfcalc.core.grid import admissible_mask

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField

logger = logging.getLogger(__name__)

MIN_INTEGRATION_RESOLUTION = 16
MAX_INTEGRATION_RESOLUTION = 200


@dataclass(frozen=True)
class GlobalStats:
    """Aggregates over the admissible part of the domain."""

    z_min: float | None
    z_max: float | None
    volume: float
    mass: float
    centroid: tuple[float, float, float] | None  # None when mass = 0
    resolution: int
    cells: int  # admissible cells that contributed


def clamp_resolution(resolution: int) -> int:
    """Clamp M to [16, 200] to keep the sum interactive."""
    return max(MIN_INTEGRATION_RESOLUTION, min(MAX_INTEGRATION_RESOLUTION, int(resolution)))


def cell_centers(range_: float, resolution: int) -> np.ndarray:
    """Midpoints -R + (i + 0.5)·(2R/M) for i = 0..M-1."""
    if range_ <= 0:
        raise ValueError(f"Range must be positive, got {range_}")
    dx = 2.0 * range_ / resolution
    return -range_ + (np.arange(resolution) + 0.5) * dx


def integrate_field(
    field: "CompiledField",
    density: "CompiledField | None" = None,
    range_: float = 4.0,
    resolution: int = 80,
    domain: "CompiledField | None" = None,
    t: float = 0.0,
) -> GlobalStats:
    """
    Integrate a field over the (masked) square domain.

    Args:
        field: Compiled field f(x, y, t)
        density: Surface density σ(x, y) (constant 1 when None)
        range_: Domain half-width R
        resolution: M cells per axis (clamped to [16, 200])
        domain: Optional domain field h(x, y); cells with h ≤ 0 are admissible
        t: Time parameter

    Returns:
        GlobalStats
    """
    m = clamp_resolution(resolution)
    centers = cell_centers(range_, m)
    xx, yy = np.meshgrid(centers, centers)
    dA = (2.0 * range_ / m) ** 2

    z = np.asarray(field(xx, yy, t), dtype=np.float64)
    admissible = np.isfinite(z) & admissible_mask(domain, xx, yy)
    cells = int(admissible.sum())

    if cells == 0:
        logger.debug("Integration R=%s M=%d: no admissible cells", range_, m)
        return GlobalStats(
            z_min=None, z_max=None, volume=0.0, mass=0.0,
            centroid=None, resolution=m, cells=0,
        )

    z_adm = z[admissible]
    h = np.maximum(0.0, np.where(admissible, z, 0.0))
    volume = float(h.sum() * dA)

    if density is None:
        sigma = np.ones_like(z)
    else:
        sigma = np.broadcast_to(np.asarray(density(xx, yy), dtype=np.float64), z.shape)
    weighted = admissible & np.isfinite(sigma)
    sigma = np.where(weighted, sigma, 0.0)

    dm = sigma * h * dA
    mass = float(dm.sum())

    centroid = None
    if mass > 0:
        mx = float((xx * dm).sum())
        my = float((yy * dm).sum())
        mz = float((0.5 * h * h * sigma * dA).sum())
        centroid = (mx / mass, my / mass, mz / mass)

    logger.debug(
        "Integration R=%s M=%d: %d cells, volume=%.6g, mass=%.6g",
        range_, m, cells, volume, mass,
    )
    return GlobalStats(
        z_min=float(z_adm.min()),
        z_max=float(z_adm.max()),
        volume=volume,
        mass=mass,
        centroid=centroid,
        resolution=m,
        cells=cells,
    )
