"""
Field sampler: evaluate a compiled field over the square [-R, R]².

A SampleGrid is the unit of recomputation: it is never patched in place,
only replaced wholesale when the formula, range, resolution or t changes.

Array convention (same as the rest of the package): z[j, i] = f(x[i], y[j]),
i.e. rows follow y and columns follow x.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField


@dataclass
class GridConfig:
    """Sampling parameters for a square grid."""

    range: float = 4.0  # Half-width R of the domain [-R, R]²
    resolution: int = 80  # N cells per axis → (N+1)² nodes
    t: float = 0.0  # Time parameter passed to f(x, y, t)


@dataclass(frozen=True, eq=False)
class SampleGrid:
    """Samples of a field on an (N+1)×(N+1) node grid, plus validity masks."""

    x: np.ndarray  # (N+1,)
    y: np.ndarray  # (N+1,)
    z: np.ndarray  # (N+1, N+1), nan where invalid
    valid: np.ndarray  # finite samples
    admissible: np.ndarray  # valid and inside the domain mask
    range: float
    resolution: int
    t: float = 0.0

    @property
    def shape(self) -> tuple[int, int]:
        return self.z.shape

    @property
    def cell_size(self) -> float:
        return 2.0 * self.range / self.resolution

    @property
    def origin(self) -> tuple[float, float]:
        return float(self.x[0]), float(self.y[0])

    @property
    def z_min(self) -> float | None:
        if not self.admissible.any():
            return None
        return float(self.z[self.admissible].min())

    @property
    def z_max(self) -> float | None:
        if not self.admissible.any():
            return None
        return float(self.z[self.admissible].max())

    def heights(self, fill: float = 0.0) -> np.ndarray:
        """z with non-admissible samples replaced by `fill` (for mesh building)."""
        return np.where(self.admissible, self.z, fill)

    def masked_values(self) -> np.ndarray:
        """z with non-admissible samples set to nan (input for contouring)."""
        return np.where(self.admissible, self.z, np.nan)


def grid_axis(range_: float, resolution: int) -> np.ndarray:
    """Node coordinates -R, ..., R inclusive (resolution + 1 points)."""
    if range_ <= 0:
        raise ValueError(f"Range must be positive, got {range_}")
    return np.linspace(-range_, range_, int(resolution) + 1)


def admissible_mask(
    domain: "CompiledField | None",
    xx: np.ndarray,
    yy: np.ndarray,
) -> np.ndarray:
    """Points where the domain field h(x, y) ≤ 0; everything when no domain is set."""
    if domain is None:
        return np.ones(np.broadcast_shapes(np.shape(xx), np.shape(yy)), dtype=bool)
    h = np.asarray(domain(xx, yy))
    # nan compares False, so invalid h is never admissible
    return h <= 0.0


def sample_field(
    field: "CompiledField",
    range_: float,
    resolution: int,
    t: float = 0.0,
    domain: "CompiledField | None" = None,
) -> SampleGrid:
    """
    Sample a field on the (N+1)×(N+1) grid covering [-R, R]² inclusive.

    Invalid points are recorded in the `valid` mask and never abort the
    rest of the grid.

    Args:
        field: Compiled field f(x, y, t)
        range_: Half-width R of the domain
        resolution: N cells per axis (coerced to an int ≥ 1)
        t: Time parameter
        domain: Optional domain field h(x, y); admissible where h ≤ 0

    Returns:
        SampleGrid
    """
    resolution = max(1, int(resolution))
    axis = grid_axis(range_, resolution)
    xx, yy = np.meshgrid(axis, axis)

    z = np.asarray(field(xx, yy, t), dtype=np.float64)
    valid = np.isfinite(z)
    admissible = valid & admissible_mask(domain, xx, yy)

    return SampleGrid(
        x=axis,
        y=axis.copy(),
        z=z,
        valid=valid,
        admissible=admissible,
        range=float(range_),
        resolution=resolution,
        t=float(t),
    )


def sample_config(
    field: "CompiledField",
    config: GridConfig,
    domain: "CompiledField | None" = None,
) -> SampleGrid:
    """Sample a field using a GridConfig."""
    return sample_field(field, config.range, config.resolution, config.t, domain)
