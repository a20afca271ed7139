"""
Sampled gradient vector field ∇f on a coarse regular grid.

Used to draw arrows on the base plane: each arrow points along (fx, fy) and
its length grows with ‖∇f‖ up to a cap.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from surfcalc.analysis.probe import resolve_step

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField


@dataclass(frozen=True, eq=False)
class GradientField:
    """Gradient samples at vectors×vectors nodes, indexed [j, i] like SampleGrid."""

    x: np.ndarray
    y: np.ndarray
    fx: np.ndarray
    fy: np.ndarray
    valid: np.ndarray
    range: float

    @property
    def norm(self) -> np.ndarray:
        return np.where(self.valid, np.hypot(self.fx, self.fy), 0.0)

    def directions(self) -> tuple[np.ndarray, np.ndarray]:
        """Unit vectors along ∇f; zero where the gradient vanishes or is invalid."""
        norm = self.norm
        nonzero = norm > 1e-9
        safe = np.where(nonzero, norm, 1.0)
        ux = np.where(nonzero, self.fx / safe, 0.0)
        uy = np.where(nonzero, self.fy / safe, 0.0)
        return ux, uy

    def arrow_lengths(self, scale: float = 0.5, cap: float | None = None) -> np.ndarray:
        """min(cap, ‖∇f‖·scale), cap defaulting to 0.35·R."""
        if cap is None:
            cap = 0.35 * self.range
        return np.minimum(cap, self.norm * scale)


def gradient_field(
    field: "CompiledField",
    range_: float = 4.0,
    vectors: int = 16,
    t: float = 0.0,
    step: float = 1e-3,
) -> GradientField:
    """
    Central-difference gradient on a vectors×vectors grid over [-R, R]².

    Args:
        field: Compiled field f(x, y, t)
        range_: Domain half-width R
        vectors: Nodes per axis (at least 2)
        t: Time parameter
        step: Finite-difference step h (|step|, floored at 1e-4)

    Returns:
        GradientField
    """
    if range_ <= 0:
        raise ValueError(f"Range must be positive, got {range_}")
    n = max(2, int(vectors))
    step = resolve_step(step, range_)
    axis = np.linspace(-range_, range_, n)
    xx, yy = np.meshgrid(axis, axis)

    fx = (field(xx + step, yy, t) - field(xx - step, yy, t)) / (2.0 * step)
    fy = (field(xx, yy + step, t) - field(xx, yy - step, t)) / (2.0 * step)
    valid = np.isfinite(fx) & np.isfinite(fy)

    return GradientField(
        x=axis,
        y=axis.copy(),
        fx=np.where(valid, fx, np.nan),
        fy=np.where(valid, fy, np.nan),
        valid=valid,
        range=float(range_),
    )
