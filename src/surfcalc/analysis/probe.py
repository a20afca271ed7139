"""
Differential probe: local numerical analysis of a field at one point.

Everything here is finite differences on the compiled field:
- value, gradient (fx, fy) and Hessian (fxx, fyy, fxy) by central differences
- multi-path limit check: f sampled along several directions at halving radii
- Lagrange multiplier estimate against a constraint curve g(x, y) = 0

Results use None for "undefined" (invalid samples, degenerate denominators),
never nan.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

import numpy as np

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField

# Approach paths for the limit check: unit and non-unit slopes, both signs
LIMIT_DIRECTIONS = (
    (1.0, 0.0),
    (0.0, 1.0),
    (1.0, 1.0),
    (1.0, -1.0),
    (2.0, 1.0),
    (1.0, 2.0),
    (-1.0, 1.0),
    (-1.0, -1.0),
)
LIMIT_RADII = 5  # h, h/2, h/4, h/8, h/16
LIMIT_REL_TOL = 1e-4

# |D| at or below this is inconclusive
DISCRIMINANT_TOL = 1e-8

MIN_STEP = 1e-4


def default_step(range_: float) -> float:
    """Finite-difference step for a domain of half-width R: max(1e-4, R/1000)."""
    return max(MIN_STEP, range_ / 1000.0)


def resolve_step(step: float | None, range_: float) -> float:
    """The default step when none is given, otherwise |step| floored at 1e-4."""
    if step is None:
        return default_step(range_)
    return max(MIN_STEP, abs(float(step)))


def _finite_or_none(value) -> float | None:
    value = float(value)
    return value if math.isfinite(value) else None


class Derivatives(NamedTuple):
    """Central-difference derivatives; arrays (or floats) with nan where undefined."""

    value: np.ndarray
    fx: np.ndarray
    fy: np.ndarray
    fxx: np.ndarray
    fyy: np.ndarray
    fxy: np.ndarray


def central_differences(
    field: "CompiledField",
    x,
    y,
    t: float,
    h: float,
) -> Derivatives:
    """
    First and second derivatives by central differences.

        fx  = (f(x+h, y) - f(x-h, y)) / 2h
        fxx = (f(x+h, y) - 2 f(x, y) + f(x-h, y)) / h²
        fxy = (f(x+h, y+h) - f(x+h, y-h) - f(x-h, y+h) + f(x-h, y-h)) / 4h²

    x and y may be arrays; every output broadcasts to their shape. Any
    invalid sample in a stencil makes that derivative nan.
    """
    f0 = field(x, y, t)
    f_xp = field(x + h, y, t)
    f_xm = field(x - h, y, t)
    f_yp = field(x, y + h, t)
    f_ym = field(x, y - h, t)
    f_pp = field(x + h, y + h, t)
    f_pm = field(x + h, y - h, t)
    f_mp = field(x - h, y + h, t)
    f_mm = field(x - h, y - h, t)

    h2 = h * h
    return Derivatives(
        value=f0,
        fx=(f_xp - f_xm) / (2.0 * h),
        fy=(f_yp - f_ym) / (2.0 * h),
        fxx=(f_xp - 2.0 * f0 + f_xm) / h2,
        fyy=(f_yp - 2.0 * f0 + f_ym) / h2,
        fxy=(f_pp - f_pm - f_mp + f_mm) / (4.0 * h2),
    )


def classify(fxx: float | None, fyy: float | None, fxy: float | None) -> str | None:
    """
    Second-derivative test.

    D = fxx·fyy − fxy²:
    - D > 0, fxx < 0 → "max"
    - D > 0, fxx > 0 → "min"
    - D < 0 → "saddle"
    - D ≈ 0 or any input undefined → None (inconclusive)
    """
    if fxx is None or fyy is None or fxy is None:
        return None
    d = fxx * fyy - fxy * fxy
    if not math.isfinite(d) or abs(d) <= DISCRIMINANT_TOL:
        return None
    if d < 0:
        return "saddle"
    if fxx < 0:
        return "max"
    if fxx > 0:
        return "min"
    return None


@dataclass(frozen=True)
class LimitEstimate:
    """Multi-path estimate of lim f(p) as p → (x, y)."""

    mean: float | None
    variance: float | None
    consistent: bool
    samples: int


@dataclass(frozen=True)
class LagrangeEstimate:
    """λ such that ∇f ≈ λ∇g, plus g itself to judge proximity to g = 0."""

    g: float | None
    gx: float | None
    gy: float | None
    multiplier: float | None


@dataclass(frozen=True)
class ProbePoint:
    """Local analysis at one point."""

    x: float
    y: float
    t: float
    step: float
    value: float | None
    fx: float | None
    fy: float | None
    fxx: float | None
    fyy: float | None
    fxy: float | None
    limit: LimitEstimate
    lagrange: LagrangeEstimate | None = None

    @property
    def gradient(self) -> tuple[float, float] | None:
        if self.fx is None or self.fy is None:
            return None
        return self.fx, self.fy

    @property
    def gradient_norm(self) -> float | None:
        if self.fx is None or self.fy is None:
            return None
        return math.hypot(self.fx, self.fy)

    @property
    def discriminant(self) -> float | None:
        if self.fxx is None or self.fyy is None or self.fxy is None:
            return None
        return self.fxx * self.fyy - self.fxy * self.fxy

    @property
    def kind(self) -> str | None:
        """Discriminant classification of the point (meaningful where ∇f ≈ 0)."""
        return classify(self.fxx, self.fyy, self.fxy)


def estimate_limit(
    field: "CompiledField",
    x: float,
    y: float,
    t: float,
    h: float,
) -> LimitEstimate:
    """
    Sample f along LIMIT_DIRECTIONS at radii h, h/2, ..., and compare paths.

    This is a relative-tolerance heuristic: the limit is "consistent" when
    the sample variance < 1e-4·(1 + |mean|). Invalid samples are excluded;
    with fewer than two valid samples the variance is undefined.
    """
    directions = np.asarray(LIMIT_DIRECTIONS)
    radii = h * 0.5 ** np.arange(LIMIT_RADII)

    px = x + directions[:, 0, None] * radii[None, :]
    py = y + directions[:, 1, None] * radii[None, :]
    values = np.asarray(field(px, py, t)).ravel()
    values = values[np.isfinite(values)]

    n = int(values.size)
    if n == 0:
        return LimitEstimate(mean=None, variance=None, consistent=False, samples=0)

    mean = float(values.mean())
    if n < 2:
        return LimitEstimate(mean=mean, variance=None, consistent=False, samples=n)

    variance = float(values.var(ddof=1))
    consistent = variance < LIMIT_REL_TOL * (1.0 + abs(mean))
    return LimitEstimate(mean=mean, variance=variance, consistent=consistent, samples=n)


def estimate_lagrange(
    constraint: "CompiledField",
    x: float,
    y: float,
    h: float,
    fx: float | None,
    fy: float | None,
) -> LagrangeEstimate:
    """λ = (∇f·∇g) / ‖∇g‖², undefined when ‖∇g‖² = 0 or ∇f is undefined."""
    g = _finite_or_none(constraint(x, y))
    gx = _finite_or_none((constraint(x + h, y) - constraint(x - h, y)) / (2.0 * h))
    gy = _finite_or_none((constraint(x, y + h) - constraint(x, y - h)) / (2.0 * h))

    multiplier = None
    if gx is not None and gy is not None and fx is not None and fy is not None:
        denom = gx * gx + gy * gy
        if denom > 0:
            multiplier = _finite_or_none((fx * gx + fy * gy) / denom)

    return LagrangeEstimate(g=g, gx=gx, gy=gy, multiplier=multiplier)


def probe(
    field: "CompiledField",
    x: float,
    y: float,
    t: float = 0.0,
    step: float | None = None,
    *,
    range_: float = 4.0,
    constraint: "CompiledField | None" = None,
) -> ProbePoint:
    """
    Analyse a field at (x, y, t).

    Args:
        field: Compiled field f(x, y, t)
        x, y, t: Probe location
        step: Finite-difference step h (default: max(1e-4, range_/1000));
            an explicit step is used as |step|, floored at 1e-4
        range_: Domain half-width, only used for the default step
        constraint: Optional g(x, y) for the Lagrange estimate

    Returns:
        ProbePoint with derivatives, limit estimate and optional Lagrange data
    """
    h = resolve_step(step, range_)
    d = central_differences(field, float(x), float(y), float(t), h)
    fx = _finite_or_none(d.fx)
    fy = _finite_or_none(d.fy)

    lagrange = None
    if constraint is not None:
        lagrange = estimate_lagrange(constraint, float(x), float(y), h, fx, fy)

    return ProbePoint(
        x=float(x),
        y=float(y),
        t=float(t),
        step=h,
        value=_finite_or_none(d.value),
        fx=fx,
        fy=fy,
        fxx=_finite_or_none(d.fxx),
        fyy=_finite_or_none(d.fyy),
        fxy=_finite_or_none(d.fxy),
        limit=estimate_limit(field, float(x), float(y), float(t), h),
        lagrange=lagrange,
    )
