"""
SurfaceInspector: one formula plus its optional auxiliary fields, analysed
on demand.

The inspector compiles its formulas once at construction. Every query
recomputes from scratch: there is no cache, so a caller that changes the
range, resolution or t simply builds a new config and a new inspector.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from surfcalc.analysis.contours import ContourSegment, IsoLine, domain_boundary, extract_isolines
from surfcalc.analysis.critical import CriticalPoint, scan_critical_points
from surfcalc.analysis.gradient_field import GradientField, gradient_field
from surfcalc.analysis.integrate import GlobalStats, integrate_field
from surfcalc.analysis.probe import ProbePoint, default_step, probe
from surfcalc.core.expression import compile_field, compile_optional_field
from surfcalc.core.grid import SampleGrid, sample_field


@dataclass
class InspectorConfig:
    """Inputs of one inspection session."""

    formula: str = "sin(x*2 + y) - 0.5*sin(t*2)"
    range: float = 4.0  # Domain half-width R
    resolution: int = 80  # N cells per axis for sampling/scanning
    t: float = 0.0

    # Optional auxiliary fields of (x, y); blank means absent
    density: str = "1"  # σ(x, y) for mass and centroid
    constraint: str = ""  # g(x, y) = 0 for the Lagrange estimate
    domain: str = ""  # h(x, y) ≤ 0 selects admissible points

    contour_count: int = 10
    integration_resolution: int | None = None  # None → use `resolution`


class SurfaceInspector:
    """Bundles the analyses of a single formula."""

    def __init__(self, config: InspectorConfig | None = None):
        self.config = config or InspectorConfig()
        self.field = compile_field(self.config.formula, arity=3)
        self.density = compile_optional_field(self.config.density)
        self.constraint = compile_optional_field(self.config.constraint)
        self.domain = compile_optional_field(self.config.domain)

    @property
    def preview(self) -> str | None:
        """Canonical formula text, or None when the formula does not compile."""
        return self.field.canonical

    @property
    def error(self) -> str | None:
        return self.field.error

    @property
    def step(self) -> float:
        return default_step(self.config.range)

    def with_changes(self, **changes) -> "SurfaceInspector":
        """New inspector with some config fields replaced."""
        return SurfaceInspector(replace(self.config, **changes))

    def grid(self) -> SampleGrid:
        cfg = self.config
        return sample_field(self.field, cfg.range, cfg.resolution, cfg.t, self.domain)

    def probe(self, x: float, y: float, t: float | None = None) -> ProbePoint:
        cfg = self.config
        return probe(
            self.field,
            x,
            y,
            cfg.t if t is None else t,
            range_=cfg.range,
            constraint=self.constraint,
        )

    def scan(self) -> list[CriticalPoint]:
        cfg = self.config
        return scan_critical_points(self.field, cfg.range, cfg.resolution, self.domain, cfg.t)

    def stats(self) -> GlobalStats:
        cfg = self.config
        resolution = cfg.integration_resolution or cfg.resolution
        return integrate_field(self.field, self.density, cfg.range, resolution, self.domain, cfg.t)

    def isolines(self, grid: SampleGrid | None = None) -> list[IsoLine]:
        return extract_isolines(grid or self.grid(), count=self.config.contour_count)

    def boundary(self) -> list[ContourSegment]:
        """Domain boundary h = 0; empty when no domain is set."""
        if self.domain is None:
            return []
        return domain_boundary(self.domain, self.config.range, self.config.resolution)

    def gradients(self, vectors: int = 16) -> GradientField:
        cfg = self.config
        return gradient_field(self.field, cfg.range, vectors, cfg.t)
