"""
Demo: inspect a few classic surfaces from the command line.

For each formula this prints the canonical preview, the z range, the
critical points found by the grid scan, the integrals over the domain and
a probe at a sample point, including the multi-path limit check.

Try a removable singularity like sin(x^2 + y^2)/(x^2 + y^2) to see the
probe report an undefined value with a consistent limit.
"""

import logging

from surfcalc import InspectorConfig, SurfaceInspector
from surfcalc.analysis import count_by_kind, join_segments


SURFACES = [
    InspectorConfig(formula="x^2 + y^2", range=2.0, resolution=40),
    InspectorConfig(formula="sin(x)*sin(y)", range=3.14159, resolution=40),
    InspectorConfig(
        formula="x^2 - y^2",
        range=2.0,
        resolution=40,
        constraint="x^2 + y^2 - 1",
        domain="x^2 + y^2 - 1",
        density="1 + x^2",
    ),
    InspectorConfig(formula="sin(x^2 + y^2) / (x^2 + y^2)", range=3.0, resolution=60),
]


def fmt(value, spec=".4f"):
    return "undefined" if value is None else format(value, spec)


def report(inspector: SurfaceInspector, probe_at=(0.0, 0.0)):
    cfg = inspector.config
    print("=" * 60)
    print(f"f(x, y, t) = {cfg.formula}")
    print("=" * 60)

    if inspector.preview is None:
        print(f"  compile error: {inspector.error}")
        return

    print(f"  preview:   {inspector.preview}")
    print(f"  domain:    [-{cfg.range}, {cfg.range}]², N={cfg.resolution}, t={cfg.t}")
    if cfg.domain:
        print(f"  mask:      {cfg.domain} ≤ 0")

    grid = inspector.grid()
    print(f"  z range:   [{fmt(grid.z_min)}, {fmt(grid.z_max)}]")

    points = inspector.scan()
    counts = count_by_kind(points)
    print(f"  critical:  {counts['max']} max, {counts['min']} min, {counts['saddle']} saddle")
    for p in points[:6]:
        print(f"    {p.kind:>6} at ({p.x:+.3f}, {p.y:+.3f}), z={p.z:+.4f}")
    if len(points) > 6:
        print(f"    ... {len(points) - 6} more")

    stats = inspector.stats()
    print(f"  volume:    {stats.volume:.4f}   mass: {stats.mass:.4f}   cells: {stats.cells}")
    if stats.centroid is not None:
        cx, cy, cz = stats.centroid
        print(f"  centroid:  ({cx:+.4f}, {cy:+.4f}, {cz:+.4f})")

    isolines = inspector.isolines(grid)
    pieces = sum(len(join_segments(line.segments)) for line in isolines)
    print(f"  contours:  {len(isolines)} levels, {pieces} polylines")

    boundary = inspector.boundary()
    if boundary:
        print(f"  boundary:  {len(join_segments(boundary))} polylines")

    x, y = probe_at
    p = inspector.probe(x, y)
    print(f"\n  probe at ({x}, {y}):")
    print(f"    f = {fmt(p.value)}")
    if p.gradient is not None:
        print(f"    ∇f = ({p.fx:+.4f}, {p.fy:+.4f}), |∇f| = {p.gradient_norm:.4f}")
    print(f"    fxx = {fmt(p.fxx)}, fyy = {fmt(p.fyy)}, fxy = {fmt(p.fxy)}")
    print(f"    D = {fmt(p.discriminant)} → {p.kind or 'inconclusive'}")
    verdict = "consistent" if p.limit.consistent else "inconsistent"
    print(f"    limit ≈ {fmt(p.limit.mean)} ({p.limit.samples} samples, {verdict})")
    if p.lagrange is not None:
        print(f"    g = {fmt(p.lagrange.g)}, λ = {fmt(p.lagrange.multiplier)}")
    print()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    for cfg in SURFACES:
        inspector = SurfaceInspector(cfg)
        probe_at = (0.7071, 0.7071) if cfg.constraint else (0.0, 0.0)
        report(inspector, probe_at)


if __name__ == "__main__":
    main()
