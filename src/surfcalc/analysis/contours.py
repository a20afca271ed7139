"""
Contour extraction with marching squares.

For each 2×2 cell of grid nodes the sign pattern of (value − level) decides
which cell edges the iso-line crosses. Crossing points are linearly
interpolated along the edge and paired into segments:

    3 ──e2── 2        corners: 0=(i, j), 1=(i+1, j), 2=(i+1, j+1), 3=(i, j+1)
    │        │        edges, in test order: e0=0–1, e1=1–2, e2=2–3, e3=3–0
   e3       e1
    │        │        2 crossings → one segment
    0 ──e0── 1        4 crossings → (1st, 2nd) and (3rd, 4th)

The 4-crossing (saddle) cells are paired by edge order, not by the cell's
centre value. This is deterministic but can join the "wrong" pair of
branches in saddle-like cells.

Edges with an invalid endpoint never cross, so contours stop at invalid
regions instead of passing through them.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Sequence

import numpy as np

from surfcalc.core.grid import grid_axis

if TYPE_CHECKING:
    from surfcalc.core.expression import CompiledField
    from surfcalc.core.grid import SampleGrid

Point = tuple[float, float]


@dataclass(frozen=True)
class ContourSegment:
    """One piece of a piecewise-linear iso-line."""

    start: Point
    end: Point

    @property
    def length(self) -> float:
        return float(np.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1]))


class IsoLine(NamedTuple):
    level: float
    segments: list[ContourSegment]


def _edge_crossings(a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Crossing mask and interpolation parameter for edges a → b.

    a, b are level-shifted values; t = a / (a − b), 0.5 when a == b.
    """
    valid = np.isfinite(a) & np.isfinite(b)
    with np.errstate(invalid="ignore", divide="ignore"):
        crosses = valid & ((a >= 0) != (b >= 0))
        denom = a - b
        t = np.where(denom != 0, a / np.where(denom != 0, denom, 1.0), 0.5)
    return crosses, t


def marching_squares(
    values: np.ndarray,
    origin: Point,
    cell_size: float | tuple[float, float],
    level: float,
) -> list[ContourSegment]:
    """
    Extract the iso-line `values == level` as a list of segments.

    Args:
        values: 2D array [ny, nx]; nan marks invalid nodes
        origin: (x, y) coordinates of node [0, 0]
        cell_size: Node spacing, scalar or (dx, dy)
        level: Iso-value

    Returns:
        Segments in row-major cell order
    """
    values = np.asarray(values, dtype=np.float64)
    ny, nx = values.shape
    if ny < 2 or nx < 2:
        return []

    if np.ndim(cell_size) == 0:
        dx = dy = float(cell_size)
    else:
        dx, dy = (float(c) for c in cell_size)
    ox, oy = float(origin[0]), float(origin[1])

    d = values - level
    jj, ii = np.mgrid[0:ny, 0:nx].astype(np.float64)

    # Horizontal edges (j, i) → (j, i+1)
    h_cross, h_t = _edge_crossings(d[:, :-1], d[:, 1:])
    h_x = ox + (ii[:, :-1] + h_t) * dx
    h_y = oy + jj[:, :-1] * dy

    # Vertical edges (j, i) → (j+1, i)
    v_cross, v_t = _edge_crossings(d[:-1, :], d[1:, :])
    v_x = ox + ii[:-1, :] * dx
    v_y = oy + (jj[:-1, :] + v_t) * dy

    # Per-cell edges in test order e0, e1, e2, e3. Reversed edges (e2, e3)
    # share their crossing point with the forward edge of the neighbour cell.
    edges = [
        (h_cross[:-1, :], h_x[:-1, :], h_y[:-1, :]),  # e0: bottom
        (v_cross[:, 1:], v_x[:, 1:], v_y[:, 1:]),  # e1: right
        (h_cross[1:, :], h_x[1:, :], h_y[1:, :]),  # e2: top
        (v_cross[:, :-1], v_x[:, :-1], v_y[:, :-1]),  # e3: left
    ]
    count = sum(cross.astype(np.int8) for cross, _, _ in edges)

    segments: list[ContourSegment] = []
    for j, i in zip(*np.nonzero(count >= 2)):
        points = [
            (float(ex[j, i]), float(ey[j, i]))
            for cross, ex, ey in edges
            if cross[j, i]
        ]
        segments.append(ContourSegment(points[0], points[1]))
        if len(points) == 4:
            segments.append(ContourSegment(points[2], points[3]))

    return segments


def contour_levels(z_min: float | None, z_max: float | None, count: int = 10) -> list[float]:
    """`count` evenly spaced levels strictly between z_min and z_max."""
    if z_min is None or z_max is None or count < 1 or not z_max > z_min:
        return []
    return np.linspace(z_min, z_max, count + 2)[1:-1].tolist()


def extract_isolines(
    grid: "SampleGrid",
    levels: Sequence[float] | None = None,
    count: int = 10,
) -> list[IsoLine]:
    """
    Height contours of a sampled field.

    Args:
        grid: SampleGrid; non-admissible nodes are treated as invalid
        levels: Explicit levels (default: `count` levels between z_min and z_max)
        count: Number of automatic levels

    Returns:
        One IsoLine per level
    """
    if levels is None:
        levels = contour_levels(grid.z_min, grid.z_max, count)

    values = grid.masked_values()
    return [
        IsoLine(float(level), marching_squares(values, grid.origin, grid.cell_size, level))
        for level in levels
    ]


def domain_boundary(
    domain: "CompiledField",
    range_: float,
    resolution: int,
) -> list[ContourSegment]:
    """Zero-level curve h(x, y) = 0 of a domain field over [-R, R]²."""
    resolution = max(1, int(resolution))
    axis = grid_axis(range_, resolution)
    xx, yy = np.meshgrid(axis, axis)
    h = np.asarray(domain(xx, yy), dtype=np.float64)
    return marching_squares(h, (-range_, -range_), 2.0 * range_ / resolution, 0.0)


def join_segments(
    segments: Sequence[ContourSegment],
    ndigits: int = 12,
) -> list[list[Point]]:
    """
    Stitch segments that share endpoints into polylines.

    Endpoints are matched after rounding to `ndigits`. A closed loop is
    returned with its first point repeated at the end.
    """

    def key(p: Point) -> Point:
        return round(p[0], ndigits), round(p[1], ndigits)

    touching: dict[Point, list[int]] = {}
    for idx, seg in enumerate(segments):
        touching.setdefault(key(seg.start), []).append(idx)
        touching.setdefault(key(seg.end), []).append(idx)

    used = [False] * len(segments)

    def extend(line: list[Point]) -> None:
        while True:
            tail = key(line[-1])
            nxt = next((k for k in touching[tail] if not used[k]), None)
            if nxt is None:
                return
            used[nxt] = True
            seg = segments[nxt]
            line.append(seg.end if key(seg.start) == tail else seg.start)

    polylines: list[list[Point]] = []
    for idx, seg in enumerate(segments):
        if used[idx]:
            continue
        used[idx] = True
        line = [seg.start, seg.end]
        extend(line)
        if key(line[0]) != key(line[-1]):
            line.reverse()
            extend(line)
        polylines.append(line)

    return polylines


def is_closed(polyline: Sequence[Point], ndigits: int = 12) -> bool:
    """True when a polyline returned by join_segments is a loop."""
    if len(polyline) < 3:
        return False
    a, b = polyline[0], polyline[-1]
    return round(a[0], ndigits) == round(b[0], ndigits) and round(a[1], ndigits) == round(b[1], ndigits)
