"""Unit tests for SurfaceInspector."""

import math

import pytest

from surfcalc.analysis.probe import default_step
from surfcalc.core.expression import compile_field
from surfcalc.inspector import InspectorConfig, SurfaceInspector


class TestInspectorConfig:
    """Tests for InspectorConfig defaults."""

    def test_default_config(self):
        cfg = InspectorConfig()
        assert cfg.range == 4.0
        assert cfg.resolution == 80
        assert cfg.density == "1"
        assert cfg.constraint == ""
        assert cfg.domain == ""

    def test_default_inspector(self):
        inspector = SurfaceInspector()
        assert inspector.error is None
        assert inspector.constraint is None
        assert inspector.domain is None
        assert inspector.step == default_step(4.0)


class TestPreview:
    """Canonical preview and error reporting."""

    def test_preview_reparses(self):
        inspector = SurfaceInspector()
        preview = inspector.preview
        assert preview is not None
        assert compile_field(preview).tree == inspector.field.tree

    def test_bad_formula_never_raises(self):
        inspector = SurfaceInspector(InspectorConfig(formula="sin(x", resolution=20))

        assert inspector.preview is None
        assert inspector.error
        assert inspector.scan() == []
        assert inspector.stats().cells == 0
        assert inspector.probe(0.0, 0.0).value is None
        assert inspector.isolines() == []
        assert not inspector.grid().valid.any()


class TestAnalyses:
    """End-to-end queries through the inspector."""

    @pytest.fixture
    def inspector(self):
        cfg = InspectorConfig(
            formula="x^2 + y^2",
            range=2.0,
            resolution=40,
            density="2",
            constraint="x^2 + y^2 - 1",
            domain="x^2 + y^2 - 1",
            contour_count=3,
            integration_resolution=200,
        )
        return SurfaceInspector(cfg)

    def test_grid_is_masked(self, inspector):
        grid = inspector.grid()
        assert grid.shape == (41, 41)
        assert grid.z_max <= 1.0

    def test_scan_finds_minimum(self, inspector):
        points = inspector.scan()
        assert any(p.kind == "min" for p in points)

    def test_stats_use_density(self, inspector):
        stats = inspector.stats()
        assert stats.mass == pytest.approx(2.0 * stats.volume)
        # ∫∫_disk r² dA = π/2
        assert stats.volume == pytest.approx(math.pi / 2, abs=0.05)

    def test_probe_uses_constraint(self, inspector):
        s = 1.0 / math.sqrt(2.0)
        p = inspector.probe(s, s)
        assert p.lagrange is not None
        # ∇f = 2(x, y), ∇g = 2(x, y)
        assert p.lagrange.multiplier == pytest.approx(1.0, abs=1e-4)

    def test_isolines_and_boundary(self, inspector):
        isolines = inspector.isolines()
        assert len(isolines) == 3
        boundary = inspector.boundary()
        assert boundary

    def test_no_boundary_without_domain(self):
        assert SurfaceInspector(InspectorConfig(resolution=10)).boundary() == []

    def test_gradients(self, inspector):
        gf = inspector.gradients(vectors=5)
        assert gf.fx.shape == (5, 5)
        assert gf.range == 2.0


class TestChanges:
    """Tests for with_changes and the time parameter."""

    def test_with_changes(self):
        base = SurfaceInspector(InspectorConfig(formula="x", resolution=10))
        changed = base.with_changes(formula="y", range=2.0)

        assert changed.config.range == 2.0
        assert changed.config.resolution == 10
        assert changed.field(0.0, 3.0) == 3.0
        assert base.config.formula == "x"

    def test_time_passthrough(self):
        inspector = SurfaceInspector(InspectorConfig(formula="t", t=3.0, resolution=10))

        assert inspector.probe(0.0, 0.0).value == 3.0
        assert inspector.probe(0.0, 0.0, t=1.0).value == 1.0
        assert inspector.grid().z_max == 3.0

    def test_integration_resolution_override(self):
        inspector = SurfaceInspector(InspectorConfig(formula="1", resolution=20, integration_resolution=50))
        assert inspector.stats().resolution == 50
