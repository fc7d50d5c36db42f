"""Tests for border edges and the corner policy table."""
import pytest

from marker_solids.borders import build_border, corner_has_feature, edge_has_feature
from marker_solids.contracts import (
    CornerPolicy,
    Material,
    Piece,
    Region,
    Role,
    ThicknessProfile,
)

SAME = CornerPolicy.SAME
OPPOSITE = CornerPolicy.OPPOSITE


def _profile(mode="positive", z1=2.0, z2=1.0):
    return ThicknessProfile(base_height=z1, feature_height=z2, mode=mode)


def _corners(cells):
    return [c for c in cells if c.piece is Piece.CORNER]


def _edges(cells):
    return [c for c in cells if c.piece is Piece.EDGE]


class TestCornerTable:
    """Feature presence per mode and policy."""

    @pytest.mark.parametrize("mode,policy,expected", [
        ("positive", SAME, False),
        ("positive", OPPOSITE, True),
        ("negative", SAME, True),
        ("negative", OPPOSITE, False),
        ("flat", SAME, False),
        ("flat", OPPOSITE, False),
    ])
    def test_corner_feature(self, mode, policy, expected):
        assert corner_has_feature(_profile(mode), policy) is expected

    def test_edges_raised_only_in_negative(self):
        assert edge_has_feature(_profile("negative"))
        assert not edge_has_feature(_profile("positive"))
        assert not edge_has_feature(_profile("flat"))

    def test_no_feature_without_height(self):
        assert not corner_has_feature(_profile("negative", z2=0.0), SAME)


class TestBuildBorder:
    """Four edges and four corners around the core."""

    def test_disabled_below_minimum(self):
        assert build_border(50, 0.0, _profile()) == []
        assert build_border(50, 1e-6, _profile()) == []

    def test_positive_same_is_flat_white_frame(self):
        cells = build_border(50, 5, _profile())
        assert len(cells) == 8
        assert all(c.material is Material.WHITE for c in cells)
        assert all(c.depth == pytest.approx(2.0) for c in cells)
        assert all(c.role is Role.BORDER for c in cells)

    def test_positive_opposite_raises_black_corners(self):
        cells = build_border(50, 5, _profile(), OPPOSITE)
        features = [c for c in _corners(cells) if c.region is Region.CORNER_FEATURE]
        assert len(features) == 4
        assert all(c.material is Material.BLACK for c in features)
        assert all(c.top == pytest.approx(3.0) for c in features)
        assert len(_edges(cells)) == 4

    def test_negative_same_raises_everything(self):
        cells = build_border(50, 5, _profile("negative"))
        assert len(cells) == 16
        assert sum(c.region.is_feature for c in cells) == 8
        assert all(c.material is Material.WHITE for c in cells if c.region.is_feature)

    def test_negative_opposite_leaves_black_corners(self):
        cells = build_border(50, 5, _profile("negative"), OPPOSITE)
        corners = _corners(cells)
        assert len(corners) == 4
        assert all(c.material is Material.BLACK for c in corners)
        assert all(c.region is Region.CORNER_BASE for c in corners)
        assert len(_edges(cells)) == 8

    def test_flat_opposite_inverts_corners(self):
        cells = build_border(50, 5, _profile("flat", z2=0.5), OPPOSITE)
        assert len(cells) == 8
        assert all(c.material is Material.BLACK for c in _corners(cells))
        assert all(c.material is Material.WHITE for c in _edges(cells))
        assert all(c.depth == pytest.approx(0.5) for c in cells)

    def test_geometry(self):
        cells = build_border(50, 4, _profile())
        top = max(_edges(cells), key=lambda c: c.center_y)
        assert top.center_y == pytest.approx(27.0)
        assert (top.width, top.height) == pytest.approx((50.0, 4.0))
        corner = max(_corners(cells), key=lambda c: (c.center_x, c.center_y))
        assert (corner.center_x, corner.center_y) == pytest.approx((27.0, 27.0))
        assert (corner.width, corner.height) == pytest.approx((4.0, 4.0))

    def test_base_height_floor(self):
        cells = build_border(50, 5, _profile(z1=0.0))
        assert all(c.depth == pytest.approx(0.1) for c in cells)

    def test_rectangular_core(self):
        cells = build_border(40, 5, _profile(), core_dim_y=20)
        left = min(_edges(cells), key=lambda c: c.center_x)
        assert left.height == pytest.approx(20.0)
        assert left.center_x == pytest.approx(-22.5)
