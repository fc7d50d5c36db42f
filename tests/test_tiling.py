"""Tests for grid placement, gap fill and marker id helpers."""
import numpy as np
import pytest

from marker_solids.contracts import (
    Cell,
    CornerPolicy,
    GapFill,
    GridSpec,
    Material,
    Piece,
    Region,
    Role,
    ThicknessProfile,
)
from marker_solids.errors import MarkerValidationError
from marker_solids.tiling import (
    block_extent,
    count_pieces,
    gap_fill,
    marker_step,
    parse_id_list,
    placement,
    random_ids,
    sequential_ids,
    tile,
)


def _unit_builder(index, marker_id):
    return [Cell(10, 10, 1, 0, 0, 0.5, Material.BLACK)]


class TestPlacement:
    """Centre-to-centre spacing and grid positions."""

    def test_step(self):
        assert marker_step(50, 5) == pytest.approx(55.0)
        assert marker_step(50, 5, individual_border=2) == pytest.approx(59.0)
        assert marker_step(50, 5, individual_border=1e-6) == pytest.approx(55.0)

    def test_grid_is_centred_row0_on_top(self):
        assert placement(0, 0, 2, 2, 55) == pytest.approx((-27.5, 27.5))
        assert placement(1, 1, 2, 2, 55) == pytest.approx((27.5, -27.5))

    def test_single_cell_at_origin(self):
        assert placement(0, 0, 1, 1, 55) == pytest.approx((0.0, 0.0))

    def test_block_extent(self):
        assert block_extent(4, 3, 10, 5) == pytest.approx((55.0, 40.0))


class TestTile:
    """Builder invocation and placement."""

    def test_places_every_marker(self):
        grid = GridSpec(3, 2, gap=5, marker_ids=(0, 1, 2, 3, 4, 5))
        layout = tile(grid, 15, _unit_builder, marker_dim=10)
        assert len(layout.cells) == 6
        assert [m.marker_id for m in layout.markers] == [0, 1, 2, 3, 4, 5]
        first = layout.markers[0]
        assert (first.column, first.row) == (0, 0)
        assert first.center == pytest.approx((-15.0, 7.5))
        assert layout.cells[4].marker_index == 4
        assert (layout.cells[4].center_x, layout.cells[4].center_y) == pytest.approx((0.0, -7.5))

    def test_id_count_mismatch(self):
        grid = GridSpec(3, 3, gap=5, marker_ids=tuple(range(8)))
        with pytest.raises(MarkerValidationError) as exc:
            tile(grid, 15, _unit_builder)
        assert exc.value.errors == [
            "Error: Number of IDs (8) does not match grid size (3x3=9)."
        ]


class TestGapFill:
    """Strips, intersections, T-junctions and the outer frame."""

    @pytest.fixture
    def grid(self):
        return GridSpec(4, 3, gap=5, marker_ids=tuple(range(12)))

    def test_disabled(self, grid):
        t = ThicknessProfile()
        assert gap_fill(grid, 10, t, GapFill.NONE) == []
        assert gap_fill(GridSpec(4, 3, gap=0, marker_ids=tuple(range(12))), 10, t) == []

    def test_piece_counts(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile())
        assert count_pieces(cells, Piece.STRIP_H) == 8
        assert count_pieces(cells, Piece.STRIP_V) == 9
        assert count_pieces(cells, Piece.INTERSECTION) == 6
        assert count_pieces(cells, Piece.OUTER_CORNER) == 4
        assert count_pieces(cells, Piece.T_TOP) + count_pieces(cells, Piece.T_BOTTOM) == 6
        assert count_pieces(cells, Piece.T_LEFT) + count_pieces(cells, Piece.T_RIGHT) == 4
        assert count_pieces(cells, Piece.FRAME_TOP) + count_pieces(cells, Piece.FRAME_BOTTOM) == 8
        assert count_pieces(cells, Piece.FRAME_LEFT) + count_pieces(cells, Piece.FRAME_RIGHT) == 6
        assert all(c.role is Role.GAP_FILL for c in cells)

    def test_frame_geometry(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile())
        corners = [c for c in cells if c.piece is Piece.OUTER_CORNER]
        assert max(c.center_x for c in corners) == pytest.approx(30.0)
        assert max(c.center_y for c in corners) == pytest.approx(22.5)
        assert all((c.width, c.height) == pytest.approx((5.0, 5.0)) for c in corners)

    def test_intersections_between_markers(self):
        grid = GridSpec(2, 2, gap=4, marker_ids=(0, 1, 2, 3))
        cells = gap_fill(grid, 10, ThicknessProfile())
        [center] = [c for c in cells if c.piece is Piece.INTERSECTION]
        assert (center.center_x, center.center_y) == pytest.approx((0.0, 0.0))

    def test_positive_opposite_raises_corner_like_pieces(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile(), corner_policy=CornerPolicy.OPPOSITE)
        raised = [c for c in cells if c.region.is_feature]
        assert raised
        assert all(c.region is Region.CORNER_FEATURE for c in raised)
        assert all(c.material is Material.BLACK for c in raised)
        # 6 intersections, 4 outer corners, 10 T pieces
        assert len(raised) == 20

    def test_negative_opposite_leaves_black_corner_like_pieces(self, grid):
        t = ThicknessProfile(mode="negative")
        cells = gap_fill(grid, 10, t, corner_policy=CornerPolicy.OPPOSITE)
        corner_like = [c for c in cells if c.region in (Region.CORNER_BASE, Region.CORNER_FEATURE)]
        assert all(c.region is Region.CORNER_BASE for c in corner_like)
        assert all(c.material is Material.BLACK for c in corner_like)

    def test_flat_opposite_inverts_corner_like_pieces(self, grid):
        t = ThicknessProfile(feature_height=0.5, mode="flat")
        cells = gap_fill(grid, 10, t, corner_policy=CornerPolicy.OPPOSITE)
        intersections = [c for c in cells if c.piece is Piece.INTERSECTION]
        strips = [c for c in cells if c.piece is Piece.STRIP_H]
        assert all(c.material is Material.BLACK for c in intersections)
        assert all(c.material is Material.WHITE for c in strips)

    @pytest.mark.parametrize("mode", ["positive", "negative"])
    def test_straight_pieces_stay_on_base(self, grid, mode):
        cells = gap_fill(grid, 10, ThicknessProfile(mode=mode))
        straight = (
            Piece.STRIP_H, Piece.STRIP_V,
            Piece.FRAME_TOP, Piece.FRAME_BOTTOM, Piece.FRAME_LEFT, Piece.FRAME_RIGHT,
        )
        pieces = [c for c in cells if c.piece in straight]
        assert len(pieces) == 8 + 9 + 8 + 6
        assert all(c.region is Region.BASE for c in pieces)
        assert all(c.top == pytest.approx(2.0) for c in pieces)


class TestGapFillColour:
    """Black or white filler with corners contrasting against the filler."""

    @pytest.fixture
    def grid(self):
        return GridSpec(2, 2, gap=5, marker_ids=(0, 1, 2, 3))

    def test_black_filler_in_positive_mode(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile(), GapFill.BLACK)
        assert cells
        assert all(c.material is Material.BLACK for c in cells)
        assert not any(c.region.is_feature for c in cells)

    def test_opposite_corners_raise_inverse_of_filler(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile(mode="negative"), GapFill.WHITE, CornerPolicy.OPPOSITE)
        raised = [c for c in cells if c.region.is_feature]
        # 1 intersection, 4 outer corners, 4 T pieces
        assert len(raised) == 9
        assert all(c.material is Material.BLACK for c in raised)
        assert all(c.bottom == pytest.approx(2.0) for c in raised)
        assert all(c.material is Material.WHITE for c in cells if not c.region.is_feature)

    def test_same_corners_ignore_mode_table(self, grid):
        cells = gap_fill(grid, 10, ThicknessProfile(mode="negative"), GapFill.BLACK, CornerPolicy.SAME)
        assert not any(c.region.is_feature for c in cells)

    def test_flat_opposite_recolours_corner_like_pieces(self, grid):
        t = ThicknessProfile(feature_height=0.5, mode="flat")
        cells = gap_fill(grid, 10, t, GapFill.BLACK, CornerPolicy.OPPOSITE)
        corner_like = [c for c in cells if c.region is Region.CORNER_BASE]
        assert len(corner_like) == 9
        assert all(c.material is Material.WHITE for c in corner_like)
        assert all(c.depth == pytest.approx(0.5) for c in cells)


class TestMarkerIds:
    """Sequential, random and typed id lists."""

    def test_sequential(self):
        assert sequential_ids(3, 4, 49) == [3, 4, 5, 6]

    def test_sequential_caps_at_max(self):
        assert sequential_ids(48, 4, 49) == [48, 49, 49, 49]

    def test_sequential_keeps_special_ids(self):
        assert sequential_ids(-2, 3, 10) == [-2, -1, 0]

    def test_random_unique_in_range(self):
        ids = random_ids(20, 49, np.random.default_rng(7))
        assert len(set(ids)) == 20
        assert all(0 <= i <= 49 for i in ids)

    def test_random_seed_is_reproducible(self):
        a = random_ids(5, 49, np.random.default_rng(1))
        b = random_ids(5, 49, np.random.default_rng(1))
        assert a == b

    def test_random_pool_too_small(self):
        with pytest.raises(MarkerValidationError, match="Cannot pick 60 unique IDs from a pool of 50"):
            random_ids(60, 49)

    def test_parse_id_list(self):
        assert parse_id_list(" 1, 2,,3 ") == [1, 2, 3]
        assert parse_id_list("-1,-2") == [-1, -2]

    def test_parse_id_list_rejects_text(self):
        with pytest.raises(MarkerValidationError, match="Non-numeric ID found"):
            parse_id_list("1,a")
