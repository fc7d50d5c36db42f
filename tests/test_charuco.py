"""Tests for the ChArUco board layout."""
import pytest

from marker_solids.charuco import build_board, count_light_squares, is_light_square
from marker_solids.contracts import (
    CharucoRequest,
    Material,
    Piece,
    Region,
    Role,
    ThicknessProfile,
)
from marker_solids.errors import MarkerValidationError, PatternMissingError


def _request(mode="positive", z1=2.0, z2=1.0, ids=(0, 1, 2, 3, 4), first=Material.WHITE, **kw):
    return CharucoRequest(
        dictionary="4x4_50",
        squares_x=3,
        squares_y=3,
        square_size=20.0,
        marker_margin=2.0,
        marker_ids=ids,
        thickness=ThicknessProfile(base_height=z1, feature_height=z2, mode=mode),
        first_square=first,
        **kw,
    )


class TestCheckerboard:
    """Light/dark square assignment."""

    def test_white_start(self):
        assert is_light_square(0, 0)
        assert not is_light_square(0, 1)
        assert count_light_squares(3, 3) == 5

    def test_black_start(self):
        assert not is_light_square(0, 0, Material.BLACK)
        assert count_light_squares(3, 3, Material.BLACK) == 4

    def test_even_board(self):
        assert count_light_squares(4, 4) == 8


class TestBuildBoard:
    """Cells per extrusion mode."""

    def test_positive(self, catalog):
        layout = build_board(_request(), catalog)
        cells = layout.cells
        plates = [c for c in cells if c.piece is Piece.PLATE]
        squares = [c for c in cells if c.piece is Piece.SQUARE]
        assert len(plates) == 1
        assert (plates[0].width, plates[0].height) == pytest.approx((60.0, 60.0))
        assert plates[0].material is Material.WHITE
        assert len(squares) == 4
        assert all(c.material is Material.BLACK and c.bottom == pytest.approx(2.0) for c in squares)
        assert not [c for c in cells if c.piece is Piece.MARGIN]
        marker0 = [c for c in cells if c.marker_index == 0]
        assert len(marker0) == 31
        assert all(c.bottom == pytest.approx(2.0) for c in marker0)
        assert all(c.top == pytest.approx(3.0) for c in marker0)

    def test_negative(self, catalog):
        cells = build_board(_request("negative"), catalog).cells
        plate = [c for c in cells if c.piece is Piece.PLATE][0]
        assert plate.material is Material.BLACK
        margins = [c for c in cells if c.piece is Piece.MARGIN]
        assert len(margins) == 20
        assert all(c.material is Material.WHITE and c.region is Region.FEATURE for c in margins)
        assert all(c.bottom == pytest.approx(2.0) for c in margins)
        assert not [c for c in cells if c.piece is Piece.SQUARE]
        marker0 = [c for c in cells if c.marker_index == 0 and c.piece is Piece.CELL]
        assert len(marker0) == 5
        assert all(c.material is Material.WHITE for c in marker0)

    def test_negative_without_plate_adds_black_squares(self, catalog):
        cells = build_board(_request("negative", z1=0.0), catalog).cells
        assert not [c for c in cells if c.piece is Piece.PLATE]
        squares = [c for c in cells if c.piece is Piece.SQUARE]
        assert len(squares) == 4
        assert all(c.depth == pytest.approx(1.0) for c in squares)

    def test_flat(self, catalog):
        cells = build_board(_request("flat", z2=0.5), catalog).cells
        assert not [c for c in cells if c.piece is Piece.PLATE]
        assert len([c for c in cells if c.piece is Piece.SQUARE]) == 4
        assert len([c for c in cells if c.piece is Piece.MARGIN]) == 20
        assert all(c.top == pytest.approx(0.5) for c in cells)
        assert len([c for c in cells if c.piece is Piece.CELL]) == 5 * 36

    def test_marker_placement(self, catalog):
        layout = build_board(_request(), catalog)
        first = layout.markers[0]
        assert first.center == pytest.approx((-20.0, 20.0))
        assert first.dim == pytest.approx(16.0)
        assert [(m.row, m.column) for m in layout.markers] == [(0, 0), (0, 2), (1, 1), (2, 0), (2, 2)]

    def test_board_role(self, catalog):
        cells = build_board(_request("negative"), catalog).cells
        assert all(c.role is Role.BOARD for c in cells if c.piece in (Piece.PLATE, Piece.MARGIN))

    def test_black_start(self, catalog):
        layout = build_board(_request(ids=(0, 1, 2, 3), first=Material.BLACK), catalog)
        assert len(layout.markers) == 4
        assert layout.markers[0].center == pytest.approx((0.0, 20.0))

    def test_id_count_mismatch(self, catalog):
        with pytest.raises(MarkerValidationError, match=r"Number of IDs \(4\) does not match white squares \(5\)"):
            build_board(_request(ids=(0, 1, 2, 3)), catalog)

    def test_unknown_id(self, catalog):
        with pytest.raises(PatternMissingError):
            build_board(_request(ids=(0, 1, 2, 3, 99)), catalog)
