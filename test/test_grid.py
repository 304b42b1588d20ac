"""test/test_grid.py - GridIndex 边界/内部分类与单元选取测试"""
import numpy as np
import pytest

from kpiece.grid import Cell, GridIndex, compute_importance
from kpiece.models import CellData


def _add(grid, coord, score=1.0, coverage=1.0):
    cell = grid.create_cell(coord)
    cell.data = CellData(motions=[0], coverage=coverage, score=score)
    grid.add(cell)
    return cell


class TestGridStructure:
    """GridIndex 基本结构"""

    def test_create_does_not_index(self):
        grid = GridIndex(2)
        grid.create_cell((0, 0))
        assert grid.size() == 0
        assert grid.get_cell((0, 0)) is None

    def test_add_and_lookup(self):
        grid = GridIndex(2)
        cell = _add(grid, (1, 2))
        assert grid.get_cell((1, 2)) is cell
        assert (1, 2) in grid
        assert len(grid) == 1

    def test_duplicate_coordinate_rejected(self):
        grid = GridIndex(2)
        _add(grid, (0, 0))
        with pytest.raises(ValueError):
            _add(grid, (0, 0))

    def test_dimension_mismatch_rejected(self):
        grid = GridIndex(2)
        with pytest.raises(ValueError):
            grid.create_cell((0, 0, 0))

    def test_cannot_change_dimension_when_non_empty(self):
        grid = GridIndex(2)
        _add(grid, (0, 0))
        with pytest.raises(ValueError):
            grid.set_dimension(3)
        grid.clear()
        grid.set_dimension(3)
        assert grid.dimension == 3


class TestBorderClassification:
    """边界/内部单元分类"""

    def test_isolated_cell_is_border(self):
        grid = GridIndex(2)
        cell = _add(grid, (0, 0))
        assert cell.border
        assert cell.neighbors == 0
        assert grid.frac_external() == pytest.approx(1.0)

    def test_surrounded_cell_becomes_interior(self):
        grid = GridIndex(2)
        center = _add(grid, (0, 0))
        for coord in [(1, 0), (-1, 0), (0, 1)]:
            _add(grid, coord)
        assert center.neighbors == 3
        assert center.border
        _add(grid, (0, -1))
        assert center.neighbors == 4
        assert not center.border
        assert grid.count_internal() == 1
        assert grid.count_external() == 4
        assert grid.frac_external() == pytest.approx(0.8)

    def test_new_cell_counts_existing_neighbors(self):
        grid = GridIndex(1)
        _add(grid, (0,))
        _add(grid, (2,))
        middle = _add(grid, (1,))
        assert middle.neighbors == 2
        assert not middle.border

    def test_empty_grid_fraction(self):
        assert GridIndex(2).frac_external() == 0.0

    def test_counts_match_classification(self):
        grid = GridIndex(2)
        rng = np.random.default_rng(7)
        for coord in {tuple(int(v) for v in rng.integers(0, 12, size=2)) for _ in range(150)}:
            _add(grid, coord)
            n_border = sum(1 for c in grid if c.border)
            assert grid.count_external() == n_border
            assert grid.count_internal() == grid.size() - n_border
        assert grid.count_internal() > 0
        grid.clear()
        assert grid.count_external() == 0
        assert grid.count_internal() == 0
        assert grid.top_external() is None


class TestImportance:
    """单元重要度计算"""

    def test_default_formula(self):
        cell = Cell(coord=(0, 0), data=CellData(score=6.0, coverage=2.0, selections=3),
                    neighbors=1)
        compute_importance(cell)
        assert cell.data.importance == pytest.approx(6.0 / (2 * 2.0 * 3))

    def test_zero_coverage_counts_as_one(self):
        cell = Cell(coord=(0,), data=CellData(score=2.0, coverage=0.0))
        compute_importance(cell)
        assert cell.data.importance == pytest.approx(2.0)

    def test_update_recomputes(self):
        grid = GridIndex(2)
        cell = _add(grid, (0, 0), score=1.0)
        cell.data.score = 0.25
        grid.update(cell)
        assert cell.data.importance == pytest.approx(0.25)

    def test_custom_importance_fn_called_on_add_and_update(self):
        calls = []

        def importance(cell):
            calls.append(cell.coord)
            cell.data.importance = 1.0

        grid = GridIndex(2, importance_fn=importance)
        a = _add(grid, (0, 0))
        _add(grid, (0, 1))
        # 新单元自身 + 受影响的邻居
        assert calls == [(0, 0), (0, 0), (0, 1)]
        grid.update(a)
        grid.update_all()
        assert len(calls) == 6


class TestSelection:
    """top_external / top_internal 单元选取"""

    def test_greedy_picks_highest_importance(self):
        grid = GridIndex(2, selection='greedy')
        _add(grid, (0, 0), score=1.0)
        best = _add(grid, (5, 5), score=10.0)
        _add(grid, (9, 9), score=2.0)
        assert grid.top_external() is best

    def test_weighted_respects_importance(self):
        grid = GridIndex(2, rng=np.random.default_rng(1))
        low = _add(grid, (0, 0), score=1.0)
        high = _add(grid, (5, 5), score=99.0)
        picks = [grid.top_external() for _ in range(2000)]
        frac_high = sum(p is high for p in picks) / len(picks)
        assert frac_high == pytest.approx(0.99, abs=0.01)
        assert any(p is low for p in picks)

    def test_greedy_follows_score_updates(self):
        grid = GridIndex(1, selection='greedy')
        cells = [_add(grid, (x,), score=1.0) for x in range(6)]
        cells[4].data.score = 20.0
        grid.update(cells[4])
        assert grid.top_internal() is cells[4]
        cells[4].data.score = 0.01
        grid.update(cells[4])
        assert grid.top_internal() is not cells[4]
        # 端点单元仍为边界单元
        cells[0].data.score = 30.0
        grid.update_all()
        assert grid.top_external() is cells[0]

    def test_top_internal_falls_back_when_no_interior(self):
        grid = GridIndex(2, selection='greedy')
        only = _add(grid, (0, 0))
        assert grid.top_internal() is only

    def test_top_internal_picks_interior_cells(self):
        grid = GridIndex(1, selection='greedy')
        _add(grid, (0,), score=50.0)
        middle = _add(grid, (1,), score=1.0)
        _add(grid, (2,), score=50.0)
        assert grid.top_internal() is middle

    def test_empty_grid_returns_none(self):
        grid = GridIndex(2)
        assert grid.top_external() is None
        assert grid.top_internal() is None

    def test_unknown_selection_rejected(self):
        with pytest.raises(ValueError):
            GridIndex(2, selection='best')


def test_content_and_cells():
    grid = GridIndex(2)
    a = _add(grid, (0, 0))
    b = _add(grid, (3, 3))
    assert {id(c) for c in grid.get_cells()} == {id(a), id(b)}
    assert {id(d) for d in grid.get_content()} == {id(a.data), id(b.data)}
    grid.clear()
    assert grid.size() == 0
