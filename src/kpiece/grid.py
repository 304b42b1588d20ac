"""
kpiece/grid.py - 带边界/内部分类的离散网格索引

网格以离散坐标（int 元组）为键存储 Cell。每个 Cell 记录其轴向邻居
数量：邻居数达到 2 * dimension 的为内部单元 (interior)，否则为边界
单元 (border / external)。

单元数据变化（插入、更新、邻居变化）时调用可插拔的重要度函数
重新计算 CellData.importance；top_external() / top_internal() 按重要度
在对应类别中选取单元：
- 'weighted': 以重要度为权重的轮盘赌（默认）
- 'greedy':   取重要度最大的单元

边界单元与内部单元分别放在两个 WeightedPool 中，插入、重要度更新
和选取的代价均为 O(log n)。
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

import numpy as np

from .models import CellData
from .projection import Coord
from .sampling import WeightedPool

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Cell:
    """网格单元

    Attributes:
        coord: 离散坐标
        data: 单元聚合数据
        neighbors: 已存在的轴向邻居数量
        border: 是否为边界单元
    """
    coord: Coord
    data: CellData = field(default_factory=CellData)
    neighbors: int = 0
    border: bool = True


ImportanceFn = Callable[[Cell], None]


def compute_importance(cell: Cell) -> None:
    """默认重要度：score / ((neighbors + 1) * coverage * selections)

    只含根节点的单元 coverage 为 0，按 1 计。
    """
    cd = cell.data
    cd.importance = cd.score / ((cell.neighbors + 1) * max(cd.coverage, 1.0) * cd.selections)


class GridIndex:
    """离散网格索引

    Args:
        dimension: 网格维度（0 表示由 set_dimension() 稍后设置）
        importance_fn: 单元数据变化时调用的重要度函数
        selection: 单元选取策略 ('weighted' / 'greedy')
        rng: 'weighted' 策略使用的随机数生成器

    Example:
        >>> grid = GridIndex(2)
        >>> cell = grid.create_cell((0, 0))
        >>> cell.data = CellData(motions=[0], coverage=1.0)
        >>> grid.add(cell)
        >>> grid.top_external() is cell
        True
    """

    def __init__(
        self,
        dimension: int = 0,
        importance_fn: ImportanceFn = compute_importance,
        selection: str = 'weighted',
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if selection not in ('weighted', 'greedy'):
            raise ValueError(f"未知单元选取方式: {selection}")
        self._cells: Dict[Coord, Cell] = {}
        self._border = WeightedPool()
        self._interior = WeightedPool()
        self._dimension = 0
        self._interior_limit = 0
        self.importance_fn = importance_fn
        self.selection = selection
        self.rng = rng if rng is not None else np.random.default_rng()
        self.set_dimension(dimension)

    # ── 基本属性 ──

    @property
    def dimension(self) -> int:
        return self._dimension

    def set_dimension(self, dimension: int) -> None:
        """设置维度；只能在网格为空时修改"""
        if dimension < 0:
            raise ValueError("dimension 不能为负")
        if self._cells and dimension != self._dimension:
            raise ValueError("非空网格不能修改维度")
        self._dimension = dimension
        self._interior_limit = 2 * dimension

    def size(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._cells.values())

    def __contains__(self, coord: Coord) -> bool:
        return coord in self._cells

    def count_external(self) -> int:
        return len(self._border)

    def count_internal(self) -> int:
        return len(self._interior)

    def frac_external(self) -> float:
        """边界单元占比（空网格为 0）"""
        if not self._cells:
            return 0.0
        return len(self._border) / len(self._cells)

    # ── 查找与插入 ──

    def get_cell(self, coord: Coord) -> Optional[Cell]:
        return self._cells.get(coord)

    def neighbor_coords(self, coord: Coord) -> List[Coord]:
        """2 * dimension 个轴向邻居坐标"""
        result: List[Coord] = []
        for axis in range(len(coord)):
            for step in (-1, 1):
                nb = list(coord)
                nb[axis] += step
                result.append(tuple(nb))
        return result

    def _existing_neighbors(self, coord: Coord) -> List[Cell]:
        return [self._cells[nb] for nb in self.neighbor_coords(coord) if nb in self._cells]

    def _classify(self, cell: Cell) -> None:
        limit = self._interior_limit or 2 * len(cell.coord)
        cell.border = cell.neighbors < limit

    def create_cell(self, coord: Coord) -> Cell:
        """创建单元（计算邻居数与分类），尚未加入索引"""
        coord = tuple(int(c) for c in coord)
        if self._dimension and len(coord) != self._dimension:
            raise ValueError(f"坐标维度 {len(coord)} 与网格维度 {self._dimension} 不一致")
        cell = Cell(coord=coord)
        cell.neighbors = len(self._existing_neighbors(coord))
        self._classify(cell)
        return cell

    def _pool(self, cell: Cell) -> WeightedPool:
        return self._border if cell.border else self._interior

    def add(self, cell: Cell) -> None:
        """把 create_cell() 得到的单元加入索引，并更新邻居"""
        if cell.coord in self._cells:
            raise ValueError(f"坐标 {cell.coord} 已存在单元")
        for nb in self._existing_neighbors(cell.coord):
            was_border = nb.border
            nb.neighbors += 1
            self._classify(nb)
            self.importance_fn(nb)
            if nb.border != was_border:
                (self._border if was_border else self._interior).remove(nb)
                self._pool(nb).add(nb, nb.data.importance)
            else:
                self._pool(nb).update(nb, nb.data.importance)
        self._cells[cell.coord] = cell
        self._classify(cell)
        self.importance_fn(cell)
        self._pool(cell).add(cell, cell.data.importance)

    def update(self, cell: Cell) -> None:
        """单元数据变化后重新计算重要度"""
        self.importance_fn(cell)
        self._pool(cell).update(cell, cell.data.importance)

    def update_all(self) -> None:
        for cell in self._cells.values():
            self.importance_fn(cell)
            self._pool(cell).update(cell, cell.data.importance)

    # ── 选取 ──

    def _top(self, border: bool) -> Optional[Cell]:
        pool = self._border if border else self._interior
        if not pool:
            pool = self._interior if border else self._border
        if not pool:
            return None
        if self.selection == 'greedy':
            return pool.argmax()
        return pool.sample(self.rng)

    def top_external(self) -> Optional[Cell]:
        """从边界单元中选取（无边界单元时从全部单元中选取）"""
        return self._top(border=True)

    def top_internal(self) -> Optional[Cell]:
        """从内部单元中选取（无内部单元时从全部单元中选取）"""
        return self._top(border=False)

    # ── 批量访问 ──

    def get_content(self) -> List[CellData]:
        return [c.data for c in self._cells.values()]

    def get_cells(self) -> List[Cell]:
        return list(self._cells.values())

    def clear(self) -> None:
        self._cells.clear()
        self._border.clear()
        self._interior.clear()

    def __repr__(self) -> str:
        return (f"GridIndex(dim={self._dimension}, cells={len(self._cells)}, "
                f"external={self.count_external()})")
