"""
kpiece/projection.py - 状态到离散网格坐标的投影

将（通常高维的）状态投影到低维子空间，再按单元尺寸取整得到
网格坐标。坐标以 int 元组表示，可直接作为 dict 键。
"""

from typing import Optional, Sequence, Tuple

import numpy as np

Coord = Tuple[int, ...]


class GridProjection:
    """轴对齐的网格投影

    Args:
        cell_sizes: 每个投影维度的单元尺寸
        dims: 参与投影的状态维度下标（默认取前 len(cell_sizes) 维）

    Example:
        >>> proj = GridProjection(cell_sizes=[0.5, 0.5], dims=(0, 1))
        >>> proj.compute_coordinates(np.array([1.2, -0.1, 3.0]))
        (2, -1)
    """

    def __init__(
        self,
        cell_sizes: Sequence[float],
        dims: Optional[Sequence[int]] = None,
    ) -> None:
        self.cell_sizes = np.asarray(cell_sizes, dtype=np.float64).reshape(-1)
        if np.any(self.cell_sizes <= 0.0):
            raise ValueError("cell_sizes 必须全部为正数")
        if dims is None:
            dims = range(len(self.cell_sizes))
        self.dims = tuple(int(d) for d in dims)
        if len(self.dims) != len(self.cell_sizes):
            raise ValueError("dims 与 cell_sizes 维度不匹配")

    @property
    def dimension(self) -> int:
        return len(self.dims)

    def get_dimension(self) -> int:
        return self.dimension

    def project(self, state: np.ndarray) -> np.ndarray:
        """连续投影值"""
        return np.asarray(state, dtype=np.float64)[list(self.dims)]

    def compute_coordinates(self, state: np.ndarray) -> Coord:
        """离散网格坐标"""
        cells = np.floor(self.project(state) / self.cell_sizes)
        return tuple(int(c) for c in cells)

    def __repr__(self) -> str:
        return (f"GridProjection(dims={self.dims}, "
                f"cell_sizes={self.cell_sizes.tolist()})")
