"""
kpiece/close_samples.py - 离目标最近的 Motion 集合

容量受限、按目标距离升序排列的工作集，用于目标偏置扩展。
集合只保存 (cell, motion) 别名，不拥有它们；树被 clear() 时
集合必须同时清空。
"""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .grid import Cell

logger = logging.getLogger(__name__)


@dataclass(order=True)
class CloseSample:
    """集合中的一项，按 distance 排序"""
    distance: float
    cell: Cell = field(compare=False)
    motion: int = field(compare=False)


class CloseSamples:
    """有界的 best-first 样本池

    Args:
        max_size: 容量 K

    Example:
        >>> cs = CloseSamples(3)
        >>> cs.consider(cell, motion_idx, 0.5)
        True
        >>> motion_idx, cell = cs.select_motion()
    """

    def __init__(self, max_size: int = 30) -> None:
        if max_size < 1:
            raise ValueError("max_size 至少为 1")
        self.max_size = max_size
        self._samples: List[CloseSample] = []

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[CloseSample]:
        return iter(self._samples)

    def can_sample(self) -> bool:
        return bool(self._samples)

    def best(self) -> Optional[CloseSample]:
        return self._samples[0] if self._samples else None

    def worst(self) -> Optional[CloseSample]:
        return self._samples[-1] if self._samples else None

    def distances(self) -> List[float]:
        return [s.distance for s in self._samples]

    def clear(self) -> None:
        self._samples.clear()

    def consider(self, cell: Cell, motion: int, distance: float) -> bool:
        """若比当前最差样本更近则加入（满时淘汰最差样本）

        Returns:
            是否被接受
        """
        if not self._samples:
            self._samples.append(CloseSample(distance, cell, motion))
            return True
        if self._samples[-1].distance > distance:
            if len(self._samples) >= self.max_size:
                self._samples.pop()
            bisect.insort_right(self._samples, CloseSample(distance, cell, motion))
            return True
        return False

    def select_motion(self) -> Optional[Tuple[int, Cell]]:
        """取出最优样本，并以 0.55 * (best + worst) 的距离重新放回

        放回的距离人为变大，使该样本降低优先级但不被丢弃。

        Returns:
            (motion, cell)，集合为空时返回 None
        """
        if not self._samples:
            return None
        best = self._samples.pop(0)
        worst_distance = self._samples[-1].distance if self._samples else best.distance
        d = (best.distance + worst_distance) * 0.55
        bisect.insort_right(self._samples, CloseSample(d, best.cell, best.motion))
        return best.motion, best.cell
