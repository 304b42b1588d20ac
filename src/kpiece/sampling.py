"""
kpiece/sampling.py - 下标区间上的随机采样

- half_normal_int: 偏向区间上端（最新元素）的 half-normal 整数采样
- select_index: 按策略 ('half_normal' / 'uniform') 在 [0, n) 中取下标
- WeightedPool: 支持增删改的加权元素池（轮盘赌 / 取最大），操作均为 O(log n)
- make_rng: 统一的随机数生成器构造
"""

import math
from typing import Any, Dict, Hashable, Iterator, List, Optional

import numpy as np


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """返回 numpy Generator，seed 为 None 时使用系统熵"""
    return np.random.default_rng(seed)


def half_normal_real(rng: np.random.Generator, r_min: float, r_max: float,
                     focus: float = 3.0) -> float:
    """[r_min, r_max] 上的 half-normal 实数，峰值在 r_max

    以区间长度为均值、均值 / focus 为标准差采正态分布，
    超过均值的一侧对折回来。
    """
    mean = r_max - r_min
    v = rng.normal(mean, mean / focus) if mean > 0 else 0.0
    if v > mean:
        v = 2.0 * mean - v
    r = v + r_min if v >= 0.0 else r_min
    return min(r, r_max)


def half_normal_int(rng: np.random.Generator, r_min: int, r_max: int,
                    focus: float = 3.0) -> int:
    """[r_min, r_max] 上偏向 r_max 的整数"""
    r = int(math.floor(half_normal_real(rng, float(r_min), float(r_max) + 1.0, focus)))
    return r_max if r > r_max else r


def select_index(rng: np.random.Generator, n: int, strategy: str = 'half_normal',
                 focus: float = 3.0) -> int:
    """在 [0, n) 中按策略选一个下标"""
    if n <= 0:
        raise ValueError("空区间无法采样")
    if strategy == 'half_normal':
        return half_normal_int(rng, 0, n - 1, focus)
    if strategy == 'uniform':
        return int(rng.integers(0, n))
    raise ValueError(f"未知采样策略: {strategy}")


class WeightedPool:
    """加权元素池

    叶子存放元素权重，内部节点同时维护子树的权重和与最大值，
    插入、删除、改权重、轮盘赌抽取和取最大都只需走一条根到叶的路径。
    非有限或非正的权重在轮盘赌中按 0 计；全部为 0 时均匀抽取。

    Args:
        capacity: 初始容量（不足时自动翻倍）

    Example:
        >>> pool = WeightedPool()
        >>> pool.add('a', 1.0)
        >>> pool.add('b', 3.0)
        >>> pool.argmax()
        'b'
        >>> pool.sample(rng) in ('a', 'b')
        True
    """

    def __init__(self, capacity: int = 16) -> None:
        self._init_capacity = max(1, capacity)
        self.clear()

    def clear(self) -> None:
        cap = 1
        while cap < self._init_capacity:
            cap *= 2
        self._cap = cap
        self._sum: List[float] = [0.0] * (2 * cap)
        self._max: List[float] = [-math.inf] * (2 * cap)
        self._items: List[Any] = []
        self._weights: List[float] = []
        self._slots: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: Hashable) -> bool:
        return item in self._slots

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def total(self) -> float:
        """参与轮盘赌的权重和"""
        return self._sum[1]

    def weight(self, item: Hashable) -> float:
        return self._weights[self._slots[item]]

    # ── 修改 ──

    def add(self, item: Hashable, weight: float) -> None:
        if item in self._slots:
            raise ValueError("元素已在池中")
        if len(self._items) == self._cap:
            self._grow()
        slot = len(self._items)
        self._items.append(item)
        self._weights.append(float(weight))
        self._slots[item] = slot
        self._set_leaf(slot, float(weight))

    def remove(self, item: Hashable) -> None:
        """删除元素；最后一个槽位的元素移入空出的槽位"""
        slot = self._slots.pop(item)
        last = len(self._items) - 1
        if slot != last:
            moved = self._items[last]
            self._items[slot] = moved
            self._weights[slot] = self._weights[last]
            self._slots[moved] = slot
            self._set_leaf(slot, self._weights[slot])
        self._items.pop()
        self._weights.pop()
        self._set_leaf(last, None)

    def update(self, item: Hashable, weight: float) -> None:
        slot = self._slots[item]
        self._weights[slot] = float(weight)
        self._set_leaf(slot, float(weight))

    # ── 抽取 ──

    def sample(self, rng: np.random.Generator) -> Any:
        """按权重轮盘赌抽取一个元素"""
        n = len(self._items)
        if n == 0:
            raise ValueError("空池无法采样")
        total = self._sum[1]
        if not (math.isfinite(total) and total > 0.0):
            return self._items[int(rng.integers(0, n))]
        r = rng.uniform(0.0, total)
        i = 1
        while i < self._cap:
            left = 2 * i
            if r < self._sum[left]:
                i = left
            else:
                r -= self._sum[left]
                i = left + 1
        return self._items[min(i - self._cap, n - 1)]

    def argmax(self) -> Any:
        """权重最大的元素（并列时取槽位靠前者）"""
        if not self._items:
            raise ValueError("空池没有最大元素")
        i = 1
        while i < self._cap:
            left = 2 * i
            i = left if self._max[left] >= self._max[left + 1] else left + 1
        return self._items[i - self._cap]

    # ── 内部 ──

    def _set_leaf(self, slot: int, weight: Optional[float]) -> None:
        i = slot + self._cap
        if weight is None:
            self._sum[i] = 0.0
            self._max[i] = -math.inf
        else:
            self._sum[i] = weight if (math.isfinite(weight) and weight > 0.0) else 0.0
            self._max[i] = -math.inf if math.isnan(weight) else weight
        i //= 2
        while i:
            self._pull(i)
            i //= 2

    def _pull(self, i: int) -> None:
        left, right = 2 * i, 2 * i + 1
        self._sum[i] = self._sum[left] + self._sum[right]
        a, b = self._max[left], self._max[right]
        self._max[i] = a if a >= b else b

    def _grow(self) -> None:
        cap = self._cap * 2
        self._cap = cap
        self._sum = [0.0] * (2 * cap)
        self._max = [-math.inf] * (2 * cap)
        for slot, w in enumerate(self._weights):
            i = slot + cap
            self._sum[i] = w if (math.isfinite(w) and w > 0.0) else 0.0
            self._max[i] = -math.inf if math.isnan(w) else w
        for i in range(cap - 1, 0, -1):
            self._pull(i)
