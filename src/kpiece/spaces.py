"""
kpiece/spaces.py - 状态空间、控制空间与传播

提供规划器依赖的外部协作者的实数向量实现：
- RealVectorStateSpace: 有界实数状态空间
- RealVectorControlSpace: 有界实数控制空间
- UniformControlSampler: 均匀控制采样器
- SpaceInformation: 状态有效性 + 前向传播（propagate_while_valid）
- PathControl: 控制路径（状态序列 + 控制 + 持续时间）

状态和控制量均为 np.ndarray（float64），"分配/复制/克隆"直接映射为
numpy 数组操作。
"""

import logging
from typing import Callable, List, Tuple, Optional, Sequence, Dict, Any

import numpy as np

logger = logging.getLogger(__name__)

# propagator(state, control, duration, out_state) -> None
Propagator = Callable[[np.ndarray, np.ndarray, float, np.ndarray], None]
StateValidityChecker = Callable[[np.ndarray], bool]


def _as_bounds(bounds: Sequence[Tuple[float, float]]) -> np.ndarray:
    arr = np.asarray(bounds, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError("bounds 必须是 [(lo, hi), ...] 形式")
    if np.any(arr[:, 0] > arr[:, 1]):
        raise ValueError("bounds 下界不能大于上界")
    return arr


class RealVectorStateSpace:
    """有界实数向量状态空间

    Args:
        bounds: 每维的 (lo, hi)
    """

    def __init__(self, bounds: Sequence[Tuple[float, float]]) -> None:
        self.bounds = _as_bounds(bounds)

    @property
    def dimension(self) -> int:
        return self.bounds.shape[0]

    @property
    def low(self) -> np.ndarray:
        return self.bounds[:, 0]

    @property
    def high(self) -> np.ndarray:
        return self.bounds[:, 1]

    def alloc_state(self) -> np.ndarray:
        return np.zeros(self.dimension, dtype=np.float64)

    def copy_state(self, destination: np.ndarray, source: np.ndarray) -> None:
        destination[:] = source

    def clone_state(self, state: np.ndarray) -> np.ndarray:
        return np.array(state, dtype=np.float64, copy=True)

    def satisfies_bounds(self, state: np.ndarray) -> bool:
        return bool(np.all(state >= self.low) and np.all(state <= self.high))

    def enforce_bounds(self, state: np.ndarray) -> None:
        np.clip(state, self.low, self.high, out=state)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.linalg.norm(np.asarray(a) - np.asarray(b)))

    def default_projection(self):
        """前两维（或唯一一维）上的网格投影，单元尺寸 = 范围 / 20"""
        from .projection import GridProjection
        dims = tuple(range(min(2, self.dimension)))
        extents = self.high[list(dims)] - self.low[list(dims)]
        cell_sizes = np.where(extents > 0, extents / 20.0, 1.0)
        return GridProjection(cell_sizes=cell_sizes, dims=dims)


class RealVectorControlSpace:
    """有界实数向量控制空间"""

    def __init__(self, bounds: Sequence[Tuple[float, float]]) -> None:
        self.bounds = _as_bounds(bounds)

    @property
    def dimension(self) -> int:
        return self.bounds.shape[0]

    def alloc_control(self) -> np.ndarray:
        return np.zeros(self.dimension, dtype=np.float64)

    def null_control(self) -> np.ndarray:
        """全零控制（裁剪到边界内）"""
        return np.clip(self.alloc_control(), self.bounds[:, 0], self.bounds[:, 1])

    def copy_control(self, destination: np.ndarray, source: np.ndarray) -> None:
        destination[:] = source

    def clone_control(self, control: np.ndarray) -> np.ndarray:
        return np.array(control, dtype=np.float64, copy=True)

    def alloc_control_sampler(self, rng: np.random.Generator) -> 'UniformControlSampler':
        return UniformControlSampler(self, rng)


class UniformControlSampler:
    """在控制边界内均匀采样，忽略上一控制量和状态"""

    def __init__(self, control_space: RealVectorControlSpace,
                 rng: np.random.Generator) -> None:
        self.control_space = control_space
        self.rng = rng

    def sample(self, out: np.ndarray) -> None:
        b = self.control_space.bounds
        out[:] = self.rng.uniform(b[:, 0], b[:, 1])

    def sample_next(self, out: np.ndarray, previous_control: np.ndarray,
                    previous_state: np.ndarray) -> None:
        self.sample(out)

    def sample_step_count(self, min_steps: int, max_steps: int) -> int:
        """[min_steps, max_steps] 上的均匀整数"""
        return int(self.rng.integers(min_steps, max_steps + 1))


class SpaceInformation:
    """状态/控制空间 + 有效性检测 + 前向传播

    Args:
        state_space: 状态空间
        control_space: 控制空间
        propagator: 单步传播函数 ``propagator(state, control, dt, out)``，
            将 state 在 control 下前进 dt 后的结果写入 out
        validity_checker: 状态有效性检测（可选，默认只检查边界）
        propagation_step_size: 单步传播时长
        min_control_duration: 最小控制持续步数
        max_control_duration: 最大控制持续步数

    Example:
        >>> si = SpaceInformation(ss, cs, propagator, scene.is_valid)
        >>> n = si.propagate_while_valid(s0, u, 10, buffer)
    """

    def __init__(
        self,
        state_space: RealVectorStateSpace,
        control_space: RealVectorControlSpace,
        propagator: Propagator,
        validity_checker: Optional[StateValidityChecker] = None,
        propagation_step_size: float = 0.1,
        min_control_duration: int = 1,
        max_control_duration: int = 10,
    ) -> None:
        self.state_space = state_space
        self.control_space = control_space
        self.propagator = propagator
        self.validity_checker = validity_checker
        self.propagation_step_size = propagation_step_size
        self.min_control_duration = min_control_duration
        self.max_control_duration = max_control_duration
        self.setup()

    def setup(self) -> None:
        """检查传播参数"""
        if self.propagation_step_size <= 0.0:
            raise ValueError(
                f"propagation_step_size 必须为正数，得到 {self.propagation_step_size}")
        if self.min_control_duration < 1:
            raise ValueError("min_control_duration 至少为 1")
        if self.max_control_duration < self.min_control_duration:
            raise ValueError("max_control_duration 不能小于 min_control_duration")

    # ── 访问器 ──

    def get_propagation_step_size(self) -> float:
        return self.propagation_step_size

    def get_min_control_duration(self) -> int:
        return self.min_control_duration

    def get_max_control_duration(self) -> int:
        return self.max_control_duration

    def alloc_control_sampler(self, rng: np.random.Generator) -> UniformControlSampler:
        return self.control_space.alloc_control_sampler(rng)

    # ── 有效性与传播 ──

    def is_valid(self, state: np.ndarray) -> bool:
        if not self.state_space.satisfies_bounds(state):
            return False
        if self.validity_checker is None:
            return True
        return bool(self.validity_checker(state))

    def propagate(self, state: np.ndarray, control: np.ndarray,
                  steps: int, out: np.ndarray) -> None:
        """不做有效性检测，连续传播 steps 步"""
        out[:] = state
        for _ in range(steps):
            self.propagator(out.copy(), control, self.propagation_step_size, out)

    def propagate_while_valid(
        self,
        state: np.ndarray,
        control: np.ndarray,
        steps: int,
        out_states: np.ndarray,
    ) -> int:
        """传播直到遇到第一个无效状态

        Args:
            state: 起始状态
            control: 控制量
            steps: 最大步数
            out_states: 输出缓冲 (>= steps, dim)，第 i 行为第 i+1 步的状态

        Returns:
            有效步数
        """
        current = state
        for i in range(steps):
            self.propagator(current, control, self.propagation_step_size, out_states[i])
            if not self.is_valid(out_states[i]):
                return i
            current = out_states[i]
        return steps


class PathControl:
    """控制路径

    states 比 controls / durations 多一个元素：
    controls[i] 持续 durations[i] 将 states[i] 推到 states[i+1]。
    """

    def __init__(self) -> None:
        self.states: List[np.ndarray] = []
        self.controls: List[np.ndarray] = []
        self.durations: List[float] = []

    @property
    def n_states(self) -> int:
        return len(self.states)

    @property
    def n_controls(self) -> int:
        return len(self.controls)

    def length(self) -> float:
        """总持续时间"""
        return float(sum(self.durations))

    def as_array(self) -> np.ndarray:
        """状态序列 (N, dim)"""
        if not self.states:
            return np.empty((0, 0))
        return np.vstack(self.states)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "states": [s.tolist() for s in self.states],
            "controls": [c.tolist() for c in self.controls],
            "durations": list(self.durations),
            "n_states": self.n_states,
            "total_duration": self.length(),
        }

    def __repr__(self) -> str:
        return f"PathControl(n_states={self.n_states}, duration={self.length():.4f})"
