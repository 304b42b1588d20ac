"""
kpiece/goals.py - 目标与规划问题定义

- Goal: 目标判定接口，同时保存规划结果（路径、距离、是否近似）
- GoalState: 以单个目标状态为中心的球形目标区域
- GoalRegion: 由任意距离函数定义的目标区域
- ProblemDefinition: 起始状态集合 + 目标
"""

import abc
import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from .spaces import PathControl, SpaceInformation

logger = logging.getLogger(__name__)


class Goal(abc.ABC):
    """目标接口

    is_satisfied() 返回 (是否满足, 到目标的距离)；
    规划器结束时通过 set_difference() / set_solution_path() 回写结果。
    """

    def __init__(self) -> None:
        self._difference = float('inf')
        self._path: Optional[PathControl] = None
        self._approximate = False

    @abc.abstractmethod
    def is_satisfied(self, state: np.ndarray) -> Tuple[bool, float]:
        """判断状态是否满足目标

        Returns:
            (satisfied, distance)
        """

    def set_difference(self, distance: float) -> None:
        self._difference = float(distance)

    def get_difference(self) -> float:
        return self._difference

    def set_solution_path(self, path: PathControl, approximate: bool = False) -> None:
        self._path = path
        self._approximate = approximate

    def get_solution_path(self) -> Optional[PathControl]:
        return self._path

    def is_achieved(self) -> bool:
        return self._path is not None

    def is_approximate(self) -> bool:
        return self._approximate

    def clear_solution(self) -> None:
        self._difference = float('inf')
        self._path = None
        self._approximate = False


class GoalRegion(Goal):
    """距离函数不超过阈值的状态集合

    Args:
        distance_fn: 状态到目标区域的距离
        threshold: 判定阈值
    """

    def __init__(self, distance_fn: Callable[[np.ndarray], float],
                 threshold: float = 0.0) -> None:
        super().__init__()
        if threshold < 0.0:
            raise ValueError("threshold 不能为负")
        self.distance_fn = distance_fn
        self.threshold = threshold

    def distance_goal(self, state: np.ndarray) -> float:
        return float(self.distance_fn(state))

    def is_satisfied(self, state: np.ndarray) -> Tuple[bool, float]:
        d = self.distance_goal(state)
        return d <= self.threshold, d


class GoalState(GoalRegion):
    """以 goal_state 为中心、半径 threshold 的目标球

    Args:
        goal_state: 目标状态
        threshold: 半径
        dims: 参与距离计算的状态维度（默认全部）
    """

    def __init__(self, goal_state, threshold: float = 0.1,
                 dims: Optional[Tuple[int, ...]] = None) -> None:
        self.goal_state = np.asarray(goal_state, dtype=np.float64)
        self.dims = None if dims is None else list(dims)
        super().__init__(self._distance, threshold)

    def _distance(self, state: np.ndarray) -> float:
        state = np.asarray(state, dtype=np.float64)
        if self.dims is None:
            return float(np.linalg.norm(state - self.goal_state))
        return float(np.linalg.norm(state[self.dims] - self.goal_state[self.dims]))


class ProblemDefinition:
    """规划问题：起始状态 + 目标

    Example:
        >>> pdef = ProblemDefinition(si, GoalState([1.0, 1.0], 0.1))
        >>> pdef.add_start_state([0.0, 0.0])
    """

    def __init__(self, si: SpaceInformation, goal: Goal) -> None:
        self.si = si
        self.goal = goal
        self._starts: List[np.ndarray] = []

    @property
    def n_start_states(self) -> int:
        return len(self._starts)

    def add_start_state(self, state) -> None:
        self._starts.append(np.array(state, dtype=np.float64))

    def clear_start_states(self) -> None:
        self._starts.clear()

    def get_start_states(self) -> List[np.ndarray]:
        return list(self._starts)

    def valid_start_states(self, offset: int = 0) -> List[np.ndarray]:
        """从第 offset 个起始状态开始，过滤掉无效（越界 / 碰撞）的状态"""
        valid: List[np.ndarray] = []
        for s in self._starts[offset:]:
            if self.si.is_valid(s):
                valid.append(s)
            else:
                logger.warning("跳过无效起始状态 %s", s.tolist())
        return valid

    def clear_solution(self) -> None:
        self.goal.clear_solution()
