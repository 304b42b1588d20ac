"""
kpiece/obstacles.py - 障碍物与场景管理

在状态空间的若干维度（通常是位置维度）上定义 AABB 障碍物集合，
Scene.is_valid() 可直接作为 SpaceInformation 的状态有效性检测。
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Obstacle:
    """AABB 障碍物

    Attributes:
        min_point: 最小角点
        max_point: 最大角点
        name: 障碍物名称（可选）
    """
    min_point: np.ndarray
    max_point: np.ndarray
    name: str = ""

    def __post_init__(self) -> None:
        self.min_point = np.asarray(self.min_point, dtype=np.float64)
        self.max_point = np.asarray(self.max_point, dtype=np.float64)
        if self.min_point.shape != self.max_point.shape:
            raise ValueError("min_point 和 max_point 维度不匹配")

    @property
    def center(self) -> np.ndarray:
        return (self.min_point + self.max_point) / 2.0

    @property
    def size(self) -> np.ndarray:
        return self.max_point - self.min_point

    def contains_point(self, point: np.ndarray) -> bool:
        """检查点是否在障碍物内（含边界）"""
        return bool(np.all(point >= self.min_point) and np.all(point <= self.max_point))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'name': self.name,
        }


class Scene:
    """障碍物场景

    Args:
        dims: 障碍物所在的状态维度（默认 (0, 1)）

    Example:
        >>> scene = Scene(dims=(0, 1))
        >>> scene.add_obstacle([0.4, 0.0], [0.6, 0.7], name="wall")
        >>> si = SpaceInformation(ss, cs, propagator, scene.is_valid)
    """

    def __init__(self, dims: Sequence[int] = (0, 1)) -> None:
        self.dims = tuple(int(d) for d in dims)
        self._obstacles: List[Obstacle] = []

    @property
    def n_obstacles(self) -> int:
        return len(self._obstacles)

    def add_obstacle(self, min_point: Any, max_point: Any, name: str = "") -> Obstacle:
        """添加一个 AABB 障碍物（维度须与 dims 一致）"""
        if len(min_point) != len(self.dims):
            raise ValueError(
                f"障碍物维度 {len(min_point)} 与场景维度 {len(self.dims)} 不一致")
        if not name:
            name = f"obstacle_{self.n_obstacles}"
        obs = Obstacle(min_point=min_point, max_point=max_point, name=name)
        self._obstacles.append(obs)
        logger.debug("添加障碍物 '%s': min=%s, max=%s", name,
                     obs.min_point.tolist(), obs.max_point.tolist())
        return obs

    def remove_obstacle(self, name: str) -> bool:
        """按名称移除障碍物，返回是否找到"""
        for i, obs in enumerate(self._obstacles):
            if obs.name == name:
                self._obstacles.pop(i)
                return True
        return False

    def clear(self) -> None:
        self._obstacles.clear()

    def get_obstacles(self) -> List[Obstacle]:
        return list(self._obstacles)

    def get_obstacle(self, name: str) -> Optional[Obstacle]:
        for obs in self._obstacles:
            if obs.name == name:
                return obs
        return None

    def is_valid(self, state: np.ndarray) -> bool:
        """状态的 dims 分量不落在任何障碍物内"""
        point = np.asarray(state, dtype=np.float64)[list(self.dims)]
        for obs in self._obstacles:
            if obs.contains_point(point):
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dims': list(self.dims),
            'obstacles': [obs.to_dict() for obs in self._obstacles],
        }

    def to_json(self, filepath: str) -> None:
        """保存场景到 JSON 文件"""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, filepath: str) -> 'Scene':
        """从 JSON 文件加载场景"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scene':
        """从字典加载场景

        Args:
            data: {'dims': [...], 'obstacles': [{'min': [...], 'max': [...], 'name': ...}, ...]}
        """
        scene = cls(dims=data.get('dims', (0, 1)))
        for item in data.get('obstacles', []):
            scene.add_obstacle(
                min_point=item['min'],
                max_point=item['max'],
                name=item.get('name', ''),
            )
        return scene

    def __repr__(self) -> str:
        return f"Scene(dims={self.dims}, n_obstacles={self.n_obstacles})"
