"""
kpiece/models.py - 规划器数据模型

定义 KPIECE1 规划器使用的核心数据结构：Motion、MotionArena、CellData、
KPIECEConfig、PlannerResult。

Motion 之间的父子关系用 arena 下标表示（而非对象引用），
整棵树的生命周期由 MotionArena 统一管理，clear() 时一次性释放。
"""

import json
import math
from pathlib import Path
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from .spaces import PathControl


@dataclass
class Motion:
    """树中的一条边

    Attributes:
        state: 到达的状态（独占副本）
        control: 产生该状态的控制量（独占副本）
        steps: 传播步数（根节点为 0）
        parent: 父 Motion 在 arena 中的下标（根节点为 None）
    """
    state: np.ndarray
    control: np.ndarray
    steps: int = 0
    parent: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.parent is None


class MotionArena:
    """Motion 对象池

    以下标寻址存储全部 Motion，父指针为池内下标，
    保证遍历 O(1) 且不存在悬挂引用。
    """

    def __init__(self) -> None:
        self._motions: List[Motion] = []

    def add(self, motion: Motion) -> int:
        """加入一个 Motion，返回其下标"""
        if motion.parent is not None and not 0 <= motion.parent < len(self._motions):
            raise ValueError(f"父节点下标 {motion.parent} 不在 arena 中")
        self._motions.append(motion)
        return len(self._motions) - 1

    def __getitem__(self, idx: int) -> Motion:
        return self._motions[idx]

    def __len__(self) -> int:
        return len(self._motions)

    def __iter__(self):
        return iter(self._motions)

    def clear(self) -> None:
        self._motions.clear()

    def path_to_root(self, idx: int) -> List[int]:
        """从根到 idx 的下标序列（根在前）"""
        chain: List[int] = []
        cur: Optional[int] = idx
        while cur is not None:
            chain.append(cur)
            cur = self._motions[cur].parent
        chain.reverse()
        return chain


@dataclass
class CellData:
    """单个网格单元的聚合数据

    Attributes:
        motions: 投影到该单元的 Motion 下标（只追加）
        coverage: 单元内所有 Motion 的 steps 之和
        score: 重要度基础分（扩展失败时衰减）
        iteration: 单元创建时树的迭代计数
        selections: 被选为扩展源的次数
        importance: 由网格的重要度函数计算，决定选择权重
    """
    motions: List[int] = field(default_factory=list)
    coverage: float = 0.0
    score: float = 1.0
    iteration: int = 1
    selections: int = 1
    importance: float = 0.0


_MOTION_SELECTIONS = ('half_normal', 'uniform')
_CELL_SELECTIONS = ('weighted', 'greedy')


def _check_unit_interval(name: str, value: float) -> None:
    if not (np.finfo(float).eps <= value <= 1.0):
        raise ValueError(f"{name} 必须在 (0, 1] 区间内，得到 {value}")


@dataclass
class KPIECEConfig:
    """KPIECE1 规划器参数配置

    Attributes:
        goal_bias: 从 close samples 中选择扩展源的概率 (0, 1]
        border_fraction: 选择边界单元的最小概率 (0, 1]
        bad_score_factor: 传播过短时单元分数的衰减因子 (0, 1]
        good_score_factor: 扩展成功后单元分数的衰减因子 (0, 1]
        close_sample_count: close samples 集合容量
        interesting_fallback_probability: 非 interesting 轨迹仍被接受的概率
        motion_selection: 单元内 Motion 的选取分布 ('half_normal' / 'uniform')
        half_normal_focus: half-normal 分布的集中度（越大越偏向最新 Motion）
        cell_selection: 网格单元选取策略 ('weighted' / 'greedy')
    """
    goal_bias: float = 0.05
    border_fraction: float = 0.8
    bad_score_factor: float = 0.45
    good_score_factor: float = 0.9
    close_sample_count: int = 30
    interesting_fallback_probability: float = 0.05
    motion_selection: str = 'half_normal'
    half_normal_focus: float = 3.0
    cell_selection: str = 'weighted'

    def validate(self) -> None:
        """检查参数范围，不合法时抛出 ValueError"""
        _check_unit_interval("goal_bias", self.goal_bias)
        _check_unit_interval("border_fraction", self.border_fraction)
        _check_unit_interval("bad_score_factor", self.bad_score_factor)
        _check_unit_interval("good_score_factor", self.good_score_factor)
        if self.close_sample_count < 1:
            raise ValueError(
                f"close_sample_count 必须为正整数，得到 {self.close_sample_count}")
        if not 0.0 <= self.interesting_fallback_probability <= 1.0:
            raise ValueError("interesting_fallback_probability 必须在 [0, 1] 区间内")
        if self.half_normal_focus <= 0.0:
            raise ValueError("half_normal_focus 必须为正数")
        if self.motion_selection not in _MOTION_SELECTIONS:
            raise ValueError(f"未知 Motion 选取方式: {self.motion_selection}")
        if self.cell_selection not in _CELL_SELECTIONS:
            raise ValueError(f"未知单元选取方式: {self.cell_selection}")

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        from dataclasses import fields as dc_fields
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}

    def to_json(self, filepath: str | Path) -> str:
        """保存到 JSON 文件

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KPIECEConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        from dataclasses import fields as dc_fields
        valid_fields = {f.name for f in dc_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'KPIECEConfig':
        """从 JSON 文件加载"""
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class PlannerResult:
    """规划结果

    Attributes:
        success: 是否得到路径（精确解或近似解）
        approximate: 是否为近似解
        difference: 终点状态到目标的距离
        path: 控制路径（无解时为 None）
        iterations: 本次 solve 执行的迭代次数
        n_motions: 树中 Motion 总数
        n_cells: 网格单元数
        n_internal: 内部单元数
        n_external: 边界单元数
        computation_time: 计算耗时 (s)
        message: 描述信息
        timestamp: 时间戳
    """
    success: bool = False
    approximate: bool = False
    difference: float = float('inf')
    path: Optional[PathControl] = None
    iterations: int = 0
    n_motions: int = 0
    n_cells: int = 0
    n_internal: int = 0
    n_external: int = 0
    computation_time: float = 0.0
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    @property
    def exact(self) -> bool:
        return self.success and not self.approximate

    # ── 路径序列化 ─────────────────────────────────────────

    def save_path(self, filepath: str | Path) -> str:
        """将规划路径保存为 JSON 文件

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            "success": self.success,
            "approximate": self.approximate,
            "difference": self.difference if math.isfinite(self.difference) else None,
            "iterations": self.iterations,
            "n_motions": self.n_motions,
            "n_cells": self.n_cells,
            "computation_time": self.computation_time,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.path is not None:
            data.update(self.path.to_dict())

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return str(filepath)

    @staticmethod
    def load_path(filepath: str | Path) -> Dict[str, Any]:
        """从 JSON 文件加载规划路径

        Returns:
            字典，states / controls 转为 np.ndarray 列表
        """
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        data['states'] = [np.array(s, dtype=np.float64) for s in data.get('states', [])]
        data['controls'] = [np.array(c, dtype=np.float64) for c in data.get('controls', [])]
        if data.get('difference') is None:
            data['difference'] = float('inf')
        return data
