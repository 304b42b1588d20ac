"""
kpiece - KPIECE1 运动学-动力学树规划器

在状态空间的低维投影上维护离散网格，以单元重要度（边界/内部分类、
覆盖度、选择次数、创建时间、到目标距离）引导树的生长，
直到找到满足目标的轨迹或预算耗尽（返回近似解）。

核心组件：
- KPIECE1: 规划器（树生长主循环、网格插入、扩展源选择）
- GridIndex: 带边界/内部分类与可插拔重要度函数的网格索引
- CloseSamples: 有界的目标偏置样本池
- SpaceInformation / RealVector*Space: 状态、控制与前向传播
- GridProjection: 状态到网格坐标的投影
- GoalState / GoalRegion / ProblemDefinition: 目标与问题定义
- PlannerData / KPIECEReportGenerator / plot_tree: 数据导出、报告与可视化
"""

from .models import (
    Motion,
    MotionArena,
    CellData,
    KPIECEConfig,
    PlannerResult,
)
from .spaces import (
    RealVectorStateSpace,
    RealVectorControlSpace,
    UniformControlSampler,
    SpaceInformation,
    PathControl,
)
from .projection import GridProjection
from .obstacles import Obstacle, Scene
from .goals import Goal, GoalRegion, GoalState, ProblemDefinition
from .termination import IterationTermination, TimedTermination, CombinedTermination
from .grid import Cell, GridIndex, compute_importance
from .sampling import WeightedPool
from .close_samples import CloseSample, CloseSamples
from .planner_data import PlannerData, PlannerDataEdge
from .kpiece import KPIECE1, Tree
from .report import KPIECEReportGenerator
from .visualizer import plot_tree, save_tree_plot

__version__ = "1.0.0"
__all__ = [
    # 数据模型
    'Motion',
    'MotionArena',
    'CellData',
    'KPIECEConfig',
    'PlannerResult',
    # 空间与传播
    'RealVectorStateSpace',
    'RealVectorControlSpace',
    'UniformControlSampler',
    'SpaceInformation',
    'PathControl',
    'GridProjection',
    # 场景与目标
    'Obstacle',
    'Scene',
    'Goal',
    'GoalRegion',
    'GoalState',
    'ProblemDefinition',
    'IterationTermination',
    'TimedTermination',
    'CombinedTermination',
    # 核心算法
    'Cell',
    'GridIndex',
    'compute_importance',
    'WeightedPool',
    'CloseSample',
    'CloseSamples',
    'KPIECE1',
    'Tree',
    # 数据导出与报告
    'PlannerData',
    'PlannerDataEdge',
    'KPIECEReportGenerator',
    'plot_tree',
    'save_tree_plot',
]
