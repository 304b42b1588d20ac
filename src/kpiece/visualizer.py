"""
kpiece/visualizer.py - 规划树可视化 (matplotlib)

在两个状态维度上绘制：
- 树边（父状态 → 子状态的线段）
- 顶点（按边界 / 内部单元着色）
- 障碍物（Scene）
- 解路径
"""

import logging
from typing import Any, Optional, Tuple

import numpy as np
import matplotlib
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
from matplotlib.patches import Rectangle

from .obstacles import Scene
from .planner_data import PlannerData, TAG_BORDER
from .spaces import PathControl

logger = logging.getLogger(__name__)

matplotlib.rcParams['axes.unicode_minus'] = False


def plot_tree(
    planner_data: PlannerData,
    path: Optional[PathControl] = None,
    scene: Optional[Scene] = None,
    dims: Tuple[int, int] = (0, 1),
    ax: Optional[Any] = None,
    title: str = "KPIECE1 tree",
    figsize: Tuple[float, float] = (8, 8),
) -> Any:
    """绘制规划树、障碍物与路径

    Args:
        planner_data: KPIECE1.get_planner_data() 的输出
        path: 解路径（可选）
        scene: 障碍物场景（可选，须与 dims 对应）
        dims: 绘图使用的两个状态维度
        ax: matplotlib Axes（可选）
        title: 标题
        figsize: 新建图形时的尺寸

    Returns:
        matplotlib figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure
    dx, dy = dims

    if scene is not None:
        if dx not in scene.dims or dy not in scene.dims:
            raise ValueError(
                f"场景维度 {scene.dims} 不包含绘图维度 {tuple(dims)}")
        ix, iy = scene.dims.index(dx), scene.dims.index(dy)
        for obs in scene.get_obstacles():
            size = obs.size
            ax.add_patch(Rectangle(
                (obs.min_point[ix], obs.min_point[iy]),
                size[ix], size[iy],
                facecolor='dimgray', edgecolor='black', alpha=0.6))

    segments = []
    for e in planner_data.edges:
        if e.source is None:
            continue
        a = planner_data.vertices[e.source]
        b = planner_data.vertices[e.target]
        segments.append([(a[dx], a[dy]), (b[dx], b[dy])])
    if segments:
        ax.add_collection(LineCollection(segments, colors='tab:blue',
                                         linewidths=0.5, alpha=0.5))

    if planner_data.vertices:
        pts = np.vstack(planner_data.vertices)
        border = np.array([planner_data.tags.get(i) == TAG_BORDER
                           for i in range(len(pts))], dtype=bool)
        ax.scatter(pts[~border, dx], pts[~border, dy], s=4, c='tab:green',
                   label='interior')
        ax.scatter(pts[border, dx], pts[border, dy], s=4, c='tab:orange',
                   label='border')

    if path is not None and path.n_states > 0:
        arr = path.as_array()
        ax.plot(arr[:, dx], arr[:, dy], '-o', color='tab:red',
                linewidth=2, markersize=3, label='path')
        ax.plot(arr[0, dx], arr[0, dy], 's', color='black', markersize=8)
        ax.plot(arr[-1, dx], arr[-1, dy], '*', color='gold', markersize=12)

    ax.set_title(title)
    ax.set_aspect('equal', adjustable='datalim')
    ax.autoscale_view()
    ax.legend(loc='upper right', fontsize=8)
    logger.debug("绘制 %d 条树边", len(segments))
    return fig


def save_tree_plot(filepath: str, planner_data: PlannerData, **kwargs) -> str:
    """绘制并保存为图片"""
    fig = plot_tree(planner_data, **kwargs)
    fig.savefig(filepath, dpi=150, bbox_inches='tight')
    plt.close(fig)
    logger.info("树可视化已保存到 %s", filepath)
    return filepath
