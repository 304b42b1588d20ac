"""
kpiece/report.py - 规划报告生成器

将 KPIECEConfig + PlannerResult（+ 可选的 PlannerData）转换为
Markdown 格式报告。
"""

import logging
import math
from typing import List, Optional

from .models import KPIECEConfig, PlannerResult
from .planner_data import PlannerData, TAG_BORDER, TAG_INTERIOR

logger = logging.getLogger(__name__)


def _fmt_vec(v) -> str:
    return "[" + ", ".join(f"{x:.4f}" for x in v) + "]"


class KPIECEReportGenerator:
    """KPIECE1 规划报告生成器

    Args:
        max_waypoints: 路径表中最多列出的状态数
    """

    def __init__(self, max_waypoints: int = 50) -> None:
        self.max_waypoints = max_waypoints

    def generate(
        self,
        config: KPIECEConfig,
        result: PlannerResult,
        planner_data: Optional[PlannerData] = None,
    ) -> str:
        """生成完整的 Markdown 报告

        Returns:
            Markdown 格式的报告字符串
        """
        lines: List[str] = []
        _a = lines.append

        _a("# KPIECE1 规划报告")
        _a("")
        _a(f"生成时间: {result.timestamp}")
        _a("")

        # 参数配置
        _a("## 参数配置")
        _a("")
        _a("| 参数 | 值 |")
        _a("|------|----|")
        for k, v in config.to_dict().items():
            _a(f"| {k} | {v} |")
        _a("")

        # 规划结果
        _a("## 规划结果")
        _a("")
        if not result.success:
            outcome = "失败"
        elif result.approximate:
            outcome = "近似解"
        else:
            outcome = "精确解"
        _a(f"- **结果**: {outcome}")
        if math.isfinite(result.difference):
            _a(f"- **距目标**: {result.difference:.6f}")
        _a(f"- **迭代次数**: {result.iterations}")
        _a(f"- **计算耗时**: {result.computation_time:.4f} 秒")
        if result.message:
            _a(f"- **信息**: {result.message}")
        _a("")

        # 树统计
        _a("## 树统计")
        _a("")
        _a(f"- **Motion 数**: {result.n_motions}")
        _a(f"- **单元数**: {result.n_cells} "
           f"(内部 {result.n_internal} + 边界 {result.n_external})")
        if planner_data is not None:
            _a(f"- **顶点 / 边**: {planner_data.n_vertices} / {planner_data.n_edges}")
            _a(f"- **边界顶点**: {len(planner_data.vertices_with_tag(TAG_BORDER))}")
            _a(f"- **内部顶点**: {len(planner_data.vertices_with_tag(TAG_INTERIOR))}")
        _a("")

        # 路径
        if result.path is not None:
            path = result.path
            _a("## 路径")
            _a("")
            _a(f"共 {path.n_states} 个状态，{path.n_controls} 段控制，"
               f"总时长 {path.length():.4f}")
            _a("")
            _a("| # | 状态 | 控制 | 时长 |")
            _a("|---|------|------|------|")
            for i, state in enumerate(path.states[:self.max_waypoints]):
                if i == 0:
                    _a(f"| {i} | {_fmt_vec(state)} | - | - |")
                else:
                    _a(f"| {i} | {_fmt_vec(state)} | "
                       f"{_fmt_vec(path.controls[i - 1])} | {path.durations[i - 1]:.4f} |")
            if path.n_states > self.max_waypoints:
                _a(f"| ... | 省略 {path.n_states - self.max_waypoints} 个状态 | | |")
            _a("")

        return "\n".join(lines)

    def save(self, filepath: str, config: KPIECEConfig, result: PlannerResult,
             planner_data: Optional[PlannerData] = None) -> str:
        """生成报告并写入文件"""
        content = self.generate(config, result, planner_data)
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.info("报告已保存到 %s", filepath)
        return filepath
