#!/usr/bin/env python
"""
examples/kpiece_demo_2d.py - 二维运动学小车 KPIECE1 规划演示

状态 (x, y, theta)，控制 (v, omega)，在带 AABB 障碍物的 [0, 10]^2
场景中从左下角规划到右上角。

输出（examples/output/kpiece_demo_<timestamp>/）：
  - tree.png     规划树 + 障碍物 + 路径
  - report.md    Markdown 规划报告
  - path.json    路径
  - config.json  参数配置

运行：
    python examples/kpiece_demo_2d.py
    python examples/kpiece_demo_2d.py --seed 7 --time 5
"""

from __future__ import annotations

import argparse
import logging
import math
from datetime import datetime
from pathlib import Path

import numpy as np

from kpiece import (
    KPIECE1,
    KPIECEConfig,
    KPIECEReportGenerator,
    GoalState,
    GridProjection,
    IterationTermination,
    TimedTermination,
    CombinedTermination,
    ProblemDefinition,
    RealVectorControlSpace,
    RealVectorStateSpace,
    Scene,
    SpaceInformation,
    save_tree_plot,
)

# ── 日志配置 ──────────────────────────────────────────────
LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FMT, datefmt="%H:%M:%S")
logger = logging.getLogger("kpiece_demo_2d")


def car_propagator(state: np.ndarray, control: np.ndarray,
                   dt: float, out: np.ndarray) -> None:
    """单轮小车：x' = v cos(theta), y' = v sin(theta), theta' = omega"""
    x, y, theta = state
    v, omega = control
    out[0] = x + v * math.cos(theta) * dt
    out[1] = y + v * math.sin(theta) * dt
    out[2] = (theta + omega * dt + math.pi) % (2.0 * math.pi) - math.pi


def build_scene() -> Scene:
    scene = Scene(dims=(0, 1))
    scene.add_obstacle([3.0, 0.0], [4.0, 6.5], name="wall_low")
    scene.add_obstacle([6.0, 3.5], [7.0, 10.0], name="wall_high")
    return scene


def main() -> None:
    parser = argparse.ArgumentParser(description="KPIECE1 2D car demo")
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--time', type=float, default=10.0, help="时间预算 (s)")
    parser.add_argument('--max-iters', type=int, default=50000)
    parser.add_argument('--cell-selection', default='weighted',
                        choices=['weighted', 'greedy'])
    args = parser.parse_args()

    scene = build_scene()
    ss = RealVectorStateSpace([(0.0, 10.0), (0.0, 10.0), (-math.pi, math.pi)])
    cs = RealVectorControlSpace([(-0.5, 1.5), (-1.0, 1.0)])
    si = SpaceInformation(ss, cs, car_propagator, scene.is_valid,
                          propagation_step_size=0.1,
                          min_control_duration=1, max_control_duration=20)

    goal = GoalState([9.0, 9.0, 0.0], threshold=0.5, dims=(0, 1))
    pdef = ProblemDefinition(si, goal)
    pdef.add_start_state([1.0, 1.0, 0.0])

    config = KPIECEConfig(cell_selection=args.cell_selection)
    projection = GridProjection(cell_sizes=[0.5, 0.5], dims=(0, 1))
    planner = KPIECE1(si, pdef, config=config, projection=projection, seed=args.seed)

    ptc = CombinedTermination(TimedTermination(args.time),
                              IterationTermination(args.max_iters))
    result = planner.solve(ptc)
    data = planner.get_planner_data()

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(__file__).resolve().parent / "output" / f"kpiece_demo_{ts}"
    out_dir.mkdir(parents=True, exist_ok=True)

    save_tree_plot(str(out_dir / "tree.png"), data, path=result.path, scene=scene)
    KPIECEReportGenerator().save(str(out_dir / "report.md"), config, result, data)
    result.save_path(out_dir / "path.json")
    config.to_json(out_dir / "config.json")

    logger.info("结果: success=%s approximate=%s difference=%.4f",
                result.success, result.approximate, result.difference)
    logger.info("输出目录: %s", out_dir)


if __name__ == '__main__':
    main()
