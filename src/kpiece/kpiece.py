"""
kpiece/kpiece.py - KPIECE1 运动学-动力学规划器

KPIECE (Kinodynamic Planning by Interior-Exterior Cell Exploration)
在状态空间的低维投影上维护离散网格，用单元重要度决定下一步
从哪里扩展树。

算法流程（每次迭代）：
1. 迭代计数 +1
2. 选择扩展源：以 goal_bias 概率从 close samples 中取，否则按
   边界/内部单元重要度从网格中取，再在单元内偏向最新的 Motion
3. 采样控制量与持续步数
4. 前向传播，遇到第一个无效状态即停止
5. 传播步数不足 → 单元分数乘 bad_score_factor
6. 判断轨迹是否 interesting（经过新单元或稀疏单元）
7. interesting → 按单元边界切分轨迹，逐段插入树并检测目标
8. 单元分数乘 good_score_factor，更新网格重要度

预算耗尽仍无精确解时，返回离目标最近的近似解。

参考论文:
    Şucan & Kavraki, "Kinodynamic motion planning by interior-exterior
    cell exploration", WAFR 2008.
"""

import math
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .close_samples import CloseSamples
from .goals import ProblemDefinition
from .grid import Cell, GridIndex, compute_importance
from .models import CellData, KPIECEConfig, Motion, MotionArena, PlannerResult
from .planner_data import PlannerData, TAG_BORDER, TAG_INTERIOR
from .projection import Coord, GridProjection
from .sampling import make_rng, select_index
from .spaces import PathControl, SpaceInformation
from .termination import TerminationCondition, TimedTermination

logger = logging.getLogger(__name__)

_EPS = float(np.finfo(np.float64).eps)


@dataclass
class Tree:
    """规划器的持久搜索状态

    Attributes:
        grid: 网格索引（拥有全部单元）
        motions: Motion 对象池（拥有全部 Motion）
        size: Motion 总数
        iteration: 迭代计数，从 1 开始
    """
    grid: GridIndex
    motions: MotionArena = field(default_factory=MotionArena)
    size: int = 0
    iteration: int = 1


class KPIECE1:
    """KPIECE1 规划器

    Args:
        si: 状态/控制空间与传播
        problem: 起始状态与目标
        config: 规划参数配置
        projection: 状态到网格坐标的投影（默认由状态空间提供）
        seed: 随机数种子（可选，用于可重复性）

    Example:
        >>> planner = KPIECE1(si, pdef, seed=1)
        >>> result = planner.solve(IterationTermination(5000))
        >>> if result.exact:
        ...     print(result.path)
    """

    PARAM_NAMES = (
        'goal_bias',
        'border_fraction',
        'bad_score_factor',
        'good_score_factor',
        'close_sample_count',
    )

    def __init__(
        self,
        si: SpaceInformation,
        problem: ProblemDefinition,
        config: Optional[KPIECEConfig] = None,
        projection: Optional[GridProjection] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.si = si
        self.problem = problem
        self.config = config or KPIECEConfig()
        self.projection = projection
        self._seed = seed
        self.rng = make_rng(seed)
        self.tree = Tree(grid=GridIndex(
            importance_fn=compute_importance,
            selection=self.config.cell_selection,
            rng=self.rng,
        ))
        self._control_sampler = None
        self._n_starts_used = 0
        self._setup_done = False

    @property
    def name(self) -> str:
        return "KPIECE1"

    # ── 参数 ──

    def params(self) -> Dict[str, Any]:
        """可调参数的当前值"""
        return {k: getattr(self.config, k) for k in self.PARAM_NAMES}

    def set_param(self, name: str, value: Any) -> None:
        """设置参数；下次 solve() 前重新校验"""
        if name not in self.PARAM_NAMES:
            raise ValueError(f"未知参数: {name}")
        setattr(self.config, name, value)
        self._setup_done = False

    # ── 生命周期 ──

    def setup(self) -> None:
        """校验配置并确定网格维度"""
        self.config.validate()
        if self.projection is None:
            self.projection = self.si.state_space.default_projection()
            logger.info("KPIECE1: 使用默认投影 %s", self.projection)
        grid = self.tree.grid
        if grid.size() == 0:
            grid.set_dimension(self.projection.get_dimension())
        elif grid.dimension != self.projection.get_dimension():
            raise ValueError("投影维度与已有网格不一致，请先 clear()")
        grid.selection = self.config.cell_selection
        self._setup_done = True

    def clear(self) -> None:
        """释放整棵树并恢复初始状态（随机数按原种子重置）"""
        self._control_sampler = None
        self.tree.grid.clear()
        self.tree.motions.clear()
        self.tree.size = 0
        self.tree.iteration = 1
        self._n_starts_used = 0
        self.rng = make_rng(self._seed)
        self.tree.grid.rng = self.rng
        self.problem.clear_solution()

    # ── 网格插入与选择 ──

    def add_motion(self, motion_idx: int, distance: float) -> Cell:
        """把 Motion 放入其状态所在的网格单元

        Args:
            motion_idx: Motion 在 arena 中的下标
            distance: 该 Motion 状态到目标的距离

        Returns:
            Motion 所在的单元
        """
        motion = self.tree.motions[motion_idx]
        coord = self.projection.compute_coordinates(motion.state)
        grid = self.tree.grid
        cell = grid.get_cell(coord)
        if cell is not None:
            cell.data.motions.append(motion_idx)
            cell.data.coverage += motion.steps
            grid.update(cell)
        else:
            cell = grid.create_cell(coord)
            cell.data = CellData(
                motions=[motion_idx],
                coverage=motion.steps,
                iteration=self.tree.iteration,
                selections=1,
                score=(1.0 + math.log(self.tree.iteration)) / (1e-3 + distance),
            )
            grid.add(cell)
        self.tree.size += 1
        return cell

    def reset_scores(self) -> None:
        """分数下溢修复：每个单元加 1 + ln(iteration) 并重算重要度"""
        for cd in self.tree.grid.get_content():
            cd.score += 1.0 + math.log(cd.iteration)
        self.tree.grid.update_all()

    def select_motion(self) -> Tuple[Optional[int], Optional[Cell]]:
        """按边界/内部单元重要度选择扩展源

        Returns:
            (motion 下标, 单元)；单元为空时 motion 为 None
        """
        grid = self.tree.grid
        if self.rng.uniform() < max(self.config.border_fraction, grid.frac_external()):
            scell = grid.top_external()
        else:
            scell = grid.top_internal()
        if scell is None:
            return None, None

        # 分数持续乘性衰减会下溢到 0
        if scell.data.score < _EPS:
            logger.debug("数值精度达到极限，重置单元分数")
            self.reset_scores()

        if scell.data.motions:
            scell.data.selections += 1
            idx = select_index(self.rng, len(scell.data.motions),
                               self.config.motion_selection,
                               self.config.half_normal_focus)
            return scell.data.motions[idx], scell
        return None, scell

    @staticmethod
    def find_next_motion(coords: List[Coord], index: int, count: int) -> int:
        """从 index 开始、坐标相同的最长一段的最后一个下标"""
        for i in range(index + 1, count):
            if coords[i] != coords[index]:
                return i - 1
        return count - 1

    # ── 主循环 ──

    def _add_start_motions(self) -> None:
        starts = self.problem.valid_start_states(self._n_starts_used)
        self._n_starts_used = self.problem.n_start_states
        for st in starts:
            motion = Motion(
                state=self.si.state_space.clone_state(st),
                control=self.si.control_space.null_control(),
            )
            self.add_motion(self.tree.motions.add(motion), 1.0)

    def solve(self, ptc: Union[TerminationCondition, float]) -> PlannerResult:
        """生长树直到找到精确解或终止条件触发

        Args:
            ptc: 零参数终止条件，或时间预算（秒）

        Returns:
            PlannerResult 规划结果
        """
        if isinstance(ptc, (int, float)):
            ptc = TimedTermination(float(ptc))
        t0 = time.time()
        if not self._setup_done:
            self.setup()

        result = PlannerResult()
        goal = self.problem.goal
        cfg = self.config
        si = self.si
        tree = self.tree

        self._add_start_motions()
        if tree.grid.size() == 0:
            result.message = "没有有效的起始状态"
            result.computation_time = time.time() - t0
            logger.error(result.message)
            return result

        if self._control_sampler is None:
            self._control_sampler = si.alloc_control_sampler(self.rng)

        logger.info("KPIECE1: 以 %d 个状态开始", tree.size)

        solution: Optional[int] = None
        approxsol: Optional[int] = None
        approxdif = math.inf

        min_duration = si.get_min_control_duration()
        max_duration = si.get_max_control_duration()
        rctrl = si.control_space.alloc_control()
        states = np.empty((max_duration + 1, si.state_space.dimension), dtype=np.float64)
        coords: List[Coord] = [()] * states.shape[0]
        cells: List[Optional[Cell]] = [None] * states.shape[0]

        close_samples = CloseSamples(cfg.close_sample_count)
        n_iters = 0

        while not ptc():
            tree.iteration += 1
            n_iters += 1

            # 选择扩展源
            existing: Optional[int] = None
            ecell: Optional[Cell] = None
            if close_samples.can_sample() and self.rng.uniform() < cfg.goal_bias:
                picked = close_samples.select_motion()
                if picked is not None:
                    existing, ecell = picked
            if existing is None:
                existing, ecell = self.select_motion()
            if existing is None or ecell is None:
                raise RuntimeError("KPIECE1: 未能选出扩展 Motion")
            emotion = tree.motions[existing]

            # 采样控制并传播
            self._control_sampler.sample_next(rctrl, emotion.control, emotion.state)
            cd = self._control_sampler.sample_step_count(min_duration, max_duration)
            cd = si.propagate_while_valid(emotion.state, rctrl, cd, states)

            if cd >= min_duration:
                avg_cov_two_thirds = (2 * tree.size) // (3 * tree.grid.size())
                interesting = False

                for i in range(cd):
                    coords[i] = self.projection.compute_coordinates(states[i])
                    cells[i] = tree.grid.get_cell(coords[i])
                    if cells[i] is None or len(cells[i].data.motions) <= avg_cov_two_thirds:
                        interesting = True

                if interesting or self.rng.uniform() < cfg.interesting_fallback_probability:
                    # 按单元边界切分轨迹
                    index = 0
                    parent = existing
                    while index < cd:
                        next_index = self.find_next_motion(coords, index, cd)
                        motion = Motion(
                            state=si.state_space.clone_state(states[next_index]),
                            control=si.control_space.clone_control(rctrl),
                            steps=next_index - index + 1,
                            parent=parent,
                        )
                        midx = tree.motions.add(motion)
                        solved, dist = goal.is_satisfied(motion.state)
                        to_cell = self.add_motion(midx, dist)

                        if solved:
                            approxdif = dist
                            solution = midx
                            break
                        if dist < approxdif:
                            approxdif = dist
                            approxsol = midx

                        close_samples.consider(to_cell, midx, dist)

                        parent = midx
                        index = next_index + 1

                    if solution is not None:
                        break

                ecell.data.score *= cfg.good_score_factor
            else:
                ecell.data.score *= cfg.bad_score_factor

            tree.grid.update(ecell)

        approximate = False
        if solution is None:
            solution = approxsol
            approximate = True

        if solution is not None:
            path = self._build_path(solution)
            goal.set_difference(approxdif)
            goal.set_solution_path(path, approximate)
            result.success = True
            result.approximate = approximate
            result.difference = approxdif
            result.path = path
            if approximate:
                result.message = f"找到近似解，距目标 {approxdif:.6f}"
                logger.warning(result.message)
            else:
                result.message = f"找到精确解，{path.n_controls} 段控制"
                logger.info(result.message)
        else:
            result.message = "未找到任何解"
            logger.warning(result.message)

        result.iterations = n_iters
        result.n_motions = tree.size
        result.n_cells = tree.grid.size()
        result.n_internal = tree.grid.count_internal()
        result.n_external = tree.grid.count_external()
        result.computation_time = time.time() - t0

        logger.info("KPIECE1: 共 %d 个状态，%d 个单元（内部 %d + 边界 %d）",
                    result.n_motions, result.n_cells,
                    result.n_internal, result.n_external)
        return result

    def _build_path(self, terminal: int) -> PathControl:
        """沿父指针回溯到根，构造控制路径"""
        step = self.si.get_propagation_step_size()
        path = PathControl()
        for idx in self.tree.motions.path_to_root(terminal):
            m = self.tree.motions[idx]
            path.states.append(self.si.state_space.clone_state(m.state))
            if m.parent is not None:
                path.controls.append(self.si.control_space.clone_control(m.control))
                path.durations.append(m.steps * step)
        return path

    # ── 数据导出 ──

    def get_planner_data(self, data: Optional[PlannerData] = None) -> PlannerData:
        """导出树的所有边与边界/内部标签"""
        if data is None:
            data = PlannerData()
        delta = self.si.get_propagation_step_size()
        motions = self.tree.motions
        for cell in self.tree.grid.get_cells():
            tag = TAG_BORDER if cell.border else TAG_INTERIOR
            for idx in cell.data.motions:
                m = motions[idx]
                if m.parent is not None:
                    data.record_edge(motions[m.parent].state, m.state,
                                     m.control, m.steps * delta)
                else:
                    data.record_edge(None, m.state, None, 0.0)
                data.tag_state(m.state, tag)
        return data
