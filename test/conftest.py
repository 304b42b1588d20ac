"""
conftest.py - 测试共享的 pytest fixtures

提供简单动力学（状态 + 控制 * dt）的小型状态/控制空间与障碍物场景，
使规划器测试在毫秒级完成，并在固定种子下保持确定。
"""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from kpiece.spaces import RealVectorStateSpace, RealVectorControlSpace, SpaceInformation
from kpiece.projection import GridProjection
from kpiece.obstacles import Scene
from kpiece.goals import GoalState, ProblemDefinition


def shift_propagator(state, control, dt, out):
    """Identity dynamics: the control is a velocity."""
    out[:] = state + control * dt


# =========================================================================
# 1-D line: every control reaches [0.5, 1.0] in exactly one step
# =========================================================================

@pytest.fixture
def line_si() -> SpaceInformation:
    ss = RealVectorStateSpace([(-1.0, 2.0)])
    cs = RealVectorControlSpace([(0.5, 1.0)])
    return SpaceInformation(ss, cs, shift_propagator,
                            propagation_step_size=1.0,
                            min_control_duration=1, max_control_duration=1)


@pytest.fixture
def line_problem(line_si) -> ProblemDefinition:
    pdef = ProblemDefinition(line_si, GoalState([0.75], threshold=0.3))
    pdef.add_start_state([0.0])
    return pdef


# =========================================================================
# 2-D plane: point robot with velocity control
# =========================================================================

@pytest.fixture
def plane_scene() -> Scene:
    """A box enclosing the upper-right corner, so (9, 9) is unreachable."""
    scene = Scene(dims=(0, 1))
    scene.add_obstacle([8.0, 8.0], [10.0, 10.0], name="goal_block")
    return scene


@pytest.fixture
def plane_si(plane_scene) -> SpaceInformation:
    ss = RealVectorStateSpace([(0.0, 10.0), (0.0, 10.0)])
    cs = RealVectorControlSpace([(-1.0, 1.0), (-1.0, 1.0)])
    return SpaceInformation(ss, cs, shift_propagator, plane_scene.is_valid,
                            propagation_step_size=0.1,
                            min_control_duration=2, max_control_duration=10)


@pytest.fixture
def plane_projection() -> GridProjection:
    return GridProjection(cell_sizes=[0.5, 0.5], dims=(0, 1))


@pytest.fixture
def blocked_problem(plane_si) -> ProblemDefinition:
    """Goal inside the obstacle: only approximate solutions exist."""
    pdef = ProblemDefinition(plane_si, GoalState([9.0, 9.0], threshold=0.1))
    pdef.add_start_state([1.0, 1.0])
    return pdef


@pytest.fixture
def open_problem(plane_si) -> ProblemDefinition:
    """Goal close to the start in free space."""
    pdef = ProblemDefinition(plane_si, GoalState([2.0, 2.0], threshold=0.5))
    pdef.add_start_state([1.0, 1.0])
    return pdef


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)
