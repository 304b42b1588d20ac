"""test/test_spaces.py - 空间、传播、投影、场景、目标与终止条件测试"""
import time

import numpy as np
import pytest

from kpiece.spaces import RealVectorStateSpace, RealVectorControlSpace, SpaceInformation, PathControl
from kpiece.projection import GridProjection
from kpiece.obstacles import Scene
from kpiece.goals import GoalState, GoalRegion, ProblemDefinition
from kpiece.termination import IterationTermination, TimedTermination, CombinedTermination

from conftest import shift_propagator


class TestStateSpace:
    """RealVectorStateSpace 单元测试"""

    def test_bounds(self):
        ss = RealVectorStateSpace([(0.0, 1.0), (-2.0, 2.0)])
        assert ss.dimension == 2
        assert ss.satisfies_bounds(np.array([0.5, 0.0]))
        assert not ss.satisfies_bounds(np.array([1.5, 0.0]))
        s = np.array([3.0, -5.0])
        ss.enforce_bounds(s)
        np.testing.assert_array_equal(s, [1.0, -2.0])

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            RealVectorStateSpace([(1.0, 0.0)])
        with pytest.raises(ValueError):
            RealVectorStateSpace([1.0, 2.0])

    def test_clone_is_independent(self):
        ss = RealVectorStateSpace([(0.0, 1.0)])
        s = np.array([0.5])
        c = ss.clone_state(s)
        c[0] = 0.9
        assert s[0] == 0.5

    def test_default_projection(self):
        ss = RealVectorStateSpace([(0.0, 10.0), (0.0, 20.0), (0.0, 1.0)])
        proj = ss.default_projection()
        assert proj.dimension == 2
        np.testing.assert_allclose(proj.cell_sizes, [0.5, 1.0])


class TestControlSpace:
    """RealVectorControlSpace 与控制采样"""

    def test_sampler_respects_bounds(self, rng):
        cs = RealVectorControlSpace([(-1.0, 1.0), (2.0, 3.0)])
        sampler = cs.alloc_control_sampler(rng)
        u = cs.alloc_control()
        for _ in range(100):
            sampler.sample_next(u, cs.null_control(), np.zeros(2))
            assert -1.0 <= u[0] <= 1.0
            assert 2.0 <= u[1] <= 3.0

    def test_null_control_clipped_into_bounds(self):
        cs = RealVectorControlSpace([(0.5, 1.0)])
        np.testing.assert_array_equal(cs.null_control(), [0.5])

    def test_step_count_inclusive(self, rng):
        cs = RealVectorControlSpace([(0.0, 1.0)])
        sampler = cs.alloc_control_sampler(rng)
        counts = {sampler.sample_step_count(2, 4) for _ in range(300)}
        assert counts == {2, 3, 4}


class TestSpaceInformation:
    """SpaceInformation 传播与有效性"""

    def _si(self, scene=None, max_d=10):
        ss = RealVectorStateSpace([(0.0, 10.0)])
        cs = RealVectorControlSpace([(-1.0, 1.0)])
        checker = scene.is_valid if scene is not None else None
        return SpaceInformation(ss, cs, shift_propagator, checker,
                                propagation_step_size=1.0,
                                min_control_duration=1, max_control_duration=max_d)

    def test_propagate_while_valid_full(self):
        si = self._si()
        out = np.empty((11, 1))
        n = si.propagate_while_valid(np.array([1.0]), np.array([1.0]), 5, out)
        assert n == 5
        np.testing.assert_allclose(out[:5, 0], [2.0, 3.0, 4.0, 5.0, 6.0])

    def test_propagate_stops_at_obstacle(self):
        scene = Scene(dims=(0,))
        scene.add_obstacle([3.5], [4.5])
        si = self._si(scene)
        out = np.empty((11, 1))
        n = si.propagate_while_valid(np.array([1.0]), np.array([1.0]), 8, out)
        assert n == 2
        np.testing.assert_allclose(out[:2, 0], [2.0, 3.0])

    def test_propagate_stops_at_bounds(self):
        si = self._si()
        out = np.empty((11, 1))
        n = si.propagate_while_valid(np.array([8.0]), np.array([1.0]), 5, out)
        assert n == 2

    def test_propagate_without_checks(self):
        si = self._si()
        out = np.empty(1)
        si.propagate(np.array([8.0]), np.array([1.0]), 5, out)
        assert out[0] == pytest.approx(13.0)

    @pytest.mark.parametrize("kwargs", [
        dict(propagation_step_size=0.0),
        dict(min_control_duration=0),
        dict(min_control_duration=5, max_control_duration=2),
    ])
    def test_invalid_durations(self, kwargs):
        ss = RealVectorStateSpace([(0.0, 1.0)])
        cs = RealVectorControlSpace([(0.0, 1.0)])
        with pytest.raises(ValueError):
            SpaceInformation(ss, cs, shift_propagator, **kwargs)


class TestProjection:
    """GridProjection 单元测试"""

    def test_coordinates_floor(self):
        proj = GridProjection(cell_sizes=[0.5, 0.5], dims=(0, 1))
        assert proj.compute_coordinates(np.array([1.2, -0.1, 3.0])) == (2, -1)

    def test_selected_dims(self):
        proj = GridProjection(cell_sizes=[1.0], dims=(2,))
        assert proj.get_dimension() == 1
        assert proj.compute_coordinates(np.array([0.0, 0.0, 3.7])) == (3,)

    def test_invalid(self):
        with pytest.raises(ValueError):
            GridProjection(cell_sizes=[0.0])
        with pytest.raises(ValueError):
            GridProjection(cell_sizes=[1.0, 1.0], dims=(0,))


class TestScene:
    """Scene 与 Obstacle 测试"""

    def test_is_valid(self):
        scene = Scene(dims=(0, 1))
        scene.add_obstacle([1.0, 1.0], [2.0, 2.0], name="box")
        assert not scene.is_valid(np.array([1.5, 1.5, 9.0]))
        assert scene.is_valid(np.array([2.5, 1.5, 9.0]))
        assert scene.remove_obstacle("box")
        assert scene.is_valid(np.array([1.5, 1.5, 9.0]))

    def test_dimension_mismatch(self):
        scene = Scene(dims=(0, 1))
        with pytest.raises(ValueError):
            scene.add_obstacle([0.0], [1.0])

    def test_json_round_trip(self, tmp_path):
        scene = Scene(dims=(1, 2))
        scene.add_obstacle([0.0, 0.0], [1.0, 1.0], name="a")
        fp = str(tmp_path / "scene.json")
        scene.to_json(fp)
        loaded = Scene.from_json(fp)
        assert loaded.dims == (1, 2)
        assert loaded.n_obstacles == 1
        assert loaded.get_obstacle("a") is not None


class TestGoals:
    """Goal 与 ProblemDefinition 测试"""

    def test_goal_state(self):
        goal = GoalState([1.0, 1.0], threshold=0.5)
        ok, d = goal.is_satisfied(np.array([1.0, 1.3]))
        assert ok
        assert d == pytest.approx(0.3)
        ok, d = goal.is_satisfied(np.array([3.0, 1.0]))
        assert not ok
        assert d == pytest.approx(2.0)

    def test_goal_state_dims(self):
        goal = GoalState([1.0, 1.0, 0.0], threshold=0.1, dims=(0, 1))
        ok, _ = goal.is_satisfied(np.array([1.0, 1.0, 3.0]))
        assert ok

    def test_goal_region_custom_distance(self):
        goal = GoalRegion(lambda s: abs(float(s[0]) - 5.0), threshold=1.0)
        assert goal.is_satisfied(np.array([4.5]))[0]
        assert not goal.is_satisfied(np.array([2.0]))[0]

    def test_solution_bookkeeping(self):
        goal = GoalState([0.0], threshold=0.1)
        assert not goal.is_achieved()
        goal.set_difference(0.4)
        goal.set_solution_path(PathControl(), approximate=True)
        assert goal.is_achieved()
        assert goal.is_approximate()
        assert goal.get_difference() == pytest.approx(0.4)
        goal.clear_solution()
        assert not goal.is_achieved()
        assert goal.get_difference() == float('inf')

    def test_problem_filters_invalid_starts(self, plane_si):
        pdef = ProblemDefinition(plane_si, GoalState([1.0, 1.0]))
        pdef.add_start_state([1.0, 1.0])
        pdef.add_start_state([9.0, 9.0])    # 在障碍物内
        pdef.add_start_state([20.0, 1.0])   # 越界
        assert pdef.n_start_states == 3
        valid = pdef.valid_start_states()
        assert len(valid) == 1
        assert pdef.valid_start_states(offset=1) == []


class TestTermination:
    """终止条件测试"""

    def test_iteration_termination(self):
        ptc = IterationTermination(3)
        assert [ptc() for _ in range(5)] == [False, False, False, True, True]
        ptc.reset()
        assert not ptc()

    def test_timed_termination(self):
        ptc = TimedTermination(0.01)
        assert not ptc()
        time.sleep(0.02)
        assert ptc()

    def test_combined(self):
        ptc = CombinedTermination(TimedTermination(100.0), IterationTermination(1))
        assert not ptc()
        assert ptc()


def test_path_control_summary():
    path = PathControl()
    path.states = [np.zeros(2), np.ones(2), np.full(2, 2.0)]
    path.controls = [np.ones(2), np.ones(2)]
    path.durations = [0.5, 0.25]
    assert path.length() == pytest.approx(0.75)
    assert path.as_array().shape == (3, 2)
    assert path.to_dict()['n_states'] == 3
