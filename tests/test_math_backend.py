import importlib.util
import math

import pytest

import ellipspiro_engine as engine
from ellipspiro_math import DT, ExactKinematics, NumericKinematics, SimulationState
from math_backends import python_backend


def test_numba_backend_availability():
    backends = engine.list_backends(available_only=True)
    names = {backend.name for backend in backends}
    assert "python" in names

    numba_available = importlib.util.find_spec("numba") is not None
    if numba_available:
        assert "numba" in names
    else:
        assert "numba" not in names


def test_all_backends_are_registered():
    names = [backend.name for backend in engine.list_backends()]
    assert names == ["numba", "python"]


def test_set_backend_rejects_unknown_name():
    with pytest.raises(ValueError):
        engine.set_backend("fortran")
    assert engine.get_backend_name() == "python"


def test_set_backend_rejects_unavailable_backend():
    unavailable = [b for b in engine.list_backends() if not b.available]
    for backend in unavailable:
        with pytest.raises(ValueError):
            engine.set_backend(backend.name)
    assert engine.get_backend_name() == "python"


def test_preferred_backend_follows_availability():
    expected = "numba" if importlib.util.find_spec("numba") is not None else "python"
    assert engine.preferred_backend().name == expected
    try:
        assert engine.use_preferred_backend() == expected
        assert engine.get_backend_name() == expected
    finally:
        engine.set_backend("python")


def test_preferred_backend_ranks_by_priority():
    fast = engine.MathBackend("fast", "Fast", True, python_backend.advance, priority=50)
    engine.register_backend(fast)
    try:
        assert engine.preferred_backend() is fast
    finally:
        del engine._registry["fast"]
    assert engine.preferred_backend().name != "fast"


def test_advance_returns_one_point_per_substep():
    kin = NumericKinematics(150.0, 52.0, 70.0, 0.8, 1.1)
    state, points, pose = engine.advance(kin, SimulationState(), DT, 7)
    assert len(points) == 7
    assert math.isclose(state.t, 7 * DT)
    assert points[-1] == pose.pen


def test_advance_zero_steps_keeps_state():
    kin = ExactKinematics(150.0, 52.0, 70.0)
    start = SimulationState(t=0.4, u=0.4 * 150.0 / 52.0, phi=0.0)
    state, points, pose = engine.advance(kin, start, DT, 0)
    assert state == start
    assert points == []
    assert pose == kin.pose(start)


def test_advance_matches_single_steps():
    kin = NumericKinematics(150.0, 52.0, 70.0, 0.6, 1.0)
    state = SimulationState()
    expected = []
    for _ in range(25):
        state, pose = kin.step(state, DT)
        expected.append(pose.pen)
    new_state, points, _ = python_backend.advance(kin, SimulationState(), DT, 25)
    assert new_state == state
    assert points == expected


@pytest.mark.skipif(importlib.util.find_spec("numba") is None, reason="numba not installed")
def test_numba_backend_matches_python():
    from math_backends import numba_backend

    kin = NumericKinematics(150.0, 52.0, 70.0, 0.7, 1.3)
    py_state, py_points, _ = python_backend.advance(kin, SimulationState(), DT, 400)
    nb_state, nb_points, nb_pose = numba_backend.advance(kin, SimulationState(), DT, 400)

    assert len(nb_points) == len(py_points)
    assert math.isclose(nb_state.t, py_state.t, abs_tol=1e-9)
    assert math.isclose(nb_state.u, py_state.u, abs_tol=1e-9)
    for (x1, y1), (x2, y2) in zip(py_points, nb_points):
        assert math.isclose(x1, x2, abs_tol=1e-7)
        assert math.isclose(y1, y2, abs_tol=1e-7)
    assert nb_points[-1] == pytest.approx(nb_pose.pen, abs=1e-7)
