from __future__ import annotations

import importlib.util
import math
from typing import TYPE_CHECKING, List, Tuple

import ellipspiro_math as em
from math_backends import python_backend

if TYPE_CHECKING:
    from ellipse_geometry import Point
    from ellipspiro_math import GearPose, Kinematics, SimulationState

NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None
if NUMBA_AVAILABLE:
    import numba
    import numpy as np


if NUMBA_AVAILABLE:

    @numba.njit(cache=True)
    def _speed_numba(angle: float, radius: float, aspect: float) -> float:
        dx = -radius * math.sin(angle)
        dy = radius * aspect * math.cos(angle)
        return math.sqrt(dx * dx + dy * dy)

    @numba.njit(cache=True)
    def _derivative_numba(
        t: float,
        u: float,
        R: float,
        sx: float,
        r: float,
        ry: float,
        min_speed: float,
    ) -> float:
        rotor_speed = _speed_numba(u, r, ry)
        if rotor_speed < min_speed:
            rotor_speed = min_speed
        return _speed_numba(t, R, sx) / rotor_speed

    @numba.njit(cache=True)
    def _advance_numeric_numba(
        t: float,
        u: float,
        dt: float,
        count: int,
        R: float,
        r: float,
        d: float,
        sx: float,
        ry: float,
        min_speed: float,
    ) -> tuple[np.ndarray, np.ndarray, float, float, float]:
        out_x = np.empty(count, dtype=np.float64)
        out_y = np.empty(count, dtype=np.float64)
        phi = 0.0
        for i in range(count):
            k1 = _derivative_numba(t, u, R, sx, r, ry, min_speed)
            k2 = _derivative_numba(t + dt / 2, u + dt * k1 / 2, R, sx, r, ry, min_speed)
            k3 = _derivative_numba(t + dt / 2, u + dt * k2 / 2, R, sx, r, ry, min_speed)
            k4 = _derivative_numba(t + dt, u + dt * k3, R, sx, r, ry, min_speed)
            u = u + (dt / 6) * (k1 + 2 * k2 + 2 * k3 + k4)
            t = t + dt

            cos_t = math.cos(t)
            sin_t = math.sin(t)
            stx = -R * sin_t
            sty = R * sx * cos_t
            alpha = math.atan2(stx, -sty)
            rtx = -r * math.sin(u)
            rty = r * ry * math.cos(u)
            beta = math.atan2(-rtx, rty)
            phi = alpha - beta + math.pi
            cos_phi = math.cos(phi)
            sin_phi = math.sin(phi)

            rcx = r * math.cos(u)
            rcy = r * ry * math.sin(u)
            cx = R * cos_t - (rcx * cos_phi - rcy * sin_phi)
            cy = R * sx * sin_t - (rcx * sin_phi + rcy * cos_phi)
            out_x[i] = cx + d * cos_phi
            out_y[i] = cy + d * sin_phi
        return out_x, out_y, t, u, phi


def advance(
    kinematics: "Kinematics",
    state: "SimulationState",
    dt: float,
    count: int,
) -> Tuple["SimulationState", List["Point"], "GearPose"]:
    if not NUMBA_AVAILABLE or count <= 0:
        return python_backend.advance(kinematics, state, dt, count)
    # Le mode exact est déjà O(1) par pas : pas de gain à compiler.
    if not isinstance(kinematics, em.NumericKinematics):
        return python_backend.advance(kinematics, state, dt, count)

    out_x, out_y, t, u, phi = _advance_numeric_numba(
        float(state.t),
        float(state.u),
        float(dt),
        int(count),
        kinematics.stator_radius,
        kinematics.rotor_radius,
        kinematics.pen_offset,
        kinematics.stator_aspect,
        kinematics.rotor_aspect,
        em.MIN_ROTOR_SPEED,
    )
    points = [(float(x), float(y)) for x, y in zip(out_x, out_y)]
    new_state = em.SimulationState(t=float(t), u=float(u), phi=float(phi))
    return new_state, points, kinematics.pose(new_state)
