from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from ellipse_geometry import Point
    from ellipspiro_math import GearPose, Kinematics, SimulationState


def advance(
    kinematics: "Kinematics",
    state: "SimulationState",
    dt: float,
    count: int,
) -> Tuple["SimulationState", List["Point"], "GearPose"]:
    """
    Avance la simulation de ``count`` sous-pas fixes.

    Chaque sous-pas produit exactement un point de tracé. Retourne le nouvel
    état, les points dans l'ordre, et la géométrie au dernier état.
    """
    points: List["Point"] = []
    pose: Optional["GearPose"] = None
    for _ in range(count):
        state, pose = kinematics.step(state, dt)
        points.append(pose.pen)
    if pose is None:
        pose = kinematics.pose(state)
    return state, points, pose
