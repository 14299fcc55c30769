from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import math
from typing import ClassVar, Optional, Tuple, Union

import numpy as np

from ellipse_geometry import (
    Point,
    ellipse_circumference,
    ellipse_point,
    ellipse_speed,
    ellipse_tangent,
    rotate,
)

_LOGGER = logging.getLogger(__name__)

# Both aspects closer than this to 1.0 are treated as true circles.
CIRCULAR_TOLERANCE = 0.005
# Lower bound on the rotor speed used as ODE denominator.
MIN_ROTOR_SPEED = 1e-4
# Virtual time-step, in radians of stator angle.
DT = 0.002
STEPS_PER_SPEED = 5
RATIO_RADIUS_MIN = 10.0
RATIO_RADIUS_MAX = 400.0
RATIO_MAX_DENOMINATOR = 1000


@dataclass(frozen=True)
class GearConfig:
    stator_radius: float = 150.0   # R
    rotor_radius: float = 52.0     # r
    pen_offset: float = 70.0       # d
    stator_aspect: float = 1.0     # petit axe / grand axe du stator
    rotor_aspect: float = 1.0      # petit axe / grand axe du rotor
    ratio_hint: Optional[Tuple[int, int]] = None  # (numérateur, dénominateur) affiché

    def __post_init__(self) -> None:
        if not (self.stator_radius > 0 and self.rotor_radius > 0):
            raise ValueError(
                f"Radii must be strictly positive (R={self.stator_radius}, r={self.rotor_radius})"
            )
        if not self.pen_offset >= 0:
            raise ValueError(f"Pen offset must be non-negative (d={self.pen_offset})")
        if not (self.stator_aspect > 0 and self.rotor_aspect > 0):
            raise ValueError(
                f"Aspects must be strictly positive ({self.stator_aspect}, {self.rotor_aspect})"
            )
        if self.ratio_hint is not None:
            numerator, denominator = self.ratio_hint
            if numerator <= 0 or denominator <= 0:
                raise ValueError(f"Invalid ratio hint: {numerator}/{denominator}")

    @property
    def is_circular(self) -> bool:
        return (
            abs(self.stator_aspect - 1.0) < CIRCULAR_TOLERANCE
            and abs(self.rotor_aspect - 1.0) < CIRCULAR_TOLERANCE
        )

    def with_radii(
        self,
        stator_radius: Optional[float] = None,
        rotor_radius: Optional[float] = None,
    ) -> "GearConfig":
        """
        Copie avec de nouveaux rayons. Un rayon édité directement rend
        l'indication de ratio caduque : elle est effacée.
        """
        return replace(
            self,
            stator_radius=self.stator_radius if stator_radius is None else stator_radius,
            rotor_radius=self.rotor_radius if rotor_radius is None else rotor_radius,
            ratio_hint=None,
        )

    def with_ratio(self, numerator: int, denominator: int) -> "GearConfig":
        """
        Copie dont le rayon du rotor donne C_rotor / C_stator = numerator / denominator,
        en périmètres elliptiques. Le rayon est borné à [10, 400].
        """
        if numerator <= 0 or denominator <= 0:
            raise ValueError(f"Invalid ratio: {numerator}/{denominator}")
        target = ellipse_circumference(self.stator_radius, self.stator_aspect) * numerator / denominator
        radius = target / ellipse_circumference(1.0, self.rotor_aspect)
        radius = max(RATIO_RADIUS_MIN, min(RATIO_RADIUS_MAX, radius))
        return replace(self, rotor_radius=radius, ratio_hint=(int(numerator), int(denominator)))

    def circumference_ratio(self) -> float:
        return ellipse_circumference(self.rotor_radius, self.rotor_aspect) / ellipse_circumference(
            self.stator_radius, self.stator_aspect
        )


@dataclass(frozen=True)
class PenConfig:
    color: str = "#22c55e"
    line_width: float = 1.5   # en unités monde
    opacity: float = 1.0


@dataclass(frozen=True)
class SpiroConfig:
    gear: GearConfig = field(default_factory=GearConfig)
    pen: PenConfig = field(default_factory=PenConfig)
    speed: float = 1.0
    show_gears: bool = True

    @property
    def steps_per_tick(self) -> int:
        return max(0, math.ceil(self.speed * STEPS_PER_SPEED))


@dataclass(frozen=True)
class SimulationState:
    t: float = 0.0     # angle du stator
    u: float = 0.0     # paramètre du rotor
    phi: float = 0.0   # rotation du rotor


@dataclass(frozen=True)
class GearPose:
    pen: Point
    center: Point
    phi: float
    contact: Point


def best_ratio(value: float, max_denominator: int = RATIO_MAX_DENOMINATOR) -> Tuple[int, int]:
    """
    Fraction n/d (1 <= d <= max_denominator) closest to ``value``.

    Ties keep the smallest denominator.
    """
    if max_denominator < 1:
        raise ValueError(f"max_denominator must be >= 1 (got {max_denominator})")
    denominators = np.arange(1, max_denominator + 1, dtype=np.float64)
    numerators = np.floor(value * denominators + 0.5)
    errors = np.abs(value - numerators / denominators)
    idx = int(np.argmin(errors))
    return int(numerators[idx]), idx + 1


def effective_ratio(gear: GearConfig) -> Tuple[int, int]:
    if gear.ratio_hint is not None:
        return gear.ratio_hint
    return best_ratio(gear.circumference_ratio())


@dataclass(frozen=True)
class ExactKinematics:
    """Hypotrochoïde fermée : deux cercles, aucune intégration."""

    mode: ClassVar[str] = "exact"

    stator_radius: float
    rotor_radius: float
    pen_offset: float

    @classmethod
    def from_gear(cls, gear: GearConfig) -> "ExactKinematics":
        return cls(gear.stator_radius, gear.rotor_radius, gear.pen_offset)

    def pose(self, state: SimulationState) -> GearPose:
        R = self.stator_radius
        r = self.rotor_radius
        d = self.pen_offset
        t = state.t
        cos_t = math.cos(t)
        sin_t = math.sin(t)
        cx = (R - r) * cos_t
        cy = (R - r) * sin_t
        phi = t * (1.0 - R / r)
        return GearPose(
            pen=(cx + d * math.cos(phi), cy + d * math.sin(phi)),
            center=(cx, cy),
            phi=phi,
            contact=(R * cos_t, R * sin_t),
        )

    def step(self, state: SimulationState, dt: float) -> Tuple[SimulationState, GearPose]:
        t = state.t + dt
        pose = self.pose(SimulationState(t=t))
        # u suit l'égalité des longueurs d'arc R·t = r·u, pour un passage
        # cohérent en mode numérique si la configuration change.
        return SimulationState(t=t, u=t * self.stator_radius / self.rotor_radius, phi=pose.phi), pose


@dataclass(frozen=True)
class NumericKinematics:
    """
    Roulement d'une ellipse dans une ellipse.

    La contrainte de roulement sans glissement donne l'EDO
    du/dt = vitesse_stator(t) / vitesse_rotor(u), intégrée par RK4.
    """

    mode: ClassVar[str] = "numeric"

    stator_radius: float
    rotor_radius: float
    pen_offset: float
    stator_aspect: float
    rotor_aspect: float

    @classmethod
    def from_gear(cls, gear: GearConfig) -> "NumericKinematics":
        return cls(
            gear.stator_radius,
            gear.rotor_radius,
            gear.pen_offset,
            gear.stator_aspect,
            gear.rotor_aspect,
        )

    def derivative(self, t: float, u: float) -> float:
        stator_speed = ellipse_speed(t, self.stator_radius, self.stator_aspect)
        rotor_speed = ellipse_speed(u, self.rotor_radius, self.rotor_aspect)
        if rotor_speed < MIN_ROTOR_SPEED:
            rotor_speed = MIN_ROTOR_SPEED
        return stator_speed / rotor_speed

    def geometry(self, t: float, u: float) -> GearPose:
        R = self.stator_radius
        r = self.rotor_radius
        sx, sy = ellipse_point(t, R, self.stator_aspect)
        stx, sty = ellipse_tangent(t, R, self.stator_aspect)
        alpha = math.atan2(stx, -sty)

        rtx, rty = ellipse_tangent(u, r, self.rotor_aspect)
        beta = math.atan2(-rtx, rty)

        phi = alpha - beta + math.pi
        cos_phi = math.cos(phi)
        sin_phi = math.sin(phi)

        # Vecteur centre -> contact dans le repère du rotor, puis tourné de phi.
        rcx, rcy = ellipse_point(u, r, self.rotor_aspect)
        rot_x, rot_y = rotate(rcx, rcy, cos_phi, sin_phi)
        cx = sx - rot_x
        cy = sy - rot_y

        d = self.pen_offset
        return GearPose(
            pen=(cx + d * cos_phi, cy + d * sin_phi),
            center=(cx, cy),
            phi=phi,
            contact=(sx, sy),
        )

    def pose(self, state: SimulationState) -> GearPose:
        return self.geometry(state.t, state.u)

    def step(self, state: SimulationState, dt: float) -> Tuple[SimulationState, GearPose]:
        t = state.t
        u = state.u
        k1 = self.derivative(t, u)
        k2 = self.derivative(t + dt / 2, u + dt * k1 / 2)
        k3 = self.derivative(t + dt / 2, u + dt * k2 / 2)
        k4 = self.derivative(t + dt, u + dt * k3)
        new_u = u + (dt / 6) * (k1 + 2 * k2 + 2 * k3 + k4)
        new_t = t + dt
        pose = self.geometry(new_t, new_u)
        return SimulationState(t=new_t, u=new_u, phi=pose.phi), pose


Kinematics = Union[ExactKinematics, NumericKinematics]


def select_kinematics(gear: GearConfig) -> Kinematics:
    if gear.is_circular:
        kinematics: Kinematics = ExactKinematics.from_gear(gear)
    else:
        kinematics = NumericKinematics.from_gear(gear)
    _LOGGER.debug(
        "Selected %s kinematics for R=%s r=%s aspects=(%s, %s)",
        kinematics.mode,
        gear.stator_radius,
        gear.rotor_radius,
        gear.stator_aspect,
        gear.rotor_aspect,
    )
    return kinematics


__all__ = [
    "CIRCULAR_TOLERANCE",
    "DT",
    "ExactKinematics",
    "GearConfig",
    "GearPose",
    "Kinematics",
    "MIN_ROTOR_SPEED",
    "NumericKinematics",
    "PenConfig",
    "SimulationState",
    "SpiroConfig",
    "best_ratio",
    "effective_ratio",
    "select_kinematics",
]
