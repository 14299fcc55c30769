from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Tuple

from ellipse_geometry import Point
from ellipspiro_math import GearPose, Kinematics, SimulationState
from math_backends import numba_backend, python_backend

_LOGGER = logging.getLogger(__name__)

AdvanceFn = Callable[[Kinematics, SimulationState, float, int], Tuple[SimulationState, List[Point], GearPose]]


@dataclass(frozen=True)
class MathBackend:
    name: str
    label: str
    available: bool
    advance: AdvanceFn
    # Plus grand = préféré quand plusieurs moteurs sont disponibles.
    priority: int = 0


_registry: Dict[str, MathBackend] = {}
_active = "python"


def register_backend(backend: MathBackend) -> None:
    _registry[backend.name] = backend


def list_backends(*, available_only: bool = False) -> List[MathBackend]:
    return sorted(
        (b for b in _registry.values() if b.available or not available_only),
        key=lambda b: b.name,
    )


def get_backend_name() -> str:
    return _active


def _lookup(name: str) -> MathBackend:
    try:
        return _registry[name]
    except KeyError:
        raise ValueError(f"Unknown math backend: {name}") from None


def set_backend(name: str) -> None:
    global _active
    backend = _lookup(name)
    if not backend.available:
        raise ValueError(f"Math backend not available: {name}")
    _active = backend.name
    _LOGGER.info("Math backend set to %s", backend.label)


def preferred_backend() -> MathBackend:
    """Moteur disponible de plus haute priorité (python en dernier recours)."""
    return max(list_backends(available_only=True), key=lambda b: b.priority)


def use_preferred_backend() -> str:
    set_backend(preferred_backend().name)
    return _active


def advance(
    kinematics: Kinematics,
    state: SimulationState,
    dt: float,
    count: int,
) -> Tuple[SimulationState, List[Point], GearPose]:
    """
    Effectue ``count`` sous-pas de taille ``dt`` à partir de ``state``.

    L'état n'est jamais modifié en place : le nouvel état est retourné avec
    les points produits (un par sous-pas) et la géométrie finale.
    """
    return _lookup(_active).advance(kinematics, state, dt, count)


register_backend(
    MathBackend(
        name="python",
        label="Python",
        available=True,
        advance=python_backend.advance,
    )
)
register_backend(
    MathBackend(
        name="numba",
        label="Numba",
        available=numba_backend.NUMBA_AVAILABLE,
        advance=numba_backend.advance,
        priority=10,
    )
)


__all__ = [
    "MathBackend",
    "advance",
    "get_backend_name",
    "list_backends",
    "preferred_backend",
    "register_backend",
    "set_backend",
    "use_preferred_backend",
]
