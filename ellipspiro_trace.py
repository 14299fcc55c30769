from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ellipse_geometry import Point
from ellipspiro_math import SimulationState

_LOGGER = logging.getLogger(__name__)


class TraceStore:
    """
    Suite ordonnée, en ajout seul, des positions du stylo depuis le dernier
    effacement, avec l'état de simulation qui les a produites.

    Les points et l'état sont toujours remplacés ensemble : un rendu ne voit
    jamais un tracé vidé avec un angle périmé, ni l'inverse.
    """

    def __init__(self) -> None:
        self._points: List[Point] = []
        self._state = SimulationState()

    def __len__(self) -> int:
        return len(self._points)

    @property
    def state(self) -> SimulationState:
        return self._state

    def append(self, point: Point) -> None:
        self._points.append((float(point[0]), float(point[1])))

    def extend(self, points: Iterable[Point], state: SimulationState) -> None:
        """Ajoute les points d'un tick et valide l'état qui les a produits."""
        self._points.extend((float(x), float(y)) for x, y in points)
        self._state = state

    def clear(self) -> None:
        if not self._points and self._state == SimulationState():
            return
        _LOGGER.info("Clearing trace (%d points, t=%.3f)", len(self._points), self._state.t)
        self._points = []
        self._state = SimulationState()

    def snapshot(self) -> Tuple[Point, ...]:
        return tuple(self._points)

    def last_point(self) -> Optional[Point]:
        if not self._points:
            return None
        return self._points[-1]

    def bounds_radius(self) -> float:
        """Plus grande distance d'un point du tracé à l'origine."""
        if not self._points:
            return 0.0
        pts = np.asarray(self._points, dtype=np.float64)
        return float(np.max(np.hypot(pts[:, 0], pts[:, 1])))


__all__ = ["TraceStore"]
