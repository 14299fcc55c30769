from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Optional, Tuple, Union

from ellipse_geometry import Point, ellipse_extent
from ellipspiro_math import GearConfig

_LOGGER = logging.getLogger(__name__)

K_MIN = 0.1
K_MAX = 20.0
FIT_K_MIN = 0.1
FIT_K_MAX = 5.0
FIT_PADDING = 0.9
WHEEL_SENSITIVITY = 0.001
PINCH_DEADBAND = 0.005


def clamp_scale(k: float, lo: float = K_MIN, hi: float = K_MAX) -> float:
    return max(lo, min(hi, k))


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.width / 2.0, self.height / 2.0)


@dataclass(frozen=True)
class ViewTransform:
    """Décalage écran (x, y) en pixels et échelle k ; monde -> écran."""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def origin(self, viewport: Viewport) -> Point:
        """Position écran de l'origine du monde."""
        cx, cy = viewport.center
        return (cx + self.x, cy + self.y)

    def world_to_screen(self, point: Point, viewport: Viewport) -> Point:
        ox, oy = self.origin(viewport)
        return (ox + point[0] * self.k, oy + point[1] * self.k)

    def screen_to_world(self, point: Point, viewport: Viewport) -> Point:
        ox, oy = self.origin(viewport)
        return ((point[0] - ox) / self.k, (point[1] - oy) / self.k)

    def zoom_at(self, anchor: Point, factor: float, viewport: Viewport) -> "ViewTransform":
        """Zoom qui garde sous ``anchor`` le point du monde qui s'y trouve."""
        new_k = clamp_scale(self.k * factor)
        wx, wy = self.screen_to_world(anchor, viewport)
        cx, cy = viewport.center
        return ViewTransform(
            x=anchor[0] - cx - wx * new_k,
            y=anchor[1] - cy - wy * new_k,
            k=new_k,
        )

    def pan(self, dx: float, dy: float) -> "ViewTransform":
        return ViewTransform(x=self.x + dx, y=self.y + dy, k=self.k)


def wheel_factor(delta_y: float) -> float:
    return math.exp(-delta_y * WHEEL_SENSITIVITY)


def fit_transform(
    gear: GearConfig,
    viewport: Viewport,
    *,
    trace_radius: float = 0.0,
    show_gears: bool = True,
) -> ViewTransform:
    """
    Échelle qui fait tenir le stator, le tracé et (si affiché) le balayage du
    rotor dans le plus petit côté de la vue, avec une marge de 10 %.
    """
    center_dist = abs(gear.stator_radius - gear.rotor_radius)
    extent = max(
        center_dist + gear.pen_offset,
        trace_radius,
        ellipse_extent(gear.stator_radius, gear.stator_aspect),
    )
    if show_gears:
        extent = max(extent, center_dist + ellipse_extent(gear.rotor_radius, gear.rotor_aspect))
    min_dim = min(viewport.width, viewport.height)
    k = clamp_scale((min_dim / 2.0 * FIT_PADDING) / (extent or 1.0), FIT_K_MIN, FIT_K_MAX)
    _LOGGER.debug("Fit view: extent=%.2f viewport=%sx%s k=%.4f", extent, viewport.width, viewport.height, k)
    return ViewTransform(0.0, 0.0, k)


# ----- Gestes -----


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    pointer_id: int
    last: Point


@dataclass(frozen=True)
class Pinching:
    first: Tuple[int, Point]
    second: Tuple[int, Point]
    # None jusqu'au premier déplacement : il ne fait qu'enregistrer l'écart.
    distance: Optional[float] = None


GestureState = Union[Idle, Dragging, Pinching]


def _distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


class GestureTracker:
    """
    Machine à états Idle -> Dragging -> Pinching qui traduit les événements
    de pointeur et de molette en mises à jour de la ViewTransform.

    Les événements arrivent en série ; la dernière écriture avant un rendu
    l'emporte.
    """

    def __init__(self, viewport: Viewport, transform: Optional[ViewTransform] = None) -> None:
        self.viewport = viewport
        self.transform = transform or ViewTransform()
        self.state: GestureState = Idle()

    def press(self, pointer_id: int, pos: Point) -> None:
        state = self.state
        if isinstance(state, Idle):
            self.state = Dragging(pointer_id, pos)
        elif isinstance(state, Dragging):
            if state.pointer_id == pointer_id:
                self.state = Dragging(pointer_id, pos)
            else:
                self.state = Pinching((state.pointer_id, state.last), (pointer_id, pos))
        # Un troisième pointeur pendant un pincement est ignoré.

    def move(self, pointer_id: int, pos: Point) -> ViewTransform:
        state = self.state
        if isinstance(state, Dragging) and state.pointer_id == pointer_id:
            self.transform = self.transform.pan(pos[0] - state.last[0], pos[1] - state.last[1])
            self.state = Dragging(pointer_id, pos)
        elif isinstance(state, Pinching) and pointer_id in (state.first[0], state.second[0]):
            if state.first[0] == pointer_id:
                first, second = (pointer_id, pos), state.second
            else:
                first, second = state.first, (pointer_id, pos)
            distance = _distance(first[1], second[1])
            if state.distance:
                factor = distance / state.distance
                if abs(factor - 1.0) > PINCH_DEADBAND:
                    mid = (
                        (first[1][0] + second[1][0]) / 2.0,
                        (first[1][1] + second[1][1]) / 2.0,
                    )
                    self.transform = self.transform.zoom_at(mid, factor, self.viewport)
            self.state = Pinching(first, second, distance)
        return self.transform

    def release(self, pointer_id: int) -> None:
        state = self.state
        if isinstance(state, Dragging) and state.pointer_id == pointer_id:
            self.state = Idle()
        elif isinstance(state, Pinching):
            if state.first[0] == pointer_id:
                self.state = Dragging(*state.second)
            elif state.second[0] == pointer_id:
                self.state = Dragging(*state.first)

    def cancel(self) -> None:
        self.state = Idle()

    def wheel(self, pos: Point, delta_y: float) -> ViewTransform:
        self.transform = self.transform.zoom_at(pos, wheel_factor(delta_y), self.viewport)
        return self.transform

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport


__all__ = [
    "Dragging",
    "GestureState",
    "GestureTracker",
    "Idle",
    "K_MAX",
    "K_MIN",
    "Pinching",
    "ViewTransform",
    "Viewport",
    "clamp_scale",
    "fit_transform",
    "wheel_factor",
]
