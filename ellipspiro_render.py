from __future__ import annotations

import logging
from typing import Optional

import ellipspiro_engine as engine
from drawing import Surface, SurfaceUnavailable, stride_points
from ellipspiro_math import DT, GearPose, Kinematics, SpiroConfig, select_kinematics
from ellipspiro_trace import TraceStore
from ellipspiro_view import GestureTracker, ViewTransform, Viewport, fit_transform
from palette import theme_colors

_LOGGER = logging.getLogger(__name__)

# En dessous de cette échelle on ne trace qu'un point sur TRACE_STRIDE.
STRIDE_SCALE_THRESHOLD = 0.2
TRACE_STRIDE = 5


class RenderCompositor:
    """
    Boucle par image : avance la simulation si la lecture est active, puis redessine le
    tracé complet et l'overlay des engrenages à travers la vue courante.

    Le tracé est entièrement redessiné à chaque image à partir de tout
    l'historique de points, sans cache incrémental.
    """

    def __init__(
        self,
        config: Optional[SpiroConfig] = None,
        store: Optional[TraceStore] = None,
        viewport: Optional[Viewport] = None,
        *,
        theme: str = "light",
    ) -> None:
        self.config = config or SpiroConfig()
        self.store = store or TraceStore()
        self.view = GestureTracker(viewport or Viewport(800, 600))
        self.theme = theme
        self.playing = True
        self.frames_skipped = 0
        self._kinematics: Kinematics = select_kinematics(self.config.gear)

    # ----- État -----

    @property
    def kinematics(self) -> Kinematics:
        return self._kinematics

    @property
    def viewport(self) -> Viewport:
        return self.view.viewport

    @property
    def transform(self) -> ViewTransform:
        return self.view.transform

    @transform.setter
    def transform(self, value: ViewTransform) -> None:
        self.view.transform = value

    def set_config(self, config: SpiroConfig) -> None:
        if config.gear != self.config.gear:
            self._kinematics = select_kinematics(config.gear)
        self.config = config

    def set_viewport(self, viewport: Viewport) -> None:
        self.view.set_viewport(viewport)

    def set_theme(self, theme: str) -> None:
        theme_colors(theme)
        self.theme = theme

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle(self) -> bool:
        self.playing = not self.playing
        return self.playing

    def clear(self) -> None:
        self.store.clear()

    def reset_view(self) -> ViewTransform:
        self.view.transform = fit_transform(
            self.config.gear,
            self.viewport,
            trace_radius=self.store.bounds_radius(),
            show_gears=self.config.show_gears,
        )
        return self.view.transform

    def current_pose(self) -> GearPose:
        return self._kinematics.pose(self.store.state)

    # ----- Image -----

    def advance(self) -> int:
        """Avance d'un tick si la lecture est active ; retourne le nombre de points ajoutés."""
        if not self.playing:
            return 0
        count = self.config.steps_per_tick
        if count <= 0:
            return 0
        state, points, _ = engine.advance(self._kinematics, self.store.state, DT, count)
        self.store.extend(points, state)
        return len(points)

    def render(self, surface: Surface) -> bool:
        """Dessine une image ; retourne False si la surface n'a pas pu être acquise."""
        colors = theme_colors(self.theme)
        transform = self.transform
        try:
            surface.begin_frame(colors.background, transform.origin(self.viewport), transform.k)
        except SurfaceUnavailable as exc:
            self.frames_skipped += 1
            _LOGGER.warning("Skipping frame: %s", exc)
            return False
        try:
            stride = TRACE_STRIDE if transform.k < STRIDE_SCALE_THRESHOLD else 1
            pen = self.config.pen
            surface.draw_polyline(
                stride_points(self.store.snapshot(), stride),
                color=pen.color,
                width=pen.line_width,
                opacity=pen.opacity,
            )
            if self.config.show_gears:
                surface.draw_overlay(self.current_pose(), self.config.gear, pen, colors, transform.k)
        finally:
            surface.end_frame()
        return True

    def tick(self, surface: Surface) -> bool:
        self.advance()
        return self.render(surface)


__all__ = ["RenderCompositor", "STRIDE_SCALE_THRESHOLD", "TRACE_STRIDE"]
