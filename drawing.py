from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPaintDevice, QPen

from ellipse_geometry import Point

if TYPE_CHECKING:
    from ellipspiro_math import GearConfig, GearPose, PenConfig
    from palette import ThemeColors

# Largeurs nominales de l'overlay, en pixels écran.
STATOR_STROKE_PX = 4.0
ROTOR_STROKE_PX = 2.0
SPOKE_STROKE_PX = 1.0
CONTACT_RADIUS_PX = 6.0
# Rapport porte-stylo / pointe.
HOLDER_TIP_RATIO = 4.1 / 2.55


class SurfaceUnavailable(RuntimeError):
    """Le périphérique de dessin n'a pas pu être acquis pour cette image."""


def _map_points(points: Iterable[Point]) -> List[QPointF]:
    return [QPointF(x, y) for (x, y) in points]


def _stroke_pen(color: str, width: float) -> QPen:
    pen = QPen(QColor(color))
    pen.setWidthF(width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


class Surface:
    """Interface de dessin utilisée par le compositeur et l'export."""

    def begin_frame(self, background: Optional[str], origin: Point, scale: float) -> None:
        raise NotImplementedError

    def draw_polyline(self, points: Sequence[Point], *, color: str, width: float, opacity: float = 1.0) -> None:
        raise NotImplementedError

    def draw_overlay(
        self,
        pose: "GearPose",
        gear: "GearConfig",
        pen: "PenConfig",
        colors: "ThemeColors",
        scale: float,
    ) -> None:
        raise NotImplementedError

    def end_frame(self) -> None:
        raise NotImplementedError


class PainterSurface(Surface):
    """
    Surface QPainter sur n'importe quel QPaintDevice (widget ou QImage).

    ``device_scale`` agrandit uniformément tout le rendu ; l'export s'en sert
    pour rejouer la vue à une résolution plus grande.
    """

    def __init__(self, device: QPaintDevice, device_scale: float = 1.0) -> None:
        self._device = device
        self._device_scale = device_scale
        self._painter: Optional[QPainter] = None

    @property
    def painter(self) -> QPainter:
        if self._painter is None:
            raise SurfaceUnavailable("No frame in progress")
        return self._painter

    def begin_frame(self, background: Optional[str], origin: Point, scale: float) -> None:
        painter = QPainter()
        if not painter.begin(self._device):
            raise SurfaceUnavailable(f"Cannot paint on {type(self._device).__name__}")
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        if background:
            painter.fillRect(
                QRectF(0, 0, self._device.width(), self._device.height()),
                QColor(background),
            )
        painter.scale(self._device_scale, self._device_scale)
        painter.translate(origin[0], origin[1])
        painter.scale(scale, scale)
        self._painter = painter

    def draw_polyline(self, points: Sequence[Point], *, color: str, width: float, opacity: float = 1.0) -> None:
        if len(points) < 2:
            return
        painter = self.painter
        painter.save()
        painter.setOpacity(opacity)
        painter.setPen(_stroke_pen(color, width))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPolyline(_map_points(points))
        painter.restore()

    def draw_overlay(
        self,
        pose: "GearPose",
        gear: "GearConfig",
        pen: "PenConfig",
        colors: "ThemeColors",
        scale: float,
    ) -> None:
        """
        Stator, rotor tourné de phi, croisillon, bras, porte-stylo, pointe et
        point de contact. Les traits ont une épaisseur constante à l'écran :
        la largeur nominale est divisée par l'échelle de la vue.
        """
        painter = self.painter
        k = scale or 1.0
        R = gear.stator_radius
        r = gear.rotor_radius
        cx, cy = pose.center
        px, py = pose.pen

        painter.save()
        painter.setOpacity(1.0)
        painter.setBrush(Qt.BrushStyle.NoBrush)

        painter.setPen(_stroke_pen(colors.gear_stroke, STATOR_STROKE_PX / k))
        painter.drawEllipse(QPointF(0.0, 0.0), R, R * gear.stator_aspect)

        painter.save()
        painter.translate(cx, cy)
        painter.rotate(math.degrees(pose.phi))
        painter.setPen(_stroke_pen(colors.rotor_stroke, ROTOR_STROKE_PX / k))
        painter.drawEllipse(QPointF(0.0, 0.0), r, r * gear.rotor_aspect)
        painter.setPen(_stroke_pen(colors.spoke_stroke, SPOKE_STROKE_PX / k))
        painter.drawLine(QPointF(-r, 0.0), QPointF(r, 0.0))
        painter.drawLine(QPointF(0.0, -r * gear.rotor_aspect), QPointF(0.0, r * gear.rotor_aspect))
        painter.restore()

        painter.setPen(_stroke_pen(colors.arm_stroke, ROTOR_STROKE_PX / k))
        painter.drawLine(QPointF(cx, cy), QPointF(px, py))

        tip_radius = pen.line_width / 2.0
        _fill_disc(painter, (px, py), tip_radius * HOLDER_TIP_RATIO, colors.rotor_stroke)
        _fill_disc(painter, (px, py), tip_radius, pen.color)
        _fill_disc(painter, pose.contact, CONTACT_RADIUS_PX / k, colors.contact)
        painter.restore()

    def end_frame(self) -> None:
        if self._painter is not None:
            self._painter.end()
            self._painter = None


def _fill_disc(painter: QPainter, center: Point, radius: float, color: str) -> None:
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(color))
    painter.drawEllipse(QPointF(center[0], center[1]), radius, radius)


def draw_rounded_box(painter: QPainter, rect: QRectF, color: str, radius: float = 8.0) -> None:
    painter.save()
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(color))
    painter.drawRoundedRect(rect, radius, radius)
    painter.restore()


def stride_points(points: Sequence[Point], stride: int) -> List[Point]:
    """
    Sous-échantillonne un tracé en gardant le premier point, un point sur
    ``stride`` ensuite, et toujours le dernier.
    """
    if stride <= 1 or len(points) <= 2:
        return list(points)
    sampled = [points[0]]
    sampled.extend(points[1::stride])
    if (len(points) - 2) % stride != 0:
        sampled.append(points[-1])
    return sampled


__all__ = [
    "PainterSurface",
    "Surface",
    "SurfaceUnavailable",
    "draw_rounded_box",
    "stride_points",
]
