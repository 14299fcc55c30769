from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, List, Optional, Sequence

from PySide6.QtCore import QRectF, Qt
from PySide6.QtGui import QColor, QFont, QFontMetricsF, QImage

from drawing import PainterSurface, SurfaceUnavailable, draw_rounded_box
from ellipse_geometry import Point
from ellipspiro_math import SimulationState, SpiroConfig, effective_ratio, select_kinematics
from ellipspiro_view import ViewTransform, Viewport
from localisation import color_label, tr
from palette import color_name, theme_colors

_LOGGER = logging.getLogger(__name__)

PRODUCT_NAME = "EllipSpiro"
EXPORT_TARGET_WIDTH = 3000

# Panneau de données, en pixels de la vue source.
PANEL_FONT_PX = 14
PANEL_LINE_HEIGHT = 18.0
PANEL_PADDING = 12.0
PANEL_MARGIN = 20.0
BOX_CORNER_RADIUS = 8.0
PANEL_FONT_FAMILY = "monospace"
FOOTER_FONT_FAMILY = "sans-serif"


@dataclass(frozen=True)
class ExportRequest:
    points: Sequence[Point]
    config: SpiroConfig
    transform: ViewTransform
    viewport: Viewport
    theme: str = "light"
    annotate: bool = False
    language: str = "en"


@dataclass
class ExportResult:
    image: QImage
    filename: str


def export_filename(timestamp_ms: int, annotate: bool) -> str:
    suffix = "-with-data" if annotate else ""
    return f"{PRODUCT_NAME}-{int(timestamp_ms)}{suffix}.png"


def _format_number(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def annotation_lines(config: SpiroConfig, lang: str = "en") -> List[str]:
    gear = config.gear
    pen = config.pen
    numerator, denominator = effective_ratio(gear)
    return [
        tr(lang, "panel_color", name=color_label(color_name(pen.color), lang), hex=pen.color),
        tr(lang, "panel_thickness", value=f"{pen.line_width:.2f}"),
        tr(lang, "panel_opacity", value=f"{pen.opacity:.2f}"),
        tr(lang, "panel_ratio", value=f"{numerator}/{denominator}"),
        tr(lang, "panel_stator_radius", value=_format_number(gear.stator_radius)),
        tr(lang, "panel_rotor_radius", value=_format_number(gear.rotor_radius)),
        tr(lang, "panel_pen_offset", value=_format_number(gear.pen_offset)),
        tr(lang, "panel_stator_eccentricity", value=f"{gear.stator_aspect:.2f}"),
        tr(lang, "panel_rotor_eccentricity", value=f"{gear.rotor_aspect:.2f}"),
    ]


def _font(family: str, pixel_size: float, *, weight: QFont.Weight) -> QFont:
    font = QFont(family)
    font.setPixelSize(max(1, int(round(pixel_size))))
    font.setWeight(weight)
    return font


class ExportRenderer:
    """
    Rejoue le tracé et la géométrie courante dans une image hors écran de
    largeur fixe, indépendante de la résolution de la vue.

    Mêmes entrées, mêmes pixels : rien ne dépend de l'état de la fenêtre.
    """

    def __init__(
        self,
        target_width: int = EXPORT_TARGET_WIDTH,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.target_width = int(target_width)
        self.clock = clock or (lambda: int(time.time() * 1000))

    def render(self, request: ExportRequest) -> ExportResult:
        viewport = request.viewport
        colors = theme_colors(request.theme)
        config = request.config
        transform = request.transform

        scale = self.target_width / viewport.width
        height = max(1, int(round(viewport.height * scale)))
        image = QImage(self.target_width, height, QImage.Format.Format_ARGB32)
        if image.isNull():
            raise SurfaceUnavailable(f"Cannot allocate a {self.target_width}x{height} export image")

        surface = PainterSurface(image, device_scale=scale)
        surface.begin_frame(colors.background, transform.origin(viewport), transform.k)
        try:
            pen = config.pen
            surface.draw_polyline(
                list(request.points),
                color=pen.color,
                width=pen.line_width,
                opacity=pen.opacity,
            )
            if request.annotate:
                initial = select_kinematics(config.gear).pose(SimulationState())
                surface.draw_overlay(initial, config.gear, pen, colors, transform.k)

            # Retour aux coordonnées écran de la vue source.
            painter = surface.painter
            painter.resetTransform()
            painter.scale(scale, scale)
            painter.setOpacity(1.0)

            footer_px = max(12.0, viewport.width / 70.0)
            footer_bottom = footer_px * 0.8
            if request.annotate:
                self._draw_panel(
                    surface,
                    annotation_lines(config, request.language),
                    viewport,
                    colors,
                    footer_space=footer_px + footer_bottom + 10.0,
                    device=image,
                )
            self._draw_footer(
                surface,
                tr(request.language, "footer_text"),
                viewport,
                colors,
                footer_px=footer_px,
                footer_bottom=footer_bottom,
                device=image,
            )
        finally:
            surface.end_frame()

        filename = export_filename(self.clock(), request.annotate)
        _LOGGER.info(
            "Rendered export %s (%dx%d, %d points)",
            filename,
            image.width(),
            image.height(),
            len(request.points),
        )
        return ExportResult(image=image, filename=filename)

    def export(self, request: ExportRequest, save: Callable[[QImage, str], None]) -> ExportResult:
        result = self.render(request)
        save(result.image, result.filename)
        return result

    @staticmethod
    def _draw_panel(surface, lines, viewport, colors, *, footer_space, device) -> None:
        painter = surface.painter
        font = _font(PANEL_FONT_FAMILY, PANEL_FONT_PX, weight=QFont.Weight.Bold)
        metrics = QFontMetricsF(font, device)
        text_width = max(metrics.horizontalAdvance(line) for line in lines)

        box_w = text_width + PANEL_PADDING * 2
        box_h = len(lines) * PANEL_LINE_HEIGHT + PANEL_PADDING * 2
        box_x = PANEL_MARGIN
        box_y = viewport.height - box_h - PANEL_MARGIN - footer_space
        draw_rounded_box(painter, QRectF(box_x, box_y, box_w, box_h), colors.badge_background, BOX_CORNER_RADIUS)

        painter.setFont(font)
        painter.setPen(QColor(colors.badge_text))
        for i, line in enumerate(lines):
            rect = QRectF(
                box_x + PANEL_PADDING,
                box_y + PANEL_PADDING + i * PANEL_LINE_HEIGHT,
                text_width + 1.0,
                PANEL_LINE_HEIGHT,
            )
            painter.drawText(rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, line)

    @staticmethod
    def _draw_footer(surface, text, viewport, colors, *, footer_px, footer_bottom, device) -> None:
        painter = surface.painter
        font = _font(FOOTER_FONT_FAMILY, footer_px, weight=QFont.Weight.Medium)
        metrics = QFontMetricsF(font, device)
        padding = footer_px * 0.5
        box_w = metrics.horizontalAdvance(text) + padding * 2
        box_h = footer_px + padding * 1.5
        box_x = viewport.width / 2.0 - box_w / 2.0
        box_y = viewport.height - footer_bottom - footer_px - padding * 0.75
        rect = QRectF(box_x, box_y, box_w, box_h)
        draw_rounded_box(painter, rect, colors.badge_background, BOX_CORNER_RADIUS)

        painter.setFont(font)
        painter.setPen(QColor(colors.footer_text))
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)


__all__ = [
    "EXPORT_TARGET_WIDTH",
    "ExportRenderer",
    "ExportRequest",
    "ExportResult",
    "PRODUCT_NAME",
    "annotation_lines",
    "export_filename",
]
