import sys
import os
import logging
from dataclasses import replace
from typing import Optional

from PySide6.QtWidgets import (
    QApplication,
    QWidget,
    QVBoxLayout,
    QMenuBar,
    QMenu,
    QMessageBox,
    QFileDialog,
    QSizePolicy,
)
from PySide6.QtGui import (
    QAction,
    QImage,
    QKeySequence,
    QEventPoint,
)
from PySide6.QtCore import (
    Qt,
    QEvent,
    QTimer,
    QStandardPaths,
)

import ellipspiro_engine
from drawing import PainterSurface, SurfaceUnavailable
from ellipspiro_export import ExportRenderer, ExportRequest
from ellipspiro_math import SpiroConfig
from ellipspiro_render import RenderCompositor
from ellipspiro_view import Viewport
from localisation import available_languages, language_display_name, resolve_language, tr

_LOGGER = logging.getLogger(__name__)

# ----- Boucle d'animation -----
FRAME_INTERVAL_MS = 16
SPEED_MIN = 0.1
SPEED_MAX = 20.0
SPEED_FACTOR = 2.0

# Identifiant de pointeur réservé à la souris (les points tactiles ont des ids >= 0).
MOUSE_POINTER_ID = -1


class SpiroCanvas(QWidget):
    """
    Zone de dessin : un QTimer fait avancer la simulation, paintEvent redessine
    à travers le compositeur. Souris, molette et tactile pilotent la vue.
    """

    def __init__(self, compositor: RenderCompositor, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.compositor = compositor
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setMinimumSize(200, 200)
        self._fitted = False

        self._timer = QTimer(self)
        self._timer.setInterval(FRAME_INTERVAL_MS)
        self._timer.timeout.connect(self._on_tick)
        self._timer.start()

    def _on_tick(self):
        # La pause n'arrête que l'avance ; le rendu continue.
        self.compositor.advance()
        self.update()

    # ----- Qt -----

    def paintEvent(self, event):
        self.compositor.render(PainterSurface(self))

    def resizeEvent(self, event):
        size = event.size()
        self.compositor.set_viewport(Viewport(size.width(), size.height()))
        # Premier cadrage une fois la taille réelle connue.
        if not self._fitted:
            self._fitted = True
            self.compositor.reset_view()
        super().resizeEvent(event)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self.compositor.view.press(MOUSE_POINTER_ID, (pos.x(), pos.y()))
            event.accept()
        else:
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        pos = event.position()
        self.compositor.view.move(MOUSE_POINTER_ID, (pos.x(), pos.y()))
        self.update()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.compositor.view.release(MOUSE_POINTER_ID)
            event.accept()
        else:
            super().mouseReleaseEvent(event)

    def wheelEvent(self, event):
        pos = event.position()
        # Qt : delta positif = molette vers le haut ; la vue attend l'inverse.
        self.compositor.view.wheel((pos.x(), pos.y()), -event.angleDelta().y())
        self.update()
        event.accept()

    def event(self, event):
        kind = event.type()
        if kind in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            view = self.compositor.view
            for point in event.points():
                pos = point.position()
                state = point.state()
                if state == QEventPoint.State.Pressed:
                    view.press(point.id(), (pos.x(), pos.y()))
                elif state == QEventPoint.State.Released:
                    view.release(point.id())
                elif state == QEventPoint.State.Updated:
                    view.move(point.id(), (pos.x(), pos.y()))
            self.update()
            event.accept()
            return True
        if kind == QEvent.Type.TouchCancel:
            self.compositor.view.cancel()
            event.accept()
            return True
        return super().event(event)


class SpiroWindow(QWidget):
    def __init__(self, config: Optional[SpiroConfig] = None, language: str = "en"):
        super().__init__()

        self.language = resolve_language(language)
        self.compositor = RenderCompositor(config or SpiroConfig())
        self.exporter = ExportRenderer()

        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ----- Barre de menus -----
        menubar = QMenuBar()
        self.menu_bar = menubar

        # Menu Fichier
        self.menu_file = QMenu(menubar)
        menubar.addMenu(self.menu_file)

        self.act_export_png = QAction(menubar)
        self.act_export_png.setShortcut(QKeySequence("Ctrl+E"))
        self.act_export_png_data = QAction(menubar)
        self.act_export_png_data.setShortcut(QKeySequence("Ctrl+Shift+E"))
        self.act_quit = QAction(menubar)
        self.act_quit.setShortcut(QKeySequence.StandardKey.Quit)

        self.menu_file.addAction(self.act_export_png)
        self.menu_file.addAction(self.act_export_png_data)
        self.menu_file.addSeparator()
        self.menu_file.addAction(self.act_quit)

        self.act_export_png.triggered.connect(lambda: self.export_png(annotate=False))
        self.act_export_png_data.triggered.connect(lambda: self.export_png(annotate=True))
        self.act_quit.triggered.connect(self.close)

        # Menu Affichage
        self.menu_view = QMenu(menubar)
        menubar.addMenu(self.menu_view)

        self.act_play = QAction(menubar)
        self.act_play.setCheckable(True)
        self.act_play.setChecked(self.compositor.playing)
        self.act_play.setShortcut(QKeySequence(Qt.Key.Key_Space))
        self.act_play.triggered.connect(self._set_playing)

        self.act_clear = QAction(menubar)
        self.act_clear.setShortcut(QKeySequence("Ctrl+L"))
        self.act_clear.triggered.connect(self.clear_trace)

        self.act_reset_view = QAction(menubar)
        self.act_reset_view.setShortcut(QKeySequence("Ctrl+0"))
        self.act_reset_view.triggered.connect(self.reset_view)

        self.act_show_gears = QAction(menubar)
        self.act_show_gears.setCheckable(True)
        self.act_show_gears.setChecked(self.compositor.config.show_gears)
        self.act_show_gears.setShortcut(QKeySequence("G"))
        self.act_show_gears.triggered.connect(self._set_show_gears)

        self.act_dark = QAction(menubar)
        self.act_dark.setCheckable(True)
        self.act_dark.setChecked(self.compositor.theme == "dark")
        self.act_dark.setShortcut(QKeySequence("D"))
        self.act_dark.triggered.connect(self._set_dark)

        self.act_faster = QAction(menubar)
        self.act_faster.setShortcut(QKeySequence("+"))
        self.act_faster.triggered.connect(lambda: self._apply_speed_factor(SPEED_FACTOR))
        self.act_slower = QAction(menubar)
        self.act_slower.setShortcut(QKeySequence("-"))
        self.act_slower.triggered.connect(lambda: self._apply_speed_factor(1.0 / SPEED_FACTOR))

        self.menu_view.addAction(self.act_play)
        self.menu_view.addAction(self.act_clear)
        self.menu_view.addAction(self.act_reset_view)
        self.menu_view.addSeparator()
        self.menu_view.addAction(self.act_show_gears)
        self.menu_view.addAction(self.act_dark)
        self.menu_view.addSeparator()
        self.menu_view.addAction(self.act_faster)
        self.menu_view.addAction(self.act_slower)

        # Sous-menu Langue, construit depuis les tables disponibles
        self.menu_lang = QMenu(menubar)
        self.menu_view.addSeparator()
        self.menu_view.addMenu(self.menu_lang)
        self.lang_actions = {}
        for code in available_languages():
            act = QAction(language_display_name(code), menubar)
            act.setCheckable(True)
            act.triggered.connect(lambda _checked=False, c=code: self.set_language(c))
            self.menu_lang.addAction(act)
            self.lang_actions[code] = act

        main_layout.addWidget(menubar)

        self.canvas = SpiroCanvas(self.compositor, self)
        main_layout.addWidget(self.canvas, stretch=1)

        self.apply_language()

    # ----- Langue -----

    def set_language(self, lang: str):
        self.language = resolve_language(lang)
        self.apply_language()

    def apply_language(self):
        self.setWindowTitle(tr(self.language, "app_title"))

        self.menu_file.setTitle(tr(self.language, "menu_file"))
        self.act_export_png.setText(tr(self.language, "menu_file_export_png"))
        self.act_export_png_data.setText(tr(self.language, "menu_file_export_png_data"))
        self.act_quit.setText(tr(self.language, "menu_file_quit"))

        self.menu_view.setTitle(tr(self.language, "menu_view"))
        self.act_play.setText(tr(self.language, "menu_view_play"))
        self.act_clear.setText(tr(self.language, "menu_view_clear"))
        self.act_reset_view.setText(tr(self.language, "menu_view_reset"))
        self.act_show_gears.setText(tr(self.language, "menu_view_gears"))
        self.act_dark.setText(tr(self.language, "menu_view_dark"))
        self.act_faster.setText(tr(self.language, "menu_view_faster"))
        self.act_slower.setText(tr(self.language, "menu_view_slower"))

        self.menu_lang.setTitle(tr(self.language, "menu_language"))
        for code, act in self.lang_actions.items():
            act.setChecked(code == self.language)

    # ----- Commandes -----

    def set_config(self, config: SpiroConfig):
        self.compositor.set_config(config)
        self.act_show_gears.setChecked(config.show_gears)
        self.canvas.update()

    def _set_playing(self, checked: bool):
        if checked:
            self.compositor.play()
        else:
            self.compositor.pause()

    def _set_show_gears(self, checked: bool):
        self.set_config(replace(self.compositor.config, show_gears=bool(checked)))

    def _set_dark(self, checked: bool):
        self.compositor.set_theme("dark" if checked else "light")
        self.canvas.update()

    def _apply_speed_factor(self, factor: float):
        config = self.compositor.config
        speed = max(SPEED_MIN, min(SPEED_MAX, config.speed * factor))
        self.set_config(replace(config, speed=speed))

    def clear_trace(self):
        self.compositor.clear()
        self.canvas.update()

    def reset_view(self):
        self.compositor.reset_view()
        self.canvas.update()

    # ----- Export PNG -----

    def export_png(self, annotate: bool = False):
        compositor = self.compositor
        request = ExportRequest(
            points=compositor.store.snapshot(),
            config=compositor.config,
            transform=compositor.transform,
            viewport=compositor.viewport,
            theme=compositor.theme,
            annotate=annotate,
            language=self.language,
        )
        try:
            self.exporter.export(request, self._save_image)
        except (OSError, SurfaceUnavailable) as e:
            _LOGGER.error("PNG export failed: %s", e)
            self._report_error(f"{tr(self.language, 'export_failed')}\n{e}")

    def _report_error(self, message: str):
        QMessageBox.critical(self, tr(self.language, "error_title"), message)

    def _save_image(self, image: QImage, filename: str):
        base_dir = QStandardPaths.writableLocation(QStandardPaths.PicturesLocation)
        if not base_dir:
            base_dir = os.path.expanduser("~")
        path, _ = QFileDialog.getSaveFileName(
            self,
            tr(self.language, "menu_file_export_png"),
            os.path.join(base_dir, filename),
            "PNG (*.png)",
        )
        if not path:
            return
        if not image.save(path, "PNG"):
            raise OSError(f"Cannot write {path}")
        _LOGGER.info("Saved PNG export to %s", path)
        QMessageBox.information(
            self,
            tr(self.language, "app_title"),
            tr(self.language, "export_saved", path=path),
        )


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(sys.argv)
    backend = ellipspiro_engine.use_preferred_backend()
    _LOGGER.info("Using %s math backend", backend)
    window = SpiroWindow()
    window.resize(1000, 800)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
