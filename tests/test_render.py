from dataclasses import replace

import pytest

from drawing import PainterSurface, Surface, SurfaceUnavailable, stride_points
from ellipspiro_math import GearConfig, SimulationState, SpiroConfig
from ellipspiro_render import RenderCompositor
from ellipspiro_view import ViewTransform, Viewport


class RecordingSurface(Surface):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def begin_frame(self, background, origin, scale):
        if self.fail:
            raise SurfaceUnavailable("busy")
        self.calls.append(("begin", background, origin, scale))

    def draw_polyline(self, points, *, color, width, opacity=1.0):
        self.calls.append(("polyline", list(points), color, width, opacity))

    def draw_overlay(self, pose, gear, pen, colors, scale):
        self.calls.append(("overlay", pose, scale))

    def end_frame(self):
        self.calls.append(("end",))

    def kinds(self):
        return [call[0] for call in self.calls]


def test_stride_points_keeps_first_and_last():
    points = [(float(i), 0.0) for i in range(13)]
    sampled = stride_points(points, 5)
    assert sampled[0] == points[0]
    assert sampled[-1] == points[-1]
    assert sampled == [points[0], points[1], points[6], points[11], points[12]]
    assert stride_points(points, 1) == points
    # Pas de doublon quand le dernier point tombe sur la grille.
    exact = [(float(i), 0.0) for i in range(12)]
    assert stride_points(exact, 5) == [exact[0], exact[1], exact[6], exact[11]]


def test_advance_adds_steps_per_tick_points():
    compositor = RenderCompositor(SpiroConfig(speed=2.0))
    assert compositor.advance() == 10
    assert len(compositor.store) == 10
    assert compositor.store.state.t > 0.0


def test_paused_compositor_does_not_advance_but_renders():
    compositor = RenderCompositor()
    compositor.pause()
    surface = RecordingSurface()
    assert compositor.tick(surface)
    assert len(compositor.store) == 0
    assert surface.kinds() == ["begin", "polyline", "overlay", "end"]
    assert compositor.toggle() is True


def test_render_draws_full_trace_and_overlay():
    compositor = RenderCompositor(viewport=Viewport(400, 400))
    for _ in range(4):
        compositor.advance()
    surface = RecordingSurface()
    assert compositor.render(surface)
    begin, polyline, overlay, end = surface.calls
    assert begin[1] == "#ffffff"
    assert begin[2] == (200.0, 200.0)
    assert polyline[1] == list(compositor.store.snapshot())
    assert polyline[2] == "#22c55e"
    assert overlay[1] == compositor.current_pose()
    assert end == ("end",)


def test_render_uses_stride_when_zoomed_out():
    compositor = RenderCompositor()
    for _ in range(10):
        compositor.advance()
    compositor.transform = ViewTransform(k=0.15)
    surface = RecordingSurface()
    compositor.render(surface)
    drawn = surface.calls[1][1]
    full = compositor.store.snapshot()
    assert len(drawn) < len(full)
    assert drawn[-1] == full[-1]


def test_render_without_gears_skips_overlay():
    compositor = RenderCompositor(SpiroConfig(show_gears=False))
    compositor.set_theme("dark")
    surface = RecordingSurface()
    compositor.render(surface)
    assert surface.kinds() == ["begin", "polyline", "end"]
    assert surface.calls[0][1] == "#020617"


def test_unavailable_surface_skips_frame():
    compositor = RenderCompositor()
    assert compositor.render(RecordingSurface(fail=True)) is False
    assert compositor.frames_skipped == 1
    # La trame suivante réessaie normalement.
    assert compositor.render(RecordingSurface()) is True


def test_clear_resets_trace_and_pose():
    compositor = RenderCompositor()
    compositor.advance()
    compositor.clear()
    assert len(compositor.store) == 0
    assert compositor.store.state == SimulationState()
    assert compositor.current_pose() == compositor.kinematics.pose(SimulationState())


@pytest.mark.parametrize("gear", [GearConfig(), GearConfig(stator_aspect=0.8, rotor_aspect=1.2)])
def test_clear_then_replay_reproduces_trace(gear):
    compositor = RenderCompositor(SpiroConfig(gear=gear))
    for _ in range(20):
        compositor.advance()
    first = list(compositor.store.snapshot())
    first_pose = compositor.current_pose()

    compositor.clear()
    for _ in range(20):
        compositor.advance()
    assert list(compositor.store.snapshot()) == first
    assert compositor.current_pose() == first_pose


def test_set_config_switches_kinematics():
    compositor = RenderCompositor()
    assert compositor.kinematics.mode == "exact"
    elliptic = replace(compositor.config, gear=GearConfig(stator_aspect=0.8))
    compositor.set_config(elliptic)
    assert compositor.kinematics.mode == "numeric"
    kinematics = compositor.kinematics
    compositor.set_config(replace(elliptic, speed=3.0))
    assert compositor.kinematics is kinematics


def test_resize_keeps_trace():
    compositor = RenderCompositor()
    compositor.advance()
    before = compositor.store.snapshot()
    compositor.set_viewport(Viewport(1024, 768))
    assert compositor.store.snapshot() == before
    assert compositor.viewport == Viewport(1024, 768)


def test_reset_view_fits_gears():
    compositor = RenderCompositor(viewport=Viewport(800, 600))
    compositor.transform = ViewTransform(x=50.0, y=20.0, k=3.0)
    transform = compositor.reset_view()
    assert (transform.x, transform.y) == (0.0, 0.0)
    assert transform.k == pytest.approx(270.0 / 168.0)


def test_painter_surface_renders_to_image(qapp):
    from PySide6.QtGui import QColor, QImage

    compositor = RenderCompositor(viewport=Viewport(200, 200))
    for _ in range(20):
        compositor.advance()
    compositor.reset_view()

    image = QImage(200, 200, QImage.Format.Format_ARGB32)
    image.fill(QColor("#123456"))
    assert compositor.render(PainterSurface(image))
    # Le fond du thème a remplacé le remplissage initial.
    assert image.pixelColor(0, 0) == QColor("#ffffff")
