import pytest

import arcade_app
import game_utils
from game_utils import (
    BaseGame,
    ShadowBuffer,
    WorldView,
    fade,
    format_time,
    make_particle,
    point_in_rect,
    rects_overlap,
    shuffle_in_place,
    shuffled,
    spawn_burst,
    update_particles,
)


class RecordingDisplay:
    def __init__(self):
        self.writes = []
        self.cleared = 0

    def set_pixel(self, x, y, r, g, b):
        self.writes.append((x, y, r, g, b))

    def clear(self):
        self.cleared += 1


def test_shadow_buffer_skips_unchanged_pixels():
    inner = RecordingDisplay()
    buf = ShadowBuffer(4, 3, inner)
    buf.set_pixel(1, 1, 10, 20, 30)
    buf.set_pixel(1, 1, 10, 20, 30)
    buf.set_pixel(1, 1, 10, 20, 31)
    assert inner.writes == [(1, 1, 10, 20, 30), (1, 1, 10, 20, 31)]
    assert buf.get_pixel(1, 1) == (10, 20, 31)


def test_shadow_buffer_bounds_and_clear():
    inner = RecordingDisplay()
    buf = ShadowBuffer(4, 3, inner)
    buf.set_pixel(-1, 0, 1, 1, 1)
    buf.set_pixel(4, 0, 1, 1, 1)
    buf.set_pixel(0, 3, 1, 1, 1)
    assert inner.writes == []
    assert buf.get_pixel(9, 9) is None

    buf.set_pixel(2, 2, 5, 5, 5)
    buf.clear()
    assert inner.cleared == 1
    assert buf.get_pixel(2, 2) is None
    buf.set_pixel(2, 2, 5, 5, 5)
    assert len(inner.writes) == 2


def test_rects_touching_edges_do_not_overlap():
    assert rects_overlap(0, 0, 10, 10, 5, 5, 10, 10)
    assert not rects_overlap(0, 0, 10, 10, 10, 0, 10, 10)
    assert not rects_overlap(0, 0, 10, 10, 0, 10, 10, 10)


def test_point_in_rect_includes_edges():
    assert point_in_rect(0, 0, 0, 0, 10, 10)
    assert point_in_rect(10, 10, 0, 0, 10, 10)
    assert not point_in_rect(10.5, 5, 0, 0, 10, 10)


def test_shuffle_keeps_elements():
    items = list(range(20))
    out = shuffle_in_place(items)
    assert out is items
    assert sorted(items) == list(range(20))

    original = [1, 2, 3, 4, 5]
    copy = shuffled(original)
    assert original == [1, 2, 3, 4, 5]
    assert sorted(copy) == original


def test_format_time():
    assert format_time(0) == "00:00"
    assert format_time(65000) == "01:05"
    assert format_time(3599999) == "59:59"
    assert format_time(-5) == "00:00"


def test_particles_move_and_expire():
    particles = [make_particle(0, 0, 1, 0, (255, 0, 0), size=3.0, life=0.03)]
    update_particles(particles, gravity=0.5, decay=0.02)
    assert len(particles) == 1
    p = particles[0]
    assert p["x"] == 1.0
    assert p["vy"] == 0.5
    update_particles(particles, decay=0.02)
    assert particles == []


def test_tiny_particles_are_dropped():
    particles = [make_particle(0, 0, 0, 0, (1, 1, 1), size=0.5)]
    update_particles(particles)
    assert particles == []


def test_spawn_burst_appends():
    particles = []
    spawn_burst(particles, 5, 5, 7, (0, 255, 0))
    assert len(particles) == 7
    assert all(p["color"] == (0, 255, 0) for p in particles)


def test_fade_clamps():
    assert fade((200, 100, 50), 0.5) == (100, 50, 25)
    assert fade((200, 100, 50), 2.0) == (200, 100, 50)
    assert fade((200, 100, 50), -1) == (0, 0, 0)


def test_world_view_round_trip_point():
    view = WorldView(800, 600, 0, 0, 160, 120)
    assert view.to_screen(400, 300) == (80, 60)
    wx, wy = view.to_world(80, 60)
    assert wx == pytest.approx(400)
    assert wy == pytest.approx(300)
    assert view.scale_len(1) == 1
    assert view.scale_len(50) == 10


class EndsAfter(BaseGame):
    name = "TEST"

    def __init__(self, frames):
        super().__init__()
        self.frame_ms = 0
        self.frames = frames
        self.updates = 0

    def update(self, joystick):
        self.updates += 1
        self.score += 3
        return self.updates < self.frames


def test_tick_reports_game_over(joystick):
    game = EndsAfter(2)
    game._begin()
    assert arcade_app.game_over is False
    assert game._tick(joystick) is None
    assert game._tick(joystick) is True
    assert arcade_app.game_over is True
    assert arcade_app.global_score == 6


def test_c_button_leaves_without_game_over(joystick):
    game = EndsAfter(100)
    game._begin()
    joystick.nunchuck.c = True
    assert game._tick(joystick) is True
    assert arcade_app.game_over is False
    assert game.updates == 0


def test_main_loop_runs_until_update_fails(joystick):
    game = EndsAfter(5)
    game.main_loop(joystick)
    assert game.updates == 5
    assert arcade_app.game_over is True


def test_reset_clears_score_and_frame():
    game = EndsAfter(5)
    game.score = 12
    game.frame = 4
    game.reset()
    assert game.score == 0
    assert game.frame == 0


class DerivedScore(BaseGame):
    @property
    def score(self):
        return 42


def test_derived_score_survives_reset():
    game = DerivedScore()
    game.reset()
    assert game.score == 42
    with pytest.raises(AttributeError):
        game.score = 0


def test_module_exports_shadow_buffer_for_display():
    assert isinstance(arcade_app.display, game_utils.ShadowBuffer)
