"""
Neon Flappy: one-button flapping through a stream of pipes.

Physics run in 400x600 world units; a `WorldView` squeezes the
world into the centre of the play area.
"""

import logging
import math
import random

from arcade_app import (
    JOYSTICK_UP,
    PLAY_HEIGHT,
    WIDTH,
    draw_play_rect,
    draw_text_centered,
)
from game_utils import (
    BaseGame,
    WorldView,
    fade,
    make_particle,
    rects_overlap,
    update_particles,
)

logger = logging.getLogger("arcade.flappy")

WORLD_W = 400
WORLD_H = 600

GRAVITY = 0.6
JUMP_STRENGTH = -12
GAME_SPEED = 2
PIPE_GAP = 180
PIPE_WIDTH = 60
PIPE_SPAWN_INTERVAL = 120  # frames
PIPE_MIN_HEIGHT = 50
TRAIL_LENGTH = 8
DEATH_FRAMES = 45

BIRD_COLOR = (255, 0, 128)
EYE_COLOR = (57, 255, 20)
TRAIL_COLOR = (0, 245, 255)
PIPE_COLOR = (191, 0, 255)

STATE_START = "START"
STATE_PLAYING = "PLAYING"
STATE_GAME_OVER = "GAME_OVER"


class FlappyGame(BaseGame):
    """Flappy: navigate between pipes; flap to gain altitude."""

    name = "FLAPPY"

    def __init__(self):
        super().__init__()
        self.frame_ms = 16
        view_w = PLAY_HEIGHT * WORLD_W // WORLD_H
        self.view = WorldView(WORLD_W, WORLD_H, (WIDTH - view_w) // 2, 0, view_w, PLAY_HEIGHT)
        self.reset()

    def reset(self):
        """Back to the start screen with a fresh bird and no pipes."""
        super().reset()
        self.state = STATE_START
        self.bird = {
            "x": 80,
            "y": 300,
            "width": 30,
            "height": 30,
            "velocity": 0.0,
            "rotation": 0.0,
            "trail": [],
        }
        self.pipes = []
        self.pipe_spawn_timer = 0
        self.particles = []
        self.death_timer = 0
        self._flap_prev = True

    def start_game(self):
        self.reset()
        self.state = STATE_PLAYING

    # ----- input -----
    def handle_input(self):
        """The one button: starts the run on the title screen, flaps while playing."""
        if self.state == STATE_PLAYING:
            self.jump()
        elif self.state == STATE_START:
            self.start_game()

    def jump(self):
        bird = self.bird
        bird["velocity"] = JUMP_STRENGTH
        bird["rotation"] = -20
        for _ in range(5):
            self.particles.append(
                make_particle(
                    bird["x"] + bird["width"] / 2,
                    bird["y"] + bird["height"],
                    (random.random() - 0.5) * 4,
                    random.random() * 3 + 2,
                    TRAIL_COLOR,
                    size=random.random() * 4 + 2,
                    kind="jump",
                )
            )

    def poll(self, joystick):
        _, z = joystick.nunchuck.buttons()
        up = joystick.read_direction([JOYSTICK_UP]) == JOYSTICK_UP
        flap = z or up
        if (flap and not self._flap_prev) or joystick.clicked():
            self.handle_input()
        self._flap_prev = flap

    # ----- simulation -----
    def update_bird(self):
        bird = self.bird
        bird["velocity"] += GRAVITY
        bird["y"] += bird["velocity"]

        if bird["velocity"] > 0:
            bird["rotation"] = min(90, bird["velocity"] * 3)

        trail = bird["trail"]
        trail.append({"x": bird["x"], "y": bird["y"], "alpha": 1.0})
        if len(trail) > TRAIL_LENGTH:
            trail.pop(0)
        for i, point in enumerate(trail):
            point["alpha"] = i / len(trail)

        if bird["y"] > WORLD_H - bird["height"] or bird["y"] < 0:
            self.game_over("bounds")

    def spawn_pipe(self):
        max_height = WORLD_H - PIPE_GAP - PIPE_MIN_HEIGHT
        top = random.random() * (max_height - PIPE_MIN_HEIGHT) + PIPE_MIN_HEIGHT
        self.pipes.append(
            {"x": WORLD_W, "top_height": top, "bottom_y": top + PIPE_GAP, "scored": False}
        )

    def update_pipes(self):
        self.pipe_spawn_timer += 1
        if self.pipe_spawn_timer >= PIPE_SPAWN_INTERVAL:
            self.spawn_pipe()
            self.pipe_spawn_timer = 0

        bird = self.bird
        for pipe in list(self.pipes):
            pipe["x"] -= GAME_SPEED
            if not pipe["scored"] and pipe["x"] + PIPE_WIDTH < bird["x"]:
                pipe["scored"] = True
                self.score += 1
                self._score_particles()
            if pipe["x"] + PIPE_WIDTH < 0:
                self.pipes.remove(pipe)

    def check_collisions(self):
        """End the run when the bird overlaps either half of any pipe."""
        b = self.bird
        for pipe in self.pipes:
            top_hit = rects_overlap(
                b["x"], b["y"], b["width"], b["height"],
                pipe["x"], -WORLD_H, PIPE_WIDTH, pipe["top_height"] + WORLD_H,
            )
            bottom_hit = rects_overlap(
                b["x"], b["y"], b["width"], b["height"],
                pipe["x"], pipe["bottom_y"], PIPE_WIDTH, 2 * WORLD_H,
            )
            if top_hit or bottom_hit:
                self.game_over("pipe")
                return True
        return False

    def game_over(self, cause):
        if self.state == STATE_GAME_OVER:
            return
        self.state = STATE_GAME_OVER
        self.death_timer = DEATH_FRAMES
        b = self.bird
        for _ in range(15):
            self.particles.append(
                make_particle(
                    b["x"] + b["width"] / 2,
                    b["y"] + b["height"] / 2,
                    (random.random() - 0.5) * 10,
                    (random.random() - 0.5) * 10,
                    BIRD_COLOR if random.random() < 0.5 else (255, 255, 0),
                    size=random.random() * 8 + 4,
                    kind="explosion",
                )
            )
        logger.info("Flappy crashed (%s) with score %d", cause, self.score)

    def _score_particles(self):
        b = self.bird
        for _ in range(8):
            self.particles.append(
                make_particle(
                    b["x"] + b["width"] / 2,
                    b["y"] + b["height"] / 2,
                    (random.random() - 0.5) * 6,
                    (random.random() - 0.5) * 6,
                    EYE_COLOR,
                    size=random.random() * 6 + 3,
                    kind="score",
                )
            )

    def update(self, joystick):
        if self.state == STATE_PLAYING:
            self.update_bird()
            self.update_pipes()
            self.check_collisions()
        update_particles(self.particles)
        if self.state == STATE_GAME_OVER:
            # let the explosion play out before leaving
            self.death_timer -= 1
            return self.death_timer > 0
        return True

    # ----- drawing -----
    def _draw_bird(self):
        b = self.bird
        v = self.view
        cx = b["x"] + b["width"] / 2
        cy = b["y"] + b["height"] / 2
        a = math.radians(b["rotation"])
        cos_a = math.cos(a)
        sin_a = math.sin(a)
        half = b["width"] / 2
        # sample a box around the bird and keep points inside the rotated square
        reach = half * 1.5
        step = 1 / v.sx
        y = -reach
        while y <= reach:
            x = -reach
            while x <= reach:
                lx = x * cos_a + y * sin_a
                ly = -x * sin_a + y * cos_a
                if abs(lx) <= half and abs(ly) <= half:
                    eye = (
                        -half / 2 <= lx <= -half / 2 + 8
                        and -half * 2 / 3 <= ly <= -half * 2 / 3 + 8
                    )
                    col = EYE_COLOR if eye else BIRD_COLOR
                    v.set_pixel(cx + x, cy + y, *col)
                x += step
            y += step

    def draw(self):
        v = self.view
        draw_play_rect(0, 0, WIDTH, PLAY_HEIGHT, 0, 0, 0)
        # frame around the world
        draw_play_rect(v.x0 - 1, 0, 1, PLAY_HEIGHT, 0, 60, 70)
        draw_play_rect(v.x0 + v.w, 0, 1, PLAY_HEIGHT, 0, 60, 70)

        for pipe in self.pipes:
            v.fill_rect(pipe["x"], 0, PIPE_WIDTH, pipe["top_height"], *PIPE_COLOR)
            v.fill_rect(pipe["x"], pipe["bottom_y"], PIPE_WIDTH, WORLD_H - pipe["bottom_y"], *PIPE_COLOR)
            v.fill_rect(pipe["x"] + 5, 0, 5, pipe["top_height"], 220, 140, 255)
            v.fill_rect(pipe["x"] + 5, pipe["bottom_y"], 5, WORLD_H - pipe["bottom_y"], 220, 140, 255)

        b = self.bird
        for point in b["trail"]:
            size = b["width"] * 0.8 * point["alpha"]
            if size <= 0:
                continue
            off = (b["width"] - size) / 2
            v.fill_rect(point["x"] + off, point["y"] + off, size, size, *fade(TRAIL_COLOR, point["alpha"] * 0.5))

        if self.state != STATE_GAME_OVER:
            self._draw_bird()

        for p in self.particles:
            half = p["size"] / 2
            v.fill_rect(p["x"] - half, p["y"] - half, p["size"], p["size"], *fade(p["color"], p["life"]))

        if self.state == STATE_START:
            draw_text_centered(30, "FLAPPY", 0, 245, 255)
            draw_text_centered(90, "Z TO FLAP", 255, 255, 255, small=True)
