"""
Neon Snake: classic snake on a 20x20 board with hazards that multiply as the
score grows.
"""

import logging
import math
import random

from arcade_app import (
    JOYSTICK_DOWN,
    JOYSTICK_LEFT,
    JOYSTICK_RIGHT,
    JOYSTICK_UP,
    PLAY_HEIGHT,
    display,
    draw_play_rect,
    draw_rect_outline,
    draw_text_centered,
    ticks_ms,
    ticks_diff,
)
from game_utils import BaseGame, fade, spawn_burst, update_particles

logger = logging.getLogger("arcade.snake")

TILE_COUNT = 20
TILE = 6
BOARD_X = 20
BOARD_Y = 0
START = (10, 10)

START_SPEED = 150
MIN_SPEED = 80
SPEED_STEP = 2

OBSTACLE_TYPES = ("wall", "spike", "toxic")
BASE_OBSTACLES = 3
MAX_OBSTACLES = 15
BASE_SPAWN_RATE = 0.02
MAX_SPAWN_RATE = 0.08
SPAWN_ATTEMPTS = 50

HEAD_COLOR = (0, 245, 255)
BODY_COLOR = (191, 0, 255)
FOOD_COLOR = (57, 255, 20)
OBSTACLE_COLORS = {
    "wall": (255, 0, 128),
    "spike": (255, 69, 0),
    "toxic": (148, 0, 211),
}

VECTORS = {
    JOYSTICK_UP: (0, -1),
    JOYSTICK_DOWN: (0, 1),
    JOYSTICK_LEFT: (-1, 0),
    JOYSTICK_RIGHT: (1, 0),
}
OPPOSITES = {
    JOYSTICK_UP: JOYSTICK_DOWN,
    JOYSTICK_DOWN: JOYSTICK_UP,
    JOYSTICK_LEFT: JOYSTICK_RIGHT,
    JOYSTICK_RIGHT: JOYSTICK_LEFT,
}


class SnakeGame(BaseGame):
    """
    Snake that grows on food and dies on walls, itself or obstacles.

    The snake sits still on the start tile until the first direction is
    given. Each food is worth 10 points and speeds the snake up by 2 ms per
    step down to 80 ms.
    """

    name = "SNAKE"

    def __init__(self):
        super().__init__()
        self.frame_ms = 16
        self.reset()

    def reset(self):
        """Start a fresh round: one-tile snake, new obstacles and food."""
        super().reset()
        self.snake = [START]
        self.dx = 0
        self.dy = 0
        self.stepped = (0, 0)
        self.speed = START_SPEED
        self.paused = False
        self.over = False
        self.obstacles = []
        self.food = None
        self.particles = []
        self.last_move = ticks_ms()
        self._z_prev = True
        self.generate_initial_obstacles()
        self.generate_food()

    # ----- rules -----
    def current_direction(self):
        for d, vec in VECTORS.items():
            if vec == (self.dx, self.dy):
                return d
        return None

    def change_direction(self, direction):
        """Steer the snake; reversing straight into itself is ignored."""
        if self.paused or self.over or direction not in VECTORS:
            return False
        current = self.current_direction()
        if current is not None and direction == OPPOSITES[current]:
            return False
        # several turns can land between two steps
        dx, dy = VECTORS[direction]
        if self.stepped == (-dx, -dy):
            return False
        self.dx, self.dy = dx, dy
        return True

    def toggle_pause(self):
        if self.over:
            return
        self.paused = not self.paused

    def _occupied(self, pos):
        return (
            pos in self.snake
            or any((o["x"], o["y"]) == pos for o in self.obstacles)
        )

    def generate_food(self):
        """Place food uniformly over the tiles not covered by snake or obstacles."""
        free = [
            (x, y)
            for y in range(TILE_COUNT)
            for x in range(TILE_COUNT)
            if not self._occupied((x, y))
        ]
        self.food = random.choice(free) if free else None
        return self.food

    def spawn_random_obstacle(self):
        """Try to drop one random hazard on a free tile; False if no spot was found."""
        kind = random.choice(OBSTACLE_TYPES)
        for _ in range(SPAWN_ATTEMPTS):
            pos = (random.randrange(TILE_COUNT), random.randrange(TILE_COUNT))
            if self._occupied(pos) or pos == self.food or pos == START:
                continue
            self.obstacles.append({"x": pos[0], "y": pos[1], "type": kind})
            return True
        return False

    def generate_initial_obstacles(self):
        self.obstacles = []
        for _ in range(BASE_OBSTACLES + random.randint(0, 1)):
            self.spawn_random_obstacle()

    def max_obstacles(self):
        return min(MAX_OBSTACLES, BASE_OBSTACLES + self.score // 20)

    def spawn_rate(self):
        return min(MAX_SPAWN_RATE, BASE_SPAWN_RATE + self.score / 800)

    def generate_obstacles(self):
        """Maybe add a hazard after eating, more often as the score grows."""
        if len(self.obstacles) < self.max_obstacles() and random.random() < self.spawn_rate():
            self.spawn_random_obstacle()

    def obstacle_at(self, pos):
        for o in self.obstacles:
            if (o["x"], o["y"]) == pos:
                return o
        return None

    def step(self):
        """
        Advance the snake one tile.

        Returns False when the move was fatal, True otherwise (including when
        the snake has not started moving yet or the game is paused).
        """
        if self.over:
            return False
        if self.paused or (self.dx == 0 and self.dy == 0):
            return True

        self.stepped = (self.dx, self.dy)
        hx, hy = self.snake[0]
        head = (hx + self.dx, hy + self.dy)

        if not (0 <= head[0] < TILE_COUNT and 0 <= head[1] < TILE_COUNT):
            return self._die(self.snake[0], "wall")
        if head in self.snake:
            return self._die(head, "self")
        hit = self.obstacle_at(head)
        if hit is not None:
            return self._die(head, hit["type"])

        self.snake.insert(0, head)

        if head == self.food:
            self.score += 10
            self._burst(head, 8, (FOOD_COLOR, HEAD_COLOR))
            if self.speed > MIN_SPEED:
                self.speed = max(MIN_SPEED, self.speed - SPEED_STEP)
            self.generate_food()
            self.generate_obstacles()
        else:
            self.snake.pop()
        return True

    def _die(self, pos, cause):
        self.over = True
        self._burst(pos, 15, (OBSTACLE_COLORS["wall"], BODY_COLOR))
        logger.info("Snake died (%s) with score %d, length %d", cause, self.score, len(self.snake))
        return False

    def _burst(self, tile, count, colors):
        cx, cy = self._tile_px(tile)
        for i in range(count):
            spawn_burst(self.particles, cx + TILE / 2, cy + TILE / 2, 1, colors[i % 2], speed=1.5, size=2.0)

    # ----- frame hooks -----
    def poll(self, joystick):
        d = joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN, JOYSTICK_LEFT, JOYSTICK_RIGHT])
        if d:
            self.change_direction(d)
        _, z = joystick.nunchuck.buttons()
        if z and not self._z_prev:
            self.toggle_pause()
        self._z_prev = z
        if joystick.key_pressed("R"):
            logger.debug("Snake restart")
            self.reset()

    def update(self, joystick):
        update_particles(self.particles, gravity=0.0, decay=0.05)
        now = ticks_ms()
        if ticks_diff(now, self.last_move) < self.speed:
            return True
        self.last_move = now
        return self.step()

    def status_text(self):
        if self.paused:
            return "PAUSE"
        return "OBS " + str(len(self.obstacles))

    # ----- drawing -----
    def _tile_px(self, tile):
        return (BOARD_X + tile[0] * TILE, BOARD_Y + tile[1] * TILE)

    def draw(self):
        draw_play_rect(0, 0, 160, PLAY_HEIGHT, 0, 0, 0)
        # faint grid dots
        for ty in range(0, TILE_COUNT + 1, 2):
            for tx in range(0, TILE_COUNT + 1, 2):
                display.set_pixel(BOARD_X + tx * TILE, BOARD_Y + ty * TILE, 0, 40, 44)
        draw_rect_outline(BOARD_X - 1, BOARD_Y, BOARD_X + TILE_COUNT * TILE, PLAY_HEIGHT - 1, 0, 90, 100)

        pulse = 0.7 + 0.3 * math.sin(self.frame * 0.2)
        for o in self.obstacles:
            x, y = self._tile_px((o["x"], o["y"]))
            color = OBSTACLE_COLORS[o["type"]]
            if o["type"] == "wall":
                draw_play_rect(x, y, TILE, TILE, *color)
            elif o["type"] == "spike":
                draw_play_rect(x + 2, y, 2, TILE, *color)
                draw_play_rect(x, y + 2, TILE, 2, *color)
            else:
                draw_play_rect(x + 1, y + 1, TILE - 2, TILE - 2, *fade(color, pulse))

        if self.food is not None:
            x, y = self._tile_px(self.food)
            draw_play_rect(x + 1, y + 1, TILE - 2, TILE - 2, *fade(FOOD_COLOR, pulse))

        n = len(self.snake)
        for i, seg in enumerate(self.snake):
            x, y = self._tile_px(seg)
            if i == 0:
                draw_play_rect(x, y, TILE, TILE, *HEAD_COLOR)
                display.set_pixel(x + 1, y + 1, 0, 0, 0)
                display.set_pixel(x + 4, y + 1, 0, 0, 0)
            else:
                intensity = 0.3 + 0.7 * (n - i) / n
                draw_play_rect(x + 1, y + 1, TILE - 2, TILE - 2, *fade(BODY_COLOR, intensity))

        for p in self.particles:
            draw_play_rect(int(p["x"]), int(p["y"]), max(1, int(p["size"])), max(1, int(p["size"])), *p["color"])

        if self.paused:
            draw_text_centered(50, "PAUSED", 255, 255, 255)
        elif self.dx == 0 and self.dy == 0:
            draw_text_centered(100, "MOVE TO START", 0, 245, 255, small=True)
