"""
Shared game utilities for Neon Arcade.

This module provides reusable components and helper functions used across
the five games so each game module only carries its own rules.

Components:
- ShadowBuffer: Display wrapper that tracks pixel changes for efficient updates
- BaseGame: Base class providing the common frame loop (sync and async)
- WorldView: Maps a game's own world units onto the low-res play area
- Geometry, shuffling, time formatting and particle helpers
"""

import asyncio
import math
import random


class ShadowBuffer:
    """
    Display wrapper that tracks pixel changes to minimize redundant updates.

    This class wraps a display object and maintains a shadow copy of the
    current display state. It only forwards set_pixel calls when a pixel's
    color actually changes, so a game may redraw its whole scene every frame
    while the scaled PyGame surface only sees the differences.
    """

    def __init__(self, width, height, display):
        """
        Initialize the shadow buffer.

        Args:
            width (int): Display width in pixels
            height (int): Display height in pixels
            display: Underlying display object with set_pixel, clear, start methods
        """
        self.width = width
        self.height = height
        self.display = display
        # None marks an "unknown" pixel that must be written next time
        self.shadow = [[None for _ in range(width)] for _ in range(height)]

    def set_pixel(self, x, y, r, g, b):
        """
        Set a pixel, but only update display if the color changed.

        Args:
            x, y (int): Pixel coordinates
            r, g, b (int): RGB color values (0-255)
        """
        x = int(x)
        y = int(y)
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return

        color = (int(r), int(g), int(b))

        if self.shadow[y][x] != color:
            self.shadow[y][x] = color
            self.display.set_pixel(x, y, r, g, b)

    def get_pixel(self, x, y):
        """Return the last colour written at (x, y), or None when unknown."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return None
        return self.shadow[y][x]

    def clear(self):
        """Clear the display and reset shadow buffer."""
        for y in range(self.height):
            row = self.shadow[y]
            for x in range(self.width):
                row[x] = None
        self.display.clear()

    def start(self):
        """Initialize the underlying display."""
        if hasattr(self.display, 'start'):
            self.display.start()

    def show(self):
        """Present the frame to the display."""
        if hasattr(self.display, 'show'):
            self.display.show()


# ---------- Geometry ----------
def clamp(value, lo, hi):
    """Clamp `value` into the closed range [lo, hi]."""
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


def rects_overlap(ax, ay, aw, ah, bx, by, bw, bh):
    """Return True when two axis-aligned rectangles strictly overlap.

    Touching edges do not count as a collision.
    """
    return ax < bx + bw and ax + aw > bx and ay < by + bh and ay + ah > by


def point_in_rect(px, py, x, y, w, h):
    """Return True when (px, py) lies inside the rectangle, edges included."""
    return x <= px <= x + w and y <= py <= y + h


def distance(x0, y0, x1, y1):
    """Euclidean distance between two points."""
    return math.sqrt((x1 - x0) * (x1 - x0) + (y1 - y0) * (y1 - y0))


# ---------- Randomness ----------
def shuffle_in_place(seq):
    """
    Perform an in-place Fisher-Yates shuffle on the given sequence.

    Draws from the module-level `random` generator so tests can make deals
    reproducible with `random.seed`.

    Args:
        seq (list): The sequence to shuffle.
    """
    n = len(seq)
    for i in range(n - 1, 0, -1):
        j = random.randint(0, i)
        seq[i], seq[j] = seq[j], seq[i]
    return seq


def shuffled(seq):
    """Return a shuffled copy of `seq`, leaving the original untouched."""
    out = list(seq)
    shuffle_in_place(out)
    return out


def format_time(ms):
    """Format a millisecond duration as ``MM:SS`` (minutes are not capped)."""
    total = max(0, int(ms)) // 1000
    return "{:02}:{:02}".format(total // 60, total % 60)


# ---------- Particles ----------
def make_particle(x, y, vx, vy, color, size=3.0, life=1.0, kind="spark"):
    """Create a particle dict in the shape shared by every game."""
    return {
        "x": float(x),
        "y": float(y),
        "vx": float(vx),
        "vy": float(vy),
        "size": float(size),
        "color": color,
        "life": float(life),
        "kind": kind,
    }


def spawn_burst(particles, x, y, count, color, speed=4.0, size=3.0, kind="spark"):
    """Append `count` particles flying out of (x, y) in random directions.

    Sizes and speeds are jittered so bursts do not look uniform.
    """
    for _ in range(count):
        angle = random.random() * 2 * math.pi
        v = speed * (0.5 + random.random() * 0.5)
        particles.append(
            make_particle(
                x,
                y,
                math.cos(angle) * v,
                math.sin(angle) * v,
                color,
                size=size * (0.6 + random.random() * 0.8),
                kind=kind,
            )
        )
    return particles


def update_particles(particles, gravity=0.1, decay=0.02, shrink=0.98):
    """Advance particles one frame in place and drop the dead ones.

    A particle dies when its life reaches zero or it has shrunk to half a
    unit or less.
    """
    alive = []
    for p in particles:
        p["x"] += p["vx"]
        p["y"] += p["vy"]
        p["vy"] += gravity
        p["life"] -= decay
        p["size"] *= shrink
        if p["life"] > 0 and p["size"] > 0.5:
            alive.append(p)
    particles[:] = alive
    return particles


def fade(color, amount):
    """Scale an (r, g, b) colour towards black by `amount` in [0, 1]."""
    a = clamp(amount, 0.0, 1.0)
    return (int(color[0] * a), int(color[1] * a), int(color[2] * a))


class WorldView:
    """
    Maps a game's own coordinate system onto a rectangle of the display.

    Flappy (400x600) and the zombie town (800x600) keep their world units;
    this view scales positions and sizes so drawing code can stay in world
    coordinates.
    """

    def __init__(self, world_w, world_h, x0, y0, w, h):
        self.world_w = world_w
        self.world_h = world_h
        self.x0 = x0
        self.y0 = y0
        self.w = w
        self.h = h
        self.sx = w / float(world_w)
        self.sy = h / float(world_h)

    def to_screen(self, wx, wy):
        """World point -> display pixel (ints)."""
        return (int(self.x0 + wx * self.sx), int(self.y0 + wy * self.sy))

    def to_world(self, px, py):
        """Display pixel -> world point (floats)."""
        return ((px - self.x0) / self.sx, (py - self.y0) / self.sy)

    def scale_len(self, length):
        """Scale a world length to display pixels, never below one pixel."""
        return max(1, int(round(length * min(self.sx, self.sy))))

    def fill_rect(self, wx, wy, ww, wh, r, g, b):
        """Fill a world rectangle, clipped to the view."""
        import arcade_app

        x1, y1 = self.to_screen(wx, wy)
        x2 = int(self.x0 + (wx + ww) * self.sx) - 1
        y2 = int(self.y0 + (wy + wh) * self.sy) - 1
        if x2 < x1:
            x2 = x1
        if y2 < y1:
            y2 = y1
        x1 = max(x1, self.x0)
        y1 = max(y1, self.y0)
        x2 = min(x2, self.x0 + self.w - 1)
        y2 = min(y2, self.y0 + self.h - 1)
        if x1 > x2 or y1 > y2:
            return
        arcade_app.draw_rectangle(x1, y1, x2, y2, r, g, b)

    def set_pixel(self, wx, wy, r, g, b):
        """Plot a single world point if it falls inside the view."""
        import arcade_app

        px, py = self.to_screen(wx, wy)
        if self.x0 <= px < self.x0 + self.w and self.y0 <= py < self.y0 + self.h:
            arcade_app.display.set_pixel(px, py, r, g, b)


class BaseGame:
    """
    Base class for arcade games providing common structure and utilities.

    This class implements the common pattern used by every game:
    - Initialization with score and frame counters
    - Main game loop with input handling
    - Async version for browser compatibility
    - Common exit handling (C button to quit)

    Subclasses should override:
    - reset(): Initialize/reset game state
    - poll(joystick): Capture edge-triggered input between frames
    - update(joystick): Update game logic for one frame
    - draw(): Render the current game state
    - status_text(): Short text for the right side of the HUD
    """

    name = "GAME"

    def __init__(self):
        """Initialize base game state."""
        self._score = 0
        self.frame = 0
        self.last_frame_time = 0
        self.frame_ms = 33  # ~30 FPS default

    def reset(self):
        """
        Reset game state to initial values.

        Override this in subclasses to initialize game-specific state.
        Always call super().reset() to reset base state.
        """
        self._score = 0
        self.frame = 0

    @property
    def score(self):
        """Points so far. Games that derive their score override this read-only."""
        return self._score

    @score.setter
    def score(self, value):
        self._score = value

    def poll(self, joystick):
        """Called on every loop iteration, before frame pacing."""
        pass

    def update(self, joystick):
        """
        Update game logic for one frame.

        Override this in subclasses to implement game-specific logic.
        Return False to end the game loop as game over.

        Args:
            joystick: Joystick/input handler object

        Returns:
            bool: True to continue, False to end the run
        """
        return True

    def draw(self):
        """
        Render the current game state.

        Override this in subclasses to draw game-specific graphics.
        """
        pass

    def status_text(self):
        """Right-hand HUD text; None shows the wall clock."""
        return None

    def _begin(self):
        import arcade_app

        arcade_app.game_over = False
        arcade_app.global_score = 0

        self.reset()
        arcade_app.display.clear()
        arcade_app.display_score_and_time(0, force=True)
        self.last_frame_time = arcade_app.ticks_ms()

    def _tick(self, joystick):
        """Run one loop iteration.

        Returns True when the loop should end, False when the next frame is
        not due yet and None after a frame was updated and drawn.
        """
        import arcade_app

        # Check for exit
        c_button, _ = joystick.nunchuck.buttons()
        if c_button:
            return True

        self.poll(joystick)

        # Frame timing
        now = arcade_app.ticks_ms()
        if arcade_app.ticks_diff(now, self.last_frame_time) < self.frame_ms:
            return False
        self.last_frame_time = now
        self.frame += 1

        if not self.update(joystick):
            arcade_app.global_score = self.score
            arcade_app.game_over = True
            return True

        self.draw()
        arcade_app.display_score_and_time(self.score, status=self.status_text())
        arcade_app.global_score = self.score

        if self.frame % 60 == 0:
            arcade_app.maybe_collect(1)
        return None

    def main_loop(self, joystick):
        """
        Standard synchronous game loop.

        This implements the common pattern:
        1. Reset game state
        2. Loop:
           a. Check for exit (C button)
           b. Poll edge-triggered input
           c. Update game logic
           d. Draw frame
           e. Control frame rate

        Subclasses can override this for custom loop logic, but most
        games can just override reset(), update(), and draw().
        """
        # Import arcade_app globals at runtime to avoid circular imports
        import arcade_app

        self._begin()

        while not arcade_app.game_over:
            try:
                done = self._tick(joystick)
                if done:
                    return
                if done is False:
                    arcade_app.sleep_ms(2)
            except arcade_app.RestartProgram:
                return

    async def main_loop_async(self, joystick):
        """
        Async version of main loop for browser compatibility.

        This mirrors main_loop() but yields to the event loop between
        frames to keep the browser responsive.
        """
        import arcade_app

        self._begin()

        while not arcade_app.game_over:
            try:
                done = self._tick(joystick)
                if done:
                    return
                if done is False:
                    await asyncio.sleep(0.002)
                    continue
                # Yield to event loop
                await asyncio.sleep(0)
            except arcade_app.RestartProgram:
                return
