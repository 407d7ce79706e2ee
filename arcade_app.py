"""
This file contains the core runtime for the arcade: display handling, bitmap
fonts, drawing helpers, HUD, keyboard/mouse input, high scores, menus and the
game selector. It runs on desktop CPython with PyGame and in the browser
through pygbag, where every loop has an async twin that yields to the page.
"""

import asyncio
import gc
import json
import logging
import time
from typing import Any

import config
import env
import game_utils

logger = logging.getLogger("arcade.app")

# Module-level runtime objects, bound below.
display: Any = None


def _boot_log(tag):
    """
    Log a boot-time milestone at DEBUG level.

    Args:
        tag (str): A descriptive tag for the log message.
    """
    logger.debug("BOOT: %s", tag)


_boot_log("import start")

# ---------- Runtime detection ----------
IS_PYGBAG = env.is_browser
IS_DESKTOP = env.is_desktop

_boot_log("runtime detect")

# ---------- Geometry ----------
WIDTH = 160
HEIGHT = 128

HUD_HEIGHT = 8
PLAY_HEIGHT = HEIGHT - HUD_HEIGHT  # 120


# ---------- Timing ----------
def sleep_ms(ms):
    """
    Sleep for the specified number of milliseconds, flushing the display first.

    In the browser a blocking sleep would freeze the page, so only the flush
    happens there; async loops await `asyncio.sleep` instead.

    Args:
        ms (int): The number of milliseconds to sleep.
    """
    display_flush()
    if IS_PYGBAG:
        return
    time.sleep(ms / 1000)


def ticks_ms():
    """
    Return the current time in milliseconds.

    Also performs a lightweight display flush at ~60Hz to keep the desktop
    window responsive without forcing a full frame every call.
    """
    now = int(time.time() * 1000)
    last = getattr(ticks_ms, "_last_flush", 0)
    if (now - last) >= 16:
        setattr(ticks_ms, "_last_flush", now)
        display_flush()
    return now


def ticks_diff(a, b):
    """Return the difference between two tick values (a - b)."""
    return a - b


_gc_ctr = 0


def maybe_collect(period=90):
    """
    Perform garbage collection periodically.

    Args:
        period (int): The number of calls before triggering garbage collection.
    """
    global _gc_ctr
    _gc_ctr += 1
    if _gc_ctr >= period:
        _gc_ctr = 0
        gc.collect()


# ---------- Display ----------
class _PyGameDisplay:
    """Scaled PyGame window emulating a WIDTH x HEIGHT pixel panel."""

    def __init__(self, w, h, scale=5):
        """
        Args:
            w (int): Display width in pixels.
            h (int): Display height in pixels.
            scale (int): Window scaling factor.
        """
        self.w = int(w)
        self.h = int(h)
        self.scale = int(scale)
        self._pg = None
        self._screen = None
        self._surface = None
        self._inited = False

    @property
    def started(self):
        return self._inited

    def start(self):
        """
        Initialize the PyGame display and internal surfaces.

        This method is idempotent and will do nothing if initialization
        has already been performed.
        """
        if self._inited:
            return
        try:
            import pygame  # type: ignore
        except Exception as e:
            raise RuntimeError(
                "PyGame not installed. Install with: pip install pygame"
            ) from e
        self._pg = pygame
        pygame.init()
        # Audio init in the browser waits for a user gesture; nothing here
        # plays sound.
        if IS_PYGBAG and hasattr(pygame, "mixer"):
            try:
                pygame.mixer.quit()
            except Exception:
                logger.debug("mixer.quit failed", exc_info=True)
        pygame.display.set_caption("Neon Arcade")
        self._screen = pygame.display.set_mode(
            (self.w * self.scale, self.h * self.scale)
        )
        self._surface = pygame.Surface((self.w, self.h))
        self._inited = True
        self.clear()
        self.show()
        logger.info(
            "Display started: %dx%d at scale %d (%s)",
            self.w,
            self.h,
            self.scale,
            env.get_platform_name(),
        )
        if env.is_headless:
            logger.info("SDL dummy video driver active, nothing will be shown")

    def set_pixel(self, x, y, r, g, b):
        """
        Set a pixel on the internal surface with bounds checking.

        Args:
            x, y (int): Pixel coordinates.
            r, g, b (int): Color channels (0-255).
        """
        if not self._surface:
            return
        if 0 <= x < self.w and 0 <= y < self.h:
            self._surface.set_at(
                (int(x), int(y)), (int(r) & 255, int(g) & 255, int(b) & 255)
            )

    def clear(self):
        """Clear the internal surface by filling it with black."""
        if self._surface:
            self._surface.fill((0, 0, 0))

    def show(self):
        """
        Present the internal surface to the PyGame window (scaled).

        Also pumps the event queue to keep the desktop window responsive and
        exits when the window was closed.
        """
        if not self._pg or not self._screen or not self._surface:
            return
        pg = self._pg
        pg.event.pump()
        if pg.event.peek(pg.QUIT):
            logger.info("Window closed, exiting")
            pg.quit()
            raise SystemExit(0)
        scaled = pg.transform.scale(
            self._surface, (self.w * self.scale, self.h * self.scale)
        )
        self._screen.blit(scaled, (0, 0))
        pg.display.flip()

    def to_logical(self, wx, wy):
        """Window pixel -> display pixel."""
        return (int(wx) // self.scale, int(wy) // self.scale)


_pygame_display = _PyGameDisplay(WIDTH, HEIGHT, scale=config.SCALE)

# Only forward pixels whose colour changed.
display = game_utils.ShadowBuffer(WIDTH, HEIGHT, _pygame_display)
_boot_log("display wrapped with ShadowBuffer")


def display_flush():
    """Present the current frame to the window."""
    display.show()


def draw_play_rect(x, y, w, h, r, g, b):
    """
    Draw a filled rectangle restricted to the play area (leaving HUD untouched).

    Args:
        x, y, w, h (int): Rectangle position and size.
        r, g, b (int): Color.
    """
    x1 = x
    y1 = y
    x2 = x + w - 1
    y2 = y + h - 1
    if y2 < 0 or y1 >= PLAY_HEIGHT:
        return
    if y1 < 0:
        y1 = 0
    if y2 >= PLAY_HEIGHT:
        y2 = PLAY_HEIGHT - 1
    draw_rectangle(x1, y1, x2, y2, r, g, b)


# ---------- Global state ----------
global_score = 0
game_over = False

# ---------- Colors ----------
WHITE = (255, 255, 255)
GREY = (111, 111, 111)

# ---------- Joystick directions ----------
JOYSTICK_UP = "UP"
JOYSTICK_DOWN = "DOWN"
JOYSTICK_LEFT = "LEFT"
JOYSTICK_RIGHT = "RIGHT"
JOYSTICK_UP_LEFT = "UP-LEFT"
JOYSTICK_UP_RIGHT = "UP-RIGHT"
JOYSTICK_DOWN_LEFT = "DOWN-LEFT"
JOYSTICK_DOWN_RIGHT = "DOWN-RIGHT"

DIRECTIONS_4 = (JOYSTICK_UP, JOYSTICK_DOWN, JOYSTICK_LEFT, JOYSTICK_RIGHT)
DIRECTIONS_8 = DIRECTIONS_4 + (
    JOYSTICK_UP_LEFT,
    JOYSTICK_UP_RIGHT,
    JOYSTICK_DOWN_LEFT,
    JOYSTICK_DOWN_RIGHT,
)

# Unit vectors in screen space (y grows downwards)
DIRECTION_VECTORS = {
    JOYSTICK_UP: (0, -1),
    JOYSTICK_DOWN: (0, 1),
    JOYSTICK_LEFT: (-1, 0),
    JOYSTICK_RIGHT: (1, 0),
    JOYSTICK_UP_LEFT: (-1, -1),
    JOYSTICK_UP_RIGHT: (1, -1),
    JOYSTICK_DOWN_LEFT: (-1, 1),
    JOYSTICK_DOWN_RIGHT: (1, 1),
}


# ---------- Fonts ----------
def _get_char_dict():
    """Return a mapping of characters to their 8x8 hex font rows."""
    return {
        "A": "3078ccccfccccc00",
        "B": "fc66667c6666fc00",
        "C": "3c66c0c0c0663c00",
        "D": "f86c6666666cf800",
        "E": "fe6268786862fe00",
        "F": "fe6268786860f000",
        "G": "3c66c0c0ce663e00",
        "H": "ccccccfccccccc00",
        "I": "7830303030307800",
        "J": "1e0c0c0ccccc7800",
        "K": "f6666c786c66f600",
        "L": "f06060606266fe00",
        "M": "c6eefefed6c6c600",
        "N": "c6e6f6decec6c600",
        "O": "386cc6c6c66c3800",
        "P": "fc66667c6060f000",
        "Q": "78ccccccdc781c00",
        "R": "fc66667c6c66f600",
        "S": "78cce0380ccc7800",
        "T": "fcb4303030307800",
        "U": "ccccccccccccfc00",
        "V": "cccccccccc783000",
        "W": "c6c6c6d6feeec600",
        "X": "c6c66c38386cc600",
        "Y": "cccccc7830307800",
        "Z": "fec68c183266fe00",
        "0": "78ccdcfceccc7c00",
        "1": "307030303030fc00",
        "2": "78cc0c3860ccfc00",
        "3": "78cc0c380ccc7800",
        "4": "1c3c6cccfe0c1e00",
        "5": "fcc0f80c0ccc7800",
        "6": "3860c0f8cccc7800",
        "7": "fccc0c1830303000",
        "8": "78cccc78cccc7800",
        "9": "78cccc7c0c187000",
        "!": "3078783030003000",
        "#": "6c6cfe6cfe6c6c00",
        "$": "307cc0780cf83000",
        "%": "00c6cc183066c600",
        "&": "386c3876dccc7600",
        "?": "78cc0c1830003000",
        " ": "0000000000000000",
        ".": "0000000000003000",
        ":": "0030000000300000",
        "(": "0c18303030180c00",
        ")": "6030180c18306000",
        "-": "000000fc00000000",
        ">": "6030180c18306000",
        "<": "0c18306030180c00",
    }


def _get_nums_dict():
    """Return the 5x5 bitmap font definitions used for small-text rendering."""
    return {
        "0": ["01110", "10001", "10001", "10001", "01110"],
        "1": ["00100", "01100", "00100", "00100", "01110"],
        "2": ["11110", "00001", "01110", "10000", "11111"],
        "3": ["11110", "00001", "00110", "00001", "11110"],
        "4": ["10000", "10010", "10010", "11111", "00010"],
        "5": ["11111", "10000", "11110", "00001", "11110"],
        "6": ["01110", "10000", "11110", "10001", "01110"],
        "7": ["11111", "00010", "00100", "01000", "10000"],
        "8": ["01110", "10001", "01110", "10001", "01110"],
        "9": ["01110", "10001", "01111", "00001", "01110"],
        "A": ["01110", "10001", "10001", "11111", "10001"],
        "B": ["11110", "10001", "11110", "10001", "11110"],
        "C": ["01110", "10001", "10000", "10001", "01110"],
        "D": ["11100", "10010", "10001", "10010", "11100"],
        "E": ["11111", "10000", "11110", "10000", "11111"],
        "F": ["11111", "10000", "11110", "10000", "10000"],
        "G": ["01110", "10000", "10111", "10001", "01110"],
        "H": ["10001", "10001", "11111", "10001", "10001"],
        "I": ["01110", "00100", "00100", "00100", "01110"],
        "J": ["00111", "00010", "00010", "10010", "01100"],
        "K": ["10010", "10100", "11000", "10100", "10010"],
        "L": ["10000", "10000", "10000", "10000", "11111"],
        "M": ["10001", "11011", "10101", "10001", "10001"],
        "N": ["10001", "11001", "10101", "10011", "10001"],
        "O": ["01110", "10001", "10001", "10001", "01110"],
        "P": ["11110", "10001", "11110", "10000", "10000"],
        "Q": ["01110", "10001", "10001", "10011", "01111"],
        "R": ["11110", "10001", "11110", "10010", "10001"],
        "S": ["01111", "10000", "01110", "00001", "11110"],
        "T": ["11111", "00100", "00100", "00100", "00100"],
        "U": ["10001", "10001", "10001", "10001", "01110"],
        "V": ["10001", "10001", "10001", "01010", "00100"],
        "W": ["10001", "10001", "10101", "11011", "10001"],
        "X": ["10001", "01010", "00100", "01010", "10001"],
        "Y": ["10001", "01010", "00100", "00100", "00100"],
        "Z": ["11111", "00010", "00100", "01000", "11111"],
        " ": ["00000", "00000", "00000", "00000", "00000"],
        ".": ["00000", "00000", "00000", "00000", "00001"],
        ":": ["00000", "00100", "00000", "00100", "00000"],
        "/": ["00001", "00010", "00100", "01000", "10000"],
        "|": ["00100", "00100", "00100", "00100", "00100"],
        "-": ["00000", "00000", "11111", "00000", "00000"],
        "=": ["00000", "11111", "00000", "11111", "00000"],
        "+": ["00000", "00100", "01110", "00100", "00000"],
        "*": ["00000", "10101", "01110", "10101", "00000"],
        "(": ["00010", "00100", "00100", "00100", "00010"],
        ")": ["00100", "00010", "00010", "00010", "00100"],
        "$": ["01111", "10100", "01110", "00101", "11110"],
        "!": ["00100", "00100", "00100", "00000", "00100"],
        "?": ["01110", "00001", "00110", "00000", "00100"],
        "<": ["00010", "00100", "01000", "00100", "00010"],
        ">": ["01000", "00100", "00010", "00100", "01000"],
        "#": ["01010", "11111", "01010", "11111", "01010"],
        "%": ["11001", "11010", "00100", "01011", "10011"],
    }


# Lazy caches filled on first use
_FONT8_CACHE = None
_FONT5_CACHE = None


def _get_font8(ch):
    """Return 8 row-bytes for a character (8x8 font)."""
    global _FONT8_CACHE
    cache = _FONT8_CACHE
    if cache is None:
        cache = {}
        _FONT8_CACHE = cache

    v = cache.get(ch)
    if v is not None:
        return v

    table = _get_char_dict()
    hs = table.get(ch) or table[" "]
    rows = bytes.fromhex(hs)
    cache[ch] = rows
    return rows


def _get_font5(ch):
    """Return 5 row bitmasks for a character (5x5 font)."""
    global _FONT5_CACHE
    cache = _FONT5_CACHE
    if cache is None:
        cache = {}
        _FONT5_CACHE = cache

    v = cache.get(ch)
    if v is not None:
        return v

    table = _get_nums_dict()
    rows = table.get(ch) or table[" "]
    out = tuple(int(row, 2) for row in rows)
    cache[ch] = out
    return out


# ---------- Drawing ----------
def _parse_color(color):
    if len(color) == 1 and isinstance(color[0], (tuple, list)):
        color = tuple(color[0])
    if len(color) != 3:
        raise ValueError("color must be a tuple/list or three integers")
    return color


def draw_rectangle(x1, y1, x2, y2, r, g, b):
    """
    Draw a filled rectangle between two coordinates on the full display.
    Handles out-of-bounds clipping to the display extents.
    """
    x1 = int(x1)
    y1 = int(y1)
    x2 = int(x2)
    y2 = int(y2)
    if x1 > x2:
        x1, x2 = x2, x1
    if y1 > y2:
        y1, y2 = y2, y1
    if x2 < 0 or y2 < 0 or x1 >= WIDTH or y1 >= HEIGHT:
        return
    if x1 < 0:
        x1 = 0
    if y1 < 0:
        y1 = 0
    if x2 >= WIDTH:
        x2 = WIDTH - 1
    if y2 >= HEIGHT:
        y2 = HEIGHT - 1
    sp = display.set_pixel
    for y in range(y1, y2 + 1):
        for x in range(x1, x2 + 1):
            sp(x, y, r, g, b)


def draw_rect_outline(x1, y1, x2, y2, *color):
    """Draw a one-pixel rectangle border, clipped to the play area."""
    r, g, b = _parse_color(color)
    draw_line(x1, y1, x2, y1, r, g, b)
    draw_line(x1, y2, x2, y2, r, g, b)
    draw_line(x1, y1, x1, y2, r, g, b)
    draw_line(x2, y1, x2, y2, r, g, b)


def draw_line(x0: float, y0: float, x1: float, y1: float, *color) -> None:
    """Draw a Bresenham line between two points, clipped to the play area.

    The color may be supplied as a single (r, g, b) tuple/list or as three
    separate integers `r, g, b`.

    Raises:
        ValueError: If the color arguments are malformed.
    """
    if not color:
        raise ValueError("color must be provided as (r,g,b) or r,g,b")
    r, g, b = _parse_color(color)

    x0_i = int(x0)
    y0_i = int(y0)
    x1_i = int(x1)
    y1_i = int(y1)

    dx = abs(x1_i - x0_i)
    dy = -abs(y1_i - y0_i)
    sx = 1 if x0_i < x1_i else -1
    sy = 1 if y0_i < y1_i else -1
    err = dx + dy
    sp = display.set_pixel

    while True:
        if 0 <= x0_i < WIDTH and 0 <= y0_i < PLAY_HEIGHT:
            sp(x0_i, y0_i, int(r), int(g), int(b))
        if x0_i == x1_i and y0_i == y1_i:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0_i += sx
        if e2 <= dx:
            err += dx
            y0_i += sy


def draw_character(x, y, ch, r, g, b):
    """Draw an 8x8 character at the given coordinates using the 8x8 font."""
    rows = _get_font8(ch)
    sp = display.set_pixel
    for dy in range(8):
        yy = y + dy
        if yy < 0 or yy >= HEIGHT:
            continue
        row = rows[dy]
        mask = 0x80
        for dx in range(8):
            if row & (mask >> dx):
                xx = x + dx
                if 0 <= xx < WIDTH:
                    sp(xx, yy, r, g, b)


def draw_text(x, y, text, r, g, b):
    """Draw a string using the 8x8 font. Characters are spaced by 9 pixels."""
    ox = x
    for ch in str(text).upper():
        draw_character(ox, y, ch, r, g, b)
        ox += 9


def draw_character_small(x, y, ch, r, g, b):
    """Draw a 5x5 (small) character at the given coordinates."""
    rows = _get_font5(ch)
    sp = display.set_pixel
    for dy in range(5):
        yy = y + dy
        if yy < 0 or yy >= HEIGHT:
            continue
        row = rows[dy]  # 5 bits
        for dx in range(5):
            if row & (1 << (4 - dx)):
                xx = x + dx
                if 0 <= xx < WIDTH:
                    sp(xx, yy, r, g, b)


def draw_text_small(x, y, text, r, g, b):
    """Draw a string using the small 5x5 font. Characters are spaced by 6 pixels."""
    ox = x
    for ch in str(text).upper():
        draw_character_small(ox, y, ch, r, g, b)
        ox += 6


def text_width(text, small=False):
    """Pixel width of `text` in the large or small font."""
    return len(str(text)) * (6 if small else 9)


def draw_text_centered(y, text, r, g, b, small=False):
    x = (WIDTH - text_width(text, small)) // 2
    if small:
        draw_text_small(x, y, text, r, g, b)
    else:
        draw_text(x, y, text, r, g, b)


# ---------- HUD ----------
_hud_last_ms = 0
_hud_time_str = "00:00"
_hud_last_text = None


def display_score_and_time(score, force=False, status=None):
    """
    Update and render the HUD: score on the left, and on the right either the
    game's `status` text or the wall clock (HH:MM).

    Redraws the HUD background only when the text changed or `force` is set.
    """
    global _hud_last_ms, _hud_time_str, _hud_last_text, global_score
    global_score = int(score or 0)

    now = ticks_ms()
    if force or ticks_diff(now, _hud_last_ms) >= 1000:
        lt = time.localtime()
        _hud_time_str = "{:02}:{:02}".format(lt.tm_hour, lt.tm_min)
        _hud_last_ms = now

    score_str = str(global_score)
    right = _hud_time_str if status is None else str(status)
    text = score_str + " " + right

    if force or text != _hud_last_text:
        _hud_last_text = text
        draw_rectangle(0, PLAY_HEIGHT, WIDTH - 1, HEIGHT - 1, 0, 0, 0)

    y = PLAY_HEIGHT + 1
    draw_text_small(1, y, score_str, 255, 255, 255)
    draw_text_small(WIDTH - text_width(right, small=True), y, right, 255, 255, 255)
    display_flush()


class RestartProgram(Exception):
    """
    Special exception used to trigger a soft restart of the program.
    Raised by input handlers on special button combinations.
    """

    pass


# ---------- Keyboard / mouse input ----------
# Logical key name -> pygame key constant names
_EDGE_KEYS = {
    "R": ("K_r",),
    "E": ("K_e",),
    "H": ("K_h",),
    "U": ("K_u",),
    "P": ("K_p",),
    "F": ("K_f",),
    "0": ("K_0", "K_BACKSPACE", "K_DELETE"),
    "F10": ("K_F10",),
}
for _d in range(1, 10):
    _EDGE_KEYS[str(_d)] = ("K_" + str(_d),)


class Nunchuck:
    """
    Keyboard input emulating the two-button nunchuck API.

    Arrows/WASD drive the stick, Z/Space/Enter is the Z button and
    X/Escape the C button. Extra keys and the mouse are exposed for the
    games that need them.
    """

    def __init__(self):
        self._z = False
        self._c = False
        self._x = 128
        self._y = 128
        self._down = {}
        self._key_prev = {}
        self._mouse_prev = False

    def _pygame(self):
        try:
            import pygame  # type: ignore
        except ImportError:
            return None
        if not pygame.display.get_init() or pygame.display.get_surface() is None:
            return None
        return pygame

    def _poll(self):
        """Poll keyboard state via PyGame and update emulated stick/buttons."""
        pygame = self._pygame()
        if pygame is None:
            return
        pygame.event.pump()
        keys = pygame.key.get_pressed()
        left = keys[pygame.K_LEFT] or keys[pygame.K_a]
        right = keys[pygame.K_RIGHT] or keys[pygame.K_d]
        up = keys[pygame.K_UP] or keys[pygame.K_w]
        down = keys[pygame.K_DOWN] or keys[pygame.K_s]

        # Z button: z/space/enter
        self._z = bool(
            keys[pygame.K_z] or keys[pygame.K_SPACE] or keys[pygame.K_RETURN]
        )
        # C button: x/escape
        self._c = bool(keys[pygame.K_x] or keys[pygame.K_ESCAPE])

        x = 128
        y = 128
        if left and not right:
            x = 0
        elif right and not left:
            x = 255
        if up and not down:
            y = 255
        elif down and not up:
            y = 0
        self._x = x
        self._y = y

        for name, consts in _EDGE_KEYS.items():
            self._down[name] = any(keys[getattr(pygame, c)] for c in consts)

    def buttons(self):
        """
        Return emulated (c_button, z_button) from keyboard input.
        Raises `RestartProgram` when both are held.
        """
        self._poll()
        if self._c and self._z:
            logger.info("Restart combo pressed")
            raise RestartProgram()
        return self._c, self._z

    def joystick(self):
        """Return emulated analog stick coordinates (x, y), 0..255, 128 centre."""
        self._poll()
        return (self._x, self._y)

    def key_pressed(self, name):
        """Edge-triggered: True once per press of the logical key `name`."""
        self._poll()
        down = self._down.get(name, False)
        was = self._key_prev.get(name, False)
        self._key_prev[name] = down
        return down and not was

    def mouse(self):
        """Mouse position in display pixels, or None without a window."""
        pygame = self._pygame()
        if pygame is None:
            return None
        wx, wy = pygame.mouse.get_pos()
        return _pygame_display.to_logical(wx, wy)

    def clicked(self):
        """Edge-triggered left mouse button."""
        pygame = self._pygame()
        if pygame is None:
            return False
        down = bool(pygame.mouse.get_pressed()[0])
        was = self._mouse_prev
        self._mouse_prev = down
        return down and not was


class Joystick:
    """Direction/button facade over `Nunchuck` used by menus and games."""

    def __init__(self, nunchuck=None):
        self.nunchuck = nunchuck if nunchuck is not None else Nunchuck()

    def read_direction(self, possible_directions, debounce=True):
        """
        Convert emulated stick values to a direction string from
        `possible_directions`, diagonals first; None when centred.
        """
        x, y = self.nunchuck.joystick()

        # diagonals first
        if x < 100 and y < 100 and JOYSTICK_DOWN_LEFT in possible_directions:
            return JOYSTICK_DOWN_LEFT
        if x > 150 and y < 100 and JOYSTICK_DOWN_RIGHT in possible_directions:
            return JOYSTICK_DOWN_RIGHT
        if x < 100 and y > 150 and JOYSTICK_UP_LEFT in possible_directions:
            return JOYSTICK_UP_LEFT
        if x > 150 and y > 150 and JOYSTICK_UP_RIGHT in possible_directions:
            return JOYSTICK_UP_RIGHT

        if x < 100 and JOYSTICK_LEFT in possible_directions:
            return JOYSTICK_LEFT
        if x > 150 and JOYSTICK_RIGHT in possible_directions:
            return JOYSTICK_RIGHT
        if y < 100 and JOYSTICK_DOWN in possible_directions:
            return JOYSTICK_DOWN
        if y > 150 and JOYSTICK_UP in possible_directions:
            return JOYSTICK_UP
        return None

    def is_pressed(self):
        """Return whether the primary (Z) button is pressed."""
        _, z = self.nunchuck.buttons()
        return z

    def key_pressed(self, name):
        return self.nunchuck.key_pressed(name)

    def mouse(self):
        return self.nunchuck.mouse()

    def clicked(self):
        return self.nunchuck.clicked()


# ---------- Highscores ----------
class HighScores:
    """
    Manage persistent high scores stored in a JSON file.

    The file holds ``{game: {"score": n, "name": "ABC"}}``; older plain
    integer entries are still understood.
    """

    FILE = config.HIGHSCORE_FILE

    def __init__(self, path=None):
        """Initialize high score storage and load existing scores from disk."""
        self.path = path or self.FILE
        self.scores = {}
        self.load()

    def load(self):
        """Load high scores; a missing or corrupt file gives an empty table."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No high score file at %s", self.path)
            self.scores = {}
            return
        except (OSError, ValueError) as e:
            logger.warning("Could not read high scores from %s: %s", self.path, e)
            self.scores = {}
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed high score file %s", self.path)
            data = {}
        self.scores = data

    def save(self):
        """Persist the current high scores; write errors are logged, not raised."""
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.scores, f)
        except OSError as e:
            logger.error("Could not save high scores to %s: %s", self.path, e)

    def best(self, game):
        """Return the best score (integer) for the named game."""
        v = self.scores.get(game, 0)
        try:
            if isinstance(v, dict):
                return int(v.get("score", 0) or 0)
            return int(v or 0)
        except (TypeError, ValueError):
            return 0

    def best_name(self, game):
        """Return the 3-character name for the best score, or "---"."""
        v = self.scores.get(game)
        if isinstance(v, dict):
            n = v.get("name")
            if isinstance(n, str) and n:
                return n
        return "---"

    def update(self, game, score, name=None):
        """Store `score` for `game` if it beats the current best.

        Returns True when the stored value changed.
        """
        score = int(score or 0)
        if score > self.best(game):
            if isinstance(name, str) and name:
                self.scores[game] = {"score": score, "name": name[:3].upper()}
            else:
                self.scores[game] = score
            logger.info("New high score for %s: %d", game, score)
            self.save()
            return True
        return False


# ---------- Menus ----------
def _draw_best_line(score, best, best_name):
    draw_rectangle(0, PLAY_HEIGHT, WIDTH - 1, HEIGHT - 1, 0, 0, 0)
    draw_text_small(1, PLAY_HEIGHT + 1, str(score), 255, 255, 255)
    bn = best_name if isinstance(best_name, str) else "---"
    bs = "B" + str(best) + " " + bn
    draw_text_small(WIDTH - text_width(bs, small=True), 1, bs, 140, 140, 140)


class InitialsEntryMenu:
    """
    3-letter initials entry UI used when a new highscore is achieved.

    Navigates letters with the joystick and returns a 3-letter name.
    """

    def __init__(self, joystick, score, best, best_name="---", title="NEW HS"):
        self.joystick = joystick
        self.score = score
        self.best = best
        self.best_name = best_name
        self.title = title
        self.letters = ["A", "A", "A"]
        self.idx = 0
        self.move_delay = 140
        self.last_move = 0
        self._z_held = True
        self._c_held = True
        self._shown = None

    def move(self, d):
        """Apply one stick direction to the cursor/letters."""
        if d == JOYSTICK_LEFT and self.idx > 0:
            self.idx -= 1
        elif d == JOYSTICK_RIGHT and self.idx < 2:
            self.idx += 1
        elif d == JOYSTICK_UP:
            c = ord(self.letters[self.idx])
            self.letters[self.idx] = chr(65 if c >= 90 else c + 1)
        elif d == JOYSTICK_DOWN:
            c = ord(self.letters[self.idx])
            self.letters[self.idx] = chr(90 if c <= 65 else c - 1)
        else:
            return False
        return True

    def draw(self):
        state = (self.idx, tuple(self.letters))
        if state == self._shown:
            return
        self._shown = state
        display.clear()
        draw_text(4, 10, self.title, 0, 220, 0)
        _draw_best_line(self.score, self.best, self.best_name)

        y0 = 40
        for i in range(3):
            col = WHITE if i == self.idx else (120, 120, 120)
            draw_text(20 + i * 18, y0, self.letters[i], *col)
            if i == self.idx:
                draw_rectangle(18 + i * 18, y0 + 11, 28 + i * 18, y0 + 12, *WHITE)

        draw_text_small(4, 80, "Z=OK X=SKIP", 120, 120, 120)

    def step(self, now):
        """
        Process one frame of input. Returns the entered name, "" when the
        entry was skipped, or None while still editing.
        """
        if ticks_diff(now, self.last_move) > self.move_delay:
            if self.move(self.joystick.read_direction(list(DIRECTIONS_4))):
                self.last_move = now

        c_button, z_button = self.joystick.nunchuck.buttons()
        # buttons still held from the game must be released first
        if self._c_held or self._z_held:
            self._c_held = self._c_held and c_button
            self._z_held = self._z_held and z_button
            return None
        if c_button:
            return ""
        if z_button:
            return "".join(self.letters)
        return None

    def run(self):
        """Run the initials entry loop; returns the name or None when skipped."""
        while True:
            self.draw()
            result = self.step(ticks_ms())
            if result is not None:
                return result or None
            sleep_ms(20)

    async def run_async(self):
        while True:
            self.draw()
            display_flush()
            result = self.step(ticks_ms())
            if result is not None:
                return result or None
            await asyncio.sleep(0.02)


class GameOverMenu:
    """Menu shown after a run ends; choose retry or return to menu."""

    def __init__(self, joystick, score, best, best_name="---", won=False):
        self.joystick = joystick
        self.score = score
        self.best = best
        self.best_name = best_name
        self.title = "WON" if won else "LOST"
        self.opts = ["RETRY", "MENU"]
        self.idx = 0
        self.move_delay = 160
        self.last_move = 0
        self._held = True
        self._prev = -1

    def draw(self):
        if self.idx == self._prev:
            return
        self._prev = self.idx
        display.clear()
        col = (0, 255, 120) if self.title == "WON" else (255, 20, 20)
        draw_text(10, 12, self.title, *col)
        _draw_best_line(self.score, self.best, self.best_name)
        for i, o in enumerate(self.opts):
            c = WHITE if i == self.idx else GREY
            draw_text(10, 40 + i * 16, o, *c)

    def step(self, now):
        """Returns the chosen option, or None while the menu is open."""
        if ticks_diff(now, self.last_move) > self.move_delay:
            d = self.joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN])
            if d == JOYSTICK_UP and self.idx > 0:
                self.idx -= 1
                self.last_move = now
            elif d == JOYSTICK_DOWN and self.idx < len(self.opts) - 1:
                self.idx += 1
                self.last_move = now

        pressed = self.joystick.is_pressed()
        if self._held:
            self._held = pressed
            return None
        if pressed:
            return self.opts[self.idx]
        return None

    def run(self):
        """Show menu and return the selected option ("RETRY" or "MENU")."""
        while True:
            self.draw()
            choice = self.step(ticks_ms())
            if choice:
                return choice
            sleep_ms(30)

    async def run_async(self):
        while True:
            self.draw()
            display_flush()
            choice = self.step(ticks_ms())
            if choice:
                return choice
            await asyncio.sleep(0.03)


def build_game_registry():
    """Menu name -> game class. Imported here so games can import this module."""
    from cowboy_zombies import CowboyZombiesGame
    from flappy import FlappyGame
    from snake import SnakeGame
    from solitaire import SolitaireGame
    from sudoku import SudokuGame

    return {
        "FLAPPY": FlappyGame,  # one-button neon flappy
        "SNAKE": SnakeGame,  # snake with obstacles
        "SOLTR": SolitaireGame,  # klondike draw-three
        "SUDOKU": SudokuGame,  # generated 9x9 puzzles
        "ZOMBIE": CowboyZombiesGame,  # top-down wave shooter
    }


class GameSelect:
    """Main game selector menu; choose a game to play with joystick."""

    view = 6

    def __init__(self, joystick=None, highscores=None):
        self.joystick = joystick if joystick is not None else Joystick()
        self.highscores = highscores if highscores is not None else HighScores()
        self.game_classes = build_game_registry()
        self.sorted_games = sorted(self.game_classes.keys())
        self.selected = 0
        self.top = 0
        self.move_delay = 140
        self.last_move = 0
        self._prev = -1
        self._held = True

    def draw_selector(self):
        if self.selected == self._prev:
            return
        self._prev = self.selected
        games = self.sorted_games
        display.clear()
        draw_text_centered(2, "NEON ARCADE", 0, 255, 255)
        for i in range(self.view):
            gi = self.top + i
            if gi >= len(games):
                break
            name = games[gi]
            y = 16 + i * 17
            col = WHITE if gi == self.selected else GREY
            if gi == self.selected:
                draw_text(2, y, ">", 255, 0, 255)
            draw_text(14, y, name, *col)

            hs_str = str(self.highscores.best(name)) + " " + str(
                self.highscores.best_name(name)
            )
            draw_text_small(
                WIDTH - text_width(hs_str, small=True), y + 9, hs_str, 120, 120, 0
            )
        display_score_and_time(0, force=True)

    def selector_step(self, now):
        """Move the highlight; returns the chosen game name or None."""
        games = self.sorted_games
        if ticks_diff(now, self.last_move) > self.move_delay:
            d = self.joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN])
            if d == JOYSTICK_UP and self.selected > 0:
                self.selected -= 1
                if self.selected < self.top:
                    self.top -= 1
                self.last_move = now
            elif d == JOYSTICK_DOWN and self.selected < len(games) - 1:
                self.selected += 1
                if self.selected > self.top + self.view - 1:
                    self.top += 1
                self.last_move = now

        pressed = self.joystick.is_pressed()
        if self._held:
            self._held = pressed
            return None
        if pressed:
            self._held = True
            return games[self.selected]
        return None

    def run_game_selector(self):
        """Show the game list and return the selected game's name."""
        self._prev = -1
        while True:
            self.draw_selector()
            name = self.selector_step(ticks_ms())
            if name:
                return name
            sleep_ms(30)

    async def run_game_selector_async(self):
        self._prev = -1
        while True:
            self.draw_selector()
            display_flush()
            name = self.selector_step(ticks_ms())
            if name:
                return name
            await asyncio.sleep(0.03)

    def _record(self, game_name, initials):
        if initials:
            self.highscores.update(game_name, global_score, initials)

    def run(self):
        """Main loop: select games, run them and handle highscores flow."""
        global game_over, global_score

        while True:
            game_name = self.run_game_selector()
            logger.info("Starting %s", game_name)

            # retry loop
            while True:
                game_over = False
                global_score = 0

                game: Any = self.game_classes[game_name]()
                game.main_loop(self.joystick)

                if not game_over:
                    break
                logger.info("%s over with score %d", game_name, global_score)
                best = self.highscores.best(game_name)
                best_name = self.highscores.best_name(game_name)
                if global_score > best:
                    initials = InitialsEntryMenu(
                        self.joystick, global_score, best, best_name
                    ).run()
                    self._record(game_name, initials)
                # refresh best name in case initials were saved
                best = self.highscores.best(game_name)
                best_name = self.highscores.best_name(game_name)
                choice = GameOverMenu(
                    self.joystick,
                    global_score,
                    best,
                    best_name,
                    won=getattr(game, "won", False),
                ).run()
                if choice != "RETRY":
                    break

    async def run_async(self):
        """Async version of `run()`; every loop yields to the browser."""
        global game_over, global_score

        while True:
            game_name = await self.run_game_selector_async()
            logger.info("Starting %s", game_name)

            while True:
                game_over = False
                global_score = 0

                game: Any = self.game_classes[game_name]()
                # let the browser render before entering the game
                await asyncio.sleep(0)
                await game.main_loop_async(self.joystick)

                if not game_over:
                    break
                logger.info("%s over with score %d", game_name, global_score)
                best = self.highscores.best(game_name)
                best_name = self.highscores.best_name(game_name)
                if global_score > best:
                    initials = await InitialsEntryMenu(
                        self.joystick, global_score, best, best_name
                    ).run_async()
                    self._record(game_name, initials)
                best = self.highscores.best(game_name)
                best_name = self.highscores.best_name(game_name)
                choice = await GameOverMenu(
                    self.joystick,
                    global_score,
                    best,
                    best_name,
                    won=getattr(game, "won", False),
                ).run_async()
                if choice != "RETRY":
                    break


# ---------- Main ----------
def _show_error():
    display.clear()
    draw_text(1, 20, "ERR", 255, 0, 0)
    display_flush()


def main():
    """
    Application entry point.

    Starts the display, shows the initial HUD and enters the game-selection
    loop. `RestartProgram` resets to the top-level menu; unexpected
    exceptions are logged, an error marker is shown and the menu restarts.
    """
    # blocking loops would freeze a browser tab
    env.require_desktop()
    gc.collect()
    _boot_log("before display.start")
    display.start()
    _boot_log("after display.start")
    display.clear()
    display_score_and_time(0, force=True)

    while True:
        try:
            GameSelect().run()
        except RestartProgram:
            logger.info("Soft restart")
            display.clear()
            display_score_and_time(0, force=True)
            continue
        except Exception:
            # Failsafe: show simple error marker and reset to menu
            logger.exception("Unhandled error, returning to menu")
            _show_error()
            sleep_ms(800)
            display.clear()
            maybe_collect(1)


async def async_main():
    """Async entrypoint for pygbag/web: start the display and run the menu."""
    gc.collect()
    _boot_log("before display.start")
    display.start()
    _boot_log("after display.start")
    display.clear()
    display_score_and_time(0, force=True)
    # yield once so the browser can render the first frame
    await asyncio.sleep(0)

    while True:
        try:
            await GameSelect().run_async()
        except RestartProgram:
            logger.info("Soft restart")
            display.clear()
            display_score_and_time(0, force=True)
        except Exception:
            logger.exception("Unhandled error, returning to menu")
            _show_error()
            await asyncio.sleep(0.8)
            display.clear()
            maybe_collect(1)
        await asyncio.sleep(0)


if __name__ == "__main__":
    if IS_PYGBAG:
        asyncio.run(async_main())
    else:
        main()
