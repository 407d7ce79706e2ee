"""
Cowboy Zombies: top-down wave shooter in a small western town.

The town is laid out in 800x600 world units. Zombies pour in from the edges,
drop coins when shot, and coins buy better guns in the shop between fights.
Every timed rule takes an explicit `now` (milliseconds) so it can be driven
without a real clock.
"""

import copy
import logging
import math
import random

from arcade_app import (
    DIRECTION_VECTORS,
    DIRECTIONS_8,
    JOYSTICK_DOWN,
    JOYSTICK_UP,
    PLAY_HEIGHT,
    WIDTH,
    draw_play_rect,
    draw_rectangle,
    draw_text,
    draw_text_small,
    ticks_ms,
)
from game_utils import (
    BaseGame,
    WorldView,
    distance,
    fade,
    make_particle,
    point_in_rect,
    rects_overlap,
    update_particles,
)

logger = logging.getLogger("arcade.zombies")

WORLD_W = 800
WORLD_H = 600

PLAYER_START = (400, 300)
PLAYER_SIZE = 20
PLAYER_SPEED = 3
PLAYER_HEALTH = 3
INVINCIBLE_MS = 1000

ZOMBIE_SIZE = 16
SPAWN_MARGIN = 20
SPAWN_CHANCE = 0.02
FIRST_WAVE_SIZE = 8
WAVE_GROWTH = 2
WAVE_DELAY_MS = 3000

BULLET_SPEED = 8
COIN_PICKUP_RANGE = 25
DEATH_FRAMES = 45

BUILDINGS = (
    {"x": 50, "y": 50, "width": 80, "height": 60, "name": "SALOON"},
    {"x": 200, "y": 100, "width": 70, "height": 50, "name": "STORE"},
    {"x": 350, "y": 80, "width": 60, "height": 70, "name": "SHERIFF"},
    {"x": 500, "y": 120, "width": 90, "height": 55, "name": "BANK"},
    {"x": 650, "y": 60, "width": 75, "height": 65, "name": "CHURCH"},
    {"x": 100, "y": 400, "width": 85, "height": 60, "name": "HOTEL"},
    {"x": 300, "y": 450, "width": 70, "height": 50, "name": "SMITH"},
    {"x": 550, "y": 420, "width": 80, "height": 70, "name": "STABLE"},
)

WEAPON_ORDER = ("six_shooter", "double_barrel", "zombie_blaster", "neon_rifle")
WEAPONS = {
    "six_shooter": {
        "name": "SIX SHOOTER", "damage": 25, "ammo": 12, "max_ammo": 12,
        "reload_time": 1000, "range": 200, "cost": 0,
    },
    "double_barrel": {
        "name": "DBL BARREL", "damage": 45, "ammo": 8, "max_ammo": 8,
        "reload_time": 1500, "range": 150, "cost": 50,
    },
    "zombie_blaster": {
        "name": "BLASTER", "damage": 60, "ammo": 15, "max_ammo": 15,
        "reload_time": 800, "range": 250, "cost": 100,
    },
    "neon_rifle": {
        "name": "NEON RIFLE", "damage": 100, "ammo": 20, "max_ammo": 20,
        "reload_time": 600, "range": 300, "cost": 200,
    },
}

GROUND = (45, 24, 16)
BUILDING_COLORS = ((139, 69, 19), (160, 82, 45))
PLAYER_COLOR = (255, 215, 0)
HAT_COLOR = (139, 69, 19)
ZOMBIE_COLOR = (34, 139, 34)
ZOMBIE_HIT_COLOR = (255, 102, 102)
BULLET_COLOR = (255, 215, 0)
COIN_COLOR = (255, 215, 0)

STATE_PLAYING = "PLAYING"
STATE_SHOP = "SHOP"
STATE_GAME_OVER = "GAME_OVER"


class CowboyZombiesGame(BaseGame):
    """Survive growing zombie waves; spend dropped coins on better guns."""

    name = "ZOMBIE"

    def __init__(self):
        super().__init__()
        self.frame_ms = 16
        self.view = WorldView(WORLD_W, WORLD_H, 0, 0, WIDTH, PLAY_HEIGHT)
        self.buildings = [dict(b) for b in BUILDINGS]
        self.reset()

    def reset(self, now=None):
        super().reset()
        self.start_game(ticks_ms() if now is None else now)

    def start_game(self, now):
        self.state = STATE_PLAYING
        self.score = 0
        self.coins = 0
        self.wave = 1
        self.zombies_killed = 0
        self.player = {
            "x": float(PLAYER_START[0]),
            "y": float(PLAYER_START[1]),
            "width": PLAYER_SIZE,
            "height": PLAYER_SIZE,
            "speed": PLAYER_SPEED,
            "health": PLAYER_HEALTH,
            "max_health": PLAYER_HEALTH,
            "angle": 0.0,
            "last_hit": None,
        }
        self.weapons = copy.deepcopy(WEAPONS)
        self.current_weapon = "six_shooter"
        self.owned_weapons = ["six_shooter"]
        self.is_reloading = False
        self.reload_start = 0
        self.zombies = []
        self.bullets = []
        self.coins_dropped = []
        self.particles = []
        self.zombies_per_wave = FIRST_WAVE_SIZE
        self.zombies_spawned = 0
        self.wave_complete = False
        self.next_wave_time = now + 2000
        self.shop_index = 0
        self.death_timer = 0
        self._z_prev = True
        self.now = now

    @property
    def weapon(self):
        return self.weapons[self.current_weapon]

    # ----- particles -----
    def _emit(self, x, y, count, spread, color, size=(2, 4), vy_bias=0.0, kind="spark",
              vx_bias=0.0):
        for _ in range(count):
            c = random.choice(color) if isinstance(color, list) else color
            self.particles.append(
                make_particle(
                    x,
                    y,
                    (random.random() - 0.5) * spread + vx_bias,
                    (random.random() - 0.5) * spread + vy_bias,
                    c,
                    size=random.random() * size[1] + size[0],
                    kind=kind,
                )
            )

    # ----- spawning -----
    def spawn_zombie(self):
        """Spawn one zombie just outside a random edge of the town."""
        if self.zombies_spawned >= self.zombies_per_wave:
            return None
        side = random.randrange(4)
        if side == 0:  # top
            x, y = random.random() * WORLD_W, -SPAWN_MARGIN
        elif side == 1:  # right
            x, y = WORLD_W + SPAWN_MARGIN, random.random() * WORLD_H
        elif side == 2:  # bottom
            x, y = random.random() * WORLD_W, WORLD_H + SPAWN_MARGIN
        else:  # left
            x, y = -SPAWN_MARGIN, random.random() * WORLD_H
        health = 50 + self.wave * 10
        zombie = {
            "x": float(x),
            "y": float(y),
            "width": ZOMBIE_SIZE,
            "height": ZOMBIE_SIZE,
            "speed": 0.8 + self.wave * 0.1,
            "health": health,
            "max_health": health,
            "last_hit": None,
        }
        self.zombies.append(zombie)
        self.zombies_spawned += 1
        return zombie

    # ----- weapons -----
    def shoot(self, tx, ty, now):
        """
        Fire the current weapon at world point (tx, ty).

        Refused while reloading, an empty magazine starts a reload instead,
        and targets beyond the weapon's range are ignored. Returns the new
        bullet or None.
        """
        if self.is_reloading:
            return None
        weapon = self.weapon
        if weapon["ammo"] <= 0:
            self.reload(now)
            return None
        p = self.player
        dx = tx - p["x"]
        dy = ty - p["y"]
        dist = math.sqrt(dx * dx + dy * dy)
        if dist > weapon["range"] or dist == 0:
            return None
        bullet = {
            "x": p["x"],
            "y": p["y"],
            "dx": dx / dist * BULLET_SPEED,
            "dy": dy / dist * BULLET_SPEED,
            "damage": weapon["damage"],
            "range": weapon["range"],
            "traveled": 0.0,
        }
        self.bullets.append(bullet)
        weapon["ammo"] -= 1
        p["angle"] = math.atan2(dy, dx)
        a = p["angle"]
        self._emit(p["x"] + math.cos(a) * 15, p["y"] + math.sin(a) * 15, 5, 4,
                   (255, 255, 0), vx_bias=math.cos(a) * 3, vy_bias=math.sin(a) * 3)
        return bullet

    def shoot_facing(self, now):
        """Fire along the facing angle at the edge of the weapon's reach."""
        p = self.player
        reach = self.weapon["range"] - 1
        a = p["angle"]
        return self.shoot(p["x"] + math.cos(a) * reach, p["y"] + math.sin(a) * reach, now)

    def reload(self, now):
        """Start a timed reload unless one is running or the magazine is full."""
        if self.is_reloading:
            return False
        weapon = self.weapon
        if weapon["ammo"] >= weapon["max_ammo"]:
            return False
        self.is_reloading = True
        self.reload_start = now
        return True

    def update_reload(self, now):
        if self.is_reloading and now - self.reload_start >= self.weapon["reload_time"]:
            self.weapon["ammo"] = self.weapon["max_ammo"]
            self.is_reloading = False

    def reload_progress(self, now):
        if not self.is_reloading:
            return 1.0
        return min(1.0, (now - self.reload_start) / self.weapon["reload_time"])

    # ----- shop -----
    def toggle_shop(self):
        if self.state == STATE_PLAYING:
            self.state = STATE_SHOP
        elif self.state == STATE_SHOP:
            self.state = STATE_PLAYING

    def buy_weapon(self, key):
        """Buy, equip and refill `key`; False when owned or unaffordable."""
        weapon = self.weapons.get(key)
        if weapon is None or key in self.owned_weapons:
            return False
        if self.coins < weapon["cost"]:
            return False
        self.coins -= weapon["cost"]
        self.owned_weapons.append(key)
        self.current_weapon = key
        weapon["ammo"] = weapon["max_ammo"]
        self.is_reloading = False
        logger.info("Bought %s for %d coins", weapon["name"], weapon["cost"])
        return True

    # ----- simulation -----
    def _blocked(self, x, y):
        p = self.player
        for b in self.buildings:
            if rects_overlap(x, y, p["width"], p["height"], b["x"], b["y"], b["width"], b["height"]):
                return True
        return x < 0 or x + p["width"] > WORLD_W or y < 0 or y + p["height"] > WORLD_H

    def move_player(self, mx, my):
        """Move by (mx, my) unit steps; the whole move is refused if blocked."""
        p = self.player
        nx = p["x"] + mx * p["speed"]
        ny = p["y"] + my * p["speed"]
        if (mx or my) and not self._blocked(nx, ny):
            p["x"] = nx
            p["y"] = ny
            return True
        return False

    def update_bullets(self):
        for bullet in list(self.bullets):
            bullet["x"] += bullet["dx"]
            bullet["y"] += bullet["dy"]
            bullet["traveled"] += math.sqrt(bullet["dx"] ** 2 + bullet["dy"] ** 2)
            if (
                bullet["traveled"] > bullet["range"]
                or not (0 <= bullet["x"] <= WORLD_W and 0 <= bullet["y"] <= WORLD_H)
            ):
                self.bullets.remove(bullet)
                continue
            for b in self.buildings:
                if point_in_rect(bullet["x"], bullet["y"], b["x"], b["y"], b["width"], b["height"]):
                    self.bullets.remove(bullet)
                    self._emit(bullet["x"], bullet["y"], 4, 3, BUILDING_COLORS[0], size=(1, 2),
                               kind="debris")
                    break

    def update_zombies(self):
        p = self.player
        for zombie in list(self.zombies):
            dx = p["x"] - zombie["x"]
            dy = p["y"] - zombie["y"]
            dist = math.sqrt(dx * dx + dy * dy)
            if dist > 0:
                zombie["x"] += dx / dist * zombie["speed"]
                zombie["y"] += dy / dist * zombie["speed"]
            if zombie["health"] <= 0:
                self.kill_zombie(zombie)

    def kill_zombie(self, zombie):
        self.zombies_killed += 1
        self.score += 10 + self.wave * 5
        self.coins_dropped.append(
            {
                "x": zombie["x"],
                "y": zombie["y"],
                "value": 1 + self.wave // 3,
                "bounce_height": 0.0,
                "bounce_direction": 1,
            }
        )
        self._emit(zombie["x"], zombie["y"], 12, 8, [ZOMBIE_COLOR, (255, 0, 0)], vy_bias=-2,
                   kind="explosion")
        self.zombies.remove(zombie)

    def update_coins(self):
        p = self.player
        for coin in list(self.coins_dropped):
            coin["bounce_height"] += coin["bounce_direction"] * 0.3
            if coin["bounce_height"] > 5 or coin["bounce_height"] < 0:
                coin["bounce_direction"] *= -1
            if distance(p["x"], p["y"], coin["x"], coin["y"]) < COIN_PICKUP_RANGE:
                self.coins += coin["value"]
                self.coins_dropped.remove(coin)
                self._emit(coin["x"], coin["y"], 6, 4, COIN_COLOR, size=(1, 3), vy_bias=-2,
                           kind="sparkle")

    def check_collisions(self, now):
        for bullet in list(self.bullets):
            for zombie in self.zombies:
                if point_in_rect(bullet["x"], bullet["y"], zombie["x"], zombie["y"],
                                 zombie["width"], zombie["height"]):
                    zombie["health"] -= bullet["damage"]
                    zombie["last_hit"] = now
                    self._emit(bullet["x"], bullet["y"], 8, 6, (255, 0, 0), size=(1, 3),
                               kind="blood")
                    self.bullets.remove(bullet)
                    break

        p = self.player
        for zombie in self.zombies:
            # shot down this frame, removed on the next update
            if zombie["health"] <= 0:
                continue
            if rects_overlap(p["x"], p["y"], p["width"], p["height"],
                             zombie["x"], zombie["y"], zombie["width"], zombie["height"]):
                if p["last_hit"] is None or now - p["last_hit"] > INVINCIBLE_MS:
                    p["health"] -= 1
                    p["last_hit"] = now
                    self._emit(p["x"] + p["width"] / 2, p["y"] + p["height"] / 2, 8, 6,
                               (220, 20, 60), kind="damage")

    def manage_waves(self, now):
        if self.zombies_spawned < self.zombies_per_wave and random.random() < SPAWN_CHANCE:
            self.spawn_zombie()

        if self.zombies_spawned >= self.zombies_per_wave and not self.zombies:
            if not self.wave_complete:
                self.wave_complete = True
                self.next_wave_time = now + WAVE_DELAY_MS
                self.coins += self.wave * 2
                self.score += self.wave * 50
                logger.info("Wave %d cleared, score %d", self.wave, self.score)
            if now >= self.next_wave_time:
                self.wave += 1
                self.zombies_per_wave += WAVE_GROWTH
                self.zombies_spawned = 0
                self.wave_complete = False

    def step(self, now):
        """One world tick; returns False once the cowboy is dead."""
        self.now = now
        if self.state == STATE_PLAYING:
            self.update_reload(now)
            self.update_bullets()
            self.update_zombies()
            self.update_coins()
            self.check_collisions(now)
            self.manage_waves(now)
            if self.player["health"] <= 0:
                self.game_over()
        update_particles(self.particles)
        if self.state == STATE_GAME_OVER:
            self.death_timer -= 1
            return self.death_timer > 0
        return True

    def game_over(self):
        self.state = STATE_GAME_OVER
        self.death_timer = DEATH_FRAMES
        p = self.player
        self._emit(p["x"] + p["width"] / 2, p["y"] + p["height"] / 2, 20, 12,
                   [(255, 69, 0), (255, 255, 0)], size=(3, 6), kind="explosion")
        logger.info(
            "Cowboy down on wave %d: score %d, %d zombies", self.wave, self.score,
            self.zombies_killed,
        )

    # ----- frame hooks -----
    def poll(self, joystick):
        now = ticks_ms()
        if joystick.key_pressed("E"):
            self.toggle_shop()

        if self.state == STATE_SHOP:
            for i, key in enumerate(WEAPON_ORDER):
                if joystick.key_pressed(str(i + 1)):
                    self.shop_index = i
                    self.buy_weapon(key)
            _, z = joystick.nunchuck.buttons()
            if z and not self._z_prev:
                self.buy_weapon(WEAPON_ORDER[self.shop_index])
            self._z_prev = z
            return

        if self.state != STATE_PLAYING:
            return
        if joystick.key_pressed("R"):
            self.reload(now)
        _, z = joystick.nunchuck.buttons()
        if z and not self._z_prev:
            self.shoot_facing(now)
        self._z_prev = z
        if joystick.clicked():
            pos = joystick.mouse()
            if pos is not None:
                wx, wy = self.view.to_world(*pos)
                self.shoot(wx, wy, now)

    def update(self, joystick):
        if self.state == STATE_SHOP:
            d = joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN])
            if d and self.frame % 8 == 0:
                step = -1 if d == JOYSTICK_UP else 1
                self.shop_index = max(0, min(len(WEAPON_ORDER) - 1, self.shop_index + step))
        elif self.state == STATE_PLAYING:
            d = joystick.read_direction(list(DIRECTIONS_8))
            if d:
                mx, my = DIRECTION_VECTORS[d]
                self.move_player(mx, my)
                self.player["angle"] = math.atan2(my, mx)
        return self.step(ticks_ms())

    def status_text(self):
        ammo = "RLD" if self.is_reloading else "A" + str(self.weapon["ammo"])
        return "W{} {} ${}".format(self.wave, ammo, self.coins)

    # ----- drawing -----
    def draw(self):
        v = self.view
        now = self.now
        draw_play_rect(0, 0, WIDTH, PLAY_HEIGHT, *GROUND)
        for x in range(0, WORLD_W, 40):
            for y in range(0, WORLD_H, 40):
                if (x + y) % 80 == 0:
                    v.set_pixel(x, y, 139, 115, 85)

        for i, b in enumerate(self.buildings):
            v.fill_rect(b["x"] + 5, b["y"] + 5, b["width"], b["height"], 20, 10, 6)
            v.fill_rect(b["x"], b["y"], b["width"], b["height"], *BUILDING_COLORS[i % 2])
            v.fill_rect(b["x"], b["y"], b["width"], 5, 230, 200, 170)

        for coin in self.coins_dropped:
            v.fill_rect(coin["x"] - 5, coin["y"] - 5 - coin["bounce_height"], 10, 10, *COIN_COLOR)

        p = self.player
        flashing = p["last_hit"] is not None and now - p["last_hit"] < 200
        body = fade(PLAYER_COLOR, 0.5) if flashing else PLAYER_COLOR
        v.fill_rect(p["x"], p["y"], p["width"], p["height"], *body)
        v.fill_rect(p["x"] - 2, p["y"] - 4, p["width"] + 4, 5, *HAT_COLOR)
        cx = p["x"] + p["width"] / 2
        cy = p["y"] + p["height"] / 2
        for r in range(10, 21, 5):
            v.set_pixel(cx + math.cos(p["angle"]) * r, cy + math.sin(p["angle"]) * r, 101, 67, 33)

        for z in self.zombies:
            hit = z["last_hit"] is not None and now - z["last_hit"] < 100
            v.fill_rect(z["x"], z["y"], z["width"], z["height"],
                        *(ZOMBIE_HIT_COLOR if hit else ZOMBIE_COLOR))
            v.set_pixel(z["x"] + 4, z["y"] + 4, 255, 0, 0)
            v.set_pixel(z["x"] + z["width"] - 4, z["y"] + 4, 255, 0, 0)
            if z["health"] < z["max_health"]:
                frac = max(0.0, z["health"] / z["max_health"])
                col = (0, 255, 0) if frac > 0.6 else (255, 255, 0) if frac > 0.3 else (255, 0, 0)
                v.fill_rect(z["x"] - 2, z["y"] - 10, 20, 5, 51, 51, 51)
                v.fill_rect(z["x"] - 2, z["y"] - 10, 20 * frac, 5, *col)

        for bullet in self.bullets:
            v.fill_rect(bullet["x"] - 2, bullet["y"] - 2, 5, 5, *BULLET_COLOR)

        for part in self.particles:
            v.fill_rect(part["x"], part["y"], part["size"], part["size"],
                        *fade(part["color"], part["life"]))

        # hearts
        for i in range(p["max_health"]):
            col = (220, 20, 60) if i < p["health"] else (80, 80, 80)
            draw_rectangle(2 + i * 5, 2, 4 + i * 5, 4, *col)

        if self.is_reloading:
            frac = self.reload_progress(now)
            draw_rectangle(60, 108, 99, 109, 51, 51, 51)
            draw_rectangle(60, 108, 60 + int(39 * frac), 109, *PLAYER_COLOR)
            draw_text_small(56, 101, "RELOAD", 255, 255, 255)

        if self.wave_complete and not self.zombies:
            left = max(0, self.next_wave_time - now)
            if left > 0:
                draw_text(17, 50, "NEXT WAVE " + str(math.ceil(left / 1000)), *PLAYER_COLOR)

        if self.state == STATE_SHOP:
            self.draw_shop()

    def draw_shop(self):
        draw_rectangle(8, 8, WIDTH - 9, PLAY_HEIGHT - 9, 20, 10, 30)
        draw_text(12, 12, "SHOP", *PLAYER_COLOR)
        draw_text_small(90, 14, "$" + str(self.coins), *PLAYER_COLOR)
        for i, key in enumerate(WEAPON_ORDER):
            w = self.weapons[key]
            y = 30 + i * 18
            owned = key in self.owned_weapons
            if i == self.shop_index:
                draw_rectangle(10, y - 2, WIDTH - 11, y + 13, 60, 30, 80)
            if owned:
                col = (0, 255, 120) if key == self.current_weapon else (120, 120, 120)
            elif self.coins >= w["cost"]:
                col = (255, 255, 255)
            else:
                col = (140, 60, 60)
            draw_text_small(14, y, str(i + 1) + " " + w["name"], *col)
            tag = "OWNED" if owned else "$" + str(w["cost"])
            draw_text_small(14, y + 7, "D{} R{} {}".format(w["damage"], w["range"], tag), *col)
