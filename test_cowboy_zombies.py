import pytest

from cowboy_zombies import (
    DEATH_FRAMES,
    FIRST_WAVE_SIZE,
    STATE_GAME_OVER,
    STATE_PLAYING,
    STATE_SHOP,
    WAVE_DELAY_MS,
    CowboyZombiesGame,
)


@pytest.fixture
def game():
    g = CowboyZombiesGame()
    g.reset(now=0)
    return g


def zombie_at(game, x, y, health=60):
    game.zombies_spawned = 1
    z = {"x": float(x), "y": float(y), "width": 16, "height": 16, "speed": 0.9,
         "health": health, "max_health": health, "last_hit": None}
    game.zombies.append(z)
    return z


def test_new_game_state(game):
    assert game.state == STATE_PLAYING
    assert game.wave == 1
    assert game.coins == 0
    assert game.player["health"] == 3
    assert game.current_weapon == "six_shooter"
    assert game.owned_weapons == ["six_shooter"]
    assert game.weapon["ammo"] == 12


def test_weapons_are_per_game_copies(game):
    game.weapon["ammo"] = 1
    other = CowboyZombiesGame()
    other.reset(now=0)
    assert other.weapon["ammo"] == 12


def test_shoot_within_range(game):
    bullet = game.shoot(500, 300, now=10)
    assert bullet is not None
    assert bullet["dx"] == pytest.approx(8)
    assert bullet["dy"] == pytest.approx(0)
    assert bullet["damage"] == 25
    assert game.weapon["ammo"] == 11
    assert game.player["angle"] == pytest.approx(0)


def test_shoot_beyond_range_is_ignored(game):
    assert game.shoot(700, 300, now=10) is None
    assert game.weapon["ammo"] == 12
    assert game.bullets == []


def test_empty_magazine_starts_reload(game):
    game.weapon["ammo"] = 0
    assert game.shoot(450, 300, now=100) is None
    assert game.is_reloading
    # refused while reloading
    assert game.shoot(450, 300, now=200) is None
    game.update_reload(1099)
    assert game.is_reloading
    assert game.reload_progress(600) == pytest.approx(0.5)
    game.update_reload(1100)
    assert not game.is_reloading
    assert game.weapon["ammo"] == 12


def test_reload_with_full_magazine_does_nothing(game):
    assert game.reload(0) is False
    assert not game.is_reloading


def test_buy_weapon(game):
    game.coins = 40
    assert not game.buy_weapon("double_barrel")
    game.coins = 60
    assert game.buy_weapon("double_barrel")
    assert game.coins == 10
    assert game.current_weapon == "double_barrel"
    assert game.weapon["ammo"] == 8
    assert not game.buy_weapon("double_barrel")
    assert not game.buy_weapon("laser")


def test_shop_key_toggles(game, joystick):
    joystick.press("E")
    game.poll(joystick)
    assert game.state == STATE_SHOP
    game.coins = 100
    joystick.press("3")
    game.poll(joystick)
    assert game.current_weapon == "zombie_blaster"
    assert game.coins == 0
    joystick.press("E")
    game.poll(joystick)
    assert game.state == STATE_PLAYING


def test_buildings_and_edges_block_movement(game):
    p = game.player
    p["x"], p["y"] = 28.0, 60.0
    assert not game.move_player(1, 0)
    assert p["x"] == 28.0
    p["x"], p["y"] = 0.0, 300.0
    assert not game.move_player(-1, 0)
    assert game.move_player(0, 1)
    assert p["y"] == 303.0


def test_bullet_damages_zombie(game):
    z = zombie_at(game, 500, 300)
    game.bullets.append({"x": 505.0, "y": 305.0, "dx": 0.0, "dy": 0.0, "damage": 25,
                         "range": 200, "traveled": 0.0})
    game.check_collisions(now=50)
    assert z["health"] == 35
    assert z["last_hit"] == 50
    assert game.bullets == []


def test_dead_zombie_pays_out(game):
    zombie_at(game, 600, 300, health=0)
    game.update_zombies()
    assert game.zombies == []
    assert game.zombies_killed == 1
    assert game.score == 15
    assert len(game.coins_dropped) == 1
    coin = game.coins_dropped[0]
    coin["x"], coin["y"] = game.player["x"], game.player["y"]
    game.update_coins()
    assert game.coins == 1
    assert game.coins_dropped == []


def test_contact_damage_respects_invincibility(game):
    p = game.player
    zombie_at(game, p["x"] + 5, p["y"] + 5)
    game.check_collisions(now=5000)
    assert p["health"] == 2
    game.check_collisions(now=5900)
    assert p["health"] == 2
    game.check_collisions(now=6001)
    assert p["health"] == 1


def test_spawns_are_capped_per_wave(game):
    for _ in range(FIRST_WAVE_SIZE):
        assert game.spawn_zombie() is not None
    assert game.spawn_zombie() is None
    assert game.zombies[0]["health"] == 60


def test_wave_clear_bonus_and_next_wave(game):
    game.zombies_spawned = game.zombies_per_wave
    game.manage_waves(10000)
    assert game.wave_complete
    assert game.coins == 2
    assert game.score == 50
    game.manage_waves(10000 + WAVE_DELAY_MS - 1)
    assert game.wave == 1
    game.manage_waves(10000 + WAVE_DELAY_MS)
    assert game.wave == 2
    assert game.zombies_per_wave == FIRST_WAVE_SIZE + 2
    assert game.zombies_spawned == 0
    # bonus is paid once per wave
    assert game.coins == 2


def test_death_lingers_before_ending(game):
    game.player["health"] = 0
    now = 1000
    assert game.step(now) is True
    assert game.state == STATE_GAME_OVER
    calls = 1
    while game.step(now):
        calls += 1
    assert calls == DEATH_FRAMES - 1


def test_status_text(game):
    assert game.status_text() == "W1 A12 $0"
    game.is_reloading = True
    assert game.status_text() == "W1 RLD $0"


def bullet_at(game, x, y, dx=0.0, dy=0.0, traveled=0.0):
    bullet = {"x": float(x), "y": float(y), "dx": dx, "dy": dy, "damage": 25,
              "range": 200, "traveled": traveled}
    game.bullets.append(bullet)
    return bullet


def test_bullet_flies_until_range(game):
    bullet = bullet_at(game, 400, 300, dx=8.0, traveled=190.0)
    game.update_bullets()
    assert game.bullets == [bullet]
    assert bullet["x"] == 408.0
    game.update_bullets()
    assert game.bullets == []


def test_bullet_leaving_world_is_removed(game):
    bullet_at(game, 796, 300, dx=8.0)
    game.update_bullets()
    assert game.bullets == []


def test_bullet_stops_inside_building(game):
    # the saloon spans x 50-130, y 50-110
    bullet_at(game, 45, 80, dx=8.0)
    game.update_bullets()
    assert game.bullets == []


def test_zombie_killed_this_frame_does_not_bite(game):
    p = game.player
    z = zombie_at(game, p["x"] + 5, p["y"] + 5, health=25)
    bullet_at(game, z["x"] + 2, z["y"] + 2)
    game.check_collisions(now=5000)
    assert z["health"] == 0
    assert p["health"] == 3
