from arcade_app import JOYSTICK_DOWN, JOYSTICK_LEFT, JOYSTICK_RIGHT, JOYSTICK_UP
from snake import MIN_SPEED, START, START_SPEED, TILE_COUNT, SnakeGame


def clear_board(game):
    game.obstacles = []
    game.food = (0, 0)


def test_reset_places_snake_food_and_obstacles():
    game = SnakeGame()
    assert game.snake == [START]
    assert (game.dx, game.dy) == (0, 0)
    assert 3 <= len(game.obstacles) <= 4
    assert game.food is not None
    assert game.food not in game.snake
    assert all((o["x"], o["y"]) != game.food for o in game.obstacles)
    assert all((o["x"], o["y"]) != START for o in game.obstacles)


def test_snake_waits_for_first_direction():
    game = SnakeGame()
    assert game.step() is True
    assert game.snake == [START]


def test_reverse_direction_is_rejected():
    game = SnakeGame()
    assert game.change_direction(JOYSTICK_RIGHT)
    assert not game.change_direction(JOYSTICK_LEFT)
    assert (game.dx, game.dy) == (1, 0)
    assert game.change_direction(JOYSTICK_UP)


def test_two_turns_between_steps_cannot_reverse():
    game = SnakeGame()
    clear_board(game)
    game.change_direction(JOYSTICK_RIGHT)
    assert game.step()
    assert game.change_direction(JOYSTICK_UP)
    assert not game.change_direction(JOYSTICK_LEFT)
    assert (game.dx, game.dy) == (0, -1)
    assert game.step()
    assert game.change_direction(JOYSTICK_LEFT)


def test_eating_food_grows_and_speeds_up():
    game = SnakeGame()
    clear_board(game)
    game.food = (START[0] + 1, START[1])
    game.change_direction(JOYSTICK_RIGHT)
    assert game.step()
    assert game.snake == [(START[0] + 1, START[1]), START]
    assert game.score == 10
    assert game.speed == START_SPEED - 2
    assert game.food not in game.snake


def test_speed_never_drops_below_minimum():
    game = SnakeGame()
    clear_board(game)
    game.speed = MIN_SPEED + 1
    game.food = (START[0] + 1, START[1])
    game.change_direction(JOYSTICK_RIGHT)
    game.step()
    assert game.speed == MIN_SPEED


def test_wall_kills():
    game = SnakeGame()
    clear_board(game)
    game.snake = [(TILE_COUNT - 1, 5)]
    game.change_direction(JOYSTICK_RIGHT)
    assert game.step() is False
    assert game.over
    assert game.step() is False


def test_obstacle_on_new_head_kills():
    game = SnakeGame()
    clear_board(game)
    game.obstacles = [{"x": START[0], "y": START[1] + 1, "type": "spike"}]
    game.change_direction(JOYSTICK_DOWN)
    assert game.step() is False


def test_running_into_own_body_kills():
    game = SnakeGame()
    clear_board(game)
    game.snake = [(5, 5), (6, 5), (6, 6), (5, 6), (4, 6)]
    game.dx, game.dy = 0, 1
    assert game.step() is False


def test_pause_freezes_movement(joystick):
    game = SnakeGame()
    clear_board(game)
    game.change_direction(JOYSTICK_RIGHT)
    game._z_prev = False
    joystick.nunchuck.z = True
    game.poll(joystick)
    assert game.paused
    assert game.status_text() == "PAUSE"
    assert game.step() is True
    assert game.snake == [START]
    # steering is ignored while paused
    assert not game.change_direction(JOYSTICK_UP)


def test_restart_key_resets(joystick):
    game = SnakeGame()
    game.score = 50
    joystick.press("R")
    game.poll(joystick)
    assert game.score == 0
    assert game.snake == [START]


def test_food_avoids_occupied_tiles():
    game = SnakeGame()
    game.obstacles = []
    game.snake = [(x, y) for y in range(TILE_COUNT) for x in range(TILE_COUNT) if (x, y) != (3, 7)]
    assert game.generate_food() == (3, 7)


def test_obstacle_cap_grows_with_score():
    game = SnakeGame()
    assert game.max_obstacles() == 3
    game.score = 200
    assert game.max_obstacles() == 13
    game.score = 10000
    assert game.max_obstacles() == 15
    assert game.spawn_rate() == 0.08
