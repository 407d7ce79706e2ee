import pytest

from sudoku import (
    BOARD_X,
    BOARD_Y,
    CELL,
    DIFFICULTY_SETTINGS,
    STATE_GAME_OVER,
    STATE_PAUSED,
    STATE_PLAYING,
    STATE_START,
    STATE_WON,
    SudokuBoard,
    SudokuGame,
    copy_grid,
    empty_grid,
    is_valid_move,
    solve,
)


def solved_grid():
    grid = empty_grid()
    assert solve(grid)
    return grid


def assert_valid_solution(grid):
    for r in range(9):
        for c in range(9):
            num = grid[r][c]
            assert 1 <= num <= 9
            grid[r][c] = 0
            assert is_valid_move(grid, r, c, num)
            grid[r][c] = num


@pytest.fixture
def board():
    """A board whose only blanks are (0, 0) and (0, 1)."""
    b = SudokuBoard("easy")
    b.solution = solved_grid()
    b.grid = copy_grid(b.solution)
    b.grid[0][0] = 0
    b.grid[0][1] = 0
    b.initial_grid = copy_grid(b.grid)
    b.state = STATE_PLAYING
    b.start_time = 0
    return b


def test_is_valid_move_checks_row_column_and_box():
    grid = empty_grid()
    grid[0][0] = 5
    assert not is_valid_move(grid, 0, 8, 5)
    assert not is_valid_move(grid, 8, 0, 5)
    assert not is_valid_move(grid, 2, 2, 5)
    assert is_valid_move(grid, 3, 3, 5)
    assert is_valid_move(grid, 0, 8, 4)


def test_solve_fills_empty_grid():
    grid = empty_grid()
    assert solve(grid, randomize=True)
    assert_valid_solution(grid)


def test_solve_reports_dead_end_and_restores_grid():
    grid = empty_grid()
    for c in range(8):
        grid[0][c] = c + 1
    grid[1][8] = 9
    before = copy_grid(grid)
    assert not solve(grid)
    assert grid == before


def test_generated_puzzle_matches_difficulty():
    b = SudokuBoard("easy")
    b.start_game(now=0)
    assert b.state == STATE_PLAYING
    assert b.clue_count() == 81 - DIFFICULTY_SETTINGS["easy"]
    assert_valid_solution(copy_grid(b.solution))
    for r in range(9):
        for c in range(9):
            if b.initial_grid[r][c]:
                assert b.initial_grid[r][c] == b.solution[r][c]


def test_unknown_difficulty_is_rejected():
    with pytest.raises(ValueError):
        SudokuBoard().set_difficulty("insane")


def test_correct_number_scores(board):
    board.select_cell(0, 0)
    assert board.input_number(board.solution[0][0])
    assert board.mistakes == 0
    assert board.score == 10


def test_rewriting_same_value_is_not_a_mistake(board):
    board.select_cell(0, 0)
    board.input_number(board.solution[0][0])
    board.input_number(board.solution[0][0])
    assert board.mistakes == 0


def test_clashing_number_is_a_mistake_but_written(board):
    clash = board.solution[0][2]
    board.select_cell(0, 0)
    assert board.input_number(clash)
    assert board.mistakes == 1
    assert board.grid[0][0] == clash
    assert board.score == 0


def test_third_mistake_loses_without_placing(board):
    board.mistakes = 2
    board.select_cell(0, 0)
    assert not board.input_number(board.solution[0][2])
    assert board.mistakes == 3
    assert board.state == STATE_GAME_OVER
    assert board.grid[0][0] == 0


def test_clues_are_read_only(board):
    board.select_cell(5, 5)
    value = board.grid[5][5]
    assert not board.input_number(value % 9 + 1)
    assert not board.erase_cell()
    assert board.grid[5][5] == value


def test_erase(board):
    board.select_cell(0, 0)
    board.input_number(board.solution[0][0])
    assert board.erase_cell()
    assert board.grid[0][0] == 0


def test_hint_fills_selected_empty_cell(board):
    board.select_cell(0, 1)
    assert board.show_hint()
    assert board.grid[0][1] == board.solution[0][1]
    assert board.hints_used == 1
    assert board.score == 0
    assert not board.show_hint()
    assert board.hints_used == 1


def test_hinted_cell_cannot_be_retyped_for_points(board):
    board.select_cell(0, 1)
    board.show_hint()
    assert not board.input_number(board.solution[0][1])
    assert not board.erase_cell()
    assert board.grid[0][1] == board.solution[0][1]
    assert board.score == 0


def test_solving_wins_with_bonus(board):
    board.select_cell(0, 0)
    board.input_number(board.solution[0][0])
    assert board.state == STATE_PLAYING
    board.select_cell(0, 1)
    board.input_number(board.solution[0][1])
    assert board.is_puzzle_solved()
    assert board.state == STATE_WON
    assert board.score == 120


def test_pause_freezes_timer(board):
    board.toggle_pause(1000)
    assert board.state == STATE_PAUSED
    assert board.elapsed_ms(5000) == 1000
    board.select_cell(0, 0)
    assert not board.input_number(board.solution[0][0])
    board.toggle_pause(5000)
    assert board.state == STATE_PLAYING
    assert board.elapsed_ms(6000) == 2000


def test_reset_restores_clues(board):
    board.select_cell(0, 0)
    board.input_number(board.solution[0][2])
    assert board.reset_game(now=500)
    assert board.grid == board.initial_grid
    assert board.mistakes == 0
    assert board.selected_cell is None
    assert board.elapsed_ms(700) == 200


# ----- game screen -----
def test_difficulty_picker_and_start(joystick):
    game = SudokuGame()
    assert game.board.state == STATE_START
    assert game.status_text() is None
    joystick.press("3")
    game.poll(joystick)
    game._z_prev = False
    joystick.nunchuck.z = True
    game.poll(joystick)
    assert game.board.state == STATE_PLAYING
    assert game.board.difficulty == "hard"
    assert game.board.selected_cell == (4, 4)
    assert game.status_text().startswith("M0 ")


def test_digit_key_places_number(joystick):
    game = SudokuGame()
    game.start()
    b = game.board
    r, c = next((r, c) for r in range(9) for c in range(9) if b.grid[r][c] == 0)
    game.cursor = (r, c)
    b.select_cell(r, c)
    joystick.press(str(b.solution[r][c]))
    game.poll(joystick)
    assert b.grid[r][c] == b.solution[r][c]
    joystick.press("0")
    game.poll(joystick)
    assert b.grid[r][c] == 0


def test_click_selects_cell_and_pad(joystick):
    game = SudokuGame()
    game.start()
    joystick.click(BOARD_X + 2 * CELL + 5, BOARD_Y + 3 * CELL + 5)
    game.poll(joystick)
    assert game.board.selected_cell == (3, 2)
    assert game.pad_at(126, 46) == 0
    assert game.pad_at(140, 80) == 9
    assert game.pad_at(2, 2) is None


def test_pause_key(joystick):
    game = SudokuGame()
    game.start()
    joystick.press("P")
    game.poll(joystick)
    assert game.board.state == STATE_PAUSED


def test_game_score_follows_board():
    game = SudokuGame()
    game.start()
    game.reset()
    assert game.score == game.board.score == 0
    with pytest.raises(AttributeError):
        game.score = 10
