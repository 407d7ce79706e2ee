"""
Neon Sudoku: generated 9x9 puzzles in three difficulties.

Three mistakes end the run. Controls: stick moves the cell cursor, Z opens
the number pad (stick picks, Z places), digit keys place directly, 0 or
Backspace erases, H hints, P pauses and R restarts the puzzle.
"""

import logging

from arcade_app import (
    JOYSTICK_DOWN,
    JOYSTICK_LEFT,
    JOYSTICK_RIGHT,
    JOYSTICK_UP,
    PLAY_HEIGHT,
    WIDTH,
    draw_character,
    draw_play_rect,
    draw_rect_outline,
    draw_text_centered,
    draw_text_small,
    ticks_ms,
    ticks_diff,
)
from game_utils import BaseGame, fade, format_time, point_in_rect, shuffled, spawn_burst, update_particles

logger = logging.getLogger("arcade.sudoku")

SIZE = 9
BOX = 3
DIGITS = tuple(range(1, 10))

# cells removed from the solved grid
DIFFICULTY_SETTINGS = {
    "easy": 40,
    "medium": 50,
    "hard": 60,
}
DIFFICULTIES = ("easy", "medium", "hard")
MAX_MISTAKES = 3

CELL_POINTS = 10
WIN_BONUS = 100

STATE_START = "START"
STATE_PLAYING = "PLAYING"
STATE_PAUSED = "PAUSED"
STATE_GAME_OVER = "GAME_OVER"
STATE_WON = "WON"


def empty_grid():
    return [[0] * SIZE for _ in range(SIZE)]


def copy_grid(grid):
    return [list(row) for row in grid]


def is_valid_move(grid, row, col, num):
    """True if `num` appears nowhere in the row, column or 3x3 box of (row, col)."""
    for c in range(SIZE):
        if grid[row][c] == num:
            return False
    for r in range(SIZE):
        if grid[r][col] == num:
            return False
    br = (row // BOX) * BOX
    bc = (col // BOX) * BOX
    for r in range(br, br + BOX):
        for c in range(bc, bc + BOX):
            if grid[r][c] == num:
                return False
    return True


def solve(grid, randomize=False):
    """
    Fill the zeros of `grid` in place by backtracking.

    With `randomize` the candidate digits are tried in random order, which
    turns solving an empty grid into generating a random full solution.
    Returns True when a solution was found; on False the grid is unchanged.
    """
    for row in range(SIZE):
        for col in range(SIZE):
            if grid[row][col] != 0:
                continue
            candidates = shuffled(DIGITS) if randomize else DIGITS
            for num in candidates:
                if is_valid_move(grid, row, col, num):
                    grid[row][col] = num
                    if solve(grid, randomize):
                        return True
                    grid[row][col] = 0
            return False
    return True


def generate_solution():
    grid = empty_grid()
    solve(grid, randomize=True)
    return grid


class SudokuBoard:
    """
    Puzzle state and rules, no drawing.

    `grid` is what the player sees, `initial_grid` the given clues and
    `solution` the full grid the puzzle was cut from. Times are passed in
    as milliseconds so the board can be driven by tests.
    """

    def __init__(self, difficulty="medium"):
        self.difficulty = difficulty
        self.max_mistakes = MAX_MISTAKES
        self.grid = empty_grid()
        self.solution = empty_grid()
        self.initial_grid = empty_grid()
        self.state = STATE_START
        self.selected_cell = None
        self.mistakes = 0
        self.hints_used = 0
        self.hint_cells = set()
        self.start_time = 0
        self.elapsed_time = 0

    def set_difficulty(self, difficulty):
        if difficulty not in DIFFICULTY_SETTINGS:
            raise ValueError("unknown difficulty: {}".format(difficulty))
        self.difficulty = difficulty

    def generate_puzzle(self):
        self.solution = generate_solution()
        self.grid = copy_grid(self.solution)
        cells = [(r, c) for r in range(SIZE) for c in range(SIZE)]
        for r, c in shuffled(cells)[:DIFFICULTY_SETTINGS[self.difficulty]]:
            self.grid[r][c] = 0
        self.initial_grid = copy_grid(self.grid)

    def start_game(self, now):
        self.mistakes = 0
        self.hints_used = 0
        self.hint_cells = set()
        self.selected_cell = None
        self.generate_puzzle()
        self.start_time = now
        self.elapsed_time = 0
        self.state = STATE_PLAYING
        logger.info("Sudoku started (%s, %d clues)", self.difficulty, self.clue_count())

    def clue_count(self):
        return sum(1 for row in self.initial_grid for v in row if v)

    def is_initial(self, row, col):
        return self.initial_grid[row][col] != 0

    def is_locked(self, row, col):
        """Clues and hinted cells can no longer be edited."""
        return self.is_initial(row, col) or (row, col) in self.hint_cells

    def select_cell(self, row, col):
        if self.state != STATE_PLAYING:
            return False
        if not (0 <= row < SIZE and 0 <= col < SIZE):
            return False
        self.selected_cell = (row, col)
        return True

    def input_number(self, number):
        """
        Write `number` into the selected cell.

        A number that clashes with its row, column or box counts as a
        mistake but is still written, unless it is the final mistake, which
        ends the game without placing it. Clues and hinted cells are
        read-only. Returns True if the number was written.
        """
        if self.selected_cell is None or self.state != STATE_PLAYING:
            return False
        row, col = self.selected_cell
        if self.is_locked(row, col):
            return False

        # the cell's own current value must not count against the new one
        previous = self.grid[row][col]
        self.grid[row][col] = 0
        valid = is_valid_move(self.grid, row, col, number)
        self.grid[row][col] = previous

        if not valid:
            self.mistakes += 1
            logger.debug("Sudoku mistake %d at %d,%d", self.mistakes, row, col)
            if self.mistakes >= self.max_mistakes:
                self.game_over(False)
                return False

        self.grid[row][col] = number
        if self.is_puzzle_solved():
            self.game_over(True)
        return True

    def erase_cell(self):
        if self.selected_cell is None or self.state != STATE_PLAYING:
            return False
        row, col = self.selected_cell
        if self.is_locked(row, col):
            return False
        self.grid[row][col] = 0
        return True

    def show_hint(self):
        """Fill the selected empty cell from the solution."""
        if self.state != STATE_PLAYING or self.selected_cell is None:
            return False
        row, col = self.selected_cell
        if self.grid[row][col] != 0:
            return False
        self.grid[row][col] = self.solution[row][col]
        self.hint_cells.add((row, col))
        self.hints_used += 1
        if self.is_puzzle_solved():
            self.game_over(True)
        return True

    def is_puzzle_solved(self):
        """Every cell filled and no digit clashes with another."""
        grid = self.grid
        for row in grid:
            if 0 in row:
                return False
        for r in range(SIZE):
            for c in range(SIZE):
                num = grid[r][c]
                grid[r][c] = 0
                ok = is_valid_move(grid, r, c, num)
                grid[r][c] = num
                if not ok:
                    return False
        return True

    def reset_game(self, now):
        """Back to the clues of the current puzzle; timer and mistakes restart."""
        if self.state != STATE_PLAYING:
            return False
        self.grid = copy_grid(self.initial_grid)
        self.mistakes = 0
        self.selected_cell = None
        self.hint_cells = set()
        self.elapsed_time = 0
        self.start_time = now
        return True

    def toggle_pause(self, now):
        if self.state == STATE_PLAYING:
            self.elapsed_time = now - self.start_time
            self.state = STATE_PAUSED
        elif self.state == STATE_PAUSED:
            self.start_time = now - self.elapsed_time
            self.state = STATE_PLAYING

    def game_over(self, won, now=None):
        if now is None:
            now = ticks_ms()
        if self.state == STATE_PLAYING:
            self.elapsed_time = now - self.start_time
        self.state = STATE_WON if won else STATE_GAME_OVER
        logger.info(
            "Sudoku %s in %s with %d mistakes, %d hints",
            "solved" if won else "lost",
            format_time(self.elapsed_time),
            self.mistakes,
            self.hints_used,
        )

    def elapsed_ms(self, now):
        if self.state == STATE_PLAYING:
            return now - self.start_time
        return self.elapsed_time

    @property
    def score(self):
        """10 per correctly placed player digit (hints excluded), +100 for solving."""
        points = 0
        for r in range(SIZE):
            for c in range(SIZE):
                if self.is_locked(r, c):
                    continue
                v = self.grid[r][c]
                if v and v == self.solution[r][c]:
                    points += CELL_POINTS
        if self.state == STATE_WON:
            points += WIN_BONUS
        return points


# ---------- presentation ----------
CELL = 13
BOARD_X = 2
BOARD_Y = 1
PAD_X = 124
PAD_Y = 44
PAD_CELL = 11
ERASE_INDEX = 9
END_FRAMES = 60

GRID_COLOR = (0, 70, 90)
BOX_COLOR = (0, 245, 255)
RELATED_BG = (15, 15, 45)
SELECTED_BG = (70, 0, 110)
CLUE_COLOR = (230, 230, 230)
PLAYER_COLOR = (0, 245, 255)
HINT_COLOR = (57, 255, 20)
MISTAKE_COLOR = (255, 0, 128)

DIFF_LABELS = {"easy": "EASY", "medium": "MED", "hard": "HARD"}


class SudokuGame(BaseGame):
    name = "SUDOKU"

    def __init__(self):
        super().__init__()
        self.frame_ms = 33
        self.move_delay = 140
        self.difficulty_index = 1
        self.reset()

    def reset(self):
        super().reset()
        self.board = SudokuBoard(DIFFICULTIES[self.difficulty_index])
        self.cursor = (4, 4)
        self.pad_open = False
        self.pad_index = 0
        self.last_move = 0
        self.mistake_cell = None
        self.mistake_until = 0
        self.particles = []
        self.end_timer = END_FRAMES
        self.won = False
        self._z_prev = True

    @property
    def score(self):
        return self.board.score

    # ----- actions -----
    def start(self):
        self.board.set_difficulty(DIFFICULTIES[self.difficulty_index])
        self.board.start_game(ticks_ms())
        self.board.select_cell(*self.cursor)

    def place(self, number):
        b = self.board
        before = b.mistakes
        placed = b.input_number(number)
        if b.mistakes > before:
            self.mistake_cell = b.selected_cell or self.cursor
            self.mistake_until = ticks_ms() + 1000
            self._burst(self.mistake_cell, MISTAKE_COLOR)
        elif placed:
            self._burst(self.cursor, PLAYER_COLOR, 4)
        return placed

    def erase(self):
        return self.board.erase_cell()

    def hint(self):
        if self.board.show_hint():
            self._burst(self.cursor, HINT_COLOR)
            return True
        return False

    def _burst(self, cell, color, count=6):
        x, y = self.cell_px(*cell)
        spawn_burst(self.particles, x + CELL // 2, y + CELL // 2, count, color, speed=1.5, size=2.0)

    def move_cursor(self, d):
        row, col = self.cursor
        if d == JOYSTICK_UP:
            row = (row - 1) % SIZE
        elif d == JOYSTICK_DOWN:
            row = (row + 1) % SIZE
        elif d == JOYSTICK_LEFT:
            col = (col - 1) % SIZE
        elif d == JOYSTICK_RIGHT:
            col = (col + 1) % SIZE
        self.cursor = (row, col)
        self.board.select_cell(row, col)

    def move_pad(self, d):
        i = self.pad_index
        if i == ERASE_INDEX:
            if d == JOYSTICK_UP:
                i = 7
        elif d == JOYSTICK_UP and i >= 3:
            i -= 3
        elif d == JOYSTICK_DOWN:
            i = i + 3 if i < 6 else ERASE_INDEX
        elif d == JOYSTICK_LEFT and i % 3:
            i -= 1
        elif d == JOYSTICK_RIGHT and i % 3 < 2:
            i += 1
        self.pad_index = i

    def apply_pad(self, index):
        if index == ERASE_INDEX:
            self.erase()
        else:
            self.place(index + 1)

    # ----- geometry -----
    def cell_px(self, row, col):
        return BOARD_X + col * CELL, BOARD_Y + row * CELL

    def cell_at(self, px, py):
        col = (px - BOARD_X) // CELL
        row = (py - BOARD_Y) // CELL
        if 0 <= row < SIZE and 0 <= col < SIZE:
            return row, col
        return None

    def pad_px(self, index):
        if index == ERASE_INDEX:
            return PAD_X, PAD_Y + 3 * PAD_CELL
        return PAD_X + (index % 3) * PAD_CELL, PAD_Y + (index // 3) * PAD_CELL

    def pad_at(self, px, py):
        for index in range(ERASE_INDEX + 1):
            x, y = self.pad_px(index)
            w = 3 * PAD_CELL if index == ERASE_INDEX else PAD_CELL
            if point_in_rect(px, py, x, y, w - 1, PAD_CELL - 1):
                return index
        return None

    # ----- frame hooks -----
    def _handle_click(self, pos):
        b = self.board
        if b.state == STATE_START:
            self.start()
            return
        if b.state == STATE_PAUSED:
            b.toggle_pause(ticks_ms())
            return
        cell = self.cell_at(*pos)
        if cell is not None:
            self.cursor = cell
            b.select_cell(*cell)
            return
        index = self.pad_at(*pos)
        if index is not None:
            self.pad_index = index
            self.apply_pad(index)

    def poll(self, joystick):
        b = self.board
        _, z = joystick.nunchuck.buttons()
        pressed = z and not self._z_prev
        self._z_prev = z

        if joystick.clicked():
            pos = joystick.mouse()
            if pos is not None:
                self._handle_click(pos)

        if b.state == STATE_START:
            for i, key in enumerate(("1", "2", "3")):
                if joystick.key_pressed(key):
                    self.difficulty_index = i
            if pressed:
                self.start()
            return

        if joystick.key_pressed("P"):
            b.toggle_pause(ticks_ms())
            self.pad_open = False
        if b.state != STATE_PLAYING:
            return

        if pressed:
            if self.pad_open:
                self.apply_pad(self.pad_index)
                self.pad_open = False
            elif not b.is_initial(*self.cursor):
                self.pad_open = True
        for n in DIGITS:
            if joystick.key_pressed(str(n)):
                self.place(n)
        if joystick.key_pressed("0"):
            self.erase()
        if joystick.key_pressed("H"):
            self.hint()
        if joystick.key_pressed("R"):
            b.reset_game(ticks_ms())
            b.select_cell(*self.cursor)

    def update(self, joystick):
        b = self.board
        now = ticks_ms()
        update_particles(self.particles, gravity=0.05)

        if b.state in (STATE_WON, STATE_GAME_OVER):
            if self.end_timer == END_FRAMES:
                self.won = b.state == STATE_WON
                if self.won:
                    for i in range(4):
                        self._burst((i * 2 + 1, i * 2 + 1), (HINT_COLOR, BOX_COLOR)[i % 2], 10)
            self.end_timer -= 1
            return self.end_timer > 0

        if ticks_diff(now, self.last_move) > self.move_delay:
            d = joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN, JOYSTICK_LEFT, JOYSTICK_RIGHT])
            if d:
                self.last_move = now
                if b.state == STATE_START:
                    if d == JOYSTICK_UP:
                        self.difficulty_index = max(0, self.difficulty_index - 1)
                    elif d == JOYSTICK_DOWN:
                        self.difficulty_index = min(len(DIFFICULTIES) - 1, self.difficulty_index + 1)
                elif b.state == STATE_PLAYING:
                    if self.pad_open:
                        self.move_pad(d)
                    else:
                        self.move_cursor(d)
        return True

    def status_text(self):
        if self.board.state == STATE_START:
            return None
        return "M{} {}".format(self.board.mistakes, format_time(self.board.elapsed_ms(ticks_ms())))

    # ----- drawing -----
    def draw(self):
        b = self.board
        draw_play_rect(0, 0, WIDTH, PLAY_HEIGHT, 0, 0, 0)
        if b.state == STATE_START:
            self._draw_start()
            return
        if b.state == STATE_PAUSED:
            draw_text_centered(40, "PAUSED", 0, 245, 255)
            draw_text_centered(60, "P TO RESUME", 255, 255, 255, small=True)
            return

        self._draw_board()
        self._draw_panel()

        for p in self.particles:
            s = max(1, int(p["size"]))
            draw_play_rect(int(p["x"]), int(p["y"]), s, s, *fade(p["color"], p["life"]))

        if b.state == STATE_WON:
            draw_play_rect(10, 50, 110, 14, 0, 0, 0)
            draw_text_centered(53, "SOLVED", 57, 255, 20)
        elif b.state == STATE_GAME_OVER:
            draw_play_rect(10, 50, 110, 14, 0, 0, 0)
            draw_text_centered(53, "3 MISTAKES", 255, 0, 128)

    def _draw_start(self):
        draw_text_centered(12, "SUDOKU", 0, 245, 255)
        for i, diff in enumerate(DIFFICULTIES):
            y = 40 + i * 16
            col = (255, 0, 255) if i == self.difficulty_index else (111, 111, 111)
            label = DIFF_LABELS[diff]
            if i == self.difficulty_index:
                label = "> " + label + " <"
            draw_text_centered(y, label, *col)
        draw_text_centered(100, "Z TO START", 255, 255, 255, small=True)

    def _draw_board(self):
        b = self.board
        sel = b.selected_cell
        now = ticks_ms()
        size = SIZE * CELL

        for r in range(SIZE):
            for c in range(SIZE):
                x, y = self.cell_px(r, c)
                if sel == (r, c):
                    draw_play_rect(x + 1, y + 1, CELL - 1, CELL - 1, *SELECTED_BG)
                elif sel and (r == sel[0] or c == sel[1] or (r // BOX, c // BOX) == (sel[0] // BOX, sel[1] // BOX)):
                    draw_play_rect(x + 1, y + 1, CELL - 1, CELL - 1, *RELATED_BG)
                v = b.grid[r][c]
                if not v:
                    continue
                if self.mistake_cell == (r, c) and now < self.mistake_until:
                    color = MISTAKE_COLOR
                elif b.is_initial(r, c):
                    color = CLUE_COLOR
                elif (r, c) in b.hint_cells:
                    color = HINT_COLOR
                else:
                    color = PLAYER_COLOR
                draw_character(x + 3, y + 3, str(v), *color)

        for i in range(SIZE + 1):
            color = BOX_COLOR if i % BOX == 0 else GRID_COLOR
            draw_play_rect(BOARD_X + i * CELL, BOARD_Y, 1, size + 1, *color)
            draw_play_rect(BOARD_X, BOARD_Y + i * CELL, size + 1, 1, *color)
        # box lines drawn again so thin lines never cross them
        for i in range(0, SIZE + 1, BOX):
            draw_play_rect(BOARD_X + i * CELL, BOARD_Y, 1, size + 1, *BOX_COLOR)
            draw_play_rect(BOARD_X, BOARD_Y + i * CELL, size + 1, 1, *BOX_COLOR)

        if sel and (self.frame // 8) % 2 == 0:
            x, y = self.cell_px(*sel)
            draw_rect_outline(x, y, x + CELL, y + CELL, 255, 255, 0)

    def _draw_panel(self):
        b = self.board
        draw_text_small(PAD_X, 2, DIFF_LABELS[b.difficulty], 0, 245, 255)
        draw_text_small(PAD_X, 10, "X{}/{}".format(b.mistakes, b.max_mistakes), 255, 0, 128)
        draw_text_small(PAD_X, 18, "H{}".format(b.hints_used), 57, 255, 20)
        if self.pad_open:
            draw_text_small(PAD_X, 30, "PICK", 255, 255, 0)
        else:
            draw_text_small(PAD_X, 30, "PAD", 111, 111, 111)
        for index in range(ERASE_INDEX + 1):
            x, y = self.pad_px(index)
            w = 3 * PAD_CELL if index == ERASE_INDEX else PAD_CELL
            active = self.pad_open and index == self.pad_index
            draw_rect_outline(x, y, x + w - 1, y + PAD_CELL - 1, *((255, 255, 0) if active else GRID_COLOR))
            label = "DEL" if index == ERASE_INDEX else str(index + 1)
            tx = x + (w - len(label) * 6) // 2 + 1
            draw_text_small(tx, y + 3, label, *(PLAYER_COLOR if active else CLUE_COLOR))
