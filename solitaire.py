"""
Neon Solitaire: Klondike, draw three.

`SolitaireTable` holds the rules (legality, scoring, undo history and the
hint engine) and knows nothing about pixels. `SolitaireGame` puts a cursor
and a mouse on top of it.
"""

import logging

from arcade_app import (
    JOYSTICK_DOWN,
    JOYSTICK_LEFT,
    JOYSTICK_RIGHT,
    JOYSTICK_UP,
    PLAY_HEIGHT,
    WIDTH,
    display,
    draw_play_rect,
    draw_rect_outline,
    draw_text_centered,
    draw_text_small,
    ticks_ms,
    ticks_diff,
)
from game_utils import BaseGame, fade, format_time, shuffle_in_place, spawn_burst, update_particles

logger = logging.getLogger("arcade.solitaire")

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
RED_SUITS = ("hearts", "diamonds")

TABLEAU_COLUMNS = 7
DEAL_COUNT = 3
HINT_COOLDOWN_MS = 1500
RECENT_HINTS = 3

SCORE_FLIP = 5
SCORE_FOUNDATION = 10
SCORE_TABLEAU = 5
SCORE_WIN = 100


def card_value(rank):
    """A=1 ... K=13."""
    if rank == "A":
        return 1
    if rank == "J":
        return 11
    if rank == "Q":
        return 12
    if rank == "K":
        return 13
    return int(rank)


class Card:
    """One playing card; `id` is "<suit>-<rank>" and unique within a deck."""

    __slots__ = ("suit", "rank", "color", "face_up", "id")

    def __init__(self, suit, rank, face_up=False):
        self.suit = suit
        self.rank = rank
        self.color = "red" if suit in RED_SUITS else "black"
        self.face_up = face_up
        self.id = "{}-{}".format(suit, rank)

    @property
    def value(self):
        return card_value(self.rank)

    @property
    def label(self):
        """Short form such as "10H" or "QS"."""
        return self.rank + self.suit[0].upper()

    def __repr__(self):
        return "Card({}{})".format(self.label, "" if self.face_up else " down")


def tableau_source(col):
    return "tableau-{}".format(col)


def foundation_source(suit):
    return "foundation-{}".format(suit)


def parse_source(source):
    """Split a pile id into (kind, key): ("tableau", 3), ("foundation", "hearts")."""
    if source.startswith("tableau-"):
        return "tableau", int(source.split("-", 1)[1])
    if source.startswith("foundation-"):
        return "foundation", source.split("-", 1)[1]
    return source, None


class SolitaireTable:
    """
    Klondike rules engine.

    Scoring: flipping a hidden card +5, a card onto a foundation +10, a move
    onto the tableau +5 and +100 for winning. Every move goes into
    `move_history`, so `undo()` can revert it including its points. Dealing
    from the stock is undoable but does not count as a move.
    """

    def __init__(self, shuffle=True):
        self.hint_cooldown = HINT_COOLDOWN_MS
        self.new_game(shuffle=shuffle)

    def new_game(self, shuffle=True):
        self.stock = []
        self.waste = []
        self.foundations = {suit: [] for suit in SUITS}
        self.tableau = [[] for _ in range(TABLEAU_COLUMNS)]
        self.move_count = 0
        self.score = 0
        self.game_ended = False
        self.won = False
        self.move_history = []
        self.clear_selection()
        self.last_hint_time = None
        self.hint_count = 0
        self.recent_hints = []
        self.game_state_hash_value = None
        self.create_deck()
        if shuffle:
            self.shuffle_deck()
        self.deal_cards()

    # ----- setup -----
    def create_deck(self):
        self.deck = [Card(suit, rank) for suit in SUITS for rank in RANKS]
        return self.deck

    def shuffle_deck(self):
        shuffle_in_place(self.deck)

    def deal_cards(self):
        """Column n gets n+1 cards with only the last face up; the rest is stock."""
        i = 0
        for col in range(TABLEAU_COLUMNS):
            for row in range(col + 1):
                card = self.deck[i]
                i += 1
                card.face_up = row == col
                self.tableau[col].append(card)
        self.stock = self.deck[i:]
        for card in self.stock:
            card.face_up = False
        self.waste = []

    # ----- stock -----
    def deal_from_stock(self):
        """
        Turn up to three cards from the stock onto the waste. With an empty
        stock the waste is turned back over to form a new stock.
        Returns the number of cards dealt (0 for a recycle or nothing to do).
        """
        if self.game_ended:
            return 0
        if not self.stock:
            if not self.waste:
                return 0
            self.stock = list(reversed(self.waste))
            for card in self.stock:
                card.face_up = False
            self.waste = []
            self.move_history.append({"type": "recycle", "score": 0, "counted": False})
            self._state_changed()
            return 0
        count = min(DEAL_COUNT, len(self.stock))
        for _ in range(count):
            card = self.stock.pop()
            card.face_up = True
            self.waste.append(card)
        self.move_history.append({"type": "deal", "count": count, "score": 0, "counted": False})
        self._state_changed()
        return count

    # ----- selection -----
    def select_card(self, card, source, index=-1):
        """Select `card` from pile `source`; in a tableau everything below comes along."""
        self.selected_card = card
        self.selected_source = source
        if index < 0 and source.startswith("tableau-"):
            index = self.tableau[parse_source(source)[1]].index(card)
        self.selected_index = index

    def clear_selection(self):
        self.selected_card = None
        self.selected_source = None
        self.selected_index = -1

    def pile(self, source):
        kind, key = parse_source(source)
        if kind == "tableau":
            return self.tableau[key]
        if kind == "foundation":
            return self.foundations[key]
        if kind == "waste":
            return self.waste
        if kind == "stock":
            return self.stock
        raise ValueError("unknown pile: {}".format(source))

    # ----- legality -----
    def can_move_to_foundation(self, card, suit):
        if card is None or card.suit != suit:
            return False
        foundation = self.foundations[suit]
        if not foundation:
            return card.rank == "A"
        return card.value == foundation[-1].value + 1

    def can_move_to_tableau(self, card, col):
        if card is None:
            return False
        column = self.tableau[col]
        if not column:
            return card.rank == "K"
        top = column[-1]
        if not top.face_up:
            return False
        return card.value == top.value - 1 and card.color != top.color

    def is_valid_sequence_start(self, col, index):
        """True when column[index:] is a face-up run alternating colour, descending by one."""
        column = self.tableau[col]
        if not column[index].face_up:
            return False
        for i in range(index, len(column) - 1):
            current = column[i]
            nxt = column[i + 1]
            if not nxt.face_up or current.color == nxt.color or current.value != nxt.value + 1:
                return False
        return True

    # ----- moves -----
    def flip_card(self, col, index):
        """Turn over the hidden top card of a column (+5)."""
        if self.game_ended:
            return False
        column = self.tableau[col]
        if not column or index != len(column) - 1:
            return False
        card = column[index]
        if card.face_up:
            return False
        card.face_up = True
        self.score += SCORE_FLIP
        self.add_move("flip", {"col": col, "index": index}, SCORE_FLIP)
        return True

    def try_move_to_foundation(self, suit):
        if self.selected_card is None:
            return False
        if not self._selection_is_single_top() or not self.can_move_to_foundation(self.selected_card, suit):
            return False
        self.move_to_foundation(suit)
        return True

    def _selection_is_single_top(self):
        pile = self.pile(self.selected_source)
        return bool(pile) and pile[-1] is self.selected_card

    def move_to_foundation(self, suit):
        card = self.selected_card
        source = self.selected_source
        position = self.pile(source).index(card)
        self.remove_card_from_source(card, source)
        self.foundations[suit].append(card)
        self.score += SCORE_FOUNDATION
        self.add_move(
            "foundation",
            {"card": card, "source": source, "target": suit, "position": position},
            SCORE_FOUNDATION,
        )
        self.clear_selection()
        if self.check_win():
            self.end_game(True)

    def try_move_to_tableau(self, col):
        if self.selected_card is None:
            return False
        if self.selected_source == tableau_source(col):
            return False
        if not self.can_move_to_tableau(self.selected_card, col):
            return False
        self.move_to_tableau(col)
        return True

    def move_to_tableau(self, col):
        """Move the selection (and, from a tableau, the run below it) onto column `col`."""
        source = self.selected_source
        kind, key = parse_source(source)
        if kind == "tableau":
            column = self.tableau[key]
            index = self.selected_index if self.selected_index >= 0 else column.index(self.selected_card)
            cards = column[index:]
        else:
            cards = [self.selected_card]
        position = self.pile(source).index(cards[0])
        for card in cards:
            self.remove_card_from_source(card, source)
        self.tableau[col].extend(cards)
        self.score += SCORE_TABLEAU
        self.add_move(
            "tableau",
            {"cards": list(cards), "source": source, "target": col, "position": position},
            SCORE_TABLEAU,
        )
        self.clear_selection()

    def remove_card_from_source(self, card, source):
        pile = self.pile(source)
        for i, c in enumerate(pile):
            if c is card:
                del pile[i]
                return True
        return False

    def add_move(self, move_type, data, score=0):
        entry = {"type": move_type, "score": score, "counted": True}
        entry.update(data)
        self.move_history.append(entry)
        self.move_count += 1
        self._state_changed()

    def _state_changed(self):
        self.recent_hints = []
        self.game_state_hash_value = None

    def undo(self):
        """Revert the most recent move, stock deal or recycle. False if none."""
        if self.game_ended or not self.move_history:
            return False
        move = self.move_history.pop()
        kind = move["type"]
        if kind == "flip":
            self.tableau[move["col"]][move["index"]].face_up = False
        elif kind == "foundation":
            card = self.foundations[move["target"]].pop()
            self.pile(move["source"]).insert(move["position"], card)
        elif kind == "tableau":
            n = len(move["cards"])
            target = self.tableau[move["target"]]
            moved = target[-n:]
            del target[-n:]
            pile = self.pile(move["source"])
            pile[move["position"]:move["position"]] = moved
        elif kind == "deal":
            for _ in range(move["count"]):
                card = self.waste.pop()
                card.face_up = False
                self.stock.append(card)
        elif kind == "recycle":
            self.waste = list(reversed(self.stock))
            for card in self.waste:
                card.face_up = True
            self.stock = []
        self.score -= move["score"]
        if move["counted"]:
            self.move_count -= 1
        self.clear_selection()
        self._state_changed()
        return True

    # ----- end of game -----
    def check_win(self):
        return all(len(self.foundations[suit]) == 13 for suit in SUITS)

    def end_game(self, won):
        if self.game_ended:
            return
        self.game_ended = True
        self.won = won
        if won:
            self.score += SCORE_WIN
            logger.info("Solitaire won: score %d in %d moves", self.score, self.move_count)

    def auto_complete(self):
        """Put every card on its foundation and finish the game as a win."""
        if self.game_ended:
            return False
        for suit in SUITS:
            self.foundations[suit] = [Card(suit, rank, face_up=True) for rank in RANKS]
        self.tableau = [[] for _ in range(TABLEAU_COLUMNS)]
        self.stock = []
        self.waste = []
        self.clear_selection()
        self.end_game(True)
        return True

    # ----- hints -----
    def game_state_hash(self):
        """Cheap fingerprint of what a hint depends on."""
        tops = []
        for col in self.tableau:
            tops.append("{}-{}".format(col[-1].id, col[-1].face_up) if col else "empty")
        return "|".join(
            (
                str(len(self.stock)),
                self.waste[-1].id if self.waste else "empty",
                ",".join(str(len(self.foundations[s])) for s in SUITS),
                ",".join(tops),
            )
        )

    def show_hint(self, now):
        """
        Return the next hint as a dict with at least "type" and "message".

        Rate limited by `hint_cooldown`; repeated requests on an unchanged
        table cycle through up to three different suggestions before asking
        the player to move first.
        """
        if self.last_hint_time is not None and now - self.last_hint_time < self.hint_cooldown:
            return {"type": "warning", "message": "WAIT FOR NEXT HINT"}

        current = self.game_state_hash()
        if self.game_state_hash_value == current and self.recent_hints:
            if self.find_best_hint(self.recent_hints) is None:
                return {"type": "info", "message": "MAKE A MOVE FIRST"}
        else:
            self.recent_hints = []
            self.game_state_hash_value = current

        hint = self.find_best_hint(self.recent_hints)
        if hint is None:
            return {"type": "no-moves", "message": "NO OBVIOUS MOVES"}

        self.hint_count += 1
        self.last_hint_time = now
        self.recent_hints.append(
            {
                "type": hint["type"],
                "card_id": hint["card"].id if hint.get("card") else None,
                "source": hint["source"],
                "target": hint["target"],
            }
        )
        if len(self.recent_hints) > RECENT_HINTS:
            self.recent_hints.pop(0)
        return hint

    def find_best_hint(self, recent_hints=()):
        """Foundation moves, then flips, then tableau moves, then waste/stock."""
        for finder in (
            self.find_foundation_moves,
            self.find_flip_moves,
            self.find_tableau_moves,
            self.find_waste_moves,
        ):
            hint = finder(recent_hints)
            if hint:
                return hint
        if recent_hints:
            return self.find_alternative_moves(recent_hints)
        return None

    def is_recent_hint(self, hint, recent_hints):
        card_id = hint["card"].id if hint.get("card") else None
        for recent in recent_hints:
            if (
                recent["type"] == hint["type"]
                and recent["card_id"] == card_id
                and recent["source"] == hint["source"]
                and recent["target"] == hint["target"]
            ):
                return True
        return False

    def find_foundation_moves(self, recent_hints=()):
        candidates = []
        for col, column in enumerate(self.tableau):
            if column and column[-1].face_up:
                candidates.append((column[-1], tableau_source(col), ""))
        if self.waste:
            candidates.append((self.waste[-1], "waste", " FROM WASTE"))
        for card, source, where in candidates:
            for suit in SUITS:
                if not self.can_move_to_foundation(card, suit):
                    continue
                hint = {
                    "type": "foundation",
                    "card": card,
                    "source": source,
                    "target": foundation_source(suit),
                    "message": "MOVE {}{} TO FOUNDATION".format(card.label, where),
                    "priority": 1,
                }
                if not self.is_recent_hint(hint, recent_hints):
                    return hint
        return None

    def find_flip_moves(self, recent_hints=()):
        for col, column in enumerate(self.tableau):
            if column and not column[-1].face_up:
                hint = {
                    "type": "flip",
                    "card": column[-1],
                    "source": tableau_source(col),
                    "target": tableau_source(col),
                    "message": "FLIP CARD IN COL {}".format(col + 1),
                    "priority": 2,
                }
                if not self.is_recent_hint(hint, recent_hints):
                    return hint
        return None

    def _tableau_candidates(self):
        """Every legal run move between columns as (card, src, dst, index, reveals)."""
        out = []
        for src, column in enumerate(self.tableau):
            for index, card in enumerate(column):
                if not card.face_up or not self.is_valid_sequence_start(src, index):
                    continue
                for dst in range(TABLEAU_COLUMNS):
                    if dst == src or not self.can_move_to_tableau(card, dst):
                        continue
                    # a king already at the bottom of its column gains nothing
                    if index == 0 and not self.tableau[dst]:
                        continue
                    reveals = index > 0 and not column[index - 1].face_up
                    out.append((card, src, dst, index, reveals))
        return out

    def find_tableau_moves(self, recent_hints=()):
        candidates = self._tableau_candidates()
        # moves that uncover a hidden card come first
        candidates.sort(key=lambda c: not c[4])
        for card, src, dst, index, reveals in candidates:
            hint = {
                "type": "tableau",
                "card": card,
                "source": tableau_source(src),
                "target": tableau_source(dst),
                "message": "MOVE {} TO COL {}{}".format(card.label, dst + 1, " (REVEAL)" if reveals else ""),
                "priority": 2 if reveals else 3,
                "card_index": index,
            }
            if not self.is_recent_hint(hint, recent_hints):
                return hint
        return None

    def find_waste_moves(self, recent_hints=()):
        if self.waste:
            card = self.waste[-1]
            for col in range(TABLEAU_COLUMNS):
                if not self.can_move_to_tableau(card, col):
                    continue
                hint = {
                    "type": "waste",
                    "card": card,
                    "source": "waste",
                    "target": tableau_source(col),
                    "message": "MOVE {} FROM WASTE TO COL {}".format(card.label, col + 1),
                    "priority": 3,
                }
                if not self.is_recent_hint(hint, recent_hints):
                    return hint
        if self.stock:
            hint = {
                "type": "stock",
                "card": None,
                "source": "stock",
                "target": "waste",
                "message": "DEAL FROM STOCK",
                "priority": 4,
            }
            if not self.is_recent_hint(hint, recent_hints):
                return hint
        return None

    def find_alternative_moves(self, recent_hints=()):
        """Lower-value suggestions offered once the obvious ones were shown."""
        for card, src, dst, index, _ in self._tableau_candidates():
            hint = {
                "type": "tableau",
                "card": card,
                "source": tableau_source(src),
                "target": tableau_source(dst),
                "message": "TRY {} TO COL {}".format(card.label, dst + 1),
                "priority": 5,
                "card_index": index,
            }
            if not self.is_recent_hint(hint, recent_hints):
                return hint
        if self.stock or self.waste:
            hint = {
                "type": "stock",
                "card": None,
                "source": "stock",
                "target": "waste",
                "message": "TRY DEALING MORE CARDS",
                "priority": 6,
            }
            if not self.is_recent_hint(hint, recent_hints):
                return hint
        return None


# ---------- presentation ----------
CARD_W = 20
CARD_H = 16
COL_PITCH = 22
X0 = 3
TOP_Y = 1
TABLEAU_Y = 20
DOWN_OFFSET = 2
MAX_UP_OFFSET = 7

TOP_STOCK = 0
TOP_WASTE = 1
TOP_FOUNDATION0 = 3

AREA_TOP = "top"
AREA_TABLEAU = "tableau"

CARD_FACE = (225, 225, 240)
CARD_BACK = (70, 0, 110)
CARD_EDGE = (0, 245, 255)
RED_INK = (230, 0, 90)
BLACK_INK = (20, 20, 60)
SELECT_COLOR = (255, 0, 255)
HINT_COLOR = (57, 255, 20)
CURSOR_COLOR = (255, 255, 0)

# 5x5 suit glyphs
SUIT_GLYPHS = {
    "hearts": ("01010", "11111", "11111", "01110", "00100"),
    "diamonds": ("00100", "01110", "11111", "01110", "00100"),
    "clubs": ("01110", "01110", "11111", "11111", "00100"),
    "spades": ("00100", "01110", "11111", "11111", "00100"),
}

WIN_LINGER_FRAMES = 90


def column_x(col):
    return X0 + col * COL_PITCH


class SolitaireGame(BaseGame):
    """Cursor-driven Klondike on the pixel display."""

    name = "SOLTR"

    def __init__(self):
        super().__init__()
        self.frame_ms = 33
        self.move_delay = 150
        self.reset()

    def reset(self):
        super().reset()
        self.table = SolitaireTable()
        self.start_ms = ticks_ms()
        self.end_ms = None
        self.cursor = (AREA_TABLEAU, 0, 0)
        self.last_move = 0
        self.message = None
        self.message_until = 0
        self.hint = None
        self.particles = []
        self.win_timer = 0
        self._z_prev = True
        self.won = False
        self._snap_cursor()

    @property
    def score(self):
        return self.table.score

    # ----- geometry -----
    def up_offset(self, col):
        column = self.table.tableau[col]
        hidden = sum(1 for c in column if not c.face_up)
        shown = len(column) - hidden
        if shown <= 1:
            return MAX_UP_OFFSET
        room = PLAY_HEIGHT - TABLEAU_Y - hidden * DOWN_OFFSET - CARD_H
        return max(2, min(MAX_UP_OFFSET, room // (shown - 1)))

    def card_y(self, col, index):
        column = self.table.tableau[col]
        y = TABLEAU_Y
        off = self.up_offset(col)
        for i in range(index):
            y += off if column[i].face_up else DOWN_OFFSET
        return y

    def hit_test(self, px, py):
        """Display pixel -> cursor position, or None over empty felt."""
        for col in range(TABLEAU_COLUMNS):
            x = column_x(col)
            if not (x <= px < x + CARD_W):
                continue
            if TOP_Y <= py < TOP_Y + CARD_H:
                if col == 2:
                    return None
                return (AREA_TOP, col, 0)
            column = self.table.tableau[col]
            if py < TABLEAU_Y:
                return None
            if not column:
                return (AREA_TABLEAU, col, 0) if py < TABLEAU_Y + CARD_H else None
            # topmost card drawn last wins
            for index in range(len(column) - 1, -1, -1):
                y = self.card_y(col, index)
                if y <= py < y + CARD_H:
                    return (AREA_TABLEAU, col, index)
        return None

    # ----- cursor -----
    def _snap_cursor(self):
        area, col, index = self.cursor
        if area == AREA_TABLEAU:
            column = self.table.tableau[col]
            if not column:
                index = 0
            else:
                first_up = next((i for i, c in enumerate(column) if c.face_up), len(column) - 1)
                index = max(first_up, min(index, len(column) - 1))
        elif col == 2:
            col = 1
        self.cursor = (area, col, index)

    def move_cursor(self, d):
        area, col, index = self.cursor
        if d == JOYSTICK_LEFT:
            col = max(0, col - 1)
            if area == AREA_TOP and col == 2:
                col = 1
            index = len(self.table.tableau[col]) - 1 if area == AREA_TABLEAU else 0
        elif d == JOYSTICK_RIGHT:
            col = min(TABLEAU_COLUMNS - 1, col + 1)
            if area == AREA_TOP and col == 2:
                col = 3
            index = len(self.table.tableau[col]) - 1 if area == AREA_TABLEAU else 0
        elif d == JOYSTICK_UP:
            if area == AREA_TABLEAU:
                column = self.table.tableau[col]
                if index > 0 and column and column[index - 1].face_up:
                    index -= 1
                else:
                    area = AREA_TOP
                    if col == 2:
                        col = 1
        elif d == JOYSTICK_DOWN:
            if area == AREA_TOP:
                area = AREA_TABLEAU
                index = len(self.table.tableau[col]) - 1
            else:
                index = min(index + 1, max(0, len(self.table.tableau[col]) - 1))
        self.cursor = (area, col, max(0, index))
        self._snap_cursor()

    # ----- actions -----
    def flash(self, text, ms=1500):
        self.message = text
        self.message_until = ticks_ms() + ms

    def _burst(self, x, y, count=8, colors=(CARD_EDGE, SELECT_COLOR)):
        for i in range(count):
            spawn_burst(self.particles, x, y, 1, colors[i % len(colors)], speed=2.0, size=2.0)

    def activate(self, pos):
        """Z button or click at cursor position `pos`."""
        t = self.table
        if t.game_ended:
            return
        area, col, index = pos
        self.hint = None
        if area == AREA_TOP:
            if col == TOP_STOCK:
                t.clear_selection()
                t.deal_from_stock()
            elif col == TOP_WASTE:
                if t.selected_card is not None:
                    t.clear_selection()
                elif t.waste:
                    t.select_card(t.waste[-1], "waste")
            elif col >= TOP_FOUNDATION0:
                suit = SUITS[col - TOP_FOUNDATION0]
                if t.selected_card is not None:
                    if t.try_move_to_foundation(suit):
                        self._burst(column_x(col) + CARD_W // 2, TOP_Y + CARD_H // 2)
                    else:
                        self.flash("INVALID MOVE", 800)
                elif t.foundations[suit]:
                    t.select_card(t.foundations[suit][-1], foundation_source(suit))
            return

        column = t.tableau[col]
        if t.selected_card is not None:
            if t.selected_source == tableau_source(col):
                t.clear_selection()
            elif t.try_move_to_tableau(col):
                self._burst(column_x(col) + CARD_W // 2, self.card_y(col, max(0, len(column) - 1)))
                self.cursor = (AREA_TABLEAU, col, len(column) - 1)
            else:
                self.flash("INVALID MOVE", 800)
            return
        if not column:
            return
        index = min(index, len(column) - 1)
        card = column[index]
        if not card.face_up:
            if t.flip_card(col, index):
                self._burst(column_x(col) + CARD_W // 2, self.card_y(col, index) + 4)
            return
        t.select_card(card, tableau_source(col), index)

    def quick_foundation(self):
        """Send the card under the cursor straight to its foundation if legal."""
        t = self.table
        area, col, index = self.cursor
        if area == AREA_TABLEAU and t.tableau[col]:
            card = t.tableau[col][-1]
            source = tableau_source(col)
        elif area == AREA_TOP and col == TOP_WASTE and t.waste:
            card = t.waste[-1]
            source = "waste"
        else:
            return False
        if not card.face_up or not t.can_move_to_foundation(card, card.suit):
            return False
        t.select_card(card, source)
        return t.try_move_to_foundation(card.suit)

    def request_hint(self):
        hint = self.table.show_hint(ticks_ms())
        self.hint = hint if hint.get("source") else None
        self.flash(hint["message"], 3000)
        logger.debug("Hint: %s", hint["message"])

    def poll(self, joystick):
        t = self.table
        _, z = joystick.nunchuck.buttons()
        if z and not self._z_prev:
            self.activate(self.cursor)
        self._z_prev = z

        if joystick.clicked():
            pos = joystick.mouse()
            hit = self.hit_test(*pos) if pos is not None else None
            if hit is not None:
                self.cursor = hit
                self.activate(hit)

        if joystick.key_pressed("H"):
            self.request_hint()
        if joystick.key_pressed("U"):
            if t.undo():
                self.flash("UNDO", 600)
                self._snap_cursor()
        if joystick.key_pressed("F"):
            self.quick_foundation()
        if joystick.key_pressed("R"):
            logger.info("Solitaire redeal")
            self.reset()
        if joystick.key_pressed("F10"):
            t.auto_complete()

    def update(self, joystick):
        now = ticks_ms()
        if ticks_diff(now, self.last_move) > self.move_delay:
            d = joystick.read_direction([JOYSTICK_UP, JOYSTICK_DOWN, JOYSTICK_LEFT, JOYSTICK_RIGHT])
            if d:
                self.move_cursor(d)
                self.last_move = now
        self._snap_cursor()
        update_particles(self.particles, gravity=0.05)

        if self.table.game_ended:
            if self.end_ms is None:
                self.end_ms = now
                self.won = self.table.won
                self.win_timer = WIN_LINGER_FRAMES
                for col in range(TOP_FOUNDATION0, TABLEAU_COLUMNS):
                    self._burst(column_x(col) + CARD_W // 2, TOP_Y + CARD_H, 8,
                                ((57, 255, 20), CARD_EDGE, SELECT_COLOR, (255, 0, 128)))
            self.win_timer -= 1
            return self.win_timer > 0
        return True

    def elapsed_ms(self):
        end = self.end_ms if self.end_ms is not None else ticks_ms()
        return end - self.start_ms

    def status_text(self):
        return "M{} {}".format(self.table.move_count, format_time(self.elapsed_ms()))

    # ----- drawing -----
    def draw_glyph(self, x, y, suit, color):
        for dy, row in enumerate(SUIT_GLYPHS[suit]):
            for dx, bit in enumerate(row):
                if bit == "1":
                    display.set_pixel(x + dx, y + dy, *color)

    def draw_card(self, x, y, card, selected=False, height=CARD_H):
        if card.face_up:
            draw_play_rect(x, y, CARD_W, height, *CARD_FACE)
            ink = RED_INK if card.color == "red" else BLACK_INK
            draw_text_small(x + 1, y + 1, card.rank, *ink)
            if height >= 12:
                self.draw_glyph(x + CARD_W - 6, y + 1, card.suit, ink)
                self.draw_glyph(x + 7, y + 9, card.suit, ink)
        else:
            draw_play_rect(x, y, CARD_W, height, *CARD_BACK)
        draw_rect_outline(x, y, x + CARD_W - 1, y + height - 1, *(SELECT_COLOR if selected else CARD_EDGE))

    def draw_slot(self, x, y, suit=None):
        draw_rect_outline(x, y, x + CARD_W - 1, y + CARD_H - 1, 0, 70, 80)
        if suit:
            self.draw_glyph(x + 7, y + 5, suit, (0, 70, 80))

    def _is_selected(self, card):
        t = self.table
        if t.selected_card is None:
            return False
        if t.selected_source.startswith("tableau-"):
            col = parse_source(t.selected_source)[1]
            column = t.tableau[col]
            return card in column[t.selected_index:]
        return card is t.selected_card

    def draw(self):
        t = self.table
        draw_play_rect(0, 0, WIDTH, PLAY_HEIGHT, 0, 12, 24)

        # stock
        x = column_x(TOP_STOCK)
        if t.stock:
            self.draw_card(x, TOP_Y, t.stock[-1])
        else:
            self.draw_slot(x, TOP_Y)
            draw_text_small(x + 7, TOP_Y + 5, "O", 0, 90, 100)

        # waste: up to three fanned cards
        x = column_x(TOP_WASTE)
        fan = t.waste[-3:]
        if not fan:
            self.draw_slot(x, TOP_Y)
        for i, card in enumerate(fan):
            self.draw_card(x + i * 4, TOP_Y, card, selected=self._is_selected(card))

        for i, suit in enumerate(SUITS):
            x = column_x(TOP_FOUNDATION0 + i)
            pile = t.foundations[suit]
            if pile:
                self.draw_card(x, TOP_Y, pile[-1], selected=self._is_selected(pile[-1]))
            else:
                self.draw_slot(x, TOP_Y, suit)

        for col in range(TABLEAU_COLUMNS):
            x = column_x(col)
            column = t.tableau[col]
            if not column:
                self.draw_slot(x, TABLEAU_Y)
                continue
            for index, card in enumerate(column):
                y = self.card_y(col, index)
                self.draw_card(x, y, card, selected=self._is_selected(card))

        self._draw_hint()
        self._draw_cursor()

        for p in self.particles:
            s = max(1, int(p["size"]))
            draw_play_rect(int(p["x"]), int(p["y"]), s, s, *fade(p["color"], p["life"]))

        if self.message and ticks_ms() < self.message_until:
            draw_play_rect(0, PLAY_HEIGHT - 8, WIDTH, 8, 40, 0, 60)
            draw_text_centered(PLAY_HEIGHT - 7, self.message, 255, 255, 255, small=True)
        if t.game_ended and t.won:
            draw_text_centered(50, "YOU WIN", 57, 255, 20)

    def _pos_rect(self, area, col, index):
        x = column_x(col)
        if area == AREA_TOP:
            if col == TOP_WASTE and self.table.waste:
                x += 4 * (min(3, len(self.table.waste)) - 1)
            return x, TOP_Y
        if not self.table.tableau[col]:
            return x, TABLEAU_Y
        return x, self.card_y(col, index)

    def _draw_cursor(self):
        area, col, index = self.cursor
        x, y = self._pos_rect(area, col, index)
        if (self.frame // 8) % 2 == 0:
            draw_rect_outline(x - 1, y - 1, x + CARD_W, y + CARD_H, *CURSOR_COLOR)

    def _draw_hint(self):
        hint = self.hint
        if not hint or ticks_ms() >= self.message_until:
            return
        for pile_id in (hint["source"], hint["target"]):
            kind, key = parse_source(pile_id)
            if kind == "tableau":
                column = self.table.tableau[key]
                index = hint.get("card_index", len(column) - 1) if pile_id == hint["source"] else len(column) - 1
                x, y = self._pos_rect(AREA_TABLEAU, key, max(0, index))
            elif kind == "foundation":
                x, y = self._pos_rect(AREA_TOP, TOP_FOUNDATION0 + SUITS.index(key), 0)
            elif kind == "waste":
                x, y = self._pos_rect(AREA_TOP, TOP_WASTE, 0)
            else:
                x, y = self._pos_rect(AREA_TOP, TOP_STOCK, 0)
            draw_rect_outline(x - 1, y - 1, x + CARD_W, y + CARD_H, *HINT_COLOR)
