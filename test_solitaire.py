import pytest

from solitaire import (
    AREA_TABLEAU,
    AREA_TOP,
    RANKS,
    SUITS,
    Card,
    SolitaireGame,
    SolitaireTable,
    card_value,
)


def up(suit, rank):
    return Card(suit, rank, face_up=True)


def down(suit, rank):
    return Card(suit, rank, face_up=False)


@pytest.fixture
def table():
    return SolitaireTable(shuffle=False)


@pytest.fixture
def bare_table():
    t = SolitaireTable(shuffle=False)
    t.stock = []
    t.waste = []
    t.tableau = [[] for _ in range(7)]
    return t


def test_card_values_and_colours():
    assert [card_value(r) for r in RANKS] == list(range(1, 14))
    assert Card("hearts", "Q").color == "red"
    assert Card("spades", "Q").color == "black"
    assert Card("diamonds", "10").label == "10D"


def test_deal_layout(table):
    for n, column in enumerate(table.tableau):
        assert len(column) == n + 1
        assert column[-1].face_up
        assert not any(c.face_up for c in column[:-1])
    assert len(table.stock) == 24
    assert not any(c.face_up for c in table.stock)
    ids = [c.id for col in table.tableau for c in col] + [c.id for c in table.stock]
    assert len(set(ids)) == 52


def test_shuffled_deal_is_still_a_full_deck():
    t = SolitaireTable()
    ids = {c.id for col in t.tableau for c in col} | {c.id for c in t.stock}
    assert len(ids) == 52


def test_deal_three_from_stock(table):
    top_three = [c.id for c in table.stock[-3:]][::-1]
    assert table.deal_from_stock() == 3
    assert [c.id for c in table.waste] == top_three
    assert all(c.face_up for c in table.waste)
    assert len(table.stock) == 21
    assert table.move_count == 0


def test_empty_stock_recycles_waste(table):
    original = [c.id for c in table.stock]
    for _ in range(8):
        table.deal_from_stock()
    assert table.stock == []
    assert len(table.waste) == 24
    assert table.deal_from_stock() == 0
    assert table.waste == []
    assert [c.id for c in table.stock] == original
    assert not any(c.face_up for c in table.stock)


def test_foundation_rules(table):
    assert table.can_move_to_foundation(up("hearts", "A"), "hearts")
    assert not table.can_move_to_foundation(up("hearts", "2"), "hearts")
    assert not table.can_move_to_foundation(up("hearts", "A"), "spades")
    table.foundations["hearts"] = [up("hearts", "A")]
    assert table.can_move_to_foundation(up("hearts", "2"), "hearts")
    assert not table.can_move_to_foundation(up("hearts", "3"), "hearts")


def test_tableau_rules(bare_table):
    t = bare_table
    assert t.can_move_to_tableau(up("spades", "K"), 0)
    assert not t.can_move_to_tableau(up("spades", "Q"), 0)
    t.tableau[1] = [up("spades", "8")]
    assert t.can_move_to_tableau(up("hearts", "7"), 1)
    assert not t.can_move_to_tableau(up("clubs", "7"), 1)
    assert not t.can_move_to_tableau(up("hearts", "6"), 1)
    t.tableau[2] = [down("spades", "8")]
    assert not t.can_move_to_tableau(up("hearts", "7"), 2)


def test_move_ace_to_foundation_scores(table):
    ace = table.tableau[0][0]
    table.select_card(ace, "tableau-0")
    assert table.try_move_to_foundation("hearts")
    assert table.foundations["hearts"] == [ace]
    assert table.tableau[0] == []
    assert table.score == 10
    assert table.move_count == 1
    assert table.selected_card is None


def test_move_run_then_flip_and_undo(bare_table):
    t = bare_table
    hidden = down("clubs", "9")
    eight = up("hearts", "8")
    seven = up("spades", "7")
    nine = up("spades", "9")
    t.tableau[0] = [hidden, eight, seven]
    t.tableau[1] = [nine]

    t.select_card(eight, "tableau-0", 1)
    assert t.try_move_to_tableau(1)
    assert t.tableau[1] == [nine, eight, seven]
    assert t.tableau[0] == [hidden]
    assert t.score == 5

    assert t.flip_card(0, 0)
    assert hidden.face_up
    assert t.score == 10
    assert t.move_count == 2

    assert t.undo()
    assert not hidden.face_up
    assert t.score == 5
    assert t.undo()
    assert t.tableau[0] == [hidden, eight, seven]
    assert t.tableau[1] == [nine]
    assert t.score == 0
    assert t.move_count == 0
    assert not t.undo()


def test_flip_only_hidden_top_card(bare_table):
    t = bare_table
    t.tableau[0] = [down("clubs", "9"), down("clubs", "5")]
    assert not t.flip_card(0, 0)
    t.tableau[1] = [up("clubs", "3")]
    assert not t.flip_card(1, 0)
    assert t.score == 0


def test_foundation_takes_single_top_card_only(bare_table):
    t = bare_table
    t.foundations["hearts"] = [up("hearts", r) for r in RANKS[:7]]
    eight = up("hearts", "8")
    t.tableau[0] = [eight, up("spades", "7")]
    t.select_card(eight, "tableau-0", 0)
    assert not t.try_move_to_foundation("hearts")
    assert len(t.foundations["hearts"]) == 7


def test_undo_foundation_move_from_waste(bare_table):
    t = bare_table
    ace = up("spades", "A")
    t.waste = [up("hearts", "9"), ace]
    t.select_card(ace, "waste")
    assert t.try_move_to_foundation("spades")
    assert t.undo()
    assert t.waste[-1] is ace
    assert t.foundations["spades"] == []
    assert t.score == 0


def test_undo_stock_deal(table):
    before = [c.id for c in table.stock]
    table.deal_from_stock()
    assert table.undo()
    assert [c.id for c in table.stock] == before
    assert table.waste == []
    assert not any(c.face_up for c in table.stock)


def test_undo_waste_recycle(bare_table):
    t = bare_table
    waste = [up("hearts", "2"), up("clubs", "5"), up("spades", "J")]
    t.waste = list(waste)
    assert t.deal_from_stock() == 0
    assert t.waste == []
    assert [c.face_up for c in t.stock] == [False] * 3
    assert t.undo()
    assert t.stock == []
    assert t.waste == waste
    assert all(c.face_up for c in t.waste)
    assert t.move_count == 0


def test_completing_foundations_wins(bare_table):
    t = bare_table
    for suit in SUITS:
        t.foundations[suit] = [up(suit, r) for r in RANKS]
    king = t.foundations["spades"].pop()
    t.waste = [king]
    t.select_card(king, "waste")
    assert t.try_move_to_foundation("spades")
    assert t.check_win()
    assert t.game_ended and t.won
    assert t.score == 110
    assert not t.undo()


def test_auto_complete(table):
    assert table.auto_complete()
    assert table.check_win()
    assert table.won
    assert table.score == 100
    assert table.stock == [] and table.waste == []
    assert not table.auto_complete()


def test_valid_sequence_start(bare_table):
    t = bare_table
    t.tableau[0] = [down("clubs", "K"), up("hearts", "9"), up("clubs", "8"), up("diamonds", "7")]
    assert t.is_valid_sequence_start(0, 1)
    assert t.is_valid_sequence_start(0, 3)
    assert not t.is_valid_sequence_start(0, 0)
    t.tableau[1] = [up("hearts", "9"), up("diamonds", "8")]
    assert not t.is_valid_sequence_start(1, 0)


def test_hint_prefers_foundation_and_rate_limits(table):
    hint = table.show_hint(0)
    assert hint["type"] == "foundation"
    assert hint["card"].id == "hearts-A"
    assert hint["message"] == "MOVE AH TO FOUNDATION"
    assert table.hint_count == 1

    assert table.show_hint(100)["type"] == "warning"
    assert table.hint_count == 1


def test_repeated_hints_rotate(table):
    first = table.show_hint(0)
    second = table.show_hint(2000)
    assert second["type"] == "tableau"
    assert second["card"].id == "clubs-2"
    assert second["target"] == "tableau-1"
    assert second["message"].endswith("(REVEAL)")
    third = table.show_hint(4000)
    pairs = {(h["type"], h.get("card") and h["card"].id, h["target"]) for h in (first, second, third)}
    assert len(pairs) == 3
    assert len(table.recent_hints) == 3


def test_moves_clear_recent_hints(table):
    table.show_hint(0)
    assert table.recent_hints
    table.deal_from_stock()
    assert table.recent_hints == []
    assert table.game_state_hash_value is None


def test_state_hash_tracks_table(table):
    h = table.game_state_hash()
    assert h == table.game_state_hash()
    table.deal_from_stock()
    assert table.game_state_hash() != h


def test_no_moves_hint(bare_table):
    t = bare_table
    t.tableau[0] = [up("spades", "K")]
    hint = t.show_hint(0)
    assert hint["type"] == "no-moves"
    assert t.hint_count == 0


def test_stock_hint_when_nothing_else(bare_table):
    t = bare_table
    t.tableau[0] = [up("spades", "K")]
    t.stock = [down("hearts", "5")]
    hint = t.show_hint(0)
    assert hint["type"] == "stock"
    assert hint["message"] == "DEAL FROM STOCK"


# ----- cursor UI -----
@pytest.fixture
def ui():
    g = SolitaireGame()
    g.table = SolitaireTable(shuffle=False)
    return g


def test_stock_click_deals(ui):
    ui.activate((AREA_TOP, 0, 0))
    assert len(ui.table.waste) == 3


def test_select_then_move_to_foundation(ui):
    ui.activate((AREA_TABLEAU, 0, 0))
    assert ui.table.selected_card.id == "hearts-A"
    ui.activate((AREA_TOP, 3, 0))
    assert len(ui.table.foundations["hearts"]) == 1
    assert ui.score == 10
    assert ui.status_text().startswith("M1 ")


def test_invalid_move_keeps_selection(ui):
    ui.activate((AREA_TABLEAU, 2, 2))
    ui.activate((AREA_TOP, 4, 0))
    assert ui.table.selected_card.id == "hearts-6"
    assert ui.message == "INVALID MOVE"


def test_hit_test(ui):
    assert ui.hit_test(5, 5) == (AREA_TOP, 0, 0)
    assert ui.hit_test(50, 5) is None
    assert ui.hit_test(5, 22) == (AREA_TABLEAU, 0, 0)
    # lowest drawn card of column 6 is its face-up top
    x = 3 + 6 * 22 + 2
    y = ui.card_y(6, 6) + 10
    assert ui.hit_test(x, y) == (AREA_TABLEAU, 6, 6)


def test_keys_drive_table(ui, joystick):
    ui.activate((AREA_TOP, 0, 0))
    joystick.press("U")
    ui.poll(joystick)
    assert ui.table.waste == []
    joystick.press("F10")
    ui.poll(joystick)
    assert ui.table.won


def test_win_lingers_then_ends(ui, joystick):
    ui.table.auto_complete()
    assert ui.update(joystick) is True
    assert ui.won
    while ui.update(joystick):
        pass
    assert ui.score == 100
