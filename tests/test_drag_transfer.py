"""Unit tests for the cross-container drag state machine."""

# Standard Library
import random

# Third Party
import pytest

# Local repo modules
import popword
from popword import RANKING, STACK, BoardState, DragSession, WordItem


A1 = WordItem("a1", "A")
B1 = WordItem("b1", "B")
C1 = WordItem("c1", "C")
C2 = WordItem("c2", "C")


#============================================
def _board():
    return BoardState(ranking=(A1, B1), stack=(C1, C2))


#============================================
def _id_list(items):
    return [item.id for item in items]


#============================================
def test_drag_start_resolves_origin():
    board = _board()
    assert popword.drag_start(board, "a1") == DragSession("a1", RANKING)
    assert popword.drag_start(board, "c2") == DragSession("c2", STACK)


#============================================
def test_drag_start_unknown_id_stays_idle():
    session = popword.drag_start(_board(), "missing")
    assert not session.is_dragging
    assert session == DragSession()


#============================================
def test_drag_over_inserts_before_target_card():
    board = _board()
    session = popword.drag_start(board, "c1")
    board = popword.drag_over(session, board, "b1", pointer_below=False)
    assert _id_list(board.ranking) == ["a1", "c1", "b1"]
    assert _id_list(board.stack) == ["c2"]


#============================================
def test_drag_over_inserts_after_target_when_pointer_below():
    board = _board()
    session = popword.drag_start(board, "c1")
    board = popword.drag_over(session, board, "b1", pointer_below=True)
    assert _id_list(board.ranking) == ["a1", "b1", "c1"]


#============================================
def test_drag_over_container_name_appends():
    board = _board()
    session = popword.drag_start(board, "a1")
    board = popword.drag_over(session, board, STACK)
    assert _id_list(board.ranking) == ["b1"]
    assert _id_list(board.stack) == ["c1", "c2", "a1"]


#============================================
def test_drag_over_into_empty_container():
    board = BoardState(stack=(C1,))
    session = popword.drag_start(board, "c1")
    board = popword.drag_over(session, board, RANKING)
    assert board.ranking == (C1,)
    assert board.stack == ()


#============================================
def test_drag_over_same_container_is_noop():
    board = _board()
    session = popword.drag_start(board, "c1")
    assert popword.drag_over(session, board, "c2", pointer_below=True) is board
    assert popword.drag_over(session, board, STACK) is board


#============================================
@pytest.mark.parametrize("over_id", ["nope", None])
def test_drag_over_unresolvable_target_is_noop(over_id):
    board = _board()
    session = popword.drag_start(board, "c1")
    assert popword.drag_over(session, board, over_id) is board


#============================================
def test_drag_over_when_idle_is_noop():
    board = _board()
    assert popword.drag_over(DragSession(), board, "a1") is board


#============================================
def test_drag_over_unknown_active_id_is_noop():
    board = _board()
    assert popword.drag_over(DragSession("gone", STACK), board, "a1") is board


#============================================
def test_drag_over_repeated_event_does_not_drift():
    board = _board()
    session = popword.drag_start(board, "c1")
    once = popword.drag_over(session, board, "b1")
    twice = popword.drag_over(session, once, "b1")
    assert twice == once


#============================================
def test_drag_over_moves_back_and_forth_live():
    board = _board()
    session = popword.drag_start(board, "a1")
    board = popword.drag_over(session, board, "c2")
    assert _id_list(board.stack) == ["c1", "a1", "c2"]
    board = popword.drag_over(session, board, "b1", pointer_below=True)
    assert _id_list(board.ranking) == ["b1", "a1"]
    assert _id_list(board.stack) == ["c1", "c2"]


#============================================
def test_drag_end_reorders_within_container():
    board = BoardState(ranking=(A1, B1, C1))
    session = popword.drag_start(board, "a1")
    session, board = popword.drag_end(session, board, "c1")
    assert not session.is_dragging
    assert _id_list(board.ranking) == ["b1", "c1", "a1"]


#============================================
def test_drag_end_moving_up():
    board = BoardState(ranking=(A1, B1, C1))
    session = popword.drag_start(board, "c1")
    _session, board = popword.drag_end(session, board, "a1")
    assert _id_list(board.ranking) == ["c1", "a1", "b1"]


#============================================
def test_drag_end_on_self_is_noop():
    board = _board()
    session = popword.drag_start(board, "a1")
    session, after = popword.drag_end(session, board, "a1")
    assert after is board
    assert session == DragSession()


#============================================
def test_drag_end_on_container_moves_to_end():
    board = BoardState(ranking=(A1, B1, C1))
    session = popword.drag_start(board, "a1")
    _session, board = popword.drag_end(session, board, RANKING)
    assert _id_list(board.ranking) == ["b1", "c1", "a1"]


#============================================
def test_drag_end_without_target_keeps_live_position():
    board = _board()
    session = popword.drag_start(board, "c1")
    board = popword.drag_over(session, board, "a1")
    session, after = popword.drag_end(session, board, None)
    assert not session.is_dragging
    assert after is board
    assert _id_list(after.ranking) == ["c1", "a1", "b1"]


#============================================
def test_drag_end_across_containers_does_not_move():
    board = _board()
    session = popword.drag_start(board, "a1")
    session, after = popword.drag_end(session, board, "c1")
    assert after is board
    assert not session.is_dragging


#============================================
def test_drag_end_when_idle_is_noop():
    board = _board()
    session, after = popword.drag_end(DragSession(), board, "a1")
    assert after is board
    assert session == DragSession()


#============================================
def test_array_move():
    items = (A1, B1, C1, C2)
    assert _id_list(popword.array_move(items, 0, 2)) == ["b1", "c1", "a1", "c2"]
    assert _id_list(popword.array_move(items, 3, 0)) == ["c2", "a1", "b1", "c1"]
    assert _id_list(items) == ["a1", "b1", "c1", "c2"]


#============================================
def test_is_pointer_below():
    assert popword.is_pointer_below(61.0, 10.0, 50.0)
    assert not popword.is_pointer_below(60.0, 10.0, 50.0)
    assert not popword.is_pointer_below(20.0, 10.0, 50.0)


#============================================
def test_random_gestures_never_duplicate_or_lose_cards():
    rng = random.Random(99)
    items = tuple(WordItem(f"w{index}", f"word {index % 4}") for index in range(9))
    board = BoardState(ranking=items[:4], stack=items[4:])
    expected_ids = {item.id for item in items}
    targets = [item.id for item in items] + [RANKING, STACK, "unknown", None]

    for _ in range(300):
        session = popword.drag_start(board, rng.choice(targets[:-1]))
        for _ in range(rng.randrange(0, 6)):
            board = popword.drag_over(session, board, rng.choice(targets), rng.random() < 0.5)
        if rng.random() < 0.8:
            session, board = popword.drag_end(session, board, rng.choice(targets))

        ids = [item.id for item in board.ranking + board.stack]
        assert len(ids) == len(items)
        assert set(ids) == expected_ids
