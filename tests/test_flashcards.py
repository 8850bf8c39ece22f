# tests/test_flashcards.py
from datetime import timedelta

import pytest

from study_srs.db import get_connection
from study_srs.flashcards import (
    CardNotFoundError, StaleStateError, create_flashcard, delete_flashcard, get_due_cards,
    get_flashcard, get_review_history, get_scheduling_state, record_review, update_flashcard,
)


def _seed(db_path, n, now):
    return [create_flashcard(db_path, f"Q{i}?", f"A{i}", tags=["bio"], now=now) for i in range(n)]


def test_new_card_is_due_immediately(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "What is ATP?", "Energy currency", tags=["bio"], now=t0)
    card = get_flashcard(tmp_db, card_id)
    assert card.question == "What is ATP?"
    assert card.tags == ["bio"]
    assert card.is_new
    assert card.state.due_at == t0
    assert card.state.ease_factor == 2.5
    assert get_scheduling_state(tmp_db, card_id) is None
    assert [c.id for c in get_due_cards(tmp_db, now=t0)] == [card_id]


def test_get_due_cards_empty_db(tmp_db, t0):
    assert get_due_cards(tmp_db, now=t0) == []


def test_get_due_cards_respects_limit(tmp_db, t0):
    _seed(tmp_db, 5, t0)
    assert len(get_due_cards(tmp_db, now=t0, limit=3)) == 3


def test_record_review_updates_state(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    state = record_review(tmp_db, card_id, 4, now=t0)
    assert state.repetition_count == 1
    assert state.interval_days == 1
    stored = get_flashcard(tmp_db, card_id)
    assert stored.state.repetition_count == 1
    assert stored.state.interval_days == 1
    assert stored.state.due_at == t0 + timedelta(days=1)
    assert stored.state.last_reviewed_at == t0
    assert stored.difficulty == 4
    assert stored.version == 1
    assert get_scheduling_state(tmp_db, card_id) == stored.state


def test_reviewed_card_leaves_due_queue(tmp_db, t0):
    first, second = _seed(tmp_db, 2, t0)
    record_review(tmp_db, first, 5, now=t0)
    assert [c.id for c in get_due_cards(tmp_db, now=t0)] == [second]
    due_tomorrow = get_due_cards(tmp_db, now=t0 + timedelta(days=1))
    assert {c.id for c in due_tomorrow} == {first, second}


def test_due_cards_oldest_first(tmp_db, t0):
    late = create_flashcard(tmp_db, "late", "x", now=t0)
    early = create_flashcard(tmp_db, "early", "x", now=t0 - timedelta(days=2))
    assert [c.id for c in get_due_cards(tmp_db, now=t0)] == [early, late]


def test_progressive_intervals(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    now = t0
    intervals = []
    for _ in range(4):
        state = record_review(tmp_db, card_id, 4, now=now)
        intervals.append(state.interval_days)
        now = state.due_at
    assert intervals == [1, 6, 15, 38]


def test_lapse_resets(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    record_review(tmp_db, card_id, 4, now=t0)
    record_review(tmp_db, card_id, 4, now=t0 + timedelta(days=1))
    state = record_review(tmp_db, card_id, 0, now=t0 + timedelta(days=7))
    assert state.lapsed
    stored = get_flashcard(tmp_db, card_id)
    assert stored.state.repetition_count == 0
    assert stored.state.interval_days == 1
    assert stored.state.lapsed


def test_out_of_range_quality_is_clamped(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    record_review(tmp_db, card_id, 11, now=t0)
    assert get_flashcard(tmp_db, card_id).difficulty == 5
    assert get_review_history(tmp_db, card_id)[0].quality == 5


def test_corrupt_row_is_repaired_before_scheduling(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    conn = get_connection(tmp_db)
    conn.execute(
        "UPDATE flashcards SET repetitions = -3, interval = -10, ease_factor = 0.2 WHERE id = ?", (card_id,)
    )
    conn.commit()
    conn.close()
    state = record_review(tmp_db, card_id, 4, now=t0)
    assert state.repetition_count == 1
    assert state.interval_days == 1
    assert state.ease_factor == pytest.approx(2.5)


def test_high_ease_row_is_not_reset(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    conn = get_connection(tmp_db)
    conn.execute("UPDATE flashcards SET repetitions = 2, interval = 6, ease_factor = 10.5 WHERE id = ?", (card_id,))
    conn.commit()
    conn.close()
    state = record_review(tmp_db, card_id, 4, now=t0)
    assert state.ease_factor == pytest.approx(10.5)
    assert state.interval_days == 63


def test_stale_version_rejected(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    seen = get_flashcard(tmp_db, card_id).version
    record_review(tmp_db, card_id, 5, now=t0)
    with pytest.raises(StaleStateError):
        record_review(tmp_db, card_id, 1, now=t0, expected_version=seen)
    stored = get_flashcard(tmp_db, card_id)
    assert stored.state.repetition_count == 1
    assert stored.version == 1
    assert len(get_review_history(tmp_db, card_id)) == 1


def test_review_unknown_card(tmp_db, t0):
    with pytest.raises(CardNotFoundError):
        record_review(tmp_db, 999, 4, now=t0)
    with pytest.raises(CardNotFoundError):
        get_scheduling_state(tmp_db, 999)


def test_review_history(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    record_review(tmp_db, card_id, 3, now=t0)
    record_review(tmp_db, card_id, 1, now=t0 + timedelta(days=1))
    history = get_review_history(tmp_db, card_id)
    assert [h.quality for h in history] == [3, 1]
    assert [h.lapsed for h in history] == [False, True]
    assert history[0].reviewed_at == t0


def test_update_keeps_schedule(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    record_review(tmp_db, card_id, 4, now=t0)
    card = update_flashcard(tmp_db, card_id, answer="Better answer", tags=["chem"], now=t0)
    assert card.question == "Q?"
    assert card.answer == "Better answer"
    assert card.tags == ["chem"]
    assert card.state.repetition_count == 1
    assert card.version == 1


def test_delete_flashcard(tmp_db, t0):
    card_id = create_flashcard(tmp_db, "Q?", "A", now=t0)
    record_review(tmp_db, card_id, 4, now=t0)
    assert delete_flashcard(tmp_db, card_id) is True
    assert get_flashcard(tmp_db, card_id) is None
    assert get_review_history(tmp_db, card_id) == []
    assert delete_flashcard(tmp_db, card_id) is False
