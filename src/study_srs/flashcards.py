"""Flashcard storage and review recording with SM-2 scheduling."""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from study_srs.config import DEFAULT_POLICY, SchedulerPolicy
from study_srs.db import get_connection
from study_srs.models import Flashcard, ReviewResult, SchedulingState
from study_srs.normalize import check_quality, coerce_datetime, normalize_state
from study_srs.sm2 import schedule

logger = logging.getLogger(__name__)


class StudySrsError(Exception):
    """Base class for storage errors."""


class CardNotFoundError(StudySrsError):
    def __init__(self, card_id):
        super().__init__(f"Flashcard {card_id} not found")
        self.card_id = card_id


class StaleStateError(StudySrsError):
    """Another review was written after this one read the card."""

    def __init__(self, card_id, expected_version):
        super().__init__(f"Flashcard {card_id} changed since version {expected_version}; reload and grade again")
        self.card_id = card_id
        self.expected_version = expected_version


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value) -> Optional[str]:
    """Fixed-width UTC ISO string, so stored timestamps sort lexically."""
    dt = coerce_datetime(value)
    return dt.isoformat(timespec="microseconds") if dt else None


def _load_tags(raw) -> list[str]:
    try:
        tags = json.loads(raw or "[]")
    except ValueError:
        return []
    return [str(t) for t in tags] if isinstance(tags, list) else []


def _row_to_flashcard(row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        question=row["question"],
        answer=row["answer"],
        tags=_load_tags(row["tags"]),
        difficulty=row["difficulty"] or 0,
        state=normalize_state(dict(row)),
        version=row["version"],
        created_at=coerce_datetime(row["created_at"]),
        updated_at=coerce_datetime(row["updated_at"]),
    )


def create_flashcard(
    db_path: str, question: str, answer: str, tags: Optional[list[str]] = None, now=None,
) -> int:
    """Insert a new card. It has no review history and is due immediately."""
    stamp = to_iso(now or utcnow())
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO flashcards (question, answer, tags, next_review, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (question, answer, json.dumps(tags or []), stamp, stamp, stamp),
    )
    conn.commit()
    conn.close()
    return cur.lastrowid


def get_flashcard(db_path: str, card_id: int) -> Optional[Flashcard]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    return _row_to_flashcard(row) if row else None


def get_scheduling_state(db_path: str, card_id: int) -> Optional[SchedulingState]:
    """Stored state for a card, or None if it has never been reviewed."""
    card = get_flashcard(db_path, card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return None if card.is_new else card.state


def get_due_cards(db_path: str, now=None, limit: int = 15) -> list[Flashcard]:
    cutoff = to_iso(now or utcnow())
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM flashcards
        WHERE next_review IS NULL OR next_review <= ?
        ORDER BY next_review ASC NULLS FIRST, id ASC
        LIMIT ?""",
        (cutoff, limit),
    ).fetchall()
    conn.close()
    return [_row_to_flashcard(r) for r in rows]


def record_review(
    db_path: str,
    card_id: int,
    quality,
    now=None,
    expected_version: Optional[int] = None,
    policy: SchedulerPolicy = DEFAULT_POLICY,
) -> SchedulingState:
    """Grade a card, persist the next state, and append a review_results row.

    The write only lands if the card's version still matches
    ``expected_version`` (by default the version read here); otherwise
    StaleStateError is raised and nothing is written.
    """
    now = coerce_datetime(now) or utcnow()
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        if row is None:
            raise CardNotFoundError(card_id)
        version = row["version"] if expected_version is None else expected_version
        prior = normalize_state(dict(row), policy)
        q, _ = check_quality(quality, policy)
        updated = schedule(prior, q, now, policy)
        cur = conn.execute(
            """UPDATE flashcards SET ease_factor=?, interval=?, repetitions=?, next_review=?,
            last_reviewed_at=?, lapsed=?, difficulty=?, version=version + 1, updated_at=?
            WHERE id=? AND version=?""",
            (
                updated.ease_factor, updated.interval_days, updated.repetition_count,
                to_iso(updated.due_at), to_iso(updated.last_reviewed_at), int(updated.lapsed),
                q, to_iso(now), card_id, version,
            ),
        )
        if cur.rowcount == 0:
            conn.rollback()
            logger.warning("Stale review for card %s at version %s", card_id, version)
            raise StaleStateError(card_id, version)
        conn.execute(
            """INSERT INTO review_results (flashcard_id, quality, lapsed, interval, ease_factor, reviewed_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (card_id, q, int(updated.lapsed), updated.interval_days, updated.ease_factor, to_iso(now)),
        )
        conn.commit()
    finally:
        conn.close()
    logger.debug(
        "Card %s graded %d: interval=%d reps=%d ease=%.2f",
        card_id, q, updated.interval_days, updated.repetition_count, updated.ease_factor,
    )
    return updated


def update_flashcard(
    db_path: str,
    card_id: int,
    question: Optional[str] = None,
    answer: Optional[str] = None,
    tags: Optional[list[str]] = None,
    now=None,
) -> Flashcard:
    """Edit card content. Scheduling columns are left alone."""
    card = get_flashcard(db_path, card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE flashcards SET question=?, answer=?, tags=?, updated_at=? WHERE id=?",
        (
            card.question if question is None else question,
            card.answer if answer is None else answer,
            json.dumps(card.tags if tags is None else tags),
            to_iso(now or utcnow()),
            card_id,
        ),
    )
    conn.commit()
    conn.close()
    return get_flashcard(db_path, card_id)


def delete_flashcard(db_path: str, card_id: int) -> bool:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM review_results WHERE flashcard_id = ?", (card_id,))
    cur = conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def get_review_history(db_path: str, card_id: int) -> list[ReviewResult]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM review_results WHERE flashcard_id = ? ORDER BY reviewed_at, id", (card_id,)
    ).fetchall()
    conn.close()
    return [
        ReviewResult(
            id=r["id"],
            flashcard_id=r["flashcard_id"],
            quality=r["quality"],
            lapsed=bool(r["lapsed"]),
            interval_days=r["interval"],
            ease_factor=r["ease_factor"],
            reviewed_at=coerce_datetime(r["reviewed_at"]),
        )
        for r in rows
    ]
