"""Review statistics for the stats screen."""
from study_srs.config import DEFAULT_POLICY, SchedulerPolicy
from study_srs.db import get_connection
from study_srs.flashcards import to_iso, utcnow

MATURE_INTERVAL_DAYS = 21


def get_retention_label(retention: float) -> str:
    if retention >= 90:
        return "STRONG"
    elif retention >= 80:
        return "STEADY"
    elif retention >= 65:
        return "SHAKY"
    return "WEAK"


def get_retention_color(retention: float) -> str:
    if retention >= 90:
        return "green"
    elif retention >= 80:
        return "yellow"
    elif retention >= 65:
        return "dark_orange"
    return "red"


def get_review_stats(db_path: str, now=None, policy: SchedulerPolicy = DEFAULT_POLICY) -> dict:
    """Card and review counts. Retention counts grades that pass under ``policy``."""
    cutoff = to_iso(now or utcnow())
    conn = get_connection(db_path)
    cards = conn.execute(
        """SELECT COUNT(*) as total,
            SUM(CASE WHEN next_review IS NULL OR next_review <= ? THEN 1 ELSE 0 END) as due,
            SUM(CASE WHEN last_reviewed_at IS NULL THEN 1 ELSE 0 END) as new,
            SUM(CASE WHEN interval >= ? THEN 1 ELSE 0 END) as mature
        FROM flashcards""",
        (cutoff, MATURE_INTERVAL_DAYS),
    ).fetchone()
    reviews = conn.execute(
        """SELECT COUNT(*) as t,
            SUM(CASE WHEN quality >= ? THEN 1 ELSE 0 END) as passed,
            SUM(lapsed) as lapses
        FROM review_results""",
        (policy.pass_threshold,),
    ).fetchone()
    conn.close()
    retention = round(reviews["passed"] / reviews["t"] * 100, 1) if reviews["t"] else 0.0
    return {
        "total_cards": cards["total"],
        "due_cards": cards["due"] or 0,
        "new_cards": cards["new"] or 0,
        "mature_cards": cards["mature"] or 0,
        "reviews": reviews["t"],
        "retention": retention,
        "lapses": reviews["lapses"] or 0,
    }
