"""Validation and repair of scheduling state before it reaches the scheduler.

Stored rows and client payloads are trusted only after passing through
here. Nothing in this module raises for bad data: each invalid field is
reset to its default, logged, and reported back as an ``Issue``.
"""
import enum
import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from study_srs.config import DEFAULT_POLICY, SchedulerPolicy
from study_srs.models import SchedulingState
from study_srs.sm2 import clamp_quality, initial_state

logger = logging.getLogger(__name__)

# smallest percent-scaled ease the old `ease` integer column can hold (130 == 1.3)
LEGACY_EASE_MIN = 130
LEGACY_EASE_KEY = "ease"

FIELD_ALIASES = {
    "repetition_count": ("repetition_count", "repetitionCount", "repetitions", "repetition"),
    "ease_factor": ("ease_factor", "easeFactor", "ease"),
    "interval_days": ("interval_days", "intervalDays", "interval"),
    "last_reviewed_at": ("last_reviewed_at", "lastReviewedAt"),
    "due_at": ("due_at", "dueAt", "next_review", "nextReview"),
    "lapsed": ("lapsed",),
}


class Issue(enum.Enum):
    OUT_OF_RANGE_QUALITY = "out_of_range_quality"
    MISSING_PRIOR_STATE = "missing_prior_state"
    INVALID_PRIOR_STATE = "invalid_prior_state"


def coerce_datetime(value) -> Optional[datetime]:
    """Read a timestamp as an aware UTC datetime, or None if it can't be read.

    Accepts datetimes (naive ones are taken as UTC), dates, ISO-8601 strings
    (a trailing ``Z`` is allowed) and epoch milliseconds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return coerce_datetime(datetime.fromisoformat(text))
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def check_quality(quality, policy: SchedulerPolicy = DEFAULT_POLICY) -> tuple[int, list[Issue]]:
    """Clamp a grade, reporting whether it had to be changed."""
    q = clamp_quality(quality, policy)
    try:
        in_range = float(quality) == q
    except (TypeError, ValueError):
        in_range = False
    if in_range:
        return q, []
    logger.warning("Quality %r outside %d-%d, using %d", quality, policy.min_quality, policy.max_quality, q)
    return q, [Issue.OUT_OF_RANGE_QUALITY]


def _lookup_item(raw: Mapping, name: str) -> tuple[Optional[str], object]:
    for key in FIELD_ALIASES[name]:
        if key in raw and raw[key] is not None:
            return key, raw[key]
    return None, None


def _lookup(raw: Mapping, name: str):
    return _lookup_item(raw, name)[1]


def _is_scaled_ease(key: Optional[str], value, number: float) -> bool:
    """Percent-scaled ease comes from the old `ease` column or as a bare integer like 250."""
    if number < LEGACY_EASE_MIN:
        return False
    return key == LEGACY_EASE_KEY or (isinstance(value, int) and not isinstance(value, bool))


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def inspect_state(raw, policy: SchedulerPolicy = DEFAULT_POLICY) -> tuple[Optional[SchedulingState], list[Issue]]:
    """Return ``(state, issues)`` for a stored or client-supplied state.

    ``raw`` may be a SchedulingState, a mapping using snake_case or camelCase
    keys, or None. A missing state comes back as ``(None, [MISSING_PRIOR_STATE])``
    so the scheduler treats it as a first review.
    """
    if is_dataclass(raw) and not isinstance(raw, type):
        raw = asdict(raw)
    if not raw or not isinstance(raw, Mapping):
        return None, [Issue.MISSING_PRIOR_STATE]

    defaults = initial_state(policy=policy)
    repaired = []

    repetitions = defaults.repetition_count
    value = _lookup(raw, "repetition_count")
    if value is not None:
        number = _as_number(value)
        if number is None or number < 0:
            repaired.append("repetition_count")
        else:
            repetitions = int(number)

    ease = defaults.ease_factor
    key, value = _lookup_item(raw, "ease_factor")
    if value is not None:
        number = _as_number(value)
        if number is not None and _is_scaled_ease(key, value, number):
            number = number / 100
        if number is None or number < policy.min_ease:
            repaired.append("ease_factor")
        else:
            ease = number

    interval = defaults.interval_days
    value = _lookup(raw, "interval_days")
    if value is not None:
        number = _as_number(value)
        if number is None or number < 0:
            repaired.append("interval_days")
        elif number > policy.max_interval:
            repaired.append("interval_days")
            interval = policy.max_interval
        else:
            interval = int(number)

    last_reviewed = None
    value = _lookup(raw, "last_reviewed_at")
    if value is not None:
        last_reviewed = coerce_datetime(value)
        if last_reviewed is None:
            repaired.append("last_reviewed_at")

    if last_reviewed is not None:
        due = last_reviewed + timedelta(days=interval)
    else:
        value = _lookup(raw, "due_at")
        due = coerce_datetime(value)
        if value is not None and due is None:
            repaired.append("due_at")

    state = SchedulingState(
        repetition_count=repetitions,
        ease_factor=ease,
        interval_days=interval,
        due_at=due,
        last_reviewed_at=last_reviewed,
        lapsed=bool(_lookup(raw, "lapsed")),
    )
    if repaired:
        logger.warning("Repaired invalid scheduling fields: %s", ", ".join(repaired))
        return state, [Issue.INVALID_PRIOR_STATE]
    return state, []


def normalize_state(raw, policy: SchedulerPolicy = DEFAULT_POLICY) -> Optional[SchedulingState]:
    state, _ = inspect_state(raw, policy)
    return state
