"""SM-2 spaced repetition scheduler.

`schedule` is a pure function: it never reads the clock (``now`` is passed
in), never touches storage, and accepts any grade by clamping it into the
policy's quality range. Prior state is expected to be normalized already
(see ``study_srs.normalize``); ``None`` means the card was never reviewed.
"""
import math
from datetime import datetime, timedelta
from typing import Optional

from study_srs.config import DEFAULT_POLICY, SchedulerPolicy
from study_srs.models import SchedulingState


def clamp_quality(quality, policy: SchedulerPolicy = DEFAULT_POLICY) -> int:
    """Coerce a grade to an int inside [min_quality, max_quality].

    Grades that cannot be read as a number count as the lowest grade.
    """
    try:
        q = int(quality)
    except (TypeError, ValueError, OverflowError):
        # inf overflows int(); keep its sign
        if isinstance(quality, float) and math.isinf(quality):
            return policy.max_quality if quality > 0 else policy.min_quality
        return policy.min_quality
    return max(policy.min_quality, min(policy.max_quality, q))


def is_passing(quality, policy: SchedulerPolicy = DEFAULT_POLICY) -> bool:
    return clamp_quality(quality, policy) >= policy.pass_threshold


def next_ease_factor(ease_factor: float, quality: int, policy: SchedulerPolicy = DEFAULT_POLICY) -> float:
    """Apply the SM-2 ease adjustment for a clamped grade, floored at min_ease."""
    miss = policy.max_quality - quality
    new_ef = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(policy.min_ease, new_ef)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def initial_state(now: Optional[datetime] = None, policy: SchedulerPolicy = DEFAULT_POLICY) -> SchedulingState:
    """State of a card that has never been reviewed. It is due at ``now``."""
    return SchedulingState(
        repetition_count=0,
        ease_factor=policy.initial_ease,
        interval_days=0,
        due_at=now,
        last_reviewed_at=None,
        lapsed=False,
    )


def schedule(
    prior: Optional[SchedulingState],
    quality,
    now: datetime,
    policy: SchedulerPolicy = DEFAULT_POLICY,
) -> SchedulingState:
    """Calculate the next scheduling state using SM-2.

    Args:
        prior: Normalized state from the last review, or None for a new card
        quality: Grade 0-5 (0=complete blackout, 5=perfect); clamped
        now: Time of this review
        policy: Scheduling constants

    Returns:
        A new SchedulingState; ``prior`` is left untouched.
    """
    if prior is None:
        prior = initial_state(policy=policy)
    q = clamp_quality(quality, policy)
    new_ef = next_ease_factor(prior.ease_factor, q, policy)

    if is_passing(q, policy):
        if prior.repetition_count == 0:
            interval = policy.first_interval
        elif prior.repetition_count == 1:
            interval = policy.second_interval
        else:
            # a passing streak never shortens the interval
            interval = max(round_half_up(prior.interval_days * new_ef), prior.interval_days, policy.first_interval)
        repetitions = prior.repetition_count + 1
        lapsed = False
    else:
        # Incorrect: relearn from the start, ease keeps its erosion
        interval = policy.lapse_interval
        repetitions = 0
        lapsed = True
    interval = min(interval, policy.max_interval)

    return SchedulingState(
        repetition_count=repetitions,
        ease_factor=new_ef,
        interval_days=interval,
        due_at=now + timedelta(days=interval),
        last_reviewed_at=now,
        lapsed=lapsed,
    )
