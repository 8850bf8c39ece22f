"""Scheduling policy constants and runtime configuration."""
import os
from dataclasses import dataclass
from pathlib import Path

DB_PATH_ENV = "STUDY_SRS_DB"
LOG_LEVEL_ENV = "STUDY_SRS_LOG_LEVEL"


def default_db_path() -> str:
    """Database location, overridable with the STUDY_SRS_DB environment variable."""
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return override
    return str(Path.home() / ".study_srs" / "srs.db")


DEFAULT_DB_PATH = default_db_path()


@dataclass(frozen=True)
class SchedulerPolicy:
    """Tunable SM-2 constants. The defaults are the classic SM-2 values."""

    min_quality: int = 0
    max_quality: int = 5
    pass_threshold: int = 3
    initial_ease: float = 2.5
    min_ease: float = 1.3
    first_interval: int = 1
    second_interval: int = 6
    lapse_interval: int = 1
    max_interval: int = 36500


DEFAULT_POLICY = SchedulerPolicy()
