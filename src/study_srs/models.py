"""Data classes for flashcards and their review scheduling state."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class SchedulingState:
    repetition_count: int = 0
    ease_factor: float = 2.5
    interval_days: int = 0
    due_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None
    lapsed: bool = False


@dataclass
class Flashcard:
    id: int
    question: str
    answer: str
    tags: list[str] = field(default_factory=list)
    difficulty: int = 0  # last quality graded
    state: SchedulingState = field(default_factory=SchedulingState)
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_new(self) -> bool:
        return self.state.last_reviewed_at is None


@dataclass
class ReviewResult:
    flashcard_id: int
    quality: int
    lapsed: bool
    interval_days: int
    ease_factor: float
    reviewed_at: datetime
    id: Optional[int] = None
