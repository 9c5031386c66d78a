"""Value types for dashboard metrics.

Metrics are derived from enrollments and lesson completions on every call;
nothing here is persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class ActivityType(str, Enum):
    COURSE_ENROLLED = "course_enrolled"
    LESSON_COMPLETED = "lesson_completed"


@dataclass(frozen=True)
class Completion:
    """A lesson completion with the lesson's duration."""

    lesson_id: UUID
    completed_at: datetime
    duration_minutes: int = 0


@dataclass(frozen=True)
class Activity:
    """Entry of the recent activity feed."""

    id: UUID
    type: ActivityType
    title: str
    description: str
    date: datetime
