"""Database models for enrollments and lesson completion.

Cassandra table definitions for:
- enrollments: partitioned by course ("who is enrolled here?")
- enrollments_by_user: partitioned by user ("what am I enrolled in?")
- lesson_progress: one row per completed lesson per user

Enrollment uniqueness is enforced with ``INSERT ... IF NOT EXISTS`` on
``enrollments``; the by-user table mirrors it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from learnhub.access.models import AccessDecision
from learnhub.core.dates import ensure_utc_aware, utc_now
from learnhub.courses.models import Course, Lesson, Module


class EnrollmentSource(str, Enum):
    """How an enrollment came to exist."""

    SELF = "self"  # student enrolled in a free course
    AUTO = "auto"  # created by the gate on first access to a free course
    APPROVED = "approved"  # granted by an approved access request


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    source TEXT,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY ((course_id), user_id)
)
"""

ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    source TEXT,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    lesson_id UUID,
    course_id UUID,
    module_id UUID,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id), lesson_id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
    LESSON_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """A user's enrollment in a course.

    Attributes:
        user_id: Enrolled user
        course_id: Course
        source: self, auto or approved
        enrolled_at: When the enrollment was created
        completed_at: Set once when the student completes the course
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        source: str = EnrollmentSource.SELF.value,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.source = source or EnrollmentSource.SELF.value
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utc_now()
        self.completed_at = ensure_utc_aware(completed_at)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            source=row.source,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return f"<Enrollment user={self.user_id} course={self.course_id}>"


class LessonProgress:
    """Completion record; the row's presence means the lesson is complete."""

    def __init__(
        self,
        user_id: UUID,
        lesson_id: UUID,
        course_id: UUID,
        module_id: UUID,
        completed_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.module_id = module_id
        self.completed_at = ensure_utc_aware(completed_at) or utc_now()

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        return cls(
            user_id=row.user_id,
            lesson_id=row.lesson_id,
            course_id=row.course_id,
            module_id=row.module_id,
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return f"<LessonProgress user={self.user_id} lesson={self.lesson_id}>"


@dataclass(frozen=True)
class Progress:
    """Completion of a course for one user."""

    total: int
    completed: int
    percentage: int

    @classmethod
    def empty(cls) -> "Progress":
        return cls(total=0, completed=0, percentage=0)


def calculate_progress(lesson_ids: set[UUID], completed_ids: set[UUID]) -> Progress:
    """Progress over ``lesson_ids`` given the user's completed lessons.

    Completions of lessons outside the set are ignored, so the percentage
    stays within 0-100.
    """
    total = len(lesson_ids)
    if total == 0:
        return Progress.empty()
    completed = len(lesson_ids & completed_ids)
    return Progress(
        total=total,
        completed=completed,
        percentage=round(100 * completed / total),
    )


@dataclass
class EnrolledCourse:
    """An enrollment joined with its course and the user's progress."""

    enrollment: Enrollment
    course: Course
    progress: Progress


@dataclass
class CourseDetail:
    """Course content as seen by one user.

    ``outline`` holds modules ordered by order_index, each with its ordered
    lessons. Lesson content is only exposed when ``access.allowed``.
    """

    course: Course
    access: AccessDecision
    outline: list[tuple[Module, list[Lesson]]]
    completed_lesson_ids: set[UUID] = field(default_factory=set)
    enrollment: Enrollment | None = None
    progress: Progress = field(default_factory=Progress.empty)
