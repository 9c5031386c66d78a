"""Tests for progress arithmetic and entity helpers."""

from datetime import datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from learnhub.progress.models import (
    Enrollment,
    EnrollmentSource,
    Progress,
    calculate_progress,
)


class TestCalculateProgress:
    def test_no_lessons_is_zero(self) -> None:
        assert calculate_progress(set(), {uuid4()}) == Progress(0, 0, 0)

    def test_two_of_five(self) -> None:
        lessons = [uuid4() for _ in range(5)]
        progress = calculate_progress(set(lessons), set(lessons[:2]))
        assert progress == Progress(total=5, completed=2, percentage=40)

    def test_all_completed(self) -> None:
        lessons = {uuid4() for _ in range(3)}
        assert calculate_progress(lessons, lessons).percentage == 100

    def test_rounds_to_nearest(self) -> None:
        lessons = [uuid4() for _ in range(3)]
        assert calculate_progress(set(lessons), {lessons[0]}).percentage == 33
        assert calculate_progress(set(lessons), set(lessons[:2])).percentage == 67

    def test_foreign_completions_ignored(self) -> None:
        """Completions of other courses' lessons never push past 100."""
        lessons = {uuid4(), uuid4()}
        completed = lessons | {uuid4(), uuid4(), uuid4()}
        progress = calculate_progress(lessons, completed)
        assert progress.completed == 2
        assert progress.percentage == 100

    @pytest.mark.parametrize("done", range(0, 8))
    def test_percentage_in_range(self, done: int) -> None:
        lessons = [uuid4() for _ in range(7)]
        percentage = calculate_progress(set(lessons), set(lessons[:done])).percentage
        assert 0 <= percentage <= 100


class TestEnrollment:
    def test_defaults(self) -> None:
        enrollment = Enrollment(user_id=uuid4(), course_id=uuid4())
        assert enrollment.source == EnrollmentSource.SELF.value
        assert enrollment.enrolled_at.tzinfo is not None
        assert not enrollment.is_completed

    def test_from_row_makes_naive_timestamps_aware(self) -> None:
        row = SimpleNamespace(
            user_id=uuid4(),
            course_id=uuid4(),
            source="approved",
            enrolled_at=datetime(2024, 1, 1, 12, 0),
            completed_at=datetime(2024, 2, 1, 12, 0),
        )
        enrollment = Enrollment.from_row(row)
        assert enrollment.enrolled_at.tzinfo is not None
        assert enrollment.is_completed
        assert enrollment.source == "approved"
