"""Tests for ProgressService: lesson completion, aggregation and course completion."""

from uuid import uuid4

import pytest

from learnhub.access.models import AccessReason
from learnhub.access.service import AccessService
from learnhub.courses.models import CourseType
from learnhub.courses.service import CourseNotFoundError, LessonNotFoundError
from learnhub.progress.service import (
    AccessRequestRequiredError,
    AlreadyEnrolledError,
    CourseAccessDeniedError,
    CourseIncompleteError,
    EnrollmentService,
    NotEnrolledError,
    ProgressService,
)


@pytest.fixture
def enrollment_service(fake_session) -> EnrollmentService:
    return EnrollmentService(session=fake_session, keyspace="test_ks")


@pytest.fixture
def access_service(fake_session, catalog, enrollment_service) -> AccessService:
    return AccessService(
        session=fake_session,
        keyspace="test_ks",
        course_service=catalog.course_service,
        enrollment_service=enrollment_service,
    )


def build_progress_service(
    fake_session, catalog, enrollment_service, access_service, **kwargs
) -> ProgressService:
    return ProgressService(
        session=fake_session,
        keyspace="test_ks",
        course_service=catalog.course_service,
        module_service=catalog.module_service,
        lesson_service=catalog.lesson_service,
        enrollment_service=enrollment_service,
        access_service=access_service,
        **kwargs,
    )


@pytest.fixture
def progress_service(fake_session, catalog, enrollment_service, access_service):
    return build_progress_service(
        fake_session, catalog, enrollment_service, access_service
    )


class TestMarkLessonComplete:
    @pytest.mark.asyncio
    async def test_completion_is_idempotent(
        self, progress_service, catalog, student, fake_session
    ):
        course = catalog.add_course(lessons_per_module=(3,))
        lesson_id = catalog.lesson_ids(course.id)[0]

        first, created = await progress_service.mark_lesson_complete(student, lesson_id)
        second, created_again = await progress_service.mark_lesson_complete(
            student, lesson_id
        )

        assert created is True
        assert created_again is False
        assert second.completed_at == first.completed_at
        assert len(fake_session.rows("lesson_progress")) == 1
        progress = await progress_service.course_progress(student, course.id)
        assert (progress.completed, progress.total) == (1, 3)

    @pytest.mark.asyncio
    async def test_free_course_lesson_enrolls_on_the_fly(
        self, progress_service, catalog, student, fake_session
    ):
        course = catalog.add_course(course_type=CourseType.FREE)

        await progress_service.mark_lesson_complete(
            student, catalog.lesson_ids(course.id)[0]
        )

        assert fake_session.rows("enrollments")[0].source == "auto"

    @pytest.mark.asyncio
    async def test_private_course_lesson_denied(
        self, progress_service, catalog, student, fake_session
    ):
        course = catalog.add_course(course_type=CourseType.PRIVATE)

        with pytest.raises(CourseAccessDeniedError) as exc_info:
            await progress_service.mark_lesson_complete(
                student, catalog.lesson_ids(course.id)[0]
            )

        assert exc_info.value.code == AccessReason.REQUIRES_ACCESS_REQUEST.value
        assert fake_session.rows("lesson_progress") == []

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, progress_service, student):
        with pytest.raises(LessonNotFoundError):
            await progress_service.mark_lesson_complete(student, uuid4())


class TestCourseProgress:
    @pytest.mark.asyncio
    async def test_two_of_five_lessons_is_forty_percent(
        self, progress_service, catalog, student
    ):
        course = catalog.add_course(lessons_per_module=(3, 2))
        for lesson_id in catalog.lesson_ids(course.id)[:2]:
            await progress_service.mark_lesson_complete(student, lesson_id)

        progress = await progress_service.course_progress(student, course.id)

        assert (progress.total, progress.completed, progress.percentage) == (5, 2, 40)

    @pytest.mark.asyncio
    async def test_course_without_lessons(self, progress_service, catalog, student):
        course = catalog.add_course(lessons_per_module=())

        progress = await progress_service.course_progress(student, course.id)

        assert progress.percentage == 0
        assert progress.total == 0

    @pytest.mark.asyncio
    async def test_other_courses_do_not_count(self, progress_service, catalog, student):
        course = catalog.add_course(lessons_per_module=(2,))
        other = catalog.add_course(lessons_per_module=(4,))
        for lesson_id in catalog.lesson_ids(other.id):
            await progress_service.mark_lesson_complete(student, lesson_id)

        progress = await progress_service.course_progress(student, course.id)

        assert progress.percentage == 0

    @pytest.mark.asyncio
    async def test_read_failure_degrades_to_empty(
        self, progress_service, catalog, student, fake_session
    ):
        course = catalog.add_course()
        fake_session.fail_on.append("lesson_progress")

        progress = await progress_service.course_progress(student, course.id)

        assert progress.percentage == 0

    @pytest.mark.asyncio
    async def test_unknown_course(self, progress_service, student):
        with pytest.raises(CourseNotFoundError):
            await progress_service.course_progress(student, uuid4())

    @pytest.mark.asyncio
    async def test_unpublished_course_hidden_from_students(
        self, progress_service, catalog, student, admin
    ):
        course = catalog.add_course(is_published=False)

        with pytest.raises(CourseNotFoundError):
            await progress_service.course_progress(student, course.id)
        progress = await progress_service.course_progress(admin, course.id)
        assert progress.total == 2


class TestEnrolledCourses:
    @pytest.mark.asyncio
    async def test_lists_enrollments_with_progress(
        self, progress_service, catalog, student
    ):
        course = catalog.add_course(lessons_per_module=(4,))
        await progress_service.enroll(student, course.id)
        await progress_service.mark_lesson_complete(
            student, catalog.lesson_ids(course.id)[0]
        )

        items = await progress_service.get_enrolled_courses(student)

        assert len(items) == 1
        assert items[0].course.id == course.id
        assert items[0].progress.percentage == 25

    @pytest.mark.asyncio
    async def test_read_failure_degrades_to_empty_list(
        self, progress_service, student, fake_session
    ):
        fake_session.fail_on.append("enrollments_by_user")
        assert await progress_service.get_enrolled_courses(student) == []


class TestCourseDetail:
    @pytest.mark.asyncio
    async def test_free_course_detail_includes_progress(
        self, progress_service, catalog, student
    ):
        course = catalog.add_course(lessons_per_module=(2,))
        lesson_id = catalog.lesson_ids(course.id)[0]
        await progress_service.mark_lesson_complete(student, lesson_id)

        detail = await progress_service.get_course_detail(student, course.id)

        assert detail.access.allowed
        assert detail.completed_lesson_ids == {lesson_id}
        assert detail.progress.percentage == 50
        assert detail.enrollment is not None

    @pytest.mark.asyncio
    async def test_private_course_detail_without_progress(
        self, progress_service, catalog, student
    ):
        course = catalog.add_course(course_type=CourseType.PRIVATE)

        detail = await progress_service.get_course_detail(student, course.id)

        assert not detail.access.allowed
        assert detail.enrollment is None
        assert detail.progress.total == 0
        assert len(detail.outline) == 1

    @pytest.mark.asyncio
    async def test_unpublished_hidden_from_students(
        self, progress_service, catalog, student, admin
    ):
        course = catalog.add_course(is_published=False)

        with pytest.raises(CourseNotFoundError):
            await progress_service.get_course_detail(student, course.id)
        detail = await progress_service.get_course_detail(admin, course.id)
        assert detail.access.reason == AccessReason.ADMIN


class TestEnroll:
    @pytest.mark.asyncio
    async def test_enroll_free_course(self, progress_service, catalog, student):
        course = catalog.add_course()

        enrollment = await progress_service.enroll(student, course.id)

        assert enrollment.source == "self"

    @pytest.mark.asyncio
    async def test_enroll_twice_conflicts(self, progress_service, catalog, student):
        course = catalog.add_course()
        await progress_service.enroll(student, course.id)

        with pytest.raises(AlreadyEnrolledError):
            await progress_service.enroll(student, course.id)

    @pytest.mark.asyncio
    async def test_private_course_needs_request(self, progress_service, catalog, student):
        course = catalog.add_course(course_type=CourseType.PRIVATE)

        with pytest.raises(AccessRequestRequiredError):
            await progress_service.enroll(student, course.id)


class TestCompleteCourse:
    @pytest.mark.asyncio
    async def test_not_enrolled(self, progress_service, catalog, student):
        course = catalog.add_course()
        with pytest.raises(NotEnrolledError):
            await progress_service.complete_course(student, course.id)

    @pytest.mark.asyncio
    async def test_complete_without_full_progress_by_default(
        self, progress_service, catalog, student
    ):
        course = catalog.add_course(lessons_per_module=(3,))
        await progress_service.enroll(student, course.id)

        enrollment = await progress_service.complete_course(student, course.id)

        assert enrollment.is_completed

    @pytest.mark.asyncio
    async def test_full_completion_required(
        self, fake_session, catalog, enrollment_service, access_service, student
    ):
        service = build_progress_service(
            fake_session,
            catalog,
            enrollment_service,
            access_service,
            require_full_completion=True,
        )
        course = catalog.add_course(lessons_per_module=(2,))
        first, second = catalog.lesson_ids(course.id)
        await service.mark_lesson_complete(student, first)

        with pytest.raises(CourseIncompleteError):
            await service.complete_course(student, course.id)

        await service.mark_lesson_complete(student, second)
        enrollment = await service.complete_course(student, course.id)
        assert enrollment.is_completed

