"""Tests for EnrollmentService storage behaviour."""

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from learnhub.core.exceptions import StorageFailureError
from learnhub.progress.models import EnrollmentSource
from learnhub.progress.service import EnrollmentService


@pytest.fixture
def enrollment_service(fake_session) -> EnrollmentService:
    return EnrollmentService(session=fake_session, keyspace="test_ks")


class TestCreateEnrollment:
    @pytest.mark.asyncio
    async def test_creates_rows_in_both_tables(self, enrollment_service, fake_session):
        user_id, course_id = uuid4(), uuid4()

        enrollment, created = await enrollment_service.create_enrollment(
            user_id, course_id, EnrollmentSource.AUTO
        )

        assert created is True
        assert enrollment.source == "auto"
        assert len(fake_session.rows("enrollments")) == 1
        assert len(fake_session.rows("enrollments_by_user")) == 1

    @pytest.mark.asyncio
    async def test_second_call_returns_existing(self, enrollment_service, fake_session):
        user_id, course_id = uuid4(), uuid4()
        first, _ = await enrollment_service.create_enrollment(user_id, course_id)

        second, created = await enrollment_service.create_enrollment(
            user_id, course_id, EnrollmentSource.AUTO
        )

        assert created is False
        assert second.enrolled_at == first.enrolled_at
        assert second.source == "self"
        assert len(fake_session.rows("enrollments")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_creates_win_once(self, enrollment_service, fake_session):
        user_id, course_id = uuid4(), uuid4()

        results = await asyncio.gather(
            *(enrollment_service.create_enrollment(user_id, course_id) for _ in range(5))
        )

        assert [created for _, created in results].count(True) == 1
        assert len(fake_session.rows("enrollments")) == 1

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_failure(
        self, enrollment_service, fake_session
    ):
        fake_session.fail_on.append("IF NOT EXISTS")
        with pytest.raises(StorageFailureError):
            await enrollment_service.create_enrollment(uuid4(), uuid4())


class TestListing:
    @pytest.mark.asyncio
    async def test_user_enrollments_newest_first(self, enrollment_service, fake_session):
        user_id = uuid4()
        first, _ = await enrollment_service.create_enrollment(user_id, uuid4())
        second, _ = await enrollment_service.create_enrollment(user_id, uuid4())
        for row in fake_session.rows("enrollments_by_user"):
            if row.course_id == first.course_id:
                row["enrolled_at"] = datetime(2024, 1, 1, tzinfo=UTC)
        await enrollment_service.create_enrollment(uuid4(), uuid4())

        enrollments = await enrollment_service.list_user_enrollments(user_id)

        assert [e.course_id for e in enrollments] == [second.course_id, first.course_id]

    @pytest.mark.asyncio
    async def test_course_and_platform_listings(self, enrollment_service):
        course_id = uuid4()
        await enrollment_service.create_enrollment(uuid4(), course_id)
        await enrollment_service.create_enrollment(uuid4(), course_id)
        await enrollment_service.create_enrollment(uuid4(), uuid4())

        assert len(await enrollment_service.list_course_enrollments(course_id)) == 2
        assert len(await enrollment_service.list_all_enrollments()) == 3


class TestComplete:
    @pytest.mark.asyncio
    async def test_complete_stamps_both_tables(self, enrollment_service, fake_session):
        enrollment, _ = await enrollment_service.create_enrollment(uuid4(), uuid4())

        completed = await enrollment_service.complete(enrollment)

        assert completed.is_completed
        assert all(r.completed_at for r in fake_session.rows("enrollments"))
        assert all(r.completed_at for r in fake_session.rows("enrollments_by_user"))

    @pytest.mark.asyncio
    async def test_second_complete_keeps_first_timestamp(self, enrollment_service):
        enrollment, _ = await enrollment_service.create_enrollment(uuid4(), uuid4())
        first = await enrollment_service.complete(enrollment)
        first_at = first.completed_at

        stale = await enrollment_service.get_enrollment(
            enrollment.user_id, enrollment.course_id
        )
        stale.completed_at = None
        again = await enrollment_service.complete(stale)

        assert again.completed_at == first_at

    @pytest.mark.asyncio
    async def test_retry_restamps_missing_mirror(self, enrollment_service, fake_session):
        enrollment, _ = await enrollment_service.create_enrollment(uuid4(), uuid4())
        fake_session.fail_on.append("UPDATE test_ks.enrollments_by_user")
        with pytest.raises(StorageFailureError):
            await enrollment_service.complete(enrollment)
        assert fake_session.rows("enrollments_by_user")[0].completed_at is None

        fake_session.fail_on.clear()
        stored = await enrollment_service.get_enrollment(
            enrollment.user_id, enrollment.course_id
        )
        again = await enrollment_service.complete(stored)

        mirror = fake_session.rows("enrollments_by_user")[0]
        assert mirror.completed_at == stored.completed_at == again.completed_at
        listed = await enrollment_service.list_user_enrollments(enrollment.user_id)
        assert listed[0].is_completed


class TestMirrorRepair:
    @pytest.mark.asyncio
    async def test_retry_writes_missing_user_row(self, enrollment_service, fake_session):
        user_id, course_id = uuid4(), uuid4()
        fake_session.fail_on.append("INSERT INTO test_ks.enrollments_by_user")
        with pytest.raises(StorageFailureError):
            await enrollment_service.create_enrollment(user_id, course_id)
        assert len(fake_session.rows("enrollments")) == 1
        assert fake_session.rows("enrollments_by_user") == []

        fake_session.fail_on.clear()
        enrollment, created = await enrollment_service.create_enrollment(
            user_id, course_id, EnrollmentSource.AUTO
        )

        assert created is False
        assert enrollment.source == "self"
        listed = await enrollment_service.list_user_enrollments(user_id)
        assert [e.course_id for e in listed] == [course_id]
        assert listed[0].enrolled_at == enrollment.enrolled_at
