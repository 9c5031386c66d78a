"""API tests for enrollment and progress endpoints."""

from uuid import uuid4

import pytest

from learnhub.access.service import AccessService
from learnhub.courses.models import CourseType
from learnhub.progress.service import EnrollmentService, ProgressService


@pytest.fixture
def wired(app, fake_session, catalog):
    """Real enrollment, gate and progress services over the in-memory session."""
    enrollment_service = EnrollmentService(session=fake_session, keyspace="test_ks")
    access_service = AccessService(
        session=fake_session,
        keyspace="test_ks",
        course_service=catalog.course_service,
        enrollment_service=enrollment_service,
    )
    app.state.progress_service = ProgressService(
        session=fake_session,
        keyspace="test_ks",
        course_service=catalog.course_service,
        module_service=catalog.module_service,
        lesson_service=catalog.lesson_service,
        enrollment_service=enrollment_service,
        access_service=access_service,
    )
    return catalog


def test_requires_authentication(client, wired) -> None:
    response = client.get(f"/v1/progress/courses/{uuid4()}")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_service_unavailable_without_database(client, student, headers_for) -> None:
    response = client.get("/v1/enrollments", headers=headers_for(student))
    assert response.status_code == 503


def test_enroll_and_list(client, wired, student, headers_for) -> None:
    course = wired.add_course(title="Intro to Pharmacy", lessons_per_module=(2,))
    headers = headers_for(student)

    response = client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=headers)
    assert response.status_code == 201
    assert response.json()["source"] == "self"

    again = client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=headers)
    assert again.status_code == 409

    listing = client.get("/v1/enrollments", headers=headers).json()
    assert listing["total"] == 1
    assert listing["items"][0]["course"]["title"] == "Intro to Pharmacy"
    assert listing["items"][0]["progress"]["percentage"] == 0


def test_enroll_private_course_forbidden(client, wired, student, headers_for) -> None:
    course = wired.add_course(course_type=CourseType.PRIVATE)
    response = client.post(
        "/v1/enrollments", json={"course_id": str(course.id)}, headers=headers_for(student)
    )
    assert response.status_code == 403


def test_lesson_completion_flow(client, wired, student, headers_for) -> None:
    course = wired.add_course(lessons_per_module=(3, 2))
    lesson_ids = wired.lesson_ids(course.id)
    headers = headers_for(student)

    first = client.post(f"/v1/progress/lessons/{lesson_ids[0]}/complete", headers=headers)
    repeat = client.post(f"/v1/progress/lessons/{lesson_ids[0]}/complete", headers=headers)
    client.post(f"/v1/progress/lessons/{lesson_ids[1]}/complete", headers=headers)

    assert first.status_code == 200
    assert first.json()["newly_completed"] is True
    assert repeat.json()["newly_completed"] is False

    progress = client.get(f"/v1/progress/courses/{course.id}", headers=headers).json()
    assert progress == {"total_lessons": 5, "completed_lessons": 2, "percentage": 40}


def test_private_lesson_completion_forbidden(client, wired, student, headers_for) -> None:
    course = wired.add_course(course_type=CourseType.PRIVATE)
    lesson_id = wired.lesson_ids(course.id)[0]

    response = client.post(
        f"/v1/progress/lessons/{lesson_id}/complete", headers=headers_for(student)
    )

    assert response.status_code == 403


def test_unknown_lesson(client, wired, student, headers_for) -> None:
    response = client.post(
        f"/v1/progress/lessons/{uuid4()}/complete", headers=headers_for(student)
    )
    assert response.status_code == 404


def test_progress_for_unknown_course(client, wired, student, headers_for) -> None:
    response = client.get(f"/v1/progress/courses/{uuid4()}", headers=headers_for(student))
    assert response.status_code == 404


def test_locked_content_hides_videos(client, wired, student, headers_for) -> None:
    course = wired.add_course(course_type=CourseType.PRIVATE)

    response = client.get(
        f"/v1/progress/courses/{course.id}/content", headers=headers_for(student)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["access"]["allowed"] is False
    assert data["access"]["reason"] == "requires_access_request"
    lessons = data["modules"][0]["lessons"]
    assert all(lesson["video_url"] is None for lesson in lessons)


def test_free_content_unlocked(client, wired, student, headers_for) -> None:
    course = wired.add_course()

    data = client.get(
        f"/v1/progress/courses/{course.id}/content", headers=headers_for(student)
    ).json()

    assert data["access"]["reason"] == "auto_enrolled"
    assert data["enrollment"]["source"] == "auto"
    assert data["modules"][0]["lessons"][0]["video_url"]


def test_complete_course(client, wired, student, headers_for) -> None:
    course = wired.add_course()
    headers = headers_for(student)

    not_enrolled = client.post(f"/v1/enrollments/{course.id}/complete", headers=headers)
    assert not_enrolled.status_code == 404

    client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=headers)
    done = client.post(f"/v1/enrollments/{course.id}/complete", headers=headers)
    assert done.status_code == 200
    assert done.json()["completed_at"] is not None
