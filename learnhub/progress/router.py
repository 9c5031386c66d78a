"""Student progress API endpoints.

Provides routes for:
- Course enrollment and completion
- Lesson completion
- Progress queries and course content
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.progress.dependencies import ProgressServiceDep
from learnhub.progress.schemas import (
    CourseDetailResponse,
    EnrolledCourseResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    LessonProgressResponse,
    ProgressResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Enrollments
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Private course, an access request is required"},
        409: {"description": "Already enrolled"},
    },
)
async def enroll(
    data: EnrollRequest, ctx: CurrentSession, service: ProgressServiceDep
) -> EnrollmentResponse:
    try:
        enrollment = await service.enroll(ctx, data.course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get("", response_model=EnrollmentListResponse)
async def list_my_enrollments(
    ctx: CurrentSession, service: ProgressServiceDep
) -> EnrollmentListResponse:
    """Enrolled courses with progress, most recent enrollment first."""
    items = await service.get_enrolled_courses(ctx)
    return EnrollmentListResponse(
        items=[EnrolledCourseResponse.from_entity(item) for item in items],
        total=len(items),
    )


@enrollments_router.post("/{course_id}/complete", response_model=EnrollmentResponse)
async def complete_course(
    course_id: UUID, ctx: CurrentSession, service: ProgressServiceDep
) -> EnrollmentResponse:
    try:
        enrollment = await service.complete_course(ctx, course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


# ==============================================================================
# Progress
# ==============================================================================


@router.post("/lessons/{lesson_id}/complete", response_model=LessonProgressResponse)
async def mark_lesson_complete(
    lesson_id: UUID, ctx: CurrentSession, service: ProgressServiceDep
) -> LessonProgressResponse:
    """Mark a lesson complete. Repeating the call is harmless."""
    try:
        progress, created = await service.mark_lesson_complete(ctx, lesson_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return LessonProgressResponse.from_entity(progress, created)


@router.get("/courses/{course_id}", response_model=ProgressResponse)
async def get_course_progress(
    course_id: UUID, ctx: CurrentSession, service: ProgressServiceDep
) -> ProgressResponse:
    try:
        progress = await service.course_progress(ctx, course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return ProgressResponse.from_progress(progress)


@router.get("/courses/{course_id}/content", response_model=CourseDetailResponse)
async def get_course_content(
    course_id: UUID, ctx: CurrentSession, service: ProgressServiceDep
) -> CourseDetailResponse:
    """Modules and lessons in order, with completion flags."""
    try:
        detail = await service.get_course_detail(ctx, course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return CourseDetailResponse.from_detail(detail)
