"""Pydantic schemas for enrollments and progress.

Request and response models for:
- Course enrollment and completion
- Lesson completion
- Progress queries and course content
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learnhub.access.schemas import AccessDecisionResponse
from learnhub.courses.models import Lesson, Module, VideoType
from learnhub.courses.schemas import CourseResponse, MaterialSchema

from .models import CourseDetail, EnrolledCourse, Enrollment, LessonProgress, Progress


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    course_id: UUID = Field(..., description="Free course to enroll in")


class EnrollmentResponse(BaseModel):
    user_id: UUID
    course_id: UUID
    source: str
    enrolled_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, enrollment: Enrollment) -> "EnrollmentResponse":
        return cls(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            source=enrollment.source,
            enrolled_at=enrollment.enrolled_at,
            completed_at=enrollment.completed_at,
        )


# ==============================================================================
# Progress Schemas
# ==============================================================================


class ProgressResponse(BaseModel):
    """Completion of a course; percentage is always within 0-100."""

    total_lessons: int
    completed_lessons: int
    percentage: int = Field(ge=0, le=100)

    @classmethod
    def from_progress(cls, progress: Progress) -> "ProgressResponse":
        return cls(
            total_lessons=progress.total,
            completed_lessons=progress.completed,
            percentage=progress.percentage,
        )


class LessonProgressResponse(BaseModel):
    lesson_id: UUID
    course_id: UUID
    module_id: UUID
    completed_at: datetime
    newly_completed: bool = Field(
        description="False when the lesson had already been completed"
    )

    @classmethod
    def from_entity(
        cls, progress: LessonProgress, created: bool
    ) -> "LessonProgressResponse":
        return cls(
            lesson_id=progress.lesson_id,
            course_id=progress.course_id,
            module_id=progress.module_id,
            completed_at=progress.completed_at,
            newly_completed=created,
        )


class EnrolledCourseResponse(BaseModel):
    course: CourseResponse
    enrollment: EnrollmentResponse
    progress: ProgressResponse

    @classmethod
    def from_entity(cls, item: EnrolledCourse) -> "EnrolledCourseResponse":
        return cls(
            course=CourseResponse.from_entity(item.course),
            enrollment=EnrollmentResponse.from_entity(item.enrollment),
            progress=ProgressResponse.from_progress(item.progress),
        )


class EnrollmentListResponse(BaseModel):
    items: list[EnrolledCourseResponse]
    total: int


# ==============================================================================
# Course Content Schemas
# ==============================================================================


class LessonContentResponse(BaseModel):
    """Lesson inside the course outline.

    ``video_url`` and ``materials`` are withheld while access is denied.
    """

    id: UUID
    title: str
    description: str | None = None
    order_index: int
    video_type: VideoType
    video_url: str | None = None
    duration_minutes: int = 0
    materials: list[MaterialSchema] = []
    completed: bool = False

    @classmethod
    def from_lesson(
        cls, lesson: Lesson, unlocked: bool, completed: bool
    ) -> "LessonContentResponse":
        return cls(
            id=lesson.id,
            title=lesson.title,
            description=lesson.description,
            order_index=lesson.order_index,
            video_type=VideoType(lesson.video_type),
            video_url=lesson.video_url if unlocked else None,
            duration_minutes=lesson.duration_minutes,
            materials=(
                [MaterialSchema(name=m.name, url=m.url) for m in lesson.materials]
                if unlocked
                else []
            ),
            completed=completed,
        )


class ModuleContentResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    order_index: int
    lessons: list[LessonContentResponse]

    @classmethod
    def from_module(
        cls,
        module: Module,
        lessons: list[LessonContentResponse],
    ) -> "ModuleContentResponse":
        return cls(
            id=module.id,
            title=module.title,
            description=module.description,
            order_index=module.order_index,
            lessons=lessons,
        )


class CourseDetailResponse(BaseModel):
    course: CourseResponse
    access: AccessDecisionResponse
    enrollment: EnrollmentResponse | None = None
    progress: ProgressResponse
    modules: list[ModuleContentResponse]

    @classmethod
    def from_detail(cls, detail: CourseDetail) -> "CourseDetailResponse":
        unlocked = detail.access.allowed
        modules = [
            ModuleContentResponse.from_module(
                module,
                [
                    LessonContentResponse.from_lesson(
                        lesson,
                        unlocked=unlocked,
                        completed=lesson.id in detail.completed_lesson_ids,
                    )
                    for lesson in lessons
                ],
            )
            for module, lessons in detail.outline
        ]
        return cls(
            course=CourseResponse.from_entity(detail.course),
            access=AccessDecisionResponse.from_decision(detail.access),
            enrollment=(
                EnrollmentResponse.from_entity(detail.enrollment)
                if detail.enrollment
                else None
            ),
            progress=ProgressResponse.from_progress(detail.progress),
            modules=modules,
        )
