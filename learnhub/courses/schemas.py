"""Pydantic schemas for the course catalog.

Request and response models for:
- Categories
- Courses
- Modules and lessons (ordered by order_index)
"""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.courses.models import (
    Category,
    Course,
    CourseType,
    Lesson,
    Material,
    Module,
    VideoType,
)


# ==============================================================================
# Category Schemas
# ==============================================================================


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: str | None = Field(None, max_length=100, description="Generated when omitted")
    description: str | None = Field(None, max_length=1000)


class UpdateCategoryRequest(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    slug: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=1000)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, category: Category) -> "CategoryResponse":
        return cls.model_validate(category)


class CategorySummary(BaseModel):
    id: UUID
    name: str
    slug: str


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    instructor_name: str | None = Field(None, max_length=200)
    duration_minutes: int = Field(0, ge=0)
    course_type: CourseType = CourseType.FREE
    is_published: bool = False
    category_id: UUID | None = None
    thumbnail_url: str | None = Field(None, max_length=500)


class UpdateCourseRequest(BaseModel):
    """Course update request. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    instructor_name: str | None = Field(None, max_length=200)
    duration_minutes: int | None = Field(None, ge=0)
    course_type: CourseType | None = None
    is_published: bool | None = None
    category_id: UUID | None = None
    thumbnail_url: str | None = Field(None, max_length=500)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    instructor_name: str | None = None
    duration_minutes: int = 0
    course_type: CourseType
    is_published: bool
    category: CategorySummary | None = None
    thumbnail_url: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(
        cls, course: Course, category: Category | None = None
    ) -> "CourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            instructor_name=course.instructor_name,
            duration_minutes=course.duration_minutes,
            course_type=CourseType(course.course_type),
            is_published=course.is_published,
            category=CategorySummary(
                id=category.id, name=category.name, slug=category.slug
            )
            if category
            else None,
            thumbnail_url=course.thumbnail_url,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(BaseModel):
    items: list[CourseResponse]
    total: int


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order_index: int | None = Field(
        None, ge=0, description="Position in the course; next free slot when omitted"
    )


class UpdateModuleRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order_index: int | None = Field(None, ge=0)


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    order_index: int
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, module: Module) -> "ModuleResponse":
        return cls.model_validate(module)


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class MaterialSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)

    def to_entity(self) -> Material:
        return Material(name=self.name, url=self.url)


class CreateLessonRequest(BaseModel):
    """Lesson creation request. Uploaded videos must carry their URL."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order_index: int | None = Field(None, ge=0)
    video_url: str | None = Field(None, max_length=1000)
    video_type: VideoType = VideoType.YOUTUBE
    duration_minutes: int = Field(0, ge=0)
    materials: list[MaterialSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_upload_url(self) -> Self:
        if self.video_type == VideoType.UPLOAD and not self.video_url:
            raise ValueError("video_url is required for uploaded videos")
        return self


class UpdateLessonRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order_index: int | None = Field(None, ge=0)
    video_url: str | None = Field(None, max_length=1000)
    video_type: VideoType | None = None
    duration_minutes: int | None = Field(None, ge=0)
    materials: list[MaterialSchema] | None = None


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    order_index: int
    video_url: str | None = None
    video_type: VideoType
    duration_minutes: int = 0
    materials: list[MaterialSchema] = []
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, lesson: Lesson) -> "LessonResponse":
        return cls.model_validate(lesson)


class ThumbnailResponse(BaseModel):
    thumbnail_url: str
