"""Database models for the course catalog.

Cassandra table definitions for:
- Categories
- Courses (free or private, published flag)
- Modules, ordered inside a course through modules_by_course
- Lessons, ordered inside a module through lessons_by_module

The ``*_by_*`` tables are keyed by (parent, order_index), so claiming a
slot with ``INSERT ... IF NOT EXISTS`` keeps order_index unique per parent.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.core.dates import ensure_utc_aware, utc_now


class CourseType(str, Enum):
    """Who may open a course without an admin decision."""

    FREE = "free"  # any student, auto-enrolled on first access
    PRIVATE = "private"  # requires an approved access request


class VideoType(str, Enum):
    YOUTUBE = "youtube"
    UPLOAD = "upload"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories (
    id UUID PRIMARY KEY,
    name TEXT,
    slug TEXT,
    description TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    instructor_name TEXT,
    duration_minutes INT,
    course_type TEXT,
    is_published BOOLEAN,
    category_id UUID,
    thumbnail_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    description TEXT,
    order_index INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_course (
    course_id UUID,
    order_index INT,
    module_id UUID,
    PRIMARY KEY ((course_id), order_index)
) WITH CLUSTERING ORDER BY (order_index ASC)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    module_id UUID,
    course_id UUID,
    title TEXT,
    description TEXT,
    order_index INT,
    video_url TEXT,
    video_type TEXT,
    duration_minutes INT,
    materials LIST<FROZEN<TUPLE<TEXT, TEXT>>>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LESSONS_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_module (
    module_id UUID,
    order_index INT,
    lesson_id UUID,
    PRIMARY KEY ((module_id), order_index)
) WITH CLUSTERING ORDER BY (order_index ASC)
"""

COURSES_TABLES_CQL = [
    CATEGORY_TABLE_CQL,
    COURSE_TABLE_CQL,
    MODULE_TABLE_CQL,
    MODULES_BY_COURSE_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSONS_BY_MODULE_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def generate_slug(name: str) -> str:
    """Generate URL-friendly slug from a name."""
    slug = unicodedata.normalize("NFKD", name)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s_]+", "-", slug).strip("-")


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class Material:
    """Downloadable file attached to a lesson."""

    name: str
    url: str

    @classmethod
    def from_tuple(cls, value: Any) -> "Material":
        name, url = value
        return cls(name=name or "", url=url or "")

    def to_tuple(self) -> tuple[str, str]:
        return (self.name, self.url)


class Category:
    def __init__(
        self,
        name: str,
        id: UUID | None = None,
        slug: str | None = None,
        description: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.slug = slug or generate_slug(name)
        self.description = description
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Category {self.slug}>"


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier
        title: Course title
        description: Course description
        instructor_name: Display name of the instructor
        duration_minutes: Advertised duration
        course_type: free or private
        is_published: Only published courses are visible to students
        category_id: Optional category
        thumbnail_url: Cover image URL
    """

    def __init__(
        self,
        title: str,
        id: UUID | None = None,
        description: str | None = None,
        instructor_name: str | None = None,
        duration_minutes: int = 0,
        course_type: str = CourseType.FREE.value,
        is_published: bool = False,
        category_id: UUID | None = None,
        thumbnail_url: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.instructor_name = instructor_name
        self.duration_minutes = duration_minutes or 0
        self.course_type = course_type or CourseType.FREE.value
        self.is_published = bool(is_published)
        self.category_id = category_id
        self.thumbnail_url = thumbnail_url
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_free(self) -> bool:
        return self.course_type == CourseType.FREE.value

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            instructor_name=row.instructor_name,
            duration_minutes=row.duration_minutes,
            course_type=row.course_type,
            is_published=row.is_published,
            category_id=row.category_id,
            thumbnail_url=row.thumbnail_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        state = "published" if self.is_published else "draft"
        return f"<Course {self.title} ({self.course_type}, {state})>"


class Module:
    def __init__(
        self,
        course_id: UUID,
        title: str,
        order_index: int,
        id: UUID | None = None,
        description: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.order_index = order_index
        self.description = description
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title,
            order_index=row.order_index,
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Module {self.order_index}: {self.title}>"


class Lesson:
    """Lesson entity.

    ``course_id`` is denormalized from the parent module so completion
    records and access checks do not need a module lookup.
    """

    def __init__(
        self,
        module_id: UUID,
        course_id: UUID,
        title: str,
        order_index: int,
        id: UUID | None = None,
        description: str | None = None,
        video_url: str | None = None,
        video_type: str = VideoType.YOUTUBE.value,
        duration_minutes: int = 0,
        materials: list[Material] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.module_id = module_id
        self.course_id = course_id
        self.title = title.strip()
        self.order_index = order_index
        self.description = description
        self.video_url = video_url
        self.video_type = video_type or VideoType.YOUTUBE.value
        self.duration_minutes = duration_minutes or 0
        self.materials = materials or []
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        return cls(
            id=row.id,
            module_id=row.module_id,
            course_id=row.course_id,
            title=row.title,
            order_index=row.order_index,
            description=row.description,
            video_url=row.video_url,
            video_type=row.video_type,
            duration_minutes=row.duration_minutes,
            materials=[Material.from_tuple(m) for m in (row.materials or [])],
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def materials_for_db(self) -> list[tuple[str, str]]:
        return [m.to_tuple() for m in self.materials]

    def __repr__(self) -> str:
        return f"<Lesson {self.order_index}: {self.title}>"
