"""Course catalog service layer.

Business logic for:
- Categories
- Courses (public listing, admin management, cascade delete)
- Modules and lessons with order_index unique per parent
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.session import SessionContext
from learnhub.core.database.errors import CASSANDRA_ERRORS, storage_guard
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import ConflictError, NotFoundError
from learnhub.courses.models import (
    Category,
    Course,
    Lesson,
    Module,
    generate_slug,
)
from learnhub.courses.schemas import (
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    UpdateCategoryRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(NotFoundError):  # noqa: A001
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class LessonNotFoundError(NotFoundError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class CategoryNotFoundError(NotFoundError):
    def __init__(self, message: str = "Category not found"):
        super().__init__(message, "category_not_found")


class SlugExistsError(ConflictError):
    def __init__(self, message: str = "Slug already exists"):
        super().__init__(message, "slug_exists")


class OrderIndexTakenError(ConflictError):
    def __init__(self, order_index: int):
        super().__init__(f"Position {order_index} is already taken", "order_index_taken")
        self.order_index = order_index


# ==============================================================================
# Category Service
# ==============================================================================


class CategoryService:
    """Service for course categories."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_category = self.session.prepare(
            f"SELECT * FROM {ks}.categories WHERE id = ?"
        )
        self._list_categories = self.session.prepare(f"SELECT * FROM {ks}.categories")
        self._upsert_category = self.session.prepare(f"""
            INSERT INTO {ks}.categories
            (id, name, slug, description, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._delete_category = self.session.prepare(
            f"DELETE FROM {ks}.categories WHERE id = ?"
        )

    async def get_category(self, category_id: UUID) -> Category | None:
        rows = await self.session.aexecute(self._get_category, [category_id])
        row = rows.one()
        return Category.from_row(row) if row else None

    async def list_categories(self) -> list[Category]:
        """All categories ordered by name."""
        rows = await self.session.aexecute(self._list_categories)
        categories = [Category.from_row(row) for row in rows]
        categories.sort(key=lambda c: c.name.lower())
        return categories

    async def get_category_by_slug(self, slug: str) -> Category | None:
        for category in await self.list_categories():
            if category.slug == slug:
                return category
        return None

    async def create_category(
        self, ctx: SessionContext, data: CreateCategoryRequest
    ) -> Category:
        ctx.require_admin()
        category = Category(
            name=data.name,
            slug=generate_slug(data.slug) if data.slug else None,
            description=data.description,
        )
        await self._ensure_slug_free(category.slug)

        with storage_guard("create_category"):
            await self._save(category)
        logger.info("category_created", category_id=str(category.id), slug=category.slug)
        return category

    async def update_category(
        self, ctx: SessionContext, category_id: UUID, data: UpdateCategoryRequest
    ) -> Category:
        ctx.require_admin()
        category = await self.get_category(category_id)
        if not category:
            raise CategoryNotFoundError

        if data.name is not None:
            category.name = data.name.strip()
        if data.slug is not None:
            slug = generate_slug(data.slug)
            if slug != category.slug:
                await self._ensure_slug_free(slug)
                category.slug = slug
        if data.description is not None:
            category.description = data.description or None
        category.updated_at = utc_now()

        with storage_guard("update_category", category_id=str(category_id)):
            await self._save(category)
        return category

    async def delete_category(self, ctx: SessionContext, category_id: UUID) -> None:
        """Delete a category. Courses that referenced it become uncategorized."""
        ctx.require_admin()
        if not await self.get_category(category_id):
            raise CategoryNotFoundError
        with storage_guard("delete_category", category_id=str(category_id)):
            await self.session.aexecute(self._delete_category, [category_id])
        logger.info("category_deleted", category_id=str(category_id))

    async def _ensure_slug_free(self, slug: str) -> None:
        if await self.get_category_by_slug(slug):
            raise SlugExistsError

    async def _save(self, category: Category) -> None:
        await self.session.aexecute(
            self._upsert_category,
            [
                category.id,
                category.name,
                category.slug,
                category.description,
                category.created_at,
                category.updated_at,
            ],
        )


# ==============================================================================
# Lesson Service
# ==============================================================================


class LessonService:
    """Service for lessons, ordered inside their module."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_lesson = self.session.prepare(
            f"SELECT * FROM {ks}.lessons WHERE id = ?"
        )
        self._get_lessons = self.session.prepare(
            f"SELECT * FROM {ks}.lessons WHERE id IN ?"
        )
        self._get_module = self.session.prepare(
            f"SELECT id, course_id FROM {ks}.modules WHERE id = ?"
        )
        self._list_slots = self.session.prepare(
            f"SELECT order_index, lesson_id FROM {ks}.lessons_by_module "
            "WHERE module_id = ?"
        )
        self._claim_slot = self.session.prepare(f"""
            INSERT INTO {ks}.lessons_by_module (module_id, order_index, lesson_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)
        self._release_slot = self.session.prepare(
            f"DELETE FROM {ks}.lessons_by_module WHERE module_id = ? AND order_index = ?"
        )
        self._release_all_slots = self.session.prepare(
            f"DELETE FROM {ks}.lessons_by_module WHERE module_id = ?"
        )
        self._upsert_lesson = self.session.prepare(f"""
            INSERT INTO {ks}.lessons
            (id, module_id, course_id, title, description, order_index,
             video_url, video_type, duration_minutes, materials,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_lesson = self.session.prepare(
            f"DELETE FROM {ks}.lessons WHERE id = ?"
        )

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        rows = await self.session.aexecute(self._get_lesson, [lesson_id])
        row = rows.one()
        return Lesson.from_row(row) if row else None

    async def get_lessons(self, lesson_ids: list[UUID]) -> dict[UUID, Lesson]:
        """Fetch several lessons at once, keyed by id. Missing ids are skipped."""
        if not lesson_ids:
            return {}
        rows = await self.session.aexecute(self._get_lessons, [list(set(lesson_ids))])
        return {row.id: Lesson.from_row(row) for row in rows}

    async def list_lessons(self, module_id: UUID) -> list[Lesson]:
        """Lessons of a module ordered by order_index."""
        slots = list(await self.session.aexecute(self._list_slots, [module_id]))
        lessons = await self.get_lessons([slot.lesson_id for slot in slots])
        return [lessons[s.lesson_id] for s in slots if s.lesson_id in lessons]

    async def create_lesson(
        self, ctx: SessionContext, module_id: UUID, data: CreateLessonRequest
    ) -> Lesson:
        """Create a lesson at ``order_index`` (next free slot when omitted).

        Raises:
            ModuleNotFoundError: Unknown module
            OrderIndexTakenError: Slot already used in this module
        """
        ctx.require_admin()
        rows = await self.session.aexecute(self._get_module, [module_id])
        module_row = rows.one()
        if not module_row:
            raise ModuleNotFoundError

        order_index = data.order_index
        if order_index is None:
            order_index = await self._next_order_index(module_id)

        lesson = Lesson(
            module_id=module_id,
            course_id=module_row.course_id,
            title=data.title,
            order_index=order_index,
            description=data.description,
            video_url=data.video_url,
            video_type=data.video_type.value,
            duration_minutes=data.duration_minutes,
            materials=[m.to_entity() for m in data.materials],
        )

        with storage_guard("create_lesson", module_id=str(module_id)):
            await self._claim(module_id, order_index, lesson.id)
            await self._save_claimed(lesson)

        logger.info(
            "lesson_created",
            lesson_id=str(lesson.id),
            module_id=str(module_id),
            order_index=order_index,
        )
        return lesson

    async def update_lesson(
        self, ctx: SessionContext, lesson_id: UUID, data: UpdateLessonRequest
    ) -> Lesson:
        ctx.require_admin()
        lesson = await self.get_lesson(lesson_id)
        if not lesson:
            raise LessonNotFoundError

        if data.title is not None:
            lesson.title = data.title.strip()
        if data.description is not None:
            lesson.description = data.description or None
        if data.video_url is not None:
            lesson.video_url = data.video_url or None
        if data.video_type is not None:
            lesson.video_type = data.video_type.value
        if data.duration_minutes is not None:
            lesson.duration_minutes = data.duration_minutes
        if data.materials is not None:
            lesson.materials = [m.to_entity() for m in data.materials]
        lesson.updated_at = utc_now()

        with storage_guard("update_lesson", lesson_id=str(lesson_id)):
            if data.order_index is not None and data.order_index != lesson.order_index:
                await self._claim(lesson.module_id, data.order_index, lesson.id)
                old_index, lesson.order_index = lesson.order_index, data.order_index
                await self._save_claimed(lesson)
                await self.session.aexecute(
                    self._release_slot, [lesson.module_id, old_index]
                )
            else:
                await self._save(lesson)

        return lesson

    async def delete_lesson(self, ctx: SessionContext, lesson_id: UUID) -> None:
        ctx.require_admin()
        lesson = await self.get_lesson(lesson_id)
        if not lesson:
            raise LessonNotFoundError

        with storage_guard("delete_lesson", lesson_id=str(lesson_id)):
            await self.session.aexecute(
                self._release_slot, [lesson.module_id, lesson.order_index]
            )
            await self.session.aexecute(self._delete_lesson, [lesson.id])
        logger.info("lesson_deleted", lesson_id=str(lesson_id))

    async def delete_module_lessons(self, module_id: UUID) -> int:
        """Remove every lesson of a module. Returns the number deleted."""
        slots = list(await self.session.aexecute(self._list_slots, [module_id]))
        for slot in slots:
            await self.session.aexecute(self._delete_lesson, [slot.lesson_id])
        await self.session.aexecute(self._release_all_slots, [module_id])
        return len(slots)

    async def _next_order_index(self, module_id: UUID) -> int:
        slots = list(await self.session.aexecute(self._list_slots, [module_id]))
        return max((s.order_index for s in slots), default=-1) + 1

    async def _claim(self, module_id: UUID, order_index: int, lesson_id: UUID) -> None:
        result = await self.session.aexecute(
            self._claim_slot, [module_id, order_index, lesson_id]
        )
        if not result.was_applied:
            raise OrderIndexTakenError(order_index)

    async def _save_claimed(self, lesson: Lesson) -> None:
        """Save a lesson whose slot was just claimed; free the slot on failure."""
        try:
            await self._save(lesson)
        except CASSANDRA_ERRORS:
            try:
                await self.session.aexecute(
                    self._release_slot, [lesson.module_id, lesson.order_index]
                )
            except CASSANDRA_ERRORS as e:
                logger.error(
                    "lesson_slot_release_failed",
                    lesson_id=str(lesson.id),
                    order_index=lesson.order_index,
                    error=str(e),
                )
            raise

    async def _save(self, lesson: Lesson) -> None:
        await self.session.aexecute(
            self._upsert_lesson,
            [
                lesson.id,
                lesson.module_id,
                lesson.course_id,
                lesson.title,
                lesson.description,
                lesson.order_index,
                lesson.video_url,
                lesson.video_type,
                lesson.duration_minutes,
                lesson.materials_for_db(),
                lesson.created_at,
                lesson.updated_at,
            ],
        )


# ==============================================================================
# Module Service
# ==============================================================================


class ModuleService:
    """Service for modules, ordered inside their course."""

    def __init__(self, session: "Session", keyspace: str, lesson_service: LessonService):
        self.session = session
        self.keyspace = keyspace
        self.lesson_service = lesson_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_module = self.session.prepare(
            f"SELECT * FROM {ks}.modules WHERE id = ?"
        )
        self._get_modules = self.session.prepare(
            f"SELECT * FROM {ks}.modules WHERE id IN ?"
        )
        self._course_exists = self.session.prepare(
            f"SELECT id FROM {ks}.courses WHERE id = ?"
        )
        self._list_slots = self.session.prepare(
            f"SELECT order_index, module_id FROM {ks}.modules_by_course "
            "WHERE course_id = ?"
        )
        self._claim_slot = self.session.prepare(f"""
            INSERT INTO {ks}.modules_by_course (course_id, order_index, module_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)
        self._release_slot = self.session.prepare(
            f"DELETE FROM {ks}.modules_by_course WHERE course_id = ? AND order_index = ?"
        )
        self._release_all_slots = self.session.prepare(
            f"DELETE FROM {ks}.modules_by_course WHERE course_id = ?"
        )
        self._upsert_module = self.session.prepare(f"""
            INSERT INTO {ks}.modules
            (id, course_id, title, description, order_index, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {ks}.modules WHERE id = ?"
        )

    async def get_module(self, module_id: UUID) -> Module | None:
        rows = await self.session.aexecute(self._get_module, [module_id])
        row = rows.one()
        return Module.from_row(row) if row else None

    async def list_modules(self, course_id: UUID) -> list[Module]:
        """Modules of a course ordered by order_index."""
        slots = list(await self.session.aexecute(self._list_slots, [course_id]))
        if not slots:
            return []
        rows = await self.session.aexecute(
            self._get_modules, [[s.module_id for s in slots]]
        )
        modules = {row.id: Module.from_row(row) for row in rows}
        return [modules[s.module_id] for s in slots if s.module_id in modules]

    async def get_course_outline(
        self, course_id: UUID
    ) -> list[tuple[Module, list[Lesson]]]:
        """Modules of a course with their ordered lessons."""
        return [
            (module, await self.lesson_service.list_lessons(module.id))
            for module in await self.list_modules(course_id)
        ]

    async def create_module(
        self, ctx: SessionContext, course_id: UUID, data: CreateModuleRequest
    ) -> Module:
        """Create a module at ``order_index`` (next free slot when omitted).

        Raises:
            CourseNotFoundError: Unknown course
            OrderIndexTakenError: Slot already used in this course
        """
        ctx.require_admin()
        rows = await self.session.aexecute(self._course_exists, [course_id])
        if not rows.one():
            raise CourseNotFoundError

        order_index = data.order_index
        if order_index is None:
            slots = list(await self.session.aexecute(self._list_slots, [course_id]))
            order_index = max((s.order_index for s in slots), default=-1) + 1

        module = Module(
            course_id=course_id,
            title=data.title,
            order_index=order_index,
            description=data.description,
        )

        with storage_guard("create_module", course_id=str(course_id)):
            await self._claim(course_id, order_index, module.id)
            await self._save_claimed(module)

        logger.info(
            "module_created",
            module_id=str(module.id),
            course_id=str(course_id),
            order_index=order_index,
        )
        return module

    async def update_module(
        self, ctx: SessionContext, module_id: UUID, data: UpdateModuleRequest
    ) -> Module:
        ctx.require_admin()
        module = await self.get_module(module_id)
        if not module:
            raise ModuleNotFoundError

        if data.title is not None:
            module.title = data.title.strip()
        if data.description is not None:
            module.description = data.description or None
        module.updated_at = utc_now()

        with storage_guard("update_module", module_id=str(module_id)):
            if data.order_index is not None and data.order_index != module.order_index:
                await self._claim(module.course_id, data.order_index, module.id)
                old_index, module.order_index = module.order_index, data.order_index
                await self._save_claimed(module)
                await self.session.aexecute(
                    self._release_slot, [module.course_id, old_index]
                )
            else:
                await self._save(module)

        return module

    async def delete_module(self, ctx: SessionContext, module_id: UUID) -> int:
        """Delete a module and its lessons. Returns the number of lessons removed."""
        ctx.require_admin()
        module = await self.get_module(module_id)
        if not module:
            raise ModuleNotFoundError

        with storage_guard("delete_module", module_id=str(module_id)):
            lessons_deleted = await self.lesson_service.delete_module_lessons(module.id)
            await self.session.aexecute(
                self._release_slot, [module.course_id, module.order_index]
            )
            await self.session.aexecute(self._delete_module, [module.id])

        logger.info(
            "module_deleted", module_id=str(module_id), lessons_deleted=lessons_deleted
        )
        return lessons_deleted

    async def delete_course_modules(self, course_id: UUID) -> int:
        """Remove every module (and lesson) of a course. Returns modules deleted."""
        slots = list(await self.session.aexecute(self._list_slots, [course_id]))
        for slot in slots:
            await self.lesson_service.delete_module_lessons(slot.module_id)
            await self.session.aexecute(self._delete_module, [slot.module_id])
        await self.session.aexecute(self._release_all_slots, [course_id])
        return len(slots)

    async def _claim(self, course_id: UUID, order_index: int, module_id: UUID) -> None:
        result = await self.session.aexecute(
            self._claim_slot, [course_id, order_index, module_id]
        )
        if not result.was_applied:
            raise OrderIndexTakenError(order_index)

    async def _save_claimed(self, module: Module) -> None:
        try:
            await self._save(module)
        except CASSANDRA_ERRORS:
            try:
                await self.session.aexecute(
                    self._release_slot, [module.course_id, module.order_index]
                )
            except CASSANDRA_ERRORS as e:
                logger.error(
                    "module_slot_release_failed",
                    module_id=str(module.id),
                    order_index=module.order_index,
                    error=str(e),
                )
            raise

    async def _save(self, module: Module) -> None:
        await self.session.aexecute(
            self._upsert_module,
            [
                module.id,
                module.course_id,
                module.title,
                module.description,
                module.order_index,
                module.created_at,
                module.updated_at,
            ],
        )


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        category_service: CategoryService,
        module_service: ModuleService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.category_service = category_service
        self.module_service = module_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_course = self.session.prepare(
            f"SELECT * FROM {ks}.courses WHERE id = ?"
        )
        self._get_courses = self.session.prepare(
            f"SELECT * FROM {ks}.courses WHERE id IN ?"
        )
        # Full scan; the catalog is small and admin-managed
        self._list_courses = self.session.prepare(f"SELECT * FROM {ks}.courses")
        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {ks}.courses
            (id, title, description, instructor_name, duration_minutes,
             course_type, is_published, category_id, thumbnail_url,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {ks}.courses WHERE id = ?"
        )

    async def get_course(self, course_id: UUID) -> Course | None:
        rows = await self.session.aexecute(self._get_course, [course_id])
        row = rows.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError
        return course

    async def get_courses(self, course_ids: list[UUID]) -> dict[UUID, Course]:
        if not course_ids:
            return {}
        rows = await self.session.aexecute(self._get_courses, [list(set(course_ids))])
        return {row.id: Course.from_row(row) for row in rows}

    async def list_courses(
        self,
        published_only: bool = True,
        category_slug: str | None = None,
    ) -> list[Course]:
        """Courses ordered by created_at, newest first.

        Args:
            published_only: Hide drafts (student listing)
            category_slug: Only courses in this category; unknown slug yields []
        """
        category_id = None
        if category_slug:
            category = await self.category_service.get_category_by_slug(category_slug)
            if not category:
                return []
            category_id = category.id

        rows = await self.session.aexecute(self._list_courses)
        courses = [Course.from_row(row) for row in rows]
        if published_only:
            courses = [c for c in courses if c.is_published]
        if category_id:
            courses = [c for c in courses if c.category_id == category_id]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses

    async def categories_for(self, courses: list[Course]) -> dict[UUID, Category]:
        wanted = {c.category_id for c in courses if c.category_id}
        if not wanted:
            return {}
        return {
            c.id: c
            for c in await self.category_service.list_categories()
            if c.id in wanted
        }

    async def create_course(
        self, ctx: SessionContext, data: CreateCourseRequest
    ) -> Course:
        ctx.require_admin()
        if data.category_id and not await self.category_service.get_category(
            data.category_id
        ):
            raise CategoryNotFoundError

        course = Course(
            title=data.title,
            description=data.description,
            instructor_name=data.instructor_name,
            duration_minutes=data.duration_minutes,
            course_type=data.course_type.value,
            is_published=data.is_published,
            category_id=data.category_id,
            thumbnail_url=data.thumbnail_url,
        )

        with storage_guard("create_course"):
            await self._save(course)
        logger.info(
            "course_created",
            course_id=str(course.id),
            course_type=course.course_type,
            created_by=str(ctx.user_id),
        )
        return course

    async def update_course(
        self, ctx: SessionContext, course_id: UUID, data: UpdateCourseRequest
    ) -> Course:
        ctx.require_admin()
        course = await self.require_course(course_id)

        if data.category_id is not None and data.category_id != course.category_id:
            if not await self.category_service.get_category(data.category_id):
                raise CategoryNotFoundError
            course.category_id = data.category_id
        if data.title is not None:
            course.title = data.title.strip()
        if data.description is not None:
            course.description = data.description or None
        if data.instructor_name is not None:
            course.instructor_name = data.instructor_name or None
        if data.duration_minutes is not None:
            course.duration_minutes = data.duration_minutes
        if data.course_type is not None:
            course.course_type = data.course_type.value
        if data.is_published is not None:
            course.is_published = data.is_published
        if data.thumbnail_url is not None:
            course.thumbnail_url = data.thumbnail_url or None
        course.updated_at = utc_now()

        with storage_guard("update_course", course_id=str(course_id)):
            await self._save(course)
        logger.info("course_updated", course_id=str(course_id))
        return course

    async def set_thumbnail(
        self, ctx: SessionContext, course_id: UUID, thumbnail_url: str
    ) -> Course:
        ctx.require_admin()
        course = await self.require_course(course_id)
        course.thumbnail_url = thumbnail_url
        course.updated_at = utc_now()
        with storage_guard("set_thumbnail", course_id=str(course_id)):
            await self._save(course)
        return course

    async def delete_course(self, ctx: SessionContext, course_id: UUID) -> None:
        """Delete a course with its modules and lessons.

        Enrollments, progress and access requests are left untouched.
        """
        ctx.require_admin()
        await self.require_course(course_id)

        with storage_guard("delete_course", course_id=str(course_id)):
            modules_deleted = await self.module_service.delete_course_modules(course_id)
            await self.session.aexecute(self._delete_course, [course_id])

        logger.info(
            "course_deleted", course_id=str(course_id), modules_deleted=modules_deleted
        )

    async def _save(self, course: Course) -> None:
        await self.session.aexecute(
            self._upsert_course,
            [
                course.id,
                course.title,
                course.description,
                course.instructor_name,
                course.duration_minutes,
                course.course_type,
                course.is_published,
                course.category_id,
                course.thumbnail_url,
                course.created_at,
                course.updated_at,
            ],
        )
