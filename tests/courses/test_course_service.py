"""Tests for the catalog services: categories, courses, modules and lessons."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra import DriverException
from cassandra.cluster import Session

from learnhub.core.exceptions import PermissionDeniedError, StorageFailureError
from learnhub.courses.models import Category, Course, CourseType, Lesson, Module, generate_slug
from learnhub.courses.schemas import (
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    UpdateLessonRequest,
)
from learnhub.courses.service import (
    CategoryNotFoundError,
    CategoryService,
    CourseNotFoundError,
    CourseService,
    LessonService,
    ModuleNotFoundError,
    ModuleService,
    OrderIndexTakenError,
    SlugExistsError,
)


class Result(list):
    def __init__(self, rows=(), applied=True):
        super().__init__(rows)
        self.was_applied = applied

    def one(self):
        return self[0] if self else None


def as_row(entity) -> SimpleNamespace:
    values = dict(vars(entity))
    if isinstance(entity, Lesson):
        values["materials"] = entity.materials_for_db()
    return SimpleNamespace(**values)


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
    session.aexecute = AsyncMock(return_value=Result())
    return session


@pytest.fixture
def services(mock_session):
    categories = CategoryService(session=mock_session, keyspace="test_ks")
    lessons = LessonService(session=mock_session, keyspace="test_ks")
    modules = ModuleService(session=mock_session, keyspace="test_ks", lesson_service=lessons)
    courses = CourseService(
        session=mock_session,
        keyspace="test_ks",
        category_service=categories,
        module_service=modules,
    )
    return SimpleNamespace(
        categories=categories, lessons=lessons, modules=modules, courses=courses
    )


def route(mock_session, table: dict[str, Result | Exception]) -> None:
    """Answer statements by the first matching prefix; anything else is empty.

    Exceptions in the table are raised instead of returned.
    """

    async def execute(statement, params=None):
        for prefix, result in table.items():
            if statement.startswith(prefix):
                if isinstance(result, Exception):
                    raise result
                return result
        return Result()

    mock_session.aexecute.side_effect = execute


def statements(mock_session) -> list[str]:
    return [c.args[0] for c in mock_session.aexecute.call_args_list]


class TestGenerateSlug:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Clinical Pharmacology", "clinical-pharmacology"),
            ("  Dosage & Safety!  ", "dosage-safety"),
            ("Éducation Médicale", "education-medicale"),
            ("a__b--c", "a-b-c"),
        ],
    )
    def test_slug(self, name, expected):
        assert generate_slug(name) == expected


class TestCategoryService:
    @pytest.mark.asyncio
    async def test_create_generates_slug(self, services, mock_session, admin):
        category = await services.categories.create_category(
            admin, CreateCategoryRequest(name="Patient Care")
        )

        assert category.slug == "patient-care"
        assert statements(mock_session)[-1].startswith("INSERT INTO test_ks.categories")

    @pytest.mark.asyncio
    async def test_duplicate_slug_rejected(self, services, mock_session, admin):
        existing = Category(name="Patient Care")
        route(mock_session, {"SELECT * FROM test_ks.categories": Result([as_row(existing)])})

        with pytest.raises(SlugExistsError):
            await services.categories.create_category(
                admin, CreateCategoryRequest(name="Other", slug="Patient Care")
            )

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, services, student):
        with pytest.raises(PermissionDeniedError):
            await services.categories.create_category(
                student, CreateCategoryRequest(name="Patient Care")
            )

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, services, mock_session):
        route(
            mock_session,
            {
                "SELECT * FROM test_ks.categories": Result(
                    [as_row(Category(name="zeta")), as_row(Category(name="Alpha"))]
                )
            },
        )

        names = [c.name for c in await services.categories.list_categories()]

        assert names == ["Alpha", "zeta"]


class TestCourseService:
    @pytest.mark.asyncio
    async def test_create_course(self, services, mock_session, admin):
        course = await services.courses.create_course(
            admin,
            CreateCourseRequest(title="Dosage Basics", course_type=CourseType.PRIVATE),
        )

        assert course.course_type == "private"
        assert course.is_published is False
        assert statements(mock_session)[-1].startswith("INSERT INTO test_ks.courses")

    @pytest.mark.asyncio
    async def test_create_with_unknown_category(self, services, admin):
        with pytest.raises(CategoryNotFoundError):
            await services.courses.create_course(
                admin, CreateCourseRequest(title="Dosage Basics", category_id=uuid4())
            )

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, services, student):
        with pytest.raises(PermissionDeniedError):
            await services.courses.create_course(
                student, CreateCourseRequest(title="Dosage Basics")
            )

    @pytest.mark.asyncio
    async def test_require_course_unknown(self, services):
        with pytest.raises(CourseNotFoundError):
            await services.courses.require_course(uuid4())

    @pytest.mark.asyncio
    async def test_list_published_newest_first(self, services, mock_session):
        now = datetime.now(UTC)
        old = Course(title="Old", is_published=True, created_at=now - timedelta(days=2))
        new = Course(title="New", is_published=True, created_at=now)
        draft = Course(title="Draft", is_published=False, created_at=now)
        route(
            mock_session,
            {"SELECT * FROM test_ks.courses": Result([as_row(old), as_row(draft), as_row(new)])},
        )

        published = await services.courses.list_courses()
        everything = await services.courses.list_courses(published_only=False)

        assert [c.title for c in published] == ["New", "Old"]
        assert {c.title for c in everything} == {"Old", "New", "Draft"}

    @pytest.mark.asyncio
    async def test_list_by_category(self, services, mock_session):
        category = Category(name="Patient Care")
        inside = Course(title="Inside", is_published=True, category_id=category.id)
        outside = Course(title="Outside", is_published=True)
        route(
            mock_session,
            {
                "SELECT * FROM test_ks.categories": Result([as_row(category)]),
                "SELECT * FROM test_ks.courses": Result([as_row(inside), as_row(outside)]),
            },
        )

        courses = await services.courses.list_courses(category_slug="patient-care")
        unknown = await services.courses.list_courses(category_slug="missing")

        assert [c.title for c in courses] == ["Inside"]
        assert unknown == []

    @pytest.mark.asyncio
    async def test_delete_cascades_to_modules(self, services, mock_session, admin):
        course = Course(title="Dosage Basics")
        module_id = uuid4()
        lesson_id = uuid4()
        route(
            mock_session,
            {
                "SELECT * FROM test_ks.courses WHERE id": Result([as_row(course)]),
                "SELECT order_index, module_id FROM test_ks.modules_by_course": Result(
                    [SimpleNamespace(order_index=0, module_id=module_id)]
                ),
                "SELECT order_index, lesson_id FROM test_ks.lessons_by_module": Result(
                    [SimpleNamespace(order_index=0, lesson_id=lesson_id)]
                ),
            },
        )

        await services.courses.delete_course(admin, course.id)

        deletes = [
            (c.args[0], c.args[1])
            for c in mock_session.aexecute.call_args_list
            if c.args[0].startswith("DELETE")
        ]
        assert ("DELETE FROM test_ks.lessons WHERE id = ?", [lesson_id]) in deletes
        assert ("DELETE FROM test_ks.modules WHERE id = ?", [module_id]) in deletes
        assert deletes[-1] == ("DELETE FROM test_ks.courses WHERE id = ?", [course.id])


class TestModuleService:
    @pytest.mark.asyncio
    async def test_create_appends_after_last_slot(self, services, mock_session, admin):
        course_id = uuid4()
        route(
            mock_session,
            {
                "SELECT id FROM test_ks.courses": Result([SimpleNamespace(id=course_id)]),
                "SELECT order_index, module_id": Result(
                    [
                        SimpleNamespace(order_index=0, module_id=uuid4()),
                        SimpleNamespace(order_index=3, module_id=uuid4()),
                    ]
                ),
            },
        )

        module = await services.modules.create_module(
            admin, course_id, CreateModuleRequest(title="Week 2")
        )

        assert module.order_index == 4

    @pytest.mark.asyncio
    async def test_taken_order_index(self, services, mock_session, admin):
        course_id = uuid4()
        route(
            mock_session,
            {
                "SELECT id FROM test_ks.courses": Result([SimpleNamespace(id=course_id)]),
                "INSERT INTO test_ks.modules_by_course": Result(applied=False),
            },
        )

        with pytest.raises(OrderIndexTakenError) as exc_info:
            await services.modules.create_module(
                admin, course_id, CreateModuleRequest(title="Week 1", order_index=0)
            )

        assert exc_info.value.order_index == 0
        assert not any(
            s.startswith("INSERT INTO test_ks.modules ") for s in statements(mock_session)
        )

    @pytest.mark.asyncio
    async def test_failed_save_frees_slot(self, services, mock_session, admin):
        course_id = uuid4()
        route(
            mock_session,
            {
                "SELECT id FROM test_ks.courses": Result([SimpleNamespace(id=course_id)]),
                "INSERT INTO test_ks.modules ": DriverException("write timeout"),
            },
        )

        with pytest.raises(StorageFailureError):
            await services.modules.create_module(
                admin, course_id, CreateModuleRequest(title="Week 1", order_index=3)
            )

        release = mock_session.aexecute.call_args_list[-1].args
        assert release[0].startswith("DELETE FROM test_ks.modules_by_course")
        assert release[1] == [course_id, 3]

    @pytest.mark.asyncio
    async def test_unknown_course(self, services, admin):
        with pytest.raises(CourseNotFoundError):
            await services.modules.create_module(
                admin, uuid4(), CreateModuleRequest(title="Week 1")
            )

    @pytest.mark.asyncio
    async def test_outline_follows_slot_order(self, services, mock_session):
        course_id = uuid4()
        first = Module(course_id=course_id, title="First", order_index=0)
        second = Module(course_id=course_id, title="Second", order_index=1)
        lesson = Lesson(
            module_id=first.id, course_id=course_id, title="Intro", order_index=0
        )

        async def execute(statement, params=None):
            if statement.startswith("SELECT order_index, module_id"):
                return Result(
                    [
                        SimpleNamespace(order_index=0, module_id=first.id),
                        SimpleNamespace(order_index=1, module_id=second.id),
                    ]
                )
            if statement.startswith("SELECT * FROM test_ks.modules WHERE id IN"):
                return Result([as_row(second), as_row(first)])
            if statement.startswith("SELECT order_index, lesson_id"):
                if params == [first.id]:
                    return Result([SimpleNamespace(order_index=0, lesson_id=lesson.id)])
                return Result()
            if statement.startswith("SELECT * FROM test_ks.lessons WHERE id IN"):
                return Result([as_row(lesson)])
            return Result()

        mock_session.aexecute.side_effect = execute

        outline = await services.modules.get_course_outline(course_id)

        assert [m.title for m, _ in outline] == ["First", "Second"]
        assert [lesson.title for lesson in outline[0][1]] == ["Intro"]
        assert outline[1][1] == []


class TestLessonService:
    @pytest.mark.asyncio
    async def test_create_inherits_course_id(self, services, mock_session, admin):
        module_id = uuid4()
        course_id = uuid4()
        route(
            mock_session,
            {
                "SELECT id, course_id FROM test_ks.modules": Result(
                    [SimpleNamespace(id=module_id, course_id=course_id)]
                )
            },
        )

        lesson = await services.lessons.create_lesson(
            admin,
            module_id,
            CreateLessonRequest(title="Intro", duration_minutes=15),
        )

        assert lesson.course_id == course_id
        assert lesson.order_index == 0
        executed = statements(mock_session)
        claim = executed.index(
            next(s for s in executed if s.startswith("INSERT INTO test_ks.lessons_by_module"))
        )
        save = executed.index(
            next(s for s in executed if s.startswith("INSERT INTO test_ks.lessons "))
        )
        assert claim < save

    @pytest.mark.asyncio
    async def test_unknown_module(self, services, admin):
        with pytest.raises(ModuleNotFoundError):
            await services.lessons.create_lesson(
                admin, uuid4(), CreateLessonRequest(title="Intro")
            )

    @pytest.mark.asyncio
    async def test_move_to_taken_slot_keeps_old_one(self, services, mock_session, admin):
        lesson = Lesson(
            module_id=uuid4(), course_id=uuid4(), title="Intro", order_index=0
        )
        route(
            mock_session,
            {
                "SELECT * FROM test_ks.lessons WHERE id = ?": Result([as_row(lesson)]),
                "INSERT INTO test_ks.lessons_by_module": Result(applied=False),
            },
        )

        with pytest.raises(OrderIndexTakenError):
            await services.lessons.update_lesson(
                admin, lesson.id, UpdateLessonRequest(order_index=2)
            )

        assert not any(s.startswith("DELETE") for s in statements(mock_session))

    @pytest.mark.asyncio
    async def test_failed_save_frees_slot(self, services, mock_session, admin):
        module_id = uuid4()
        route(
            mock_session,
            {
                "SELECT id, course_id FROM test_ks.modules": Result(
                    [SimpleNamespace(id=module_id, course_id=uuid4())]
                ),
                "INSERT INTO test_ks.lessons ": DriverException("write timeout"),
            },
        )

        with pytest.raises(StorageFailureError):
            await services.lessons.create_lesson(
                admin, module_id, CreateLessonRequest(title="Intro", order_index=1)
            )

        release = mock_session.aexecute.call_args_list[-1].args
        assert release[0].startswith("DELETE FROM test_ks.lessons_by_module")
        assert release[1] == [module_id, 1]

    @pytest.mark.asyncio
    async def test_failed_move_keeps_old_slot(self, services, mock_session, admin):
        lesson = Lesson(
            module_id=uuid4(), course_id=uuid4(), title="Intro", order_index=0
        )
        route(
            mock_session,
            {
                "SELECT * FROM test_ks.lessons WHERE id = ?": Result([as_row(lesson)]),
                "INSERT INTO test_ks.lessons ": DriverException("write timeout"),
            },
        )

        with pytest.raises(StorageFailureError):
            await services.lessons.update_lesson(
                admin, lesson.id, UpdateLessonRequest(order_index=2)
            )

        releases = [
            c.args[1]
            for c in mock_session.aexecute.call_args_list
            if c.args[0].startswith("DELETE")
        ]
        assert releases == [[lesson.module_id, 2]]

    @pytest.mark.asyncio
    async def test_get_lessons_empty(self, services, mock_session):
        assert await services.lessons.get_lessons([]) == {}
        mock_session.aexecute.assert_not_called()
