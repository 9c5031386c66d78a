"""Shared fixtures.

``FakeSession`` keeps rows in memory and understands the handful of CQL
shapes the services prepare (INSERT, SELECT *, UPDATE, DELETE, with the
``IF NOT EXISTS`` / ``IF col = ?`` / ``IF col = null`` conditions), so the
enrollment and access workflows can be exercised end to end without a
cluster.
"""

import asyncio
import os
import re
import tempfile
from collections.abc import Iterator
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="learnhub-logs-"))
os.environ.setdefault("LOG_REQUESTS", "false")

from cassandra import DriverException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnhub.auth.permissions import UserRole  # noqa: E402
from learnhub.auth.security import create_access_token  # noqa: E402
from learnhub.auth.session import SessionContext  # noqa: E402
from learnhub.courses.models import Course, CourseType, Lesson, Module  # noqa: E402
from learnhub.courses.service import (  # noqa: E402
    CourseNotFoundError,
    CourseService,
    LessonService,
    ModuleService,
)


KEYSPACE = "test_ks"

PRIMARY_KEYS: dict[str, tuple[str, ...]] = {
    "enrollments": ("course_id", "user_id"),
    "enrollments_by_user": ("user_id", "course_id"),
    "lesson_progress": ("user_id", "lesson_id"),
    "access_requests": ("id",),
    "pending_access_requests": ("user_id", "course_id"),
}


class Row(dict):
    """Result row; unknown columns read as None like unset Cassandra cells."""

    def __getattr__(self, name: str):
        return self.get(name)


class Rows(list):
    """Minimal stand-in for the driver's ResultSet."""

    def __init__(self, rows=(), applied: bool = True):
        super().__init__(rows)
        self.was_applied = applied

    def one(self):
        return self[0] if self else None


class FakeBatch:
    """Replaces BatchStatement; the session applies its entries all or nothing."""

    def __init__(self, batch_type=None):
        self.batch_type = batch_type
        self.entries: list[tuple[str, list]] = []

    def add(self, statement, parameters=None) -> None:
        self.entries.append((statement, list(parameters or [])))


def _normalize(cql: str) -> str:
    return " ".join(cql.split())


def _conditions(clause: str) -> list[str]:
    return [c.split("=")[0].strip() for c in clause.split(" AND ")]


class FakeSession:
    """In-memory session for the enrollment, progress and access tables."""

    def __init__(self, keyspace: str = KEYSPACE):
        self.keyspace = keyspace
        self.tables: dict[str, dict[tuple, Row]] = {t: {} for t in PRIMARY_KEYS}
        self.executed: list[str] = []
        self.fail_on: list[str] = []

    def prepare(self, cql: str) -> str:
        return _normalize(cql)

    async def aexecute(self, statement, parameters=None) -> Rows:
        # Yield so concurrent callers interleave between statements
        await asyncio.sleep(0)
        if isinstance(statement, FakeBatch):
            for cql, _ in statement.entries:
                self._maybe_fail(cql)
            for cql, params in statement.entries:
                self._run(cql, params)
            self.executed.append("BATCH")
            return Rows()
        self._maybe_fail(statement)
        return self._run(statement, list(parameters or []))

    def rows(self, table: str) -> list[Row]:
        return list(self.tables[table].values())

    def _maybe_fail(self, cql: str) -> None:
        for fragment in self.fail_on:
            if fragment in cql:
                raise DriverException(f"simulated failure: {fragment}")

    def _table(self, name: str) -> str:
        return name.split(".", 1)[1]

    def _key(self, table: str, values: dict) -> tuple:
        return tuple(values[c] for c in PRIMARY_KEYS[table])

    def _run(self, cql: str, params: list) -> Rows:
        self.executed.append(cql)
        if cql.startswith("INSERT"):
            return self._insert(cql, params)
        if cql.startswith("SELECT"):
            return self._select(cql, params)
        if cql.startswith("UPDATE"):
            return self._update(cql, params)
        if cql.startswith("DELETE"):
            return self._delete(cql, params)
        raise AssertionError(f"unsupported statement: {cql}")

    def _insert(self, cql: str, params: list) -> Rows:
        match = re.match(r"INSERT INTO (\S+) \((.*?)\) VALUES", cql)
        table = self._table(match.group(1))
        columns = [c.strip() for c in match.group(2).split(",")]
        row = Row(zip(columns, params, strict=True))
        key = self._key(table, row)
        if cql.endswith("IF NOT EXISTS") and key in self.tables[table]:
            return Rows([self.tables[table][key]], applied=False)
        self.tables[table][key] = row
        return Rows()

    def _select(self, cql: str, params: list) -> Rows:
        match = re.match(r"SELECT \* FROM (\S+)(?: WHERE (.*))?$", cql)
        table = self._table(match.group(1))
        rows = self.rows(table)
        if match.group(2):
            wanted = dict(zip(_conditions(match.group(2)), params, strict=True))
            rows = [r for r in rows if all(r.get(c) == v for c, v in wanted.items())]
        return Rows(rows)

    def _update(self, cql: str, params: list) -> Rows:
        match = re.match(r"UPDATE (\S+) SET (.*?) WHERE (.*?)(?: IF (.*))?$", cql)
        table = self._table(match.group(1))
        set_columns = [c.split("=")[0].strip() for c in match.group(2).split(",")]
        where_columns = _conditions(match.group(3))
        values = dict(zip(set_columns, params, strict=False))
        where = dict(
            zip(where_columns, params[len(set_columns) :], strict=False)
        )
        key = self._key(table, where)
        current = self.tables[table].get(key)

        condition = match.group(4)
        if condition:
            column, expected = (p.strip() for p in condition.split("="))
            if current is None:
                return Rows(applied=False)
            if expected == "null" and current.get(column) is not None:
                return Rows([current], applied=False)

        row = current or Row(where)
        row.update(values)
        self.tables[table][key] = row
        return Rows()

    def _delete(self, cql: str, params: list) -> Rows:
        match = re.match(r"DELETE FROM (\S+) WHERE (.*?)(?: IF (.*))?$", cql)
        table = self._table(match.group(1))
        where_columns = _conditions(match.group(2))
        where = dict(zip(where_columns, params, strict=False))
        key = self._key(table, where)
        current = self.tables[table].get(key)

        condition = match.group(3)
        if condition:
            column = condition.split("=")[0].strip()
            expected = params[len(where_columns)]
            if current is None or current.get(column) != expected:
                return Rows(applied=False)

        self.tables[table].pop(key, None)
        return Rows()


# ==============================================================================
# Sessions and Catalog
# ==============================================================================


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def logged_batches(monkeypatch) -> list[FakeBatch]:
    """Route the access service's batches through FakeBatch."""
    created: list[FakeBatch] = []

    def factory(*args, **kwargs):
        batch = FakeBatch(*args, **kwargs)
        created.append(batch)
        return batch

    monkeypatch.setattr("learnhub.access.service.BatchStatement", factory)
    return created


def make_ctx(role: UserRole = UserRole.STUDENT, user_id: UUID | None = None):
    return SessionContext(
        user_id=user_id or uuid4(), email=f"{role.value}@example.com", role=role
    )


@pytest.fixture
def student() -> SessionContext:
    return make_ctx(UserRole.STUDENT)


@pytest.fixture
def other_student() -> SessionContext:
    return make_ctx(UserRole.STUDENT)


@pytest.fixture
def admin() -> SessionContext:
    return make_ctx(UserRole.ADMIN)


class Catalog:
    """Courses, modules and lessons served through mocked catalog services."""

    def __init__(self):
        self.courses: dict[UUID, Course] = {}
        self.outlines: dict[UUID, list[tuple[Module, list[Lesson]]]] = {}
        self.lessons: dict[UUID, Lesson] = {}

        self.course_service = AsyncMock(spec=CourseService)
        self.course_service.get_course.side_effect = self.courses.get
        self.course_service.require_course.side_effect = self._require_course
        self.course_service.get_courses.side_effect = lambda ids: {
            i: self.courses[i] for i in ids if i in self.courses
        }
        self.course_service.list_courses.side_effect = (
            lambda published_only=True, category_slug=None: [
                c for c in self.courses.values() if c.is_published or not published_only
            ]
        )

        self.module_service = AsyncMock(spec=ModuleService)
        self.module_service.get_course_outline.side_effect = (
            lambda course_id: self.outlines.get(course_id, [])
        )

        self.lesson_service = AsyncMock(spec=LessonService)
        self.lesson_service.get_lesson.side_effect = self.lessons.get
        self.lesson_service.get_lessons.side_effect = lambda ids: {
            i: self.lessons[i] for i in ids if i in self.lessons
        }

    def _require_course(self, course_id: UUID) -> Course:
        if course_id not in self.courses:
            raise CourseNotFoundError
        return self.courses[course_id]

    def add_course(
        self,
        title: str = "Course",
        course_type: CourseType = CourseType.FREE,
        is_published: bool = True,
        lessons_per_module: tuple[int, ...] = (2,),
        lesson_minutes: int = 30,
    ) -> Course:
        course = Course(
            title=title, course_type=course_type.value, is_published=is_published
        )
        self.courses[course.id] = course
        outline = []
        for m_index, count in enumerate(lessons_per_module):
            module = Module(
                course_id=course.id, title=f"Module {m_index}", order_index=m_index
            )
            lessons = [
                Lesson(
                    module_id=module.id,
                    course_id=course.id,
                    title=f"Lesson {m_index}.{l_index}",
                    order_index=l_index,
                    video_url="https://videos.example.com/watch",
                    duration_minutes=lesson_minutes,
                )
                for l_index in range(count)
            ]
            for lesson in lessons:
                self.lessons[lesson.id] = lesson
            outline.append((module, lessons))
        self.outlines[course.id] = outline
        return course

    def lesson_ids(self, course_id: UUID) -> list[UUID]:
        return [lesson.id for _, lessons in self.outlines[course_id] for lesson in lessons]


@pytest.fixture
def catalog() -> Catalog:
    return Catalog()


# ==============================================================================
# API
# ==============================================================================


def auth_headers(ctx: SessionContext) -> dict[str, str]:
    token = create_access_token(
        {"sub": str(ctx.user_id), "email": ctx.email, "role": ctx.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app():
    """Fresh application without lifespan; tests place services on app.state."""
    from learnhub.main import create_app

    return create_app()


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    yield TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def headers_for():
    """Build an Authorization header for a session context."""
    return auth_headers


@pytest.fixture
def new_ctx():
    """Factory for extra session contexts."""
    return make_ctx
