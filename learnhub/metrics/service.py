"""Dashboard metrics for students and admins.

Read-only aggregation over enrollments and lesson completions. Nothing is
cached: every call recomputes from the source rows, and read failures
degrade to an empty dashboard.
"""

from collections import defaultdict
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.permissions import UserRole
from learnhub.auth.session import SessionContext
from learnhub.core.database.errors import CASSANDRA_ERRORS
from learnhub.core.dates import ensure_utc_aware, utc_now
from learnhub.progress.models import calculate_progress

from .calculations import (
    build_recent_activity,
    calculate_streak,
    enrollments_by_day,
    format_duration,
    hours_in_window,
    monthly_hours,
    study_hours,
)
from .models import Activity, ActivityType, Completion
from .schemas import (
    ActivityResponse,
    AdminMetricsResponse,
    CourseStats,
    EnrollmentsByDay,
    MonthlyHours,
    RecentEnrollment,
    StudentMetricsResponse,
    UserProgressStats,
)


if TYPE_CHECKING:
    from learnhub.config.settings import Settings
    from learnhub.courses.service import CourseService, LessonService
    from learnhub.progress.models import LessonProgress
    from learnhub.progress.service import EnrollmentService, ProgressService
    from learnhub.users.service import UserService


logger = structlog.get_logger(__name__)

RECENT_ENROLLMENTS_LIMIT = 10
UNKNOWN = "N/A"


class StudentMetricsService:
    """Personal dashboard of the caller."""

    def __init__(
        self,
        settings: "Settings",
        course_service: "CourseService",
        lesson_service: "LessonService",
        enrollment_service: "EnrollmentService",
        progress_service: "ProgressService",
    ):
        self.settings = settings
        self.course_service = course_service
        self.lesson_service = lesson_service
        self.enrollment_service = enrollment_service
        self.progress_service = progress_service

    async def get_summary(self, ctx: SessionContext) -> StudentMetricsResponse:
        try:
            return await self._summarize(ctx.user_id)
        except CASSANDRA_ERRORS as e:
            logger.warning(
                "student_metrics_unavailable",
                user_id=str(ctx.user_id),
                error=str(e),
            )
            return StudentMetricsResponse(
                weekly_goal_hours=self.settings.metrics_weekly_goal_hours
            )

    async def _summarize(self, user_id: UUID) -> StudentMetricsResponse:
        enrollments = await self.enrollment_service.list_user_enrollments(user_id)
        records = await self.progress_service.list_user_progress(user_id)
        lessons = await self.lesson_service.get_lessons([p.lesson_id for p in records])
        courses = await self.course_service.get_courses(
            [e.course_id for e in enrollments] + [p.course_id for p in records]
        )

        completions = [
            Completion(
                lesson_id=p.lesson_id,
                completed_at=p.completed_at,
                duration_minutes=(
                    lessons[p.lesson_id].duration_minutes if p.lesson_id in lessons else 0
                ),
            )
            for p in records
        ]
        total_minutes = sum(c.duration_minutes for c in completions)
        completed_courses = sum(1 for e in enrollments if e.is_completed)
        now = utc_now()

        enrollment_activity = [
            Activity(
                id=e.course_id,
                type=ActivityType.COURSE_ENROLLED,
                title="Enrolled in course",
                description=(
                    courses[e.course_id].title if e.course_id in courses else "Course"
                ),
                date=e.enrolled_at,
            )
            for e in enrollments
        ]
        completion_activity = [
            Activity(
                id=p.lesson_id,
                type=ActivityType.LESSON_COMPLETED,
                title="Lesson completed",
                description=self._lesson_label(p, lessons, courses),
                date=p.completed_at,
            )
            for p in records
        ]

        return StudentMetricsResponse(
            enrolled_courses=len(enrollments),
            completed_courses=completed_courses,
            certificates_earned=completed_courses,
            total_lessons_completed=len(records),
            total_study_hours=study_hours([total_minutes]),
            total_study_time=format_duration(total_minutes),
            current_streak=calculate_streak(
                [c.completed_at for c in completions], today=now.date()
            ),
            weekly_goal_hours=self.settings.metrics_weekly_goal_hours,
            weekly_studied_hours=hours_in_window(completions, days=7, now=now),
            monthly_progress=[
                MonthlyHours(month=month, hours=hours)
                for month, hours in monthly_hours(
                    completions, months=self.settings.metrics_monthly_window, now=now
                )
            ],
            recent_activity=[
                ActivityResponse.from_activity(a)
                for a in build_recent_activity(
                    enrollment_activity,
                    completion_activity,
                    limit=self.settings.metrics_recent_activity_limit,
                )
            ],
        )

    @staticmethod
    def _lesson_label(record: "LessonProgress", lessons: dict, courses: dict) -> str:
        lesson = lessons.get(record.lesson_id)
        course = courses.get(record.course_id)
        lesson_title = lesson.title if lesson else "Lesson"
        return f"{lesson_title} - {course.title}" if course else lesson_title


class AdminMetricsService:
    """Platform-wide dashboard (admin only)."""

    def __init__(
        self,
        settings: "Settings",
        user_service: "UserService",
        course_service: "CourseService",
        lesson_service: "LessonService",
        enrollment_service: "EnrollmentService",
        progress_service: "ProgressService",
    ):
        self.settings = settings
        self.user_service = user_service
        self.course_service = course_service
        self.lesson_service = lesson_service
        self.enrollment_service = enrollment_service
        self.progress_service = progress_service

    async def get_summary(self, ctx: SessionContext) -> AdminMetricsResponse:
        ctx.require_admin()
        try:
            return await self._summarize()
        except CASSANDRA_ERRORS as e:
            logger.warning("admin_metrics_unavailable", error=str(e))
            return AdminMetricsResponse()

    async def _summarize(self) -> AdminMetricsResponse:
        users = await self.user_service.list_users()
        courses = await self.course_service.list_courses(published_only=False)
        enrollments = await self.enrollment_service.list_all_enrollments()
        records = await self.progress_service.list_all_progress()
        lessons = await self.lesson_service.get_lessons(
            list({p.lesson_id for p in records})
        )
        now = utc_now()

        def minutes(record: "LessonProgress") -> int:
            lesson = lessons.get(record.lesson_id)
            return lesson.duration_minutes if lesson else 0

        completed_by_user: dict[UUID, set[UUID]] = defaultdict(set)
        minutes_by_user: dict[UUID, int] = defaultdict(int)
        for p in records:
            completed_by_user[p.user_id].add(p.lesson_id)
            minutes_by_user[p.user_id] += minutes(p)

        enrollments_by_course = defaultdict(list)
        enrollments_by_user = defaultdict(list)
        for e in enrollments:
            enrollments_by_course[e.course_id].append(e)
            enrollments_by_user[e.user_id].append(e)

        total_lessons = 0
        course_stats = []
        for course in courses:
            lesson_ids = await self.progress_service.course_lesson_ids(course.id)
            total_lessons += len(lesson_ids)
            course_enrollments = enrollments_by_course[course.id]
            count = len(course_enrollments)
            completed = sum(1 for e in course_enrollments if e.is_completed)
            avg_progress = (
                round(
                    sum(
                        calculate_progress(
                            lesson_ids, completed_by_user[e.user_id]
                        ).percentage
                        for e in course_enrollments
                    )
                    / count
                )
                if count
                else 0
            )
            course_stats.append(
                CourseStats(
                    course_id=course.id,
                    course_title=course.title,
                    enrollments_count=count,
                    completion_rate=round(100 * completed / count) if count else 0,
                    avg_progress=avg_progress,
                )
            )

        user_progress = []
        for user in users:
            if user.role != UserRole.STUDENT.value:
                continue
            user_enrollments = enrollments_by_user[user.id]
            enrolled = len(user_enrollments)
            completed = sum(1 for e in user_enrollments if e.is_completed)
            user_progress.append(
                UserProgressStats(
                    user_id=user.id,
                    user_name=user.full_name or user.email,
                    enrolled_courses=enrolled,
                    completed_courses=completed,
                    total_study_hours=int(
                        study_hours([minutes_by_user[user.id]], digits=None)
                    ),
                    progress_percentage=(
                        round(100 * completed / enrolled) if enrolled else 0
                    ),
                )
            )

        active_since = now - timedelta(days=self.settings.metrics_active_user_days)
        active_users = {
            p.user_id for p in records if ensure_utc_aware(p.completed_at) >= active_since
        }

        names = {u.id: u.full_name or u.email for u in users}
        titles = {c.id: c.title for c in courses}
        latest = sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

        return AdminMetricsResponse(
            total_users=len(users),
            total_courses=len(courses),
            published_courses=sum(1 for c in courses if c.is_published),
            total_enrollments=len(enrollments),
            completed_enrollments=sum(1 for e in enrollments if e.is_completed),
            total_lessons=total_lessons,
            total_study_hours=int(
                study_hours([sum(minutes_by_user.values())], digits=None)
            ),
            active_users=len(active_users),
            recent_enrollments=[
                RecentEnrollment(
                    user_id=e.user_id,
                    user_name=names.get(e.user_id, UNKNOWN),
                    course_id=e.course_id,
                    course_title=titles.get(e.course_id, UNKNOWN),
                    enrolled_at=e.enrolled_at,
                )
                for e in latest[:RECENT_ENROLLMENTS_LIMIT]
            ],
            enrollments_by_day=[
                EnrollmentsByDay(date=day, count=count)
                for day, count in enrollments_by_day(
                    [e.enrolled_at for e in enrollments], days=7, today=now.date()
                )
            ],
            course_stats=course_stats,
            user_progress=user_progress,
        )
