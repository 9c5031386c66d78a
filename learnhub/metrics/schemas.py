"""Pydantic schemas for dashboard metrics."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Activity, ActivityType


# ==============================================================================
# Student Dashboard
# ==============================================================================


class MonthlyHours(BaseModel):
    month: str = Field(description="Calendar month, YYYY-MM")
    hours: float


class ActivityResponse(BaseModel):
    id: UUID
    type: ActivityType
    title: str
    description: str
    date: datetime

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            type=activity.type,
            title=activity.title,
            description=activity.description,
            date=activity.date,
        )


class StudentMetricsResponse(BaseModel):
    """Personal dashboard, recomputed on every request."""

    enrolled_courses: int = 0
    completed_courses: int = 0
    certificates_earned: int = 0
    total_lessons_completed: int = 0
    total_study_hours: float = 0.0
    total_study_time: str = Field("0min", description="e.g. 1h 30min")
    current_streak: int = Field(0, description="Consecutive days with completions")
    weekly_goal_hours: float = 0.0
    weekly_studied_hours: float = 0.0
    monthly_progress: list[MonthlyHours] = []
    recent_activity: list[ActivityResponse] = []


# ==============================================================================
# Admin Dashboard
# ==============================================================================


class EnrollmentsByDay(BaseModel):
    date: str = Field(description="YYYY-MM-DD")
    count: int


class RecentEnrollment(BaseModel):
    user_id: UUID
    user_name: str
    course_id: UUID
    course_title: str
    enrolled_at: datetime


class CourseStats(BaseModel):
    course_id: UUID
    course_title: str
    enrollments_count: int
    completion_rate: int = Field(ge=0, le=100)
    avg_progress: int = Field(ge=0, le=100)


class UserProgressStats(BaseModel):
    user_id: UUID
    user_name: str
    enrolled_courses: int
    completed_courses: int
    total_study_hours: int
    progress_percentage: int = Field(ge=0, le=100)


class AdminMetricsResponse(BaseModel):
    """Platform dashboard, recomputed on every request."""

    total_users: int = 0
    total_courses: int = 0
    published_courses: int = 0
    total_enrollments: int = 0
    completed_enrollments: int = 0
    total_lessons: int = 0
    total_study_hours: int = 0
    active_users: int = 0
    recent_enrollments: list[RecentEnrollment] = []
    enrollments_by_day: list[EnrollmentsByDay] = []
    course_stats: list[CourseStats] = []
    user_progress: list[UserProgressStats] = []
