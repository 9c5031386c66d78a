"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.access.router import admin_router as access_admin_router
from learnhub.access.router import router as access_router
from learnhub.access.service import AccessService
from learnhub.config.settings import Settings, get_settings
from learnhub.core.context import RequestContext, get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.database.errors import CASSANDRA_ERRORS
from learnhub.core.exceptions import LearnHubError
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.redis import init_redis, shutdown_redis
from learnhub.courses.router import admin_router as courses_admin_router
from learnhub.courses.router import router as courses_router
from learnhub.courses.service import (
    CategoryService,
    CourseService,
    LessonService,
    ModuleService,
)
from learnhub.health.router import router as health_router
from learnhub.metrics.router import admin_router as metrics_admin_router
from learnhub.metrics.router import router as metrics_router
from learnhub.metrics.service import AdminMetricsService, StudentMetricsService
from learnhub.notifications.admin_router import router as admin_notifications_router
from learnhub.notifications.router import router as notifications_router
from learnhub.notifications.service import NotificationService
from learnhub.progress.router import enrollments_router
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import EnrollmentService, ProgressService
from learnhub.storage.router import router as storage_router
from learnhub.users.router import admin_router as users_admin_router
from learnhub.users.router import auth_router, profile_router
from learnhub.users.service import UserService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(app: FastAPI, session, settings: Settings, redis_client=None) -> None:
    """Build every service on one Cassandra session and expose it on app.state."""
    keyspace = settings.cassandra_keyspace
    state = app.state

    state.user_service = UserService(session=session, keyspace=keyspace)

    state.category_service = CategoryService(session=session, keyspace=keyspace)
    state.lesson_service = LessonService(session=session, keyspace=keyspace)
    state.module_service = ModuleService(
        session=session, keyspace=keyspace, lesson_service=state.lesson_service
    )
    state.course_service = CourseService(
        session=session,
        keyspace=keyspace,
        category_service=state.category_service,
        module_service=state.module_service,
    )
    logger.info("course_services_initialized")

    state.notification_service = NotificationService(
        session=session,
        keyspace=keyspace,
        user_service=state.user_service,
        redis=redis_client,
    )
    logger.info(
        "notification_service_initialized", redis_enabled=redis_client is not None
    )

    state.enrollment_service = EnrollmentService(session=session, keyspace=keyspace)
    state.access_service = AccessService(
        session=session,
        keyspace=keyspace,
        course_service=state.course_service,
        enrollment_service=state.enrollment_service,
        notification_service=state.notification_service,
    )
    state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        course_service=state.course_service,
        module_service=state.module_service,
        lesson_service=state.lesson_service,
        enrollment_service=state.enrollment_service,
        access_service=state.access_service,
        require_full_completion=settings.progress_require_full_completion,
    )
    logger.info("progress_services_initialized")

    state.student_metrics_service = StudentMetricsService(
        settings=settings,
        course_service=state.course_service,
        lesson_service=state.lesson_service,
        enrollment_service=state.enrollment_service,
        progress_service=state.progress_service,
    )
    state.admin_metrics_service = AdminMetricsService(
        settings=settings,
        user_service=state.user_service,
        course_service=state.course_service,
        lesson_service=state.lesson_service,
        enrollment_service=state.enrollment_service,
        progress_service=state.progress_service,
    )
    logger.info("metrics_services_initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is non-critical: notifications are still stored without it
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except (RedisError, OSError) as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - real-time notifications disabled",
        )

    try:
        session = await init_async_cassandra()
        init_services(app, session, settings, redis_client)

        if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
            with RequestContext(request_id="startup"):
                admin = await app.state.user_service.ensure_admin(
                    settings.bootstrap_admin_email, settings.bootstrap_admin_password
                )
                if admin:
                    logger.info("bootstrap_admin_created", user_id=str(admin.id))
    except (ConnectionError, LearnHubError, *CASSANDRA_ERRORS) as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering stack traces; the handlers
    # below log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub learning management API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler. Details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(users_admin_router)
    app.include_router(courses_router)
    app.include_router(courses_admin_router)
    app.include_router(access_router)
    app.include_router(access_admin_router)
    app.include_router(progress_router)
    app.include_router(enrollments_router)
    app.include_router(metrics_router)
    app.include_router(metrics_admin_router)
    app.include_router(notifications_router)
    app.include_router(admin_notifications_router)
    app.include_router(storage_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
