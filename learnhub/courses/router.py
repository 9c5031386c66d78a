"""Course catalog API endpoints.

Public (authenticated) routes list published courses and categories.
Admin routes manage categories, courses, modules and lessons.
"""

from pathlib import PurePath
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Query, UploadFile, status

from learnhub.auth.dependencies import AdminSession, CurrentSession
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.courses.dependencies import (
    CategoryServiceDep,
    CourseServiceDep,
    LessonServiceDep,
    ModuleServiceDep,
)
from learnhub.courses.schemas import (
    CategoryResponse,
    CourseListResponse,
    CourseResponse,
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    LessonResponse,
    ModuleResponse,
    ThumbnailResponse,
    UpdateCategoryRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)
from learnhub.courses.service import CourseNotFoundError
from learnhub.storage.dependencies import StorageServiceDep


router = APIRouter(prefix="/v1", tags=["courses"])
admin_router = APIRouter(prefix="/v1/admin", tags=["admin-courses"])


# ==============================================================================
# Catalog (students and admins)
# ==============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    ctx: CurrentSession, service: CategoryServiceDep
) -> list[CategoryResponse]:
    return [CategoryResponse.from_entity(c) for c in await service.list_categories()]


@router.get("/courses", response_model=CourseListResponse)
async def list_published_courses(
    ctx: CurrentSession,
    service: CourseServiceDep,
    category: Annotated[str | None, Query(description="Category slug")] = None,
) -> CourseListResponse:
    """Published courses, newest first."""
    courses = await service.list_courses(published_only=True, category_slug=category)
    categories = await service.categories_for(courses)
    return CourseListResponse(
        items=[
            CourseResponse.from_entity(c, categories.get(c.category_id))
            for c in courses
        ],
        total=len(courses),
    )


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: UUID, ctx: CurrentSession, service: CourseServiceDep
) -> CourseResponse:
    try:
        course = await service.require_course(course_id)
        if not course.is_published and not ctx.is_admin:
            raise CourseNotFoundError
    except LearnHubError as e:
        raise handle_domain_error(e) from e

    categories = await service.categories_for([course])
    return CourseResponse.from_entity(course, categories.get(course.category_id))


# ==============================================================================
# Admin: Categories
# ==============================================================================


@admin_router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: CreateCategoryRequest, ctx: AdminSession, service: CategoryServiceDep
) -> CategoryResponse:
    try:
        category = await service.create_category(ctx, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return CategoryResponse.from_entity(category)


@admin_router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    data: UpdateCategoryRequest,
    ctx: AdminSession,
    service: CategoryServiceDep,
) -> CategoryResponse:
    try:
        category = await service.update_category(ctx, category_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return CategoryResponse.from_entity(category)


@admin_router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID, ctx: AdminSession, service: CategoryServiceDep
) -> None:
    try:
        await service.delete_category(ctx, category_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e


# ==============================================================================
# Admin: Courses
# ==============================================================================


@admin_router.get("/courses", response_model=CourseListResponse)
async def list_all_courses(
    ctx: AdminSession, service: CourseServiceDep
) -> CourseListResponse:
    """Every course, drafts included."""
    courses = await service.list_courses(published_only=False)
    categories = await service.categories_for(courses)
    return CourseListResponse(
        items=[
            CourseResponse.from_entity(c, categories.get(c.category_id))
            for c in courses
        ],
        total=len(courses),
    )


@admin_router.post(
    "/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED
)
async def create_course(
    data: CreateCourseRequest, ctx: AdminSession, service: CourseServiceDep
) -> CourseResponse:
    try:
        course = await service.create_course(ctx, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return CourseResponse.from_entity(course)


@admin_router.patch("/courses/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    ctx: AdminSession,
    service: CourseServiceDep,
) -> CourseResponse:
    try:
        course = await service.update_course(ctx, course_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return CourseResponse.from_entity(course)


@admin_router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: UUID, ctx: AdminSession, service: CourseServiceDep
) -> None:
    """Delete a course together with its modules and lessons."""
    try:
        await service.delete_course(ctx, course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e


@admin_router.post("/courses/{course_id}/thumbnail", response_model=ThumbnailResponse)
async def upload_course_thumbnail(
    course_id: UUID,
    ctx: AdminSession,
    service: CourseServiceDep,
    storage: StorageServiceDep,
    file: Annotated[UploadFile, File(description="Thumbnail image")],
) -> ThumbnailResponse:
    suffix = PurePath(file.filename or "").suffix.lower()
    path = f"{course_id}/{utc_now():%Y%m%d%H%M%S}{suffix}"
    try:
        await service.require_course(course_id)
        url = await storage.upload(
            "course-thumbnails",
            path,
            await file.read(),
            file.content_type or "application/octet-stream",
        )
        await service.set_thumbnail(ctx, course_id, url)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return ThumbnailResponse(thumbnail_url=url)


# ==============================================================================
# Admin: Modules
# ==============================================================================


@admin_router.get("/courses/{course_id}/modules", response_model=list[ModuleResponse])
async def list_modules(
    course_id: UUID, ctx: AdminSession, service: ModuleServiceDep
) -> list[ModuleResponse]:
    return [ModuleResponse.from_entity(m) for m in await service.list_modules(course_id)]


@admin_router.post(
    "/courses/{course_id}/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "order_index already taken"}},
)
async def create_module(
    course_id: UUID,
    data: CreateModuleRequest,
    ctx: AdminSession,
    service: ModuleServiceDep,
) -> ModuleResponse:
    try:
        module = await service.create_module(ctx, course_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_entity(module)


@admin_router.patch("/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: UUID,
    data: UpdateModuleRequest,
    ctx: AdminSession,
    service: ModuleServiceDep,
) -> ModuleResponse:
    try:
        module = await service.update_module(ctx, module_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_entity(module)


@admin_router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    module_id: UUID, ctx: AdminSession, service: ModuleServiceDep
) -> None:
    try:
        await service.delete_module(ctx, module_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e


# ==============================================================================
# Admin: Lessons
# ==============================================================================


@admin_router.get("/modules/{module_id}/lessons", response_model=list[LessonResponse])
async def list_lessons(
    module_id: UUID, ctx: AdminSession, service: LessonServiceDep
) -> list[LessonResponse]:
    return [LessonResponse.from_entity(x) for x in await service.list_lessons(module_id)]


@admin_router.post(
    "/modules/{module_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "order_index already taken"}},
)
async def create_lesson(
    module_id: UUID,
    data: CreateLessonRequest,
    ctx: AdminSession,
    service: LessonServiceDep,
) -> LessonResponse:
    try:
        lesson = await service.create_lesson(ctx, module_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return LessonResponse.from_entity(lesson)


@admin_router.patch("/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: UUID,
    data: UpdateLessonRequest,
    ctx: AdminSession,
    service: LessonServiceDep,
) -> LessonResponse:
    try:
        lesson = await service.update_lesson(ctx, lesson_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return LessonResponse.from_entity(lesson)


@admin_router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: UUID, ctx: AdminSession, service: LessonServiceDep
) -> None:
    try:
        await service.delete_lesson(ctx, lesson_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
