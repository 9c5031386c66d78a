"""FastAPI dependencies for the course catalog services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.courses.service import (
    CategoryService,
    CourseService,
    LessonService,
    ModuleService,
)


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course catalog not available",
        )
    return service


async def get_category_service(request: Request) -> CategoryService:
    return _from_state(request, "category_service")


async def get_course_service(request: Request) -> CourseService:
    return _from_state(request, "course_service")


async def get_module_service(request: Request) -> ModuleService:
    return _from_state(request, "module_service")


async def get_lesson_service(request: Request) -> LessonService:
    return _from_state(request, "lesson_service")


CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
ModuleServiceDep = Annotated[ModuleService, Depends(get_module_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]
