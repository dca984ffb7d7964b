"""Admin routes: course, lesson, content and assignment management.

Requires an authenticated user. Inactive entities are visible here.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.dependencies import get_db, parse_uuid
from app.schemas.course import (
    AdminCourseRead,
    AssignmentRead,
    AssignmentUpdate,
    AssignmentWrite,
    CourseCreate,
    CourseRead,
    CourseUpdate,
    LessonContentRead,
    LessonContentUpdate,
    LessonContentWrite,
    LessonCreate,
    LessonRead,
    LessonUpdate,
)
from app.schemas.user import SuccessResponse
from app.services import course_admin_service

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(get_current_user)],
)


# --- Courses ---

@router.get("/courses", response_model=list[CourseRead])
async def list_courses(db: AsyncSession = Depends(get_db)):
    courses = await course_admin_service.list_courses(db)
    return [CourseRead.model_validate(c) for c in courses]


@router.get("/courses/{course_id}", response_model=AdminCourseRead)
async def get_course(course_id: str, db: AsyncSession = Depends(get_db)):
    course = await course_admin_service.get_course_full(db, parse_uuid(course_id, "course_id"))
    return AdminCourseRead.model_validate(course)


@router.post("/courses", response_model=CourseRead, status_code=201)
async def create_course(body: CourseCreate, db: AsyncSession = Depends(get_db)):
    course = await course_admin_service.create_course(db, **body.model_dump())
    return CourseRead(
        id=course.id,
        title=course.title,
        description=course.description,
        image_url=course.image_url,
        order=course.order,
        is_active=course.is_active,
    )


@router.put("/courses/{course_id}", response_model=AdminCourseRead)
async def update_course(course_id: str, body: CourseUpdate, db: AsyncSession = Depends(get_db)):
    cid = parse_uuid(course_id, "course_id")
    await course_admin_service.update_course(db, cid, body.model_dump(exclude_unset=True))
    course = await course_admin_service.get_course_full(db, cid)
    return AdminCourseRead.model_validate(course)


@router.delete("/courses/{course_id}", response_model=SuccessResponse)
async def delete_course(course_id: str, db: AsyncSession = Depends(get_db)):
    await course_admin_service.delete_course(db, parse_uuid(course_id, "course_id"))
    return SuccessResponse()


# --- Lessons ---

def _lesson_read(lesson) -> LessonRead:
    # content and assignment are not loaded on a freshly written lesson
    return LessonRead(
        id=lesson.id,
        course_id=lesson.course_id,
        title=lesson.title,
        description=lesson.description,
        type=lesson.type,
        order=lesson.order,
        is_active=lesson.is_active,
    )


@router.post("/courses/{course_id}/lessons", response_model=LessonRead, status_code=201)
async def create_lesson(course_id: str, body: LessonCreate, db: AsyncSession = Depends(get_db)):
    lesson = await course_admin_service.create_lesson(
        db, parse_uuid(course_id, "course_id"), **body.model_dump()
    )
    return _lesson_read(lesson)


@router.put("/lessons/{lesson_id}", response_model=LessonRead)
async def update_lesson(lesson_id: str, body: LessonUpdate, db: AsyncSession = Depends(get_db)):
    lesson = await course_admin_service.update_lesson(
        db, parse_uuid(lesson_id, "lesson_id"), body.model_dump(exclude_unset=True)
    )
    return _lesson_read(lesson)


@router.delete("/lessons/{lesson_id}", response_model=SuccessResponse)
async def delete_lesson(lesson_id: str, db: AsyncSession = Depends(get_db)):
    await course_admin_service.delete_lesson(db, parse_uuid(lesson_id, "lesson_id"))
    return SuccessResponse()


# --- Lesson content ---

@router.put("/lessons/{lesson_id}/content", response_model=LessonContentRead)
async def put_lesson_content(
    lesson_id: str, body: LessonContentWrite, db: AsyncSession = Depends(get_db)
):
    """Create or replace the lesson's content."""
    content = await course_admin_service.upsert_lesson_content(
        db, parse_uuid(lesson_id, "lesson_id"), **body.model_dump()
    )
    return LessonContentRead.model_validate(content)


@router.patch("/lessons/{lesson_id}/content", response_model=LessonContentRead)
async def patch_lesson_content(
    lesson_id: str, body: LessonContentUpdate, db: AsyncSession = Depends(get_db)
):
    content = await course_admin_service.update_lesson_content(
        db, parse_uuid(lesson_id, "lesson_id"), body.model_dump(exclude_unset=True)
    )
    return LessonContentRead.model_validate(content)


@router.delete("/lessons/{lesson_id}/content", response_model=SuccessResponse)
async def delete_lesson_content(lesson_id: str, db: AsyncSession = Depends(get_db)):
    await course_admin_service.delete_lesson_content(db, parse_uuid(lesson_id, "lesson_id"))
    return SuccessResponse()


# --- Assignments ---

@router.put("/lessons/{lesson_id}/assignment", response_model=AssignmentRead)
async def put_assignment(lesson_id: str, body: AssignmentWrite, db: AsyncSession = Depends(get_db)):
    """Create or replace the lesson's assignment."""
    assignment = await course_admin_service.upsert_assignment(
        db, parse_uuid(lesson_id, "lesson_id"), **body.model_dump()
    )
    return AssignmentRead.model_validate(assignment)


@router.patch("/assignments/{assignment_id}", response_model=AssignmentRead)
async def patch_assignment(
    assignment_id: str, body: AssignmentUpdate, db: AsyncSession = Depends(get_db)
):
    assignment = await course_admin_service.update_assignment(
        db, parse_uuid(assignment_id, "assignment_id"), body.model_dump(exclude_unset=True)
    )
    return AssignmentRead.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", response_model=SuccessResponse)
async def delete_assignment(assignment_id: str, db: AsyncSession = Depends(get_db)):
    await course_admin_service.delete_assignment(db, parse_uuid(assignment_id, "assignment_id"))
    return SuccessResponse()
