"""Course routes: catalogue, lesson details, progress updates, assignment submission."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.dependencies import client_ip, get_db, parse_uuid
from app.models.user import User
from app.schemas.course import (
    CourseDetail,
    CourseRead,
    CourseSummary,
    LessonDetail,
    LessonRead,
)
from app.schemas.profile import CourseProgressWithCourse
from app.schemas.progress import (
    AssignmentSubmit,
    CourseProgressRead,
    LessonProgressRead,
    LessonProgressUpdate,
    UserAssignmentRead,
)
from app.services import course_service, progress_service

router = APIRouter(prefix="/courses", tags=["courses"])


def course_progress_with_course(course_progress, course) -> CourseProgressWithCourse:
    return CourseProgressWithCourse(
        **CourseProgressRead.model_validate(course_progress).model_dump(),
        course=CourseSummary.model_validate(course),
    )


@router.get("", response_model=list[CourseRead])
async def list_courses(db: AsyncSession = Depends(get_db)):
    """Active courses with their active lessons. Public."""
    courses = await course_service.get_courses(db)
    return [CourseRead.model_validate(c) for c in courses]


@router.get("/my-progress", response_model=list[CourseProgressWithCourse])
async def my_progress(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await progress_service.get_user_courses_progress(db, user_id=current_user.id)
    return [course_progress_with_course(cp, course) for cp, course in rows]


@router.get("/{course_id}", response_model=CourseDetail)
async def get_course(
    course_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cid = parse_uuid(course_id, "course_id")
    course, user_progress = await course_service.get_course(
        db, course_id=cid, user_id=current_user.id
    )
    return CourseDetail(
        **CourseSummary.model_validate(course).model_dump(),
        order=course.order,
        is_active=course.is_active,
        lessons=[LessonRead.model_validate(lesson) for lesson in course.lessons],
        user_progress=(
            CourseProgressRead.model_validate(user_progress) if user_progress else None
        ),
    )


@router.get("/{course_id}/my-progress", response_model=CourseProgressWithCourse)
async def my_course_progress(
    course_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cid = parse_uuid(course_id, "course_id")
    course_progress, course = await progress_service.get_user_course_progress(
        db, user_id=current_user.id, course_id=cid
    )
    return course_progress_with_course(course_progress, course)


@router.get("/{course_id}/lessons/{lesson_id}", response_model=LessonDetail)
async def get_lesson(
    course_id: str,
    lesson_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    parse_uuid(course_id, "course_id")
    lid = parse_uuid(lesson_id, "lesson_id")
    found = await course_service.get_lesson(db, lesson_id=lid, user_id=current_user.id)
    lesson = found["lesson"]
    return LessonDetail(
        **LessonRead.model_validate(lesson).model_dump(),
        course=CourseSummary.model_validate(lesson.course),
        user_progress=(
            LessonProgressRead.model_validate(found["user_progress"])
            if found["user_progress"] else None
        ),
        user_assignment=(
            UserAssignmentRead.model_validate(found["user_assignment"])
            if found["user_assignment"] else None
        ),
    )


@router.put("/{course_id}/lessons/{lesson_id}/progress", response_model=LessonProgressRead)
async def update_lesson_progress(
    course_id: str,
    lesson_id: str,
    body: LessonProgressUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Set the caller's completion percent for a lesson (0-100)."""
    parse_uuid(course_id, "course_id")
    lid = parse_uuid(lesson_id, "lesson_id")
    progress = await progress_service.update_lesson_progress(
        db,
        user_id=current_user.id,
        lesson_id=lid,
        progress_percent=body.progress_percent,
        ip_address=client_ip(request),
    )
    return LessonProgressRead.model_validate(progress)


@router.post("/assignments/{assignment_id}/submit", response_model=UserAssignmentRead)
async def submit_assignment(
    assignment_id: str,
    body: AssignmentSubmit,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Submit answers and score; completes the assignment's lesson."""
    aid = parse_uuid(assignment_id, "assignment_id")
    submission = await progress_service.submit_assignment(
        db,
        user_id=current_user.id,
        assignment_id=aid,
        answers=body.answers,
        score=body.score,
        ip_address=client_ip(request),
    )
    return UserAssignmentRead.model_validate(submission)
