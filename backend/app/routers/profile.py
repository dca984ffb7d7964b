"""Profile routes: profile, stats, achievements, per-course progress."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.errors import NotFoundError
from app.dependencies import client_ip, get_db, parse_uuid
from app.models.user import User
from app.routers.courses import course_progress_with_course
from app.schemas.course import CourseSummary
from app.schemas.profile import (
    Achievement,
    AssignmentRef,
    CourseDetailedProgress,
    CourseWithProgress,
    LessonProgressWithLesson,
    LessonRef,
    ProfileRead,
    SubmissionWithAssignment,
    UserStats,
)
from app.schemas.progress import CourseProgressRead, LessonProgressRead, UserAssignmentRead
from app.schemas.user import ProfileUpdate, UserRead
from app.services import profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


def _course_with_progress(entry: dict) -> dict:
    return {
        "progress": CourseProgressRead.model_validate(entry["progress"]),
        "course": CourseSummary.model_validate(entry["course"]),
        "lesson_progress": [
            LessonProgressWithLesson(
                **LessonProgressRead.model_validate(lp).model_dump(),
                lesson=LessonRef.model_validate(lesson),
            )
            for lp, lesson in entry["lesson_progress"]
        ],
        "completed_lessons": entry["completed_lessons"],
        "total_lessons": entry["total_lessons"],
    }


@router.get("", response_model=ProfileRead)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = await profile_service.get_user_profile(db, current_user.id)
    user = profile["user"]
    return ProfileRead(
        id=user.id,
        email=user.email,
        phone=user.phone,
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
        course_progress=[
            course_progress_with_course(cp, course) for cp, course in profile["course_progress"]
        ],
        stats=UserStats(**profile["stats"]),
    )


@router.put("", response_model=UserRead)
async def update_profile(
    body: ProfileUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await profile_service.update_user_profile(
        db, current_user.id, phone=body.phone, ip_address=client_ip(request)
    )
    return UserRead.model_validate(user)


@router.get("/stats", response_model=UserStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UserStats(**await profile_service.get_user_stats(db, current_user.id))


@router.get("/courses", response_model=list[CourseWithProgress])
async def get_courses(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entries = await profile_service.get_user_courses_with_progress(db, current_user.id)
    return [CourseWithProgress(**_course_with_progress(e)) for e in entries]


@router.get("/courses/{course_id}", response_model=CourseDetailedProgress)
async def get_course_progress(
    course_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Lesson progress and submissions for one started course."""
    cid = parse_uuid(course_id, "course_id")
    entry = await profile_service.get_user_course_detailed_progress(db, current_user.id, cid)
    if entry is None:
        raise NotFoundError("Progress", cid)
    return CourseDetailedProgress(
        **_course_with_progress(entry),
        assignments=[
            SubmissionWithAssignment(
                **UserAssignmentRead.model_validate(ua).model_dump(),
                assignment=AssignmentRef.model_validate(assignment),
            )
            for ua, assignment in entry["assignments"]
        ],
    )


@router.get("/achievements", response_model=list[Achievement])
async def get_achievements(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    achievements = await profile_service.get_user_achievements(db, current_user.id)
    return [Achievement(**a) for a in achievements]
