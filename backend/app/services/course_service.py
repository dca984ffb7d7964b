"""Course catalogue reads for learners.

Only active courses and active lessons are visible here; the admin service
sees everything.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, with_loader_criteria

from app.core.errors import NotFoundError
from app.models.course import Course, Lesson
from app.models.progress import UserAssignment, UserCourseProgress
from app.services import progress_service


def _active_lessons():
    return with_loader_criteria(Lesson, Lesson.is_active == True)  # noqa: E712


async def get_courses(db: AsyncSession) -> list[Course]:
    """Active courses ordered by ``order``, each with its active lessons."""
    result = await db.execute(
        select(Course)
        .where(Course.is_active == True)  # noqa: E712
        .order_by(Course.order.asc())
        .options(selectinload(Course.lessons), _active_lessons())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_course(
    db: AsyncSession,
    *,
    course_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
) -> tuple[Course, UserCourseProgress | None]:
    """An active course with lessons, content and assignments, plus the user's progress."""
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id, Course.is_active == True)  # noqa: E712
        .options(
            selectinload(Course.lessons).selectinload(Lesson.content),
            selectinload(Course.lessons).selectinload(Lesson.assignment),
            _active_lessons(),
        )
        .execution_options(populate_existing=True)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFoundError("Course", course_id)

    user_progress = None
    if user_id is not None:
        result = await db.execute(
            select(UserCourseProgress).where(
                UserCourseProgress.user_id == user_id,
                UserCourseProgress.course_id == course_id,
            )
        )
        user_progress = result.scalar_one_or_none()
    return course, user_progress


async def get_lesson(
    db: AsyncSession,
    *,
    lesson_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
) -> dict:
    """An active lesson with its content and assignment.

    With ``user_id``, also the user's lesson progress and assignment submission.
    """
    result = await db.execute(
        select(Lesson)
        .where(Lesson.id == lesson_id, Lesson.is_active == True)  # noqa: E712
        .options(
            selectinload(Lesson.course),
            selectinload(Lesson.content),
            selectinload(Lesson.assignment),
        )
        .execution_options(populate_existing=True)
    )
    lesson = result.scalar_one_or_none()
    if lesson is None:
        raise NotFoundError("Lesson", lesson_id)

    user_progress = None
    user_assignment = None
    if user_id is not None:
        user_progress = await progress_service.get_progress_for_lesson(
            db, user_id=user_id, lesson_id=lesson_id
        )
        if lesson.assignment is not None:
            result = await db.execute(
                select(UserAssignment).where(
                    UserAssignment.user_id == user_id,
                    UserAssignment.assignment_id == lesson.assignment.id,
                )
            )
            user_assignment = result.scalar_one_or_none()

    return {
        "lesson": lesson,
        "user_progress": user_progress,
        "user_assignment": user_assignment,
    }
