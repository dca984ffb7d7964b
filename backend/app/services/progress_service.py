"""Progress service: lesson progress, course rollup, assignment submission.

Course progress is the mean of the user's lesson progress over the course's
active lessons, where lessons without a progress row count as 0.

Rows are upserted on their (user, target) unique pair with
INSERT ... ON CONFLICT, so concurrent writers never create duplicates. The
course rollup locks the (user, course) row before reading lesson progress.

completed_at is set whenever a row reaches 100 and is left as-is when it
drops below 100 again.
All writes audit-logged.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DomainValidationError, NotFoundError
from app.models.base import generate_uuid
from app.models.course import Assignment, Course, Lesson
from app.models.progress import UserAssignment, UserCourseProgress, UserLessonProgress
from app.services import audit_service

logger = logging.getLogger("coursetrack.progress")

COMPLETE = 100


def round_percent(numerator: int | float, denominator: int | float) -> int:
    """numerator / denominator rounded half-up to an int; 0 when denominator is 0."""
    if not denominator:
        return 0
    value = Decimal(numerator) / Decimal(denominator)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _insert_for(db: AsyncSession):
    """Dialect insert construct that supports ON CONFLICT."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


async def _upsert(
    db: AsyncSession,
    model: type,
    *,
    keys: dict[str, Any],
    values: dict[str, Any],
    update: dict[str, Any],
):
    """Insert ``keys | values`` or, on a key conflict, apply ``update``.

    Returns the row as a freshly loaded ORM instance.
    """
    now = datetime.now(timezone.utc)
    stmt = _insert_for(db)(model).values(id=generate_uuid(), **keys, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(keys),
        set_={**update, "updated_at": now},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(model)
        .filter_by(**keys)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# --- Lessons ---

async def update_lesson_progress(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    lesson_id: uuid.UUID,
    progress_percent: int,
    ip_address: str | None = None,
) -> UserLessonProgress:
    """Store the user's percent for a lesson and recompute its course.

    Raises DomainValidationError for percent outside [0, 100] and
    NotFoundError for an unknown lesson; nothing is written in either case.
    """
    if progress_percent < 0 or progress_percent > COMPLETE:
        raise DomainValidationError(
            "Progress percent must be between 0 and 100",
            field="progress_percent",
            value=progress_percent,
        )

    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson", lesson_id)

    completed = progress_percent == COMPLETE
    now = datetime.now(timezone.utc)
    update: dict[str, Any] = {"progress_percent": progress_percent}
    if completed:
        update["completed_at"] = now

    progress = await _upsert(
        db,
        UserLessonProgress,
        keys={"user_id": user_id, "lesson_id": lesson_id},
        values={
            "progress_percent": progress_percent,
            "completed_at": now if completed else None,
        },
        update=update,
    )

    await audit_service.record(
        db,
        "lesson.progress_updated",
        user_id=user_id,
        entity=progress,
        detail={
            "lesson_id": str(lesson_id),
            "progress_percent": progress_percent,
            "lesson_completed": completed,
        },
        ip_address=ip_address,
    )

    await recompute_course_progress(db, user_id=user_id, course_id=lesson.course_id)
    return progress


async def get_progress_for_lesson(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    lesson_id: uuid.UUID,
) -> UserLessonProgress | None:
    result = await db.execute(
        select(UserLessonProgress).where(
            UserLessonProgress.user_id == user_id,
            UserLessonProgress.lesson_id == lesson_id,
        )
    )
    return result.scalar_one_or_none()


# --- Courses ---

async def _lock_course_progress(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> UserCourseProgress:
    """Ensure the (user, course) row exists and hold a row lock on it."""
    stmt = (
        _insert_for(db)(UserCourseProgress)
        .values(id=generate_uuid(), user_id=user_id, course_id=course_id, progress_percent=0)
        .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
    )
    await db.execute(stmt)

    result = await db.execute(
        select(UserCourseProgress)
        .where(
            UserCourseProgress.user_id == user_id,
            UserCourseProgress.course_id == course_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def recompute_course_progress(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> UserCourseProgress | None:
    """Roll lesson progress up into the user's course progress.

    No-op (returns None) for a course without active lessons.
    """
    course = await db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course", course_id)

    result = await db.execute(
        select(Lesson.id).where(
            Lesson.course_id == course_id,
            Lesson.is_active == True,  # noqa: E712
        )
    )
    lesson_ids = list(result.scalars().all())
    if not lesson_ids:
        return None

    course_progress = await _lock_course_progress(db, user_id=user_id, course_id=course_id)

    total = await db.scalar(
        select(func.coalesce(func.sum(UserLessonProgress.progress_percent), 0)).where(
            UserLessonProgress.user_id == user_id,
            UserLessonProgress.lesson_id.in_(lesson_ids),
        )
    )
    average = round_percent(total, len(lesson_ids))

    course_progress.progress_percent = average
    if average == COMPLETE:
        course_progress.completed_at = datetime.now(timezone.utc)
    await db.flush()

    await audit_service.record(
        db,
        "course.progress_recomputed",
        user_id=user_id,
        entity=course_progress,
        detail={
            "course_id": str(course_id),
            "progress_percent": average,
            "active_lessons": len(lesson_ids),
        },
    )
    logger.debug("course progress user=%s course=%s percent=%d", user_id, course_id, average)
    return course_progress


async def get_user_courses_progress(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
) -> list[tuple[UserCourseProgress, Course]]:
    """All of the user's course progress rows with their course, most recent first."""
    result = await db.execute(
        select(UserCourseProgress, Course)
        .join(Course, Course.id == UserCourseProgress.course_id)
        .where(UserCourseProgress.user_id == user_id)
        .order_by(UserCourseProgress.updated_at.desc())
    )
    return [(cp, course) for cp, course in result.all()]


async def get_user_course_progress(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> tuple[UserCourseProgress, Course]:
    """The user's progress for one course, with the course.

    Raises NotFoundError if the user has no progress for the course.
    """
    result = await db.execute(
        select(UserCourseProgress, Course)
        .join(Course, Course.id == UserCourseProgress.course_id)
        .where(
            UserCourseProgress.user_id == user_id,
            UserCourseProgress.course_id == course_id,
        )
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Progress", course_id)
    return row[0], row[1]


# --- Assignments ---

async def submit_assignment(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    assignment_id: uuid.UUID,
    answers: Any,
    score: int,
    ip_address: str | None = None,
) -> UserAssignment:
    """Store a submission and mark the assignment's lesson 100% complete.

    Resubmitting replaces the previous answers and score.
    """
    assignment = await db.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment", assignment_id)

    if score < 0 or score > assignment.max_score:
        raise DomainValidationError(
            f"Score must be between 0 and {assignment.max_score}",
            field="score",
            value=score,
            max_score=assignment.max_score,
        )

    now = datetime.now(timezone.utc)
    fields = {"answers": answers, "score": score, "completed_at": now}
    submission = await _upsert(
        db,
        UserAssignment,
        keys={"user_id": user_id, "assignment_id": assignment_id},
        values=fields,
        update=fields,
    )

    await audit_service.record(
        db,
        "assignment.submitted",
        user_id=user_id,
        entity=submission,
        detail={
            "assignment_id": str(assignment_id),
            "score": score,
            "max_score": assignment.max_score,
        },
        ip_address=ip_address,
    )

    await update_lesson_progress(
        db,
        user_id=user_id,
        lesson_id=assignment.lesson_id,
        progress_percent=COMPLETE,
        ip_address=ip_address,
    )
    return submission
