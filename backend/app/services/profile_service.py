"""Profile service: user profile, statistics, achievements.

Statistics are read-only aggregates over the progress tables. Achievements
are derived from the statistics on every read; nothing about them is stored.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.models.course import Assignment, Course, Lesson
from app.models.progress import UserAssignment, UserCourseProgress, UserLessonProgress
from app.models.user import User
from app.services import audit_service, progress_service
from app.services.progress_service import COMPLETE, round_percent

# (id, title, description, rule), evaluated in this order.
ACHIEVEMENT_RULES = [
    (
        "first_course",
        "First step",
        "Started a first course",
        lambda s: s["started_courses"] >= 1,
    ),
    (
        "first_completed",
        "First success",
        "Completed a first course",
        lambda s: s["completed_courses"] >= 1,
    ),
    (
        "five_courses",
        "Seasoned student",
        "Completed 5 courses",
        lambda s: s["completed_courses"] >= 5,
    ),
    (
        "ten_courses",
        "Master of learning",
        "Completed 10 courses",
        lambda s: s["completed_courses"] >= 10,
    ),
    (
        "all_assignments",
        "Every assignment done",
        "Completed all available assignments",
        lambda s: s["completed_assignments"] > 0
        and s["completed_assignments"] == s["total_assignments"],
    ),
    (
        "perfect_progress",
        "Perfect progress",
        "Reached 100% progress in every started course",
        lambda s: s["average_progress"] == COMPLETE and s["started_courses"] > 0,
    ),
]


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def get_user_stats(db: AsyncSession, user_id: uuid.UUID) -> dict:
    """Aggregate course, lesson and assignment statistics for a user.

    - average_progress covers started courses only (0 when none)
    - total_lessons counts active lessons of active courses
    - total_assignments counts active assignments whose lesson and course are active
    - max_score sums max_score over the assignments the user submitted
    """
    total_courses = await db.scalar(
        select(func.count(Course.id)).where(Course.is_active == True)  # noqa: E712
    )

    result = await db.execute(
        select(UserCourseProgress.progress_percent).where(UserCourseProgress.user_id == user_id)
    )
    course_percents = list(result.scalars().all())
    started_courses = len(course_percents)
    completed_courses = sum(1 for p in course_percents if p == COMPLETE)
    average_progress = round_percent(sum(course_percents), started_courses)

    completed_lessons = await db.scalar(
        select(func.count(UserLessonProgress.id)).where(
            UserLessonProgress.user_id == user_id,
            UserLessonProgress.progress_percent == COMPLETE,
        )
    )
    total_lessons = await db.scalar(
        select(func.count(Lesson.id))
        .join(Course, Course.id == Lesson.course_id)
        .where(Lesson.is_active == True, Course.is_active == True)  # noqa: E712
    )

    completed_assignments = await db.scalar(
        select(func.count(UserAssignment.id)).where(
            UserAssignment.user_id == user_id,
            UserAssignment.completed_at.is_not(None),
        )
    )
    total_assignments = await db.scalar(
        select(func.count(Assignment.id))
        .join(Lesson, Lesson.id == Assignment.lesson_id)
        .join(Course, Course.id == Lesson.course_id)
        .where(
            Assignment.is_active == True,  # noqa: E712
            Lesson.is_active == True,  # noqa: E712
            Course.is_active == True,  # noqa: E712
        )
    )

    result = await db.execute(
        select(
            func.coalesce(func.sum(UserAssignment.score), 0),
            func.coalesce(func.sum(Assignment.max_score), 0),
        )
        .join(Assignment, Assignment.id == UserAssignment.assignment_id)
        .where(UserAssignment.user_id == user_id)
    )
    total_score, max_score = result.one()

    return {
        "total_courses": total_courses or 0,
        "started_courses": started_courses,
        "completed_courses": completed_courses,
        "average_progress": average_progress,
        "completed_lessons": completed_lessons or 0,
        "total_lessons": total_lessons or 0,
        "completed_assignments": completed_assignments or 0,
        "total_assignments": total_assignments or 0,
        "total_score": int(total_score),
        "max_score": int(max_score),
        "score_percentage": round_percent(100 * int(total_score), int(max_score)),
    }


def evaluate_achievements(stats: dict) -> list[dict]:
    """Achievements whose rule holds for ``stats``, in rule order."""
    return [
        {"id": code, "title": title, "description": description, "unlocked": True}
        for code, title, description, rule in ACHIEVEMENT_RULES
        if rule(stats)
    ]


async def get_user_achievements(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    stats = await get_user_stats(db, user_id)
    return evaluate_achievements(stats)


async def get_user_profile(db: AsyncSession, user_id: uuid.UUID) -> dict:
    """User fields plus course progress and stats."""
    user = await get_user(db, user_id)
    course_progress = await progress_service.get_user_courses_progress(db, user_id=user_id)
    stats = await get_user_stats(db, user_id)
    return {
        "user": user,
        "course_progress": course_progress,
        "stats": stats,
    }


async def update_user_profile(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    phone: str | None = None,
    ip_address: str | None = None,
) -> User:
    """Update profile fields. Raises ConflictError if the phone belongs to someone else."""
    user = await get_user(db, user_id)

    if phone is not None and phone != user.phone:
        existing = await db.execute(select(User.id).where(User.phone == phone))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Phone number already in use", field="phone")

    if phone is not None:
        user.phone = phone
    await db.flush()

    await audit_service.record(
        db,
        "profile.updated",
        user_id=user.id,
        entity=user,
        detail={"fields": ["phone"] if phone is not None else []},
        ip_address=ip_address,
    )
    return user


async def _lesson_progress_for_course(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> list[tuple[UserLessonProgress, Lesson]]:
    result = await db.execute(
        select(UserLessonProgress, Lesson)
        .join(Lesson, Lesson.id == UserLessonProgress.lesson_id)
        .where(
            UserLessonProgress.user_id == user_id,
            Lesson.course_id == course_id,
            Lesson.is_active == True,  # noqa: E712
        )
        .order_by(Lesson.order.asc())
    )
    return [(lp, lesson) for lp, lesson in result.all()]


async def _active_lesson_count(db: AsyncSession, course_id: uuid.UUID) -> int:
    count = await db.scalar(
        select(func.count(Lesson.id)).where(
            Lesson.course_id == course_id,
            Lesson.is_active == True,  # noqa: E712
        )
    )
    return count or 0


async def get_user_courses_with_progress(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    """Every course the user started, with per-lesson progress and lesson counts."""
    courses = []
    for course_progress, course in await progress_service.get_user_courses_progress(
        db, user_id=user_id
    ):
        lesson_progress = await _lesson_progress_for_course(
            db, user_id=user_id, course_id=course.id
        )
        courses.append({
            "progress": course_progress,
            "course": course,
            "lesson_progress": lesson_progress,
            "completed_lessons": sum(
                1 for lp, _ in lesson_progress if lp.progress_percent == COMPLETE
            ),
            "total_lessons": await _active_lesson_count(db, course.id),
        })
    return courses


async def get_user_course_detailed_progress(
    db: AsyncSession,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> dict | None:
    """Lesson progress and submissions for one course; None if not started."""
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
        return None
    course_progress, course = row

    lesson_progress = await _lesson_progress_for_course(
        db, user_id=user_id, course_id=course_id
    )

    result = await db.execute(
        select(UserAssignment, Assignment)
        .join(Assignment, Assignment.id == UserAssignment.assignment_id)
        .join(Lesson, Lesson.id == Assignment.lesson_id)
        .where(
            UserAssignment.user_id == user_id,
            Lesson.course_id == course_id,
        )
    )
    assignments = [(ua, assignment) for ua, assignment in result.all()]

    return {
        "progress": course_progress,
        "course": course,
        "lesson_progress": lesson_progress,
        "assignments": assignments,
        "completed_lessons": sum(
            1 for lp, _ in lesson_progress if lp.progress_percent == COMPLETE
        ),
        "total_lessons": await _active_lesson_count(db, course_id),
    }
