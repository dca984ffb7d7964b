"""Course admin service: content management for courses, lessons, content, assignments.

Unlike course_service, inactive entities are visible and editable here.
Deleting a course or lesson removes everything beneath it, including learner
progress rows.
"""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import NotFoundError
from app.models.course import Assignment, Course, Lesson, LessonContent


async def _require(db: AsyncSession, model: type, entity_id: uuid.UUID, name: str):
    entity = await db.get(model, entity_id)
    if entity is None:
        raise NotFoundError(name, entity_id)
    return entity


def _apply(entity: object, changes: dict[str, Any]) -> None:
    for field, value in changes.items():
        setattr(entity, field, value)


# --- Courses ---

async def list_courses(db: AsyncSession) -> list[Course]:
    """All courses, active or not, ordered by ``order``, with their lessons."""
    result = await db.execute(
        select(Course)
        .order_by(Course.order.asc())
        .options(selectinload(Course.lessons))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_course_full(db: AsyncSession, course_id: uuid.UUID) -> Course:
    """A course with every lesson, their content and assignment."""
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .options(
            selectinload(Course.lessons).selectinload(Lesson.content),
            selectinload(Course.lessons).selectinload(Lesson.assignment),
        )
        .execution_options(populate_existing=True)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFoundError("Course", course_id)
    return course


async def create_course(db: AsyncSession, **fields: Any) -> Course:
    course = Course(**fields)
    db.add(course)
    await db.flush()
    return course


async def update_course(db: AsyncSession, course_id: uuid.UUID, changes: dict[str, Any]) -> Course:
    course = await _require(db, Course, course_id, "Course")
    _apply(course, changes)
    await db.flush()
    return course


async def delete_course(db: AsyncSession, course_id: uuid.UUID) -> None:
    course = await _require(db, Course, course_id, "Course")
    await db.delete(course)
    await db.flush()


# --- Lessons ---

async def create_lesson(db: AsyncSession, course_id: uuid.UUID, **fields: Any) -> Lesson:
    await _require(db, Course, course_id, "Course")
    lesson = Lesson(course_id=course_id, **fields)
    db.add(lesson)
    await db.flush()
    return lesson


async def update_lesson(db: AsyncSession, lesson_id: uuid.UUID, changes: dict[str, Any]) -> Lesson:
    lesson = await _require(db, Lesson, lesson_id, "Lesson")
    _apply(lesson, changes)
    await db.flush()
    return lesson


async def delete_lesson(db: AsyncSession, lesson_id: uuid.UUID) -> None:
    lesson = await _require(db, Lesson, lesson_id, "Lesson")
    await db.delete(lesson)
    await db.flush()


# --- Lesson content ---

async def _content_for(db: AsyncSession, lesson_id: uuid.UUID) -> LessonContent | None:
    result = await db.execute(select(LessonContent).where(LessonContent.lesson_id == lesson_id))
    return result.scalar_one_or_none()


async def upsert_lesson_content(
    db: AsyncSession,
    lesson_id: uuid.UUID,
    *,
    content: str,
    video_url: str | None = None,
    images: list[str] | None = None,
    metadata: Any = None,
) -> LessonContent:
    """Create the lesson's content, or replace every field of the existing one."""
    await _require(db, Lesson, lesson_id, "Lesson")
    fields = {
        "content": content,
        "video_url": video_url,
        "images": images or [],
        "extra_metadata": metadata,
    }
    lesson_content = await _content_for(db, lesson_id)
    if lesson_content is None:
        lesson_content = LessonContent(lesson_id=lesson_id, **fields)
        db.add(lesson_content)
    else:
        _apply(lesson_content, fields)
    await db.flush()
    return lesson_content


async def update_lesson_content(
    db: AsyncSession, lesson_id: uuid.UUID, changes: dict[str, Any]
) -> LessonContent:
    lesson_content = await _content_for(db, lesson_id)
    if lesson_content is None:
        raise NotFoundError("LessonContent", lesson_id)
    if "metadata" in changes:
        changes = {**changes, "extra_metadata": changes["metadata"]}
        del changes["metadata"]
    _apply(lesson_content, changes)
    await db.flush()
    return lesson_content


async def delete_lesson_content(db: AsyncSession, lesson_id: uuid.UUID) -> None:
    lesson_content = await _content_for(db, lesson_id)
    if lesson_content is None:
        raise NotFoundError("LessonContent", lesson_id)
    await db.delete(lesson_content)
    await db.flush()


# --- Assignments ---

async def upsert_assignment(db: AsyncSession, lesson_id: uuid.UUID, **fields: Any) -> Assignment:
    """Create the lesson's assignment, or replace the existing one's fields.

    ``max_score`` defaults to 100 and ``is_active`` to True on both paths.
    """
    await _require(db, Lesson, lesson_id, "Lesson")
    fields.setdefault("max_score", 100)
    fields.setdefault("is_active", True)

    result = await db.execute(select(Assignment).where(Assignment.lesson_id == lesson_id))
    assignment = result.scalar_one_or_none()
    if assignment is None:
        assignment = Assignment(lesson_id=lesson_id, **fields)
        db.add(assignment)
    else:
        _apply(assignment, fields)
    await db.flush()
    return assignment


async def update_assignment(
    db: AsyncSession, assignment_id: uuid.UUID, changes: dict[str, Any]
) -> Assignment:
    assignment = await _require(db, Assignment, assignment_id, "Assignment")
    _apply(assignment, changes)
    await db.flush()
    return assignment


async def delete_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> None:
    assignment = await _require(db, Assignment, assignment_id, "Assignment")
    await db.delete(assignment)
    await db.flush()
