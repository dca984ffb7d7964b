import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import (
    Assignment,
    AssignmentType,
    Course,
    Lesson,
    LessonContent,
    LessonType,
)


async def _course_with_lesson(db: AsyncSession) -> tuple[Course, Lesson]:
    course = Course(title="Python basics")
    db.add(course)
    await db.flush()
    lesson = Lesson(course_id=course.id, title="Variables", type=LessonType.THEORY)
    db.add(lesson)
    await db.commit()
    return course, lesson


@pytest.mark.asyncio
async def test_course_defaults(db_session: AsyncSession):
    course = Course(title="Defaults")
    db_session.add(course)
    await db_session.commit()

    fetched = (await db_session.execute(select(Course))).scalar_one()
    assert fetched.order == 0
    assert fetched.is_active is True
    assert fetched.description is None


@pytest.mark.asyncio
async def test_lesson_content_round_trip(db_session: AsyncSession):
    """Metadata and images are stored as opaque JSON."""
    _, lesson = await _course_with_lesson(db_session)
    db_session.add(
        LessonContent(
            lesson_id=lesson.id,
            content="x = 1",
            images=["a.png", "b.png"],
            extra_metadata={"level": "easy", "tags": ["intro"]},
        )
    )
    await db_session.commit()

    fetched = (await db_session.execute(select(LessonContent))).scalar_one()
    assert fetched.images == ["a.png", "b.png"]
    assert fetched.extra_metadata == {"level": "easy", "tags": ["intro"]}
    assert fetched.video_url is None


@pytest.mark.asyncio
async def test_one_assignment_per_lesson(db_session: AsyncSession):
    _, lesson = await _course_with_lesson(db_session)
    db_session.add(Assignment(lesson_id=lesson.id, title="Quiz 1", type=AssignmentType.QUIZ))
    await db_session.commit()

    db_session.add(Assignment(lesson_id=lesson.id, title="Quiz 2", type=AssignmentType.QUIZ))
    with pytest.raises(IntegrityError):
        await db_session.commit()


@pytest.mark.asyncio
async def test_assignment_max_score_default(db_session: AsyncSession):
    _, lesson = await _course_with_lesson(db_session)
    assignment = Assignment(
        lesson_id=lesson.id,
        title="Practice",
        type=AssignmentType.PRACTICAL,
        content={"steps": 3},
    )
    db_session.add(assignment)
    await db_session.commit()

    fetched = (await db_session.execute(select(Assignment))).scalar_one()
    assert fetched.max_score == 100
    assert fetched.is_active is True
    assert fetched.content == {"steps": 3}
