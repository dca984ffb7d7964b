import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.course import Assignment, AssignmentType, Lesson, LessonContent, LessonType
from app.models.progress import UserLessonProgress
from app.models.user import User
from app.services import course_admin_service, progress_service


@pytest.mark.asyncio
async def test_create_and_list_courses_including_inactive(db_session: AsyncSession):
    await course_admin_service.create_course(db_session, title="Live", order=1)
    await course_admin_service.create_course(db_session, title="Draft", order=0, is_active=False)

    courses = await course_admin_service.list_courses(db_session)
    assert [c.title for c in courses] == ["Draft", "Live"]


@pytest.mark.asyncio
async def test_update_course(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="Old")

    updated = await course_admin_service.update_course(
        db_session, course.id, {"title": "New", "is_active": False}
    )
    assert updated.title == "New"
    assert updated.is_active is False


@pytest.mark.asyncio
async def test_update_missing_course(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await course_admin_service.update_course(db_session, uuid.uuid4(), {"title": "X"})


@pytest.mark.asyncio
async def test_create_lesson_requires_course(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await course_admin_service.create_lesson(
            db_session, uuid.uuid4(), title="Orphan", type=LessonType.THEORY
        )


@pytest.mark.asyncio
async def test_get_course_full(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="Full")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="One", type=LessonType.MIXED, is_active=False
    )
    await course_admin_service.upsert_lesson_content(
        db_session, lesson.id, content="Body", metadata={"k": "v"}
    )
    await course_admin_service.upsert_assignment(
        db_session, lesson.id, title="Task", type=AssignmentType.INTERACTIVE
    )

    full = await course_admin_service.get_course_full(db_session, course.id)

    assert len(full.lessons) == 1
    assert full.lessons[0].content.extra_metadata == {"k": "v"}
    assert full.lessons[0].assignment.max_score == 100


@pytest.mark.asyncio
async def test_upsert_lesson_content_replaces(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.VIDEO
    )

    first = await course_admin_service.upsert_lesson_content(
        db_session, lesson.id, content="v1", video_url="https://v/1", images=["a.png"]
    )
    second = await course_admin_service.upsert_lesson_content(db_session, lesson.id, content="v2")

    assert first.id == second.id
    assert second.content == "v2"
    assert second.video_url is None
    assert second.images == []
    count = await db_session.scalar(select(func.count(LessonContent.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_update_lesson_content_partial(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.THEORY
    )
    await course_admin_service.upsert_lesson_content(
        db_session, lesson.id, content="Body", video_url="https://v/1"
    )

    updated = await course_admin_service.update_lesson_content(
        db_session, lesson.id, {"metadata": {"level": 2}}
    )

    assert updated.content == "Body"
    assert updated.video_url == "https://v/1"
    assert updated.extra_metadata == {"level": 2}


@pytest.mark.asyncio
async def test_lesson_content_missing(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.THEORY
    )

    with pytest.raises(NotFoundError):
        await course_admin_service.update_lesson_content(db_session, lesson.id, {"content": "x"})
    with pytest.raises(NotFoundError):
        await course_admin_service.delete_lesson_content(db_session, lesson.id)


@pytest.mark.asyncio
async def test_upsert_assignment_replaces(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.ASSIGNMENT
    )

    first = await course_admin_service.upsert_assignment(
        db_session, lesson.id, title="v1", type=AssignmentType.QUIZ, max_score=10
    )
    second = await course_admin_service.upsert_assignment(
        db_session, lesson.id, title="v2", type=AssignmentType.TEST
    )

    assert first.id == second.id
    assert second.title == "v2"
    assert second.max_score == 100
    count = await db_session.scalar(select(func.count(Assignment.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_update_and_delete_assignment(db_session: AsyncSession):
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.ASSIGNMENT
    )
    assignment = await course_admin_service.upsert_assignment(
        db_session, lesson.id, title="Quiz", type=AssignmentType.QUIZ
    )

    updated = await course_admin_service.update_assignment(
        db_session, assignment.id, {"max_score": 5}
    )
    assert updated.max_score == 5

    await course_admin_service.delete_assignment(db_session, assignment.id)
    with pytest.raises(NotFoundError):
        await course_admin_service.update_assignment(db_session, assignment.id, {"max_score": 1})


@pytest.mark.asyncio
async def test_delete_lesson_removes_progress(db_session: AsyncSession):
    user = User(email="admin-delete@test.com", password_hash="x")
    db_session.add(user)
    course = await course_admin_service.create_course(db_session, title="C")
    lesson = await course_admin_service.create_lesson(
        db_session, course.id, title="L", type=LessonType.THEORY
    )
    await progress_service.update_lesson_progress(
        db_session, user_id=user.id, lesson_id=lesson.id, progress_percent=30
    )

    await course_admin_service.delete_lesson(db_session, lesson.id)

    assert await db_session.scalar(select(func.count(Lesson.id))) == 0
    assert await db_session.scalar(select(func.count(UserLessonProgress.id))) == 0
