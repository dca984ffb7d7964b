"""Course content models: courses, lessons, lesson content, assignments.

A Course owns its Lessons; a Lesson owns at most one LessonContent and at most
one Assignment. Deleting a parent removes its children.

Assignment.content, LessonContent.metadata and answers are opaque documents:
stored and returned as-is, never interpreted.
"""

import enum
import uuid
from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.models.base import Base, TimestampMixin, generate_uuid


class LessonType(str, enum.Enum):
    THEORY = "THEORY"
    VIDEO = "VIDEO"
    ASSIGNMENT = "ASSIGNMENT"
    MIXED = "MIXED"


class AssignmentType(str, enum.Enum):
    INTERACTIVE = "INTERACTIVE"
    QUIZ = "QUIZ"
    TEST = "TEST"
    PRACTICAL = "PRACTICAL"


class Course(TimestampMixin, Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    lessons: Mapped[list["Lesson"]] = relationship(
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Lesson.order",
    )


class Lesson(TimestampMixin, Base):
    __tablename__ = "lessons"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    course_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[LessonType] = mapped_column(
        Enum(LessonType, native_enum=False), nullable=False, default=LessonType.THEORY
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    course: Mapped[Course] = relationship(back_populates="lessons")
    content: Mapped[Optional["LessonContent"]] = relationship(
        back_populates="lesson",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    assignment: Mapped[Optional["Assignment"]] = relationship(
        back_populates="lesson",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )


class LessonContent(TimestampMixin, Base):
    __tablename__ = "lesson_contents"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    lesson_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    video_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    lesson: Mapped[Lesson] = relationship(back_populates="content")


class Assignment(TimestampMixin, Base):
    __tablename__ = "assignments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    lesson_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[AssignmentType] = mapped_column(
        Enum(AssignmentType, native_enum=False), nullable=False
    )
    max_score: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    content: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    lesson: Mapped[Lesson] = relationship(back_populates="assignment")
