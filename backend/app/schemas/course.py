import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.models.course import AssignmentType, LessonType
from app.schemas.progress import (
    CourseProgressRead,
    LessonProgressRead,
    UserAssignmentRead,
)


class LessonSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    type: LessonType
    order: int

    model_config = {"from_attributes": True}


class LessonContentRead(BaseModel):
    id: uuid.UUID
    content: str
    video_url: str | None = None
    images: list[str] = []
    metadata: Any = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )

    model_config = {"from_attributes": True}


class AssignmentRead(BaseModel):
    id: uuid.UUID
    lesson_id: uuid.UUID
    title: str
    description: str | None = None
    type: AssignmentType
    max_score: int
    content: Any = None
    is_active: bool

    model_config = {"from_attributes": True}


class LessonRead(LessonSummary):
    course_id: uuid.UUID
    is_active: bool
    content: LessonContentRead | None = None
    assignment: AssignmentRead | None = None


class CourseSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    image_url: str | None = None

    model_config = {"from_attributes": True}


class CourseRead(CourseSummary):
    order: int
    is_active: bool
    lessons: list[LessonSummary] = []


class CourseDetail(CourseSummary):
    order: int
    is_active: bool
    lessons: list[LessonRead] = []
    user_progress: CourseProgressRead | None = None


class LessonDetail(LessonRead):
    course: CourseSummary
    user_progress: LessonProgressRead | None = None
    user_assignment: UserAssignmentRead | None = None


# --- Admin ---

def _reject_null(value):
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = Field(None, max_length=1024)
    order: int = 0
    is_active: bool = True


class CourseUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = Field(None, max_length=1024)
    order: int | None = None
    is_active: bool | None = None

    @field_validator("title", "order", "is_active")
    @classmethod
    def non_nullable(cls, value):
        return _reject_null(value)


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    type: LessonType
    order: int = 0
    is_active: bool = True


class LessonUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    type: LessonType | None = None
    order: int | None = None
    is_active: bool | None = None

    @field_validator("title", "type", "order", "is_active")
    @classmethod
    def non_nullable(cls, value):
        return _reject_null(value)


class LessonContentWrite(BaseModel):
    content: str
    video_url: str | None = None
    images: list[str] | None = None
    metadata: Any = None


class LessonContentUpdate(BaseModel):
    content: str | None = None
    video_url: str | None = None
    images: list[str] | None = None
    metadata: Any = None

    @field_validator("content", "images")
    @classmethod
    def non_nullable(cls, value):
        return _reject_null(value)


class AssignmentWrite(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    type: AssignmentType
    max_score: int = Field(100, ge=0)
    content: Any = None
    is_active: bool = True


class AssignmentUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    type: AssignmentType | None = None
    max_score: int | None = Field(None, ge=0)
    content: Any = None
    is_active: bool | None = None

    @field_validator("title", "type", "max_score", "is_active")
    @classmethod
    def non_nullable(cls, value):
        return _reject_null(value)


class AdminCourseRead(CourseRead):
    created_at: datetime
    updated_at: datetime
    lessons: list[LessonRead] = []
