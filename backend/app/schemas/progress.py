import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class LessonProgressUpdate(BaseModel):
    # Range is enforced by the progress service
    progress_percent: int


class LessonProgressRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    lesson_id: uuid.UUID
    progress_percent: int
    completed_at: datetime | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class CourseProgressRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    progress_percent: int
    completed_at: datetime | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class AssignmentSubmit(BaseModel):
    answers: Any = None
    score: int = Field(..., ge=0)


class UserAssignmentRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    assignment_id: uuid.UUID
    answers: Any = None
    score: int
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}
