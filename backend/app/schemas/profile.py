import uuid
from datetime import datetime

from pydantic import BaseModel

from app.models.course import AssignmentType, LessonType
from app.schemas.course import CourseSummary
from app.schemas.progress import CourseProgressRead, LessonProgressRead, UserAssignmentRead


class UserStats(BaseModel):
    total_courses: int
    started_courses: int
    completed_courses: int
    average_progress: int
    completed_lessons: int
    total_lessons: int
    completed_assignments: int
    total_assignments: int
    total_score: int
    max_score: int
    score_percentage: int


class Achievement(BaseModel):
    id: str
    title: str
    description: str
    unlocked: bool
    unlocked_at: datetime | None = None


class CourseProgressWithCourse(CourseProgressRead):
    course: CourseSummary


class ProfileRead(BaseModel):
    id: uuid.UUID
    email: str
    phone: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    course_progress: list[CourseProgressWithCourse]
    stats: UserStats


class LessonRef(BaseModel):
    id: uuid.UUID
    title: str
    type: LessonType
    order: int

    model_config = {"from_attributes": True}


class LessonProgressWithLesson(LessonProgressRead):
    lesson: LessonRef


class AssignmentRef(BaseModel):
    id: uuid.UUID
    lesson_id: uuid.UUID
    title: str
    type: AssignmentType
    max_score: int

    model_config = {"from_attributes": True}


class SubmissionWithAssignment(UserAssignmentRead):
    assignment: AssignmentRef


class CourseWithProgress(BaseModel):
    progress: CourseProgressRead
    course: CourseSummary
    lesson_progress: list[LessonProgressWithLesson]
    completed_lessons: int
    total_lessons: int


class CourseDetailedProgress(CourseWithProgress):
    assignments: list[SubmissionWithAssignment]
