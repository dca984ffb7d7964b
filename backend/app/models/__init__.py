# Import all models so Base.metadata is populated for create_all.
from app.models.base import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.audit import AuditLogEvent  # noqa: F401
from app.models.otp import OtpCode, OtpPurpose, PasswordResetToken  # noqa: F401
from app.models.course import (  # noqa: F401
    Assignment,
    AssignmentType,
    Course,
    Lesson,
    LessonContent,
    LessonType,
)
from app.models.progress import (  # noqa: F401
    UserAssignment,
    UserCourseProgress,
    UserLessonProgress,
)
