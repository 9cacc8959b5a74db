from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.lesson import Lesson, Weekday  # noqa: F401
from app.models.room import Room  # noqa: F401
from app.models.schedule_change_request import (  # noqa: F401
    RequestStatus,
    ScheduleChangeRequest,
    ScheduleChangeType,
)
from app.models.school import School  # noqa: F401
from app.models.school_class import SchoolClass  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.teacher_availability import TeacherAvailability  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
