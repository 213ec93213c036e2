"""Database models package."""

from examtrack.models.audit import AuditAction, AuditLog
from examtrack.models.exam import DerivedExamStatus, Exam, ExamStatus, ExamType
from examtrack.models.notification import Notification
from examtrack.models.result import Result, ResultStatus
from examtrack.models.user import User, UserRole

__all__ = [
    # User
    "User",
    "UserRole",
    # Exam
    "Exam",
    "ExamType",
    "ExamStatus",
    "DerivedExamStatus",
    # Result
    "Result",
    "ResultStatus",
    # Notification
    "Notification",
    # Audit
    "AuditLog",
    "AuditAction",
]
