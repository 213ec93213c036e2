"""Role and ownership rules.

Every authorization decision goes through ``authorize``, which looks the
action up in ``RULES``. A rule receives the acting principal and the
resource being touched (an exam, a result or a user) and answers yes/no.
"""

import enum
from collections.abc import Callable
from typing import Any

from examtrack.core.exceptions import ForbiddenError
from examtrack.models.exam import Exam
from examtrack.models.result import Result
from examtrack.models.user import User, UserRole


class Action(str, enum.Enum):
    """Protected operations."""

    USER_MANAGE = "user:manage"
    AUDIT_VIEW = "audit:view"

    EXAM_CREATE = "exam:create"
    EXAM_VIEW = "exam:view"
    EXAM_MANAGE = "exam:manage"

    RESULT_VIEW = "result:view"
    RESULT_MANAGE = "result:manage"

    STUDENT_PERFORMANCE_VIEW = "performance:student"
    EXAM_PERFORMANCE_VIEW = "performance:exam"
    TEACHER_PERFORMANCE_VIEW = "performance:teacher"

    NOTIFICATION_SEND = "notification:send"


class Principal:
    """The authenticated user as seen by authorization rules."""

    def __init__(self, user: User):
        self.user = user

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    def owns(self, exam: Exam) -> bool:
        return self.is_teacher and exam.teacher_id == self.id

    def __repr__(self) -> str:
        return f"<Principal(id={self.id}, role={self.role})>"


Rule = Callable[[Principal, Any], bool]


def _admin_only(principal: Principal, resource: Any) -> bool:
    return principal.is_admin


def _staff(principal: Principal, resource: Any) -> bool:
    return principal.is_admin or principal.is_teacher


def _exam_of(resource: Any) -> Exam:
    return resource.exam if isinstance(resource, Result) else resource


def _admin_or_owner(principal: Principal, resource: Any) -> bool:
    return principal.is_admin or principal.owns(_exam_of(resource))


def _can_view_exam(principal: Principal, exam: Exam) -> bool:
    if principal.is_student:
        return exam.targets(principal.user)
    return _admin_or_owner(principal, exam)


def _can_view_result(principal: Principal, result: Result) -> bool:
    if principal.is_student:
        return result.student_id == principal.id
    return _admin_or_owner(principal, result)


def _can_view_student(principal: Principal, student: User) -> bool:
    if principal.is_student:
        return student.id == principal.id
    return True


RULES: dict[Action, Rule] = {
    Action.USER_MANAGE: _admin_only,
    Action.AUDIT_VIEW: _admin_only,
    Action.EXAM_CREATE: _staff,
    Action.EXAM_VIEW: _can_view_exam,
    Action.EXAM_MANAGE: _admin_or_owner,
    Action.RESULT_VIEW: _can_view_result,
    Action.RESULT_MANAGE: _admin_or_owner,
    Action.STUDENT_PERFORMANCE_VIEW: _can_view_student,
    Action.EXAM_PERFORMANCE_VIEW: _admin_or_owner,
    Action.TEACHER_PERFORMANCE_VIEW: _admin_only,
    Action.NOTIFICATION_SEND: _admin_or_owner,
}


def is_allowed(action: Action, principal: Principal, resource: Any = None) -> bool:
    return RULES[action](principal, resource)


def authorize(action: Action, principal: Principal, resource: Any = None) -> None:
    """Raise ForbiddenError unless ``principal`` may perform ``action``."""
    if not is_allowed(action, principal, resource):
        raise ForbiddenError(
            f"You are not allowed to perform '{action.value}'",
            action=action.value,
        )
