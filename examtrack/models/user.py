"""User model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from examtrack.core.database import Base
from examtrack.models.base import IDMixin, TimestampMixin, enum_column


class UserRole(str, enum.Enum):
    """System roles."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(Base, IDMixin, TimestampMixin):
    """System user: administrator, teacher or student."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role"),
        nullable=False,
        index=True,
    )

    # Institutional identifiers
    student_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    teacher_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)

    # Class placement (students)
    grade: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    section: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
