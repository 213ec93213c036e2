"""Authentication and user management service."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from examtrack.core.config import settings
from examtrack.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from examtrack.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from examtrack.models.user import User, UserRole
from examtrack.schemas.auth import (
    LoginRequest,
    TokenResponse,
    UserCreate,
    UserFilter,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service."""

    def __init__(self, db: Session):
        self.db = db

    def _issue_tokens(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(user.id, user.username, user.role.value),
            refresh_token=create_refresh_token(user.id),
            token_type="bearer",
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    def login(self, request: LoginRequest) -> tuple[User, TokenResponse]:
        """Authenticate user and return tokens."""
        result = self.db.execute(
            select(User).where(User.username == request.username)
        )
        user = result.scalar_one_or_none()

        if not user:
            raise AuthenticationError("Invalid username or password")

        if not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid username or password")

        if not user.is_active:
            raise AuthenticationError("User account is deactivated")

        # Update last login
        user.last_login_at = datetime.now(timezone.utc)
        self.db.flush()

        return user, self._issue_tokens(user)

    def refresh_tokens(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        payload = verify_refresh_token(refresh_token)

        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        try:
            user_pk = int(user_id)
        except ValueError:
            raise AuthenticationError("Invalid user ID in token")

        user = self.db.get(User, user_pk)
        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated")

        return self._issue_tokens(user)

    def get_user_by_id(self, user_id: int) -> User:
        """Get user by ID."""
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    def change_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change user password."""
        user = self.get_user_by_id(user_id)

        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        self.db.flush()

    # ==========================================
    # User management (admin)
    # ==========================================

    def _ensure_unique(self, column, value: str | None, label: str) -> None:
        if value is None:
            return
        exists = self.db.execute(
            select(User.id).where(column == value)
        ).first()
        if exists:
            raise ConflictError(f"{label} '{value}' is already in use", details={"field": column.key})

    def create_user(self, request: UserCreate) -> User:
        """Create a user of any role."""
        if request.role == UserRole.STUDENT and not request.grade:
            raise ValidationError("Students must be assigned a grade", details={"field": "grade"})
        if request.student_code and request.role != UserRole.STUDENT:
            raise ValidationError("Only students carry a student code", details={"field": "student_code"})
        if request.teacher_code and request.role != UserRole.TEACHER:
            raise ValidationError("Only teachers carry a teacher code", details={"field": "teacher_code"})

        self._ensure_unique(User.username, request.username, "Username")
        self._ensure_unique(User.student_code, request.student_code, "Student code")
        self._ensure_unique(User.teacher_code, request.teacher_code, "Teacher code")

        user = User(
            **request.model_dump(exclude={"password"}),
            password_hash=hash_password(request.password),
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        self.db.refresh(user)

        logger.info("Created %s user %s (id=%s)", user.role.value, user.username, user.id)
        return user

    def list_users(
        self,
        filters: UserFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[UserResponse], int]:
        """List users with filtering."""
        query = select(User)

        if filters:
            if filters.role:
                query = query.where(User.role == filters.role)
            if filters.grade:
                query = query.where(User.grade == filters.grade)
            if filters.is_active is not None:
                query = query.where(User.is_active == filters.is_active)
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.where(or_(
                    User.name.ilike(pattern),
                    User.username.ilike(pattern),
                    User.student_code.ilike(pattern),
                    User.teacher_code.ilike(pattern),
                ))

        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

        query = (
            query
            .order_by(User.name, User.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        users = self.db.execute(query).scalars().all()

        return [UserResponse.model_validate(u) for u in users], total

    def update_user(self, user_id: int, request: UserUpdate) -> User:
        """Update user as admin."""
        user = self.get_user_by_id(user_id)

        update_data = request.model_dump(exclude_unset=True)
        if user.role == UserRole.STUDENT and "grade" in update_data and not update_data["grade"]:
            raise ValidationError("Students must be assigned a grade", details={"field": "grade"})

        for field, value in update_data.items():
            setattr(user, field, value)

        self.db.flush()
        self.db.refresh(user)
        return user
