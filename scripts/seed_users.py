"""Create demo admin, teacher and student accounts if they are missing."""
from sqlalchemy import select

from examtrack.core.database import SessionLocal
from examtrack.core.security import hash_password
from examtrack.models.user import User, UserRole

DEMO_USERS = [
    {
        "name": "Admin User",
        "username": "admin",
        "email": "admin@examtrack.local",
        "phone": "+1234567890",
        "role": UserRole.ADMIN,
    },
    {
        "name": "John Teacher",
        "username": "teacher",
        "email": "teacher@examtrack.local",
        "phone": "+1234567891",
        "role": UserRole.TEACHER,
        "teacher_code": "T001",
    },
    {
        "name": "Sarah Student",
        "username": "student",
        "email": "student@examtrack.local",
        "phone": "+1234567892",
        "role": UserRole.STUDENT,
        "student_code": "S001",
        "grade": "10",
        "section": "A",
    },
]
DEMO_PASSWORD = "password123"

with SessionLocal() as db:
    for data in DEMO_USERS:
        existing = db.execute(
            select(User).where(User.username == data["username"])
        ).scalar_one_or_none()
        if existing:
            print(f"User '{data['username']}' already exists, skipping")
            continue

        db.add(User(**data, password_hash=hash_password(DEMO_PASSWORD), is_active=True))
        print(f"Created {data['role'].value} '{data['username']}'")

    db.commit()

print(f"Done. Demo password: {DEMO_PASSWORD}")
