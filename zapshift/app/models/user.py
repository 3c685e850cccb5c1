"""
User database model.

Users are created on first sign-in; identity itself lives with the external provider.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from zapshift.app.db.session import Base, utcnow
from zapshift.app.models.enums import UserRole


class User(Base):
    """
    User model keyed by verified email.

    The role starts as USER; it becomes RIDER when the user's rider
    application is approved, or through an admin role change.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(150), nullable=True)
    photo_url = Column(String(500), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
