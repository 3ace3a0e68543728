"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func
from werkzeug.security import check_password_hash, generate_password_hash

from reporting_backend.database import Base


ROLES = ('student', 'lecturer', 'principal_lecturer', 'program_leader')


class User(Base):
    """Represents a registered account. The role is fixed at registration."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False)  # one of ROLES
    full_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def set_password(self, password: str) -> None:
        self.hashed_password = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.hashed_password, password)
