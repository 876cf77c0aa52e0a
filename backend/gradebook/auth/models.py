"""Authentication models for the application."""
import os
from datetime import datetime, UTC
from typing import Optional

import bcrypt
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from gradebook.database import Base
from gradebook.models.enums import UserRole

# JWT Configuration
SECRET_KEY = os.getenv("JWT_SECRET", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Class heads also use every teacher endpoint
STAFF_ROLES = (
    UserRole.admin, UserRole.school_head, UserRole.teacher,
    UserRole.class_head, UserRole.store_house,
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    school = relationship("gradebook.models.school.School")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    def set_password(self, password: str) -> None:
        """Hash and set the user's password."""
        salt = bcrypt.gensalt()
        self.hashed_password = bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def verify_password(self, password: str) -> bool:
        """Verify the provided password against the stored hash."""
        return bcrypt.checkpw(password.encode('utf-8'), self.hashed_password.encode('utf-8'))

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


# Pydantic models for request/response schemas
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    email: Optional[str] = None
    user_id: Optional[int] = None
    role: Optional[str] = None
    school_id: Optional[int] = None


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str]
    role: UserRole
    school_id: Optional[int]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
