from enum import Enum

from sqlalchemy import Boolean, Column, String
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    PLANNER = "planner"
    VENDOR = "vendor"


# Role given to self-registered users when none is requested
DEFAULT_ROLE = Role.PLANNER


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


class User(BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    role = Column(SAEnum(Role, name="user_role", native_enum=False), nullable=False, default=DEFAULT_ROLE)
    phone_number = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
