from enum import Enum

from sqlalchemy import Column, String
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(BaseModel, Base):
    __tablename__ = "users"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # Stored stripped and lower-cased (see schemas.user.normalize_email)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SAEnum(Role, name="user_role", native_enum=False, values_callable=lambda e: [r.value for r in e]),
        nullable=False,
        default=Role.STUDENT,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
