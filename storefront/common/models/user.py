from sqlalchemy import Column, DateTime, String

from .base import Base, new_id, utcnow


USER_ROLES = ("user", "admin")
USER_STATUSES = ("active", "inactive")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    patronymic = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(128), nullable=False)
    role = Column(String(16), nullable=False, default="user")
    phone_number = Column(String(32), nullable=True)
    status = Column(String(16), nullable=False, default="inactive")
    last_activity = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
