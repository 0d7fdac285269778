"""User SQLAlchemy model"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    """User model representing people known to DocFlow.

    Rows are created on the first successful external authentication and
    refreshed with directory attributes on each login. ``ba`` holds the
    user's branch (BA) code as delivered by the directory.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    password = Column(Text, nullable=True)  # Local admin accounts only
    is_local_admin = Column(Boolean, nullable=False, default=False)
    cost_center = Column(String(255), nullable=True)
    ba = Column(String(255), nullable=True)
    part = Column(String(255), nullable=True)
    area = Column(String(255), nullable=True)
    job_name = Column(String(255), nullable=True)
    level = Column(String(255), nullable=True)
    div_name = Column(String(255), nullable=True)
    dep_name = Column(String(255), nullable=True)
    org_name = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user_roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")

