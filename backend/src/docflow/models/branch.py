"""Branch SQLAlchemy model"""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, func

from .base import Base


class Branch(Base):
    """Organisational branch identified by its BA code."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ba_code = Column(Integer, nullable=False, unique=True)
    branch_code = Column(BigInteger, nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    region_id = Column(Integer, nullable=False, default=6)
    region_code = Column(String(10), nullable=False, default="R6")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
