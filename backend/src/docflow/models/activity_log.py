"""ActivityLog SQLAlchemy model"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func

from .base import Base, PortableJSONB


class ActivityLog(Base):
    """ActivityLog model for immutable audit entries.

    Records every mutating action taken through the engine. Entries are
    append-only and should never be updated or deleted. ``document_id`` is
    nulled when the referenced document is deleted so the entry survives.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("idx_activity_logs_user_created", "user_id", "created_at"),
        Index("idx_activity_logs_action_created", "action", "created_at"),
        Index("idx_activity_logs_document", "document_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    branch_ba_code = Column(Integer, nullable=True)
    details = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

