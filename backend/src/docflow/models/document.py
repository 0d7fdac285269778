"""Document, status history and comment models"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB
from ..domain.documents import DocumentStatus

_STATUS_VALUES = ", ".join(f"'{status.value}'" for status in DocumentStatus)


class Document(Base):
    """MT transmittal document.

    ``status`` is constrained to the DocumentStatus values at the database
    level. ``version`` increases with every status change and is what the
    repository's compare-and-set update reports back to callers.
    """
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_path = Column(Text, nullable=True)
    original_filename = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    branch_ba_code = Column(Integer, ForeignKey("branches.ba_code"), nullable=False)
    upload_date = Column(Date, nullable=False, server_default=func.current_date())
    mt_number = Column(String(100), nullable=False)
    mt_date = Column(Date, nullable=False)
    subject = Column(Text, nullable=False)
    month_year = Column(String(20), nullable=False)
    status = Column(String(50), nullable=False, default=DocumentStatus.DRAFT.value)
    uploader_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    has_additional_docs = Column(Boolean, nullable=False, default=False)
    additional_docs = Column(PortableJSONB, nullable=True)
    disbursement_date = Column(Date, nullable=True)
    disbursement_confirmed = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_documents_status"),
        Index("idx_documents_branch_status", "branch_ba_code", "status"),
        Index("idx_documents_uploader_status", "uploader_id", "status"),
        Index("idx_documents_mt_number", "mt_number"),
    )

    comments = relationship("Comment", back_populates="document", cascade="all, delete-orphan")


class DocumentStatusHistory(Base):
    """Append-only record of status changes.

    ``document_id`` is nulled rather than cascaded when a draft is deleted so
    the trail outlives the document.
    """
    __tablename__ = "document_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    from_status = Column(String(50), nullable=True)
    to_status = Column(String(50), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_status_history_document", "document_id", "created_at"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    document = relationship("Document", back_populates="comments")
