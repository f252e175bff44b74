"""Source file model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legacylens.models.base import BaseModel

if TYPE_CHECKING:
    from legacylens.models.analysis import AnalysisRecord


class SourceFile(BaseModel):
    """An ingested legacy source file.

    content_hash is unique: identical uploads resolve to one row.
    The raw bytes live in the file store under storage_key.
    """

    __tablename__ = "source_files"
    __table_args__ = (
        CheckConstraint(
            "status IN ('uploaded', 'processing', 'analyzed', 'failed')",
            name="ck_source_files_status",
        ),
    )

    filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    original_filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    technology: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )
    content_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )
    storage_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
    )
    size_bytes: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        server_default="uploaded",
        nullable=False,
        index=True,
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    has_errors: Mapped[bool] = mapped_column(
        Boolean,
        server_default="false",
        default=False,
        nullable=False,
    )
    processing_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    processing_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    analyses: Mapped[list["AnalysisRecord"]] = relationship(
        "AnalysisRecord",
        back_populates="source_file",
        cascade="all, delete-orphan",
        order_by="AnalysisRecord.created_at",
    )

    def __repr__(self) -> str:
        return f"<SourceFile {self.filename} ({self.status})>"
