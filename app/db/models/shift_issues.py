from typing import Optional
from enum import Enum
from datetime import date, datetime
from sqlalchemy import Boolean, Date, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class ShiftIssueType(str, Enum):
    SICK_LEAVE = "SICK_LEAVE"
    MATERNITY_LEAVE = "MATERNITY_LEAVE"
    PERSONAL_LEAVE = "PERSONAL_LEAVE"
    BULK_CANCEL = "BULK_CANCEL"
    OTHER = "OTHER"


class ShiftIssues(Base):
    __tablename__ = "shift_issues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift_template_id: Mapped[int] = mapped_column(Integer, ForeignKey("shift_templates.id"), nullable=False)
    guard_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    issue_type: Mapped[ShiftIssueType] = mapped_column(SQLEnum(ShiftIssueType, name="shift_issue_type_enum"), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)  # inclusive
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by_manager_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("managers.id"), nullable=True)

    __table_args__ = (
        Index("ix_shift_issues_template_range", "shift_template_id", "start_date", "end_date"),
    )
