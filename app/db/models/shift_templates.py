from typing import Optional
from datetime import date, datetime, time
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, JSON, String, Time, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class ShiftTemplates(Base):
    __tablename__ = "shift_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    manager_id: Mapped[int] = mapped_column(Integer, ForeignKey("managers.id"), nullable=False)
    contract_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)  # owned by the contracts service
    location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    template_code: Mapped[str] = mapped_column(String(100), nullable=False)
    template_name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_time_local: Mapped[time] = mapped_column(Time, nullable=False)
    end_time_local: Mapped[time] = mapped_column(Time, nullable=False)
    applies_monday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_tuesday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_wednesday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_thursday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_friday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_saturday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_sunday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    explicit_dates: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # ISO dates; overrides weekday flags
    min_guards_required: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_guards_allowed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_shift_templates_manager_active", "manager_id", "is_active"),
    )
