from sqlalchemy import Integer, Boolean, Date, DateTime, ForeignKey, String, Enum as SQLEnum, Index, UniqueConstraint, func
from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum
from typing import Optional
from app.db.database import Base


class ShiftStatus(str, Enum):
    PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ShiftSource(str, Enum):
    MANUAL = "MANUAL"
    GENERATED = "GENERATED"


UNIQUE_TEMPLATE_DATE = "uq_shifts_template_date"


class Shifts(Base):
    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift_template_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("shift_templates.id"), nullable=True)
    location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    location_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    manager_id: Mapped[int] = mapped_column(Integer, ForeignKey("managers.id"), nullable=False)
    contract_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_datetime_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_datetime_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    required_guards: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_guards: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_night_shift: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_weekend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[ShiftStatus] = mapped_column(SQLEnum(ShiftStatus, name="shift_status_enum"), nullable=False)
    source: Mapped[ShiftSource] = mapped_column(SQLEnum(ShiftSource, name="shift_source_enum"), nullable=False)
    created_by_manager_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("managers.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("shift_template_id", "shift_date", name=UNIQUE_TEMPLATE_DATE),
        Index("ix_shifts_location_date", "location_id", "shift_date"),
        Index("ix_shifts_contract_date", "contract_id", "shift_date"),
    )
