from typing import Optional
from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class LocationOperatingSchedules(Base):
    __tablename__ = "location_operating_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    # None means open
    is_monday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_tuesday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_wednesday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_thursday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_friday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_saturday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_sunday_open: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
