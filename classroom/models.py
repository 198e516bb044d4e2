"""SQLAlchemy models shared across all services."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Enum as SqlEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class RoleEnum(str, Enum):
    ADMIN = "admin"
    USER = "user"


class RoomStatusEnum(str, Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"
    MAINTENANCE = "Maintenance"


class DayOfWeek(str, Enum):
    """Weekdays in calendar order, Sunday first."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @classmethod
    def parse(cls, value: object) -> Optional["DayOfWeek"]:
        """Return the member matching ``value`` ignoring case and padding, else None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return _DAYS_BY_NAME.get(value.strip().lower())

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        # date.weekday() counts from Monday.
        return _DAYS_FROM_MONDAY[value.weekday()]

    @property
    def position(self) -> int:
        return _DAY_POSITIONS[self]


_DAYS_BY_NAME = {day.value.lower(): day for day in DayOfWeek}
_DAY_POSITIONS = {day: index for index, day in enumerate(DayOfWeek)}
_DAYS_FROM_MONDAY = list(DayOfWeek)[1:] + [DayOfWeek.SUNDAY]


class TicketStatusEnum(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    full_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(SqlEnum(RoleEnum, values_callable=_values), default=RoleEnum.USER)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    tickets: Mapped[List["MaintenanceTicket"]] = relationship(back_populates="reporter")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    room_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[RoomStatusEnum] = mapped_column(
        SqlEnum(RoomStatusEnum, values_callable=_values, native_enum=False, length=20),
        default=RoomStatusEnum.AVAILABLE,
        nullable=False,
    )
    # Comma-joined labels; see directory.split_equipment.
    equipment: Mapped[str] = mapped_column(Text, default="", nullable=False)

    schedules: Mapped[List["ScheduleEntry"]] = relationship(
        back_populates="room", cascade="all, delete-orphan", passive_deletes=True
    )
    tickets: Mapped[List["MaintenanceTicket"]] = relationship(back_populates="room", passive_deletes=True)


class ScheduleEntry(Base):
    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), index=True, nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    professor: Mapped[str] = mapped_column(String(200), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(
        SqlEnum(DayOfWeek, values_callable=_values, native_enum=False, length=10), index=True, nullable=False
    )
    start_time: Mapped[str] = mapped_column(String(20), nullable=False)
    end_time: Mapped[str] = mapped_column(String(20), nullable=False)

    room: Mapped[Room] = relationship(back_populates="schedules")


class MaintenanceTicket(Base):
    __tablename__ = "maintenance_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rooms.id", ondelete="SET NULL"), index=True, nullable=True)
    reporter_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="Other")
    urgency: Mapped[str] = mapped_column(String(20), default="Medium")
    summary: Mapped[str] = mapped_column(String(255), default="")
    suggested_action: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[TicketStatusEnum] = mapped_column(
        SqlEnum(TicketStatusEnum, values_callable=_values, native_enum=False, length=20),
        default=TicketStatusEnum.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    room: Mapped[Optional[Room]] = relationship(back_populates="tickets")
    reporter: Mapped[Optional[User]] = relationship(back_populates="tickets")
