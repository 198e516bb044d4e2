"""Displayable room status from the manual flag plus the current schedule."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from .database import storage_boundary
from .models import DayOfWeek, Room, RoomStatusEnum, ScheduleEntry
from .schedule_store import entries_for_day
from .schemas import ErrorKind, StatusDescriptor, StatusResult
from .timecodes import INVALID_TIME, encode_time

AMBER = "#f59e0b"
RED = "#ef4444"
GREEN = "#10b981"


@dataclass(frozen=True)
class Resolution:
    status: RoomStatusEnum
    color: str
    message: str


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def find_active_entry(entries: Iterable[ScheduleEntry], minute: int) -> Optional[ScheduleEntry]:
    for entry in entries:
        start = encode_time(entry.start_time)
        end = encode_time(entry.end_time)
        if INVALID_TIME in (start, end):
            continue
        if start <= minute < end:
            return entry
    return None


def derive_status(
    manual_status: Optional[RoomStatusEnum],
    entries: Iterable[ScheduleEntry],
    day: DayOfWeek,
    minute: int,
) -> Resolution:
    """Resolve status; the first matching rule wins.

    Maintenance and Reserved are administrator overrides and beat any class in
    progress. Every other stored value falls through to the schedule scan.
    """
    if manual_status == RoomStatusEnum.MAINTENANCE:
        return Resolution(RoomStatusEnum.MAINTENANCE, AMBER, "Under Repair")
    if manual_status == RoomStatusEnum.RESERVED:
        return Resolution(RoomStatusEnum.RESERVED, RED, "Special Event")

    active = find_active_entry(entries, minute)
    if active is not None:
        return Resolution(RoomStatusEnum.OCCUPIED, RED, f"Occupied by {active.subject}")
    return Resolution(RoomStatusEnum.AVAILABLE, GREEN, f"Free on {day.value}")


def _storage_failure() -> StatusResult:
    return StatusResult(success=False, error=ErrorKind.STORAGE, message="Database error, please try again")


@storage_boundary("resolve room status", _storage_failure)
def resolve_room_status(
    db: Session,
    room_id: int,
    day: Optional[DayOfWeek] = None,
    now: Optional[datetime] = None,
) -> StatusResult:
    """Status of ``room_id`` for ``day`` (default: today) at the time of ``now``.

    Overriding ``day`` does not override the time of day; the instant checked is
    always the wall-clock minute of ``now``. An unknown room is a not-found
    failure and a storage fault is a storage failure, never a guessed status.
    """
    room = db.get(Room, room_id)
    if room is None:
        return StatusResult(success=False, error=ErrorKind.NOT_FOUND, message="Room not found")

    now = now or datetime.now()
    effective_day = day or DayOfWeek.from_date(now)
    entries = []
    if room.status not in (RoomStatusEnum.MAINTENANCE, RoomStatusEnum.RESERVED):
        entries = entries_for_day(db, room_id, effective_day)

    resolution = derive_status(room.status, entries, effective_day, minute_of_day(now))
    descriptor = StatusDescriptor(
        room_id=room_id,
        status=resolution.status,
        color=resolution.color,
        message=resolution.message,
        day=effective_day,
    )
    return StatusResult(success=True, message=resolution.message, entity_id=room_id, descriptor=descriptor)
