"""Weekly class schedules per room with conflict-checked insertion.

Intervals are half-open, ``[start, end)``, so a class ending at 10:00 AM and
one starting at 10:00 AM in the same room do not conflict. The
check-then-insert sequence runs under a per-(room, day) lock and commits
before the lock is released, so two concurrent bookings for the same slot
cannot both observe "no conflict".
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from .database import storage_boundary
from .models import DayOfWeek, Room, ScheduleEntry
from .schemas import ErrorKind, OperationResult
from .timecodes import INVALID_TIME, encode_time, overlaps

logger = logging.getLogger(__name__)

DayLike = Union[DayOfWeek, str]


class SlotLocks:
    """Registry of one lock per (room id, day) pair."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[int, DayOfWeek], threading.Lock] = defaultdict(threading.Lock)

    def for_slot(self, room_id: int, day: DayOfWeek) -> threading.Lock:
        with self._guard:
            return self._locks[(room_id, day)]

    def forget_room(self, room_id: int) -> None:
        with self._guard:
            for key in [key for key in self._locks if key[0] == room_id]:
                self._locks.pop(key, None)


slot_locks = SlotLocks()


def _storage_failure() -> OperationResult:
    return OperationResult.fail(ErrorKind.STORAGE, "Database error, please try again")


def _start_minutes(entry: ScheduleEntry) -> int:
    return encode_time(entry.start_time)


def _find_conflict(existing: List[ScheduleEntry], start: int, end: int) -> Optional[ScheduleEntry]:
    for entry in existing:
        entry_start = encode_time(entry.start_time)
        entry_end = encode_time(entry.end_time)
        if INVALID_TIME in (entry_start, entry_end):
            logger.warning("Skipping schedule %s with unparseable times", entry.id)
            continue
        if overlaps(start, end, entry_start, entry_end):
            return entry
    return None


@storage_boundary("add a schedule entry", _storage_failure)
def add_schedule(
    db: Session,
    room_id: int,
    subject: str,
    professor: str,
    day: DayLike,
    start: str,
    end: str,
    locks: SlotLocks = slot_locks,
) -> OperationResult:
    fields = [subject, professor, day, start, end]
    if room_id is None or any(not (value.strip() if isinstance(value, str) else value) for value in fields):
        return OperationResult.fail(ErrorKind.VALIDATION, "All fields are required")

    day_of_week = DayOfWeek.parse(day)
    if day_of_week is None:
        return OperationResult.fail(ErrorKind.VALIDATION, f"Unknown day of week: {day}")

    new_start = encode_time(start)
    new_end = encode_time(end)
    if new_start == INVALID_TIME or new_end == INVALID_TIME:
        return OperationResult.fail(ErrorKind.VALIDATION, "Times must look like 9:00 AM")
    if new_start >= new_end:
        return OperationResult.fail(ErrorKind.VALIDATION, "End time must be after start time")

    with locks.for_slot(room_id, day_of_week):
        # Row lock covers other processes on stores that support FOR UPDATE.
        room = db.query(Room).filter(Room.id == room_id).with_for_update().first()
        if room is None:
            db.rollback()
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Room not found")

        existing = (
            db.query(ScheduleEntry)
            .filter(ScheduleEntry.room_id == room_id, ScheduleEntry.day_of_week == day_of_week)
            .all()
        )
        conflict = _find_conflict(existing, new_start, new_end)
        if conflict is not None:
            db.rollback()
            logger.info("Rejected %s on %s for room %s: overlaps schedule %s", subject, day_of_week.value, room_id, conflict.id)
            return OperationResult.fail(
                ErrorKind.CONFLICT,
                f"Conflict with {conflict.subject} ({conflict.start_time} - {conflict.end_time})",
            )

        entry = ScheduleEntry(
            room_id=room_id,
            subject=subject.strip(),
            professor=professor.strip(),
            day_of_week=day_of_week,
            start_time=start.strip(),
            end_time=end.strip(),
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)

    logger.info("Scheduled %s in room %s on %s %s-%s", entry.subject, room_id, day_of_week.value, entry.start_time, entry.end_time)
    return OperationResult.ok("Class scheduled successfully", entity_id=entry.id)


@storage_boundary("list room schedules", list)
def list_by_room(db: Session, room_id: int) -> List[ScheduleEntry]:
    """All entries of a room, Sunday first, then by start time."""
    entries = db.query(ScheduleEntry).filter(ScheduleEntry.room_id == room_id).all()
    return sorted(entries, key=lambda entry: (entry.day_of_week.position, _start_minutes(entry)))


def entries_for_day(db: Session, room_id: int, day: DayOfWeek) -> List[ScheduleEntry]:
    """Entries of one room and day sorted by start; storage errors propagate."""
    entries = (
        db.query(ScheduleEntry)
        .filter(ScheduleEntry.room_id == room_id, ScheduleEntry.day_of_week == day)
        .all()
    )
    return sorted(entries, key=_start_minutes)


@storage_boundary("list room schedules for a day", list)
def list_by_room_and_day(db: Session, room_id: int, day: DayLike) -> List[ScheduleEntry]:
    day_of_week = DayOfWeek.parse(day)
    if day_of_week is None:
        return []
    return entries_for_day(db, room_id, day_of_week)


def get_schedule(db: Session, entry_id: int) -> Optional[ScheduleEntry]:
    return db.get(ScheduleEntry, entry_id)


@storage_boundary("delete a schedule entry", _storage_failure)
def delete_schedule(db: Session, entry_id: int) -> OperationResult:
    """Delete an entry; a missing id is still a success."""
    deleted = db.query(ScheduleEntry).filter(ScheduleEntry.id == entry_id).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("Deleted schedule %s", entry_id)
    return OperationResult.ok("Schedule removed", entity_id=entry_id)
