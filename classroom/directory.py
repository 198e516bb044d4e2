"""Classroom records: CRUD, equipment labels and availability search."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from .database import storage_boundary
from .models import DayOfWeek, Room, RoomStatusEnum
from .schedule_store import entries_for_day, slot_locks
from .schemas import ErrorKind, OperationResult, RoomCreate, RoomUpdate
from .timecodes import INVALID_TIME, encode_time, overlaps

logger = logging.getLogger(__name__)


def join_equipment(labels: Iterable[str]) -> str:
    cleaned = []
    for label in labels:
        label = label.strip()
        if label and label not in cleaned:
            cleaned.append(label)
    return ",".join(cleaned)


def split_equipment(stored: Optional[str]) -> Set[str]:
    if not stored:
        return set()
    return {label.strip() for label in stored.split(",") if label.strip()}


def _storage_failure() -> OperationResult:
    return OperationResult.fail(ErrorKind.STORAGE, "Database error, please try again")


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Room).filter(Room.name == name)
    if exclude_id is not None:
        query = query.filter(Room.id != exclude_id)
    return db.query(query.exists()).scalar()


@storage_boundary("create a room", _storage_failure)
def create_room(db: Session, room_in: RoomCreate) -> OperationResult:
    name = room_in.name.strip()
    if not name or not room_in.room_type.strip():
        return OperationResult.fail(ErrorKind.VALIDATION, "All fields required")
    if _name_taken(db, name):
        return OperationResult.fail(ErrorKind.CONFLICT, "Name exists")

    room = Room(
        name=name,
        capacity=room_in.capacity,
        room_type=room_in.room_type.strip(),
        status=room_in.status,
        equipment=join_equipment(room_in.equipment),
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Created room %s (%s)", room.id, room.name)
    return OperationResult.ok("Room created", entity_id=room.id)


@storage_boundary("list rooms", list)
def list_rooms(db: Session) -> List[Room]:
    return db.query(Room).order_by(Room.name.asc()).all()


def get_room(db: Session, room_id: int) -> Optional[Room]:
    return db.get(Room, room_id)


@storage_boundary("update a room", _storage_failure)
def update_room(db: Session, room_id: int, room_update: RoomUpdate) -> OperationResult:
    room = db.get(Room, room_id)
    if room is None:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Room not found")

    # An explicit null means "leave unchanged", same as an omitted field.
    data = {key: value for key, value in room_update.model_dump(exclude_unset=True).items() if value is not None}
    for key in ("name", "room_type"):
        if key in data:
            data[key] = data[key].strip()
            if not data[key]:
                return OperationResult.fail(ErrorKind.VALIDATION, "All fields required")
    if "name" in data and _name_taken(db, data["name"], exclude_id=room_id):
        return OperationResult.fail(ErrorKind.CONFLICT, "Name exists")
    if "equipment" in data:
        data["equipment"] = join_equipment(data["equipment"])
    for key, value in data.items():
        setattr(room, key, value)

    db.commit()
    logger.info("Updated room %s: %s", room_id, sorted(data))
    return OperationResult.ok("Room updated", entity_id=room_id)


@storage_boundary("delete a room", _storage_failure)
def delete_room(db: Session, room_id: int) -> OperationResult:
    """Delete a room together with its schedule entries."""
    room = db.get(Room, room_id)
    if room is None:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Room not found")
    db.delete(room)
    db.commit()
    slot_locks.forget_room(room_id)
    logger.info("Deleted room %s", room_id)
    return OperationResult.ok("Room deleted", entity_id=room_id)


def _window_is_free(db: Session, room_id: int, day: DayOfWeek, start: int, end: int) -> bool:
    for entry in entries_for_day(db, room_id, day):
        entry_start = encode_time(entry.start_time)
        entry_end = encode_time(entry.end_time)
        if INVALID_TIME in (entry_start, entry_end):
            continue
        if overlaps(start, end, entry_start, entry_end):
            return False
    return True


@storage_boundary("search rooms", list)
def search_rooms(
    db: Session,
    day: Optional[DayOfWeek] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    room_type: Optional[str] = None,
    keyword: Optional[str] = None,
    min_capacity: Optional[int] = None,
    equipment: Optional[Iterable[str]] = None,
    target_status: Optional[RoomStatusEnum] = None,
) -> List[Room]:
    """Rooms matching the filters, ordered by name.

    A type of ``None`` or ``"All"`` matches every type. With a Maintenance
    target only rooms under repair match, and a Reserved target matches that
    flag. Otherwise the manual flag must not be an override and, when a day
    and a valid window are given, the room must be free of classes
    overlapping that window.
    """
    query = db.query(Room)
    if room_type and room_type.strip().lower() != "all":
        query = query.filter(Room.room_type.ilike(room_type.strip()))
    if keyword and keyword.strip():
        query = query.filter(Room.name.ilike(f"%{keyword.strip()}%"))
    if min_capacity:
        query = query.filter(Room.capacity >= min_capacity)

    target = target_status or RoomStatusEnum.AVAILABLE
    if target == RoomStatusEnum.MAINTENANCE:
        query = query.filter(Room.status == RoomStatusEnum.MAINTENANCE)
    elif target in (RoomStatusEnum.AVAILABLE, RoomStatusEnum.OCCUPIED):
        query = query.filter(Room.status.in_([RoomStatusEnum.AVAILABLE, RoomStatusEnum.OCCUPIED]))
    else:
        query = query.filter(Room.status == target)
    rooms = query.order_by(Room.name.asc()).all()

    wanted = {label.strip().lower() for label in (equipment or []) if label.strip()}
    if wanted:
        rooms = [room for room in rooms if wanted <= {label.lower() for label in split_equipment(room.equipment)}]

    start = encode_time(start_time) if start_time else INVALID_TIME
    end = encode_time(end_time) if end_time else INVALID_TIME
    if target == RoomStatusEnum.AVAILABLE and day is not None and INVALID_TIME not in (start, end) and start < end:
        rooms = [room for room in rooms if _window_is_free(db, room.id, day, start, end)]
    return rooms
