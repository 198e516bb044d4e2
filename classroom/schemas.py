"""Pydantic schemas shared across the services."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import DayOfWeek, RoleEnum, RoomStatusEnum, TicketStatusEnum

SETTABLE_ROOM_STATUSES = {RoomStatusEnum.AVAILABLE, RoomStatusEnum.RESERVED, RoomStatusEnum.MAINTENANCE}
TICKET_CATEGORIES = ("Electrical", "Plumbing", "HVAC", "Equipment", "Cleaning", "Other")
TICKET_URGENCIES = ("Low", "Medium", "High", "Critical")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STORAGE = "storage"


class OperationResult(BaseModel):
    success: bool
    message: str = ""
    error: Optional[ErrorKind] = None
    entity_id: Optional[int] = None

    @classmethod
    def ok(cls, message: str = "", entity_id: Optional[int] = None) -> "OperationResult":
        return cls(success=True, message=message, entity_id=entity_id)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=error)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: RoleEnum = RoleEnum.USER


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)


class UserRead(UserBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _check_settable_status(value: Optional[RoomStatusEnum]) -> Optional[RoomStatusEnum]:
    if value is not None and value not in SETTABLE_ROOM_STATUSES:
        raise ValueError("Occupied is derived from the schedule and cannot be set manually")
    return value


class RoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., gt=0)
    room_type: str = Field(..., min_length=1, max_length=100)
    equipment: List[str] = Field(default_factory=list)


class RoomCreate(RoomBase):
    status: RoomStatusEnum = RoomStatusEnum.AVAILABLE

    @field_validator("status")
    @classmethod
    def settable_status(cls, value: Optional[RoomStatusEnum]) -> Optional[RoomStatusEnum]:
        return _check_settable_status(value)


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(None, gt=0)
    room_type: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[RoomStatusEnum] = None
    equipment: Optional[List[str]] = None

    @field_validator("status")
    @classmethod
    def settable_status(cls, value: Optional[RoomStatusEnum]) -> Optional[RoomStatusEnum]:
        return _check_settable_status(value)


class RoomRead(RoomBase):
    id: int
    status: RoomStatusEnum

    model_config = ConfigDict(from_attributes=True)

    @field_validator("equipment", mode="before")
    @classmethod
    def split_stored_equipment(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class ScheduleCreate(BaseModel):
    room_id: int
    subject: str = ""
    professor: str = ""
    day_of_week: str = ""
    start_time: str = ""
    end_time: str = ""


class ScheduleRead(BaseModel):
    id: int
    room_id: int
    subject: str
    professor: str
    day_of_week: DayOfWeek
    start_time: str
    end_time: str

    model_config = ConfigDict(from_attributes=True)


class ScheduleResult(OperationResult):
    entry: Optional[ScheduleRead] = None


class StatusDescriptor(BaseModel):
    room_id: int
    status: RoomStatusEnum
    color: str
    message: str
    day: DayOfWeek


class StatusResult(OperationResult):
    descriptor: Optional[StatusDescriptor] = None


class MaintenanceAnalysis(BaseModel):
    category: str = "Other"
    urgency: str = "Medium"
    summary: str = ""
    suggested_action: str = Field("", validation_alias=AliasChoices("suggestedAction", "suggested_action"))

    @field_validator("summary", "suggested_action", mode="before")
    @classmethod
    def blank_text(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, value: object) -> str:
        if isinstance(value, str):
            for category in TICKET_CATEGORIES:
                if value.strip().lower() == category.lower():
                    return category
        return "Other"

    @field_validator("urgency", mode="before")
    @classmethod
    def known_urgency(cls, value: object) -> str:
        if isinstance(value, str):
            for urgency in TICKET_URGENCIES:
                if value.strip().lower() == urgency.lower():
                    return urgency
        return "Medium"


class TicketCreate(BaseModel):
    description: str = Field(..., min_length=3, max_length=2000)
    room_id: Optional[int] = None


class TicketStatusUpdate(BaseModel):
    status: TicketStatusEnum


class TicketRead(BaseModel):
    id: int
    room_id: Optional[int]
    reporter_id: Optional[int]
    description: str
    category: str
    urgency: str
    summary: str
    suggested_action: str
    status: TicketStatusEnum
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class AssistantQuery(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class BookingDraft(BaseModel):
    """Best-effort booking fields extracted from free text; never trusted as-is."""

    subject: Optional[str] = None
    room_name: Optional[str] = Field(None, validation_alias=AliasChoices("roomName", "room_name"))
    day: Optional[str] = None
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("startTime", "start_time"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("endTime", "end_time"))
    professor: Optional[str] = None
    room_id: Optional[int] = None


class SearchIntent(BaseModel):
    day: Optional[str] = None
    room_type: Optional[str] = Field(None, validation_alias=AliasChoices("filterType", "room_type"))
    keyword: Optional[str] = Field(None, validation_alias=AliasChoices("searchKeyword", "keyword"))
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("startTime", "start_time"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("endTime", "end_time"))
    min_capacity: Optional[int] = Field(None, validation_alias=AliasChoices("minCapacity", "min_capacity"))
    equipment: List[str] = Field(default_factory=list)
    target_status: Optional[RoomStatusEnum] = Field(None, validation_alias=AliasChoices("targetStatus", "target_status"))

    @field_validator("equipment", mode="before")
    @classmethod
    def null_equipment(cls, value: object) -> object:
        return value or []

    @field_validator("target_status", mode="before")
    @classmethod
    def lenient_status(cls, value: object) -> object:
        if isinstance(value, str):
            for status in RoomStatusEnum:
                if value.strip().lower() == status.value.lower():
                    return status
        return None


class RoomSearchResponse(BaseModel):
    intent: SearchIntent
    rooms: List[RoomRead]
