from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from classroom import schedule_store
from classroom.config import get_settings
from classroom.database import Base, engine, get_db
from classroom.dependencies import get_current_user
from classroom.logging_middleware import add_audit_middleware, configure_logging
from classroom.models import DayOfWeek, ScheduleEntry, User
from classroom.rate_limit import BOOKING_LIMIT, apply_rate_limiter, limiter
from classroom.responses import raise_for_failure
from classroom.schemas import OperationResult, ScheduleCreate, ScheduleRead, ScheduleResult

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    configure_logging()
    fastapi_app = FastAPI(title="Schedules Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "schedules")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "schedules"}


@app.post("/schedules", response_model=ScheduleResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(BOOKING_LIMIT)
def create_schedule(
    request: Request,
    schedule_in: ScheduleCreate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ScheduleResult:
    result = raise_for_failure(
        schedule_store.add_schedule(
            db,
            schedule_in.room_id,
            schedule_in.subject,
            schedule_in.professor,
            schedule_in.day_of_week,
            schedule_in.start_time,
            schedule_in.end_time,
        )
    )
    entry = schedule_store.get_schedule(db, result.entity_id)
    return ScheduleResult(**result.model_dump(), entry=ScheduleRead.model_validate(entry))


@app.get("/rooms/{room_id}/schedules", response_model=List[ScheduleRead])
@limiter.limit("60/minute")
def list_room_schedules(
    request: Request,
    room_id: int,
    day: Optional[DayOfWeek] = None,
    db: Session = Depends(get_db),
) -> List[ScheduleEntry]:
    if day is not None:
        return schedule_store.list_by_room_and_day(db, room_id, day)
    return schedule_store.list_by_room(db, room_id)


@app.get("/schedules/{entry_id}", response_model=ScheduleRead)
@limiter.limit("60/minute")
def get_schedule(request: Request, entry_id: int, db: Session = Depends(get_db)) -> ScheduleEntry:
    entry = schedule_store.get_schedule(db, entry_id)
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule not found")
    return entry


@app.delete("/schedules/{entry_id}", response_model=OperationResult)
@limiter.limit(BOOKING_LIMIT)
def delete_schedule(
    request: Request,
    entry_id: int,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OperationResult:
    return raise_for_failure(schedule_store.delete_schedule(db, entry_id))
