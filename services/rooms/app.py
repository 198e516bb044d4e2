from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from classroom import directory
from classroom.config import get_settings
from classroom.database import Base, engine, get_db
from classroom.dependencies import require_admin
from classroom.logging_middleware import add_audit_middleware, configure_logging
from classroom.models import DayOfWeek, Room, RoomStatusEnum, User
from classroom.rate_limit import apply_rate_limiter, limiter
from classroom.responses import raise_for_failure
from classroom.room_status import resolve_room_status
from classroom.schemas import RoomCreate, RoomRead, RoomUpdate, StatusDescriptor

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    configure_logging()
    fastapi_app = FastAPI(title="Rooms Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "rooms")
    return fastapi_app


app = create_app()


def _load_room(db: Session, room_id: int) -> Room:
    room = directory.get_room(db, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "rooms"}


@app.post("/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_room(
    request: Request,
    room_in: RoomCreate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Room:
    result = raise_for_failure(directory.create_room(db, room_in))
    return _load_room(db, result.entity_id)


@app.get("/rooms", response_model=List[RoomRead])
@limiter.limit("60/minute")
def list_rooms(request: Request, db: Session = Depends(get_db)) -> List[Room]:
    return directory.list_rooms(db)


@app.get("/rooms/search", response_model=List[RoomRead])
@limiter.limit("60/minute")
def search_rooms(
    request: Request,
    day: Optional[DayOfWeek] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    room_type: Optional[str] = None,
    keyword: Optional[str] = None,
    min_capacity: Optional[int] = Query(default=None, ge=1),
    equipment: Optional[List[str]] = Query(default=None),
    target_status: Optional[RoomStatusEnum] = None,
    db: Session = Depends(get_db),
) -> List[Room]:
    return directory.search_rooms(
        db,
        day=day,
        start_time=start_time,
        end_time=end_time,
        room_type=room_type,
        keyword=keyword,
        min_capacity=min_capacity,
        equipment=equipment,
        target_status=target_status,
    )


@app.get("/rooms/{room_id}", response_model=RoomRead)
@limiter.limit("60/minute")
def get_room(request: Request, room_id: int, db: Session = Depends(get_db)) -> Room:
    return _load_room(db, room_id)


@app.put("/rooms/{room_id}", response_model=RoomRead)
@limiter.limit("15/minute")
def update_room(
    request: Request,
    room_id: int,
    room_update: RoomUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Room:
    raise_for_failure(directory.update_room(db, room_id, room_update))
    room = _load_room(db, room_id)
    db.refresh(room)
    return room


@app.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("10/minute")
def delete_room(
    request: Request,
    room_id: int,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    raise_for_failure(directory.delete_room(db, room_id))


@app.get("/rooms/{room_id}/status", response_model=StatusDescriptor)
@limiter.limit("60/minute")
def room_status(
    request: Request,
    room_id: int,
    day: Optional[DayOfWeek] = None,
    db: Session = Depends(get_db),
) -> StatusDescriptor:
    result = raise_for_failure(resolve_room_status(db, room_id, day=day))
    return result.descriptor
