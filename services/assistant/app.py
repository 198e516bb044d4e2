from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func
from sqlalchemy.orm import Session

from classroom import directory
from classroom.assistant import AssistantClient
from classroom.config import get_settings
from classroom.database import Base, engine, get_db
from classroom.dependencies import get_assistant, get_current_user
from classroom.logging_middleware import add_audit_middleware, configure_logging
from classroom.models import DayOfWeek, Room, User
from classroom.rate_limit import ASSISTANT_LIMIT, apply_rate_limiter, limiter
from classroom.schemas import AssistantQuery, BookingDraft, RoomRead, RoomSearchResponse

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    configure_logging()
    fastapi_app = FastAPI(title="Assistant Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "assistant")
    return fastapi_app


app = create_app()


def _unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Could not understand the request right now, please fill the form manually",
    )


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "assistant"}


@app.post("/assistant/booking-draft", response_model=BookingDraft)
@limiter.limit(ASSISTANT_LIMIT)
def booking_draft(
    request: Request,
    query: AssistantQuery,
    _: User = Depends(get_current_user),
    assistant: AssistantClient = Depends(get_assistant),
    db: Session = Depends(get_db),
) -> BookingDraft:
    """Pre-fill values for the booking form; the booking itself is validated on submit."""
    draft = assistant.parse_booking_intent(query.text)
    if draft is None:
        raise _unavailable()

    day = DayOfWeek.parse(draft.day)
    if day is not None:
        draft.day = day.value
    if draft.room_name:
        room = db.query(Room).filter(func.lower(Room.name) == draft.room_name.strip().lower()).first()
        if room:
            draft.room_name = room.name
            draft.room_id = room.id
    return draft


@app.post("/assistant/room-search", response_model=RoomSearchResponse)
@limiter.limit(ASSISTANT_LIMIT)
def natural_room_search(
    request: Request,
    query: AssistantQuery,
    assistant: AssistantClient = Depends(get_assistant),
    db: Session = Depends(get_db),
) -> RoomSearchResponse:
    intent = assistant.parse_search_intent(query.text)
    if intent is None:
        raise _unavailable()

    rooms = directory.search_rooms(
        db,
        day=DayOfWeek.parse(intent.day),
        start_time=intent.start_time,
        end_time=intent.end_time,
        room_type=intent.room_type,
        keyword=intent.keyword,
        min_capacity=intent.min_capacity,
        equipment=intent.equipment,
        target_status=intent.target_status,
    )
    return RoomSearchResponse(intent=intent, rooms=[RoomRead.model_validate(room) for room in rooms])
