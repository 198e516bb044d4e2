from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from classroom import maintenance
from classroom.assistant import AssistantClient
from classroom.config import get_settings
from classroom.database import Base, engine, get_db
from classroom.dependencies import get_assistant, get_current_user, require_admin
from classroom.logging_middleware import add_audit_middleware, configure_logging
from classroom.models import MaintenanceTicket, TicketStatusEnum, User
from classroom.rate_limit import ASSISTANT_LIMIT, apply_rate_limiter, limiter
from classroom.responses import raise_for_failure
from classroom.schemas import OperationResult, TicketCreate, TicketRead, TicketStatusUpdate

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    configure_logging()
    fastapi_app = FastAPI(title="Maintenance Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "maintenance")
    return fastapi_app


app = create_app()


def _load_ticket(db: Session, ticket_id: int) -> MaintenanceTicket:
    ticket = maintenance.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    return ticket


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "maintenance"}


@app.post("/maintenance", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(ASSISTANT_LIMIT)
def report_issue(
    request: Request,
    ticket_in: TicketCreate,
    current_user: User = Depends(get_current_user),
    assistant: AssistantClient = Depends(get_assistant),
    db: Session = Depends(get_db),
) -> MaintenanceTicket:
    analysis = assistant.analyze_maintenance_issue(ticket_in.description)
    result = raise_for_failure(
        maintenance.add_ticket(
            db,
            ticket_in.description,
            analysis=analysis,
            room_id=ticket_in.room_id,
            reporter_id=current_user.id,
        )
    )
    return _load_ticket(db, result.entity_id)


@app.get("/maintenance", response_model=List[TicketRead])
@limiter.limit("30/minute")
def list_tickets(
    request: Request,
    ticket_status: Optional[TicketStatusEnum] = None,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[MaintenanceTicket]:
    return maintenance.list_tickets(db, status=ticket_status)


@app.patch("/maintenance/{ticket_id}", response_model=TicketRead)
@limiter.limit("30/minute")
def update_ticket(
    request: Request,
    ticket_id: int,
    update: TicketStatusUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MaintenanceTicket:
    raise_for_failure(maintenance.update_ticket_status(db, ticket_id, update.status))
    ticket = _load_ticket(db, ticket_id)
    db.refresh(ticket)
    return ticket


@app.delete("/maintenance/{ticket_id}", response_model=OperationResult)
@limiter.limit("30/minute")
def delete_ticket(
    request: Request,
    ticket_id: int,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> OperationResult:
    return raise_for_failure(maintenance.delete_ticket(db, ticket_id))
