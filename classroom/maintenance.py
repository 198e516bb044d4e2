"""Persisted maintenance tickets filed by users and resolved by administrators."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .database import storage_boundary
from .models import MaintenanceTicket, Room, TicketStatusEnum
from .schemas import ErrorKind, MaintenanceAnalysis, OperationResult

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 60
DEFAULT_ACTION = "Review on site"


def _storage_failure() -> OperationResult:
    return OperationResult.fail(ErrorKind.STORAGE, "Database error, please try again")


def fallback_analysis(description: str) -> MaintenanceAnalysis:
    """Analysis used when the assistant could not classify the report."""
    text = " ".join(description.split())
    summary = text if len(text) <= SUMMARY_LENGTH else text[: SUMMARY_LENGTH - 3].rstrip() + "..."
    return MaintenanceAnalysis(category="Other", urgency="Medium", summary=summary, suggested_action=DEFAULT_ACTION)


@storage_boundary("file a maintenance ticket", _storage_failure)
def add_ticket(
    db: Session,
    description: str,
    analysis: Optional[MaintenanceAnalysis] = None,
    room_id: Optional[int] = None,
    reporter_id: Optional[int] = None,
) -> OperationResult:
    if not description or not description.strip():
        return OperationResult.fail(ErrorKind.VALIDATION, "Description is required")
    if room_id is not None and db.get(Room, room_id) is None:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Room not found")

    analysis = analysis or fallback_analysis(description)
    ticket = MaintenanceTicket(
        room_id=room_id,
        reporter_id=reporter_id,
        description=description.strip(),
        category=analysis.category,
        urgency=analysis.urgency,
        summary=analysis.summary or fallback_analysis(description).summary,
        suggested_action=analysis.suggested_action or DEFAULT_ACTION,
        status=TicketStatusEnum.PENDING,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("Filed ticket %s (%s/%s)", ticket.id, ticket.category, ticket.urgency)
    return OperationResult.ok("Report submitted", entity_id=ticket.id)


@storage_boundary("list maintenance tickets", list)
def list_tickets(db: Session, status: Optional[TicketStatusEnum] = None) -> List[MaintenanceTicket]:
    """Tickets newest first."""
    query = db.query(MaintenanceTicket)
    if status is not None:
        query = query.filter(MaintenanceTicket.status == status)
    return query.order_by(MaintenanceTicket.created_at.desc(), MaintenanceTicket.id.desc()).all()


def get_ticket(db: Session, ticket_id: int) -> Optional[MaintenanceTicket]:
    return db.get(MaintenanceTicket, ticket_id)


@storage_boundary("update a maintenance ticket", _storage_failure)
def update_ticket_status(db: Session, ticket_id: int, status: TicketStatusEnum) -> OperationResult:
    ticket = db.get(MaintenanceTicket, ticket_id)
    if ticket is None:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket not found")
    ticket.status = status
    ticket.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Ticket %s is now %s", ticket_id, status.value)
    return OperationResult.ok("Ticket updated", entity_id=ticket_id)


@storage_boundary("delete a maintenance ticket", _storage_failure)
def delete_ticket(db: Session, ticket_id: int) -> OperationResult:
    deleted = db.query(MaintenanceTicket).filter(MaintenanceTicket.id == ticket_id).delete(synchronize_session=False)
    db.commit()
    if not deleted:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket not found")
    return OperationResult.ok("Ticket deleted", entity_id=ticket_id)
