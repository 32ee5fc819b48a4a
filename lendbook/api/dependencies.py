"""Dependency injection for FastAPI endpoints"""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from lendbook.domain.events import EventBus, LedgerEvent
from lendbook.infrastructure.clients.reminders import ReminderWebhookClient
from lendbook.infrastructure.database.session import get_db
from lendbook.services.credit import CreditProfileService
from lendbook.services.ledger import LedgerService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_reminder_client() -> ReminderWebhookClient:
    """Provide reminder webhook client instance"""
    return ReminderWebhookClient()


def get_event_bus(
    background_tasks: BackgroundTasks,
    reminder_client: ReminderWebhookClient = Depends(get_reminder_client),
) -> EventBus:
    """
    Per-request event bus.

    Committed ledger events are handed to the reminder webhook as background
    tasks, which run after the response is sent.
    """
    bus = EventBus()
    if reminder_client.enabled:
        def forward(event: LedgerEvent) -> None:
            background_tasks.add_task(reminder_client.send_ledger_event, event.to_payload())

        bus.subscribe(forward)
    return bus


def get_ledger_service(
    db: Session = Depends(get_db),
    event_bus: EventBus = Depends(get_event_bus),
) -> LedgerService:
    return LedgerService(db, event_bus)


def get_credit_service(db: Session = Depends(get_db)) -> CreditProfileService:
    return CreditProfileService(db)
