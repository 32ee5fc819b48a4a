"""Ledger change events and the in-process channel that carries them"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from lendbook.domain.models import ReminderTarget
from lendbook.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class LedgerEventKind(str, Enum):
    DEBTOR_CHANGED = "debtor_changed"
    AGREEMENT_CREATED = "agreement_created"
    AGREEMENT_DELETED = "agreement_deleted"
    PAYMENT_REGISTERED = "payment_registered"
    PAYMENT_UNDONE = "payment_undone"
    STATUS_OVERRIDDEN = "status_overridden"


@dataclass(frozen=True)
class LedgerEvent:
    """
    A committed ledger change, scoped to the entities it touched.

    Reminder consumers cancel everything known for `agreement_id` and, unless
    the agreement is closed, schedule `reminder` (the next open installment).
    """

    kind: LedgerEventKind
    debtor_id: uuid.UUID
    agreement_id: Optional[uuid.UUID] = None
    installment_id: Optional[uuid.UUID] = None
    installment_number: Optional[int] = None
    due_date: Optional[date] = None
    agreement_closed: Optional[bool] = None
    closure_changed: bool = False
    reminder: Optional[ReminderTarget] = None
    occurred_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready representation for outbound delivery"""
        return {
            "event": self.kind.value,
            "debtor_id": str(self.debtor_id),
            "agreement_id": str(self.agreement_id) if self.agreement_id else None,
            "installment_id": str(self.installment_id) if self.installment_id else None,
            "installment_number": self.installment_number,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "agreement_closed": self.agreement_closed,
            "closure_changed": self.closure_changed,
            "reminder": (
                {
                    "installment_number": self.reminder.installment_number,
                    "due_date": self.reminder.due_date.isoformat(),
                    "remaining_cents": self.reminder.remaining_cents,
                }
                if self.reminder
                else None
            ),
            "occurred_at": self.occurred_at.isoformat(),
        }


EventHandler = Callable[[LedgerEvent], None]


class EventBus:
    """Explicit publish/subscribe channel for ledger events"""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it"""
        self._handlers.append(handler)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, event: LedgerEvent) -> None:
        """
        Deliver an event to every subscriber.

        Called only after a successful commit. A failing subscriber is logged
        and skipped: the ledger change it reports is already durable.
        """
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Ledger event handler failed",
                    extra={"event_kind": event.kind.value, "agreement_id": str(event.agreement_id)},
                )
