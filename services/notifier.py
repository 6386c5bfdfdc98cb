import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = "booking_sender"

LABEL_CONFIRMED = "Confirmed"
LABEL_CANCELLED = "Cancelled"


@dataclass(frozen=True)
class Notice:
    booking_id: int
    order_id: str
    to_email: Optional[str]
    recipient_name: str
    slot_date: str
    slot_time: str
    status_label: str


@dataclass(frozen=True)
class DeliveryResult:
    notice: Notice
    delivered: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "booking_id": self.notice.booking_id,
            "order_id": self.notice.order_id,
            "status": self.notice.status_label,
            "delivered": self.delivered,
            "error": self.error,
        }


def notice_for(booking, slot, user, status_label: str) -> Notice:
    return Notice(
        booking_id=booking.id,
        order_id=booking.order_id,
        to_email=getattr(user, "email", None),
        recipient_name=getattr(user, "name", "") or "",
        slot_date=slot.date,
        slot_time=slot.time,
        status_label=status_label,
    )


def install_sender(app, sender):
    app.extensions[EXTENSION_KEY] = sender
    return sender


def get_sender():
    sender = current_app.extensions.get(EXTENSION_KEY)
    if sender is None:
        from utils.emailer import send_booking_email
        sender = send_booking_email
    return sender


def deliver(notice: Notice, sender) -> DeliveryResult:
    """Send one notice. Never raises: every failure ends up in the result."""
    if not notice.to_email:
        return DeliveryResult(notice, False, "No email address")

    try:
        outcome = sender(
            notice.to_email,
            notice.recipient_name,
            notice.slot_date,
            notice.slot_time,
            notice.order_id,
            notice.status_label,
        )
    except Exception as exc:
        logger.warning(
            "Failed to send %s email to %s for %s: %s",
            notice.status_label, notice.to_email, notice.order_id, exc,
        )
        return DeliveryResult(notice, False, str(exc) or exc.__class__.__name__)

    # Senders may report failure instead of raising: (ok, error) like send_email
    if isinstance(outcome, tuple):
        ok = outcome[0] if outcome else False
        error = outcome[1] if len(outcome) > 1 else None
        if not ok:
            logger.warning(
                "Failed to send %s email to %s for %s: %s",
                notice.status_label, notice.to_email, notice.order_id, error,
            )
            return DeliveryResult(notice, False, error or "Sender reported failure")
    elif outcome is False:
        logger.warning("Failed to send %s email to %s for %s", notice.status_label, notice.to_email, notice.order_id)
        return DeliveryResult(notice, False, "Sender reported failure")

    logger.info("Sent %s email to %s for %s", notice.status_label, notice.to_email, notice.order_id)
    return DeliveryResult(notice, True)


def dispatch_all(notices, sender=None) -> list:
    """Deliver notices one after another; a failing recipient never stops the rest."""
    sender = sender or get_sender()
    return [deliver(n, sender) for n in notices]
