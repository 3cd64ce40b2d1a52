"""Reservation domain constants."""

from django.db import models


class ReservationStatus(models.TextChoices):
    PENDING_PRODUCER_APPROVAL = "pending_producer_approval", "Pending producer approval"
    PENDING_PAYMENT = "pending_payment", "Pending payment"
    PLACED = "placed", "Placed"
    APPROVED = "approved", "Approved"
    PARTLY_APPROVED = "partly_approved", "Partly approved"
    CONFIRMED = "confirmed", "Confirmed"
    DECLINED = "declined", "Declined"
    REJECTED = "rejected", "Rejected"


# Reservations whose bottles count towards pallet fill and MOQ totals.
ACTIVE_STATUSES: frozenset[str] = frozenset(
    {
        ReservationStatus.PLACED,
        ReservationStatus.APPROVED,
        ReservationStatus.PARTLY_APPROVED,
        ReservationStatus.PENDING_PAYMENT,
        ReservationStatus.CONFIRMED,
    }
)

# Reservations moved to ``pending_payment`` when their pallet completes.
AWAITING_PAYMENT_ON_COMPLETION: frozenset[str] = frozenset(
    {
        ReservationStatus.PLACED,
        ReservationStatus.APPROVED,
        ReservationStatus.PARTLY_APPROVED,
    }
)

TERMINAL_STATES: frozenset[str] = frozenset(
    {ReservationStatus.DECLINED, ReservationStatus.REJECTED}
)

BOTTLES_PER_CASE = 6
