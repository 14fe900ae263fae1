# =============================================================================
# core/models/order.py - Order Schemas
# =============================================================================
# An order moves strictly forward:
#
#   pending --(user requests payment)--> paid
#   paid    --(admin approves)---------> approved
#   approved --(ready-for-pickup email)-> completed
#
# ALLOWED_TRANSITIONS lists, for each target status, the statuses an order
# may come from. The record store applies the same set as a guard inside
# the UPDATE, so a status can never move backwards.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """
    Possible states for an order.

    - pending: photo uploaded, waiting for the user to pay
    - paid: user says they paid; admin has been emailed an approval link
    - approved: admin confirmed payment; a verification code was issued
    - completed: admin sent the ready-for-pickup email
    """
    PENDING = "pending"
    PAID = "paid"
    APPROVED = "approved"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _SEQUENCE.index(self)

    def is_at_least(self, other: "OrderStatus") -> bool:
        """True if this status is `other` or later in the lifecycle."""
        return self.rank >= other.rank

    def can_move_to(self, target: "OrderStatus") -> bool:
        """True if an order in this status may transition to `target`."""
        return self in ALLOWED_TRANSITIONS.get(target, frozenset())


_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.APPROVED,
    OrderStatus.COMPLETED,
]

# target -> statuses it may be reached from
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PAID: frozenset({OrderStatus.PENDING}),
    # Admins may approve payments made out-of-band before the user clicked
    # "request payment".
    OrderStatus.APPROVED: frozenset({OrderStatus.PENDING, OrderStatus.PAID}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.APPROVED}),
}

# Timestamp column stamped when an order enters each status
TRANSITION_TIMESTAMPS: dict[OrderStatus, str] = {
    OrderStatus.PAID: "payment_requested_at",
    OrderStatus.APPROVED: "approved_at",
    OrderStatus.COMPLETED: "completed_at",
}


def source_statuses(target: OrderStatus) -> list[str]:
    """Status values an order may be in before moving to `target`."""
    return sorted(s.value for s in ALLOWED_TRANSITIONS[target])


class Order(BaseModel):
    """
    One row of the orders table.

    Extra columns from the database are kept so responses stay faithful to
    what is stored.
    """

    model_config = ConfigDict(extra="allow")

    id: Any
    user_email: str
    status: OrderStatus = OrderStatus.PENDING
    dropbox_folder: str | None = None
    dropbox_link: str | None = None
    file_path: str | None = None
    country: str | None = None
    phone: str | None = None
    address: str | None = None
    pickup_instructions: str | None = None
    verification_code: str | None = None
    created_at: datetime | None = None
    payment_requested_at: datetime | None = None
    approved_at: datetime | None = None
    completed_at: datetime | None = None


class UploadRequest(BaseModel):
    """Fields accepted by the upload action (all validated by the service)."""

    file_name: str | None = Field(default=None, alias="fileName")
    file_data: str | None = Field(default=None, alias="fileData")
    country: str | None = None
    phone: str | None = None
    address: str | None = None

    model_config = ConfigDict(populate_by_name=True)
