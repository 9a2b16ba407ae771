"""
Invoice payment lifecycle.

States: Unpaid -> Partial -> Paid, plus Void.

Rules enforced here (no persistence, no side effects):

- Paid requires received >= receivable.
- Partial requires 0 < received < receivable.
- A Paid invoice can only leave Paid when its amounts change in the same
  update; it is then demoted to Unpaid with its payments reset.
- A Partial invoice can only move to Paid.
- A Void invoice can only return to Unpaid.
- When no status is requested the status is inferred from the received amount,
  except that a Void invoice stays Void.

Every rejection is a ``ValidationError`` raised before the caller writes anything.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from billing.common.exceptions import ValidationError
from billing.modules.invoices.models import InvoiceStatus
from billing.modules.taxes.calculator import round_money, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass
class StatusDecision:
    status: InvoiceStatus
    received_amount: Decimal
    paid_amount: Decimal
    demoted: bool = False


def infer_status(received_amount, receivable_amount) -> InvoiceStatus:
    received = to_decimal(received_amount)
    receivable = to_decimal(receivable_amount)
    if receivable > 0 and received >= receivable:
        return InvoiceStatus.PAID
    if received > 0:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


def _require_paid(received: Decimal, receivable: Decimal):
    if received < receivable:
        shortfall = round_money(receivable - received)
        raise ValidationError(
            f"Cannot mark invoice as Paid: received amount {received} is less than "
            f"receivable amount {receivable} (shortfall {shortfall})"
        )


def _require_partial(received: Decimal, receivable: Decimal):
    if received <= 0:
        raise ValidationError("Cannot mark invoice as Partial: received amount must be greater than 0")
    if received >= receivable:
        raise ValidationError(
            f"Cannot mark invoice as Partial: received amount {received} covers the "
            f"receivable amount {receivable}; mark it as Paid instead"
        )


def check_void(current: InvoiceStatus):
    """Raise unless ``current`` may be voided."""
    if current == InvoiceStatus.VOID:
        raise ValidationError("Invoice is already voided")
    if current == InvoiceStatus.PAID:
        raise ValidationError("Cannot void a paid invoice")
    if current == InvoiceStatus.PARTIAL:
        raise ValidationError("Cannot void a partially paid invoice")


def _check_transition(current: InvoiceStatus, target: InvoiceStatus, received: Decimal, receivable: Decimal):
    if current == InvoiceStatus.VOID:
        if target != InvoiceStatus.UNPAID:
            raise ValidationError(f"Cannot change a voided invoice to {target.value}; restore it to Unpaid first")
        return

    if current == InvoiceStatus.PAID:
        raise ValidationError(
            f"Cannot change a paid invoice to {target.value} unless its amounts are edited"
        )

    if current == InvoiceStatus.PARTIAL and target != InvoiceStatus.PAID:
        raise ValidationError(f"Cannot change a partially paid invoice to {target.value}")

    if target == InvoiceStatus.PAID:
        _require_paid(received, receivable)
    elif target == InvoiceStatus.PARTIAL:
        _require_partial(received, receivable)


def resolve_status(
    current: Optional[InvoiceStatus],
    requested: Optional[InvoiceStatus],
    received_amount,
    receivable_amount,
    amounts_changed: bool = False,
    received_supplied: bool = False
) -> StatusDecision:
    """
    Decide the status an invoice ends up in after a save.

    Args:
        current: Stored status, or None for a new invoice
        requested: Status the caller asked for, or None
        received_amount: Received amount after the save (stored value if not supplied)
        receivable_amount: Freshly recomputed receivable
        amounts_changed: An amount-affecting field changed in this save
        received_supplied: The caller sent a received amount

    Returns:
        StatusDecision with the final status and the received/paid amounts to store

    Raises:
        ValidationError: The transition is not allowed
    """
    received = round_money(received_amount)
    receivable = round_money(receivable_amount)
    demoted = False

    if requested is not None and requested == current:
        requested = None

    if current == InvoiceStatus.PAID and amounts_changed:
        logger.info("Amounts changed on a paid invoice; demoting to Unpaid")
        current = InvoiceStatus.UNPAID
        demoted = True
        if not received_supplied:
            received = ZERO
        if requested is None and not received_supplied:
            return StatusDecision(InvoiceStatus.UNPAID, ZERO, ZERO, demoted=True)
        if requested == InvoiceStatus.UNPAID:
            return StatusDecision(InvoiceStatus.UNPAID, received, received, demoted=True)

    if current is None:
        current = InvoiceStatus.UNPAID

    if requested is not None:
        _check_transition(current, requested, received, receivable)
        return StatusDecision(requested, received, received, demoted=demoted)

    if current == InvoiceStatus.VOID:
        return StatusDecision(InvoiceStatus.VOID, received, received, demoted=demoted)

    if received_supplied or amounts_changed:
        inferred = infer_status(received, receivable)
        if current == InvoiceStatus.PARTIAL and inferred == InvoiceStatus.UNPAID:
            raise ValidationError("Cannot change a partially paid invoice to Unpaid")
        if current == InvoiceStatus.PAID and inferred != InvoiceStatus.PAID:
            raise ValidationError(
                f"Cannot change a paid invoice to {inferred.value} unless its amounts are edited"
            )
        return StatusDecision(inferred, received, received, demoted=demoted)

    return StatusDecision(current, received, received, demoted=demoted)
