"""Order status state machine.

OPEN is the only non-terminal state; COMPLETED and CANCELLED accept no
further transitions. Every mutation here loads the order row with a lock
and commits once, so concurrent transitions on the same order serialize.
"""
from datetime import date, datetime
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from workshop.core.errors import NotFound, TransitionConflict, ValidationFailed
from workshop.db.base import utcnow
from workshop.models.maintenance_order import (
    REMINDER_STEP_4_MONTHS,
    MaintenanceOrder,
    OrderStatus,
)
from workshop.services.audit_service import log_action
from workshop.services.schedule_service import (
    advance_reminder_step,
    reminder_anchor,
    reminder_due_at,
    resolve_next_maintenance_date,
)

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.OPEN.value: frozenset(
        {
            OrderStatus.COMPLETED.value,
            OrderStatus.CANCELLED.value,
        }
    ),
    OrderStatus.COMPLETED.value: frozenset(),
    OrderStatus.CANCELLED.value: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def _status_value(status) -> str:
    return status.value if isinstance(status, OrderStatus) else str(status)


def is_terminal(status) -> bool:
    return _status_value(status) in TERMINAL_STATUSES


def can_transition(current, target) -> bool:
    return _status_value(target) in ALLOWED_TRANSITIONS.get(_status_value(current), frozenset())


def ensure_transition(current, target) -> None:
    if not can_transition(current, target):
        raise TransitionConflict(
            f"Cannot move order from {_status_value(current)} to {_status_value(target)}"
        )


def apply_completion(
    order: MaintenanceOrder,
    delivery_date: date,
    next_maintenance_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> MaintenanceOrder:
    if delivery_date is None:
        raise ValidationFailed("delivery_date", "Delivery date is required to complete an order")

    now = now or utcnow()

    order.status = OrderStatus.COMPLETED.value
    order.delivery_date = delivery_date
    order.closed_at = now
    order.next_maintenance_date = resolve_next_maintenance_date(delivery_date, next_maintenance_date)

    # A reminder that has not fired yet is re-anchored on the delivery.
    if order.next_reminder_step == REMINDER_STEP_4_MONTHS:
        anchor = reminder_anchor(delivery_date, order.opened_at)
        order.next_reminder_at = reminder_due_at(anchor, REMINDER_STEP_4_MONTHS)

    return order


def apply_cancellation(order: MaintenanceOrder, now: Optional[datetime] = None) -> MaintenanceOrder:
    order.status = OrderStatus.CANCELLED.value
    order.closed_at = now or utcnow()
    order.next_reminder_step = None
    order.next_reminder_at = None
    return order


def load_order_for_update(db: Session, order_id: str) -> MaintenanceOrder:
    order = (
        db.query(MaintenanceOrder)
        .filter(MaintenanceOrder.id == order_id)
        .with_for_update()
        .first()
    )
    if not order:
        raise NotFound("Maintenance order", order_id)
    return order


def complete_order(
    db: Session,
    order_id: str,
    delivery_date: Optional[date] = None,
    next_maintenance_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> MaintenanceOrder:
    now = now or utcnow()
    order = load_order_for_update(db, order_id)
    ensure_transition(order.status, OrderStatus.COMPLETED)

    apply_completion(order, delivery_date or now.date(), next_maintenance_date, now)

    log_action(
        db=db,
        action="COMPLETE_ORDER",
        entity_type="MaintenanceOrder",
        entity_id=order.id,
        details=(
            f"Delivered: {order.delivery_date.isoformat()} | "
            f"Next maintenance: {order.next_maintenance_date.isoformat()}"
        ),
    )
    db.commit()
    db.refresh(order)

    logger.info("order_completed", order_id=order.id, delivery_date=str(order.delivery_date))
    return order


def cancel_order(db: Session, order_id: str, now: Optional[datetime] = None) -> MaintenanceOrder:
    order = load_order_for_update(db, order_id)
    ensure_transition(order.status, OrderStatus.CANCELLED)

    apply_cancellation(order, now)

    log_action(
        db=db,
        action="CANCEL_ORDER",
        entity_type="MaintenanceOrder",
        entity_id=order.id,
    )
    db.commit()
    db.refresh(order)

    logger.info("order_cancelled", order_id=order.id)
    return order


def transition_order(
    db: Session,
    order_id: str,
    target: OrderStatus,
    delivery_date: Optional[date] = None,
    next_maintenance_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> MaintenanceOrder:
    if _status_value(target) == OrderStatus.COMPLETED.value:
        return complete_order(db, order_id, delivery_date, next_maintenance_date, now)
    if _status_value(target) == OrderStatus.CANCELLED.value:
        return cancel_order(db, order_id, now)

    order = load_order_for_update(db, order_id)
    ensure_transition(order.status, target)
    return order


def advance_reminder(
    db: Session,
    order_id: str,
    current_step: Optional[str],
) -> MaintenanceOrder:
    order = load_order_for_update(db, order_id)

    if order.next_reminder_step != current_step:
        raise TransitionConflict(
            f"Reminder step is {order.next_reminder_step!r}, not {current_step!r}"
        )

    next_step = advance_reminder_step(current_step)
    anchor = reminder_anchor(order.delivery_date, order.opened_at)

    order.next_reminder_step = next_step
    order.next_reminder_at = reminder_due_at(anchor, next_step)

    log_action(
        db=db,
        action="ADVANCE_REMINDER",
        entity_type="MaintenanceOrder",
        entity_id=order.id,
        details=f"{current_step} -> {next_step}",
    )
    db.commit()
    db.refresh(order)

    logger.info("reminder_advanced", order_id=order.id, step=next_step)
    return order
