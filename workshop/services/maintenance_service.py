import uuid
from datetime import datetime, time
from typing import Optional

import structlog
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from workshop.core.config import settings
from workshop.core.errors import NotFound, TransitionConflict, ValidationFailed
from workshop.db.base import utcnow
from workshop.models.client import Client
from workshop.models.maintenance_order import (
    REMINDER_STEP_4_MONTHS,
    MaintenanceOrder,
    OrderStatus,
)
from workshop.schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceFilters,
    MaintenanceUpdate,
)
from workshop.services.audit_service import log_action
from workshop.services.cost_service import serialize_costs, total_cost
from workshop.services.lifecycle_service import (
    apply_cancellation,
    apply_completion,
    ensure_transition,
    is_terminal,
    load_order_for_update,
)
from workshop.services.schedule_service import (
    derive_next_maintenance_date,
    reminder_anchor,
    reminder_due_at,
)

logger = structlog.get_logger(__name__)


def new_order_id() -> str:
    return f"maint_{uuid.uuid4().hex}"


def _require_client(db: Session, client_id: str) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFound("Client", client_id)
    return client


def _itemized_costs(data: MaintenanceCreate | MaintenanceUpdate) -> list[dict]:
    if data.costs:
        return serialize_costs(data.costs)

    # Legacy forms only send the flat figure.
    if data.internal_cost is not None:
        return serialize_costs([{"name": settings.LEGACY_COST_LABEL, "value": data.internal_cost}])

    return []


def _apply_target_status(order: MaintenanceOrder, data, now: datetime) -> None:
    target = data.status.value if data.status else order.status

    if target == order.status:
        if order.status == OrderStatus.COMPLETED.value and order.delivery_date is None:
            raise ValidationFailed("delivery_date", "Completed orders must keep a delivery date")
        return

    ensure_transition(order.status, target)

    if target == OrderStatus.COMPLETED.value:
        if data.delivery_date is None:
            raise ValidationFailed("delivery_date", "Delivery date is required to complete an order")
        apply_completion(order, data.delivery_date, data.next_maintenance_date, now)
    elif target == OrderStatus.CANCELLED.value:
        apply_cancellation(order, now)


def create_order(
    db: Session,
    data: MaintenanceCreate,
    now: Optional[datetime] = None,
) -> MaintenanceOrder:
    now = now or utcnow()
    _require_client(db, data.client_id)

    costs = _itemized_costs(data)
    anchor = reminder_anchor(data.delivery_date, now)

    order = MaintenanceOrder(
        id=new_order_id(),
        client_id=data.client_id,
        equipment=data.equipment or None,
        service_title=data.service_title,
        description=data.description,
        value=data.value,
        costs=costs,
        internal_cost=total_cost(costs) if costs else None,
        status=OrderStatus.OPEN.value,
        opened_at=now,
        start_date=data.start_date,
        delivery_date=data.delivery_date,
        next_maintenance_date=data.next_maintenance_date,
        next_reminder_step=REMINDER_STEP_4_MONTHS,
        next_reminder_at=reminder_due_at(anchor, REMINDER_STEP_4_MONTHS),
    )

    if data.delivery_date and data.next_maintenance_date is None:
        order.next_maintenance_date = derive_next_maintenance_date(data.delivery_date)

    _apply_target_status(order, data, now)

    db.add(order)
    log_action(
        db=db,
        action="CREATE_ORDER",
        entity_type="MaintenanceOrder",
        entity_id=order.id,
        details=f"Client: {order.client_id} | Value: {order.value} | Status: {order.status}",
    )
    db.commit()
    db.refresh(order)

    logger.info("order_created", order_id=order.id, status=order.status)
    return order


def update_order(
    db: Session,
    order_id: str,
    data: MaintenanceUpdate,
    now: Optional[datetime] = None,
) -> MaintenanceOrder:
    now = now or utcnow()
    order = load_order_for_update(db, order_id)

    if settings.LOCK_TERMINAL_ORDERS and is_terminal(order.status):
        raise TransitionConflict(f"Order is {order.status} and can no longer be edited")

    if data.client_id != order.client_id:
        _require_client(db, data.client_id)

    delivery_changed = data.delivery_date != order.delivery_date
    costs = _itemized_costs(data)

    order.client_id = data.client_id
    order.equipment = data.equipment or None
    order.service_title = data.service_title
    order.description = data.description
    order.value = data.value
    order.costs = costs
    order.internal_cost = total_cost(costs) if costs else None
    order.start_date = data.start_date
    order.delivery_date = data.delivery_date

    if data.next_maintenance_date is not None:
        order.next_maintenance_date = data.next_maintenance_date
    elif delivery_changed:
        order.next_maintenance_date = (
            derive_next_maintenance_date(data.delivery_date) if data.delivery_date else None
        )

    _apply_target_status(order, data, now)

    log_action(
        db=db,
        action="UPDATE_ORDER",
        entity_type="MaintenanceOrder",
        entity_id=order.id,
        details=f"Value: {order.value} | Status: {order.status}",
    )
    db.commit()
    db.refresh(order)

    logger.info("order_updated", order_id=order.id, status=order.status)
    return order


def get_order(db: Session, order_id: str) -> MaintenanceOrder:
    order = (
        db.query(MaintenanceOrder)
        .options(joinedload(MaintenanceOrder.client))
        .filter(MaintenanceOrder.id == order_id)
        .first()
    )
    if not order:
        raise NotFound("Maintenance order", order_id)
    return order


def list_orders(db: Session, filters: Optional[MaintenanceFilters] = None) -> list[MaintenanceOrder]:
    filters = filters or MaintenanceFilters()

    query = (
        db.query(MaintenanceOrder)
        .join(Client, Client.id == MaintenanceOrder.client_id)
        .options(joinedload(MaintenanceOrder.client))
    )

    if filters.query and filters.query.strip():
        pattern = f"%{filters.query.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(MaintenanceOrder.service_title).like(pattern),
                func.lower(MaintenanceOrder.equipment).like(pattern),
                func.lower(MaintenanceOrder.description).like(pattern),
                func.lower(Client.name).like(pattern),
            )
        )

    if filters.status:
        query = query.filter(MaintenanceOrder.status == filters.status.value)

    if filters.client_id:
        query = query.filter(MaintenanceOrder.client_id == filters.client_id)

    if filters.date_from:
        query = query.filter(
            MaintenanceOrder.opened_at >= datetime.combine(filters.date_from, time.min)
        )

    if filters.date_to:
        query = query.filter(
            MaintenanceOrder.opened_at <= datetime.combine(filters.date_to, time.max)
        )

    if filters.min_value is not None:
        query = query.filter(MaintenanceOrder.value >= filters.min_value)

    if filters.max_value is not None:
        query = query.filter(MaintenanceOrder.value <= filters.max_value)

    return query.order_by(MaintenanceOrder.opened_at.desc()).all()
