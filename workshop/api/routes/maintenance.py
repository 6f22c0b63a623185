from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from workshop.core.dependencies import get_db
from workshop.core.errors import ValidationFailed
from workshop.models.maintenance_order import OrderStatus
from workshop.schemas.financial import parse_month
from workshop.schemas.maintenance import (
    CompleteRequest,
    MaintenanceCreate,
    MaintenanceFilters,
    MaintenanceResponse,
    MaintenanceUpdate,
    ReminderAdvanceRequest,
    StatusUpdate,
)
from workshop.services import lifecycle_service, maintenance_service
from workshop.services.financial_service import monthly_summary


router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.get("")
def get_maintenances(
    query: Optional[str] = Query(None),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    client_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    min_value: Optional[Decimal] = Query(None),
    max_value: Optional[Decimal] = Query(None),
    db: Session = Depends(get_db),
):
    filters = MaintenanceFilters(
        query=query,
        status=status_filter,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
        min_value=min_value,
        max_value=max_value,
    )
    orders = maintenance_service.list_orders(db, filters)
    return [MaintenanceResponse.from_order(order) for order in orders]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_maintenance(payload: MaintenanceCreate, db: Session = Depends(get_db)):
    order = maintenance_service.create_order(db, payload)
    return {"success": True, "id": order.id}


# Declared before "/{order_id}" so "summary" is not captured as an id.
@router.get("/summary")
def get_monthly_summary(
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    try:
        year, month_number = parse_month(month)
    except ValueError as exc:
        raise ValidationFailed("month", str(exc))

    return monthly_summary(db, year, month_number).as_dict()


@router.get("/{order_id}", response_model=MaintenanceResponse)
def get_maintenance(order_id: str, db: Session = Depends(get_db)):
    return MaintenanceResponse.from_order(maintenance_service.get_order(db, order_id))


@router.put("/{order_id}", response_model=MaintenanceResponse)
def update_maintenance(order_id: str, payload: MaintenanceUpdate, db: Session = Depends(get_db)):
    order = maintenance_service.update_order(db, order_id, payload)
    return MaintenanceResponse.from_order(order)


@router.patch("/{order_id}/status", response_model=MaintenanceResponse)
def change_status(order_id: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    order = lifecycle_service.transition_order(
        db,
        order_id,
        payload.status,
        delivery_date=payload.delivery_date,
        next_maintenance_date=payload.next_maintenance_date,
    )
    return MaintenanceResponse.from_order(order)


@router.post("/{order_id}/complete", response_model=MaintenanceResponse)
def complete_maintenance(
    order_id: str,
    payload: Optional[CompleteRequest] = None,
    db: Session = Depends(get_db),
):
    payload = payload or CompleteRequest()
    order = lifecycle_service.complete_order(
        db,
        order_id,
        delivery_date=payload.delivery_date,
        next_maintenance_date=payload.next_maintenance_date,
    )
    return MaintenanceResponse.from_order(order)


@router.post("/{order_id}/cancel", response_model=MaintenanceResponse)
def cancel_maintenance(order_id: str, db: Session = Depends(get_db)):
    order = lifecycle_service.cancel_order(db, order_id)
    return MaintenanceResponse.from_order(order)


@router.post("/{order_id}/reminder", response_model=MaintenanceResponse)
def advance_maintenance_reminder(
    order_id: str,
    payload: ReminderAdvanceRequest,
    db: Session = Depends(get_db),
):
    order = lifecycle_service.advance_reminder(db, order_id, payload.current_step)
    return MaintenanceResponse.from_order(order)
