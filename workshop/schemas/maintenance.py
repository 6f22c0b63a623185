from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from workshop.models.maintenance_order import OrderStatus
from workshop.services.cost_service import order_total_cost, round_money, to_decimal


ReminderStep = Literal["4-month", "6-month"]


class CostEntry(BaseModel):
    name: str = Field(min_length=1)
    value: Decimal = Field(ge=0, max_digits=12, decimal_places=2)

    class Config:
        extra = "forbid"
        str_strip_whitespace = True


class MaintenanceBase(BaseModel):
    client_id: str = Field(min_length=1)
    equipment: Optional[str] = None
    service_title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    value: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    internal_cost: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    costs: List[CostEntry] = Field(default_factory=list)
    start_date: Optional[date] = None
    delivery_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None

    class Config:
        extra = "forbid"
        str_strip_whitespace = True


class MaintenanceCreate(MaintenanceBase):
    status: OrderStatus = OrderStatus.OPEN


class MaintenanceUpdate(MaintenanceBase):
    status: Optional[OrderStatus] = None


class StatusUpdate(BaseModel):
    status: OrderStatus
    delivery_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None

    class Config:
        extra = "forbid"


class CompleteRequest(BaseModel):
    delivery_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None

    class Config:
        extra = "forbid"


class ReminderAdvanceRequest(BaseModel):
    current_step: Optional[ReminderStep] = None

    class Config:
        extra = "forbid"


class MaintenanceFilters(BaseModel):
    query: Optional[str] = None
    status: Optional[OrderStatus] = None
    client_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    min_value: Optional[Decimal] = None
    max_value: Optional[Decimal] = None


class ClientRef(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class CostEntryOut(BaseModel):
    name: str
    value: float


class MaintenanceResponse(BaseModel):
    id: str
    client_id: str
    client: Optional[ClientRef] = None
    equipment: Optional[str] = None
    service_title: str
    description: str
    value: float
    internal_cost: Optional[float] = None
    costs: List[CostEntryOut]
    total_cost: float
    net_gain: float
    status: OrderStatus
    opened_at: datetime
    start_date: Optional[date] = None
    delivery_date: Optional[date] = None
    closed_at: Optional[datetime] = None
    next_maintenance_date: Optional[date] = None
    next_reminder_at: Optional[datetime] = None
    next_reminder_step: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order) -> "MaintenanceResponse":
        total = order_total_cost(order)
        return cls(
            id=order.id,
            client_id=order.client_id,
            client=ClientRef.model_validate(order.client) if order.client else None,
            equipment=order.equipment,
            service_title=order.service_title,
            description=order.description,
            value=round_money(order.value),
            internal_cost=round_money(order.internal_cost) if order.internal_cost is not None else None,
            costs=[
                CostEntryOut(name=entry["name"], value=round_money(entry["value"]))
                for entry in (order.costs or [])
            ],
            total_cost=round_money(total),
            net_gain=round_money(to_decimal(order.value) - total),
            status=order.status,
            opened_at=order.opened_at,
            start_date=order.start_date,
            delivery_date=order.delivery_date,
            closed_at=order.closed_at,
            next_maintenance_date=order.next_maintenance_date,
            next_reminder_at=order.next_reminder_at,
            next_reminder_step=order.next_reminder_step,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
