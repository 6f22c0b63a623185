import enum

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from workshop.db.base import Base, utcnow


class OrderStatus(str, enum.Enum):
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


REMINDER_STEP_4_MONTHS = "4-month"
REMINDER_STEP_6_MONTHS = "6-month"


class MaintenanceOrder(Base):
    __tablename__ = "maintenance_orders"

    id = Column(String, primary_key=True, index=True)
    client_id = Column(String, ForeignKey("clients.id"), nullable=False, index=True)

    equipment = Column(String, nullable=True)
    service_title = Column(String, nullable=False)
    description = Column(Text, nullable=False)

    value = Column(Numeric(12, 2), nullable=False)
    # Legacy single-figure cost; mirrors the itemized total for new rows.
    internal_cost = Column(Numeric(12, 2), nullable=True)
    # [{"name": str, "value": "<decimal>"}]
    costs = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default=OrderStatus.OPEN.value, index=True)

    opened_at = Column(DateTime, nullable=False, default=utcnow)
    start_date = Column(Date, nullable=True)
    delivery_date = Column(Date, nullable=True)
    closed_at = Column(DateTime, nullable=True)

    next_maintenance_date = Column(Date, nullable=True)
    next_reminder_at = Column(DateTime, nullable=True)
    next_reminder_step = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    client = relationship("Client", back_populates="maintenances")
