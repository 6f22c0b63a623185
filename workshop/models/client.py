from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from workshop.db.base import Base, utcnow


class Client(Base):
    __tablename__ = "clients"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    maintenances = relationship(
        "MaintenanceOrder",
        back_populates="client",
        order_by="MaintenanceOrder.opened_at.desc()",
    )
