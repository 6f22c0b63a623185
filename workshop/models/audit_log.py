from sqlalchemy import Column, DateTime, Integer, String, Text

from workshop.db.base import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)

    details = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=utcnow)
