from sqlalchemy import Column, Integer, String, Text

from core.models import Base, TimestampMixin


class OrderAuditEvent(Base, TimestampMixin):
    __tablename__ = "order_audit_events"

    id = Column(Integer, primary_key=True, index=True)
    order_type = Column(String(32), nullable=False, index=True)
    order_id = Column(Integer, nullable=False, index=True)
    event_type = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
