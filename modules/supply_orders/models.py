from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from core.models import Base, OrderMixin, TimestampMixin


class SupplyOrder(Base, OrderMixin):
    __tablename__ = "supply_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    source_control_order_id = Column(Integer, nullable=True, index=True)
    source_control_category = Column(String(16), nullable=True)
    requesting_workstation_id = Column(Integer, nullable=False, index=True)
    supply_workstation_id = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, default="NORMAL")
    required_by = Column(DateTime, nullable=True)
    fulfilled_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "SupplyOrderItem",
        cascade="all, delete-orphan",
        back_populates="supply_order",
        order_by="SupplyOrderItem.id",
    )


class SupplyOrderItem(Base, TimestampMixin):
    __tablename__ = "supply_order_items"

    id = Column(Integer, primary_key=True, index=True)
    supply_order_id = Column(Integer, ForeignKey("supply_orders.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, nullable=False)
    quantity_requested = Column(Integer, nullable=False)
    quantity_supplied = Column(Integer, nullable=False, default=0)
    unit = Column(String(16), nullable=False, default="piece")
    notes = Column(Text, nullable=True)

    supply_order = relationship("SupplyOrder", back_populates="items")
