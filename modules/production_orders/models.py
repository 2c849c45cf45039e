from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from core.models import Base, OrderMixin, TimestampMixin


class ProductionOrder(Base, OrderMixin):
    __tablename__ = "production_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    # Exactly one source is set.
    source_warehouse_order_id = Column(Integer, nullable=True, index=True)
    source_customer_order_id = Column(Integer, nullable=True, index=True)
    status = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, default="NORMAL")
    due_date = Column(DateTime, nullable=True)
    schedule_id = Column(String(64), nullable=True)
    schedule_tasks = Column(JSON, nullable=True)
    completion_submitted_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "ProductionOrderItem",
        cascade="all, delete-orphan",
        back_populates="production_order",
        order_by="ProductionOrderItem.id",
    )


class ProductionOrderItem(Base, TimestampMixin):
    __tablename__ = "production_order_items"

    id = Column(Integer, primary_key=True, index=True)
    production_order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False)
    item_type = Column(String(16), nullable=False)
    item_id = Column(Integer, nullable=False)
    item_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    workstation_type = Column(String(16), nullable=False)
    estimated_minutes = Column(Integer, nullable=True)

    production_order = relationship("ProductionOrder", back_populates="items")
