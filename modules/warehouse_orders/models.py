from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from core.models import Base, OrderMixin, TimestampMixin


class WarehouseOrder(Base, OrderMixin):
    __tablename__ = "warehouse_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_order_id = Column(Integer, nullable=False, index=True)
    workstation_id = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False, index=True)
    trigger_scenario = Column(String(32), nullable=True)
    # Set once production is requested; blocks a second production order.
    production_order_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "WarehouseOrderItem",
        cascade="all, delete-orphan",
        back_populates="warehouse_order",
        order_by="WarehouseOrderItem.id",
    )


class WarehouseOrderItem(Base, TimestampMixin):
    __tablename__ = "warehouse_order_items"

    id = Column(Integer, primary_key=True, index=True)
    warehouse_order_id = Column(Integer, ForeignKey("warehouse_orders.id", ondelete="CASCADE"), nullable=False)
    item_type = Column(String(16), nullable=False)
    item_id = Column(Integer, nullable=False)
    item_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    fulfilled_quantity = Column(Integer, nullable=False, default=0)
    # Product the item is assembled into at final assembly.
    product_id = Column(Integer, nullable=True)
    product_quantity = Column(Integer, nullable=True)

    warehouse_order = relationship("WarehouseOrder", back_populates="items")
