from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from core.models import Base, OrderMixin, TimestampMixin


class CustomerOrder(Base, OrderMixin):
    __tablename__ = "customer_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    status = Column(String(32), nullable=False, index=True)
    workstation_id = Column(Integer, nullable=False)
    trigger_scenario = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "CustomerOrderItem",
        cascade="all, delete-orphan",
        back_populates="customer_order",
        order_by="CustomerOrderItem.id",
    )


class CustomerOrderItem(Base, TimestampMixin):
    __tablename__ = "customer_order_items"

    id = Column(Integer, primary_key=True, index=True)
    customer_order_id = Column(Integer, ForeignKey("customer_orders.id", ondelete="CASCADE"), nullable=False)
    item_type = Column(String(16), nullable=False)
    item_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    fulfilled_quantity = Column(Integer, nullable=False, default=0)

    customer_order = relationship("CustomerOrder", back_populates="items")
