from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from core.models import Base, OrderMixin


class WorkstationOrder(Base, OrderMixin):
    """Leaf unit of work; the six workstation kinds share one table tagged by ``kind``."""

    __tablename__ = "workstation_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    kind = Column(String(32), nullable=False, index=True)
    workstation_id = Column(Integer, nullable=False, index=True)
    status = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, default="NORMAL")

    control_order_id = Column(Integer, nullable=True, index=True)
    production_order_id = Column(Integer, nullable=True, index=True)
    warehouse_order_id = Column(Integer, nullable=True, index=True)
    customer_order_id = Column(Integer, nullable=True, index=True)
    # Back-reference to the supply order gating this order, lookup only.
    supply_order_id = Column(Integer, nullable=True)

    output_item_type = Column(String(16), nullable=False)
    output_item_id = Column(Integer, nullable=False)
    output_item_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    required_inputs = Column(JSON, nullable=False, default=list)

    target_start_time = Column(DateTime, nullable=True)
    target_completion_time = Column(DateTime, nullable=True)
    actual_start_time = Column(DateTime, nullable=True)
    actual_finish_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
