from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from core.models import Base, OrderMixin


class ControlOrder(Base, OrderMixin):
    """Production and assembly control orders share one table, tagged by ``category``."""

    __tablename__ = "control_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    category = Column(String(16), nullable=False, index=True)
    source_production_order_id = Column(Integer, nullable=False, index=True)
    assigned_workstation_id = Column(Integer, nullable=False, index=True)
    status = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, default="NORMAL")
    item_type = Column(String(16), nullable=False)
    tasks = Column(JSON, nullable=False, default=list)
    instructions = Column(Text, nullable=True)
    quality_checkpoints = Column(Text, nullable=True)
    target_start_time = Column(DateTime, nullable=True)
    target_completion_time = Column(DateTime, nullable=True)
    actual_start_time = Column(DateTime, nullable=True)
    actual_finish_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
