"""
SQLAlchemy models: per-line-item purchase progress and the completion attempt log.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text

from orderpick.db import Base


class PurchaseStatus(Base):
    """Manual purchase progress for one line item. One row per line item ever touched."""
    __tablename__ = "purchase_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    line_item_id = Column(Integer, unique=True, nullable=False, index=True)
    order_id = Column(Integer, nullable=False, index=True)
    is_purchased = Column(Boolean, nullable=False, default=False)
    quantity_purchased = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CompletionLog(Base):
    """Log of order completion attempts against the remote platform."""
    __tablename__ = "completion_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, nullable=False, index=True)
    outcome = Column(String(32), nullable=False)  # completed | failed
    response_status = Column(Integer, default=0)
    response_body = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
