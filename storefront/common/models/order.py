from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import Base, new_id, utcnow


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING_PAYMENT = "processing_payment"
    PAID = "paid"
    FAILED = "failed"
    COMPLETED = "completed"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    delivery_address = Column(String(512), nullable=False)
    delivery_time = Column(DateTime, nullable=False)
    delivery_cost = Column(Numeric(10, 2), nullable=False, default=0)
    comment = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value)
    # invoice id issued by the payment provider
    paykeeper_id = Column(String(128), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.name",
    )
