from sqlalchemy import Column, Float, String, Text
from src.models.base import Base

class Order(Base):
    __tablename__ = 'orders'
    id = Column(String, primary_key=True)
    customer_id = Column(String, index=True)
    email = Column(String, index=True)
    phone = Column(String, index=True)
    items = Column(Text)
    total_amount = Column(Float)
    shipping_status = Column(String, default="pending")
    return_id = Column(String, nullable=True)
    created_at = Column(String)
