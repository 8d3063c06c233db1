from sqlalchemy import Column, Float, String
from src.models.base import Base

class OrderReturn(Base):
    __tablename__ = 'returns'
    id = Column(String, primary_key=True)
    order_id = Column(String, unique=True, index=True)
    customer_id = Column(String, index=True)
    reason = Column(String)
    status = Column(String, default="submitted")
    refund_amount = Column(Float)
    created_at = Column(String)
    updated_at = Column(String)
