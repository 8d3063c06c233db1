from sqlalchemy import Column, Integer, String
from src.models.base import Base

class Survey(Base):
    __tablename__ = 'surveys'
    id = Column(String, primary_key=True)
    customer_id = Column(String, index=True)
    rating = Column(Integer)
    feedback = Column(String, nullable=True)
    created_at = Column(String)
