from sqlalchemy import Column, Float, String
from src.models.base import Base

class Product(Base):
    __tablename__ = 'products'
    id = Column(String, primary_key=True)
    name = Column(String, index=True)
    price = Column(Float)
    size = Column(String, nullable=True)
    color = Column(String, nullable=True)
    category = Column(String, nullable=True)
    brand = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    # Free text in upstream catalogs; non-numeric values mean "no discount"
    current_discount = Column(String, nullable=True)
