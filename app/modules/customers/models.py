from app.database.database import Base
from sqlalchemy import Column, String, Boolean, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TimestampMixin


class Customer(Base, TimestampMixin):
    """Warehouse customer account. Managed by the customer admin screens; read-only here."""
    __tablename__ = "customers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    customer_code = Column(String(20), nullable=False, unique=True)  # Ej: "CUST001", prefix of invoice numbers
    company_name = Column(String(200), nullable=False)
    email = Column(String(100), nullable=True)
    vatin = Column(String(50), nullable=True)
    vat_exempt = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    orders = relationship("Order", back_populates="customer")
    inventory_items = relationship("InventoryItem", back_populates="customer")
