"""
Common mixins for warehouse ledger models
"""
from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func
from uuid import uuid4


class CustomerOwnedMixin:
    """Mixin for rows owned by one warehouse customer"""

    @declared_attr
    def customer_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BaseMixin(CustomerOwnedMixin, TimestampMixin):
    """Combines customer ownership and timestamps for most business models"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)
