from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    CUSTOMER = "customer"
    SYSTEM = "system"  # Payment subsystem and scheduled jobs


class AuthContext(BaseModel):
    user_id: UUID
    role: Role
    customer_id: Optional[UUID] = None  # Set for customer users

    def can_access_customer(self, customer_id: UUID) -> bool:
        if self.role == Role.CUSTOMER:
            return self.customer_id == customer_id
        return True
