"""
Seed script: populate a demo warehouse with customers, stock and orders.

What it creates:
- Customers (default 3): CUST001..CUST00N, the last one VAT exempt.
- Inventory rows per customer with realistic SKUs, prices and low-stock thresholds.
- Workflow settings: a global row requiring approval plus an auto-approve
  threshold for CUST001.
- Orders (default 30) driven through the real services: some left pending,
  some approved or rejected, some delivered, confirmed and completed (invoiced),
  and a share of those invoices marked paid.
- Bearer tokens for an admin, an employee and each customer user.

Run inside the API container to use the 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_demo_data.py --customers 3 --orders 30

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from decimal import Decimal
from uuid import uuid4

from fastapi import HTTPException

from app.database.database import Base, SessionLocal, sync_engine
from app.modules.auth.schemas import AuthContext, Role
from app.modules.auth.utils import create_access_token
from app.modules.customers.models import Customer
from app.modules.inventory.models import InventoryItem, derive_inventory_status
from app.modules.invoices.service import InvoiceService
from app.modules.orders.models import OrderStatus
from app.modules.orders.schemas import OrderItemCreate
from app.modules.orders.service import OrderService
from app.modules.workflow.models import WorkflowSettings
import app.modules.notifications.models  # noqa: F401  registers the table

PRODUCTS = [
    ("Stretch film 500mm", "roll", "4.750"),
    ("Carton box large", "pcs", "0.850"),
    ("Pallet wood 1200x1000", "pcs", "6.500"),
    ("Packing tape 48mm", "roll", "0.420"),
    ("Bubble wrap 1m", "roll", "3.900"),
    ("Rice basmati 5kg", "bag", "5.250"),
    ("Cooking oil 1.8L", "bottle", "1.980"),
    ("Mineral water 24x330ml", "case", "1.450"),
]


def pick(seq):
    return random.choice(seq)


def create_customers(db, count: int):
    customers = []
    for idx in range(1, count + 1):
        code = f"CUST{idx:03d}"
        customer = db.query(Customer).filter(Customer.customer_code == code).first()
        if not customer:
            customer = Customer(
                customer_code=code,
                company_name=f"Demo Trading {idx} LLC",
                email=f"{code.lower()}@demo.example",
                vatin=f"OM11{random.randint(10000000, 99999999)}",
                vat_exempt=(idx == count and count > 1),
            )
            db.add(customer)
            db.commit()
            db.refresh(customer)
        customers.append(customer)
    return customers


def create_inventory(db, customer, per_customer: int):
    items = []
    for idx, (name, unit, price) in enumerate(PRODUCTS[:per_customer], start=1):
        sku = f"{customer.customer_code}-{idx:03d}"
        item = db.query(InventoryItem).filter(
            InventoryItem.customer_id == customer.id, InventoryItem.sku == sku
        ).first()
        if not item:
            quantity = random.randint(50, 500)
            minimum = random.choice([0, 10, 25])
            item = InventoryItem(
                customer_id=customer.id,
                sku=sku,
                product_name=name,
                unit=unit,
                quantity=quantity,
                minimum_quantity=minimum,
                unit_price=Decimal(price),
                status=derive_inventory_status(quantity, minimum),
            )
            db.add(item)
        items.append(item)
    db.commit()
    return items


def create_workflow_settings(db, customers):
    if not db.query(WorkflowSettings).filter(WorkflowSettings.customer_id.is_(None)).first():
        db.add(WorkflowSettings(customer_id=None, require_approval=True))
    first = customers[0]
    if not db.query(WorkflowSettings).filter(WorkflowSettings.customer_id == first.id).first():
        db.add(WorkflowSettings(customer_id=first.id, require_approval=True, auto_approve_threshold=Decimal("50.000")))
    db.commit()


def run_orders(db, customers, inventory, users, admin, orders_count: int):
    orders = OrderService(db)
    invoices = InvoiceService(db)
    stats = {"created": 0, "completed": 0, "paid": 0, "failed": 0}

    for _ in range(orders_count):
        customer = pick(customers)
        user = users[customer.id]
        lines = [
            OrderItemCreate(inventory_id=item.id, quantity=random.randint(1, 8))
            for item in random.sample(inventory[customer.id], k=random.randint(1, min(3, len(inventory[customer.id]))))
        ]
        try:
            order = orders.create_order(customer.id, lines, None, user)
            stats["created"] += 1

            roll = random.random()
            if roll < 0.15:
                continue  # stays pending
            if order.status == OrderStatus.PENDING_APPROVAL:
                if roll < 0.25:
                    orders.transition_order(order.id, OrderStatus.REJECTED, admin, notes="Duplicate request")
                    continue
                orders.transition_order(order.id, OrderStatus.APPROVED, admin, notes="Stock verified")
            if roll < 0.4:
                continue  # approved, waiting for picking
            orders.transition_order(order.id, OrderStatus.IN_PROGRESS, admin)
            orders.transition_order(order.id, OrderStatus.DELIVERED, admin, notes="Delivered to receiving dock")
            orders.confirm_delivery(order.id, user)
            orders.transition_order(order.id, OrderStatus.COMPLETED, admin)
            stats["completed"] += 1

            if random.random() < 0.5:
                invoice = invoices.get_invoice_for_order(order.id)
                invoices.mark_invoice_paid(invoice.id)
                stats["paid"] += 1
        except HTTPException as e:
            stats["failed"] += 1
            print(f"  Skipped order for {customer.customer_code}: {e.detail}")
    return stats


def token_for(actor: AuthContext) -> str:
    claims = {"sub": str(actor.user_id), "role": actor.role.value}
    if actor.customer_id:
        claims["customer_id"] = str(actor.customer_id)
    return create_access_token(claims)


def main():
    parser = argparse.ArgumentParser(description="Seed warehouse demo data")
    parser.add_argument("--customers", type=int, default=3)
    parser.add_argument("--products", type=int, default=6)
    parser.add_argument("--orders", type=int, default=30)
    args = parser.parse_args()

    Base.metadata.create_all(bind=sync_engine)
    db = SessionLocal()
    try:
        admin = AuthContext(user_id=uuid4(), role=Role.ADMIN)
        employee = AuthContext(user_id=uuid4(), role=Role.EMPLOYEE)

        print("Creating customers...")
        customers = create_customers(db, args.customers)
        users = {
            c.id: AuthContext(user_id=uuid4(), role=Role.CUSTOMER, customer_id=c.id)
            for c in customers
        }

        print("Creating inventory...")
        inventory = {c.id: create_inventory(db, c, args.products) for c in customers}

        print("Creating workflow settings...")
        create_workflow_settings(db, customers)

        print("Running orders through the lifecycle...")
        stats = run_orders(db, customers, inventory, users, admin, args.orders)
        print(f"Orders: {stats}")

        print("\nSeed completed.")
        print("Bearer tokens (valid for the configured expiry):")
        print(f"  admin:    {token_for(admin)}")
        print(f"  employee: {token_for(employee)}")
        for customer in customers:
            print(f"  {customer.customer_code}:  {token_for(users[customer.id])}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
