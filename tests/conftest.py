"""
Fixtures compartidos: SQLite en memoria, datos semilla y tokens por rol.
"""
import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.database import Base
from app.dependencies.dbDependecies import get_db
from app.main import app
from app.modules.auth.schemas import AuthContext, Role
from app.modules.auth.utils import create_access_token
from app.modules.customers.models import Customer
from app.modules.inventory.models import InventoryItem, derive_inventory_status
from app.modules.notifications.dispatcher import get_notifier
from app.modules.workflow.models import WorkflowSettings


def enable_sqlite_savepoints(engine, begin_statement="BEGIN"):
    """pysqlite needs to hand transaction control to SQLAlchemy for SAVEPOINT to work."""

    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql(begin_statement)

    return engine


class RecordingNotifier:
    """Stand-in for the Celery dispatcher; keeps what would have been sent."""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, event_type, payload):
        self.sent.append((user_id, event_type, payload))

    def events(self):
        return [event_type for _, event_type, _ in self.sent]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(db, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ===== DATOS SEMILLA =====

@pytest.fixture
def make_customer(db):
    def _make(customer_code="CUST001", vat_exempt=False, vatin=None, is_active=True):
        customer = Customer(
            customer_code=customer_code,
            company_name=f"{customer_code} Trading LLC",
            email=f"{customer_code.lower()}@example.com",
            vatin=vatin,
            vat_exempt=vat_exempt,
            is_active=is_active,
        )
        db.add(customer)
        db.commit()
        return customer
    return _make


@pytest.fixture
def make_inventory(db):
    def _make(customer, sku="SKU-1", quantity=100, unit_price="10.000", minimum_quantity=5, product_name=None):
        item = InventoryItem(
            customer_id=customer.id,
            sku=sku,
            product_name=product_name or f"Product {sku}",
            quantity=quantity,
            consumed_quantity=0,
            minimum_quantity=minimum_quantity,
            unit_price=Decimal(unit_price),
            status=derive_inventory_status(quantity, minimum_quantity),
        )
        db.add(item)
        db.commit()
        return item
    return _make


@pytest.fixture
def set_workflow(db):
    def _set(customer=None, require_approval=True, auto_approve_threshold=None, default_approver_id=None):
        row = WorkflowSettings(
            customer_id=customer.id if customer else None,
            require_approval=require_approval,
            auto_approve_threshold=Decimal(auto_approve_threshold) if auto_approve_threshold is not None else None,
            default_approver_id=default_approver_id,
        )
        db.add(row)
        db.commit()
        return row
    return _set


@pytest.fixture
def customer(make_customer):
    return make_customer()


# ===== ACTORES =====

@pytest.fixture
def admin():
    return AuthContext(user_id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def employee():
    return AuthContext(user_id=uuid4(), role=Role.EMPLOYEE)


@pytest.fixture
def customer_user(customer):
    return AuthContext(user_id=uuid4(), role=Role.CUSTOMER, customer_id=customer.id)


def _auth_headers(actor: AuthContext) -> dict:
    claims = {"sub": str(actor.user_id), "role": actor.role.value}
    if actor.customer_id:
        claims["customer_id"] = str(actor.customer_id)
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture
def auth_headers():
    return _auth_headers
