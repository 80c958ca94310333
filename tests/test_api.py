from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from app.modules.auth.schemas import AuthContext, Role


@pytest.fixture
def system_actor():
    return AuthContext(user_id=uuid4(), role=Role.SYSTEM)


@pytest.fixture
def stock(customer, make_inventory):
    return make_inventory(customer, sku="CARTON-L", quantity=100, unit_price="10.000", product_name="Large carton")


def place_order(client, headers, stock, quantity=10, **extra):
    body = {"items": [{"inventory_id": str(stock.id), "quantity": quantity}], **extra}
    return client.post("/orders", json=body, headers=headers)


def move(client, headers, order_id, target, notes=None):
    return client.post(
        f"/orders/{order_id}/transition",
        json={"target_status": target, "notes": notes},
        headers=headers,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


def test_requests_need_a_valid_token(client, stock):
    assert client.get(f"/inventory/{stock.id}").status_code in (401, 403)
    response = client.get(f"/inventory/{stock.id}", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_customer_places_order_for_own_account(client, auth_headers, customer, customer_user, stock):
    response = place_order(client, auth_headers(customer_user), stock)

    assert response.status_code == 201
    data = response.json()
    assert data["customer_id"] == str(customer.id)
    assert data["status"] == "pending_approval"
    assert Decimal(data["total_amount"]) == Decimal("100.000")
    assert data["order_number"].startswith("ORD-")
    assert len(data["items"]) == 1


def test_customer_cannot_order_for_someone_else(client, auth_headers, make_customer, customer_user, stock):
    other = make_customer("CUST002")
    response = place_order(client, auth_headers(customer_user), stock, customer_id=str(other.id))
    assert response.status_code == 403


def test_staff_must_name_the_customer(client, auth_headers, employee, stock):
    response = place_order(client, auth_headers(employee), stock)
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation_error"


def test_quantities_must_be_positive(client, auth_headers, customer_user, stock):
    response = place_order(client, auth_headers(customer_user), stock, quantity=0)
    assert response.status_code == 422


def test_approval_deducts_inventory(client, auth_headers, notifier, customer_user, employee, stock):
    order = place_order(client, auth_headers(customer_user), stock).json()

    response = move(client, auth_headers(employee), order["id"], "approved", "stock checked")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "approved"
    assert data["approvals"][0]["decision"] == "approved"
    assert data["approvals"][0]["is_system"] is False

    item = client.get(f"/inventory/{stock.id}", headers=auth_headers(customer_user)).json()
    assert item["quantity"] == 90
    assert item["consumed_quantity"] == 10

    audit = client.get(f"/inventory/{stock.id}/audit-log", headers=auth_headers(employee)).json()
    assert audit["total"] == 1
    assert audit["entries"][0]["order_id"] == order["id"]
    assert audit["entries"][0]["quantity_delta"] == -10
    assert notifier.events() == ["order-approved"]


def test_customers_cannot_move_orders_or_read_audit(client, auth_headers, customer_user, stock):
    order = place_order(client, auth_headers(customer_user), stock).json()

    assert move(client, auth_headers(customer_user), order["id"], "approved").status_code == 403
    assert client.get(f"/inventory/{stock.id}/audit-log", headers=auth_headers(customer_user)).status_code == 403


def test_illegal_transition_is_conflict(client, auth_headers, customer_user, admin, stock):
    order = place_order(client, auth_headers(customer_user), stock).json()

    response = move(client, auth_headers(admin), order["id"], "delivered")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "invalid_transition"
    assert detail["from_status"] == "pending_approval"
    assert detail["to_status"] == "delivered"


def test_insufficient_stock_is_reported(client, auth_headers, customer_user, admin, stock):
    order = place_order(client, auth_headers(customer_user), stock, quantity=150).json()

    response = move(client, auth_headers(admin), order["id"], "approved")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "insufficient_stock"
    assert detail["sku"] == "CARTON-L"
    assert detail["available"] == 100
    assert detail["requested"] == 150
    assert client.get(f"/orders/{order['id']}", headers=auth_headers(admin)).json()["status"] == "pending_approval"


def test_full_lifecycle_through_payment(client, auth_headers, notifier, customer_user, admin, system_actor, stock):
    staff = auth_headers(admin)
    order_id = place_order(client, auth_headers(customer_user), stock).json()["id"]
    for target in ("approved", "in_progress", "delivered"):
        assert move(client, staff, order_id, target).status_code == 200

    blocked = move(client, staff, order_id, "completed")
    assert blocked.status_code == 409
    assert blocked.json()["detail"]["error"] == "confirmation_required"
    assert client.get(f"/orders/{order_id}/invoice", headers=staff).status_code == 404

    assert client.post(f"/orders/{order_id}/confirm-delivery", headers=staff).status_code == 403
    confirmed = client.post(f"/orders/{order_id}/confirm-delivery", headers=auth_headers(customer_user))
    assert confirmed.status_code == 200
    assert confirmed.json()["delivery_confirmed"] is True

    completed = move(client, staff, order_id, "completed")
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"

    invoice = client.get(f"/orders/{order_id}/invoice", headers=auth_headers(customer_user)).json()
    assert invoice["invoice_number"] == f"CUST001-INV-{date.today().year}-0001"
    assert invoice["status"] == "pending"
    assert Decimal(invoice["total_amount"]) == Decimal("105.000")
    assert invoice["line_items"][0]["description"] == "Large carton (CARTON-L)"

    regenerated = client.post(f"/orders/{order_id}/invoice", headers=staff)
    assert regenerated.status_code == 200
    assert regenerated.json()["id"] == invoice["id"]

    paid = client.post(f"/invoices/{invoice['id']}/mark-paid", json={}, headers=auth_headers(system_actor))
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["paid_at"] is not None

    cancel = client.post(f"/invoices/{invoice['id']}/cancel", json={"reason": "too late"}, headers=staff)
    assert cancel.status_code == 409

    assert notifier.events() == ["order-approved", "invoice-generated", "payment-confirmed"]


def test_customers_only_see_their_own_records(client, auth_headers, make_customer, customer_user, stock):
    order = place_order(client, auth_headers(customer_user), stock).json()
    other = make_customer("CUST002")
    stranger = AuthContext(user_id=uuid4(), role=Role.CUSTOMER, customer_id=other.id)

    assert client.get(f"/orders/{order['id']}", headers=auth_headers(stranger)).status_code == 403
    assert client.get(f"/inventory/{stock.id}", headers=auth_headers(stranger)).status_code == 403
    assert client.get(f"/orders/{order['id']}", headers=auth_headers(customer_user)).status_code == 200


def test_unknown_order_is_not_found(client, auth_headers, admin):
    response = client.get(f"/orders/{uuid4()}", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


def test_workflow_settings_drive_auto_approval(client, auth_headers, customer, customer_user, admin, stock):
    url = f"/workflow-settings/{customer.id}"

    defaults = client.get(url, headers=auth_headers(customer_user)).json()
    assert defaults["require_approval"] is True
    assert defaults["is_default"] is True

    assert client.put(url, json={"require_approval": False}, headers=auth_headers(customer_user)).status_code == 403
    updated = client.put(
        url,
        json={"require_approval": True, "auto_approve_threshold": "100.000"},
        headers=auth_headers(admin),
    )
    assert updated.status_code == 200
    assert updated.json()["is_default"] is False
    assert Decimal(updated.json()["auto_approve_threshold"]) == Decimal("100.000")

    within = place_order(client, auth_headers(customer_user), stock, quantity=10).json()
    above = place_order(client, auth_headers(customer_user), stock, quantity=11).json()
    assert within["status"] == "approved"
    assert within["approvals"][0]["is_system"] is True
    assert above["status"] == "pending_approval"


def test_overdue_sweep_endpoint(client, auth_headers, customer_user, admin, stock):
    staff = auth_headers(admin)
    order_id = place_order(client, auth_headers(customer_user), stock).json()["id"]
    for target in ("approved", "in_progress", "delivered"):
        move(client, staff, order_id, target)
    client.post(f"/orders/{order_id}/confirm-delivery", headers=auth_headers(customer_user))
    move(client, staff, order_id, "completed")

    as_of = (date.today() + timedelta(days=31)).isoformat()
    assert client.post("/invoices/overdue-sweep", params={"as_of": as_of}, headers=auth_headers(customer_user)).status_code == 403
    response = client.post("/invoices/overdue-sweep", params={"as_of": as_of}, headers=staff)

    assert response.status_code == 200
    assert response.json() == {"as_of": as_of, "marked_overdue": 1}
    invoice = client.get(f"/orders/{order_id}/invoice", headers=staff).json()
    assert invoice["status"] == "overdue"


def complete_order(client, staff, customer_headers, stock):
    order_id = place_order(client, customer_headers, stock).json()["id"]
    for target in ("approved", "in_progress", "delivered"):
        move(client, staff, order_id, target)
    client.post(f"/orders/{order_id}/confirm-delivery", headers=customer_headers)
    move(client, staff, order_id, "completed")
    return order_id


def test_order_listing_filters_by_status(client, auth_headers, customer_user, admin, stock):
    staff = auth_headers(admin)
    mine = auth_headers(customer_user)
    approved_id = place_order(client, mine, stock).json()["id"]
    move(client, staff, approved_id, "approved")
    pending_id = place_order(client, mine, stock, quantity=2).json()["id"]

    everything = client.get("/orders", headers=staff).json()
    assert everything["total"] == 2
    assert {o["id"] for o in everything["orders"]} == {approved_id, pending_id}

    pending = client.get("/orders", params={"status": "pending_approval"}, headers=staff).json()
    assert pending["total"] == 1
    assert pending["orders"][0]["id"] == pending_id

    page = client.get("/orders", params={"limit": 1, "offset": 1}, headers=staff).json()
    assert page["total"] == 2
    assert page["limit"] == 1 and page["offset"] == 1
    assert len(page["orders"]) == 1

    assert client.get("/orders", params={"status": "shipped"}, headers=staff).status_code == 422


def test_listings_are_scoped_to_the_customer(client, auth_headers, make_customer, make_inventory, customer, customer_user, admin, stock):
    staff = auth_headers(admin)
    other = make_customer("CUST002")
    other_stock = make_inventory(other, sku="CARTON-S", quantity=50)
    other_user = AuthContext(user_id=uuid4(), role=Role.CUSTOMER, customer_id=other.id)

    my_order = complete_order(client, staff, auth_headers(customer_user), stock)
    their_order = complete_order(client, staff, auth_headers(other_user), other_stock)

    mine = client.get("/orders", headers=auth_headers(customer_user)).json()
    assert [o["id"] for o in mine["orders"]] == [my_order]

    # A customer cannot widen the listing by naming another account
    sneaky = client.get("/orders", params={"customer_id": str(other.id)}, headers=auth_headers(customer_user)).json()
    assert [o["id"] for o in sneaky["orders"]] == [my_order]

    invoices = client.get("/invoices", headers=auth_headers(other_user)).json()
    assert invoices["total"] == 1
    assert invoices["invoices"][0]["order_id"] == their_order
    assert invoices["invoices"][0]["invoice_number"].startswith("CUST002-INV-")

    staff_view = client.get("/invoices", params={"customer_id": str(customer.id)}, headers=staff).json()
    assert [i["order_id"] for i in staff_view["invoices"]] == [my_order]
    assert client.get("/invoices", headers=staff).json()["total"] == 2


def test_invoice_listing_filters_by_status(client, auth_headers, customer_user, system_actor, admin, stock):
    staff = auth_headers(admin)
    mine = auth_headers(customer_user)
    complete_order(client, staff, mine, stock)
    second = complete_order(client, staff, mine, stock)
    paid_id = client.get(f"/orders/{second}/invoice", headers=staff).json()["id"]
    client.post(f"/invoices/{paid_id}/mark-paid", json={}, headers=auth_headers(system_actor))

    paid = client.get("/invoices", params={"status": "paid"}, headers=mine).json()
    assert paid["total"] == 1
    assert paid["invoices"][0]["id"] == paid_id

    pending = client.get("/invoices", params={"status": "pending"}, headers=mine).json()
    assert pending["total"] == 1
    assert pending["invoices"][0]["id"] != paid_id
