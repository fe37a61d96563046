"""HTTP tests for the order, payment and delivery flow."""

import pytest
from checkout.api import delivery_router, order_router, register_checkout_exception_handlers
from checkout.order.order import Order
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

CUSTOMER = {"X-User-Id": "cust-1", "X-User-Role": "CUSTOMER"}
OTHER_CUSTOMER = {"X-User-Id": "cust-2", "X-User-Role": "CUSTOMER"}
SELLER = {"X-User-Id": "seller-1", "X-User-Role": "SELLER"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}
AGENT = {"X-User-Id": "agent-1", "X-User-Role": "DELIVERY_AGENT"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(delivery_router)
    register_checkout_exception_handlers(app)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def eggs(make_product, delivering_seller):
    return make_product(delivering_seller, price=450.0)


def _place(client, product, payment_type="BEFORE_DELIVERY", headers=CUSTOMER, **extra):
    body = {
        "items": [{"productId": str(product.id), "quantity": 2}],
        "deliveryLocation": {"county": "Kiambu"},
        "paymentType": payment_type,
    }
    body.update(extra)
    response = client.post("/orders", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["orderId"]


class TestPlaceOrderEndpoint:
    def test_place_and_read(self, client, eggs):
        order_id = _place(client, eggs)

        response = client.get(f"/orders/{order_id}", headers=CUSTOMER)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["paymentStatus"] == "UNPAID"
        assert data["subtotal"] == 900.0
        assert data["deliveryFee"] == 150.0
        assert data["total"] == 1050.0
        assert data["currency"] == "KES"
        assert data["items"][0]["quantity"] == 2

    def test_place_with_voucher(self, client, eggs, make_voucher):
        make_voucher(code="FLAT100", discount_type="FIXED_AMOUNT", discount_value=100.0)

        order_id = _place(client, eggs, voucherCode="flat100")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.pricing.discount_amount == 100.0
        assert order.pricing.total == 950.0

    def test_place_with_delivery_voucher(self, client, eggs, make_delivery_voucher):
        make_delivery_voucher(code="SHIP50", discount_type="FIXED_AMOUNT", discount_value=50.0)

        order_id = _place(client, eggs, deliveryVoucherCode="ship50")

        data = client.get(f"/orders/{order_id}", headers=CUSTOMER).json()
        assert data["deliveryVoucherCode"] == "SHIP50"
        assert data["deliveryDiscountAmount"] == 50.0
        assert data["deliveryFee"] == 100.0
        assert data["total"] == 1000.0

    def test_undeliverable_order(self, client, eggs):
        body = {"items": [{"productId": str(eggs.id), "quantity": 1}], "deliveryLocation": {"county": "Turkana"}}
        response = client.post("/orders", json=body, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["code"] == "undeliverable_order"

    def test_exhausted_voucher(self, client, eggs, make_voucher):
        make_voucher(code="GONE", max_uses=1, used_count=1)
        body = {
            "items": [{"productId": str(eggs.id), "quantity": 1}],
            "deliveryLocation": {"county": "Kiambu"},
            "voucherCode": "GONE",
        }
        response = client.post("/orders", json=body, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["reason"] == "exhausted"

    def test_other_customers_cannot_see_the_order(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.get(f"/orders/{order_id}", headers=OTHER_CUSTOMER).status_code == 404

    def test_unknown_order(self, client):
        assert client.get("/orders/missing", headers=ADMIN).status_code == 404


class TestPaymentEndpoints:
    def test_submit_and_approve(self, client, eggs):
        order_id = _place(client, eggs)

        response = client.put(
            f"/orders/{order_id}/payment",
            json={"paymentReference": "QGH7XY12AB", "paymentMethod": "MPESA"},
            headers=CUSTOMER,
        )
        assert response.json() == {"status": "payment_submitted"}

        response = client.post(f"/orders/{order_id}/payment-approval", json={"action": "approve"}, headers=ADMIN)
        assert response.json() == {"status": "payment_approved"}

        order = client.get(f"/orders/{order_id}", headers=CUSTOMER).json()
        assert (order["paymentStatus"], order["status"]) == ("APPROVED", "CONFIRMED")

    def test_only_admins_review_payments(self, client, eggs):
        order_id = _place(client, eggs)
        response = client.post(f"/orders/{order_id}/payment-approval", json={"action": "APPROVE"}, headers=SELLER)
        assert response.status_code == 401

    def test_out_of_order_review_is_a_conflict(self, client, eggs):
        order_id = _place(client, eggs)

        response = client.post(f"/orders/{order_id}/payment-approval", json={"action": "APPROVE"}, headers=ADMIN)

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "invalid_transition"
        assert (data["from"], data["to"]) == ("UNPAID", "APPROVED")


class TestOrderTransitions:
    def test_prepaid_confirm_without_payment_is_a_conflict(self, client, eggs):
        order_id = _place(client, eggs)
        response = client.put(f"/orders/{order_id}/confirm", headers=SELLER)
        assert response.status_code == 409

    def test_customer_cancels_own_order(self, client, eggs):
        order_id = _place(client, eggs)

        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Wrong address"}, headers=CUSTOMER)

        assert response.json() == {"status": "cancelled"}
        assert current_domain.repository_for(Order).get(order_id).cancellation_reason == "Wrong address"

    def test_customer_cannot_cancel_someone_elses_order(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.put(f"/orders/{order_id}/cancel", headers=OTHER_CUSTOMER).status_code == 404

    def test_delivery_agents_cannot_cancel(self, client, eggs):
        order_id = _place(client, eggs)

        assert client.put(f"/orders/{order_id}/cancel", headers=AGENT).status_code == 401
        assert current_domain.repository_for(Order).get(order_id).status == "PENDING"

    def test_seller_cancels_order_holding_their_items(self, client, eggs, delivering_seller):
        order_id = _place(client, eggs)
        seller = {"X-User-Id": str(delivering_seller.id), "X-User-Role": "SELLER"}

        assert client.put(f"/orders/{order_id}/cancel", headers=seller).json() == {"status": "cancelled"}

    def test_seller_cannot_cancel_an_unrelated_order(self, client, eggs):
        order_id = _place(client, eggs)

        assert client.put(f"/orders/{order_id}/cancel", headers=SELLER).status_code == 404
        assert current_domain.repository_for(Order).get(order_id).status == "PENDING"

    def test_admin_cancels_any_order(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.put(f"/orders/{order_id}/cancel", headers=ADMIN).json() == {"status": "cancelled"}

    def test_customers_cannot_pack(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.put(f"/orders/{order_id}/pack", headers=CUSTOMER).status_code == 401

    def test_reject_without_reason(self, client, eggs):
        order_id = _place(client, eggs)
        response = client.put(f"/orders/{order_id}/reject", headers=SELLER)
        assert response.json() == {"status": "rejected"}


class TestDeliveryFlow:
    def test_postpaid_order_from_confirmation_to_doorstep(self, client, eggs):
        order_id = _place(client, eggs, payment_type="AFTER_DELIVERY")
        assert client.get(f"/orders/{order_id}/delivery", headers=CUSTOMER).status_code == 404

        assert client.put(f"/orders/{order_id}/confirm", headers=SELLER).json() == {"status": "confirmed"}
        assert client.put(f"/orders/{order_id}/pack", headers=SELLER).json() == {"status": "packed"}

        delivery = client.get(f"/orders/{order_id}/delivery", headers=CUSTOMER).json()
        assert delivery["status"] == "ASSIGNED"
        assert delivery["trackingId"].startswith("TRK")
        delivery_id = delivery["id"]

        response = client.put(f"/deliveries/{delivery_id}/assign", json={"agentId": "agent-1"}, headers=ADMIN)
        assert response.json() == {"status": "assigned"}

        for step, status in (
            ("pickup", "picked_up"),
            ("in-transit", "in_transit"),
            ("out-for-delivery", "out_for_delivery"),
            ("delivered", "delivered"),
        ):
            response = client.put(f"/deliveries/{delivery_id}/{step}", headers=AGENT)
            assert response.json() == {"status": status}, step

        delivery = client.get(f"/deliveries/{delivery_id}", headers=AGENT).json()
        assert delivery["status"] == "DELIVERED"
        assert delivery["actualDelivery"] is not None
        assert client.get(f"/orders/{order_id}", headers=CUSTOMER).json()["status"] == "DELIVERED"

    def test_scan_out_of_order_is_a_conflict(self, client, eggs):
        order_id = _place(client, eggs, payment_type="AFTER_DELIVERY")
        client.put(f"/orders/{order_id}/confirm", headers=SELLER)
        client.put(f"/orders/{order_id}/pack", headers=SELLER)
        delivery_id = client.get(f"/orders/{order_id}/delivery", headers=CUSTOMER).json()["id"]
        client.put(f"/deliveries/{delivery_id}/assign", json={"agentId": "agent-1"}, headers=ADMIN)

        response = client.put(f"/deliveries/{delivery_id}/delivered", headers=AGENT)

        assert response.status_code == 409
        assert (response.json()["from"], response.json()["to"]) == ("ASSIGNED", "DELIVERED")

    def test_failure_needs_a_reason(self, client, eggs):
        order_id = _place(client, eggs, payment_type="AFTER_DELIVERY")
        client.put(f"/orders/{order_id}/confirm", headers=SELLER)
        delivery_id = client.get(f"/orders/{order_id}/delivery", headers=CUSTOMER).json()["id"]

        response = client.put(f"/deliveries/{delivery_id}/failed", json={}, headers=AGENT)

        assert response.status_code == 422

    def test_only_agents_scan(self, client, eggs):
        order_id = _place(client, eggs, payment_type="AFTER_DELIVERY")
        client.put(f"/orders/{order_id}/confirm", headers=SELLER)
        delivery_id = client.get(f"/orders/{order_id}/delivery", headers=CUSTOMER).json()["id"]

        assert client.put(f"/deliveries/{delivery_id}/pickup", headers=SELLER).status_code == 401


class TestOrderListing:
    def _ids(self, response):
        assert response.status_code == 200, response.text
        return {order["id"] for order in response.json()["orders"]}

    def test_customers_see_their_own_orders(self, client, eggs):
        mine = {_place(client, eggs), _place(client, eggs)}
        _place(client, eggs, headers=OTHER_CUSTOMER)

        assert self._ids(client.get("/orders", headers=CUSTOMER)) == mine

    def test_sellers_see_orders_holding_their_items(self, client, eggs, delivering_seller, make_seller, make_product):
        ours = _place(client, eggs)
        elsewhere = make_product(make_seller(name="Rift Valley Hatchery"))
        _place(client, elsewhere, headers=OTHER_CUSTOMER)
        seller = {"X-User-Id": str(delivering_seller.id), "X-User-Role": "SELLER"}

        assert self._ids(client.get("/orders", headers=seller)) == {ours}
        assert self._ids(client.get("/orders", headers=SELLER)) == set()

    def test_agents_see_orders_assigned_to_them(self, client, eggs):
        assigned = _place(client, eggs, payment_type="AFTER_DELIVERY")
        _place(client, eggs, payment_type="AFTER_DELIVERY")
        client.put(f"/orders/{assigned}/confirm", headers=SELLER)
        delivery_id = client.get(f"/orders/{assigned}/delivery", headers=CUSTOMER).json()["id"]
        client.put(f"/deliveries/{delivery_id}/assign", json={"agentId": "agent-1"}, headers=ADMIN)

        assert self._ids(client.get("/orders", headers=AGENT)) == {assigned}
        assert client.get(f"/orders/{assigned}", headers=AGENT).status_code == 200

    def test_admins_filter_by_status(self, client, eggs):
        cancelled = _place(client, eggs)
        _place(client, eggs)
        client.put(f"/orders/{cancelled}/cancel", headers=CUSTOMER)

        response = client.get("/orders", params={"status": "cancelled"}, headers=ADMIN)

        assert self._ids(response) == {cancelled}

    def test_pagination(self, client, eggs):
        for _ in range(3):
            _place(client, eggs)

        data = client.get("/orders", params={"page": 1, "limit": 2}, headers=CUSTOMER).json()

        assert len(data["orders"]) == 2
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


class TestPaymentApprovalHistory:
    def test_review_is_recorded(self, client, eggs):
        order_id = _place(client, eggs)
        client.put(f"/orders/{order_id}/payment", json={"paymentReference": "QGH7XY12AB"}, headers=CUSTOMER)
        client.post(
            f"/orders/{order_id}/payment-approval",
            json={"action": "approve", "notes": "Matched M-Pesa statement"},
            headers=ADMIN,
        )

        response = client.get(f"/orders/{order_id}/payment-approvals", headers=CUSTOMER)

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["action"] == "APPROVE"
        assert entry["approverId"] == "admin-1"
        assert entry["notes"] == "Matched M-Pesa statement"

    def test_empty_before_review(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.get(f"/orders/{order_id}/payment-approvals", headers=ADMIN).json() == []

    def test_hidden_from_other_customers(self, client, eggs):
        order_id = _place(client, eggs)
        assert client.get(f"/orders/{order_id}/payment-approvals", headers=OTHER_CUSTOMER).status_code == 404
