"""Tests for /orders and /admin/orders routes."""

import pytest

ADDRESS = {"street": "Moi Avenue 3", "city": "Mombasa", "county": "Mombasa", "postalCode": "80100"}
CONTACT = {"name": "Baraka", "phone": "0722000111", "email": "Baraka@Example.com"}


@pytest.fixture
def meals(make_meal):
    return make_meal("Ugali & sukuma", 150), make_meal("Pilau", 450)


@pytest.fixture
def order_payload(meals):
    first, second = meals
    return {
        "items": [
            {"mealId": first.id, "quantity": 2, "specialInstructions": "Extra sukuma"},
            {"mealId": second.id, "quantity": 1},
        ],
        "deliveryAddress": dict(ADDRESS),
        "contactInfo": CONTACT,
        "paymentMethod": "cash_on_delivery",
        "allergies": ["peanuts"],
    }


@pytest.fixture
def placed(client, order_payload):
    response = client.post("/orders", json=order_payload)
    assert response.status_code == 201
    return response.json()["data"]["order"]


@pytest.fixture
def staff(make_user):
    return make_user(role="staff")


def advance(client, auth, staff, customer, order_id, *statuses):
    auth.login(staff)
    for status in statuses:
        response = client.patch(f"/admin/orders/{order_id}/status", json={"status": status})
        assert response.status_code == 200, response.json()
    auth.login(customer)


class TestCreateOrderRoute:
    def test_summary(self, placed):
        assert placed["orderNumber"].startswith("MH")
        assert placed["subtotal"] == 750.0
        assert placed["deliveryFee"] == 200.0
        assert placed["tax"] == 120.0
        assert placed["total"] == 1070.0
        assert placed["orderStatus"] == "pending"
        assert placed["paymentStatus"] == "pending"
        assert placed["deliveryAddress"]["city"] == "Mombasa"
        assert placed["createdAt"] is not None
        assert placed["estimatedDelivery"] is not None

    def test_empty_items(self, client, order_payload):
        order_payload["items"] = []
        response = client.post("/orders", json=order_payload)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_zero_quantity(self, client, order_payload):
        order_payload["items"][0]["quantity"] = 0
        assert client.post("/orders", json=order_payload).status_code == 400

    def test_unavailable_meal(self, client, order_payload, make_meal):
        retired = make_meal("Retired", 80, is_active=False)
        order_payload["items"].append({"mealId": retired.id, "quantity": 1})
        response = client.post("/orders", json=order_payload)
        assert response.status_code == 400
        assert client.get("/orders").json()["data"]["orders"] == []
        assert response.json()["errors"] == [
            {"field": "items", "message": f"Meal {retired.id} not found or not available"}
        ]

    def test_nonexistent_meal(self, client, order_payload):
        order_payload["items"] = [{"mealId": 9999, "quantity": 1}]
        response = client.post("/orders", json=order_payload)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_missing_address_field(self, client, order_payload):
        del order_payload["deliveryAddress"]["county"]
        response = client.post("/orders", json=order_payload)
        assert response.status_code == 400
        assert any("county" in e["field"] for e in response.json()["errors"])

    def test_unknown_payment_method(self, client, order_payload):
        order_payload["paymentMethod"] = "barter"
        assert client.post("/orders", json=order_payload).status_code == 400


class TestReadOrderRoutes:
    def test_detail(self, client, placed):
        response = client.get(f"/orders/{placed['id']}")
        order = response.json()["data"]["order"]

        assert order["orderNumber"] == placed["orderNumber"]
        assert order["contactInfo"]["email"] == "baraka@example.com"
        assert order["allergies"] == ["peanuts"]
        assert order["items"][0] == {
            "mealId": order["items"][0]["mealId"],
            "name": "Ugali & sukuma",
            "quantity": 2,
            "unitPrice": 150.0,
            "lineTotal": 300.0,
            "specialInstructions": "Extra sukuma",
        }
        assert order["total"] == order["subtotal"] + order["deliveryFee"] + order["tax"]

    def test_other_users_order(self, client, auth, make_user, placed):
        auth.login(make_user())
        assert client.get(f"/orders/{placed['id']}").status_code == 404

    def test_list(self, client, placed):
        data = client.get("/orders").json()["data"]
        assert [o["id"] for o in data["orders"]] == [placed["id"]]
        assert data["pagination"]["totalItems"] == 1


class TestTrackingRoute:
    def test_tracking_timeline(self, client, auth, user, staff, placed):
        advance(client, auth, staff, user, placed["id"], "confirmed", "preparing")

        response = client.get(f"/orders/tracking/{placed['orderNumber']}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["order"]["status"] == "preparing"
        assert len(data["order"]["items"]) == 2
        assert [m["completed"] for m in data["timeline"]] == [True, True, True, False, False]
        assert data["timeline"][4]["time"] is None

    def test_delivered_tracking(self, client, auth, user, staff, placed):
        auth.login(staff)
        client.patch(f"/admin/orders/{placed['id']}/status", json={"status": "confirmed"})
        client.patch(f"/admin/orders/{placed['id']}/status", json={"status": "preparing"})
        client.patch(
            f"/admin/orders/{placed['id']}/status",
            json={"status": "out_for_delivery", "deliveryPerson": {"name": "Otieno", "phone": "0700111222"}},
        )
        client.patch(f"/admin/orders/{placed['id']}/status", json={"status": "delivered"})
        auth.login(user)

        data = client.get(f"/orders/tracking/{placed['orderNumber']}").json()["data"]
        assert data["order"]["deliveryPerson"]["name"] == "Otieno"
        assert data["order"]["actualDelivery"] is not None
        assert all(m["completed"] for m in data["timeline"])
        assert data["timeline"][4]["time"] is not None

    def test_unknown_order_number(self, client):
        assert client.get("/orders/tracking/MH000000000").status_code == 404


class TestCancelAndRateRoutes:
    def test_cancel(self, client, placed):
        response = client.put(f"/orders/{placed['id']}/cancel", json={"reason": "Ordered twice"})
        assert response.status_code == 200
        assert response.json()["data"]["order"]["orderStatus"] == "cancelled"

    def test_cancel_out_for_delivery(self, client, auth, user, staff, placed):
        advance(client, auth, staff, user, placed["id"], "confirmed", "preparing", "out_for_delivery")
        assert client.put(f"/orders/{placed['id']}/cancel").status_code == 400

    def test_rate_pending_order(self, client, placed):
        response = client.post(
            f"/orders/{placed['id']}/rate",
            json={"foodRating": 5, "deliveryRating": 5, "overallRating": 5},
        )
        assert response.status_code == 400

    def test_rate_delivered_order(self, client, auth, user, staff, placed):
        advance(
            client, auth, staff, user, placed["id"],
            "confirmed", "preparing", "out_for_delivery", "delivered",
        )
        response = client.post(
            f"/orders/{placed['id']}/rate",
            json={"foodRating": 4, "deliveryRating": 5, "overallRating": 4.5, "comment": "Tasty"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["rating"]["overall"] == 4.5


class TestOrderAdminRoutes:
    def test_customer_cannot_advance(self, client, placed):
        response = client.patch(f"/admin/orders/{placed['id']}/status", json={"status": "confirmed"})
        assert response.status_code == 403

    def test_professional_cannot_advance(self, client, auth, make_user, placed):
        auth.login(make_user(role="professional"))
        response = client.patch(f"/admin/orders/{placed['id']}/status", json={"status": "confirmed"})
        assert response.status_code == 403

    def test_record_payment(self, client, auth, staff, placed):
        auth.login(staff)
        response = client.post(
            f"/admin/orders/{placed['id']}/payment", json={"success": True, "transactionId": "QX1"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["order"]["paymentStatus"] == "paid"
