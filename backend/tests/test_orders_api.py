"""
Tests for the orders, withdrawals, menu and reports endpoints.
"""

from tests.conftest import manila_ms, order_payload


class TestOrderEndpoints:
    def test_create_returns_201_and_publishes(self, client, published_events):
        response = client.post("/api/orders", json=order_payload(id="ord-a", created_at=1_000))

        assert response.status_code == 201
        data = response.json()
        assert data["order_number"] == 1
        assert data["total_amount"] == "480.00"
        assert data["order_status"] == "pending"
        assert published_events[-1]["event_type"] == "ORDER_CREATED"
        assert published_events[-1]["order_id"] == "ord-a"

    def test_create_replay_with_idempotency_key(self, client, published_events):
        headers = {"X-Idempotency-Key": "offline-1"}
        first = client.post("/api/orders", json=order_payload(id="ord-a"), headers=headers)
        replay = client.post("/api/orders", json=order_payload(id="ord-a"), headers=headers)

        assert first.status_code == 201
        assert replay.status_code == 200
        assert replay.json()["order_number"] == first.json()["order_number"]
        assert len(published_events) == 1

    def test_duplicate_id_is_409(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        response = client.post("/api/orders", json=order_payload(id="ord-a"))
        assert response.status_code == 409

    def test_blank_customer_is_400(self, client):
        response = client.post("/api/orders", json=order_payload(customer_name=""))
        assert response.status_code == 400
        assert response.json()["detail"] == "Customer name is required"

    def test_online_order_event(self, client, published_events):
        client.post("/api/orders", json=order_payload(id="ord-o", source="online", online_code="ONL-1"))
        assert published_events[-1]["event_type"] == "ONLINE_ORDER_CREATED"

        response = client.post("/api/orders/ord-o/confirm-payment")
        assert response.status_code == 200
        assert response.json()["online_payment_status"] == "confirmed"
        assert published_events[-1]["event_type"] == "ONLINE_ORDER_CONFIRMED"

    def test_get_unknown_order_is_404(self, client):
        response = client.get("/api/orders/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Order missing not found"

    def test_item_status_flow(self, client, published_events):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        url = "/api/orders/ord-a/items/i1/status"

        response = client.patch(url, json={"status": "preparing", "actor": {"name": "Mia"}, "at": 5_000})
        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["status"] == "preparing"
        assert item["preparing_at"] == 5_000
        assert published_events[-1]["actor_name"] == "Mia"

        count = len(published_events)
        repeat = client.patch(url, json={"status": "preparing"})
        assert repeat.status_code == 200
        assert len(published_events) == count

        backward = client.patch(url, json={"status": "pending"})
        assert backward.status_code == 400

    def test_append_and_wave_payment(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        response = client.post(
            "/api/orders/ord-a/append",
            json={"id": "w1", "items": [{"id": "a1", "name": "Turon", "price": "50.00", "quantity": 2}]},
        )
        assert response.status_code == 201
        assert response.json()["total_amount"] == "580.00"

        paid = client.patch("/api/orders/ord-a/appended/w1/payment", json={"is_paid": True, "payment_method": "cash"})
        body = paid.json()
        assert body["appended_orders"][0]["is_paid"] is True
        assert body["is_fully_paid"] is False
        assert body["pending_amount"] == "480.00"

    def test_split_payment_validation(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        response = client.patch(
            "/api/orders/ord-a/payment",
            json={"is_paid": True, "payment_method": "split", "cash_amount": "100", "gcash_amount": "100"},
        )
        assert response.status_code == 400

        response = client.patch(
            "/api/orders/ord-a/payment",
            json={"is_paid": True, "payment_method": "split", "cash_amount": "300", "gcash_amount": "180"},
        )
        assert response.status_code == 200
        assert response.json()["cash_amount"] == "300.00"

    def test_list_filters(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a", customer_name="Ana", created_at=1_000))
        client.post("/api/orders", json=order_payload(id="ord-b", customer_name="Ben", created_at=2_000))
        client.patch("/api/orders/ord-b/items/i2/status", json={"status": "preparing"})

        assert [o["id"] for o in client.get("/api/orders").json()] == ["ord-b", "ord-a"]
        assert [o["id"] for o in client.get("/api/orders", params={"status": "preparing"}).json()] == ["ord-b"]
        assert [o["id"] for o in client.get("/api/orders", params={"customer_name": "an"}).json()] == ["ord-a"]
        assert [o["id"] for o in client.get("/api/orders/preparing").json()] == ["ord-b"]

    def test_update_notes_and_delete(self, client, published_events):
        client.post("/api/orders", json=order_payload(id="ord-a"))

        updated = client.patch("/api/orders/ord-a", json={"customer_name": "Ana Cruz"})
        assert updated.json()["customer_name"] == "Ana Cruz"

        note = client.post("/api/orders/ord-a/notes", json={"content": "no onions", "author": {"name": "Mia"}})
        assert note.status_code == 201
        assert note.json()["notes"][0]["created_by"] == "Mia"

        deleted = client.delete("/api/orders/ord-a")
        assert deleted.json() == {"id": "ord-a", "deleted": True}
        assert published_events[-1]["event_type"] == "ORDER_DELETED"
        assert client.get("/api/orders/ord-a").status_code == 404

    def test_update_rejects_unknown_fields(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        response = client.patch("/api/orders/ord-a", json={"is_paid": True})
        assert response.status_code == 422


class TestLedgerEndpoints:
    def test_withdrawal_alias_normalized(self, client):
        response = client.post(
            "/api/withdrawals",
            json={"amount": "60.00", "charged_to": "all", "description": "ice", "type": "purchase", "created_at": 1_000},
        )
        assert response.status_code == 201
        assert response.json()["charged_to"] == "split"

    def test_withdrawal_unknown_owner_rejected(self, client):
        response = client.post(
            "/api/withdrawals",
            json={"amount": "60.00", "charged_to": "nobody", "description": "ice"},
        )
        assert response.status_code == 400

    def test_daily_report(self, client, seed_menu):
        at = manila_ms(2026, 3, 14, 10)
        client.post("/api/orders", json=order_payload(id="ord-a", created_at=at))
        client.patch("/api/orders/ord-a/payment", json={"is_paid": True, "payment_method": "gcash"})
        client.post(
            "/api/withdrawals",
            json={"amount": "100.00", "charged_to": "john", "description": "float", "created_at": at + 1},
        )

        response = client.get("/api/reports/daily", params={"date": "2026-03-14"})

        assert response.status_code == 200
        data = response.json()
        assert data["window"]["label"] == "2026-03-14"
        assert data["total_gcash"] == "480.00"
        assert data["net_sales"] == "380.00"
        assert data["sales_by_owner"] == {"john": "120.00", "elwin": "360.00"}

    def test_daily_report_resolves_after_midnight(self, client):
        response = client.get("/api/reports/daily", params={"at": manila_ms(2026, 3, 15, 0, 30)})
        assert response.json()["window"]["label"] == "2026-03-14"

    def test_validate_day_and_history(self, client):
        client.post("/api/orders", json=order_payload(id="ord-a", created_at=manila_ms(2026, 3, 14, 10)))
        client.post("/api/orders", json=order_payload(id="ord-b", created_at=manila_ms(2026, 3, 15, 10)))

        validated = client.post("/api/reports/daily/validate", json={"business_date": "2026-03-14", "validated_by_name": "john"})
        assert validated.json()["is_validated"] is True

        history = client.get("/api/reports/daily/history").json()
        assert history["total"] == 2
        assert [s["window"]["label"] for s in history["items"]] == ["2026-03-15", "2026-03-14"]

    def test_monthly_report(self, client):
        response = client.get("/api/reports/monthly", params={"year": 2026, "month": 2})
        assert response.json()["window"]["label"] == "2026-02"

    def test_menu_items(self, client, seed_menu):
        names = {m["name"] for m in client.get("/api/menu-items").json()}
        assert names == {"Latte", "Pancit", "Turon", "Iced Tea"}


class TestKitchenEndpoint:
    def test_queue_groups_across_orders(self, client, seed_menu):
        client.post("/api/orders", json=order_payload(id="ord-a", created_at=1_000))
        client.post("/api/orders", json=order_payload(id="ord-b", created_at=2_000))
        client.patch("/api/orders/ord-b/items/i2/status", json={"status": "preparing"})

        queue = client.get("/api/kitchen/queue", params={"at": 2_000 + 11 * 60_000}).json()

        groups = {(g["name"], g["status"]): g for g in queue["groups"]}
        assert groups[("Latte", "pending")]["total_quantity"] == 2
        assert groups[("Latte", "pending")]["station"] == "drinks"
        assert groups[("Pancit", "pending")]["total_quantity"] == 2
        assert groups[("Pancit", "preparing")]["urgency"] is None
        assert queue["groups"][0]["status"] == "pending"
        assert queue["groups"][-1]["status"] == "preparing"

    def test_queue_station_filter(self, client, seed_menu):
        client.post("/api/orders", json=order_payload(id="ord-a"))
        queue = client.get("/api/kitchen/queue", params={"station": "food"}).json()
        assert {g["name"] for g in queue["groups"]} == {"Pancit"}


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["service"] == "rest-api"
