"""
Integration tests for the REST API endpoints.

Runs the real application factory over ``httpx.ASGITransport`` with the
SQLite database, in-memory sessions and offline distance provider from
``conftest``.  Every request authenticates with a bearer token minted
for one of the seeded users.
"""

import asyncio
import math

import pytest
import pytest_asyncio

from motogo.infrastructure.repositories import UserRepository

from tests.conftest import DROPOFF, PICKUP, bearer, order_body

API = "/api/v1"


@pytest_asyncio.fixture
async def order(client, tokens) -> dict:
    resp = await client.post(
        f"{API}/orders", json=order_body(), headers=bearer(tokens["customer-1"])
    )
    assert resp.status_code == 201
    return resp.json()


async def _advance(client, tokens, order_id, *statuses, driver="driver-1"):
    headers = bearer(tokens[driver])
    resp = await client.post(f"{API}/orders/{order_id}/accept", headers=headers)
    assert resp.status_code == 200
    for status in statuses:
        resp = await client.post(
            f"{API}/orders/{order_id}/status", json={"status": status}, headers=headers
        )
        assert resp.status_code == 200
    return resp.json()


# ── Health / auth guard ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get(f"{API}/admin/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/orders"),
        ("get", "/orders/1"),
        ("post", "/orders/1/accept"),
        ("post", "/orders/1/cancel"),
        ("get", "/auth/me"),
    ],
)
async def test_requires_session(client, method, path):
    resp = await client.request(method.upper(), f"{API}{path}")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_token_rejected(client):
    resp = await client.get(f"{API}/orders", headers=bearer("not-a-session"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or expired session"


# ── Pricing ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_quote_breakdown(client, tokens):
    resp = await client.post(
        f"{API}/orders/quote",
        json={
            "pickupLat": PICKUP[0],
            "pickupLng": PICKUP[1],
            "dropoffLat": DROPOFF[0],
            "dropoffLng": DROPOFF[1],
        },
        headers=bearer(tokens["customer-1"]),
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["basePrice"] == max(50, 30 + data["distance"] * 12)
    assert data["customerPaysCash"] == data["driverEarnings"] + data["platformEarnings"]
    assert data["customerPaysCard"] == data["customerPaysCash"] + data["processingFee"]
    for key in ("driverEarnings", "platformEarnings", "processingFee"):
        assert data[key] % 5 == 0


# ── Orders ────────────────────────────────────────────────────────────


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_customer_creates_order(self, client, tokens):
        resp = await client.post(
            f"{API}/orders",
            json=order_body(type="food", description="Dos empanadas"),
            headers=bearer(tokens["customer-1"]),
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["type"] == "food"
        assert data["customerId"] == "customer-1"
        assert data["driverId"] is None
        assert data["description"] == "Dos empanadas"
        assert data["price"] > 50

    @pytest.mark.asyncio
    async def test_price_is_computed_by_server(self, client, tokens):
        headers = bearer(tokens["customer-1"])
        quote = (
            await client.post(
                f"{API}/orders/quote",
                json={k: v for k, v in order_body().items() if k.endswith(("Lat", "Lng"))},
                headers=headers,
            )
        ).json()

        resp = await client.post(f"{API}/orders", json=order_body(price=1), headers=headers)

        assert resp.status_code == 201
        assert resp.json()["price"] == math.floor(quote["basePrice"] + 0.5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"pickupLat": 95}, "pickupLat"),
            ({"dropoffLng": -200}, "dropoffLng"),
            ({"type": "boat"}, "type"),
            ({"pickupAddress": ""}, "pickupAddress"),
            ({"price": 0}, "price"),
        ],
    )
    async def test_invalid_body(self, client, tokens, overrides, field):
        resp = await client.post(
            f"{API}/orders",
            json=order_body(**overrides),
            headers=bearer(tokens["customer-1"]),
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == field

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, tokens):
        resp = await client.post(
            f"{API}/orders", json={"type": "ride"}, headers=bearer(tokens["customer-1"])
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_driver_cannot_create(self, client, tokens):
        resp = await client.post(
            f"{API}/orders", json=order_body(), headers=bearer(tokens["driver-1"])
        )
        assert resp.status_code == 403


class TestOrderLifecycle:
    @pytest.mark.asyncio
    async def test_full_flow(self, client, tokens, order):
        done = await _advance(client, tokens, order["id"], "in_progress", "completed")

        assert done["status"] == "completed"
        assert done["driverId"] == "driver-1"
        assert done["price"] == order["price"]

        polled = await client.get(
            f"{API}/orders/{order['id']}", headers=bearer(tokens["customer-1"])
        )
        assert polled.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_second_driver_gets_conflict(self, client, tokens, order):
        await _advance(client, tokens, order["id"])

        resp = await client.post(
            f"{API}/orders/{order['id']}/accept", headers=bearer(tokens["driver-2"])
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Order is not available"

    @pytest.mark.asyncio
    async def test_concurrent_accepts_have_one_winner(self, client, tokens, order):
        url = f"{API}/orders/{order['id']}/accept"
        responses = await asyncio.gather(
            client.post(url, headers=bearer(tokens["driver-1"])),
            client.post(url, headers=bearer(tokens["driver-2"])),
        )

        codes = sorted(r.status_code for r in responses)
        assert codes == [200, 409]
        winner = next(r for r in responses if r.status_code == 200).json()["driverId"]

        stored = await client.get(
            f"{API}/orders/{order['id']}", headers=bearer(tokens["customer-1"])
        )
        assert stored.json()["driverId"] == winner

    @pytest.mark.asyncio
    async def test_customer_cannot_accept(self, client, tokens, order):
        resp = await client.post(
            f"{API}/orders/{order['id']}/accept", headers=bearer(tokens["customer-1"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_driver_cannot_update_status(self, client, tokens, order):
        await _advance(client, tokens, order["id"])
        resp = await client.post(
            f"{API}/orders/{order['id']}/status",
            json={"status": "in_progress"},
            headers=bearer(tokens["driver-2"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_status_endpoint_rejects_other_targets(self, client, tokens, order):
        await _advance(client, tokens, order["id"])
        resp = await client.post(
            f"{API}/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=bearer(tokens["driver-1"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_cannot_skip_to_completed(self, client, tokens, order):
        await _advance(client, tokens, order["id"])
        resp = await client.post(
            f"{API}/orders/{order['id']}/status",
            json={"status": "completed"},
            headers=bearer(tokens["driver-1"]),
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel_pending(self, client, tokens, order):
        resp = await client.post(
            f"{API}/orders/{order['id']}/cancel", headers=bearer(tokens["customer-1"])
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_cancel_after_accept_conflicts(self, client, tokens, order):
        await _advance(client, tokens, order["id"])
        resp = await client.post(
            f"{API}/orders/{order['id']}/cancel", headers=bearer(tokens["customer-1"])
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Can only cancel pending orders"

    @pytest.mark.asyncio
    async def test_other_customer_cannot_cancel(self, client, tokens, order):
        resp = await client.post(
            f"{API}/orders/{order['id']}/cancel", headers=bearer(tokens["customer-2"])
        )
        assert resp.status_code == 403


class TestOrderReads:
    @pytest.mark.asyncio
    async def test_get_missing(self, client, tokens):
        resp = await client.get(f"{API}/orders/999", headers=bearer(tokens["customer-1"]))
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_non_numeric_id(self, client, tokens):
        resp = await client.get(f"{API}/orders/abc", headers=bearer(tokens["customer-1"]))
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_other_customer_cannot_view(self, client, tokens, order):
        resp = await client.get(
            f"{API}/orders/{order['id']}", headers=bearer(tokens["customer-2"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_lists_by_role(self, client, tokens, order):
        async def ids(user_id):
            resp = await client.get(f"{API}/orders", headers=bearer(tokens[user_id]))
            assert resp.status_code == 200
            return [o["id"] for o in resp.json()]

        assert await ids("customer-1") == [order["id"]]
        assert await ids("customer-2") == []
        assert await ids("driver-2") == [order["id"]]

        await _advance(client, tokens, order["id"])
        assert await ids("driver-1") == [order["id"]]
        assert await ids("driver-2") == []
        assert await ids("admin-1") == [order["id"]]


# ── Ratings ───────────────────────────────────────────────────────────


class TestRatings:
    @pytest.mark.asyncio
    async def test_rate_completed_order_once(self, client, tokens, order):
        await _advance(client, tokens, order["id"], "in_progress", "completed")
        headers = bearer(tokens["customer-1"])
        body = {"orderId": order["id"], "driverId": "driver-1", "rating": 5, "comment": "Excelente"}

        first = await client.post(f"{API}/ratings", json=body, headers=headers)
        assert first.status_code == 201
        assert first.json()["rating"] == 5

        again = await client.post(f"{API}/ratings", json={**body, "rating": 1}, headers=headers)
        assert again.status_code == 409

        stored = await client.get(f"{API}/ratings/order/{order['id']}", headers=headers)
        assert stored.json()["rating"] == 5

    @pytest.mark.asyncio
    async def test_cannot_rate_unfinished_order(self, client, tokens, order):
        await _advance(client, tokens, order["id"], "in_progress")
        resp = await client.post(
            f"{API}/ratings",
            json={"orderId": order["id"], "driverId": "driver-1", "rating": 4},
            headers=bearer(tokens["customer-1"]),
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, client, tokens, order):
        resp = await client.post(
            f"{API}/ratings",
            json={"orderId": order["id"], "driverId": "driver-1", "rating": 6},
            headers=bearer(tokens["customer-1"]),
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == "rating"

    @pytest.mark.asyncio
    async def test_unrated_order_returns_null(self, client, tokens, order):
        resp = await client.get(
            f"{API}/ratings/order/{order['id']}", headers=bearer(tokens["customer-1"])
        )
        assert resp.status_code == 200
        assert resp.json() is None

    @pytest.mark.asyncio
    async def test_driver_average(self, client, tokens):
        headers = bearer(tokens["customer-1"])
        for score in (5, 4):
            created = await client.post(f"{API}/orders", json=order_body(), headers=headers)
            order_id = created.json()["id"]
            await _advance(client, tokens, order_id, "in_progress", "completed")
            resp = await client.post(
                f"{API}/ratings",
                json={"orderId": order_id, "driverId": "driver-1", "rating": score},
                headers=headers,
            )
            assert resp.status_code == 201

        resp = await client.get(f"{API}/ratings/driver/driver-1")

        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 2
        assert data["average"] == 4.5
        assert len(data["ratings"]) == 2


# ── Driver feed ───────────────────────────────────────────────────────


class TestDriverFeed:
    @pytest.mark.asyncio
    async def test_driver_goes_online_and_is_found_nearby(self, client, tokens):
        headers = bearer(tokens["driver-1"])
        resp = await client.put(
            f"{API}/driver/location", json={"lat": 18.4740, "lng": -69.8850}, headers=headers
        )
        assert resp.status_code == 204
        resp = await client.put(
            f"{API}/driver/availability", json={"isOnline": True}, headers=headers
        )
        assert resp.status_code == 204

        near = await client.get(
            f"{API}/drivers", params={"lat": PICKUP[0], "lng": PICKUP[1]}
        )
        assert [d["id"] for d in near.json()] == ["driver-1"]
        assert near.json()[0]["isOnline"] is True

        far = await client.get(f"{API}/drivers", params={"lat": 19.45, "lng": -70.69})
        assert far.json() == []

    @pytest.mark.asyncio
    async def test_customer_cannot_report_location(self, client, tokens):
        resp = await client.put(
            f"{API}/driver/location",
            json={"lat": 18.47, "lng": -69.88},
            headers=bearer(tokens["customer-1"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_bad_coordinates(self, client, tokens):
        resp = await client.put(
            f"{API}/driver/location",
            json={"lat": 100, "lng": -69.88},
            headers=bearer(tokens["driver-1"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_lat_without_lng(self, client):
        resp = await client.get(f"{API}/drivers", params={"lat": 18.47})
        assert resp.status_code == 400


# ── Accounts ──────────────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_register_login_me_logout(self, client):
        resp = await client.post(
            f"{API}/auth/register",
            json={
                "email": "nuevo@example.com",
                "password": "secret1",
                "firstName": "Nuevo",
                "role": "driver",
            },
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "driver"
        assert resp.json()["user"]["username"] == "nuevo"

        resp = await client.post(
            f"{API}/auth/login",
            json={"email": "nuevo@example.com", "password": "secret1"},
        )
        assert resp.status_code == 200
        token = resp.json()["token"]
        assert resp.json()["tokenType"] == "bearer"

        me = await client.get(f"{API}/auth/me", headers=bearer(token))
        assert me.status_code == 200
        assert me.json()["firstName"] == "Nuevo"

        assert (await client.post(f"{API}/auth/logout", headers=bearer(token))).status_code == 204
        assert (await client.get(f"{API}/auth/me", headers=bearer(token))).status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await client.post(
            f"{API}/auth/register", json={"email": "ana@example.com", "password": "secret1"}
        )
        resp = await client.post(
            f"{API}/auth/login", json={"email": "ana@example.com", "password": "nope"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        body = {"email": "ana@example.com", "password": "secret1"}
        assert (await client.post(f"{API}/auth/register", json=body)).status_code == 201
        resp = await client.post(f"{API}/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["field"] == "email"

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_registration_conflicts(self, client, monkeypatch):
        # Both requests pass the lookups; the unique index decides
        async def not_found(self, value):
            return None

        monkeypatch.setattr(UserRepository, "get_by_email", not_found)
        monkeypatch.setattr(UserRepository, "get_by_username", not_found)

        resp = await client.post(
            f"{API}/auth/register",
            json={"email": "customer-1@example.com", "password": "secret1"},
        )

        assert resp.status_code == 409
        assert resp.json()["field"] == "email"

    @pytest.mark.asyncio
    async def test_cannot_self_register_as_admin(self, client):
        resp = await client.post(
            f"{API}/auth/register",
            json={"email": "boss@example.com", "password": "secret1", "role": "admin"},
        )
        assert resp.status_code == 400
