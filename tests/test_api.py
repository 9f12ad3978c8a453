"""
End-to-end tests for the HTTP API.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from eventzon.models import User
from eventzon.utils.auth import create_access_token
from tests.conftest import persist

ATTENDEE = {"name": "Awa Ngono", "email": "awa.ngono@example.cm", "phone": "+237699001122"}


async def book(client: AsyncClient, headers: dict, event_id, quantity: int = 1):
    return await client.post(
        f"/api/v1/events/{event_id}/book",
        json={"quantity": quantity, "attendee": ATTENDEE},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_list_and_get_events(client: AsyncClient, test_event, small_event):
    response = await client.get("/api/v1/events", params={"city": "Douala"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["title"] == "Concert Intime"

    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    assert response.json()["available_tickets"] == 100


@pytest.mark.asyncio
async def test_unknown_event_is_404(client: AsyncClient):
    response = await client.get("/api/v1/events/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["error"]["error_code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_create_event_requires_admin(client: AsyncClient, auth_headers, admin_headers):
    payload = {
        "title": "Fête de la Musique",
        "venue": "Esplanade de l'Hôtel de Ville",
        "city": "Yaoundé",
        "region": "Centre",
        "event_date": (date.today() + timedelta(days=10)).isoformat(),
        "start_time": "18:00:00",
        "price": "2000.00",
        "max_attendees": 300,
    }

    response = await client.post("/api/v1/events", json=payload, headers=auth_headers)
    assert response.status_code == 403

    response = await client.post("/api/v1/events", json=payload, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["available_tickets"] == 300
    assert data["currency"] == "XAF"
    assert data["status"] == "active"


@pytest.mark.asyncio
async def test_book_requires_authentication(client: AsyncClient, test_event):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/book",
        json={"quantity": 1, "attendee": ATTENDEE},
    )
    assert response.status_code == 401
    assert response.json()["error"]["error_code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_book_and_cancel(client: AsyncClient, auth_headers, test_event, sent_notifications):
    response = await book(client, auth_headers, test_event.id, 2)
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "confirmed"
    assert booking["total_amount"] == "3000.00"
    assert booking["event_title"] == "Makossa Night"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["available_tickets"] == 98

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "cancelled"

    # Second cancel is a no-op
    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 200

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["available_tickets"] == 100
    assert [kind for kind, _ in sent_notifications] == ["booking_confirmation", "booking_cancellation"]


@pytest.mark.asyncio
async def test_sold_out_returns_409(client: AsyncClient, auth_headers, small_event):
    assert (await book(client, auth_headers, small_event.id, 2)).status_code == 201

    response = await book(client, auth_headers, small_event.id, 1)
    assert response.status_code == 409
    assert response.json()["error"]["error_code"] == "EVENT_UNAVAILABLE"


@pytest.mark.asyncio
async def test_invalid_quantity_is_rejected(client: AsyncClient, auth_headers, test_event):
    response = await book(client, auth_headers, test_event.id, 11)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cart_checkout_flow(client: AsyncClient, auth_headers, test_event, small_event):
    response = await client.post(
        "/api/v1/cart", json={"event_id": str(test_event.id), "quantity": 2}, headers=auth_headers
    )
    assert response.status_code == 201
    response = await client.post(
        "/api/v1/cart", json={"event_id": str(small_event.id), "quantity": 5}, headers=auth_headers
    )
    cart = response.json()
    assert cart["total_quantity"] == 7
    assert cart["total_amount"] == "10500.00"

    response = await client.post("/api/v1/cart/checkout", json={"attendee": ATTENDEE}, headers=auth_headers)
    assert response.status_code == 200
    result = response.json()
    assert len(result["bookings"]) == 1
    assert result["failures"][0]["event_id"] == str(small_event.id)

    cart = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert [item["event_id"] for item in cart["items"]] == [str(small_event.id)]

    response = await client.delete("/api/v1/cart", headers=auth_headers)
    assert response.json()["data"]["removed_items"] == 1


@pytest.mark.asyncio
async def test_update_and_remove_cart_line(client: AsyncClient, auth_headers, test_event):
    cart = (await client.post(
        "/api/v1/cart", json={"event_id": str(test_event.id)}, headers=auth_headers
    )).json()
    item_id = cart["items"][0]["id"]

    cart = (await client.put(f"/api/v1/cart/{item_id}", json={"quantity": 3}, headers=auth_headers)).json()
    assert cart["items"][0]["quantity"] == 3

    response = await client.delete(f"/api/v1/cart/{item_id}", headers=auth_headers)
    assert response.status_code == 204
    assert (await client.get("/api/v1/cart", headers=auth_headers)).json()["items"] == []


@pytest.mark.asyncio
async def test_ticket_download_and_qr(client: AsyncClient, auth_headers, admin_headers, test_event):
    booking = (await book(client, auth_headers, test_event.id)).json()

    response = await client.get(f"/api/v1/bookings/{booking['id']}/ticket", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert f"billet-{booking['booking_reference']}.html" in response.headers["content-disposition"]
    assert booking["ticket_number"] in response.text

    response = await client.get(f"/api/v1/bookings/{booking['id']}/qr", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_other_users_booking_is_hidden(client: AsyncClient, auth_headers, test_event, session_factory):
    other = await persist(session_factory, User(email="eric.fotso@example.cm", first_name="Eric"))
    other_headers = {"Authorization": f"Bearer {create_access_token(data={'sub': str(other.id)})}"}

    booking = (await book(client, auth_headers, test_event.id)).json()

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=other_headers)
    assert response.status_code == 404
    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_my_bookings(client: AsyncClient, auth_headers, test_event):
    for _ in range(3):
        await book(client, auth_headers, test_event.id)

    response = await client.get("/api/v1/bookings", params={"limit": 2}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert len(data["bookings"]) == 2


@pytest.mark.asyncio
async def test_verify_and_check_in(client: AsyncClient, auth_headers, admin_headers, test_event, settings):
    booking = (await book(client, auth_headers, test_event.id)).json()
    ticket = booking["ticket_number"]

    response = await client.get(f"/api/v1/verify-ticket/{ticket}")
    assert response.status_code == 200
    assert response.json()["valid"] is True

    response = await client.post(f"/api/v1/admin/check-in/{ticket}", headers=auth_headers)
    assert response.status_code == 403

    response = await client.post(f"/api/v1/admin/check-in/{ticket}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "attended"

    response = await client.post(f"/api/v1/admin/check-in/{ticket}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["error"]["error_code"] == "ALREADY_CHECKED_IN"

    response = await client.get(f"/api/v1/verify-ticket/{ticket}")
    assert response.json()["valid"] is False


@pytest.mark.asyncio
async def test_unknown_ticket(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/verify-ticket/TK404")
    assert response.status_code == 200
    assert response.json()["valid"] is False

    response = await client.post("/api/v1/admin/check-in/TK404", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["error_code"] == "INVALID_TICKET"


@pytest.mark.asyncio
async def test_admin_analytics_and_listings(client: AsyncClient, auth_headers, admin_headers, test_event):
    await book(client, auth_headers, test_event.id, 3)

    response = await client.get("/api/v1/admin/analytics", headers=auth_headers)
    assert response.status_code == 403

    response = await client.get("/api/v1/admin/analytics", headers=admin_headers)
    assert response.status_code == 200
    report = response.json()
    assert report["total_bookings"] == 1
    assert report["total_revenue"] == "4500.00"
    assert report["popular_cities"][0]["name"] == "Yaoundé"

    today = date.today().isoformat()
    response = await client.get(
        "/api/v1/admin/analytics",
        params={"start_date": today, "end_date": "2000-01-01"},
        headers=admin_headers,
    )
    assert response.status_code == 422

    response = await client.get("/api/v1/admin/bookings", headers=admin_headers)
    assert response.json()["total"] == 1

    response = await client.get(f"/api/v1/admin/events/{test_event.id}/bookings", headers=admin_headers)
    assert response.json()["bookings"][0]["quantity"] == 3


@pytest.mark.asyncio
async def test_cameroon_reference_data(client: AsyncClient):
    regions = (await client.get("/api/v1/cameroon/regions")).json()
    assert len(regions) == 10
    assert {"name": "Littoral", "capital": "Douala"} in regions

    cities = (await client.get("/api/v1/cameroon/cities", params={"region": "littoral"})).json()
    assert [city["name"] for city in cities] == ["Douala", "Edéa"]


@pytest.mark.asyncio
async def test_admin_updates_and_cancels_event(client: AsyncClient, auth_headers, admin_headers, test_event):
    url = f"/api/v1/events/{test_event.id}"
    booking = (await book(client, auth_headers, test_event.id, 2)).json()

    response = await client.put(url, json={"status": "cancelled"}, headers=auth_headers)
    assert response.status_code == 403

    response = await client.put(url, json={"max_attendees": 150, "title": "Makossa Night 2"}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert (data["title"], data["max_attendees"], data["available_tickets"]) == ("Makossa Night 2", 150, 148)

    response = await client.put(url, json={"max_attendees": 1}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["error"]["error_code"] == "VALIDATION_ERROR"

    response = await client.put(url, json={"status": "sold_out"}, headers=admin_headers)
    assert response.status_code == 422

    response = await client.put(url, json={"status": "cancelled"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await book(client, auth_headers, test_event.id)
    assert response.status_code == 409
    verification = (await client.get(f"/api/v1/verify-ticket/{booking['ticket_number']}")).json()
    assert verification["valid"] is False


@pytest.mark.asyncio
async def test_admin_deletes_event(client: AsyncClient, auth_headers, admin_headers, test_event):
    booking = (await book(client, auth_headers, test_event.id)).json()
    url = f"/api/v1/events/{test_event.id}"

    response = await client.delete(url, headers=auth_headers)
    assert response.status_code == 403

    response = await client.delete(url, headers=admin_headers)
    assert response.status_code == 204

    assert (await client.get(url)).status_code == 404
    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 404
