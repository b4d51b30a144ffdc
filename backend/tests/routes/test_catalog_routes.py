"""Tests for the public catalog and availability endpoints."""

from unittest.mock import patch

from reservation_api.core.config import settings


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics_exposed(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


def test_dates(client):
    response = client.get("/api/v1/dates")
    assert response.status_code == 200
    assert len(response.json()["dates"]) == settings.booking_horizon_days


def test_timeslots_without_date_lists_catalog(client, timeslot, make_timeslot):
    make_timeslot(time="05:00", is_active=False)
    response = client.get("/api/v1/timeslots")

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [timeslot.id]


def test_timeslots_with_date_reports_availability(
    client, make_user, make_reservation, court, timeslot, tomorrow
):
    make_reservation(make_user(), court, timeslot, tomorrow, status="pending")

    response = client.get("/api/v1/timeslots", params={"date": tomorrow.isoformat()})

    assert response.status_code == 200
    (row,) = response.json()
    assert row["timeslot"]["id"] == timeslot.id
    assert row["booked_count"] == 1
    assert row["available_courts"] == 0
    assert row["available"] is False


def test_timeslots_invalid_date(client, timeslot):
    response = client.get("/api/v1/timeslots", params={"date": "31-12-2030"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_INPUT"


def test_courts_with_slot_reports_availability(
    client, make_court, make_user, make_reservation, court, timeslot, tomorrow
):
    second = make_court(name="Reformer Court B")
    make_reservation(make_user(), court, timeslot, tomorrow)

    response = client.get(
        "/api/v1/courts", params={"date": tomorrow.isoformat(), "timeslot_id": timeslot.id}
    )

    assert response.status_code == 200
    availability = {row["court"]["id"]: row["available"] for row in response.json()}
    assert availability == {court.id: False, second.id: True}


def test_courts_requires_both_filters(client, court, tomorrow):
    response = client.get("/api/v1/courts", params={"date": tomorrow.isoformat()})
    assert response.status_code == 400


class TestAdminRoutes:
    def test_requires_authentication(self, client):
        assert client.get("/api/v1/admin/courts").status_code == 401

    def test_non_admin_forbidden(self, client, user, auth_headers_for):
        with patch.object(settings, "admin_emails", []):
            response = client.get("/api/v1/admin/courts", headers=auth_headers_for(user))
        assert response.status_code == 403

    def test_admin_manages_courts(self, client, user, auth_headers_for):
        headers = auth_headers_for(user)
        with patch.object(settings, "admin_emails", [user.email.upper()]):
            created = client.post(
                "/api/v1/admin/courts", json={"name": "Tower Court", "capacity": 3}, headers=headers
            )
            assert created.status_code == 201
            court_id = created.json()["id"]

            updated = client.put(
                f"/api/v1/admin/courts/{court_id}", json={"capacity": 5}, headers=headers
            )
            assert updated.json()["capacity"] == 5

            deleted = client.delete(f"/api/v1/admin/courts/{court_id}", headers=headers)
            assert deleted.json()["is_active"] is False

            stats = client.get("/api/v1/admin/stats", headers=headers)
            assert stats.json()["total_courts"] == 0
