# fleetops/tests/test_api.py

from fleetops.tests.factories import create_test_admin
from fleetops.users.models import Role


def headers(actor_id, role):
    return {"X-Actor-Id": str(actor_id), "X-Actor-Role": role}


class TestApiSurface:
    """Routing, identity headers and error bodies"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_identity_headers_required(self, client):
        assert client.get("/bookings").status_code == 401
        assert client.get("/bookings", headers=headers(1, "pilot")).status_code == 401

    def test_drivers_cannot_use_admin_routes(self, client):
        response = client.get("/drivers", headers=headers(1, "user"))

        assert response.status_code == 403

    def test_duplicate_driver_code(self, client):
        admin = headers(1, "admin")
        payload = {"driver_code": "DRV-9", "full_name": "Sam Driver"}

        assert client.post("/drivers", json=payload, headers=admin).status_code == 201
        response = client.post("/drivers", json=payload, headers=admin)

        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "DuplicateRecord"


class TestSettlementFlow:
    """Booking to settled wallet through the HTTP API"""

    def test_full_flow(self, client, db_session):
        admin = create_test_admin(db_session, role=Role.ADMIN, balance="1000")
        as_admin = headers(admin.id, "admin")

        driver = client.post(
            "/drivers", json={"driver_code": "DRV-1", "full_name": "Sam Driver"}, headers=as_admin
        ).json()
        as_driver = headers(driver["id"], "user")

        booking = client.post(
            "/bookings",
            json={"data": [{"key": "Duty Id", "value": "API-1"}], "driver_id": driver["id"]},
            headers=as_admin,
        ).json()
        booking_id = booking["id"]

        expense_payload = {
            "billingItems": [{"category": "Parking", "amount": 300}],
            "dailyAllowance": 500,
        }
        response = client.put(f"/expenses/bookings/{booking_id}", json=expense_payload, headers=as_driver)
        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "DutyInfoRequired"
        assert response.json()["detail"]["dutyInfoRequired"] is True

        duty_payload = {
            "startDate": "2024-03-01", "startTime": "08:00",
            "endDate": "2024-03-01", "endTime": "17:00",
            "startKm": 1000, "endKm": 1150, "dutyType": "Local",
        }
        response = client.put(f"/duties/bookings/{booking_id}", json=duty_payload, headers=as_driver)
        assert response.status_code == 200
        assert response.json()["duty"]["total_km"] == 150.0
        assert response.json()["duty"]["total_hours"] == 9.0

        response = client.put(f"/expenses/bookings/{booking_id}", json=expense_payload, headers=as_driver)
        assert response.status_code == 200
        assert response.json()["expense"]["total_driver_expense"] == 800.0

        response = client.put(
            f"/receivings/bookings/{booking_id}", json={"receivedFromClient": 450}, headers=as_driver
        )
        assert response.status_code == 200
        assert response.json()["reconciliation_preview"]["difference"] == 350.0

        response = client.get(f"/settlements/bookings/{booking_id}/preview", headers=as_admin)
        assert response.json()["projected_balance"] == 350.0

        response = client.post(f"/settlements/bookings/{booking_id}", json={}, headers=as_admin)
        assert response.status_code == 200
        assert response.json()["final_amount"] == 350.0
        assert response.json()["settlement"]["status"] == "completed"

        response = client.post(f"/settlements/bookings/{booking_id}", json={}, headers=as_admin)
        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "AlreadySettled"

        wallet = client.get(f"/wallets/drivers/{driver['id']}", headers=as_driver).json()
        assert wallet["balance"] == 350.0
        assert wallet["explanation"] == "Positive balance: Company owes money to driver"

        response = client.post(
            f"/settlements/bookings/{booking_id}/reverse", json={"reason": "Duplicate"}, headers=as_admin
        )
        assert response.status_code == 200
        assert response.json()["driver_balance"] == 0.0
