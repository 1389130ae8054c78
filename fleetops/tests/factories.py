# fleetops/tests/factories.py

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fleetops.bookings.models import DUTY_ID_KEY, Booking
from fleetops.core.dependencies import Actor
from fleetops.drivers.models import Driver
from fleetops.settlements.models import BookingSettlement, SettlementStatus
from fleetops.users.models import Admin, Role


def create_test_driver(db, code: str = "DRV-001", balance: Any = "0.00", name: str = "Test Driver") -> Driver:
    driver = Driver(
        driver_code=code,
        full_name=name,
        phone="555-0123",
        wallet_balance=Decimal(str(balance)),
    )
    db.add(driver)
    db.commit()
    return driver


def create_test_admin(db, role: Role = Role.ADMIN, balance: Any = "0.00", name: str = "Test Admin") -> Admin:
    admin = Admin(name=name, role=role, wallet_balance=Decimal(str(balance)))
    db.add(admin)
    db.commit()
    return admin


def create_test_booking(
    db,
    driver: Optional[Driver] = None,
    duty_id: str = "DUTY-1",
    data: Optional[List[Dict[str, Any]]] = None,
) -> Booking:
    booking = Booking(
        external_duty_id=duty_id,
        data=data or [{"key": DUTY_ID_KEY, "value": duty_id}],
        driver=driver,
    )
    booking.settlement = BookingSettlement(status=SettlementStatus.PENDING)
    db.add(booking)
    db.commit()
    return booking


def driver_actor(driver: Driver) -> Actor:
    return Actor(id=driver.id, role=Role.USER, name=driver.full_name)


def admin_actor(admin: Admin) -> Actor:
    return Actor(id=admin.id, role=admin.role, name=admin.name)


def duty_fields(**overrides) -> Dict[str, Any]:
    """A valid single-day duty: 150 km between 08:00 and 17:00."""
    fields = {
        "start_date": "2024-03-01",
        "start_time": "08:00",
        "end_date": "2024-03-01",
        "end_time": "17:00",
        "start_km": "1000",
        "end_km": "1150",
        "duty_type": "Local",
        "notes": "",
    }
    fields.update(overrides)
    return fields


def expense_fields(billing: Any = "300", daily: Any = "500", **overrides) -> Dict[str, Any]:
    fields = {
        "billing_items": [{"category": "Parking", "amount": billing, "note": "Airport"}],
        "daily_allowance": daily,
    }
    fields.update(overrides)
    return fields


def receiving_fields(received: Any = "450", **overrides) -> Dict[str, Any]:
    fields = {"billing_items": [], "received_from_client": received}
    fields.update(overrides)
    return fields
