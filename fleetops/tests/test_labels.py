# fleetops/tests/test_labels.py

import pytest

from fleetops.core.exceptions import ValidationError
from fleetops.labels.exceptions import InvalidLabelModeError, LabelExistsError, LabelNotFoundError
from fleetops.labels.services import LabelService
from fleetops.tests.factories import admin_actor, create_test_admin, create_test_booking


@pytest.fixture
def label_service(db_session):
    """Label service fixture"""
    return LabelService(db_session)


@pytest.fixture
def actor(db_session):
    return admin_actor(create_test_admin(db_session))


class TestLabelCatalogue:

    def test_default_color(self, label_service, actor):
        label = label_service.create_label(actor, "  VIP  ")

        assert label.name == "VIP"
        assert label.color == "#888888"

    def test_names_are_unique_ignoring_case(self, label_service, actor):
        label_service.create_label(actor, "VIP", "#ff0000")

        with pytest.raises(LabelExistsError):
            label_service.create_label(actor, "vip")

    def test_invalid_input_reported_together(self, label_service, actor):
        with pytest.raises(ValidationError) as exc:
            label_service.create_label(actor, "", "red")

        assert len(exc.value.errors) == 2


class TestBookingLabels:

    def test_replace_add_remove(self, db_session, label_service, actor):
        booking = create_test_booking(db_session)
        vip = label_service.create_label(actor, "VIP")
        airport = label_service.create_label(actor, "Airport")
        night = label_service.create_label(actor, "Night")

        booking = label_service.set_booking_labels(actor, booking.id, [vip.id, airport.id])
        assert {label.name for label in booking.labels} == {"VIP", "Airport"}

        booking = label_service.set_booking_labels(actor, booking.id, [airport.id, night.id], mode="add")
        assert {label.name for label in booking.labels} == {"VIP", "Airport", "Night"}

        booking = label_service.set_booking_labels(actor, booking.id, [vip.id], mode="remove")
        assert {label.name for label in booking.labels} == {"Airport", "Night"}

        booking = label_service.set_booking_labels(actor, booking.id, [night.id])
        assert [label.name for label in booking.labels] == ["Night"]

    def test_unknown_label(self, db_session, label_service, actor):
        booking = create_test_booking(db_session)

        with pytest.raises(LabelNotFoundError):
            label_service.set_booking_labels(actor, booking.id, [999])

    def test_unknown_mode(self, db_session, label_service, actor):
        booking = create_test_booking(db_session)

        with pytest.raises(InvalidLabelModeError):
            label_service.set_booking_labels(actor, booking.id, [], mode="toggle")
