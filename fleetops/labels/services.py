# fleetops/labels/services.py

import re
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.exceptions import BookingNotFoundError
from fleetops.bookings.models import Booking
from fleetops.bookings.repository import BookingRepository
from fleetops.core.config import settings
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import ServerError, ValidationError
from fleetops.labels.exceptions import InvalidLabelModeError, LabelExistsError, LabelNotFoundError
from fleetops.labels.models import Label
from fleetops.labels.repository import LabelRepository
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)

LABEL_MODES = ("replace", "add", "remove")
HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$")


class LabelService:
    """Label catalogue and booking tagging."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LabelRepository(db)
        self.booking_repo = BookingRepository(db)

    def _commit(self, operation: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Label operation failed", operation=operation, error=str(e), exc_info=True)
            raise ServerError("Failed to save labels") from e

    def list_labels(self) -> List[Label]:
        return self.repo.list_labels()

    def create_label(self, actor: Actor, name: str, color: Optional[str] = None) -> Label:
        """Create a label. Names are unique regardless of case."""
        name = (name or "").strip()
        errors = []
        if not name:
            errors.append("Label name is required")
        if color and not HEX_COLOR.match(color):
            errors.append("Color must be a hex value such as #888888")
        if errors:
            raise ValidationError(errors)
        if self.repo.get_by_name(name):
            raise LabelExistsError(name)

        label = Label(
            name=name,
            color=color or settings.default_label_color,
            created_by=actor.audit_name,
            created_by_role=actor.role.value,
        )
        try:
            self.repo.create(label)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise LabelExistsError(name) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to create label", name=name, error=str(e), exc_info=True)
            raise ServerError("Failed to create label") from e

        logger.info("Label created", label_id=label.id, name=name, by=actor.id)
        return label

    def delete_label(self, actor: Actor, label_id: int) -> None:
        label = self.repo.get_by_id(label_id)
        if not label:
            raise LabelNotFoundError(label_id)
        self.repo.delete(label)
        self._commit("delete")
        logger.info("Label deleted", label_id=label_id, by=actor.id)

    def set_booking_labels(
        self, actor: Actor, booking_id: int, label_ids: Sequence[int], mode: str = "replace"
    ) -> Booking:
        """
        Change the labels of a booking.

        ``replace`` sets exactly the given labels, ``add`` attaches the missing
        ones and ``remove`` detaches the given ones.
        """
        if mode not in LABEL_MODES:
            raise InvalidLabelModeError(mode)

        booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)

        wanted_ids = list(dict.fromkeys(label_ids or []))
        labels = self.repo.get_many(wanted_ids)
        missing = sorted(set(wanted_ids) - {label.id for label in labels})
        if missing:
            raise LabelNotFoundError(missing[0])

        try:
            if mode == "replace":
                booking.labels = labels
            elif mode == "add":
                current = {label.id for label in booking.labels}
                booking.labels.extend(label for label in labels if label.id not in current)
            else:
                booking.labels = [label for label in booking.labels if label.id not in set(wanted_ids)]
            booking.modified_by = actor.audit_name
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to update booking labels", booking_id=booking_id, error=str(e), exc_info=True)
            raise ServerError("Failed to update booking labels") from e

        logger.info("Booking labels updated", booking_id=booking_id, mode=mode, label_ids=wanted_ids)
        return booking
