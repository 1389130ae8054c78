# fleetops/entries/services.py

import copy
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.models import Booking
from fleetops.bookings.repository import BookingRepository
from fleetops.core.config import settings
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import (
    DutyInfoRequiredError,
    FleetOpsError,
    ForbiddenError,
    NotFoundError,
    ServerError,
)
from fleetops.duties.services import DutyService
from fleetops.entries.exceptions import (
    AttachmentUploadError,
    ClaimConflictError,
    ClaimNotHeldError,
    EntryAlreadyExistsError,
    EntryNotFoundError,
)
from fleetops.entries.models import ALLOWANCE_FIELDS, ClaimStatus
from fleetops.entries.repository import EntryRepository
from fleetops.entries.validators import (
    Attachment,
    carry_over_images,
    match_attachments,
    validate_entry_payload,
)
from fleetops.utils.general import paginate, utcnow
from fleetops.utils.logger import get_logger
from fleetops.utils.s3_utils import s3_utils

logger = get_logger(__name__)


def ensure_can_edit(entry, actor: Actor, entry_name: str) -> None:
    """
    Reject an admin edit of an entry claimed by a different admin. Drivers
    editing their own entries are not subject to claims.
    """
    if entry is None or not actor.is_admin:
        return
    if entry.claim_status == ClaimStatus.CLAIMED and entry.claimed_by != actor.id:
        raise ClaimConflictError(entry_name, entry.claimed_by)


def claim_entry(entry, actor: Actor) -> None:
    """unclaimed/released -> claimed(by actor). No-op for drivers or the holder."""
    if not actor.is_admin or entry.claim_status == ClaimStatus.CLAIMED:
        return
    entry.claim_status = ClaimStatus.CLAIMED
    entry.claimed_by = actor.id
    entry.claimed_by_role = actor.role.value
    entry.claimed_at = utcnow()


def release_entry(entry, actor: Actor, entry_name: str) -> None:
    """claimed -> released. Only the holder or an admin may release."""
    if entry.claim_status != ClaimStatus.CLAIMED:
        raise ClaimNotHeldError(entry_name)
    if entry.claimed_by != actor.id and not actor.is_superadmin:
        raise ForbiddenError(f"Only the claiming admin can release this {entry_name.lower()}")
    entry.claim_status = ClaimStatus.RELEASED
    entry.claimed_by = None
    entry.claimed_by_role = None
    entry.released_by = actor.id
    entry.released_at = utcnow()


class EntryService:
    """
    Workflow shared by expense and receiving entries:
    duty-info gate, claim check, batched validation, attachment handling and
    total recomputation. Subclasses provide the model specific totals and
    post-save side effects.
    """

    entry_name = "Entry"
    repo_class = EntryRepository
    amount_fields: Sequence[str] = ALLOWANCE_FIELDS

    def __init__(self, db: Session, storage=None):
        self.db = db
        self.repo = self.repo_class(db)
        self.booking_repo = BookingRepository(db)
        self.duty_service = DutyService(db)
        self.storage = storage or s3_utils

    # Hooks ------------------------------------------------------------

    def recalculate(self, entry) -> None:
        entry.recalculate_totals()

    def after_save(self, booking: Booking, entry, actor: Actor, created: bool) -> Dict[str, Any]:
        """Model specific side effects. Returns extra response data."""
        return {}

    # Workflow ---------------------------------------------------------

    def _get_booking(self, booking_id: int) -> Booking:
        booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _store_attachments(self, matched: Dict[int, Attachment]) -> Dict[int, str]:
        prefix = f"{settings.attachment_prefix}/{self.entry_name.lower()}"
        stored: Dict[int, str] = {}
        for index, attachment in matched.items():
            key = self.storage.build_key(prefix, attachment.filename)
            if not self.storage.upload_file(attachment.file, key, attachment.content_type):
                raise AttachmentUploadError(attachment.filename)
            stored[index] = key
        return stored

    def _upsert(
        self,
        actor: Actor,
        booking_id: int,
        fields: Dict[str, Any],
        attachments: Optional[List[Attachment]],
    ) -> Tuple[Any, Dict[str, Any]]:
        booking = self._get_booking(booking_id)
        driver_id = self.duty_service.resolve_driver_id(actor, booking)
        if self.duty_service.find_for_pair(driver_id, booking_id) is None:
            raise DutyInfoRequiredError()

        entry = self.repo.get_by_driver_and_booking(driver_id, booking_id)
        ensure_can_edit(entry, actor, self.entry_name)

        items, amounts = validate_entry_payload(fields, self.amount_fields)
        if fields.get("billing_items") is None and entry is not None:
            items = copy.deepcopy(entry.billing_items or [])

        uploaded = self._store_attachments(match_attachments(attachments, len(items)))
        items = carry_over_images(items, entry.billing_items if entry else None, uploaded)

        created = entry is None
        if created:
            entry = self.repo.model(
                driver_id=driver_id,
                booking_id=booking_id,
                created_by=actor.audit_name,
                submitted_by_role=actor.role.value,
            )

        entry.billing_items = items
        for name, value in amounts.items():
            if created or fields.get(name) is not None:
                setattr(entry, name, value)
        if fields.get("notes") is not None:
            entry.notes = fields["notes"]
        self.recalculate(entry)

        entry.modified_by = actor.audit_name
        if actor.is_admin:
            claim_entry(entry, actor)
            entry.last_edited_by = actor.id
            entry.last_edited_by_role = actor.role.value
            entry.last_edited_at = utcnow()

        if created:
            self.repo.create(entry)
        else:
            entry.updated_on = utcnow()
            self.db.flush()

        extras = self.after_save(booking, entry, actor, created)
        return entry, extras

    def upsert(
        self,
        actor: Actor,
        booking_id: int,
        fields: Dict[str, Any],
        attachments: Optional[List[Attachment]] = None,
    ) -> Tuple[Any, Dict[str, Any]]:
        """
        Create or update the entry of the booking's (driver, booking) pair.

        Raises:
            NotFoundError: booking does not exist
            DutyInfoRequiredError: no duty record for the pair yet
            ClaimConflictError: entry claimed by another admin
            InvalidFormatError: billing items are not valid JSON
            ValidationError: every billing item and amount problem at once
            EntryAlreadyExistsError: a concurrent request created the entry first
        """
        try:
            entry, extras = self._upsert(actor, booking_id, fields, attachments)
            self.db.commit()
            self.db.refresh(entry)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Duplicate entry rejected", entry_type=self.entry_name, error=str(e))
            raise EntryAlreadyExistsError(self.entry_name) from e
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Failed to save entry", entry_type=self.entry_name,
                booking_id=booking_id, error=str(e), exc_info=True,
            )
            raise ServerError(f"Failed to save {self.entry_name.lower()}") from e

        logger.info(
            "Entry saved",
            entry_type=self.entry_name,
            entry_id=entry.id,
            booking_id=booking_id,
            role=actor.role.value,
        )
        return entry, extras

    def release_claim(self, actor: Actor, entry_id: int):
        """Explicitly give up the editor-of-record claim on an entry."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can release claims")
        entry = self.repo.get_by_id(entry_id)
        if not entry:
            raise EntryNotFoundError(self.entry_name)
        try:
            release_entry(entry, actor, self.entry_name)
            self.db.commit()
            self.db.refresh(entry)
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to release claim", entry_id=entry_id, error=str(e), exc_info=True)
            raise ServerError("Failed to release claim") from e
        logger.info("Claim released", entry_type=self.entry_name, entry_id=entry_id, released_by=actor.id)
        return entry

    def get_for_booking(self, actor: Actor, booking_id: int):
        booking = self._get_booking(booking_id)
        driver_id = self.duty_service.resolve_driver_id(actor, booking)
        entry = self.repo.get_by_driver_and_booking(driver_id, booking_id)
        if not entry:
            raise EntryNotFoundError(self.entry_name, booking_id=booking_id)
        return entry

    def list_entries(self, page: int = 1, per_page: int = 20, driver_id: Optional[int] = None) -> Dict[str, Any]:
        offset, limit = paginate(page, per_page)
        items, total = self.repo.list_entries(driver_id=driver_id, offset=offset, limit=limit)
        return {"items": items, "total_items": total, "page": page, "per_page": per_page}
