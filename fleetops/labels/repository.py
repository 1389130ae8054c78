# fleetops/labels/repository.py

from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fleetops.labels.models import Label


class LabelRepository:
    """
    Data Access Layer for booking labels.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, label_id: int) -> Optional[Label]:
        stmt = select(Label).where(Label.id == label_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_name(self, name: str) -> Optional[Label]:
        """Case-insensitive lookup by label name."""
        stmt = select(Label).where(func.lower(Label.name) == name.lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def get_many(self, label_ids: Sequence[int]) -> List[Label]:
        if not label_ids:
            return []
        stmt = select(Label).where(Label.id.in_(label_ids))
        return list(self.db.execute(stmt).scalars().all())

    def list_labels(self) -> List[Label]:
        stmt = select(Label).order_by(Label.name)
        return list(self.db.execute(stmt).scalars().all())

    def create(self, label: Label) -> Label:
        """
        Adds a new Label record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(label)
        self.db.flush()
        return label

    def delete(self, label: Label) -> None:
        self.db.delete(label)
        self.db.flush()
