# fleetops/wallets/schemas.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from fleetops.wallets.models import OwnerType, TransactionType


class WalletAmountRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Positive amount")
    description: Optional[str] = Field(None, max_length=500)


class WalletAdjustmentRequest(WalletAmountRequest):
    type: TransactionType = Field(..., description="credit or debit")


class WalletTransferRequest(WalletAmountRequest):
    """
    Move money between wallets. The source defaults to the acting admin.
    """
    target_type: OwnerType
    target_id: int
    source_type: OwnerType = OwnerType.ADMIN
    source_id: Optional[int] = None
