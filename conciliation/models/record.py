# conciliation/models/record.py

from typing import Any, Literal
from pydantic import BaseModel, Field

# ============================================
# Currency buckets
# ============================================

CurrencyBucket = Literal["LOCAL", "USD", "USD_CABLE"]

LOCAL: CurrencyBucket = "LOCAL"
USD: CurrencyBucket = "USD"
USD_CABLE: CurrencyBucket = "USD_CABLE"

RecordKind = Literal["request", "receipt", "movement", "transfer", "market"]


# ============================================
# Base record
# ============================================

class Record(BaseModel):
    """A normalized record from one of the upstream exports."""

    id: str
    date: str = ""
    counterparty_tax_id: str = ""
    # Unmapped labels pass through as their own bucket
    currency: str = LOCAL
    amount: float = Field(default=0.0, ge=0)
    special_flag: bool = False
    origin_record: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


# ============================================
# Requests and receipts
# ============================================

class PaymentRequest(Record):
    """Payment request, from the status export or the confirmation export."""

    kind: Literal["request"] = "request"
    origin: Literal["status", "confirmation"] = "status"
    account_number: str = ""
    account_name: str = ""
    state: str = ""


class PaymentReceipt(Record):
    """Payment receipt from the receipts export."""

    kind: Literal["receipt"] = "receipt"
    account_number: str = ""
    account_name: str = ""


# ============================================
# Bank ledger rows
# ============================================

class LedgerEntry(Record):
    """A classified bank ledger row."""

    counterparty: str = ""
    direction: str = ""
    is_restricted: bool = False


class BankMovement(LedgerEntry):
    """Debit movement that takes part in reconciliation."""

    kind: Literal["movement"] = "movement"


class TreasuryTransfer(LedgerEntry):
    kind: Literal["transfer"] = "transfer"


class MarketMovement(LedgerEntry):
    kind: Literal["market"] = "market"
