# conciliation/models/__init__.py

from conciliation.models.record import (
    CurrencyBucket,
    LOCAL,
    USD,
    USD_CABLE,
    RecordKind,
    Record,
    PaymentRequest,
    PaymentReceipt,
    LedgerEntry,
    BankMovement,
    TreasuryTransfer,
    MarketMovement,
)
from conciliation.models.match import (
    Family,
    FAMILIES,
    FAMILY_PAIRS,
    ReconciliationStatus,
    MatchKind,
    MatchState,
    counterpart_families,
)
from conciliation.models.summary import (
    FamilySummary,
    FamilyDifference,
    ReconciliationSummary,
)

__all__ = [
    # Record
    "CurrencyBucket",
    "LOCAL",
    "USD",
    "USD_CABLE",
    "RecordKind",
    "Record",
    "PaymentRequest",
    "PaymentReceipt",
    "LedgerEntry",
    "BankMovement",
    "TreasuryTransfer",
    "MarketMovement",
    # Match
    "Family",
    "FAMILIES",
    "FAMILY_PAIRS",
    "ReconciliationStatus",
    "MatchKind",
    "MatchState",
    "counterpart_families",
    # Summary
    "FamilySummary",
    "FamilyDifference",
    "ReconciliationSummary",
]
