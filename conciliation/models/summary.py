# conciliation/models/summary.py

from pydantic import BaseModel


# ============================================
# Reconciliation Summary
# ============================================

class FamilySummary(BaseModel):
    """Totals and status counts for one reconcilable family."""

    total: int
    total_amount: float
    full: int
    amount_only: int
    unmatched: int

    @property
    def matched(self) -> int:
        return self.full + self.amount_only


class FamilyDifference(BaseModel):
    """Left family minus right family, by record count and by amount."""

    count: int
    amount: float


class ReconciliationSummary(BaseModel):
    """Summary of a reconciliation run."""

    requests: FamilySummary
    receipts: FamilySummary
    movements: FamilySummary
    differences: dict[str, FamilyDifference]

    treasury_transfers: int = 0
    market_movements: int = 0

    @property
    def fully_reconciled(self) -> int:
        return self.requests.full + self.receipts.full + self.movements.full

    @property
    def unreconciled(self) -> int:
        return self.requests.unmatched + self.receipts.unmatched + self.movements.unmatched
