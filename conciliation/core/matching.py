# conciliation/core/matching.py

"""
Core reconciliation matching engine.

Pairs payment requests, payment receipts and bank movements with each other
in two greedy passes:

1. Exact: same date, tax id, currency, special flag and amount within
   tolerance.
2. Fallback: the same without the tax id, for records still unpaired.

The first eligible candidate in array order wins, so results depend on the
order of the input lists.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional, Sequence
import logging

from conciliation.models import (
    BankMovement,
    Family,
    FAMILIES,
    FAMILY_PAIRS,
    MarketMovement,
    MatchKind,
    MatchState,
    PaymentReceipt,
    PaymentRequest,
    Record,
    ReconciliationStatus,
    ReconciliationSummary,
    TreasuryTransfer,
    counterpart_families,
)
from conciliation.core.summary import summarize
from conciliation.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ReconciliationResult:
    """Result of a reconciliation run."""

    def __init__(self):
        self.requests: list[PaymentRequest] = []
        self.receipts: list[PaymentReceipt] = []
        self.movements: list[BankMovement] = []
        self.transfers: list[TreasuryTransfer] = []
        self.market_movements: list[MarketMovement] = []
        self.states: dict[str, MatchState] = {}
        self.summary: Optional[ReconciliationSummary] = None
        self.duration_ms: int = 0

    def records(self, family: Family) -> list[Record]:
        if family not in FAMILIES:
            raise KeyError(family)
        return getattr(self, family)

    def state_for(self, record_id: str) -> MatchState:
        return self.states[record_id]

    def status_of(self, record: Record) -> ReconciliationStatus:
        return self.states[record.id].status

    def by_status(self, family: Family, status: ReconciliationStatus) -> list[Record]:
        return [r for r in self.records(family) if self.states[r.id].status == status]

    def to_dict(self) -> dict:
        """Convert to dictionary for the presentation layer."""

        def dump(records: Sequence[Record]) -> list[dict]:
            rows = []
            for record in records:
                row = record.model_dump()
                state = self.states.get(record.id)
                if state is not None:
                    row["match"] = state.model_dump(exclude={"record_id", "family"})
                rows.append(row)
            return rows

        return {
            "summary": self.summary.model_dump() if self.summary else None,
            "requests": dump(self.requests),
            "receipts": dump(self.receipts),
            "movements": dump(self.movements),
            "transfers": dump(self.transfers),
            "market_movements": dump(self.market_movements),
            "duration_ms": self.duration_ms,
        }


# ============================================
# Candidate lookup
# ============================================

class _AmountIndex:
    """
    Buckets the right-hand records of a pair by date, currency, flag and
    amount step. Two amounts within tolerance are at most one step apart.
    """

    def __init__(self, records: Sequence[Record], tolerance: float):
        self.tolerance = tolerance
        self.buckets: dict[tuple, list[int]] = defaultdict(list)
        for index, record in enumerate(records):
            self.buckets[self._key(record, self._step(record.amount))].append(index)

    def _step(self, amount: float) -> int:
        return round(amount / self.tolerance)

    @staticmethod
    def _key(record: Record, step: int) -> tuple:
        return (record.date, record.currency, record.special_flag, step)

    def candidates(self, record: Record) -> list[int]:
        step = self._step(record.amount)
        found: list[int] = []
        for s in (step - 1, step, step + 1):
            found.extend(self.buckets.get(self._key(record, s), ()))
        # Original array order keeps first-match semantics identical to a full scan
        return sorted(found)


def records_agree(a: Record, b: Record, require_tax_id: bool = True, tolerance: Optional[float] = None) -> bool:
    """Match condition shared by both passes; the fallback drops the tax id."""
    if tolerance is None:
        tolerance = settings.amount_tolerance

    if a.date != b.date or a.currency != b.currency or a.special_flag != b.special_flag:
        return False
    if require_tax_id and a.counterparty_tax_id != b.counterparty_tax_id:
        return False
    return abs(a.amount - b.amount) < tolerance


def _unavailable(state: MatchState, family: Family, kind: MatchKind) -> bool:
    if kind == "exact":
        return state.exact[family]
    return state.is_matched(family)


# ============================================
# Matching passes
# ============================================

def match_pair(
    arenas: dict[Family, tuple[Sequence[Record], list[MatchState]]],
    left_family: Family,
    right_family: Family,
    kind: MatchKind,
    tolerance: float,
    indexed: bool = False,
) -> int:
    """
    One greedy pass over a family pair. Returns the number of pairs made.

    Each left record, in order, takes the first right record that is still
    free for this pass and agrees with it.
    """
    left_records, left_states = arenas[left_family]
    right_records, right_states = arenas[right_family]
    require_tax_id = kind == "exact"
    index = _AmountIndex(right_records, tolerance) if indexed else None

    paired = 0
    for i, left in enumerate(left_records):
        left_state = left_states[i]
        if _unavailable(left_state, right_family, kind):
            continue

        candidates = index.candidates(left) if index is not None else range(len(right_records))
        for j in candidates:
            right_state = right_states[j]
            if _unavailable(right_state, left_family, kind):
                continue
            right = right_records[j]
            if not records_agree(left, right, require_tax_id, tolerance):
                continue

            left_state.mark(right_family, kind, right.id)
            right_state.mark(left_family, kind, left.id)
            paired += 1
            break

    return paired


def derive_status(state: MatchState) -> ReconciliationStatus:
    """
    full: exact with both counterpart families.
    amount_only: matched with both, at least one only by amount.
    unmatched: anything else.
    """
    first, second = counterpart_families(state.family)
    if not (state.is_matched(first) and state.is_matched(second)):
        return "unmatched"
    if state.exact[first] and state.exact[second]:
        return "full"
    return "amount_only"


def match_records(
    requests: Sequence[PaymentRequest],
    receipts: Sequence[PaymentReceipt],
    movements: Sequence[BankMovement],
    tolerance: Optional[float] = None,
    indexed: Optional[bool] = None,
) -> dict[str, MatchState]:
    """
    Run both matching passes and derive statuses.

    Always starts from fresh, unmatched states. Returns the states keyed by
    record id.
    """
    if tolerance is None:
        tolerance = settings.amount_tolerance
    if indexed is None:
        indexed = settings.indexed_matching
    if tolerance <= 0:
        raise ValueError(f"Amount tolerance must be positive, got {tolerance}")

    arenas: dict[Family, tuple[Sequence[Record], list[MatchState]]] = {}
    states: dict[str, MatchState] = {}
    for family, records in (("requests", requests), ("receipts", receipts), ("movements", movements)):
        family_states = [MatchState.fresh(r.id, family) for r in records]
        arenas[family] = (records, family_states)
        for state in family_states:
            if state.record_id in states:
                raise ValueError(f"Duplicate record id {state.record_id}")
            states[state.record_id] = state

    # Phase 1: exact matches, all pairs
    exact_pairs = sum(
        match_pair(arenas, left, right, "exact", tolerance, indexed)
        for left, right in FAMILY_PAIRS
    )

    # Phase 2: amount-only fallback, only after every exact pass
    fallback_pairs = sum(
        match_pair(arenas, left, right, "fallback", tolerance, indexed)
        for left, right in FAMILY_PAIRS
    )

    # Phase 3: statuses
    for state in states.values():
        state.status = derive_status(state)

    logger.info(f"Matching done: {exact_pairs} exact pairs, {fallback_pairs} fallback pairs")
    return states


def reconcile(
    requests: Sequence[PaymentRequest],
    receipts: Sequence[PaymentReceipt],
    movements: Sequence[BankMovement],
    transfers: Sequence[TreasuryTransfer] = (),
    market_movements: Sequence[MarketMovement] = (),
    indexed: Optional[bool] = None,
) -> ReconciliationResult:
    """
    Main reconciliation function.

    Matches the three reconcilable families and summarizes the outcome.
    Transfers and market movements are passed through untouched.
    """
    start_time = datetime.now()
    result = ReconciliationResult()

    result.requests = list(requests)
    result.receipts = list(receipts)
    result.movements = list(movements)
    result.transfers = list(transfers)
    result.market_movements = list(market_movements)

    result.states = match_records(
        result.requests,
        result.receipts,
        result.movements,
        indexed=indexed,
    )

    result.summary = summarize(
        {
            "requests": result.requests,
            "receipts": result.receipts,
            "movements": result.movements,
        },
        result.states,
        treasury_transfers=len(result.transfers),
        market_movements=len(result.market_movements),
    )

    result.duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)

    logger.info(
        f"Reconciliation: {result.summary.fully_reconciled} fully reconciled, "
        f"{result.summary.unreconciled} unreconciled"
    )
    return result
