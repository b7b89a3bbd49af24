# conciliation/core/summary.py

"""
Aggregation of matched records into per-family counts.
"""

from typing import Sequence

from conciliation.models import (
    FAMILY_PAIRS,
    FamilyDifference,
    FamilySummary,
    MatchState,
    Record,
    ReconciliationSummary,
)


def summarize_family(records: Sequence[Record], states: dict[str, MatchState]) -> FamilySummary:
    """Count statuses over one family in a single pass."""
    counts = {"full": 0, "amount_only": 0, "unmatched": 0}
    total_amount = 0.0

    for record in records:
        counts[states[record.id].status] += 1
        total_amount += record.amount

    return FamilySummary(
        total=len(records),
        total_amount=round(total_amount, 2),
        **counts,
    )


def summarize(
    families: dict[str, Sequence[Record]],
    states: dict[str, MatchState],
    treasury_transfers: int = 0,
    market_movements: int = 0,
) -> ReconciliationSummary:
    """
    Build the run summary.

    `families` maps "requests", "receipts" and "movements" to their records.
    Differences are left family minus right family for each family pair.
    """
    per_family = {
        family: summarize_family(records, states)
        for family, records in families.items()
    }

    differences = {}
    for left, right in FAMILY_PAIRS:
        differences[f"{left}_vs_{right}"] = FamilyDifference(
            count=per_family[left].total - per_family[right].total,
            amount=round(per_family[left].total_amount - per_family[right].total_amount, 2),
        )

    return ReconciliationSummary(
        requests=per_family["requests"],
        receipts=per_family["receipts"],
        movements=per_family["movements"],
        differences=differences,
        treasury_transfers=treasury_transfers,
        market_movements=market_movements,
    )
