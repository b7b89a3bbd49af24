# conciliation/models/match.py

from typing import Optional, Literal
from pydantic import BaseModel

# ============================================
# Families and statuses
# ============================================

Family = Literal["requests", "receipts", "movements"]

FAMILIES: tuple[Family, ...] = ("requests", "receipts", "movements")

# Phase order for both matching passes
FAMILY_PAIRS: tuple[tuple[Family, Family], ...] = (
    ("requests", "receipts"),
    ("requests", "movements"),
    ("receipts", "movements"),
)

ReconciliationStatus = Literal["full", "amount_only", "unmatched"]

MatchKind = Literal["exact", "fallback"]


def counterpart_families(family: Family) -> tuple[Family, Family]:
    """The two families a record of `family` is matched against."""
    if family not in FAMILIES:
        raise KeyError(family)
    others = tuple(f for f in FAMILIES if f != family)
    return others[0], others[1]


# ============================================
# Match state
# ============================================

class MatchState(BaseModel):
    """
    Mutable matching state of one record, kept apart from the record itself.

    Flags and partners are keyed by counterpart family.
    """

    record_id: str
    family: Family
    exact: dict[str, bool]
    fallback: dict[str, bool]
    partners: dict[str, Optional[str]]
    status: ReconciliationStatus = "unmatched"

    @classmethod
    def fresh(cls, record_id: str, family: Family) -> "MatchState":
        others = counterpart_families(family)
        return cls(
            record_id=record_id,
            family=family,
            exact={f: False for f in others},
            fallback={f: False for f in others},
            partners={f: None for f in others},
        )

    def is_matched(self, family: Family) -> bool:
        """True when paired with `family` either exactly or by amount."""
        return self.exact[family] or self.fallback[family]

    def mark(self, family: Family, kind: MatchKind, partner_id: str) -> None:
        if kind == "exact":
            self.exact[family] = True
        else:
            self.fallback[family] = True
        self.partners[family] = partner_id
