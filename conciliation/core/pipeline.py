# conciliation/core/pipeline.py

"""
End-to-end run over already-parsed exports.

ingestion -> ledger classification -> matching -> summary
"""

from typing import Any, Optional, Sequence
import logging

from pydantic import BaseModel, Field

from conciliation.core.classification import LedgerStreams, classify_ledger
from conciliation.core.ids import RecordIdSequence
from conciliation.core.ingestion import build_payment_requests, load_receipts
from conciliation.core.matching import ReconciliationResult, reconcile
from conciliation.core.normalizers import infer_file_currency

logger = logging.getLogger(__name__)


class LedgerFile(BaseModel):
    """One parsed bank ledger export."""

    name: str
    rows: list[Any] = Field(default_factory=list)
    is_restricted: bool = False

    @property
    def currency(self) -> str:
        return infer_file_currency(self.name)


def classify_ledger_files(
    files: Sequence[LedgerFile],
    ids: Optional[RecordIdSequence] = None,
) -> LedgerStreams:
    """
    Classify every ledger file and concatenate the streams.

    Files are grouped by currency bucket, buckets in order of first
    appearance and files in their given order inside a bucket.
    """
    ids = ids or RecordIdSequence()

    by_currency: dict[str, LedgerStreams] = {}
    for ledger in files:
        streams = classify_ledger(
            ledger.rows,
            file_name=ledger.name,
            is_restricted=ledger.is_restricted,
            ids=ids,
            currency=ledger.currency,
        )
        by_currency.setdefault(ledger.currency, LedgerStreams()).extend(streams)

    combined = LedgerStreams()
    for streams in by_currency.values():
        combined.extend(streams)
    return combined


def run_reconciliation(
    status_rows: list[list[Any]],
    confirmation_rows: list[list[Any]],
    receipt_rows: list[list[Any]],
    ledger_files: Sequence[LedgerFile],
    indexed: Optional[bool] = None,
) -> ReconciliationResult:
    """Build every record from the raw grids and reconcile them."""
    ids = RecordIdSequence()

    requests = build_payment_requests(status_rows, confirmation_rows, ids)
    receipts = load_receipts(receipt_rows, ids)
    ledgers = classify_ledger_files(ledger_files, ids)

    logger.info(
        f"Loaded {len(requests)} requests, {len(receipts)} receipts and "
        f"{len(ledgers.movements)} movements from {len(ledger_files)} ledger files"
    )

    return reconcile(
        requests,
        receipts,
        ledgers.movements,
        transfers=ledgers.transfers,
        market_movements=ledgers.market,
        indexed=indexed,
    )
