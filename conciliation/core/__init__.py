# conciliation/core/__init__.py

from conciliation.core.matching import (
    reconcile,
    match_records,
    derive_status,
    records_agree,
    ReconciliationResult,
)
from conciliation.core.classification import classify_ledger, LedgerStreams
from conciliation.core.ingestion import (
    build_payment_requests,
    load_confirmation_requests,
    load_receipts,
    load_status_requests,
)
from conciliation.core.pipeline import LedgerFile, classify_ledger_files, run_reconciliation
from conciliation.core.ids import RecordIdSequence
from conciliation.core.summary import summarize
from conciliation.core.normalizers import (
    parse_date,
    parse_amount,
    parse_currency,
    clean_tax_id,
    extract_tax_id,
    detect_special_flag,
)

__all__ = [
    "reconcile",
    "match_records",
    "derive_status",
    "records_agree",
    "ReconciliationResult",
    "classify_ledger",
    "LedgerStreams",
    "build_payment_requests",
    "load_confirmation_requests",
    "load_receipts",
    "load_status_requests",
    "LedgerFile",
    "classify_ledger_files",
    "run_reconciliation",
    "RecordIdSequence",
    "summarize",
    "parse_date",
    "parse_amount",
    "parse_currency",
    "clean_tax_id",
    "extract_tax_id",
    "detect_special_flag",
]
