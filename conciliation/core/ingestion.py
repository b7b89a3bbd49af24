# conciliation/core/ingestion.py

"""
Loaders for the payment request and payment receipt exports.

Each export arrives as an already-parsed grid of cells. Columns are taken by
position after the header row, which is looked up among the first rows.
"""

from typing import Any, Optional
import logging

from conciliation.models import PaymentRequest, PaymentReceipt
from conciliation.core.ids import RecordIdSequence
from conciliation.core.normalizers import (
    cell_text,
    clean_tax_id,
    detect_special_flag,
    parse_amount,
    parse_currency,
    parse_date,
)
from conciliation.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 5
HEADER_HINTS = ("fecha", "comitente")


def find_export_header(grid: list[list[Any]]) -> int:
    """First row among the first five with a "fecha" or "comitente" cell."""
    for i, row in enumerate(grid[:HEADER_SCAN_ROWS]):
        if row and any(hint in cell_text(cell).lower() for cell in row for hint in HEADER_HINTS):
            return i
    logger.warning("No header row found in export, assuming the first row")
    return 0


def _rows(grid: list[list[Any]]):
    header_index = find_export_header(grid) if grid else 0
    headers = grid[header_index] if grid else []
    for row in grid[header_index + 1:]:
        if not row:
            continue
        origin_record = {
            cell_text(header): row[index]
            for index, header in enumerate(headers)
            if cell_text(header) and index < len(row)
        }
        yield row, origin_record


def _at(row: list[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def load_status_requests(
    grid: list[list[Any]],
    ids: Optional[RecordIdSequence] = None,
) -> list[PaymentRequest]:
    """
    Payment requests from the status export.

    Columns: date, account number, account name, currency, amount, tax id,
    state. Rows without an account number are skipped.
    """
    ids = ids or RecordIdSequence()
    requests: list[PaymentRequest] = []

    for row, origin_record in _rows(grid):
        account_number = cell_text(_at(row, 1))
        if not account_number:
            continue
        account_name = cell_text(_at(row, 2))
        requests.append(PaymentRequest(
            id=ids.next_id("request"),
            origin="status",
            date=parse_date(_at(row, 0)),
            account_number=account_number,
            account_name=account_name,
            currency=parse_currency(_at(row, 3)),
            amount=abs(parse_amount(_at(row, 4))),
            counterparty_tax_id=clean_tax_id(_at(row, 5)),
            state=cell_text(_at(row, 6)),
            special_flag=detect_special_flag(account_name),
            origin_record=origin_record,
        ))

    logger.info(f"Status export: {len(requests)} payment requests")
    return requests


def load_confirmation_requests(
    grid: list[list[Any]],
    ids: Optional[RecordIdSequence] = None,
) -> list[PaymentRequest]:
    """
    Payment requests from the confirmation export.

    Columns: date, state, account number, account name, currency, amount.
    The export has no tax id.
    """
    ids = ids or RecordIdSequence()
    requests: list[PaymentRequest] = []

    for row, origin_record in _rows(grid):
        account_number = cell_text(_at(row, 2))
        if not account_number:
            continue
        account_name = cell_text(_at(row, 3))
        requests.append(PaymentRequest(
            id=ids.next_id("request"),
            origin="confirmation",
            date=parse_date(_at(row, 0)),
            state=cell_text(_at(row, 1)),
            account_number=account_number,
            account_name=account_name,
            currency=parse_currency(_at(row, 4)),
            amount=abs(parse_amount(_at(row, 5))),
            special_flag=detect_special_flag(account_name),
            origin_record=origin_record,
        ))

    logger.info(f"Confirmation export: {len(requests)} payment requests")
    return requests


def build_payment_requests(
    status_grid: list[list[Any]],
    confirmation_grid: list[list[Any]],
    ids: Optional[RecordIdSequence] = None,
) -> list[PaymentRequest]:
    """Status requests followed by confirmation requests."""
    ids = ids or RecordIdSequence()
    return load_status_requests(status_grid, ids) + load_confirmation_requests(confirmation_grid, ids)


def load_receipts(
    grid: list[list[Any]],
    ids: Optional[RecordIdSequence] = None,
) -> list[PaymentReceipt]:
    """
    Payment receipts from the receipts export.

    Columns: settlement date, account name, account number, amount, tax id.
    The export carries no currency; every receipt gets `receipt_currency`.
    """
    ids = ids or RecordIdSequence()
    receipts: list[PaymentReceipt] = []

    for row, origin_record in _rows(grid):
        account_number = cell_text(_at(row, 2))
        if not account_number:
            continue
        account_name = cell_text(_at(row, 1))
        receipts.append(PaymentReceipt(
            id=ids.next_id("receipt"),
            date=parse_date(_at(row, 0)),
            account_name=account_name,
            account_number=account_number,
            amount=abs(parse_amount(_at(row, 3))),
            counterparty_tax_id=clean_tax_id(_at(row, 4)),
            currency=settings.receipt_currency,
            special_flag=detect_special_flag(account_name),
            origin_record=origin_record,
        ))

    logger.info(f"Receipts export: {len(receipts)} payment receipts")
    return receipts
