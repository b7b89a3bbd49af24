# conciliation/core/classification.py

"""
Bank ledger classification.

Splits the raw rows of one ledger export into three disjoint streams:
treasury transfers, market-clearing movements and the debit movements that
take part in reconciliation. Everything else is discarded.
"""

from typing import Any, Optional
import logging
import re

from conciliation.models import (
    BankMovement,
    LedgerEntry,
    MarketMovement,
    TreasuryTransfer,
)
from conciliation.core.ids import RecordIdSequence
from conciliation.core.normalizers import (
    cell_text,
    clean_tax_id,
    detect_special_flag,
    extract_tax_id,
    infer_file_currency,
    parse_amount,
    parse_date,
)
from conciliation.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# A header row must mention all of these
HEADER_TOKENS = ("fecha", "beneficiario", "importe")

# Header fragments per column, tried in order
DATE_HEADERS = ("fecha",)
COUNTERPARTY_HEADERS = ("beneficiario", "ordenante", "contraparte")
DIRECTION_HEADERS = ("d/c", "débito/crédito", "debito/credito", "deb/cred", "dc")
AMOUNT_HEADERS = ("importe", "monto")
TAX_ID_HEADERS = ("cuit",)

DEBIT_MARKERS = {"D", "DB", "DEBITO", "DÉBITO", "DEBIT"}

# Tax withholding lines carry only dashes as counterparty
_SEPARATOR = re.compile(r"^[-–—]+$")


class LedgerStreams:
    """The three classified streams of one or more ledger exports."""

    def __init__(self):
        self.movements: list[BankMovement] = []
        self.transfers: list[TreasuryTransfer] = []
        self.market: list[MarketMovement] = []

    def extend(self, other: "LedgerStreams") -> None:
        self.movements.extend(other.movements)
        self.transfers.extend(other.transfers)
        self.market.extend(other.market)

    def __len__(self) -> int:
        return len(self.movements) + len(self.transfers) + len(self.market)

    def to_dict(self) -> dict:
        return {
            "movements": [m.model_dump() for m in self.movements],
            "transfers": [t.model_dump() for t in self.transfers],
            "market": [m.model_dump() for m in self.market],
        }


# ============================================
# Header and column discovery
# ============================================

def find_header_row(grid: list[list[Any]]) -> Optional[int]:
    """Index of the first row, among the first few, that looks like a header."""
    for i, row in enumerate(grid[:settings.header_scan_rows]):
        if not row:
            continue
        text = " ".join(cell_text(cell).lower() for cell in row)
        if all(token in text for token in HEADER_TOKENS):
            return i
    return None


def _find_column(headers: list[str], fragments: tuple[str, ...], taken: set[int]) -> Optional[int]:
    for fragment in fragments:
        for index, header in enumerate(headers):
            if index not in taken and fragment in header:
                return index
    return None


def find_columns(header_row: list[Any]) -> dict[str, Optional[int]]:
    """
    Locate the ledger columns by header fragment.

    Returns a mapping of role ("date", "counterparty", "direction", "amount",
    "tax_id") to column index, None where the column is absent.
    """
    headers = [cell_text(cell).lower() for cell in header_row]
    columns: dict[str, Optional[int]] = {}
    taken: set[int] = set()

    for role, fragments in (
        ("date", DATE_HEADERS),
        ("counterparty", COUNTERPARTY_HEADERS),
        ("amount", AMOUNT_HEADERS),
        ("direction", DIRECTION_HEADERS),
        ("tax_id", TAX_ID_HEADERS),
    ):
        index = _find_column(headers, fragments, taken)
        columns[role] = index
        if index is not None:
            taken.add(index)

    return columns


# ============================================
# Row classification
# ============================================

def _cell(row: list[Any], index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _direction(row: list[Any], columns: dict[str, Optional[int]], raw_amount: float) -> str:
    if columns["direction"] is None:
        # Without a D/C column the sign tells debits apart
        return "D" if raw_amount < 0 else "C"
    return cell_text(_cell(row, columns["direction"])).upper()


def classify_row(
    row: list[Any],
    columns: dict[str, Optional[int]],
    headers: list[Any],
    currency: str,
    is_restricted: bool,
    ids: RecordIdSequence,
) -> Optional[LedgerEntry]:
    """
    Classify one ledger row. First matching rule wins:

    1. blank row, or no date, counterparty nor amount: discard
    2. counterparty is only dashes (withholding line): discard
    3. treasury tax id: TreasuryTransfer, whatever the direction
    4. market-clearing tax id: MarketMovement, whatever the direction
    5. debit not to the excluded tax id: BankMovement
    6. anything else (credits): discard
    """
    if not row or all(cell_text(cell) == "" for cell in row):
        return None

    date = parse_date(_cell(row, columns["date"]))
    counterparty = cell_text(_cell(row, columns["counterparty"]))
    raw_amount = parse_amount(_cell(row, columns["amount"]))

    if not date and not counterparty and raw_amount == 0:
        return None

    if _SEPARATOR.match(counterparty):
        return None

    tax_id = clean_tax_id(_cell(row, columns["tax_id"])) if columns["tax_id"] is not None else ""
    if not tax_id:
        tax_id = extract_tax_id(counterparty)

    origin_record = {
        cell_text(header): row[index]
        for index, header in enumerate(headers)
        if cell_text(header) and index < len(row)
    }

    fields = dict(
        date=date,
        counterparty_tax_id=tax_id,
        currency=currency,
        amount=abs(raw_amount),
        special_flag=detect_special_flag(counterparty),
        origin_record=origin_record,
        counterparty=counterparty,
        direction=_direction(row, columns, raw_amount),
        is_restricted=is_restricted,
    )

    if tax_id == settings.treasury_tax_id:
        return TreasuryTransfer(id=ids.next_id("transfer"), **fields)

    if tax_id in settings.market_tax_ids:
        return MarketMovement(id=ids.next_id("market"), **fields)

    if fields["direction"] in DEBIT_MARKERS and tax_id != settings.excluded_tax_id:
        return BankMovement(id=ids.next_id("movement"), **fields)

    return None


def classify_ledger(
    grid: list[list[Any]],
    file_name: str = "",
    is_restricted: bool = False,
    ids: Optional[RecordIdSequence] = None,
    currency: Optional[str] = None,
) -> LedgerStreams:
    """
    Classify the rows of one ledger export.

    The currency comes from `currency` when given, else from the file name.
    A file whose date, counterparty or amount column cannot be found yields
    empty streams.
    """
    if ids is None:
        ids = RecordIdSequence()
    if currency is None:
        currency = infer_file_currency(file_name)

    streams = LedgerStreams()

    header_index = find_header_row(grid)
    if header_index is None:
        logger.warning(
            f"No header row found in ledger {file_name or '<unnamed>'}, "
            f"using row {settings.default_header_row}"
        )
        header_index = settings.default_header_row

    headers = grid[header_index] if header_index < len(grid) else []
    columns = find_columns(headers)

    missing = [role for role in ("date", "counterparty", "amount") if columns[role] is None]
    if missing:
        logger.warning(
            f"Ledger {file_name or '<unnamed>'} is missing columns {missing}, skipping file"
        )
        return streams

    for row in grid[header_index + 1:]:
        entry = classify_row(row, columns, headers, currency, is_restricted, ids)
        if isinstance(entry, TreasuryTransfer):
            streams.transfers.append(entry)
        elif isinstance(entry, MarketMovement):
            streams.market.append(entry)
        elif isinstance(entry, BankMovement):
            streams.movements.append(entry)

    logger.info(
        f"Ledger {file_name or '<unnamed>'} ({currency}): {len(streams.movements)} movements, "
        f"{len(streams.transfers)} transfers, {len(streams.market)} market movements"
    )
    return streams
