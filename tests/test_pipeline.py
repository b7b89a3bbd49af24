# tests/test_pipeline.py

"""
Tests for export ingestion and the end-to-end run.
"""

from conciliation.config import get_settings
from conciliation.core.ids import RecordIdSequence
from conciliation.core.ingestion import (
    build_payment_requests,
    load_confirmation_requests,
    load_receipts,
    load_status_requests,
)
from conciliation.core.pipeline import LedgerFile, classify_ledger_files, run_reconciliation

settings = get_settings()


# ============================================
# Test Data
# ============================================

STATUS_HEADER = ["Fecha Concertación", "Comitente Número", "Comitente Descripción", "Moneda", "Importe", "CUIT", "Estado"]
CONFIRMATION_HEADER = ["Fecha", "Estado", "Comitente Número", "Comitente Denominación", "Moneda", "Importe"]
RECEIPT_HEADER = ["Fecha Liquidación", "Comitente Denominación", "Comitente Número", "Importe", "CUIT"]
LEDGER_HEADER = ["Fecha", "Beneficiario", "D/C", "Importe"]


def status_grid():
    return [
        ["Status de Órdenes de Pago"],
        STATUS_HEADER,
        ["Jun 1 2025 12:00AM", "1001", "ACME SA", "Pesos", "$1,000.00", "20-12345678-9", "Aprobada"],
        ["Jun 1 2025 12:00AM", "", "SIN COMITENTE", "Pesos", "$5.00", "", "Aprobada"],
    ]


def confirmation_grid():
    return [
        CONFIRMATION_HEADER,
        ["02/06/2025", "Confirmada", "2002", "OTRO CLIENTE RESTRINGIDO", "Dolar MEP (Local)", "50"],
    ]


def receipt_grid():
    return [
        RECEIPT_HEADER,
        [45809, "ACME SA", "1001", 1000, "20123456789"],
    ]


def ledger(name, *rows, is_restricted=False):
    return LedgerFile(name=name, rows=[LEDGER_HEADER, *[list(r) for r in rows]], is_restricted=is_restricted)


# ============================================
# Ingestion Tests
# ============================================

class TestIngestion:
    """Test the request and receipt loaders."""

    def test_status_requests(self):
        requests = load_status_requests(status_grid())

        assert len(requests) == 1
        request = requests[0]
        assert request.origin == "status"
        assert request.date == "01/06/2025"
        assert request.currency == "LOCAL"
        assert request.amount == 1000.00
        assert request.counterparty_tax_id == "20123456789"
        assert request.state == "Aprobada"
        assert request.origin_record["Comitente Número"] == "1001"

    def test_confirmation_requests(self):
        requests = load_confirmation_requests(confirmation_grid())

        assert len(requests) == 1
        request = requests[0]
        assert request.origin == "confirmation"
        assert request.counterparty_tax_id == ""
        assert request.currency == "USD"
        assert request.special_flag

    def test_build_keeps_status_first(self):
        ids = RecordIdSequence()
        requests = build_payment_requests(status_grid(), confirmation_grid(), ids)

        assert [r.origin for r in requests] == ["status", "confirmation"]
        assert [r.id for r in requests] == ["request-1", "request-2"]

    def test_receipts(self):
        receipts = load_receipts(receipt_grid())

        assert len(receipts) == 1
        receipt = receipts[0]
        assert receipt.date == "01/06/2025"
        assert receipt.currency == settings.receipt_currency
        assert receipt.account_number == "1001"
        assert receipt.amount == 1000.0

    def test_empty_grids(self):
        assert load_status_requests([]) == []
        assert load_receipts([]) == []


# ============================================
# Ledger Grouping Tests
# ============================================

class TestLedgerFiles:
    """Test multi-file classification."""

    def test_grouped_by_currency(self):
        files = [
            ledger("pesos_1.xlsx", ["01/06/2025", "A - 20123456789", "D", "1"]),
            ledger("usd_1.xlsx", ["01/06/2025", "B - 20123456789", "D", "2"]),
            ledger("pesos_2.xlsx", ["01/06/2025", "C - 20123456789", "D", "3"], is_restricted=True),
        ]
        streams = classify_ledger_files(files)

        assert [m.amount for m in streams.movements] == [1.0, 3.0, 2.0]
        assert [m.currency for m in streams.movements] == ["LOCAL", "LOCAL", "USD"]
        assert [m.is_restricted for m in streams.movements] == [False, True, False]
        assert len({m.id for m in streams.movements}) == 3

    def test_bad_file_does_not_stop_others(self):
        files = [
            LedgerFile(name="roto.xlsx", rows=[["Fecha", "Concepto"], ["01/06/2025", "x"]]),
            ledger("pesos.xlsx", ["01/06/2025", "A - 20123456789", "D", "1"]),
        ]
        streams = classify_ledger_files(files)

        assert len(streams.movements) == 1


# ============================================
# End-to-end Tests
# ============================================

class TestRunReconciliation:
    """Test a full run from raw grids."""

    def test_full_run(self):
        result = run_reconciliation(
            status_grid(),
            confirmation_grid(),
            receipt_grid(),
            [
                ledger(
                    "movimientos_pesos.xlsx",
                    ["01/06/2025", "ACME SA - 20123456789", "D", "1,000.00"],
                    ["01/06/2025", f"TESORERIA - {settings.treasury_tax_id}", "C", "9,999.00"],
                    ["01/06/2025", "CLIENTE - 20111111112", "C", "50"],
                ),
                ledger(
                    "movimientos_usd.xlsx",
                    ["02/06/2025", "EXTERIOR - 20333333334", "D", "75"],
                ),
            ],
        )

        status_request, confirmation_request = result.requests
        assert result.status_of(status_request) == "full"
        assert result.status_of(confirmation_request) == "unmatched"
        assert result.status_of(result.receipts[0]) == "full"

        assert [m.currency for m in result.movements] == ["LOCAL", "USD"]
        assert result.status_of(result.movements[0]) == "full"
        assert result.status_of(result.movements[1]) == "unmatched"

        summary = result.summary
        assert summary.treasury_transfers == 1
        assert summary.market_movements == 0
        assert summary.requests.total == 2
        assert summary.fully_reconciled == 3

    def test_restricted_ledger_still_matches_plain_rows(self):
        result = run_reconciliation(
            status_grid(),
            [],
            receipt_grid(),
            [ledger("movimientos_pesos.xlsx", ["01/06/2025", "ACME SA - 20123456789", "D", "1000"], is_restricted=True)],
        )

        assert result.movements[0].is_restricted
        assert result.status_of(result.movements[0]) == "full"
        assert result.status_of(result.requests[0]) == "full"

    def test_marked_movement_needs_marked_request(self):
        result = run_reconciliation(
            status_grid(),
            [],
            receipt_grid(),
            [ledger("movimientos_pesos.xlsx", ["01/06/2025", "ACME RESTRINGIDO - 20123456789", "D", "1000"])],
        )

        assert result.movements[0].special_flag
        assert result.status_of(result.movements[0]) == "unmatched"
        assert result.status_of(result.requests[0]) == "unmatched"
