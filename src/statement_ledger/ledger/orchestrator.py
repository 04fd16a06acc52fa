"""
Ledger export orchestrator.

Sequences Create / Append exports against a Google Sheets ledger.

Create: IDLE -> CREATING -> WRITING -> [MOVING] -> DONE
        MOVING failure -> DELETING_ORPHAN -> FAILED (deleted | retained)
Append: IDLE -> FETCHING_HASHES -> DEDUPLICATING -> WRITING -> DONE

The ledger is not transactional. Deleting the spreadsheet after a failed
folder move is the only compensating action; Append creates no new
top-level resource and propagates every error unchanged.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..config import SheetsConfig
from ..schemas.dedupe import filter_duplicates, hash_transaction
from ..schemas.transaction import CanonicalTransaction, is_exportable
from ..sheets_client import (
    SheetsAPIError,
    SheetsClient,
    SheetsError,
    SheetSpec,
    SpreadsheetInfo,
    a1_range,
)

logger = logging.getLogger(__name__)

SHEET_HEADERS = ["Date", "Description", "Payee", "Amount", "Balance"]
HASH_HEADER = "Hash"
AMOUNT_QUANTUM = Decimal("0.01")


class ExportState(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    WRITING = "writing"
    MOVING = "moving"
    DELETING_ORPHAN = "deleting_orphan"
    FETCHING_HASHES = "fetching_hashes"
    DEDUPLICATING = "deduplicating"
    DONE = "done"
    FAILED = "failed"


class SheetsExportErrorKind(str, Enum):
    DRIVE_MOVE_FAILED_SPREADSHEET_DELETED = "drive_move_failed_spreadsheet_deleted"
    DRIVE_MOVE_FAILED_SPREADSHEET_RETAINED = "drive_move_failed_spreadsheet_retained"


class LedgerExportError(Exception):
    """Base exception for ledger export failures."""

    pass


class ExportPreconditionError(LedgerExportError, ValueError):
    """Invalid export request, detected before any network call."""

    pass


class SheetsExportError(LedgerExportError):
    """Post-create compensation outcome, distinguished by kind."""

    def __init__(
        self,
        message: str,
        kind: SheetsExportErrorKind,
        spreadsheet_id: str,
        spreadsheet_url: str,
        cleanup_error: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.spreadsheet_id = spreadsheet_id
        self.spreadsheet_url = spreadsheet_url
        self.cleanup_error = cleanup_error
        super().__init__(message)


@dataclass
class ExportResult:
    spreadsheet_id: str
    spreadsheet_url: str
    rows_written: int
    hashes_written: int
    folder_id: Optional[str] = None


@dataclass
class AppendResult:
    spreadsheet_id: str
    tab_name: str
    rows_appended: int
    duplicate_count: int
    hashes_appended: int


@dataclass
class HashLedgerSnapshot:
    """Hashes already recorded in a ledger's hash sheet."""

    hashes: set[str] = field(default_factory=set)
    sheet_exists: bool = True


def _format_amount(value: Optional[Decimal]) -> str:
    if value is None or not value.is_finite():
        return ""
    return str(value.quantize(AMOUNT_QUANTUM))


def exportable_transactions(
    transactions: list[CanonicalTransaction],
) -> list[CanonicalTransaction]:
    """Drop records that carry neither a date nor a posted date."""
    kept = [tx for tx in transactions if is_exportable(tx)]
    dropped = len(transactions) - len(kept)
    if dropped:
        logger.warning(f"Dropped {dropped} transaction(s) without a date")
    return kept


def build_sheet_values(
    transactions: list[CanonicalTransaction],
) -> tuple[list[str], list[list[str]]]:
    """
    Build the ledger header and one row per transaction.

    Row layout: Date (YYYY-MM-DD), Description, Payee, signed Amount, Balance.
    """
    rows = []
    for tx in transactions:
        tx_date = tx.effective_date
        rows.append(
            [
                tx_date.isoformat() if tx_date else "",
                tx.description,
                tx.payee or "",
                _format_amount(tx.signed_amount),
                _format_amount(tx.balance),
            ]
        )
    return list(SHEET_HEADERS), rows


def build_format_requests(sheet_id: int, row_count: int) -> list[dict]:
    """batchUpdate requests: frozen bold header, date and currency columns, autosize."""
    requests: list[dict] = [
        {
            "updateSheetProperties": {
                "properties": {"sheetId": sheet_id, "gridProperties": {"frozenRowCount": 1}},
                "fields": "gridProperties.frozenRowCount",
            }
        },
        {
            "repeatCell": {
                "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {"userEnteredFormat": {"textFormat": {"bold": True}}},
                "fields": "userEnteredFormat.textFormat.bold",
            }
        },
    ]

    if row_count > 0:
        for column, number_format in (
            (0, {"type": "DATE", "pattern": "yyyy-mm-dd"}),
            (3, {"type": "CURRENCY", "pattern": '"$"#,##0.00;-"$"#,##0.00'}),
        ):
            requests.append(
                {
                    "repeatCell": {
                        "range": {
                            "sheetId": sheet_id,
                            "startRowIndex": 1,
                            "endRowIndex": row_count + 1,
                            "startColumnIndex": column,
                            "endColumnIndex": column + 1,
                        },
                        "cell": {"userEnteredFormat": {"numberFormat": number_format}},
                        "fields": "userEnteredFormat.numberFormat",
                    }
                }
            )

    requests.append(
        {
            "autoResizeDimensions": {
                "dimensions": {
                    "sheetId": sheet_id,
                    "dimension": "COLUMNS",
                    "startIndex": 0,
                    "endIndex": len(SHEET_HEADERS),
                }
            }
        }
    )
    return requests


def fetch_existing_hashes(
    client: SheetsClient, spreadsheet_id: str, sheet_name: str = "Hashes"
) -> HashLedgerSnapshot:
    """
    Read the hash ledger column.

    A 400 response means the hash sheet does not exist yet (no hashes).
    Any other error propagates.
    """
    try:
        values = client.get_values(spreadsheet_id, a1_range(sheet_name, "A:A"))
    except SheetsAPIError as e:
        if e.status_code == 400:
            logger.info(f"Hash sheet {sheet_name!r} not found in {spreadsheet_id}")
            return HashLedgerSnapshot(hashes=set(), sheet_exists=False)
        raise

    hashes = set()
    for row in values:
        if not row:
            continue
        cell = str(row[0]).strip()
        if cell and cell != HASH_HEADER:
            hashes.add(cell)

    logger.debug(f"Fetched {len(hashes)} existing hash(es) from {spreadsheet_id}")
    return HashLedgerSnapshot(hashes=hashes, sheet_exists=True)


class LedgerExportOrchestrator:
    """
    Create or append ledger exports with rollback on a failed folder move.

    Calls are made one at a time, in order. The state history of the last
    operation is kept in `history` for audit logging and tests.
    """

    def __init__(self, client: SheetsClient, config: Optional[SheetsConfig] = None):
        self.client = client
        self.config = config or SheetsConfig()
        self.state = ExportState.IDLE
        self.history: list[ExportState] = [ExportState.IDLE]

    def _reset(self) -> None:
        self.state = ExportState.IDLE
        self.history = [ExportState.IDLE]

    def _transition(self, state: ExportState) -> None:
        logger.info(f"Export state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def create(
        self,
        transactions: list[CanonicalTransaction],
        title: str,
        folder_id: Optional[str] = None,
    ) -> ExportResult:
        """
        Create a new ledger spreadsheet.

        Records without any date are dropped before the checks below.

        Args:
            transactions: Transactions to write, in order
            title: Spreadsheet title
            folder_id: Drive folder to move the spreadsheet into

        Returns:
            ExportResult

        Raises:
            ExportPreconditionError: Invalid request (nothing was called)
            SheetsExportError: Folder move failed (spreadsheet deleted or retained)
            SheetsError: Any other API failure
        """
        self._reset()
        transactions = exportable_transactions(transactions)
        if not transactions:
            raise ExportPreconditionError("No transactions to export")
        if not title or not title.strip():
            raise ExportPreconditionError("Spreadsheet title is required")
        if folder_id is not None and not folder_id.strip():
            raise ExportPreconditionError("Folder id must not be blank")

        tab_name = self.config.data_tab_name
        hash_sheet = self.config.hash_sheet_name

        try:
            self._transition(ExportState.CREATING)
            info = self.client.create_spreadsheet(
                title.strip(),
                [SheetSpec(title=tab_name), SheetSpec(title=hash_sheet, hidden=True)],
            )

            self._transition(ExportState.WRITING)
            headers, rows = build_sheet_values(transactions)
            self.client.update_values(
                info.spreadsheet_id,
                a1_range(tab_name, f"A1:E{len(rows) + 1}"),
                [headers, *rows],
            )

            hashes = [hash_transaction(tx) for tx in transactions]
            self.client.update_values(
                info.spreadsheet_id,
                a1_range(hash_sheet, f"A1:A{len(hashes) + 1}"),
                [[HASH_HEADER], *[[h] for h in hashes]],
            )

            if self.config.format_sheet:
                self._format_data_sheet(info, tab_name, len(rows))
        except SheetsError:
            self._transition(ExportState.FAILED)
            raise

        if folder_id:
            self._move_or_rollback(info, folder_id.strip())

        self._transition(ExportState.DONE)
        logger.info(
            f"Exported {len(rows)} transaction(s) to {info.spreadsheet_url}"
        )
        return ExportResult(
            spreadsheet_id=info.spreadsheet_id,
            spreadsheet_url=info.spreadsheet_url,
            rows_written=len(rows),
            hashes_written=len(hashes),
            folder_id=folder_id,
        )

    def _format_data_sheet(self, info: SpreadsheetInfo, tab_name: str, row_count: int) -> None:
        sheet = next((s for s in info.sheets if s.title == tab_name), None)
        if sheet is None:
            logger.debug(f"Sheet id for {tab_name!r} unknown, skipping formatting")
            return
        self.client.batch_update(
            info.spreadsheet_id, build_format_requests(sheet.sheet_id, row_count)
        )

    def _move_or_rollback(self, info: SpreadsheetInfo, folder_id: str) -> None:
        self._transition(ExportState.MOVING)
        try:
            parents = self.client.get_file_parents(info.spreadsheet_id)
            self.client.update_file_parents(info.spreadsheet_id, folder_id, parents)
            return
        except SheetsError as move_error:
            message = getattr(move_error, "message", None) or str(move_error)
            logger.warning(f"Drive move failed for {info.spreadsheet_id}: {message}")
            self._transition(ExportState.DELETING_ORPHAN)
            self._delete_orphan(info, message, move_error)

    def _delete_orphan(
        self, info: SpreadsheetInfo, message: str, move_error: SheetsError
    ) -> None:
        try:
            self.client.delete_file(info.spreadsheet_id)
        except SheetsError as cleanup_error:
            logger.error(
                f"Could not delete orphaned spreadsheet {info.spreadsheet_id}: {cleanup_error}"
            )
            self._transition(ExportState.FAILED)
            raise SheetsExportError(
                f"Drive move failed: {message}. The spreadsheet was created successfully "
                f"and can be accessed at: {info.spreadsheet_url}",
                kind=SheetsExportErrorKind.DRIVE_MOVE_FAILED_SPREADSHEET_RETAINED,
                spreadsheet_id=info.spreadsheet_id,
                spreadsheet_url=info.spreadsheet_url,
                cleanup_error=cleanup_error,
            ) from move_error

        logger.warning(f"Deleted orphaned spreadsheet {info.spreadsheet_id}")
        self._transition(ExportState.FAILED)
        raise SheetsExportError(
            f"Drive move failed: {message}. The spreadsheet was deleted to avoid orphaning.",
            kind=SheetsExportErrorKind.DRIVE_MOVE_FAILED_SPREADSHEET_DELETED,
            spreadsheet_id=info.spreadsheet_id,
            spreadsheet_url=info.spreadsheet_url,
        ) from move_error

    def append(
        self,
        transactions: list[CanonicalTransaction],
        spreadsheet_id: str,
        tab_name: Optional[str] = None,
    ) -> AppendResult:
        """
        Append only new transactions to an existing ledger.

        Records without any date are dropped before the checks below.

        Args:
            transactions: Incoming batch, in order
            spreadsheet_id: Existing ledger spreadsheet
            tab_name: Target tab (default: configured data tab)

        Returns:
            AppendResult with appended and duplicate counts

        Raises:
            ExportPreconditionError: Invalid request (nothing was called)
            SheetsError: Any API failure other than a missing hash sheet
        """
        self._reset()
        tab_name = tab_name if tab_name is not None else self.config.data_tab_name
        transactions = exportable_transactions(transactions)
        if not transactions:
            raise ExportPreconditionError("No transactions to export")
        if not spreadsheet_id or not spreadsheet_id.strip():
            raise ExportPreconditionError("Spreadsheet id is required")
        if not tab_name or not tab_name.strip():
            raise ExportPreconditionError("Tab name is required")

        hash_sheet = self.config.hash_sheet_name

        try:
            self._transition(ExportState.FETCHING_HASHES)
            snapshot = fetch_existing_hashes(self.client, spreadsheet_id, hash_sheet)

            self._transition(ExportState.DEDUPLICATING)
            result = filter_duplicates(transactions, snapshot.hashes)
            logger.info(
                f"{len(result.unique_transactions)} new, "
                f"{result.duplicate_count} duplicate transaction(s)"
            )

            if result.unique_transactions:
                self._transition(ExportState.WRITING)
                if not snapshot.sheet_exists:
                    self.client.add_sheet(spreadsheet_id, hash_sheet, hidden=True)
                    self.client.update_values(
                        spreadsheet_id, a1_range(hash_sheet, "A1"), [[HASH_HEADER]]
                    )

                _, rows = build_sheet_values(result.unique_transactions)
                self.client.append_values(spreadsheet_id, a1_range(tab_name, "A:E"), rows)
                self.client.append_values(
                    spreadsheet_id,
                    a1_range(hash_sheet, "A:A"),
                    [[h] for h in result.new_hashes],
                )
        except SheetsError:
            self._transition(ExportState.FAILED)
            raise

        self._transition(ExportState.DONE)
        return AppendResult(
            spreadsheet_id=spreadsheet_id,
            tab_name=tab_name,
            rows_appended=len(result.unique_transactions),
            duplicate_count=result.duplicate_count,
            hashes_appended=len(result.new_hashes),
        )
