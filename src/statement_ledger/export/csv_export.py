"""
CSV rendering of canonical transactions.

Two column layouts:
- DEBIT_CREDIT: QuickBooks-friendly, separate Debit/Credit columns
- SIGNED: single signed amount column (credit - debit)

Quoting follows RFC 4180 via the csv module; rows are separated by "\\n"
and there is no trailing newline.
"""

import csv
import io
import json
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from ..schemas.transaction import CanonicalTransaction

BOM = "\ufeff"
AMOUNT_QUANTUM = Decimal("0.01")


class CsvMode(str, Enum):
    DEBIT_CREDIT = "debit_credit"
    SIGNED = "signed"


DEBIT_CREDIT_HEADERS = [
    "Date",
    "Description",
    "Payee",
    "Debit",
    "Credit",
    "Balance",
    "Ending Balance",
    "Inferred Description",
    "Edited",
    "Edited At",
    "Memo",
]

SIGNED_HEADERS = [
    "date",
    "description",
    "payee",
    "amount",
    "balance",
    "ending_balance",
    "inferred_description",
    "metadata_edited",
    "metadata_edited_at",
    "memo",
]


def format_amount(value: Optional[Decimal], absolute: bool = True) -> str:
    """Render an amount with exactly two fractional digits; "" when missing."""
    if value is None or not value.is_finite():
        return ""
    if absolute:
        value = abs(value)
    return str(value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP))


def format_date(tx: CanonicalTransaction) -> str:
    tx_date = tx.effective_date
    return tx_date.strftime("%m/%d/%Y") if tx_date else ""


def serialize_memo(tx: CanonicalTransaction) -> str:
    """Compact JSON of the metadata not rendered in its own column."""
    memo = {}
    if tx.metadata.confidence is not None:
        memo["confidence"] = tx.metadata.confidence
    memo.update(tx.metadata.extra)
    if not memo:
        return ""
    try:
        return json.dumps(memo, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""


def _row(tx: CanonicalTransaction, mode: CsvMode) -> list[str]:
    inferred = (tx.metadata.inferred_description or "").strip()
    description = tx.description.strip() or inferred
    payee = tx.payee if tx.payee and tx.payee.strip() else description
    edited = "true" if tx.metadata.edited is True else ""
    edited_at = tx.metadata.edited_at or ""
    balance = format_amount(tx.balance)
    ending_balance = format_amount(tx.resolved_ending_balance)

    if mode == CsvMode.SIGNED:
        return [
            format_date(tx),
            description,
            payee,
            format_amount(tx.credit - tx.debit, absolute=False),
            balance,
            ending_balance,
            inferred,
            edited,
            edited_at,
            serialize_memo(tx),
        ]

    return [
        format_date(tx),
        description,
        payee,
        format_amount(tx.debit) or "0.00",
        format_amount(tx.credit) or "0.00",
        balance,
        ending_balance,
        inferred,
        edited,
        edited_at,
        serialize_memo(tx),
    ]


def to_csv(
    records: list[CanonicalTransaction],
    mode: CsvMode = CsvMode.DEBIT_CREDIT,
    delimiter: str = ",",
    include_bom: bool = False,
) -> str:
    """
    Render transactions as CSV text.

    Args:
        records: Transactions, rendered in input order
        mode: Column layout
        delimiter: Single-character field delimiter
        include_bom: Prefix the output with a UTF-8 byte order mark

    Returns:
        CSV text; header only for an empty list
    """
    mode = CsvMode(mode)
    headers = SIGNED_HEADERS if mode == CsvMode.SIGNED else DEBIT_CREDIT_HEADERS

    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=delimiter,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(headers)
    for tx in records:
        writer.writerow(_row(tx, mode))

    content = buffer.getvalue().rstrip("\n")
    return f"{BOM}{content}" if include_bom else content
