"""
Entity extraction normalizer.

Maps typed, confidence-scored spans from a document-understanding service
into CanonicalTransaction records. This is the high-confidence strategy;
the statement text parser is the fallback.

Rows come from two shapes:
- Nested: a row entity (transaction, table_item, line_item, ...) whose
  `properties` hold the field spans.
- Flat: consecutive top-level field spans, grouped in order. A new row
  starts as soon as a field kind repeats.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..schemas.entity_document import Entity, EntityDocument
from ..schemas.transaction import CanonicalTransaction, StatementPeriod, TransactionMetadata
from .base import BaseExtractor, ExtractionSource
from .normalization import (
    CREDIT,
    DEBIT,
    collapse_whitespace,
    normalize_amount,
    normalize_date_string,
    parse_money,
)

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    DIRECTION = "direction"
    DESCRIPTION = "description"
    PAYEE = "payee"
    BALANCE = "balance"


# span type -> (field kind, implied direction)
FIELD_TYPES: dict[str, tuple[FieldKind, Optional[str]]] = {
    # Dates
    "transaction_date": (FieldKind.DATE, None),
    "posting_date": (FieldKind.DATE, None),
    "posted_date": (FieldKind.DATE, None),
    "date": (FieldKind.DATE, None),
    "transaction_deposit_date": (FieldKind.DATE, None),
    "transaction_withdrawal_date": (FieldKind.DATE, None),
    "invoice_date": (FieldKind.DATE, None),
    "receipt_date": (FieldKind.DATE, None),
    # Amounts
    "amount": (FieldKind.AMOUNT, None),
    "transaction_amount": (FieldKind.AMOUNT, None),
    "total": (FieldKind.AMOUNT, None),
    "total_amount": (FieldKind.AMOUNT, None),
    "net_amount": (FieldKind.AMOUNT, None),
    "transaction_deposit": (FieldKind.AMOUNT, CREDIT),
    "deposit": (FieldKind.AMOUNT, CREDIT),
    "transaction_withdrawal": (FieldKind.AMOUNT, DEBIT),
    "withdrawal": (FieldKind.AMOUNT, DEBIT),
    # Direction
    "debit_credit": (FieldKind.DIRECTION, None),
    "direction": (FieldKind.DIRECTION, None),
    # Text
    "description": (FieldKind.DESCRIPTION, None),
    "transaction_description": (FieldKind.DESCRIPTION, None),
    "transaction_deposit_description": (FieldKind.DESCRIPTION, None),
    "transaction_withdrawal_description": (FieldKind.DESCRIPTION, None),
    "memo": (FieldKind.DESCRIPTION, None),
    "payee": (FieldKind.PAYEE, None),
    "merchant_name": (FieldKind.PAYEE, None),
    "counterparty": (FieldKind.PAYEE, None),
    "vendor": (FieldKind.PAYEE, None),
    "supplier_name": (FieldKind.PAYEE, None),
    # Running balance
    "balance": (FieldKind.BALANCE, None),
    "running_balance": (FieldKind.BALANCE, None),
}

# Statement-level span type -> attribute on StatementInfo
STATEMENT_FIELD_TYPES: dict[str, str] = {
    "account_number": "account_id",
    "statement_start_date": "period_start",
    "period_start": "period_start",
    "statement_end_date": "period_end",
    "period_end": "period_end",
    "bank_name": "source_bank",
    "ending_balance": "ending_balance",
}

# Row entity admission: substrings accepted for every document type, then per type
ROW_TYPE_KEYWORDS: tuple[str, ...] = ("transaction", "table_item")
ROW_TYPE_KEYWORDS_BY_DOCUMENT: dict[str, tuple[str, ...]] = {
    "invoice": ("line_item", "lineitem"),
    "bank_statement": ("bank",),
    "receipt": ("purchase",),
}

DEBIT_WORDS = frozenset({"debit", "dr", "withdrawal", "withdrawals"})
CREDIT_WORDS = frozenset({"credit", "cr", "deposit", "deposits"})


@dataclass
class StatementInfo:
    """Statement-level values replicated onto every row."""

    account_id: Optional[str] = None
    source_bank: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    ending_balance: Optional[Decimal] = None

    @property
    def period(self) -> Optional[StatementPeriod]:
        if self.period_start is None and self.period_end is None:
            return None
        return StatementPeriod(start=self.period_start, end=self.period_end)


@dataclass
class _Row:
    """Field spans collected for one candidate transaction."""

    entity_type: str = ""
    mention_text: str = ""
    confidence: Optional[float] = None
    fields: dict[FieldKind, Entity] = field(default_factory=dict)
    confidences: list[float] = field(default_factory=list)

    def add(self, kind: FieldKind, span: Entity) -> None:
        if span.confidence is not None:
            self.confidences.append(span.confidence)
        # First span wins on conflicts
        self.fields.setdefault(kind, span)

    @property
    def min_confidence(self) -> Optional[float]:
        values = list(self.confidences)
        if self.confidence is not None:
            values.append(self.confidence)
        return min(values) if values else None


def is_row_entity(entity_type: str, document_type: str) -> bool:
    """Check whether an entity type holds one transaction row."""
    lower = (entity_type or "").lower()
    if any(keyword in lower for keyword in ROW_TYPE_KEYWORDS):
        return True
    return any(keyword in lower for keyword in ROW_TYPE_KEYWORDS_BY_DOCUMENT.get(document_type, ()))


def _span_text(span: Entity) -> str:
    return collapse_whitespace(span.mention_text or span.normalized_text or "")


def _parse_direction(text: str) -> Optional[str]:
    tokens = collapse_whitespace(text).lower().split()
    if not tokens:
        return None
    word = tokens[0].rstrip(".:")
    if word in DEBIT_WORDS:
        return DEBIT
    if word in CREDIT_WORDS:
        return CREDIT
    return None


class EntityNormalizer(BaseExtractor):
    """Normalize structured entity extraction output into transactions."""

    def __init__(self, year: Optional[int] = None):
        """
        Args:
            year: Year applied to bare M/D dates (default: current year)
        """
        self.year = year

    @property
    def name(self) -> str:
        return "entity_extraction"

    @property
    def priority(self) -> int:
        return 100

    def can_extract(self, source: ExtractionSource) -> bool:
        return source.document is not None and bool(source.document.entities)

    def extract(self, source: ExtractionSource) -> list[CanonicalTransaction]:
        if source.document is None:
            return []
        return self.normalize(source.document)

    def normalize(self, document: EntityDocument) -> list[CanonicalTransaction]:
        """
        Convert an entity document into canonical transactions.

        Rows where neither date nor amount resolves are dropped. Statement
        level values are copied onto every row; the ending balance goes on
        the last row only.
        """
        rows, info = self._collect_rows(document)

        transactions: list[CanonicalTransaction] = []
        dropped = 0
        for row in rows:
            tx = self._build_transaction(row, info)
            if tx is None:
                dropped += 1
                continue
            transactions.append(tx)

        if dropped:
            logger.debug(f"Dropped {dropped} entity row(s) without date and amount")

        if transactions and info.ending_balance is not None:
            transactions[-1] = replace(transactions[-1], ending_balance=info.ending_balance)

        logger.debug(
            f"Normalized {len(transactions)} transaction(s) from "
            f"{len(document.entities)} entities ({document.document_type})"
        )
        return transactions

    def _collect_rows(self, document: EntityDocument) -> tuple[list[_Row], StatementInfo]:
        rows: list[_Row] = []
        info = StatementInfo()
        pending: Optional[_Row] = None

        for entity in document.entities:
            key = entity.type_key

            if key in STATEMENT_FIELD_TYPES:
                self._set_statement_field(info, STATEMENT_FIELD_TYPES[key], entity)
                continue

            if entity.properties:
                if not is_row_entity(entity.type, document.document_type):
                    logger.debug(f"Skipping non-row entity: {entity.type}")
                    continue
                if pending is not None:
                    rows.append(pending)
                    pending = None
                row = _Row(
                    entity_type=entity.type,
                    mention_text=entity.mention_text,
                    confidence=entity.confidence,
                )
                for prop in entity.properties:
                    spec = FIELD_TYPES.get(prop.type_key)
                    if spec:
                        row.add(spec[0], prop)
                rows.append(row)
                continue

            spec = FIELD_TYPES.get(key)
            if spec is None:
                continue
            kind = spec[0]
            if pending is None or kind in pending.fields:
                if pending is not None:
                    rows.append(pending)
                pending = _Row()
            pending.add(kind, entity)

        if pending is not None:
            rows.append(pending)

        return rows, info

    def _set_statement_field(self, info: StatementInfo, attr: str, entity: Entity) -> None:
        if getattr(info, attr) is not None:
            return
        if attr in ("period_start", "period_end"):
            value = self._resolve_date(entity)
        elif attr == "ending_balance":
            value = parse_money(_span_text(entity))
        else:
            value = _span_text(entity) or None
        setattr(info, attr, value)

    def _resolve_date(self, span: Entity) -> Optional[date]:
        if span.date_value:
            try:
                return date(
                    int(span.date_value["year"]),
                    int(span.date_value["month"]),
                    int(span.date_value["day"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Invalid dateValue {span.date_value!r}, using text: {e}")
        return normalize_date_string(
            span.normalized_text, self.year
        ) or normalize_date_string(span.mention_text, self.year)

    def _resolve_direction(self, row: _Row) -> Optional[str]:
        amount_span = row.fields.get(FieldKind.AMOUNT)

        # debit_credit nested under the amount span, then as a row sibling
        candidates = []
        if amount_span is not None:
            candidates.extend(
                prop
                for prop in amount_span.properties
                if FIELD_TYPES.get(prop.type_key, (None,))[0] == FieldKind.DIRECTION
            )
        explicit = row.fields.get(FieldKind.DIRECTION)
        if explicit is not None:
            candidates.append(explicit)
        for span in candidates:
            direction = _parse_direction(_span_text(span))
            if direction:
                return direction

        if amount_span is not None:
            implied = FIELD_TYPES[amount_span.type_key][1]
            if implied:
                return implied

        row_type = row.entity_type.lower()
        if "credit" in row_type:
            return CREDIT
        if "debit" in row_type:
            return DEBIT
        return None

    def _build_transaction(
        self, row: _Row, info: StatementInfo
    ) -> Optional[CanonicalTransaction]:
        date_span = row.fields.get(FieldKind.DATE)
        tx_date = self._resolve_date(date_span) if date_span is not None else None

        amount_span = row.fields.get(FieldKind.AMOUNT)
        amounts = None
        if amount_span is not None:
            amounts = normalize_amount(_span_text(amount_span), self._resolve_direction(row))

        if tx_date is None and amounts is None:
            return None
        debit, credit = amounts or (Decimal("0"), Decimal("0"))

        description_span = row.fields.get(FieldKind.DESCRIPTION)
        payee_span = row.fields.get(FieldKind.PAYEE)
        payee_text = _span_text(payee_span) if payee_span is not None else ""
        description = (
            (_span_text(description_span) if description_span is not None else "")
            or collapse_whitespace(row.mention_text)
            or payee_text
        )

        balance_span = row.fields.get(FieldKind.BALANCE)
        balance = parse_money(_span_text(balance_span)) if balance_span is not None else None

        extra = {"entity_type": row.entity_type} if row.entity_type else {}
        return CanonicalTransaction(
            date=tx_date,
            posted_date=tx_date,
            description=description,
            payee=payee_text or collapse_whitespace(description) or None,
            debit=debit,
            credit=credit,
            balance=balance,
            account_id=info.account_id,
            source_bank=info.source_bank,
            statement_period=info.period,
            metadata=TransactionMetadata(confidence=row.min_confidence, extra=extra),
        )
