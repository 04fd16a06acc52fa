"""
Canonical transaction model (SSOT).

Every normalizer (statement text parser, entity normalizer) converges on
CanonicalTransaction. The CSV formatter, the dedupe hasher and the ledger
exporter only read it.

Key invariants:
- debit and credit are non-negative Decimals
- at most one of debit/credit is non-zero (both zero = memo line)
- description is never empty (falls back to a placeholder)
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# Used when a source row carries no usable text at all
DESCRIPTION_PLACEHOLDER = "Transaction"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Coerce int/float/str/Decimal to Decimal; None and blanks stay None."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"amount must be numeric, got: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            return Decimal(cleaned)
        except InvalidOperation as e:
            raise ValueError(f"invalid amount: {value!r}") from e
    raise ValueError(f"amount must be Decimal, int, float or str, got: {type(value)}")


def _parse_iso_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class StatementPeriod:
    """Statement coverage window."""

    start: Optional[date] = None
    end: Optional[date] = None


@dataclass
class TransactionMetadata:
    """
    Metadata attached to a transaction.

    Documented keys are first-class fields. Anything else goes into `extra`,
    which serializers treat as an opaque bag.
    """

    confidence: Optional[float] = None
    edited: bool = False
    edited_at: Optional[str] = None  # ISO timestamp
    inferred_description: Optional[str] = None
    ending_balance: Optional[Decimal] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "confidence": self.confidence,
            "edited": self.edited,
            "edited_at": self.edited_at,
            "inferred_description": self.inferred_description,
            "ending_balance": (
                str(self.ending_balance) if self.ending_balance is not None else None
            ),
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TransactionMetadata":
        if not data:
            return cls()
        known = {
            "confidence",
            "edited",
            "edited_at",
            "editedAt",
            "inferred_description",
            "inferredDescription",
            "ending_balance",
            "endingBalance",
            "extra",
        }
        # Unknown top-level keys are folded into extra
        extra = dict(data.get("extra") or {})
        for key, value in data.items():
            if key not in known:
                extra[key] = value

        confidence = data.get("confidence")
        return cls(
            confidence=float(confidence) if confidence is not None else None,
            edited=data.get("edited") is True,
            edited_at=data.get("edited_at") or data.get("editedAt"),
            inferred_description=(
                data.get("inferred_description") or data.get("inferredDescription")
            ),
            ending_balance=to_decimal(
                data.get("ending_balance", data.get("endingBalance"))
            ),
            extra=extra,
        )


@dataclass
class CanonicalTransaction:
    """
    CANONICAL transaction record.

    Created once per source line/entity during normalization. The only
    sanctioned change afterwards is an explicit user edit via mark_edited().
    """

    date: Optional[date]
    posted_date: Optional[date]
    description: str
    payee: Optional[str] = None
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    balance: Optional[Decimal] = None
    ending_balance: Optional[Decimal] = None

    # Statement-level provenance, replicated per transaction
    account_id: Optional[str] = None
    source_bank: Optional[str] = None
    statement_period: Optional[StatementPeriod] = None

    metadata: TransactionMetadata = field(default_factory=TransactionMetadata)

    def __post_init__(self) -> None:
        self.description = " ".join((self.description or "").split()) or DESCRIPTION_PLACEHOLDER
        self.debit = to_decimal(self.debit) or Decimal("0")
        self.credit = to_decimal(self.credit) or Decimal("0")
        self.balance = to_decimal(self.balance)
        self.ending_balance = to_decimal(self.ending_balance)

        if not self.debit.is_finite() or not self.credit.is_finite():
            raise ValueError(
                f"debit and credit must be finite (debit={self.debit}, credit={self.credit})"
            )
        if self.debit < 0:
            raise ValueError(f"debit must be non-negative, got: {self.debit}")
        if self.credit < 0:
            raise ValueError(f"credit must be non-negative, got: {self.credit}")
        if self.debit > 0 and self.credit > 0:
            raise ValueError(
                f"debit and credit cannot both be positive (debit={self.debit}, credit={self.credit})"
            )

    @property
    def effective_date(self) -> Optional[date]:
        """Transaction date, falling back to the posted date."""
        return self.date or self.posted_date

    @property
    def signed_amount(self) -> Decimal:
        """Credits positive, debits negative, zero for memo lines."""
        if self.credit > 0:
            return self.credit
        if self.debit > 0:
            return -self.debit
        return Decimal("0")

    @property
    def resolved_ending_balance(self) -> Optional[Decimal]:
        if self.ending_balance is not None:
            return self.ending_balance
        return self.metadata.ending_balance

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "date": self.date.isoformat() if self.date else None,
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
            "description": self.description,
            "payee": self.payee,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "balance": str(self.balance) if self.balance is not None else None,
            "ending_balance": (
                str(self.ending_balance) if self.ending_balance is not None else None
            ),
            "account_id": self.account_id,
            "source_bank": self.source_bank,
            "statement_period": (
                {
                    "start": (
                        self.statement_period.start.isoformat()
                        if self.statement_period.start
                        else None
                    ),
                    "end": (
                        self.statement_period.end.isoformat()
                        if self.statement_period.end
                        else None
                    ),
                }
                if self.statement_period
                else None
            ),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalTransaction":
        """Deserialize from dictionary."""
        period = None
        if data.get("statement_period"):
            sp = data["statement_period"]
            period = StatementPeriod(
                start=_parse_iso_date(sp.get("start")),
                end=_parse_iso_date(sp.get("end")),
            )

        return cls(
            date=_parse_iso_date(data.get("date")),
            posted_date=_parse_iso_date(data.get("posted_date")),
            description=data.get("description", ""),
            payee=data.get("payee"),
            debit=data.get("debit") or Decimal("0"),
            credit=data.get("credit") or Decimal("0"),
            balance=data.get("balance"),
            ending_balance=data.get("ending_balance"),
            account_id=data.get("account_id"),
            source_bank=data.get("source_bank"),
            statement_period=period,
            metadata=TransactionMetadata.from_dict(data.get("metadata")),
        )


def is_exportable(tx: CanonicalTransaction) -> bool:
    """True iff the record has a description and at least one date."""
    return bool(tx.description and tx.description.strip()) and (
        tx.date is not None or tx.posted_date is not None
    )


def mark_edited(
    tx: CanonicalTransaction, edited_at: Optional[str] = None
) -> CanonicalTransaction:
    """
    Return a copy of the transaction flagged as user-edited.

    Args:
        tx: Transaction to mark
        edited_at: ISO timestamp (defaults to now, UTC)

    Returns:
        New CanonicalTransaction; the input is left untouched
    """
    timestamp = edited_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    metadata = replace(tx.metadata, edited=True, edited_at=timestamp, extra=dict(tx.metadata.extra))
    return replace(tx, metadata=metadata)


def is_edited(tx: CanonicalTransaction) -> bool:
    return tx.metadata.edited is True


def assign_ending_balance(
    transactions: list[CanonicalTransaction],
) -> list[CanonicalTransaction]:
    """
    Compute the statement ending balance onto the closing record.

    Only applies when no record already carries an ending balance and the
    first record has a running balance:
        starting = first.balance - first.signed_amount
        ending   = starting + sum(signed_amount)

    Returns:
        New list (the closing record is replaced by a copy)
    """
    if not transactions:
        return []
    if any(tx.resolved_ending_balance is not None for tx in transactions):
        return list(transactions)

    first = transactions[0]
    if first.balance is None:
        return list(transactions)

    starting = first.balance - first.signed_amount
    ending = starting + sum((tx.signed_amount for tx in transactions), Decimal("0"))

    result = list(transactions)
    result[-1] = replace(result[-1], ending_balance=ending)
    return result
