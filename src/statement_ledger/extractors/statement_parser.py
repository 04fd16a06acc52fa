"""
Statement text heuristics extractor.

Single-pass, line-oriented scanner over extracted statement text. A small
finite-state machine tracks the current statement section; section headers
switch state, transaction lines are matched against the line shapes enabled
for that state.

Supported line shapes:
- Single-amount: "01/02 1,200.00 MOBILE DEPOSIT REF #12345"
                 "01/03 (45.22) POS DEBIT COFFEE SHOP MA"
- Dual-column:   "02/10/24 CHECK #1234 125.00 -"
                 "02/11/24 REFUND - 35.00 [balance]"

Both tables below are data, so new bank layouts are added by extending them.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..schemas.transaction import CanonicalTransaction, TransactionMetadata
from .base import BaseExtractor, ExtractionSource
from .normalization import collapse_whitespace, expand_year, parse_money

logger = logging.getLogger(__name__)


class SectionState(str, Enum):
    """Scanner state: which statement section the current line belongs to."""

    NONE = "none"
    CREDITS = "credits"
    DEBITS = "debits"
    OTHER = "other"


class LineShape(str, Enum):
    DUAL_COLUMN = "dual_column"
    SINGLE_AMOUNT = "single_amount"


# (header keyword, next state), checked in order, case-insensitive substring
SECTION_HEADERS: list[tuple[str, SectionState]] = [
    ("deposits & credits", SectionState.CREDITS),
    ("deposits and credits", SectionState.CREDITS),
    ("other credits", SectionState.CREDITS),
    ("atm/purchases", SectionState.DEBITS),
    ("other debits", SectionState.DEBITS),
    ("debit card purchases", SectionState.DEBITS),
    ("withdrawals", SectionState.DEBITS),
    ("debits", SectionState.DEBITS),
    ("other transactions", SectionState.OTHER),
    ("account activity", SectionState.OTHER),
    ("daily balance", SectionState.NONE),
    ("balance calculation", SectionState.NONE),
]

# Line shapes tried in each state, in order
STATE_LINE_SHAPES: dict[SectionState, tuple[LineShape, ...]] = {
    SectionState.NONE: (LineShape.DUAL_COLUMN,),
    SectionState.CREDITS: (LineShape.DUAL_COLUMN, LineShape.SINGLE_AMOUNT),
    SectionState.DEBITS: (LineShape.DUAL_COLUMN, LineShape.SINGLE_AMOUNT),
    SectionState.OTHER: (LineShape.DUAL_COLUMN, LineShape.SINGLE_AMOUNT),
}

# Non-transaction lines (case-insensitive)
NOISE_PATTERNS = [
    re.compile(r"\bdate\b.*\bamount\b.*\bdescription\b", re.IGNORECASE),
    re.compile(r"\bpage\s+\d+\s+of\s+\d+\b", re.IGNORECASE),
    re.compile(r"member fdic", re.IGNORECASE),
    re.compile(r"transaction details", re.IGNORECASE),
    re.compile(r"please see additional", re.IGNORECASE),
]

DATE_PATTERN = r"(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{4}|\d{2}))?"
AMOUNT_PATTERN = r"\(?-?\$?\d[\d,]*\.\d{2}\)?-?"
ABSENT_PATTERN = r"[-–—]"
COLUMN_PATTERN = rf"(?:{AMOUNT_PATTERN}|{ABSENT_PATTERN})"

DATE_PREFIX_RE = re.compile(r"^\d{1,2}/\d{1,2}\b")
SINGLE_AMOUNT_RE = re.compile(
    rf"^{DATE_PATTERN}\s+(?P<amount>{AMOUNT_PATTERN})\s+(?P<description>.+)$"
)
DUAL_COLUMN_RE = re.compile(
    rf"^{DATE_PATTERN}\s+(?P<description>.+?)\s+(?P<debit>{COLUMN_PATTERN})"
    rf"\s+(?P<credit>{COLUMN_PATTERN})(?:\s+(?P<balance>{AMOUNT_PATTERN}))?$"
)
ABSENT_RE = re.compile(rf"^{ABSENT_PATTERN}$")

# (keyword regex, label, direction the rule applies to or None for both)
TRANSACTION_TYPE_RULES: list[tuple[re.Pattern, str, Optional[str]]] = [
    (re.compile(r"\bPOS\b|DBT PURCHASE|DEBIT CARD"), "Debit Card Purchase", "debit"),
    (re.compile(r"ATM DEPOSIT"), "ATM Deposit", None),
    (re.compile(r"MOBILE DEPOSIT"), "Mobile Deposit", None),
    (re.compile(r"\bACH\b"), "ACH Debit", "debit"),
    (re.compile(r"\bACH\b"), "ACH Credit", "credit"),
    (re.compile(r"TRANSFER"), "Transfer", None),
    (re.compile(r"PAYMENT"), "Payment", None),
    (re.compile(r"OVERDRAFT FEE"), "Fee", None),
    (re.compile(r"\bCHECK\b"), "Check", "debit"),
    (re.compile(r"DEPOSIT"), "Deposit", None),
    (re.compile(r"PAYPAL"), "PayPal", None),
    (re.compile(r"CASH APP"), "Cash App", None),
]

US_STATE_CODES = frozenset(
    "AL AK AZ AR CA CO CT DE DC FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO "
    "MT NE NV NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY".split()
)

CHANNEL_PREFIX_RES = [
    re.compile(r"^\d{4}\s+(?:POS DEBIT|DBT PURCHASE|ATM DEPOSIT)\s+-\s+"),
    re.compile(r"^POS\s+DEBIT\s+", re.IGNORECASE),
    re.compile(r"^ACH\s+(?:DEBIT|CREDIT)\s+", re.IGNORECASE),
    re.compile(r"^DBT\s+PURCHASE\s+", re.IGNORECASE),
    re.compile(r"^DEBIT\s+CARD\s+(?:PURCHASE\s+)?", re.IGNORECASE),
]
TRAILING_REFERENCE_RES = [
    re.compile(r"\s*[#:]\d{3,}$"),
    re.compile(r"\s+\d{6,}$"),
]
TRAILING_STATE_RE = re.compile(r"\s+([A-Z]{2})$")
ALPHA_RE = re.compile(r"[A-Za-z]")


@dataclass
class StatementLine:
    """Near-canonical record produced by the text scanner."""

    date: date
    type: str
    payee: str
    amount: str  # signed, e.g. "-$45.22" or "$1200.00"
    description: str
    balance: Optional[Decimal] = None

    @property
    def date_text(self) -> str:
        """Date rendered as MM/DD/YYYY."""
        return self.date.strftime("%m/%d/%Y")

    @property
    def is_debit(self) -> bool:
        return self.amount.startswith("-")

    def to_canonical(self) -> CanonicalTransaction:
        value = abs(parse_money(self.amount) or Decimal("0"))
        return CanonicalTransaction(
            date=self.date,
            posted_date=self.date,
            description=self.description,
            payee=self.payee or None,
            debit=value if self.is_debit else Decimal("0"),
            credit=Decimal("0") if self.is_debit else value,
            balance=self.balance,
            metadata=TransactionMetadata(extra={"transaction_type": self.type}),
        )


def _keep_alpha(before: str, after: str) -> str:
    """Accept a cleanup step only if it leaves an alphabetic token behind."""
    return after if ALPHA_RE.search(after) else before


def clean_payee(description: str) -> str:
    """
    Derive a payee from a raw transaction description.

    Strips channel prefixes, trailing reference numbers, trailing US state
    codes and repeated whitespace. A step that would remove every alphabetic
    token is skipped, so the merchant name always survives.
    """
    cleaned = collapse_whitespace(description)

    for prefix_re in CHANNEL_PREFIX_RES:
        cleaned = _keep_alpha(cleaned, prefix_re.sub("", cleaned, count=1))

    cleaned = _strip_references(cleaned)

    # At most one state code; a store number may sit right before it
    state = TRAILING_STATE_RE.search(cleaned)
    if state and state.group(1) in US_STATE_CODES:
        stripped = _keep_alpha(cleaned, cleaned[: state.start()])
        if stripped != cleaned:
            cleaned = _strip_references(stripped)

    return collapse_whitespace(cleaned)


def _strip_references(text: str) -> str:
    for ref_re in TRAILING_REFERENCE_RES:
        text = _keep_alpha(text, ref_re.sub("", text))
    return text


def determine_transaction_type(description: str, is_debit: bool) -> str:
    """Label a transaction from the fixed keyword vocabulary."""
    upper = description.upper()
    direction = "debit" if is_debit else "credit"

    for keyword_re, label, rule_direction in TRANSACTION_TYPE_RULES:
        if rule_direction is not None and rule_direction != direction:
            continue
        if keyword_re.search(upper):
            return label

    return "Debit" if is_debit else "Credit"


def _is_negative(amount_text: str) -> bool:
    text = amount_text.strip()
    return ("(" in text and ")" in text) or text.startswith("-") or text.endswith("-")


def _format_amount(amount: Decimal, is_debit: bool) -> str:
    sign = "-" if is_debit else ""
    return f"{sign}${abs(amount):.2f}"


class StatementTextParser(BaseExtractor):
    """
    Extract transactions from statement text using a section state machine.

    Lowest confidence strategy: used when no structured entity output is
    available, or when it produced nothing.
    """

    def __init__(self, year: Optional[int] = None):
        """
        Args:
            year: Year applied to bare MM/DD dates (default: current year).
                  Statements spanning Dec→Jan are not corrected.
        """
        self.year = year

    @property
    def name(self) -> str:
        return "statement_text"

    @property
    def priority(self) -> int:
        return 10

    def can_extract(self, source: ExtractionSource) -> bool:
        return bool(source.text and source.text.strip())

    def extract(self, source: ExtractionSource) -> list[CanonicalTransaction]:
        return [line.to_canonical() for line in self.parse(source.text)]

    def parse(self, text: str) -> list[StatementLine]:
        """Scan statement text into StatementLine records, in statement order."""
        if not isinstance(text, str) or not text:
            return []

        state = SectionState.NONE
        results: list[StatementLine] = []
        skipped = 0

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            if not DATE_PREFIX_RE.match(line):
                next_state = self._match_header(line)
                if next_state is not None:
                    if next_state != state:
                        logger.debug(f"Section {state.value} -> {next_state.value}: {line!r}")
                    state = next_state
                    continue
                if self._is_noise(line):
                    continue

            parsed = self._match_line(line, state)
            if parsed:
                results.append(parsed)
            else:
                skipped += 1

        logger.debug(f"Parsed {len(results)} transaction line(s), skipped {skipped}")
        return results

    def _match_header(self, line: str) -> Optional[SectionState]:
        lower = line.lower()
        for keyword, next_state in SECTION_HEADERS:
            if keyword in lower:
                return next_state
        return None

    def _is_noise(self, line: str) -> bool:
        return any(pattern.search(line) for pattern in NOISE_PATTERNS)

    def _match_line(self, line: str, state: SectionState) -> Optional[StatementLine]:
        for shape in STATE_LINE_SHAPES[state]:
            if shape == LineShape.DUAL_COLUMN:
                parsed = self._parse_dual_column(line)
            else:
                parsed = self._parse_single_amount(line, state)
            if parsed:
                return parsed
        return None

    def _resolve_date(self, match: re.Match) -> Optional[date]:
        try:
            return date(
                expand_year(match.group("year"), self.year),
                int(match.group("month")),
                int(match.group("day")),
            )
        except ValueError:
            return None

    def _build(
        self,
        tx_date: date,
        amount: Decimal,
        is_debit: bool,
        description: str,
        balance: Optional[Decimal] = None,
    ) -> StatementLine:
        description = collapse_whitespace(description)
        return StatementLine(
            date=tx_date,
            type=determine_transaction_type(description, is_debit),
            payee=clean_payee(description),
            amount=_format_amount(amount, is_debit),
            description=description,
            balance=balance,
        )

    def _parse_dual_column(self, line: str) -> Optional[StatementLine]:
        match = DUAL_COLUMN_RE.match(line)
        if not match:
            return None

        debit_raw = match.group("debit")
        credit_raw = match.group("credit")
        debit_present = not ABSENT_RE.match(debit_raw)
        credit_present = not ABSENT_RE.match(credit_raw)
        if debit_present == credit_present:
            # Exactly one column must carry the amount
            return None

        tx_date = self._resolve_date(match)
        if tx_date is None:
            return None

        raw = debit_raw if debit_present else credit_raw
        amount = parse_money(raw)
        if amount is None:
            return None
        is_debit = debit_present or _is_negative(raw)

        balance = parse_money(match.group("balance")) if match.group("balance") else None
        return self._build(tx_date, abs(amount), is_debit, match.group("description"), balance)

    def _parse_single_amount(self, line: str, state: SectionState) -> Optional[StatementLine]:
        match = SINGLE_AMOUNT_RE.match(line)
        if not match:
            return None

        tx_date = self._resolve_date(match)
        if tx_date is None:
            return None

        raw = match.group("amount")
        amount = parse_money(raw)
        if amount is None:
            return None

        # Parenthesized or minus-signed amounts are debits in every section
        is_debit = _is_negative(raw) or state == SectionState.DEBITS
        return self._build(tx_date, abs(amount), is_debit, match.group("description"))


def parse_statement_text(text: str, year: Optional[int] = None) -> list[StatementLine]:
    """Parse statement text into StatementLine records."""
    return StatementTextParser(year=year).parse(text)


def statement_lines_to_canonical(lines: list[StatementLine]) -> list[CanonicalTransaction]:
    return [line.to_canonical() for line in lines]
