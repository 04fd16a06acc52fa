"""Test fixtures and utilities."""

from datetime import date
from decimal import Decimal

import pytest

from statement_ledger.schemas import CanonicalTransaction, EntityDocument

STATEMENT_YEAR = 2024

# Single-amount layout with section headers
SAMPLE_STATEMENT_TEXT = """
Everyday Checking
Statement Period 01/01/2024 through 01/31/2024
Page 1 of 3

Deposits & Credits
Date Amount Description
01/02 1,200.00 MOBILE DEPOSIT REF #12345
01/15 2,500.00 ACH CREDIT ACME PAYROLL 000123456789

ATM/Purchases
Date Amount Description
01/03 (45.22) POS DEBIT COFFEE SHOP MA
01/04 12.50 DBT PURCHASE CORNER MARKET #4411 TX

Other Debits
01/20 89.99 ACH DEBIT CITY ELECTRIC UTILITY
Member FDIC

Daily Balance
01/02 1,200.00 Ending balance detail
"""

# Dual-column layout without section headers
SAMPLE_DUAL_COLUMN_TEXT = """
Transaction Details
02/10/24 CHECK #1234 125.00 -
02/11/24 REFUND - 35.00
02/12/24 ONLINE TRANSFER TO SAVINGS 200.00 — 1,710.00
"""


@pytest.fixture
def statement_year() -> int:
    return STATEMENT_YEAR


@pytest.fixture
def sample_statement_text() -> str:
    """Statement text with credits/debits sections."""
    return SAMPLE_STATEMENT_TEXT


@pytest.fixture
def sample_dual_column_text() -> str:
    """Statement text in debit/credit column layout."""
    return SAMPLE_DUAL_COLUMN_TEXT


@pytest.fixture
def sample_entity_document() -> dict:
    """Entity extraction output for a bank statement (camelCase, nested rows)."""
    return {
        "documentType": "bank_statement",
        "text": "",
        "entities": [
            {"type": "account_number", "mentionText": "****1234", "confidence": 0.99},
            {"type": "bank_name", "mentionText": "First Example Bank", "confidence": 0.97},
            {
                "type": "statement_start_date",
                "mentionText": "Jan 1, 2024",
                "normalizedValue": {"text": "2024-01-01"},
            },
            {
                "type": "statement_end_date",
                "mentionText": "January 31 2024",
            },
            {
                "type": "transaction",
                "mentionText": "01/05 COFFEE SHOP -4.50",
                "confidence": 0.95,
                "properties": [
                    {
                        "type": "transaction_date",
                        "mentionText": "01/05/2024",
                        "confidence": 0.9,
                    },
                    {"type": "description", "mentionText": "COFFEE  SHOP", "confidence": 0.8},
                    {"type": "amount", "mentionText": "-4.50", "confidence": 0.85},
                    {"type": "balance", "mentionText": "995.50"},
                ],
            },
            {
                "type": "transaction",
                "mentionText": "01/06 PAYROLL 2,000.00",
                "confidence": 0.93,
                "properties": [
                    {
                        "type": "transaction_date",
                        "mentionText": "Jan 6, 2024",
                        "normalizedValue": {"dateValue": {"year": 2024, "month": 1, "day": 6}},
                        "confidence": 0.92,
                    },
                    {"type": "description", "mentionText": "PAYROLL"},
                    {"type": "amount", "mentionText": "2,000.00", "confidence": 0.91},
                    {"type": "debit_credit", "mentionText": "credit"},
                    {"type": "payee", "mentionText": "ACME Corp"},
                ],
            },
            {"type": "ending_balance", "mentionText": "$2,995.50"},
        ],
    }


@pytest.fixture
def sample_document(sample_entity_document) -> EntityDocument:
    return EntityDocument.from_dict(sample_entity_document)


@pytest.fixture
def make_transaction():
    """Factory for canonical transactions with sensible defaults."""

    def _make(**overrides) -> CanonicalTransaction:
        values = {
            "date": date(2024, 1, 5),
            "posted_date": date(2024, 1, 5),
            "description": "COFFEE SHOP",
            "payee": "COFFEE SHOP",
            "debit": Decimal("4.50"),
            "credit": Decimal("0"),
        }
        values.update(overrides)
        return CanonicalTransaction(**values)

    return _make
