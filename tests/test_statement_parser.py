"""Tests for the statement text parser (section state machine)."""

from datetime import date
from decimal import Decimal

from statement_ledger.extractors import (
    ExtractionSource,
    SectionState,
    StatementTextParser,
    clean_payee,
    determine_transaction_type,
    parse_statement_text,
    statement_lines_to_canonical,
)
from statement_ledger.extractors.statement_parser import SECTION_HEADERS


class TestSectionStateMachine:
    """Section headers drive the direction of single-amount lines."""

    def test_credits_section_line(self):
        """A positive amount under Deposits & Credits is a credit."""
        text = "Deposits & Credits\n01/02 1,200.00 MOBILE DEPOSIT REF #12345"
        lines = parse_statement_text(text, year=2024)

        assert len(lines) == 1
        line = lines[0]
        assert line.date == date(2024, 1, 2)
        assert line.date_text == "01/02/2024"
        assert line.amount == "$1200.00"
        assert line.payee == "MOBILE DEPOSIT REF"
        assert line.type == "Mobile Deposit"
        assert line.is_debit is False

    def test_debits_section_parenthesized_line(self):
        """Parenthesized amount under ATM/Purchases is a debit."""
        text = "ATM/Purchases\n01/03 (45.22) POS DEBIT COFFEE SHOP MA"
        lines = parse_statement_text(text, year=2024)

        assert len(lines) == 1
        assert lines[0].amount == "-$45.22"
        assert lines[0].payee == "COFFEE SHOP"
        assert lines[0].type == "Debit Card Purchase"

    def test_plain_amount_in_debits_section_is_debit(self):
        text = "Other Debits\n01/20 89.99 ACH DEBIT CITY ELECTRIC UTILITY"
        lines = parse_statement_text(text, year=2024)

        assert lines[0].amount == "-$89.99"
        assert lines[0].type == "ACH Debit"
        assert lines[0].payee == "CITY ELECTRIC UTILITY"

    def test_parenthesized_amount_in_credits_section_is_debit(self):
        """Sign markers win over the section direction."""
        text = "Deposits & Credits\n01/09 (10.00) DEPOSIT CORRECTION"
        lines = parse_statement_text(text, year=2024)

        assert lines[0].amount == "-$10.00"

    def test_other_section_uses_sign(self):
        text = (
            "Other Transactions\n"
            "01/07 -20.00 SERVICE FEE\n"
            "01/08 15.00 INTEREST PAID\n"
        )
        lines = parse_statement_text(text, year=2024)

        assert [line.amount for line in lines] == ["-$20.00", "$15.00"]

    def test_single_amount_lines_ignored_before_any_section(self):
        lines = parse_statement_text("01/02 1,200.00 MOBILE DEPOSIT", year=2024)
        assert lines == []

    def test_daily_balance_ends_single_amount_region(self):
        text = (
            "Deposits & Credits\n"
            "01/02 100.00 DEPOSIT\n"
            "Daily Balance\n"
            "01/03 100.00 balance row\n"
        )
        lines = parse_statement_text(text, year=2024)

        assert len(lines) == 1
        assert lines[0].date == date(2024, 1, 2)

    def test_header_match_is_case_insensitive(self):
        text = "DEPOSITS AND CREDITS\n01/02 50.00 CASH APP TRANSFER"
        lines = parse_statement_text(text, year=2024)

        assert lines[0].amount == "$50.00"

    def test_header_table_is_data(self):
        """Every state is reachable from the header table."""
        states = {state for _, state in SECTION_HEADERS}
        assert states == set(SectionState)

    def test_full_statement(self, sample_statement_text, statement_year):
        """Noise lines and column headers are skipped; order is preserved."""
        lines = StatementTextParser(year=statement_year).parse(sample_statement_text)

        assert [line.amount for line in lines] == [
            "$1200.00",
            "$2500.00",
            "-$45.22",
            "-$12.50",
            "-$89.99",
        ]
        assert [line.payee for line in lines] == [
            "MOBILE DEPOSIT REF",
            "ACME PAYROLL",
            "COFFEE SHOP",
            "CORNER MARKET",
            "CITY ELECTRIC UTILITY",
        ]
        assert lines[1].type == "ACH Credit"


class TestDualColumnLines:
    """Debit/credit column layout is recognized in every state."""

    def test_debit_column_without_section(self):
        lines = parse_statement_text("02/10/24 CHECK #1234 125.00 -")

        assert len(lines) == 1
        assert lines[0].date == date(2024, 2, 10)
        assert lines[0].amount == "-$125.00"
        assert lines[0].type == "Check"
        assert lines[0].payee == "CHECK"

    def test_credit_column_without_section(self):
        lines = parse_statement_text("02/11/24 REFUND - 35.00")

        assert len(lines) == 1
        assert lines[0].amount == "$35.00"
        assert lines[0].type == "Credit"

    def test_both_columns_populated_is_skipped(self):
        assert parse_statement_text("02/11/24 REFUND 10.00 35.00") == []

    def test_both_columns_absent_is_skipped(self):
        assert parse_statement_text("02/11/24 REFUND - -") == []

    def test_running_balance_column(self, sample_dual_column_text):
        lines = parse_statement_text(sample_dual_column_text)

        assert len(lines) == 3
        transfer = lines[2]
        assert transfer.amount == "-$200.00"
        assert transfer.balance == Decimal("1710.00")
        assert transfer.type == "Transfer"

    def test_negative_credit_column_forced_debit(self):
        lines = parse_statement_text("02/13/24 REVERSAL - (15.00)")
        assert lines[0].amount == "-$15.00"

    def test_dual_column_inside_section(self):
        """Dual-column shape takes precedence inside a section."""
        text = "Deposits & Credits\n02/14/2024 WIRE IN - 500.00"
        lines = parse_statement_text(text)

        assert lines[0].date == date(2024, 2, 14)
        assert lines[0].amount == "$500.00"


class TestDateCompletion:
    def test_bare_month_day_uses_given_year(self):
        lines = parse_statement_text("Deposits & Credits\n12/31 10.00 DEPOSIT", year=2023)
        assert lines[0].date == date(2023, 12, 31)

    def test_bare_month_day_defaults_to_current_year(self):
        lines = parse_statement_text("Deposits & Credits\n01/02 10.00 DEPOSIT")
        assert lines[0].date.year == date.today().year

    def test_invalid_date_skipped(self):
        text = "Deposits & Credits\n02/30 10.00 DEPOSIT\n02/28 11.00 DEPOSIT"
        lines = parse_statement_text(text, year=2023)

        assert len(lines) == 1
        assert lines[0].date == date(2023, 2, 28)


class TestEmptyAndUnmatchedInput:
    def test_empty_text(self):
        assert parse_statement_text("") == []

    def test_no_transaction_lines(self):
        assert parse_statement_text("Welcome to your statement\nPage 1 of 2") == []

    def test_can_extract_requires_text(self):
        parser = StatementTextParser()
        assert parser.can_extract(ExtractionSource(text="  ")) is False
        assert parser.can_extract(ExtractionSource(text="01/02 x")) is True


class TestCleanPayee:
    def test_strips_channel_prefix_and_state(self):
        assert clean_payee("POS DEBIT COFFEE SHOP MA") == "COFFEE SHOP"

    def test_strips_numbered_channel_prefix(self):
        assert clean_payee("1234 DBT PURCHASE - GROCERY OUTLET") == "GROCERY OUTLET"

    def test_strips_trailing_references(self):
        assert clean_payee("MOBILE DEPOSIT REF #12345") == "MOBILE DEPOSIT REF"
        assert clean_payee("ACME PAYROLL 000123456789") == "ACME PAYROLL"
        assert clean_payee("STORE :98765") == "STORE"

    def test_collapses_whitespace(self):
        assert clean_payee("  CORNER   MARKET  ") == "CORNER MARKET"

    def test_keeps_lone_state_like_token(self):
        """The merchant name itself is never removed."""
        assert clean_payee("MA") == "MA"

    def test_reference_only_description_kept(self):
        assert clean_payee("#123456") == "#123456"

    def test_unknown_state_code_kept(self):
        assert clean_payee("BOOK SHOP XX") == "BOOK SHOP XX"

    def test_only_one_state_code_stripped(self):
        """Name tokens that look like state codes survive."""
        assert clean_payee("MOM AND POP CO PA") == "MOM AND POP CO"
        assert clean_payee("DUNKIN IN MA") == "DUNKIN IN"

    def test_store_number_before_state(self):
        assert clean_payee("CORNER MARKET #4411 TX") == "CORNER MARKET"


class TestDetermineTransactionType:
    def test_vocabulary(self):
        assert determine_transaction_type("ATM DEPOSIT 123 MAIN", False) == "ATM Deposit"
        assert determine_transaction_type("ONLINE PAYMENT THANK YOU", True) == "Payment"
        assert determine_transaction_type("OVERDRAFT FEE", True) == "Fee"
        assert determine_transaction_type("PAYPAL INST XFER", True) == "PayPal"

    def test_pos_only_for_debits(self):
        assert determine_transaction_type("POS RETURN", True) == "Debit Card Purchase"
        assert determine_transaction_type("POS RETURN", False) == "Credit"

    def test_fallback(self):
        assert determine_transaction_type("SOMETHING", True) == "Debit"
        assert determine_transaction_type("SOMETHING", False) == "Credit"


class TestCanonicalConversion:
    def test_to_canonical(self):
        lines = parse_statement_text(
            "ATM/Purchases\n01/03 (45.22) POS DEBIT COFFEE SHOP MA", year=2024
        )
        (tx,) = statement_lines_to_canonical(lines)

        assert tx.date == date(2024, 1, 3)
        assert tx.posted_date == date(2024, 1, 3)
        assert tx.debit == Decimal("45.22")
        assert tx.credit == Decimal("0")
        assert tx.description == "POS DEBIT COFFEE SHOP MA"
        assert tx.payee == "COFFEE SHOP"
        assert tx.metadata.extra["transaction_type"] == "Debit Card Purchase"

    def test_extract_from_source(self, sample_statement_text, statement_year):
        parser = StatementTextParser(year=statement_year)
        transactions = parser.extract(ExtractionSource(text=sample_statement_text))

        assert len(transactions) == 5
        assert transactions[0].credit == Decimal("1200.00")
        assert sum(tx.debit for tx in transactions) == Decimal("147.71")
