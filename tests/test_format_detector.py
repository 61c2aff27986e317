"""Tests for bank format and column structure detection."""

from decimal import Decimal

import pytest

from household_budget.models.core import BankFormat, ImportConfig
from household_budget.parsers.format_detector import BANK_FORMATS, FormatDetector, looks_like_date
from household_budget.utils.error_handler import StatementParseError


class TestHeaderHeuristic:
    """Test cases for header row detection"""

    def setup_method(self):
        self.detector = FormatDetector()

    def test_plain_header(self):
        assert self.detector.looks_like_header("Date,Description,Amount")

    def test_date_first_field_is_not_header(self):
        assert not self.detector.looks_like_header("2024-01-15,Transaction date,4.50")
        assert not self.detector.looks_like_header("01/15/2024,Amount due,4.50")

    def test_long_second_field_is_not_header(self):
        assert not self.detector.looks_like_header("Posted,A very long description of a transaction,4.50")

    def test_line_without_keywords_is_not_header(self):
        assert not self.detector.looks_like_header("Posted,Payee,Value")

    def test_date_like_patterns(self):
        assert looks_like_date("2024-01-15")
        assert looks_like_date("1/5/2024")
        assert not looks_like_date("Jan 5 2024")

    def test_long_field_length_is_configurable(self):
        detector = FormatDetector(ImportConfig(long_field_length=5))
        assert not detector.looks_like_header("Date,Description,Amount")


class TestBankFormatDetection:
    """Test cases for known bank layouts"""

    def setup_method(self):
        self.detector = FormatDetector()

    def test_debit_credit_format(self):
        headers = ['Date', 'Description', 'Debit', 'Credit', 'Balance']
        assert self.detector.detect_bank_format(headers) == BankFormat.TD

    def test_order_insensitive(self):
        headers = ['Balance', 'Credit', 'Debit', 'Description', 'Date']
        assert self.detector.detect_bank_format(headers) == BankFormat.TD

    def test_single_amount_format_with_transaction_date(self):
        headers = ['Transaction Date', 'Description', 'Amount', 'Balance']
        assert self.detector.detect_bank_format(headers) == BankFormat.RBC

    def test_case_and_whitespace_are_ignored(self):
        headers = [' DATE ', 'description', 'AMOUNT', 'Balance']
        assert self.detector.detect_bank_format(headers) == BankFormat.RBC

    def test_unknown_headers_are_generic(self):
        assert self.detector.detect_bank_format(['Date', 'Description', 'Amount']) == BankFormat.GENERIC

    def test_every_known_format_has_candidates(self):
        for bank_format, spec in BANK_FORMATS.items():
            if bank_format is BankFormat.GENERIC:
                continue
            assert spec.headers
            assert spec.amount_column in ('single', 'debit_credit')


class TestColumnMapping:
    """Test cases for header-based column resolution"""

    def setup_method(self):
        self.detector = FormatDetector()

    def test_known_debit_credit_mapping(self):
        result = self.detector.detect("Date,Description,Debit,Credit,Balance")

        assert result.has_header
        assert result.bank_format == BankFormat.TD
        assert result.mapping.date == 'Date'
        assert result.mapping.debit == 'Debit'
        assert result.mapping.credit == 'Credit'
        assert result.mapping.balance == 'Balance'
        assert result.mapping.amount is None

    def test_generic_keyword_mapping(self):
        result = self.detector.detect("Trans Date,Memo,Amt")

        assert result.bank_format == BankFormat.GENERIC
        assert result.mapping.date == 'Trans Date'
        assert result.mapping.description == 'Memo'
        assert result.mapping.amount == 'Amt'

    def test_generic_prefers_debit_credit_pair(self):
        result = self.detector.detect("Date,Payee,Amount,Debit,Credit")

        assert result.mapping.uses_debit_credit
        assert result.mapping.amount is None
        assert result.mapping.debit == 'Debit'
        assert result.mapping.credit == 'Credit'

    def test_generic_debit_only(self):
        result = self.detector.detect("Date,Details,Debit")

        assert result.mapping.debit == 'Debit'
        assert result.mapping.credit is None

    def test_missing_amount_column_fails(self):
        with pytest.raises(StatementParseError) as exc_info:
            self.detector.detect("Date,Description,Notes", file_path="bad.csv")

        assert exc_info.value.error_type == "MISSING_REQUIRED_COLUMNS"
        assert exc_info.value.file_path == "bad.csv"

    def test_missing_description_column_fails(self):
        with pytest.raises(StatementParseError):
            self.detector.detect("Date,Amount,Balance")


class TestHeaderlessInference:
    """Test cases for the positional rule table"""

    def setup_method(self):
        self.detector = FormatDetector()

    def test_four_columns_debit_only_populated(self):
        result = self.detector.detect("01/15/2024,GROCERY STORE,85.32,")

        assert not result.has_header
        assert result.bank_format == BankFormat.GENERIC
        assert result.rule == 'four_debit_credit'
        assert result.mapping.debit == 'Debit'
        assert result.mapping.credit == 'Credit'
        assert result.headers == ['Date', 'Description', 'Debit', 'Credit']

    def test_four_columns_amount_and_balance(self):
        result = self.detector.detect("2024-01-15,COFFEE,-4.50,1500.00")

        assert result.rule == 'four_amount_balance'
        assert result.mapping.amount == 'Amount'
        assert result.mapping.balance == 'Balance'

    def test_four_columns_small_balance_defaults_to_debit_credit(self):
        result = self.detector.detect("2024-01-15,COFFEE,4.50,120.00")

        assert result.rule == 'four_default_debit_credit'
        assert result.mapping.uses_debit_credit

    def test_balance_threshold_is_configurable(self):
        detector = FormatDetector(ImportConfig(balance_threshold=Decimal('100')))
        result = detector.detect("2024-01-15,COFFEE,4.50,120.00")

        assert result.rule == 'four_amount_balance'

    def test_five_columns_with_balance(self):
        result = self.detector.detect("2024-01-15,RENT,1200.00,,3000.00")

        assert result.rule == 'five_plus_debit_credit_balance'
        assert result.mapping.balance == 'Balance'

    def test_five_columns_without_numeric_balance(self):
        result = self.detector.detect("2024-01-15,RENT,1200.00,,CHQ,extra")

        assert result.rule == 'five_plus_debit_credit'
        assert result.mapping.balance is None
        assert result.headers[4:] == ['Column 5', 'Column 6']

    def test_three_columns(self):
        result = self.detector.detect("2024-01-15,COFFEE,4.50")

        assert result.rule == 'three_amount'
        assert result.mapping.amount == 'Amount'

    def test_two_columns_fail(self):
        with pytest.raises(StatementParseError) as exc_info:
            self.detector.detect("2024-01-15,COFFEE")

        assert exc_info.value.error_type == "UNDETECTABLE_STRUCTURE"
