"""Tests for CSV statement parsing and row normalization."""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from household_budget.models.core import ImportConfig
from household_budget.parsers.base import DataTransformer, split_csv_line
from household_budget.parsers.csv_parser import StatementCSVParser
from household_budget.utils.error_handler import ErrorHandler, StatementParseError


class TestSplitCsvLine:
    """Test cases for quote-aware line splitting"""

    def test_plain_fields_are_trimmed(self):
        assert split_csv_line("a, b ,c") == ['a', 'b', 'c']

    def test_comma_inside_quotes(self):
        assert split_csv_line('2024-01-15,"AMAZON, INC",-25.00') == ['2024-01-15', 'AMAZON, INC', '-25.00']

    def test_trailing_empty_field_is_kept(self):
        assert split_csv_line("01/15/2024,GROCERY STORE,85.32,") == ['01/15/2024', 'GROCERY STORE', '85.32', '']


class TestDataTransformer:
    """Test cases for field conversion"""

    def setup_method(self):
        self.transformer = DataTransformer()

    def test_normalize_date_formats(self):
        assert self.transformer.normalize_date("2024-01-15") == "2024-01-15"
        assert self.transformer.normalize_date("01/15/2024") == "2024-01-15"
        assert self.transformer.normalize_date("01-15-2024") == "2024-01-15"
        assert self.transformer.normalize_date("2024/01/15") == "2024-01-15"
        assert self.transformer.normalize_date("2024-01-15T08:30:00") == "2024-01-15"

    def test_month_day_order_is_not_swapped(self):
        assert self.transformer.normalize_date("03/04/2024") == "2024-03-04"

    def test_invalid_date_raises(self):
        with pytest.raises(ValueError):
            self.transformer.normalize_date("not a date")
        with pytest.raises(ValueError):
            self.transformer.normalize_date("13/45/2024")
        with pytest.raises(ValueError):
            self.transformer.normalize_date("")

    def test_normalize_amount(self):
        assert self.transformer.normalize_amount("$1,234.56") == Decimal('1234.56')
        assert self.transformer.normalize_amount("-4.5") == Decimal('-4.50')
        assert self.transformer.normalize_amount("(25.00)") == Decimal('-25.00')
        assert self.transformer.normalize_amount(" 85.325 ") == Decimal('85.33')

    def test_invalid_amount_raises(self):
        for value in ("abc", "", "NaN", "Infinity", "123456789012345678901234567890"):
            with pytest.raises(ValueError):
                self.transformer.normalize_amount(value)

    def test_is_numeric(self):
        assert self.transformer.is_numeric("85.32")
        assert not self.transformer.is_numeric("")
        assert not self.transformer.is_numeric("CHQ")


class TestStatementCSVParser:
    """Test cases for StatementCSVParser"""

    def setup_method(self):
        """Set up test fixtures"""
        self.config = ImportConfig()
        self.parser = StatementCSVParser(self.config)

    def test_supported_extensions(self):
        assert '.csv' in self.parser.get_supported_extensions()

    def test_debit_credit_header_row(self):
        content = "Date,Description,Debit,Credit,Balance\n2024-01-15,COFFEE SHOP,4.50,,120.00\n"

        result = self.parser.parse_text(content, "td.csv", "house-1")

        assert result.bank_format == 'td'
        assert result.has_header
        assert len(result.transactions) == 1
        tx = result.transactions[0]
        assert tx.amount == Decimal('4.50')
        assert tx.is_debit is True
        assert tx.type == 'expense'
        assert tx.date == '2024-01-15'
        assert tx.household_id == 'house-1'
        assert tx.source_file == 'td.csv'
        assert tx.fingerprint == '2024-01-15-4.5-COFFEESHOP'
        assert tx.raw_data == {
            'Date': '2024-01-15', 'Description': 'COFFEE SHOP',
            'Debit': '4.50', 'Credit': '', 'Balance': '120.00',
        }

    def test_credit_column_is_income(self):
        content = "Date,Description,Debit,Credit,Balance\n2024-01-31,PAYROLL,,2500.00,2620.00\n"

        tx = self.parser.parse_text(content, "td.csv").transactions[0]

        assert tx.amount == Decimal('2500.00')
        assert tx.is_debit is False
        assert tx.type == 'income'

    def test_headerless_debit_credit_row(self):
        result = self.parser.parse_text("01/15/2024,GROCERY STORE,85.32,\n", "bank.csv")

        assert not result.has_header
        assert result.rows_read == 1
        tx = result.transactions[0]
        assert tx.date == '2024-01-15'
        assert tx.amount == Decimal('85.32')
        assert tx.is_debit is True

    def test_negative_payroll_amount_is_income(self):
        content = "Date,Description,Amount\n2024-02-01,PAYROLL DEPOSIT,-2500.00\n"

        tx = self.parser.parse_text(content, "rbc.csv").transactions[0]

        assert tx.is_debit is False
        assert tx.type == 'income'
        assert tx.amount == Decimal('2500.00')

    def test_negative_amount_is_expense(self):
        content = "Date,Description,Amount\n2024-01-15,COFFEE SHOP,-4.50\n2024-01-16,ACME WIDGETS,-10.00\n"

        transactions = self.parser.parse_text(content, "rbc.csv").transactions

        assert [tx.is_debit for tx in transactions] == [True, True]
        assert [tx.type for tx in transactions] == ['expense', 'expense']

    def test_positive_amounts_stay_credits_by_default(self):
        content = (
            "Date,Description,Amount\n"
            "2024-01-01,COFFEE SHOP,4.50\n"
            "2024-01-02,GROCERY STORE,80.00\n"
            "2024-01-03,PAYROLL DEPOSIT,-2500.00\n"
        )

        result = self.parser.parse_text(content, "visa.csv")

        assert [tx.is_debit for tx in result.transactions] == [False, False, False]
        assert [tx.type for tx in result.transactions] == ['income', 'income', 'income']

    def test_credit_card_convention_inverts_signs(self):
        parser = StatementCSVParser(ImportConfig(sign_convention='credit_card'))
        content = (
            "Date,Description,Amount\n"
            "2024-01-01,GROCERY STORE,50.00\n"
            "2024-01-02,COFFEE SHOP,4.50\n"
            "2024-01-03,REFUND AMAZON,-20.00\n"
        )

        result = parser.parse_text(content, "visa.csv")

        assert result.sign_convention == 'credit_card'
        assert [tx.is_debit for tx in result.transactions] == [True, True, False]
        assert all(tx.amount > 0 for tx in result.transactions)

    def test_negative_deposit_fee_is_expense(self):
        content = "Date,Description,Amount\n2024-01-01,ATM DEPOSIT FEE,-3.00\n"

        tx = self.parser.parse_text(content, "a.csv").transactions[0]

        assert tx.is_debit is True
        assert tx.type == 'expense'

    def test_oversized_amount_becomes_zero(self):
        content = "2024-01-15,WIRE REF,123456789012345678901234567890\n"

        result = self.parser.parse_text(content, "a.csv")

        assert result.transactions[0].amount == Decimal('0.00')
        assert result.transactions[0].type == 'unclassified'
        assert len(result.warnings) == 1
    def test_quoted_description_with_comma(self):
        content = 'Date,Description,Amount\n2024-01-15,"AMAZON, INC",-25.00\n'

        tx = self.parser.parse_text(content, "a.csv").transactions[0]

        assert tx.description == 'AMAZON, INC'
        assert tx.amount == Decimal('25.00')

    def test_incomplete_rows_are_dropped(self):
        content = (
            "Date,Description,Amount\n"
            "2024-01-15,COFFEE SHOP,-4.50\n"
            ",,\n"
            "Total,,\n"
            "2024-01-16,NO AMOUNT,\n"
        )

        result = self.parser.parse_text(content, "a.csv")

        assert len(result.transactions) == 1
        assert result.rows_read == 4
        assert result.rows_dropped == 3
        assert result.warnings == []

    def test_blank_lines_and_bom_are_ignored(self):
        content = "\ufeffDate,Description,Amount\n\n2024-01-15,COFFEE SHOP,-4.50\n\n"

        result = self.parser.parse_text(content, "a.csv")

        assert result.has_header
        assert result.rows_read == 1
        assert len(result.transactions) == 1

    def test_unparseable_date_falls_back_to_today(self):
        content = "Date,Description,Amount\nsometime,COFFEE SHOP,-4.50\n"

        result = self.parser.parse_text(content, "a.csv")

        assert result.transactions[0].date == date.today().isoformat()
        assert len(result.warnings) == 1
        assert "sometime" in result.warnings[0]

    def test_unparseable_amount_becomes_zero(self):
        content = "Date,Description,Amount\n2024-01-15,COFFEE SHOP,abc\n"

        result = self.parser.parse_text(content, "a.csv")

        tx = result.transactions[0]
        assert tx.amount == Decimal('0.00')
        assert tx.type == 'unclassified'
        assert len(result.warnings) == 1

    def test_warnings_reach_error_handler(self):
        handler = ErrorHandler()
        parser = StatementCSVParser(self.config, handler)

        parser.parse_text("Date,Description,Amount\n2024-01-15,COFFEE SHOP,abc\n", "a.csv")

        assert handler.has_warnings()
        assert handler.warnings[0].error_code == 'D002'
        assert handler.warnings[0].line_number == 2

    def test_zero_debit_credit_is_unclassified(self):
        content = "Date,Description,Debit,Credit,Balance\n2024-01-15,ADJUSTMENT,0.00,0.00,120.00\n"

        tx = self.parser.parse_text(content, "td.csv").transactions[0]

        assert tx.amount == Decimal('0.00')
        assert tx.type == 'unclassified'

    def test_rows_keep_input_order(self):
        content = (
            "Date,Description,Amount\n"
            "2024-01-20,THIRD,-3.00\n"
            "2024-01-10,FIRST,-1.00\n"
            "2024-01-15,SECOND,-2.00\n"
        )

        transactions = self.parser.parse_text(content, "a.csv").transactions

        assert [tx.description for tx in transactions] == ['THIRD', 'FIRST', 'SECOND']

    def test_default_household_from_config(self):
        parser = StatementCSVParser(ImportConfig(default_household_id="home"))

        tx = parser.parse_text("2024-01-15,COFFEE,4.50\n", "a.csv").transactions[0]

        assert tx.household_id == "home"

    def test_empty_file_raises(self):
        with pytest.raises(StatementParseError) as exc_info:
            self.parser.parse_text("\n\n", "empty.csv")

        assert exc_info.value.error_type == "EMPTY_FILE"

    def test_parse_file(self):
        content = "Date,Description,Debit,Credit,Balance\n2024-01-15,COFFEE SHOP,4.50,,120.00\n"

        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False, encoding='utf-8') as f:
            f.write(content)
            temp_path = f.name

        try:
            result = self.parser.parse_file(temp_path)

            assert result.file_path == os.path.basename(temp_path)
            assert len(result.transactions) == 1
            assert result.transactions[0].source_file == os.path.basename(temp_path)
        finally:
            os.unlink(temp_path)

    def test_parse_missing_file_raises(self):
        with pytest.raises(StatementParseError) as exc_info:
            self.parser.parse_file("/nonexistent/statement.csv")

        assert exc_info.value.error_type == "FILE_NOT_FOUND"
        assert exc_info.value.error_code == "F001"
