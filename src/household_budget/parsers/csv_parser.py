"""CSV statement parser with automatic structure detection."""

import logging
import os
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .base import DataTransformer, split_csv_line
from .format_detector import FormatDetector
from ..models.core import ColumnMapping, FileImportResult, ImportConfig, Transaction, generate_id
from ..utils.error_handler import ErrorHandler, StatementParseError
from ..utils.fingerprint import generate_fingerprint
from ..utils.sign_detector import TransactionSignDetector


logger = logging.getLogger(__name__)

BYTE_ORDER_MARK = '\ufeff'


class StatementCSVParser:
    """Parser for bank statement CSV exports"""

    def __init__(self, config: Optional[ImportConfig] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.config = config or ImportConfig()
        self.supported_extensions = ['.csv']
        self.transformer = DataTransformer(self.config)
        self.detector = FormatDetector(self.config)
        self.sign_detector = TransactionSignDetector(self.config.sign_convention)
        self.error_handler = error_handler or ErrorHandler()

    def get_supported_extensions(self) -> List[str]:
        """Return list of supported file extensions"""
        return self.supported_extensions

    def parse_file(self, file_path: str, household_id: Optional[str] = None) -> FileImportResult:
        """Read a statement from disk and parse it.

        Raises:
            StatementParseError: If the file cannot be read or has no usable structure
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError as e:
            raise StatementParseError(f"File not found: {file_path}", "FILE_NOT_FOUND",
                                      file_path=file_path) from e
        except PermissionError as e:
            raise StatementParseError(f"Permission denied: {file_path}", "FILE_PERMISSION_DENIED",
                                      file_path=file_path) from e
        except UnicodeDecodeError as e:
            raise StatementParseError(f"File is not valid UTF-8 text: {e.reason}", "ENCODING_ERROR",
                                      file_path=file_path) from e
        except OSError as e:
            raise StatementParseError(f"Cannot read file: {e.strerror or e}", "FILE_READ_ERROR",
                                      file_path=file_path) from e

        return self.parse_text(content, os.path.basename(file_path), household_id)

    def parse_text(self, content: str, file_path: str = "<text>",
                   household_id: Optional[str] = None) -> FileImportResult:
        """Parse statement text into transactions.

        Args:
            content: Full CSV text
            file_path: Source name recorded on every transaction
            household_id: Owner household, defaults to the configured one

        Returns:
            FileImportResult with transactions in row order, row counts and
            soft warnings

        Raises:
            StatementParseError: If the file is empty or its columns cannot be resolved
        """
        household_id = household_id or self.config.default_household_id

        if content.startswith(BYTE_ORDER_MARK):
            content = content[len(BYTE_ORDER_MARK):]

        lines = [
            (line_number, line)
            for line_number, line in enumerate(content.splitlines(), start=1)
            if line.strip()
        ]

        if not lines:
            raise StatementParseError("File is empty", "EMPTY_FILE", file_path=file_path)

        detection = self.detector.detect(lines[0][1], file_path)
        data_lines = lines[1:] if detection.has_header else lines

        result = FileImportResult(
            file_path=file_path,
            bank_format=detection.bank_format.value,
            has_header=detection.has_header,
        )

        rows = []
        for line_number, line in data_lines:
            result.rows_read += 1
            raw_row = self.build_raw_row(detection.headers, split_csv_line(line))

            if not self.has_required_fields(raw_row, detection.mapping):
                logger.debug(f"Dropping incomplete row {line_number} in {file_path}")
                result.rows_dropped += 1
                continue

            rows.append((line_number, raw_row))

        result.sign_convention = self._analyze_signs(rows, detection.mapping)['convention']

        for line_number, raw_row in rows:
            transaction = self.normalize_row(
                raw_row, detection.mapping, household_id, file_path,
                line_number=line_number, result=result
            )
            result.transactions.append(transaction)

        logger.info(
            f"Parsed {len(result.transactions)} transactions from {file_path} "
            f"({result.rows_dropped} rows dropped, {len(result.warnings)} warnings)"
        )
        return result

    @staticmethod
    def build_raw_row(headers: List[str], values: List[str]) -> Dict[str, str]:
        """Key a row's values by column name; missing trailing values are empty"""
        raw_row = {}
        for index, value in enumerate(values):
            name = headers[index] if index < len(headers) else f"Column {index + 1}"
            raw_row[name] = value
        for name in headers[len(values):]:
            raw_row[name] = ''
        return raw_row

    @staticmethod
    def has_required_fields(raw_row: Dict[str, str], mapping: ColumnMapping) -> bool:
        """Date, description and at least one amount-bearing field must be non-empty"""
        if not raw_row.get(mapping.date, '').strip():
            return False
        if not raw_row.get(mapping.description, '').strip():
            return False
        return any(raw_row.get(col, '').strip() for col in mapping.amount_columns())

    def _analyze_signs(self, rows: List[Tuple[int, Dict[str, str]]],
                       mapping: ColumnMapping) -> Dict[str, Any]:
        if mapping.uses_debit_credit:
            return {'convention': 'debit_credit', 'confidence': 1.0}

        samples = []
        for _, raw_row in rows:
            value = raw_row.get(mapping.amount, '')
            if self.transformer.is_numeric(value):
                samples.append((raw_row.get(mapping.description, ''),
                                self.transformer.normalize_amount(value)))

        return self.sign_detector.analyze_file_sign_convention(samples)

    def normalize_row(self,
                      raw_row: Dict[str, str],
                      mapping: ColumnMapping,
                      household_id: str,
                      source_file: str,
                      line_number: Optional[int] = None,
                      result: Optional[FileImportResult] = None) -> Transaction:
        """Convert one raw row into a canonical transaction.

        Unparseable dates fall back to today and unparseable amounts to zero;
        both are recorded as warnings and the row is still emitted.
        """
        date_raw = raw_row.get(mapping.date, '')
        try:
            transaction_date = self.transformer.normalize_date(date_raw)
        except ValueError:
            transaction_date = date.today().isoformat()
            self._warn(result, f"Unparseable date '{date_raw}', using today",
                       'DATE_PARSE_ERROR', source_file, line_number, mapping.date, date_raw)

        description = self.transformer.clean_description(raw_row.get(mapping.description, ''))

        if mapping.uses_debit_credit:
            debit = self._parse_amount_field(raw_row, mapping.debit, result, source_file, line_number)
            credit = self._parse_amount_field(raw_row, mapping.credit, result, source_file, line_number)

            if debit > 0:
                amount, is_debit = debit, True
            elif credit > 0:
                amount, is_debit = credit, False
            else:
                amount, is_debit = Decimal('0.00'), True
        else:
            signed = self._parse_amount_field(raw_row, mapping.amount, result, source_file,
                                              line_number, absolute=False)
            amount = abs(signed)
            is_debit = self.sign_detector.resolve_direction(signed, description)

        if amount == 0:
            transaction_type = 'unclassified'
        else:
            transaction_type = 'expense' if is_debit else 'income'

        logger.debug(f"Row {line_number}: {transaction_date} {description[:30]} {amount} debit={is_debit}")

        return Transaction(
            id=generate_id(),
            household_id=household_id,
            date=transaction_date,
            description=description,
            amount=amount,
            is_debit=is_debit,
            type=transaction_type,
            fingerprint=generate_fingerprint(transaction_date, amount, description),
            raw_data=dict(raw_row),
            source_file=source_file,
        )

    def _parse_amount_field(self, raw_row: Dict[str, str], column: Optional[str],
                            result: Optional[FileImportResult], source_file: str,
                            line_number: Optional[int], absolute: bool = True) -> Decimal:
        value = raw_row.get(column, '').strip() if column else ''
        if not value:
            return Decimal('0.00')

        try:
            amount = self.transformer.normalize_amount(value)
        except ValueError:
            self._warn(result, f"Unparseable amount '{value}', using 0",
                       'AMOUNT_PARSE_ERROR', source_file, line_number, column, value)
            return Decimal('0.00')

        return abs(amount) if absolute else amount

    def _warn(self, result: Optional[FileImportResult], message: str, warning_type: str,
              source_file: str, line_number: Optional[int], field_name: Optional[str],
              raw_value: Optional[str]):
        if line_number is not None:
            message = f"{message} (line {line_number})"
        if result is not None:
            result.warnings.append(message)
        self.error_handler.log_warning(
            message, warning_type,
            file_path=source_file,
            line_number=line_number,
            field_name=field_name,
            raw_value=raw_value
        )
