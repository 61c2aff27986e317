"""Bank format and column structure detection for statement CSV files.

Header rows are matched against known bank layouts first and resolved by
keyword search otherwise. Headerless files are inferred positionally from
the column count and the numeric shape of the first data row, using an
ordered table of named rules.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from .base import DataTransformer, split_csv_line
from ..models.core import BankFormat, BankFormatSpec, ColumnMapping, ImportConfig
from ..utils.error_handler import StatementParseError


logger = logging.getLogger(__name__)


BANK_FORMATS: Dict[BankFormat, BankFormatSpec] = {
    BankFormat.TD: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Debit', 'Credit', 'Balance'),
            ('Transaction Date', 'Description', 'Debit', 'Credit', 'Balance'),
        ),
        amount_column='debit_credit',
    ),
    BankFormat.RBC: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Amount', 'Balance'),
            ('Transaction Date', 'Description', 'Amount', 'Balance'),
        ),
        amount_column='single',
    ),
    BankFormat.SCOTIABANK: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Amount', 'Balance'),
            ('Transaction Date', 'Description', 'Amount', 'Balance'),
        ),
        amount_column='single',
    ),
    BankFormat.BMO: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Amount', 'Balance'),
            ('Transaction Date', 'Description', 'Amount', 'Balance'),
        ),
        amount_column='single',
    ),
    BankFormat.CIBC: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Debit', 'Credit', 'Balance'),
            ('Transaction Date', 'Description', 'Debit', 'Credit', 'Balance'),
        ),
        amount_column='debit_credit',
    ),
    BankFormat.TANGERINE: BankFormatSpec(
        headers=(
            ('Date', 'Description', 'Amount', 'Balance'),
            ('Transaction Date', 'Description', 'Amount', 'Balance'),
        ),
        amount_column='single',
    ),
    BankFormat.GENERIC: BankFormatSpec(headers=(), amount_column='single'),
}

HEADER_KEYWORDS = ('date', 'description', 'amount', 'debit', 'credit', 'balance', 'transaction')

DATE_LIKE_PATTERNS = (
    re.compile(r'^\d{4}-\d{2}-\d{2}$'),
    re.compile(r'^\d{1,2}/\d{1,2}/\d{4}$'),
)

# Substring keywords for generic header resolution, in priority order
GENERIC_COLUMN_KEYWORDS = {
    'date': ['date', 'transaction date', 'trans date'],
    'description': ['description', 'desc', 'details', 'memo', 'payee', 'merchant'],
    'amount': ['amount', 'amt'],
    'debit': ['debit'],
    'credit': ['credit'],
    'balance': ['balance'],
}


@dataclass
class DetectionResult:
    """Outcome of structure detection for one file.

    Attributes:
        has_header: Whether the first line is a header row
        bank_format: Detected format (``generic`` for headerless files)
        mapping: Resolved column roles
        headers: Column names used to key row values, one per position
        rule: Name of the positional rule applied to a headerless file
    """
    has_header: bool
    bank_format: BankFormat
    mapping: ColumnMapping
    headers: List[str] = field(default_factory=list)
    rule: Optional[str] = None


class RowShape:
    """Numeric view of the first data row of a headerless file"""

    def __init__(self, values: List[str], transformer: DataTransformer):
        self.values = values
        self.transformer = transformer

    def __len__(self):
        return len(self.values)

    def is_empty(self, index: int) -> bool:
        return index >= len(self.values) or not self.values[index].strip()

    def is_numeric(self, index: int) -> bool:
        return not self.is_empty(index) and self.transformer.is_numeric(self.values[index])

    def value(self, index: int) -> Decimal:
        return self.transformer.normalize_amount(self.values[index])


@dataclass(frozen=True)
class LayoutRule:
    """Named positional layout for headerless files.

    ``roles`` lists the column names for the leading positions; remaining
    positions are named ``Column N`` and ignored.
    """
    name: str
    applies: Callable[[RowShape, Decimal], bool]
    roles: tuple


def _one_side_populated(shape: RowShape) -> bool:
    populated = [i for i in (2, 3) if not shape.is_empty(i)]
    return len(populated) == 1 and shape.is_numeric(populated[0])


def _balance_follows_amount(shape: RowShape, threshold: Decimal) -> bool:
    if not (shape.is_numeric(2) and shape.is_numeric(3)):
        return False
    amount, balance = shape.value(2), shape.value(3)
    return balance > threshold and amount < balance


HEADERLESS_RULES = (
    LayoutRule(
        name='five_plus_debit_credit_balance',
        applies=lambda shape, threshold: len(shape) >= 5 and shape.is_numeric(4),
        roles=('Date', 'Description', 'Debit', 'Credit', 'Balance'),
    ),
    LayoutRule(
        name='five_plus_debit_credit',
        applies=lambda shape, threshold: len(shape) >= 5,
        roles=('Date', 'Description', 'Debit', 'Credit'),
    ),
    LayoutRule(
        name='four_debit_credit',
        applies=lambda shape, threshold: len(shape) == 4 and _one_side_populated(shape),
        roles=('Date', 'Description', 'Debit', 'Credit'),
    ),
    LayoutRule(
        name='four_amount_balance',
        applies=lambda shape, threshold: len(shape) == 4 and _balance_follows_amount(shape, threshold),
        roles=('Date', 'Description', 'Amount', 'Balance'),
    ),
    # Debit/credit is the more common four-column headerless layout
    LayoutRule(
        name='four_default_debit_credit',
        applies=lambda shape, threshold: len(shape) == 4,
        roles=('Date', 'Description', 'Debit', 'Credit'),
    ),
    LayoutRule(
        name='three_amount',
        applies=lambda shape, threshold: len(shape) == 3,
        roles=('Date', 'Description', 'Amount'),
    ),
)


def looks_like_date(value: str) -> bool:
    value = value.strip()
    return any(pattern.match(value) for pattern in DATE_LIKE_PATTERNS)


class FormatDetector:
    """Detects header presence, bank format and column mapping"""

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()
        self.transformer = DataTransformer(self.config)

    def detect(self, first_line: str, file_path: Optional[str] = None) -> DetectionResult:
        """Resolve the structure of a statement from its first non-empty line.

        Args:
            first_line: First non-empty line of the file
            file_path: Used for error context only

        Returns:
            DetectionResult describing header presence and column roles

        Raises:
            StatementParseError: If no usable column mapping can be found
        """
        values = split_csv_line(first_line)

        if self.looks_like_header(first_line, values):
            logger.debug(f"Header row detected: {values}")
            bank_format = self.detect_bank_format(values)
            mapping = self.get_column_mapping(bank_format, values)
            if mapping is None:
                raise StatementParseError(
                    "Could not map CSV columns: date, description and amount/debit columns are required",
                    "MISSING_REQUIRED_COLUMNS",
                    file_path=file_path,
                    line_number=1
                )
            return DetectionResult(
                has_header=True,
                bank_format=bank_format,
                mapping=mapping,
                headers=values,
            )

        logger.debug("No header row, inferring structure from first data row")
        return self.detect_column_structure(values, file_path)

    def looks_like_header(self, line: str, values: Optional[List[str]] = None) -> bool:
        """Whether a line reads as a header row.

        A header must not start with a date, must not carry a long second
        field (a real description) and must contain a header keyword.
        """
        if values is None:
            values = split_csv_line(line)

        if values and looks_like_date(values[0]):
            return False

        if len(values) > 1 and len(values[1]) > self.config.long_field_length:
            return False

        lower_line = line.lower()
        return any(keyword in lower_line for keyword in HEADER_KEYWORDS)

    def detect_bank_format(self, headers: List[str]) -> BankFormat:
        """Match header labels against known bank layouts.

        All labels of a candidate sequence must be present, in any order.
        The first matching format wins; otherwise the format is generic.
        """
        normalized_headers = {h.strip().lower() for h in headers}

        for bank_format, spec in BANK_FORMATS.items():
            if bank_format is BankFormat.GENERIC:
                continue

            for candidate in spec.headers:
                if all(label.lower() in normalized_headers for label in candidate):
                    logger.info(f"Detected bank format: {bank_format.value}")
                    return bank_format

        logger.info("No known bank format detected, using generic")
        return BankFormat.GENERIC

    def get_column_mapping(self, bank_format: BankFormat, headers: List[str]) -> Optional[ColumnMapping]:
        """Resolve column roles for a header row.

        Returns:
            ColumnMapping, or None if date, description or every amount
            column is missing
        """
        if bank_format is not BankFormat.GENERIC:
            mapping = self._map_known_format(BANK_FORMATS[bank_format], headers)
            if mapping is not None:
                logger.info(f"Using column mapping: {mapping}")
                return mapping
            logger.warning(f"Headers do not fit {bank_format.value} layout, falling back to generic")

        mapping = self._map_generic(headers)
        if mapping is None:
            logger.error(f"Could not auto-detect required columns from headers: {headers}")
        else:
            logger.info(f"Using column mapping: {mapping}")
        return mapping

    def _map_known_format(self, spec: BankFormatSpec, headers: List[str]) -> Optional[ColumnMapping]:
        date_col = self._find_header(headers, ['date'])
        desc_col = self._find_header(headers, ['description'])
        balance_col = self._find_header(headers, ['balance'])

        if not date_col or not desc_col:
            return None

        if spec.amount_column == 'debit_credit':
            debit_col = self._find_header(headers, ['debit'])
            credit_col = self._find_header(headers, ['credit'])
            if not debit_col:
                return None
            return ColumnMapping(date=date_col, description=desc_col, debit=debit_col,
                                 credit=credit_col, balance=balance_col)

        amount_col = self._find_header(headers, ['amount'])
        if not amount_col:
            return None
        return ColumnMapping(date=date_col, description=desc_col, amount=amount_col,
                             balance=balance_col)

    def _map_generic(self, headers: List[str]) -> Optional[ColumnMapping]:
        found = {
            role: self._find_header(headers, keywords)
            for role, keywords in GENERIC_COLUMN_KEYWORDS.items()
        }

        if not found['date'] or not found['description']:
            return None

        if found['debit'] and found['credit']:
            return ColumnMapping(date=found['date'], description=found['description'],
                                 debit=found['debit'], credit=found['credit'],
                                 balance=found['balance'])
        if found['amount']:
            return ColumnMapping(date=found['date'], description=found['description'],
                                 amount=found['amount'], balance=found['balance'])
        if found['debit']:
            return ColumnMapping(date=found['date'], description=found['description'],
                                 debit=found['debit'], balance=found['balance'])
        return None

    @staticmethod
    def _find_header(headers: List[str], keywords: List[str]) -> Optional[str]:
        """First header containing the first keyword that matches anything"""
        normalized = [h.strip().lower() for h in headers]
        for keyword in keywords:
            for index, header in enumerate(normalized):
                if keyword in header:
                    return headers[index]
        return None

    def detect_column_structure(self, values: List[str], file_path: Optional[str] = None) -> DetectionResult:
        """Infer column roles for a headerless file from its first data row.

        Raises:
            StatementParseError: If fewer than three columns are present
        """
        shape = RowShape(values, self.transformer)

        for rule in HEADERLESS_RULES:
            if rule.applies(shape, self.config.balance_threshold):
                headers = list(rule.roles) + [
                    f"Column {index + 1}" for index in range(len(rule.roles), len(values))
                ]
                mapping = self._mapping_from_roles(rule.roles)
                logger.info(f"Headerless layout '{rule.name}' applied: {mapping}")
                return DetectionResult(
                    has_header=False,
                    bank_format=BankFormat.GENERIC,
                    mapping=mapping,
                    headers=headers,
                    rule=rule.name,
                )

        raise StatementParseError(
            "Could not detect CSV column structure. "
            "Please ensure CSV has Date, Description, and Amount columns.",
            "UNDETECTABLE_STRUCTURE",
            file_path=file_path,
            line_number=1
        )

    @staticmethod
    def _mapping_from_roles(roles: tuple) -> ColumnMapping:
        return ColumnMapping(
            date='Date',
            description='Description',
            amount='Amount' if 'Amount' in roles else None,
            debit='Debit' if 'Debit' in roles else None,
            credit='Credit' if 'Credit' in roles else None,
            balance='Balance' if 'Balance' in roles else None,
        )
