"""Field-level parsing helpers shared by statement parsers."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from ..models.core import ImportConfig


MMDDYYYY_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
ISO_DATETIME_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2})T\d{2}:\d{2}(:\d{2})?')
CURRENCY_NOISE_PATTERN = re.compile(r'[\$£€¥,\s]')


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line into trimmed fields.

    Scans character by character so commas inside double quotes stay part of
    the field. Quote characters themselves are dropped and a trailing empty
    field is preserved.
    """
    values = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            values.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    values.append(''.join(current).strip())
    return values


class DataTransformer:
    """Converts raw statement fields to typed values"""

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()

    def normalize_date(self, date_str: str) -> str:
        """Convert a raw date string to ISO ``YYYY-MM-DD``.

        ``MM/DD/YYYY`` is handled before the generic formats so that
        month and day are never swapped.

        Raises:
            ValueError: If the string matches none of the supported formats
        """
        if not date_str or not str(date_str).strip():
            raise ValueError("Date string cannot be empty")

        date_str = str(date_str).strip()

        match = MMDDYYYY_PATTERN.match(date_str)
        if match:
            month, day, year = (int(part) for part in match.groups())
            return date(year, month, day).isoformat()

        for fmt in self.config.date_formats:
            try:
                return datetime.strptime(date_str, fmt).date().isoformat()
            except ValueError:
                continue

        # "2024-01-15T00:00:00" and similar ISO timestamps
        iso_match = ISO_DATETIME_PATTERN.match(date_str)
        if iso_match:
            return datetime.strptime(iso_match.group(1), "%Y-%m-%d").date().isoformat()

        raise ValueError(f"Unable to parse date: {date_str}")

    def normalize_amount(self, amount_str: str) -> Decimal:
        """Convert a raw amount string to a signed Decimal rounded to cents.

        Currency symbols, thousands separators and whitespace are stripped;
        a value wrapped in parentheses is negative.

        Raises:
            ValueError: If the string holds no parseable number
        """
        if amount_str is None or str(amount_str).strip() == '':
            raise ValueError("Amount string cannot be empty")

        cleaned = CURRENCY_NOISE_PATTERN.sub('', str(amount_str))

        is_negative = False
        if cleaned.startswith('(') and cleaned.endswith(')'):
            cleaned = cleaned[1:-1]
            is_negative = True

        try:
            amount = Decimal(cleaned)
        except InvalidOperation as e:
            raise ValueError(f"Unable to parse amount: {amount_str}") from e

        if not amount.is_finite():
            raise ValueError(f"Unable to parse amount: {amount_str}")

        if is_negative:
            amount = -abs(amount)

        try:
            return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise ValueError(f"Amount out of range: {amount_str}") from e

    def is_numeric(self, value: str) -> bool:
        """Whether a raw field holds a parseable amount"""
        if not value or not value.strip():
            return False
        try:
            self.normalize_amount(value)
            return True
        except ValueError:
            return False

    def clean_description(self, description: str) -> str:
        if not description:
            return ""
        return str(description).strip()
