"""Stable identity strings for exact-duplicate detection."""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

NON_ALPHANUMERIC_PATTERN = re.compile(r'[^A-Z0-9]')
DESCRIPTION_PREFIX_LENGTH = 20


def format_amount(amount: Union[Decimal, int, float, str]) -> str:
    """Round to cents and drop trailing zeros ("4.50" -> "4.5", "100.00" -> "100")"""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    value = value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    if value == 0:
        return "0"
    return format(value.normalize(), 'f')


def normalize_description(description: str) -> str:
    """Uppercase alphanumerics only, truncated to the fingerprint prefix length"""
    cleaned = NON_ALPHANUMERIC_PATTERN.sub('', (description or '').upper())
    return cleaned[:DESCRIPTION_PREFIX_LENGTH]


def generate_fingerprint(date: str, amount: Union[Decimal, int, float, str], description: str) -> str:
    """Build ``date-amount-DESCRIPTION`` for a transaction.

    Two transactions with the same date, the same amount to the cent and the
    same leading 20 normalized description characters share a fingerprint.
    """
    return f"{date}-{format_amount(amount)}-{normalize_description(description)}"
