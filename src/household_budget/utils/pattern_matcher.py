"""Scoring transactions against learned classification patterns."""

import logging
import math
import re
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from ..models.core import (
    AmountRange, PatternMatch, Transaction, TransactionPattern, generate_id, utc_timestamp,
)


logger = logging.getLogger(__name__)

STOPWORDS = {
    'THE', 'A', 'AN', 'AND', 'OR', 'BUT', 'IN', 'ON', 'AT', 'TO', 'FOR', 'OF',
    'WITH', 'BY', 'FROM', 'AS', 'IS', 'WAS', 'BE', 'BEEN', 'BEING', 'HAVE',
    'HAS', 'HAD', 'DO', 'DOES', 'DID', 'WILL', 'WOULD', 'SHOULD', 'COULD',
    'MAY', 'MIGHT', 'MUST', 'CAN', 'CANT', 'CANNOT'
}

NON_WORD_PATTERN = re.compile(r'[^A-Z0-9\s]')

ALL_MATCH_BONUS = 20
CONFIRM_STEP = 5
REJECT_STEP = 10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def extract_keywords(description: str) -> List[str]:
    """Uppercase keywords of a description.

    Punctuation becomes whitespace; tokens of two characters or fewer,
    all-digit tokens and stopwords are dropped. Order is kept and
    duplicates removed.
    """
    cleaned = NON_WORD_PATTERN.sub(' ', (description or '').upper())

    keywords = []
    for word in cleaned.split():
        if len(word) <= 2 or word.isdigit() or word in STOPWORDS:
            continue
        if word not in keywords:
            keywords.append(word)
    return keywords


def create_pattern_from_transaction(transaction: Transaction, type: str, category: str,
                                    owner: Optional[str] = None,
                                    household_id: Optional[str] = None) -> TransactionPattern:
    """New pattern at confidence 50 from a classified transaction"""
    amount_range = None
    if transaction.amount > 0:
        amount_range = AmountRange(
            min=transaction.amount * Decimal('0.5'),
            max=transaction.amount * Decimal('2.0'),
        )

    return TransactionPattern(
        id=generate_id(),
        household_id=household_id or transaction.household_id,
        description_keywords=extract_keywords(transaction.description),
        is_debit=transaction.is_debit,
        type=type,
        category=category,
        amount_range=amount_range,
        owner=owner,
        confidence=50,
        match_count=0,
        user_confirmed=False,
        user_rejected=False,
    )


def update_pattern_confidence(pattern: TransactionPattern, was_correct: bool) -> TransactionPattern:
    """Reinforce (+5, capped at 100) or weaken (-10, floored at 0) a pattern"""
    if was_correct:
        confidence = min(100, pattern.confidence + CONFIRM_STEP)
    else:
        confidence = max(0, pattern.confidence - REJECT_STEP)

    return replace(
        pattern,
        confidence=confidence,
        match_count=pattern.match_count + 1,
        last_used=utc_timestamp(),
    )


class PatternMatcher:
    """Ranks catalog patterns for a transaction"""

    def find_matching_patterns(self, transaction: Transaction,
                               patterns: List[TransactionPattern]) -> List[PatternMatch]:
        """Score every eligible pattern, highest confidence first.

        Rejected patterns, patterns for the opposite direction and patterns
        with no keyword found in the description are excluded.
        """
        description = transaction.description.upper()
        matches = []

        for pattern in patterns:
            if pattern.user_rejected:
                continue
            if pattern.is_debit != transaction.is_debit:
                continue

            matched_keywords = [kw for kw in pattern.description_keywords if kw.upper() in description]
            if not matched_keywords:
                continue

            confidence = self.calculate_confidence(pattern, transaction, len(matched_keywords))
            matches.append(PatternMatch(
                pattern=pattern,
                confidence=confidence,
                matched_keywords=matched_keywords,
                reason=self.generate_match_reason(pattern, matched_keywords),
            ))

        matches.sort(key=lambda match: match.confidence, reverse=True)
        logger.debug(f"{len(matches)} pattern matches for '{transaction.description[:40]}'")
        return matches

    def calculate_confidence(self, pattern: TransactionPattern, transaction: Transaction,
                             keyword_matches: int) -> int:
        total = len(pattern.description_keywords)
        confidence = float(pattern.confidence)

        if keyword_matches == total:
            confidence = min(100.0, confidence + ALL_MATCH_BONUS)
        else:
            confidence = confidence * (0.5 + 0.5 * keyword_matches / total)

        amount_range = pattern.amount_range
        if amount_range is not None and amount_range.max - amount_range.min > 0:
            midpoint = (amount_range.min + amount_range.max) / 2
            spread = amount_range.max - amount_range.min
            amount_match = max(0.0, 1.0 - float(abs(transaction.amount - midpoint) / spread))
            confidence = confidence * (0.9 + 0.1 * amount_match)

        return max(0, min(100, round_half_up(confidence)))

    @staticmethod
    def generate_match_reason(pattern: TransactionPattern, matched_keywords: List[str]) -> str:
        total = len(pattern.description_keywords)
        if len(matched_keywords) == total:
            return f"All keywords matched: {', '.join(matched_keywords)}"
        return f"Partial match: {len(matched_keywords)} of {total} keywords ({', '.join(matched_keywords)})"

    def best_match(self, transaction: Transaction,
                   patterns: List[TransactionPattern]) -> Optional[PatternMatch]:
        matches = self.find_matching_patterns(transaction, patterns)
        return matches[0] if matches else None
