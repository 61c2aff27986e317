"""Transaction duplicate detection against stored transactions and cashflows."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from rapidfuzz.distance import Levenshtein

from ..models.core import Cashflow, ImportConfig, Transaction


logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3


@dataclass
class DuplicateCheckResult:
    """Partition of a candidate batch.

    ``cashflow_matches`` maps transaction ids to the recurring cashflow they
    likely belong to. It never affects the duplicate verdict.
    """
    duplicates: List[Transaction] = field(default_factory=list)
    unique: List[Transaction] = field(default_factory=list)
    cashflow_matches: Dict[str, Cashflow] = field(default_factory=dict)


def _tokens(text: str) -> List[str]:
    return [word for word in text.split() if len(word) >= MIN_TOKEN_LENGTH]


def calculate_similarity(first: str, second: str) -> float:
    """Description similarity in [0, 1].

    Word based when both sides have tokens longer than two characters: the
    share of the shorter description's tokens found in the other (equal or
    substring either way). Otherwise normalized Levenshtein similarity.
    """
    first = (first or '').lower()
    second = (second or '').lower()

    if first == second:
        return 1.0
    if not first or not second:
        return 0.0

    first_tokens = _tokens(first)
    second_tokens = _tokens(second)

    if first_tokens and second_tokens:
        if len(first_tokens) <= len(second_tokens):
            shorter, longer = first_tokens, second_tokens
        else:
            shorter, longer = second_tokens, first_tokens

        matches = sum(
            1 for word in shorter
            if any(word == other or word in other or other in word for other in longer)
        )
        return matches / len(shorter)

    max_length = max(len(first), len(second))
    return 1.0 - Levenshtein.distance(first, second) / max_length


class DuplicateDetector:
    """Detects transactions that are already known"""

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()
        self.amount_tolerance = self.config.amount_tolerance
        self.similarity_threshold = self.config.similarity_threshold
        self.cashflow_tolerance = Decimal(str(self.config.cashflow_tolerance))

    def is_duplicate(self, candidate: Transaction, existing: List[Transaction],
                     cashflows: Optional[List[Cashflow]] = None) -> bool:
        """Whether a candidate matches an existing transaction.

        Exact fingerprint equality first, then fuzzy matching on same date,
        amount within tolerance and description similarity. Cashflows are
        accepted for interface symmetry but never change the verdict.
        """
        if any(tx.fingerprint == candidate.fingerprint for tx in existing):
            logger.debug(f"Exact fingerprint duplicate: {candidate.fingerprint}")
            return True

        similar = self.find_similar_transactions(candidate, existing)
        if similar:
            logger.debug(f"Fuzzy duplicate of {similar[0].id}: {candidate.description[:40]}")
            return True

        return False

    def find_similar_transactions(self, candidate: Transaction,
                                  existing: List[Transaction]) -> List[Transaction]:
        """Existing transactions on the same date with a close amount and description"""
        return [
            tx for tx in existing
            if tx.date == candidate.date
            and abs(tx.amount - candidate.amount) <= self.amount_tolerance
            and calculate_similarity(candidate.description, tx.description) > self.similarity_threshold
        ]

    def calculate_similarity(self, first: str, second: str) -> float:
        return calculate_similarity(first, second)

    def find_matching_cashflow(self, candidate: Transaction,
                               cashflows: List[Cashflow]) -> Optional[Cashflow]:
        """First cashflow whose name overlaps the description and whose amount is within tolerance"""
        description = candidate.description.lower()

        for cashflow in cashflows:
            if cashflow.amount == 0:
                continue

            name = cashflow.name.lower()
            if not name or not (name in description or description in name):
                continue

            difference = abs(candidate.amount - cashflow.amount) / abs(cashflow.amount)
            if difference < self.cashflow_tolerance:
                return cashflow

        return None

    def find_duplicates(self, batch: List[Transaction], existing: List[Transaction],
                        cashflows: Optional[List[Cashflow]] = None) -> DuplicateCheckResult:
        """Partition a batch into duplicates and unique transactions.

        Every candidate is checked against ``existing`` only; batch members
        are never compared with each other.
        """
        cashflows = cashflows or []
        result = DuplicateCheckResult()

        for candidate in batch:
            if self.is_duplicate(candidate, existing, cashflows):
                result.duplicates.append(candidate)
                continue

            result.unique.append(candidate)
            cashflow = self.find_matching_cashflow(candidate, cashflows)
            if cashflow is not None:
                result.cashflow_matches[candidate.id] = cashflow

        logger.info(f"Duplicate check: {len(result.unique)} unique, {len(result.duplicates)} duplicates")
        return result
