"""Pattern catalog updates driven by user classifications and feedback.

All operations take the catalog as an argument and return a new list; the
learner keeps no state between calls. Callers must serialize updates to the
same catalog.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from ..models.core import AmountRange, Transaction, TransactionClassification, TransactionPattern
from .pattern_matcher import (
    create_pattern_from_transaction, extract_keywords, round_half_up, update_pattern_confidence,
)


logger = logging.getLogger(__name__)

FEEDBACK_TYPES = ('correct', 'incorrect', 'partial')
PARTIAL_STEP = 2
MERGE_SIMILARITY_THRESHOLD = 0.5


def _keywords_overlap(first: str, second: str) -> bool:
    return first in second or second in first


def keyword_jaccard(first: List[str], second: List[str]) -> float:
    first_set, second_set = set(first), set(second)
    union = first_set | second_set
    if not union:
        return 0.0
    return len(first_set & second_set) / len(union)


class PatternLearner:
    """Creates, reinforces and merges classification patterns"""

    def learn_from_classification(self, transaction: Transaction,
                                  classification: TransactionClassification,
                                  existing_patterns: List[TransactionPattern],
                                  household_id: Optional[str] = None) -> List[TransactionPattern]:
        """Fold a user classification into the catalog.

        A pattern with the same type and category sharing enough keywords is
        reinforced; otherwise a new pattern is appended. Descriptions without
        usable keywords leave the catalog unchanged.
        """
        keywords = extract_keywords(transaction.description)
        patterns = list(existing_patterns)

        if not keywords:
            logger.warning(f"No keywords in '{transaction.description}', nothing learned")
            return patterns

        required_overlap = min(2, len(keywords) / 2)

        for index, pattern in enumerate(patterns):
            if pattern.type != classification.type or pattern.category != classification.category:
                continue

            overlap = sum(
                1 for keyword in keywords
                if any(_keywords_overlap(keyword, existing) for existing in pattern.description_keywords)
            )
            if overlap >= required_overlap:
                patterns[index] = update_pattern_confidence(pattern, True)
                logger.info(f"Reinforced pattern {pattern.id} ({pattern.category}) "
                            f"to confidence {patterns[index].confidence}")
                return patterns

        new_pattern = create_pattern_from_transaction(
            transaction,
            classification.type,
            classification.category,
            owner=classification.owner,
            household_id=household_id,
        )
        patterns.append(new_pattern)
        logger.info(f"Created pattern {new_pattern.id} for {classification.category}: "
                    f"{new_pattern.description_keywords}")
        return patterns

    def update_pattern_from_feedback(self, pattern_id: str, feedback: str,
                                     patterns: List[TransactionPattern]) -> List[TransactionPattern]:
        """Apply correct/incorrect/partial feedback to one pattern.

        Raises:
            ValueError: If the feedback type is unknown
            KeyError: If no pattern has the given id
        """
        if feedback not in FEEDBACK_TYPES:
            raise ValueError(f"Invalid feedback '{feedback}', expected one of {', '.join(FEEDBACK_TYPES)}")

        for index, pattern in enumerate(patterns):
            if pattern.id != pattern_id:
                continue

            if feedback == 'correct':
                updated = replace(update_pattern_confidence(pattern, True), user_confirmed=True)
            elif feedback == 'incorrect':
                updated = replace(update_pattern_confidence(pattern, False), user_rejected=True)
            else:
                updated = replace(pattern, confidence=min(100, pattern.confidence + PARTIAL_STEP))

            result = list(patterns)
            result[index] = updated
            logger.info(f"Feedback '{feedback}' on pattern {pattern_id}: "
                        f"confidence {pattern.confidence} -> {updated.confidence}")
            return result

        raise KeyError(f"Pattern not found: {pattern_id}")

    @staticmethod
    def are_patterns_similar(first: TransactionPattern, second: TransactionPattern) -> bool:
        if first.type != second.type or first.category != second.category:
            return False
        return keyword_jaccard(first.description_keywords, second.description_keywords) > MERGE_SIMILARITY_THRESHOLD

    @staticmethod
    def merge_patterns(patterns: List[TransactionPattern]) -> TransactionPattern:
        """Combine similar patterns into one, keeping the first pattern's identity"""
        base = patterns[0]

        keywords = []
        for pattern in patterns:
            for keyword in pattern.description_keywords:
                if keyword not in keywords:
                    keywords.append(keyword)

        ranges = [p.amount_range for p in patterns if p.amount_range is not None]
        amount_range = None
        if ranges:
            amount_range = AmountRange(
                min=min(r.min for r in ranges),
                max=max(r.max for r in ranges),
            )

        return replace(
            base,
            description_keywords=keywords,
            amount_range=amount_range,
            confidence=round_half_up(sum(p.confidence for p in patterns) / len(patterns)),
            match_count=sum(p.match_count for p in patterns),
            last_used=max(p.last_used for p in patterns),
            user_confirmed=any(p.user_confirmed for p in patterns),
            user_rejected=all(p.user_rejected for p in patterns),
        )

    def merge_similar_patterns(self, patterns: List[TransactionPattern]) -> List[TransactionPattern]:
        """Greedily merge each pattern with every later pattern similar to it"""
        merged = []
        processed = set()

        for index, pattern in enumerate(patterns):
            if index in processed:
                continue

            group = [pattern]
            processed.add(index)
            for other_index in range(index + 1, len(patterns)):
                if other_index in processed:
                    continue
                if self.are_patterns_similar(pattern, patterns[other_index]):
                    group.append(patterns[other_index])
                    processed.add(other_index)

            if len(group) > 1:
                logger.info(f"Merging {len(group)} patterns into {pattern.id}")
                merged.append(self.merge_patterns(group))
            else:
                merged.append(pattern)

        return merged

    @staticmethod
    def apply_classification(transaction: Transaction,
                             classification: TransactionClassification) -> Transaction:
        """Copy of the transaction with the classification's type, category and owner"""
        return replace(
            transaction,
            type=classification.type,
            category=classification.category,
            owner=classification.owner if classification.owner is not None else transaction.owner,
        )
