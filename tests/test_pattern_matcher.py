"""Tests for pattern matching and keyword extraction."""

from decimal import Decimal

from household_budget.models.core import AmountRange, Transaction, TransactionPattern
from household_budget.utils.fingerprint import generate_fingerprint
from household_budget.utils.pattern_matcher import (
    PatternMatcher,
    create_pattern_from_transaction,
    extract_keywords,
    update_pattern_confidence,
)


def make_transaction(description, amount='10.00', is_debit=True):
    amount = Decimal(amount)
    return Transaction(
        id='tx-1',
        household_id='house-1',
        date='2024-01-15',
        description=description,
        amount=amount,
        is_debit=is_debit,
        type='expense' if is_debit else 'income',
        fingerprint=generate_fingerprint('2024-01-15', amount, description),
    )


def make_pattern(keywords, confidence=60, is_debit=True, amount_range=None, pattern_id='p-1',
                 category='Coffee', rejected=False):
    return TransactionPattern(
        id=pattern_id,
        household_id='house-1',
        description_keywords=keywords,
        is_debit=is_debit,
        type='expense' if is_debit else 'income',
        category=category,
        amount_range=amount_range,
        confidence=confidence,
        user_rejected=rejected,
    )


class TestPatternMatcher:
    """Test cases for PatternMatcher"""

    def setup_method(self):
        self.matcher = PatternMatcher()

    def test_all_keywords_bonus(self):
        tx = make_transaction('STARBUCKS #4521 MONTREAL')
        matches = self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'], confidence=60)])

        assert len(matches) == 1
        assert matches[0].confidence == 80
        assert matches[0].matched_keywords == ['STARBUCKS']
        assert matches[0].reason == 'All keywords matched: STARBUCKS'

    def test_bonus_is_capped(self):
        tx = make_transaction('STARBUCKS')
        matches = self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'], confidence=95)])
        assert matches[0].confidence == 100

    def test_keyword_matching_is_case_insensitive(self):
        tx = make_transaction('Starbucks Montreal')
        matches = self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'])])
        assert len(matches) == 1

    def test_partial_match_scales_confidence(self):
        tx = make_transaction('NETFLIX.COM')
        matches = self.matcher.find_matching_patterns(tx, [make_pattern(['NETFLIX', 'STREAM'], confidence=60)])

        assert matches[0].confidence == 45
        assert matches[0].reason == 'Partial match: 1 of 2 keywords (NETFLIX)'

    def test_direction_mismatch_is_excluded(self):
        tx = make_transaction('STARBUCKS', is_debit=False)
        assert self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'], is_debit=True)]) == []

    def test_rejected_pattern_is_excluded(self):
        tx = make_transaction('STARBUCKS')
        assert self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'], rejected=True)]) == []

    def test_no_keyword_hit_is_excluded(self):
        tx = make_transaction('TIM HORTONS')
        assert self.matcher.find_matching_patterns(tx, [make_pattern(['STARBUCKS'])]) == []

    def test_amount_at_range_midpoint_keeps_confidence(self):
        pattern = make_pattern(['GROCERY'], confidence=50,
                               amount_range=AmountRange(min=Decimal('10'), max=Decimal('20')))
        matches = self.matcher.find_matching_patterns(make_transaction('GROCERY STORE', '15.00'), [pattern])
        assert matches[0].confidence == 70

    def test_amount_far_from_range_reduces_confidence(self):
        pattern = make_pattern(['GROCERY'], confidence=50,
                               amount_range=AmountRange(min=Decimal('10'), max=Decimal('20')))
        matches = self.matcher.find_matching_patterns(make_transaction('GROCERY STORE', '40.00'), [pattern])
        assert matches[0].confidence == 63

    def test_degenerate_amount_range_is_ignored(self):
        pattern = make_pattern(['GROCERY'], confidence=50,
                               amount_range=AmountRange(min=Decimal('0'), max=Decimal('0')))
        matches = self.matcher.find_matching_patterns(make_transaction('GROCERY STORE', '40.00'), [pattern])
        assert matches[0].confidence == 70

    def test_confidence_stays_in_bounds(self):
        tx = make_transaction('STARBUCKS COFFEE', '1000.00')
        patterns = [
            make_pattern(['STARBUCKS'], confidence=100, pattern_id='high'),
            make_pattern(['STARBUCKS', 'LATTE', 'MUG', 'BEANS'], confidence=0, pattern_id='low'),
            make_pattern(['COFFEE'], confidence=1, pattern_id='range',
                         amount_range=AmountRange(min=Decimal('1'), max=Decimal('2'))),
        ]

        for match in self.matcher.find_matching_patterns(tx, patterns):
            assert 0 <= match.confidence <= 100

    def test_results_sorted_by_confidence(self):
        tx = make_transaction('STARBUCKS MONTREAL')
        patterns = [
            make_pattern(['STARBUCKS'], confidence=40, pattern_id='low'),
            make_pattern(['STARBUCKS'], confidence=90, pattern_id='high'),
        ]

        matches = self.matcher.find_matching_patterns(tx, patterns)

        assert [m.pattern.id for m in matches] == ['high', 'low']
        assert [m.confidence for m in matches] == [100, 60]

    def test_best_match(self):
        tx = make_transaction('STARBUCKS')
        assert self.matcher.best_match(tx, []) is None
        assert self.matcher.best_match(tx, [make_pattern(['STARBUCKS'])]).pattern.id == 'p-1'


class TestPatternHelpers:
    """Test cases for keyword extraction and pattern creation"""

    def test_extract_keywords(self):
        assert extract_keywords('THE STARBUCKS #4521 MONTREAL QC') == ['STARBUCKS', 'MONTREAL']

    def test_extract_keywords_deduplicates_and_uppercases(self):
        assert extract_keywords('Starbucks starbucks coffee') == ['STARBUCKS', 'COFFEE']

    def test_extract_keywords_splits_punctuation(self):
        assert extract_keywords('NETFLIX.COM/BILL') == ['NETFLIX', 'COM', 'BILL']

    def test_extract_keywords_empty(self):
        assert extract_keywords('#12 34 of') == []

    def test_create_pattern_from_transaction(self):
        tx = make_transaction('STARBUCKS #4521 MONTREAL', '10.00')

        pattern = create_pattern_from_transaction(tx, 'expense', 'Coffee', owner='alex')

        assert pattern.description_keywords == ['STARBUCKS', 'MONTREAL']
        assert pattern.amount_range.min == Decimal('5')
        assert pattern.amount_range.max == Decimal('20')
        assert pattern.confidence == 50
        assert pattern.match_count == 0
        assert pattern.is_debit is True
        assert pattern.owner == 'alex'
        assert pattern.household_id == 'house-1'
        assert not pattern.user_confirmed
        assert not pattern.user_rejected

    def test_create_pattern_without_amount(self):
        pattern = create_pattern_from_transaction(make_transaction('ADJUSTMENT', '0.00'), 'expense', 'Fees')
        assert pattern.amount_range is None

    def test_update_pattern_confidence(self):
        pattern = make_pattern(['STARBUCKS'], confidence=98)

        raised = update_pattern_confidence(pattern, True)
        lowered = update_pattern_confidence(make_pattern(['STARBUCKS'], confidence=5), False)

        assert raised.confidence == 100
        assert raised.match_count == 1
        assert lowered.confidence == 0
        assert pattern.confidence == 98
        assert pattern.match_count == 0
