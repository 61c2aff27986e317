"""Transaction direction detection for single-amount statement layouts.

Single-amount exports disagree on what a negative number means. Bank
accounts usually write spending as negative (``banking`` convention) while
credit card exports write spending as positive (``credit_card``). The
detector classifies rows by description keywords, reports the file's likely
convention and resolves each row's debit/credit direction. Signs are only
inverted when the ``credit_card`` convention is configured.
"""

import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Tuple


logger = logging.getLogger(__name__)

SIGN_CONVENTIONS = ('auto', 'banking', 'credit_card')


class TransactionSignDetector:
    """Infers a file's sign convention and resolves row direction"""

    # Keywords that indicate spending/debit transactions
    SPENDING_KEYWORDS = {
        'purchase', 'fee', 'interest', 'charge', 'penalty', 'late',
        'withdrawal', 'atm', 'pos', 'debit', 'bill', 'subscription', 'grocery',
        'restaurant', 'gas', 'fuel', 'shopping', 'store', 'market', 'pharmacy',
        'medical', 'insurance', 'rent', 'mortgage', 'loan', 'tax', 'fine',
        'coffee', 'cafe'
    }

    # Keywords that indicate income/credit transactions
    INCOME_KEYWORDS = {
        'deposit', 'credit', 'refund', 'return', 'cashback', 'reward', 'rebate',
        'salary', 'payroll', 'dividend', 'interest earned', 'bonus', 'transfer in',
        'incoming', 'received', 'thank you', 'adjustment credit', 'reversal'
    }

    # Unambiguous income markers; a negative amount carrying one is still a credit
    DIRECT_INCOME_KEYWORDS = {
        'payroll', 'salary', 'deposit', 'dividend', 'refund', 'cashback', 'rebate'
    }

    TRANSFER_OUT_KEYWORDS = {
        'transfer to', 'transfer out', 'outgoing transfer', 'wire out', 'send',
        'transfer debit'
    }

    TRANSFER_IN_KEYWORDS = {
        'transfer from', 'transfer in', 'incoming transfer', 'wire in', 'receive',
        'transfer credit', 'deposit from'
    }

    MIN_SAMPLE_SIZE = 3
    CREDIT_CARD_HINT_CONFIDENCE = 0.5

    def __init__(self, sign_convention: str = 'auto'):
        if sign_convention not in SIGN_CONVENTIONS:
            raise ValueError(
                f"Invalid sign convention '{sign_convention}', "
                f"expected one of {', '.join(SIGN_CONVENTIONS)}"
            )
        self.sign_convention = sign_convention

    def analyze_file_sign_convention(self, rows: List[Tuple[str, Decimal]]) -> Dict[str, Any]:
        """Analyze a file's signed amounts to determine the convention used.

        Args:
            rows: (description, signed amount) pairs from a single file

        Returns:
            Dict containing:
            - convention: 'banking', 'credit_card', 'mixed' or 'unknown'
            - confidence: float 0-1
            - spending_positive_ratio / income_positive_ratio
            - total_transactions, spending_count, income_count
        """
        if self.sign_convention != 'auto':
            return {
                'convention': self.sign_convention,
                'confidence': 1.0,
                'spending_positive_ratio': 0.0,
                'income_positive_ratio': 0.0,
                'total_transactions': len(rows),
                'spending_count': 0,
                'income_count': 0
            }

        spending_amounts = []
        income_amounts = []

        for description, amount in rows:
            transaction_type = self.classify_description(description)

            if transaction_type == 'spending':
                spending_amounts.append(amount)
            elif transaction_type == 'income':
                income_amounts.append(amount)

        spending_positive_ratio = 0.0
        if spending_amounts:
            spending_positive_ratio = sum(1 for amt in spending_amounts if amt > 0) / len(spending_amounts)

        income_positive_ratio = 0.0
        if income_amounts:
            income_positive_ratio = sum(1 for amt in income_amounts if amt > 0) / len(income_amounts)

        convention, confidence = self._determine_convention(
            spending_positive_ratio, income_positive_ratio,
            len(spending_amounts), len(income_amounts)
        )

        analysis = {
            'convention': convention,
            'confidence': confidence,
            'spending_positive_ratio': spending_positive_ratio,
            'income_positive_ratio': income_positive_ratio,
            'total_transactions': len(rows),
            'spending_count': len(spending_amounts),
            'income_count': len(income_amounts)
        }
        logger.info(f"Sign analysis: {analysis}")
        if convention == 'credit_card' and confidence >= self.CREDIT_CARD_HINT_CONFIDENCE:
            logger.warning("Amounts look like a credit card export (spending positive); "
                           "set sign_convention: credit_card to invert signs")
        return analysis

    def classify_description(self, description: str) -> str:
        """Classify a description as spending, income, transfer_out, transfer_in or unknown"""
        if not description:
            return 'unknown'

        desc_lower = description.lower()

        # Transfer keywords are more specific
        for keyword in self.TRANSFER_OUT_KEYWORDS:
            if keyword in desc_lower:
                return 'transfer_out'

        for keyword in self.TRANSFER_IN_KEYWORDS:
            if keyword in desc_lower:
                return 'transfer_in'

        for keyword in self.INCOME_KEYWORDS:
            if keyword in desc_lower:
                return 'income'

        if self.has_spending_keyword(description):
            return 'spending'

        return 'unknown'

    def _determine_convention(self, spending_positive_ratio: float, income_positive_ratio: float,
                              spending_count: int, income_count: int) -> Tuple[str, float]:
        """Determine the sign convention from spending/income ratios"""
        total_classified = spending_count + income_count

        if total_classified < self.MIN_SAMPLE_SIZE:
            return 'unknown', 0.0

        # Strong indicators
        if (spending_positive_ratio <= 0.2 and income_positive_ratio >= 0.8 and
                spending_count >= 2 and income_count >= 1):
            return 'banking', min(0.9, 0.4 + (total_classified / 15))

        if (spending_positive_ratio >= 0.8 and income_positive_ratio <= 0.2 and
                spending_count >= 2 and income_count >= 1):
            return 'credit_card', min(0.9, 0.4 + (total_classified / 15))

        # Moderate indicators
        if spending_positive_ratio <= 0.3 and income_positive_ratio >= 0.6:
            return 'banking', min(0.7, 0.3 + (total_classified / 20))

        if spending_positive_ratio >= 0.7 and income_positive_ratio <= 0.4:
            return 'credit_card', min(0.7, 0.3 + (total_classified / 20))

        if abs(spending_positive_ratio - 0.5) < 0.3 or abs(income_positive_ratio - 0.5) < 0.3:
            return 'mixed', 0.2

        return 'unknown', 0.1

    def has_spending_keyword(self, description: str) -> bool:
        desc_lower = (description or '').lower()
        for keyword in self.SPENDING_KEYWORDS:
            if len(keyword) <= 3:
                # Word boundaries for short keywords like 'pos', 'atm', 'fee'
                if re.search(r'\b' + re.escape(keyword) + r'\b', desc_lower):
                    return True
            elif keyword in desc_lower:
                return True
        return False

    def has_income_keyword(self, description: str) -> bool:
        """Whether a description is unambiguous income.

        A direct income keyword must appear as a whole word, the description
        must classify as income and no spending keyword may be present.
        """
        desc_lower = (description or '').lower()
        if not any(re.search(r'\b' + re.escape(keyword) + r'\b', desc_lower)
                   for keyword in self.DIRECT_INCOME_KEYWORDS):
            return False
        return self.classify_description(description) == 'income' and not self.has_spending_keyword(description)

    def resolve_direction(self, amount: Decimal, description: str) -> bool:
        """Return ``is_debit`` for a signed single-column amount.

        Negative amounts are debits and positive amounts credits. In auto
        mode a negative amount on an unambiguous income row is a credit.
        Only the explicit ``credit_card`` convention inverts the sign.
        """
        if self.sign_convention == 'credit_card':
            return amount > 0

        if amount < 0:
            if self.sign_convention == 'auto' and self.has_income_keyword(description):
                logger.debug(f"Negative amount treated as credit for income row: {description[:50]}")
                return False
            return True

        return False
