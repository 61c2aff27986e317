"""CSV export and summary statistics for imported transactions."""

import logging
import os
from typing import Any, Dict, List

import pandas as pd

from ..models.core import Transaction


logger = logging.getLogger(__name__)


class CSVWriter:
    """Writes canonical transactions to CSV"""

    STANDARD_HEADERS = [
        'id',
        'date',
        'description',
        'amount',
        'is_debit',
        'type',
        'category',
        'owner',
        'source_file',
        'fingerprint',
    ]

    def to_dataframe(self, transactions: List[Transaction]) -> pd.DataFrame:
        rows = [self._transaction_to_dict(tx) for tx in transactions]
        return pd.DataFrame(rows, columns=self.STANDARD_HEADERS)

    def write_transactions(self, transactions: List[Transaction], output_path: str) -> int:
        """Write transactions to a CSV file sorted by date.

        Returns:
            Number of rows written
        """
        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        df = self.to_dataframe(transactions)
        df = df.sort_values('date', kind='stable').reset_index(drop=True)
        df.to_csv(output_path, index=False)

        logger.info(f"Saved {len(df)} transactions to {output_path}")
        return len(df)

    def summarize(self, transactions: List[Transaction]) -> Dict[str, Any]:
        """Totals by type and category plus the covered date range"""
        if not transactions:
            return {
                'total_transactions': 0,
                'date_range': None,
                'by_type': {},
                'by_category': {},
                'total_spending': 0.0,
                'total_income': 0.0,
                'net_amount': 0.0,
            }

        df = self.to_dataframe(transactions)
        df['amount'] = pd.to_numeric(df['amount'])
        df['category'] = df['category'].fillna('uncategorized')
        signed = df['amount'].where(~df['is_debit'], -df['amount'])

        stats = {
            'total_transactions': len(df),
            'date_range': {
                'start': df['date'].min(),
                'end': df['date'].max(),
            },
            'by_type': df.groupby('type')['amount'].sum().round(2).to_dict(),
            'by_category': df.groupby('category')['amount'].sum().round(2).to_dict(),
            'total_spending': round(float(df.loc[df['is_debit'], 'amount'].sum()), 2),
            'total_income': round(float(df.loc[~df['is_debit'], 'amount'].sum()), 2),
            'net_amount': round(float(signed.sum()), 2),
        }

        logger.info(f"Total transactions: {stats['total_transactions']:,}")
        logger.info(f"Total spending: ${stats['total_spending']:,.2f}")
        logger.info(f"Total income: ${stats['total_income']:,.2f}")
        return stats

    @staticmethod
    def _transaction_to_dict(transaction: Transaction) -> Dict[str, Any]:
        return {
            'id': transaction.id,
            'date': transaction.date,
            'description': transaction.description,
            'amount': str(transaction.amount),
            'is_debit': transaction.is_debit,
            'type': transaction.type,
            'category': transaction.category,
            'owner': transaction.owner,
            'source_file': transaction.source_file,
            'fingerprint': transaction.fingerprint,
        }
