"""Data models and structures"""

from .core import (
    AmountRange,
    BankFormat,
    BankFormatSpec,
    BatchImportResult,
    Cashflow,
    ColumnMapping,
    FileImportResult,
    ImportConfig,
    PatternMatch,
    Transaction,
    TransactionClassification,
    TransactionPattern,
)

__all__ = [
    'AmountRange',
    'BankFormat',
    'BankFormatSpec',
    'BatchImportResult',
    'Cashflow',
    'ColumnMapping',
    'FileImportResult',
    'ImportConfig',
    'PatternMatch',
    'Transaction',
    'TransactionClassification',
    'TransactionPattern',
]
