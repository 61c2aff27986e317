"""Statement parsers and structure detection"""

from .base import DataTransformer, split_csv_line
from .csv_parser import StatementCSVParser
from .format_detector import BANK_FORMATS, DetectionResult, FormatDetector

__all__ = [
    'DataTransformer',
    'split_csv_line',
    'StatementCSVParser',
    'BANK_FORMATS',
    'DetectionResult',
    'FormatDetector',
]
