"""Utility functions and helpers"""

from .config_manager import ConfigManager
from .duplicate_detector import DuplicateDetector, DuplicateCheckResult, calculate_similarity
from .error_handler import ErrorHandler, ErrorCategory, ErrorSeverity, StatementParseError
from .fingerprint import generate_fingerprint
from .pattern_learner import PatternLearner
from .pattern_matcher import PatternMatcher, extract_keywords
from .sign_detector import TransactionSignDetector

__all__ = [
    'ConfigManager',
    'DuplicateDetector',
    'DuplicateCheckResult',
    'calculate_similarity',
    'ErrorHandler',
    'ErrorCategory',
    'ErrorSeverity',
    'StatementParseError',
    'generate_fingerprint',
    'PatternLearner',
    'PatternMatcher',
    'extract_keywords',
    'TransactionSignDetector',
]
