"""Core data models for the statement import pipeline."""

import secrets
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple


TRANSACTION_TYPES = ('income', 'expense', 'transfer', 'unclassified')
CLASSIFICATION_TYPES = ('income', 'expense', 'transfer')
CASHFLOW_FREQUENCIES = ('monthly', 'biweekly', 'weekly', 'annual')


def generate_id() -> str:
    """Generate a unique identifier from the current timestamp and a random suffix"""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}"


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string"""
    return datetime.now().isoformat()


def _to_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class BankFormat(Enum):
    """Bank export formats recognized from header rows"""
    TD = "td"
    RBC = "rbc"
    SCOTIABANK = "scotiabank"
    BMO = "bmo"
    CIBC = "cibc"
    TANGERINE = "tangerine"
    GENERIC = "generic"


@dataclass(frozen=True)
class BankFormatSpec:
    """Reference header layouts for one bank format.

    Attributes:
        headers: Candidate header label sequences; all labels of one
            sequence must be present for the format to match
        amount_column: "single" or "debit_credit"
    """
    headers: Tuple[Tuple[str, ...], ...]
    amount_column: str


@dataclass
class ColumnMapping:
    """Resolved column roles for a statement file.

    Either ``amount`` or ``debit`` (optionally with ``credit``) is populated,
    never both.
    """
    date: str
    description: str
    amount: Optional[str] = None
    debit: Optional[str] = None
    credit: Optional[str] = None
    balance: Optional[str] = None

    @property
    def uses_debit_credit(self) -> bool:
        return self.debit is not None

    def amount_columns(self) -> List[str]:
        """Columns that can carry an amount signal"""
        if self.uses_debit_credit:
            return [col for col in (self.debit, self.credit) if col]
        return [self.amount] if self.amount else []


@dataclass
class Transaction:
    """Canonical transaction record.

    ``amount`` is always a non-negative magnitude; direction is carried only
    by ``is_debit``.
    """
    id: str
    household_id: str
    date: str  # YYYY-MM-DD
    description: str
    amount: Decimal
    is_debit: bool
    type: str  # income, expense, transfer or unclassified
    fingerprint: str
    raw_data: Dict[str, str] = field(default_factory=dict)
    source_file: Optional[str] = None
    imported_at: str = field(default_factory=utc_timestamp)
    category: Optional[str] = None
    owner: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data['amount'] = str(self.amount)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            household_id=data.get('household_id', ''),
            date=data['date'],
            description=data.get('description', ''),
            amount=_to_decimal(data.get('amount', '0')),
            is_debit=bool(data.get('is_debit', True)),
            type=data.get('type', 'unclassified'),
            fingerprint=data.get('fingerprint', ''),
            raw_data=dict(data.get('raw_data') or {}),
            source_file=data.get('source_file'),
            imported_at=data.get('imported_at') or utc_timestamp(),
            category=data.get('category'),
            owner=data.get('owner'),
        )


@dataclass
class AmountRange:
    """Soft amount tolerance attached to a pattern"""
    min: Decimal
    max: Decimal


@dataclass
class TransactionPattern:
    """Learned classification rule.

    Attributes:
        description_keywords: Uppercase, deduplicated keywords
        amount_range: Optional soft amount tolerance (never a hard filter)
        is_debit: Direction the pattern applies to (hard filter)
        confidence: Integer 0-100 revised by user feedback
        user_rejected: Rejected patterns are kept for audit but never matched
    """
    id: str
    household_id: str
    description_keywords: List[str]
    is_debit: bool
    type: str
    category: str
    amount_range: Optional[AmountRange] = None
    owner: Optional[str] = None
    confidence: int = 50
    match_count: int = 0
    last_used: str = field(default_factory=utc_timestamp)
    user_confirmed: bool = False
    user_rejected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        if self.amount_range is not None:
            data['amount_range'] = {
                'min': str(self.amount_range.min),
                'max': str(self.amount_range.max),
            }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransactionPattern':
        amount_range = None
        range_data = data.get('amount_range')
        if range_data and range_data.get('min') is not None and range_data.get('max') is not None:
            amount_range = AmountRange(
                min=_to_decimal(range_data['min']),
                max=_to_decimal(range_data['max']),
            )

        return cls(
            id=data['id'],
            household_id=data.get('household_id', ''),
            description_keywords=list(data.get('description_keywords') or []),
            is_debit=bool(data.get('is_debit', True)),
            type=data['type'],
            category=data['category'],
            amount_range=amount_range,
            owner=data.get('owner'),
            confidence=int(data.get('confidence', 50)),
            match_count=int(data.get('match_count', 0)),
            last_used=data.get('last_used') or utc_timestamp(),
            user_confirmed=bool(data.get('user_confirmed', False)),
            user_rejected=bool(data.get('user_rejected', False)),
        )


@dataclass
class PatternMatch:
    """Result of matching one transaction against one pattern"""
    pattern: TransactionPattern
    confidence: int
    matched_keywords: List[str]
    reason: str


@dataclass
class TransactionClassification:
    """User-supplied classification for a transaction"""
    type: str  # income, expense or transfer
    category: str
    owner: Optional[str] = None

    def __post_init__(self):
        if self.type not in CLASSIFICATION_TYPES:
            raise ValueError(
                f"Invalid classification type '{self.type}', "
                f"expected one of {', '.join(CLASSIFICATION_TYPES)}"
            )


@dataclass
class Cashflow:
    """Recurring income or expense definition"""
    id: str
    household_id: str
    name: str
    type: str  # income or expense
    category: str
    amount: Decimal
    frequency: str = "monthly"
    owner: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['amount'] = str(self.amount)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cashflow':
        return cls(
            id=data['id'],
            household_id=data.get('household_id', ''),
            name=data['name'],
            type=data.get('type', 'expense'),
            category=data.get('category', ''),
            amount=_to_decimal(data.get('amount', '0')),
            frequency=data.get('frequency', 'monthly'),
            owner=data.get('owner'),
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
        )


@dataclass
class ImportConfig:
    """Tunable constants for detection, deduplication and matching"""
    date_formats: Optional[List[str]] = None
    balance_threshold: Decimal = Decimal('1000')
    long_field_length: int = 20
    amount_tolerance: Decimal = Decimal('0.01')
    similarity_threshold: float = 0.9
    cashflow_tolerance: float = 0.1
    auto_fill_threshold: int = 70
    auto_fill_categories: bool = True
    sign_convention: str = "auto"  # auto, banking or credit_card
    default_household_id: str = "default"

    def __post_init__(self):
        if self.date_formats is None:
            self.date_formats = [
                "%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%Y/%m/%d",
                "%Y-%m-%d %H:%M:%S", "%m/%d/%Y %H:%M:%S",
                "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y",
                "%m/%d/%y", "%Y%m%d"
            ]
        self.balance_threshold = _to_decimal(self.balance_threshold)
        self.amount_tolerance = _to_decimal(self.amount_tolerance)


@dataclass
class FileImportResult:
    """Result of importing one statement file"""
    file_path: str
    bank_format: Optional[str] = None
    has_header: bool = False
    sign_convention: Optional[str] = None
    transactions: List[Transaction] = field(default_factory=list)
    duplicates: List[Transaction] = field(default_factory=list)
    rows_read: int = 0
    rows_dropped: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class BatchImportResult:
    """Result of importing a batch of statement files.

    ``transactions`` holds the accepted (non-duplicate) transactions in file
    order then row order; ``errors`` holds (filename, message) pairs for files
    that failed structurally.
    """
    transactions: List[Transaction] = field(default_factory=list)
    duplicates: List[Transaction] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)
    file_results: List[FileImportResult] = field(default_factory=list)
    cashflow_links: Dict[str, Cashflow] = field(default_factory=dict)
    suggestions: Dict[str, List[PatternMatch]] = field(default_factory=dict)

    @property
    def files_processed(self) -> int:
        return len(self.file_results)

    @property
    def files_failed(self) -> int:
        return sum(1 for result in self.file_results if not result.success)
