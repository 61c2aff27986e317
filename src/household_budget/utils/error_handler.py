"""Error taxonomy, structured error records and logging for statement imports."""

import json
import logging
import traceback
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any


class ErrorSeverity(Enum):
    """Error severity levels"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ErrorCategory(Enum):
    """Error categories for classification"""
    FILE_ACCESS = "file_access"
    FILE_FORMAT = "file_format"
    DATA_PARSING = "data_parsing"
    SYSTEM = "system"


ERROR_CODES = {
    # File access errors
    "FILE_NOT_FOUND": "F001",
    "FILE_PERMISSION_DENIED": "F002",
    "ENCODING_ERROR": "F003",
    "FILE_READ_ERROR": "F004",

    # File format errors (file-level failures, the batch continues)
    "EMPTY_FILE": "F101",
    "MISSING_REQUIRED_COLUMNS": "F102",
    "UNDETECTABLE_STRUCTURE": "F103",

    # Row-level soft failures (defaults substituted, row still imported)
    "DATE_PARSE_ERROR": "D001",
    "AMOUNT_PARSE_ERROR": "D002",

    "UNEXPECTED_ERROR": "S999",
}


class StatementParseError(Exception):
    """File-level statement failure with context.

    Raised when a file cannot be imported at all (empty file, undetectable
    column structure). Importers convert it into a per-file error entry.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "UNDETECTABLE_STRUCTURE",
        file_path: Optional[str] = None,
        line_number: Optional[int] = None
    ):
        self.message = message
        self.error_type = error_type
        self.file_path = file_path
        self.line_number = line_number

        context_parts = []
        if file_path:
            context_parts.append(f"file: {file_path}")
        if line_number:
            context_parts.append(f"line: {line_number}")

        context = f" ({', '.join(context_parts)})" if context_parts else ""
        super().__init__(f"{message}{context}")

    @property
    def error_code(self) -> str:
        return ERROR_CODES.get(self.error_type, ERROR_CODES["UNEXPECTED_ERROR"])


@dataclass
class ErrorDetail:
    """Detailed error information"""
    timestamp: str
    severity: str
    category: str
    error_code: str
    message: str
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    field_name: Optional[str] = None
    raw_value: Optional[str] = None
    stack_trace: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON"""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for attr in ('error_code', 'file_path', 'category', 'context'):
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry, default=str)


class ErrorHandler:
    """Collects structured errors and warnings during an import session"""

    def __init__(self, log_directory: Optional[str] = None,
                 logger_name: str = 'household_budget.import'):
        self.errors: List[ErrorDetail] = []
        self.warnings: List[ErrorDetail] = []
        self.logger = logging.getLogger(logger_name)

        if log_directory:
            self._setup_file_logging(Path(log_directory))

    def _setup_file_logging(self, log_directory: Path):
        """Attach JSON-lines file handlers for all records and errors only"""
        log_directory.mkdir(parents=True, exist_ok=True)
        self.logger.setLevel(logging.DEBUG)

        log_file = log_directory / f"import_{datetime.now().strftime('%Y%m%d')}.jsonl"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        self.logger.addHandler(file_handler)

        error_file = log_directory / f"errors_{datetime.now().strftime('%Y%m%d')}.jsonl"
        error_handler = logging.FileHandler(error_file)
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        self.logger.addHandler(error_handler)

    def log_error(self,
                  message: str,
                  error_type: str,
                  category: ErrorCategory = ErrorCategory.SYSTEM,
                  file_path: Optional[str] = None,
                  line_number: Optional[int] = None,
                  exception: Optional[Exception] = None,
                  context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        """Log an error with detailed information"""

        error_code = ERROR_CODES.get(error_type, ERROR_CODES["UNEXPECTED_ERROR"])
        stack_trace = None

        if exception is not None and not isinstance(exception, StatementParseError):
            stack_trace = ''.join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))

        error_detail = ErrorDetail(
            timestamp=datetime.now().isoformat(),
            severity=ErrorSeverity.ERROR.value,
            category=category.value,
            error_code=error_code,
            message=message,
            file_path=file_path,
            line_number=line_number,
            stack_trace=stack_trace,
            context=context or {}
        )

        self.errors.append(error_detail)

        self.logger.error(
            message,
            extra={
                'error_code': error_code,
                'category': category.value,
                'file_path': file_path,
                'context': context or {}
            }
        )

        return error_detail

    def log_warning(self,
                    message: str,
                    warning_type: str,
                    category: ErrorCategory = ErrorCategory.DATA_PARSING,
                    file_path: Optional[str] = None,
                    line_number: Optional[int] = None,
                    field_name: Optional[str] = None,
                    raw_value: Optional[str] = None) -> ErrorDetail:
        """Log a warning (row-level soft failure)"""

        warning_code = ERROR_CODES.get(warning_type, "W999")

        warning_detail = ErrorDetail(
            timestamp=datetime.now().isoformat(),
            severity=ErrorSeverity.WARNING.value,
            category=category.value,
            error_code=warning_code,
            message=message,
            file_path=file_path,
            line_number=line_number,
            field_name=field_name,
            raw_value=raw_value,
        )

        self.warnings.append(warning_detail)

        self.logger.warning(
            message,
            extra={
                'error_code': warning_code,
                'category': category.value,
                'file_path': file_path,
            }
        )

        return warning_detail

    def handle_parse_error(self, error: StatementParseError) -> ErrorDetail:
        """Record a file-level statement failure"""
        if error.error_type in ('FILE_NOT_FOUND', 'FILE_PERMISSION_DENIED', 'ENCODING_ERROR',
                                'FILE_READ_ERROR'):
            category = ErrorCategory.FILE_ACCESS
        else:
            category = ErrorCategory.FILE_FORMAT

        return self.log_error(
            error.message,
            error.error_type,
            category,
            file_path=error.file_path,
            line_number=error.line_number,
            exception=error
        )

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors and warnings"""
        errors_by_category: Dict[str, int] = {}
        warnings_by_category: Dict[str, int] = {}

        for error in self.errors:
            errors_by_category[error.category] = errors_by_category.get(error.category, 0) + 1

        for warning in self.warnings:
            warnings_by_category[warning.category] = warnings_by_category.get(warning.category, 0) + 1

        return {
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings),
            'errors_by_category': errors_by_category,
            'warnings_by_category': warnings_by_category,
            'files_with_errors': len(set(e.file_path for e in self.errors if e.file_path)),
        }

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0
