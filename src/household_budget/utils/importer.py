"""Statement import pipeline over a batch of files.

Each file is parsed, checked for duplicates against the known transactions
and matched against the pattern catalog. Files are processed sequentially;
a file that fails structurally is reported and the batch continues.
"""

import logging
import os
from dataclasses import replace
from typing import List, Optional

from ..models.core import (
    BatchImportResult, Cashflow, FileImportResult, ImportConfig, Transaction, TransactionPattern,
)
from ..parsers.csv_parser import StatementCSVParser
from .duplicate_detector import DuplicateDetector
from .error_handler import ErrorHandler, StatementParseError
from .pattern_matcher import PatternMatcher


logger = logging.getLogger(__name__)


class StatementImporter:
    """Runs detection, normalization, deduplication and matching for statement files"""

    def __init__(self, config: Optional[ImportConfig] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.config = config or ImportConfig()
        self.error_handler = error_handler or ErrorHandler()
        self.parser = StatementCSVParser(self.config, self.error_handler)
        self.duplicate_detector = DuplicateDetector(self.config)
        self.matcher = PatternMatcher()

    def import_text(self, content: str, filename: str,
                    household_id: Optional[str] = None) -> FileImportResult:
        """Parse one statement's text; structural failures land in ``errors``"""
        try:
            return self.parser.parse_text(content, filename, household_id)
        except StatementParseError as e:
            self.error_handler.handle_parse_error(e)
            return FileImportResult(file_path=filename, errors=[e.message])

    def import_file(self, file_path: str, household_id: Optional[str] = None) -> FileImportResult:
        try:
            return self.parser.parse_file(file_path, household_id)
        except StatementParseError as e:
            self.error_handler.handle_parse_error(e)
            return FileImportResult(file_path=os.path.basename(file_path), errors=[e.message])

    def import_files(self,
                     file_paths: List[str],
                     household_id: Optional[str] = None,
                     existing_transactions: Optional[List[Transaction]] = None,
                     cashflows: Optional[List[Cashflow]] = None,
                     patterns: Optional[List[TransactionPattern]] = None) -> BatchImportResult:
        """Import a batch of statement files.

        Args:
            file_paths: Files processed in the given order
            household_id: Owner household for every imported transaction
            existing_transactions: Known transactions used for duplicate checks
            cashflows: Recurring cashflows for informational linking
            patterns: Pattern catalog used for suggestions

        Returns:
            BatchImportResult with accepted transactions in file then row order
        """
        household_id = household_id or self.config.default_household_id
        known = list(existing_transactions or [])
        cashflows = cashflows or []
        patterns = patterns or []
        batch = BatchImportResult()

        for file_path in file_paths:
            logger.info(f"Importing {file_path}")
            file_result = self.import_file(file_path, household_id)
            batch.file_results.append(file_result)

            if file_result.errors:
                for message in file_result.errors:
                    batch.errors.append((file_result.file_path, message))
                logger.error(f"Failed to import {file_path}: {'; '.join(file_result.errors)}")
                continue

            check = self.duplicate_detector.find_duplicates(file_result.transactions, known, cashflows)
            file_result.duplicates = check.duplicates
            batch.duplicates.extend(check.duplicates)
            batch.cashflow_links.update(check.cashflow_matches)

            accepted = [self.suggest(tx, patterns, batch) for tx in check.unique]
            file_result.transactions = accepted
            batch.transactions.extend(accepted)

            # Later files are checked against this file's accepted rows too
            known.extend(accepted)

            logger.info(
                f"{file_result.file_path}: {len(accepted)} imported, "
                f"{len(check.duplicates)} duplicates, {file_result.rows_dropped} dropped"
            )

        logger.info(
            f"Batch complete: {len(batch.transactions)} transactions from "
            f"{batch.files_processed - batch.files_failed}/{batch.files_processed} files"
        )
        return batch

    def suggest(self, transaction: Transaction, patterns: List[TransactionPattern],
                batch: BatchImportResult) -> Transaction:
        """Record pattern suggestions and auto-fill a confident best match"""
        matches = self.matcher.find_matching_patterns(transaction, patterns)
        if not matches:
            return transaction

        batch.suggestions[transaction.id] = matches
        best = matches[0]

        if self.config.auto_fill_categories and best.confidence >= self.config.auto_fill_threshold:
            logger.debug(f"Auto-filled {best.pattern.category} ({best.confidence}) for {transaction.id}")
            return replace(
                transaction,
                type=best.pattern.type,
                category=best.pattern.category,
                owner=best.pattern.owner or transaction.owner,
            )

        return transaction
