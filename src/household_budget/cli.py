"""Command-line interface for household statement imports."""

import logging
import sys
from typing import List, Optional

import click

from .models.core import ImportConfig, TransactionClassification, CLASSIFICATION_TYPES
from .utils.config_manager import ConfigManager
from .utils.csv_writer import CSVWriter
from .utils.error_handler import ErrorHandler
from .utils.importer import StatementImporter
from .utils.pattern_learner import FEEDBACK_TYPES, PatternLearner
from .utils.pattern_matcher import PatternMatcher
from .utils.snapshot import BudgetSnapshot, load_snapshot, save_snapshot


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = 'household_budget_state.json'


class HouseholdBudgetCLI:
    """Wires configuration and the import core together for the CLI commands"""

    def __init__(self, config_path: Optional[str] = None, log_directory: Optional[str] = None):
        self.config_manager = ConfigManager(config_path)
        self.config: ImportConfig = self.config_manager.load_config()
        self.error_handler = ErrorHandler(log_directory)
        self.importer = StatementImporter(self.config, self.error_handler)
        self.matcher = PatternMatcher()
        self.learner = PatternLearner()
        self.csv_writer = CSVWriter()

    def load_state(self, state_path: str) -> BudgetSnapshot:
        try:
            return load_snapshot(state_path)
        except (OSError, ValueError, KeyError) as e:
            click.echo(f"✗ Could not read state file {state_path}: {e}")
            sys.exit(1)

    def import_statements(self, files: List[str], state_path: str,
                          household_id: Optional[str]) -> dict:
        snapshot = self.load_state(state_path)
        batch = self.importer.import_files(
            list(files),
            household_id=household_id,
            existing_transactions=snapshot.transactions,
            cashflows=snapshot.cashflows,
            patterns=snapshot.patterns,
        )
        snapshot.transactions.extend(batch.transactions)
        save_snapshot(snapshot, state_path)
        return {'snapshot': snapshot, 'batch': batch}


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-dir', help='Write JSON-lines import logs to this directory')
@click.pass_context
def cli(ctx, config, verbose, log_dir):
    """Household Budget - import bank statements and classify transactions"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['cli'] = HouseholdBudgetCLI(config, log_dir)


@cli.command('import')
@click.argument('files', nargs=-1, required=True, type=click.Path())
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.option('--household', 'household_id', help='Household identifier for imported transactions')
@click.option('--export', 'export_path', help='Also write the imported transactions to this CSV file')
@click.pass_context
def import_cmd(ctx, files, state, household_id, export_path):
    """Import statement CSV files into the state snapshot"""
    cli_instance = ctx.obj['cli']

    result = cli_instance.import_statements(files, state, household_id)
    batch = result['batch']

    for file_result in batch.file_results:
        if file_result.success:
            click.echo(
                f"✓ {file_result.file_path}: {len(file_result.transactions)} imported, "
                f"{len(file_result.duplicates)} duplicates, {file_result.rows_dropped} dropped "
                f"(format: {file_result.bank_format})"
            )
            for warning in file_result.warnings:
                click.echo(f"    ⚠ {warning}")
        else:
            for message in file_result.errors:
                click.echo(f"✗ {file_result.file_path}: {message}")

    if batch.cashflow_links:
        click.echo(f"  Linked to recurring cashflows: {len(batch.cashflow_links)}")
    if batch.suggestions:
        click.echo(f"  Transactions with suggestions: {len(batch.suggestions)}")

    click.echo(f"\nTotal imported: {len(batch.transactions)}")
    click.echo(f"Total duplicates: {len(batch.duplicates)}")

    errors = cli_instance.error_handler.get_error_summary()
    if errors['total_warnings']:
        click.echo(f"Row warnings: {errors['total_warnings']}")

    if export_path:
        rows = cli_instance.csv_writer.write_transactions(batch.transactions, export_path)
        click.echo(f"Exported {rows} transactions to {export_path}")

    if batch.files_failed > 0:
        click.echo(f"\n⚠ {batch.files_failed} files failed to import. Check logs for details.")
        sys.exit(1)


@cli.command()
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.option('--all', 'show_all', is_flag=True, help='Include already categorized transactions')
@click.pass_context
def suggest(ctx, state, show_all):
    """Show pattern suggestions for uncategorized transactions"""
    cli_instance = ctx.obj['cli']
    snapshot = cli_instance.load_state(state)

    shown = 0
    for transaction in snapshot.transactions:
        if transaction.category and not show_all:
            continue

        matches = cli_instance.matcher.find_matching_patterns(transaction, snapshot.patterns)
        if not matches:
            continue

        shown += 1
        direction = 'debit' if transaction.is_debit else 'credit'
        click.echo(f"{transaction.id} {transaction.date} {transaction.description} "
                   f"{transaction.amount} ({direction})")
        for match in matches[:3]:
            click.echo(f"    {match.confidence:3d}% {match.pattern.type}/{match.pattern.category} "
                       f"[{match.pattern.id}] {match.reason}")

    if shown == 0:
        click.echo("No suggestions available")


@cli.command()
@click.argument('transaction_id')
@click.option('--type', 'tx_type', required=True, type=click.Choice(list(CLASSIFICATION_TYPES)),
              help='Transaction type')
@click.option('--category', required=True, help='Category name')
@click.option('--owner', help='Household member owning the transaction')
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.pass_context
def classify(ctx, transaction_id, tx_type, category, owner, state):
    """Classify a transaction and learn a pattern from it"""
    cli_instance = ctx.obj['cli']
    snapshot = cli_instance.load_state(state)

    transaction = snapshot.find_transaction(transaction_id)
    if transaction is None:
        click.echo(f"✗ Transaction not found: {transaction_id}")
        sys.exit(1)

    classification = TransactionClassification(type=tx_type, category=category, owner=owner)
    snapshot.replace_transaction(cli_instance.learner.apply_classification(transaction, classification))

    pattern_count = len(snapshot.patterns)
    snapshot.patterns = cli_instance.learner.learn_from_classification(
        transaction, classification, snapshot.patterns, household_id=transaction.household_id
    )
    save_snapshot(snapshot, state)

    click.echo(f"✓ Classified {transaction_id} as {tx_type}/{category}")
    if len(snapshot.patterns) > pattern_count:
        click.echo("  New pattern created")


@cli.command()
@click.argument('pattern_id')
@click.argument('feedback_type', type=click.Choice(list(FEEDBACK_TYPES)))
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.pass_context
def feedback(ctx, pattern_id, feedback_type, state):
    """Record whether a pattern suggestion was correct"""
    cli_instance = ctx.obj['cli']
    snapshot = cli_instance.load_state(state)

    try:
        snapshot.patterns = cli_instance.learner.update_pattern_from_feedback(
            pattern_id, feedback_type, snapshot.patterns
        )
    except KeyError:
        click.echo(f"✗ Pattern not found: {pattern_id}")
        sys.exit(1)

    save_snapshot(snapshot, state)
    updated = next(p for p in snapshot.patterns if p.id == pattern_id)
    click.echo(f"✓ Pattern {pattern_id} confidence is now {updated.confidence}")


@cli.command('merge-patterns')
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.pass_context
def merge_patterns(ctx, state):
    """Merge similar patterns in the catalog"""
    cli_instance = ctx.obj['cli']
    snapshot = cli_instance.load_state(state)

    before = len(snapshot.patterns)
    snapshot.patterns = cli_instance.learner.merge_similar_patterns(snapshot.patterns)
    save_snapshot(snapshot, state)

    click.echo(f"✓ {before} patterns merged into {len(snapshot.patterns)}")


@cli.command()
@click.argument('output_path')
@click.option('--state', '-s', default=DEFAULT_STATE_FILE, help='State snapshot file')
@click.option('--summary', is_flag=True, help='Print totals by type and category')
@click.pass_context
def export(ctx, output_path, state, summary):
    """Export stored transactions to CSV"""
    cli_instance = ctx.obj['cli']
    snapshot = cli_instance.load_state(state)

    rows = cli_instance.csv_writer.write_transactions(snapshot.transactions, output_path)
    click.echo(f"✓ Exported {rows} transactions to {output_path}")

    if summary:
        stats = cli_instance.csv_writer.summarize(snapshot.transactions)
        click.echo(f"  Total spending: ${stats['total_spending']:,.2f}")
        click.echo(f"  Total income: ${stats['total_income']:,.2f}")
        for category, total in sorted(stats['by_category'].items()):
            click.echo(f"  {category}: ${total:,.2f}")


@cli.command()
@click.argument('output_path', default='household_budget.json')
@click.option('--format', type=click.Choice(['json', 'yaml']), default='json', help='Configuration file format')
@click.pass_context
def init_config(ctx, output_path, format):
    """Generate a configuration file template"""
    cli_instance = ctx.obj['cli']

    if format == 'yaml' and not output_path.endswith(('.yml', '.yaml')):
        output_path = output_path.rsplit('.', 1)[0] + '.yml'

    try:
        cli_instance.config_manager.save_config_template(output_path)
    except OSError as e:
        click.echo(f"✗ Error creating configuration template: {e}")
        sys.exit(1)

    click.echo(f"✓ Configuration template created: {output_path}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
