"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..credentials import CredentialCache, CredentialError
from ..export import CsvMode, to_csv
from ..extractors import ExtractionSource, ExtractorRouter
from ..ledger import (
    LedgerExportError,
    LedgerExportOrchestrator,
    SheetsExportError,
    exportable_transactions,
)
from ..schemas import CanonicalTransaction, EntityDocument
from ..sheets_client import SheetsClient, SheetsError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--text",
        type=Path,
        help="Statement text file (OCR / text layer)",
    )
    parser.add_argument(
        "--entities",
        type=Path,
        help="Entity extraction JSON for the statement",
    )
    parser.add_argument(
        "--transactions",
        type=Path,
        help="Canonical transactions JSON (output of 'extract --format json')",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="statement-ledger",
        description="Normalize bank statements and export them to a spreadsheet ledger",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    # extract command
    extract_parser = subparsers.add_parser(
        "extract", help="Extract canonical transactions from a statement"
    )
    _add_input_arguments(extract_parser)
    extract_parser.add_argument(
        "--format",
        choices=["csv", "json"],
        default="csv",
        help="Output format (default: csv)",
    )
    extract_parser.add_argument(
        "--mode",
        choices=[m.value for m in CsvMode],
        help="CSV column layout (default: from config)",
    )
    extract_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file (default: stdout)",
    )

    # export-create command
    create_parser = subparsers.add_parser(
        "export-create", help="Create a new ledger spreadsheet"
    )
    _add_input_arguments(create_parser)
    create_parser.add_argument(
        "--title",
        type=str,
        required=True,
        help="Spreadsheet title",
    )
    create_parser.add_argument(
        "--folder-id",
        type=str,
        help="Drive folder to move the spreadsheet into (default: from config)",
    )

    # export-append command
    append_parser = subparsers.add_parser(
        "export-append", help="Append new transactions to an existing ledger"
    )
    _add_input_arguments(append_parser)
    append_parser.add_argument(
        "--spreadsheet-id",
        type=str,
        required=True,
        help="Target spreadsheet id",
    )
    append_parser.add_argument(
        "--tab",
        type=str,
        help="Target tab name (default: from config)",
    )

    return parser


def load_transactions(
    config: Config,
    text_path: Path | None = None,
    entities_path: Path | None = None,
    transactions_path: Path | None = None,
) -> tuple[list[CanonicalTransaction], list[str]]:
    """
    Load transactions from canonical JSON, or extract them from a statement.

    Returns:
        (transactions, warnings)
    """
    if transactions_path:
        with open(transactions_path) as f:
            data = json.load(f)
        records = data.get("transactions", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ValueError(f"{transactions_path}: expected a list of transactions")

        transactions = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise ValueError(
                    f"{transactions_path}: transaction {index} is not an object"
                )
            transactions.append(CanonicalTransaction.from_dict(record))

        warnings = []
        exportable = exportable_transactions(transactions)
        dropped = len(transactions) - len(exportable)
        if dropped:
            warnings.append(f"Dropped {dropped} transaction(s) without a date")
        return exportable, warnings

    if not text_path and not entities_path:
        raise ValueError("Provide --text, --entities or --transactions")

    text = text_path.read_text(encoding="utf-8") if text_path else ""
    document = None
    if entities_path:
        with open(entities_path) as f:
            document = EntityDocument.from_dict(json.load(f))

    router = ExtractorRouter(year=config.parser.statement_year)
    outcome = router.extract(ExtractionSource(text=text, document=document))
    logger.info(
        f"Extracted {len(outcome.transactions)} transaction(s) "
        f"using {outcome.strategy} ({outcome.document_type})"
    )
    return outcome.transactions, outcome.warnings


def _build_orchestrator(config: Config, credentials: CredentialCache) -> LedgerExportOrchestrator:
    client = SheetsClient(
        token=credentials.require(config.sheets.token_key),
        sheets_base_url=config.sheets.sheets_base_url,
        drive_base_url=config.sheets.drive_base_url,
        timeout=config.sheets.timeout_seconds,
        max_retries=config.sheets.max_retries,
    )
    return LedgerExportOrchestrator(client, config.sheets)


def cmd_init_config(config_path: Path, force: bool = False) -> int:
    """Write a default config file."""
    if config_path.exists() and not force:
        print(f"❌ {config_path} already exists (use --force to overwrite)")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote {config_path}")
    return 0


def cmd_extract(
    config: Config,
    text_path: Path | None,
    entities_path: Path | None,
    transactions_path: Path | None = None,
    output_format: str = "csv",
    mode: str | None = None,
    output: Path | None = None,
) -> int:
    """Extract transactions and render them as CSV or JSON."""
    try:
        transactions, warnings = load_transactions(
            config, text_path, entities_path, transactions_path
        )
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read input: {e}")
        return 1

    for warning in warnings:
        print(f"⚠ {warning}", file=sys.stderr)

    if output_format == "json":
        content = json.dumps(
            {"transactions": [tx.to_dict() for tx in transactions], "warnings": warnings},
            indent=2,
        )
    else:
        content = to_csv(
            transactions,
            mode=CsvMode(mode or config.csv.mode),
            delimiter=config.csv.delimiter,
            include_bom=config.csv.include_bom,
        )

    if output:
        output.write_text(content, encoding="utf-8")
        print(f"✓ Wrote {len(transactions)} transaction(s) to {output}")
    else:
        print(content)
    return 0


def cmd_export_create(
    config: Config,
    credentials: CredentialCache,
    title: str,
    folder_id: str | None = None,
    text_path: Path | None = None,
    entities_path: Path | None = None,
    transactions_path: Path | None = None,
) -> int:
    """Create a new ledger spreadsheet."""
    try:
        transactions, warnings = load_transactions(
            config, text_path, entities_path, transactions_path
        )
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read input: {e}")
        return 1

    for warning in warnings:
        print(f"⚠ {warning}", file=sys.stderr)

    try:
        orchestrator = _build_orchestrator(config, credentials)
        result = orchestrator.create(
            transactions, title, folder_id if folder_id is not None else config.sheets.folder_id
        )
    except SheetsExportError as e:
        logger.error(f"Export failed ({e.kind.value}) for spreadsheet {e.spreadsheet_id}")
        print(f"❌ {e}")
        return 1
    except (CredentialError, LedgerExportError, SheetsError) as e:
        print(f"❌ Export failed: {e}")
        return 1

    print(f"✓ Created ledger with {result.rows_written} transaction(s)")
    print(f"  {result.spreadsheet_url}")
    return 0


def cmd_export_append(
    config: Config,
    credentials: CredentialCache,
    spreadsheet_id: str,
    tab_name: str | None = None,
    text_path: Path | None = None,
    entities_path: Path | None = None,
    transactions_path: Path | None = None,
) -> int:
    """Append new transactions to an existing ledger."""
    try:
        transactions, warnings = load_transactions(
            config, text_path, entities_path, transactions_path
        )
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read input: {e}")
        return 1

    for warning in warnings:
        print(f"⚠ {warning}", file=sys.stderr)

    try:
        orchestrator = _build_orchestrator(config, credentials)
        result = orchestrator.append(transactions, spreadsheet_id, tab_name)
    except (CredentialError, LedgerExportError, SheetsError) as e:
        print(f"❌ Append failed: {e}")
        return 1

    print(
        f"✓ Appended {result.rows_appended} transaction(s) to {result.tab_name}, "
        f"skipped {result.duplicate_count} duplicate(s)"
    )
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except (OSError, ValueError, ConfigValidationError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ Config: {error}")
        return 1

    credentials = CredentialCache()

    # Route to command
    if parsed.command == "extract":
        return cmd_extract(
            config,
            parsed.text,
            parsed.entities,
            parsed.transactions,
            output_format=parsed.format,
            mode=parsed.mode,
            output=parsed.output,
        )
    elif parsed.command == "export-create":
        return cmd_export_create(
            config,
            credentials,
            parsed.title,
            folder_id=parsed.folder_id,
            text_path=parsed.text,
            entities_path=parsed.entities,
            transactions_path=parsed.transactions,
        )
    elif parsed.command == "export-append":
        return cmd_export_append(
            config,
            credentials,
            parsed.spreadsheet_id,
            tab_name=parsed.tab,
            text_path=parsed.text,
            entities_path=parsed.entities,
            transactions_path=parsed.transactions,
        )
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
