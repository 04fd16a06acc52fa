"""
Configuration management (SSOT).

All configuration keys for statement-ledger are defined here; no other
module should invent config keys.

Secrets are not stored in the config file. The Google access token is
resolved at runtime by CredentialCache from the environment variable (or
mounted file) named by `sheets.token_key`.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .export.csv_export import CsvMode


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class SheetsConfig:
    """Google Sheets / Drive export settings."""

    sheets_base_url: str = "https://sheets.googleapis.com"
    drive_base_url: str = "https://www.googleapis.com"
    # Target Drive folder for new spreadsheets (None = Drive root)
    folder_id: str | None = None
    # Visible tab receiving transaction rows
    data_tab_name: str = "Transactions"
    # Hidden tab holding the content hash ledger
    hash_sheet_name: str = "Hashes"
    # Freeze/bold header and apply date/currency formats on create
    format_sheet: bool = True
    timeout_seconds: int = 30
    # Transport retries; 0 leaves retry policy to the caller
    max_retries: int = 0
    # Credential name resolved by CredentialCache (env var, or <name>_FILE)
    token_key: str = "GOOGLE_ACCESS_TOKEN"


@dataclass
class ParserConfig:
    """Statement extraction settings."""

    # Year for bare MM/DD dates (None = current calendar year)
    statement_year: int | None = None


@dataclass
class CsvConfig:
    """CSV rendering settings."""

    mode: str = CsvMode.DEBIT_CREDIT.value
    delimiter: str = ","
    include_bom: bool = False


@dataclass
class Config:
    """Application configuration (SSOT)."""

    sheets: SheetsConfig = field(default_factory=SheetsConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    csv: CsvConfig = field(default_factory=CsvConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.sheets.sheets_base_url:
            errors.append("sheets.sheets_base_url is required")
        if not self.sheets.drive_base_url:
            errors.append("sheets.drive_base_url is required")
        if not self.sheets.data_tab_name.strip():
            errors.append("sheets.data_tab_name is required")
        if not self.sheets.hash_sheet_name.strip():
            errors.append("sheets.hash_sheet_name is required")
        if self.sheets.data_tab_name == self.sheets.hash_sheet_name:
            errors.append("sheets.data_tab_name and sheets.hash_sheet_name must differ")
        if self.sheets.folder_id is not None and not self.sheets.folder_id.strip():
            errors.append("sheets.folder_id must not be blank (omit it instead)")
        if self.sheets.timeout_seconds <= 0:
            errors.append("sheets.timeout_seconds must be positive")
        if self.sheets.max_retries < 0:
            errors.append("sheets.max_retries must be >= 0")

        if self.csv.mode not in [m.value for m in CsvMode]:
            errors.append(
                f"csv.mode must be one of {', '.join(m.value for m in CsvMode)}, "
                f"got: {self.csv.mode}"
            )
        if len(self.csv.delimiter) != 1:
            errors.append("csv.delimiter must be a single character")

        year = self.parser.statement_year
        if year is not None and not 1900 <= year <= 2999:
            errors.append(f"parser.statement_year out of range: {year}")

        return errors


def _env_int(name: str, default: int | None) -> int | None:
    value = os.environ.get(name, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigValidationError(f"{name} must be an integer, got: {value!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables override
    config values:
    - STATEMENT_LEDGER_SHEETS_URL
    - STATEMENT_LEDGER_DRIVE_URL
    - STATEMENT_LEDGER_FOLDER_ID
    - STATEMENT_LEDGER_TAB_NAME
    - STATEMENT_LEDGER_MAX_RETRIES
    - STATEMENT_LEDGER_FORMAT_SHEET (true/false)
    - STATEMENT_LEDGER_STATEMENT_YEAR
    - STATEMENT_LEDGER_CSV_MODE (debit_credit/signed)
    - STATEMENT_LEDGER_CSV_BOM (true/false)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Sheets config
    sheets_data = data.get("sheets") or {}
    sheets = SheetsConfig(
        sheets_base_url=os.environ.get(
            "STATEMENT_LEDGER_SHEETS_URL",
            sheets_data.get("sheets_base_url", "https://sheets.googleapis.com"),
        ),
        drive_base_url=os.environ.get(
            "STATEMENT_LEDGER_DRIVE_URL",
            sheets_data.get("drive_base_url", "https://www.googleapis.com"),
        ),
        folder_id=os.environ.get("STATEMENT_LEDGER_FOLDER_ID", sheets_data.get("folder_id")),
        data_tab_name=os.environ.get(
            "STATEMENT_LEDGER_TAB_NAME", sheets_data.get("data_tab_name", "Transactions")
        ),
        hash_sheet_name=sheets_data.get("hash_sheet_name", "Hashes"),
        format_sheet=_env_bool(
            "STATEMENT_LEDGER_FORMAT_SHEET", sheets_data.get("format_sheet", True)
        ),
        timeout_seconds=int(sheets_data.get("timeout_seconds", 30)),
        max_retries=_env_int(
            "STATEMENT_LEDGER_MAX_RETRIES", int(sheets_data.get("max_retries", 0))
        ),
        token_key=sheets_data.get("token_key", "GOOGLE_ACCESS_TOKEN"),
    )

    # Parser config
    parser_data = data.get("parser") or {}
    year = parser_data.get("statement_year")
    parser = ParserConfig(
        statement_year=_env_int(
            "STATEMENT_LEDGER_STATEMENT_YEAR", int(year) if year is not None else None
        ),
    )

    # CSV config
    csv_data = data.get("csv") or {}
    csv_config = CsvConfig(
        mode=os.environ.get(
            "STATEMENT_LEDGER_CSV_MODE", csv_data.get("mode", CsvMode.DEBIT_CREDIT.value)
        ),
        delimiter=csv_data.get("delimiter", ","),
        include_bom=_env_bool("STATEMENT_LEDGER_CSV_BOM", csv_data.get("include_bom", False)),
    )

    return Config(sheets=sheets, parser=parser, csv=csv_config)


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# statement-ledger configuration
#
# The Google access token is NOT stored here. Provide it via the
# environment variable named by sheets.token_key, or a file path in
# <token_key>_FILE (e.g. a mounted secret).

sheets:
  sheets_base_url: "https://sheets.googleapis.com"
  drive_base_url: "https://www.googleapis.com"
  folder_id: null                  # Drive folder for new spreadsheets (null = root)
  data_tab_name: "Transactions"    # Tab receiving transaction rows
  hash_sheet_name: "Hashes"        # Hidden tab holding the dedup hash ledger
  format_sheet: true               # Freeze/bold header, date and currency formats
  timeout_seconds: 30
  max_retries: 0                   # Transport retries (0 = fail fast)
  token_key: "GOOGLE_ACCESS_TOKEN"

parser:
  statement_year: null             # Year for bare MM/DD dates (null = current year)

csv:
  mode: "debit_credit"             # debit_credit (QuickBooks) or signed
  delimiter: ","
  include_bom: false               # Prefix UTF-8 BOM for spreadsheet apps
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
