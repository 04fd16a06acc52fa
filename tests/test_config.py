"""Tests for configuration loading and validation."""

import pytest

from statement_ledger.config import (
    Config,
    ConfigValidationError,
    CsvConfig,
    ParserConfig,
    SheetsConfig,
    create_default_config,
    load_config,
)

ENV_VARS = [
    "STATEMENT_LEDGER_SHEETS_URL",
    "STATEMENT_LEDGER_DRIVE_URL",
    "STATEMENT_LEDGER_FOLDER_ID",
    "STATEMENT_LEDGER_TAB_NAME",
    "STATEMENT_LEDGER_MAX_RETRIES",
    "STATEMENT_LEDGER_FORMAT_SHEET",
    "STATEMENT_LEDGER_STATEMENT_YEAR",
    "STATEMENT_LEDGER_CSV_MODE",
    "STATEMENT_LEDGER_CSV_BOM",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")

        assert config == Config()
        assert config.sheets.data_tab_name == "Transactions"
        assert config.sheets.hash_sheet_name == "Hashes"
        assert config.sheets.max_retries == 0
        assert config.parser.statement_year is None
        assert config.csv.mode == "debit_credit"

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "sheets:\n"
            "  folder_id: folder-abc\n"
            "  data_tab_name: Ledger\n"
            "  format_sheet: false\n"
            "  max_retries: 2\n"
            "parser:\n"
            "  statement_year: 2023\n"
            "csv:\n"
            "  mode: signed\n"
            "  delimiter: ';'\n"
            "  include_bom: true\n"
        )

        config = load_config(path)

        assert config.sheets.folder_id == "folder-abc"
        assert config.sheets.data_tab_name == "Ledger"
        assert config.sheets.format_sheet is False
        assert config.sheets.max_retries == 2
        assert config.parser.statement_year == 2023
        assert config.csv == CsvConfig(mode="signed", delimiter=";", include_bom=True)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path) == Config()

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("sheets:\n  folder_id: from-file\n  format_sheet: true\n")
        monkeypatch.setenv("STATEMENT_LEDGER_SHEETS_URL", "http://sheets.local")
        monkeypatch.setenv("STATEMENT_LEDGER_FOLDER_ID", "from-env")
        monkeypatch.setenv("STATEMENT_LEDGER_TAB_NAME", "Imported")
        monkeypatch.setenv("STATEMENT_LEDGER_MAX_RETRIES", "3")
        monkeypatch.setenv("STATEMENT_LEDGER_FORMAT_SHEET", "false")
        monkeypatch.setenv("STATEMENT_LEDGER_STATEMENT_YEAR", "2022")
        monkeypatch.setenv("STATEMENT_LEDGER_CSV_MODE", "signed")
        monkeypatch.setenv("STATEMENT_LEDGER_CSV_BOM", "true")

        config = load_config(path)

        assert config.sheets.sheets_base_url == "http://sheets.local"
        assert config.sheets.folder_id == "from-env"
        assert config.sheets.data_tab_name == "Imported"
        assert config.sheets.max_retries == 3
        assert config.sheets.format_sheet is False
        assert config.parser.statement_year == 2022
        assert config.csv.mode == "signed"
        assert config.csv.include_bom is True

    def test_unrecognized_bool_keeps_file_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STATEMENT_LEDGER_FORMAT_SHEET", "maybe")

        assert load_config(tmp_path / "none.yaml").sheets.format_sheet is True

    def test_bad_integer_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STATEMENT_LEDGER_MAX_RETRIES", "lots")

        with pytest.raises(ConfigValidationError, match="STATEMENT_LEDGER_MAX_RETRIES"):
            load_config(tmp_path / "none.yaml")


class TestValidate:
    def test_defaults_valid(self):
        assert Config().validate() == []

    def test_collects_all_errors(self):
        config = Config(
            sheets=SheetsConfig(
                data_tab_name="Same",
                hash_sheet_name="Same",
                folder_id="  ",
                timeout_seconds=0,
                max_retries=-1,
            ),
            parser=ParserConfig(statement_year=99),
            csv=CsvConfig(mode="tsv", delimiter="::"),
        )

        errors = config.validate()

        assert len(errors) == 7
        assert any("must differ" in e for e in errors)
        assert any("folder_id" in e for e in errors)
        assert any("csv.mode" in e and "tsv" in e for e in errors)
        assert any("statement_year" in e for e in errors)

    def test_blank_tab_name(self):
        config = Config(sheets=SheetsConfig(data_tab_name=" "))

        assert config.validate() == ["sheets.data_tab_name is required"]


class TestCreateDefaultConfig:
    def test_template_loads_as_defaults(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"

        create_default_config(path)

        assert path.exists()
        assert "GOOGLE_ACCESS_TOKEN" in path.read_text()
        assert load_config(path) == Config()
