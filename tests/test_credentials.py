"""Tests for credential resolution."""

import pytest

from statement_ledger.credentials import CredentialCache, CredentialError


class TestCredentialCache:
    def test_from_environment(self):
        cache = CredentialCache({"GOOGLE_ACCESS_TOKEN": " ya29.token \n"})

        assert cache.get("GOOGLE_ACCESS_TOKEN") == "ya29.token"

    def test_from_file(self, tmp_path):
        secret = tmp_path / "token"
        secret.write_text("file-token\n")
        cache = CredentialCache({"GOOGLE_ACCESS_TOKEN_FILE": str(secret)})

        assert cache.get("GOOGLE_ACCESS_TOKEN") == "file-token"

    def test_environment_wins_over_file(self, tmp_path):
        secret = tmp_path / "token"
        secret.write_text("file-token")
        cache = CredentialCache(
            {"GOOGLE_ACCESS_TOKEN": "env-token", "GOOGLE_ACCESS_TOKEN_FILE": str(secret)}
        )

        assert cache.get("GOOGLE_ACCESS_TOKEN") == "env-token"

    def test_missing_file_raises(self, tmp_path):
        cache = CredentialCache({"GOOGLE_ACCESS_TOKEN_FILE": str(tmp_path / "nope")})

        with pytest.raises(CredentialError, match="missing file"):
            cache.get("GOOGLE_ACCESS_TOKEN")

    def test_unset_is_none(self):
        assert CredentialCache({}).get("GOOGLE_ACCESS_TOKEN") is None

    def test_value_is_cached_until_cleared(self):
        environ = {"TOKEN": "first"}
        cache = CredentialCache(environ)

        assert cache.get("TOKEN") == "first"
        environ["TOKEN"] = "second"
        assert cache.get("TOKEN") == "first"

        cache.clear()
        assert cache.get("TOKEN") == "second"

    def test_require(self):
        cache = CredentialCache({"TOKEN": "abc"})

        assert cache.require("TOKEN") == "abc"
        with pytest.raises(CredentialError, match="OTHER_FILE"):
            cache.require("OTHER")
