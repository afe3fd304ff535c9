"""Tests for loading and validating the account list."""

import json

import pytest

from lumosity_scraper.accounts import load_accounts
from lumosity_scraper.models.accounts import Account
from lumosity_scraper.resilience import AccountSourceError, ScraperError


def write(tmp_path, payload):
    path = tmp_path / "accounts.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return path


class TestLoadAccounts:
    """Test the happy paths of the account source."""

    def test_loads_in_order(self, tmp_path):
        path = write(tmp_path, [
            {"identity": "a@example.com", "secret": "pw", "cohortLabel": "s1"},
            {"identity": "b@example.com", "secret": "pw", "cohortLabel": "s2"},
        ])
        accounts = load_accounts(path)
        assert [a.identity for a in accounts] == ["a@example.com", "b@example.com"]
        assert accounts[1].cohort_label == "s2"

    def test_legacy_field_names(self, tmp_path):
        """Test the email/password/study spelling is accepted."""
        path = write(tmp_path, [{"email": " a@example.com ", "password": "pw", "study": "s1"}])
        account = load_accounts(path)[0]
        assert account.identity == "a@example.com"
        assert account.secret == "pw"
        assert account.cohort_label == "s1"

    def test_secret_is_not_stripped_or_dumped(self, tmp_path):
        path = write(tmp_path, [{"identity": "a@example.com", "secret": " pw ", "cohortLabel": "s1"}])
        account = load_accounts(path)[0]
        assert account.secret == " pw "
        assert "secret" not in account.model_dump()
        assert "pw" not in repr(account)

    def test_accounts_are_immutable(self, account):
        with pytest.raises(Exception):
            account.identity = "other@example.com"


class TestInvalidSource:
    """Test every setup error aborts the whole load."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(AccountSourceError, match="not found"):
            load_accounts(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        with pytest.raises(AccountSourceError, match="invalid JSON"):
            load_accounts(write(tmp_path, "[{"))

    def test_not_an_array(self, tmp_path):
        with pytest.raises(AccountSourceError, match="JSON array"):
            load_accounts(write(tmp_path, {"identity": "a"}))

    def test_empty_list(self, tmp_path):
        with pytest.raises(AccountSourceError, match="No accounts found"):
            load_accounts(write(tmp_path, []))

    @pytest.mark.parametrize("entry", [
        {"secret": "pw", "cohortLabel": "s1"},
        {"identity": "a@example.com", "cohortLabel": "s1"},
        {"identity": "a@example.com", "secret": "pw"},
        {"identity": "   ", "secret": "pw", "cohortLabel": "s1"},
        {"identity": "a@example.com", "secret": "", "cohortLabel": "s1"},
        "a@example.com",
    ])
    def test_one_bad_entry_rejects_all(self, tmp_path, entry):
        path = write(tmp_path, [{"identity": "ok@example.com", "secret": "pw", "cohortLabel": "s1"}, entry])
        with pytest.raises(AccountSourceError, match="#1"):
            load_accounts(path)

    def test_error_is_a_scraper_error(self, tmp_path):
        with pytest.raises(ScraperError):
            load_accounts(tmp_path / "missing.json")


def test_account_construction_by_field_name():
    account = Account(identity="x@example.com", secret="pw", cohort_label="s")
    assert account.cohort_label == "s"
