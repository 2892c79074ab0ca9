"""
Unit tests for the credential store.

Tests SessionRecord and CredentialStore.
"""
import json
import os
import stat

import pytest

from qvs.lib.errors import CorruptRecord, PersistFailed, RecordNotFound
from qvs.lib.store import CredentialStore, SessionRecord


class TestSessionRecord:
    """Tests for SessionRecord model."""

    def test_complete_record(self, complete_record):
        """Test a record with QVS fields is complete."""
        assert complete_record.is_complete()
        assert complete_record.is_legacy()

    def test_legacy_only_record(self):
        """Test a record with only the QTS session is not complete."""
        record = SessionRecord(qts_url="https://nas", username="bob", qts_sessionid="ABC")

        assert record.is_legacy()
        assert not record.is_complete()

    def test_from_dict_missing_fields(self):
        """Test missing and null fields become empty strings."""
        record = SessionRecord.from_dict({"qts_url": "https://nas", "username": None})

        assert record.qts_url == "https://nas"
        assert record.username == ""
        assert record.qts_sessionid == ""
        assert record.qvs_csrftoken == ""
        assert record.qvs_sessionid == ""

    def test_from_dict_ignores_unknown_fields(self):
        """Test unknown keys are dropped."""
        record = SessionRecord.from_dict({"qts_sessionid": "ABC", "extra": "x"})

        assert record.qts_sessionid == "ABC"
        assert "extra" not in record.to_dict()

    def test_from_dict_not_a_mapping(self):
        """Test a JSON list is a corrupt record."""
        with pytest.raises(CorruptRecord):
            SessionRecord.from_dict(["ABC"])


class TestCredentialStore:
    """Tests for CredentialStore."""

    def test_load_missing_file(self, store):
        """Test loading an absent login file."""
        with pytest.raises(RecordNotFound):
            store.load()

    def test_load_corrupt_file(self, store):
        """Test loading a file that is not JSON."""
        with open(store.login_file, "w") as fh:
            fh.write("{not json")

        with pytest.raises(CorruptRecord):
            store.load()

    def test_load_empty_file(self, store):
        """Test an empty file is corrupt, not missing."""
        open(store.login_file, "w").close()

        with pytest.raises(CorruptRecord):
            store.load()

    def test_save_then_load(self, store, complete_record):
        """Test a saved record loads back equal in every field."""
        store.save(complete_record)

        assert store.load() == complete_record

    def test_save_format(self, store, complete_record):
        """Test the login file holds the known keys as readable JSON."""
        store.save(complete_record)

        with open(store.login_file) as fh:
            content = fh.read()

        assert json.loads(content) == {
            "qts_url": "https://nas.example.com",
            "username": "bob",
            "qts_sessionid": "ABC",
            "qvs_csrftoken": "tok123",
            "qvs_sessionid": "sess456",
        }
        assert "\n    " in content

    def test_save_overwrites(self, store, complete_record):
        """Test saving twice keeps only the last record."""
        store.save(complete_record)
        newer = SessionRecord(qts_url="https://nas.example.com", qts_sessionid="XYZ")
        store.save(newer)

        assert store.load() == newer
        leftovers = [
            f for f in os.listdir(os.path.dirname(store.login_file))
            if f.startswith(".qvs_login.")
        ]
        assert leftovers == []

    def test_save_permissions(self, store, complete_record):
        """Test the login file is private by default."""
        store.save(complete_record)

        mode = stat.S_IMODE(os.stat(store.login_file).st_mode)
        assert mode == 0o600

    def test_save_permissions_override(self, store, complete_record, monkeypatch):
        """Test QVSCLI_LOGIN_FILE_PERMS sets the file mode."""
        monkeypatch.setenv("QVSCLI_LOGIN_FILE_PERMS", "640")
        store.save(complete_record)

        mode = stat.S_IMODE(os.stat(store.login_file).st_mode)
        assert mode == 0o640

    def test_save_invalid_permissions(self, store, complete_record, monkeypatch):
        """Test a non-octal QVSCLI_LOGIN_FILE_PERMS raises PersistFailed."""
        monkeypatch.setenv("QVSCLI_LOGIN_FILE_PERMS", "rw-------")

        with pytest.raises(PersistFailed) as excinfo:
            store.save(complete_record)

        assert excinfo.value.record is complete_record
        assert not os.path.exists(store.login_file)

    def test_save_failure(self, tmp_path, complete_record):
        """Test an unwritable location raises PersistFailed with the record."""
        store = CredentialStore(str(tmp_path / "missing" / ".qvs_login"))

        with pytest.raises(PersistFailed) as excinfo:
            store.save(complete_record)

        assert excinfo.value.record is complete_record
