#!/usr/bin/env python3

# store.py - QVS CLI client function library, Login file store
# Part of qvscli, a QNAP Virtualization Station command-line client
#
#    Copyright (C) 2024 qvscli contributors
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as published by
#    the Free Software Foundation, version 3.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
###############################################################################

from json import dump as jdump
from json import load as jload
from os import chmod, environ, path, replace, unlink
from tempfile import NamedTemporaryFile

from qvs.lib.errors import CorruptRecord, PersistFailed, RecordNotFound


RECORD_FIELDS = (
    "qts_url",
    "username",
    "qts_sessionid",
    "qvs_csrftoken",
    "qvs_sessionid",
)


class SessionRecord(object):
    """
    The persisted state of a login: the legacy QTS session and, when the QVS
    API is in use, its CSRF token and session ID
    """

    def __init__(
        self,
        qts_url="",
        username="",
        qts_sessionid="",
        qvs_csrftoken="",
        qvs_sessionid="",
    ):
        self.qts_url = qts_url
        self.username = username
        self.qts_sessionid = qts_sessionid
        self.qvs_csrftoken = qvs_csrftoken
        self.qvs_sessionid = qvs_sessionid

    def is_legacy(self):
        return bool(self.qts_sessionid)

    def is_complete(self):
        return bool(self.qts_sessionid and self.qvs_csrftoken and self.qvs_sessionid)

    def to_dict(self):
        return {field: getattr(self, field) for field in RECORD_FIELDS}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise CorruptRecord("login file does not contain a JSON object")

        fields = dict()
        for field in RECORD_FIELDS:
            value = data.get(field)
            fields[field] = "" if value is None else str(value)
        return cls(**fields)

    def __eq__(self, other):
        if not isinstance(other, SessionRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"SessionRecord(qts_url={self.qts_url!r}, username={self.username!r})"


class CredentialStore(object):
    """
    Read and write a single SessionRecord at {login_file}
    """

    def __init__(self, login_file):
        self.login_file = path.expanduser(login_file.strip())

    def load(self):
        if not path.isfile(self.login_file):
            raise RecordNotFound(f"login file '{self.login_file}' does not exist")

        try:
            with open(self.login_file) as fh:
                data = jload(fh)
        except ValueError as e:
            raise CorruptRecord(f"login file '{self.login_file}' is corrupt: {e}")
        except OSError as e:
            raise RecordNotFound(f"failed to read login file '{self.login_file}': {e}")

        return SessionRecord.from_dict(data)

    def save(self, record):
        """
        Write {record} to a temporary file beside the login file, then move it into place
        """

        store_dir = path.dirname(path.abspath(self.login_file))
        try:
            perms = int(environ.get("QVSCLI_LOGIN_FILE_PERMS", "600"), 8)
        except ValueError as e:
            raise PersistFailed(
                f"invalid QVSCLI_LOGIN_FILE_PERMS for login file '{self.login_file}': {e}",
                record=record,
            )

        tmp_name = None
        try:
            with NamedTemporaryFile(
                "w", dir=store_dir, prefix=".qvs_login.", delete=False
            ) as fh:
                tmp_name = fh.name
                jdump(record.to_dict(), fh, sort_keys=True, indent=4)
            chmod(tmp_name, perms)
            replace(tmp_name, self.login_file)
        except OSError as e:
            if tmp_name is not None and path.exists(tmp_name):
                unlink(tmp_name)
            raise PersistFailed(
                f"failed to open login file '{self.login_file}' for writing: {e}",
                record=record,
            )
