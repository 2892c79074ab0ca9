#!/usr/bin/env python3

# session.py - QVS CLI client function library, QTS/QVS session handling
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

from base64 import b64encode
from lxml.etree import XMLSyntaxError, fromstring
from requests import Session
from requests.exceptions import RequestException
from time import time
from urllib.parse import urlparse
from urllib3 import disable_warnings

from qvs.lib.common import (
    FAMILY_AUTH,
    FAMILY_FILEMANAGER,
    FAMILY_NETMGR,
    FAMILY_QVS,
    QTS_AUTH_LOGIN,
    QVS_ROOT,
    debug_response,
    request_headers,
)
from qvs.lib.errors import (
    CorruptRecord,
    InvalidCredentials,
    InvalidResponse,
    NotLoggedIn,
    QVSError,
    RecordNotFound,
    RequestFailed,
    SessionBootstrapFailed,
)
from qvs.lib.store import CredentialStore, SessionRecord


STATE_UNINITIALIZED = "uninitialized"
STATE_LOADED = "loaded"
STATE_EMPTY = "empty"
STATE_ACTIVE = "active"

LEGACY_USER_COOKIE = "NAS_USER"
LEGACY_SID_COOKIE = "NAS_SID"
QVS_CSRF_COOKIE = "csrftoken"
QVS_SID_COOKIE = "sessionid"


def parse_auth_response(content):
    """
    Parse an authLogin.cgi XML document into the fields qvscli uses

    Raises InvalidResponse if {content} is not an XML document.
    """

    try:
        root = fromstring(content)
    except (XMLSyntaxError, ValueError) as e:
        raise InvalidResponse("invalid response from QTS login: {}".format(e))

    auth = dict()
    for field in ["need_2sv", "pw_status", "authPassed"]:
        try:
            auth[field] = int((root.findtext(field) or "0").strip())
        except ValueError:
            auth[field] = 0
    for field in ["authSid", "username"]:
        auth[field] = (root.findtext(field) or "").strip()

    return auth


def cookie_domain(url):
    host = urlparse(url).hostname or ""
    # http.cookiejar matches dotless hosts as "<host>.local"
    if "." not in host:
        host = f"{host}.local"
    return host


class LoginChallenge(object):
    """
    The credentials carried across the attempts of one login handshake
    """

    AWAITING_CREDENTIALS = "awaiting_credentials"
    AWAITING_SECURITY_CODE = "awaiting_security_code"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"

    def __init__(self, username, password):
        self.username = username.strip()
        self.password = b64encode(password.encode("utf-8")).decode("ascii")
        self.security_code = ""
        self.state = self.AWAITING_CREDENTIALS

    def form(self):
        return {
            "user": self.username,
            "pwd": self.password,
            "serviceKey": "1",
            "security_code": self.security_code,
        }

    def advance(self, auth):
        if auth.get("authPassed") == 1:
            self.state = self.AUTHENTICATED
        elif auth.get("need_2sv") == 1:
            self.state = self.AWAITING_SECURITY_CODE
        else:
            self.state = self.FAILED
        return self.state


class QVSSession(object):
    """
    Owns the QTS and QVS session state of one qvscli process

    The cookie jar of {http} is only ever modified here, during load and login.
    """

    def __init__(self, config, store=None, http=None):
        self.config = config
        self.state = STATE_UNINITIALIZED

        if store is None:
            store = CredentialStore(config["login_file"])
        self.store = store

        if http is None:
            http = Session()
            http.verify = config.get("verify_ssl", True)
            if not http.verify:
                disable_warnings()
        self.http = http

        self.base_url = config.get("qts_url", "").strip().rstrip("/")
        self.record = SessionRecord(qts_url=self.base_url)

        try:
            record = self.store.load()
        except (RecordNotFound, CorruptRecord):
            record = None

        if not self.base_url and record is not None:
            self.base_url = record.qts_url.strip().rstrip("/")

        # A stored session only applies to the NAS it was issued by
        if record is not None and record.qts_url.rstrip("/") in ["", self.base_url]:
            record.qts_url = self.base_url
            self.record = record
            self._seed_cookies()
            self.state = STATE_LOADED
        else:
            self.http.cookies.clear()
            self.state = STATE_EMPTY

    @property
    def qvs_required(self):
        return self.config.get("qvs_api", True)

    def _set_cookie(self, name, value):
        self.http.cookies.set(name, value, domain=cookie_domain(self.base_url), path="/")

    def _get_cookie(self, name):
        value = ""
        for cookie in self.http.cookies:
            if cookie.name == name:
                value = cookie.value
        return value

    def _seed_cookies(self):
        self.http.cookies.clear()
        if self.record.qts_sessionid:
            self._set_cookie(LEGACY_USER_COOKIE, self.record.username)
            self._set_cookie(LEGACY_SID_COOKIE, self.record.qts_sessionid)
        if self.record.is_complete():
            self._set_cookie(QVS_CSRF_COOKIE, self.record.qvs_csrftoken)
            self._set_cookie(QVS_SID_COOKIE, self.record.qvs_sessionid)

    def _post_auth(self, form):
        uri = "{}{}".format(self.base_url, QTS_AUTH_LOGIN)

        try:
            response = self.http.post(
                uri, data=form, headers=request_headers(self, FAMILY_AUTH)
            )
        except RequestException as e:
            debug_response(self.config, uri, None)
            raise RequestFailed(None, "Failed to connect to QTS: {}".format(e))

        debug_response(self.config, uri, response)

        if response.status_code != 200:
            raise RequestFailed(response.status_code)

        return parse_auth_response(response.content)

    def check_login(self):
        """
        Ask QTS whether the current legacy session ID is still valid; never raises
        """

        if not self.base_url or not self.record.qts_sessionid:
            return False

        form = {"sid": self.record.qts_sessionid, "_dc": int(time())}
        try:
            auth = self._post_auth(form)
        except (RequestFailed, InvalidResponse):
            return False

        return auth["authPassed"] == 1

    def ensure_login(self):
        """
        Activate the loaded session, or raise NotLoggedIn if it is missing or expired
        """

        if self.qvs_required and not self.record.is_complete():
            raise NotLoggedIn()
        if not self.check_login():
            raise NotLoggedIn()

        self.state = STATE_ACTIVE
        return self

    def login(self, username, password, code_prompt):
        """
        Perform the QTS login handshake and, if required, bootstrap the QVS session

        {code_prompt} is called with no arguments each time QTS asks for a
        second-factor security code, and must return the code. The resulting
        record is persisted; PersistFailed is raised after the session is
        already active if that fails.
        """

        if not self.base_url:
            raise QVSError("no QTS URL configured, set --qts-url or QVSCLI_QTS_URL")

        challenge = LoginChallenge(username, password)

        self.http.cookies.clear()
        self.record = SessionRecord(qts_url=self.base_url)
        self.state = STATE_EMPTY

        while True:
            auth = self._post_auth(challenge.form())
            state = challenge.advance(auth)
            if state == LoginChallenge.AUTHENTICATED:
                break
            if state == LoginChallenge.FAILED:
                raise InvalidCredentials()
            challenge.security_code = code_prompt().strip()

        record = SessionRecord(
            qts_url=self.base_url,
            username=auth["username"] or challenge.username,
            qts_sessionid=auth["authSid"],
        )
        self.record = record
        self._set_cookie(LEGACY_USER_COOKIE, record.username)
        self._set_cookie(LEGACY_SID_COOKIE, record.qts_sessionid)

        if self.qvs_required:
            csrftoken, sessionid = self._bootstrap_qvs()
            record.qvs_csrftoken = csrftoken
            record.qvs_sessionid = sessionid

        self.state = STATE_ACTIVE
        self.store.save(record)

        return record

    def _bootstrap_qvs(self):
        uri = "{}{}".format(self.base_url, QVS_ROOT)

        try:
            response = self.http.get(uri, headers=request_headers(self, None))
        except RequestException as e:
            raise SessionBootstrapFailed(
                "failed to open QVS session at {}: {}".format(uri, e)
            )
        debug_response(self.config, uri, response)

        # Read from the jar; the transport has already consumed Set-Cookie
        csrftoken = self._get_cookie(QVS_CSRF_COOKIE)
        sessionid = self._get_cookie(QVS_SID_COOKIE)
        if not csrftoken or not sessionid:
            raise SessionBootstrapFailed(
                "failed to obtain QVS CSRF token and session ID from {}".format(uri)
            )

        return csrftoken, sessionid

    def require(self, family):
        """
        Raise NotLoggedIn unless this session can authenticate requests to {family}
        """

        if family == FAMILY_QVS:
            if self.state != STATE_ACTIVE or not self.record.is_complete():
                raise NotLoggedIn()
        elif family in [FAMILY_FILEMANAGER, FAMILY_NETMGR]:
            if not self.record.qts_sessionid:
                raise NotLoggedIn()
