"""Pytest fixtures for qvscli tests."""
from json import dumps as jdumps

import pytest
from requests import Session
from requests.models import Response

from qvs.lib.session import QVSSession, cookie_domain
from qvs.lib.store import CredentialStore, SessionRecord


QTS_URL = "https://nas.example.com"


def auth_xml(auth_passed=1, need_2sv=0, sid="", username="", pw_status=0):
    """Builds an authLogin.cgi XML document."""
    return (
        '<?xml version="1.0" encoding="UTF-8" ?>'
        '<QDocRoot version="1.0">'
        f"<authPassed><![CDATA[{auth_passed}]]></authPassed>"
        f"<need_2sv><![CDATA[{need_2sv}]]></need_2sv>"
        f"<pw_status><![CDATA[{pw_status}]]></pw_status>"
        f"<authSid><![CDATA[{sid}]]></authSid>"
        f"<username><![CDATA[{username}]]></username>"
        "</QDocRoot>"
    ).encode("utf-8")


def make_response(status_code=200, content=b"", json=None, headers=None):
    """Builds a canned requests Response."""
    response = Response()
    response.status_code = status_code
    if json is not None:
        content = jdumps(json)
        headers = dict(headers or {}, **{"Content-Type": "application/json"})
    if isinstance(content, str):
        content = content.encode("utf-8")
    response._content = content
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


class FakeSession(Session):
    """A requests Session that records calls and replays queued responses.

    Cookies queued with a response are stored in the jar the way the
    transport stores Set-Cookie headers.
    """

    def __init__(self):
        super().__init__()
        self.calls = []
        self.responses = []

    def queue(self, status_code=200, content=b"", json=None, cookies=None, error=None):
        if error is not None:
            self.responses.append((error, {}))
        else:
            self.responses.append(
                (make_response(status_code, content, json), cookies or {})
            )

    def request(self, method, url, **kwargs):
        if hasattr(kwargs.get("data"), "read"):
            # Streamed bodies are consumed while their file is still open
            kwargs["body"] = kwargs["data"].read()
        self.calls.append(
            {
                "method": method.upper(),
                "url": url,
                "cookies": {c.name: c.value for c in self.cookies},
                **kwargs,
            }
        )
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")

        response, cookies = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        for name, value in cookies.items():
            self.cookies.set(name, value, domain=cookie_domain(url), path="/")
        response.url = url
        return response


@pytest.fixture
def config(tmp_path):
    """Returns a CLI configuration pointing at a temporary login file."""
    return {
        "qts_url": QTS_URL,
        "qvs_disks_dir": "/VirtualMachines/disks",
        "qvs_images_dir": "/VirtualMachines/images",
        "login_file": str(tmp_path / ".qvs_login"),
        "verify_ssl": True,
        "qvs_api": True,
        "debug": False,
    }


@pytest.fixture
def store(config):
    return CredentialStore(config["login_file"])


@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def complete_record():
    """Returns a session record with both legacy and QVS fields."""
    return SessionRecord(
        qts_url=QTS_URL,
        username="bob",
        qts_sessionid="ABC",
        qvs_csrftoken="tok123",
        qvs_sessionid="sess456",
    )


@pytest.fixture
def active_session(config, store, http, complete_record):
    """Returns an Active QVSSession; its validation request is already consumed."""
    store.save(complete_record)
    session = QVSSession(config, store=store, http=http)
    http.queue(content=auth_xml(auth_passed=1))
    session.ensure_login()
    http.calls.clear()
    return session
