#!/usr/bin/env python3

# common.py - QVS CLI client function library, Common functions
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

from click import echo, progressbar
from math import ceil
from os.path import getsize
from requests.exceptions import RequestException
from time import time

from qvs.cli.helpers import VERSION
from qvs.lib.errors import ApplicationError, InvalidResponse, RequestFailed


# Endpoint families; each one selects how a request is authenticated
FAMILY_AUTH = "auth"
FAMILY_QVS = "qvs"
FAMILY_FILEMANAGER = "filemanager"
FAMILY_NETMGR = "netmgr"

QTS_AUTH_LOGIN = "/cgi-bin/authLogin.cgi"
QTS_FILE_STATION = "/cgi-bin/filemanager/utilRequest.cgi"
QTS_NET_MANAGER = "/netmgr/api.cgi"
QVS_ROOT = "/qvs/"

QVS_STATUS_OK = 0
QVS_STATUS_DEFERRED = 8

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


def format_bytes(size_bytes):
    byte_unit_matrix = {
        "B": 1,
        "K": 1024,
        "M": 1024 * 1024,
        "G": 1024 * 1024 * 1024,
        "T": 1024 * 1024 * 1024 * 1024,
        "P": 1024 * 1024 * 1024 * 1024 * 1024,
    }
    human_bytes = "0B"
    for unit in sorted(byte_unit_matrix, key=byte_unit_matrix.get):
        formatted_bytes = int(ceil(size_bytes / byte_unit_matrix[unit]))
        if formatted_bytes < 10000:
            human_bytes = "{}{}".format(formatted_bytes, unit)
            break
    return human_bytes


class UploadProgressBar(object):
    def __init__(self, filename, end_message="", end_nl=True, config=None):
        if config is None:
            config = dict()
        # Progress is informational; --quiet and --silent both hide it
        self.hidden = config.get("quiet", False) or config.get("silent", False)

        file_size = getsize(filename)
        file_size_human = format_bytes(file_size)
        self.echo("Uploading file (total size {})...".format(file_size_human))

        self.length = file_size
        self.time_last = int(round(time() * 1000)) - 1000
        self.bytes_last = 0
        self.bytes_diff = 0
        self.is_end = False

        self.end_message = end_message
        self.end_nl = end_nl
        if not self.end_nl:
            self.end_suffix = " "
        else:
            self.end_suffix = ""

        self.bar = progressbar(
            length=self.length, width=20, show_eta=True, hidden=self.hidden
        )

    def echo(self, message="", nl=True):
        if not self.hidden:
            echo(message, nl=nl)

    def update(self, monitor):
        bytes_cur = monitor.bytes_read
        self.bytes_diff += bytes_cur - self.bytes_last
        if self.bytes_last == bytes_cur:
            self.is_end = True
        self.bytes_last = bytes_cur

        time_cur = int(round(time() * 1000))
        if (time_cur - 1000) > self.time_last:
            self.time_last = time_cur
            self.bar.update(self.bytes_diff)
            self.bytes_diff = 0

        if self.is_end:
            self.bar.update(self.bytes_diff)
            self.bytes_diff = 0
            self.echo()
            self.echo()
            if self.end_message:
                self.echo(self.end_message + self.end_suffix, nl=self.end_nl)


def debug_response(config, uri, response):
    """
    Echo request and response details to stderr when debugging is enabled
    """

    if not config.get("debug", False):
        return

    echo("API endpoint: {}".format(uri), err=True)
    if response is None:
        echo("Response code: N/A", err=True)
    else:
        echo("Response code: {}".format(response.status_code), err=True)
        echo("Response headers: {}".format(response.headers), err=True)
    echo(err=True)


def request_headers(session, family, headers=None):
    """
    Build the headers for a request to {family}, without overriding any caller-supplied ones
    """

    request_headers = {"User-Agent": f"qvscli/{VERSION}"}

    if family == FAMILY_QVS:
        request_headers["Content-Type"] = "application/json"
        request_headers["Accept"] = "application/json"
        request_headers["Referer"] = session.base_url
        request_headers["X-CSRFToken"] = session.record.qvs_csrftoken
    elif family in [FAMILY_AUTH, FAMILY_FILEMANAGER]:
        request_headers["Content-Type"] = FORM_CONTENT_TYPE

    if headers:
        request_headers.update(headers)

    return request_headers


def call_api(
    session,
    operation,
    request_uri,
    family=FAMILY_QVS,
    headers=None,
    params=None,
    data=None,
):
    """
    Issue an authenticated request to {request_uri} on the NAS

    Raises NotLoggedIn before touching the network if the session cannot serve
    {family}, RequestFailed on transport errors or any HTTP status but 200, and
    for the QVS family ApplicationError if the response envelope status is
    neither OK nor deferred.
    """

    session.require(family)

    uri = "{}{}".format(session.base_url, request_uri)

    request_params = dict()
    if family in [FAMILY_FILEMANAGER, FAMILY_NETMGR]:
        request_params["sid"] = session.record.qts_sessionid
    if params:
        request_params.update(params)

    try:
        response = session.http.request(
            operation.upper(),
            uri,
            headers=request_headers(session, family, headers),
            params=request_params,
            data=data,
        )
    except RequestException as e:
        debug_response(session.config, uri, None)
        raise RequestFailed(None, "Failed to connect to the API: {}".format(e))

    debug_response(session.config, uri, response)

    if response.status_code != 200:
        raise RequestFailed(response.status_code)

    if family == FAMILY_QVS:
        check_envelope(response)

    return response


def check_envelope(response):
    """
    Validate the QVS JSON envelope of {response}; the decoded body stays cached on the response
    """

    try:
        envelope = response.json()
        status = int(envelope["status"])
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidResponse("invalid response from QVS API: {}".format(e))

    if status not in [QVS_STATUS_OK, QVS_STATUS_DEFERRED]:
        raise ApplicationError(status, envelope.get("detail"))

    return envelope


def get_data(response):
    """
    Return the "data" field of a validated QVS envelope
    """

    return check_envelope(response).get("data")
