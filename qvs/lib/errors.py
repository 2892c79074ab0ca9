#!/usr/bin/env python3

# errors.py - QVS CLI client function library, Exceptions
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


class QVSError(Exception):
    """
    Base class for all qvscli errors
    """

    pass


class RecordNotFound(QVSError):
    pass


class CorruptRecord(QVSError):
    pass


class NotLoggedIn(QVSError):
    def __init__(self, message="not logged in, run 'qvscli login'"):
        super().__init__(message)


class InvalidCredentials(QVSError):
    def __init__(self, message="invalid credentials, run 'qvscli login' to try again"):
        super().__init__(message)


class SessionBootstrapFailed(QVSError):
    pass


class PersistFailed(QVSError):
    """
    The login file could not be written; the in-memory session is still valid
    """

    def __init__(self, message, record=None):
        super().__init__(message)
        self.record = record


class RequestFailed(QVSError):
    def __init__(self, status_code, message=None):
        if message is None:
            message = f"error making request, HTTP status code: {status_code}"
        super().__init__(message)
        self.status_code = status_code


class ApplicationError(QVSError):
    def __init__(self, code, detail=None):
        super().__init__(
            f"error making request, response status was {code}: {detail}"
        )
        self.code = code
        self.detail = detail


class InvalidResponse(QVSError):
    pass


class ISOCreateFailed(QVSError):
    pass
