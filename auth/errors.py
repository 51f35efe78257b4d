"""
auth/errors.py -- Exception taxonomy for the auth subsystem.

Every failure the auth layer can produce is an AuthError subclass carrying the
HTTP status, a machine-readable code, and a human message. The API layer has a
single exception handler for AuthError (api/main.py) that renders these into
the standard error envelope, so route handlers never map statuses by hand.

Token-level failures (MalformedToken, BadSignature, Expired) share the
TokenError base. The Access Guard folds all of them, plus a missing live
session, into InvalidToken and keeps the original code as ``reason``.

SessionNotFound is deliberately NOT an AuthError: it is the Session
Directory's "no live session" signal, and the guard decides how to surface it.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    status_code: int = 401
    code: str = "unauthorized"
    message: str = "Authentication required."

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        self.message = message or type(self).message
        self.reason = reason
        super().__init__(self.message)


class MissingCredentials(AuthError):
    code = "missing_credentials"
    message = "empty Authorization header"


class MalformedHeader(AuthError):
    code = "malformed_header"
    message = "wrong header value"


class TokenError(AuthError):
    code = "invalid_token"
    message = "invalid token"


class MalformedToken(TokenError):
    code = "malformed_token"
    message = "malformed token"


class BadSignature(TokenError):
    code = "bad_signature"
    message = "token signature is invalid"


class Expired(TokenError):
    code = "token_expired"
    message = "token is expired"


class InvalidToken(AuthError):
    """Authentication failed after the header was parsed.

    reason holds the code of the underlying failure (e.g. "token_expired",
    "no_live_session") for logs and the error envelope's detail field.
    """

    code = "invalid_token"
    message = "invalid token"


class WrongCredentials(AuthError):
    code = "wrong_credentials"
    message = "wrong username or password"


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    message = "403 Forbidden"


class UserExists(AuthError):
    status_code = 400
    code = "user_exists"
    message = "user already exists"


class StorageFailure(AuthError):
    status_code = 500
    code = "storage_failure"
    message = "Internal Server Error"


class HashingFailure(AuthError):
    status_code = 500
    code = "hashing_failure"
    message = "Internal Server Error"


class SessionNotFound(LookupError):
    """No live session on record for the (subject id, role[, token]) lookup."""
