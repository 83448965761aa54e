"""Typed errors raised by the record store and scraper clients."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    """Failure categories surfaced to the operator."""

    NOT_FOUND = "not-found"
    INVALID_STATE = "invalid-state"  # Record already approved/rejected
    INVALID_INPUT = "invalid-input"
    NETWORK_ERROR = "network-error"
    TIMEOUT = "timeout"
    PARTIAL_FAILURE = "partial-failure"  # Bulk op, some ids failed
    SERVER_ERROR = "server-error"


# Store error codes that mean "the record is no longer pending"
_STATE_ERROR_CODES = {"INVALID_STATE", "ALREADY_REVIEWED", "ILLEGAL_STATE"}
_NOT_FOUND_MESSAGE = re.compile(r"\bnot found\b", re.IGNORECASE)


class GatewayError(Exception):
    """Raised when a remote call fails."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @classmethod
    def from_response(cls, response: httpx.Response) -> GatewayError:
        """Map an HTTP error response to a typed error.

        The store answers errors with ``{status, errorCode, message, details}``;
        plain-text or empty bodies fall back to the reason phrase.
        """
        code = response.status_code
        error_code = ""
        message = response.reason_phrase or f"HTTP {code}"
        details: dict[str, Any] = {}

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error_code = str(body.get("errorCode") or "").upper()
            message = body.get("message") or message
            if isinstance(body.get("details"), dict):
                details = body["details"]
        elif response.text:
            message = response.text.strip()[:200]

        if code == 404:
            kind = ErrorKind.NOT_FOUND
        elif code == 409 or error_code in _STATE_ERROR_CODES:
            kind = ErrorKind.INVALID_STATE
        elif code in (400, 422):
            kind = ErrorKind.INVALID_INPUT
        elif code >= 500 and _NOT_FOUND_MESSAGE.search(message):
            # Older stores answer a missing record with a 500 "... not found: {id}"
            kind = ErrorKind.NOT_FOUND
        else:
            kind = ErrorKind.SERVER_ERROR

        return cls(kind, message, status_code=code, details=details)

    @classmethod
    def from_transport(cls, exc: httpx.RequestError) -> GatewayError:
        """Map a transport-level failure (no HTTP response) to a typed error."""
        if isinstance(exc, httpx.TimeoutException):
            return cls(ErrorKind.TIMEOUT, f"Request timed out: {exc}")
        return cls(ErrorKind.NETWORK_ERROR, f"Request failed: {exc}")
