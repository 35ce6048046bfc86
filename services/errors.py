"""Failure taxonomy shared by the catalog client, the transport and the worker.

Business outcomes (ingredient already owned, nothing cached, ...) are not
exceptions at all; they are ``services.commands.Outcome`` values.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional


class BotError(Exception):
    """Base class for classified failures."""


class FatalError(BotError):
    """Client-class failure from a collaborator. Retrying cannot help."""


class TransientError(BotError):
    """Collaborator unavailable or timed out. Safe to retry later."""


class InvariantViolation(BotError):
    """Malformed input that should never reach a handler (bad cursor, bad update)."""


class ApiError(BotError):
    """HTTP-level failure from a remote API, carrying the status for classification."""

    def __init__(self, status: int, status_text: str = "", description: Optional[str] = None):
        self.status = int(status)
        self.status_text = status_text
        self.description = description
        message = f"API call failed with HTTP {self.status} {status_text}".strip()
        if description:
            message = f"{message}: {description}"
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500 and self.status not in (408, 429)


class FailureKind(str, Enum):
    FATAL = "fatal"
    RETRY = "retry"
    IGNORE = "ignore"


def classify_failure(exc: BaseException) -> FailureKind:
    if isinstance(exc, InvariantViolation):
        return FailureKind.IGNORE
    if isinstance(exc, FatalError):
        return FailureKind.FATAL
    if isinstance(exc, ApiError):
        return FailureKind.FATAL if exc.is_client_error else FailureKind.RETRY
    if isinstance(exc, (TransientError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return FailureKind.RETRY
    # Unknown failures get the benefit of the doubt; the attempt limit bounds them.
    return FailureKind.RETRY
