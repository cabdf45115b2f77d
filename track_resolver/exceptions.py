"""Failure kinds raised while resolving or opening tracks."""

from enum import Enum
from typing import Optional


class Severity(Enum):
    """How surprising a failure is."""

    COMMON = "common"
    """The content exists but is not something we can play."""

    SUSPICIOUS = "suspicious"
    """Network trouble or an upstream API that no longer looks like we expect."""


class ResolveError(Exception):
    """Base error for resolve and stream-open failures."""

    severity = Severity.SUSPICIOUS

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} ({self.cause})"
        return self.message


class NotPlayableContent(ResolveError):
    """URL matched, but it does not point at a playable video."""

    severity = Severity.COMMON


class UpstreamFailure(ResolveError):
    """Network error, bad status, unparseable response or API drift."""

    severity = Severity.SUSPICIOUS
