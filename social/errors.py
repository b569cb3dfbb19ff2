"""Typed failures raised by the social core.

Each failure carries a stable ``kind`` for API payloads and the HTTP status
the blueprints answer with.  None of them are fatal to the process.
"""

from __future__ import annotations

from typing import Dict


class SocialError(Exception):
    kind = "SocialError"
    status = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> Dict:
        return {"error": self.kind, "message": self.message}


class NotFound(SocialError):
    kind = "NotFound"
    status = 404


class AccessDenied(SocialError):
    kind = "AccessDenied"
    status = 403


class InvalidOperation(SocialError):
    kind = "InvalidOperation"
    status = 400


class AlreadyRequested(SocialError):
    kind = "AlreadyRequested"
    status = 409


class AlreadyFollowing(SocialError):
    kind = "AlreadyFollowing"
    status = 409


class NotFollowing(SocialError):
    kind = "NotFollowing"
    status = 409


class NoPendingRequest(SocialError):
    kind = "NoPendingRequest"
    status = 409


class ValidationError(SocialError):
    kind = "ValidationError"
    status = 400


class Conflict(SocialError):
    kind = "Conflict"
    status = 409


class StorageError(SocialError):
    """Unrecoverable database failure; the caller should retry the request."""

    kind = "StorageError"
    status = 503


class Unauthenticated(SocialError):
    kind = "Unauthenticated"
    status = 401
