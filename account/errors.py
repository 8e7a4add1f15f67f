"""Errors raised by the account manager and its storage adapters."""
from __future__ import annotations

from typing import Optional


class AccountError(Exception):
    """Base class for account lifecycle failures."""


class StorageFailure(AccountError):
    """Raised when a blob cannot be read from or written to storage."""

    def __init__(self, name: str, operation: str, cause: BaseException) -> None:
        self.name = name
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage {operation} of {name!r} failed: {cause}")


class KeyGenerationIncomplete(AccountError):
    """Key generation returned partial or weak material; nothing was stored."""

    def __init__(self, bits: int, reason: str) -> None:
        self.bits = bits
        self.reason = reason
        super().__init__(f"{bits}-bit key generation incomplete: {reason}")


class NotReady(AccountError):
    """The account is missing keys, a registration client or an e-mail address."""


class RegistrationFailure(AccountError):
    """Registration with the ACME server failed for *email*."""

    def __init__(self, email: str, cause: Optional[BaseException] = None) -> None:
        self.email = email
        self.cause = cause
        super().__init__(f"Error registering {email}: {cause}")
