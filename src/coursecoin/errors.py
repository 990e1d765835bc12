"""Domain exceptions. Each carries the HTTP status it maps to."""

from __future__ import annotations


class CourseCoinError(Exception):
    """Base class for errors raised by the reward and ledger services."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(CourseCoinError):
    """A referenced user, unit, result or wallet does not exist."""

    status_code = 404


class InvalidInputError(CourseCoinError, ValueError):
    """Input rejected before touching the store (score range, amounts, times)."""

    status_code = 400


class InsufficientBalanceError(CourseCoinError):
    """A redemption would drive the wallet balance below zero."""

    status_code = 409


class LedgerStoreError(CourseCoinError):
    """The store refused to commit a ledger-affecting change; nothing was applied."""

    status_code = 500
