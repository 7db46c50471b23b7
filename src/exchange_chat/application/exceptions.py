from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class RelayError(AppError):
    """A chat message could not be persisted; nothing was delivered."""


class IdentityMismatchError(AppError):
    """A connection tried to claim an identity other than its own."""
