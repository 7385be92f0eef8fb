from __future__ import annotations


class AppError(Exception):
    """Base application error; ``detail`` is safe to show to the caller."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    """Malformed client input, e.g. an undecodable image payload."""
