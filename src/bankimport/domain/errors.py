"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or illegal transitions."""


class MappingIncompleteError(DomainError):
    """Column mapping is missing fields required to parse a statement."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(mapping_incomplete(missing))


class CommitFailure(DomainError):
    """Ledger write failed; nothing from the batch was written."""

    def __init__(self, attempted: int, cause: Optional[BaseException] = None):
        self.attempted = attempted
        self.cause = cause
        super().__init__(commit_failed(attempted, cause))


class UndoDeniedError(DomainError):
    """Undo rejected by a business rule."""

    def __init__(self, batch_id: int, reason: str):
        self.batch_id = batch_id
        self.reason = reason
        super().__init__(f"Cannot undo import {batch_id}: {reason}")


def business_not_found(business_id: int) -> str:
    """Return message for missing business."""
    return f"Business {business_id} not found"


def batch_not_found(batch_id: int) -> str:
    """Return message for missing import batch."""
    return f"Import {batch_id} not found"


def mapping_incomplete(missing: list[str]) -> str:
    """Return message for an incomplete column mapping."""
    return f"Column mapping is incomplete, missing: {', '.join(missing)}"


def commit_failed(attempted: int, cause: Optional[BaseException]) -> str:
    """Return message for a rolled back commit."""
    plural = "s" if attempted != 1 else ""
    message = (
        f"Import of {attempted} record{plural} failed and was rolled back. "
        "No records were written; it is safe to retry."
    )
    if cause is not None:
        message += f" Cause: {cause}"
    return message


def undo_locked_reason() -> str:
    """Return reason used when a batch is locked by a tax submission."""
    return "locked by tax submission"


def undo_window_reason(window_days: int) -> str:
    """Return reason used when a batch is older than the undo window."""
    return f"outside the {window_days}-day undo window"


def undo_already_undone_reason() -> str:
    """Return reason used when a batch has already been undone."""
    return "already undone"
