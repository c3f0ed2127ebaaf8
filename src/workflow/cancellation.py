"""Cooperative cancellation for long-running scans and repairs."""

from __future__ import annotations

from .exceptions import OperationCancelled


class CancellationToken:
    """Flag checked at iteration boundaries of directory scans and history walks.

    Nothing is interrupted mid-step: a rename or marker write that has started
    always finishes before the token is looked at again.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self, operation: str, partial=None) -> None:
        if self._cancelled:
            raise OperationCancelled(operation, partial)


def check(token: CancellationToken | None, operation: str, partial=None) -> None:
    """Raise OperationCancelled if ``token`` is set; a None token never cancels."""
    if token is not None:
        token.raise_if_cancelled(operation, partial)
