"""
Non-short-circuiting collection of per-entity failures.

Reconcilers run every entity of a guild even when earlier ones fail. Each
failure is captured here and, at the end of the pass, surfaced as a single
``ReconciliationError`` that still carries every underlying cause.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, List


class ReconciliationError(ExceptionGroup):
    """Combined failure of one reconciliation pass."""

    def derive(self, excs):
        return ReconciliationError(self.message, excs)


def iter_leaf_errors(exc: BaseException) -> Iterator[BaseException]:
    """Yield the non-group exceptions contained in ``exc``, depth first."""
    if isinstance(exc, BaseExceptionGroup):
        for inner in exc.exceptions:
            yield from iter_leaf_errors(inner)
    else:
        yield exc


class ErrorAggregator:
    """
    Accumulates zero or more failures for one reconciliation scope.

    Usage::

        errors = ErrorAggregator("members of guild 42")
        for member in members:
            with errors.capture(f"member {member.id}"):
                await tick_member(member)
        errors.raise_if_failed()

    ``capture`` only records ``Exception`` subclasses. ``asyncio.CancelledError``
    is a ``BaseException`` and keeps propagating, so shutdown is never absorbed.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._errors: List[Exception] = []

    @property
    def errors(self) -> List[Exception]:
        return list(self._errors)

    @property
    def ok(self) -> bool:
        return not self._errors

    def add(self, exc: Exception) -> None:
        self._errors.append(exc)

    def extend(self, excs: Iterable[Exception]) -> None:
        self._errors.extend(excs)

    @contextmanager
    def capture(self, step: str | None = None) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            if step is not None:
                exc.add_note(f"while processing {step}")
            self._errors.append(exc)

    def raise_if_failed(self) -> None:
        """Return on success, otherwise raise one ``ReconciliationError`` holding every failure."""
        if self._errors:
            raise ReconciliationError(f"{len(self._errors)} failure(s) in {self.label}", list(self._errors))
