"""Identifier futures and their aggregation.

Resource identifiers arrive asynchronously as ``concurrent.futures.Future``
objects. ``aggregate`` folds an ordered sequence of them into one future of a
list, which is how per-subnet identifiers become the component's
``public_subnet_ids`` and ``private_subnet_ids`` outputs.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from concurrent.futures import CancelledError, Future, InvalidStateError
from typing import Any, TypeVar

T = TypeVar("T")


def resolved(value: T) -> Future[T]:
    """Return a future that has already resolved to ``value``."""
    fut: Future[T] = Future()
    fut.set_result(value)
    return fut


def failed(exc: BaseException) -> Future[Any]:
    """Return a future that has already failed with ``exc``."""
    fut: Future[Any] = Future()
    fut.set_exception(exc)
    return fut


def outcome(fut: Future[Any]) -> BaseException | None:
    """Return the error a finished future ended with, or ``None`` on success.

    A cancelled future yields a ``CancelledError``.
    """
    if fut.cancelled():
        return CancelledError("future was cancelled")
    return fut.exception()


def settle(
    fut: Future[T], result: T | None = None, exc: BaseException | None = None
) -> bool:
    """Resolve or fail ``fut`` unless it is already done.

    Returns:
        True if this call settled the future, False if it was already done
        (for example cancelled by the caller).
    """
    try:
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(result)  # type: ignore[arg-type]
    except InvalidStateError:
        return False
    return True


def aggregate(pending: Sequence[Future[T]]) -> Future[list[T]]:
    """Combine futures into one future of their results, in input order.

    The combined future resolves once every input has resolved. The first
    input to fail (or be cancelled) fails it with that same error; later
    failures are ignored. Inputs may resolve in any order.

    Args:
        pending: Ordered futures, e.g. one identifier future per subnet.

    Returns:
        Future resolving to the list of results aligned with ``pending``.
    """
    combined: Future[list[T]] = Future()
    total = len(pending)
    if total == 0:
        combined.set_result([])
        return combined

    results: list[Any] = [None] * total
    state = {"remaining": total, "finished": False}
    lock = threading.Lock()

    def _on_done(index: int, fut: Future[T]) -> None:
        error = outcome(fut)
        # Decide under the lock, settle outside it: settling runs callbacks.
        with lock:
            if state["finished"]:
                return
            if error is None:
                results[index] = fut.result()
                state["remaining"] -= 1
                if state["remaining"]:
                    return
            state["finished"] = True
        if error is not None:
            settle(combined, exc=error)
        else:
            settle(combined, list(results))

    for index, fut in enumerate(pending):
        fut.add_done_callback(lambda f, i=index: _on_done(i, f))
    return combined
