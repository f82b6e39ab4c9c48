"""
tracestrict.core.call - Single-result deferred calls.

A storage read returns a :class:`Call` rather than a value. The caller
decides whether to run it in the current thread with :meth:`Call.execute`
or hand the result to a :class:`Callback` with :meth:`Call.enqueue`.
Post-processing, such as re-checking trace IDs, is attached with
:meth:`Call.map` and runs exactly once on a successful result.

Example:
    >>> call = Call.create([1, 2, 3]).map(lambda values: values[:1])
    >>> call.execute()
    [1]
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import Any, Callable, Generic, List, Protocol, TypeVar, runtime_checkable

logger = logging.getLogger(__name__)

V = TypeVar("V")
R = TypeVar("R")

Mapper = Callable[[V], R]


@runtime_checkable
class Callback(Protocol[V]):
    """Receives the outcome of an enqueued call."""

    def on_success(self, value: V) -> None:
        ...

    def on_error(self, error: BaseException) -> None:
        ...


class Call(abc.ABC, Generic[V]):
    """A deferred computation that produces one value.

    Each instance runs at most once. Use :meth:`clone` to run the same
    computation again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._executed = False
        self._canceled = False

    @staticmethod
    def create(value: V) -> "Call[V]":
        """Return a call that yields ``value`` unchanged."""
        return _ConstantCall(value)

    @staticmethod
    def empty_list() -> "Call[List[Any]]":
        """Return a call that yields a new empty list."""
        return _EmptyListCall()

    def execute(self) -> V:
        """Run the call in the current thread and return its result.

        Raises:
            RuntimeError: If the call was already executed or was canceled
        """
        self._mark_executed()
        return self._do_execute()

    def enqueue(self, callback: Callback[V]) -> None:
        """Run the call and report the outcome to ``callback``.

        Failures, including those raised by a mapper, are delivered to
        ``callback.on_error`` instead of being raised.

        Raises:
            RuntimeError: If the call was already executed or was canceled
        """
        self._mark_executed()
        try:
            value = self._do_execute()
        except Exception as e:
            logger.debug("%s failed: %s", self, e)
            callback.on_error(e)
            return
        callback.on_success(value)

    def map(self, mapper: Mapper[V, R]) -> "Call[R]":
        """Return a call that applies ``mapper`` to this call's result."""
        return _MappedCall(self, mapper)

    def cancel(self) -> None:
        """Request that this call not run."""
        self._canceled = True

    def is_canceled(self) -> bool:
        return self._canceled

    @abc.abstractmethod
    def clone(self) -> "Call[V]":
        """Return a new, unexecuted call for the same computation."""

    @abc.abstractmethod
    def _do_execute(self) -> V:
        """Compute the result."""

    def _mark_executed(self) -> None:
        with self._lock:
            if self._executed:
                raise RuntimeError("Already Executed")
            self._executed = True
        if self._canceled:
            raise RuntimeError("Canceled")


class _ConstantCall(Call[V]):

    def __init__(self, value: V) -> None:
        super().__init__()
        self.value = value

    def _do_execute(self) -> V:
        return self.value

    def clone(self) -> "Call[V]":
        return _ConstantCall(self.value)

    def __repr__(self) -> str:
        return f"ConstantCall{{value={self.value!r}}}"


class _EmptyListCall(Call[List[Any]]):

    def _do_execute(self) -> List[Any]:
        return []

    def clone(self) -> "Call[List[Any]]":
        return _EmptyListCall()

    def __repr__(self) -> str:
        return "EmptyListCall{}"


class _MappedCall(Call[R]):
    """Runs a delegate call, then feeds its result through a mapper once."""

    def __init__(self, delegate: Call[Any], mapper: Mapper[Any, R]) -> None:
        super().__init__()
        self.delegate = delegate
        self.mapper = mapper

    def _do_execute(self) -> R:
        result = self.delegate.execute()
        return self.mapper(result)

    def cancel(self) -> None:
        super().cancel()
        self.delegate.cancel()

    def is_canceled(self) -> bool:
        return self._canceled or self.delegate.is_canceled()

    def clone(self) -> "Call[R]":
        return _MappedCall(self.delegate.clone(), self.mapper)

    def __repr__(self) -> str:
        return f"Mapped{{call={self.delegate!r}, mapper={self.mapper!r}}}"
