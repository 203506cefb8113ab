"""A per-request database transaction carried in the current context."""

from __future__ import annotations

import contextlib
import contextvars
import threading
from collections.abc import Callable, Iterator
from typing import Any


class TransactionMissingError(LookupError):
    """Raised when no transaction is set in the current context."""

    def __init__(self) -> None:
        super().__init__("Database transaction for request missing in context")


class TransactionNoDBError(LookupError):
    """Raised when the transaction in context has no database."""

    def __init__(self) -> None:
        super().__init__("Transaction in context, but DB is nil")


class DatabaseUnavailableError(ConnectionError):
    """Raised when the database connection of a transaction is gone."""

    def __init__(self) -> None:
        super().__init__("Database connection not available")


class CommitFailedError(RuntimeError):
    """Raised by the interceptor when the transaction cannot be committed."""

    def __init__(self) -> None:
        super().__init__("failed to commit transaction")


_current_txn: contextvars.ContextVar[Transaction | None] = contextvars.ContextVar(
    "apptoolkit_transaction", default=None
)


class Transaction:
    """Lazily opened transaction shared by everything serving one request.

    ``parent`` is a database with a ``begin(options)`` method that returns a
    session with ``commit()`` and ``rollback()``; a session whose ``closed``
    attribute is true has lost its connection.
    """

    def __init__(self, parent: Any = None) -> None:
        self.parent = parent
        self._lock = threading.Lock()
        self._current: Any = None
        self._after_commit: list[Callable[[], Any]] = []

    @property
    def current(self) -> Any:
        """The open session, or None."""
        return self._current

    def add_after_commit_hook(self, *hooks: Callable[[], Any]) -> None:
        """Register callables to run after a successful commit."""
        self._after_commit.extend(hooks)

    def _begin(self, options: Any) -> Any:
        with self._lock:
            if self._current is None:
                self._current = self.parent.begin(options)
            return self._current

    def begin(self) -> Any:
        """Open the transaction once and return its session."""
        return self._begin(None)

    def begin_with_options(self, options: Any) -> Any:
        """Open the transaction once with ``options`` (e.g. isolation level)."""
        return self._begin(options)

    def rollback(self) -> None:
        """Roll back the open transaction, if any, and forget it."""
        with self._lock:
            if self._current is None:
                return
            if getattr(self._current, "closed", False):
                raise DatabaseUnavailableError()
            try:
                self._current.rollback()
            finally:
                self._current = None

    def commit(self) -> None:
        """Commit the open transaction, if any, then run the after-commit hooks."""
        with self._lock:
            if self._current is None or getattr(self._current, "closed", False):
                return
            try:
                self._current.commit()
            finally:
                self._current = None
            for hook in self._after_commit:
                hook()


@contextlib.contextmanager
def use_transaction(txn: Transaction) -> Iterator[Transaction]:
    """Make ``txn`` the transaction of the current context for the ``with`` block."""
    token = _current_txn.set(txn)
    try:
        yield txn
    finally:
        _current_txn.reset(token)


def from_context() -> Transaction | None:
    """Return the transaction of the current context, or None."""
    return _current_txn.get()


def _txn_with_db() -> Transaction:
    txn = from_context()
    if txn is None:
        raise TransactionMissingError()
    if txn.parent is None:
        raise TransactionNoDBError()
    return txn


def begin_from_context() -> Any:
    """Begin the transaction of the current context and return its session."""
    return _txn_with_db().begin()


def begin_with_options_from_context(options: Any) -> Any:
    """Begin the current context's transaction with ``options``."""
    return _txn_with_db().begin_with_options(options)


def _attach_detail(error: BaseException, cause: BaseException) -> None:
    detail = {"code": "INTERNAL", "target": "gorm", "message": str(cause)}
    with contextlib.suppress(AttributeError):
        error.details = [*getattr(error, "details", []), detail]


def transaction_interceptor(db: Any) -> Callable[[Any, Callable[[Any], Any]], Any]:
    """Return an interceptor that runs each handler in a new transaction on ``db``."""
    return transaction_interceptor_txn(Transaction(db))


def transaction_interceptor_txn(
    txn: Transaction,
) -> Callable[[Any, Callable[[Any], Any]], Any]:
    """Return an interceptor that gives each call a fresh copy of ``txn``.

    The handler opens the transaction itself by calling ``begin``. It is
    rolled back if the handler raises and committed otherwise.
    """

    def interceptor(request: Any, handler: Callable[[Any], Any]) -> Any:
        local = Transaction(txn.parent)
        local.add_after_commit_hook(*txn._after_commit)
        with use_transaction(local):
            try:
                response = handler(request)
            except Exception as err:
                try:
                    local.rollback()
                except DatabaseUnavailableError as rollback_error:
                    raise rollback_error from err
                except Exception as rollback_error:
                    _attach_detail(err, rollback_error)
                raise
            except BaseException:
                with contextlib.suppress(Exception):
                    local.rollback()
                raise
            try:
                local.commit()
            except Exception as commit_error:
                failure = CommitFailedError()
                _attach_detail(failure, commit_error)
                raise failure from commit_error
            return response

    return interceptor