"""
Per-token holder of resolved instances, keyed by context and consumer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Iterator
from typing import Any
from weakref import WeakKeyDictionary

from .bindings import ProviderRecord, Scope
from .context import STATIC_CONTEXT, ContextId
from .errors import UnknownElementError
from .keys import Token, token_name

# Consumer key for entries that are shared by every consumer.
SHARED = None


class InstanceWrapper:
    """
    Holds the instances of one provider within one module.

    Every entry is an ``asyncio.Future`` (a task while construction is in
    flight), so concurrent requesters of the same key join a single
    construction. Entries are keyed first by context, then by consumer;
    only transient providers use a consumer other than ``SHARED``.
    Contextual entries live in a ``WeakKeyDictionary`` and disappear with
    their ``ContextId``.
    """

    def __init__(self, record: ProviderRecord, host: str):
        self.record = record
        self.host = host
        self._static: dict[Hashable, asyncio.Future[Any]] = {}
        self._contextual: WeakKeyDictionary[ContextId, dict[Hashable, asyncio.Future[Any]]] = (
            WeakKeyDictionary()
        )
        # Filled in by DependencyGraph: scope after promotion, and whether the
        # subtree below this provider has been checked.
        self.effective_scope: Scope | None = None
        self.static_tree = True
        self.validated = False

    @property
    def token(self) -> Token:
        return self.record.token

    @property
    def name(self) -> str:
        return token_name(self.record.token)

    def replace(self, record: ProviderRecord) -> None:
        """Swap the record before anything has been built from it."""
        self.record = record
        self.effective_scope = None
        self.static_tree = True
        self.validated = False
        self._static.clear()
        self._contextual.clear()

    def _entries(
        self, context: ContextId, create: bool = False
    ) -> dict[Hashable, asyncio.Future[Any]] | None:
        if context.is_static:
            return self._static
        entries = self._contextual.get(context)
        if entries is None and create:
            entries = {}
            self._contextual[context] = entries
        return entries

    def get_future(
        self, context: ContextId, consumer: Hashable = SHARED
    ) -> asyncio.Future[Any] | None:
        entries = self._entries(context)
        return entries.get(consumer) if entries is not None else None

    def set_future(
        self, context: ContextId, future: asyncio.Future[Any], consumer: Hashable = SHARED
    ) -> asyncio.Future[Any]:
        """
        Store ``future`` unless an entry already exists; return the stored one.

        Must be called without an intervening ``await`` after the lookup that
        found no entry, so that each key is written exactly once.
        """
        entries = self._entries(context, create=True)
        assert entries is not None
        existing = entries.get(consumer)
        if existing is not None:
            return existing
        entries[consumer] = future
        future.add_done_callback(lambda done: self._discard_failed(context, consumer, done))
        return future

    def _discard_failed(
        self, context: ContextId, consumer: Hashable, future: asyncio.Future[Any]
    ) -> None:
        # Retrieving the exception marks it handled even if every waiter went away.
        if not future.cancelled() and future.exception() is None:
            return
        entries = self._entries(context)
        if entries is not None and entries.get(consumer) is future:
            del entries[consumer]

    def set_instance(
        self, instance: Any, context: ContextId = STATIC_CONTEXT, consumer: Hashable = SHARED
    ) -> None:
        """Store an already built instance, overwriting any previous entry."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        future.set_result(instance)
        entries = self._entries(context, create=True)
        assert entries is not None
        entries[consumer] = future

    def is_resolved(self, context: ContextId = STATIC_CONTEXT, consumer: Hashable = SHARED) -> bool:
        future = self.get_future(context, consumer)
        if future is None or not future.done():
            return False
        return not future.cancelled() and future.exception() is None

    def is_pending(self, context: ContextId = STATIC_CONTEXT, consumer: Hashable = SHARED) -> bool:
        future = self.get_future(context, consumer)
        return future is not None and not future.done()

    def get_instance(self, context: ContextId = STATIC_CONTEXT, consumer: Hashable = SHARED) -> Any:
        """Return a completed instance or raise ``UnknownElementError``."""
        if not self.is_resolved(context, consumer):
            raise UnknownElementError(self.token)
        future = self.get_future(context, consumer)
        assert future is not None
        return future.result()

    def static_instances(self) -> Iterator[Any]:
        """Completed instances held under the static context, one per consumer."""
        for future in list(self._static.values()):
            if future.done() and not future.cancelled() and future.exception() is None:
                yield future.result()

    def context_count(self) -> int:
        """Number of live non-static contexts holding entries."""
        return len(self._contextual)

    def __repr__(self) -> str:
        return f"InstanceWrapper({self.name} in {self.host})"
