"""
Context identifiers that key request-scoped and transient instances.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field

_ids = itertools.count(1)


@dataclass(frozen=True, eq=False)
class ContextId:
    """
    Opaque handle for one logical operation, such as one inbound request.

    Compared by identity. Instances resolved under a context are released
    once the last reference to its ``ContextId`` is dropped.
    """

    id: int = field(default_factory=lambda: next(_ids))

    @property
    def is_static(self) -> bool:
        return self is STATIC_CONTEXT

    def __repr__(self) -> str:
        return "ContextId(static)" if self.is_static else f"ContextId({self.id})"


STATIC_CONTEXT = ContextId(0)


class ContextIdFactory:
    """Mints context identifiers for the boundary that starts an operation."""

    @staticmethod
    def create() -> ContextId:
        return ContextId()
