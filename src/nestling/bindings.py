"""
Provider metadata records and the enums describing them.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .errors import InvalidProviderError
from .keys import Token, token_name


class Scope(Enum):
    """Lifetime policy of a provider's instances."""

    SINGLETON = "singleton"
    REQUEST = "request"
    TRANSIENT = "transient"


class ProviderKind(Enum):
    """How a provider builds its instance."""

    CLASS = "class"
    VALUE = "value"
    FACTORY = "factory"


class ProviderRole(Enum):
    """Which mapping of its module a provider lives in."""

    PROVIDER = "provider"
    CONTROLLER = "controller"
    INJECTABLE = "injectable"


@dataclass(frozen=True)
class ProviderRecord:
    """
    Metadata describing one injectable unit.

    ``dependencies`` is ordered: the resolved instances are passed to the
    class constructor or factory positionally in this order.
    """

    token: Token
    kind: ProviderKind
    implementation: type | Callable[..., Any] | Any
    dependencies: tuple[Token, ...] = ()
    scope: Scope = Scope.SINGLETON
    role: ProviderRole = ProviderRole.PROVIDER

    def __post_init__(self) -> None:
        if self.kind is ProviderKind.VALUE and self.dependencies:
            raise InvalidProviderError(
                f"Value provider {token_name(self.token)} cannot declare dependencies"
            )
        if self.kind is ProviderKind.CLASS and not inspect.isclass(self.implementation):
            raise InvalidProviderError(
                f"Class provider {token_name(self.token)} must be bound to a class, "
                f"got {self.implementation!r}"
            )
        if self.kind is ProviderKind.FACTORY and not callable(self.implementation):
            raise InvalidProviderError(
                f"Factory provider {token_name(self.token)} must be bound to a callable"
            )

    @classmethod
    def for_class(
        cls,
        implementation: type,
        inject: list[Token] | tuple[Token, ...] | None = None,
        scope: Scope | None = None,
        token: Token | None = None,
    ) -> ProviderRecord:
        """
        Create a record that instantiates ``implementation``.

        When ``inject`` or ``scope`` are omitted they are read from the
        class attributes ``__inject__`` and ``__scope__``.
        """
        if inject is None:
            inject = getattr(implementation, "__inject__", ())
        if scope is None:
            scope = getattr(implementation, "__scope__", Scope.SINGLETON)
        return cls(
            token if token is not None else implementation,
            ProviderKind.CLASS,
            implementation,
            tuple(inject),
            scope,
        )

    @classmethod
    def for_value(cls, token: Token, value: Any) -> ProviderRecord:
        """Create a record that always yields ``value``."""
        return cls(token, ProviderKind.VALUE, value)

    @classmethod
    def for_factory(
        cls,
        token: Token,
        factory: Callable[..., Any],
        inject: list[Token] | tuple[Token, ...] = (),
        scope: Scope = Scope.SINGLETON,
    ) -> ProviderRecord:
        """Create a record that calls ``factory``; async factories are awaited."""
        return cls(token, ProviderKind.FACTORY, factory, tuple(inject), scope)

    def with_role(self, role: ProviderRole) -> ProviderRecord:
        return replace(self, role=role)

    def __str__(self) -> str:
        impl_name = getattr(self.implementation, "__name__", type(self.implementation).__name__)
        deps = ", ".join(token_name(dep) for dep in self.dependencies)
        kind = f"{self.kind.value}, {self.scope.value}"
        return f"{token_name(self.token)} -> {impl_name}({deps}) [{kind}]"

