"""
Token definitions for identifying injectable things.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# A token is a class object, an InjectionToken, or a plain string key.
Token = Any


@dataclass(frozen=True)
class InjectionToken:
    """An explicit, named key for values that have no class of their own."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class OptionalDependency:
    """Marks a dependency that resolves to None when no provider is reachable."""

    token: Token

    def __str__(self) -> str:
        return f"{token_name(self.token)}?"


@dataclass(frozen=True, eq=False)
class ForwardRef:
    """A lazily evaluated reference, used to declare cyclic module imports."""

    factory: Callable[[], Any]

    def resolve(self) -> Any:
        return self.factory()


# The payload registered for a request context.
REQUEST = InjectionToken("REQUEST")

# The token of the provider that consumes a transient provider.
INQUIRER = InjectionToken("INQUIRER")


def optional(token: Token) -> OptionalDependency:
    """Wrap a dependency token so a missing provider injects None."""
    return OptionalDependency(token)


def forward_ref(factory: Callable[[], Any]) -> ForwardRef:
    """Refer to a module (or token) that is defined later in the file."""
    return ForwardRef(factory)


def unwrap(dependency: Token) -> tuple[Token, bool]:
    """Return the underlying token of a dependency and whether it is optional."""
    if isinstance(dependency, OptionalDependency):
        return dependency.token, True
    return dependency, False


def token_name(token: Token) -> str:
    """Human-readable name of a token, used in errors and logs."""
    if isinstance(token, str):
        return token
    if isinstance(token, InjectionToken | OptionalDependency):
        return str(token)
    return getattr(token, "__name__", repr(token))


def token_id(token: Token) -> str:
    """Stable textual identity of a token, used to derive module tokens."""
    if isinstance(token, str):
        return f"str:{token}"
    if isinstance(token, InjectionToken):
        return f"token:{token.name}"
    module = getattr(token, "__module__", None)
    qualname = getattr(token, "__qualname__", None)
    if module is not None and qualname is not None:
        return f"type:{module}.{qualname}"
    return f"repr:{token!r}"
