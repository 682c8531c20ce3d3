"""
Errors raised while registering modules and resolving providers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .keys import Token, token_name

if TYPE_CHECKING:
    from .registry import Module


class InjectorError(Exception):
    """Base class for all dependency injection failures."""


class UnknownDependencyError(InjectorError):
    """Raised when a token is not reachable from the requesting module."""

    def __init__(
        self,
        token: Token,
        module: Module | None = None,
        dependent: Token | None = None,
        index: int | None = None,
    ):
        self.token = token
        self.module = module
        self.dependent = dependent
        self.index = index

        if dependent is not None:
            position = f" at index [{index}]" if index is not None else ""
            msg = (
                f"Cannot resolve dependencies of {token_name(dependent)}: "
                f"{token_name(token)}{position} is not available"
            )
        else:
            msg = f"No provider found for {token_name(token)}"
        if module is not None:
            msg += (
                f" in the {module.name} context. Make sure {token_name(token)} is "
                f"declared in {module.name}, or exported by a module {module.name} imports"
            )
        super().__init__(msg)


class CircularDependencyError(InjectorError):
    """Raised when a provider transitively depends on itself."""

    def __init__(self, cycle: list[Token]):
        self.cycle = cycle
        cycle_str = " -> ".join(token_name(token) for token in cycle)
        super().__init__(f"Circular dependency detected: {cycle_str}")


class ProviderInstantiationError(InjectorError):
    """Raised when a provider's constructor or factory fails."""

    def __init__(self, token: Token, cause: BaseException):
        self.token = token
        self.cause = cause
        super().__init__(f"Failed to instantiate {token_name(token)}: {cause!r}")


class InvalidProviderError(InjectorError):
    """Raised when a provider declaration is malformed."""


class UnknownModuleError(InjectorError):
    """Raised when a module token is not present in the registry."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Module {token} is not registered")


class UndefinedForwardRefError(InjectorError):
    """Raised when a forward reference evaluates to nothing."""

    def __init__(self, owner: str):
        self.owner = owner
        super().__init__(
            f"Module {owner} has an import that is undefined. "
            "Check for a forward_ref() returning None or an import cycle between files"
        )


class UnknownElementError(InjectorError):
    """Raised when an instance lookup finds nothing for a token."""

    def __init__(self, token: Token):
        self.token = token
        super().__init__(
            f"{token_name(token)} has no instance available. "
            "It is either unknown, not yet built, or not a static provider"
        )
