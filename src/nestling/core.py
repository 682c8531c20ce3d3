"""
Module definitions and the builder DSL for declaring providers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from .bindings import ProviderRecord, ProviderRole, Scope
from .keys import ForwardRef, Token

T = TypeVar("T")


class ModuleDef:
    """
    A module declaration: providers, controllers and injectables it owns,
    the modules it imports and the tokens (or modules) it exports.

    Example:
        ```python
        db = ModuleDef("DatabaseModule")
        db.make(Connection).using().func(connect, inject=[Config])
        db.export(Connection)

        app = ModuleDef("AppModule", imports=[db])
        app.make(UserService).using().type(UserService, inject=[Connection])
        ```
    """

    def __init__(
        self,
        name: str,
        imports: list[ModuleDef | ForwardRef] | None = None,
        exports: list[Token | ModuleDef | ForwardRef] | None = None,
        global_: bool = False,
    ) -> None:
        self.name = name
        self.is_global = global_
        self._imports: list[ModuleDef | ForwardRef] = list(imports or [])
        self._exports: list[Token | ModuleDef | ForwardRef] = list(exports or [])
        self._providers: list[ProviderRecord] = []
        self._controllers: list[ProviderRecord] = []
        self._injectables: list[ProviderRecord] = []

    def make(self, token: type[T] | Token) -> BindingBuilder[T]:
        """Declare a provider for the given token."""
        return BindingBuilder(token, self, ProviderRole.PROVIDER)

    def controller(self, token: type[T] | Token) -> BindingBuilder[T]:
        """Declare a controller, an injectable bound to an external entry point."""
        return BindingBuilder(token, self, ProviderRole.CONTROLLER)

    def injectable(self, token: type[T] | Token) -> BindingBuilder[T]:
        """Declare an enhancer (guard, interceptor, pipe, ...) owned by this module."""
        return BindingBuilder(token, self, ProviderRole.INJECTABLE)

    def add(self, record: ProviderRecord) -> None:
        """Add an already built record according to its role."""
        match record.role:
            case ProviderRole.PROVIDER:
                self._providers.append(record)
            case ProviderRole.CONTROLLER:
                self._controllers.append(record)
            case ProviderRole.INJECTABLE:
                self._injectables.append(record)

    def imports(self, *modules: ModuleDef | ForwardRef) -> ModuleDef:
        self._imports.extend(modules)
        return self

    def export(self, *items: Token | ModuleDef | ForwardRef) -> ModuleDef:
        """Expose own providers, imported tokens, or whole imported modules to importers."""
        self._exports.extend(items)
        return self

    @property
    def providers(self) -> list[ProviderRecord]:
        return self._providers.copy()

    @property
    def controllers(self) -> list[ProviderRecord]:
        return self._controllers.copy()

    @property
    def injectables(self) -> list[ProviderRecord]:
        return self._injectables.copy()

    @property
    def import_refs(self) -> list[ModuleDef | ForwardRef]:
        return self._imports.copy()

    @property
    def export_refs(self) -> list[Token | ModuleDef | ForwardRef]:
        return self._exports.copy()

    def __repr__(self) -> str:
        return f"ModuleDef({self.name!r})"


class BindingBuilder(Generic[T]):
    """Builder for a single provider declaration."""

    def __init__(self, token: type[T] | Token, module: ModuleDef, role: ProviderRole):
        self._token = token
        self._module = module
        self._role = role
        self._scope: Scope | None = None

    def scoped(self, scope: Scope) -> BindingBuilder[T]:
        """Set the lifetime of the provided instances."""
        self._scope = scope
        return self

    def request_scoped(self) -> BindingBuilder[T]:
        return self.scoped(Scope.REQUEST)

    def transient(self) -> BindingBuilder[T]:
        return self.scoped(Scope.TRANSIENT)

    def using(self) -> UsingBuilder[T]:
        """Create a UsingBuilder for choosing the construction strategy."""

        def finalize(record: ProviderRecord) -> None:
            self._module.add(record.with_role(self._role))

        return UsingBuilder(self._token, self._scope, finalize)


class UsingBuilder(Generic[T]):
    """Builder choosing how a provider constructs its instance."""

    def __init__(
        self,
        token: type[T] | Token,
        scope: Scope | None,
        finalize_callback: Callable[[ProviderRecord], None],
    ):
        self._token = token
        self._scope = scope
        self._finalize_callback = finalize_callback

    def value(self, instance: T | Any) -> None:
        """Bind to a specific instance value."""
        self._finalize_callback(ProviderRecord.for_value(self._token, instance))

    def type(self, cls: type[T] | None = None, inject: list[Token] | None = None) -> None:
        """Bind to a class instantiated with ``inject`` resolved positionally."""
        implementation = cls if cls is not None else self._token
        record = ProviderRecord.for_class(implementation, inject, self._scope, token=self._token)
        self._finalize_callback(record)

    def func(self, factory: Callable[..., T | Any], inject: list[Token] | None = None) -> None:
        """Bind to a factory function, sync or async."""
        record = ProviderRecord.for_factory(
            self._token, factory, inject or [], self._scope or Scope.SINGLETON
        )
        self._finalize_callback(record)
