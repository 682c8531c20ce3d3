"""
Application context - the surface collaborators use to obtain instances.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, TypeVar

from .bindings import ProviderRecord, Scope
from .context import STATIC_CONTEXT, ContextId, ContextIdFactory
from .core import ModuleDef
from .errors import UnknownElementError, UnknownModuleError
from .injector import Injector
from .instance_wrapper import InstanceWrapper
from .keys import REQUEST, Token, token_name
from .loader import ModuleLoader
from .options import ContainerOptions
from .registry import Module, ModuleRegistry

T = TypeVar("T")

logger = logging.getLogger(__name__)

INIT_HOOKS = ("on_module_init", "on_application_bootstrap")
SHUTDOWN_HOOKS = ("on_module_destroy", "before_application_shutdown", "on_application_shutdown")


class ApplicationContext:
    """
    A loaded module graph, viewed from one context module.

    Example:
        ```python
        async with await ApplicationContext.create(AppModule) as app:
            service = app.get(UserService)

            context_id = ContextIdFactory.create()
            app.register_request(request, context_id)
            handler = await app.resolve(RequestHandler, context_id)
        ```
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        injector: Injector,
        context_module: Module,
        options: ContainerOptions | None = None,
    ):
        self._registry = registry
        self._injector = injector
        self._context_module = context_module
        self._options = options or ContainerOptions.default()
        self._loader = ModuleLoader(registry, injector)
        self._initialized = False
        self._closed = False

    @staticmethod
    async def create(
        root: ModuleDef, options: ContainerOptions | None = None
    ) -> ApplicationContext:
        """Register ``root`` with everything it imports and initialize it."""
        return await ApplicationBuilder(root, options).create()

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    @property
    def context_module(self) -> Module:
        return self._context_module

    async def init(self) -> ApplicationContext:
        """
        Build all static providers (when eager) and run the init hooks.

        Hooks are called on static instances that exist at this point. With
        ``eager=False`` that is usually none of them; providers built later
        by ``resolve`` do not get ``on_module_init`` or
        ``on_application_bootstrap``.
        """
        if self._initialized:
            return self
        if self._options.eager:
            await self._loader.load_all()
        for hook in INIT_HOOKS:
            await self._call_hook(hook)
        self._initialized = True
        return self

    async def close(self) -> None:
        """Run the shutdown hooks. Hook failures are logged, not raised."""
        if self._closed:
            return
        self._closed = True
        for hook in SHUTDOWN_HOOKS:
            await self._call_hook(hook, raise_errors=False)

    async def __aenter__(self) -> ApplicationContext:
        return await self.init()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def select(self, module_def: ModuleDef) -> ApplicationContext:
        """Return a context rooted at another registered module."""
        module = self._registry.find(module_def)
        if module is None:
            raise UnknownModuleError(module_def.name)
        context = ApplicationContext(self._registry, self._injector, module, self._options)
        context._initialized = self._initialized
        return context

    def get(self, token: type[T] | Token, strict: bool | None = None) -> T:
        """Return the already built static instance of ``token``."""
        _, wrapper = self._find(token, strict)
        return wrapper.get_instance(STATIC_CONTEXT)  # type: ignore[no-any-return]

    def find(self, token: type[T] | Token, strict: bool | None = None) -> T | None:
        """Like ``get`` but returns None when nothing is available."""
        try:
            return self.get(token, strict)
        except UnknownElementError:
            return None

    async def resolve(
        self,
        token: type[T] | Token,
        context_id: ContextId | None = None,
        strict: bool | None = None,
    ) -> T:
        """
        Resolve ``token``, building it if needed.

        Request-scoped and transient providers are built under ``context_id``;
        when it is omitted a fresh context is minted, so each call yields a
        new instance of such providers. Singletons ignore the context.
        """
        owner, wrapper = self._find(token, strict)
        if context_id is None:
            static = self._injector.graph.is_static(owner, wrapper)
            context_id = STATIC_CONTEXT if static else ContextIdFactory.create()
        return await self._injector.load(wrapper, owner, context_id)  # type: ignore[no-any-return]

    def register_request(self, request: Any, context_id: ContextId) -> None:
        """
        Make ``request`` injectable as ``REQUEST`` under ``context_id``.

        Must be called from a coroutine running on the application's loop.
        """
        self._registry.core.providers[REQUEST].set_instance(request, context_id)

    def _find(self, token: Token, strict: bool | None) -> tuple[Module, InstanceWrapper]:
        strict = self._options.strict if strict is None else strict
        found = self._injector.resolver.lookup(token, self._context_module)
        if found is not None:
            return found
        if not strict:
            for module in self._registry.all().values():
                wrapper = module.get_wrapper(token)
                if wrapper is not None:
                    return module, wrapper
        raise UnknownElementError(token)

    async def _call_hook(self, hook: str, raise_errors: bool = True) -> None:
        seen: set[int] = set()
        # Imports are registered after their importers, so walk backwards.
        for module in reversed(list(self._registry.all().values())):
            for wrapper in module.wrappers():
                for instance in wrapper.static_instances():
                    if id(instance) in seen:
                        continue
                    seen.add(id(instance))
                    method = getattr(instance, hook, None)
                    if not callable(method):
                        continue
                    try:
                        result = method()
                        if inspect.isawaitable(result):
                            await result
                    except Exception:
                        if raise_errors:
                            raise
                        logger.exception("Error in %s of %s", hook, wrapper.name)


class ApplicationBuilder:
    """
    Registers a root module, applies provider overrides and creates the context.

    Example:
        ```python
        app = await (
            ApplicationBuilder(AppModule)
            .override_provider(Database)
            .use_value(InMemoryDatabase())
            .create()
        )
        ```
    """

    def __init__(self, root: ModuleDef, options: ContainerOptions | None = None):
        self._root = root
        self._options = options or ContainerOptions.default()
        self._overrides: dict[Token, ProviderRecord] = {}

    def override_provider(self, token: Token) -> OverrideBy:
        """Replace the provider of ``token`` in every module that declares it."""

        def add(record: ProviderRecord) -> ApplicationBuilder:
            self._overrides[token] = record
            return self

        return OverrideBy(token, add)

    def compile(self) -> ApplicationContext:
        """Register modules and apply overrides without building anything."""
        registry = ModuleRegistry()
        root = registry.register(self._root)
        for token, record in self._overrides.items():
            if not registry.replace(token, record):
                logger.warning("Override for %s matched no provider", token_name(token))
        injector = Injector(registry, self._options)
        return ApplicationContext(registry, injector, root, self._options)

    async def create(self) -> ApplicationContext:
        return await self.compile().init()


class OverrideBy:
    """Chooses the replacement for an overridden provider."""

    def __init__(self, token: Token, add: Callable[[ProviderRecord], ApplicationBuilder]):
        self._token = token
        self._add = add

    def use_value(self, value: Any) -> ApplicationBuilder:
        return self._add(ProviderRecord.for_value(self._token, value))

    def use_class(
        self, cls: type, inject: list[Token] | None = None, scope: Scope | None = None
    ) -> ApplicationBuilder:
        return self._add(ProviderRecord.for_class(cls, inject, scope, token=self._token))

    def use_factory(
        self,
        factory: Callable[..., Any],
        inject: list[Token] | None = None,
        scope: Scope = Scope.SINGLETON,
    ) -> ApplicationBuilder:
        return self._add(ProviderRecord.for_factory(self._token, factory, inject or [], scope))
