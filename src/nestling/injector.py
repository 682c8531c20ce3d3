"""
Injector - the resolution engine that builds provider instances.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, assert_never

from .bindings import ProviderKind, ProviderRecord, Scope
from .context import STATIC_CONTEXT, ContextId
from .errors import ProviderInstantiationError, UnknownDependencyError
from .graph import DependencyGraph, ResolutionPath
from .instance_wrapper import SHARED, InstanceWrapper
from .keys import INQUIRER, Token, token_name, unwrap
from .options import ContainerOptions
from .registry import Module, ModuleRegistry
from .resolver import TokenResolver

logger = logging.getLogger(__name__)


class Injector:
    """
    Resolves provider records into instances.

    Every (provider, context, consumer) key is constructed at most once:
    the first requester stores a task in the provider's ``InstanceWrapper``
    and later requesters await that same task. Tasks are shielded, so a
    requester being cancelled never cancels a construction other callers
    may be waiting on.
    """

    def __init__(self, registry: ModuleRegistry, options: ContainerOptions | None = None):
        self._registry = registry
        self._options = options or ContainerOptions.default()
        self._resolver = TokenResolver(registry)
        self._graph = DependencyGraph(registry, self._resolver, self._options.logger_injection)

    @property
    def resolver(self) -> TokenResolver:
        return self._resolver

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    async def resolve(
        self, token: Token, module: Module, context: ContextId = STATIC_CONTEXT
    ) -> Any:
        """Resolve ``token`` as seen from ``module`` under ``context``."""
        owner, wrapper = self._resolver.resolve(token, module)
        return await self.load(wrapper, owner, context)

    async def load(
        self,
        wrapper: InstanceWrapper,
        module: Module,
        context: ContextId = STATIC_CONTEXT,
        inquirer: InstanceWrapper | None = None,
    ) -> Any:
        """Top-level resolution of one provider; starts a fresh resolution path."""
        self._graph.validate_tree(module, wrapper)
        return await self._resolve_wrapper(wrapper, module, context, inquirer, ResolutionPath())

    async def _resolve_wrapper(
        self,
        wrapper: InstanceWrapper,
        module: Module,
        context: ContextId,
        inquirer: InstanceWrapper | None,
        path: ResolutionPath,
    ) -> Any:
        scope = self._graph.effective_scope(module, wrapper)
        consumer = SHARED
        if scope is Scope.SINGLETON:
            context = STATIC_CONTEXT
        elif scope is Scope.TRANSIENT:
            consumer = inquirer

        future = wrapper.get_future(context, consumer)
        if future is None:
            path = path.push(wrapper.token, wrapper)
            coro = self._instantiate(wrapper, module, context, inquirer, path)
            task = asyncio.ensure_future(coro)
            future = wrapper.set_future(context, task, consumer)
        elif future.done() and not future.cancelled() and future.exception() is None:
            return future.result()

        return await asyncio.shield(future)

    async def _instantiate(
        self,
        wrapper: InstanceWrapper,
        module: Module,
        context: ContextId,
        inquirer: InstanceWrapper | None,
        path: ResolutionPath,
    ) -> Any:
        record = wrapper.record
        args: list[Any] = []
        for index, dependency in enumerate(record.dependencies):
            value = await self._resolve_dependency(
                wrapper, module, dependency, index, context, inquirer, path
            )
            args.append(value)

        instance = await self._construct(record, args)
        logger.debug("Instantiated %s in %s (%r)", wrapper.name, module.name, context)
        return instance

    async def _resolve_dependency(
        self,
        wrapper: InstanceWrapper,
        module: Module,
        dependency: Token,
        index: int,
        context: ContextId,
        inquirer: InstanceWrapper | None,
        path: ResolutionPath,
    ) -> Any:
        token, is_optional = unwrap(dependency)
        if token is INQUIRER:
            if wrapper.record.scope is Scope.TRANSIENT and inquirer is not None:
                return inquirer.token
            return None

        found = self._resolver.lookup(token, module)
        if found is None:
            if is_optional:
                return None
            if token is logging.Logger and self._options.logger_injection:
                return logging.getLogger(_logger_name(wrapper.token))
            raise UnknownDependencyError(token, module, dependent=wrapper.token, index=index)

        owner, dep_wrapper = found
        path.check(token, dep_wrapper)
        return await self._resolve_wrapper(dep_wrapper, owner, context, wrapper, path)

    @staticmethod
    async def _construct(record: ProviderRecord, args: list[Any]) -> Any:
        match record.kind:
            case ProviderKind.VALUE:
                return record.implementation
            case ProviderKind.CLASS | ProviderKind.FACTORY:
                try:
                    result = record.implementation(*args)
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    raise ProviderInstantiationError(record.token, e) from e
                return result
            case _:
                assert_never(record.kind)


def _logger_name(token: Token) -> str:
    module = getattr(token, "__module__", None)
    qualname = getattr(token, "__qualname__", None)
    if module and qualname:
        return f"{module}.{qualname}"
    return token_name(token)
