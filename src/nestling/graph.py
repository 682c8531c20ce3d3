"""
Dependency graph checks: circular dependency detection and scope promotion.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

from .bindings import Scope
from .errors import CircularDependencyError, UnknownDependencyError
from .instance_wrapper import InstanceWrapper
from .keys import INQUIRER, Token, unwrap
from .registry import Module, ModuleRegistry
from .resolver import TokenResolver


@dataclass(frozen=True)
class ResolutionPath:
    """
    The providers currently being expanded by one resolution call.

    Entries are compared by ``key``, the identity of the provider (its
    ``InstanceWrapper``), because a module may declare a token that shadows
    one exported by a global module. ``tokens`` is what cycles report.
    Immutable: ``push`` returns a new path, so sibling dependencies never
    share mutable state.
    """

    tokens: tuple[Token, ...] = ()
    keys: tuple[object, ...] = ()

    def push(self, token: Token, key: object = None) -> ResolutionPath:
        key = token if key is None else key
        return ResolutionPath(self.tokens + (token,), self.keys + (key,))

    def check(self, dependency: Token, key: object = None) -> None:
        """Raise ``CircularDependencyError`` if ``dependency`` is already being expanded."""
        key = dependency if key is None else key
        if key in self.keys:
            start = self.keys.index(key)
            raise CircularDependencyError(list(self.tokens[start:]) + [dependency])

    def __len__(self) -> int:
        return len(self.tokens)


class DependencyGraph:
    """
    Static view of the provider graph spanned by a registry.

    ``validate`` walks every provider's dependencies before anything is
    built, reporting missing providers and cycles. ``effective_scope``
    computes the scope a provider actually lives in: anything that depends,
    directly or transitively, on a request-scoped provider is itself
    request-scoped.
    """

    def __init__(
        self, registry: ModuleRegistry, resolver: TokenResolver, logger_injection: bool = True
    ):
        self._registry = registry
        self._resolver = resolver
        self._logger_injection = logger_injection

    def validate(self) -> None:
        """Validate every provider of every module."""
        for module in self._registry.all().values():
            for wrapper in module.wrappers():
                self.validate_tree(module, wrapper)

    def validate_tree(self, module: Module, wrapper: InstanceWrapper) -> None:
        """Validate the dependency tree below one provider."""
        if wrapper.validated:
            return

        WHITE = 0  # Not visited
        GRAY = 1  # On the current path
        BLACK = 2  # Completely processed

        colors: dict[int, int] = defaultdict(lambda: WHITE)
        finished: list[InstanceWrapper] = []

        def dfs(owner: Module, node: InstanceWrapper, path: ResolutionPath) -> None:
            if node.validated or colors[id(node)] == BLACK:
                return
            colors[id(node)] = GRAY
            path = path.push(node.token, node)

            for index, dependency in enumerate(node.record.dependencies):
                found = self._lookup_dependency(owner, node, dependency, index)
                if found is None:
                    continue
                dep_owner, dep_wrapper = found
                if colors[id(dep_wrapper)] == GRAY:
                    path.check(dep_wrapper.token, dep_wrapper)
                dfs(dep_owner, dep_wrapper, path)

            colors[id(node)] = BLACK
            finished.append(node)

        dfs(module, wrapper, ResolutionPath())
        for node in finished:
            node.validated = True

    def _lookup_dependency(
        self, owner: Module, node: InstanceWrapper, dependency: Token, index: int
    ) -> tuple[Module, InstanceWrapper] | None:
        token, is_optional = unwrap(dependency)
        if token is INQUIRER:
            return None
        found = self._resolver.lookup(token, owner)
        if found is not None:
            return found
        if is_optional or (token is logging.Logger and self._logger_injection):
            return None
        raise UnknownDependencyError(token, owner, dependent=node.token, index=index)

    def effective_scope(self, module: Module, wrapper: InstanceWrapper) -> Scope:
        """Scope of ``wrapper`` after promotion by request-scoped dependencies."""
        if wrapper.effective_scope is None:
            self._compute_scope(module, wrapper, set())
        assert wrapper.effective_scope is not None
        return wrapper.effective_scope

    def _compute_scope(self, module: Module, wrapper: InstanceWrapper, visiting: set[int]) -> bool:
        """Return whether the tree below ``wrapper`` is free of request scope."""
        if wrapper.effective_scope is not None:
            return wrapper.static_tree
        if id(wrapper) in visiting:
            # Cycles are reported by validate(); treat the back edge as static.
            return True
        visiting.add(id(wrapper))

        declared = wrapper.record.scope
        static = declared is not Scope.REQUEST
        for dependency in wrapper.record.dependencies:
            token, _ = unwrap(dependency)
            if token is INQUIRER:
                continue
            found = self._resolver.lookup(token, module)
            if found is None:
                continue
            dep_owner, dep_wrapper = found
            if not self._compute_scope(dep_owner, dep_wrapper, visiting):
                static = False

        visiting.discard(id(wrapper))
        wrapper.static_tree = static
        if declared is Scope.TRANSIENT:
            wrapper.effective_scope = Scope.TRANSIENT
        else:
            wrapper.effective_scope = Scope.SINGLETON if static else Scope.REQUEST
        return static

    def is_static(self, module: Module, wrapper: InstanceWrapper) -> bool:
        """Whether the provider can be built once, under the static context."""
        return self.effective_scope(module, wrapper) is Scope.SINGLETON
