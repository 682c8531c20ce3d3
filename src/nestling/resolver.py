"""
Token resolution: finding the module that owns a token visible to a consumer.
"""

from __future__ import annotations

from .errors import UnknownDependencyError
from .instance_wrapper import InstanceWrapper
from .keys import Token
from .registry import Module, ModuleRegistry

Resolved = tuple[Module, InstanceWrapper]


class TokenResolver:
    """
    Locates the owner of a token as seen from a requesting module.

    Search order: the module's own providers, controllers and injectables;
    then each import's exports in import order, following export lists
    only (a module's imports are visible through it only when it re-exports
    them); then the exports of global modules.
    """

    def __init__(self, registry: ModuleRegistry):
        self._registry = registry

    def resolve(self, token: Token, module: Module) -> Resolved:
        found = self.lookup(token, module)
        if found is None:
            raise UnknownDependencyError(token, module)
        return found

    def lookup(self, token: Token, module: Module) -> Resolved | None:
        """Like ``resolve`` but returns None when the token is unreachable."""
        own = module.get_wrapper(token)
        if own is not None:
            return module, own

        visited: set[str] = {module.token}
        for imported in module.imports:
            found = self._lookup_exported(token, imported, visited)
            if found is not None:
                return found

        for global_module in self._registry.globals():
            found = self._lookup_exported(token, global_module.token, visited)
            if found is not None:
                return found
        return None

    def _lookup_exported(
        self, token: Token, module_token: str, visited: set[str]
    ) -> Resolved | None:
        if module_token in visited:
            return None
        visited.add(module_token)
        module = self._registry.require(module_token)

        if token in module.exported_tokens:
            wrapper = module.providers.get(token)
            if wrapper is not None:
                return module, wrapper
            # An imported token re-exported by this module.
            for imported in module.imports:
                found = self._lookup_exported(token, imported, visited)
                if found is not None:
                    return found

        for exported in module.exported_modules:
            found = self._lookup_exported(token, exported, visited)
            if found is not None:
                return found
        return None
