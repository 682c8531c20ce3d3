"""
Module registry: an arena of modules keyed by deterministic module tokens.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator

from .bindings import ProviderKind, ProviderRecord, ProviderRole, Scope
from .core import ModuleDef
from .errors import InvalidProviderError, UndefinedForwardRefError, UnknownModuleError
from .instance_wrapper import InstanceWrapper
from .keys import REQUEST, ForwardRef, Token, token_id, token_name

logger = logging.getLogger(__name__)

INTERNAL_CORE_MODULE = "InternalCoreModule"


class Module:
    """
    Runtime view of a registered module.

    Imports and exported modules are held as module tokens, never as
    references to other ``Module`` objects, so import cycles need no
    ownership cycles.
    """

    def __init__(self, token: str, name: str, is_global: bool = False):
        self.token = token
        self.name = name
        self.is_global = is_global
        self.providers: dict[Token, InstanceWrapper] = {}
        self.controllers: dict[Token, InstanceWrapper] = {}
        self.injectables: dict[Token, InstanceWrapper] = {}
        self.imports: list[str] = []
        self.exported_tokens: list[Token] = []
        self.exported_modules: list[str] = []

    def add_record(self, record: ProviderRecord) -> InstanceWrapper:
        wrapper = InstanceWrapper(record, self.token)
        match record.role:
            case ProviderRole.PROVIDER:
                self.providers[record.token] = wrapper
            case ProviderRole.CONTROLLER:
                self.controllers[record.token] = wrapper
            case ProviderRole.INJECTABLE:
                self.injectables[record.token] = wrapper
        return wrapper

    def add_import(self, module_token: str) -> None:
        if module_token not in self.imports:
            self.imports.append(module_token)

    def add_exported_token(self, token: Token) -> None:
        if token not in self.exported_tokens:
            self.exported_tokens.append(token)

    def add_exported_module(self, module_token: str) -> None:
        if module_token not in self.imports:
            raise InvalidProviderError(
                f"Module {self.name} cannot export a module it does not import"
            )
        if module_token not in self.exported_modules:
            self.exported_modules.append(module_token)

    def get_wrapper(self, token: Token) -> InstanceWrapper | None:
        """Find a wrapper declared by this module itself."""
        for mapping in (self.providers, self.controllers, self.injectables):
            wrapper = mapping.get(token)
            if wrapper is not None:
                return wrapper
        return None

    def wrappers(self) -> Iterator[InstanceWrapper]:
        yield from self.providers.values()
        yield from self.controllers.values()
        yield from self.injectables.values()

    def replace(self, token: Token, record: ProviderRecord) -> bool:
        """Replace the record of an own provider; returns whether one was found."""
        wrapper = self.get_wrapper(token)
        if wrapper is None:
            return False
        wrapper.replace(record.with_role(wrapper.record.role))
        return True

    def __repr__(self) -> str:
        return f"Module({self.name}, {self.token[:8]})"


class ModuleTokenFactory:
    """
    Derives a module token from the declared shape of a module.

    Imports and exported modules contribute their own tokens, so two
    modules collapse only when everything they import does too. A module
    reached again along its own import chain (a forward-ref cycle)
    contributes only its name.
    """

    def create(self, module_def: ModuleDef) -> str:
        return self._digest(module_def, [], {})

    def _digest(self, module_def: ModuleDef, stack: list[str], memo: dict[int, str]) -> str:
        if id(module_def) in memo:
            return memo[id(module_def)]
        stack.append(module_def.name)

        parts: list[str] = [f"name:{module_def.name}", f"global:{module_def.is_global}"]
        for label, records in (
            ("provider", module_def.providers),
            ("controller", module_def.controllers),
            ("injectable", module_def.injectables),
        ):
            parts.extend(f"{label}:{self._describe(record)}" for record in records)
        for ref in module_def.import_refs:
            parts.append(f"import:{self._ref_token(ref, stack, memo)}")
        for item in module_def.export_refs:
            if isinstance(item, ModuleDef | ForwardRef):
                parts.append(f"export-module:{self._ref_token(item, stack, memo)}")
            else:
                parts.append(f"export:{token_id(item)}")

        stack.pop()
        digest = hashlib.sha256("\n".join(parts).encode()).hexdigest()
        memo[id(module_def)] = digest
        return digest

    @staticmethod
    def _describe(record: ProviderRecord) -> str:
        match record.kind:
            case ProviderKind.VALUE:
                implementation = repr(record.implementation)
            case ProviderKind.CLASS | ProviderKind.FACTORY:
                implementation = token_id(record.implementation)
        deps = ",".join(token_id(dep) for dep in record.dependencies)
        token = token_id(record.token)
        return f"{token}={record.kind.value}:{implementation}({deps})@{record.scope.value}"

    def _ref_token(
        self, ref: ModuleDef | ForwardRef, stack: list[str], memo: dict[int, str]
    ) -> str:
        target = ref.resolve() if isinstance(ref, ForwardRef) else ref
        if not isinstance(target, ModuleDef):
            return "<undefined>"
        if target.name in stack:
            return f"cycle:{target.name}"
        return self._digest(target, stack, memo)


class ModuleRegistry:
    """
    All modules of one application, in registration order.

    Registering a module registers its imports (depth first). A module whose
    shape matches an already registered one collapses into that entry.
    """

    def __init__(self) -> None:
        self._modules: dict[str, Module] = {}
        self._token_factory = ModuleTokenFactory()
        self._core = self._register_core_module()

    def _register_core_module(self) -> Module:
        core = Module(INTERNAL_CORE_MODULE, INTERNAL_CORE_MODULE, is_global=True)
        request = ProviderRecord.for_factory(REQUEST, _no_request, scope=Scope.REQUEST)
        core.add_record(request)
        core.add_exported_token(REQUEST)
        self._modules[core.token] = core
        return core

    @property
    def core(self) -> Module:
        return self._core

    def register(self, module_def: ModuleDef) -> Module:
        """Register a module and everything it imports; return its runtime module."""
        token = self._token_factory.create(module_def)
        existing = self._modules.get(token)
        if existing is not None:
            return existing

        module = Module(token, module_def.name, module_def.is_global)
        self._modules[token] = module
        logger.debug("Registered module %s (%s)", module.name, token[:8])

        for record in module_def.providers + module_def.controllers + module_def.injectables:
            module.add_record(record)

        for ref in module_def.import_refs:
            imported = self.register(self._deref(ref, module_def.name))
            module.add_import(imported.token)

        for item in module_def.export_refs:
            if isinstance(item, ForwardRef):
                item = self._deref(item, module_def.name)
            if isinstance(item, ModuleDef):
                module.add_exported_module(self.register(item).token)
            else:
                module.add_exported_token(item)
        return module

    @staticmethod
    def _deref(ref: ModuleDef | ForwardRef, owner: str) -> ModuleDef:
        target = ref.resolve() if isinstance(ref, ForwardRef) else ref
        if target is None:
            raise UndefinedForwardRefError(owner)
        if not isinstance(target, ModuleDef):
            raise InvalidProviderError(
                f"Module {owner} imports {target!r}, which is not a ModuleDef"
            )
        return target

    def get(self, token: str) -> Module | None:
        return self._modules.get(token)

    def require(self, token: str) -> Module:
        module = self._modules.get(token)
        if module is None:
            raise UnknownModuleError(token)
        return module

    def find(self, module_def: ModuleDef) -> Module | None:
        """Look a module up by its declaration."""
        return self._modules.get(self._token_factory.create(module_def))

    def all(self) -> dict[str, Module]:
        """All modules, in registration order (the internal core module first)."""
        return dict(self._modules)

    def globals(self) -> list[Module]:
        return [module for module in self._modules.values() if module.is_global]

    def replace(self, token: Token, record: ProviderRecord) -> int:
        """Replace a provider in every module that declares it."""
        replaced = sum(1 for module in self._modules.values() if module.replace(token, record))
        if replaced:
            logger.debug("Overrode %s in %d module(s)", token_name(token), replaced)
        return replaced

    def __len__(self) -> int:
        return len(self._modules)


def _no_request() -> None:
    """Default REQUEST value for contexts without a registered payload."""
    return None
