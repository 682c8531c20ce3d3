"""
Nestling - a module-graph dependency injection runtime.

This library provides:
- A builder DSL for declaring modules, providers, imports and exports
- Token resolution across module imports and exports
- Singleton, request and transient scopes with contextual instances
- Circular dependency detection
- Concurrent, single-flight resolution of sync and async providers
"""

from .application import ApplicationBuilder, ApplicationContext
from .bindings import ProviderKind, ProviderRecord, ProviderRole, Scope
from .context import STATIC_CONTEXT, ContextId, ContextIdFactory
from .core import ModuleDef
from .errors import (
    CircularDependencyError,
    InjectorError,
    InvalidProviderError,
    ProviderInstantiationError,
    UndefinedForwardRefError,
    UnknownDependencyError,
    UnknownElementError,
    UnknownModuleError,
)
from .graph import DependencyGraph, ResolutionPath
from .injector import Injector
from .instance_wrapper import InstanceWrapper
from .keys import INQUIRER, REQUEST, InjectionToken, forward_ref, optional
from .loader import ModuleLoader
from .options import ContainerOptions
from .registry import Module, ModuleRegistry
from .resolver import TokenResolver

__all__ = [
    "ApplicationBuilder",
    "ApplicationContext",
    "CircularDependencyError",
    "ContainerOptions",
    "ContextId",
    "ContextIdFactory",
    "DependencyGraph",
    "INQUIRER",
    "InjectionToken",
    "Injector",
    "InjectorError",
    "InstanceWrapper",
    "InvalidProviderError",
    "Module",
    "ModuleDef",
    "ModuleLoader",
    "ModuleRegistry",
    "ProviderInstantiationError",
    "ProviderKind",
    "ProviderRecord",
    "ProviderRole",
    "REQUEST",
    "ResolutionPath",
    "STATIC_CONTEXT",
    "Scope",
    "TokenResolver",
    "UndefinedForwardRefError",
    "UnknownDependencyError",
    "UnknownElementError",
    "UnknownModuleError",
    "forward_ref",
    "optional",
]
