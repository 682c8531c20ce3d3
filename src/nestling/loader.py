"""
Module loader - instantiates every static provider of every module at startup.
"""

from __future__ import annotations

import asyncio
import logging

from .injector import Injector
from .instance_wrapper import InstanceWrapper
from .registry import Module, ModuleRegistry

logger = logging.getLogger(__name__)


class ModuleLoader:
    """
    Drives the injector over all providers, controllers and injectables.

    Modules load concurrently, and so do the records within a module; the
    injector's single-flight entries keep shared dependencies from being
    built twice. The first failure aborts the load. Singletons built before
    the failure stay in their wrappers.
    """

    def __init__(self, registry: ModuleRegistry, injector: Injector):
        self._registry = registry
        self._injector = injector

    async def load_all(self) -> None:
        """Validate the whole graph, then build every static provider."""
        self._injector.graph.validate()
        modules = list(self._registry.all().values())
        try:
            await asyncio.gather(*(self._load_module(module) for module in modules))
        except Exception:
            logger.exception("Failed to initialize module dependencies")
            raise

    async def _load_module(self, module: Module) -> None:
        wrappers = [wrapper for wrapper in module.wrappers() if self._is_eager(module, wrapper)]
        await asyncio.gather(*(self._injector.load(wrapper, module) for wrapper in wrappers))
        logger.info("%s dependencies initialized", module.name)

    def _is_eager(self, module: Module, wrapper: InstanceWrapper) -> bool:
        # Request-scoped providers wait for a context, transient ones for a consumer.
        return self._injector.graph.is_static(module, wrapper)
