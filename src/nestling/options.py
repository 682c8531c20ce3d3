"""
Container configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContainerOptions:
    """
    Options for building an application context.

    Attributes:
        strict: When True, ``get`` and ``resolve`` only see tokens reachable
            from the context module. When False, every module is searched.
        eager: When True, ``init`` instantiates every static provider up
            front. When False, providers are built on first resolution, so
            the init hooks run by ``init`` only reach instances that were
            already built. Shutdown hooks reach every static instance built
            by then.
        logger_injection: When True, a ``logging.Logger`` dependency with no
            provider is satisfied with a logger named after its consumer.
    """

    strict: bool = False
    eager: bool = True
    logger_injection: bool = True

    @staticmethod
    def default() -> ContainerOptions:
        return ContainerOptions()
