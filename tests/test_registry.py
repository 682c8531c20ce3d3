#!/usr/bin/env python3
"""
Unit tests for module registration and module tokens.
"""

import unittest

from nestling import (
    REQUEST,
    InvalidProviderError,
    ModuleDef,
    ModuleRegistry,
    ProviderRecord,
    TokenResolver,
    UndefinedForwardRefError,
    UnknownModuleError,
    forward_ref,
)
from nestling.registry import INTERNAL_CORE_MODULE, ModuleTokenFactory


class Config:
    pass


class Database:
    pass


def config_module() -> ModuleDef:
    module = ModuleDef("ConfigModule")
    module.make(Config).using().type()
    module.export(Config)
    return module


class TestModuleTokenFactory(unittest.TestCase):
    """Test deterministic module tokens."""

    def test_identical_shapes_share_a_token(self):
        factory = ModuleTokenFactory()
        self.assertEqual(factory.create(config_module()), factory.create(config_module()))

    def test_different_providers_change_the_token(self):
        factory = ModuleTokenFactory()
        other = ModuleDef("ConfigModule")
        other.make(Config).using().type()
        other.make(Database).using().type()
        other.export(Config)
        self.assertNotEqual(factory.create(config_module()), factory.create(other))

    def test_different_values_change_the_token(self):
        factory = ModuleTokenFactory()
        first = ModuleDef("Settings")
        first.make("url").using().value("postgres://a")
        second = ModuleDef("Settings")
        second.make("url").using().value("postgres://b")
        self.assertNotEqual(factory.create(first), factory.create(second))


class TestModuleRegistry(unittest.TestCase):
    """Test the module registry."""

    def test_core_module_is_registered_first(self):
        registry = ModuleRegistry()
        modules = list(registry.all().values())
        self.assertEqual(modules[0].name, INTERNAL_CORE_MODULE)
        self.assertTrue(modules[0].is_global)
        self.assertIn(REQUEST, modules[0].providers)

    def test_register_imports_depth_first(self):
        db = ModuleDef("DatabaseModule")
        app = ModuleDef("AppModule", imports=[config_module(), db])

        registry = ModuleRegistry()
        root = registry.register(app)

        names = [module.name for module in registry.all().values()]
        self.assertEqual(
            names, [INTERNAL_CORE_MODULE, "AppModule", "ConfigModule", "DatabaseModule"]
        )
        self.assertEqual(len(root.imports), 2)
        self.assertIs(registry.get(root.imports[0]), registry.find(config_module()))

    def test_identical_modules_collapse(self):
        first = ModuleDef("FirstModule", imports=[config_module()])
        first.export(Config)
        second = ModuleDef("SecondModule", imports=[config_module()])
        app = ModuleDef("AppModule", imports=[first, second])

        registry = ModuleRegistry()
        registry.register(app)

        config_modules = [m for m in registry.all().values() if m.name == "ConfigModule"]
        self.assertEqual(len(config_modules), 1)
        self.assertEqual(len(registry), 5)

    def test_modules_importing_different_configurations_stay_apart(self):
        def client_module(url: str) -> ModuleDef:
            config = ModuleDef("ConfigModule")
            config.make("url").using().value(url)
            config.export("url")
            return ModuleDef("ClientModule", imports=[config])

        app = ModuleDef("AppModule", imports=[client_module("http://a"), client_module("http://b")])

        registry = ModuleRegistry()
        registry.register(app)

        names = [module.name for module in registry.all().values()]
        self.assertEqual(names.count("ClientModule"), 2)
        self.assertEqual(names.count("ConfigModule"), 2)

        resolver = TokenResolver(registry)
        urls = set()
        for url in ("http://a", "http://b"):
            client = registry.find(client_module(url))
            assert client is not None
            _, wrapper = resolver.resolve("url", client)
            urls.add(wrapper.record.implementation)
        self.assertEqual(urls, {"http://a", "http://b"})

    def test_cyclic_imports_with_forward_refs(self):
        cats = ModuleDef("CatsModule", imports=[forward_ref(lambda: dogs)])
        dogs = ModuleDef("DogsModule", imports=[forward_ref(lambda: cats)])

        registry = ModuleRegistry()
        cats_module = registry.register(cats)
        dogs_module = registry.find(dogs)

        assert dogs_module is not None
        self.assertEqual(cats_module.imports, [dogs_module.token])
        self.assertEqual(dogs_module.imports, [cats_module.token])

    def test_undefined_forward_ref(self):
        broken = ModuleDef("BrokenModule", imports=[forward_ref(lambda: None)])

        with self.assertRaises(UndefinedForwardRefError) as context:
            ModuleRegistry().register(broken)
        self.assertEqual(context.exception.owner, "BrokenModule")

    def test_exporting_a_module_that_is_not_imported(self):
        module = ModuleDef("AppModule", exports=[config_module()])

        with self.assertRaises(InvalidProviderError):
            ModuleRegistry().register(module)

    def test_require_unknown_module(self):
        with self.assertRaises(UnknownModuleError):
            ModuleRegistry().require("missing")

    def test_replace_provider_everywhere(self):
        registry = ModuleRegistry()
        registry.register(ModuleDef("AppModule", imports=[config_module()]))

        replacement = Config()
        replaced = registry.replace(Config, ProviderRecord.for_value(Config, replacement))

        self.assertEqual(replaced, 1)
        module = registry.find(config_module())
        assert module is not None
        self.assertIs(module.providers[Config].record.implementation, replacement)
        self.assertEqual(registry.replace(Database, ProviderRecord.for_value(Database, 1)), 0)


if __name__ == "__main__":
    unittest.main()
