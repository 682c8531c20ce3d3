#!/usr/bin/env python3
"""
Unit tests for cycle detection, dependency validation and scope promotion.
"""

import logging
import unittest

from nestling import (
    REQUEST,
    CircularDependencyError,
    DependencyGraph,
    ModuleDef,
    ModuleRegistry,
    ResolutionPath,
    Scope,
    TokenResolver,
    UnknownDependencyError,
    optional,
)


class P:
    pass


class Q:
    pass


class R:
    pass


def build(root: ModuleDef, logger_injection: bool = True):
    registry = ModuleRegistry()
    module = registry.register(root)
    graph = DependencyGraph(registry, TokenResolver(registry), logger_injection)
    return module, graph


class TestResolutionPath(unittest.TestCase):
    """Test the per-call resolution path."""

    def test_push_is_immutable(self):
        empty = ResolutionPath()
        path = empty.push(P).push(Q)

        self.assertEqual(len(empty), 0)
        self.assertEqual(path.tokens, (P, Q))

    def test_check_reports_cycle_from_revisited_token(self):
        path = ResolutionPath().push(P).push(Q).push(R)

        path.check("unrelated")
        with self.assertRaises(CircularDependencyError) as context:
            path.check(Q)
        self.assertEqual(context.exception.cycle, [Q, R, Q])
        self.assertIn("Q -> R -> Q", str(context.exception))

    def test_same_token_from_another_provider_is_not_revisited(self):
        local, shared = object(), object()
        path = ResolutionPath().push(P, local).push(Q)

        path.check(P, shared)
        with self.assertRaises(CircularDependencyError) as context:
            path.check(P, local)
        self.assertEqual(context.exception.cycle, [P, Q, P])


class TestValidation(unittest.TestCase):
    """Test static validation of the provider graph."""

    def test_direct_cycle(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type(inject=[Q])
        module.make(Q).using().type(inject=[P])
        _, graph = build(module)

        with self.assertRaises(CircularDependencyError) as context:
            graph.validate()
        self.assertEqual(context.exception.cycle, [P, Q, P])

    def test_transitive_cycle(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type(inject=[Q])
        module.make(Q).using().type(inject=[R])
        module.make(R).using().type(inject=[P])
        _, graph = build(module)

        with self.assertRaises(CircularDependencyError) as context:
            graph.validate()
        self.assertEqual(context.exception.cycle, [P, Q, R, P])

    def test_cycle_across_modules(self):
        inner = ModuleDef("InnerModule")
        inner.make(Q).using().type(inject=[P])
        inner.export(Q)
        outer = ModuleDef("OuterModule", imports=[inner], exports=[inner])
        outer.make(P).using().type(inject=[Q])
        outer.export(P)
        inner.imports(outer)

        _, graph = build(outer)
        with self.assertRaises(CircularDependencyError) as context:
            graph.validate()
        self.assertEqual(context.exception.cycle, [P, Q, P])

    def test_unknown_dependency_reports_consumer_and_index(self):
        module = ModuleDef("AppModule")
        module.make(Q).using().type()
        module.make(P).using().type(inject=[Q, R])
        _, graph = build(module)

        with self.assertRaises(UnknownDependencyError) as context:
            graph.validate()
        error = context.exception
        self.assertIs(error.token, R)
        self.assertIs(error.dependent, P)
        self.assertEqual(error.index, 1)
        self.assertIn("Cannot resolve dependencies of P: R at index [1]", str(error))

    def test_optional_and_logger_dependencies_may_be_missing(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type(inject=[optional(R), logging.Logger])
        _, graph = build(module)

        graph.validate()

    def test_logger_dependency_without_logger_injection(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type(inject=[logging.Logger])
        _, graph = build(module, logger_injection=False)

        with self.assertRaises(UnknownDependencyError):
            graph.validate()

    def test_diamond_is_not_a_cycle(self):
        module = ModuleDef("AppModule")
        module.make(R).using().type()
        module.make(Q).using().type(inject=[R])
        module.make(P).using().type(inject=[Q, R])
        app, graph = build(module)

        graph.validate()
        self.assertTrue(all(wrapper.validated for wrapper in app.wrappers()))


class TestScopePromotion(unittest.TestCase):
    """Test the effective scope of providers."""

    def test_declared_scopes(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type()
        module.make(Q).request_scoped().using().type()
        module.make(R).transient().using().type()
        app, graph = build(module)

        self.assertIs(graph.effective_scope(app, app.providers[P]), Scope.SINGLETON)
        self.assertIs(graph.effective_scope(app, app.providers[Q]), Scope.REQUEST)
        self.assertIs(graph.effective_scope(app, app.providers[R]), Scope.TRANSIENT)

    def test_singleton_depending_on_request_scope_is_promoted(self):
        module = ModuleDef("AppModule")
        module.make(R).request_scoped().using().type()
        module.make(Q).using().type(inject=[R])
        module.make(P).using().type(inject=[Q])
        app, graph = build(module)

        self.assertIs(graph.effective_scope(app, app.providers[P]), Scope.REQUEST)
        self.assertIs(graph.effective_scope(app, app.providers[Q]), Scope.REQUEST)
        self.assertFalse(graph.is_static(app, app.providers[P]))

    def test_request_token_promotes_consumer(self):
        module = ModuleDef("AppModule")
        module.make(P).using().type(inject=[REQUEST])
        app, graph = build(module)

        self.assertIs(graph.effective_scope(app, app.providers[P]), Scope.REQUEST)

    def test_transient_stays_transient(self):
        module = ModuleDef("AppModule")
        module.make(Q).request_scoped().using().type()
        module.make(R).transient().using().type(inject=[Q])
        module.make(P).using().type(inject=[R])
        app, graph = build(module)

        self.assertIs(graph.effective_scope(app, app.providers[R]), Scope.TRANSIENT)
        self.assertFalse(app.providers[R].static_tree)
        self.assertIs(graph.effective_scope(app, app.providers[P]), Scope.REQUEST)


if __name__ == "__main__":
    unittest.main()
