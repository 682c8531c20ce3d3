#!/usr/bin/env python3
"""
Demonstration of Nestling - a module-graph dependency injection runtime.

This demo shows:
1. Modules with imports and exports
2. Class, value and async factory providers
3. Request-scoped providers resolved per context
4. Transient providers with one instance per consumer
5. Circular and missing dependency detection
"""

import asyncio
import logging
from dataclasses import dataclass

from nestling import (
    INQUIRER,
    REQUEST,
    ApplicationContext,
    ContextIdFactory,
    InjectionToken,
    InjectorError,
    ModuleDef,
)

DATABASE_URL = InjectionToken("DATABASE_URL")


@dataclass
class Config:
    """Application configuration."""

    app_name: str
    debug: bool = False


class Connection:
    """Database connection, opened by an async factory."""

    def __init__(self, url: str):
        self.url = url

    def query(self, sql: str) -> str:
        return f"[{self.url}] {sql}"


async def connect(url: str) -> Connection:
    await asyncio.sleep(0.01)
    return Connection(url)


class ScopedLogger:
    """A transient logger that prefixes messages with its consumer's name."""

    def __init__(self, inquirer: type | None):
        self.prefix = getattr(inquirer, "__name__", "app")

    def log(self, message: str) -> None:
        print(f"[{self.prefix}] {message}")


class UserService:
    def __init__(self, connection: Connection, logger: ScopedLogger):
        self.connection = connection
        self.logger = logger

    def create_user(self, username: str) -> str:
        self.logger.log(f"Creating user: {username}")
        return self.connection.query(f"INSERT INTO users (name) VALUES ('{username}')")


class UsersController:
    def __init__(self, request: dict[str, str], users: UserService, logger: ScopedLogger):
        self.request = request
        self.users = users
        self.logger = logger

    def handle(self) -> str:
        self.logger.log(f"Handling request for {self.request['user']}")
        return self.users.create_user(self.request["user"])


def build_modules() -> ModuleDef:
    common = ModuleDef("CommonModule", global_=True)
    common.make(Config).using().value(Config("DemoApp", debug=True))
    common.make(ScopedLogger).transient().using().type(inject=[INQUIRER])
    common.export(Config, ScopedLogger)

    database = ModuleDef("DatabaseModule")
    database.make(DATABASE_URL).using().func(
        lambda config: "sqlite://debug" if config.debug else "postgresql://prod", inject=[Config]
    )
    database.make(Connection).using().func(connect, inject=[DATABASE_URL])
    database.export(Connection)

    users = ModuleDef("UsersModule", imports=[database])
    users.make(UserService).using().type(inject=[Connection, ScopedLogger])
    users.controller(UsersController).using().type(inject=[REQUEST, UserService, ScopedLogger])

    return ModuleDef("AppModule", imports=[common, users])


async def main() -> None:
    """Main demo function."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    print("=== Nestling Demo ===\n")

    print("1. Startup:")
    print("-" * 30)
    async with await ApplicationContext.create(build_modules()) as app:
        user_service = app.get(UserService)
        print(f"Result: {user_service.create_user('alice')}")

        print("\n2. Request scope:")
        print("-" * 30)
        for user in ("bob", "carol"):
            context_id = ContextIdFactory.create()
            app.register_request({"user": user}, context_id)
            controller = await app.resolve(UsersController, context_id)
            print(f"Result: {controller.handle()}")
            print(f"Shares UserService singleton: {controller.users is user_service}")

    print("\n3. Circular dependency detection:")
    print("-" * 30)

    class A:
        def __init__(self, b: "B"):
            self.b = b

    class B:
        def __init__(self, a: A):
            self.a = a

    circular = ModuleDef("CircularModule")
    circular.make(A).using().type(inject=[B])
    circular.make(B).using().type(inject=[A])
    try:
        await ApplicationContext.create(circular)
    except InjectorError as e:
        print(f"Caught expected error: {e}")

    print("\n4. Missing dependency detection:")
    print("-" * 30)
    incomplete = ModuleDef("IncompleteModule")
    incomplete.make(UserService).using().type(inject=[Connection, ScopedLogger])
    try:
        await ApplicationContext.create(incomplete)
    except InjectorError as e:
        print(f"Caught expected error: {e}")

    print("\nDemo completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
