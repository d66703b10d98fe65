from shared.database.postgres import (
    AsyncSessionFactory,
    Base,
    BigId,
    build_session_factory,
    get_async_engine,
    get_async_session_factory,
    session_scope,
)

__all__ = [
    "AsyncSessionFactory",
    "Base",
    "BigId",
    "build_session_factory",
    "get_async_engine",
    "get_async_session_factory",
    "session_scope",
]
