"""Database layer - engine, base classes and immutability guards."""

from stock_kernel.db.base import UUID, Base, UUIDString
from stock_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from stock_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
    "Base",
    "UUIDString",
    "UUID",
]
