"""
TaskPulse Database Base — SQLAlchemy declarative base and engine registry.

Provides:
- Base: SQLAlchemy declarative base for the record tables
- EngineRegistry: Named engines with their session factories
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

DEFAULT_ENGINE = "taskpulse"


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all TaskPulse tables."""
    pass


class EngineRegistry:
    """
    Registry of SQLAlchemy engines keyed by name.

    Usage:
        registry = EngineRegistry()
        registry.register("taskpulse", "postgresql://...")
        session = registry.get_session("taskpulse")
    """

    def __init__(self):
        self._engines: Dict[str, Any] = {}
        self._session_factories: Dict[str, sessionmaker] = {}

    def register(
        self,
        name: str,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        pool_pre_ping: bool = True,
        **kwargs: Any,
    ) -> None:
        """Register a new database engine. Pool settings are ignored for SQLite."""
        if url.startswith("sqlite"):
            # Queries run in worker threads via asyncio.to_thread
            connect_args = dict(kwargs.pop("connect_args", {}) or {})
            connect_args.setdefault("check_same_thread", False)
            engine = create_engine(url, connect_args=connect_args, **kwargs)
        else:
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=pool_pre_ping,
                **kwargs,
            )
        self._engines[name] = engine
        self._session_factories[name] = sessionmaker(bind=engine)

    def get(self, name: str) -> Any:
        """Get a registered engine by name."""
        if name not in self._engines:
            raise KeyError(f"Engine '{name}' not registered. Available: {list(self._engines.keys())}")
        return self._engines[name]

    def get_session(self, name: str = DEFAULT_ENGINE) -> Session:
        """Get a new session for a registered engine."""
        if name not in self._session_factories:
            raise KeyError(f"Session factory '{name}' not found. Available: {list(self._session_factories.keys())}")
        return self._session_factories[name]()

    def create_tables(self, name: str = DEFAULT_ENGINE) -> None:
        """Create the record tables if missing (dev / tests only)."""
        Base.metadata.create_all(self.get(name))

    def dispose(self, name: Optional[str] = None) -> None:
        """Dispose one or all engines (close connection pools)."""
        if name:
            if name in self._engines:
                self._engines.pop(name).dispose()
                self._session_factories.pop(name, None)
        else:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()
            self._session_factories.clear()

    @property
    def registered_names(self) -> list:
        """List all registered engine names."""
        return list(self._engines.keys())

    def health_check(self, name: str) -> bool:
        """Check if an engine can connect."""
        try:
            engine = self.get(name)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False


# Global engine registry singleton
engine_registry = EngineRegistry()
