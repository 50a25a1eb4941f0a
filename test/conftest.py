"""Pytest configuration for the temporal-history test suite."""

import logging
import sys
from collections.abc import Callable, Generator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from temporal_history import (  # noqa: E402
    ParanoidMixin,
    attach_history,
    create_session_factory,
    detach_history,
    history_model_for,
    tracked_models,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserSchema:
    """A fresh declarative base with a tracked ``User`` model and its history."""

    base: Any
    user: type
    history: type


def build_user_schema(*, paranoid: bool = False, **options: Any) -> UserSchema:
    """Declare ``User`` on a new base and attach history with ``options``."""
    base = declarative_base()
    mixins: tuple[type, ...] = (ParanoidMixin,) if paranoid else ()

    class User(*mixins, base):
        """Tracked test entity."""

        __tablename__ = "users"

        id = Column(Integer, primary_key=True)
        name = Column(Text)
        email = Column(String(200), unique=True, nullable=True)
        updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    attach_history(User, base, options)
    return UserSchema(base=base, user=User, history=history_model_for(User))


def _count_rows(session: Session, model: type) -> int:
    """Count rows of ``model`` visible to ``session``."""
    return session.scalar(select(func.count()).select_from(model))


def _history_rows(session: Session, history: type) -> list[Any]:
    """Return history rows in archive order."""
    id_column = history.__table__.primary_key.columns.values()[0]
    return list(session.scalars(select(history).order_by(id_column)))


@pytest.fixture(autouse=True)
def detach_tracked_models() -> Generator[None, None, None]:
    """Remove the listeners every test registers on the shared Session class."""
    yield
    for model in tracked_models():
        detach_history(model)


@pytest.fixture()
def count_rows() -> Callable[[Session, type], int]:
    return _count_rows


@pytest.fixture()
def history_rows() -> Callable[[Session, type], list[Any]]:
    return _history_rows


@pytest.fixture()
def sqlite_engine() -> Generator[Engine, None, None]:
    """Provide an in-memory sqlite engine and ensure cleanup."""
    engine = create_engine("sqlite:///:memory:")
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory_for(sqlite_engine: Engine) -> Callable[[Any], sessionmaker]:
    """Create all tables of a base and return a session factory for it."""

    def factory(base: Any) -> sessionmaker:
        base.metadata.create_all(sqlite_engine)
        return create_session_factory(sqlite_engine)

    return factory


@pytest.fixture()
def user_schema() -> UserSchema:
    """Default-mode tracked ``User``."""
    return build_user_schema()


@pytest.fixture()
def full_schema() -> UserSchema:
    """Full-mode, soft-deletable tracked ``User``."""
    return build_user_schema(paranoid=True, full=True)


@pytest.fixture()
def paranoid_schema() -> UserSchema:
    """Default-mode, soft-deletable tracked ``User``."""
    return build_user_schema(paranoid=True)


@pytest.fixture()
def schema_builder() -> Callable[..., UserSchema]:
    """Expose the schema builder for tests needing custom options."""
    return build_user_schema


@pytest.fixture()
def sqlite_session_factory(
    session_factory_for: Callable[[Any], sessionmaker], user_schema: UserSchema
) -> sessionmaker:
    """Session factory over the default-mode ``User`` schema."""
    return session_factory_for(user_schema.base)


@pytest.fixture()
def restore_root_logging() -> Generator[None, None, None]:
    """Restore root logger handlers and level after a logging test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
