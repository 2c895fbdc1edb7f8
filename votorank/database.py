"""
Database schema and connection management.

Uses SQLAlchemy; SQLite locally, any SQLAlchemy URL in deployment.
Sessions are created per run and passed in explicitly, never held globally.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, JSON, String, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class Candidate(Base):
    """Candidate row as written by the ingestion scrapers."""

    __tablename__ = "candidates"

    id = Column(String, primary_key=True)
    full_name = Column(String, nullable=False)
    cargo = Column(String, nullable=False)  # presidente, senador, diputado, ...
    party_id = Column(String, nullable=True)
    dni = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    assets_declaration = Column(JSON(none_as_null=True), nullable=True)  # raw, any of three shapes
    is_active = Column(Boolean, nullable=False, default=True)


class Score(Base):
    """Pillar scores and per-mode metrics from the analytics pipeline."""

    __tablename__ = "scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(String, ForeignKey("candidates.id"), nullable=False, unique=True)
    competence = Column(Float, nullable=False)
    integrity = Column(Float, nullable=False)
    transparency = Column(Float, nullable=False)
    plan_viability = Column(Float, nullable=True)  # presidential formulas only
    score_balanced = Column(Float, nullable=True)
    score_merit = Column(Float, nullable=True)
    score_integrity = Column(Float, nullable=True)
    score_balanced_p = Column(Float, nullable=True)
    score_merit_p = Column(Float, nullable=True)
    score_integrity_p = Column(Float, nullable=True)


def database_url(target: Union[str, Path]) -> str:
    """Accept either a SQLAlchemy URL or a path to a SQLite file."""
    if isinstance(target, Path):
        return f"sqlite:///{target}"
    if "://" in target:
        return target
    return f"sqlite:///{target}"


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


def init_database(target: Union[str, Path]) -> None:
    """
    Initialize database and create tables.

    Args:
        target: SQLAlchemy URL or path to SQLite database file
    """
    url = database_url(target)
    _ensure_sqlite_dir(url)
    engine = create_engine(url)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(target: Union[str, Path]) -> Session:
    """
    Get database session.

    Args:
        target: SQLAlchemy URL or path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(database_url(target))
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()


@contextmanager
def session_scope(target: Union[str, Path]) -> Iterator[Session]:
    """Session whose lifetime is one run. Closed (and its engine disposed) on exit."""
    session = get_session(target)
    try:
        yield session
    finally:
        bind = session.get_bind()
        session.close()
        bind.dispose()
