from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


def sde_uri_for_path(path: str) -> str:
    if "://" in path:
        return path
    return f"sqlite:///{Path(path).expanduser().resolve()}"


def create_sde_session_factory(uri_or_path: str) -> sessionmaker:
    """Build a session factory for the (read-only) SDE database."""

    db_uri = sde_uri_for_path(uri_or_path)

    engine_kwargs = dict(echo=False, future=True)
    if db_uri.startswith("sqlite"):
        # Sessions are opened from worker threads during batch expansion.
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(db_uri, **engine_kwargs)
    return sessionmaker(bind=engine, autoflush=False)
