from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .config import Settings, settings

logger = logging.getLogger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure the parent folder exists for SQLite file-based DB URLs like:
      sqlite:///./data/influence.sqlite
      sqlite:////absolute/path/to/db.sqlite
    """
    if not database_url.startswith("sqlite:///"):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    """
    Pragmas that make SQLite usable for concurrent readers in local dev.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA temp_store=MEMORY;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        # Negative means KB: -64000 = ~64MB cache
        cursor.execute("PRAGMA cache_size=-64000;")
        cursor.close()


def _postgres_session_settings(engine: Engine, statement_timeout_ms: int) -> None:
    """
    Per-connection statement timeout; the store client's only timeout knob.
    """

    @event.listens_for(engine, "connect")
    def _set_postgres_settings(dbapi_connection, connection_record):
        try:
            cursor = dbapi_connection.cursor()
            cursor.execute(f"SET statement_timeout = {int(statement_timeout_ms)};")
            cursor.close()
        except Exception:
            # Managed providers may disallow it; never block startup on this.
            logger.warning("Could not set statement_timeout on Postgres connection", exc_info=True)


def build_engine(cfg: Optional[Settings] = None) -> Engine:
    """
    Create a SQLAlchemy engine for the configured relation store.

    - Uses cfg.resolved_database_url (DATABASE_URL or DB_PATH)
    - SQLite gets pragmas + check_same_thread=False (requests fan out to threads)
    - Postgres gets a statement timeout
    """
    cfg = cfg or settings
    database_url = cfg.resolved_database_url

    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)

    connect_args = {"check_same_thread": False} if _is_sqlite(database_url) else {}

    engine = create_engine(
        database_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
    )

    if _is_sqlite(database_url):
        _sqlite_pragmas(engine)

    if _is_postgres(database_url):
        _postgres_session_settings(engine, cfg.statement_timeout_ms)

    return engine


_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """
    Shared engine for the app process, created on first use.
    """
    global _engine
    if _engine is None:
        _engine = build_engine(settings)
    return _engine


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    """
    from .models.viewpoint_group import ViewpointGroup, ProfileGroupRelation  # noqa: F401
    from .models.profile import Person, Profile  # noqa: F401
    from .models.jurisdiction import Jurisdiction  # noqa: F401
    from .models.voter import VoterVerification, VoterVerificationJurisdiction  # noqa: F401
    from .models.election import BallotItem, Election  # noqa: F401
    from .models.race import Candidacy, Office, OfficeTerm, Party, Race  # noqa: F401
    from .models.measure import Measure  # noqa: F401
    from .models.influence_target import InfluenceTarget, InfluenceTargetGroupRelation  # noqa: F401

    # Precomputed rollups (denormalized views)
    from .models.rollup import RollupStatus, SupporterJurisdictionRollup, TimeSeriesRollup  # noqa: F401


def init_db(engine: Optional[Engine] = None, create_tables: bool = True) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(engine or get_engine())


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Context manager for scripts/jobs that need commit/rollback safety.

    Usage:
        with session_scope() as db:
            db.add(...)
    """
    session = Session(engine or get_engine())
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
