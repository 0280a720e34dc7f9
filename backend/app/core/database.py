from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory database must be shared by every session in the process
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_kwargs(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upserts are not supported on dialect {dialect!r}")


def insert_or_ignore(db: Session, model, values: dict, conflict_columns: list) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING on the given unique columns.
    Returns True if a row was inserted, False if the conflicting row already existed.
    """
    stmt = _insert_for(db)(model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
    result = db.execute(stmt)
    return result.rowcount == 1


def upsert_increment(
    db: Session,
    model,
    values: dict,
    conflict_columns: list,
    increment_column: str,
    extra_updates: Optional[dict] = None,
) -> None:
    """
    Single-statement INSERT ... ON CONFLICT DO UPDATE that adds values[increment_column]
    to the existing row's column. Atomic under concurrent writers for the same key.
    """
    insert = _insert_for(db)(model).values(**values)
    column = getattr(model, increment_column)
    set_ = {increment_column: column + getattr(insert.excluded, increment_column)}
    if extra_updates:
        set_.update(extra_updates)
    stmt = insert.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
    db.execute(stmt)
