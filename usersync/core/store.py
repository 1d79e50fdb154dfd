"""User record store - SQLAlchemy session management and identity-keyed CRUD.

Invariants:
    - Every session rolls back on exception (no partial commits leak)
    - All SQLAlchemy exceptions surface as StoreError, uninterpreted and unretried
    - Records returned to callers are detached (expire_on_commit=False)

Atomicity for concurrent deliveries is delegated to the database: the unique
constraint on external_id settles create races, and updates lock the row
with SELECT ... FOR UPDATE where the backend supports it.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .exceptions import StoreError
from .models import Base, UserRecord

logger = logging.getLogger(__name__)


class UserStore:
    """User-record store keyed by external identity.

    Args:
        database_url: SQLAlchemy database URL
        **engine_kwargs: Extra arguments for create_engine (pool sizing, timeouts)
    """

    def __init__(self, database_url: str, **engine_kwargs: Any):
        url = make_url(database_url)
        engine_kwargs.setdefault("pool_pre_ping", True)
        if url.get_backend_name() == "sqlite":
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_timeout", 10)
            engine_kwargs.setdefault("pool_recycle", 3600)
        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide a session with auto-rollback and StoreError mapping."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise StoreError("Integrity constraint violated", "commit")
        except OperationalError as e:
            session.rollback()
            logger.error(f"DB operational error: {e}")
            raise StoreError("Connection or operational error", "execute")
        except DBAPIError as e:
            session.rollback()
            logger.error(f"DB driver error: {e}")
            raise StoreError("Database driver error", "query")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise StoreError("Database operation failed", "unknown")
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create the users table if it does not exist."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Schema creation failed: {e}")
            raise StoreError("Schema creation failed", "ddl")

    def get(self, external_id: str) -> Optional[UserRecord]:
        with self.session() as db:
            return db.scalar(select(UserRecord).where(UserRecord.external_id == external_id))

    def list_users(self) -> list[UserRecord]:
        with self.session() as db:
            return list(db.scalars(select(UserRecord).order_by(UserRecord.created_at)))

    def insert(self, external_id: str, values: dict[str, Any]) -> tuple[UserRecord, bool]:
        """Insert a record unless one already exists for the external identity.

        Returns:
            Tuple of (record, created); created is False when an existing
            record (possibly inserted by a concurrent delivery) was returned
        """
        existing = self.get(external_id)
        if existing is not None:
            return existing, False

        session = self._session_factory()
        try:
            record = UserRecord(external_id=external_id, **values)
            session.add(record)
            session.commit()
            return record, True
        except IntegrityError:
            # Lost a create race on the unique constraint
            session.rollback()
            logger.info(f"Concurrent insert detected for external_id={external_id}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Insert failed for external_id={external_id}: {e}")
            raise StoreError("Failed to insert user", "insert")
        finally:
            session.close()

        winner = self.get(external_id)
        if winner is None:
            raise StoreError("Insert conflicted but no record was found", "insert")
        return winner, False

    def update(self, external_id: str, values: dict[str, Any]) -> Optional[UserRecord]:
        """Overwrite the given columns; returns None when no record matches."""
        with self.session() as db:
            stmt = (
                select(UserRecord)
                .where(UserRecord.external_id == external_id)
                .with_for_update()
            )
            record = db.scalar(stmt)
            if record is None:
                return None
            for key, value in values.items():
                setattr(record, key, value)
            db.commit()
            return record

    def delete(self, external_id: str) -> Optional[UserRecord]:
        """Remove the record; returns the removed record or None."""
        with self.session() as db:
            record = db.scalar(select(UserRecord).where(UserRecord.external_id == external_id))
            if record is None:
                return None
            db.delete(record)
            db.commit()
            return record

    def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except StoreError as e:
            logger.error(f"DB health check failed: {e}")
            return False
