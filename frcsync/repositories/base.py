"""
Base repository class for data access layer.

Repositories here own a session *factory*, not a session: each public method
opens a short-lived session, so one failing write never poisons the next
one. That is what lets a sync run persist records independently.

Example:
    class TeamRepository(BaseRepository[Team]):
        def find_by_number(self, number: int) -> Optional[Team]:
            with self.session_scope() as db:
                return db.query(Team).filter(Team.number == number).first()
"""
from abc import ABC
from contextlib import contextmanager
from typing import TypeVar, Generic, Type, Optional, List, Iterator

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, sessionmaker

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        session_factory: Factory producing new database sessions
    """

    def __init__(self, model_type: Type[T], session_factory: sessionmaker):
        """
        Initialize the repository.

        Args:
            model_type: The SQLAlchemy model class
            session_factory: Session factory (see core.database.create_session_factory)
        """
        self.model_type = model_type
        self.session_factory = session_factory

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits on success, rolls back and re-raises on any error.
        """
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ========================================================================
    # Read Operations
    # ========================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        with self.session_scope() as db:
            return db.query(self.model_type).filter(self.model_type.id == id).first()

    def find_all(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order_by: Optional[str] = None
    ) -> List[T]:
        """
        Find all records with optional pagination.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip
            order_by: Column name to order by (prefix with '-' for descending)

        Returns:
            List of records
        """
        with self.session_scope() as db:
            query = db.query(self.model_type)

            if order_by:
                if order_by.startswith('-'):
                    query = query.order_by(desc(getattr(self.model_type, order_by[1:])))
                else:
                    query = query.order_by(getattr(self.model_type, order_by))

            if offset is not None:
                query = query.offset(offset)

            if limit is not None:
                query = query.limit(limit)

            return query.all()

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        with self.session_scope() as db:
            query = db.query(func.count(self.model_type.id))
            if criterion:
                query = query.filter(*criterion)
            return query.scalar() or 0

    # ========================================================================
    # Write Operations
    # ========================================================================

    def save(self, instance: T) -> T:
        """
        Insert or update a single record in its own transaction.

        Returns:
            The persisted instance, detached and fully loaded
        """
        with self.session_scope() as db:
            merged = db.merge(instance)
            db.flush()
            db.refresh(merged)
        return merged
