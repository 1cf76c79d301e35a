"""Address repository: the only durable state of the tracker."""

from abc import ABC, abstractmethod
from typing import List, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
import structlog

from btc_tracker.core.errors import AddressExistsError, StorageError
from btc_tracker.database.models import Base, TrackedAddress
from btc_tracker.models.ledger import AddressRecord

logger = structlog.get_logger(__name__)


class AddressRepository(ABC):
    """Store of (user, address, label) tuples."""

    @abstractmethod
    def list_addresses(self, user_id: str) -> List[AddressRecord]:
        """All addresses of a user, newest first."""

    @abstractmethod
    def get_address(self, user_id: str, address: str) -> Optional[AddressRecord]:
        """One address of a user, or None."""

    @abstractmethod
    def add_address(self, user_id: str, address: str, label: Optional[str] = None) -> AddressRecord:
        """Track a new address. Raises AddressExistsError on duplicates."""

    @abstractmethod
    def remove_address(self, user_id: str, address: str) -> bool:
        """Stop tracking an address. Returns False when it was not tracked."""

    def create_tables(self) -> None:
        """Create the backing schema if the store needs one."""

    def dispose(self) -> None:
        """Release any held resources."""


def _to_record(row: TrackedAddress) -> AddressRecord:
    return AddressRecord(
        id=row.id,
        user_id=row.user_id,
        address=row.address,
        label=row.label,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAddressRepository(AddressRepository):
    """SQLAlchemy-backed address repository."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.logger = logger.bind(component="address_repository")

        connect_args = {}
        if database_url.startswith("sqlite"):
            # Routes call in from a thread pool
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            pool_pre_ping=True,
            echo=False
        )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

        self.logger.info("Address repository initialized", database=self.engine.url.database)

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create tables: {e}")
        self.logger.info("Database tables created")

    def dispose(self) -> None:
        self.engine.dispose()

    def get_session(self) -> Session:
        """Get a database session."""
        return self.SessionLocal()

    def test_connection(self) -> bool:
        """Test database connection."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            self.logger.error("Database connection failed", error=str(e))
            return False

    def list_addresses(self, user_id: str) -> List[AddressRecord]:
        try:
            with self.get_session() as session:
                rows = (
                    session.query(TrackedAddress)
                    .filter_by(user_id=user_id)
                    .order_by(TrackedAddress.created_at.desc(), TrackedAddress.id.desc())
                    .all()
                )
                return [_to_record(row) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error("Failed to list addresses", user_id=user_id, error=str(e))
            raise StorageError(f"Failed to list addresses: {e}")

    def get_address(self, user_id: str, address: str) -> Optional[AddressRecord]:
        try:
            with self.get_session() as session:
                row = (
                    session.query(TrackedAddress)
                    .filter_by(user_id=user_id, address=address)
                    .first()
                )
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            self.logger.error("Failed to get address", user_id=user_id, address=address, error=str(e))
            raise StorageError(f"Failed to get address: {e}")

    def add_address(self, user_id: str, address: str, label: Optional[str] = None) -> AddressRecord:
        try:
            with self.get_session() as session:
                row = TrackedAddress(user_id=user_id, address=address, label=label)
                session.add(row)
                session.commit()
                session.refresh(row)

                self.logger.info("Address added", user_id=user_id, address=address)
                return _to_record(row)
        except IntegrityError:
            raise AddressExistsError(
                "Address already exists for this user",
                details={"user_id": user_id, "address": address}
            )
        except SQLAlchemyError as e:
            self.logger.error("Failed to add address", user_id=user_id, address=address, error=str(e))
            raise StorageError(f"Failed to add address: {e}")

    def remove_address(self, user_id: str, address: str) -> bool:
        try:
            with self.get_session() as session:
                deleted = (
                    session.query(TrackedAddress)
                    .filter_by(user_id=user_id, address=address)
                    .delete()
                )
                session.commit()
        except SQLAlchemyError as e:
            self.logger.error("Failed to remove address", user_id=user_id, address=address, error=str(e))
            raise StorageError(f"Failed to remove address: {e}")

        if deleted:
            self.logger.info("Address removed", user_id=user_id, address=address)
        return deleted > 0
