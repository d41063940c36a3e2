"""Record store adapter: users and notifications in a SQL database.

Mental model refresher:
- Outbound adapter over SQLAlchemy. Plain blocking calls; the application
  layer decides when to run them off the event loop.
- Users are keyed by the upstream identity service's id (as a string).
- Notifications are only read here by the API; nothing in the dispatch path
  writes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..domain.events import UserRecord

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    username = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False)
    role = Column(String(64), nullable=True)


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    message = Column(Text, nullable=False)
    service = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


@dataclass(frozen=True)
class NotificationRecord:
    id: int
    user_id: str
    message: str
    service: str | None
    created_at: datetime


class SqlRecordStore:
    """User and notification persistence over one shared SQLAlchemy engine."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        engine_kwargs: dict = {"echo": echo}
        if database_url.startswith("sqlite"):
            # Worker threads share the connection; in-memory databases need a single one.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **engine_kwargs)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._sessions() as session:
            row = session.get(UserRow, str(user_id))
            return _to_user_record(row) if row is not None else None

    def upsert_user(self, user: UserRecord) -> UserRecord:
        """Create the user if absent, otherwise overwrite its fields."""
        try:
            return self._upsert_once(user)
        except IntegrityError:
            # A concurrent upsert inserted the same id first; it now exists.
            return self._upsert_once(user)

    def add_notification(
        self,
        *,
        user_id: str,
        message: str,
        service: str | None = None,
        created_at: datetime | None = None,
    ) -> NotificationRecord:
        row = NotificationRow(
            user_id=str(user_id),
            message=message,
            service=service,
            created_at=created_at or datetime.now(tz=UTC),
        )
        with self._sessions() as session, session.begin():
            session.add(row)
            session.flush()
            return _to_notification_record(row)

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        """Return the user's notifications, newest first."""
        query = (
            select(NotificationRow)
            .where(NotificationRow.user_id == str(user_id))
            .order_by(NotificationRow.created_at.desc(), NotificationRow.id.desc())
        )
        with self._sessions() as session:
            return [_to_notification_record(row) for row in session.scalars(query)]

    def _upsert_once(self, user: UserRecord) -> UserRecord:
        with self._sessions() as session, session.begin():
            row = session.get(UserRow, user.id)
            if row is None:
                row = UserRow(id=user.id)
                session.add(row)
            row.username = user.username
            row.email = user.email
            row.role = user.role
        return user


def _to_user_record(row: UserRow) -> UserRecord:
    return UserRecord(id=row.id, username=row.username, email=row.email, role=row.role)


def _to_notification_record(row: NotificationRow) -> NotificationRecord:
    return NotificationRecord(
        id=row.id,
        user_id=row.user_id,
        message=row.message,
        service=row.service,
        created_at=row.created_at,
    )
