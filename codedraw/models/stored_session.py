"""Database model holding the persisted draw session blob."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    DateTime,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column, Session

from .base import Base


class StoredSession(Base):
    """Key-value row storing one serialized draw session."""

    __tablename__ = "stored_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Primary key."""

    storage_key: Mapped[str] = mapped_column(String(100), nullable=False)
    """Slot name under which the session is stored (e.g. ``lottery-state-v3``)."""

    payload: Mapped[str] = mapped_column(Text, nullable=False)
    """UTF-8 JSON document produced by :func:`codedraw.store.dump_state`."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the slot was first written."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    """Timestamp automatically bumped on every overwrite."""

    __table_args__ = (
        UniqueConstraint("storage_key", name="stored_sessions_storage_key_key"),
    )

    def __init__(
        self,
        *,
        storage_key: str,
        payload: str,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self.storage_key = storage_key
        self.payload = payload
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<StoredSession(id={id}, storage_key={key}, size={size})>".format(
            id=self.id,
            key=self.storage_key,
            size=len(self.payload or ""),
        )

    @classmethod
    def get_by_key(cls, session: Session, storage_key: str) -> Optional["StoredSession"]:
        """Return the stored row for ``storage_key`` if it exists."""

        return session.scalar(select(cls).where(cls.storage_key == storage_key))

    @classmethod
    def storage_keys(cls, session: Session) -> list[str]:
        """Return every stored slot name in alphabetical order."""

        return list(session.scalars(select(cls.storage_key).order_by(cls.storage_key)))

    @classmethod
    def upsert(cls, session: Session, storage_key: str, payload: str) -> "StoredSession":
        """Create or overwrite the row for ``storage_key`` with ``payload``.

        The caller owns the transaction; the row is added to ``session`` but
        not committed.
        """

        row = cls.get_by_key(session, storage_key)
        if row is None:
            row = cls(storage_key=storage_key, payload=payload)
            session.add(row)
        else:
            row.payload = payload
        return row
