from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# BigInteger for PostgreSQL, Integer for SQLite (required for autoincrement)
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class BaseModel(Base):
    """Base model with common fields: id, created_at, updated_at."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ActorStampMixin:
    """
    Who created / last changed the row.

    Actor ids come from the identity service token (``sub`` claim); users live
    outside this database, so there is no foreign key.
    """

    @declared_attr
    def created_by_id(cls) -> Mapped[int]:
        return mapped_column(BigInteger, nullable=False)

    @declared_attr
    def updated_by_id(cls) -> Mapped[int | None]:
        return mapped_column(BigInteger, nullable=True)
