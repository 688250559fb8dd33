"""ORM models shared by the SQLite and integration tests."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freshkey.persistence.tables import Base, VersionedMixin
from freshkey.registry import CacheConfig


class Author(VersionedMixin, Base):
    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))

    books: Mapped[list[Book]] = relationship(back_populates="author", order_by="Book.id")


class Book(VersionedMixin, Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    genre: Mapped[str] = mapped_column(String(50), index=True)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"))

    author: Mapped[Author] = relationship(back_populates="books")


class Item(Base):
    """Versioned by its own ``modified_at`` column."""

    __tablename__ = "items"
    __cache_config__ = CacheConfig(version_column="modified_at")

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    category: Mapped[str] = mapped_column(String(50))
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class Widget(Base):
    """Versioned by an integer counter, registered with configure()."""

    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(String(100))
    revision: Mapped[int] = mapped_column(Integer, default=1, index=True)
