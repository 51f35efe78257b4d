"""
catalog/store.py -- SQLAlchemy-backed persistence layer for books and authors.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CatalogStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Security: all queries use bound parameters. Listing filters accept only the
whitelisted keys in BOOK_FILTERS / AUTHOR_FILTERS and are translated to
column expressions here, never interpolated.

Usage:
    store = CatalogStore("sqlite:///library.db")
    author_id = store.create_author(Author(name="Leo Tolstoy"))
    book_id = store.create_book(Book(name="War and Peace", genre="novel", publication_date="1869"), author_id)
    books = store.list_books({"author_name": "tolstoy"})
    store.close()
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, MetaData, String, Table, select
from sqlalchemy.engine import Engine

from auth.store import make_engine
from catalog.models import Author, AuthorBook, AuthorRef, Book

logger = logging.getLogger("library.catalog")

# Query parameters accepted by GET /books and GET /authors.
BOOK_FILTERS: frozenset[str] = frozenset({"book_name", "genre", "publication_date", "author_name"})
AUTHOR_FILTERS: frozenset[str] = frozenset({"author_name", "book_name", "genre"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_authors = Table(
    "authors",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_books = Table(
    "books",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("genre", String(100), nullable=False, server_default=""),
    Column("publication_date", String(32), nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("author_id", String(36)),  # NULL once the author is deleted
)


class UnknownAuthor(LookupError):
    """A book write referenced an author id that does not exist."""

    def __init__(self, author_id: str) -> None:
        self.author_id = author_id
        super().__init__(f"author with id {author_id} wasn't found")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_filters(filters: dict[str, str], allowed: frozenset[str]) -> None:
    unknown = set(filters) - allowed
    if unknown:
        raise ValueError(f"Unknown filters: {sorted(unknown)!r}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def create_author(self, author: Author) -> str:
        """Insert a new author and return its generated id."""
        author_id = str(uuid.uuid4())
        with self.engine.connect() as conn:
            conn.execute(_authors.insert().values(id=author_id, name=author.name, created_at=_now_iso()))
            conn.commit()
        return author_id

    def get_author(self, author_id: str) -> Optional[Author]:
        """Return the author with all of its books, or None if not found."""
        query = (
            select(_authors, *_book_columns())
            .select_from(_authors.outerjoin(_books, _books.c.author_id == _authors.c.id))
            .where(_authors.c.id == author_id)
            .order_by(_books.c.name)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        authors = _rows_to_authors(rows)
        return authors[0] if authors else None

    def list_authors(self, filters: Optional[dict[str, str]] = None) -> list[Author]:
        """Return authors ordered by name, each with its books.

        author_name matches the author; book_name and genre match books, so
        with those filters an author appears only with the books that matched.
        """
        filters = filters or {}
        _check_filters(filters, AUTHOR_FILTERS)
        query = select(_authors, *_book_columns()).select_from(
            _authors.outerjoin(_books, _books.c.author_id == _authors.c.id)
        )
        for key, value in filters.items():
            column = {"author_name": _authors.c.name, "book_name": _books.c.name, "genre": _books.c.genre}[key]
            query = query.where(column.contains(value, autoescape=True))
        query = query.order_by(_authors.c.name, _authors.c.id, _books.c.name)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return _rows_to_authors(rows)

    def update_author(self, author_id: str, name: str) -> Optional[Author]:
        """Rename an author. Returns the updated author, or None if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_authors.update().where(_authors.c.id == author_id).values(name=name))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_author(author_id)

    def delete_author(self, author_id: str) -> bool:
        """Delete an author and detach (not delete) its books.

        Both statements run in one transaction. Returns False if not found.
        """
        with self.engine.begin() as conn:
            conn.execute(_books.update().where(_books.c.author_id == author_id).values(author_id=None))
            result = conn.execute(_authors.delete().where(_authors.c.id == author_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def create_book(self, book: Book, author_id: str) -> str:
        """Insert a book for an existing author and return its generated id.

        Raises UnknownAuthor if author_id does not exist. The existence check
        and the insert share a transaction.
        """
        book_id = str(uuid.uuid4())
        with self.engine.begin() as conn:
            _ensure_author(conn, author_id)
            conn.execute(
                _books.insert().values(
                    id=book_id,
                    name=book.name,
                    genre=book.genre,
                    publication_date=book.publication_date,
                    created_at=_now_iso(),
                    author_id=author_id,
                )
            )
        return book_id

    def get_book(self, book_id: str) -> Optional[Book]:
        """Return a book with its author summary, or None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_book_query().where(_books.c.id == book_id)).fetchone()
        return _row_to_book(row) if row is not None else None

    def list_books(self, filters: Optional[dict[str, str]] = None) -> list[Book]:
        """Return books ordered by name.

        publication_date is an exact match; book_name, genre and author_name
        are case-insensitive substring matches on SQLite.
        """
        filters = filters or {}
        _check_filters(filters, BOOK_FILTERS)
        query = _book_query()
        for key, value in filters.items():
            if key == "publication_date":
                query = query.where(_books.c.publication_date == value)
            else:
                column = {"book_name": _books.c.name, "genre": _books.c.genre, "author_name": _authors.c.name}[key]
                query = query.where(column.contains(value, autoescape=True))
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_books.c.name)).fetchall()
        return [_row_to_book(r) for r in rows]

    def update_book(self, book_id: str, book: Book, author_id: str) -> Optional[Book]:
        """Overwrite a book's fields and author.

        Returns the updated book, None if the book does not exist. Raises
        UnknownAuthor if author_id does not exist.
        """
        with self.engine.begin() as conn:
            _ensure_author(conn, author_id)
            result = conn.execute(
                _books.update()
                .where(_books.c.id == book_id)
                .values(
                    name=book.name,
                    genre=book.genre,
                    publication_date=book.publication_date,
                    author_id=author_id,
                )
            )
        if result.rowcount == 0:
            return None
        return self.get_book(book_id)

    def delete_book(self, book_id: str) -> bool:
        """Delete a book. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_books.delete().where(_books.c.id == book_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Query builders
# ---------------------------------------------------------------------------


def _book_columns() -> list:
    return [
        _books.c.id.label("book_id"),
        _books.c.name.label("book_name"),
        _books.c.genre.label("book_genre"),
        _books.c.publication_date.label("book_publication_date"),
        _books.c.created_at.label("book_created_at"),
    ]


def _book_query():
    return select(
        _books,
        _authors.c.name.label("author_name"),
        _authors.c.created_at.label("author_created_at"),
    ).select_from(_books.outerjoin(_authors, _books.c.author_id == _authors.c.id))


def _ensure_author(conn, author_id: str) -> None:
    found = conn.execute(select(_authors.c.id).where(_authors.c.id == author_id)).fetchone()
    if found is None:
        raise UnknownAuthor(author_id)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_book(row) -> Book:
    author = None
    # author_name is NULL both when the book was detached and when the
    # author row vanished underneath it.
    if row.author_id is not None and row.author_name is not None:
        author = AuthorRef(id=row.author_id, name=row.author_name, created_at=row.author_created_at)
    return Book(
        id=row.id,
        name=row.name,
        genre=row.genre,
        publication_date=row.publication_date,
        created_at=row.created_at,
        author=author,
    )


def _rows_to_authors(rows) -> list[Author]:
    """Fold author-book join rows into Author objects, preserving row order."""
    authors: dict[str, Author] = {}
    for row in rows:
        author = authors.get(row.id)
        if author is None:
            author = Author(id=row.id, name=row.name, created_at=row.created_at)
            authors[row.id] = author
        if row.book_id is not None:
            author.books.append(
                AuthorBook(
                    id=row.book_id,
                    name=row.book_name,
                    genre=row.book_genre,
                    publication_date=row.book_publication_date,
                    created_at=row.book_created_at,
                )
            )
    return list(authors.values())
