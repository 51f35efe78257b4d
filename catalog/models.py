"""
catalog/models.py -- Domain dataclasses for the library catalog.

Pure data containers with zero logic. Queries, joins and the
detach-books-on-author-delete rule live in catalog/store.py.

A Book's author is optional: deleting an author keeps its books and nulls
their author reference.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class AuthorRef:
    """The author summary embedded in a Book."""

    id: str
    name: str
    created_at: str = ""


@dataclass
class AuthorBook:
    """A book as listed under its author (no back-reference to the author)."""

    id: str
    name: str
    genre: str
    publication_date: str
    created_at: str = ""


@dataclass
class Author:
    name: str
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    books: list[AuthorBook] = field(default_factory=list)


@dataclass
class Book:
    """A catalog entry.

    publication_date is a free-form string ("1869", "1869-03-01"); the store
    compares it for equality when filtering, never parses it.
    """

    name: str
    genre: str
    publication_date: str
    id: Optional[str] = None
    created_at: str = ""
    author: Optional[AuthorRef] = None
