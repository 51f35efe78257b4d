"""
API request and response models for the library service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

UserResponse never carries the password hash or the session token.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Role, User
from catalog.models import Author, AuthorBook, Book

# bcrypt reads at most 72 bytes of UTF-8; longer input is rejected here rather
# than truncated or left to fail inside the hasher.
_MAX_PASSWORD_LENGTH = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > _MAX_PASSWORD_LENGTH:
        raise ValueError(f"password must be at most {_MAX_PASSWORD_LENGTH} bytes in UTF-8")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    No whitespace stripping at model level: it would apply to the password too.
    """

    name: str = Field(min_length=1, max_length=255)
    mail: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(max_length=_MAX_PASSWORD_LENGTH, repr=False)
    role: Role = Role.USER

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    name: str = Field(min_length=1, max_length=255)
    password: str = Field(max_length=_MAX_PASSWORD_LENGTH, repr=False)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class UserUpdate(BaseModel):
    """Request body for PUT /api/v1/users. The id selects the row to overwrite."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=255)
    mail: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: Role


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user account."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    mail: str
    role: Role
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            mail=user.mail,
            role=user.role,
            created_at=user.created_at or "",
        )


# ---------------------------------------------------------------------------
# Catalog -- request models
# ---------------------------------------------------------------------------


class AuthorCreate(BaseModel):
    """Request body for POST /api/v1/authors."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class AuthorUpdate(AuthorCreate):
    """Request body for PUT /api/v1/authors."""

    id: str = Field(min_length=1, max_length=36)


class BookCreate(BaseModel):
    """Request body for POST /api/v1/books."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    genre: str = Field(default="", max_length=100)
    publication_date: str = Field(default="", max_length=32)
    author_id: str = Field(min_length=1, max_length=36)

    def to_book(self) -> Book:
        return Book(name=self.name, genre=self.genre, publication_date=self.publication_date)


class BookUpdate(BookCreate):
    """Request body for PUT /api/v1/books."""

    id: str = Field(min_length=1, max_length=36)


# ---------------------------------------------------------------------------
# Catalog -- response models
# ---------------------------------------------------------------------------


class AuthorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: str


class AuthorBookRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    genre: str
    publication_date: str
    created_at: str

    @classmethod
    def from_book(cls, book: AuthorBook) -> "AuthorBookRow":
        return cls(
            id=book.id,
            name=book.name,
            genre=book.genre,
            publication_date=book.publication_date,
            created_at=book.created_at,
        )


class AuthorResponse(BaseModel):
    """An author with the books attributed to them."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: str
    books: list[AuthorBookRow] = Field(default_factory=list)

    @classmethod
    def from_author(cls, author: Author) -> "AuthorResponse":
        return cls(
            id=author.id,
            name=author.name,
            created_at=author.created_at,
            books=[AuthorBookRow.from_book(b) for b in author.books],
        )


class BookResponse(BaseModel):
    """A book with its author summary. author is null once the author is deleted."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    genre: str
    publication_date: str
    created_at: str
    author: Optional[AuthorSummary] = None

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        author = None
        if book.author is not None:
            author = AuthorSummary(id=book.author.id, name=book.author.name, created_at=book.author.created_at)
        return cls(
            id=book.id,
            name=book.name,
            genre=book.genre,
            publication_date=book.publication_date,
            created_at=book.created_at,
            author=author,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
