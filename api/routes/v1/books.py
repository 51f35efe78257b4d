"""
api/routes/v1/books.py -- Book catalog routes.

Routes:
  GET    /books          -- list, filters: book_name, genre, publication_date, author_name
  GET    /books/{id}     -- detail with author summary
  POST   /books          -- create (MODERATOR)
  PUT    /books          -- overwrite by body id (MODERATOR)
  DELETE /books/{id}     -- delete (MODERATOR)

Reads need any authenticated caller; writes need a role of exactly MODERATOR.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import BookCreate, BookResponse, BookUpdate
from api.query import invalid_params, parse_filters
from auth.dependencies import get_principal, require_moderator
from auth.models import Principal, User
from catalog.store import BOOK_FILTERS, CatalogStore, UnknownAuthor

router = APIRouter()


def _not_found(book_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"book with id {book_id} wasn't found"},
    )


def _unknown_author(exc: UnknownAuthor) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": str(exc)})


@router.get("/books", response_model=list[BookResponse])
def list_books(request: Request, principal: Principal = Depends(get_principal)) -> list[BookResponse]:
    filters = parse_filters(request, BOOK_FILTERS)
    catalog: CatalogStore = request.app.state.catalog
    try:
        books = catalog.list_books(filters)
    except ValueError as exc:
        raise invalid_params(exc) from exc
    return [BookResponse.from_book(b) for b in books]


@router.get("/books/{book_id}", response_model=BookResponse)
def get_book(request: Request, book_id: str, principal: Principal = Depends(get_principal)) -> BookResponse:
    catalog: CatalogStore = request.app.state.catalog
    book = catalog.get_book(book_id)
    if book is None:
        raise _not_found(book_id)
    return BookResponse.from_book(book)


@router.post("/books", response_model=BookResponse, status_code=201)
def create_book(request: Request, body: BookCreate, invoker: User = Depends(require_moderator)) -> BookResponse:
    """Add a book to an existing author. 404 if the author does not exist."""
    catalog: CatalogStore = request.app.state.catalog
    try:
        book_id = catalog.create_book(body.to_book(), body.author_id)
    except UnknownAuthor as exc:
        raise _unknown_author(exc) from exc
    return BookResponse.from_book(catalog.get_book(book_id))


@router.put("/books", response_model=BookResponse)
def update_book(request: Request, body: BookUpdate, invoker: User = Depends(require_moderator)) -> BookResponse:
    catalog: CatalogStore = request.app.state.catalog
    try:
        updated = catalog.update_book(body.id, body.to_book(), body.author_id)
    except UnknownAuthor as exc:
        raise _unknown_author(exc) from exc
    if updated is None:
        raise _not_found(body.id)
    return BookResponse.from_book(updated)


@router.delete("/books/{book_id}", status_code=204)
def delete_book(request: Request, book_id: str, invoker: User = Depends(require_moderator)) -> Response:
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_book(book_id):
        raise _not_found(book_id)
    return Response(status_code=204)
