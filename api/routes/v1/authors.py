"""
api/routes/v1/authors.py -- Author catalog routes.

Routes:
  GET    /authors         -- list with books, filters: author_name, book_name, genre
  GET    /authors/{id}    -- detail with books
  POST   /authors         -- create (MODERATOR)
  PUT    /authors         -- rename by body id (MODERATOR)
  DELETE /authors/{id}    -- delete, detaching its books (MODERATOR)

Write routes compare the role for equality: an ADMIN token gets 403 here.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import AuthorCreate, AuthorResponse, AuthorUpdate
from api.query import invalid_params, parse_filters
from auth.dependencies import get_principal, require_moderator
from auth.models import Principal, User
from catalog.models import Author
from catalog.store import AUTHOR_FILTERS, CatalogStore

router = APIRouter()


def _not_found(author_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"author with id {author_id} wasn't found"},
    )


@router.get("/authors", response_model=list[AuthorResponse])
def list_authors(request: Request, principal: Principal = Depends(get_principal)) -> list[AuthorResponse]:
    filters = parse_filters(request, AUTHOR_FILTERS)
    catalog: CatalogStore = request.app.state.catalog
    try:
        authors = catalog.list_authors(filters)
    except ValueError as exc:
        raise invalid_params(exc) from exc
    return [AuthorResponse.from_author(a) for a in authors]


@router.get("/authors/{author_id}", response_model=AuthorResponse)
def get_author(request: Request, author_id: str, principal: Principal = Depends(get_principal)) -> AuthorResponse:
    catalog: CatalogStore = request.app.state.catalog
    author = catalog.get_author(author_id)
    if author is None:
        raise _not_found(author_id)
    return AuthorResponse.from_author(author)


@router.post("/authors", response_model=AuthorResponse, status_code=201)
def create_author(
    request: Request, body: AuthorCreate, invoker: User = Depends(require_moderator)
) -> AuthorResponse:
    catalog: CatalogStore = request.app.state.catalog
    author_id = catalog.create_author(Author(name=body.name))
    return AuthorResponse.from_author(catalog.get_author(author_id))


@router.put("/authors", response_model=AuthorResponse)
def update_author(
    request: Request, body: AuthorUpdate, invoker: User = Depends(require_moderator)
) -> AuthorResponse:
    catalog: CatalogStore = request.app.state.catalog
    updated = catalog.update_author(body.id, body.name)
    if updated is None:
        raise _not_found(body.id)
    return AuthorResponse.from_author(updated)


@router.delete("/authors/{author_id}", status_code=204)
def delete_author(request: Request, author_id: str, invoker: User = Depends(require_moderator)) -> Response:
    """Delete an author. Their books stay in the catalog with no author."""
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_author(author_id):
        raise _not_found(author_id)
    return Response(status_code=204)
