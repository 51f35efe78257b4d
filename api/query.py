"""
api/query.py -- Query-string filter parsing shared by the list endpoints.

GET /books, /authors and /users accept a fixed set of filter parameters each.
Anything else is a client error (400), not silently ignored, so a typo in a
filter name cannot return an unfiltered listing.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

_INVALID_PARAMS = {"code": "invalid_params", "message": "Invalid request params"}


def parse_filters(request: Request, allowed: frozenset[str]) -> dict[str, str]:
    """Return the query parameters as a flat dict (last value wins).

    Raises HTTP 400 if any parameter name is not in ``allowed``.
    """
    filters = {key: request.query_params[key] for key in request.query_params.keys()}
    if not set(filters) <= allowed:
        raise HTTPException(status_code=400, detail=_INVALID_PARAMS)
    return filters


def invalid_params(exc: Exception) -> HTTPException:
    """Build the 400 raised when a store rejects a filter value."""
    return HTTPException(status_code=400, detail={**_INVALID_PARAMS, "detail": str(exc)})
