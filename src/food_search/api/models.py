"""Pydantic models for HTTP request payloads."""

from pydantic import BaseModel


class SearchRequest(BaseModel):
    """Text search request body.

    Bounds are enforced by the search service so that every rejection uses the
    same error envelope.
    """

    query: str
    limit: int | None = None
    page: int = 1
