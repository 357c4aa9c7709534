"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, Query, Request, status
from fastapi.responses import JSONResponse

from food_search.api.models import SearchRequest
from food_search.app_logging import configure_logging
from food_search.containers import AppContainer
from food_search.domain.search import AggregatedSearchResult, GroupPage
from food_search.errors import (
    FoodSearchError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
    UpstreamFailureError,
)

INTERNAL_ERROR_MESSAGE = "Internal server error"

_ERROR_STATUS = {
    InvalidInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    RateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
    UpstreamFailureError: status.HTTP_502_BAD_GATEWAY,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(debug=container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(FoodSearchError)
    async def food_search_error_handler(
        request: Request, exc: FoodSearchError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(
            type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.warning(
            "Request failed: path=%s stage=%s status=%s: %s",
            request.url.path,
            exc.stage,
            status_code,
            exc.message,
        )
        headers = None
        if isinstance(exc, RateLimitedError) and exc.retry_after_seconds is not None:
            headers = {"Retry-After": str(int(exc.retry_after_seconds))}
        return JSONResponse(
            status_code=status_code,
            content=_error_body(exc),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error: path=%s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(FoodSearchError(INTERNAL_ERROR_MESSAGE)),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/search")
    async def search(payload: SearchRequest, request: Request) -> dict[str, object]:
        """Run a text search and return the initial grouped view."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.search_service.search(
            payload.query, limit=payload.limit, page=payload.page
        )
        return _serialize_result(result)

    @app.get("/search/more")
    async def search_more(
        request: Request,
        cursor: str,
        page_size: int | None = Query(default=None, ge=1, le=50),
    ) -> dict[str, object]:
        """Return the next page of one result group."""
        state_container: AppContainer = request.app.state.container
        page = await state_container.search_service.load_more(cursor, page_size)
        return _serialize_page(page)

    @app.get("/barcode/{code}")
    async def barcode(
        code: str,
        request: Request,
        quantity: float = 1.0,
        unit: str = "serving",
    ) -> dict[str, object]:
        """Look up a scanned barcode."""
        state_container: AppContainer = request.app.state.container
        candidates = await state_container.barcode_service.lookup_barcode(
            code, quantity=quantity, unit=unit
        )
        result = state_container.aggregator.aggregate_scanned(code.strip(), candidates)
        return _serialize_result(result)

    return app


def _serialize_result(result: AggregatedSearchResult) -> dict[str, object]:
    body = asdict(result)
    body["items_shown"] = result.items_shown
    return body


def _serialize_page(page: GroupPage) -> dict[str, object]:
    return asdict(page)


def _error_body(exc: FoodSearchError) -> dict[str, object]:
    details: dict[str, object] = {
        "stage": exc.stage,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    if isinstance(exc, UpstreamFailureError) and exc.request_id:
        details["requestId"] = exc.request_id
    if isinstance(exc, NotFoundError) and exc.recovery:
        details["recovery"] = exc.recovery
    if isinstance(exc, RateLimitedError) and exc.retry_after_seconds is not None:
        details["retryAfterSeconds"] = exc.retry_after_seconds
    return {"error": exc.message, "retryable": exc.retryable, "details": details}
