"""Per-session search pipeline: debounce, cancellation and stale-response fencing.

Each :class:`SearchSession` owns its debounce timer and its in-flight request.
Every dispatch takes a new sequence number, and a response is applied only if
its sequence number is still the latest one issued. A superseded request is
cancelled through its task, and if its response still arrives it is dropped.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from food_search.domain.search import AggregatedSearchResult
from food_search.errors import FoodSearchError
from food_search.services.search import FoodSearchService

_logger = logging.getLogger(__name__)


class SearchState(StrEnum):
    """Lifecycle of a search session."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class SessionUpdate:
    """A state transition delivered to the UI."""

    sequence: int
    query: str
    state: SearchState
    result: AggregatedSearchResult | None = None
    error: FoodSearchError | None = None


@dataclass
class SearchSession:
    """One user's search box."""

    search_service: FoodSearchService
    debounce_seconds: float = 0.8
    min_query_length: int = 2
    listener: Callable[[SessionUpdate], None] | None = None
    debug: bool = False
    state: SearchState = field(default=SearchState.IDLE, init=False)
    latest: SessionUpdate | None = field(default=None, init=False)
    dispatch_count: int = field(default=0, init=False)
    _sequence: int = field(default=0, init=False, repr=False)
    _debounce_task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _request_task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently issued request."""
        return self._sequence

    def type(self, text: str) -> None:
        """Register a keystroke and restart the debounce timer."""
        self._ensure_open()
        self._cancel_debounce()
        query = text.strip()
        if len(query) < self.min_query_length:
            self._cancel_request()
            self._sequence += 1
            self.state = SearchState.IDLE
            return
        self.state = SearchState.DEBOUNCING
        self._debounce_task = asyncio.create_task(self._dispatch_after_delay(query))

    async def submit(self, text: str) -> AggregatedSearchResult | None:
        """Dispatch immediately, skipping the debounce window.

        Returns ``None`` when the query is too short, when the request failed
        (see :attr:`latest`), or when it was superseded before it completed.
        """
        self._ensure_open()
        self._cancel_debounce()
        query = text.strip()
        if len(query) < self.min_query_length:
            self._cancel_request()
            self._sequence += 1
            self.state = SearchState.IDLE
            return None
        task = self._issue(query)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return None

    async def wait_until_settled(self) -> SessionUpdate | None:
        """Wait for the pending debounce and any in-flight request."""
        while True:
            pending = [
                task
                for task in (self._debounce_task, self._request_task)
                if task is not None and not task.done()
            ]
            if not pending:
                return self.latest
            await asyncio.wait(pending)

    async def close(self) -> None:
        """Release the timer and in-flight request; no updates after this."""
        self._closed = True
        self.listener = None
        tasks = [
            task
            for task in (self._debounce_task, self._request_task)
            if task is not None and not task.done()
        ]
        self._cancel_debounce()
        self._cancel_request()
        self.state = SearchState.IDLE
        if tasks:
            await asyncio.wait(tasks)

    async def _dispatch_after_delay(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._debounce_task = None
        self._issue(query)

    def _issue(self, query: str) -> asyncio.Task:
        self._cancel_request()
        self._sequence += 1
        sequence = self._sequence
        self.state = SearchState.IN_FLIGHT
        self.dispatch_count += 1
        if self.debug:
            _logger.info("Dispatching search: sequence=%s query=%s", sequence, query)
        task = asyncio.create_task(self._run(sequence, query))
        self._request_task = task
        return task

    async def _run(self, sequence: int, query: str) -> AggregatedSearchResult | None:
        try:
            result = await self.search_service.search(query)
        except asyncio.CancelledError:
            if self.debug:
                _logger.info(
                    "Search %s: sequence=%s query=%s",
                    SearchState.CANCELED,
                    sequence,
                    query,
                )
            raise
        except FoodSearchError as exc:
            if self._is_current(sequence):
                self._apply(
                    SessionUpdate(
                        sequence=sequence,
                        query=query,
                        state=SearchState.FAILED,
                        error=exc,
                    )
                )
            return None
        if not self._is_current(sequence):
            if self.debug:
                _logger.info(
                    "Discarding stale response: sequence=%s latest=%s",
                    sequence,
                    self._sequence,
                )
            return None
        self._apply(
            SessionUpdate(
                sequence=sequence,
                query=query,
                state=SearchState.SUCCESS,
                result=result,
            )
        )
        return result

    def _is_current(self, sequence: int) -> bool:
        return not self._closed and sequence == self._sequence

    def _apply(self, update: SessionUpdate) -> None:
        self.latest = update
        self.state = SearchState.IDLE
        if self.listener is not None:
            self.listener(update)

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _cancel_request(self) -> None:
        if self._request_task is not None and not self._request_task.done():
            self._request_task.cancel()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Search session is closed")
