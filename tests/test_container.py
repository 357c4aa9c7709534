"""Tests for container wiring."""

import asyncio

from food_search.containers import build_container
from food_search.services.pipeline import SearchSession


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.search_service.default_limit == settings.search_limit
    assert container.aggregator.cap_per_group == settings.cap_per_group
    assert container.barcode_service is not None
    asyncio.run(container.close_resources())


def test_open_session_uses_settings(container) -> None:
    session = container.open_session()

    assert isinstance(session, SearchSession)
    assert session.debounce_seconds == 0.02
    assert session.min_query_length == 2
