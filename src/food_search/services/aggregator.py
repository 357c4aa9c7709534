"""Progressive disclosure of classified search results."""

import base64
import json
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

from food_search.domain.nutrition import DataType, FoodCandidate
from food_search.domain.search import (
    AggregatedSearchResult,
    GroupPage,
    ResultSnapshot,
    SearchMeta,
    SearchResultGroup,
    Suggestion,
)
from food_search.errors import InvalidInputError
from food_search.services.cache import Cache

GROUP_TITLES = {
    DataType.COMMON: "Common Foods",
    DataType.BRANDED: "Branded Products",
    DataType.INGREDIENT: "Cooking Ingredients",
    DataType.SCANNED: "Scanned Product",
}
DEFAULT_GROUP_ORDER = (DataType.COMMON, DataType.BRANDED, DataType.INGREDIENT)
BRAND_INTENT_GROUP_ORDER = (DataType.BRANDED, DataType.COMMON, DataType.INGREDIENT)


@dataclass(frozen=True)
class GroupCursor:
    """Decoded position inside one group of a snapshot.

    ``limit`` and ``page`` are the upstream request the snapshot was built
    from, so an expired snapshot can be rebuilt from the same results.
    """

    snapshot_id: str
    query: str
    data_type: DataType
    offset: int
    limit: int | None = None
    page: int = 1


def encode_cursor(cursor: GroupCursor) -> str:
    """Encode a cursor as an opaque URL-safe token."""
    payload = {
        "s": cursor.snapshot_id,
        "q": cursor.query,
        "t": cursor.data_type.value,
        "o": cursor.offset,
        "l": cursor.limit,
        "p": cursor.page,
    }
    raw = json.dumps(payload, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(token: str) -> GroupCursor:
    """Decode a cursor token, rejecting anything malformed."""
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        cursor = GroupCursor(
            snapshot_id=str(payload["s"]),
            query=str(payload["q"]),
            data_type=DataType(payload["t"]),
            offset=int(payload["o"]),
            limit=None if payload.get("l") is None else int(payload["l"]),
            page=int(payload.get("p", 1)),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise InvalidInputError("Invalid cursor") from exc
    if cursor.offset < 0 or cursor.page < 1:
        raise InvalidInputError("Invalid cursor")
    if cursor.limit is not None and cursor.limit < 1:
        raise InvalidInputError("Invalid cursor")
    return cursor


@dataclass
class ResultAggregator:
    """Partition candidates into capped groups with "show more" cursors."""

    cache: Cache
    cap_per_group: int = 4
    initial_result_limit: int = 9
    page_size: int = 10
    snapshot_ttl_seconds: int = 900

    def build_snapshot(
        self,
        query: str,
        candidates: Sequence[FoodCandidate],
        snapshot_id: str | None = None,
        *,
        limit: int | None = None,
        page: int = 1,
    ) -> ResultSnapshot:
        """Partition candidates by data type and store them for paging.

        ``limit`` and ``page`` record the upstream request behind the candidates.
        """
        groups: dict[DataType, list[FoodCandidate]] = {}
        for candidate in candidates:
            groups.setdefault(candidate.data_type, []).append(candidate)
        snapshot = ResultSnapshot(
            id=snapshot_id or uuid4().hex,
            query=query,
            groups=groups,
            limit=limit,
            page=page,
        )
        self.cache.set(
            _snapshot_key(snapshot.id), snapshot, ttl_seconds=self.snapshot_ttl_seconds
        )
        return snapshot

    def get_snapshot(self, snapshot_id: str) -> ResultSnapshot | None:
        """Return a stored snapshot, if it has not expired."""
        cached = self.cache.get(_snapshot_key(snapshot_id))
        if isinstance(cached, ResultSnapshot):
            return cached
        return None

    def aggregate(
        self,
        snapshot: ResultSnapshot,
        meta: SearchMeta,
        suggestions: list[Suggestion],
        *,
        brand_intent: bool = False,
    ) -> AggregatedSearchResult:
        """Build the initial capped view of a snapshot."""
        order = BRAND_INTENT_GROUP_ORDER if brand_intent else DEFAULT_GROUP_ORDER
        budget = self.initial_result_limit
        groups: list[SearchResultGroup] = []
        notes: list[str] = list(meta.notes)
        for data_type in order:
            items = snapshot.groups.get(data_type, [])
            if not items:
                continue
            shown = min(self.cap_per_group, len(items), max(budget, 0))
            budget -= shown
            remaining = len(items) - shown
            visible = items[:shown]
            for candidate in visible:
                for note in candidate.notes:
                    if note not in notes:
                        notes.append(note)
            groups.append(
                SearchResultGroup(
                    title=GROUP_TITLES[data_type],
                    data_type=data_type,
                    items=visible,
                    cap_per_group=self.cap_per_group,
                    total=len(items),
                    remaining=remaining,
                    next_cursor=self._cursor(snapshot, data_type, shown, remaining),
                )
            )
        total_remaining = sum(group.remaining for group in groups)
        return AggregatedSearchResult(
            groups=groups,
            total_remaining=total_remaining,
            suggestions=suggestions,
            meta=SearchMeta(
                query=meta.query,
                total_results=meta.total_results,
                processing_time_ms=meta.processing_time_ms,
                page=meta.page,
                has_more_upstream=meta.has_more_upstream,
                from_cache=meta.from_cache,
                notes=notes,
            ),
            snapshot_id=snapshot.id,
        )

    def aggregate_scanned(
        self,
        code: str,
        candidates: Sequence[FoodCandidate],
        processing_time_ms: int = 0,
    ) -> AggregatedSearchResult:
        """Wrap scanned candidates in the same shape as a text search."""
        items = list(candidates)
        notes: list[str] = []
        for candidate in items:
            for note in candidate.notes:
                if note not in notes:
                    notes.append(note)
        group = SearchResultGroup(
            title=GROUP_TITLES[DataType.SCANNED],
            data_type=DataType.SCANNED,
            items=items,
            cap_per_group=max(len(items), 1),
            total=len(items),
            remaining=0,
        )
        return AggregatedSearchResult(
            groups=[group] if items else [],
            total_remaining=0,
            suggestions=[],
            meta=SearchMeta(
                query=code,
                total_results=len(items),
                processing_time_ms=processing_time_ms,
                notes=notes,
            ),
        )

    def page(
        self,
        snapshot: ResultSnapshot,
        data_type: DataType,
        offset: int,
        page_size: int | None = None,
    ) -> GroupPage:
        """Return the items of one group starting at ``offset``.

        Calling this again with the same arguments returns the same page.
        """
        size = page_size or self.page_size
        if size <= 0:
            raise InvalidInputError("Page size must be greater than zero")
        items = snapshot.groups.get(data_type, [])
        page_items = items[offset : offset + size]
        next_offset = offset + len(page_items)
        remaining = max(len(items) - next_offset, 0)
        return GroupPage(
            data_type=data_type,
            title=GROUP_TITLES[data_type],
            items=page_items,
            next_cursor=self._cursor(snapshot, data_type, next_offset, remaining),
            remaining=remaining,
        )

    @staticmethod
    def _cursor(
        snapshot: ResultSnapshot, data_type: DataType, offset: int, remaining: int
    ) -> str | None:
        if remaining <= 0:
            return None
        return encode_cursor(
            GroupCursor(
                snapshot_id=snapshot.id,
                query=snapshot.query,
                data_type=data_type,
                offset=offset,
                limit=snapshot.limit,
                page=snapshot.page,
            )
        )


def _snapshot_key(snapshot_id: str) -> str:
    return f"food-search:snapshot:{snapshot_id}"
